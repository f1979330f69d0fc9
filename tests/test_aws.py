"""Tests for the boto3 helpers."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import (
    ClientError,
    NoCredentialsError,
    ProfileNotFound,
    SSOTokenLoadError,
    UnauthorizedSSOTokenError,
)

from slack_bot_deploy.lib.aws import (
    CredentialsError,
    StackNotFoundError,
    get_session,
    get_stack_output,
    get_stack_status,
    verify_credentials,
)


def stack_missing_error(stack_name="slack-bot"):
    return ClientError(
        {
            "Error": {
                "Code": "ValidationError",
                "Message": f"Stack with id {stack_name} does not exist",
            }
        },
        "DescribeStacks",
    )


@pytest.fixture
def mock_cf():
    """Mock CloudFormation client."""
    return MagicMock()


@pytest.fixture
def session(mock_cf):
    """Mock boto3 session returning the CloudFormation mock."""
    session = MagicMock()
    session.profile_name = "default"
    session.client.return_value = mock_cf
    return session


class TestGetSession:
    def test_with_profile(self):
        with patch("slack_bot_deploy.lib.aws.boto3.Session") as mock_session:
            get_session("dev", "us-east-2")

        mock_session.assert_called_once_with(profile_name="dev", region_name="us-east-2")

    def test_without_profile(self):
        with patch("slack_bot_deploy.lib.aws.boto3.Session") as mock_session:
            get_session()

        mock_session.assert_called_once_with(region_name=None)

    def test_unknown_profile(self):
        with patch(
            "slack_bot_deploy.lib.aws.boto3.Session",
            side_effect=ProfileNotFound(profile="nope"),
        ):
            with pytest.raises(CredentialsError, match="'nope' not found") as exc_info:
                get_session("nope")

        assert "aws configure sso --profile nope" in exc_info.value.hint


class TestVerifyCredentials:
    def test_returns_identity_arn(self, session, mock_cf):
        mock_cf.get_caller_identity.return_value = {
            "Account": "123456789012",
            "Arn": "arn:aws:iam::123456789012:user/dev",
        }

        assert verify_credentials(session) == "arn:aws:iam::123456789012:user/dev"
        session.client.assert_called_once_with("sts")

    def test_no_credentials(self, session, mock_cf):
        mock_cf.get_caller_identity.side_effect = NoCredentialsError()

        with pytest.raises(CredentialsError, match="No AWS credentials"):
            verify_credentials(session)

    def test_expired_sso_session(self, session, mock_cf):
        session.profile_name = "dev-sso"
        mock_cf.get_caller_identity.side_effect = UnauthorizedSSOTokenError()

        with pytest.raises(CredentialsError, match="SSO session has expired") as exc_info:
            verify_credentials(session)

        assert exc_info.value.hint == "aws sso login --profile dev-sso"

    def test_sso_profile_never_logged_in(self, session, mock_cf):
        session.profile_name = "legacy-sso"
        mock_cf.get_caller_identity.side_effect = SSOTokenLoadError(
            error_msg="Token for https://example.awsapps.com/start does not exist"
        )

        with pytest.raises(CredentialsError, match="not logged in") as exc_info:
            verify_credentials(session)

        assert exc_info.value.hint == "aws sso login --profile legacy-sso"

    def test_expired_token(self, session, mock_cf):
        mock_cf.get_caller_identity.side_effect = ClientError(
            {"Error": {"Code": "ExpiredToken", "Message": "token expired"}},
            "GetCallerIdentity",
        )

        with pytest.raises(CredentialsError, match="expired") as exc_info:
            verify_credentials(session)

        assert exc_info.value.hint == "aws sso login"

    def test_invalid_credentials(self, session, mock_cf):
        mock_cf.get_caller_identity.side_effect = ClientError(
            {"Error": {"Code": "InvalidClientTokenId", "Message": "bad key"}},
            "GetCallerIdentity",
        )

        with pytest.raises(CredentialsError, match="invalid"):
            verify_credentials(session)


class TestGetStackOutput:
    def test_returns_matching_output(self, session, mock_cf):
        mock_cf.describe_stacks.return_value = {
            "Stacks": [
                {
                    "Outputs": [
                        {"OutputKey": "FunctionArn", "OutputValue": "arn:aws:lambda:..."},
                        {
                            "OutputKey": "WebhookUrl",
                            "OutputValue": "https://abc.execute-api.us-east-2.amazonaws.com/Prod/",
                        },
                    ]
                }
            ]
        }

        url = get_stack_output(session, "slack-bot", "WebhookUrl", "us-east-2")

        assert url == "https://abc.execute-api.us-east-2.amazonaws.com/Prod/"
        mock_cf.describe_stacks.assert_called_once_with(StackName="slack-bot")
        session.client.assert_called_once_with("cloudformation", region_name="us-east-2")

    def test_missing_output_returns_none(self, session, mock_cf):
        mock_cf.describe_stacks.return_value = {
            "Stacks": [{"Outputs": [{"OutputKey": "Other", "OutputValue": "x"}]}]
        }

        assert get_stack_output(session, "slack-bot", "WebhookUrl") is None

    def test_stack_without_outputs(self, session, mock_cf):
        mock_cf.describe_stacks.return_value = {"Stacks": [{"StackName": "slack-bot"}]}

        assert get_stack_output(session, "slack-bot", "WebhookUrl") is None

    def test_missing_stack_raises(self, session, mock_cf):
        mock_cf.describe_stacks.side_effect = stack_missing_error()

        with pytest.raises(StackNotFoundError):
            get_stack_output(session, "slack-bot", "WebhookUrl")

    def test_other_client_errors_propagate(self, session, mock_cf):
        mock_cf.describe_stacks.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "DescribeStacks"
        )

        with pytest.raises(ClientError):
            get_stack_output(session, "slack-bot", "WebhookUrl")


class TestGetStackStatus:
    def test_existing_stack(self, session, mock_cf):
        mock_cf.describe_stacks.return_value = {"Stacks": [{"StackStatus": "UPDATE_COMPLETE"}]}

        assert get_stack_status(session, "slack-bot") == "UPDATE_COMPLETE"

    def test_missing_stack(self, session, mock_cf):
        mock_cf.describe_stacks.side_effect = stack_missing_error()

        assert get_stack_status(session, "slack-bot") is None

    def test_empty_stacks_list(self, session, mock_cf):
        mock_cf.describe_stacks.return_value = {"Stacks": []}

        assert get_stack_status(session, "slack-bot") is None
