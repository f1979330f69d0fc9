"""AWS client helpers for boto3 operations."""

import logging

import boto3
from botocore.exceptions import (
    ClientError,
    NoCredentialsError,
    NoRegionError,
    ProfileNotFound,
    SSOError,
    TokenRetrievalError,
)

logger = logging.getLogger(__name__)

EXPIRED_TOKEN_CODES = {"ExpiredToken", "ExpiredTokenException", "RequestExpired"}


class CredentialsError(Exception):
    """AWS credentials are missing, invalid or expired."""

    def __init__(self, message: str, hint: str = ""):
        super().__init__(message)
        self.hint = hint


class StackNotFoundError(Exception):
    """CloudFormation stack does not exist."""

    pass


def get_session(profile: str | None = None, region: str | None = None) -> boto3.Session:
    """Create boto3 session with optional profile and region."""
    try:
        if profile:
            return boto3.Session(profile_name=profile, region_name=region)
        return boto3.Session(region_name=region)
    except ProfileNotFound as e:
        raise CredentialsError(
            f"AWS profile '{profile}' not found",
            hint=f"aws configure sso --profile {profile}  (or: aws configure list-profiles)",
        ) from e


def _sso_login_hint(profile: str | None) -> str:
    return f"aws sso login --profile {profile}" if profile else "aws sso login"


def verify_credentials(session: boto3.Session) -> str:
    """
    Check that the session has working credentials.

    Args:
        session: boto3 session to check

    Returns:
        The caller identity ARN.

    Raises:
        CredentialsError: with a remediation hint when credentials are
            missing, the SSO session has expired or STS rejects them.
    """
    profile = session.profile_name if session.profile_name != "default" else None
    try:
        identity = session.client("sts").get_caller_identity()
    except NoCredentialsError as e:
        raise CredentialsError(
            "No AWS credentials found",
            hint="aws configure, aws configure sso, or export AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY",
        ) from e
    except (SSOError, TokenRetrievalError) as e:
        # Covers expired tokens and profiles that were never logged in
        raise CredentialsError(
            "AWS SSO session has expired or is not logged in", hint=_sso_login_hint(profile)
        ) from e
    except NoRegionError as e:
        raise CredentialsError(
            "No AWS region configured", hint="pass --region or set AWS_REGION"
        ) from e
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code", "")
        if code in EXPIRED_TOKEN_CODES:
            raise CredentialsError(
                "AWS credentials have expired", hint=_sso_login_hint(profile)
            ) from e
        raise CredentialsError(
            f"AWS credentials are invalid: {e}", hint="aws configure"
        ) from e

    logger.debug("Authenticated as %s", identity.get("Arn"))
    return identity.get("Arn", "")


def _describe_stack(session: boto3.Session, stack_name: str, region: str | None) -> dict:
    cf = session.client("cloudformation", region_name=region)
    try:
        response = cf.describe_stacks(StackName=stack_name)
    except ClientError as e:
        if "does not exist" in str(e):
            raise StackNotFoundError(f"Stack {stack_name} does not exist") from e
        raise

    stacks = response.get("Stacks", [])
    if not stacks:
        raise StackNotFoundError(f"Stack {stack_name} does not exist")
    return stacks[0]


def get_stack_status(
    session: boto3.Session, stack_name: str, region: str | None = None
) -> str | None:
    """Get the stack status, or None if the stack does not exist."""
    try:
        return _describe_stack(session, stack_name, region).get("StackStatus")
    except StackNotFoundError:
        return None


def get_stack_output(
    session: boto3.Session, stack_name: str, output_key: str, region: str | None = None
) -> str | None:
    """Get a specific output from a CloudFormation stack.

    Returns None when the stack has no such output. Raises
    StackNotFoundError when the stack itself is missing.
    """
    stack = _describe_stack(session, stack_name, region)
    for output in stack.get("Outputs", []):
        if output.get("OutputKey") == output_key:
            return output.get("OutputValue")
    return None
