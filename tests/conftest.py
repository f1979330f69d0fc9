"""Pytest fixtures for the deploy command tests."""

import os
from unittest.mock import patch

import pytest

from slack_bot_deploy.lib.config import ENV_KEYS, DeployConfig


@pytest.fixture(autouse=True)
def clean_env():
    """Isolate tests from deploy settings in the developer's environment."""
    with patch.dict(os.environ, clear=False):
        for key in ENV_KEYS:
            os.environ.pop(key, None)
        yield


@pytest.fixture
def project_dir(tmp_path):
    """A project directory with a CloudFormation template."""
    (tmp_path / "cloudformation.yml").write_text("AWSTemplateFormatVersion: '2010-09-09'\n")
    return tmp_path


@pytest.fixture
def config(project_dir):
    """A deploy config without a Slack token."""
    return DeployConfig(
        stack_name="slack-bot",
        artifact_bucket="my-artifacts",
        project_dir=project_dir,
    )
