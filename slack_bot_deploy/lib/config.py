"""Configuration loading and validation for the deploy command."""

import os
import re
from dataclasses import dataclass
from pathlib import Path

from dotenv import dotenv_values

from .console import print_error

DEFAULT_BUILD_TARGET = "x86_64-unknown-linux-musl"
DEFAULT_BINARY_NAME = "slack_bot_rust"
DEFAULT_TEMPLATE_FILE = "cloudformation.yml"
DEFAULT_PACKAGED_TEMPLATE_FILE = "cloudformation.out.yml"
DEFAULT_TOKEN_PARAMETER = "SlackToken"
DEFAULT_OUTPUT_KEY = "WebhookUrl"

STACK_NAME_PATTERN = r"^[a-zA-Z][-a-zA-Z0-9]{0,127}$"
BUCKET_NAME_PATTERN = r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$"
REGION_PATTERN = r"^[a-z]{2}(-[a-z]+)+-[0-9]+$"

TRUE_VALUES = {"1", "true", "yes", "on"}

# Keys honored from .env and the process environment
ENV_KEYS = {
    "AWS_REGION",
    "AWS_PROFILE",
    "BUILD_TARGET",
    "BINARY_NAME",
    "TEMPLATE_FILE",
    "PACKAGED_TEMPLATE_FILE",
    "TOKEN_PARAMETER",
    "OUTPUT_KEY",
    "FAIL_ON_EMPTY_CHANGESET",
}


class ConfigurationError(Exception):
    """Configuration validation error."""

    pass


@dataclass
class DeployConfig:
    """Validated deployment configuration."""

    stack_name: str
    artifact_bucket: str
    slack_token: str | None = None
    aws_region: str | None = None
    aws_profile: str | None = None
    project_dir: Path = Path(".")
    build_target: str = DEFAULT_BUILD_TARGET
    binary_name: str = DEFAULT_BINARY_NAME
    template_file: str = DEFAULT_TEMPLATE_FILE
    packaged_template_file: str = DEFAULT_PACKAGED_TEMPLATE_FILE
    token_parameter: str = DEFAULT_TOKEN_PARAMETER
    output_key: str = DEFAULT_OUTPUT_KEY
    capabilities: tuple[str, ...] = ("CAPABILITY_IAM",)
    fail_on_empty_changeset: bool = False

    @property
    def has_token(self) -> bool:
        # An empty token still selects the parameter-override branch
        return self.slack_token is not None

    @property
    def built_binary_path(self) -> Path:
        return self.project_dir / "target" / self.build_target / "release" / self.binary_name

    @property
    def bootstrap_path(self) -> Path:
        return self.project_dir / "target" / "bootstrap"

    @property
    def template_path(self) -> Path:
        return self.project_dir / self.template_file

    @property
    def packaged_template_path(self) -> Path:
        return self.project_dir / self.packaged_template_file


def load_env_file(env_path: Path) -> dict[str, str]:
    """Load configuration from an optional .env file using python-dotenv."""
    if not env_path.exists():
        return {}
    return {k: v for k, v in dotenv_values(env_path).items() if v is not None}


def validate_stack_name(name: str) -> None:
    """Validate CloudFormation stack name."""
    if not name:
        raise ConfigurationError("Stack name cannot be empty")
    if not re.match(STACK_NAME_PATTERN, name):
        raise ConfigurationError(
            f"Invalid stack name: {name} "
            "(must start with a letter and contain only letters, digits and hyphens)"
        )


def validate_bucket_name(name: str) -> None:
    """Validate S3 bucket name."""
    if not name:
        raise ConfigurationError("Artifact bucket cannot be empty")
    if not re.match(BUCKET_NAME_PATTERN, name):
        raise ConfigurationError(
            f"Invalid artifact bucket name: {name} "
            "(3-63 lowercase letters, digits, dots and hyphens)"
        )


def validate_aws_region(region: str) -> None:
    """Validate AWS region format (e.g., us-east-2)."""
    if not re.match(REGION_PATTERN, region):
        raise ConfigurationError(
            f"Invalid AWS_REGION format: {region} (expected format: us-east-2)"
        )


def parse_bool(value: str | None) -> bool:
    return value is not None and value.strip().lower() in TRUE_VALUES


def get_deploy_config(
    stack_name: str,
    artifact_bucket: str,
    slack_token: str | None = None,
    aws_profile: str | None = None,
    aws_region: str | None = None,
    project_dir: Path = Path("."),
    env_file: Path | None = None,
) -> DeployConfig:
    """Load and validate complete deployment configuration.

    Precedence, lowest first: defaults, .env file, process environment,
    explicit arguments. The Slack token only ever comes from the argument.
    """
    env = load_env_file(env_file if env_file is not None else project_dir / ".env")
    env.update({k: v for k, v in os.environ.items() if k in ENV_KEYS})

    aws_profile = aws_profile or env.get("AWS_PROFILE") or None
    aws_region = aws_region or env.get("AWS_REGION") or None

    config = DeployConfig(
        stack_name=stack_name,
        artifact_bucket=artifact_bucket,
        slack_token=slack_token,
        aws_region=aws_region,
        aws_profile=aws_profile,
        project_dir=project_dir,
        build_target=env.get("BUILD_TARGET", DEFAULT_BUILD_TARGET),
        binary_name=env.get("BINARY_NAME", DEFAULT_BINARY_NAME),
        template_file=env.get("TEMPLATE_FILE", DEFAULT_TEMPLATE_FILE),
        packaged_template_file=env.get("PACKAGED_TEMPLATE_FILE", DEFAULT_PACKAGED_TEMPLATE_FILE),
        token_parameter=env.get("TOKEN_PARAMETER", DEFAULT_TOKEN_PARAMETER),
        output_key=env.get("OUTPUT_KEY", DEFAULT_OUTPUT_KEY),
        fail_on_empty_changeset=parse_bool(env.get("FAIL_ON_EMPTY_CHANGESET")),
    )

    # Validate required values
    errors = []

    for validate, value in (
        (validate_stack_name, config.stack_name),
        (validate_bucket_name, config.artifact_bucket),
    ):
        try:
            validate(value)
        except ConfigurationError as e:
            errors.append(str(e))

    if config.aws_region:
        try:
            validate_aws_region(config.aws_region)
        except ConfigurationError as e:
            errors.append(str(e))

    if not config.template_path.is_file():
        errors.append(f"Template file not found: {config.template_path}")

    if errors:
        for error in errors:
            print_error(error)
        raise ConfigurationError("Configuration validation failed")

    # Set AWS_PROFILE environment variable if provided
    if aws_profile:
        os.environ["AWS_PROFILE"] = aws_profile

    return config
