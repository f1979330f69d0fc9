"""Subprocess execution for external tools (rustup, cargo, aws)."""

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .console import print_command, print_error

logger = logging.getLogger(__name__)

MASK = "****"

# Tool name -> install hint
REQUIRED_COMMANDS = {
    "rustup": "curl --proto '=https' --tlsv1.2 -sSf https://sh.rustup.rs | sh",
    "cargo": "installed together with rustup",
    "aws": "https://docs.aws.amazon.com/cli/latest/userguide/getting-started-install.html",
}


class CommandError(Exception):
    """External command execution error."""

    def __init__(self, message: str, returncode: int = 1):
        super().__init__(message)
        self.returncode = returncode


@dataclass
class CommandResult:
    """Result of a subprocess command."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


def check_command_exists(cmd: str) -> bool:
    """Check if a command is available in PATH."""
    return shutil.which(cmd) is not None


def check_required_commands() -> None:
    """Check that rustup, cargo and the AWS CLI are available."""
    for name, install_hint in REQUIRED_COMMANDS.items():
        if not check_command_exists(name):
            print_error(f"{name} command not found.")
            print_error("")
            print_error(f"   Install: {install_hint}")
            print_error("")
            print_error("   Or run: slack-bot-check-prereqs")
            raise CommandError(f"{name} not found")


def format_command(cmd: list[str], secrets: list[str] | None = None) -> str:
    """Render a command as a shell line with secret values masked."""
    masked = []
    for arg in cmd:
        for secret in secrets or []:
            if secret:
                arg = arg.replace(secret, MASK)
        masked.append(arg)
    return shlex.join(masked)


def aws_env(profile: str | None = None, region: str | None = None) -> dict[str, str]:
    """Environment overrides that point the AWS CLI at a profile/region."""
    env = {}
    if profile:
        env["AWS_PROFILE"] = profile
    if region:
        env["AWS_DEFAULT_REGION"] = region
    return env


def run_command(
    cmd: list[str],
    env: dict[str, str] | None = None,
    cwd: Path | None = None,
    capture_output: bool = False,
    secrets: list[str] | None = None,
) -> CommandResult:
    """Run a subprocess command, echoing it first.

    Output is streamed to the terminal unless capture_output is set, so the
    user sees build and deploy progress as it happens.
    """
    print_command(format_command(cmd, secrets))
    full_env = {**os.environ, **(env or {})}

    try:
        result = subprocess.run(
            cmd,
            env=full_env,
            cwd=cwd,
            capture_output=capture_output,
            text=True,
        )
    except FileNotFoundError as e:
        raise CommandError(f"{cmd[0]} not found", returncode=127) from e

    logger.debug("%s exited with %d", cmd[0], result.returncode)

    return CommandResult(
        returncode=result.returncode,
        stdout=result.stdout if capture_output else "",
        stderr=result.stderr if capture_output else "",
    )


def run_rustup_target_add(target: str, cwd: Path | None = None) -> CommandResult:
    """Install the cross-compilation target (no-op if already installed)."""
    return run_command(["rustup", "target", "add", target], cwd=cwd)


def run_cargo_build(target: str, cwd: Path | None = None) -> CommandResult:
    """Build the release binary for the given target."""
    return run_command(["cargo", "build", "--release", "--target", target], cwd=cwd)


def run_cfn_package(
    template_file: Path,
    output_template_file: Path,
    bucket: str,
    cwd: Path | None = None,
    profile: str | None = None,
    region: str | None = None,
) -> CommandResult:
    """Upload template assets to S3 and write the rewritten template."""
    cmd = [
        "aws",
        "cloudformation",
        "package",
        "--template-file",
        str(template_file),
        "--output-template-file",
        str(output_template_file),
        "--s3-bucket",
        bucket,
    ]

    return run_command(cmd, env=aws_env(profile, region), cwd=cwd)


def run_cfn_deploy(
    template_file: Path,
    stack_name: str,
    capabilities: tuple[str, ...] = ("CAPABILITY_IAM",),
    parameter_overrides: dict[str, str] | None = None,
    fail_on_empty_changeset: bool = False,
    cwd: Path | None = None,
    profile: str | None = None,
    region: str | None = None,
) -> CommandResult:
    """Create or update a CloudFormation stack from a packaged template."""
    cmd = [
        "aws",
        "cloudformation",
        "deploy",
        "--template-file",
        str(template_file),
        "--stack-name",
        stack_name,
        "--capabilities",
        *capabilities,
    ]

    if not fail_on_empty_changeset:
        cmd.append("--no-fail-on-empty-changeset")

    secrets = []
    if parameter_overrides:
        cmd.append("--parameter-overrides")
        for key, value in parameter_overrides.items():
            cmd.append(f"{key}={value}")
            secrets.append(value)

    return run_command(cmd, env=aws_env(profile, region), cwd=cwd, secrets=secrets)
