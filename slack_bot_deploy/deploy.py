"""Build the Slack bot and deploy it to AWS Lambda via CloudFormation."""

import logging
from pathlib import Path
from typing import Annotated

import boto3
import typer

from .lib.artifacts import ArtifactError, stage_bootstrap
from .lib.aws import (
    CredentialsError,
    StackNotFoundError,
    get_session,
    get_stack_output,
    get_stack_status,
    verify_credentials,
)
from .lib.commands import (
    CommandError,
    CommandResult,
    check_required_commands,
    run_cargo_build,
    run_cfn_deploy,
    run_cfn_package,
    run_rustup_target_add,
)
from .lib.config import ConfigurationError, DeployConfig, get_deploy_config
from .lib.console import (
    console,
    print_config,
    print_error,
    print_final_success,
    print_header,
    print_next_steps,
    print_step,
    print_success,
    print_warning,
)

logger = logging.getLogger(__name__)

app = typer.Typer(help="Build the Slack bot and deploy it with CloudFormation")

# Stacks in these states cannot be updated and must be deleted first
UNRECOVERABLE_STATUSES = {"ROLLBACK_COMPLETE", "ROLLBACK_FAILED", "DELETE_FAILED"}


def _check(result: CommandResult, message: str) -> None:
    if not result.success:
        print_error(message)
        if result.stderr:
            console.print(result.stderr)
        raise CommandError(message, returncode=result.returncode)


def step_1_add_target(config: DeployConfig) -> None:
    """Ensure the cross-compilation target is installed."""
    print_step("1/6", f"Adding Rust target {config.build_target}...")

    result = run_rustup_target_add(config.build_target, cwd=config.project_dir)
    _check(result, f"rustup could not add target {config.build_target}")

    print_success("Target installed")


def step_2_build(config: DeployConfig) -> None:
    """Build the release binary."""
    print_step("2/6", "Building release binary (cargo)...")

    result = run_cargo_build(config.build_target, cwd=config.project_dir)
    _check(result, "cargo build failed")

    print_success(f"Built {config.binary_name}")


def step_3_stage_artifact(config: DeployConfig) -> None:
    """Copy the binary to target/bootstrap."""
    print_step("3/6", "Staging bootstrap executable...")

    bootstrap = stage_bootstrap(config.built_binary_path, config.bootstrap_path)

    print_success(f"Staged {bootstrap}")


def step_4_package(config: DeployConfig) -> None:
    """Upload assets and write the packaged template."""
    print_step("4/6", f"Packaging template to s3://{config.artifact_bucket}...")

    result = run_cfn_package(
        template_file=config.template_path,
        output_template_file=config.packaged_template_path,
        bucket=config.artifact_bucket,
        cwd=config.project_dir,
        profile=config.aws_profile,
        region=config.aws_region,
    )
    _check(result, "CloudFormation package failed")

    print_success(f"Wrote {config.packaged_template_file}")


def step_5_deploy_stack(config: DeployConfig, stack_status: str | None) -> None:
    """Create or update the stack, passing the token only when supplied."""
    action = "Updating" if stack_status else "Creating"
    print_step("5/6", f"{action} stack {config.stack_name} (this may take several minutes)...")

    if stack_status in UNRECOVERABLE_STATUSES:
        print_warning(
            f"Stack is in {stack_status}; CloudFormation may refuse to update it "
            "until it is deleted"
        )

    if config.has_token:
        parameter_overrides = {config.token_parameter: config.slack_token}
    else:
        parameter_overrides = None

    result = run_cfn_deploy(
        template_file=config.packaged_template_path,
        stack_name=config.stack_name,
        capabilities=config.capabilities,
        parameter_overrides=parameter_overrides,
        fail_on_empty_changeset=config.fail_on_empty_changeset,
        cwd=config.project_dir,
        profile=config.aws_profile,
        region=config.aws_region,
    )
    _check(result, f"Stack {config.stack_name} deployment failed")

    print_success("Stack deployed")


def step_6_get_webhook_url(config: DeployConfig, session: boto3.Session) -> str | None:
    """Read the webhook URL from the stack outputs."""
    print_step("6/6", f"Reading {config.output_key} output...")

    url = get_stack_output(session, config.stack_name, config.output_key, config.aws_region)

    if url:
        print_success(f"Found {config.output_key}")
    else:
        print_warning(f"Output {config.output_key} not found on stack {config.stack_name}")

    return url


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.command()
def deploy(
    stack_name: Annotated[str, typer.Argument(help="CloudFormation stack name")],
    artifact_bucket: Annotated[
        str, typer.Argument(help="S3 bucket for packaged deployment artifacts")
    ],
    slack_token: Annotated[
        str | None,
        typer.Argument(
            help="Slack token passed as a stack parameter; omit to keep the stack's value",
            show_default=False,
        ),
    ] = None,
    profile: Annotated[
        str | None,
        typer.Option("--profile", help="AWS CLI profile name (for SSO users)"),
    ] = None,
    region: Annotated[
        str | None,
        typer.Option("--region", help="AWS region (defaults to AWS_REGION or the CLI config)"),
    ] = None,
    project_dir: Annotated[
        Path,
        typer.Option("--project-dir", help="Directory holding Cargo.toml and the template"),
    ] = Path("."),
    env_file: Annotated[
        Path | None,
        typer.Option("--env-file", help="Optional .env file (default: <project-dir>/.env)"),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """
    Build the bot and deploy it to AWS Lambda.

    This command performs a 6-step deployment:

    1. Add the Rust cross-compilation target

    2. Build the release binary

    3. Stage it as target/bootstrap

    4. Package the CloudFormation template into the artifact bucket

    5. Create or update the stack

    6. Print the stack's webhook URL
    """
    _configure_logging(verbose)

    try:
        config = get_deploy_config(
            stack_name=stack_name,
            artifact_bucket=artifact_bucket,
            slack_token=slack_token,
            aws_profile=profile,
            aws_region=region,
            project_dir=project_dir,
            env_file=env_file,
        )

        check_required_commands()

        session = get_session(config.aws_profile, config.aws_region)
        identity = verify_credentials(session)

        print_header("Slack Bot Deployment")
        print_config(
            stack_name=config.stack_name,
            artifact_bucket=config.artifact_bucket,
            build_target=config.build_target,
            has_token=config.has_token,
            region=config.aws_region or session.region_name,
            profile=config.aws_profile,
        )
        print_success(f"Authenticated as {identity}")

        step_1_add_target(config)
        step_2_build(config)
        step_3_stage_artifact(config)
        step_4_package(config)
        stack_status = get_stack_status(session, config.stack_name, config.aws_region)
        logger.debug("Stack %s status before deploy: %s", config.stack_name, stack_status)
        step_5_deploy_stack(config, stack_status)
        webhook_url = step_6_get_webhook_url(config, session)

        print_final_success("Deployment successful!")
        print_next_steps(webhook_url, config.output_key)

        # The only line written to stdout
        typer.echo(webhook_url or "")

    except ConfigurationError:
        raise typer.Exit(1)
    except CredentialsError as e:
        print_error(str(e))
        if e.hint:
            print_error(f"   Try: {e.hint}")
        raise typer.Exit(1)
    except ArtifactError as e:
        print_error(str(e))
        raise typer.Exit(1)
    except StackNotFoundError as e:
        print_error(str(e))
        raise typer.Exit(1)
    except CommandError as e:
        raise typer.Exit(e.returncode or 1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Deployment cancelled.[/yellow]")
        raise typer.Exit(130)


def main() -> None:
    """Entry point for the deploy script."""
    app()


if __name__ == "__main__":
    main()
