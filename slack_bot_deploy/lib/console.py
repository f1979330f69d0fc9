"""Colored console output utilities using Rich.

Everything here writes to stderr so stdout carries only the webhook URL.
"""

from rich.console import Console
from rich.markup import escape

console = Console(stderr=True)


def _print_status(marker: str, message: str) -> None:
    console.print(f"   {marker} {message}")


def print_step(step: str, message: str) -> None:
    """Print a step indicator: [3/6] Staging..."""
    console.print(f"\n[bold blue]\\[{step}][/bold blue] {message}")


def print_success(message: str) -> None:
    _print_status("[green]✓[/green]", message)


def print_warning(message: str) -> None:
    _print_status("[yellow]![/yellow]", message)


def print_error(message: str) -> None:
    _print_status("[red]✗[/red]", message)


def print_command(trace: str) -> None:
    """Print a command trace, like `set -x`."""
    console.print(f"[dim]+ {escape(trace)}[/dim]")


def print_header(title: str) -> None:
    """Print deployment header."""
    console.rule(f"[blue]🚀 {title}[/blue]", align="left")


def print_config(
    stack_name: str,
    artifact_bucket: str,
    build_target: str,
    has_token: bool = False,
    region: str | None = None,
    profile: str | None = None,
) -> None:
    """Print configuration summary."""
    console.print("[blue]📋 Configuration:[/blue]")
    console.print(f"   Stack:  {stack_name}")
    console.print(f"   Bucket: {artifact_bucket}")
    console.print(f"   Target: {build_target}")
    console.print(f"   Token:  {'provided' if has_token else 'not provided (keeping stack value)'}")
    if region:
        console.print(f"   Region: {region}")
    if profile:
        console.print(f"   Profile: {profile}")


def print_final_success(message: str) -> None:
    console.print(f"\n[bold green]✅ {message}[/bold green]")


def print_next_steps(webhook_url: str | None, output_key: str = "WebhookUrl") -> None:
    """Print next steps after deployment."""
    console.print()
    if not webhook_url:
        print_warning(f"Stack has no {output_key} output; nothing to configure in Slack")
        return
    console.print("Next steps:")
    console.print("   Set this URL as the Request URL under Slack app → Event Subscriptions:")
    console.print(f"   {webhook_url}")
