"""Colored console output utilities using Rich."""

import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console()


def configure_logging(level: str = "WARNING") -> None:
    """Route library logging through Rich so it interleaves with step output."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def print_step(step: str, message: str) -> None:
    """Print a step indicator: [1/5] Deploying..."""
    console.print(f"\n[blue][{step}][/blue] {message}")


def print_info(message: str) -> None:
    """Print informational message with blue indicator."""
    console.print(f"   [blue]ℹ[/blue] {message}")


def print_success(message: str) -> None:
    """Print success message with green checkmark."""
    console.print(f"   [green]✓[/green] {message}")


def print_warning(message: str) -> None:
    """Print warning message with yellow indicator."""
    console.print(f"   [yellow]![/yellow] {message}")


def print_error(message: str) -> None:
    """Print error message with red X."""
    console.print(f"   [red]✗[/red] {message}")


def print_header(title: str, emoji: str = "🚀") -> None:
    """Print section header."""
    console.print(f"[blue]{emoji} {title}[/blue]")
    console.print("=" * 42)


def print_account(
    label: str,
    profile: str,
    stack_name: str,
    account_id: str | None = None,
) -> None:
    """Print one account block of a configuration summary."""
    console.print(f"[blue]{label}:[/blue]")
    console.print(f"   Profile:    {profile}")
    if account_id:
        console.print(f"   Account ID: {account_id}")
    console.print(f"   Stack Name: {stack_name}")


def print_config(
    bucket_name: str,
    role_name: str,
    external_id: str,
    max_session_duration: int,
    region: str | None = None,
) -> None:
    """Print configuration summary."""
    console.print("[blue]📋 Configuration:[/blue]")
    console.print(f"   S3 Bucket:         {bucket_name}")
    console.print(f"   Role Name:         {role_name}")
    console.print(f"   External ID:       {external_id}")
    console.print(f"   Max Session (sec): {max_session_duration}")
    if region:
        console.print(f"   Region:            {region}")


def print_final_success(message: str = "Deployment complete!") -> None:
    """Print final success message."""
    console.print()
    console.print(f"[green]✅ {message}[/green]")


def print_next_steps(
    script_name: str,
    role_arn: str,
    external_id: str,
    consumer_profile: str,
    producer_profile: str,
) -> None:
    """Print next steps after deployment."""
    console.print()
    console.print("Next steps:")
    console.print("   1. Test the setup:")
    console.print(f"      ./{script_name}")
    console.print()
    console.print("   2. Use in your applications:")
    console.print("      aws sts assume-role \\")
    console.print(f"        --role-arn {role_arn} \\")
    console.print("        --role-session-name MySession \\")
    console.print(f"        --external-id {external_id} \\")
    console.print(f"        --profile {consumer_profile}")
    console.print()
    console.print("   3. Monitor access in CloudTrail:")
    console.print("      aws cloudtrail lookup-events \\")
    console.print("        --lookup-attributes AttributeKey=EventName,AttributeValue=AssumeRole \\")
    console.print(f"        --profile {producer_profile}")
