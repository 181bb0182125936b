"""Tear down the cross-account stacks and the files the deploy command created."""

from dataclasses import replace

import typer

from .lib.config import Defaults, TeardownSession, load_defaults
from .lib.console import (
    configure_logging,
    console,
    print_account,
    print_error,
    print_final_success,
    print_header,
    print_info,
    print_step,
    print_success,
    print_warning,
)
from .lib.errors import CrossAccountError
from .lib.models import StackDescriptor, TeardownOutcome, TeardownResult
from .lib.stacks import StackDeploymentEngine
from .lib.teardown import TeardownEngine

app = typer.Typer(help="Delete cross-account IAM role stacks and local files")


def collect_session(defaults: Defaults) -> TeardownSession:
    profile_a = typer.prompt("Enter AWS SSO profile for Account A", default=defaults.consumer_profile)
    profile_b = typer.prompt("Enter AWS SSO profile for Account B", default=defaults.producer_profile)
    prefix = typer.prompt("Enter stack name prefix", default=defaults.role_name)

    return TeardownSession(
        profile_consumer=profile_a,
        profile_producer=profile_b,
        stack_name_prefix=prefix,
        region=defaults.region,
    )


def report(result: TeardownResult) -> None:
    for stack in result.stacks:
        if stack.outcome is TeardownOutcome.DELETED:
            print_success(f"{stack.name} deleted")
        elif stack.outcome is TeardownOutcome.NOT_FOUND:
            print_warning(f"Stack {stack.name} not found")
        elif stack.outcome is TeardownOutcome.TIMED_OUT:
            print_warning(f"{stack.name} still deleting, check the CloudFormation console")
        else:
            print_error(f"{stack.name} could not be deleted: {stack.detail}")

    print_step("Files", "Cleaning up local files...")
    if result.removed_files:
        for path in result.removed_files:
            print_success(f"Removed {path.name}")
    else:
        print_info("No local files to remove")


@app.command()
def teardown() -> None:
    """
    Delete the Account A stack, then the Account B stack, then local files.

    Deletion waits are best-effort: a stack that does not finish deleting in
    time is reported and the command still completes.
    """
    try:
        print_header("AWS Cross-Account IAM Role Cleanup", emoji="🗑️")

        defaults = load_defaults()
        configure_logging(defaults.log_level)

        session = collect_session(defaults)
        session.validate()

        console.print()
        print_header("Cleanup Configuration", emoji="📋")
        print_account("Account A", session.profile_consumer, session.consumer_stack_name)
        print_account("Account B", session.profile_producer, session.producer_stack_name)
        console.print()
        print_warning("This will DELETE all resources created by the deployment script!")

        token = typer.prompt(
            "Are you sure you want to continue? (yes/no)", default="no", show_default=False
        )
        session = replace(session, confirm_token=token.strip())

        steps = iter(["1/2", "2/2"])

        def on_stack(descriptor: StackDescriptor) -> None:
            print_step(next(steps), f"Deleting stack {descriptor.name}...")

        engine = StackDeploymentEngine(
            poll_interval=defaults.poll_interval,
            timeout=defaults.wait_timeout,
        )
        result = TeardownEngine(engine, on_stack=on_stack).teardown(session)

        if result.cancelled:
            print_info("Cleanup cancelled.")
            return

        report(result)
        print_final_success("Cleanup complete!")

    except CrossAccountError as e:
        print_error(str(e))
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Cleanup cancelled.[/yellow]")
        raise typer.Exit(130)


def main() -> None:
    """Entry point for the teardown command."""
    app()


if __name__ == "__main__":
    main()
