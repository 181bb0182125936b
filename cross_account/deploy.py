"""Deploy cross-account S3 access: the Account B role first, then Account A."""

from dataclasses import replace

import typer
from botocore.exceptions import BotoCoreError, ClientError

from .lib.artifact import TEST_SCRIPT_NAME, TestArtifactGenerator
from .lib.aws import bucket_accessible, get_session
from .lib.commands import CommandError, check_required_commands
from .lib.config import CONFIRM_TOKEN, Defaults, Session, UpdatePolicy, load_defaults
from .lib.console import (
    configure_logging,
    console,
    print_account,
    print_config,
    print_error,
    print_final_success,
    print_header,
    print_info,
    print_next_steps,
    print_step,
    print_success,
    print_warning,
)
from .lib.errors import CrossAccountError, IdentityResolutionError
from .lib.identity import AccountIdentityVerifier
from .lib.models import DeploymentResult
from .lib.orchestrator import (
    STAGE_ARTIFACT,
    STAGE_CONSUMER,
    STAGE_PRODUCER,
    STAGE_PROPAGATE,
    DeploymentOrchestrator,
)
from .lib.stacks import StackDeploymentEngine

app = typer.Typer(help="Deploy cross-account IAM roles for S3 access")

STEPS = {
    STAGE_PRODUCER: ("1/4", "Deploying to Account B (Production)..."),
    STAGE_PROPAGATE: ("2/4", "Reading role ARN from Account B stack..."),
    STAGE_CONSUMER: ("3/4", "Deploying to Account A (Development)..."),
    STAGE_ARTIFACT: ("4/4", "Creating test script..."),
}


def ask_yes(question: str) -> bool:
    """Ask a yes/no question; only a literal lowercase 'yes' counts."""
    answer = typer.prompt(f"{question} (yes/no)", default="no", show_default=False)
    return answer.strip() == CONFIRM_TOKEN


def resolve_profile(verifier: AccountIdentityVerifier, label: str, profile: str) -> str:
    print_info(f"Testing {label} access...")
    account_id = verifier.resolve(profile)
    print_success(f"{label} ID: {account_id}")
    return account_id


def collect_session(defaults: Defaults, verifier: AccountIdentityVerifier) -> Session:
    """Prompt for every session value, resolving accounts as soon as profiles are known."""
    print_step("Config", "Collecting configuration...")

    profile_a = typer.prompt(
        "Enter AWS SSO profile for Account A (Development)", default=defaults.consumer_profile
    )
    account_a = resolve_profile(verifier, "Account A", profile_a)

    profile_b = typer.prompt(
        "Enter AWS SSO profile for Account B (Production)", default=defaults.producer_profile
    )
    account_b = resolve_profile(verifier, "Account B", profile_b)

    verifier.assert_distinct(account_a, account_b)

    bucket_name = typer.prompt("Enter S3 bucket name in Account B").strip()
    print_info("Verifying S3 bucket exists...")
    if bucket_accessible(get_session(profile_b, defaults.region), bucket_name):
        print_success(f"Bucket exists: {bucket_name}")
    else:
        print_warning("Bucket may not exist or you don't have access to it")
        if not ask_yes("Continue anyway?"):
            raise typer.Exit(1)

    role_name = typer.prompt("Enter IAM role name", default=defaults.role_name)
    external_id = typer.prompt("Enter External ID", default=defaults.external_id)
    max_session_duration = typer.prompt(
        "Enter max session duration in seconds",
        default=defaults.max_session_duration,
        type=int,
    )

    return Session(
        profile_consumer=profile_a,
        profile_producer=profile_b,
        account_id_consumer=account_a,
        account_id_producer=account_b,
        bucket_name=bucket_name,
        role_name_prefix=role_name,
        external_id=external_id,
        max_session_duration=max_session_duration,
        stack_name_prefix=role_name,
        region=defaults.region,
        on_existing=UpdatePolicy.PROMPT,
    )


def display_summary(session: Session) -> None:
    console.print()
    print_header("Configuration Summary", emoji="📋")
    print_account(
        "Account A (Development)",
        session.profile_consumer,
        session.consumer_stack_name,
        session.account_id_consumer,
    )
    print_account(
        "Account B (Production)",
        session.profile_producer,
        session.producer_stack_name,
        session.account_id_producer,
    )
    print_config(
        bucket_name=session.bucket_name,
        role_name=session.role_name_prefix,
        external_id=session.external_id,
        max_session_duration=session.max_session_duration,
        region=session.region,
    )
    console.print()
    print_warning("Both stacks create named IAM roles (CAPABILITY_NAMED_IAM).")


def display_success(result: DeploymentResult) -> None:
    session = result.session
    print_final_success("Deployment complete!")
    console.print()
    console.print("Summary:")
    console.print(f"   Account A Stack: {result.consumer.name} ({result.consumer.status.value})")
    console.print(f"   Account B Stack: {result.producer.name} ({result.producer.status.value})")
    console.print(f"   Account B Role:  {result.role_arn}")
    if result.artifact_path:
        print_success(f"Created test script: {result.artifact_path}")
    print_next_steps(
        script_name=TEST_SCRIPT_NAME,
        role_arn=result.role_arn,
        external_id=session.external_id,
        consumer_profile=session.profile_consumer,
        producer_profile=session.profile_producer,
    )


def report_failure(error: CrossAccountError) -> None:
    print_error(f"Failed during: {error.stage or 'configuration'}")
    print_error(str(error))
    if error.completed_stacks:
        print_warning(f"Completed before the failure: {', '.join(error.completed_stacks)}")
    else:
        print_warning("No stack was completed before the failure")


def on_stage(stage: str) -> None:
    if stage in STEPS:
        print_step(*STEPS[stage])


@app.command()
def deploy() -> None:
    """
    Deploy the cross-account role pair interactively.

    1. Deploy the role stack to Account B (Production)

    2. Read the role ARN from its outputs

    3. Deploy the assumer stack to Account A (Development)

    4. Generate test_cross_account_access.sh
    """
    try:
        print_header("AWS Cross-Account IAM Role Deployment (SSO)")

        check_required_commands()

        defaults = load_defaults()
        configure_logging(defaults.log_level)

        verifier = AccountIdentityVerifier()
        session = collect_session(defaults, verifier)
        session.validate()

        display_summary(session)
        if not ask_yes("Proceed with deployment?"):
            print_info("Deployment cancelled.")
            return

        # Confirming the summary acknowledges the IAM capability
        session = replace(session, capabilities_acknowledged=True)

        engine = StackDeploymentEngine(
            confirm_update=lambda name: ask_yes(f"Stack {name} already exists. Update existing stack?"),
            poll_interval=defaults.poll_interval,
            timeout=defaults.wait_timeout,
        )
        orchestrator = DeploymentOrchestrator(
            engine,
            verifier=verifier,
            generator=TestArtifactGenerator(),
            on_stage=on_stage,
        )

        result = orchestrator.run(session)
        display_success(result)

    except IdentityResolutionError as e:
        print_error(str(e))
        print_info(f"Try logging in: {e.hint}")
        raise typer.Exit(1)
    except CrossAccountError as e:
        report_failure(e)
        raise typer.Exit(1)
    except (ClientError, BotoCoreError) as e:
        print_error(f"AWS error: {e}")
        raise typer.Exit(1)
    except CommandError:
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Deployment cancelled.[/yellow]")
        raise typer.Exit(130)


def main() -> None:
    """Entry point for the deploy command."""
    app()


if __name__ == "__main__":
    main()
