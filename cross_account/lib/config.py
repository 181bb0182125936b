"""Session configuration, .env defaults and validation."""

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from dotenv import dotenv_values

from .errors import ValidationError

PRODUCER_STACK_SUFFIX = "AccountB"
CONSUMER_STACK_SUFFIX = "AccountA"
CONSUMER_ROLE_SUFFIX = "Assumer"
CONFIRM_TOKEN = "yes"

MIN_SESSION_DURATION = 3600
MAX_SESSION_DURATION = 43200


class UpdatePolicy(Enum):
    """What to do when a stack already exists and is usable."""

    ALWAYS_UPDATE = "always-update"
    ALWAYS_SKIP = "always-skip"
    PROMPT = "prompt"


@dataclass(frozen=True)
class Defaults:
    """Defaults offered by the interactive prompts (overridable via .env)."""

    consumer_profile: str = "admin-dev"
    producer_profile: str = "admin-prod"
    role_name: str = "CrossAccountS3Access"
    external_id: str = "CrossAccountAccess-2024"
    max_session_duration: int = 3600
    region: str | None = None
    poll_interval: float = 5.0
    wait_timeout: float = 1800.0
    log_level: str = "WARNING"


@dataclass(frozen=True)
class Session:
    """Validated deployment session, immutable for the whole invocation."""

    profile_consumer: str
    profile_producer: str
    bucket_name: str
    role_name_prefix: str
    external_id: str
    max_session_duration: int
    stack_name_prefix: str
    account_id_consumer: str | None = None
    account_id_producer: str | None = None
    region: str | None = None
    on_existing: UpdatePolicy = UpdatePolicy.PROMPT
    capabilities_acknowledged: bool = False

    @property
    def producer_stack_name(self) -> str:
        return f"{self.stack_name_prefix}-{PRODUCER_STACK_SUFFIX}"

    @property
    def consumer_stack_name(self) -> str:
        return f"{self.stack_name_prefix}-{CONSUMER_STACK_SUFFIX}"

    @property
    def producer_role_name(self) -> str:
        return self.role_name_prefix

    @property
    def consumer_role_name(self) -> str:
        return f"{self.role_name_prefix}{CONSUMER_ROLE_SUFFIX}"

    def with_accounts(self, consumer_id: str, producer_id: str) -> "Session":
        """Return a copy bound to the resolved account ids."""
        return replace(self, account_id_consumer=consumer_id, account_id_producer=producer_id)

    def validate(self) -> None:
        """Check every invariant, raising one ValidationError listing all problems."""
        errors = []

        for label, value in (
            ("Account A profile", self.profile_consumer),
            ("Account B profile", self.profile_producer),
        ):
            if not value or not value.strip():
                errors.append(f"{label} is required")

        checks = [
            (validate_bucket_name, self.bucket_name),
            (validate_role_name, self.role_name_prefix),
            (validate_external_id, self.external_id),
            (validate_session_duration, self.max_session_duration),
            (validate_stack_name_prefix, self.stack_name_prefix),
        ]
        for check, value in checks:
            try:
                check(value)
            except ValidationError as e:
                errors.append(str(e))

        for account_id in (self.account_id_consumer, self.account_id_producer):
            if account_id is not None and not re.match(r"^\d{12}$", account_id):
                errors.append(f"Invalid AWS account id: {account_id}")

        if errors:
            raise ValidationError("; ".join(errors), stage="validate")


@dataclass(frozen=True)
class TeardownSession:
    """Configuration for the teardown operation."""

    profile_consumer: str
    profile_producer: str
    stack_name_prefix: str
    confirm_token: str = ""
    region: str | None = None
    artifact_dir: Path = field(default_factory=Path.cwd)

    @property
    def producer_stack_name(self) -> str:
        return f"{self.stack_name_prefix}-{PRODUCER_STACK_SUFFIX}"

    @property
    def consumer_stack_name(self) -> str:
        return f"{self.stack_name_prefix}-{CONSUMER_STACK_SUFFIX}"

    @property
    def confirmed(self) -> bool:
        return self.confirm_token == CONFIRM_TOKEN

    def validate(self) -> None:
        errors = []
        if not self.profile_consumer or not self.profile_producer:
            errors.append("Both profiles are required")
        try:
            validate_stack_name_prefix(self.stack_name_prefix)
        except ValidationError as e:
            errors.append(str(e))
        if errors:
            raise ValidationError("; ".join(errors), stage="validate")


def validate_bucket_name(name: str) -> None:
    """Validate S3 bucket name (3-63 lowercase letters, digits, dots, hyphens)."""
    if not name or not name.strip():
        raise ValidationError("S3 bucket name is required")
    pattern = r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$"
    if not re.match(pattern, name) or ".." in name:
        raise ValidationError(f"Invalid S3 bucket name: {name}")


def validate_role_name(name: str) -> None:
    """Validate IAM role name, leaving room for the consumer role suffix."""
    if not name:
        raise ValidationError("IAM role name is required")
    limit = 64 - len(CONSUMER_ROLE_SUFFIX)
    if not re.match(r"^[\w+=,.@-]+$", name) or len(name) > limit:
        raise ValidationError(
            f"Invalid IAM role name: {name} (use [A-Za-z0-9+=,.@_-], at most {limit} characters)"
        )


def validate_external_id(external_id: str) -> None:
    """Validate the sts:ExternalId value."""
    if not external_id or not external_id.strip():
        raise ValidationError("External ID is required")
    if not re.match(r"^[\w+=,.@:/-]{1,1224}$", external_id):
        raise ValidationError(f"Invalid External ID: {external_id}")


def validate_session_duration(seconds: int) -> None:
    if not isinstance(seconds, int) or not (
        MIN_SESSION_DURATION <= seconds <= MAX_SESSION_DURATION
    ):
        raise ValidationError(
            f"Invalid max session duration: {seconds} "
            f"(expected {MIN_SESSION_DURATION}-{MAX_SESSION_DURATION} seconds)"
        )


def validate_stack_name_prefix(prefix: str) -> None:
    """Validate a CloudFormation stack name prefix."""
    longest_suffix = max(len(PRODUCER_STACK_SUFFIX), len(CONSUMER_STACK_SUFFIX)) + 1
    if not prefix or not re.match(r"^[a-zA-Z][-a-zA-Z0-9]*$", prefix):
        raise ValidationError(
            f"Invalid stack name prefix: {prefix} (letters, digits and hyphens, starting with a letter)"
        )
    if len(prefix) + longest_suffix > 128:
        raise ValidationError(f"Stack name prefix too long: {prefix}")


def load_defaults(env_path: Path = Path(".env")) -> Defaults:
    """Load prompt defaults from an optional .env file using python-dotenv."""
    if not env_path.exists():
        return Defaults()

    env = dotenv_values(env_path)
    base = Defaults()

    try:
        max_session_duration = int(env.get("MAX_SESSION_DURATION") or base.max_session_duration)
        poll_interval = float(env.get("STACK_POLL_INTERVAL") or base.poll_interval)
        wait_timeout = float(env.get("STACK_WAIT_TIMEOUT") or base.wait_timeout)
    except ValueError as e:
        raise ValidationError(f"Invalid numeric value in {env_path}: {e}") from e

    return Defaults(
        consumer_profile=env.get("CONSUMER_PROFILE") or base.consumer_profile,
        producer_profile=env.get("PRODUCER_PROFILE") or base.producer_profile,
        role_name=env.get("ROLE_NAME") or base.role_name,
        external_id=env.get("EXTERNAL_ID") or base.external_id,
        max_session_duration=max_session_duration,
        region=env.get("AWS_REGION") or None,
        poll_interval=poll_interval,
        wait_timeout=wait_timeout,
        log_level=(env.get("LOG_LEVEL") or base.log_level).upper(),
    )
