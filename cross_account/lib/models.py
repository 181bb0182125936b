"""Data models shared by the deployment and teardown engines."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from .config import Session, UpdatePolicy


class StackStatus(Enum):
    """CloudFormation stack status, plus ABSENT for stacks that do not exist."""

    ABSENT = "ABSENT"
    REVIEW_IN_PROGRESS = "REVIEW_IN_PROGRESS"
    CREATE_IN_PROGRESS = "CREATE_IN_PROGRESS"
    CREATE_COMPLETE = "CREATE_COMPLETE"
    CREATE_FAILED = "CREATE_FAILED"
    ROLLBACK_IN_PROGRESS = "ROLLBACK_IN_PROGRESS"
    ROLLBACK_COMPLETE = "ROLLBACK_COMPLETE"
    ROLLBACK_FAILED = "ROLLBACK_FAILED"
    UPDATE_IN_PROGRESS = "UPDATE_IN_PROGRESS"
    UPDATE_COMPLETE_CLEANUP_IN_PROGRESS = "UPDATE_COMPLETE_CLEANUP_IN_PROGRESS"
    UPDATE_COMPLETE = "UPDATE_COMPLETE"
    UPDATE_FAILED = "UPDATE_FAILED"
    UPDATE_ROLLBACK_IN_PROGRESS = "UPDATE_ROLLBACK_IN_PROGRESS"
    UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS = "UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS"
    UPDATE_ROLLBACK_COMPLETE = "UPDATE_ROLLBACK_COMPLETE"
    UPDATE_ROLLBACK_FAILED = "UPDATE_ROLLBACK_FAILED"
    DELETE_IN_PROGRESS = "DELETE_IN_PROGRESS"
    DELETE_COMPLETE = "DELETE_COMPLETE"
    DELETE_FAILED = "DELETE_FAILED"

    @classmethod
    def parse(cls, value: str) -> "StackStatus":
        try:
            return cls(value)
        except ValueError:
            pass

        # IMPORT_* and other statuses this tool never issues
        if value.endswith("IN_PROGRESS"):
            return cls.UPDATE_IN_PROGRESS
        if value.endswith("ROLLBACK_COMPLETE"):
            return cls.UPDATE_ROLLBACK_COMPLETE
        if value.endswith("_COMPLETE"):
            return cls.UPDATE_COMPLETE
        return cls.UPDATE_FAILED

    @property
    def in_progress(self) -> bool:
        return self.value.endswith("IN_PROGRESS")

    @property
    def terminal(self) -> bool:
        return not self.in_progress

    @property
    def usable(self) -> bool:
        """Stack exists and its outputs can be trusted."""
        return self in (
            StackStatus.CREATE_COMPLETE,
            StackStatus.UPDATE_COMPLETE,
            StackStatus.UPDATE_ROLLBACK_COMPLETE,
        )

    @property
    def exists(self) -> bool:
        return self not in (StackStatus.ABSENT, StackStatus.DELETE_COMPLETE)


class StackAction(Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"


class WaitPolicy(Enum):
    """How a failed or timed-out wait is handled."""

    STRICT = "strict"
    BEST_EFFORT = "best-effort"


class TeardownOutcome(Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass(frozen=True)
class StackState:
    """Provider view of a stack at one point in time."""

    status: StackStatus
    outputs: dict[str, str] = field(default_factory=dict)
    reason: str = ""


@dataclass(frozen=True)
class StackDescriptor:
    """A declarative unit: what to deploy, where, and with which parameters."""

    name: str
    profile: str
    template_ref: str
    parameters: dict[str, str] = field(default_factory=dict)
    requires_elevated_capability: bool = True
    update_policy: UpdatePolicy = UpdatePolicy.PROMPT
    region: str | None = None


@dataclass(frozen=True)
class DeployedStack:
    """A stack after deploy() returned."""

    name: str
    status: StackStatus
    outputs: dict[str, str]
    action: StackAction


@dataclass(frozen=True)
class OutputBinding:
    key: str
    value: str
    source_stack_name: str


@dataclass(frozen=True)
class ParameterEntry:
    key: str
    value: str


@dataclass(frozen=True)
class ArtifactBindings:
    """Values embedded literally in the verification script."""

    role_arn: str
    external_id: str
    bucket_name: str
    profile: str

    def as_mapping(self) -> dict[str, Any]:
        return {
            "role_arn": self.role_arn,
            "external_id": self.external_id,
            "bucket_name": self.bucket_name,
            "profile": self.profile,
        }


@dataclass(frozen=True)
class DeploymentResult:
    session: Session
    producer: DeployedStack
    consumer: DeployedStack
    role_arn: str
    artifact_path: Path | None = None

    @property
    def producer_outputs(self) -> dict[str, str]:
        return self.producer.outputs

    @property
    def consumer_outputs(self) -> dict[str, str]:
        return self.consumer.outputs


@dataclass(frozen=True)
class StackTeardown:
    name: str
    outcome: TeardownOutcome
    detail: str = ""


@dataclass
class TeardownResult:
    cancelled: bool = False
    stacks: list[StackTeardown] = field(default_factory=list)
    removed_files: list[Path] = field(default_factory=list)

    @property
    def deletions_issued(self) -> int:
        return sum(1 for s in self.stacks if s.outcome != TeardownOutcome.NOT_FOUND)
