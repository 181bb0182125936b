"""
Teardown engine.

Deletes the consumer stack before the producer stack (the reverse of the
deployment order) and then removes the files a deployment leaves in the
working directory. Deletion waits are best-effort: a stack that does not
finish deleting in time is reported and the next one is still processed,
so a rerun can always pick up whatever is left.
"""

import logging
from collections.abc import Callable
from pathlib import Path

from ..stacks.constants import CONSUMER_TEMPLATE, PRODUCER_TEMPLATE
from .artifact import TEST_SCRIPT_NAME
from .config import TeardownSession
from .models import StackDescriptor, StackTeardown, TeardownResult, WaitPolicy
from .stacks import StackDeploymentEngine

logger = logging.getLogger(__name__)

# Parameter files written by earlier versions of the deploy tooling
PARAMETER_FILES = ("account-a-parameters.json", "account-b-parameters.json")
LOCAL_ARTIFACTS = (TEST_SCRIPT_NAME, *PARAMETER_FILES)


def teardown_plan(session: TeardownSession) -> list[StackDescriptor]:
    """Stacks in deletion order: consumer first, then producer."""
    return [
        StackDescriptor(
            name=session.consumer_stack_name,
            profile=session.profile_consumer,
            template_ref=CONSUMER_TEMPLATE,
            region=session.region,
        ),
        StackDescriptor(
            name=session.producer_stack_name,
            profile=session.profile_producer,
            template_ref=PRODUCER_TEMPLATE,
            region=session.region,
        ),
    ]


def remove_local_artifacts(directory: Path, names=LOCAL_ARTIFACTS) -> list[Path]:
    """Delete generated files; files that are already gone are skipped."""
    removed = []
    for name in names:
        path = Path(directory) / name
        if path.is_file():
            path.unlink()
            removed.append(path)
            logger.info("Removed %s", path)
    return removed


class TeardownEngine:
    """Best-effort removal of both stacks and the local artifacts."""

    def __init__(
        self,
        engine: StackDeploymentEngine,
        policy: WaitPolicy = WaitPolicy.BEST_EFFORT,
        on_stack: Callable[[StackDescriptor], None] | None = None,
    ):
        self.engine = engine
        self.policy = policy
        self._on_stack = on_stack or (lambda descriptor: None)

    def teardown(self, session: TeardownSession) -> TeardownResult:
        """
        Delete both stacks and the local artifacts.

        Nothing is touched unless the session carries the literal
        confirmation token; without it the result is marked cancelled.
        """
        if not session.confirmed:
            logger.info("Teardown not confirmed, nothing deleted")
            return TeardownResult(cancelled=True)

        session.validate()

        result = TeardownResult()
        for descriptor in teardown_plan(session):
            self._on_stack(descriptor)
            outcome: StackTeardown = self.engine.delete(descriptor, self.policy)
            result.stacks.append(outcome)

        result.removed_files = remove_local_artifacts(session.artifact_dir)
        return result
