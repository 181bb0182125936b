"""
Stack deployment engine.

Drives a single CloudFormation stack through create-or-update (or delete)
to a terminal status. Status is never cached: every decision re-reads the
stack from the provider, so a run interrupted mid-operation resumes from
whatever state the provider reports.
"""

import logging
from collections.abc import Callable
from typing import Protocol

from botocore.exceptions import BotoCoreError, ClientError

from .aws import CloudFormationProvider
from .config import UpdatePolicy
from .errors import (
    CapabilityNotAcknowledged,
    NotFoundError,
    StackOperationFailed,
    WaitTimeout,
)
from .models import (
    DeployedStack,
    StackAction,
    StackDescriptor,
    StackState,
    StackStatus,
    StackTeardown,
    TeardownOutcome,
    WaitPolicy,
)

logger = logging.getLogger(__name__)


class StackProvider(Protocol):
    """Operations the engine needs from the declarative-unit provider."""

    def describe(self, stack_name: str) -> StackState: ...

    def create(
        self, stack_name: str, template_body: str, parameters: dict[str, str], capability_ack: bool
    ) -> str: ...

    def update(
        self, stack_name: str, template_body: str, parameters: dict[str, str], capability_ack: bool
    ) -> bool: ...

    def delete(self, stack_name: str) -> None: ...

    def wait_for_terminal(self, stack_name: str) -> StackStatus: ...

    def failure_events(self, stack_name: str) -> list[str]: ...


ProviderFactory = Callable[[str, str | None], StackProvider]


def sdk_failure(stack_name: str, error: ClientError | BotoCoreError) -> StackOperationFailed:
    """Translate a boto3 error raised while operating on a stack."""
    if isinstance(error, ClientError):
        details = error.response.get("Error", {})
        return StackOperationFailed(
            stack_name, "REJECTED", f"{details.get('Code')}: {details.get('Message', error)}"
        )
    return StackOperationFailed(stack_name, "UNREACHABLE", str(error))


def synthesize(template_ref: str) -> str:
    """Default template loader: synthesize the CDK stack for ``template_ref``."""
    # aws_cdk starts a Node.js runtime on import, so only load it when needed
    from .templates import synthesize_template

    return synthesize_template(template_ref)


class StackDeploymentEngine:
    """Create, update, inspect and delete stacks described by StackDescriptors."""

    def __init__(
        self,
        provider_factory: ProviderFactory | None = None,
        template_loader: Callable[[str], str] = synthesize,
        confirm_update: Callable[[str], bool] | None = None,
        poll_interval: float = 5.0,
        timeout: float = 1800.0,
    ):
        self._provider_factory = provider_factory or (
            lambda profile, region: CloudFormationProvider.for_profile(
                profile, region, poll_interval=poll_interval, timeout=timeout
            )
        )
        self._template_loader = template_loader
        self._confirm_update = confirm_update
        self._providers: dict[tuple[str, str | None], StackProvider] = {}

    def provider(self, descriptor: StackDescriptor) -> StackProvider:
        key = (descriptor.profile, descriptor.region)
        if key not in self._providers:
            self._providers[key] = self._provider_factory(descriptor.profile, descriptor.region)
        return self._providers[key]

    def deploy(
        self, descriptor: StackDescriptor, acknowledge_capabilities: bool = False
    ) -> DeployedStack:
        """
        Create or update a stack and block until it reaches a terminal status.

        Args:
            descriptor: The stack to deploy.
            acknowledge_capabilities: Must be True for stacks that create IAM
                resources; checked before any provider call.

        Returns:
            The stack's final status, outputs and the action taken.

        Raises:
            CapabilityNotAcknowledged: Elevated stack without acknowledgement.
            StackOperationFailed: Create/update failed or the stack is unusable.
            WaitTimeout: No terminal status within the polling bound.
        """
        if descriptor.requires_elevated_capability and not acknowledge_capabilities:
            raise CapabilityNotAcknowledged(descriptor.name)

        try:
            provider = self.provider(descriptor)
            return self._deploy(provider, descriptor, acknowledge_capabilities)
        except (ClientError, BotoCoreError) as e:
            raise sdk_failure(descriptor.name, e) from e

    def _deploy(
        self, provider: StackProvider, descriptor: StackDescriptor, ack: bool
    ) -> DeployedStack:
        state = provider.describe(descriptor.name)

        if state.status.in_progress:
            logger.warning(
                "%s is %s; waiting for the previous operation to finish",
                descriptor.name,
                state.status.value,
            )
            provider.wait_for_terminal(descriptor.name)
            state = provider.describe(descriptor.name)

        if not state.status.exists:
            return self._create(provider, descriptor, ack)

        if not state.status.usable:
            raise StackOperationFailed(
                descriptor.name,
                state.status.value,
                state.reason or "stack cannot be updated; run teardown before redeploying",
            )

        if not self._should_update(descriptor):
            logger.info("Skipping existing stack %s", descriptor.name)
            return DeployedStack(descriptor.name, state.status, state.outputs, StackAction.SKIPPED)

        return self._update(provider, descriptor, ack)

    def get_output(self, descriptor: StackDescriptor, key: str) -> str:
        """Read one output from a stack in a complete status."""
        try:
            state = self.provider(descriptor).describe(descriptor.name)
        except (ClientError, BotoCoreError) as e:
            raise sdk_failure(descriptor.name, e) from e

        if not state.status.exists:
            raise NotFoundError(f"Stack {descriptor.name} does not exist")
        if not state.status.usable:
            raise NotFoundError(
                f"Stack {descriptor.name} is {state.status.value}; outputs are not available"
            )
        if key not in state.outputs:
            raise NotFoundError(f"Stack {descriptor.name} has no output {key}")

        return state.outputs[key]

    def delete(
        self, descriptor: StackDescriptor, policy: WaitPolicy = WaitPolicy.STRICT
    ) -> StackTeardown:
        """
        Delete a stack and wait for the deletion to finish.

        Under WaitPolicy.BEST_EFFORT provider errors, failed deletions and
        timeouts are logged and reported in the returned outcome instead of
        raised.
        """
        try:
            provider = self.provider(descriptor)
            state = provider.describe(descriptor.name)
            if not state.status.exists:
                logger.info("Stack %s not found, nothing to delete", descriptor.name)
                return StackTeardown(descriptor.name, TeardownOutcome.NOT_FOUND, "not found")

            provider.delete(descriptor.name)
            status = provider.wait_for_terminal(descriptor.name)
            if not status.exists:
                return StackTeardown(descriptor.name, TeardownOutcome.DELETED)

            failure = self._failure(provider, descriptor.name, status)
        except WaitTimeout as e:
            if policy is WaitPolicy.STRICT:
                raise
            logger.warning("%s", e)
            return StackTeardown(descriptor.name, TeardownOutcome.TIMED_OUT, str(e))
        except (ClientError, BotoCoreError) as e:
            if policy is WaitPolicy.STRICT:
                raise
            logger.warning("Deleting %s failed: %s", descriptor.name, e)
            return StackTeardown(descriptor.name, TeardownOutcome.FAILED, str(e))

        if policy is WaitPolicy.STRICT:
            raise failure
        logger.warning("%s", failure)
        return StackTeardown(descriptor.name, TeardownOutcome.FAILED, failure.reason)

    def _should_update(self, descriptor: StackDescriptor) -> bool:
        if descriptor.update_policy is UpdatePolicy.ALWAYS_SKIP:
            return False
        if descriptor.update_policy is UpdatePolicy.PROMPT and self._confirm_update:
            return self._confirm_update(descriptor.name)
        return True

    def _create(
        self, provider: StackProvider, descriptor: StackDescriptor, ack: bool
    ) -> DeployedStack:
        template_body = self._template_loader(descriptor.template_ref)
        provider.create(descriptor.name, template_body, dict(descriptor.parameters), ack)

        status = provider.wait_for_terminal(descriptor.name)
        if status is not StackStatus.CREATE_COMPLETE:
            raise self._failure(provider, descriptor.name, status)

        state = provider.describe(descriptor.name)
        return DeployedStack(descriptor.name, state.status, state.outputs, StackAction.CREATED)

    def _update(
        self, provider: StackProvider, descriptor: StackDescriptor, ack: bool
    ) -> DeployedStack:
        template_body = self._template_loader(descriptor.template_ref)
        changed = provider.update(descriptor.name, template_body, dict(descriptor.parameters), ack)

        if changed:
            status = provider.wait_for_terminal(descriptor.name)
            if status is not StackStatus.UPDATE_COMPLETE:
                raise self._failure(provider, descriptor.name, status)

        state = provider.describe(descriptor.name)
        action = StackAction.UPDATED if changed else StackAction.UNCHANGED
        return DeployedStack(descriptor.name, state.status, state.outputs, action)

    @staticmethod
    def _failure(
        provider: StackProvider, stack_name: str, status: StackStatus
    ) -> StackOperationFailed:
        state = provider.describe(stack_name)
        details = [state.reason] if state.reason else []
        details.extend(provider.failure_events(stack_name))
        return StackOperationFailed(
            stack_name, status.value, "; ".join(details) or "no reason reported by CloudFormation"
        )
