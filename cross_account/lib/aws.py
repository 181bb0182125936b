"""AWS client helpers and the CloudFormation provider used by the engines."""

import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from tenacity import (
    Retrying,
    retry_if_exception,
    retry_if_result,
    stop_after_delay,
    wait_fixed,
)

from .errors import WaitTimeout
from .models import StackState, StackStatus

logger = logging.getLogger(__name__)

IAM_CAPABILITIES = ["CAPABILITY_NAMED_IAM"]

# Error codes worth polling through instead of failing the wait
THROTTLING_ERROR_CODES = {
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "ServiceUnavailable",
}

FAILED_EVENT_STATUSES = {"CREATE_FAILED", "UPDATE_FAILED", "DELETE_FAILED"}


def get_session(profile: str | None = None, region: str | None = None) -> boto3.Session:
    """Create boto3 session with optional profile."""
    if profile:
        return boto3.Session(profile_name=profile, region_name=region)
    return boto3.Session(region_name=region)


def get_account_id(session: boto3.Session) -> str:
    """Get the AWS account ID."""
    sts = session.client("sts")
    return sts.get_caller_identity()["Account"]


def who_am_i(profile: str) -> str:
    """Resolve the account behind a named profile."""
    return get_account_id(get_session(profile))


def bucket_accessible(session: boto3.Session, bucket_name: str) -> bool:
    """Check whether the bucket exists and the session can reach it."""
    s3 = session.client("s3")
    try:
        s3.head_bucket(Bucket=bucket_name)
        return True
    except (ClientError, BotoCoreError) as e:
        logger.info("Bucket %s not accessible: %s", bucket_name, e)
        return False


def is_throttling_error(exception: BaseException) -> bool:
    """Check if a describe call failed only because we are polling too hard."""
    if isinstance(exception, ClientError):
        error_code = exception.response.get("Error", {}).get("Code", "")
        return error_code in THROTTLING_ERROR_CODES
    return False


def is_missing_stack_error(exception: ClientError) -> bool:
    return "does not exist" in str(exception)


def is_no_updates_error(exception: ClientError) -> bool:
    return "No updates are to be performed" in str(exception)


def to_parameter_list(parameters: dict[str, str]) -> list[dict[str, str]]:
    return [{"ParameterKey": k, "ParameterValue": v} for k, v in parameters.items()]


class CloudFormationProvider:
    """CloudFormation operations for one profile/region, via boto3."""

    def __init__(
        self,
        session: boto3.Session,
        region: str | None = None,
        poll_interval: float = 5.0,
        timeout: float = 1800.0,
    ):
        self.cloudformation = session.client("cloudformation", region_name=region)
        self.poll_interval = poll_interval
        self.timeout = timeout

    @classmethod
    def for_profile(
        cls,
        profile: str,
        region: str | None = None,
        poll_interval: float = 5.0,
        timeout: float = 1800.0,
    ) -> "CloudFormationProvider":
        return cls(get_session(profile, region), region, poll_interval, timeout)

    def describe(self, stack_name: str) -> StackState:
        """Current status and outputs; ABSENT if the stack does not exist."""
        try:
            response = self.cloudformation.describe_stacks(StackName=stack_name)
        except ClientError as e:
            if is_missing_stack_error(e):
                return StackState(StackStatus.ABSENT)
            raise

        stacks = response.get("Stacks", [])
        if not stacks:
            return StackState(StackStatus.ABSENT)

        stack = stacks[0]
        outputs = {
            output["OutputKey"]: output.get("OutputValue", "")
            for output in stack.get("Outputs", [])
        }
        return StackState(
            status=StackStatus.parse(stack["StackStatus"]),
            outputs=outputs,
            reason=stack.get("StackStatusReason", ""),
        )

    def create(
        self,
        stack_name: str,
        template_body: str,
        parameters: dict[str, str],
        capability_ack: bool,
    ) -> str:
        kwargs = {
            "StackName": stack_name,
            "TemplateBody": template_body,
            "Parameters": to_parameter_list(parameters),
        }
        if capability_ack:
            kwargs["Capabilities"] = IAM_CAPABILITIES

        response = self.cloudformation.create_stack(**kwargs)
        logger.info("Create issued for %s (%s)", stack_name, response.get("StackId"))
        return response.get("StackId", stack_name)

    def update(
        self,
        stack_name: str,
        template_body: str,
        parameters: dict[str, str],
        capability_ack: bool,
    ) -> bool:
        """Issue an update; returns False when there is nothing to change."""
        kwargs = {
            "StackName": stack_name,
            "TemplateBody": template_body,
            "Parameters": to_parameter_list(parameters),
        }
        if capability_ack:
            kwargs["Capabilities"] = IAM_CAPABILITIES

        try:
            self.cloudformation.update_stack(**kwargs)
        except ClientError as e:
            if is_no_updates_error(e):
                logger.info("No updates needed for %s", stack_name)
                return False
            raise

        logger.info("Update issued for %s", stack_name)
        return True

    def delete(self, stack_name: str) -> None:
        self.cloudformation.delete_stack(StackName=stack_name)
        logger.info("Delete issued for %s", stack_name)

    def wait_for_terminal(self, stack_name: str) -> StackStatus:
        """Poll until the stack leaves every *_IN_PROGRESS status.

        Raises WaitTimeout if that does not happen within ``self.timeout``,
        including when the describe calls are still throttled at the deadline.
        """

        def last_state(retry_state):
            outcome = retry_state.outcome
            if outcome.failed:
                raise WaitTimeout(stack_name, "THROTTLED", self.timeout) from outcome.exception()
            return outcome.result()

        retrying = Retrying(
            retry=(
                retry_if_result(lambda state: state.status.in_progress)
                | retry_if_exception(is_throttling_error)
            ),
            stop=stop_after_delay(self.timeout),
            wait=wait_fixed(self.poll_interval),
            retry_error_callback=last_state,
        )
        state = retrying(self.describe, stack_name)

        if state.status.in_progress:
            raise WaitTimeout(stack_name, state.status.value, self.timeout)

        logger.debug("%s reached %s", stack_name, state.status.value)
        return state.status

    def failure_events(self, stack_name: str, limit: int = 5) -> list[str]:
        """Most recent failed resource events, formatted for display."""
        try:
            response = self.cloudformation.describe_stack_events(StackName=stack_name)
        except ClientError as e:
            logger.warning("Could not read events for %s: %s", stack_name, e)
            return []

        failures = []
        for event in response.get("StackEvents", []):
            if event.get("ResourceStatus") not in FAILED_EVENT_STATUSES:
                continue
            reason = event.get("ResourceStatusReason", "No reason provided")
            if "Resource creation cancelled" in reason:
                continue
            failures.append(f"{event.get('LogicalResourceId')}: {reason}")
            if len(failures) >= limit:
                break
        return failures
