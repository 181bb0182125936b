"""Exception hierarchy for deployment and teardown."""


class CrossAccountError(Exception):
    """Base error for the cross-account tooling.

    The orchestrator fills in ``stage`` (the step that failed) and
    ``completed_stacks`` (stacks that reached a complete status before the
    failure) so the CLI can tell the operator where things stopped.
    """

    def __init__(self, message: str, *, stage: str | None = None):
        super().__init__(message)
        self.stage = stage
        self.completed_stacks: list[str] = []


class ValidationError(CrossAccountError):
    """Missing or malformed session field."""

    pass


class IdentityResolutionError(CrossAccountError):
    """A profile could not be resolved to an account id."""

    def __init__(self, profile: str, detail: str):
        super().__init__(f"Cannot access account with profile '{profile}': {detail}")
        self.profile = profile
        self.detail = detail

    @property
    def hint(self) -> str:
        return f"aws sso login --profile {self.profile}"


class SameAccountError(CrossAccountError):
    """Both profiles point to the same AWS account."""

    def __init__(self, account_id: str):
        super().__init__(
            f"Both profiles point to the same AWS account ({account_id}). "
            "Cross-account access requires two different accounts."
        )
        self.account_id = account_id


class CapabilityNotAcknowledged(CrossAccountError):
    """A stack that creates IAM resources was deployed without acknowledgement."""

    def __init__(self, stack_name: str):
        super().__init__(
            f"Stack {stack_name} creates IAM resources; "
            "CAPABILITY_NAMED_IAM must be acknowledged before deploying it"
        )
        self.stack_name = stack_name


class StackOperationFailed(CrossAccountError):
    """The provider reported a failed create/update, or the stack is unusable."""

    def __init__(self, stack_name: str, status: str, reason: str):
        super().__init__(f"Stack {stack_name} is {status}: {reason}")
        self.stack_name = stack_name
        self.status = status
        self.reason = reason


class WaitTimeout(CrossAccountError):
    """A stack did not reach a terminal status within the polling bound."""

    def __init__(self, stack_name: str, last_status: str, timeout: float):
        super().__init__(
            f"Timed out after {timeout:.0f}s waiting for {stack_name} "
            f"(last status: {last_status})"
        )
        self.stack_name = stack_name
        self.last_status = last_status
        self.timeout = timeout


class NotFoundError(CrossAccountError):
    """An expected stack or stack output is missing."""

    pass


class EmptyOutputError(CrossAccountError):
    """A completed stack exposes an output with no usable value."""

    pass


class UnresolvedPlaceholderError(CrossAccountError):
    """The artifact template references names the binding set does not provide."""

    def __init__(self, names: list[str]):
        super().__init__(f"Unresolved template placeholders: {', '.join(sorted(names))}")
        self.names = sorted(names)
