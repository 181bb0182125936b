"""Tests for the stack deployment engine."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from cross_account.lib.config import UpdatePolicy
from cross_account.lib.errors import (
    CapabilityNotAcknowledged,
    NotFoundError,
    StackOperationFailed,
    WaitTimeout,
)
from cross_account.lib.models import (
    StackAction,
    StackDescriptor,
    StackState,
    StackStatus,
    TeardownOutcome,
    WaitPolicy,
)
from cross_account.lib.stacks import StackDeploymentEngine

PARAMETERS = {
    "TrustedAccountId": "111111111111",
    "S3BucketName": "my-bucket",
    "RoleName": "X",
    "ExternalId": "E",
    "MaxSessionDuration": "3600",
}


def producer(update_policy=UpdatePolicy.ALWAYS_UPDATE, **parameters):
    return StackDescriptor(
        name="X-AccountB",
        profile="Production",
        template_ref="producer-role",
        parameters={**PARAMETERS, **parameters},
        update_policy=update_policy,
    )


class TestDeploy:
    """Tests for StackDeploymentEngine.deploy."""

    def test_creates_missing_stack(self, engine, cloud):
        result = engine.deploy(producer(), acknowledge_capabilities=True)

        assert result.action is StackAction.CREATED
        assert result.status is StackStatus.CREATE_COMPLETE
        assert result.outputs["RoleArn"] == "arn:aws:iam::222222222222:role/X"
        [create] = cloud.operations("create")
        assert create[2] == "X-AccountB"
        assert create[3] == PARAMETERS
        assert create[4] is True

    def test_unacknowledged_capability_makes_no_calls(self, engine, cloud):
        """Test that the capability gate runs before any provider call."""
        with pytest.raises(CapabilityNotAcknowledged, match="X-AccountB"):
            engine.deploy(producer(), acknowledge_capabilities=False)

        assert cloud.calls == []

    def test_non_elevated_stack_needs_no_acknowledgement(self, engine, cloud):
        descriptor = StackDescriptor(
            name="X-AccountB",
            profile="Production",
            template_ref="producer-role",
            parameters=PARAMETERS,
            requires_elevated_capability=False,
        )

        engine.deploy(descriptor)

        assert cloud.operations("create")[0][4] is False

    def test_second_deploy_is_unchanged(self, engine, cloud):
        """Test that redeploying identical parameters issues a no-op update."""
        engine.deploy(producer(), acknowledge_capabilities=True)
        result = engine.deploy(producer(), acknowledge_capabilities=True)

        assert result.action is StackAction.UNCHANGED
        assert result.status is StackStatus.CREATE_COMPLETE
        assert len(cloud.operations("create")) == 1

    def test_changed_parameters_update_stack(self, engine, cloud):
        engine.deploy(producer(), acknowledge_capabilities=True)
        result = engine.deploy(producer(ExternalId="F"), acknowledge_capabilities=True)

        assert result.action is StackAction.UPDATED
        assert result.status is StackStatus.UPDATE_COMPLETE

    def test_always_skip_leaves_stack_alone(self, engine, cloud):
        cloud.providers["Production"].seed(
            "X-AccountB", StackStatus.CREATE_COMPLETE, {"RoleArn": "arn:aws:iam::222222222222:role/X"}
        )

        result = engine.deploy(
            producer(update_policy=UpdatePolicy.ALWAYS_SKIP), acknowledge_capabilities=True
        )

        assert result.action is StackAction.SKIPPED
        assert result.outputs["RoleArn"] == "arn:aws:iam::222222222222:role/X"
        assert cloud.operations("create", "update") == []

    @pytest.mark.parametrize("answer,expected", [(True, StackAction.UPDATED), (False, StackAction.SKIPPED)])
    def test_prompt_policy_asks_before_updating(self, cloud, template_loader, answer, expected):
        confirm = MagicMock(return_value=answer)
        engine = StackDeploymentEngine(
            provider_factory=cloud.factory, template_loader=template_loader, confirm_update=confirm
        )
        cloud.providers["Production"].seed("X-AccountB", StackStatus.CREATE_COMPLETE)

        result = engine.deploy(
            producer(update_policy=UpdatePolicy.PROMPT), acknowledge_capabilities=True
        )

        confirm.assert_called_once_with("X-AccountB")
        assert result.action is expected

    def test_failed_create_carries_reason(self, engine, cloud):
        provider = cloud.providers["Production"]
        provider.create_status["X-AccountB"] = StackStatus.ROLLBACK_COMPLETE
        provider.events["X-AccountB"] = ["CrossAccountRole: Role X already exists"]

        with pytest.raises(StackOperationFailed) as exc_info:
            engine.deploy(producer(), acknowledge_capabilities=True)

        error = exc_info.value
        assert error.status == "ROLLBACK_COMPLETE"
        assert "CrossAccountRole: Role X already exists" in error.reason

    def test_rolled_back_stack_is_not_updated(self, engine, cloud):
        """Test that a stack stuck in ROLLBACK_COMPLETE must be torn down first."""
        cloud.providers["Production"].seed("X-AccountB", StackStatus.ROLLBACK_COMPLETE)

        with pytest.raises(StackOperationFailed, match="run teardown"):
            engine.deploy(producer(), acknowledge_capabilities=True)

        assert cloud.operations("create", "update") == []

    def test_in_progress_stack_is_awaited_first(self, engine, cloud):
        """Test that a previous interrupted create is waited on, not duplicated."""
        provider = cloud.providers["Production"]
        provider.seed("X-AccountB", StackStatus.CREATE_IN_PROGRESS, parameters=PARAMETERS)

        result = engine.deploy(producer(), acknowledge_capabilities=True)

        assert cloud.calls[0] == ("wait", "Production", "X-AccountB")
        assert cloud.operations("create") == []
        assert result.action is StackAction.UNCHANGED

    def test_client_error_becomes_operation_failure(self, cloud, template_loader):
        provider = MagicMock()
        provider.describe.side_effect = ClientError(
            {"Error": {"Code": "InsufficientCapabilitiesException", "Message": "Requires capabilities"}},
            "CreateStack",
        )
        engine = StackDeploymentEngine(
            provider_factory=lambda profile, region: provider, template_loader=template_loader
        )

        with pytest.raises(StackOperationFailed, match="InsufficientCapabilitiesException"):
            engine.deploy(producer(), acknowledge_capabilities=True)

    def test_provider_cached_per_profile(self, template_loader):
        factory = MagicMock()
        engine = StackDeploymentEngine(provider_factory=factory, template_loader=template_loader)

        engine.provider(producer())
        engine.provider(producer())

        factory.assert_called_once_with("Production", None)


class TestGetOutput:
    """Tests for StackDeploymentEngine.get_output."""

    def test_returns_output_value(self, engine):
        engine.deploy(producer(), acknowledge_capabilities=True)

        assert engine.get_output(producer(), "RoleArn") == "arn:aws:iam::222222222222:role/X"

    def test_missing_stack_raises(self, engine):
        with pytest.raises(NotFoundError, match="does not exist"):
            engine.get_output(producer(), "RoleArn")

    def test_missing_key_raises(self, engine):
        engine.deploy(producer(), acknowledge_capabilities=True)

        with pytest.raises(NotFoundError, match="no output Missing"):
            engine.get_output(producer(), "Missing")

    def test_failed_stack_outputs_not_trusted(self, engine, cloud):
        cloud.providers["Production"].seed(
            "X-AccountB", StackStatus.UPDATE_ROLLBACK_FAILED, {"RoleArn": "arn"}
        )

        with pytest.raises(NotFoundError, match="UPDATE_ROLLBACK_FAILED"):
            engine.get_output(producer(), "RoleArn")


class TestDelete:
    """Tests for StackDeploymentEngine.delete."""

    def test_deletes_existing_stack(self, engine, cloud):
        cloud.providers["Production"].seed("X-AccountB", StackStatus.CREATE_COMPLETE)

        result = engine.delete(producer())

        assert result.outcome is TeardownOutcome.DELETED
        assert cloud.operations("delete") == [("delete", "Production", "X-AccountB")]

    def test_missing_stack_not_deleted(self, engine, cloud):
        result = engine.delete(producer())

        assert result.outcome is TeardownOutcome.NOT_FOUND
        assert cloud.operations("delete") == []

    def test_timeout_strict_raises(self, engine, cloud):
        provider = cloud.providers["Production"]
        provider.seed("X-AccountB", StackStatus.CREATE_COMPLETE)
        provider.timeouts.add("X-AccountB")

        with pytest.raises(WaitTimeout):
            engine.delete(producer(), WaitPolicy.STRICT)

    def test_timeout_best_effort_reported(self, engine, cloud):
        provider = cloud.providers["Production"]
        provider.seed("X-AccountB", StackStatus.CREATE_COMPLETE)
        provider.timeouts.add("X-AccountB")

        result = engine.delete(producer(), WaitPolicy.BEST_EFFORT)

        assert result.outcome is TeardownOutcome.TIMED_OUT

    def test_delete_failed_best_effort_reported(self, engine, cloud):
        provider = cloud.providers["Production"]
        provider.seed("X-AccountB", StackStatus.CREATE_COMPLETE)
        provider.delete_status["X-AccountB"] = StackStatus.DELETE_FAILED

        result = engine.delete(producer(), WaitPolicy.BEST_EFFORT)

        assert result.outcome is TeardownOutcome.FAILED
        assert "Role is in use" in result.detail

    def test_delete_failed_strict_raises(self, engine, cloud):
        provider = cloud.providers["Production"]
        provider.seed("X-AccountB", StackStatus.CREATE_COMPLETE)
        provider.delete_status["X-AccountB"] = StackStatus.DELETE_FAILED

        with pytest.raises(StackOperationFailed, match="DELETE_FAILED"):
            engine.delete(producer(), WaitPolicy.STRICT)

    def test_access_denied_best_effort_reported(self, template_loader):
        provider = MagicMock()
        provider.describe.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "not authorized"}}, "DescribeStacks"
        )
        engine = StackDeploymentEngine(
            provider_factory=lambda profile, region: provider, template_loader=template_loader
        )

        result = engine.delete(producer(), WaitPolicy.BEST_EFFORT)

        assert result.outcome is TeardownOutcome.FAILED
        assert "AccessDenied" in result.detail


class TestSdkErrors:
    """Tests for boto3 errors surfacing through the engine."""

    @pytest.fixture
    def provider(self):
        return MagicMock()

    @pytest.fixture
    def sdk_engine(self, provider, template_loader):
        return StackDeploymentEngine(
            provider_factory=lambda profile, region: provider, template_loader=template_loader
        )

    def test_connection_error_during_deploy(self, sdk_engine, provider):
        provider.describe.side_effect = EndpointConnectionError(endpoint_url="https://cloudformation")

        with pytest.raises(StackOperationFailed) as exc_info:
            sdk_engine.deploy(producer(), acknowledge_capabilities=True)

        assert exc_info.value.status == "UNREACHABLE"
        assert "cloudformation" in exc_info.value.reason

    @pytest.mark.parametrize(
        "error",
        [
            ClientError({"Error": {"Code": "ExpiredToken", "Message": "expired"}}, "DescribeStacks"),
            EndpointConnectionError(endpoint_url="https://cloudformation"),
        ],
    )
    def test_get_output_translates_sdk_errors(self, sdk_engine, provider, error):
        provider.describe.side_effect = error

        with pytest.raises(StackOperationFailed, match="X-AccountB"):
            sdk_engine.get_output(producer(), "RoleArn")

    def test_describe_failure_after_delete_failed_is_best_effort(self, sdk_engine, provider):
        """Test that reading the failure reason cannot abort a best-effort teardown."""
        provider.describe.side_effect = [
            StackState(StackStatus.CREATE_COMPLETE),
            ClientError({"Error": {"Code": "Throttling", "Message": "Rate exceeded"}}, "DescribeStacks"),
        ]
        provider.wait_for_terminal.return_value = StackStatus.DELETE_FAILED

        result = sdk_engine.delete(producer(), WaitPolicy.BEST_EFFORT)

        assert result.outcome is TeardownOutcome.FAILED
        assert "Throttling" in result.detail
