"""Pytest fixtures for engine, orchestrator and CDK tests."""

import json

import pytest

from cross_account.lib.config import Session, TeardownSession, UpdatePolicy
from cross_account.lib.errors import WaitTimeout
from cross_account.lib.identity import AccountIdentityVerifier
from cross_account.lib.models import StackState, StackStatus
from cross_account.lib.stacks import StackDeploymentEngine

ACCOUNTS = {"Development": "111111111111", "Production": "222222222222"}


class FakeStackProvider:
    """In-memory CloudFormation for one account.

    Mutating calls are appended to the shared ``calls`` log as
    ``(operation, profile, stack_name, ...)`` tuples so tests can assert on
    ordering across both accounts.
    """

    def __init__(self, profile, account_id, calls):
        self.profile = profile
        self.account_id = account_id
        self.calls = calls
        self.stacks: dict[str, StackState] = {}
        self.parameters: dict[str, dict[str, str]] = {}
        self.create_status: dict[str, StackStatus] = {}
        self.delete_status: dict[str, StackStatus] = {}
        self.settle_status: dict[str, StackStatus] = {}
        self.timeouts: set[str] = set()
        self.events: dict[str, list[str]] = {}

    def seed(self, name, status, outputs=None, reason="", parameters=None):
        self.stacks[name] = StackState(status, outputs or {}, reason)
        self.parameters[name] = dict(parameters or {})

    def describe(self, stack_name):
        return self.stacks.get(stack_name, StackState(StackStatus.ABSENT))

    def create(self, stack_name, template_body, parameters, capability_ack):
        self.calls.append(("create", self.profile, stack_name, dict(parameters), capability_ack))
        status = self.create_status.get(stack_name, StackStatus.CREATE_COMPLETE)
        outputs = self._outputs(parameters) if status is StackStatus.CREATE_COMPLETE else {}
        reason = "" if status is StackStatus.CREATE_COMPLETE else "The following resource(s) failed"
        self.seed(stack_name, status, outputs, reason, parameters)
        return f"arn:aws:cloudformation:us-east-1:{self.account_id}:stack/{stack_name}/1"

    def update(self, stack_name, template_body, parameters, capability_ack):
        self.calls.append(("update", self.profile, stack_name, dict(parameters), capability_ack))
        if self.parameters.get(stack_name) == dict(parameters):
            return False
        self.seed(stack_name, StackStatus.UPDATE_COMPLETE, self._outputs(parameters), "", parameters)
        return True

    def delete(self, stack_name):
        self.calls.append(("delete", self.profile, stack_name))
        status = self.delete_status.get(stack_name, StackStatus.ABSENT)
        if status is StackStatus.ABSENT:
            self.stacks.pop(stack_name, None)
        else:
            self.seed(stack_name, status, reason="Role is in use")

    def wait_for_terminal(self, stack_name):
        self.calls.append(("wait", self.profile, stack_name))
        if stack_name in self.timeouts:
            raise WaitTimeout(stack_name, "DELETE_IN_PROGRESS", 0)
        state = self.describe(stack_name)
        if state.status.in_progress:
            settled = self.settle_status.get(stack_name, StackStatus.CREATE_COMPLETE)
            self.stacks[stack_name] = StackState(settled, state.outputs, state.reason)
        return self.describe(stack_name).status

    def failure_events(self, stack_name):
        return self.events.get(stack_name, [])

    def _outputs(self, parameters):
        if "AccountBRoleArn" in parameters:
            return {
                "RoleArn": f"arn:aws:iam::{self.account_id}:role/{parameters['RoleName']}",
                "AssumableRoleArn": parameters["AccountBRoleArn"],
            }
        return {
            "RoleArn": f"arn:aws:iam::{self.account_id}:role/{parameters['RoleName']}",
            "CrossAccountRoleName": parameters["RoleName"],
        }


class FakeCloud:
    """One FakeStackProvider per profile, sharing a single call log."""

    def __init__(self, accounts=ACCOUNTS):
        self.calls = []
        self.providers = {
            profile: FakeStackProvider(profile, account_id, self.calls)
            for profile, account_id in accounts.items()
        }

    def factory(self, profile, region=None):
        return self.providers[profile]

    def operations(self, *kinds):
        return [call for call in self.calls if call[0] in kinds]


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch):
    """Keep boto3 away from real credentials in every test."""
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.delenv("AWS_PROFILE", raising=False)


@pytest.fixture
def cloud():
    return FakeCloud()


@pytest.fixture
def template_loader():
    """Template loader that never touches CDK."""
    return lambda ref: json.dumps({"Description": ref})


@pytest.fixture
def engine(cloud, template_loader):
    return StackDeploymentEngine(provider_factory=cloud.factory, template_loader=template_loader)


@pytest.fixture
def verifier():
    return AccountIdentityVerifier(who_am_i=lambda profile: ACCOUNTS[profile])


@pytest.fixture
def make_session():
    """Build a Session for the Development/Production account pair."""

    def _make(**overrides):
        values = dict(
            profile_consumer="Development",
            profile_producer="Production",
            bucket_name="my-bucket",
            role_name_prefix="X",
            external_id="E",
            max_session_duration=3600,
            stack_name_prefix="X",
            on_existing=UpdatePolicy.ALWAYS_UPDATE,
            capabilities_acknowledged=True,
        )
        values.update(overrides)
        return Session(**values)

    return _make


@pytest.fixture
def make_teardown_session(tmp_path):
    def _make(**overrides):
        values = dict(
            profile_consumer="Development",
            profile_producer="Production",
            stack_name_prefix="X",
            confirm_token="yes",
            artifact_dir=tmp_path,
        )
        values.update(overrides)
        return TeardownSession(**values)

    return _make
