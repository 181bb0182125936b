"""Library modules for the deploy and teardown commands."""

from .artifact import TestArtifactGenerator
from .config import Session, TeardownSession, UpdatePolicy
from .identity import AccountIdentityVerifier
from .models import DeploymentResult, StackDescriptor, StackStatus, TeardownResult, WaitPolicy
from .orchestrator import DeploymentOrchestrator
from .stacks import StackDeploymentEngine
from .teardown import TeardownEngine

__all__ = [
    "AccountIdentityVerifier",
    "DeploymentOrchestrator",
    "DeploymentResult",
    "Session",
    "StackDeploymentEngine",
    "StackDescriptor",
    "StackStatus",
    "TeardownEngine",
    "TeardownResult",
    "TeardownSession",
    "TestArtifactGenerator",
    "UpdatePolicy",
    "WaitPolicy",
]
