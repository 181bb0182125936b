"""
Deployment orchestration.

Runs the producer stack (Account B) and the consumer stack (Account A) in
strict order. The consumer's parameter set is only complete once the
producer's RoleArn output has been read, so the two stack operations are
never issued concurrently or out of order.
"""

import logging
from collections.abc import Callable
from pathlib import Path

from botocore.exceptions import BotoCoreError, ClientError

from ..stacks.constants import (
    CONSUMER_TEMPLATE,
    OUTPUT_ROLE_ARN,
    PARAM_ACCOUNT_B_ROLE_ARN,
    PARAM_EXTERNAL_ID,
    PARAM_MAX_SESSION_DURATION,
    PARAM_ROLE_NAME,
    PARAM_S3_BUCKET_NAME,
    PARAM_TRUSTED_ACCOUNT_ID,
    PRODUCER_TEMPLATE,
)
from .artifact import TEST_SCRIPT_NAME, TestArtifactGenerator
from .config import Session
from .errors import CrossAccountError
from .identity import AccountIdentityVerifier
from .models import (
    ArtifactBindings,
    DeploymentResult,
    OutputBinding,
    ParameterEntry,
    StackDescriptor,
)
from .propagation import bind
from .stacks import StackDeploymentEngine

logger = logging.getLogger(__name__)

STAGE_IDENTITY = "resolve accounts"
STAGE_PRODUCER = "deploy producer stack"
STAGE_PROPAGATE = "propagate role ARN"
STAGE_CONSUMER = "deploy consumer stack"
STAGE_ARTIFACT = "generate test script"


def producer_descriptor(session: Session) -> StackDescriptor:
    """Account B stack: the assumable role and its bucket permissions."""
    return StackDescriptor(
        name=session.producer_stack_name,
        profile=session.profile_producer,
        template_ref=PRODUCER_TEMPLATE,
        parameters={
            PARAM_TRUSTED_ACCOUNT_ID: session.account_id_consumer or "",
            PARAM_S3_BUCKET_NAME: session.bucket_name,
            PARAM_ROLE_NAME: session.producer_role_name,
            PARAM_EXTERNAL_ID: session.external_id,
            PARAM_MAX_SESSION_DURATION: str(session.max_session_duration),
        },
        requires_elevated_capability=True,
        update_policy=session.on_existing,
        region=session.region,
    )


def consumer_descriptor(
    session: Session, role_arn_parameter: ParameterEntry | None = None
) -> StackDescriptor:
    """Account A stack; ``role_arn_parameter`` is the bound producer output."""
    parameters = {PARAM_ROLE_NAME: session.consumer_role_name}
    if role_arn_parameter is not None:
        parameters[role_arn_parameter.key] = role_arn_parameter.value
    return StackDescriptor(
        name=session.consumer_stack_name,
        profile=session.profile_consumer,
        template_ref=CONSUMER_TEMPLATE,
        parameters=parameters,
        requires_elevated_capability=True,
        update_policy=session.on_existing,
        region=session.region,
    )


class DeploymentOrchestrator:
    """Sequences identity checks, both stack deployments and the test script."""

    def __init__(
        self,
        engine: StackDeploymentEngine,
        verifier: AccountIdentityVerifier | None = None,
        generator: TestArtifactGenerator | None = None,
        artifact_dir: Path | None = None,
        on_stage: Callable[[str], None] | None = None,
    ):
        self.engine = engine
        self.verifier = verifier or AccountIdentityVerifier()
        self.generator = generator
        self.artifact_dir = artifact_dir or Path.cwd()
        self._on_stage = on_stage or (lambda stage: None)

    def resolve_accounts(self, session: Session) -> Session:
        """Resolve both profiles, check they differ, and bind the ids to the session."""
        consumer_id = self.verifier.resolve(session.profile_consumer)
        producer_id = self.verifier.resolve(session.profile_producer)
        self.verifier.assert_distinct(consumer_id, producer_id)
        return session.with_accounts(consumer_id, producer_id)

    def run(self, session: Session) -> DeploymentResult:
        """
        Deploy producer then consumer and generate the verification script.

        Any error raised after validation surfaces as a CrossAccountError
        carrying the failing stage and the stacks that had already completed;
        boto3 errors are wrapped.
        """
        session.validate()

        completed: list[str] = []
        stage = STAGE_IDENTITY
        try:
            if session.account_id_consumer is None or session.account_id_producer is None:
                self._on_stage(stage)
                session = self.resolve_accounts(session)
            else:
                self.verifier.assert_distinct(
                    session.account_id_consumer, session.account_id_producer
                )

            stage = STAGE_PRODUCER
            self._on_stage(stage)
            producer = producer_descriptor(session)
            producer_stack = self.engine.deploy(
                producer, acknowledge_capabilities=session.capabilities_acknowledged
            )
            completed.append(producer_stack.name)
            logger.info("%s %s", producer_stack.name, producer_stack.action.value)

            stage = STAGE_PROPAGATE
            self._on_stage(stage)
            role_arn = self.engine.get_output(producer, OUTPUT_ROLE_ARN)
            parameter = bind(
                OutputBinding(OUTPUT_ROLE_ARN, role_arn, producer_stack.name),
                PARAM_ACCOUNT_B_ROLE_ARN,
            )

            stage = STAGE_CONSUMER
            self._on_stage(stage)
            consumer_stack = self.engine.deploy(
                consumer_descriptor(session, parameter),
                acknowledge_capabilities=session.capabilities_acknowledged,
            )
            completed.append(consumer_stack.name)
            logger.info("%s %s", consumer_stack.name, consumer_stack.action.value)

            artifact_path = None
            if self.generator is not None:
                stage = STAGE_ARTIFACT
                self._on_stage(stage)
                artifact_path = self.generator.generate(
                    artifact_bindings(session, parameter.value),
                    self.artifact_dir / TEST_SCRIPT_NAME,
                )
        except CrossAccountError as e:
            e.stage = e.stage or stage
            e.completed_stacks = list(completed)
            raise
        except (ClientError, BotoCoreError) as e:
            error = CrossAccountError(f"AWS error: {e}", stage=stage)
            error.completed_stacks = list(completed)
            raise error from e

        return DeploymentResult(
            session=session,
            producer=producer_stack,
            consumer=consumer_stack,
            role_arn=parameter.value,
            artifact_path=artifact_path,
        )


def artifact_bindings(session: Session, role_arn: str) -> ArtifactBindings:
    return ArtifactBindings(
        role_arn=role_arn,
        external_id=session.external_id,
        bucket_name=session.bucket_name,
        profile=session.profile_consumer,
    )
