"""Synthesis of the CDK stacks into CloudFormation template bodies."""

import json
import logging
from functools import lru_cache

import aws_cdk as cdk

from ..stacks.constants import CONSUMER_TEMPLATE, PRODUCER_TEMPLATE
from ..stacks.consumer_stack import ConsumerRoleStack
from ..stacks.producer_stack import ProducerRoleStack
from .errors import NotFoundError

logger = logging.getLogger(__name__)

STACK_CLASSES = {
    PRODUCER_TEMPLATE: ProducerRoleStack,
    CONSUMER_TEMPLATE: ConsumerRoleStack,
}


def build_stack(template_ref: str, app: cdk.App | None = None) -> cdk.Stack:
    """
    Instantiate the CDK stack behind a template reference.

    The stacks are deployed with plain CloudFormation calls rather than
    `cdk deploy`, so the synthesizer must not require a bootstrapped account.
    """
    stack_cls = STACK_CLASSES.get(template_ref)
    if stack_cls is None:
        raise NotFoundError(f"Unknown template reference: {template_ref}")

    app = app or cdk.App(analytics_reporting=False)
    return stack_cls(
        app,
        stack_cls.__name__,
        synthesizer=cdk.DefaultStackSynthesizer(generate_bootstrap_version_rule=False),
    )


@lru_cache(maxsize=None)
def synthesize_template(template_ref: str) -> str:
    """Return the JSON CloudFormation template body for a template reference."""
    stack = build_stack(template_ref)
    assembly = stack.node.root.synth()
    template = assembly.get_stack_by_name(stack.stack_name).template
    logger.debug("Synthesized %s (%d resources)", template_ref, len(template.get("Resources", {})))
    return json.dumps(template)
