"""CDK stacks for the two sides of the cross-account trust relationship."""

from .constants import (
    CONSUMER_TEMPLATE,
    OUTPUT_ASSUMABLE_ROLE_ARN,
    OUTPUT_ROLE_ARN,
    OUTPUT_ROLE_NAME,
    PARAM_ACCOUNT_B_ROLE_ARN,
    PARAM_EXTERNAL_ID,
    PARAM_MAX_SESSION_DURATION,
    PARAM_ROLE_NAME,
    PARAM_S3_BUCKET_NAME,
    PARAM_TRUSTED_ACCOUNT_ID,
    PRODUCER_TEMPLATE,
)

__all__ = [
    "PRODUCER_TEMPLATE",
    "CONSUMER_TEMPLATE",
    "PARAM_TRUSTED_ACCOUNT_ID",
    "PARAM_S3_BUCKET_NAME",
    "PARAM_ROLE_NAME",
    "PARAM_EXTERNAL_ID",
    "PARAM_MAX_SESSION_DURATION",
    "PARAM_ACCOUNT_B_ROLE_ARN",
    "OUTPUT_ROLE_ARN",
    "OUTPUT_ROLE_NAME",
    "OUTPUT_ASSUMABLE_ROLE_ARN",
]
