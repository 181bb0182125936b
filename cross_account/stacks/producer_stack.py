"""
CDK stack for the producer (Account B) side of the trust relationship.

Creates an IAM role that principals in the trusted consumer account may
assume when they present the shared external ID. The role grants read and
write access to a single S3 bucket. Every value is a CloudFormation
parameter so one synthesized template serves any session.

Parameters:
    TrustedAccountId, S3BucketName, RoleName, ExternalId, MaxSessionDuration

Outputs:
    RoleArn, CrossAccountRoleName
"""

from aws_cdk import Aws, CfnOutput, CfnParameter, Stack
from aws_cdk import aws_iam as iam
from constructs import Construct

from .constants import (
    OUTPUT_ROLE_ARN,
    OUTPUT_ROLE_NAME,
    PARAM_EXTERNAL_ID,
    PARAM_MAX_SESSION_DURATION,
    PARAM_ROLE_NAME,
    PARAM_S3_BUCKET_NAME,
    PARAM_TRUSTED_ACCOUNT_ID,
    S3_ACCESS_POLICY_NAME,
)


class ProducerRoleStack(Stack):
    """
    Stack holding the assumable role in the producer account.

    Attributes:
        role: The L1 IAM role resource.
    """

    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        trusted_account_id = CfnParameter(
            self,
            PARAM_TRUSTED_ACCOUNT_ID,
            type="String",
            allowed_pattern=r"^\d{12}$",
            description="Account ID allowed to assume the role (Account A)",
        )
        bucket_name = CfnParameter(
            self,
            PARAM_S3_BUCKET_NAME,
            type="String",
            min_length=3,
            max_length=63,
            description="S3 bucket the role may access",
        )
        role_name = CfnParameter(
            self,
            PARAM_ROLE_NAME,
            type="String",
            allowed_pattern=r"^[\w+=,.@-]{1,64}$",
            description="Name of the cross-account role",
        )
        external_id = CfnParameter(
            self,
            PARAM_EXTERNAL_ID,
            type="String",
            min_length=1,
            no_echo=True,
            description="External ID required in sts:AssumeRole",
        )
        max_session_duration = CfnParameter(
            self,
            PARAM_MAX_SESSION_DURATION,
            type="Number",
            default=3600,
            min_value=3600,
            max_value=43200,
            description="Maximum session duration in seconds",
        )

        bucket_arn = f"arn:{Aws.PARTITION}:s3:::{bucket_name.value_as_string}"

        # L1 role: MaxSessionDuration comes from a parameter token, which the
        # L2 Duration type cannot carry.
        self.role = iam.CfnRole(
            self,
            "CrossAccountRole",
            role_name=role_name.value_as_string,
            max_session_duration=max_session_duration.value_as_number,
            assume_role_policy_document={
                "Version": "2012-10-17",
                "Statement": [
                    {
                        "Effect": "Allow",
                        "Principal": {
                            "AWS": f"arn:{Aws.PARTITION}:iam::{trusted_account_id.value_as_string}:root"
                        },
                        "Action": "sts:AssumeRole",
                        "Condition": {
                            "StringEquals": {"sts:ExternalId": external_id.value_as_string}
                        },
                    }
                ],
            },
            policies=[
                iam.CfnRole.PolicyProperty(
                    policy_name=S3_ACCESS_POLICY_NAME,
                    policy_document={
                        "Version": "2012-10-17",
                        "Statement": [
                            {
                                "Sid": "ListBucket",
                                "Effect": "Allow",
                                "Action": ["s3:ListBucket", "s3:GetBucketLocation"],
                                "Resource": bucket_arn,
                            },
                            {
                                "Sid": "ObjectAccess",
                                "Effect": "Allow",
                                "Action": ["s3:GetObject", "s3:PutObject", "s3:DeleteObject"],
                                "Resource": f"{bucket_arn}/*",
                            },
                        ],
                    },
                )
            ],
        )

        CfnOutput(
            self,
            OUTPUT_ROLE_ARN,
            value=self.role.attr_arn,
            description="ARN of the role Account A assumes",
        )

        CfnOutput(
            self,
            OUTPUT_ROLE_NAME,
            value=self.role.ref,
            description="Name of the cross-account role",
        )
