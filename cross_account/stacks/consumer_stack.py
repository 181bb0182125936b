"""
CDK stack for the consumer (Account A) side of the trust relationship.

Creates a role in the consumer account whose only permission is
sts:AssumeRole on the producer's role. The producer role ARN arrives as a
parameter because it only exists once the producer stack has completed.

Parameters:
    AccountBRoleArn, RoleName

Outputs:
    RoleArn, AssumableRoleArn
"""

from aws_cdk import Aws, CfnOutput, CfnParameter, Stack
from aws_cdk import aws_iam as iam
from constructs import Construct

from .constants import (
    ASSUME_ROLE_POLICY_NAME,
    OUTPUT_ASSUMABLE_ROLE_ARN,
    OUTPUT_ROLE_ARN,
    PARAM_ACCOUNT_B_ROLE_ARN,
    PARAM_ROLE_NAME,
)


class ConsumerRoleStack(Stack):
    """Stack holding the role in the consumer account that may assume Account B's role."""

    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        account_b_role_arn = CfnParameter(
            self,
            PARAM_ACCOUNT_B_ROLE_ARN,
            type="String",
            allowed_pattern=r"^arn:aws[a-zA-Z-]*:iam::\d{12}:role/.+$",
            description="ARN of the role in Account B",
        )
        role_name = CfnParameter(
            self,
            PARAM_ROLE_NAME,
            type="String",
            allowed_pattern=r"^[\w+=,.@-]{1,64}$",
            description="Name of the assumer role in Account A",
        )

        role = iam.CfnRole(
            self,
            "AssumerRole",
            role_name=role_name.value_as_string,
            assume_role_policy_document={
                "Version": "2012-10-17",
                "Statement": [
                    {
                        "Effect": "Allow",
                        "Principal": {"AWS": f"arn:{Aws.PARTITION}:iam::{Aws.ACCOUNT_ID}:root"},
                        "Action": "sts:AssumeRole",
                    }
                ],
            },
            policies=[
                iam.CfnRole.PolicyProperty(
                    policy_name=ASSUME_ROLE_POLICY_NAME,
                    policy_document={
                        "Version": "2012-10-17",
                        "Statement": [
                            {
                                "Effect": "Allow",
                                "Action": "sts:AssumeRole",
                                "Resource": account_b_role_arn.value_as_string,
                            }
                        ],
                    },
                )
            ],
        )

        CfnOutput(
            self,
            OUTPUT_ROLE_ARN,
            value=role.attr_arn,
            description="ARN of the assumer role in Account A",
        )

        CfnOutput(
            self,
            OUTPUT_ASSUMABLE_ROLE_ARN,
            value=account_b_role_arn.value_as_string,
            description="ARN of the Account B role this role may assume",
        )
