"""Constants shared by the CDK stacks and the deployment engine."""

# Template references - resolved to CDK stack classes by lib.templates
PRODUCER_TEMPLATE = "producer-role"
CONSUMER_TEMPLATE = "consumer-role"

# Resource identifiers
S3_ACCESS_POLICY_NAME = "CrossAccountS3Access"
ASSUME_ROLE_POLICY_NAME = "AssumeCrossAccountRole"

# Producer (Account B) parameters
PARAM_TRUSTED_ACCOUNT_ID = "TrustedAccountId"
PARAM_S3_BUCKET_NAME = "S3BucketName"
PARAM_ROLE_NAME = "RoleName"
PARAM_EXTERNAL_ID = "ExternalId"
PARAM_MAX_SESSION_DURATION = "MaxSessionDuration"

# Consumer (Account A) parameters
PARAM_ACCOUNT_B_ROLE_ARN = "AccountBRoleArn"

# Stack outputs
OUTPUT_ROLE_ARN = "RoleArn"
OUTPUT_ROLE_NAME = "CrossAccountRoleName"
OUTPUT_ASSUMABLE_ROLE_ARN = "AssumableRoleArn"
