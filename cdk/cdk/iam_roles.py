"""
IAM roles and policies for the CDK stack.

Creates:
- Lambda execution role with DynamoDB, S3, Cognito admin, SES and QuickSight
  embedding permissions
"""

from typing import Callable, Dict

from aws_cdk import Stack
from aws_cdk import aws_cognito as cognito
from aws_cdk import aws_dynamodb as dynamodb
from aws_cdk import aws_iam as iam
from aws_cdk import aws_s3 as s3
from constructs import Construct

COGNITO_ADMIN_ACTIONS = [
    "cognito-idp:AdminAddUserToGroup",
    "cognito-idp:AdminCreateUser",
    "cognito-idp:AdminDeleteUser",
    "cognito-idp:AdminDisableUser",
    "cognito-idp:AdminGetUser",
    "cognito-idp:AdminRemoveUserFromGroup",
    "cognito-idp:AdminUpdateUserAttributes",
]

QUICKSIGHT_EMBED_ACTIONS = [
    "quicksight:DescribeUser",
    "quicksight:RegisterUser",
    "quicksight:UpdateDashboardPermissions",
    "quicksight:GenerateEmbedUrlForRegisteredUser",
]


def create_lambda_execution_role(
    stack: Construct,
    rn: Callable[[str], str],
    tables: Dict[str, dynamodb.ITable],
    data_lake_bucket: s3.IBucket,
    user_pool: cognito.IUserPool,
) -> iam.Role:
    """Create the Lambda execution role with appropriate permissions.

    Args:
        stack: CDK Construct (usually the Stack instance)
        rn: helper function to create resource names
        tables: Dict of DynamoDB tables to grant access to
        data_lake_bucket: S3 bucket with the organizations' source data
        user_pool: Cognito User Pool the handlers administer

    Returns:
        The Lambda execution role
    """
    # Lambda execution role (base permissions)
    lambda_execution_role = iam.Role(
        stack,
        "LambdaExecutionRole",
        role_name=rn("hr-analytics-lambda-exec"),
        assumed_by=iam.ServicePrincipal("lambda.amazonaws.com"),
        managed_policies=[iam.ManagedPolicy.from_aws_managed_policy_name("service-role/AWSLambdaBasicExecutionRole")],
    )

    # Grant Lambda role access to all tables
    for table in tables.values():
        table.grant_read_write_data(lambda_execution_role)

        # Grant access to GSI indexes
        lambda_execution_role.add_to_policy(
            iam.PolicyStatement(
                actions=["dynamodb:Query", "dynamodb:Scan"],
                resources=[f"{table.table_arn}/index/*"],
            )
        )

    data_lake_bucket.grant_read(lambda_execution_role)

    lambda_execution_role.add_to_policy(
        iam.PolicyStatement(actions=COGNITO_ADMIN_ACTIONS, resources=[user_pool.user_pool_arn])
    )

    lambda_execution_role.add_to_policy(
        iam.PolicyStatement(
            actions=["ses:SendEmail", "ses:SendRawEmail"],
            resources=["*"],  # Sending identities are verified outside the stack
        )
    )

    account = Stack.of(stack).account
    lambda_execution_role.add_to_policy(
        iam.PolicyStatement(
            actions=QUICKSIGHT_EMBED_ACTIONS,
            resources=[
                f"arn:aws:quicksight:*:{account}:user/*",
                f"arn:aws:quicksight:*:{account}:dashboard/*",
            ],
        )
    )

    return lambda_execution_role
