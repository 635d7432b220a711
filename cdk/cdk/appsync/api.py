"""AppSync API creation."""

import os
from typing import TYPE_CHECKING, Any

from aws_cdk import CfnOutput, RemovalPolicy
from aws_cdk import aws_appsync as appsync
from constructs import Construct

if TYPE_CHECKING:
    from aws_cdk import aws_cognito as cognito


SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "..", "..", "schema", "schema.graphql")


def create_appsync_api(
    scope: Construct,
    resource_name: Any,  # Callable[[str], str]
    user_pool: "cognito.IUserPool",
) -> appsync.GraphqlApi:
    """
    Create the AppSync GraphQL API with Cognito user pool authorization.

    Args:
        scope: CDK construct scope
        resource_name: Function to generate resource names
        user_pool: Cognito User Pool for authentication

    Returns:
        The created GraphQL API
    """
    # Determine if logging should be enabled
    enable_appsync_logging = os.getenv("ENABLE_APPSYNC_LOGGING", "false").lower() == "true"

    api = appsync.GraphqlApi(
        scope,
        "AdminApi",
        name=resource_name("hr-analytics-admin-api"),
        definition=appsync.Definition.from_file(SCHEMA_PATH),
        authorization_config=appsync.AuthorizationConfig(
            default_authorization=appsync.AuthorizationMode(
                authorization_type=appsync.AuthorizationType.USER_POOL,
                user_pool_config=appsync.UserPoolConfig(user_pool=user_pool),
            ),
        ),
        xray_enabled=True,
        log_config=(
            appsync.LogConfig(
                field_log_level=appsync.FieldLogLevel.ERROR,
                exclude_verbose_content=True,
            )
            if enable_appsync_logging
            else None
        ),
    )
    api.apply_removal_policy(RemovalPolicy.RETAIN)

    CfnOutput(scope, "AdminApiUrl", value=api.graphql_url, description="Platform admin GraphQL endpoint")

    return api
