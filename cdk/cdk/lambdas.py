"""Lambda function definitions for the HR analytics stack.

This module creates all Lambda functions used by the application:
- One REST function per API resource (auth, organizations, users, comments,
  dashboards), each routing on method + resource path
- One function per AppSync platform-administration resolver
"""

import os
from typing import Any

from aws_cdk import Duration, Stack
from aws_cdk import aws_iam as iam
from aws_cdk import aws_lambda as lambda_
from constructs import Construct

# key -> (construct id, function name, handler, timeout seconds, memory MB)
REST_FUNCTIONS: dict[str, tuple[str, str, str, int, int]] = {
    "auth": ("AuthFn", "hr-auth", "handlers.auth_operations.lambda_handler", 15, 256),
    "organizations": (
        "OrganizationsFn",
        "hr-organizations",
        "handlers.organization_operations.lambda_handler",
        30,
        256,
    ),
    "users": ("UsersFn", "hr-users", "handlers.user_management.lambda_handler", 30, 256),
    "comments": ("CommentsFn", "hr-comments", "handlers.comment_operations.lambda_handler", 15, 256),
    # Embed URL generation may register the QuickSight user first
    "dashboards": ("DashboardsFn", "hr-dashboards", "handlers.dashboard_operations.lambda_handler", 30, 512),
}

# GraphQL field -> handler function in handlers.organization_admin
APPSYNC_RESOLVERS: dict[str, str] = {
    "createOrganization": "create_organization",
    "listAllOrganizations": "list_all_organizations",
    "getSystemMetrics": "get_system_metrics",
    "approveOrganization": "approve_organization",
    "rejectOrganization": "reject_organization",
    "suspendOrganization": "suspend_organization",
    "reactivateOrganization": "reactivate_organization",
}


def create_lambda_functions(
    scope: Construct,
    rn: Any,  # Resource naming function
    lambda_execution_role: iam.IRole,
    environment: dict[str, str],
) -> dict[str, Any]:
    """Create all Lambda functions for the stack.

    Args:
        scope: CDK construct scope
        rn: Resource naming function (name -> formatted name)
        lambda_execution_role: IAM role for Lambda execution
        environment: Table names, Cognito IDs and email/embed settings shared
            by every function

    Returns:
        ``{"shared_layer": ..., "rest": {key: fn}, "resolvers": {field: fn}}``
    """
    lambda_env = {
        "LOG_LEVEL": "INFO",
        "AWS_ACCOUNT_ID": Stack.of(scope).account,
        **environment,
    }

    # Create Lambda Layer for shared dependencies
    lambda_layer_path = os.path.join(os.path.dirname(__file__), "..", "lambda-layer")

    # Check if layer exists, if not create it
    if not os.path.exists(lambda_layer_path):
        os.makedirs(lambda_layer_path, exist_ok=True)

    shared_layer = lambda_.LayerVersion(
        scope,
        "SharedDependenciesLayer",
        layer_version_name=rn("hr-analytics-deps"),
        code=lambda_.Code.from_asset(lambda_layer_path),
        compatible_runtimes=[lambda_.Runtime.PYTHON_3_13],
        description="Shared Python dependencies for Lambda functions",
    )

    # Use only the src directory for Lambda code (not the entire repo)
    lambda_code_path = os.path.join(os.path.dirname(__file__), "..", "..", "src")

    lambda_code = lambda_.Code.from_asset(
        lambda_code_path,
        exclude=[
            "__pycache__",
            "*.pyc",
            ".pytest_cache",
        ],
    )

    def _function(construct_id: str, name: str, handler: str, timeout: int, memory: int) -> lambda_.Function:
        return lambda_.Function(
            scope,
            construct_id,
            function_name=rn(name),
            runtime=lambda_.Runtime.PYTHON_3_13,
            handler=handler,
            code=lambda_code,
            layers=[shared_layer],
            timeout=Duration.seconds(timeout),
            memory_size=memory,
            role=lambda_execution_role,
            environment=lambda_env,
        )

    rest_functions = {key: _function(*config) for key, config in REST_FUNCTIONS.items()}

    resolver_functions: dict[str, lambda_.Function] = {}
    for field_name, function_name in APPSYNC_RESOLVERS.items():
        construct_name = field_name[0].upper() + field_name[1:]
        resolver_functions[field_name] = _function(
            f"{construct_name}Fn",
            "hr-" + function_name.replace("_", "-"),
            f"handlers.organization_admin.{function_name}",
            30,
            256,
        )

    return {
        "shared_layer": shared_layer,
        "rest": rest_functions,
        "resolvers": resolver_functions,
    }
