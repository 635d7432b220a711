"""
AppSync GraphQL API module for platform administration.

- api.py: GraphQL API creation (Cognito user pool authorization)
- datasources.py: Lambda data sources, one per admin resolver function
- resolvers.py: Query/Mutation resolver wiring
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from aws_cdk import aws_appsync as appsync
from constructs import Construct

from .api import create_appsync_api
from .datasources import create_lambda_datasources
from .resolvers import create_resolvers

if TYPE_CHECKING:
    from aws_cdk import aws_cognito as cognito
    from aws_cdk import aws_lambda as lambda_


@dataclass
class AppSyncResources:
    """Container for all AppSync resources created by setup_appsync."""

    api: appsync.GraphqlApi
    lambda_datasources: dict[str, appsync.LambdaDataSource]
    resolvers: dict[str, appsync.Resolver]


def setup_appsync(
    scope: Construct,
    resource_name: Any,  # Callable[[str], str]
    user_pool: "cognito.IUserPool",
    resolver_functions: dict[str, "lambda_.IFunction"],
) -> AppSyncResources:
    """
    Set up the platform administration GraphQL API.

    Args:
        scope: CDK construct scope
        resource_name: Function to generate resource names
        user_pool: Cognito User Pool for authentication
        resolver_functions: GraphQL field name -> Lambda function

    Returns:
        AppSyncResources containing all created resources
    """
    api = create_appsync_api(scope=scope, resource_name=resource_name, user_pool=user_pool)
    lambda_datasources = create_lambda_datasources(api, resolver_functions)
    resolvers = create_resolvers(api, lambda_datasources)

    return AppSyncResources(api=api, lambda_datasources=lambda_datasources, resolvers=resolvers)


__all__ = ["setup_appsync", "AppSyncResources"]
