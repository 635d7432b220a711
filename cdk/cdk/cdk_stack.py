import os

from aws_cdk import CfnOutput, Stack
from constructs import Construct

from .api_gateway import create_rest_api
from .appsync import setup_appsync
from .auth import create_cognito_auth
from .dynamodb_tables import create_dynamodb_tables
from .helpers import get_allowed_origins, get_region_abbrev, make_resource_namer
from .iam_roles import create_lambda_execution_role
from .lambdas import create_lambda_functions
from .s3_buckets import create_s3_buckets

# Optional Lambda settings passed through from the deploy environment
PASSTHROUGH_ENV_VARS = [
    "QUICKSIGHT_NAMESPACE",
    "HR_ANALYTICS_DASHBOARD_ID",
    "CONTROLIO_DASHBOARD_ID",
]


class CdkStack(Stack):
    """
    HR Analytics Platform - Core Infrastructure Stack

    Creates:
    - DynamoDB tables for organizations, users and comments
    - S3 data lake bucket
    - Cognito User Pool with one group per role
    - Lambda functions behind a REST API (API Gateway)
    - AppSync GraphQL API for platform administration
    """

    def __init__(self, scope: Construct, construct_id: str, env_name: str = "dev", **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.env_name = env_name
        self.region_abbrev = get_region_abbrev()

        # Helper for consistent resource naming: {name}-{region}-{env}
        rn = make_resource_namer(self.region_abbrev, env_name)
        self.resource_name = rn

        allowed_origins = get_allowed_origins(env_name)
        portal_url = os.getenv("PORTAL_URL", allowed_origins[-1])

        # ====================================================================
        # Storage
        # ====================================================================

        tables = create_dynamodb_tables(self, rn)
        self.organizations_table = tables["organizations_table"]
        self.users_table = tables["users_table"]
        self.comments_table = tables["comments_table"]

        self.data_lake_bucket = create_s3_buckets(self, rn)["data_lake_bucket"]

        # ====================================================================
        # Authentication
        # ====================================================================

        auth = create_cognito_auth(self, rn, callback_urls=allowed_origins)
        self.user_pool = auth["user_pool"]
        self.user_pool_client = auth["user_pool_client"]

        # ====================================================================
        # Lambda functions
        # ====================================================================

        self.lambda_execution_role = create_lambda_execution_role(
            self, rn, tables, self.data_lake_bucket, self.user_pool
        )

        lambda_environment = {
            "ORGANIZATIONS_TABLE_NAME": self.organizations_table.table_name,
            "USERS_TABLE_NAME": self.users_table.table_name,
            "COMMENTS_TABLE_NAME": self.comments_table.table_name,
            "USER_POOL_ID": self.user_pool.user_pool_id,
            "USER_POOL_CLIENT_ID": self.user_pool_client.user_pool_client_id,
            "FROM_EMAIL": os.getenv("FROM_EMAIL", "noreply@a1strategy.net"),
            "PLATFORM_ADMIN_EMAIL": os.getenv("PLATFORM_ADMIN_EMAIL", "admin@a1strategy.net"),
            "PORTAL_URL": portal_url,
            "EMBED_ALLOWED_DOMAINS": ",".join(allowed_origins),
        }
        for name in PASSTHROUGH_ENV_VARS:
            value = os.getenv(name)
            if value:
                lambda_environment[name] = value

        functions = create_lambda_functions(self, rn, self.lambda_execution_role, lambda_environment)
        self.rest_functions = functions["rest"]
        self.resolver_functions = functions["resolvers"]

        # ====================================================================
        # APIs
        # ====================================================================

        rest = create_rest_api(self, rn, self.user_pool, self.rest_functions, allowed_origins)
        self.rest_api = rest["api"]

        self.appsync = setup_appsync(self, rn, self.user_pool, self.resolver_functions)
        self.admin_api = self.appsync.api

        CfnOutput(self, "DataLakeBucketName", value=self.data_lake_bucket.bucket_name)
