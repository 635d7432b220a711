"""
REST API (API Gateway) for the HR analytics portal.

Creates:
- RestApi with CORS preflight for the portal origins
- Cognito user pool authorizer shared by every protected method
- One Lambda proxy integration per resource family (auth, organizations,
  users, comments, dashboards)

The /auth sign-up endpoints are public; everything else requires a Cognito
ID token. Role checks happen inside the handlers.
"""

from typing import Callable

from aws_cdk import CfnOutput
from aws_cdk import aws_apigateway as apigateway
from aws_cdk import aws_cognito as cognito
from aws_cdk import aws_lambda as lambda_
from constructs import Construct

PUBLIC_AUTH_ROUTES = [
    ("lookup-organization", "GET"),
    ("register-user", "POST"),
    ("verify-email", "POST"),
]

# (item path parameter, action sub-resources) per collection resource
COLLECTION_ROUTES: dict[str, tuple[str, list[str]]] = {
    "organizations": ("{organizationId}", ["approve", "reject", "suspend", "reactivate"]),
    "users": ("{userId}", ["approve", "reject"]),
    "comments": ("{commentId}", ["approve", "disapprove"]),
}

DASHBOARD_ROUTES = [
    ("list", "GET"),
    ("embed-url", "GET"),
    ("embed", "POST"),
]


def create_rest_api(
    stack: Construct,
    rn: Callable[[str], str],
    user_pool: cognito.IUserPool,
    functions: dict[str, lambda_.IFunction],
    allowed_origins: list[str],
    stage_name: str = "api",
) -> dict[str, object]:
    """Create the REST API and wire every route to its Lambda.

    Args:
        stack: CDK Construct (usually the Stack instance)
        rn: helper function to create resource names
        user_pool: Cognito User Pool backing the authorizer
        functions: REST Lambda functions keyed by resource family
        allowed_origins: CORS origins for the portal
        stage_name: Deployment stage name

    Returns:
        Dict with 'api' and 'authorizer'
    """
    api = apigateway.RestApi(
        stack,
        "RestApi",
        rest_api_name=rn("hr-analytics-api"),
        description="HR analytics portal REST API",
        default_cors_preflight_options=apigateway.CorsOptions(
            allow_origins=allowed_origins,
            allow_methods=apigateway.Cors.ALL_METHODS,
            allow_headers=["Content-Type", "Authorization", "X-Amz-Date", "X-Api-Key"],
        ),
        deploy_options=apigateway.StageOptions(
            stage_name=stage_name,
            throttling_rate_limit=100,
            throttling_burst_limit=200,
        ),
    )

    authorizer = apigateway.CognitoUserPoolsAuthorizer(
        stack,
        "ApiAuthorizer",
        authorizer_name=rn("hr-analytics-authorizer"),
        cognito_user_pools=[user_pool],
    )

    def protected(resource: apigateway.IResource, method: str, integration: apigateway.Integration) -> None:
        resource.add_method(
            method,
            integration,
            authorizer=authorizer,
            authorization_type=apigateway.AuthorizationType.COGNITO,
        )

    # /auth
    auth_integration = apigateway.LambdaIntegration(functions["auth"])
    auth_resource = api.root.add_resource("auth")
    for path, method in PUBLIC_AUTH_ROUTES:
        auth_resource.add_resource(path).add_method(method, auth_integration)
    protected(auth_resource.add_resource("me"), "GET", auth_integration)

    # /organizations, /users, /comments
    for family, (item_param, actions) in COLLECTION_ROUTES.items():
        integration = apigateway.LambdaIntegration(functions[family])
        collection = api.root.add_resource(family)
        protected(collection, "GET", integration)
        protected(collection, "POST", integration)

        item = collection.add_resource(item_param)
        for method in ("GET", "PUT", "DELETE"):
            protected(item, method, integration)
        for action in actions:
            protected(item.add_resource(action), "POST", integration)

    # /dashboards
    dashboards_integration = apigateway.LambdaIntegration(functions["dashboards"])
    dashboards = api.root.add_resource("dashboards")
    for path, method in DASHBOARD_ROUTES:
        protected(dashboards.add_resource(path), method, dashboards_integration)

    CfnOutput(stack, "RestApiUrl", value=api.url, description="HR analytics REST API endpoint")

    return {"api": api, "authorizer": authorizer}
