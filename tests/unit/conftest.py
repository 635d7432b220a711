"""
Test fixtures for Lambda function tests.

Provides mocked AWS resources (moto DynamoDB tables, MagicMock Cognito /
SES / QuickSight clients) and builders for API Gateway and AppSync events.
"""

import json
from typing import Any, Callable, Dict, Generator, List, Optional
from unittest.mock import MagicMock, patch

import boto3
import pytest
from moto import mock_aws

from tests.unit.fixtures import client_error, make_organization, make_user

ORGANIZATIONS_TABLE = "hr-organizations-ue1-test"
USERS_TABLE = "hr-users-ue1-test"
COMMENTS_TABLE = "hr-comments-ue1-test"


@pytest.fixture
def aws_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set fake AWS credentials and Lambda configuration."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    monkeypatch.setenv("AWS_ACCOUNT_ID", "123456789012")
    monkeypatch.setenv("ORGANIZATIONS_TABLE_NAME", ORGANIZATIONS_TABLE)
    monkeypatch.setenv("USERS_TABLE_NAME", USERS_TABLE)
    monkeypatch.setenv("COMMENTS_TABLE_NAME", COMMENTS_TABLE)
    monkeypatch.setenv("USER_POOL_ID", "us-east-1_testpool")
    monkeypatch.setenv("USER_POOL_CLIENT_ID", "test-client-id")
    monkeypatch.setenv("FROM_EMAIL", "noreply@example.com")
    monkeypatch.setenv("PLATFORM_ADMIN_EMAIL", "platform@example.com")
    monkeypatch.delenv("DYNAMODB_ENDPOINT", raising=False)


@pytest.fixture
def dynamodb_tables(aws_credentials: None) -> Generator[Dict[str, Any], None, None]:
    """Create the organizations, users and comments tables in moto."""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")

        # ================================================================
        # Organizations: PK organizationId
        # ================================================================
        organizations = dynamodb.create_table(
            TableName=ORGANIZATIONS_TABLE,
            KeySchema=[{"AttributeName": "organizationId", "KeyType": "HASH"}],
            AttributeDefinitions=[
                {"AttributeName": "organizationId", "AttributeType": "S"},
                {"AttributeName": "status", "AttributeType": "S"},
                {"AttributeName": "createdAt", "AttributeType": "S"},
                {"AttributeName": "domain", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "StatusIndex",
                    "KeySchema": [
                        {"AttributeName": "status", "KeyType": "HASH"},
                        {"AttributeName": "createdAt", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
                {
                    "IndexName": "DomainIndex",
                    "KeySchema": [{"AttributeName": "domain", "KeyType": "HASH"}],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            BillingMode="PAY_PER_REQUEST",
        )

        # ================================================================
        # Users: PK organizationId, SK userId
        # ================================================================
        users = dynamodb.create_table(
            TableName=USERS_TABLE,
            KeySchema=[
                {"AttributeName": "organizationId", "KeyType": "HASH"},
                {"AttributeName": "userId", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "organizationId", "AttributeType": "S"},
                {"AttributeName": "userId", "AttributeType": "S"},
                {"AttributeName": "email", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "EmailIndex",
                    "KeySchema": [{"AttributeName": "email", "KeyType": "HASH"}],
                    "Projection": {"ProjectionType": "ALL"},
                },
                {
                    "IndexName": "UserIdIndex",
                    "KeySchema": [{"AttributeName": "userId", "KeyType": "HASH"}],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            BillingMode="PAY_PER_REQUEST",
        )

        # ================================================================
        # Comments: PK/SK composite keys
        # ================================================================
        comments = dynamodb.create_table(
            TableName=COMMENTS_TABLE,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
                {"AttributeName": "organizationId", "AttributeType": "S"},
                {"AttributeName": "createdAt", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "OrganizationIndex",
                    "KeySchema": [
                        {"AttributeName": "organizationId", "KeyType": "HASH"},
                        {"AttributeName": "createdAt", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            BillingMode="PAY_PER_REQUEST",
        )

        yield {"organizations": organizations, "users": users, "comments": comments}


@pytest.fixture
def cognito_client() -> Generator[MagicMock, None, None]:
    """MagicMock cognito-idp client; unknown users by default."""
    client = MagicMock()
    client.sign_up.return_value = {"UserSub": "new-user-sub", "UserConfirmed": False}
    client.admin_create_user.return_value = {
        "User": {"Username": "created", "Attributes": [{"Name": "sub", "Value": "created-user-sub"}]}
    }
    client.admin_get_user.side_effect = client_error("UserNotFoundException", "AdminGetUser")
    with patch("src.utils.cognito._get_cognito_client", return_value=client):
        yield client


@pytest.fixture
def ses_client() -> Generator[MagicMock, None, None]:
    client = MagicMock()
    client.send_email.return_value = {"MessageId": "message-1"}
    with patch("src.utils.notifications._get_ses_client", return_value=client):
        yield client


@pytest.fixture
def quicksight_client() -> Generator[MagicMock, None, None]:
    client = MagicMock()
    client.describe_user.return_value = {
        "User": {"Arn": "arn:aws:quicksight:us-east-1:123456789012:user/default/jane@acme.com"}
    }
    client.generate_embed_url_for_registered_user.return_value = {
        "EmbedUrl": "https://us-east-1.quicksight.aws.amazon.com/embed/abc",
        "Status": 200,
    }
    with patch("src.utils.quicksight._get_quicksight_client", return_value=client):
        yield client


@pytest.fixture
def lambda_context() -> Any:
    """Mock Lambda context."""

    class Context:
        function_name = "test-function"
        memory_limit_in_mb = 128
        invoked_function_arn = "arn:aws:lambda:us-east-1:123456789012:function:test-function"
        aws_request_id = "test-request-id"

    return Context()


def _claims(
    sub: str,
    email: Optional[str],
    groups: List[str],
    organization_id: Optional[str],
) -> Dict[str, Any]:
    claims: Dict[str, Any] = {"sub": sub, "cognito:groups": ",".join(groups)}
    if email:
        claims["email"] = email
    if organization_id:
        claims["custom:organizationId"] = organization_id
    return claims


@pytest.fixture
def make_api_event() -> Callable[..., Dict[str, Any]]:
    """Factory for API Gateway REST proxy events with Cognito authorizer claims."""

    def _make(
        method: str,
        resource: str,
        *,
        groups: Optional[List[str]] = None,
        sub: str = "caller-sub",
        email: Optional[str] = "caller@acme.com",
        organization_id: Optional[str] = "acme",
        path_parameters: Optional[Dict[str, str]] = None,
        query: Optional[Dict[str, str]] = None,
        body: Any = None,
        authenticated: bool = True,
    ) -> Dict[str, Any]:
        request_context: Dict[str, Any] = {"requestId": "req-123"}
        if authenticated:
            request_context["authorizer"] = {"claims": _claims(sub, email, groups or [], organization_id)}
        return {
            "resource": resource,
            "path": resource,
            "httpMethod": method,
            "headers": {},
            "pathParameters": path_parameters,
            "queryStringParameters": query,
            "requestContext": request_context,
            "body": json.dumps(body) if body is not None else None,
        }

    return _make


@pytest.fixture
def make_appsync_event() -> Callable[..., Dict[str, Any]]:
    """Factory for AppSync direct Lambda resolver events."""

    def _make(
        arguments: Optional[Dict[str, Any]] = None,
        *,
        groups: Optional[List[str]] = None,
        sub: str = "admin-sub",
        email: str = "ops@platform.com",
    ) -> Dict[str, Any]:
        return {
            "arguments": arguments or {},
            "identity": {
                "sub": sub,
                "username": email,
                "claims": {"sub": sub, "email": email, "cognito:groups": list(groups or [])},
            },
            "request": {"headers": {"x-correlation-id": "corr-123"}},
        }

    return _make


@pytest.fixture
def seed_organization(dynamodb_tables: Dict[str, Any]) -> Callable[..., Dict[str, Any]]:
    """Insert an organization record directly."""

    def _seed(organization_id: str = "acme", **overrides: Any) -> Dict[str, Any]:
        item = make_organization(organization_id, **overrides)
        dynamodb_tables["organizations"].put_item(Item=item)
        return item

    return _seed


@pytest.fixture
def seed_user(dynamodb_tables: Dict[str, Any]) -> Callable[..., Dict[str, Any]]:
    """Insert a user record directly."""

    def _seed(user_id: str, organization_id: str = "acme", **overrides: Any) -> Dict[str, Any]:
        item = make_user(user_id, organization_id, **overrides)
        dynamodb_tables["users"].put_item(Item=item)
        return item

    return _seed
