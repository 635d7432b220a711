"""
Centralized DynamoDB table access utilities.

Provides singleton-pattern table accessors with lazy initialization
and test monkeypatch support, plus pagination token helpers.
"""

import base64
import binascii
import json
import os
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import boto3

from .errors import AppError, ErrorCode

if TYPE_CHECKING:
    from mypy_boto3_dynamodb import DynamoDBServiceResource
    from mypy_boto3_dynamodb.service_resource import Table


# Module-level cache for test overrides
_table_overrides: dict[str, Optional["Table"]] = {}


def get_required_env(name: str, default: Optional[str] = None) -> str:
    """Get a required environment variable.

    In Lambda/production, the env var must be set. For tests, a default can be
    provided to allow the code to run in mocked environments.

    Raises:
        ValueError: If the env var is not set and no default is provided
    """
    value = os.getenv(name, default)
    if value is None:
        raise ValueError(f"Required environment variable '{name}' is not set")
    return value


def _get_dynamodb() -> "DynamoDBServiceResource":
    """Get DynamoDB resource with optional endpoint override for LocalStack."""
    return boto3.resource("dynamodb", endpoint_url=os.getenv("DYNAMODB_ENDPOINT"))


class TableAccessor:
    """Centralized access to DynamoDB tables with environment-based naming."""

    _instance: Optional["TableAccessor"] = None

    def __new__(cls) -> "TableAccessor":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def _table(self, key: str, env_name: str) -> "Table":
        if override := _table_overrides.get(key):
            return override
        return _get_dynamodb().Table(get_required_env(env_name))

    @property
    def organizations(self) -> "Table":
        """Organizations table (PK organizationId)."""
        return self._table("organizations", "ORGANIZATIONS_TABLE_NAME")

    @property
    def users(self) -> "Table":
        """Users table (PK organizationId, SK userId)."""
        return self._table("users", "USERS_TABLE_NAME")

    @property
    def comments(self) -> "Table":
        """Comments table (PK/SK composite keys, TTL on ``ttl``)."""
        return self._table("comments", "COMMENTS_TABLE_NAME")


# Singleton instance for import
tables = TableAccessor()


def encode_next_token(last_evaluated_key: Optional[Dict[str, Any]]) -> Optional[str]:
    """Encode a LastEvaluatedKey as an opaque pagination token."""
    if not last_evaluated_key:
        return None
    raw = json.dumps(last_evaluated_key, default=_json_default, sort_keys=True)
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_next_token(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """Decode a pagination token back into an ExclusiveStartKey.

    Raises:
        AppError: INVALID_INPUT if the token is not one we issued
    """
    if not token:
        return None
    try:
        decoded = json.loads(
            base64.urlsafe_b64decode(token.encode("ascii")),
            parse_float=Decimal,
            parse_int=Decimal,
        )
    except (binascii.Error, ValueError, UnicodeError):
        raise AppError(ErrorCode.INVALID_INPUT, "Invalid nextToken")
    if not isinstance(decoded, dict):
        raise AppError(ErrorCode.INVALID_INPUT, "Invalid nextToken")
    return decoded


def scan_all(table: "Table", **kwargs: Any) -> List[Dict[str, Any]]:
    """Scan a table following LastEvaluatedKey until exhausted."""
    items: List[Dict[str, Any]] = []
    while True:
        response = table.scan(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


def query_all(table: "Table", **kwargs: Any) -> List[Dict[str, Any]]:
    """Query following LastEvaluatedKey until exhausted."""
    items: List[Dict[str, Any]] = []
    while True:
        response = table.query(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


# Test utilities
def override_table(table_name: str, table: Optional["Table"]) -> None:
    """Override a table for testing. Set to None to clear override."""
    _table_overrides[table_name] = table


def clear_all_overrides() -> None:
    """Clear all table overrides (call in test teardown)."""
    _table_overrides.clear()


def reset_singleton() -> None:
    """Reset the singleton instance (for testing isolation)."""
    TableAccessor._instance = None
