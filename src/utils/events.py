"""
Type definitions and accessors for Lambda events.

Covers API Gateway REST proxy events and AppSync direct Lambda resolver
events, reducing runtime errors from incorrect event structure assumptions.
"""

import json
from typing import Any, Dict, List, Optional, TypedDict

from .errors import AppError, ErrorCode


class AppSyncIdentity(TypedDict, total=False):
    """AppSync Cognito User Pool identity."""

    sub: str  # Cognito user ID
    username: str
    claims: Dict[str, Any]
    sourceIp: List[str]
    groups: List[str]


class AppSyncEvent(TypedDict, total=False):
    """AppSync resolver event structure."""

    identity: AppSyncIdentity
    arguments: Dict[str, Any]
    info: Dict[str, Any]
    request: Dict[str, Any]


class ApiGatewayEvent(TypedDict, total=False):
    """API Gateway REST proxy integration event."""

    resource: str
    path: str
    httpMethod: str
    headers: Dict[str, str]
    queryStringParameters: Optional[Dict[str, str]]
    pathParameters: Optional[Dict[str, str]]
    requestContext: Dict[str, Any]
    body: Optional[str]
    isBase64Encoded: bool


# REST helpers


def get_path_parameter(event: Dict[str, Any], name: str) -> str:
    """
    Extract a required path parameter.

    Raises:
        AppError: INVALID_INPUT if the parameter is missing
    """
    value = (event.get("pathParameters") or {}).get(name)
    if not value:
        raise AppError(ErrorCode.INVALID_INPUT, f"Missing path parameter: {name}")
    return str(value)


def get_query_parameter(event: Dict[str, Any], name: str, default: Optional[str] = None) -> Optional[str]:
    value = (event.get("queryStringParameters") or {}).get(name)
    return value if value not in (None, "") else default


def parse_json_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Parse the JSON request body; an absent body is an empty object.

    Raises:
        AppError: INVALID_INPUT if the body is not a JSON object
    """
    body = event.get("body")
    if body in (None, ""):
        return {}
    if isinstance(body, dict):
        return body
    try:
        parsed = json.loads(body)
    except (TypeError, ValueError):
        raise AppError(ErrorCode.INVALID_INPUT, "Request body must be valid JSON")
    if not isinstance(parsed, dict):
        raise AppError(ErrorCode.INVALID_INPUT, "Request body must be a JSON object")
    return parsed


# AppSync helpers


def get_argument(event: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Extract an argument from AppSync event."""
    arguments: Dict[str, Any] = event.get("arguments") or {}
    return arguments.get(key, default)


def get_argument_required(event: Dict[str, Any], key: str) -> Any:
    """
    Extract required argument from AppSync event.

    Raises:
        AppError: INVALID_INPUT if argument is not present
    """
    value = get_argument(event, key)
    if value is None or value == "":
        raise AppError(ErrorCode.INVALID_INPUT, f"Missing required argument: {key}")
    return value


def get_input(event: Dict[str, Any]) -> Dict[str, Any]:
    """The ``input`` object of a mutation, or the arguments themselves."""
    arguments: Dict[str, Any] = event.get("arguments") or {}
    nested = arguments.get("input")
    return dict(nested) if isinstance(nested, dict) else dict(arguments)
