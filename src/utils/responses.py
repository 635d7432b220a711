"""
Response builders for Lambda handlers.

Provides the API Gateway proxy response envelope (JSON + CORS headers) and
entity builders shared by the REST handlers and AppSync resolvers.
"""

import json
from decimal import Decimal
from typing import Any, Dict, Optional, TypedDict, cast

from .errors import AppError, ErrorCode

CORS_HEADERS: Dict[str, str] = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization,X-Amz-Date,X-Api-Key,X-Amz-Security-Token",
    "Access-Control-Allow-Methods": "GET,POST,PUT,DELETE,OPTIONS",
}


class OrganizationResponse(TypedDict, total=False):
    """Organization as returned to clients."""

    organizationId: str
    name: str
    subdomain: str
    domain: Optional[str]
    adminEmail: str
    adminUserId: Optional[str]
    description: Optional[str]
    tier: str
    companySize: Optional[str]
    industry: Optional[str]
    status: str
    userCount: int
    dataSourcesConfigured: bool
    createdAt: str
    updatedAt: str
    approvedAt: Optional[str]
    approvedBy: Optional[str]
    rejectedAt: Optional[str]
    rejectedBy: Optional[str]
    rejectionReason: Optional[str]
    suspendedAt: Optional[str]
    suspendedBy: Optional[str]
    suspensionReason: Optional[str]
    reactivatedAt: Optional[str]
    reactivatedBy: Optional[str]


class UserResponse(TypedDict, total=False):
    """User profile as returned to clients."""

    userId: str
    organizationId: str
    email: str
    fullName: str
    role: str
    department: Optional[str]
    supervisorId: Optional[str]
    approvalStatus: str
    emailVerified: bool
    createdAt: str
    updatedAt: str
    approvedAt: Optional[str]
    approvedBy: Optional[str]


class CommentResponse(TypedDict, total=False):
    """Dashboard metric comment as returned to clients."""

    commentId: str
    organizationId: str
    dashboardId: str
    metricId: str
    userId: str
    userEmail: Optional[str]
    content: str
    status: str
    createdAt: str
    updatedAt: Optional[str]
    approvedBy: Optional[str]
    approvedAt: Optional[str]
    disapprovedBy: Optional[str]
    disapprovedAt: Optional[str]
    disapprovalReason: Optional[str]


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (ValueError, TypeError):
        return 0


def _optional_fields(item: Dict[str, Any], *names: str) -> Dict[str, Any]:
    return {name: item[name] for name in names if item.get(name) is not None}


def build_organization_response(item: Dict[str, Any]) -> OrganizationResponse:
    """
    Build an Organization response from a DynamoDB item.

    Numbers come back from DynamoDB as Decimal; they are coerced here.
    """
    response = OrganizationResponse(
        organizationId=cast(str, item.get("organizationId", "")),
        name=cast(str, item.get("name", "")),
        subdomain=cast(str, item.get("subdomain", item.get("organizationId", ""))),
        adminEmail=cast(str, item.get("adminEmail", "")),
        tier=cast(str, item.get("tier", "FREE")),
        status=cast(str, item.get("status", "")),
        userCount=_to_int(item.get("userCount", 0)),
        dataSourcesConfigured=bool(item.get("dataSourcesConfigured", False)),
        createdAt=cast(str, item.get("createdAt", "")),
        updatedAt=cast(str, item.get("updatedAt", item.get("createdAt", ""))),
    )
    response.update(
        cast(
            OrganizationResponse,
            _optional_fields(
                item,
                "domain",
                "adminUserId",
                "description",
                "companySize",
                "industry",
                "approvedAt",
                "approvedBy",
                "rejectedAt",
                "rejectedBy",
                "rejectionReason",
                "suspendedAt",
                "suspendedBy",
                "suspensionReason",
                "reactivatedAt",
                "reactivatedBy",
            ),
        )
    )
    return response


def build_user_response(item: Dict[str, Any]) -> UserResponse:
    """Build a User response from a DynamoDB item."""
    response = UserResponse(
        userId=cast(str, item.get("userId", "")),
        organizationId=cast(str, item.get("organizationId", "")),
        email=cast(str, item.get("email", "")),
        fullName=cast(str, item.get("fullName", "")),
        role=cast(str, item.get("role", "")),
        approvalStatus=cast(str, item.get("approvalStatus", "")),
        emailVerified=bool(item.get("emailVerified", False)),
        createdAt=cast(str, item.get("createdAt", "")),
        updatedAt=cast(str, item.get("updatedAt", item.get("createdAt", ""))),
    )
    response.update(
        cast(
            UserResponse,
            _optional_fields(item, "department", "supervisorId", "approvedAt", "approvedBy"),
        )
    )
    return response


def build_comment_response(item: Dict[str, Any]) -> CommentResponse:
    """Build a Comment response from a DynamoDB item (keys are not exposed)."""
    response = CommentResponse(
        commentId=cast(str, item.get("commentId", "")),
        organizationId=cast(str, item.get("organizationId", "")),
        dashboardId=cast(str, item.get("dashboardId", "")),
        metricId=cast(str, item.get("metricId", "")),
        userId=cast(str, item.get("userId", "")),
        content=cast(str, item.get("content", "")),
        status=cast(str, item.get("status", "")),
        createdAt=cast(str, item.get("createdAt", "")),
    )
    response.update(
        cast(
            CommentResponse,
            _optional_fields(
                item,
                "userEmail",
                "updatedAt",
                "approvedBy",
                "approvedAt",
                "disapprovedBy",
                "disapprovedAt",
                "disapprovalReason",
            ),
        )
    )
    return response


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def api_response(status_code: int, body: Any) -> Dict[str, Any]:
    """API Gateway proxy response with JSON body and CORS headers."""
    return {
        "statusCode": status_code,
        "headers": dict(CORS_HEADERS),
        "body": json.dumps(body, default=_json_default),
    }


def error_response(error: AppError) -> Dict[str, Any]:
    """Map an AppError to its HTTP status with a uniform error body."""
    return api_response(error.status_code, {"error": error.message, **error.to_dict()})


def internal_error_response() -> Dict[str, Any]:
    return api_response(
        500,
        {"error": "Internal server error", "errorCode": ErrorCode.INTERNAL_ERROR},
    )
