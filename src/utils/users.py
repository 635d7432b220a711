"""
User profile records.

Users are keyed by ``(organizationId, userId)`` where ``userId`` is the
Cognito ``sub``. The Cognito copy (attributes + group membership) is written
separately by the handlers; nothing here talks to Cognito.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from .dynamodb import query_all, scan_all, tables
from .errors import AppError, ErrorCode


class ApprovalStatus:
    PENDING = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"


def build_user_item(
    organization_id: str,
    user_id: str,
    email: str,
    full_name: str,
    role: str,
    approval_status: str,
    department: Optional[str] = None,
    supervisor_id: Optional[str] = None,
    email_verified: bool = False,
) -> Dict[str, Any]:
    """New user record; optional attributes are omitted rather than stored empty."""
    now = datetime.now(timezone.utc).isoformat()
    item: Dict[str, Any] = {
        "organizationId": organization_id,
        "userId": user_id,
        "email": email,
        "fullName": full_name,
        "role": role,
        "approvalStatus": approval_status,
        "emailVerified": email_verified,
        "createdAt": now,
        "updatedAt": now,
    }
    if department:
        item["department"] = department
    if supervisor_id:
        item["supervisorId"] = supervisor_id
    return item


def put_new_user(item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Insert a user record.

    Raises:
        AppError: ALREADY_EXISTS if the key is taken
    """
    try:
        tables.users.put_item(
            Item=item,
            ConditionExpression="attribute_not_exists(organizationId) AND attribute_not_exists(userId)",
        )
    except ClientError as e:
        if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
            raise AppError(ErrorCode.ALREADY_EXISTS, "User already exists")
        raise
    return item


def find_user_by_id(user_id: str) -> Optional[Dict[str, Any]]:
    response = tables.users.query(
        IndexName="UserIdIndex",
        KeyConditionExpression=Key("userId").eq(user_id),
        Limit=1,
    )
    items = response.get("Items", [])
    return items[0] if items else None


def get_user_required(user_id: str) -> Dict[str, Any]:
    """
    Look up a user by Cognito sub.

    Raises:
        AppError: NOT_FOUND
    """
    user = find_user_by_id(user_id)
    if user is None:
        raise AppError(ErrorCode.NOT_FOUND, "User not found", {"userId": user_id})
    return user


def find_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    response = tables.users.query(
        IndexName="EmailIndex",
        KeyConditionExpression=Key("email").eq(email.lower()),
    )
    items = response.get("Items", [])
    return items[0] if items else None


def list_users(organization_id: Optional[str] = None, approval_status: Optional[str] = None) -> List[Dict[str, Any]]:
    """Users of one organization (key query) or of every organization (scan)."""
    params: Dict[str, Any] = {}
    if approval_status:
        params["FilterExpression"] = Attr("approvalStatus").eq(approval_status)

    if organization_id:
        return query_all(
            tables.users,
            KeyConditionExpression=Key("organizationId").eq(organization_id),
            **params,
        )
    return scan_all(tables.users, **params)


def list_org_admin_emails(organization_id: str) -> List[str]:
    admins = query_all(
        tables.users,
        KeyConditionExpression=Key("organizationId").eq(organization_id),
        FilterExpression=Attr("role").eq("OrgAdmins") & Attr("approvalStatus").eq(ApprovalStatus.APPROVED),
    )
    return [admin["email"] for admin in admins if admin.get("email")]


def update_user(
    organization_id: str,
    user_id: str,
    updates: Dict[str, Any],
    expected_status: Optional[str] = None,
) -> Dict[str, Any]:
    """
    SET the given attributes (plus updatedAt) on an existing user.

    Args:
        expected_status: If given, the update only applies while the user's
            approvalStatus still has this value

    Raises:
        AppError: NOT_FOUND, or INVALID_STATE when ``expected_status`` no longer holds
    """
    update_expressions = []
    expression_attribute_names: Dict[str, str] = {}
    expression_attribute_values: Dict[str, Any] = {}

    for name, value in {**updates, "updatedAt": datetime.now(timezone.utc).isoformat()}.items():
        update_expressions.append(f"#{name} = :{name}")
        expression_attribute_names[f"#{name}"] = name
        expression_attribute_values[f":{name}"] = value

    condition = "attribute_exists(userId)"
    if expected_status is not None:
        condition += " AND #approvalStatus = :expectedStatus"
        expression_attribute_names["#approvalStatus"] = "approvalStatus"
        expression_attribute_values[":expectedStatus"] = expected_status

    try:
        response = tables.users.update_item(
            Key={"organizationId": organization_id, "userId": user_id},
            UpdateExpression="SET " + ", ".join(update_expressions),
            ExpressionAttributeNames=expression_attribute_names,
            ExpressionAttributeValues=expression_attribute_values,
            ConditionExpression=condition,
            ReturnValues="ALL_NEW",
        )
    except ClientError as e:
        if e.response["Error"]["Code"] != "ConditionalCheckFailedException":
            raise
        if expected_status is None:
            raise AppError(ErrorCode.NOT_FOUND, "User not found", {"userId": user_id})
        raise AppError(
            ErrorCode.INVALID_STATE,
            f"User is not {expected_status}",
            {"userId": user_id, "expectedStatus": expected_status},
        )
    return response["Attributes"]


def delete_user_record(organization_id: str, user_id: str) -> None:
    tables.users.delete_item(Key={"organizationId": organization_id, "userId": user_id})
