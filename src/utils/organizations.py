"""
Organization records and their approval lifecycle.

Shared by the REST organization handler and the AppSync platform-admin
resolvers. Status transitions are conditional updates on the current status:

    PENDING   --approve-->    ACTIVE
    PENDING   --reject-->     REJECTED
    ACTIVE    --suspend-->    SUSPENDED
    SUSPENDED --reactivate--> ACTIVE
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from . import cognito, notifications
from .auth import Role
from .dynamodb import decode_next_token, encode_next_token, scan_all, tables
from .errors import AppError, ErrorCode
from .logging import get_logger
from .users import ApprovalStatus, build_user_item, find_user_by_email, put_new_user
from .validation import (
    email_domain,
    validate_email,
    validate_optional_text,
    validate_subdomain,
    validate_text,
    validate_tier,
)

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class OrganizationStatus:
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    REJECTED = "REJECTED"

    ALL = (PENDING, ACTIVE, SUSPENDED, REJECTED)


# action -> (required current status, new status, actor attribute, timestamp attribute)
TRANSITIONS: Dict[str, tuple] = {
    "approve": (OrganizationStatus.PENDING, OrganizationStatus.ACTIVE, "approvedBy", "approvedAt"),
    "reject": (OrganizationStatus.PENDING, OrganizationStatus.REJECTED, "rejectedBy", "rejectedAt"),
    "suspend": (OrganizationStatus.ACTIVE, OrganizationStatus.SUSPENDED, "suspendedBy", "suspendedAt"),
    "reactivate": (OrganizationStatus.SUSPENDED, OrganizationStatus.ACTIVE, "reactivatedBy", "reactivatedAt"),
}

REASON_ATTRIBUTES = {"reject": "rejectionReason", "suspend": "suspensionReason"}


def get_organization(organization_id: str) -> Optional[Dict[str, Any]]:
    response = tables.organizations.get_item(Key={"organizationId": organization_id})
    return response.get("Item")


def get_organization_required(organization_id: str) -> Dict[str, Any]:
    """
    Raises:
        AppError: NOT_FOUND
    """
    organization = get_organization(organization_id)
    if organization is None:
        raise AppError(
            ErrorCode.NOT_FOUND,
            "Organization not found",
            {"organizationId": organization_id},
        )
    return organization


def find_active_organization_by_domain(domain: str) -> Optional[Dict[str, Any]]:
    """The ACTIVE organization registered for an email domain, if any."""
    response = tables.organizations.query(
        IndexName="DomainIndex",
        KeyConditionExpression=Key("domain").eq(domain.strip().lower()),
    )
    for item in response.get("Items", []):
        if item.get("status") == OrganizationStatus.ACTIVE:
            return item
    return None


def create_organization(
    data: Dict[str, Any],
    status: str = OrganizationStatus.PENDING,
    approved_by: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Validate input and insert a new organization.

    The organization ID is the normalized subdomain.

    Raises:
        AppError: INVALID_INPUT, or ALREADY_EXISTS when the subdomain is taken
    """
    name = validate_text(data.get("name"), "name")
    subdomain = validate_subdomain(str(data.get("subdomain") or ""))
    admin_email = validate_email(str(data.get("adminEmail") or ""))
    tier = validate_tier(data.get("tier"))

    now = datetime.now(timezone.utc).isoformat()
    item: Dict[str, Any] = {
        "organizationId": subdomain,
        "name": name,
        "subdomain": subdomain,
        "domain": email_domain(admin_email),
        "adminEmail": admin_email,
        "tier": tier,
        "status": status,
        "userCount": 0,
        "dataSourcesConfigured": False,
        "createdAt": now,
        "updatedAt": now,
    }
    for optional in ("description", "companySize", "industry"):
        if data.get(optional):
            item[optional] = str(data[optional]).strip()
    if approved_by:
        item["approvedBy"] = approved_by
        item["approvedAt"] = now

    try:
        tables.organizations.put_item(
            Item=item,
            ConditionExpression="attribute_not_exists(organizationId)",
        )
    except ClientError as e:
        if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
            raise AppError(
                ErrorCode.ALREADY_EXISTS,
                "An organization with this subdomain already exists",
                {"subdomain": subdomain},
            )
        raise

    logger.info("Created organization", organization_id=subdomain, status=status)
    return item


def list_organizations(
    status: Optional[str] = None,
    limit: Optional[Any] = None,
    next_token: Optional[str] = None,
) -> Dict[str, Any]:
    """
    One page of organizations, newest first when filtered by status.

    Returns:
        ``{"items": [...], "nextToken": str | None}``
    """
    page_size = _page_size(limit)
    params: Dict[str, Any] = {"Limit": page_size}
    start_key = decode_next_token(next_token)
    if start_key:
        params["ExclusiveStartKey"] = start_key

    if status:
        normalized = status.strip().upper()
        if normalized not in OrganizationStatus.ALL:
            raise AppError(
                ErrorCode.INVALID_INPUT,
                "Invalid status filter",
                {"status": status, "allowedStatuses": list(OrganizationStatus.ALL)},
            )
        response = tables.organizations.query(
            IndexName="StatusIndex",
            KeyConditionExpression=Key("status").eq(normalized),
            ScanIndexForward=False,
            **params,
        )
    else:
        response = tables.organizations.scan(**params)

    return {
        "items": response.get("Items", []),
        "nextToken": encode_next_token(response.get("LastEvaluatedKey")),
    }


def _page_size(limit: Optional[Any]) -> int:
    if limit in (None, ""):
        return DEFAULT_PAGE_SIZE
    try:
        size = int(limit)
    except (TypeError, ValueError):
        raise AppError(ErrorCode.INVALID_INPUT, "limit must be an integer", {"limit": limit})
    return max(1, min(size, MAX_PAGE_SIZE))


def update_organization(organization_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    """
    SET the given attributes (plus updatedAt) on an existing organization.

    Raises:
        AppError: NOT_FOUND
    """
    update_expressions = []
    expression_attribute_names: Dict[str, str] = {}
    expression_attribute_values: Dict[str, Any] = {}

    for name, value in {**updates, "updatedAt": datetime.now(timezone.utc).isoformat()}.items():
        update_expressions.append(f"#{name} = :{name}")
        expression_attribute_names[f"#{name}"] = name
        expression_attribute_values[f":{name}"] = value

    try:
        response = tables.organizations.update_item(
            Key={"organizationId": organization_id},
            UpdateExpression="SET " + ", ".join(update_expressions),
            ExpressionAttributeNames=expression_attribute_names,
            ExpressionAttributeValues=expression_attribute_values,
            ConditionExpression="attribute_exists(organizationId)",
            ReturnValues="ALL_NEW",
        )
    except ClientError as e:
        if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
            raise AppError(ErrorCode.NOT_FOUND, "Organization not found", {"organizationId": organization_id})
        raise
    return response["Attributes"]


def delete_organization(organization_id: str) -> None:
    """
    Delete an organization record. Its users are left in place.

    Raises:
        AppError: NOT_FOUND
    """
    try:
        tables.organizations.delete_item(
            Key={"organizationId": organization_id},
            ConditionExpression="attribute_exists(organizationId)",
        )
    except ClientError as e:
        if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
            raise AppError(ErrorCode.NOT_FOUND, "Organization not found", {"organizationId": organization_id})
        raise


def adjust_user_count(organization_id: str, delta: int) -> None:
    tables.organizations.update_item(
        Key={"organizationId": organization_id},
        UpdateExpression="ADD userCount :delta",
        ConditionExpression="attribute_exists(organizationId)",
        ExpressionAttributeValues={":delta": delta},
    )


def transition_organization(
    organization_id: str,
    action: str,
    actor: str,
    reason: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Apply a lifecycle action as a conditional update on the current status.

    Returns:
        The updated organization

    Raises:
        AppError: NOT_FOUND, or INVALID_STATE when the organization is not in
            the status the action starts from
    """
    from_status, to_status, actor_attribute, timestamp_attribute = TRANSITIONS[action]
    now = datetime.now(timezone.utc).isoformat()

    set_values: Dict[str, Any] = {
        "status": to_status,
        actor_attribute: actor,
        timestamp_attribute: now,
        "updatedAt": now,
    }
    if action in REASON_ATTRIBUTES and reason:
        set_values[REASON_ATTRIBUTES[action]] = reason

    expression_attribute_names = {f"#{name}": name for name in set_values}
    expression_attribute_values: Dict[str, Any] = {f":{name}": value for name, value in set_values.items()}
    expression_attribute_values[":fromStatus"] = from_status
    update_expression = "SET " + ", ".join(f"#{name} = :{name}" for name in set_values)
    if action == "reactivate":
        update_expression += " REMOVE suspendedAt, suspendedBy, suspensionReason"

    try:
        response = tables.organizations.update_item(
            Key={"organizationId": organization_id},
            UpdateExpression=update_expression,
            ConditionExpression="attribute_exists(organizationId) AND #status = :fromStatus",
            ExpressionAttributeNames=expression_attribute_names,
            ExpressionAttributeValues=expression_attribute_values,
            ReturnValues="ALL_NEW",
        )
    except ClientError as e:
        if e.response["Error"]["Code"] != "ConditionalCheckFailedException":
            raise
        current = get_organization_required(organization_id)
        raise AppError(
            ErrorCode.INVALID_STATE,
            f"Cannot {action} an organization in status {current.get('status')}",
            {"organizationId": organization_id, "currentStatus": current.get("status")},
        )

    logger.info(
        "Organization status changed",
        organization_id=organization_id,
        action=action,
        status=to_status,
        actor=actor,
    )
    return response["Attributes"]


def provision_org_admin(organization: Dict[str, Any], approved_by: str) -> Dict[str, Any]:
    """
    Create (or adopt) the organization's admin in Cognito and DynamoDB.

    Cognito and DynamoDB are written separately; a failure part-way leaves
    whatever was already written.

    Returns:
        The organization with ``adminUserId``/``userCount`` set
    """
    organization_id = organization["organizationId"]
    admin_email = organization["adminEmail"]
    attributes = {
        "name": organization.get("name"),
        "custom:organizationId": organization_id,
        "custom:role": Role.ORG_ADMINS,
        "custom:approvalStatus": ApprovalStatus.APPROVED,
    }

    user_id = cognito.get_user_sub(admin_email)
    if user_id is None:
        user_id = cognito.admin_create_user(admin_email, attributes)
    else:
        cognito.update_user_attributes(admin_email, attributes)
    cognito.add_user_to_group(admin_email, Role.ORG_ADMINS)

    if find_user_by_email(admin_email) is None:
        item = build_user_item(
            organization_id=organization_id,
            user_id=user_id,
            email=admin_email,
            full_name=str(organization.get("name", "")) + " Administrator",
            role=Role.ORG_ADMINS,
            approval_status=ApprovalStatus.APPROVED,
            email_verified=True,
        )
        item["approvedBy"] = approved_by
        item["approvedAt"] = item["createdAt"]
        put_new_user(item)
        adjust_user_count(organization_id, 1)

    return update_organization(organization_id, {"adminUserId": user_id})


def approve_organization(organization_id: str, actor: str) -> Dict[str, Any]:
    """PENDING -> ACTIVE, provision the org admin, notify them."""
    organization = transition_organization(organization_id, "approve", actor)
    try:
        organization = provision_org_admin(organization, actor)
    except (ClientError, AppError) as e:
        logger.error(
            "Organization approved but admin provisioning failed",
            organization_id=organization_id,
            error=str(e),
        )
    notifications.notify_organization_approved(organization)
    return organization


def reject_organization(organization_id: str, actor: str, reason: Any = None) -> Dict[str, Any]:
    reason = validate_optional_text(reason, "reason")
    organization = transition_organization(organization_id, "reject", actor, reason)
    notifications.notify_organization_rejected(organization, reason)
    return organization


def suspend_organization(organization_id: str, actor: str, reason: Any) -> Dict[str, Any]:
    """
    Raises:
        AppError: INVALID_INPUT when no reason is given or it is not a string
    """
    reason = validate_optional_text(reason, "reason")
    if not reason:
        raise AppError(ErrorCode.INVALID_INPUT, "A suspension reason is required")
    organization = transition_organization(organization_id, "suspend", actor, reason)
    notifications.notify_organization_suspended(organization, reason)
    return organization


def reactivate_organization(organization_id: str, actor: str) -> Dict[str, Any]:
    organization = transition_organization(organization_id, "reactivate", actor)
    notifications.notify_organization_reactivated(organization)
    return organization


def compute_system_metrics() -> Dict[str, Any]:
    """Platform-wide counters from a full scan of the organizations table."""
    organizations: List[Dict[str, Any]] = scan_all(
        tables.organizations,
        ProjectionExpression="#status, userCount",
        ExpressionAttributeNames={"#status": "status"},
    )

    counts = {status: 0 for status in OrganizationStatus.ALL}
    total_users = 0
    for organization in organizations:
        status = organization.get("status")
        if status in counts:
            counts[status] += 1
        total_users += int(organization.get("userCount") or Decimal(0))

    total = len(organizations)
    return {
        "totalOrganizations": total,
        "activeOrganizations": counts[OrganizationStatus.ACTIVE],
        "pendingApprovals": counts[OrganizationStatus.PENDING],
        "suspendedOrganizations": counts[OrganizationStatus.SUSPENDED],
        "rejectedOrganizations": counts[OrganizationStatus.REJECTED],
        "totalUsers": total_users,
        "avgUsersPerOrg": round(total_users / total, 2) if total else 0,
        "lastUpdated": datetime.now(timezone.utc).isoformat(),
    }
