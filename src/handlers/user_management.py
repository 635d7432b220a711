"""
User management Lambda handler (REST ``/users*``).

SuperAdmins manage users of every organization; OrgAdmins only those of
their own. Each change is written to Cognito and DynamoDB with separate,
non-transactional calls.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Handle both Lambda (absolute) and unit test (relative) imports
try:
    from utils import cognito, notifications  # type: ignore[import-not-found]
    from utils.auth import (  # type: ignore[import-not-found]
        ROLE_HIERARCHY,
        USER_ADMINS,
        CallerIdentity,
        Role,
        get_caller_identity,
        require_any_group,
    )
    from utils.errors import AppError, ErrorCode  # type: ignore[import-not-found]
    from utils.events import get_path_parameter, get_query_parameter, parse_json_body  # type: ignore[import-not-found]
    from utils.logging import get_logger  # type: ignore[import-not-found]
    from utils.organizations import adjust_user_count, get_organization_required  # type: ignore[import-not-found]
    from utils.responses import api_response, build_user_response  # type: ignore[import-not-found]
    from utils.routing import RouteTable, dispatch_request  # type: ignore[import-not-found]
    from utils.users import (  # type: ignore[import-not-found]
        ApprovalStatus,
        build_user_item,
        delete_user_record,
        find_user_by_email,
        get_user_required,
        list_users,
        put_new_user,
        update_user,
    )
    from utils.validation import require_fields, validate_email, validate_optional_text, validate_role, validate_text  # type: ignore[import-not-found]
except ModuleNotFoundError:
    from ..utils import cognito, notifications
    from ..utils.auth import (
        ROLE_HIERARCHY,
        USER_ADMINS,
        CallerIdentity,
        Role,
        get_caller_identity,
        require_any_group,
    )
    from ..utils.errors import AppError, ErrorCode
    from ..utils.events import get_path_parameter, get_query_parameter, parse_json_body
    from ..utils.logging import get_logger
    from ..utils.organizations import adjust_user_count, get_organization_required
    from ..utils.responses import api_response, build_user_response
    from ..utils.routing import RouteTable, dispatch_request
    from ..utils.users import (
        ApprovalStatus,
        build_user_item,
        delete_user_record,
        find_user_by_email,
        get_user_required,
        list_users,
        put_new_user,
        update_user,
    )
    from ..utils.validation import require_fields, validate_email, validate_optional_text, validate_role, validate_text

logger = get_logger(__name__)

ASSIGNABLE_ROLES = frozenset(ROLE_HIERARCHY) - {Role.SUPER_ADMINS}
ORG_ADMIN_ASSIGNABLE_ROLES = ASSIGNABLE_ROLES - {Role.ORG_ADMINS}


def _caller_organization(caller: CallerIdentity) -> str:
    """The caller's organization from the token, falling back to their profile record."""
    if caller.organization_id:
        return caller.organization_id
    if caller.email:
        record = find_user_by_email(caller.email)
        if record and record.get("organizationId"):
            return str(record["organizationId"])
    raise AppError(ErrorCode.FORBIDDEN, "Caller is not associated with an organization")


def _assignable_roles(caller: CallerIdentity) -> frozenset:
    return ASSIGNABLE_ROLES if caller.is_super_admin else ORG_ADMIN_ASSIGNABLE_ROLES


def _load_managed_user(event: Dict[str, Any], caller: CallerIdentity) -> Dict[str, Any]:
    """Resolve ``{userId}`` and check the caller administers its organization."""
    require_any_group(caller, USER_ADMINS, "manage users")
    user = get_user_required(get_path_parameter(event, "userId"))
    if not caller.is_super_admin and _caller_organization(caller) != user["organizationId"]:
        raise AppError(ErrorCode.FORBIDDEN, "Access to this organization is not allowed")
    return user


def _require_peer_admin_rights(user: Dict[str, Any], caller: CallerIdentity) -> None:
    """Only SuperAdmins may change or remove another OrgAdmin."""
    if user.get("role") == Role.ORG_ADMINS and user["userId"] != caller.sub and not caller.is_super_admin:
        raise AppError(
            ErrorCode.FORBIDDEN,
            "Only SuperAdmins can manage organization administrators",
            {"requiredRoles": [Role.SUPER_ADMINS]},
        )


def list_organization_users(event: Dict[str, Any]) -> Dict[str, Any]:
    caller = get_caller_identity(event)
    require_any_group(caller, USER_ADMINS, "list users")

    if caller.is_super_admin:
        organization_id: Optional[str] = get_query_parameter(event, "organizationId")
    else:
        organization_id = _caller_organization(caller)

    users = list_users(organization_id, get_query_parameter(event, "approvalStatus"))
    users.sort(key=lambda user: str(user.get("createdAt", "")), reverse=True)
    return api_response(200, {"users": [build_user_response(user) for user in users], "count": len(users)})


def create_user(event: Dict[str, Any]) -> Dict[str, Any]:
    """Admin-created users are approved immediately and receive a Cognito invitation."""
    caller = get_caller_identity(event)
    require_any_group(caller, USER_ADMINS, "create users")

    body = parse_json_body(event)
    require_fields(body, ["email", "fullName", "role"])
    email = validate_email(str(body["email"]))
    full_name = validate_text(body["fullName"], "fullName")
    role = validate_role(str(body["role"]), _assignable_roles(caller))

    if caller.is_super_admin:
        require_fields(body, ["organizationId"])
        organization_id = str(body["organizationId"]).strip().lower()
    else:
        organization_id = _caller_organization(caller)
    get_organization_required(organization_id)

    user_id = cognito.admin_create_user(
        email,
        {
            "name": full_name,
            "custom:organizationId": organization_id,
            "custom:role": role,
            "custom:department": body.get("department"),
            "custom:supervisorId": body.get("supervisorId"),
            "custom:approvalStatus": ApprovalStatus.APPROVED,
        },
    )
    cognito.add_user_to_group(email, role)

    item = build_user_item(
        organization_id=organization_id,
        user_id=user_id,
        email=email,
        full_name=full_name,
        role=role,
        approval_status=ApprovalStatus.APPROVED,
        department=body.get("department"),
        supervisor_id=body.get("supervisorId"),
        email_verified=True,
    )
    item["approvedBy"] = caller.email or caller.sub
    item["approvedAt"] = item["createdAt"]
    put_new_user(item)
    adjust_user_count(organization_id, 1)

    logger.info("Created user", user_id=user_id, organization_id=organization_id, role=role)
    return api_response(201, {"user": build_user_response(item)})


def get_user(event: Dict[str, Any]) -> Dict[str, Any]:
    caller = get_caller_identity(event)
    user_id = get_path_parameter(event, "userId")
    if user_id == caller.sub:
        return api_response(200, {"user": build_user_response(get_user_required(user_id))})

    user = _load_managed_user(event, caller)
    return api_response(200, {"user": build_user_response(user)})


def update_user_profile(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Update profile fields; a role change on an approved user also moves
    their Cognito group membership.
    """
    caller = get_caller_identity(event)
    user = _load_managed_user(event, caller)
    _require_peer_admin_rights(user, caller)
    body = parse_json_body(event)

    updates: Dict[str, Any] = {}
    if "fullName" in body:
        updates["fullName"] = validate_text(body["fullName"], "fullName")
    for optional in ("department", "supervisorId"):
        if optional in body:
            updates[optional] = str(body[optional] or "").strip()
    if "role" in body:
        updates["role"] = validate_role(str(body["role"]), _assignable_roles(caller))
    if not updates:
        raise AppError(
            ErrorCode.INVALID_INPUT,
            "No valid fields to update",
            {"allowedFields": ["fullName", "department", "supervisorId", "role"]},
        )

    old_role = user.get("role")
    new_role = updates.get("role", old_role)
    if new_role != old_role and user.get("approvalStatus") == ApprovalStatus.APPROVED:
        if old_role:
            cognito.remove_user_from_group(user["email"], old_role)
        cognito.add_user_to_group(user["email"], new_role)

    cognito.update_user_attributes(
        user["email"],
        {
            "name": updates.get("fullName"),
            "custom:role": updates.get("role"),
            "custom:department": updates.get("department"),
            "custom:supervisorId": updates.get("supervisorId"),
        },
    )
    updated = update_user(user["organizationId"], user["userId"], updates)
    logger.info("Updated user", user_id=user["userId"], fields=sorted(updates))
    return api_response(200, {"user": build_user_response(updated)})


def approve_user(event: Dict[str, Any]) -> Dict[str, Any]:
    caller = get_caller_identity(event)
    user = _load_managed_user(event, caller)
    if user.get("approvalStatus") != ApprovalStatus.PENDING:
        raise AppError(
            ErrorCode.INVALID_STATE,
            "User is not pending approval",
            {"approvalStatus": user.get("approvalStatus")},
        )

    cognito.add_user_to_group(user["email"], user["role"])
    cognito.update_user_attributes(user["email"], {"custom:approvalStatus": ApprovalStatus.APPROVED})

    actor = caller.email or caller.sub
    updated = update_user(
        user["organizationId"],
        user["userId"],
        {
            "approvalStatus": ApprovalStatus.APPROVED,
            "approvedBy": actor,
            "approvedAt": datetime.now(timezone.utc).isoformat(),
        },
        expected_status=ApprovalStatus.PENDING,
    )
    adjust_user_count(user["organizationId"], 1)
    logger.info("Approved user", user_id=user["userId"], organization_id=user["organizationId"], approved_by=actor)

    notifications.notify_user_approved(updated)
    return api_response(200, {"user": build_user_response(updated)})


def reject_user(event: Dict[str, Any]) -> Dict[str, Any]:
    caller = get_caller_identity(event)
    user = _load_managed_user(event, caller)
    reason = validate_optional_text(parse_json_body(event).get("reason"), "reason")

    actor = caller.email or caller.sub
    updates: Dict[str, Any] = {
        "approvalStatus": ApprovalStatus.REJECTED,
        "rejectedBy": actor,
        "rejectedAt": datetime.now(timezone.utc).isoformat(),
    }
    if reason:
        updates["rejectionReason"] = reason
    updated = update_user(
        user["organizationId"],
        user["userId"],
        updates,
        expected_status=ApprovalStatus.PENDING,
    )

    cognito.update_user_attributes(user["email"], {"custom:approvalStatus": ApprovalStatus.REJECTED})
    cognito.disable_user(user["email"])
    logger.info("Rejected user", user_id=user["userId"], organization_id=user["organizationId"], rejected_by=actor)

    notifications.notify_user_rejected(updated, reason)
    return api_response(200, {"user": build_user_response(updated)})


def delete_user(event: Dict[str, Any]) -> Dict[str, Any]:
    caller = get_caller_identity(event)
    user = _load_managed_user(event, caller)
    _require_peer_admin_rights(user, caller)
    if user["userId"] == caller.sub:
        raise AppError(ErrorCode.INVALID_INPUT, "You cannot delete your own account")

    cognito.delete_user(user["email"])
    delete_user_record(user["organizationId"], user["userId"])
    if user.get("approvalStatus") == ApprovalStatus.APPROVED:
        adjust_user_count(user["organizationId"], -1)

    logger.info("Deleted user", user_id=user["userId"], organization_id=user["organizationId"], deleted_by=caller.email)
    return api_response(200, {"message": "User deleted", "userId": user["userId"]})


ROUTES: RouteTable = {
    ("GET", "/users"): list_organization_users,
    ("POST", "/users"): create_user,
    ("GET", "/users/{userId}"): get_user,
    ("PUT", "/users/{userId}"): update_user_profile,
    ("DELETE", "/users/{userId}"): delete_user,
    ("POST", "/users/{userId}/approve"): approve_user,
    ("POST", "/users/{userId}/reject"): reject_user,
}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    logger.bind(event)
    return dispatch_request(event, ROUTES, logger)
