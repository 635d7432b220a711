"""
Authentication Lambda handler (REST ``/auth/*``).

Implements:
- GET  /auth/lookup-organization: find the active organization for an email domain (public)
- POST /auth/register-user: self-service sign up into an active organization (public)
- POST /auth/verify-email: confirm the sign up code (public)
- GET  /auth/me: the caller's profile and groups
"""

from typing import Any, Dict

# Handle both Lambda (absolute) and unit test (relative) imports
try:
    from utils import cognito, notifications  # type: ignore[import-not-found]
    from utils.auth import SELF_REGISTRATION_ROLES, get_caller_identity  # type: ignore[import-not-found]
    from utils.errors import AppError, ErrorCode  # type: ignore[import-not-found]
    from utils.events import get_query_parameter, parse_json_body  # type: ignore[import-not-found]
    from utils.logging import get_logger  # type: ignore[import-not-found]
    from utils.organizations import (  # type: ignore[import-not-found]
        OrganizationStatus,
        find_active_organization_by_domain,
        get_organization,
    )
    from utils.responses import api_response, build_user_response  # type: ignore[import-not-found]
    from utils.routing import RouteTable, dispatch_request  # type: ignore[import-not-found]
    from utils.users import (  # type: ignore[import-not-found]
        ApprovalStatus,
        build_user_item,
        find_user_by_email,
        list_org_admin_emails,
        put_new_user,
        update_user,
    )
    from utils.validation import require_fields, validate_email, validate_role, validate_text  # type: ignore[import-not-found]
except ModuleNotFoundError:
    from ..utils import cognito, notifications
    from ..utils.auth import SELF_REGISTRATION_ROLES, get_caller_identity
    from ..utils.errors import AppError, ErrorCode
    from ..utils.events import get_query_parameter, parse_json_body
    from ..utils.logging import get_logger
    from ..utils.organizations import OrganizationStatus, find_active_organization_by_domain, get_organization
    from ..utils.responses import api_response, build_user_response
    from ..utils.routing import RouteTable, dispatch_request
    from ..utils.users import (
        ApprovalStatus,
        build_user_item,
        find_user_by_email,
        list_org_admin_emails,
        put_new_user,
        update_user,
    )
    from ..utils.validation import require_fields, validate_email, validate_role, validate_text

logger = get_logger(__name__)


def lookup_organization(event: Dict[str, Any]) -> Dict[str, Any]:
    """Return the ACTIVE organization for ``?domain=``, or null."""
    domain = get_query_parameter(event, "domain")
    if not domain:
        raise AppError(ErrorCode.INVALID_INPUT, "domain query parameter is required")

    organization = find_active_organization_by_domain(domain)
    if organization is None:
        return api_response(200, {"organization": None})

    return api_response(
        200,
        {
            "organization": {
                "organizationId": organization["organizationId"],
                "name": organization.get("name"),
                "subdomain": organization.get("subdomain"),
            }
        },
    )


def register_user(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Self-service registration.

    The Cognito user is created through the public client with standard
    attributes only; the organization/role/approval attributes are written with
    admin credentials so clients can never set them. The profile record starts
    as ``pending_approval`` and the organization's admins are emailed.
    """
    body = parse_json_body(event)
    require_fields(body, ["email", "password", "fullName", "role", "organizationId"])

    email = validate_email(str(body["email"]))
    full_name = validate_text(body["fullName"], "fullName")
    role = validate_role(str(body["role"]), SELF_REGISTRATION_ROLES)
    organization_id = str(body["organizationId"]).strip().lower()
    department = body.get("department")

    organization = get_organization(organization_id)
    if organization is None:
        raise AppError(ErrorCode.NOT_FOUND, "Organization not found", {"organizationId": organization_id})
    if organization.get("status") != OrganizationStatus.ACTIVE:
        raise AppError(ErrorCode.INVALID_INPUT, "Organization is not active", {"organizationId": organization_id})

    user_id = cognito.sign_up(email, str(body["password"]), {"name": full_name})
    cognito.update_user_attributes(
        email,
        {
            "custom:organizationId": organization_id,
            "custom:role": role,
            "custom:department": department,
            "custom:approvalStatus": ApprovalStatus.PENDING,
        },
    )

    user = put_new_user(
        build_user_item(
            organization_id=organization_id,
            user_id=user_id,
            email=email,
            full_name=full_name,
            role=role,
            approval_status=ApprovalStatus.PENDING,
            department=department,
        )
    )
    logger.info("Registered user", user_id=user_id, organization_id=organization_id, role=role)

    notifications.notify_user_pending_approval(user, list_org_admin_emails(organization_id))

    return api_response(
        201,
        {
            "message": "Registration successful. Check your email for a verification code.",
            "userId": user_id,
            "approvalStatus": ApprovalStatus.PENDING,
        },
    )


def verify_email(event: Dict[str, Any]) -> Dict[str, Any]:
    body = parse_json_body(event)
    require_fields(body, ["email", "code"])
    email = validate_email(str(body["email"]))

    cognito.confirm_sign_up(email, str(body["code"]).strip())

    user = find_user_by_email(email)
    if user is not None:
        update_user(user["organizationId"], user["userId"], {"emailVerified": True})
    else:
        logger.warning("Verified email has no profile record", email=email)

    return api_response(200, {"message": "Email verified. Your account is awaiting approval."})


def get_me(event: Dict[str, Any]) -> Dict[str, Any]:
    """The caller's profile record plus their Cognito groups."""
    caller = get_caller_identity(event)
    if not caller.email:
        raise AppError(ErrorCode.UNAUTHORIZED, "Token has no email claim")

    user = find_user_by_email(caller.email)
    if user is None:
        raise AppError(ErrorCode.NOT_FOUND, "User profile not found")

    return api_response(200, {**build_user_response(user), "groups": caller.groups})


ROUTES: RouteTable = {
    ("GET", "/auth/lookup-organization"): lookup_organization,
    ("POST", "/auth/register-user"): register_user,
    ("POST", "/auth/verify-email"): verify_email,
    ("GET", "/auth/me"): get_me,
}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    logger.bind(event)
    return dispatch_request(event, ROUTES, logger)
