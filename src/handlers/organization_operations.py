"""
Organization Lambda handler (REST ``/organizations*``).

SuperAdmins manage every organization; members may read their own and
OrgAdmins may edit their own organization's profile fields. Status only
changes through the lifecycle actions.
"""

from typing import Any, Callable, Dict

# Handle both Lambda (absolute) and unit test (relative) imports
try:
    from utils import organizations  # type: ignore[import-not-found]
    from utils.auth import (  # type: ignore[import-not-found]
        Role,
        get_caller_identity,
        require_any_group,
        require_same_organization,
        require_super_admin,
    )
    from utils.errors import AppError, ErrorCode  # type: ignore[import-not-found]
    from utils.events import get_path_parameter, get_query_parameter, parse_json_body  # type: ignore[import-not-found]
    from utils.logging import get_logger  # type: ignore[import-not-found]
    from utils.organizations import OrganizationStatus  # type: ignore[import-not-found]
    from utils.responses import api_response, build_organization_response  # type: ignore[import-not-found]
    from utils.routing import RouteTable, dispatch_request  # type: ignore[import-not-found]
    from utils.validation import validate_text, validate_tier  # type: ignore[import-not-found]
except ModuleNotFoundError:
    from ..utils import organizations
    from ..utils.auth import (
        Role,
        get_caller_identity,
        require_any_group,
        require_same_organization,
        require_super_admin,
    )
    from ..utils.errors import AppError, ErrorCode
    from ..utils.events import get_path_parameter, get_query_parameter, parse_json_body
    from ..utils.logging import get_logger
    from ..utils.organizations import OrganizationStatus
    from ..utils.responses import api_response, build_organization_response
    from ..utils.routing import RouteTable, dispatch_request
    from ..utils.validation import validate_text, validate_tier

logger = get_logger(__name__)

ORG_ADMIN_FIELDS = ("name", "description")
SUPER_ADMIN_FIELDS = ORG_ADMIN_FIELDS + ("tier", "dataSourcesConfigured")


def list_organizations(event: Dict[str, Any]) -> Dict[str, Any]:
    caller = get_caller_identity(event)
    require_super_admin(caller, "list organizations")

    page = organizations.list_organizations(
        status=get_query_parameter(event, "status"),
        limit=get_query_parameter(event, "limit"),
        next_token=get_query_parameter(event, "nextToken"),
    )
    items = [build_organization_response(item) for item in page["items"]]
    return api_response(
        200,
        {"organizations": items, "count": len(items), "nextToken": page["nextToken"]},
    )


def create_organization(event: Dict[str, Any]) -> Dict[str, Any]:
    """SuperAdmin-created organizations skip the approval queue."""
    caller = get_caller_identity(event)
    require_super_admin(caller, "create organizations")

    item = organizations.create_organization(
        parse_json_body(event),
        status=OrganizationStatus.ACTIVE,
        approved_by=caller.email or caller.sub,
    )
    return api_response(201, {"organization": build_organization_response(item)})


def get_organization(event: Dict[str, Any]) -> Dict[str, Any]:
    caller = get_caller_identity(event)
    organization_id = get_path_parameter(event, "organizationId")
    require_same_organization(caller, organization_id)

    item = organizations.get_organization_required(organization_id)
    return api_response(200, {"organization": build_organization_response(item)})


def update_organization(event: Dict[str, Any]) -> Dict[str, Any]:
    caller = get_caller_identity(event)
    organization_id = get_path_parameter(event, "organizationId")
    require_any_group(caller, [Role.SUPER_ADMINS, Role.ORG_ADMINS], "update organizations")
    require_same_organization(caller, organization_id)

    body = parse_json_body(event)
    allowed = SUPER_ADMIN_FIELDS if caller.is_super_admin else ORG_ADMIN_FIELDS
    updates: Dict[str, Any] = {}
    if "name" in body:
        updates["name"] = validate_text(body["name"], "name")
    if "description" in body:
        updates["description"] = str(body["description"] or "").strip()
    if "tier" in body and "tier" in allowed:
        updates["tier"] = validate_tier(body["tier"])
    if "dataSourcesConfigured" in body and "dataSourcesConfigured" in allowed:
        updates["dataSourcesConfigured"] = bool(body["dataSourcesConfigured"])

    if not updates:
        raise AppError(
            ErrorCode.INVALID_INPUT,
            "No valid fields to update",
            {"allowedFields": list(allowed)},
        )

    item = organizations.update_organization(organization_id, updates)
    logger.info("Updated organization", organization_id=organization_id, fields=sorted(updates))
    return api_response(200, {"organization": build_organization_response(item)})


def delete_organization(event: Dict[str, Any]) -> Dict[str, Any]:
    caller = get_caller_identity(event)
    require_super_admin(caller, "delete organizations")
    organization_id = get_path_parameter(event, "organizationId")

    organizations.delete_organization(organization_id)
    logger.info("Deleted organization", organization_id=organization_id, deleted_by=caller.email)
    return api_response(200, {"message": "Organization deleted", "organizationId": organization_id})


def _lifecycle_route(action: str, run: Callable[..., Dict[str, Any]], takes_reason: bool) -> Callable:
    def route(event: Dict[str, Any]) -> Dict[str, Any]:
        caller = get_caller_identity(event)
        require_super_admin(caller, f"{action} organizations")
        organization_id = get_path_parameter(event, "organizationId")
        actor = caller.email or caller.sub

        if takes_reason:
            item = run(organization_id, actor, parse_json_body(event).get("reason"))
        else:
            item = run(organization_id, actor)
        return api_response(200, {"organization": build_organization_response(item)})

    return route


ROUTES: RouteTable = {
    ("GET", "/organizations"): list_organizations,
    ("POST", "/organizations"): create_organization,
    ("GET", "/organizations/{organizationId}"): get_organization,
    ("PUT", "/organizations/{organizationId}"): update_organization,
    ("DELETE", "/organizations/{organizationId}"): delete_organization,
    ("POST", "/organizations/{organizationId}/approve"): _lifecycle_route(
        "approve", organizations.approve_organization, takes_reason=False
    ),
    ("POST", "/organizations/{organizationId}/reject"): _lifecycle_route(
        "reject", organizations.reject_organization, takes_reason=True
    ),
    ("POST", "/organizations/{organizationId}/suspend"): _lifecycle_route(
        "suspend", organizations.suspend_organization, takes_reason=True
    ),
    ("POST", "/organizations/{organizationId}/reactivate"): _lifecycle_route(
        "reactivate", organizations.reactivate_organization, takes_reason=False
    ),
}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    logger.bind(event)
    return dispatch_request(event, ROUTES, logger)
