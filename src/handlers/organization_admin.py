"""
Platform administration Lambda resolvers (AppSync).

Implements:
- createOrganization: organization signup, queued as PENDING
- listAllOrganizations: paged listing with optional status filter (SuperAdmins)
- getSystemMetrics: platform counters (SuperAdmins)
- approveOrganization / rejectOrganization / suspendOrganization /
  reactivateOrganization: lifecycle actions (SuperAdmins)

Errors propagate as AppError so AppSync reports them in the GraphQL errors
array.
"""

from typing import Any, Dict, List

# Handle both Lambda (absolute) and unit test (relative) imports
try:
    from utils import notifications, organizations  # type: ignore[import-not-found]
    from utils.auth import get_caller_identity, require_super_admin  # type: ignore[import-not-found]
    from utils.events import get_argument, get_argument_required, get_input  # type: ignore[import-not-found]
    from utils.logging import get_logger  # type: ignore[import-not-found]
    from utils.responses import OrganizationResponse, build_organization_response  # type: ignore[import-not-found]
except ModuleNotFoundError:
    from ..utils import notifications, organizations
    from ..utils.auth import get_caller_identity, require_super_admin
    from ..utils.events import get_argument, get_argument_required, get_input
    from ..utils.logging import get_logger
    from ..utils.responses import OrganizationResponse, build_organization_response

logger = get_logger(__name__)


def create_organization(event: Dict[str, Any], context: Any) -> OrganizationResponse:
    """
    Register a new organization awaiting SuperAdmin approval.

    Any authenticated caller may register; the platform admin is emailed.
    """
    logger.bind(event)
    caller = get_caller_identity(event)
    data = get_input(event)

    item = organizations.create_organization(data)
    logger.info(
        "Organization registration received",
        organization_id=item["organizationId"],
        requested_by=caller.email,
    )
    notifications.notify_registration_received(item)
    return build_organization_response(item)


def list_all_organizations(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    logger.bind(event)
    require_super_admin(get_caller_identity(event), "list organizations")

    page = organizations.list_organizations(
        status=get_argument(event, "status"),
        limit=get_argument(event, "limit"),
        next_token=get_argument(event, "nextToken"),
    )
    items: List[OrganizationResponse] = [build_organization_response(item) for item in page["items"]]
    return {"items": items, "nextToken": page["nextToken"]}


def get_system_metrics(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    logger.bind(event)
    require_super_admin(get_caller_identity(event), "view system metrics")
    return organizations.compute_system_metrics()


def approve_organization(event: Dict[str, Any], context: Any) -> OrganizationResponse:
    logger.bind(event)
    caller = get_caller_identity(event)
    require_super_admin(caller, "approve organizations")

    item = organizations.approve_organization(
        get_argument_required(event, "organizationId"),
        caller.email or caller.sub,
    )
    return build_organization_response(item)


def reject_organization(event: Dict[str, Any], context: Any) -> bool:
    logger.bind(event)
    caller = get_caller_identity(event)
    require_super_admin(caller, "reject organizations")

    organizations.reject_organization(
        get_argument_required(event, "organizationId"),
        caller.email or caller.sub,
        get_argument(event, "reason"),
    )
    return True


def suspend_organization(event: Dict[str, Any], context: Any) -> OrganizationResponse:
    logger.bind(event)
    caller = get_caller_identity(event)
    require_super_admin(caller, "suspend organizations")

    item = organizations.suspend_organization(
        get_argument_required(event, "organizationId"),
        caller.email or caller.sub,
        get_argument(event, "reason"),
    )
    return build_organization_response(item)


def reactivate_organization(event: Dict[str, Any], context: Any) -> OrganizationResponse:
    logger.bind(event)
    caller = get_caller_identity(event)
    require_super_admin(caller, "reactivate organizations")

    item = organizations.reactivate_organization(
        get_argument_required(event, "organizationId"),
        caller.email or caller.sub,
    )
    return build_organization_response(item)
