"""
Dashboard Lambda handler (REST ``/dashboards/*``).

Implements:
- GET  /dashboards/list: dashboards visible to the caller with their permissions
- GET  /dashboards/embed-url?dashboard=<key>: QuickSight embed URL
- POST /dashboards/embed: same, with ``{"dashboardId": <key or QuickSight id>}``
"""

import os
from typing import Any, Dict, List, Optional

# Handle both Lambda (absolute) and unit test (relative) imports
try:
    from utils import quicksight  # type: ignore[import-not-found]
    from utils.auth import (  # type: ignore[import-not-found]
        CallerIdentity,
        Role,
        get_caller_identity,
        get_role_permissions,
        require_any_group,
    )
    from utils.errors import AppError, ErrorCode  # type: ignore[import-not-found]
    from utils.events import get_query_parameter, parse_json_body  # type: ignore[import-not-found]
    from utils.logging import get_logger  # type: ignore[import-not-found]
    from utils.responses import api_response  # type: ignore[import-not-found]
    from utils.routing import RouteTable, dispatch_request  # type: ignore[import-not-found]
except ModuleNotFoundError:
    from ..utils import quicksight
    from ..utils.auth import CallerIdentity, Role, get_caller_identity, get_role_permissions, require_any_group
    from ..utils.errors import AppError, ErrorCode
    from ..utils.events import get_query_parameter, parse_json_body
    from ..utils.logging import get_logger
    from ..utils.responses import api_response
    from ..utils.routing import RouteTable, dispatch_request

logger = get_logger(__name__)

DASHBOARD_CONFIG: Dict[str, Dict[str, Any]] = {
    "hr-analytics": {
        "dashboardId": "a19998bb-32f0-4738-9e60-3af804a36975",
        "idEnv": "HR_ANALYTICS_DASHBOARD_ID",
        "name": "HR Analytics Dashboard",
        "description": "Workforce, turnover and engagement metrics",
        "allowedRoles": [Role.SUPER_ADMINS, Role.ORG_ADMINS, Role.HR_MANAGERS, Role.SUPERVISORS],
    },
    "controlio": {
        "dashboardId": "5faeaa7c-42ad-4c04-a270-7e9bd6934450",
        "idEnv": "CONTROLIO_DASHBOARD_ID",
        "name": "Controlio Dashboard",
        "description": "Employee activity and productivity monitoring",
        "allowedRoles": [Role.SUPER_ADMINS, Role.ORG_ADMINS, Role.HR_MANAGERS],
    },
}


def _dashboard_id(key: str) -> str:
    config = DASHBOARD_CONFIG[key]
    return os.getenv(config["idEnv"]) or str(config["dashboardId"])


def _resolve_dashboard_key(requested: str) -> Optional[str]:
    """Accept either a catalogue key or the QuickSight dashboard ID."""
    if requested in DASHBOARD_CONFIG:
        return requested
    for key in DASHBOARD_CONFIG:
        if _dashboard_id(key) == requested:
            return key
    return None


def list_dashboards(event: Dict[str, Any]) -> Dict[str, Any]:
    caller = get_caller_identity(event)
    permissions = get_role_permissions(caller.groups)

    dashboards: List[Dict[str, Any]] = []
    for key, config in DASHBOARD_CONFIG.items():
        if not caller.in_any(config["allowedRoles"]):
            continue
        dashboards.append(
            {
                "key": key,
                "dashboardId": _dashboard_id(key),
                "name": config["name"],
                "description": config["description"],
                "permissions": permissions,
            }
        )

    return api_response(
        200,
        {"dashboards": dashboards, "count": len(dashboards), "userRole": caller.highest_role},
    )


def _embed(caller: CallerIdentity, requested: Optional[str]) -> Dict[str, Any]:
    if not requested:
        raise AppError(ErrorCode.INVALID_INPUT, "A dashboard is required")

    key = _resolve_dashboard_key(requested)
    if key is None:
        raise AppError(ErrorCode.NOT_FOUND, "Dashboard not found", {"dashboard": requested})

    config = DASHBOARD_CONFIG[key]
    require_any_group(caller, config["allowedRoles"], f"view {config['name']}")
    if not caller.email:
        raise AppError(ErrorCode.UNAUTHORIZED, "Token has no email claim")

    dashboard_id = _dashboard_id(key)
    principal_arn = quicksight.ensure_reader_user(caller.email)
    quicksight.grant_dashboard_access(dashboard_id, principal_arn)
    embed_url = quicksight.generate_embed_url(principal_arn, dashboard_id)

    logger.info("Generated embed URL", dashboard=key, user_role=caller.highest_role)
    return api_response(
        200,
        {
            "embedUrl": embed_url,
            "dashboardId": dashboard_id,
            "dashboardName": config["name"],
            "permissions": get_role_permissions(caller.groups),
            "userRole": caller.highest_role,
            "sessionLifetimeMinutes": quicksight.SESSION_LIFETIME_MINUTES,
        },
    )


def get_embed_url(event: Dict[str, Any]) -> Dict[str, Any]:
    return _embed(get_caller_identity(event), get_query_parameter(event, "dashboard"))


def create_embed_session(event: Dict[str, Any]) -> Dict[str, Any]:
    body = parse_json_body(event)
    return _embed(get_caller_identity(event), body.get("dashboardId") or body.get("dashboard"))


ROUTES: RouteTable = {
    ("GET", "/dashboards/list"): list_dashboards,
    ("GET", "/dashboards/embed-url"): get_embed_url,
    ("POST", "/dashboards/embed"): create_embed_session,
}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    logger.bind(event)
    return dispatch_request(event, ROUTES, logger)
