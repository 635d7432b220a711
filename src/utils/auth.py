"""
Authorization utilities based on Cognito group membership.

Cognito groups are the only authorization mechanism: every handler reads the
caller's groups from the JWT claims and checks them against a static
allow-list defined here.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import jwt

from .errors import AppError, ErrorCode


class Role:
    """Cognito group names."""

    SUPER_ADMINS = "SuperAdmins"
    ORG_ADMINS = "OrgAdmins"
    HR_MANAGERS = "HRManagers"
    SUPERVISORS = "Supervisors"
    EMPLOYEES = "Employees"


# Highest privilege first
ROLE_HIERARCHY: List[str] = [
    Role.SUPER_ADMINS,
    Role.ORG_ADMINS,
    Role.HR_MANAGERS,
    Role.SUPERVISORS,
    Role.EMPLOYEES,
]

USER_ADMINS = frozenset({Role.SUPER_ADMINS, Role.ORG_ADMINS})
COMMENT_MODERATORS = frozenset(
    {Role.SUPER_ADMINS, Role.ORG_ADMINS, Role.HR_MANAGERS, Role.SUPERVISORS}
)
COMMENT_DELETERS = frozenset({Role.SUPER_ADMINS, Role.ORG_ADMINS, Role.HR_MANAGERS})
SELF_REGISTRATION_ROLES = frozenset({Role.EMPLOYEES, Role.SUPERVISORS, Role.HR_MANAGERS})

# Dashboard / comment scope per role: "all", "own" or "none"
ROLE_PERMISSIONS: Dict[str, Dict[str, str]] = {
    Role.SUPER_ADMINS: {"canView": "all", "canComment": "all", "canApprove": "all", "canDelete": "all"},
    Role.ORG_ADMINS: {"canView": "all", "canComment": "all", "canApprove": "all", "canDelete": "all"},
    Role.HR_MANAGERS: {"canView": "all", "canComment": "all", "canApprove": "all", "canDelete": "all"},
    Role.SUPERVISORS: {"canView": "all", "canComment": "all", "canApprove": "all", "canDelete": "none"},
    Role.EMPLOYEES: {"canView": "own", "canComment": "own", "canApprove": "none", "canDelete": "none"},
}

NO_PERMISSIONS: Dict[str, str] = {
    "canView": "none",
    "canComment": "none",
    "canApprove": "none",
    "canDelete": "none",
}


@dataclass(frozen=True)
class CallerIdentity:
    """Authenticated caller as described by Cognito ID token claims."""

    sub: str
    email: Optional[str] = None
    groups: List[str] = field(default_factory=list)
    organization_id: Optional[str] = None

    def in_any(self, allowed: Iterable[str]) -> bool:
        return bool(set(self.groups) & set(allowed))

    @property
    def is_super_admin(self) -> bool:
        return Role.SUPER_ADMINS in self.groups

    @property
    def highest_role(self) -> Optional[str]:
        return get_highest_role(self.groups)


def parse_groups(raw: Any) -> List[str]:
    """
    Normalize the ``cognito:groups`` claim.

    API Gateway flattens the claim to a string ("A,B" or "[A B]"), AppSync
    passes a list.

    Examples:
        >>> parse_groups("[SuperAdmins OrgAdmins]")
        ['SuperAdmins', 'OrgAdmins']
        >>> parse_groups(["Employees"])
        ['Employees']
    """
    if not raw:
        return []
    if isinstance(raw, (list, tuple)):
        return [str(group) for group in raw if group]
    text = str(raw).strip().strip("[]")
    return [group for group in re.split(r"[,\s]+", text) if group]


def _claims_from_authorization_header(event: Dict[str, Any]) -> Dict[str, Any]:
    headers = event.get("headers") or {}
    header = headers.get("Authorization") or headers.get("authorization")
    if not header:
        return {}
    token = header.split(" ", 1)[1] if header.lower().startswith("bearer ") else header
    try:
        # Signature already verified by the API Gateway Cognito authorizer
        claims: Dict[str, Any] = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        raise AppError(ErrorCode.UNAUTHORIZED, "Invalid authorization token")
    return claims


def get_claims(event: Dict[str, Any]) -> Dict[str, Any]:
    """Return JWT claims from an API Gateway or AppSync event."""
    authorizer = (event.get("requestContext") or {}).get("authorizer") or {}
    claims = authorizer.get("claims")
    if claims:
        return dict(claims)

    identity = event.get("identity") or {}
    if identity.get("claims"):
        return dict(identity["claims"])

    return _claims_from_authorization_header(event)


def get_caller_identity(event: Dict[str, Any]) -> CallerIdentity:
    """
    Build the caller identity from the event.

    Raises:
        AppError: UNAUTHORIZED if the request carries no identity
    """
    claims = get_claims(event)
    sub = claims.get("sub") or (event.get("identity") or {}).get("sub")
    if not sub:
        raise AppError(ErrorCode.UNAUTHORIZED, "Authentication required")

    return CallerIdentity(
        sub=str(sub),
        email=claims.get("email"),
        groups=parse_groups(claims.get("cognito:groups")),
        organization_id=claims.get("custom:organizationId") or None,
    )


def get_highest_role(groups: Iterable[str]) -> Optional[str]:
    """Return the most privileged group in ``groups``, or None."""
    group_set = set(groups)
    for role in ROLE_HIERARCHY:
        if role in group_set:
            return role
    return None


def get_role_permissions(groups: Iterable[str]) -> Dict[str, str]:
    """Permission flags of the caller's highest role."""
    role = get_highest_role(groups)
    if role is None:
        return dict(NO_PERMISSIONS)
    return dict(ROLE_PERMISSIONS[role])


def require_any_group(caller: CallerIdentity, allowed: Iterable[str], action: str = "perform this action") -> None:
    """
    Raise FORBIDDEN unless the caller belongs to one of ``allowed``.

    Raises:
        AppError: FORBIDDEN
    """
    allowed_groups = sorted(set(allowed), key=_hierarchy_index)
    if not caller.in_any(allowed_groups):
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"Not authorized to {action}",
            {"requiredRoles": allowed_groups},
        )


def require_super_admin(caller: CallerIdentity, action: str = "perform this action") -> None:
    require_any_group(caller, [Role.SUPER_ADMINS], action)


def require_same_organization(caller: CallerIdentity, organization_id: Optional[str]) -> None:
    """
    SuperAdmins may act on any organization, everyone else only on their own.

    Raises:
        AppError: FORBIDDEN
    """
    if caller.is_super_admin:
        return
    if not caller.organization_id or caller.organization_id != organization_id:
        raise AppError(ErrorCode.FORBIDDEN, "Access to this organization is not allowed")


def _hierarchy_index(role: str) -> int:
    return ROLE_HIERARCHY.index(role) if role in ROLE_HIERARCHY else len(ROLE_HIERARCHY)
