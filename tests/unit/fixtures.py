"""
Test data builders for Lambda function tests.

Provides factory functions for AWS error responses and records so test
modules do not repeat boilerplate.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from botocore.exceptions import ClientError


def client_error(code: str, operation: str = "Operation") -> ClientError:
    """Build a botocore ClientError with the given AWS error code."""
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def make_organization(organization_id: str = "acme", **overrides: Any) -> Dict[str, Any]:
    """Organization record with sensible defaults (ACTIVE, no users)."""
    now = datetime.now(timezone.utc).isoformat()
    return {
        "organizationId": organization_id,
        "name": organization_id.title(),
        "subdomain": organization_id,
        "domain": f"{organization_id}.com",
        "adminEmail": f"admin@{organization_id}.com",
        "tier": "STARTER",
        "status": "ACTIVE",
        "userCount": 0,
        "dataSourcesConfigured": False,
        "createdAt": now,
        "updatedAt": now,
        **overrides,
    }


def make_user(user_id: str, organization_id: str = "acme", **overrides: Any) -> Dict[str, Any]:
    """Approved Employees user record; email is ``<user_id>@<organization_id>.com``."""
    now = datetime.now(timezone.utc).isoformat()
    return {
        "organizationId": organization_id,
        "userId": user_id,
        "email": f"{user_id}@{organization_id}.com",
        "fullName": user_id.replace("-", " ").title(),
        "role": "Employees",
        "approvalStatus": "approved",
        "emailVerified": True,
        "createdAt": now,
        "updatedAt": now,
        **overrides,
    }
