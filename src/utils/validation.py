"""
Input validation utilities.

Validates organization subdomains, email addresses, roles and free-text
fields before anything is written to DynamoDB or Cognito.
"""

import re
from typing import Any, Dict, Iterable, List, Optional

from .errors import AppError, ErrorCode

SUBDOMAIN_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{1,61}[a-z0-9])$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

ORGANIZATION_TIERS = ("FREE", "STARTER", "PROFESSIONAL", "ENTERPRISE")
MAX_COMMENT_LENGTH = 2000
MAX_NAME_LENGTH = 200


def require_fields(data: Dict[str, Any], fields: Iterable[str]) -> None:
    """
    Ensure every field in ``fields`` is present and non-blank.

    Raises:
        AppError: INVALID_INPUT listing the missing fields
    """
    missing: List[str] = []
    for name in fields:
        value = data.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)

    if missing:
        raise AppError(
            ErrorCode.INVALID_INPUT,
            f"Missing required fields: {', '.join(missing)}",
            {"missingFields": missing},
        )


def normalize_subdomain(subdomain: str) -> str:
    """
    Lowercase a requested subdomain and replace disallowed characters.

    Examples:
        >>> normalize_subdomain("Acme Corp")
        'acme-corp'
    """
    return re.sub(r"[^a-z0-9-]", "-", subdomain.strip().lower())


def validate_subdomain(subdomain: str) -> str:
    """
    Normalize and validate an organization subdomain.

    Returns:
        Normalized subdomain (also used as the organization ID)

    Raises:
        AppError: If the subdomain is not 3-63 chars of [a-z0-9-]
    """
    normalized = normalize_subdomain(subdomain)
    if not SUBDOMAIN_PATTERN.match(normalized):
        raise AppError(
            ErrorCode.INVALID_INPUT,
            "Subdomain must be 3-63 characters of lowercase letters, numbers and hyphens",
            {"subdomain": subdomain},
        )
    return normalized


def validate_email(email: str) -> str:
    """
    Validate and lowercase an email address.

    Raises:
        AppError: If the address is malformed
    """
    normalized = email.strip().lower()
    if not EMAIL_PATTERN.match(normalized):
        raise AppError(ErrorCode.INVALID_INPUT, "Invalid email address", {"email": email})
    return normalized


def email_domain(email: str) -> str:
    return email.rsplit("@", 1)[-1].lower()


def validate_tier(tier: Optional[str], default: str = "FREE") -> str:
    """
    Validate an organization tier, defaulting when absent.

    Raises:
        AppError: If the tier is unknown
    """
    if not tier:
        return default
    normalized = tier.strip().upper()
    if normalized not in ORGANIZATION_TIERS:
        raise AppError(
            ErrorCode.INVALID_INPUT,
            "Invalid tier",
            {"tier": tier, "allowedTiers": list(ORGANIZATION_TIERS)},
        )
    return normalized


def validate_role(role: str, allowed: Iterable[str]) -> str:
    """
    Check that ``role`` is one of ``allowed`` group names.

    Raises:
        AppError: INVALID_INPUT with the allowed roles
    """
    allowed_roles = sorted(allowed)
    if role not in allowed_roles:
        raise AppError(
            ErrorCode.INVALID_INPUT,
            "Invalid role",
            {"role": role, "allowedRoles": allowed_roles},
        )
    return role


def validate_text(value: Any, field_name: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """Trim a text field and enforce non-empty / max length."""
    if not isinstance(value, str) or not value.strip():
        raise AppError(ErrorCode.INVALID_INPUT, f"{field_name} is required")
    text = value.strip()
    if len(text) > max_length:
        raise AppError(
            ErrorCode.INVALID_INPUT,
            f"{field_name} must be at most {max_length} characters",
            {"maxLength": max_length},
        )
    return text


def validate_optional_text(value: Any, field_name: str, max_length: int = MAX_COMMENT_LENGTH) -> Optional[str]:
    """Like validate_text, but None or blank becomes None."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise AppError(ErrorCode.INVALID_INPUT, f"{field_name} must be a string")
    if not value.strip():
        return None
    return validate_text(value, field_name, max_length)


def validate_comment_content(content: Any) -> str:
    return validate_text(content, "content", MAX_COMMENT_LENGTH)
