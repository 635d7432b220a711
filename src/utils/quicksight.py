"""
QuickSight registered-user embedding helpers.

Every platform user is embedded as a QUICKSIGHT identity-type READER whose
user name is their email address.
"""

import os
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from .dynamodb import get_required_env
from .errors import AppError, ErrorCode
from .logging import get_logger

if TYPE_CHECKING:
    from mypy_boto3_quicksight import QuickSightClient

logger = get_logger(__name__)

SESSION_LIFETIME_MINUTES = 600

DASHBOARD_READER_ACTIONS = [
    "quicksight:DescribeDashboard",
    "quicksight:ListDashboardVersions",
    "quicksight:QueryDashboard",
]


def _get_quicksight_client() -> "QuickSightClient":
    return boto3.client("quicksight")


def _account_id() -> str:
    return get_required_env("AWS_ACCOUNT_ID")


def _namespace() -> str:
    return os.getenv("QUICKSIGHT_NAMESPACE", "default")


def _allowed_domains() -> List[str]:
    raw = os.getenv("EMBED_ALLOWED_DOMAINS", "")
    return [domain.strip() for domain in raw.split(",") if domain.strip()]


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def ensure_reader_user(email: str) -> str:
    """
    Make sure a QuickSight reader exists for ``email``.

    Returns:
        The user's ARN
    """
    client = _get_quicksight_client()
    try:
        response = client.describe_user(
            AwsAccountId=_account_id(), Namespace=_namespace(), UserName=email
        )
        return str(response["User"]["Arn"])
    except ClientError as e:
        if _error_code(e) != "ResourceNotFoundException":
            raise

    logger.info("Registering QuickSight reader", email=email)
    response = client.register_user(
        AwsAccountId=_account_id(),
        Namespace=_namespace(),
        IdentityType="QUICKSIGHT",
        Email=email,
        UserName=email,
        UserRole="READER",
    )
    return str(response["User"]["Arn"])


def grant_dashboard_access(dashboard_id: str, principal_arn: str) -> bool:
    """
    Grant a user read access to a dashboard.

    A failure here is logged only; the user may already have access
    through a group.
    """
    try:
        _get_quicksight_client().update_dashboard_permissions(
            AwsAccountId=_account_id(),
            DashboardId=dashboard_id,
            GrantPermissions=[{"Principal": principal_arn, "Actions": DASHBOARD_READER_ACTIONS}],
        )
    except ClientError as e:
        logger.warning(
            "Could not grant dashboard permissions",
            dashboard_id=dashboard_id,
            error=str(e),
        )
        return False
    return True


def generate_embed_url(
    principal_arn: str,
    dashboard_id: str,
    session_minutes: int = SESSION_LIFETIME_MINUTES,
    allowed_domains: Optional[List[str]] = None,
) -> str:
    """
    Generate a signed embed URL for a registered user.

    Raises:
        AppError: QUICKSIGHT_USER_NOT_FOUND if QuickSight does not know the user or dashboard
    """
    params: Dict[str, Any] = {
        "AwsAccountId": _account_id(),
        "SessionLifetimeInMinutes": session_minutes,
        "UserArn": principal_arn,
        "ExperienceConfiguration": {"Dashboard": {"InitialDashboardId": dashboard_id}},
    }
    domains = allowed_domains if allowed_domains is not None else _allowed_domains()
    if domains:
        params["AllowedDomains"] = domains

    try:
        response = _get_quicksight_client().generate_embed_url_for_registered_user(**params)
    except ClientError as e:
        if _error_code(e) == "ResourceNotFoundException":
            raise AppError(
                ErrorCode.QUICKSIGHT_USER_NOT_FOUND,
                "QuickSight user not found. Contact your administrator to enable dashboard access.",
            )
        raise
    return str(response["EmbedUrl"])
