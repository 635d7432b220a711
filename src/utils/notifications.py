"""
Transactional email via SES.

Email is best effort: a failure to send is logged and reported as ``False``
but never fails the request that triggered it.
"""

import os
from html import escape
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .logging import get_logger

if TYPE_CHECKING:
    from mypy_boto3_ses import SESClient

logger = get_logger(__name__)

DEFAULT_FROM_EMAIL = "noreply@a1strategy.net"
DEFAULT_PORTAL_URL = "https://app.a1strategy.net"


def _get_ses_client() -> "SESClient":
    return boto3.client("ses")


def _from_email() -> str:
    return os.getenv("FROM_EMAIL", DEFAULT_FROM_EMAIL)


def _portal_url() -> str:
    return os.getenv("PORTAL_URL", DEFAULT_PORTAL_URL).rstrip("/")


def send_email(to_addresses: Iterable[str], subject: str, html_body: str) -> bool:
    """
    Send an HTML email.

    Returns:
        True if SES accepted the message
    """
    recipients = [address for address in to_addresses if address]
    if not recipients:
        logger.warning("Email skipped, no recipients", subject=subject)
        return False

    try:
        _get_ses_client().send_email(
            Source=_from_email(),
            Destination={"ToAddresses": recipients},
            Message={
                "Subject": {"Data": subject, "Charset": "UTF-8"},
                "Body": {"Html": {"Data": html_body, "Charset": "UTF-8"}},
            },
        )
    except (ClientError, BotoCoreError) as e:
        logger.error("Failed to send email", subject=subject, recipients=recipients, error=str(e))
        return False

    logger.info("Email sent", subject=subject, recipient_count=len(recipients))
    return True


def _page(title: str, *paragraphs: str) -> str:
    body = "".join(f"<p>{paragraph}</p>" for paragraph in paragraphs)
    return f"<html><body><h2>{escape(title)}</h2>{body}</body></html>"


def _org_name(organization: Mapping[str, Any]) -> str:
    return escape(str(organization.get("name") or organization.get("organizationId", "")))


def notify_registration_received(organization: Mapping[str, Any]) -> bool:
    """Tell the platform administrator a new organization awaits approval."""
    admin_email = os.getenv("PLATFORM_ADMIN_EMAIL")
    if not admin_email:
        logger.warning("PLATFORM_ADMIN_EMAIL not set, registration email skipped")
        return False

    html = _page(
        "New Organization Registration",
        f"<strong>{_org_name(organization)}</strong> has requested access.",
        f"Subdomain: {escape(str(organization.get('subdomain', '')))}",
        f"Admin email: {escape(str(organization.get('adminEmail', '')))}",
        f"Tier: {escape(str(organization.get('tier', '')))}",
        f'<a href="{_portal_url()}/admin/organizations">Review pending organizations</a>',
    )
    return send_email([admin_email], f"New organization registration: {organization.get('name')}", html)


def notify_organization_approved(organization: Mapping[str, Any]) -> bool:
    html = _page(
        "Your organization has been approved",
        f"<strong>{_org_name(organization)}</strong> is now active.",
        "Check your inbox for your temporary password, then sign in at "
        f'<a href="{_portal_url()}/login">{_portal_url()}</a>.',
    )
    return send_email([str(organization.get("adminEmail", ""))], "Your organization has been approved", html)


def notify_organization_rejected(organization: Mapping[str, Any], reason: Optional[str]) -> bool:
    paragraphs = [f"The registration for <strong>{_org_name(organization)}</strong> was not approved."]
    if reason:
        paragraphs.append(f"Reason: {escape(reason)}")
    html = _page("Organization registration update", *paragraphs)
    return send_email([str(organization.get("adminEmail", ""))], "Organization registration update", html)


def notify_organization_suspended(organization: Mapping[str, Any], reason: str) -> bool:
    html = _page(
        "Organization suspended",
        f"Access for <strong>{_org_name(organization)}</strong> has been suspended.",
        f"Reason: {escape(reason)}",
    )
    return send_email([str(organization.get("adminEmail", ""))], "Your organization has been suspended", html)


def notify_organization_reactivated(organization: Mapping[str, Any]) -> bool:
    html = _page(
        "Organization reactivated",
        f"Access for <strong>{_org_name(organization)}</strong> has been restored.",
    )
    return send_email([str(organization.get("adminEmail", ""))], "Your organization has been reactivated", html)


def notify_user_pending_approval(user: Mapping[str, Any], admin_emails: Iterable[str]) -> bool:
    html = _page(
        "New user awaiting approval",
        f"{escape(str(user.get('fullName', '')))} ({escape(str(user.get('email', '')))}) "
        f"registered as {escape(str(user.get('role', '')))}.",
        f'<a href="{_portal_url()}/users">Review pending users</a>',
    )
    return send_email(admin_emails, "New user awaiting approval", html)


def notify_user_approved(user: Mapping[str, Any]) -> bool:
    html = _page(
        "Your account has been approved",
        f"Hello {escape(str(user.get('fullName', '')))}, you can now sign in at "
        f'<a href="{_portal_url()}/login">{_portal_url()}</a>.',
    )
    return send_email([str(user.get("email", ""))], "Your account has been approved", html)


def notify_user_rejected(user: Mapping[str, Any], reason: Optional[str]) -> bool:
    paragraphs = [f"Hello {escape(str(user.get('fullName', '')))}, your account request was not approved."]
    if reason:
        paragraphs.append(f"Reason: {escape(reason)}")
    html = _page("Account request update", *paragraphs)
    return send_email([str(user.get("email", ""))], "Account request update", html)
