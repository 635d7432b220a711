"""Tests for organization records and the approval lifecycle."""

from typing import Any, Callable, Dict
from unittest.mock import MagicMock

import pytest

from src.utils import organizations
from src.utils.errors import AppError, ErrorCode
from src.utils.users import find_user_by_email
from tests.unit.fixtures import client_error


def _registration(**overrides: Any) -> Dict[str, Any]:
    return {
        "name": "Globex Corporation",
        "subdomain": "Globex",
        "adminEmail": "Hank@Globex.com",
        "tier": "professional",
        **overrides,
    }


class TestCreateOrganization:
    def test_creates_pending_organization(self, dynamodb_tables: Dict[str, Any]) -> None:
        item = organizations.create_organization(_registration(industry="Energy"))

        assert item["organizationId"] == "globex"
        assert item["domain"] == "globex.com"
        assert item["adminEmail"] == "hank@globex.com"
        assert item["tier"] == "PROFESSIONAL"
        assert item["status"] == "PENDING"
        assert item["industry"] == "Energy"
        assert "approvedBy" not in item

        stored = dynamodb_tables["organizations"].get_item(Key={"organizationId": "globex"})["Item"]
        assert stored["userCount"] == 0

    def test_active_with_approver(self, dynamodb_tables: Dict[str, Any]) -> None:
        item = organizations.create_organization(_registration(), status="ACTIVE", approved_by="ops@platform.com")

        assert item["status"] == "ACTIVE"
        assert item["approvedBy"] == "ops@platform.com"
        assert item["approvedAt"] == item["createdAt"]

    def test_duplicate_subdomain(self, dynamodb_tables: Dict[str, Any], seed_organization: Callable[..., Any]) -> None:
        seed_organization("globex")

        with pytest.raises(AppError) as exc_info:
            organizations.create_organization(_registration())

        assert exc_info.value.error_code == ErrorCode.ALREADY_EXISTS

    @pytest.mark.parametrize(
        "overrides",
        [{"name": ""}, {"subdomain": "x"}, {"adminEmail": "not-an-email"}, {"tier": "PLATINUM"}],
    )
    def test_invalid_input(self, dynamodb_tables: Dict[str, Any], overrides: Dict[str, Any]) -> None:
        with pytest.raises(AppError) as exc_info:
            organizations.create_organization(_registration(**overrides))

        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT


class TestLookup:
    def test_get_required_missing(self, dynamodb_tables: Dict[str, Any]) -> None:
        with pytest.raises(AppError) as exc_info:
            organizations.get_organization_required("nobody")

        assert exc_info.value.error_code == ErrorCode.NOT_FOUND

    def test_domain_lookup_only_returns_active(self, seed_organization: Callable[..., Any]) -> None:
        seed_organization("acme")
        seed_organization("pending-co", domain="pending.com", status="PENDING")

        assert organizations.find_active_organization_by_domain("ACME.com")["organizationId"] == "acme"
        assert organizations.find_active_organization_by_domain("pending.com") is None
        assert organizations.find_active_organization_by_domain("unknown.com") is None


class TestListOrganizations:
    def test_status_filter_newest_first(self, seed_organization: Callable[..., Any]) -> None:
        seed_organization("old", status="PENDING", createdAt="2024-01-01T00:00:00+00:00")
        seed_organization("new", status="PENDING", createdAt="2024-06-01T00:00:00+00:00")
        seed_organization("live", status="ACTIVE")

        page = organizations.list_organizations(status="pending")

        assert [item["organizationId"] for item in page["items"]] == ["new", "old"]
        assert page["nextToken"] is None

    def test_pages_with_token(self, seed_organization: Callable[..., Any]) -> None:
        for name in ("a-org", "b-org", "c-org"):
            seed_organization(name)

        first = organizations.list_organizations(limit=2)
        second = organizations.list_organizations(limit=2, next_token=first["nextToken"])

        assert len(first["items"]) == 2
        assert first["nextToken"]
        seen = {item["organizationId"] for item in first["items"] + second["items"]}
        assert seen == {"a-org", "b-org", "c-org"}

    def test_invalid_status(self, dynamodb_tables: Dict[str, Any]) -> None:
        with pytest.raises(AppError) as exc_info:
            organizations.list_organizations(status="ARCHIVED")

        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT

    def test_invalid_limit(self, dynamodb_tables: Dict[str, Any]) -> None:
        with pytest.raises(AppError):
            organizations.list_organizations(limit="lots")

    @pytest.mark.parametrize(("limit", "expected"), [(None, 20), ("5", 5), (0, 1), (500, 100)])
    def test_page_size_is_clamped(self, limit: Any, expected: int) -> None:
        assert organizations._page_size(limit) == expected


class TestTransitions:
    def test_suspend_then_reactivate_clears_suspension(
        self, seed_organization: Callable[..., Any], ses_client: MagicMock
    ) -> None:
        seed_organization("acme")

        suspended = organizations.suspend_organization("acme", "ops@platform.com", " Unpaid invoice ")
        assert suspended["status"] == "SUSPENDED"
        assert suspended["suspensionReason"] == "Unpaid invoice"
        assert suspended["suspendedBy"] == "ops@platform.com"

        reactivated = organizations.reactivate_organization("acme", "ops@platform.com")
        assert reactivated["status"] == "ACTIVE"
        assert reactivated["reactivatedBy"] == "ops@platform.com"
        assert "suspensionReason" not in reactivated
        assert "suspendedAt" not in reactivated
        assert ses_client.send_email.call_count == 2

    def test_suspend_requires_reason(self, seed_organization: Callable[..., Any]) -> None:
        seed_organization("acme")

        with pytest.raises(AppError) as exc_info:
            organizations.suspend_organization("acme", "ops@platform.com", "  ")

        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT

    def test_wrong_status_is_invalid_state(self, seed_organization: Callable[..., Any]) -> None:
        seed_organization("acme", status="ACTIVE")

        with pytest.raises(AppError) as exc_info:
            organizations.transition_organization("acme", "approve", "ops@platform.com")

        assert exc_info.value.error_code == ErrorCode.INVALID_STATE
        assert exc_info.value.details["currentStatus"] == "ACTIVE"

    def test_missing_organization_is_not_found(self, dynamodb_tables: Dict[str, Any]) -> None:
        with pytest.raises(AppError) as exc_info:
            organizations.transition_organization("ghost", "suspend", "ops@platform.com", "reason")

        assert exc_info.value.error_code == ErrorCode.NOT_FOUND

    def test_reject_keeps_record(self, seed_organization: Callable[..., Any], ses_client: MagicMock) -> None:
        seed_organization("acme", status="PENDING")

        rejected = organizations.reject_organization("acme", "ops@platform.com", "Duplicate")

        assert rejected["status"] == "REJECTED"
        assert rejected["rejectionReason"] == "Duplicate"
        assert organizations.get_organization("acme") is not None


class TestApproveOrganization:
    def test_provisions_org_admin(
        self,
        seed_organization: Callable[..., Any],
        cognito_client: MagicMock,
        ses_client: MagicMock,
    ) -> None:
        seed_organization("acme", status="PENDING")

        approved = organizations.approve_organization("acme", "ops@platform.com")

        assert approved["status"] == "ACTIVE"
        assert approved["adminUserId"] == "created-user-sub"
        cognito_client.admin_add_user_to_group.assert_called_once_with(
            UserPoolId="us-east-1_testpool", Username="admin@acme.com", GroupName="OrgAdmins"
        )
        admin = find_user_by_email("admin@acme.com")
        assert admin is not None
        assert admin["role"] == "OrgAdmins"
        assert admin["approvalStatus"] == "approved"
        assert organizations.get_organization("acme")["userCount"] == 1
        ses_client.send_email.assert_called_once()

    def test_existing_cognito_user_is_updated(
        self,
        seed_organization: Callable[..., Any],
        cognito_client: MagicMock,
        ses_client: MagicMock,
    ) -> None:
        seed_organization("acme", status="PENDING")
        cognito_client.admin_get_user.side_effect = None
        cognito_client.admin_get_user.return_value = {"UserAttributes": [{"Name": "sub", "Value": "existing-sub"}]}

        approved = organizations.approve_organization("acme", "ops@platform.com")

        assert approved["adminUserId"] == "existing-sub"
        cognito_client.admin_create_user.assert_not_called()
        cognito_client.admin_update_user_attributes.assert_called_once()

    def test_provisioning_failure_keeps_approval(
        self,
        seed_organization: Callable[..., Any],
        cognito_client: MagicMock,
        ses_client: MagicMock,
    ) -> None:
        seed_organization("acme", status="PENDING")
        cognito_client.admin_create_user.side_effect = client_error("InternalErrorException", "AdminCreateUser")

        approved = organizations.approve_organization("acme", "ops@platform.com")

        assert approved["status"] == "ACTIVE"
        assert organizations.get_organization("acme")["status"] == "ACTIVE"
        ses_client.send_email.assert_called_once()


class TestOtherWrites:
    def test_update_missing(self, dynamodb_tables: Dict[str, Any]) -> None:
        with pytest.raises(AppError) as exc_info:
            organizations.update_organization("ghost", {"name": "Ghost"})

        assert exc_info.value.error_code == ErrorCode.NOT_FOUND

    def test_delete(self, seed_organization: Callable[..., Any]) -> None:
        seed_organization("acme")

        organizations.delete_organization("acme")

        assert organizations.get_organization("acme") is None
        with pytest.raises(AppError):
            organizations.delete_organization("acme")

    def test_adjust_user_count(self, seed_organization: Callable[..., Any]) -> None:
        seed_organization("acme", userCount=3)

        organizations.adjust_user_count("acme", -1)

        assert organizations.get_organization("acme")["userCount"] == 2


class TestSystemMetrics:
    def test_counts(self, seed_organization: Callable[..., Any]) -> None:
        seed_organization("a-org", status="ACTIVE", userCount=4)
        seed_organization("b-org", status="ACTIVE", userCount=2)
        seed_organization("c-org", status="PENDING")
        seed_organization("d-org", status="SUSPENDED", userCount=1)

        metrics = organizations.compute_system_metrics()

        assert metrics["totalOrganizations"] == 4
        assert metrics["activeOrganizations"] == 2
        assert metrics["pendingApprovals"] == 1
        assert metrics["suspendedOrganizations"] == 1
        assert metrics["rejectedOrganizations"] == 0
        assert metrics["totalUsers"] == 7
        assert metrics["avgUsersPerOrg"] == 1.75
        assert metrics["lastUpdated"]

    def test_empty(self, dynamodb_tables: Dict[str, Any]) -> None:
        metrics = organizations.compute_system_metrics()

        assert metrics["totalOrganizations"] == 0
        assert metrics["avgUsersPerOrg"] == 0
