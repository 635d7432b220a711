"""Tests for the /dashboards REST handler."""

import json
from typing import Any, Callable, Dict
from unittest.mock import MagicMock

import pytest

from src.handlers.dashboard_operations import lambda_handler
from tests.unit.fixtures import client_error

HR_ANALYTICS_ID = "a19998bb-32f0-4738-9e60-3af804a36975"
CONTROLIO_ID = "5faeaa7c-42ad-4c04-a270-7e9bd6934450"


def _body(response: Dict[str, Any]) -> Dict[str, Any]:
    return json.loads(response["body"])


@pytest.fixture(autouse=True)
def _env(aws_credentials: None, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("HR_ANALYTICS_DASHBOARD_ID", raising=False)
    monkeypatch.delenv("CONTROLIO_DASHBOARD_ID", raising=False)


class TestListDashboards:
    def test_hr_manager_sees_both(self, make_api_event: Callable[..., Dict[str, Any]], lambda_context: Any) -> None:
        response = lambda_handler(make_api_event("GET", "/dashboards/list", groups=["HRManagers"]), lambda_context)

        body = _body(response)
        assert response["statusCode"] == 200
        assert [dashboard["key"] for dashboard in body["dashboards"]] == ["hr-analytics", "controlio"]
        assert body["userRole"] == "HRManagers"
        assert body["dashboards"][0]["permissions"]["canDelete"] == "all"

    def test_supervisor_sees_hr_analytics_only(
        self, make_api_event: Callable[..., Dict[str, Any]], lambda_context: Any
    ) -> None:
        body = _body(lambda_handler(make_api_event("GET", "/dashboards/list", groups=["Supervisors"]), lambda_context))

        assert [dashboard["dashboardId"] for dashboard in body["dashboards"]] == [HR_ANALYTICS_ID]
        assert body["count"] == 1

    def test_employee_sees_nothing(self, make_api_event: Callable[..., Dict[str, Any]], lambda_context: Any) -> None:
        body = _body(lambda_handler(make_api_event("GET", "/dashboards/list", groups=["Employees"]), lambda_context))

        assert body == {"dashboards": [], "count": 0, "userRole": "Employees"}

    def test_dashboard_id_from_environment(
        self,
        make_api_event: Callable[..., Dict[str, Any]],
        lambda_context: Any,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("CONTROLIO_DASHBOARD_ID", "custom-controlio")

        body = _body(lambda_handler(make_api_event("GET", "/dashboards/list", groups=["OrgAdmins"]), lambda_context))

        assert body["dashboards"][1]["dashboardId"] == "custom-controlio"


class TestEmbedUrl:
    def test_embed_by_key(
        self,
        quicksight_client: MagicMock,
        make_api_event: Callable[..., Dict[str, Any]],
        lambda_context: Any,
    ) -> None:
        event = make_api_event(
            "GET", "/dashboards/embed-url", groups=["Supervisors"], email="jane@acme.com", query={"dashboard": "hr-analytics"}
        )

        response = lambda_handler(event, lambda_context)

        body = _body(response)
        assert response["statusCode"] == 200
        assert body["embedUrl"].startswith("https://")
        assert body["dashboardId"] == HR_ANALYTICS_ID
        assert body["dashboardName"] == "HR Analytics Dashboard"
        assert body["userRole"] == "Supervisors"
        assert body["sessionLifetimeMinutes"] == 600
        quicksight_client.update_dashboard_permissions.assert_called_once()

    def test_embed_session_by_dashboard_id(
        self,
        quicksight_client: MagicMock,
        make_api_event: Callable[..., Dict[str, Any]],
        lambda_context: Any,
    ) -> None:
        event = make_api_event("POST", "/dashboards/embed", groups=["OrgAdmins"], body={"dashboardId": CONTROLIO_ID})

        response = lambda_handler(event, lambda_context)

        assert response["statusCode"] == 200
        assert _body(response)["dashboardName"] == "Controlio Dashboard"

    def test_role_not_allowed(
        self,
        quicksight_client: MagicMock,
        make_api_event: Callable[..., Dict[str, Any]],
        lambda_context: Any,
    ) -> None:
        event = make_api_event("GET", "/dashboards/embed-url", groups=["Supervisors"], query={"dashboard": "controlio"})

        response = lambda_handler(event, lambda_context)

        assert response["statusCode"] == 403
        quicksight_client.generate_embed_url_for_registered_user.assert_not_called()

    def test_unknown_dashboard(
        self,
        quicksight_client: MagicMock,
        make_api_event: Callable[..., Dict[str, Any]],
        lambda_context: Any,
    ) -> None:
        event = make_api_event("GET", "/dashboards/embed-url", groups=["OrgAdmins"], query={"dashboard": "finance"})

        assert lambda_handler(event, lambda_context)["statusCode"] == 404

    def test_dashboard_required(
        self,
        quicksight_client: MagicMock,
        make_api_event: Callable[..., Dict[str, Any]],
        lambda_context: Any,
    ) -> None:
        event = make_api_event("POST", "/dashboards/embed", groups=["OrgAdmins"], body={})

        assert lambda_handler(event, lambda_context)["statusCode"] == 400

    def test_quicksight_user_missing(
        self,
        quicksight_client: MagicMock,
        make_api_event: Callable[..., Dict[str, Any]],
        lambda_context: Any,
    ) -> None:
        quicksight_client.generate_embed_url_for_registered_user.side_effect = client_error(
            "ResourceNotFoundException", "GenerateEmbedUrlForRegisteredUser"
        )
        event = make_api_event("GET", "/dashboards/embed-url", groups=["OrgAdmins"], query={"dashboard": "controlio"})

        response = lambda_handler(event, lambda_context)

        assert response["statusCode"] == 404
        assert _body(response)["errorCode"] == "QUICKSIGHT_USER_NOT_FOUND"

    def test_unexpected_quicksight_error_is_500(
        self,
        quicksight_client: MagicMock,
        make_api_event: Callable[..., Dict[str, Any]],
        lambda_context: Any,
    ) -> None:
        quicksight_client.describe_user.side_effect = client_error("ThrottlingException", "DescribeUser")
        event = make_api_event("GET", "/dashboards/embed-url", groups=["OrgAdmins"], query={"dashboard": "controlio"})

        assert lambda_handler(event, lambda_context)["statusCode"] == 500
