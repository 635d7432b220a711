"""Tests for src/utils/dynamodb.py - centralized table access utilities."""

import base64
from decimal import Decimal
from typing import Any, Dict, Generator
from unittest.mock import MagicMock

import pytest

from src.utils.dynamodb import (
    TableAccessor,
    clear_all_overrides,
    decode_next_token,
    encode_next_token,
    get_required_env,
    override_table,
    reset_singleton,
    scan_all,
    tables,
)
from src.utils.errors import AppError, ErrorCode


@pytest.fixture(autouse=True)
def reset_between_tests() -> Generator[None, None, None]:
    """Reset singleton and overrides between tests."""
    clear_all_overrides()
    yield
    clear_all_overrides()
    reset_singleton()


class TestGetRequiredEnv:
    def test_returns_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("USERS_TABLE_NAME", "users-table")

        assert get_required_env("USERS_TABLE_NAME") == "users-table"

    def test_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SOME_UNSET_VAR", raising=False)

        assert get_required_env("SOME_UNSET_VAR", "fallback") == "fallback"

    def test_missing_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SOME_UNSET_VAR", raising=False)

        with pytest.raises(ValueError, match="SOME_UNSET_VAR"):
            get_required_env("SOME_UNSET_VAR")


class TestTableAccessor:
    def test_singleton(self) -> None:
        assert TableAccessor() is TableAccessor()

    def test_override(self) -> None:
        fake_table = MagicMock()
        override_table("comments", fake_table)

        assert tables.comments is fake_table

    def test_table_name_from_env(self, dynamodb_tables: Dict[str, Any]) -> None:
        assert tables.organizations.name == "hr-organizations-ue1-test"
        assert tables.users.name == "hr-users-ue1-test"


class TestNextToken:
    def test_round_trip_preserves_key(self) -> None:
        key = {"organizationId": "acme", "status": "ACTIVE", "createdAt": "2024-01-01T00:00:00+00:00"}

        assert decode_next_token(encode_next_token(key)) == key

    def test_numbers_decode_as_decimal(self) -> None:
        token = encode_next_token({"organizationId": "acme", "n": Decimal("5")})

        assert decode_next_token(token) == {"organizationId": "acme", "n": Decimal("5")}

    def test_empty(self) -> None:
        assert encode_next_token(None) is None
        assert decode_next_token(None) is None

    @pytest.mark.parametrize(
        "token",
        ["%%%", base64.urlsafe_b64encode(b"not json").decode(), base64.urlsafe_b64encode(b"[1, 2]").decode()],
    )
    def test_invalid_token(self, token: str) -> None:
        with pytest.raises(AppError) as exc_info:
            decode_next_token(token)

        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT


class TestScanAll:
    def test_follows_pagination(self) -> None:
        table = MagicMock()
        table.scan.side_effect = [
            {"Items": [{"id": 1}], "LastEvaluatedKey": {"id": 1}},
            {"Items": [{"id": 2}]},
        ]

        items = scan_all(table, Limit=1)

        assert items == [{"id": 1}, {"id": 2}]
        assert table.scan.call_args_list[1].kwargs["ExclusiveStartKey"] == {"id": 1}
