"""Tests for ID and key builders."""

import re

from src.utils.ids import comment_partition_key, comment_sort_key, generate_comment_id


class TestGenerateCommentId:
    def test_format(self) -> None:
        comment_id = generate_comment_id(1700000000000)

        assert re.fullmatch(r"comment_1700000000000_[a-z0-9]{9}", comment_id)

    def test_uses_current_time_by_default(self) -> None:
        assert re.fullmatch(r"comment_\d{13}_[a-z0-9]{9}", generate_comment_id())

    def test_unique(self) -> None:
        assert generate_comment_id(1) != generate_comment_id(1)


class TestCommentKeys:
    def test_partition_key(self) -> None:
        assert comment_partition_key("acme", "hr-analytics", "turnover") == "ORG#acme#DASH#hr-analytics#METRIC#turnover"

    def test_sort_key_orders_by_time(self) -> None:
        earlier = comment_sort_key("2024-01-01T00:00:00+00:00", "comment_b")
        later = comment_sort_key("2024-02-01T00:00:00+00:00", "comment_a")

        assert earlier.startswith("COMMENT#")
        assert earlier < later
