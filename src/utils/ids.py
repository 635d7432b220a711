"""
ID and key builders for DynamoDB records.

Comments live under a composite partition key that scopes them to an
organization, a dashboard and a metric:

    PK = ORG#<organizationId>#DASH#<dashboardId>#METRIC#<metricId>
    SK = COMMENT#<createdAt>#<commentId>
"""

import secrets
import string
import time
from typing import Optional

COMMENT_SK_PREFIX = "COMMENT#"

_ALPHABET = string.ascii_lowercase + string.digits


def generate_comment_id(now_ms: Optional[int] = None) -> str:
    """
    Generate a comment ID: ``comment_<epoch ms>_<9 random chars>``.

    Examples:
        >>> generate_comment_id(1700000000000).startswith('comment_1700000000000_')
        True
    """
    millis = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(9))
    return f"comment_{millis}_{suffix}"


def comment_partition_key(organization_id: str, dashboard_id: str, metric_id: str) -> str:
    """
    Examples:
        >>> comment_partition_key('acme', 'hr-analytics', 'turnover')
        'ORG#acme#DASH#hr-analytics#METRIC#turnover'
    """
    return f"ORG#{organization_id}#DASH#{dashboard_id}#METRIC#{metric_id}"


def comment_sort_key(created_at: str, comment_id: str) -> str:
    """
    Examples:
        >>> comment_sort_key('2024-01-01T00:00:00+00:00', 'comment_1_abc')
        'COMMENT#2024-01-01T00:00:00+00:00#comment_1_abc'
    """
    return f"{COMMENT_SK_PREFIX}{created_at}#{comment_id}"
