"""
Dashboard comment Lambda handler (REST ``/comments*``).

Comments are attached to a metric on a dashboard and go through moderation:
new and edited comments are ``pending`` until a Supervisor (or above)
approves or disapproves them. Employees only see and comment on their own
metrics.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

# Handle both Lambda (absolute) and unit test (relative) imports
try:
    from utils.auth import (  # type: ignore[import-not-found]
        COMMENT_DELETERS,
        COMMENT_MODERATORS,
        CallerIdentity,
        Role,
        get_caller_identity,
        require_any_group,
    )
    from utils.dynamodb import query_all, tables  # type: ignore[import-not-found]
    from utils.errors import AppError, ErrorCode  # type: ignore[import-not-found]
    from utils.events import get_path_parameter, get_query_parameter, parse_json_body  # type: ignore[import-not-found]
    from utils.ids import COMMENT_SK_PREFIX, comment_partition_key, comment_sort_key, generate_comment_id  # type: ignore[import-not-found]
    from utils.logging import get_logger  # type: ignore[import-not-found]
    from utils.responses import api_response, build_comment_response  # type: ignore[import-not-found]
    from utils.routing import RouteTable, dispatch_request  # type: ignore[import-not-found]
    from utils.validation import require_fields, validate_comment_content  # type: ignore[import-not-found]
except ModuleNotFoundError:
    from ..utils.auth import (
        COMMENT_DELETERS,
        COMMENT_MODERATORS,
        CallerIdentity,
        Role,
        get_caller_identity,
        require_any_group,
    )
    from ..utils.dynamodb import query_all, tables
    from ..utils.errors import AppError, ErrorCode
    from ..utils.events import get_path_parameter, get_query_parameter, parse_json_body
    from ..utils.ids import COMMENT_SK_PREFIX, comment_partition_key, comment_sort_key, generate_comment_id
    from ..utils.logging import get_logger
    from ..utils.responses import api_response, build_comment_response
    from ..utils.routing import RouteTable, dispatch_request
    from ..utils.validation import require_fields, validate_comment_content

logger = get_logger(__name__)

COMMENT_RETENTION_DAYS = 365
DEFAULT_DISAPPROVAL_REASON = "No reason provided"


class CommentStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    ALL = (PENDING, APPROVED, REJECTED)


def _require_organization(caller: CallerIdentity) -> str:
    if not caller.organization_id:
        raise AppError(ErrorCode.FORBIDDEN, "Caller is not associated with an organization")
    return caller.organization_id


def _is_moderator(caller: CallerIdentity) -> bool:
    return caller.in_any(COMMENT_MODERATORS)


def _find_comment(partition_key: str, comment_id: str) -> Optional[Dict[str, Any]]:
    items = query_all(
        tables.comments,
        KeyConditionExpression=Key("PK").eq(partition_key) & Key("SK").begins_with(COMMENT_SK_PREFIX),
        FilterExpression=Attr("commentId").eq(comment_id),
    )
    return items[0] if items else None


def _load_comment(caller: CallerIdentity, comment_id: str, dashboard_id: Any, metric_id: Any) -> Dict[str, Any]:
    """
    Locate a comment in the caller's organization.

    Raises:
        AppError: INVALID_INPUT without dashboard/metric, NOT_FOUND if absent
    """
    organization_id = _require_organization(caller)
    require_fields({"dashboardId": dashboard_id, "metricId": metric_id}, ["dashboardId", "metricId"])

    comment = _find_comment(comment_partition_key(organization_id, str(dashboard_id), str(metric_id)), comment_id)
    if comment is None:
        raise AppError(ErrorCode.NOT_FOUND, "Comment not found", {"commentId": comment_id})
    return comment


def list_comments(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    List the organization's comments, newest first.

    With both ``dashboardId`` and ``metricId`` this is a key query on the
    metric's partition; otherwise the organization index is used.
    """
    caller = get_caller_identity(event)
    organization_id = _require_organization(caller)
    dashboard_id = get_query_parameter(event, "dashboardId")
    metric_id = get_query_parameter(event, "metricId")
    status = get_query_parameter(event, "status")

    filters = []
    if status:
        if status not in CommentStatus.ALL:
            raise AppError(ErrorCode.INVALID_INPUT, "Invalid status filter", {"status": status})
        filters.append(Attr("status").eq(status))
    if not _is_moderator(caller):
        filters.append(Attr("userId").eq(caller.sub))

    if dashboard_id and metric_id:
        params: Dict[str, Any] = {
            "KeyConditionExpression": Key("PK").eq(comment_partition_key(organization_id, dashboard_id, metric_id))
            & Key("SK").begins_with(COMMENT_SK_PREFIX),
        }
    else:
        params = {
            "IndexName": "OrganizationIndex",
            "KeyConditionExpression": Key("organizationId").eq(organization_id),
        }
        if dashboard_id:
            filters.append(Attr("dashboardId").eq(dashboard_id))
        elif metric_id:
            filters.append(Attr("metricId").eq(metric_id))

    if filters:
        combined = filters[0]
        for condition in filters[1:]:
            combined = combined & condition
        params["FilterExpression"] = combined

    items: List[Dict[str, Any]] = query_all(tables.comments, ScanIndexForward=False, **params)
    comments = [build_comment_response(item) for item in items]
    return api_response(200, {"comments": comments, "count": len(comments)})


def create_comment(event: Dict[str, Any]) -> Dict[str, Any]:
    caller = get_caller_identity(event)
    organization_id = _require_organization(caller)
    body = parse_json_body(event)
    require_fields(body, ["dashboardId", "metricId", "content"])
    content = validate_comment_content(body["content"])

    if caller.highest_role is None:
        raise AppError(ErrorCode.FORBIDDEN, "Not authorized to comment")
    if caller.highest_role == Role.EMPLOYEES and body.get("metricType") != "own":
        raise AppError(ErrorCode.FORBIDDEN, "Employees can only comment on their own metrics")

    now = datetime.now(timezone.utc)
    created_at = now.isoformat()
    comment_id = generate_comment_id(int(now.timestamp() * 1000))
    dashboard_id = str(body["dashboardId"])
    metric_id = str(body["metricId"])

    item: Dict[str, Any] = {
        "PK": comment_partition_key(organization_id, dashboard_id, metric_id),
        "SK": comment_sort_key(created_at, comment_id),
        "commentId": comment_id,
        "organizationId": organization_id,
        "dashboardId": dashboard_id,
        "metricId": metric_id,
        "userId": caller.sub,
        "userEmail": caller.email,
        "content": content,
        "status": CommentStatus.PENDING,
        "createdAt": created_at,
        "updatedAt": created_at,
        "ttl": int((now + timedelta(days=COMMENT_RETENTION_DAYS)).timestamp()),
    }
    if body.get("metricType"):
        item["metricType"] = str(body["metricType"])
    item = {k: v for k, v in item.items() if v is not None}

    tables.comments.put_item(Item=item)
    logger.info("Created comment", comment_id=comment_id, dashboard_id=dashboard_id, metric_id=metric_id)
    return api_response(201, {"comment": build_comment_response(item)})


def get_comment(event: Dict[str, Any]) -> Dict[str, Any]:
    caller = get_caller_identity(event)
    comment = _load_comment(
        caller,
        get_path_parameter(event, "commentId"),
        get_query_parameter(event, "dashboardId"),
        get_query_parameter(event, "metricId"),
    )
    if not _is_moderator(caller) and comment.get("userId") != caller.sub:
        raise AppError(ErrorCode.FORBIDDEN, "Not authorized to view this comment")
    return api_response(200, {"comment": build_comment_response(comment)})


def update_comment(event: Dict[str, Any]) -> Dict[str, Any]:
    """Authors may edit; the edit goes back into the moderation queue."""
    caller = get_caller_identity(event)
    body = parse_json_body(event)
    comment = _load_comment(caller, get_path_parameter(event, "commentId"), body.get("dashboardId"), body.get("metricId"))
    if comment.get("userId") != caller.sub:
        raise AppError(ErrorCode.FORBIDDEN, "Only the author can edit a comment")
    require_fields(body, ["content"])

    response = tables.comments.update_item(
        Key={"PK": comment["PK"], "SK": comment["SK"]},
        UpdateExpression=(
            "SET #content = :content, #status = :pending, updatedAt = :now "
            "REMOVE approvedBy, approvedAt, disapprovedBy, disapprovedAt, disapprovalReason"
        ),
        ExpressionAttributeNames={"#status": "status", "#content": "content"},
        ExpressionAttributeValues={
            ":content": validate_comment_content(body["content"]),
            ":pending": CommentStatus.PENDING,
            ":now": datetime.now(timezone.utc).isoformat(),
        },
        ReturnValues="ALL_NEW",
    )
    return api_response(200, {"comment": build_comment_response(response["Attributes"])})


def delete_comment(event: Dict[str, Any]) -> Dict[str, Any]:
    caller = get_caller_identity(event)
    require_any_group(caller, COMMENT_DELETERS, "delete comments")
    comment_id = get_path_parameter(event, "commentId")
    comment = _load_comment(
        caller,
        comment_id,
        get_query_parameter(event, "dashboardId"),
        get_query_parameter(event, "metricId"),
    )

    tables.comments.delete_item(Key={"PK": comment["PK"], "SK": comment["SK"]})
    logger.info("Deleted comment", comment_id=comment_id, deleted_by=caller.email)
    return api_response(200, {"message": "Comment deleted", "commentId": comment_id})


def _moderate(event: Dict[str, Any], approve: bool) -> Dict[str, Any]:
    caller = get_caller_identity(event)
    require_any_group(caller, COMMENT_MODERATORS, "moderate comments")
    body = parse_json_body(event)
    comment_id = get_path_parameter(event, "commentId")
    comment = _load_comment(caller, comment_id, body.get("dashboardId"), body.get("metricId"))

    actor = caller.email or caller.sub
    now = datetime.now(timezone.utc).isoformat()
    if approve:
        new_status = CommentStatus.APPROVED
        update_expression = "SET #status = :status, approvedBy = :actor, approvedAt = :now, updatedAt = :now"
        values: Dict[str, Any] = {":status": new_status, ":actor": actor, ":now": now}
    else:
        new_status = CommentStatus.REJECTED
        update_expression = (
            "SET #status = :status, disapprovedBy = :actor, disapprovedAt = :now, "
            "disapprovalReason = :reason, updatedAt = :now"
        )
        values = {
            ":status": new_status,
            ":actor": actor,
            ":now": now,
            ":reason": str(body.get("reason") or DEFAULT_DISAPPROVAL_REASON),
        }
    values[":pending"] = CommentStatus.PENDING

    try:
        response = tables.comments.update_item(
            Key={"PK": comment["PK"], "SK": comment["SK"]},
            UpdateExpression=update_expression,
            ConditionExpression="#status = :pending",
            ExpressionAttributeNames={"#status": "status"},
            ExpressionAttributeValues=values,
            ReturnValues="ALL_NEW",
        )
    except ClientError as e:
        if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
            raise AppError(
                ErrorCode.INVALID_STATE,
                "Only pending comments can be moderated",
                {"commentId": comment_id, "currentStatus": comment.get("status")},
            )
        raise

    logger.info("Moderated comment", comment_id=comment_id, status=new_status, moderator=actor)
    return api_response(200, {"comment": build_comment_response(response["Attributes"])})


def approve_comment(event: Dict[str, Any]) -> Dict[str, Any]:
    return _moderate(event, approve=True)


def disapprove_comment(event: Dict[str, Any]) -> Dict[str, Any]:
    return _moderate(event, approve=False)


ROUTES: RouteTable = {
    ("GET", "/comments"): list_comments,
    ("POST", "/comments"): create_comment,
    ("GET", "/comments/{commentId}"): get_comment,
    ("PUT", "/comments/{commentId}"): update_comment,
    ("DELETE", "/comments/{commentId}"): delete_comment,
    ("POST", "/comments/{commentId}/approve"): approve_comment,
    ("POST", "/comments/{commentId}/disapprove"): disapprove_comment,
}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    logger.bind(event)
    return dispatch_request(event, ROUTES, logger)
