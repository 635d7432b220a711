"""
Request routing for API Gateway proxy handlers.

Each REST Lambda owns one resource tree and maps ``(httpMethod, resource)``
pairs to route functions. This module applies the shared catch-all: CORS
preflight, unknown routes, AppError mapping and the generic 500.
"""

from typing import Any, Callable, Dict, Tuple

from .errors import AppError, ErrorCode
from .logging import StructuredLogger
from .responses import api_response, error_response, internal_error_response

RouteHandler = Callable[[Dict[str, Any]], Dict[str, Any]]
RouteTable = Dict[Tuple[str, str], RouteHandler]


def dispatch_request(event: Dict[str, Any], routes: RouteTable, logger: StructuredLogger) -> Dict[str, Any]:
    """
    Route an API Gateway event to its handler and convert failures.

    Args:
        event: API Gateway REST proxy event
        routes: ``{(method, resource): handler}``
        logger: Logger bound to the current invocation

    Returns:
        API Gateway proxy response
    """
    method = (event.get("httpMethod") or "").upper()
    resource = event.get("resource") or event.get("path") or ""

    if method == "OPTIONS":
        return api_response(200, {})

    route = routes.get((method, resource))
    if route is None:
        logger.warning("Route not found", method=method, resource=resource)
        return api_response(404, {"error": "Route not found", "errorCode": ErrorCode.NOT_FOUND})

    logger.info("Handling request", method=method, resource=resource)
    try:
        return route(event)
    except AppError as e:
        logger.warning(
            "Request failed",
            method=method,
            resource=resource,
            error_code=e.error_code,
            error=e.message,
        )
        return error_response(e)
    except Exception as e:
        logger.error("Unhandled error", method=method, resource=resource, error=str(e))
        return internal_error_response()
