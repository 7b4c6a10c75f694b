"""JSON error responses for the query server.

Request problems are raised as ``APIError`` subclasses; snapshot failures
arrive as ``CacheError`` and are translated by ``api_error_for``. Both are
rendered by the handlers ``handle_api_errors`` registers, so route bodies
only deal with the happy path.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, Mapping, Optional, Tuple

from flask import jsonify

from ..errors import CacheCorruptError, CacheError, CacheNotFoundError

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Error carrying its own HTTP status.

    Usage:
        raise APIError("Snapshot is being rebuilt", status_code=503)
        raise APIError("Invalid input", status_code=400, details={"field": "q"})
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}

    def to_response(self) -> Tuple[Any, int]:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return jsonify(body), self.status_code


class ValidationError(APIError):
    """A query parameter is missing or unusable."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, status_code=400, details={"field": field} if field else None)


class SnapshotUnavailableError(APIError):
    """No snapshot has been written yet."""

    def __init__(self, message: str = "Failed to load cache. Run 'sync' first."):
        super().__init__(message, status_code=503)


class SnapshotReadError(APIError):
    """The snapshot exists but cannot be used."""

    def __init__(self, message: str = "Failed to load cache"):
        super().__init__(message, status_code=500)


def api_error_for(error: CacheError) -> APIError:
    """Translate a snapshot store failure into the response the client sees."""
    if isinstance(error, CacheNotFoundError):
        return SnapshotUnavailableError()
    if isinstance(error, CacheCorruptError):
        return SnapshotReadError("Cache file is corrupt. Run 'sync' to rebuild it.")
    return SnapshotReadError()


def require_param(args: Mapping[str, str], name: str) -> str:
    """Return the stripped query parameter ``name``.

    Raises:
        ValidationError: the parameter is absent or blank
    """
    value = (args.get(name) or "").strip()
    if not value:
        raise ValidationError(f"query parameter '{name}' is required", field=name)
    return value


def handle_api_errors(app):
    """Register the JSON error handlers on ``app``."""

    @app.errorhandler(APIError)
    def handle_api_error(error: APIError):
        return error.to_response()

    @app.errorhandler(CacheError)
    def handle_cache_error(error: CacheError):
        response = api_error_for(error)
        log = logger.warning if response.status_code == 503 else logger.error
        log("snapshot unavailable: %s", error)
        return response.to_response()

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def handle_internal_error(error):
        logger.exception("Internal server error")
        return jsonify({"error": "Internal server error"}), 500


def safe_endpoint(operation_name: str):
    """Hide unexpected failures of one endpoint behind a generic 500.

    ``APIError`` and ``CacheError`` pass through to the registered handlers.
    Anything else is logged with its traceback and answered with
    ``{"error": "Error in <operation_name>"}``.

    Usage:
        @app.route("/api/lb-flows")
        @safe_endpoint("trace load balancer flows")
        def api_lb_flows():
            ...
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            try:
                return func(*args, **kwargs)
            except (APIError, CacheError):
                raise
            except Exception as e:
                logger.error(
                    f"Unexpected error in {operation_name}: {type(e).__name__}: {e}",
                    exc_info=True
                )
                return jsonify({"error": f"Error in {operation_name}"}), 500

        return wrapper

    return decorator
