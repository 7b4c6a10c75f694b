"""Local HTTP query server over the snapshot.

Every request re-loads the snapshot from disk; nothing is cached between
requests.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from flask import Flask, Response, jsonify, request
from flask_cors import CORS

from .. import __version__
from ..cache.store import SnapshotStore
from ..config import Settings, get_settings
from ..errors import CacheCorruptError, CacheError, CacheNotFoundError
from ..flows import trace_flows
from ..models import ResourceKind
from ..query import group_by_project, group_children, identities, search
from .errors import handle_api_errors, require_param, safe_endpoint

logger = logging.getLogger(__name__)

# Type alias for Flask responses
FlaskResponse = Union[Response, Tuple[Response, int], Tuple[Dict[str, Any], int]]

STATIC_DIR = Path(__file__).parent / "static"


def create_app(
    store: Optional[SnapshotStore] = None,
    settings: Optional[Settings] = None,
) -> Flask:
    """Create and configure the query server Flask application.

    Args:
        store: Snapshot store to read; defaults to the configured one
        settings: Settings instance; defaults to ``get_settings()``

    Returns:
        Configured Flask application
    """
    settings = settings or get_settings()
    store = store or SnapshotStore.from_settings(settings)

    app = Flask(__name__, static_folder=str(STATIC_DIR), static_url_path="/static")
    CORS(app, origins=settings.get_cors_origins())
    handle_api_errors(app)
    app.config["SNAPSHOT_STORE"] = store

    @app.route("/")
    def index() -> FlaskResponse:
        return app.send_static_file("index.html")

    @app.route("/health")
    def health() -> FlaskResponse:
        """Report whether the snapshot can be loaded."""
        status = {"status": "ok", "checks": {}, "version": __version__}
        try:
            count = len(store.load())
            status["checks"]["cache"] = f"ok ({count} resources)"
        except CacheNotFoundError:
            status["checks"]["cache"] = "missing"
            status["status"] = "degraded"
        except CacheCorruptError:
            status["checks"]["cache"] = "corrupt"
            status["status"] = "degraded"
        except CacheError:
            status["checks"]["cache"] = "error"
            status["status"] = "degraded"

        if status["status"] == "ok":
            return jsonify(status)
        return jsonify(status), 503

    @app.route("/api/search")
    @safe_endpoint("search resources")
    def api_search() -> FlaskResponse:
        """Substring search over projects and instances by name or id."""
        query = request.args.get("q", "")
        if not query:
            return jsonify([])
        results = search(store.load(), query, settings.search_services)
        return jsonify([r.to_dict() for r in results])

    @app.route("/api/resources")
    @safe_endpoint("list project resources")
    def api_resources() -> FlaskResponse:
        """Children of one project grouped by service."""
        parent = require_param(request.args, "parent")
        grouped = group_children(store.load(), parent)
        return jsonify({svc: [r.to_dict() for r in items] for svc, items in grouped.items()})

    @app.route("/api/projects")
    @safe_endpoint("list projects")
    def api_projects() -> FlaskResponse:
        """Project records plus every parented record grouped by project."""
        resources = store.load()
        projects = [r.to_dict() for r in resources if r.kind is ResourceKind.PROJECT]
        groups = {
            pid: {svc: [r.to_dict() for r in items] for svc, items in by_service.items()}
            for pid, by_service in group_by_project(resources).items()
        }
        return jsonify({"projects": projects, "groups": groups})

    @app.route("/api/iam")
    @safe_endpoint("list identities")
    def api_iam() -> FlaskResponse:
        """Service accounts and IAM roles, optionally for one project."""
        project = request.args.get("project", "").strip() or None
        return jsonify([r.to_dict() for r in identities(store.load(), project)])

    @app.route("/api/lb-flows")
    @safe_endpoint("trace load balancer flows")
    def api_lb_flows() -> FlaskResponse:
        """Load-balancer flows rebuilt for one project."""
        project = require_param(request.args, "project")
        flows = trace_flows(store.load(), project)
        return jsonify([f.to_dict() for f in flows])

    return app


def run_server(settings: Optional[Settings] = None, host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Start the development server (blocking)."""
    settings = settings or get_settings()
    app = create_app(settings=settings)
    host = host or settings.api_host
    port = port or settings.api_port
    logger.info("Starting server on http://%s:%d", host, port)
    app.run(host=host, port=port)
