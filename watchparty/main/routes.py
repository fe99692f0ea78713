"""Routes for the main blueprint."""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import jsonify, redirect, session, url_for

from watchparty.auth.utils import get_api_client
from watchparty.core.constants import SESSION_ACCESS_TOKEN

from . import bp

if TYPE_CHECKING:
    from flask import Response


@bp.route("/")
def index() -> Response:
    """Send signed-in users to their groups and everyone else to login."""
    if session.get(SESSION_ACCESS_TOKEN):
        return redirect(url_for("group.view_groups"))
    return redirect(url_for("auth.login"))


@bp.route("/health")
def health_check():
    """Perform a simple health check."""
    return "OK", 200


@bp.route("/health/backend")
def backend_health_check():
    """Report whether the backend API is reachable."""
    healthy = get_api_client().health_check()
    return jsonify(backend="ok" if healthy else "unavailable"), 200 if healthy else 503
