"""Context processors for the Flask application."""

from __future__ import annotations

import os
from datetime import datetime
from typing import Any

from flask import current_app, session

from .core.constants import SESSION_ACCESS_TOKEN, SESSION_CART, SESSION_USERNAME
from .store.services import Cart

VERSION_THRESHOLD = 10
VERSION_SHORT_LENGTH = 7


def inject_global_context() -> dict[str, Any]:
    """Injects global context variables into templates."""
    # APP_VERSION from config wins over the build environment; "dev" otherwise.
    version = (
        current_app.config.get("APP_VERSION")
        or os.environ.get("GITHUB_SHA")
        or os.environ.get("RENDER_GIT_COMMIT")
        or "dev"
    )

    # If it's a long git hash, shorten it
    if len(version) > VERSION_THRESHOLD and version != "dev":
        version = version[:VERSION_SHORT_LENGTH]

    return {
        "current_year": datetime.now().year,
        "app_version": version,
        "is_testing": current_app.config.get("TESTING", False),
    }


def inject_session_user() -> dict[str, Any]:
    """Injects the signed-in user's name and cart size into the template context."""
    return dict(
        is_logged_in=bool(session.get(SESSION_ACCESS_TOKEN)),
        current_username=session.get(SESSION_USERNAME, ""),
        cart_count=len(Cart(session.get(SESSION_CART))),
    )
