"""Initialize the Flask app and its extensions."""

import logging
import os

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from .extensions import csrf


def _env_float(name, default):
    value = os.environ.get(name)
    return float(value) if value else default


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(
        __name__,
        instance_relative_config=True,
        static_folder="static",
        static_url_path="/static",
    )

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        API_BASE_URL=os.environ.get("API_BASE_URL") or "http://localhost:8000/api",
        API_TIMEOUT=_env_float("API_TIMEOUT", 30.0),
        API_MAX_RETRIES=int(os.environ.get("API_MAX_RETRIES") or 3),
        API_RETRY_BACKOFF=_env_float("API_RETRY_BACKOFF", 1.0),
        APP_VERSION=os.environ.get("APP_VERSION"),
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        SESSION_COOKIE_SECURE=(os.environ.get("SESSION_COOKIE_SECURE") or "false").lower()
        in ["true", "1", "t"],
    )

    if test_config:
        app.config.update(test_config)

    # Core modules log through their own module loggers.
    logging.getLogger("watchparty.core").setLevel(
        logging.DEBUG if app.debug else logging.INFO
    )

    # Initialize extensions
    csrf.init_app(app)

    # Register blueprints
    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import group as group_bp

    app.register_blueprint(group_bp.bp)

    from . import store as store_bp

    app.register_blueprint(store_bp.bp)

    from . import search as search_bp

    app.register_blueprint(search_bp.bp)

    from . import friends as friends_bp

    app.register_blueprint(friends_bp.bp)

    from . import main as main_bp

    app.register_blueprint(main_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    from .context_processors import inject_global_context, inject_session_user

    app.context_processor(inject_global_context)
    app.context_processor(inject_session_user)

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
