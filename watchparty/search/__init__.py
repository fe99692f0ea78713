"""The search blueprint."""

from flask import Blueprint

bp = Blueprint("search", __name__, url_prefix="/search", template_folder="templates")

from . import routes  # noqa: E402

__all__ = ["routes"]
