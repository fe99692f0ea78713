"""The friends blueprint."""

from flask import Blueprint

bp = Blueprint("friends", __name__, url_prefix="/friends", template_folder="templates")

from . import routes  # noqa: E402

__all__ = ["routes"]
