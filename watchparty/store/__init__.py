"""The store blueprint."""

from flask import Blueprint

bp = Blueprint("store", __name__, url_prefix="/store", template_folder="templates")

from . import routes  # noqa: E402

__all__ = ["routes"]
