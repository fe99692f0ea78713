"""Decorators for the auth blueprint."""

from functools import wraps

from flask import flash, redirect, request, session, url_for

from watchparty.core.constants import SESSION_ACCESS_TOKEN


def login_required(f):
    """Redirect to the login page if the user is not logged in.

    Usage:
    @login_required
    def protected_view():
        ...
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not session.get(SESSION_ACCESS_TOKEN):
            flash("Please log in to continue.", "info")
            return redirect(url_for("auth.login", next=request.full_path))
        return f(*args, **kwargs)

    return decorated_function
