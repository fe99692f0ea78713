"""Routes for the auth blueprint."""

from flask import current_app, flash, redirect, render_template, request, session, url_for

from watchparty.core.constants import (
    AUTH_LOGIN_PATH,
    AUTH_LOGOUT_PATH,
    SESSION_ACCESS_TOKEN,
    SESSION_REFRESH_TOKEN,
)
from watchparty.errors import AppError

from . import bp
from .forms import LoginForm
from .utils import SessionCredentialProvider, get_api_client, store_login


def _safe_next(target):
    """Only follow redirects back into this site."""
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return url_for("group.view_groups")


@bp.route("/login", methods=["GET", "POST"])
def login():
    """Log in against the backend and keep the tokens in the session."""
    if session.get(SESSION_ACCESS_TOKEN):
        return redirect(url_for("group.view_groups"))

    form = LoginForm()
    if form.validate_on_submit():
        client = get_api_client()
        try:
            body = client.post(
                AUTH_LOGIN_PATH,
                json={"username": form.username.data, "password": form.password.data},
                authenticated=False,
            )
        except AppError as e:
            current_app.logger.warning(f"Login failed for {form.username.data}: {e.message}")
            flash(e.message, "danger")
            return render_template("login.html", form=form), 401

        if not store_login(body):
            current_app.logger.error("Login response did not contain an access token.")
            flash("Login failed. Please try again.", "danger")
            return render_template("login.html", form=form), 502

        flash("Welcome back!", "success")
        return redirect(_safe_next(request.args.get("next")))

    return render_template("login.html", form=form)


@bp.route("/logout", methods=["POST"])
def logout():
    """Invalidate the refresh token upstream and clear the session."""
    refresh_token = session.get(SESSION_REFRESH_TOKEN)
    if refresh_token:
        try:
            get_api_client().post(AUTH_LOGOUT_PATH, json={"refresh": refresh_token})
        except AppError as e:
            current_app.logger.info(f"Backend logout failed: {e.message}")
    SessionCredentialProvider().clear()
    session.clear()
    flash("You have been logged out.", "info")
    return redirect(url_for(".login"))
