"""Session-backed credentials and the per-request API client."""

from __future__ import annotations

from typing import Any, Optional

from flask import current_app, g, session

from watchparty.core.client import ApiClient
from watchparty.core.constants import (
    AUTH_REFRESH_PATH,
    SESSION_ACCESS_TOKEN,
    SESSION_REFRESH_TOKEN,
    SESSION_USER_ID,
    SESSION_USERNAME,
)
from watchparty.core.normalize import as_dict, first_text
from watchparty.errors import AppError


class SessionCredentialProvider:
    """Reads and refreshes the bearer token stored in the Flask session."""

    def get_token(self) -> Optional[str]:
        """Return the access token of the signed-in user."""
        return session.get(SESSION_ACCESS_TOKEN)

    def refresh(self, client: ApiClient) -> bool:
        """Exchange the refresh token for a new access token."""
        refresh_token = session.get(SESSION_REFRESH_TOKEN)
        if not refresh_token:
            return False
        try:
            body = client.post(
                AUTH_REFRESH_PATH, json={"refresh": refresh_token}, authenticated=False
            )
        except AppError as e:
            current_app.logger.warning(f"Token refresh failed: {e.message}")
            return False
        data = as_dict(body)
        access = first_text(data, ("access", "access_token"))
        if not access:
            current_app.logger.warning("Token refresh returned no access token.")
            return False
        session[SESSION_ACCESS_TOKEN] = access
        new_refresh = first_text(data, ("refresh", "refresh_token"))
        if new_refresh:
            session[SESSION_REFRESH_TOKEN] = new_refresh
        return True

    def clear(self) -> None:
        """Remove every credential from the session."""
        for key in (
            SESSION_ACCESS_TOKEN,
            SESSION_REFRESH_TOKEN,
            SESSION_USER_ID,
            SESSION_USERNAME,
        ):
            session.pop(key, None)


def get_api_client() -> ApiClient:
    """Return the API client for the current request, creating it once."""
    if "api_client" not in g:
        config = current_app.config
        g.api_client = ApiClient(
            config["API_BASE_URL"],
            credentials=SessionCredentialProvider(),
            timeout=float(config["API_TIMEOUT"]),
            max_retries=int(config["API_MAX_RETRIES"]),
            retry_backoff=float(config["API_RETRY_BACKOFF"]),
        )
    return g.api_client


def store_login(body: Any) -> bool:
    """Save the tokens and identity returned by the login endpoint."""
    data = as_dict(body)
    access = first_text(data, ("access", "access_token"))
    if not access:
        return False
    user = as_dict(data.get("user"))
    session[SESSION_ACCESS_TOKEN] = access
    session[SESSION_REFRESH_TOKEN] = first_text(data, ("refresh", "refresh_token"))
    session[SESSION_USER_ID] = first_text(user, ("id", "user_id")) or first_text(
        data, ("user_id",)
    )
    session[SESSION_USERNAME] = first_text(user, ("username", "email"))
    return True


def current_user_id() -> str:
    """Return the signed-in user's id, or an empty string."""
    return str(session.get(SESSION_USER_ID) or "")


def mutation_key(*parts: object) -> str:
    """Scope a mutation key to the signed-in user."""
    return ":".join([current_user_id() or "anonymous", *(str(p) for p in parts)])
