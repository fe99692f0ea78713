"""REST client for the WatchParty backend."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Optional, Protocol

import backoff
import requests

from watchparty.errors import (
    AppError,
    AuthenticationError,
    NetworkError,
    NotFoundError,
    ShapeError,
    ValidationError,
)

from .normalize import as_dict, first_text

if TYPE_CHECKING:
    from .types import JSONBody

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BACKOFF = 1.0


class ServerErrorResponse(Exception):
    """A 5xx response, raised so the retry policy can see it."""

    def __init__(self, response: requests.Response) -> None:
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


RETRYABLE_ERRORS = (requests.ConnectionError, requests.Timeout, ServerErrorResponse)


class CredentialProvider(Protocol):
    """Supplies the bearer token attached to backend requests."""

    def get_token(self) -> Optional[str]:
        """Return the current access token, if any."""

    def refresh(self, client: ApiClient) -> bool:
        """Try to obtain a fresh access token. Return True on success."""

    def clear(self) -> None:
        """Forget all stored tokens."""


class StaticCredentials:
    """A fixed token, for scripts and tests."""

    def __init__(self, token: Optional[str] = None) -> None:
        """Initialize with an optional token."""
        self.token = token

    def get_token(self) -> Optional[str]:
        """Return the fixed token."""
        return self.token

    def refresh(self, client: ApiClient) -> bool:
        """Static tokens cannot be refreshed."""
        return False

    def clear(self) -> None:
        """Drop the token."""
        self.token = None


class ApiClient:
    """Thin JSON client with explicit timeout and retry policy.

    Only idempotent reads are retried, on connection errors, timeouts and 5xx
    responses, with exponential backoff. Mutations are sent exactly once.
    A 401 on an authenticated request triggers one token refresh through the
    credential provider and a single replay.
    """

    RETRYABLE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

    def __init__(
        self,
        base_url: str,
        credentials: Optional[CredentialProvider] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize the client."""
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials or StaticCredentials()
        self.timeout = timeout
        self.max_retries = max(int(max_retries), 0)
        self.retry_backoff = retry_backoff
        self.session = session or requests.Session()

    def url(self, path: str) -> str:
        """Join ``path`` onto the base URL."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self, authenticated: bool) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if authenticated:
            token = self.credentials.get_token()
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    def _send(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]],
        json: Any,
        authenticated: bool,
    ) -> requests.Response:
        max_tries = 1 + (self.max_retries if method in self.RETRYABLE_METHODS else 0)
        url = self.url(path)

        def _on_retry(details: dict) -> None:
            logger.warning(
                f"{method} {url} retry {details['tries']}/{max_tries} "
                f"after {details['wait']:.1f}s: {details.get('exception')}"
            )

        @backoff.on_exception(
            backoff.expo,
            RETRYABLE_ERRORS,
            max_tries=max_tries,
            factor=self.retry_backoff,
            jitter=None,
            on_backoff=_on_retry,
        )
        def _attempt() -> requests.Response:
            started = time.monotonic()
            try:
                response = self.session.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=self._headers(authenticated),
                    timeout=self.timeout,
                )
            except (requests.ConnectionError, requests.Timeout):
                raise
            except requests.RequestException as e:
                logger.error(f"{method} {url} could not be sent: {e}")
                raise NetworkError() from e

            elapsed_ms = (time.monotonic() - started) * 1000
            logger.debug(
                f"API Request: {method} {url} -> {response.status_code} "
                f"({elapsed_ms:.0f}ms)"
            )
            if response.status_code >= 500:
                raise ServerErrorResponse(response)
            return response

        try:
            return _attempt()
        except ServerErrorResponse as e:
            return e.response
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning(f"{method} {url} failed after {max_tries} attempt(s): {e}")
            raise NetworkError() from e

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Any = None,
        authenticated: bool = True,
        _replayed: bool = False,
    ) -> JSONBody:
        """Send a request and return the decoded JSON body (None if empty)."""
        method = method.upper()
        response = self._send(method, path, params, json, authenticated)

        if response.status_code == 401 and authenticated and not _replayed:
            if self.credentials.refresh(self):
                return self.request(
                    method,
                    path,
                    params=params,
                    json=json,
                    authenticated=authenticated,
                    _replayed=True,
                )
            self.credentials.clear()
            raise AuthenticationError()

        if not response.ok:
            raise self.error_from_response(response)
        return self._decode(response)

    @staticmethod
    def _decode(response: requests.Response) -> JSONBody:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.warning(
                f"Non-JSON body from {response.request.method if response.request else ''} "
                f"{response.url}: {e}"
            )
            raise ShapeError() from e

    @staticmethod
    def error_from_response(response: requests.Response) -> AppError:
        """Translate a non-2xx response into an application error."""
        try:
            body = response.json() if response.content else None
        except ValueError:
            body = None
        data = as_dict(body)
        message = first_text(data, ("message", "detail", "error"))
        if response.status_code == 404:
            return NotFoundError(message or "Resource not found.")
        if response.status_code == 401 and not message:
            return AuthenticationError()
        if message:
            return ValidationError(
                message, response.status_code, as_dict(data.get("errors"))
            )
        return NetworkError(status_code=response.status_code)

    def get(self, path: str, params: Optional[dict[str, Any]] = None) -> JSONBody:
        """GET ``path``."""
        return self.request("GET", path, params=params)

    def post(
        self, path: str, json: Any = None, authenticated: bool = True
    ) -> JSONBody:
        """POST ``json`` to ``path``."""
        return self.request("POST", path, json=json, authenticated=authenticated)

    def health_check(self) -> bool:
        """Return True if the backend answers its health endpoint."""
        try:
            self.request("GET", "/health/", authenticated=False)
        except AppError:
            return False
        return True
