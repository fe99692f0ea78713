"""Common utilities for tests."""

import json as jsonlib
import unittest
from typing import Any, Optional
from unittest.mock import MagicMock, patch

import requests

from watchparty import create_app
from watchparty.core.constants import (
    SESSION_ACCESS_TOKEN,
    SESSION_REFRESH_TOKEN,
    SESSION_USER_ID,
    SESSION_USERNAME,
)

MOCK_USER_ID = "7"
MOCK_USERNAME = "alice"


def make_response(
    status_code: int = 200,
    body: Any = None,
    raw: Optional[bytes] = None,
    url: str = "http://api.test/endpoint/",
) -> requests.Response:
    """Build a real ``requests.Response`` carrying ``body`` as JSON."""
    response = requests.Response()
    response.status_code = status_code
    response.url = url
    if raw is not None:
        response._content = raw
    elif body is not None:
        response._content = jsonlib.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = b""
    return response


class FakeApi:
    """Stands in for ``ApiClient`` in route tests.

    ``gets`` and ``posts`` map a backend path to the body to return, or to an
    exception instance to raise. Every call is recorded.
    """

    def __init__(self):
        self.gets: dict[str, Any] = {}
        self.posts: dict[str, Any] = {}
        self.calls: list[tuple] = []
        self.health_check = MagicMock(return_value=True)

    def _answer(self, table, path):
        value = table.get(path)
        if isinstance(value, Exception):
            raise value
        return value

    def get(self, path, params=None):
        self.calls.append(("GET", path, params))
        return self._answer(self.gets, path)

    def post(self, path, json=None, authenticated=True):
        self.calls.append(("POST", path, json))
        return self._answer(self.posts, path)

    def posted(self, path):
        """Return the bodies POSTed to ``path``."""
        return [body for method, p, body in self.calls if method == "POST" and p == path]


class RouteTestCase(unittest.TestCase):
    """Base class for blueprint tests with a faked backend."""

    client_patch_targets: tuple = ()

    def setUp(self):
        """Set up a test client with the API client patched out."""
        self.api = FakeApi()
        for target in self.client_patch_targets:
            patcher = patch(target, return_value=self.api)
            patcher.start()
            self.addCleanup(patcher.stop)

        self.app = create_app(
            {"TESTING": True, "WTF_CSRF_ENABLED": False, "SECRET_KEY": "test"}
        )
        self.client = self.app.test_client()

    def login(self, user_id=MOCK_USER_ID, username=MOCK_USERNAME):
        """Put a signed-in user into the session."""
        with self.client.session_transaction() as sess:
            sess[SESSION_ACCESS_TOKEN] = "access-token"
            sess[SESSION_REFRESH_TOKEN] = "refresh-token"
            sess[SESSION_USER_ID] = user_id
            sess[SESSION_USERNAME] = username
