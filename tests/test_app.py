"""Tests for the app factory."""

import os
import unittest
from unittest.mock import patch

from flask import request

from watchparty import create_app
from watchparty.context_processors import inject_global_context

from tests.helpers import RouteTestCase


class AppFactoryTestCase(unittest.TestCase):
    """Test case for the app factory."""

    def test_404_error_handler(self):
        """Test the custom 404 error handler."""
        app = create_app({"TESTING": True, "WTF_CSRF_ENABLED": False})

        with app.test_client() as client:
            response = client.get("/non_existent_page")
            self.assertEqual(response.status_code, 404)
            self.assertIn(b"Page not found", response.data)

    def test_api_config_from_environment(self):
        """Test that backend settings are read from the environment."""
        env_vars = {
            "API_BASE_URL": "https://api.example.com/api",
            "API_TIMEOUT": "12.5",
            "API_MAX_RETRIES": "5",
            "API_RETRY_BACKOFF": "0.5",
        }

        with patch.dict(os.environ, env_vars):
            app = create_app({"TESTING": True})

        self.assertEqual(app.config["API_BASE_URL"], "https://api.example.com/api")
        self.assertEqual(app.config["API_TIMEOUT"], 12.5)
        self.assertEqual(app.config["API_MAX_RETRIES"], 5)
        self.assertEqual(app.config["API_RETRY_BACKOFF"], 0.5)

    def test_empty_env_vars_fall_back_to_defaults(self):
        """Test that empty environment variables fall back to default values."""
        env_vars = {
            "API_BASE_URL": "",
            "API_TIMEOUT": "",
            "API_MAX_RETRIES": "",
        }

        with patch.dict(os.environ, env_vars):
            app = create_app({"TESTING": True})

        self.assertEqual(app.config["API_BASE_URL"], "http://localhost:8000/api")
        self.assertEqual(app.config["API_TIMEOUT"], 30.0)
        self.assertEqual(app.config["API_MAX_RETRIES"], 3)

    def test_test_config_overrides(self):
        app = create_app({"TESTING": True, "API_TIMEOUT": 2.0})
        self.assertEqual(app.config["API_TIMEOUT"], 2.0)

    def test_proxy_fix_respects_forwarded_proto(self):
        """Test that the request scheme comes from the proxy headers."""
        app = create_app({"TESTING": True})

        @app.route("/_scheme")
        def scheme():
            return request.scheme

        with app.test_client() as client:
            response = client.get("/_scheme", headers={"X-Forwarded-Proto": "https"})
            self.assertEqual(response.data, b"https")


class VersionContextTestCase(unittest.TestCase):
    """Test case for the app_version template variable."""

    def _render_version(self, config=None, env=None):
        app = create_app({"TESTING": True, **(config or {})})
        with patch.dict(os.environ, env or {}, clear=True), app.test_request_context():
            return inject_global_context()["app_version"]

    def test_default_is_dev(self):
        self.assertEqual(self._render_version(), "dev")

    def test_config_version_wins(self):
        version = self._render_version(
            config={"APP_VERSION": "1.4.0"}, env={"GITHUB_SHA": "abcdef1234567890"}
        )
        self.assertEqual(version, "1.4.0")

    def test_long_commit_hash_is_shortened(self):
        version = self._render_version(env={"GITHUB_SHA": "abcdef1234567890"})
        self.assertEqual(version, "abcdef1")


class MainRoutesTestCase(RouteTestCase):
    """Test case for the main blueprint."""

    client_patch_targets = ("watchparty.main.routes.get_api_client",)

    def test_health_check(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, b"OK")

    def test_backend_health_check(self):
        response = self.client.get("/health/backend")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"backend": "ok"})

        self.api.health_check.return_value = False
        response = self.client.get("/health/backend")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.get_json(), {"backend": "unavailable"})

    def test_index_redirects(self):
        response = self.client.get("/")
        self.assertIn("/auth/login", response.location)

        self.login()
        response = self.client.get("/")
        self.assertTrue(response.location.endswith("/groups/"))

    def test_footer_shows_version(self):
        self.app.config["APP_VERSION"] = "2.0.1"
        response = self.client.get("/auth/login")
        self.assertIn(b"v2.0.1", response.data)
