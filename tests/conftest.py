"""
Pytest Configuration and Shared Fixtures
=========================================

Common fixtures used across all test modules.

For On-Call Engineers:
    If tests fail with AWS credential errors:
    1. Ensure moto is properly mocking (check `with mock_aws():`)
    2. Verify AWS env vars are set in fixtures

For Developers:
    - Import fixtures by name in test files (pytest auto-discovers conftest.py)
    - API tests run against create_app() with an in-memory store and a
      MockGitHub transport; no real AWS or GitHub calls
    - Use the login_as fixture to get a TestClient carrying a real session
      cookie produced by the OAuth callback
"""

import logging
import os
from urllib.parse import parse_qs, urlparse

import pytest

# Set default test environment variables at module load time
# This allows test files to import modules that read env vars at import time
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_REGION", "us-east-1")

# Disable X-Ray SDK in tests to suppress "cannot find the current segment" errors.
# X-Ray requires a Lambda runtime context with an active segment. In tests, there's no
# X-Ray daemon running, so the SDK logs ERROR for every instrumented call.
# Setting this env var makes X-Ray gracefully no-op instead of logging errors.
os.environ.setdefault("AWS_XRAY_SDK_ENABLED", "false")

if "USERS_TABLE" not in os.environ:
    os.environ["USERS_TABLE"] = "test-control-server-users"
if "ENVIRONMENT" not in os.environ:
    os.environ["ENVIRONMENT"] = "test"

from fastapi.testclient import TestClient  # noqa: E402

from src.control_server.api.handler import create_app  # noqa: E402
from src.control_server.shared.auth.github import GitHubOAuthClient  # noqa: E402
from src.control_server.shared.config import AppConfig  # noqa: E402
from tests.fixtures.mocks.mock_github import MockGitHub  # noqa: E402
from tests.fixtures.mocks.mock_user_store import InMemoryUserStore  # noqa: E402

TEST_ENV = {
    "GITHUB_SECRET": "test-github-secret",
    "GITHUB_CLIENT_ID": "test-client-id",
    "SESSION_SECRET": "test-session-secret",
    "LOGIN_LANDING_URL": "http://localhost:9090/app",
    "ENVIRONMENT": "test",
}


@pytest.fixture(autouse=True)
def reset_env_vars():
    """
    Reset environment variables before each test.

    Ensures tests don't pollute each other's environment.
    """
    # Store original env
    original_env = os.environ.copy()

    yield

    # Restore original env
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def aws_credentials():
    """
    Set up mock AWS credentials for moto.

    Use this fixture when testing AWS SDK calls.
    All tests using this fixture will use moto mocks.
    """
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"

    yield

    # Cleanup handled by reset_env_vars


@pytest.fixture
def app_config() -> AppConfig:
    """AppConfig built from a fixed test environment."""
    return AppConfig.from_env(TEST_ENV)


@pytest.fixture
def user_store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def github() -> MockGitHub:
    return MockGitHub()


@pytest.fixture
def github_client(app_config, github) -> GitHubOAuthClient:
    return GitHubOAuthClient(app_config.oauth, transport=github.transport)


@pytest.fixture
def app(app_config, user_store, github_client):
    return create_app(app_config, store=user_store, github_client=github_client)


@pytest.fixture
def make_client(app):
    """Factory for independent clients, each with its own cookie jar."""
    clients = []

    def _make() -> TestClient:
        client = TestClient(app)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


def start_login(client: TestClient) -> str:
    """Run GET /login/github and return the issued state."""
    response = client.get("/login/github", follow_redirects=False)
    assert response.status_code == 302
    query = parse_qs(urlparse(response.headers["location"]).query)
    return query["state"][0]


@pytest.fixture
def login_as(make_client, user_store, github):
    """
    Factory returning a TestClient logged in as ``username``.

    Seeds the user with ``role`` if absent, points MockGitHub at that login
    and runs the real two-phase OAuth flow.

    Example:
        def test_admin_lists_users(login_as):
            client = login_as("admin-user", "admin")
            assert client.get("/users").status_code == 200
    """

    def _login(username: str, role: str = "user") -> TestClient:
        if username not in user_store.users:
            user_store.add(username, role)
        github.set_login(username)

        client = make_client()
        state = start_login(client)
        response = client.get(
            "/login/github/callback",
            params={"code": "test-code", "state": state},
            follow_redirects=False,
        )
        assert response.status_code == 302, response.text
        return client

    return _login


# =============================================================================
# Log Validation Helpers
# =============================================================================
#
# Production code logs normally (never test-aware). Tests explicitly assert on
# expected logs using caplog.


def assert_error_logged(caplog, pattern: str):
    """
    Helper to assert an ERROR log was captured.

    Args:
        caplog: pytest caplog fixture
        pattern: String pattern to search for in log messages

    Raises:
        AssertionError: If no ERROR log matches the pattern
    """
    assert any(
        pattern in record.message
        for record in caplog.records
        if record.levelno >= logging.ERROR
    ), f"Expected ERROR log matching '{pattern}' not found"


def assert_warning_logged(caplog, pattern: str):
    """
    Helper to assert a WARNING log was captured.

    Args:
        caplog: pytest caplog fixture
        pattern: String pattern to search for in log messages

    Raises:
        AssertionError: If no WARNING log matches the pattern
    """
    assert any(
        pattern in record.message
        for record in caplog.records
        if record.levelno == logging.WARNING
    ), f"Expected WARNING log matching '{pattern}' not found"
