"""
Pytest Configuration and Shared Fixtures
=========================================

Common fixtures used across all test modules.

For On-Call Engineers:
    If tests fail with AWS credential errors:
    1. Ensure moto is properly mocking (check @mock_aws decorator)
    2. Verify AWS env vars are set in fixtures

For Developers:
    - Import fixtures by name in test files (pytest auto-discovers conftest.py)
    - All fixtures use moto mocks (no real AWS calls)
    - Add new shared fixtures here, test-specific fixtures in test files
"""

import logging
import os
from datetime import UTC, datetime, timedelta

import jwt
import pytest

from src.facility_authz.auth.session import SessionIdentity

# Set default test environment variables at module load time
# setdefault() only sets if NOT already present, so CI values take precedence.
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_REGION", "us-east-1")

if "MEMBERSHIPS_TABLE" not in os.environ:
    os.environ["MEMBERSHIPS_TABLE"] = "test-facility-memberships"

TEST_JWT_SECRET = "test-secret-key-do-not-use-in-production"
TEST_USER_ID = "550e8400-e29b-41d4-a716-446655440000"
TEST_ORG_ID = "org-7f3a"


@pytest.fixture(autouse=True)
def reset_env_vars():
    """
    Reset environment variables before each test.

    Ensures tests don't pollute each other's environment.
    """
    original_env = os.environ.copy()

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def aws_credentials():
    """
    Set up mock AWS credentials for moto.

    Use this fixture when testing AWS SDK calls.
    """
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_REGION"] = "us-east-1"

    yield


@pytest.fixture
def jwt_secret(monkeypatch):
    """Configure JWT_SECRET for bearer-token tests."""
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
    return TEST_JWT_SECRET


# =============================================================================
# Session and Token Builders
# =============================================================================


def make_session(
    roles: list[str] | None,
    user_id: str = TEST_USER_ID,
    organization_id: str | None = TEST_ORG_ID,
) -> SessionIdentity:
    """Build a SessionIdentity for the given role list."""
    return SessionIdentity(
        user_id=user_id,
        roles=roles,
        email="pat@example.com",
        organization_id=organization_id,
        organization_name="Riverside Courts",
        organization_slug="riverside-courts",
    )


def make_token(
    roles: list[str] | None = None,
    user_id: str = TEST_USER_ID,
    secret: str = TEST_JWT_SECRET,
    expires_in: timedelta = timedelta(minutes=15),
    issuer: str | None = "facility-platform",
    **extra_claims,
) -> str:
    """Create a signed bearer token carrying the membership roles."""
    payload = {
        "sub": user_id,
        "iat": datetime.now(UTC),
        "exp": datetime.now(UTC) + expires_in,
        "org_id": TEST_ORG_ID,
        **extra_claims,
    }
    if roles is not None:
        payload["roles"] = roles
    if issuer:
        payload["iss"] = issuer
    return jwt.encode(payload, secret, algorithm="HS256")


# =============================================================================
# Log Assertions
# =============================================================================
#
# Production code logs normally; tests assert on what they expect with caplog.


def _logged(caplog, pattern: str, level: int, exact: bool) -> bool:
    for record in caplog.records:
        matches_level = record.levelno == level if exact else record.levelno >= level
        if matches_level and pattern in record.getMessage():
            return True
    return False


def assert_error_logged(caplog, pattern: str):
    """Fail unless an ERROR (or worse) record contains ``pattern``."""
    assert _logged(caplog, pattern, logging.ERROR, exact=False), (
        f"no ERROR log containing {pattern!r}"
    )


def assert_warning_logged(caplog, pattern: str):
    """Fail unless a WARNING record contains ``pattern``."""
    assert _logged(caplog, pattern, logging.WARNING, exact=True), (
        f"no WARNING log containing {pattern!r}"
    )
