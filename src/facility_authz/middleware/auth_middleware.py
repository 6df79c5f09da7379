"""Bearer-token identity source.

Reads ``Authorization: Bearer <jwt>`` and turns the validated claims into a
``SessionIdentity``. The authentication service issues these tokens with the
user's active organization and its roles embedded, so no database lookup is
needed per request.

Outcomes:
- No header, or an invalid/expired token: anonymous (``None``)
- Valid token: ``SessionIdentity`` from the claims
- JWT_SECRET not configured while a token is presented: ``IdentitySourceError``
  (a deployment problem, never reported as 401)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import jwt
from starlette.requests import Request

from src.facility_authz.auth.session import SessionIdentity, claims_user_id
from src.facility_authz.errors.auth_errors import IdentitySourceError
from src.facility_authz.logging_utils import sanitize_for_log, user_id_prefix

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class JWTConfig:
    """Configuration for JWT validation.

    Attributes:
        secret: Secret key for HMAC validation
        algorithm: JWT algorithm (default: HS256)
        issuer: Expected issuer (optional, for validation)
        leeway_seconds: Clock skew tolerance (default: 60s)
        roles_claim: Claim carrying the membership role list
    """

    secret: str
    algorithm: str = "HS256"
    issuer: str | None = "facility-platform"
    leeway_seconds: int = 60
    roles_claim: str = "roles"


def get_jwt_config() -> JWTConfig | None:
    """Load JWT configuration from environment.

    Returns:
        JWTConfig if JWT_SECRET is set, None otherwise
    """
    secret = os.environ.get("JWT_SECRET")
    if not secret:
        return None

    return JWTConfig(
        secret=secret,
        algorithm=os.environ.get("JWT_ALGORITHM", "HS256"),
        issuer=os.environ.get("JWT_ISSUER", "facility-platform"),
        leeway_seconds=int(os.environ.get("JWT_LEEWAY_SECONDS", "60")),
        roles_claim=os.environ.get("JWT_ROLES_CLAIM", "roles"),
    )


def validate_jwt(token: str, config: JWTConfig) -> dict[str, Any] | None:
    """Validate a JWT and return its claims.

    Args:
        token: JWT string (without "Bearer " prefix)
        config: Validation settings

    Returns:
        Claims dict if valid, None if the token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            config.secret,
            algorithms=[config.algorithm],
            issuer=config.issuer,
            leeway=config.leeway_seconds,
            options={"require": ["sub", "exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        logger.debug("JWT token has expired")
    except jwt.InvalidIssuerError:
        logger.debug("JWT token has invalid issuer")
    except jwt.InvalidSignatureError:
        logger.warning("JWT token has invalid signature")
    except jwt.MissingRequiredClaimError as e:
        logger.debug(f"JWT token missing required claim: {e}")
    except jwt.InvalidTokenError:
        logger.debug("JWT token is malformed")
    return None


def _get_bearer_token(headers: Mapping[str, str]) -> str | None:
    # Normalize header keys to lowercase for case-insensitive matching
    normalized = {k.lower(): v for k, v in headers.items()}
    auth_header = normalized.get("authorization", "")
    if auth_header.startswith(BEARER_PREFIX):
        token = auth_header[len(BEARER_PREFIX) :].strip()
        return token or None
    return None


def session_from_claims(
    claims: Mapping[str, Any], roles_claim: str = "roles"
) -> SessionIdentity | None:
    """Map validated token claims onto a ``SessionIdentity``.

    Returns None when the token carries no usable subject, e.g. an empty
    ``sub``; such a token is treated like any other invalid token.
    """
    if claims_user_id(claims) is None:
        logger.debug("JWT token has empty subject")
        return None
    normalized = dict(claims)
    normalized["roles"] = claims.get(roles_claim)
    return SessionIdentity.from_claims(normalized)


def extract_session(
    event: Mapping[str, Any], config: JWTConfig | None = None
) -> SessionIdentity | None:
    """Extract the session from a request event dict with ``headers``.

    Args:
        event: Dict with a ``headers`` mapping
        config: Optional JWTConfig, uses environment if not provided

    Returns:
        SessionIdentity for a valid bearer token, None when anonymous

    Raises:
        IdentitySourceError: A token was presented but JWT_SECRET is unset
    """
    headers = event.get("headers", {}) or {}
    token = _get_bearer_token(headers)
    if token is None:
        logger.debug("No bearer token in request headers")
        return None

    if config is None:
        config = get_jwt_config()
        if config is None:
            logger.error("JWT_SECRET not configured, cannot validate bearer token")
            raise IdentitySourceError("JWT_SECRET is not configured")

    claims = validate_jwt(token, config)
    if claims is None:
        return None

    session = session_from_claims(claims, config.roles_claim)
    if session is None:
        return None
    logger.debug(
        "Resolved session from bearer token",
        extra={
            "user_id_prefix": user_id_prefix(session.user_id),
            "organization_id": sanitize_for_log(session.organization_id or ""),
        },
    )
    return session


def session_from_request(
    request: Request, config: JWTConfig | None = None
) -> SessionIdentity | None:
    """Extract the session from a FastAPI/Starlette request."""
    return extract_session({"headers": dict(request.headers)}, config)
