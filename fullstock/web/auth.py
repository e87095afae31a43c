"""Bearer-token authentication for the decisions API."""

from __future__ import annotations

import hmac
import logging
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from fullstock.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def parse_bearer(authorization: str | None) -> str | None:
    """Extract the token from an 'Authorization: Bearer <token>' header.

    Examples:
        >>> parse_bearer("Bearer abc")
        'abc'
        >>> parse_bearer("Basic abc") is None
        True
    """
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def validate_token(token: str | None, expected: str) -> bool:
    """Constant-time comparison against the configured token."""
    if not token or not expected:
        return False
    return hmac.compare_digest(token.encode(), expected.encode())


def require_auth(
    settings: Annotated[Settings, Depends(get_settings)],
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Require a valid bearer token.

    Returns:
        The accepted token

    Raises:
        HTTPException: 401 if the header is missing or the token is wrong

    """
    token = parse_bearer(authorization)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not validate_token(token, settings.api_token):
        logger.warning("auth_rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token
