"""Verification of access tokens issued by the identity provider."""

from typing import Any

from jose import JWTError, jwt

from clubswap.config import settings
from clubswap.core.exceptions import AuthenticationError


def verify_token(token: str) -> dict[str, Any]:
    """Verify and decode a JWT access token."""
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except JWTError as e:
        raise AuthenticationError(f"Token validation failed: {str(e)}")
