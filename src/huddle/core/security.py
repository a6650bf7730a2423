"""Bearer token verification and issuance."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from huddle.core.settings import settings


class InvalidTokenError(Exception):
    """Raised when a bearer token is malformed, forged, expired or has no subject."""


@dataclass(frozen=True)
class TokenClaims:
    """Verified claim set of a bearer token."""

    subject: str
    username: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


def verify_token(
    token: str,
    secret: str | None = None,
    algorithms: list[str] | None = None,
) -> TokenClaims:
    """Decode and validate a signed bearer token.

    Args:
        token: Compact JWS string taken from the ``Authorization`` header.
        secret: Shared signing secret; defaults to ``JWT_SECRET``.
        algorithms: Accepted algorithms; defaults to ``JWT_ALGORITHM``.

    Returns:
        The verified claims. The subject is the ``id`` claim written by the
        sign-in flow, or the standard ``sub`` claim when ``id`` is absent.

    Raises:
        InvalidTokenError: If the token cannot be verified or has no subject.
    """
    if not token:
        raise InvalidTokenError("Empty token")
    try:
        payload = jwt.decode(
            token,
            secret or settings.jwt_secret,
            algorithms=algorithms or [settings.jwt_algorithm],
        )
    except JWTError as err:
        raise InvalidTokenError(str(err)) from err

    subject = payload.get("id") or payload.get("sub")
    if not subject:
        raise InvalidTokenError("Token has no subject")
    return TokenClaims(
        subject=str(subject),
        username=payload.get("username"),
        raw=payload,
    )


def create_access_token(subject: str, extra_claims: dict[str, Any] | None = None) -> str:
    """Create a signed access token carrying ``subject`` in the ``id`` claim."""
    to_encode: dict[str, Any] = {"id": subject}
    if extra_claims:
        to_encode.update(extra_claims)
    to_encode.setdefault(
        "exp",
        datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes),
    )
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt
