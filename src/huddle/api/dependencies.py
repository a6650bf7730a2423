"""Shared API dependencies for authentication and database access."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from huddle.core.security import InvalidTokenError, verify_token
from huddle.db.session import get_db

logger = logging.getLogger(__name__)

# Missing credentials are not an error at this layer; each route decides.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str | None:
    """Return the raw bearer token, or None when no bearer header was sent."""
    if credentials is None:
        return None
    return credentials.credentials


def require_caller_id(
    token: Annotated[str | None, Depends(get_bearer_token)],
) -> str:
    """Return the verified caller id or reject the request with 401.

    Raises:
        HTTPException: If the header is missing or the token does not verify.
    """
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    try:
        return verify_token(token).subject
    except InvalidTokenError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Token",
        ) from err


def optional_caller_id(
    token: Annotated[str | None, Depends(get_bearer_token)],
) -> str | None:
    """Return the verified caller id, or None for anonymous or invalid tokens."""
    if token is None:
        return None
    try:
        return verify_token(token).subject
    except InvalidTokenError as err:
        logger.info("Treating request with invalid bearer token as anonymous: %s", err)
        return None


# Type aliases for caller identity dependencies
CallerIdDep = Annotated[str, Depends(require_caller_id)]
OptionalCallerIdDep = Annotated[str | None, Depends(optional_caller_id)]
