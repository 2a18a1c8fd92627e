from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger

from ..config import config

# Bearer Token Scheme mainly for Swagger UI
bearer_scheme = HTTPBearer(auto_error=False)


def _is_accepted(token: str) -> bool:
    return any(secrets.compare_digest(token, accepted) for accepted in config.API_TOKENS)


async def verify_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Verify the bearer token issued by the authentication provider.
    Returns the token if accepted, raises 401 otherwise.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not _is_accepted(credentials.credentials):
        # Security: never log the token itself
        logger.warning("Rejected request with unknown bearer token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return credentials.credentials
