"""API key authentication dependency."""

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from vectors_gateway.config import Settings, get_settings
from vectors_gateway.utils.logging import get_logger

logger = get_logger("auth")


def extract_api_key(
    x_api_key: Optional[str], authorization: Optional[str]
) -> Optional[str]:
    """Pick the key from X-API-Key, else from `Authorization: Bearer <key>`."""
    if x_api_key:
        return x_api_key.strip() or None
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return None


async def require_api_key(
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> str:
    """
    FastAPI dependency enforcing the shared API key.

    When API_KEY is not configured any non-empty key is accepted.
    """
    api_key = extract_api_key(x_api_key, authorization)
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=(
                "API key is required. Provide it via 'X-API-Key' header or "
                "'Authorization: Bearer <key>' header"
            ),
            headers={"WWW-Authenticate": "Bearer"},
        )

    if settings.api_key and not secrets.compare_digest(api_key, settings.api_key):
        logger.warning("Rejected request with invalid API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return api_key
