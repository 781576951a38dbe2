from __future__ import annotations

import hmac

from fastapi import Header, HTTPException, status

from ..core.config import settings


async def require_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> None:
    """Gate the API behind ``API_KEY`` when one is configured.

    With no key configured the API is open, which suits a single operator on
    a private network.
    """

    configured = (settings.API_KEY or "").strip()
    if not configured:
        return
    provided = (x_api_key or "").strip()
    if not provided or not hmac.compare_digest(provided, configured):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
