"""
Admin authentication dependency.
"""

import secrets
from typing import Optional

from fastapi import Header, HTTPException, Request


async def verify_admin(request: Request, x_admin_key: Optional[str] = Header(None)) -> bool:
    """
    Check the X-Admin-Key header against the configured admin key.

    Raises:
        HTTPException 503 if no admin key is configured
        HTTPException 401 if the header is missing or wrong
    """
    expected = request.app.state.config.admin_key
    if not expected:
        raise HTTPException(
            status_code=503,
            detail="No admin key configured. Set ADMIN_KEY to enable admin endpoints.",
        )

    if not x_admin_key:
        raise HTTPException(status_code=401, detail="Authentication required")

    if not secrets.compare_digest(x_admin_key.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=401, detail="Invalid admin key")

    return True
