"""
HTTP Basic authentication for the administrative endpoints
"""

import secrets
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

basic_auth = HTTPBasic(auto_error=False)


def _matches(supplied: str, expected: str) -> bool:
    return secrets.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


async def require_admin(
    request: Request,
    credentials: Optional[HTTPBasicCredentials] = Depends(basic_auth)
) -> Optional[str]:
    """
    Enforce admin credentials when configured

    Returns the authenticated admin name, or None when auth is disabled.
    """
    settings = request.app.state.settings
    if not settings.admin_auth_enabled:
        return None

    if credentials is None or not (
        _matches(credentials.username, settings.ADMIN_USER)
        & _matches(credentials.password, settings.ADMIN_PASSWORD)
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin credentials",
            headers={"WWW-Authenticate": "Basic"}
        )
    return credentials.username
