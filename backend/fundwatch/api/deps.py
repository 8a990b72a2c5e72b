"""Request identity.

The auth provider sits in front of this service and forwards the resolved
user id in the X-User-Id header.
"""

from fastapi import Depends, Header, HTTPException


async def get_user_id(x_user_id: str | None = Header(default=None)) -> str | None:
    if x_user_id is None:
        return None
    return x_user_id.strip() or None


async def require_user_id(user_id: str | None = Depends(get_user_id)) -> str:
    if user_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user_id
