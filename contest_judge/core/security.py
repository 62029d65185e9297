"""
Request identity helpers
API key check for the upstream gateway and the caller's user id header.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

from contest_judge.core.config import settings


async def verify_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key")
) -> bool:
    """Verify the API key sent by the gateway"""
    if settings.API_KEY is None:
        # No key configured (development)
        return True

    if x_api_key is None or x_api_key != settings.API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return True


async def get_current_user_id(
    x_user_id: Optional[int] = Header(None, alias="X-User-Id")
) -> int:
    """User id resolved by the gateway that authenticated the request"""
    if x_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": True,
                "error_code": "AUTHENTICATION_REQUIRED",
                "error_message": "Authentication required",
            },
        )
    return x_user_id
