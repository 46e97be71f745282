"""
Shared request dependencies.
"""

from fastapi import Header, HTTPException


def get_acting_user_id(x_user_id: int | None = Header(default=None)) -> int:
    """
    Identify the user performing the request.

    Authentication happens upstream; the gateway forwards the
    authenticated user's id in the X-User-Id header.
    """
    if x_user_id is None:
        raise HTTPException(
            status_code=401,
            detail={
                "success": False,
                "code": "UNAUTHENTICATED",
                "message": "X-User-Id header is required",
            },
        )
    return x_user_id
