# backend/studiohub/api/dependencies/auth.py
"""
Acting-user resolution.

Identity is established upstream (gateway or session layer) and forwarded
in the ``X-User-Id`` header. Only its presence and shape are checked here;
whether that user may touch a given reservation is decided by the services.
"""

import logging
from typing import Optional

from fastapi import Header, HTTPException, status

from ...core.ulid_helper import is_valid_ulid

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"


def get_current_user_id_optional(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> Optional[str]:
    if x_user_id is None:
        return None
    user_id = x_user_id.strip()
    if not user_id:
        return None
    if not is_valid_ulid(user_id):
        logger.warning(f"[AUTH] Rejected malformed {USER_ID_HEADER} header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Invalid user identifier", "code": "INVALID_USER_ID"},
        )
    return user_id


def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> str:
    """Acting user id; 401 when the header is missing."""
    user_id = get_current_user_id_optional(x_user_id)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Authentication required", "code": "NOT_AUTHENTICATED"},
        )
    return user_id
