# backend/fieldbook/api/dependencies/auth.py
"""
Caller identity.

Authentication happens upstream; the gateway forwards the verified user as
request headers. This module only turns those headers into a principal.
"""

import logging
from typing import Optional

from fastapi import Header

from ...core.exceptions import UnauthorizedException
from ...principal import UserPrincipal

logger = logging.getLogger(__name__)


def get_current_principal(
    x_user_id: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
    x_user_phone: Optional[str] = Header(None),
) -> UserPrincipal:
    """
    Resolve the authenticated caller.

    Raises:
        HTTPException: 401 when no user id was forwarded
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        logger.debug("Request rejected: missing X-User-Id header")
        raise UnauthorizedException("Not authenticated").to_http_exception()

    return UserPrincipal(
        user_id=user_id,
        name=(x_user_name or "").strip(),
        phone=(x_user_phone or "").strip() or None,
    )
