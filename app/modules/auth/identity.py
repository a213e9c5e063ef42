"""
Request-scoped identity resolution.

The RBAC service never reads the session itself; a SessionIdentityResolver is
built once per request from the bearer token and handed to it. Anything that
goes wrong while asking Supabase Auth who the caller is means "nobody".
"""

import logging
from typing import Optional

from fastapi import HTTPException

from app.modules.auth.service import AuthService

logger = logging.getLogger(__name__)

_UNRESOLVED = object()


class SessionIdentityResolver:
    def __init__(self, auth_service: AuthService, token: Optional[str]):
        self.auth_service = auth_service
        self.token = token
        self._user_id = _UNRESOLVED

    def __call__(self) -> Optional[str]:
        if self._user_id is _UNRESOLVED:
            self._user_id = self._lookup()
        return self._user_id

    def _lookup(self) -> Optional[str]:
        if not self.token:
            return None
        try:
            user_data = self.auth_service.get_current_user(self.token)
        except HTTPException as e:
            logger.debug("Session lookup rejected: %s", e.detail)
            return None
        except Exception as e:
            logger.debug("Session lookup failed: %s", e)
            return None
        return user_data.get("id") or None
