"""
Credential checks for the cache administration endpoints.
"""

import secrets
from typing import Optional

from fastapi import Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials, HTTPBearer, HTTPAuthorizationCredentials

from shared.config import BaseConfig
from shared.errors import AuthenticationError
from shared.logging import get_logger


class AdminAuth:
    """Basic auth for invalidation and an optional bearer key for snapshot population."""

    def __init__(self, config: BaseConfig):
        self.config = config
        self.logger = get_logger("storefront.admin_auth")
        self.basic = HTTPBasic(auto_error=False)
        self.bearer = HTTPBearer(auto_error=False)

    async def require_basic(self, request: Request) -> str:
        """Return the admin username or raise ``AuthenticationError``."""
        credentials: Optional[HTTPBasicCredentials] = await self.basic(request)
        if credentials is None:
            raise AuthenticationError("Basic credentials required")

        username_ok = _matches(credentials.username, self.config.cache_admin_username)
        password_ok = _matches(credentials.password, self.config.cache_admin_password)
        if not (username_ok and password_ok):
            self.logger.warning("Cache admin authentication failed", username=credentials.username)
            raise AuthenticationError("Invalid admin credentials")
        return credentials.username

    async def require_admin_key(self, request: Request) -> None:
        """Check the bearer key when one is configured; open otherwise."""
        admin_key = self.config.cache_admin_key
        if not admin_key:
            return

        credentials: Optional[HTTPAuthorizationCredentials] = await self.bearer(request)
        if credentials is None or not _matches(credentials.credentials, admin_key):
            self.logger.warning("Super cache population rejected")
            raise AuthenticationError("Unauthorized")


def _matches(supplied: str, expected: str) -> bool:
    return secrets.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))
