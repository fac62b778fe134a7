from typing import Optional

import httpx

from constants import HTTP_TIMEOUT_SECONDS, USER_SERVICE_URL
from errors import UpstreamError
from logging_config import get_logger

logger = get_logger(__name__)


class UserDirectory:
    """Lookup-by-id client for the external user service."""

    def __init__(self, base_url: str, timeout: float = HTTP_TIMEOUT_SECONDS,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def get_user(self, user_id: str) -> Optional[dict]:
        url = f"{self.base_url}/api/users/{user_id}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(url)
        except httpx.HTTPError as e:
            raise UpstreamError(f"User service request failed: {e}") from e
        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise UpstreamError(f"User service returned {resp.status_code}", resp.status_code)
        return resp.json()

    async def display_name(self, user_id: str) -> Optional[str]:
        try:
            user = await self.get_user(user_id)
        except UpstreamError as e:
            logger.warning(f"Could not resolve display name for user {user_id}: {e}")
            return None
        return (user or {}).get("name") or None


def create_user_directory(base_url: Optional[str] = USER_SERVICE_URL) -> Optional[UserDirectory]:
    if not base_url:
        return None
    return UserDirectory(base_url)
