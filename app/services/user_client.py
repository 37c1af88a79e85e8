"""Users API client.

Resolves the logged-in user (and with it the ReferenceID stamped on every
write) from the account service via `GET /api/users?id=<userId>`.
"""

import httpx

from app.config import settings
from app.core.errors import ReferenceNotLoaded
from app.infra.logging import get_logger
from app.schemas.user import ActingUser

logger = get_logger(__name__)


class UserClient:
    """HTTP client for the users API."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None) -> None:
        """Initialize users API client.

        Args:
            base_url: Users API base URL (defaults to settings)
            timeout: Request timeout in seconds (defaults to settings)
        """
        self.base_url = base_url or settings.users_api_url
        self.timeout = timeout or settings.users_api_timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_user(self, user_id: str) -> ActingUser:
        """Fetch the user record for `user_id`.

        Args:
            user_id: Logged-in user id (from the session cookie)

        Returns:
            The user; `reference_id` is empty when the account has none

        Raises:
            ReferenceNotLoaded: If the user is unknown or the API is unreachable
        """
        client = await self._get_client()

        try:
            response = await client.get("/api/users", params={"id": user_id})
            response.raise_for_status()
            payload = response.json()

        except httpx.HTTPStatusError as e:
            logger.error(
                "Users API returned error",
                user_id=user_id,
                status_code=e.response.status_code,
                response_text=e.response.text[:500],
            )
            raise ReferenceNotLoaded(f"User '{user_id}' could not be loaded") from e

        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed to fetch user", user_id=user_id, error=str(e))
            raise ReferenceNotLoaded(f"User '{user_id}' could not be loaded") from e

        user = ActingUser.model_validate({**payload, "user_id": user_id})
        logger.debug("User loaded", user_id=user_id, has_reference=bool(user.reference_id))
        return user


# Singleton instance
_user_client: UserClient | None = None


def get_user_client() -> UserClient:
    """Get users API client singleton."""
    global _user_client
    if _user_client is None:
        _user_client = UserClient()
    return _user_client


async def close_user_client() -> None:
    """Close the users API client singleton. Call during shutdown."""
    global _user_client
    if _user_client is not None:
        await _user_client.close()
        _user_client = None
