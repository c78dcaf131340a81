"""REST client for the remote athlete profile backend."""

import logging
from typing import Any, Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError

from astn_session.errors import ProfileClientError
from astn_session.models.updates import ProfileUpdate
from astn_session.models.user import UserProfile

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[Optional[str]]]


class ProfileClient:
    """Client for reading and updating profiles on the backend."""

    def __init__(
        self,
        base_url: str,
        token_provider: Optional[TokenProvider] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the profile client.

        Args:
            base_url: Root URL of the profile API
            token_provider: Coroutine returning the current bearer token
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token_provider is not None:
            token = await self.token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Make an authenticated request, raising ProfileClientError on failure."""
        headers = {**await self._headers(), **kwargs.pop("headers", {})}
        try:
            response = await self.client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise ProfileClientError(f"{method} {path} failed: {e}") from e
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        error_msg = f"Error {response.status_code}: {response.text}"
        raise ProfileClientError(error_msg, status_code=response.status_code)

    async def update_user(self, user_id: str, update: ProfileUpdate) -> None:
        """
        Send a partial profile update.

        Args:
            user_id: Profile ID
            update: Typed partial update for one operation
        """
        payload = update.to_payload()
        logger.info("Updating user %s with fields %s", user_id, sorted(payload))
        response = await self._request("PATCH", f"/users/{user_id}", json=payload)
        self._raise_for_status(response)

    async def upload_profile_picture(self, user_id: str, image_data: bytes) -> str:
        """
        Upload a profile picture.

        Args:
            user_id: Profile ID
            image_data: Raw image bytes

        Returns:
            URL of the stored picture
        """
        logger.info("Uploading profile picture for user %s - %d bytes", user_id, len(image_data))
        response = await self._request(
            "PUT",
            f"/users/{user_id}/profile-picture",
            content=image_data,
            headers={"Content-Type": "image/jpeg"},
        )
        self._raise_for_status(response)
        try:
            return response.json()["url"]
        except (ValueError, KeyError, TypeError) as e:
            raise ProfileClientError("Upload response did not include a URL") from e

    async def fetch_profile(self, user_id: str) -> Optional[UserProfile]:
        """
        Fetch a stored profile.

        Args:
            user_id: Profile ID

        Returns:
            The profile, or None if the backend has no record of it
        """
        response = await self._request("GET", f"/users/{user_id}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        try:
            return UserProfile.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ProfileClientError(f"Invalid profile payload for {user_id}: {e}") from e

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
