"""Twitch Helix client for channel moderation.

Implements the ModerationClient contract used by the slash-command
executors: user lookup by login name plus timeout, ban, unban, VIP and
moderator management. Every public operation returns a plain result
(``bool`` or ``Optional[str]``); HTTP and transport failures are
logged and collapsed to ``False`` / ``None``.

Key classes:
    TwitchApiClient: aiohttp-based Helix client.
"""

import asyncio
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import aiohttp
import structlog

from .config import DEFAULT_HELIX_URL
from .exceptions import TwitchApiError

logger = structlog.get_logger("modwire.twitch")


class TwitchApiClient:
    """Performs moderation actions on one channel through Helix.

    Args:
        client_id: Twitch application client id (``Client-Id`` header).
        access_token: User access token with the moderation scopes.
        broadcaster_id: User id of the moderated channel.
        moderator_id: User id acting as moderator. Defaults to the
            broadcaster.
        api_url: Helix base URL.
        request_timeout: Total timeout per request in seconds.

    Raises:
        ValueError: If api_url has no scheme or host.
    """

    def __init__(
        self,
        client_id: str,
        access_token: str,
        broadcaster_id: str,
        moderator_id: Optional[str] = None,
        api_url: str = DEFAULT_HELIX_URL,
        request_timeout: float = 10,
    ):
        parsed = urlparse(api_url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            logger.warning("invalid_api_url", url=api_url)
            raise ValueError("Helix API URL must be an http(s) URL with a host")
        if parsed.scheme != "https":
            logger.warning("insecure_api_url", url=api_url)

        self.client_id = client_id
        self.access_token = access_token
        self.broadcaster_id = broadcaster_id
        self.moderator_id = moderator_id or broadcaster_id
        self.api_url = api_url.rstrip("/")
        self.request_timeout = request_timeout
        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_config(cls, config) -> "TwitchApiClient":
        """Build a client from a Config instance."""
        return cls(
            client_id=config.twitch_client_id,
            access_token=config.twitch_access_token,
            broadcaster_id=config.twitch_broadcaster_id,
            moderator_id=config.twitch_moderator_id,
            api_url=config.twitch_api_url,
            request_timeout=config.twitch_request_timeout,
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create a shared aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={
                    "Authorization": f"Bearer {self.access_token}",
                    "Client-Id": self.client_id,
                },
                timeout=aiohttp.ClientTimeout(total=self.request_timeout),
            )
        return self._session

    async def close(self):
        """Close the shared HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Send one Helix request.

        Returns:
            Decoded JSON body, or None when the response has no body.

        Raises:
            TwitchApiError: On a non-2xx status, transport error,
                timeout or undecodable body.
        """
        session = await self._get_session()
        url = f"{self.api_url}{path}"
        try:
            async with session.request(method, url, params=params, json=payload) as resp:
                if resp.status >= 300:
                    body = await resp.text()
                    raise TwitchApiError(
                        f"Helix returned {resp.status}",
                        status=resp.status,
                        endpoint=path,
                        body=body[:200],
                    )
                if resp.status == 204:
                    return None
                text = await resp.text()
                if not text:
                    return None
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise TwitchApiError(
                        "Helix returned an undecodable body",
                        status=resp.status,
                        endpoint=path,
                    ) from e
        except aiohttp.ClientError as e:
            raise TwitchApiError(str(e), endpoint=path) from e
        except asyncio.TimeoutError as e:
            raise TwitchApiError("Helix request timed out", endpoint=path) from e

    async def _moderation_call(
        self,
        action: str,
        method: str,
        path: str,
        params: Dict[str, str],
        payload: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Run a moderation request and collapse its outcome to a bool."""
        try:
            await self._request(method, path, params=params, payload=payload)
        except TwitchApiError as e:
            logger.warning(
                "moderation_action_failed",
                action=action,
                status=e.status,
                category=e.category.value,
                error=str(e),
            )
            return False
        logger.info("moderation_action_succeeded", action=action)
        return True

    # --- Lookup ---

    async def get_user_id_by_name(self, username: str) -> Optional[str]:
        """Resolve a login name to a user id; None if unknown or on error."""
        try:
            body = await self._request("GET", "/users", params={"login": username})
        except TwitchApiError as e:
            logger.warning("user_lookup_failed", username=username, status=e.status, error=str(e))
            return None

        users = (body or {}).get("data") or []
        if not users:
            return None
        return users[0].get("id")

    # --- Bans and timeouts ---

    def _ban_params(self) -> Dict[str, str]:
        return {
            "broadcaster_id": self.broadcaster_id,
            "moderator_id": self.moderator_id,
        }

    async def timeout_user(
        self, user_id: str, duration_seconds: int, reason: Optional[str] = None
    ) -> bool:
        data: Dict[str, Any] = {"user_id": user_id, "duration": duration_seconds}
        if reason is not None:
            data["reason"] = reason
        return await self._moderation_call(
            "timeout", "POST", "/moderation/bans", self._ban_params(), {"data": data}
        )

    async def ban_user(self, user_id: str, reason: Optional[str] = None) -> bool:
        data: Dict[str, Any] = {"user_id": user_id}
        if reason is not None:
            data["reason"] = reason
        return await self._moderation_call(
            "ban", "POST", "/moderation/bans", self._ban_params(), {"data": data}
        )

    async def unban_user(self, user_id: str) -> bool:
        """Lift a ban or an active timeout."""
        params = {**self._ban_params(), "user_id": user_id}
        return await self._moderation_call("unban", "DELETE", "/moderation/bans", params)

    # --- VIPs and moderators ---

    def _channel_params(self, user_id: str) -> Dict[str, str]:
        return {"broadcaster_id": self.broadcaster_id, "user_id": user_id}

    async def add_channel_vip(self, user_id: str) -> bool:
        return await self._moderation_call(
            "vip", "POST", "/channels/vips", self._channel_params(user_id)
        )

    async def remove_channel_vip(self, user_id: str) -> bool:
        return await self._moderation_call(
            "unvip", "DELETE", "/channels/vips", self._channel_params(user_id)
        )

    async def add_channel_moderator(self, user_id: str) -> bool:
        return await self._moderation_call(
            "mod", "POST", "/moderation/moderators", self._channel_params(user_id)
        )

    async def remove_channel_moderator(self, user_id: str) -> bool:
        return await self._moderation_call(
            "unmod", "DELETE", "/moderation/moderators", self._channel_params(user_id)
        )
