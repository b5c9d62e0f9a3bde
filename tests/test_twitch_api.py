"""Tests for the Twitch Helix moderation client against a fake Helix server."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from modwire.exceptions import ErrorCategory, TwitchApiError
from modwire.twitch_api import TwitchApiClient

USERS = {"alice": "123", "bob": "456"}


def _build_app(recorded: list, status: int = 204) -> web.Application:
    """Fake Helix: records every request and answers with ``status``."""

    async def users(request: web.Request) -> web.Response:
        recorded.append({"method": request.method, "path": request.path,
                         "query": dict(request.query),
                         "authorization": request.headers.get("Authorization"),
                         "client_id": request.headers.get("Client-Id")})
        login = request.query.get("login")
        data = [{"id": USERS[login], "login": login}] if login in USERS else []
        return web.json_response({"data": data})

    async def moderation(request: web.Request) -> web.Response:
        body = await request.json() if request.can_read_body else None
        recorded.append({"method": request.method, "path": request.path,
                         "query": dict(request.query), "json": body})
        if status >= 300:
            return web.json_response(
                {"error": "Bad Request", "status": status, "message": "nope"}, status=status
            )
        if status == 200:
            return web.json_response({"data": [{"user_id": "123"}]})
        return web.Response(status=status)

    app = web.Application()
    app.router.add_get("/helix/users", users)
    for path in ("/helix/moderation/bans", "/helix/channels/vips", "/helix/moderation/moderators"):
        app.router.add_route("*", path, moderation)
    return app


def _make_client(server: TestServer) -> TwitchApiClient:
    return TwitchApiClient(
        client_id="cid",
        access_token="token-abc",
        broadcaster_id="1000",
        moderator_id="2000",
        api_url=str(server.make_url("/helix")),
    )


class TestConstruction:

    def test_rejects_url_without_host(self):
        with pytest.raises(ValueError):
            TwitchApiClient("cid", "tok", "1", api_url="not-a-url")

    def test_moderator_defaults_to_broadcaster(self):
        client = TwitchApiClient("cid", "tok", "1")
        assert client.moderator_id == "1"

    def test_from_config(self):
        config = MagicMock()
        config.twitch_client_id = "cid"
        config.twitch_access_token = "tok"
        config.twitch_broadcaster_id = "1"
        config.twitch_moderator_id = "2"
        config.twitch_api_url = "https://api.twitch.tv/helix"
        config.twitch_request_timeout = 5
        client = TwitchApiClient.from_config(config)
        assert client.moderator_id == "2"
        assert client.request_timeout == 5


class TestUserLookup:

    @pytest.mark.asyncio
    async def test_known_user(self):
        recorded: list = []
        async with TestServer(_build_app(recorded)) as server:
            client = _make_client(server)
            try:
                assert await client.get_user_id_by_name("alice") == "123"
            finally:
                await client.close()
        assert recorded[0]["query"] == {"login": "alice"}
        assert recorded[0]["authorization"] == "Bearer token-abc"
        assert recorded[0]["client_id"] == "cid"

    @pytest.mark.asyncio
    async def test_unknown_user(self):
        async with TestServer(_build_app([])) as server:
            client = _make_client(server)
            try:
                assert await client.get_user_id_by_name("nobody") is None
            finally:
                await client.close()


class TestModerationActions:

    @pytest.mark.asyncio
    async def test_timeout_payload(self):
        recorded: list = []
        async with TestServer(_build_app(recorded, status=200)) as server:
            client = _make_client(server)
            try:
                assert await client.timeout_user("123", 300, "spamming") is True
            finally:
                await client.close()
        call = recorded[0]
        assert call["method"] == "POST"
        assert call["path"] == "/helix/moderation/bans"
        assert call["query"] == {"broadcaster_id": "1000", "moderator_id": "2000"}
        assert call["json"] == {"data": {"user_id": "123", "duration": 300, "reason": "spamming"}}

    @pytest.mark.asyncio
    async def test_ban_without_reason_omits_key(self):
        recorded: list = []
        async with TestServer(_build_app(recorded, status=200)) as server:
            client = _make_client(server)
            try:
                assert await client.ban_user("123", None) is True
            finally:
                await client.close()
        assert recorded[0]["json"] == {"data": {"user_id": "123"}}

    @pytest.mark.asyncio
    async def test_ban_with_empty_reason_keeps_key(self):
        recorded: list = []
        async with TestServer(_build_app(recorded, status=200)) as server:
            client = _make_client(server)
            try:
                await client.ban_user("123", "")
            finally:
                await client.close()
        assert recorded[0]["json"] == {"data": {"user_id": "123", "reason": ""}}

    @pytest.mark.asyncio
    async def test_unban(self):
        recorded: list = []
        async with TestServer(_build_app(recorded)) as server:
            client = _make_client(server)
            try:
                assert await client.unban_user("123") is True
            finally:
                await client.close()
        assert recorded[0]["method"] == "DELETE"
        assert recorded[0]["query"] == {
            "broadcaster_id": "1000", "moderator_id": "2000", "user_id": "123",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method_name,http_method,path",
        [
            ("add_channel_vip", "POST", "/helix/channels/vips"),
            ("remove_channel_vip", "DELETE", "/helix/channels/vips"),
            ("add_channel_moderator", "POST", "/helix/moderation/moderators"),
            ("remove_channel_moderator", "DELETE", "/helix/moderation/moderators"),
        ],
    )
    async def test_channel_roles(self, method_name, http_method, path):
        recorded: list = []
        async with TestServer(_build_app(recorded)) as server:
            client = _make_client(server)
            try:
                assert await getattr(client, method_name)("456") is True
            finally:
                await client.close()
        assert recorded[0]["method"] == http_method
        assert recorded[0]["path"] == path
        assert recorded[0]["query"] == {"broadcaster_id": "1000", "user_id": "456"}

    @pytest.mark.asyncio
    async def test_rejected_request_is_false(self):
        async with TestServer(_build_app([], status=400)) as server:
            client = _make_client(server)
            try:
                assert await client.ban_user("123", "spam") is False
                assert await client.add_channel_vip("123") is False
            finally:
                await client.close()

    @pytest.mark.asyncio
    async def test_unreachable_server_is_false(self):
        async with TestServer(_build_app([])) as server:
            url = str(server.make_url("/helix"))
        # Server is closed now
        client = TwitchApiClient("cid", "tok", "1", api_url=url, request_timeout=2)
        try:
            assert await client.unban_user("123") is False
            assert await client.get_user_id_by_name("alice") is None
        finally:
            await client.close()


class TestTwitchApiError:

    def test_category_from_status(self):
        assert TwitchApiError("x", status=503).category == ErrorCategory.TRANSIENT
        assert TwitchApiError("x", status=429).is_retryable
        assert TwitchApiError("x", status=400).category == ErrorCategory.PERMANENT
        assert TwitchApiError("x").category == ErrorCategory.TRANSIENT

    def test_str_includes_module_and_context(self):
        err = TwitchApiError("Helix returned 400", status=400, endpoint="/users", body="bad")
        assert "[module=twitch_api]" in str(err)
        assert "body=bad" in str(err)
