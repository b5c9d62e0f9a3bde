"""Tests for the StreamAssistant composition root."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from modwire.assistant import StreamAssistant


def _make_config(obs_settings=None):
    config = MagicMock()
    config.web_server_port = 7472
    config.user_data_dir = Path("/data")
    config.obs_settings = obs_settings
    return config


def _make_client(user_id="123"):
    client = AsyncMock()
    client.get_user_id_by_name.return_value = user_id
    client.timeout_user.return_value = True
    client.ban_user.return_value = True
    return client


async def _lines(*items):
    for item in items:
        yield item


class TestProcessChatInput:

    @pytest.mark.asyncio
    async def test_success_reply(self):
        client = _make_client()
        assistant = StreamAssistant(_make_config(), client=client)
        assert await assistant.process_chat_input("/timeout alice 5m spamming\n") == "/timeout succeeded"
        client.timeout_user.assert_awaited_once_with("123", 300, "spamming")

    @pytest.mark.asyncio
    async def test_failure_reply(self):
        assistant = StreamAssistant(_make_config(), client=_make_client(user_id=None))
        assert await assistant.process_chat_input("/ban ghost") == "/ban failed"

    @pytest.mark.asyncio
    async def test_validation_message_reply(self):
        assistant = StreamAssistant(_make_config(), client=_make_client())
        assert await assistant.process_chat_input("/vip") == "Please provide a username"

    @pytest.mark.asyncio
    async def test_plain_chat_returns_none(self):
        assistant = StreamAssistant(_make_config(), client=_make_client())
        assert await assistant.process_chat_input("gg everyone") is None
        assert await assistant.process_chat_input("   ") is None

    @pytest.mark.asyncio
    async def test_overlay_command(self):
        assistant = StreamAssistant(_make_config(), client=_make_client())
        reply = await assistant.process_chat_input("/overlay Alerts")
        assert reply == str(Path("/data") / "overlay.html") + "?instance=Alerts"


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_run_echoes_replies_and_closes_client(self):
        client = _make_client()
        assistant = StreamAssistant(_make_config(), client=client)
        written = []
        await assistant.run(_lines("/ban alice\n", "hello\n", "\n"), write=written.append)
        assert written == ["/ban succeeded", "[chat] hello"]
        client.close.assert_awaited_once()
        assert assistant.running is False

    @pytest.mark.asyncio
    async def test_obs_initialized_when_factory_given(self):
        remote = AsyncMock()
        remote.disconnect = MagicMock()
        factory = MagicMock(return_value=remote)
        config = _make_config(obs_settings={"websocket_settings": {"port": 4460}})
        assistant = StreamAssistant(config, client=_make_client(), obs_remote_factory=factory)
        assistant.start()
        assert assistant.obs.remote is remote
        assert factory.call_args[0][0].port == 4460
        assert "obs:change-scene" in assistant.registry.effects
        await assistant.stop()
        remote.disconnect.assert_called_once()

    @pytest.mark.asyncio
    async def test_invalid_obs_settings_do_not_block_commands(self):
        factory = MagicMock()
        client = _make_client()
        config = _make_config(obs_settings={"websocket_settings": {"port": "not-a-port"}})
        assistant = StreamAssistant(config, client=client, obs_remote_factory=factory)
        written = []
        await assistant.run(_lines("/ban alice\n"), write=written.append)
        factory.assert_not_called()
        assert assistant.obs.connected is False
        assert written == ["/ban succeeded"]
        client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_run_closes_client_when_start_fails(self):
        client = _make_client()
        assistant = StreamAssistant(_make_config(), client=client)

        def _start():
            assistant.running = True
            raise RuntimeError("boom")

        assistant.start = _start
        with pytest.raises(RuntimeError):
            await assistant.run(_lines("/ban alice\n"), write=print)
        client.close.assert_awaited_once()

    def test_obs_skipped_without_factory(self):
        assistant = StreamAssistant(_make_config(), client=_make_client())
        assistant.start()
        assert assistant.obs is None
        assert assistant.registry.effects == {}

    def test_default_client_built_from_config(self):
        config = _make_config()
        config.twitch_client_id = "cid"
        config.twitch_access_token = "tok"
        config.twitch_broadcaster_id = "1"
        config.twitch_moderator_id = "1"
        config.twitch_api_url = "https://api.twitch.tv/helix"
        config.twitch_request_timeout = 10
        assistant = StreamAssistant(config)
        assert assistant.client.broadcaster_id == "1"
        assert "/untimeout" in assistant.table
