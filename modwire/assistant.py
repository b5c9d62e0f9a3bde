"""Streamer assistant: the composition root for modwire.

Builds the Twitch Helix client, the moderation handlers, the command
table and router, the plugin registry and (when an OBS remote factory
is supplied) the OBS integration. Streamer input is read line by line
from a console; slash-commands are dispatched and their outcome echoed
back.

Key classes:
    StreamAssistant: Owns all subsystem instances and the input loop.
"""

import asyncio
import sys
from typing import AsyncIterator, Callable, Optional, TextIO

import structlog

from .commands import CommandTable, SlashCommandRouter, build_moderation_handlers
from .commands.base import ModerationClient
from .config import Config
from .integrations import ObsIntegration, PluginRegistry
from .integrations.obs import RemoteFactory
from .overlay import overlay_path_from_config
from .twitch_api import TwitchApiClient

logger = structlog.get_logger("modwire.app")

OVERLAY_COMMAND = "/overlay"


class StreamAssistant:
    """Routes streamer console input to moderation commands.

    Args:
        config: Loaded Config.
        client: Moderation client. Defaults to a TwitchApiClient built
            from config.
        obs_remote_factory: Connects to OBS. The OBS integration is
            only initialized when this is given.
    """

    def __init__(
        self,
        config: Config,
        client: Optional[ModerationClient] = None,
        obs_remote_factory: Optional[RemoteFactory] = None,
    ):
        self.config = config
        self.client = client if client is not None else TwitchApiClient.from_config(config)
        self.table = CommandTable(build_moderation_handlers(self.client))
        self.router = SlashCommandRouter(self.table)
        self.registry = PluginRegistry()
        self.running = False

        self.obs: Optional[ObsIntegration] = None
        if obs_remote_factory is not None:
            self.obs = ObsIntegration(self.registry, obs_remote_factory)

    def start(self) -> None:
        """Initialize integrations and log the overlay URL."""
        if self.running:
            return
        self.running = True
        if self.obs is not None:
            self.obs.init(
                linked=False,
                integration_data={"user_settings": self.config.obs_settings},
            )
        logger.info(
            "assistant_started",
            commands=sorted(self.table.command_names),
            overlay_url=overlay_path_from_config(self.config),
        )

    async def stop(self) -> None:
        """Disconnect OBS and release the Twitch client's HTTP session."""
        if not self.running:
            return
        self.running = False
        if self.obs is not None:
            self.obs.disconnect()
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()
        logger.info("assistant_stopped")

    async def process_chat_input(self, text: str) -> Optional[str]:
        """Handle one line of streamer input.

        Returns:
            The reply to show the streamer, or None when the text is
            ordinary chat that should be sent as-is.
        """
        text = text.strip()
        if not text:
            return None

        if text.split()[0] == OVERLAY_COMMAND:
            instance = text[len(OVERLAY_COMMAND):].strip() or None
            return overlay_path_from_config(self.config, instance)

        outcome = await self.router.dispatch(text)
        if not outcome.handled:
            return None
        if outcome.error_message:
            return outcome.error_message
        if outcome.success:
            return f"{outcome.command} succeeded"
        return f"{outcome.command} failed"

    async def run(
        self,
        lines: AsyncIterator[str],
        write: Callable[[str], None] = print,
    ) -> None:
        """Read streamer input until the iterator ends or stop().

        Each line goes through process_chat_input; text that is not a
        command is echoed back as chat.
        """
        try:
            self.start()
            async for line in lines:
                if not self.running:
                    break
                reply = await self.process_chat_input(line)
                if reply is not None:
                    write(reply)
                elif line.strip():
                    write(f"[chat] {line.strip()}")
        finally:
            await self.stop()


async def stdin_lines(stream: TextIO = sys.stdin) -> AsyncIterator[str]:
    """Yield decoded lines from a pipe or terminal without blocking the loop."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), stream)
    while True:
        raw = await reader.readline()
        if not raw:
            return
        yield raw.decode("utf-8", errors="replace")
