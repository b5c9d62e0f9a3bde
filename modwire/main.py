"""Main entry point for modwire.

Initializes logging in two phases (defaults then config-driven),
creates the StreamAssistant, and runs the console input loop with
graceful shutdown on SIGTERM/SIGINT.

Key functions:
    main: Async entry point -- sets up logging, config, assistant and
        signal handlers, then reads streamer input.
    run: Synchronous wrapper that calls asyncio.run(main()).
"""

import asyncio
import signal
import sys
from typing import AsyncIterator

import structlog

from . import __version__
from .logging_config import setup_logging

logger = structlog.get_logger("modwire.app")


def build_assistant(config):
    """Create the StreamAssistant, connecting OBS when it is configured."""
    from .assistant import StreamAssistant
    from .integrations.obs_remote import connect_obs_remote

    factory = connect_obs_remote if config.obs_settings is not None else None
    return StreamAssistant(config, obs_remote_factory=factory)


def install_signal_handlers(loop, shutdown_event: asyncio.Event) -> None:
    """Set ``shutdown_event`` on SIGTERM or SIGINT."""

    def handle_shutdown(sig):
        logger.info("shutdown_signal_received", signal=sig.name)
        shutdown_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, handle_shutdown, sig)
        except NotImplementedError:
            # Windows: add_signal_handler not supported.
            if sig == signal.SIGINT:
                signal.signal(
                    signal.SIGINT,
                    lambda s, f: handle_shutdown(signal.SIGINT),
                )


async def serve(assistant, lines: AsyncIterator[str], shutdown_event: asyncio.Event) -> None:
    """Run the input loop until input ends or shutdown is requested."""
    try:
        input_task = asyncio.create_task(assistant.run(lines))
        shutdown_task = asyncio.create_task(shutdown_event.wait())

        await asyncio.wait(
            {input_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
        )

        for task in (input_task, shutdown_task):
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    except Exception as e:
        logger.error("assistant_error", error=str(e))
        raise
    finally:
        await assistant.stop()
        logger.info("modwire_stopped")


async def main():
    """Main async entry point."""
    # Phase 1: defaults, cache_logger_on_first_use=False
    setup_logging()
    logger.info("modwire_starting", version=__version__)

    # Import here to ensure logging is configured first
    from .assistant import stdin_lines
    from .config import get_config
    from .exceptions import ConfigurationError

    config = get_config()
    config.validate()

    # Phase 2: reconfigure with real config, cache_logger_on_first_use=True
    setup_logging(config)

    try:
        config.require_twitch_credentials()
    except ConfigurationError as e:
        logger.error("config_error", error=str(e), setting=e.setting_name)
        raise SystemExit(1)

    assistant = build_assistant(config)
    shutdown_event = asyncio.Event()
    install_signal_handlers(asyncio.get_running_loop(), shutdown_event)
    await serve(assistant, stdin_lines(), shutdown_event)


def run():
    """Synchronous entry point for the ``modwire`` console script."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
    except SystemExit as e:
        sys.exit(e.code)


if __name__ == "__main__":
    run()
