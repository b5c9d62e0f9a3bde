"""Routes streamer chat input to slash-command handlers.

Text that is not a known slash-command is left for the caller to send
as ordinary chat.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog

from .base import CommandTable

logger = structlog.get_logger("modwire.commands")


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of routing one chat message.

    Attributes:
        handled: False when the text is not a known slash-command.
        success: Executor result (always False on validation failure).
        error_message: Validation message to show the streamer, if any.
        command: Trigger token that matched, if any.
    """

    handled: bool
    success: bool = False
    error_message: Optional[str] = None
    command: Optional[str] = None


NOT_HANDLED = DispatchOutcome(handled=False)


class SlashCommandRouter:
    """Selects and runs the handler for an incoming message.

    Args:
        table: Trigger token lookup built at startup.
    """

    def __init__(self, table: CommandTable):
        self.table = table

    @staticmethod
    def is_slash_command(text: str) -> bool:
        return text.strip().startswith("/")

    async def dispatch(self, text: str) -> DispatchOutcome:
        """Validate and execute a slash-command.

        The executor is only awaited when validation succeeds. An
        exception escaping it is logged and reported as a failed
        command.
        """
        if not self.is_slash_command(text):
            return NOT_HANDLED

        trigger, *raw_args = text.split()
        handler = self.table.get(trigger)
        if handler is None:
            logger.debug("command_unknown", command=trigger)
            return NOT_HANDLED

        validation = handler.validate_args(raw_args)
        if not validation.success:
            logger.info(
                "command_validation_failed",
                command=trigger,
                error=validation.error_message,
            )
            return DispatchOutcome(
                handled=True,
                success=False,
                error_message=validation.error_message,
                command=trigger,
            )

        logger.debug("command_dispatch", command=trigger, arg_count=len(raw_args))
        try:
            success = await handler.handle(validation.args)
        except Exception as e:
            logger.error("command_handler_error", command=trigger, error=str(e))
            success = False

        logger.info("command_executed", command=trigger, success=success)
        return DispatchOutcome(handled=True, success=success, command=trigger)
