"""Contracts for the slash-command framework.

Every moderation verb is a SlashCommandHandler: a set of trigger
tokens, a synchronous argument validator and an async executor. The
handlers are collected once at startup into a CommandTable that maps
each trigger token to its handler.

Key classes:
    ValidationResult: All-or-nothing outcome of argument validation.
    SlashCommandHandler: Protocol every verb implements.
    ModerationClient: Protocol for the moderation API collaborator.
    CommandTable: Read-only trigger token -> handler lookup.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence, Tuple

import structlog

logger = structlog.get_logger("modwire.commands")


@dataclass(frozen=True)
class CommandDefinition:
    """Static description of one moderation verb.

    Attributes:
        trigger_tokens: Literal command words, e.g. ``("/ban",)``.
        arity: Minimum number of positional tokens required.
        argument_shape: Semantic type of each validated argument,
            in order (``"username"``, ``"duration"``, ``"reason"``).
    """

    trigger_tokens: Tuple[str, ...]
    arity: int
    argument_shape: Tuple[str, ...]


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one invocation.

    On success ``args`` holds the typed tuple the executor receives
    verbatim; on failure ``error_message`` holds the text shown to the
    streamer and ``args`` is empty.
    """

    success: bool
    args: Tuple[Any, ...] = ()
    error_message: Optional[str] = None

    @classmethod
    def ok(cls, *args: Any) -> "ValidationResult":
        return cls(success=True, args=tuple(args))

    @classmethod
    def fail(cls, error_message: str) -> "ValidationResult":
        return cls(success=False, error_message=error_message)


class ModerationClient(Protocol):
    """Moderation API operations the executors depend on.

    Each action returns True on success and False for every kind of
    failure.
    """

    async def get_user_id_by_name(self, username: str) -> Optional[str]: ...

    async def timeout_user(
        self, user_id: str, duration_seconds: int, reason: Optional[str] = None
    ) -> bool: ...

    async def ban_user(self, user_id: str, reason: Optional[str] = None) -> bool: ...

    async def unban_user(self, user_id: str) -> bool: ...

    async def add_channel_vip(self, user_id: str) -> bool: ...

    async def remove_channel_vip(self, user_id: str) -> bool: ...

    async def add_channel_moderator(self, user_id: str) -> bool: ...

    async def remove_channel_moderator(self, user_id: str) -> bool: ...


class SlashCommandHandler(Protocol):
    """Shape shared by all slash-command handlers.

    Attributes:
        commands: Trigger tokens (e.g. ``("/unban", "/untimeout")``),
            matched case-sensitively.
    """

    commands: Tuple[str, ...]

    def validate_args(self, args: Sequence[str]) -> ValidationResult:
        """Check raw tokens and return typed arguments. Never raises."""
        ...

    async def handle(self, args: Tuple[Any, ...]) -> bool:
        """Perform the action for previously validated arguments."""
        ...


class CommandTable:
    """Maps trigger tokens to handlers.

    Built once from a sequence of handlers and never mutated
    afterwards. Aliased triggers resolve to the same handler object.
    """

    def __init__(self, handlers: Iterable[SlashCommandHandler]):
        table = {}
        for handler in handlers:
            for trigger in handler.commands:
                if trigger in table:
                    logger.warning(
                        "command_handler_conflict",
                        command=trigger,
                        handler=type(handler).__name__,
                    )
                table[trigger] = handler
        self._handlers: Mapping[str, SlashCommandHandler] = MappingProxyType(table)

    def get(self, trigger: str) -> Optional[SlashCommandHandler]:
        """Look up the handler for an exact trigger token."""
        return self._handlers.get(trigger)

    @property
    def handlers(self) -> Mapping[str, SlashCommandHandler]:
        """Read-only view of the whole table."""
        return self._handlers

    @property
    def command_names(self) -> frozenset:
        """All registered trigger tokens."""
        return frozenset(self._handlers.keys())

    def __contains__(self, trigger: object) -> bool:
        return trigger in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)
