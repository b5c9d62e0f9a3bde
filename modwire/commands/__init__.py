"""Slash-command framework for modwire.

Provides the handler contracts, the moderation verbs, the read-only
CommandTable and the SlashCommandRouter that feeds chat input to them.
"""

from .base import (
    CommandDefinition,
    CommandTable,
    ModerationClient,
    SlashCommandHandler,
    ValidationResult,
)
from .moderation import BanCommand, TimeoutCommand, UsernameCommand, build_moderation_handlers
from .router import DispatchOutcome, SlashCommandRouter

__all__ = [
    "BanCommand",
    "CommandDefinition",
    "CommandTable",
    "DispatchOutcome",
    "ModerationClient",
    "SlashCommandHandler",
    "SlashCommandRouter",
    "TimeoutCommand",
    "UsernameCommand",
    "ValidationResult",
    "build_moderation_handlers",
]
