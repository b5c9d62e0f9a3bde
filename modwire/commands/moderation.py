"""Moderation slash-commands: /timeout, /ban, /unban, /vip, /mod and friends.

Each handler validates the streamer's tokens into a fixed tuple, then
resolves the target username to a Twitch user id and performs exactly
one moderation action. An unknown user is a plain ``False``, never an
exception.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import structlog

from .base import CommandDefinition, ModerationClient, ValidationResult
from .helpers import join_reason, normalize_username, parse_duration_seconds

logger = structlog.get_logger("modwire.commands")

USERNAME_REQUIRED = "Please provide a username"
DURATION_REQUIRED = "Please provide a valid duration"

# Method names on ModerationClient for the username-only verbs
USERNAME_ACTIONS = {
    "unban": "unban_user",
    "vip": "add_channel_vip",
    "unvip": "remove_channel_vip",
    "mod": "add_channel_moderator",
    "unmod": "remove_channel_moderator",
}


def _target_username(args: Sequence[str]) -> Optional[str]:
    """Normalized first token, or None if it is missing or blank."""
    if not args or args[0] is None:
        return None
    username = normalize_username(args[0])
    return username or None


async def _resolve_user_id(client: ModerationClient, username: str) -> Optional[str]:
    user_id = await client.get_user_id_by_name(username)
    if user_id is None:
        logger.info("moderation_target_not_found", username=username)
    return user_id


class TimeoutCommand:
    """``/timeout <username> <duration> [reason...]``"""

    definition = CommandDefinition(
        trigger_tokens=("/timeout",),
        arity=2,
        argument_shape=("username", "duration", "reason"),
    )

    def __init__(self, client: ModerationClient):
        self.client = client

    @property
    def commands(self) -> Tuple[str, ...]:
        return self.definition.trigger_tokens

    def validate_args(self, args: Sequence[str]) -> ValidationResult:
        username = _target_username(args)
        if username is None:
            return ValidationResult.fail(USERNAME_REQUIRED)

        duration = parse_duration_seconds(args[1] if len(args) > 1 else None)
        if duration is None:
            return ValidationResult.fail(DURATION_REQUIRED)

        return ValidationResult.ok(username, duration, join_reason(args[2:]))

    async def handle(self, args: Tuple[str, int, Optional[str]]) -> bool:
        username, duration, reason = args
        user_id = await _resolve_user_id(self.client, username)
        if user_id is None:
            return False
        return await self.client.timeout_user(user_id, duration, reason)


class BanCommand:
    """``/ban <username> [reason...]``"""

    definition = CommandDefinition(
        trigger_tokens=("/ban",),
        arity=1,
        argument_shape=("username", "reason"),
    )

    def __init__(self, client: ModerationClient):
        self.client = client

    @property
    def commands(self) -> Tuple[str, ...]:
        return self.definition.trigger_tokens

    def validate_args(self, args: Sequence[str]) -> ValidationResult:
        username = _target_username(args)
        if username is None:
            return ValidationResult.fail(USERNAME_REQUIRED)
        return ValidationResult.ok(username, join_reason(args[1:]))

    async def handle(self, args: Tuple[str, Optional[str]]) -> bool:
        username, reason = args
        user_id = await _resolve_user_id(self.client, username)
        if user_id is None:
            return False
        return await self.client.ban_user(user_id, reason)


class UsernameCommand:
    """A verb whose only argument is the target username.

    Args:
        verb: Key into USERNAME_ACTIONS (e.g. ``"vip"``).
        triggers: Trigger tokens for this verb.
        client: Moderation API collaborator.
    """

    def __init__(self, verb: str, triggers: Tuple[str, ...], client: ModerationClient):
        if verb not in USERNAME_ACTIONS:
            raise ValueError(f"Unknown moderation verb: {verb}")
        self.verb = verb
        self.definition = CommandDefinition(
            trigger_tokens=triggers,
            arity=1,
            argument_shape=("username",),
        )
        self.client = client

    @property
    def commands(self) -> Tuple[str, ...]:
        return self.definition.trigger_tokens

    def validate_args(self, args: Sequence[str]) -> ValidationResult:
        username = _target_username(args)
        if username is None:
            return ValidationResult.fail(USERNAME_REQUIRED)
        return ValidationResult.ok(username)

    async def handle(self, args: Tuple[str]) -> bool:
        (username,) = args
        user_id = await _resolve_user_id(self.client, username)
        if user_id is None:
            return False
        action = getattr(self.client, USERNAME_ACTIONS[self.verb])
        return await action(user_id)

    def __repr__(self) -> str:
        return f"UsernameCommand({self.verb!r}, {self.commands!r})"


def build_moderation_handlers(client: ModerationClient) -> tuple:
    """Create one handler per moderation verb, all bound to ``client``."""
    return (
        TimeoutCommand(client),
        BanCommand(client),
        UsernameCommand("unban", ("/unban", "/untimeout"), client),
        UsernameCommand("vip", ("/vip",), client),
        UsernameCommand("unvip", ("/unvip",), client),
        UsernameCommand("mod", ("/mod",), client),
        UsernameCommand("unmod", ("/unmod",), client),
    )
