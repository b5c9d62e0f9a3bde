"""Argument helpers shared by the moderation slash-commands."""

import re
from typing import Optional, Sequence

_BARE_SECONDS = re.compile(r"[0-9]+")
_UNIT_DURATION = re.compile(r"(?:[0-9]+[smhdw])+")
_UNIT_SEGMENT = re.compile(r"([0-9]+)([smhdw])")

UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
    "w": 7 * 24 * 60 * 60,
}


def normalize_username(raw: str) -> str:
    """Return the canonical form of a chat username.

    Trims whitespace, drops a leading ``@`` mention marker and
    lower-cases. Applying it twice gives the same result.
    """
    return raw.strip().lstrip("@").strip().lower()


def parse_duration_seconds(raw: Optional[str]) -> Optional[int]:
    """Parse a chat duration into whole seconds.

    Accepts a bare integer (``"10"``) or one or more unit-suffixed
    segments (``"10m"``, ``"1h30m"``). Units: s, m, h, d, w.

    Returns:
        The duration in seconds, or None for absent, negative or
        unparsable input.
    """
    if raw is None:
        return None
    text = raw.strip().lower()
    if not text:
        return None

    if _BARE_SECONDS.fullmatch(text):
        return int(text)

    if _UNIT_DURATION.fullmatch(text):
        return sum(
            int(amount) * UNIT_SECONDS[unit]
            for amount, unit in _UNIT_SEGMENT.findall(text)
        )

    return None


def join_reason(tokens: Sequence[str]) -> Optional[str]:
    """Join trailing reason tokens; None when no reason was given."""
    if not tokens:
        return None
    return " ".join(tokens)
