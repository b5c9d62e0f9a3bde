"""Custom exception hierarchy for modwire.

Provides error classification across the Twitch client, the OBS
integration and configuration loading. Command validation never raises
and moderation actions report failure as ``False``, so these exceptions
stay inside the subsystem that raised them and are turned into log
events at its boundary.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Classification of errors for logging and escalation."""
    TRANSIENT = "transient"          # Network hiccup, 5xx, timeout
    PERMANENT = "permanent"          # Rejected request, bad input
    INFRASTRUCTURE = "infrastructure"  # Missing credentials, env issues


class ModwireError(Exception):
    """Base exception for all modwire errors.

    Attributes:
        message: Human-readable error description.
        category: Error classification.
        module: Originating module name (e.g. "twitch_api").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.category = category
        self.module = module
        self.context = context
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether this error is transient in nature."""
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return (
            f"{cls}({self.message!r}, category={self.category.value!r}, "
            f"module={self.module!r})"
        )


# ---------------------------------------------------------------------------
# Twitch API exceptions
# ---------------------------------------------------------------------------

class TwitchApiError(ModwireError):
    """A Helix request failed.

    Raised inside TwitchApiClient only; public operations log it and
    return ``False`` / ``None``.

    Attributes:
        status: HTTP status code (None for transport errors).
        endpoint: Helix path that was requested.
    """

    def __init__(
        self,
        message: str = "",
        *,
        status: Optional[int] = None,
        endpoint: Optional[str] = None,
        category: Optional[ErrorCategory] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.status = status
        self.endpoint = endpoint
        if category is None:
            if status is None or status >= 500 or status == 429:
                category = ErrorCategory.TRANSIENT
            else:
                category = ErrorCategory.PERMANENT
        super().__init__(
            message, category=category, module=module or "twitch_api", **context
        )


# ---------------------------------------------------------------------------
# OBS integration exceptions
# ---------------------------------------------------------------------------

class ObsIntegrationError(ModwireError):
    """Error while wiring or driving the OBS remote."""

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.TRANSIENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message, category=category, module=module or "integrations.obs", **context
        )


# ---------------------------------------------------------------------------
# Configuration exceptions
# ---------------------------------------------------------------------------

class ConfigurationError(ModwireError):
    """Invalid or missing configuration.

    Defaults to INFRASTRUCTURE because config issues are environmental
    and won't resolve by retrying.
    """

    def __init__(
        self,
        message: str = "",
        *,
        setting_name: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.INFRASTRUCTURE,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.setting_name = setting_name
        super().__init__(
            message, category=category, module=module or "config", **context
        )
