"""Custom exception hierarchy for chainbot.

Provides error classification across the trigger, parser, dispatch
and transport layers so callers can catch broadly (ChainBotError)
or precisely (NoPermission, ChainDepthError, ...).
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Classification of errors for retry decisions."""
    TRANSIENT = "transient"          # Worth retrying (network hiccup, rate limit)
    PERMANENT = "permanent"          # Not worth retrying (bad input, denied)
    INFRASTRUCTURE = "infrastructure"  # Misconfiguration, environment issues


class ChainBotError(Exception):
    """Base exception for all chainbot errors.

    Attributes:
        message: Human-readable error description.
        category: Error classification for retry/escalation decisions.
        module: Originating module name (e.g. "parser").
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
        """Whether this error is worth retrying."""
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
# Configuration exceptions
# ---------------------------------------------------------------------------

class ConfigurationError(ChainBotError):
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


# ---------------------------------------------------------------------------
# Permission exceptions
# ---------------------------------------------------------------------------

class NoPermission(ChainBotError):
    """Raised by a capability check when the actor may not perform an action.

    The dispatcher answers it with the configured no-permission message
    and re-raises it to the execution unit.
    """

    def __init__(
        self,
        message: str = "",
        *,
        action: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.action = action
        super().__init__(
            message, category=category, module=module or "permissions", **context
        )


# ---------------------------------------------------------------------------
# Parser exceptions
# ---------------------------------------------------------------------------

class ChainParseError(ChainBotError):
    """A command chain could not be parsed."""

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message, category=category, module=module or "parser", **context
        )


class ChainDepthError(ChainParseError):
    """Sub-chain nesting exceeded the configured maximum depth.

    Attributes:
        max_depth: The limit that was exceeded.
    """

    def __init__(
        self,
        message: str = "",
        *,
        max_depth: Optional[int] = None,
        **context: Any,
    ) -> None:
        self.max_depth = max_depth
        super().__init__(message, max_depth=max_depth, **context)


# ---------------------------------------------------------------------------
# Transport exceptions
# ---------------------------------------------------------------------------

class TransportError(ChainBotError):
    """A transport failed to deliver a response or file."""

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.TRANSIENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message, category=category, module=module or "transport", **context
        )
