"""Custom exception hierarchy for acephar.

Provides precise error classification across the command runtime,
enabling targeted error handling at startup (registration conflicts
are fatal) and at runtime (transport failures are logged and the
message loop keeps going).
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Classification of errors for retry decisions."""
    TRANSIENT = "transient"          # Worth retrying (timeout, gateway hiccup)
    PERMANENT = "permanent"          # Not worth retrying (bad input, bad registration)
    INFRASTRUCTURE = "infrastructure"  # Missing config, env issues


class BotError(Exception):
    """Base exception for all acephar errors.

    Attributes:
        message: Human-readable error description.
        category: Error classification for retry/escalation decisions.
        module: Originating module name (e.g. "commands.registry").
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
# Command registration exceptions
# ---------------------------------------------------------------------------

class RegistrationError(BotError):
    """A command descriptor could not be registered.

    Registration happens once at startup; any of these is fatal and
    the bot must not begin serving messages.

    Attributes:
        command: Name of the descriptor being registered.
    """

    def __init__(
        self,
        message: str = "",
        *,
        command: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.command = command
        super().__init__(
            message, category=category, module=module or "commands.registry", **context
        )


class DuplicateCommandError(RegistrationError):
    """A command name or alias collides with one already registered.

    Attributes:
        token: The colliding name or alias (lower-cased).
        existing: Name of the descriptor that already owns the token.
    """

    def __init__(
        self,
        message: str = "",
        *,
        command: Optional[str] = None,
        token: Optional[str] = None,
        existing: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.token = token
        self.existing = existing
        super().__init__(
            message, command=command, token=token, existing=existing, **context
        )


class UnsatisfiableAccessError(RegistrationError):
    """A descriptor's access flags can never all be satisfied.

    Raised for group_only combined with private_only.
    """


class RegistryFrozenError(RegistrationError):
    """Registration attempted after the registry started serving."""


# ---------------------------------------------------------------------------
# Configuration exceptions
# ---------------------------------------------------------------------------

class ConfigurationError(BotError):
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
# Transport exceptions
# ---------------------------------------------------------------------------

class TransportError(BotError):
    """The messaging gateway rejected or failed a request.

    Attributes:
        status: HTTP status returned by the gateway (if any).
        endpoint: Gateway path that was called.
    """

    def __init__(
        self,
        message: str = "",
        *,
        status: Optional[int] = None,
        endpoint: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.TRANSIENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.status = status
        self.endpoint = endpoint
        super().__init__(
            message, category=category, module=module or "transport", **context
        )
