"""Base classes for the command handler framework.

Defines the records that describe a command and the per-message
context handed to it. Command handlers are grouped into classes that
extend BaseCommandHandler; each group returns CommandDescriptor records
that the CommandRegistry indexes by name and alias.

Key classes:
    CommandDescriptor: Immutable registration record for one command.
    InvocationContext: Per-message bundle handed to a handler.
    BaseCommandHandler: ABC that handler groups must implement.

Key functions:
    reply: Send a text back to the chat a message came from.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    List,
    Optional,
    Tuple,
)

if TYPE_CHECKING:
    from ..afk import AfkRegistry
    from ..config import Config
    from ..models import InboundMessage
    from ..state import BotState
    from ..transport import Transport
    from .registry import CommandView

# async (transport, message, args, logger, context) -> None
CommandHandlerFn = Callable[
    ["Transport", "InboundMessage", List[str], Any, "InvocationContext"],
    Awaitable[None],
]


@dataclass(frozen=True)
class CommandDescriptor:
    """Registration record for one command.

    Names and aliases are compared case-insensitively by the registry;
    they are stored lower-cased here.
    """

    name: str
    handler: CommandHandlerFn = field(compare=False, repr=False)
    aliases: Tuple[str, ...] = ()
    description: str = ""
    category: str = "General"
    usage: str = ""
    owner_only: bool = False
    admin_only: bool = False
    group_only: bool = False
    private_only: bool = False
    is_premium: bool = False

    def __post_init__(self):
        object.__setattr__(self, "name", self.name.strip().lower())
        object.__setattr__(
            self, "aliases", tuple(a.strip().lower() for a in self.aliases)
        )

    @property
    def tokens(self) -> Tuple[str, ...]:
        """Name followed by every alias."""
        return (self.name,) + self.aliases


@dataclass
class InvocationContext:
    """Per-invocation context handed to command handlers.

    Every field is optional. The bot fills in what it can resolve;
    handlers must check a field before relying on it and degrade
    (e.g. reply that a feature is unavailable) when it is missing.

    Attributes:
        sender_jid: JID of the user who sent the command.
        chat_id: JID of the chat the command arrived in.
        is_group: True for group chats.
        is_owner: True when the sender is the configured owner.
        is_admin: True when the sender administers the group.
        command_prefix: Prefix in effect for this bot.
        command_map: Read-only view of the command registry.
        bot_state: Shared BotState store.
        afk_registry: Shared AfkRegistry.
        start_time: When the bot process started.
        logger: Logger bound to this invocation.
    """

    sender_jid: Optional[str] = None
    chat_id: Optional[str] = None
    is_group: Optional[bool] = None
    is_owner: Optional[bool] = None
    is_admin: Optional[bool] = None
    command_prefix: Optional[str] = None
    command_map: Optional["CommandView"] = None
    bot_state: Optional["BotState"] = None
    afk_registry: Optional["AfkRegistry"] = None
    start_time: Optional[datetime] = None
    logger: Any = None


async def reply(transport: "Transport", message: "InboundMessage", text: str) -> Optional[str]:
    """Send ``text`` to the chat ``message`` came from, quoting it."""
    return await transport.send_text(message.chat_id, text, quoted=message.id)


class BaseCommandHandler(ABC):
    """Abstract base class for command handler groups.

    Subclasses implement get_commands() to return the descriptors for
    the commands they provide. Handler methods have the signature
    ``async (transport, message, args, logger, ctx) -> None``.

    Args:
        config: Optional Config for handlers that report bot details.
    """

    def __init__(self, config: Optional["Config"] = None):
        self.config = config

    @abstractmethod
    def get_commands(self) -> List[CommandDescriptor]:
        """Return the descriptors this group registers."""
        ...
