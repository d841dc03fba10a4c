"""Command handler framework for acephar.

Provides the CommandDescriptor record, InvocationContext, the
BaseCommandHandler ABC, the CommandRegistry, and the built-in
command groups.
"""

from .base import BaseCommandHandler, CommandDescriptor, InvocationContext, reply
from .core import CoreCommandHandler
from .group import GroupCommandHandler
from .owner import OwnerCommandHandler
from .registry import CommandRegistry, CommandView

BUILTIN_HANDLERS = (CoreCommandHandler, OwnerCommandHandler, GroupCommandHandler)

__all__ = [
    "BaseCommandHandler",
    "CommandDescriptor",
    "CommandRegistry",
    "CommandView",
    "InvocationContext",
    "reply",
    "BUILTIN_HANDLERS",
]
