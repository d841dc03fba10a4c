"""Permission gate for command invocations.

Evaluates a descriptor's access flags against an invocation context.
Evaluation is pure: no I/O, no logging, no state. The first failing
check determines the denial reason, in this order:

    owner-only -> admin-only -> group-only -> private-only -> premium-only

admin_only is checked on its own and never implies group_only.
is_premium passes through unless an entitlement check is supplied.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from .commands.base import CommandDescriptor, InvocationContext
from .config import number_to_jid

EntitlementCheck = Callable[[str], bool]


class DenyReason(str, Enum):
    OWNER_ONLY = "owner-only"
    ADMIN_ONLY = "admin-only"
    GROUP_ONLY = "group-only"
    PRIVATE_ONLY = "private-only"
    PREMIUM_ONLY = "premium-only"


DENIAL_MESSAGES = {
    DenyReason.OWNER_ONLY: "🔒 *Access Denied*\n\nThis command is restricted to the bot owner.",
    DenyReason.ADMIN_ONLY: "❌ This command is restricted to group admins.",
    DenyReason.GROUP_ONLY: "This command can only be used in a group.",
    DenyReason.PRIVATE_ONLY: "This command can only be used in a private chat with the bot.",
    DenyReason.PREMIUM_ONLY: "👑 *Premium Command* 👑\n\nThis command is exclusive to premium users.",
}


@dataclass(frozen=True)
class Decision:
    """Outcome of a permission check. ``reason`` is None when allowed."""
    allowed: bool
    reason: Optional[DenyReason] = None

    @property
    def message(self) -> str:
        """User-visible denial text (empty when allowed)."""
        return DENIAL_MESSAGES[self.reason] if self.reason else ""


ALLOW = Decision(allowed=True)


def deny(reason: DenyReason) -> Decision:
    return Decision(allowed=False, reason=reason)


def premium_check_from_numbers(numbers: Iterable[str]) -> EntitlementCheck:
    """Build an entitlement check from a static list of phone numbers."""
    entitled = frozenset(number_to_jid(n) for n in numbers)
    return lambda jid: number_to_jid(jid) in entitled


class PermissionGate:
    """Decides whether a context may run a command.

    Args:
        entitlement: Optional premium check taking the sender JID.
            Without it, premium commands are open to everyone.
    """

    def __init__(self, entitlement: Optional[EntitlementCheck] = None):
        self.entitlement = entitlement

    @property
    def has_entitlement_check(self) -> bool:
        return self.entitlement is not None

    def evaluate(self, descriptor: CommandDescriptor, context: InvocationContext) -> Decision:
        if descriptor.owner_only and context.is_owner is not True:
            return deny(DenyReason.OWNER_ONLY)
        if descriptor.admin_only and context.is_admin is not True:
            return deny(DenyReason.ADMIN_ONLY)
        if descriptor.group_only and context.is_group is not True:
            return deny(DenyReason.GROUP_ONLY)
        if descriptor.private_only and context.is_group is not False:
            return deny(DenyReason.PRIVATE_ONLY)
        if descriptor.is_premium and self.entitlement is not None:
            if not context.sender_jid or not self.entitlement(context.sender_jid):
                return deny(DenyReason.PREMIUM_ONLY)
        return ALLOW
