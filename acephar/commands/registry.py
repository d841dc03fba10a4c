"""Command registry: name/alias -> CommandDescriptor.

Populated once at startup, then frozen before the bot serves its first
message. Every conflict is raised at registration time so a bad
command set stops the process instead of misrouting messages later.
"""

from typing import Dict, Iterator, List, Optional

import structlog

from ..exceptions import (
    DuplicateCommandError,
    RegistrationError,
    RegistryFrozenError,
    UnsatisfiableAccessError,
)
from .base import BaseCommandHandler, CommandDescriptor

logger = structlog.get_logger("acephar.commands")


class CommandView:
    """Read-only, re-iterable view over registered descriptors.

    Iteration is lazy and yields descriptors in registration order;
    each ``iter()`` starts from the beginning.
    """

    def __init__(self, registry: "CommandRegistry"):
        self._registry = registry

    def __iter__(self) -> Iterator[CommandDescriptor]:
        for descriptor in self._registry._descriptors:
            yield descriptor

    def __len__(self) -> int:
        return len(self._registry._descriptors)

    def __contains__(self, token: object) -> bool:
        return isinstance(token, str) and self._registry.lookup(token) is not None

    def get(self, token: str) -> Optional[CommandDescriptor]:
        return self._registry.lookup(token)


class CommandRegistry:
    """Maps command names and aliases to descriptors.

    Args:
        premium_check_available: Whether an entitlement check backs
            ``is_premium`` commands. When False, premium commands are
            still registered but logged as a configuration gap.
    """

    def __init__(self, premium_check_available: bool = False):
        self._descriptors: List[CommandDescriptor] = []
        self._by_name: Dict[str, CommandDescriptor] = {}
        self._by_alias: Dict[str, CommandDescriptor] = {}
        self._frozen = False
        self._premium_check_available = premium_check_available

    def register(self, descriptor: CommandDescriptor) -> None:
        """Add a descriptor.

        Raises:
            RegistryFrozenError: The registry is already serving.
            UnsatisfiableAccessError: group_only and private_only both set.
            DuplicateCommandError: The name or an alias is already taken,
                or the descriptor repeats one of its own tokens.
        """
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register '{descriptor.name}' after startup",
                command=descriptor.name,
            )
        if not descriptor.name:
            raise RegistrationError("Command name must not be empty", command="")
        if descriptor.group_only and descriptor.private_only:
            raise UnsatisfiableAccessError(
                f"Command '{descriptor.name}' is both group-only and private-only",
                command=descriptor.name,
            )

        seen = set()
        for token in descriptor.tokens:
            existing = self._by_name.get(token) or self._by_alias.get(token)
            if existing is not None:
                raise DuplicateCommandError(
                    f"'{token}' is already registered by '{existing.name}'",
                    command=descriptor.name, token=token, existing=existing.name,
                )
            if token in seen:
                raise DuplicateCommandError(
                    f"'{token}' appears twice in '{descriptor.name}'",
                    command=descriptor.name, token=token, existing=descriptor.name,
                )
            seen.add(token)

        self._descriptors.append(descriptor)
        self._by_name[descriptor.name] = descriptor
        for alias in descriptor.aliases:
            self._by_alias[alias] = descriptor

        if descriptor.is_premium and not self._premium_check_available:
            logger.warning(
                "premium_entitlement_unconfigured",
                command=descriptor.name,
                msg="Premium flag has no entitlement check; command is open to everyone",
            )
        logger.debug("command_registered", command=descriptor.name, aliases=list(descriptor.aliases))

    def register_handler(self, handler: BaseCommandHandler) -> None:
        """Register every descriptor from a BaseCommandHandler group."""
        for descriptor in handler.get_commands():
            self.register(descriptor)

    def freeze(self) -> None:
        """Stop accepting registrations."""
        self._frozen = True
        logger.info("command_registry_frozen", commands=len(self._descriptors))

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup(self, token: str) -> Optional[CommandDescriptor]:
        """Resolve a command token, names first, then aliases."""
        token = token.strip().lower()
        return self._by_name.get(token) or self._by_alias.get(token)

    def list(self) -> CommandView:
        """Registered descriptors in registration order."""
        return CommandView(self)

    @property
    def command_names(self) -> frozenset:
        """All registered command names (aliases excluded)."""
        return frozenset(self._by_name.keys())

    def __len__(self) -> int:
        return len(self._descriptors)
