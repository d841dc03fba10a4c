"""Command dispatcher.

Turns an inbound message into a command invocation:

    parse -> registry lookup -> permission gate -> handler

Non-commands and unknown commands are ignored silently. A denial
produces one reply and the handler never runs. The handler call is the
only step inside the failure-containment boundary: whatever it raises
is logged and answered with a generic apology, and the message loop
carries on.
"""

import random
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import structlog

from .commands.base import InvocationContext, reply
from .commands.registry import CommandRegistry
from .logging_config import mask_jid
from .models import InboundMessage
from .permissions import PermissionGate
from .transport import Transport

logger = structlog.get_logger("acephar.commands")

FAILURE_REPLY = "⚠️ Something went wrong while running that command. Please try again later."

SUCCESS_REACTIONS = ("✅", "👍", "✨", "🚀", "🌟", "🤖", "🔥", "🎉", "💡", "💬", "💫")


@dataclass(frozen=True)
class ParsedCommand:
    command: str
    args: List[str]


class DispatchOutcome(str, Enum):
    NOT_A_COMMAND = "not_a_command"
    IGNORED = "ignored"          # private mode, sender is not the owner
    UNKNOWN = "unknown"
    DENIED = "denied"
    COMPLETED = "completed"
    FAILED = "failed"


def parse(text: str, prefix: str) -> Optional[ParsedCommand]:
    """Split ``text`` into a command token and arguments.

    Returns None unless ``text`` starts with exactly ``prefix``. The rest
    is split on runs of whitespace; the first token, lower-cased, is the
    command. A bare prefix is not a command.
    """
    if not text or not prefix or not text.startswith(prefix):
        return None
    tokens = text[len(prefix):].split()
    if not tokens:
        return None
    return ParsedCommand(command=tokens[0].lower(), args=tokens[1:])


class Dispatcher:
    """Routes parsed commands to their handlers.

    Args:
        registry: Frozen command registry.
        gate: Permission gate.
        transport: Transport handed to handlers and used for replies.
        prefix: Command prefix.
        react_on_success: React to the invoking message after a
            handler completes.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        gate: PermissionGate,
        transport: Transport,
        prefix: str = "!",
        react_on_success: bool = False,
    ):
        self.registry = registry
        self.gate = gate
        self.transport = transport
        self.prefix = prefix
        self.react_on_success = react_on_success

    async def dispatch(self, message: InboundMessage, context: InvocationContext) -> DispatchOutcome:
        parsed = parse(message.text, self.prefix)
        if parsed is None:
            return DispatchOutcome.NOT_A_COMMAND

        sender = mask_jid(context.sender_jid or message.sender_jid)

        if (
            context.bot_state is not None
            and context.bot_state.is_private_mode
            and context.is_owner is not True
        ):
            logger.debug("command_ignored_private_mode", command=parsed.command, sender=sender)
            return DispatchOutcome.IGNORED

        descriptor = self.registry.lookup(parsed.command)
        if descriptor is None:
            logger.debug("unknown_command", command=parsed.command, sender=sender)
            return DispatchOutcome.UNKNOWN

        decision = self.gate.evaluate(descriptor, context)
        if not decision.allowed:
            logger.info(
                "command_denied",
                command=descriptor.name, reason=decision.reason.value, sender=sender,
            )
            await reply(self.transport, message, decision.message)
            return DispatchOutcome.DENIED

        handler_logger = logger.bind(command=descriptor.name, sender=sender)
        if context.logger is None:
            context.logger = handler_logger

        logger.info("command_dispatched", command=descriptor.name, sender=sender, args=len(parsed.args))
        try:
            await descriptor.handler(self.transport, message, parsed.args, handler_logger, context)
        except Exception as e:
            logger.exception(
                "command_handler_failed",
                command=descriptor.name,
                sender=sender,
                chat=mask_jid(message.chat_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            try:
                await reply(self.transport, message, FAILURE_REPLY)
            except Exception as send_error:
                logger.error("failure_reply_error", command=descriptor.name, error=str(send_error))
            return DispatchOutcome.FAILED

        if self.react_on_success:
            try:
                await self.transport.send_reaction(
                    message.chat_id, message.id, random.choice(SUCCESS_REACTIONS)
                )
            except Exception as e:
                logger.warning("success_reaction_error", command=descriptor.name, error=str(e))

        return DispatchOutcome.COMPLETED
