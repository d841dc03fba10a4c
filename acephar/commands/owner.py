"""Owner command handler for acephar.

Handles: alwaysonline, autoread, autorecording, autotyping,
autostatus, private, pin.

The flag commands share one implementation driven by ``TOGGLES``;
mutual exclusion between flags lives in the BotState store, so the
handlers only report what the store says changed.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict, List, Tuple

from ..config import number_to_jid
from ..exceptions import TransportError
from ..state import BotFlag, BotState, ToggleResult
from ..transport import PRESENCE_AVAILABLE, PRESENCE_UNAVAILABLE
from .base import BaseCommandHandler, CommandDescriptor, reply
from .core import UNAVAILABLE

FLAG_LABELS: Dict[BotFlag, str] = {
    BotFlag.ALWAYS_ONLINE: "Always online",
    BotFlag.AUTO_READ: "Auto-read",
    BotFlag.AUTO_RECORDING: "Auto-recording",
    BotFlag.AUTO_TYPING: "Auto-typing",
    BotFlag.AUTO_STATUS_VIEW: "Auto status viewing",
    BotFlag.PRIVATE_MODE: "Private mode",
}

MIN_PIN_DIGITS = 7

PRESENCE_FAILED_NOTE = "⚠️ The presence update could not be sent to WhatsApp."


@dataclass(frozen=True)
class ToggleSpec:
    """One on/off owner command bound to a BotState setter."""
    name: str
    flag: BotFlag
    setter: Callable[[BotState, bool], ToggleResult]
    description: str
    aliases: Tuple[str, ...] = ()


TOGGLES: Tuple[ToggleSpec, ...] = (
    ToggleSpec(
        "alwaysonline", BotFlag.ALWAYS_ONLINE, BotState.set_always_online,
        "Toggles the bot's \"always online\" presence.",
    ),
    ToggleSpec(
        "autoread", BotFlag.AUTO_READ, BotState.set_auto_read,
        "Toggles auto-read. When on, all messages are marked as read.",
    ),
    ToggleSpec(
        "autorecording", BotFlag.AUTO_RECORDING, BotState.set_auto_recording,
        "Toggles the recording presence. Enabling this disables auto-typing.",
    ),
    ToggleSpec(
        "autotyping", BotFlag.AUTO_TYPING, BotState.set_auto_typing,
        "Toggles the typing presence. Enabling this disables auto-recording.",
    ),
    ToggleSpec(
        "autostatus", BotFlag.AUTO_STATUS_VIEW, BotState.set_auto_status_view,
        "Toggles automatic viewing and liking of status updates.",
        aliases=("as", "autoview"),
    ),
    ToggleSpec(
        "private", BotFlag.PRIVATE_MODE, BotState.set_private_mode,
        "Toggles private mode. When on, only the owner can run commands.",
        aliases=("pmode",),
    ),
)


def describe_toggle(result: ToggleResult) -> str:
    """User-facing text for a ToggleResult."""
    label = FLAG_LABELS[result.flag]
    if not result.changed:
        text = (
            f"✨ {label} is already enabled." if result.value
            else f"❌ {label} is already disabled."
        )
    else:
        text = (
            f"✅ {label} has been enabled." if result.value
            else f"⛔ {label} has been disabled."
        )
    for cleared in result.cleared:
        text += f" {FLAG_LABELS[cleared]} is now disabled."
    return text


class OwnerCommandHandler(BaseCommandHandler):
    """Handles owner-only bot management commands."""

    def get_commands(self) -> List[CommandDescriptor]:
        commands = [
            CommandDescriptor(
                name=spec.name,
                aliases=spec.aliases,
                handler=partial(self.handle_toggle, spec),
                description=spec.description,
                category="Owner",
                usage="<on|off>",
                owner_only=True,
            )
            for spec in TOGGLES
        ]
        commands.append(
            CommandDescriptor(
                name="pin",
                handler=self.handle_pin,
                description="Pins this chat, or the chat with a given number.",
                category="Owner",
                usage="[number]",
                owner_only=True,
            )
        )
        return commands

    async def handle_toggle(self, spec: ToggleSpec, transport, message, args, logger, ctx) -> None:
        """Turn one bot flag on or off, or report it when no action is given.

        Usage::

            !autotyping on
            !autotyping off
            !autotyping
        """
        if ctx.bot_state is None:
            await reply(transport, message, UNAVAILABLE)
            return

        prefix = ctx.command_prefix or ""
        label = FLAG_LABELS[spec.flag]
        if not args:
            current = "✅ ON" if ctx.bot_state.get(spec.flag) else "❌ OFF"
            await reply(
                transport, message,
                f"{label} is currently {current}. "
                f"Use `{prefix}{spec.name} on` or `{prefix}{spec.name} off` to change.",
            )
            return

        action = args[0].lower()
        if action not in ("on", "off"):
            await reply(
                transport, message,
                f"⚠️ Invalid action. Use `{prefix}{spec.name} on` or `{prefix}{spec.name} off`.",
            )
            return

        result = spec.setter(ctx.bot_state, action == "on")
        if result.changed:
            logger.info("bot_flag_toggled", flag=spec.flag.value, value=result.value)

        text = describe_toggle(result)
        if spec.flag is BotFlag.ALWAYS_ONLINE and result.changed:
            try:
                await transport.send_presence(
                    None, PRESENCE_AVAILABLE if result.value else PRESENCE_UNAVAILABLE
                )
            except TransportError as e:
                logger.error("presence_update_failed", flag=spec.flag.value, error=str(e))
                text += f"\n{PRESENCE_FAILED_NOTE}"

        await reply(transport, message, text)

    async def handle_pin(self, transport, message, args, logger, ctx) -> None:
        """Pin the current chat, or the private chat with a number.

        Usage::

            !pin
            !pin 254712345678
        """
        prefix = ctx.command_prefix or ""
        if args:
            digits = "".join(ch for ch in args[0] if ch.isdigit())
            if len(digits) < MIN_PIN_DIGITS:
                await reply(
                    transport, message,
                    "❌ *Usage Error*\n\nPlease provide a valid user number to pin. "
                    f"Example: `{prefix}pin 254712345678`",
                )
                return
            target = number_to_jid(digits)
            display = f"the chat with {digits}"
        else:
            target = message.chat_id
            display = "this chat"

        try:
            await transport.pin_chat(target)
        except TransportError as e:
            logger.error("pin_failed", error=str(e))
            await reply(
                transport, message,
                "❌ *Pin Error*\n\nAn error occurred while trying to pin the chat. Please try again.",
            )
            return

        await reply(transport, message, f"✅ *Success!* {display} has been pinned.")
