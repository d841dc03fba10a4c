"""General command handler for acephar.

Handles: help, menu, ping, uptime, alive, afk.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from datetime import datetime
from typing import List

from ..afk import AfkActivated
from ..system_info import collect_system_info, format_duration
from .base import BaseCommandHandler, CommandDescriptor, reply

UNAVAILABLE = "⚠️ This feature is unavailable right now."


class CoreCommandHandler(BaseCommandHandler):
    """Handles general-purpose commands available to everyone."""

    def get_commands(self) -> List[CommandDescriptor]:
        return [
            CommandDescriptor(
                name="help",
                handler=self.handle_help,
                description="Lists all available commands.",
            ),
            CommandDescriptor(
                name="menu",
                aliases=("start", "commands"),
                handler=self.handle_menu,
                description="Displays all commands grouped by category.",
            ),
            CommandDescriptor(
                name="ping",
                aliases=("latency",),
                handler=self.handle_ping,
                description="Checks the bot's response latency.",
                category="Utility",
            ),
            CommandDescriptor(
                name="uptime",
                aliases=("up", "online"),
                handler=self.handle_uptime,
                description="Displays how long the bot has been running.",
                category="Utility",
            ),
            CommandDescriptor(
                name="alive",
                aliases=("info",),
                handler=self.handle_alive,
                description="Checks that the bot is online and shows system info.",
                category="Utility",
            ),
            CommandDescriptor(
                name="afk",
                aliases=("away",),
                handler=self.handle_afk,
                description="Toggles your away-from-keyboard status.",
                category="Utility",
                usage="[reason]",
            ),
        ]

    def _bot_name(self) -> str:
        return self.config.bot_name if self.config else "ACEPHAR Bot"

    async def handle_help(self, transport, message, args, logger, ctx) -> None:
        """List every registered command name.

        Usage::

            !help
        """
        if ctx.command_map is None:
            await reply(transport, message, UNAVAILABLE)
            return
        prefix = ctx.command_prefix or ""
        names = ", ".join(f"`{prefix}{d.name}`" for d in ctx.command_map)
        text = f"*📚 All Available Commands*\n\n{names}"
        text += f"\n\n_Type `{prefix}menu` for more details and bot info._"
        await reply(transport, message, text)

    async def handle_menu(self, transport, message, args, logger, ctx) -> None:
        """Show bot info and commands grouped by category.

        Usage::

            !menu
        """
        if ctx.command_map is None:
            await reply(transport, message, UNAVAILABLE)
            return
        prefix = ctx.command_prefix or ""

        categories: "OrderedDict[str, List[str]]" = OrderedDict()
        for descriptor in ctx.command_map:
            categories.setdefault(descriptor.category or "Uncategorized", []).append(descriptor.name)

        lines = [f"*Hey {message.push_name or 'User'}! I'm {self._bot_name()}.* 👋", ""]
        lines.append("*🤖 Bot Information*")
        if ctx.is_group is not None:
            lines.append(f"> Mode: {'Group Chat' if ctx.is_group else 'Private Chat'}")
        lines.append(f"> Prefix: `{prefix}`")
        lines.append(f"> Total Commands: {len(ctx.command_map)}")
        if ctx.start_time is not None:
            lines.append(f"> Uptime: {format_duration(_seconds_since(ctx.start_time))}")
        lines.append("")
        lines.append("*📁 Commands by Category*")
        for category, names in categories.items():
            lines.append(f"> *{category}*:")
            lines.append("  " + ", ".join(f"`{prefix}{n}`" for n in names))
            lines.append("")
        lines.append(f"_Type `{prefix}help` for a simplified list of commands._")
        await reply(transport, message, "\n".join(lines))

    async def handle_ping(self, transport, message, args, logger, ctx) -> None:
        """Measure the round trip of one outgoing message.

        Usage::

            !ping
        """
        started = time.monotonic()
        sent_id = await reply(transport, message, "Pinging...")
        latency_ms = int((time.monotonic() - started) * 1000)
        await transport.send_text(
            message.chat_id,
            f"🏓 Pong! Latency: *{latency_ms}ms*",
            quoted=sent_id or message.id,
        )
        logger.info("ping_completed", latency_ms=latency_ms)

    async def handle_uptime(self, transport, message, args, logger, ctx) -> None:
        """Report how long the bot process has been running.

        Usage::

            !uptime
        """
        if ctx.start_time is None:
            await reply(transport, message, UNAVAILABLE)
            return
        uptime = format_duration(_seconds_since(ctx.start_time))
        started = ctx.start_time.strftime("%Y-%m-%d %H:%M:%S %Z").strip()
        await reply(
            transport, message,
            f"*⏱️ Bot Uptime*\n\n*• Uptime:* {uptime}\n*• Started:* {started}",
        )

    async def handle_alive(self, transport, message, args, logger, ctx) -> None:
        """Report online status, uptime, and host details.

        Usage::

            !alive
        """
        info = collect_system_info()
        version = self.config.bot_version if self.config else "N/A"
        lines = [
            f"🌟 *{self._bot_name()} Status & System Info* 🌟",
            "",
            "*Bot Status:* Online ✅",
        ]
        if ctx.start_time is not None:
            lines.append(f"*Uptime:* {format_duration(_seconds_since(ctx.start_time))}")
        lines.append(f"*Version:* {version}")
        if ctx.command_prefix:
            lines.append(f"*Prefix:* {ctx.command_prefix}")
        lines += [
            "",
            "*System Details:*",
            f"*OS:* {info.platform} ({info.arch})",
            f"*Python Version:* {info.python_version}",
            f"*CPUs:* {info.cpu_count}",
            f"*Memory Usage:* {info.memory_used_gb:.2f} GB / {info.memory_total_gb:.2f} GB",
        ]
        await reply(transport, message, "\n".join(lines))

    async def handle_afk(self, transport, message, args, logger, ctx) -> None:
        """Toggle the sender's AFK status.

        The first call marks the sender away with the given reason; the
        next call clears it and reports how long they were gone.

        Usage::

            !afk lunch, back in 20
            !afk
        """
        sender = ctx.sender_jid or message.sender_jid
        if ctx.afk_registry is None or not sender:
            await reply(transport, message, UNAVAILABLE)
            return

        result = ctx.afk_registry.toggle(sender, " ".join(args))
        if isinstance(result, AfkActivated):
            await reply(transport, message, f"You are now AFK with reason: {result.reason}")
            return

        previous = result.previous_entry
        away = format_duration(previous.elapsed_seconds())
        await reply(
            transport, message,
            "Welcome back! Your AFK status has been removed.\n"
            f"You were away for {away} ({previous.reason})",
        )


def _seconds_since(start: datetime) -> float:
    return (datetime.now(start.tzinfo) - start).total_seconds()
