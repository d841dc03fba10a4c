"""Group command handler for acephar.

Handles: kick.
"""

from __future__ import annotations

from typing import List

from ..exceptions import TransportError
from .base import BaseCommandHandler, CommandDescriptor, reply


class GroupCommandHandler(BaseCommandHandler):
    """Handles group moderation commands."""

    def get_commands(self) -> List[CommandDescriptor]:
        return [
            CommandDescriptor(
                name="kick",
                handler=self.handle_kick,
                description="Removes the replied-to user from the group. The bot must be an admin.",
                category="Groups",
                admin_only=True,
                group_only=True,
            ),
        ]

    async def handle_kick(self, transport, message, args, logger, ctx) -> None:
        """Remove the author of the quoted message from the group.

        Usage (as a reply to the user's message)::

            !kick
        """
        target = message.quoted.participant if message.quoted else None
        if not target:
            await reply(transport, message, "❌ Please reply to the user you want to kick.")
            return

        try:
            await transport.update_group_participants(message.chat_id, [target], "remove")
        except TransportError as e:
            logger.error("kick_failed", error=str(e))
            await reply(
                transport, message,
                "⚠️ Failed to kick the user. Make sure the bot is a group admin.",
            )
            return

        await reply(transport, message, f"✅ Successfully kicked {target.split('@')[0]}.")
