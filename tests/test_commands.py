"""Tests for the built-in command handlers."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from acephar.afk import AfkRegistry
from acephar.commands import CommandRegistry, InvocationContext
from acephar.commands.core import UNAVAILABLE, CoreCommandHandler
from acephar.commands.group import GroupCommandHandler
from acephar.commands.owner import (
    PRESENCE_FAILED_NOTE,
    TOGGLES,
    OwnerCommandHandler,
    describe_toggle,
)
from acephar.exceptions import TransportError
from acephar.models import InboundMessage, QuotedMessage
from acephar.state import BotFlag, BotState, ToggleResult
from acephar.system_info import SystemInfo
from acephar.transport import PRESENCE_AVAILABLE, PRESENCE_UNAVAILABLE

OWNER = "254712345678@s.whatsapp.net"
GROUP_CHAT = "120363000000000000@g.us"


def _message(text="", chat_id=OWNER, sender=OWNER, **extra):
    return InboundMessage(id="MSG1", chat_id=chat_id, sender_jid=sender, text=text, **extra)


def _context(**fields):
    defaults = {
        "sender_jid": OWNER,
        "chat_id": OWNER,
        "is_owner": True,
        "is_group": False,
        "command_prefix": "!",
    }
    defaults.update(fields)
    return InvocationContext(**defaults)


def _sent_texts(transport):
    return [c.args[1] for c in transport.send_text.await_args_list]


def _toggle(name):
    return next(spec for spec in TOGGLES if spec.name == name)


# -------------------------------------------------------------------
# Owner toggles
# -------------------------------------------------------------------

class TestToggleCommands:

    @pytest.mark.asyncio
    async def test_enable_reports_enabled(self):
        handler = OwnerCommandHandler()
        transport = AsyncMock()
        state = BotState()

        await handler.handle_toggle(
            _toggle("autoread"), transport, _message(), ["on"], MagicMock(), _context(bot_state=state)
        )

        assert state.is_auto_read is True
        assert _sent_texts(transport) == ["✅ Auto-read has been enabled."]

    @pytest.mark.asyncio
    async def test_repeat_enable_reports_already(self):
        handler = OwnerCommandHandler()
        transport = AsyncMock()
        state = BotState()
        state.set_auto_read(True)

        await handler.handle_toggle(
            _toggle("autoread"), transport, _message(), ["ON"], MagicMock(), _context(bot_state=state)
        )

        assert _sent_texts(transport) == ["✨ Auto-read is already enabled."]

    @pytest.mark.asyncio
    async def test_typing_reports_cleared_recording(self):
        handler = OwnerCommandHandler()
        transport = AsyncMock()
        state = BotState()
        state.set_auto_recording(True)

        await handler.handle_toggle(
            _toggle("autotyping"), transport, _message(), ["on"], MagicMock(), _context(bot_state=state)
        )

        assert state.is_auto_typing is True
        assert state.is_auto_recording is False
        assert _sent_texts(transport) == [
            "✅ Auto-typing has been enabled. Auto-recording is now disabled."
        ]

    @pytest.mark.asyncio
    async def test_no_args_reports_current_value(self):
        handler = OwnerCommandHandler()
        transport = AsyncMock()

        await handler.handle_toggle(
            _toggle("private"), transport, _message(), [], MagicMock(), _context(bot_state=BotState())
        )

        text = _sent_texts(transport)[0]
        assert text.startswith("Private mode is currently ❌ OFF.")
        assert "`!private on`" in text

    @pytest.mark.asyncio
    async def test_invalid_action(self):
        handler = OwnerCommandHandler()
        transport = AsyncMock()
        state = BotState()

        await handler.handle_toggle(
            _toggle("autostatus"), transport, _message(), ["maybe"], MagicMock(), _context(bot_state=state)
        )

        assert state.is_auto_status_view_enabled is False
        assert _sent_texts(transport)[0].startswith("⚠️ Invalid action.")

    @pytest.mark.asyncio
    async def test_always_online_updates_presence(self):
        handler = OwnerCommandHandler()
        transport = AsyncMock()
        state = BotState()
        ctx = _context(bot_state=state)
        spec = _toggle("alwaysonline")

        await handler.handle_toggle(spec, transport, _message(), ["on"], MagicMock(), ctx)
        transport.send_presence.assert_awaited_once_with(None, PRESENCE_AVAILABLE)

        transport.send_presence.reset_mock()
        await handler.handle_toggle(spec, transport, _message(), ["on"], MagicMock(), ctx)
        transport.send_presence.assert_not_awaited()

        await handler.handle_toggle(spec, transport, _message(), ["off"], MagicMock(), ctx)
        transport.send_presence.assert_awaited_once_with(None, PRESENCE_UNAVAILABLE)

    @pytest.mark.asyncio
    async def test_presence_failure_still_reports_new_state(self):
        handler = OwnerCommandHandler()
        transport = AsyncMock()
        transport.send_presence.side_effect = TransportError("gateway down", status=503)
        state = BotState()

        await handler.handle_toggle(
            _toggle("alwaysonline"), transport, _message(), ["on"], MagicMock(), _context(bot_state=state)
        )

        assert state.is_always_online is True
        assert _sent_texts(transport) == [
            f"✅ Always online has been enabled.\n{PRESENCE_FAILED_NOTE}"
        ]

    @pytest.mark.asyncio
    async def test_missing_state_degrades(self):
        handler = OwnerCommandHandler()
        transport = AsyncMock()

        await handler.handle_toggle(
            _toggle("autoread"), transport, _message(), ["on"], MagicMock(), _context()
        )

        assert _sent_texts(transport) == [UNAVAILABLE]

    def test_describe_toggle_disabled(self):
        assert describe_toggle(ToggleResult(BotFlag.AUTO_TYPING, False, True)) == (
            "⛔ Auto-typing has been disabled."
        )
        assert describe_toggle(ToggleResult(BotFlag.AUTO_TYPING, False, False)) == (
            "❌ Auto-typing is already disabled."
        )

    def test_toggle_descriptors_are_owner_only(self):
        for descriptor in OwnerCommandHandler().get_commands():
            assert descriptor.owner_only is True
            assert descriptor.category == "Owner"


# -------------------------------------------------------------------
# pin
# -------------------------------------------------------------------

class TestPin:

    @pytest.mark.asyncio
    async def test_pin_current_chat(self):
        transport = AsyncMock()
        await OwnerCommandHandler().handle_pin(transport, _message(), [], MagicMock(), _context())

        transport.pin_chat.assert_awaited_once_with(OWNER)
        assert _sent_texts(transport) == ["✅ *Success!* this chat has been pinned."]

    @pytest.mark.asyncio
    async def test_pin_number(self):
        transport = AsyncMock()
        await OwnerCommandHandler().handle_pin(
            transport, _message(), ["+254-700-000-000"], MagicMock(), _context()
        )

        transport.pin_chat.assert_awaited_once_with("254700000000@s.whatsapp.net")
        assert "254700000000" in _sent_texts(transport)[0]

    @pytest.mark.asyncio
    async def test_pin_rejects_short_number(self):
        transport = AsyncMock()
        await OwnerCommandHandler().handle_pin(transport, _message(), ["123"], MagicMock(), _context())

        transport.pin_chat.assert_not_awaited()
        assert _sent_texts(transport)[0].startswith("❌ *Usage Error*")

    @pytest.mark.asyncio
    async def test_pin_transport_error(self):
        transport = AsyncMock()
        transport.pin_chat.side_effect = TransportError("nope", status=500)

        await OwnerCommandHandler().handle_pin(transport, _message(), [], MagicMock(), _context())

        assert _sent_texts(transport)[0].startswith("❌ *Pin Error*")


# -------------------------------------------------------------------
# kick
# -------------------------------------------------------------------

class TestKick:

    @pytest.mark.asyncio
    async def test_kick_quoted_participant(self):
        transport = AsyncMock()
        target = "254700000000@s.whatsapp.net"
        message = _message(
            "!kick", chat_id=GROUP_CHAT,
            quoted=QuotedMessage(id="Q1", participant=target),
        )

        await GroupCommandHandler().handle_kick(transport, message, [], MagicMock(), _context(is_group=True))

        transport.update_group_participants.assert_awaited_once_with(GROUP_CHAT, [target], "remove")
        assert _sent_texts(transport) == ["✅ Successfully kicked 254700000000."]

    @pytest.mark.asyncio
    async def test_kick_without_reply(self):
        transport = AsyncMock()
        message = _message("!kick", chat_id=GROUP_CHAT)

        await GroupCommandHandler().handle_kick(transport, message, [], MagicMock(), _context(is_group=True))

        transport.update_group_participants.assert_not_awaited()
        assert _sent_texts(transport) == ["❌ Please reply to the user you want to kick."]

    @pytest.mark.asyncio
    async def test_kick_failure(self):
        transport = AsyncMock()
        transport.update_group_participants.side_effect = TransportError("forbidden", status=403)
        message = _message(
            "!kick", chat_id=GROUP_CHAT,
            quoted=QuotedMessage(id="Q1", participant="254700000000@s.whatsapp.net"),
        )

        await GroupCommandHandler().handle_kick(transport, message, [], MagicMock(), _context(is_group=True))

        assert "group admin" in _sent_texts(transport)[0]

    def test_kick_descriptor_flags(self):
        (kick,) = GroupCommandHandler().get_commands()
        assert kick.admin_only is True
        assert kick.group_only is True
        assert kick.private_only is False


# -------------------------------------------------------------------
# Core commands
# -------------------------------------------------------------------

class TestCoreCommands:

    def _command_map(self):
        registry = CommandRegistry()
        for handler in (CoreCommandHandler(), GroupCommandHandler()):
            registry.register_handler(handler)
        return registry.list()

    @pytest.mark.asyncio
    async def test_help_lists_every_command(self):
        transport = AsyncMock()
        ctx = _context(command_map=self._command_map())

        await CoreCommandHandler().handle_help(transport, _message(), [], MagicMock(), ctx)

        text = _sent_texts(transport)[0]
        assert text.startswith("*📚 All Available Commands*")
        for name in ("help", "menu", "ping", "uptime", "alive", "afk", "kick"):
            assert f"`!{name}`" in text

    @pytest.mark.asyncio
    async def test_help_without_command_map(self):
        transport = AsyncMock()
        await CoreCommandHandler().handle_help(transport, _message(), [], MagicMock(), _context())
        assert _sent_texts(transport) == [UNAVAILABLE]

    @pytest.mark.asyncio
    async def test_menu_groups_by_category(self):
        transport = AsyncMock()
        ctx = _context(
            command_map=self._command_map(),
            start_time=datetime.now(timezone.utc) - timedelta(minutes=3),
        )

        await CoreCommandHandler().handle_menu(
            transport, _message(push_name="Amina"), [], MagicMock(), ctx
        )

        text = _sent_texts(transport)[0]
        assert "Hey Amina!" in text
        assert "> *Groups*:" in text
        assert "> *Utility*:" in text
        assert "> Total Commands: 7" in text
        assert "> Mode: Private Chat" in text

    @pytest.mark.asyncio
    async def test_ping_quotes_the_probe(self):
        transport = AsyncMock()
        transport.send_text.side_effect = ["PROBE1", "PONG1"]

        await CoreCommandHandler().handle_ping(transport, _message(), [], MagicMock(), _context())

        first, second = transport.send_text.await_args_list
        assert first.args == (OWNER, "Pinging...")
        assert second.args[1].startswith("🏓 Pong! Latency: *")
        assert second.kwargs["quoted"] == "PROBE1"

    @pytest.mark.asyncio
    async def test_uptime(self):
        transport = AsyncMock()
        start = datetime.now(timezone.utc) - timedelta(hours=1, minutes=2)

        await CoreCommandHandler().handle_uptime(
            transport, _message(), [], MagicMock(), _context(start_time=start)
        )

        assert "1h 2m" in _sent_texts(transport)[0]

    @pytest.mark.asyncio
    async def test_uptime_without_start_time(self):
        transport = AsyncMock()
        await CoreCommandHandler().handle_uptime(transport, _message(), [], MagicMock(), _context())
        assert _sent_texts(transport) == [UNAVAILABLE]

    @pytest.mark.asyncio
    async def test_alive_reports_system_info(self):
        transport = AsyncMock()
        info = SystemInfo(
            platform="Linux", arch="x86_64", python_version="3.12.1",
            cpu_count=8, memory_used_gb=2.5, memory_total_gb=16.0, memory_percent=15.6,
        )
        with patch("acephar.commands.core.collect_system_info", return_value=info):
            await CoreCommandHandler().handle_alive(transport, _message(), [], MagicMock(), _context())

        text = _sent_texts(transport)[0]
        assert "*Bot Status:* Online ✅" in text
        assert "*OS:* Linux (x86_64)" in text
        assert "2.50 GB / 16.00 GB" in text

    @pytest.mark.asyncio
    async def test_afk_round_trip(self):
        transport = AsyncMock()
        afk = AfkRegistry()
        ctx = _context(afk_registry=afk)
        handler = CoreCommandHandler()

        await handler.handle_afk(transport, _message(), ["gone", "fishing"], MagicMock(), ctx)
        assert afk.is_afk(OWNER)
        assert _sent_texts(transport) == ["You are now AFK with reason: gone fishing"]

        await handler.handle_afk(transport, _message(), [], MagicMock(), ctx)
        assert not afk.is_afk(OWNER)
        welcome = _sent_texts(transport)[1]
        assert welcome.startswith("Welcome back! Your AFK status has been removed.")
        assert welcome.endswith("(gone fishing)")

    @pytest.mark.asyncio
    async def test_afk_default_reason(self):
        transport = AsyncMock()
        await CoreCommandHandler().handle_afk(
            transport, _message(), [], MagicMock(), _context(afk_registry=AfkRegistry())
        )
        assert _sent_texts(transport) == ["You are now AFK with reason: No reason provided."]

    @pytest.mark.asyncio
    async def test_afk_without_registry(self):
        transport = AsyncMock()
        await CoreCommandHandler().handle_afk(transport, _message(), [], MagicMock(), _context())
        assert _sent_texts(transport) == [UNAVAILABLE]
