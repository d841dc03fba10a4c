"""WhatsApp bot implementation for acephar.

Connects to the messaging gateway over a WebSocket, applies the
presence automation flags from the BotState store, resolves who sent
each command (owner, group admin) and hands it to the Dispatcher.

Key classes:
    WhatsAppBot: Owns the shared state, the command registry, the
        transport and the message processing pipeline.

Key functions:
    build_registry: Register the built-in command groups and freeze
        the registry. Any conflict raises before the bot serves.
"""

import asyncio
import json
import time as _time
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Iterable, Optional, Type
from urllib.parse import urlparse

import aiohttp
import structlog
from pydantic import ValidationError

from .afk import AfkRegistry
from .commands import BUILTIN_HANDLERS, BaseCommandHandler, CommandRegistry, InvocationContext
from .config import Config, get_config, number_to_jid
from .dispatcher import Dispatcher, parse
from .exceptions import TransportError
from .logging_config import mask_jid
from .models import GatewayEvent, InboundMessage
from .permissions import PermissionGate, premium_check_from_numbers
from .state import BotState
from .transport import (
    PRESENCE_AVAILABLE,
    PRESENCE_COMPOSING,
    PRESENCE_PAUSED,
    PRESENCE_RECORDING,
    GatewayTransport,
    SignatureTransport,
    Transport,
)

logger = structlog.get_logger("acephar.bot")

DEDUP_WINDOW_SECONDS = 60
STATUS_REACTION = "❤️"


def build_registry(
    config: Optional[Config] = None,
    handlers: Iterable[Type[BaseCommandHandler]] = BUILTIN_HANDLERS,
    premium_check_available: bool = False,
) -> CommandRegistry:
    """Create, populate and freeze the command registry.

    Raises:
        RegistrationError: On any duplicate or unsatisfiable command.
    """
    registry = CommandRegistry(premium_check_available=premium_check_available)
    for handler_cls in handlers:
        registry.register_handler(handler_cls(config))
    registry.freeze()
    return registry


class WhatsAppBot:
    """WhatsApp bot with a command registry and shared state.

    The registry is built (and frozen) in __init__, so a registration
    conflict aborts construction before anything connects. Network
    resources are created in start().

    Args:
        config: Config instance; defaults to the global one.
        transport: Optional pre-built transport (skips the gateway client).
    """

    def __init__(self, config: Optional[Config] = None, transport: Optional[Transport] = None):
        self.config = config or get_config()
        self.start_time = datetime.now(timezone.utc)
        self.prefix = self.config.command_prefix
        self.owner_jid = self.config.owner_jid

        self.bot_state = BotState()
        self.afk_registry = AfkRegistry()

        premium = self.config.premium_numbers
        entitlement = premium_check_from_numbers(premium) if premium else None
        self.gate = PermissionGate(entitlement)
        self.registry = build_registry(
            self.config, premium_check_available=entitlement is not None
        )

        self.session: Optional[aiohttp.ClientSession] = None
        self.transport: Optional[Transport] = transport
        self.dispatcher: Optional[Dispatcher] = None
        self.running = False
        self._processed_messages = OrderedDict()  # Dedup: message id -> timestamp

        if self.transport is not None:
            self._init_dispatcher()

    def _init_dispatcher(self):
        self.dispatcher = Dispatcher(
            registry=self.registry,
            gate=self.gate,
            transport=self.transport,
            prefix=self.prefix,
            react_on_success=self.config.react_on_success,
        )

    async def start(self):
        """Open the HTTP session and build the transport and dispatcher."""
        self.running = True
        if self.transport is None:
            self.session = aiohttp.ClientSession()

            parsed = urlparse(self.config.gateway_api_url)
            if (
                parsed.hostname not in ("127.0.0.1", "localhost", "::1")
                and parsed.scheme != "https"
            ):
                logger.warning(
                    "insecure_gateway_url", url=self.config.gateway_api_url,
                    msg="Non-localhost gateway should use HTTPS",
                )

            transport: Transport = GatewayTransport(
                self.session,
                self.config.gateway_api_url,
                token=self.config.gateway_api_token,
                timeout=self.config.gateway_timeout,
            )
            if self.config.bot_signature_enabled:
                transport = SignatureTransport(transport, self.config.bot_signature_text)
            self.transport = transport
            self._init_dispatcher()

        logger.info(
            "bot_started",
            commands=len(self.registry),
            prefix=self.prefix,
            owner=mask_jid(self.owner_jid or ""),
        )

    async def stop(self):
        """Close the HTTP session."""
        if not self.running:
            return
        self.running = False
        if self.session:
            await self.session.close()
            self.session = None
        logger.info("bot_stopped")

    def is_owner(self, jid: str) -> bool:
        """True if ``jid`` (with or without a device suffix) is the owner."""
        return self.owner_jid is not None and number_to_jid(jid) == self.owner_jid

    async def _resolve_admin(self, message: InboundMessage) -> bool:
        """Ask the gateway whether the sender administers the group."""
        if not message.is_group:
            return False
        try:
            admins = await self.transport.get_group_admins(message.chat_id)
        except TransportError as e:
            logger.warning("admin_lookup_failed", chat=mask_jid(message.chat_id), error=str(e))
            return False
        return message.sender_jid in admins

    async def build_context(self, message: InboundMessage) -> InvocationContext:
        """Resolve the per-invocation context for a command message."""
        return InvocationContext(
            sender_jid=message.sender_jid,
            chat_id=message.chat_id,
            is_group=message.is_group,
            is_owner=self.is_owner(message.sender_jid),
            is_admin=await self._resolve_admin(message),
            command_prefix=self.prefix,
            command_map=self.registry.list(),
            bot_state=self.bot_state,
            afk_registry=self.afk_registry,
            start_time=self.start_time,
        )

    async def _handle_status_update(self, message: InboundMessage):
        """Auto-view (and like) a status update when enabled."""
        if not self.bot_state.is_auto_status_view_enabled or message.from_me:
            return
        await self.transport.mark_read(message.chat_id, [message.id])
        await self.transport.send_reaction(message.chat_id, message.id, STATUS_REACTION)
        logger.debug("status_auto_viewed", author=mask_jid(message.sender_jid))
        if self.config.status_view_notification_enabled:
            await self.transport.send_text(
                message.sender_jid, self.config.status_view_notification_text
            )

    async def _handle_channel_message(self, message: InboundMessage):
        """Mark a channel post as read when channel auto-view is on."""
        if not self.config.auto_view_channels:
            return
        await self.transport.mark_read(message.chat_id, [message.id])
        logger.debug("channel_auto_viewed", channel=message.chat_id)

    async def _apply_presence(self, message: InboundMessage) -> bool:
        """Mark read / show typing or recording. Returns True if a presence was sent."""
        if message.from_me:
            return False
        state = self.bot_state.snapshot()
        if state.auto_read:
            await self.transport.mark_read(message.chat_id, [message.id])
        if state.auto_typing:
            await self.transport.send_presence(message.chat_id, PRESENCE_COMPOSING)
            return True
        if state.auto_recording:
            await self.transport.send_presence(message.chat_id, PRESENCE_RECORDING)
            return True
        return False

    async def process_message(self, message: InboundMessage):
        """Run one inbound message through presence automation and dispatch."""
        if message.is_status:
            await self._handle_status_update(message)
            return
        if message.is_newsletter:
            await self._handle_channel_message(message)
            return

        presence_sent = await self._apply_presence(message)
        try:
            if parse(message.text, self.prefix) is None:
                return
            logger.info(
                "command_message_received",
                sender=mask_jid(message.sender_jid),
                chat=mask_jid(message.chat_id),
                length=len(message.text),
            )
            context = await self.build_context(message)
            await self.dispatcher.dispatch(message, context)
        finally:
            if presence_sent:
                await self.transport.send_presence(message.chat_id, PRESENCE_PAUSED)

    def _is_duplicate(self, message_id: str) -> bool:
        """Track recently seen message IDs; True if ``message_id`` was seen."""
        now = _time.time()
        cutoff = now - DEDUP_WINDOW_SECONDS
        while self._processed_messages:
            oldest_key, oldest_time = next(iter(self._processed_messages.items()))
            if oldest_time < cutoff:
                self._processed_messages.pop(oldest_key)
            else:
                break

        if message_id in self._processed_messages:
            return True
        self._processed_messages[message_id] = now
        return False

    async def handle_gateway_event(self, data: dict):
        """Handle one decoded event from the gateway WebSocket.

        Never raises: a bad event is logged and the connection stays up.
        """
        try:
            event = GatewayEvent.model_validate(data)
        except ValidationError as e:
            logger.warning("invalid_gateway_event", error=str(e), data=str(data)[:200])
            return

        message = event.message
        try:
            if event.event != "message" or message is None:
                logger.debug("gateway_event_skipped", event_type=event.event)
                return
            if self._is_duplicate(message.id):
                logger.debug("duplicate_message_skipped", message_id=message.id)
                return
            await self.process_message(message)
        except Exception as e:
            logger.error(
                "message_handling_error",
                error=str(e),
                error_type=type(e).__name__,
                event_type=event.event,
                chat=mask_jid(message.chat_id) if message else "",
            )

    async def poll_messages(self):
        """Connect to the gateway event WebSocket and process messages."""
        ws_base = self.config.gateway_api_url.replace(
            "http://", "ws://"
        ).replace("https://", "wss://")
        ws_url = f"{ws_base}/v1/events"
        headers = (
            {"Authorization": f"Bearer {self.config.gateway_api_token}"}
            if self.config.gateway_api_token else {}
        )

        reconnect_delay = 5
        MAX_RECONNECT_DELAY = 300

        while self.running:
            try:
                logger.info("websocket_connecting", url=ws_url)
                async with self.session.ws_connect(ws_url, heartbeat=30, headers=headers) as ws:
                    logger.info("websocket_connected")
                    reconnect_delay = 5
                    if self.bot_state.is_always_online:
                        try:
                            await self.transport.send_presence(None, PRESENCE_AVAILABLE)
                        except TransportError as e:
                            logger.warning("presence_restore_failed", error=str(e))
                    async for msg in ws:
                        if msg.type == aiohttp.WSMsgType.TEXT:
                            try:
                                data = json.loads(msg.data)
                            except json.JSONDecodeError:
                                logger.warning("invalid_json", data=msg.data[:100])
                                continue
                            await self.handle_gateway_event(data)
                        elif msg.type == aiohttp.WSMsgType.ERROR:
                            logger.error("websocket_error", error=str(ws.exception()))
                            break
                        elif msg.type == aiohttp.WSMsgType.CLOSED:
                            logger.info("websocket_closed")
                            break

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("websocket_exception", error=str(e))
                await asyncio.sleep(reconnect_delay)
                reconnect_delay = min(reconnect_delay * 2, MAX_RECONNECT_DELAY)

    async def run(self):
        """Main run loop: start, poll messages, stop on exit."""
        await self.start()

        try:
            await self.poll_messages()
        finally:
            await self.stop()
