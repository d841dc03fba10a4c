"""Messaging transport for acephar.

The command runtime never talks to the WhatsApp network itself; it
calls a Transport. GatewayTransport is the production implementation:
a thin aiohttp client for a JSON REST gateway that owns the actual
WhatsApp session. SignatureTransport decorates any transport so that
every outgoing text carries the configured bot signature.

Key classes:
    Transport: Protocol every transport implements.
    GatewayTransport: aiohttp client for the REST gateway.
    SignatureTransport: Appends a signature to outgoing texts.
"""

from typing import Any, List, Optional, Protocol
from urllib.parse import quote

import aiohttp
import structlog

from .exceptions import ErrorCategory, TransportError
from .logging_config import mask_jid

logger = structlog.get_logger("acephar.transport")

# Presence values understood by the gateway
PRESENCE_AVAILABLE = "available"
PRESENCE_UNAVAILABLE = "unavailable"
PRESENCE_COMPOSING = "composing"
PRESENCE_RECORDING = "recording"
PRESENCE_PAUSED = "paused"


class Transport(Protocol):
    """Remote messaging operations used by the bot and its commands."""

    async def send_text(
        self, chat_id: str, text: str, quoted: Optional[str] = None
    ) -> Optional[str]:
        """Send a text message; returns the new message ID if known."""
        ...

    async def send_reaction(self, chat_id: str, message_id: str, emoji: str) -> None:
        ...

    async def send_presence(self, chat_id: Optional[str], presence: str) -> None:
        ...

    async def mark_read(self, chat_id: str, message_ids: List[str]) -> None:
        ...

    async def get_group_admins(self, chat_id: str) -> List[str]:
        ...

    async def update_group_participants(
        self, chat_id: str, jids: List[str], action: str
    ) -> None:
        ...

    async def pin_chat(self, jid: str) -> None:
        ...


class GatewayTransport:
    """Transport backed by the REST gateway.

    Args:
        session: Shared aiohttp session (owned by the bot).
        base_url: Gateway base URL without trailing slash.
        token: Optional bearer token.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str,
        token: str = "",
        timeout: float = 15,
    ):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with self.session.request(
                method, url, json=payload, headers=self._headers, timeout=self._timeout
            ) as resp:
                if resp.status >= 300:
                    body = await resp.text()
                    logger.warning(
                        "gateway_request_failed",
                        endpoint=path, status=resp.status, body=body[:200],
                    )
                    category = (
                        ErrorCategory.TRANSIENT if resp.status >= 500 or resp.status == 429
                        else ErrorCategory.PERMANENT
                    )
                    raise TransportError(
                        f"Gateway returned {resp.status}",
                        status=resp.status, endpoint=path, category=category,
                    )
                if resp.content_type == "application/json":
                    return await resp.json()
                return None
        except aiohttp.ClientError as e:
            logger.error("gateway_request_error", endpoint=path, error=str(e))
            raise TransportError(str(e), endpoint=path) from e

    async def send_text(
        self, chat_id: str, text: str, quoted: Optional[str] = None
    ) -> Optional[str]:
        payload = {"chatId": chat_id, "text": text}
        if quoted:
            payload["quotedId"] = quoted
        data = await self._request("POST", "/v1/messages/text", payload)
        logger.debug("text_sent", chat=mask_jid(chat_id), length=len(text))
        if isinstance(data, dict):
            return data.get("id")
        return None

    async def send_reaction(self, chat_id: str, message_id: str, emoji: str) -> None:
        await self._request(
            "POST", "/v1/messages/reaction",
            {"chatId": chat_id, "messageId": message_id, "emoji": emoji},
        )

    async def send_presence(self, chat_id: Optional[str], presence: str) -> None:
        payload = {"presence": presence}
        if chat_id:
            payload["chatId"] = chat_id
        await self._request("POST", "/v1/presence", payload)

    async def mark_read(self, chat_id: str, message_ids: List[str]) -> None:
        await self._request(
            "POST", "/v1/messages/read",
            {"chatId": chat_id, "messageIds": list(message_ids)},
        )

    async def get_group_admins(self, chat_id: str) -> List[str]:
        data = await self._request("GET", f"/v1/groups/{quote(chat_id)}/admins")
        if not isinstance(data, dict):
            return []
        return [str(jid) for jid in data.get("admins", [])]

    async def update_group_participants(
        self, chat_id: str, jids: List[str], action: str
    ) -> None:
        await self._request(
            "POST", f"/v1/groups/{quote(chat_id)}/participants",
            {"jids": list(jids), "action": action},
        )
        logger.info(
            "group_participants_updated",
            chat=mask_jid(chat_id), action=action, count=len(jids),
        )

    async def pin_chat(self, jid: str) -> None:
        await self._request("POST", f"/v1/chats/{quote(jid)}/pin", {"pin": True})


class SignatureTransport:
    """Wrap a transport and append ``signature`` to every outgoing text.

    All other operations are forwarded untouched.
    """

    def __init__(self, inner: Transport, signature: str):
        self._inner = inner
        self.signature = signature

    async def send_text(
        self, chat_id: str, text: str, quoted: Optional[str] = None
    ) -> Optional[str]:
        return await self._inner.send_text(chat_id, text + self.signature, quoted=quoted)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._inner, name)
