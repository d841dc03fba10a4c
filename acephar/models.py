"""Pydantic models for gateway events and inbound messages."""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

GROUP_SUFFIX = "@g.us"
STATUS_BROADCAST = "status@broadcast"
NEWSLETTER_SUFFIX = "@newsletter"


class QuotedMessage(BaseModel):
    """The message an inbound message replies to."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    participant: Optional[str] = Field(default=None, description="Author JID of the quoted message")
    text: Optional[str] = None


class InboundMessage(BaseModel):
    """A normalised inbound chat message."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Gateway message ID")
    chat_id: str = Field(..., alias="chatId", description="JID of the chat the message arrived in")
    sender_jid: str = Field(..., alias="sender", description="JID of the author")
    text: str = ""
    from_me: bool = Field(default=False, alias="fromMe")
    push_name: Optional[str] = Field(default=None, alias="pushName")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    quoted: Optional[QuotedMessage] = None
    mentions: List[str] = Field(default_factory=list)

    @property
    def is_group(self) -> bool:
        return self.chat_id.endswith(GROUP_SUFFIX)

    @property
    def is_status(self) -> bool:
        return self.chat_id == STATUS_BROADCAST

    @property
    def is_newsletter(self) -> bool:
        return self.chat_id.endswith(NEWSLETTER_SUFFIX)


class GatewayEvent(BaseModel):
    """Envelope pushed by the gateway over the event WebSocket."""

    event: str
    message: Optional[InboundMessage] = None
