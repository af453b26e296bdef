from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class MessageType(str, Enum):
    SUBSCRIBE = "subscribe"
    ACK = "ack"
    EVENT = "event"
    ERROR = "error"
    PONG = "pong"
    INFO = "info"


# Outbound

class SubscribeMessage(BaseModel):
    type: MessageType = Field(default=MessageType.SUBSCRIBE)
    topic: str = Field(..., min_length=1, max_length=255)
    last_n: int = Field(default=0, ge=0, le=1000)


# Inbound

class Envelope(BaseModel):
    """Only the routing field; the rest depends on the type."""
    type: str


class EventMessage(BaseModel):
    type: MessageType = Field(default=MessageType.EVENT)
    topic: str
    data: Any = None
    message_id: Optional[str] = None


class AckMessage(BaseModel):
    type: MessageType = Field(default=MessageType.ACK)
    request_type: Optional[str] = None
    topic: Optional[str] = None
    message: Optional[str] = None


class ErrorMessage(BaseModel):
    type: MessageType = Field(default=MessageType.ERROR)
    code: str = "UNKNOWN"
    message: str = ""
    details: Optional[dict] = None
