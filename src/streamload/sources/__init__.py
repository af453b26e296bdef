from .base import MessageHandler, MessageSource
from .websocket import SOURCES, PubSubWebSocketSource, RawWebSocketSource, WebSocketSource

__all__ = [
    "MessageHandler",
    "MessageSource",
    "SOURCES",
    "PubSubWebSocketSource",
    "RawWebSocketSource",
    "WebSocketSource",
]
