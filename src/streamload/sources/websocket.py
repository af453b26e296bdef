import asyncio
import logging
from typing import Dict, Optional, Union

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, WebSocketException
from pydantic import ValidationError

from ..errors import ConnectError, PayloadDecodeError, ProtocolError
from ..models.messages import (
    AckMessage,
    Envelope,
    ErrorMessage,
    EventMessage,
    MessageType,
    SubscribeMessage,
)
from .base import MessageHandler, MessageSource

logger = logging.getLogger(__name__)

Frame = Union[str, bytes]


class WebSocketSource(MessageSource):
    """
    Shared connection handling for websocket based sources.

    A single reader task drains the socket and hands every frame to
    _dispatch(), so frames are processed in the order the transport
    delivers them.
    """

    def __init__(self, url: str, client_id: str, open_timeout: float = 10.0):
        super().__init__(url, client_id)
        self.open_timeout = open_timeout
        self.websocket: Optional[websockets.ClientConnection] = None
        self._handlers: Dict[str, MessageHandler] = {}
        self._reader_task: Optional[asyncio.Task] = None
        self._closing = False

    async def connect(self) -> None:
        try:
            self.websocket = await websockets.connect(
                self.url,
                open_timeout=self.open_timeout,
                additional_headers={"client-id": self.client_id},
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            raise ConnectError(f"Failed to connect to {self.url}: {e}") from e
        logger.debug(f"[{self.client_id}] connected to {self.url}")

    async def subscribe(self, topic: str, on_message: MessageHandler) -> None:
        self._handlers[topic] = on_message

    def start(self) -> None:
        if self.websocket is None:
            raise RuntimeError("Not connected")
        if self._reader_task is None:
            self._reader_task = asyncio.create_task(self._read_loop())

    async def disconnect(self) -> None:
        self._closing = True
        if self._reader_task and not self._reader_task.done():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
        if self.websocket is not None:
            await self.websocket.close()
            logger.debug(f"[{self.client_id}] disconnected")

    async def _read_loop(self) -> None:
        try:
            async for frame in self.websocket:
                self._dispatch(frame)
        except ConnectionClosedError as e:
            if not self._closing:
                self._emit_error(e)
            return
        except OSError as e:
            if not self._closing:
                self._emit_error(e)
            return
        except Exception as e:
            logger.error(f"[{self.client_id}] Reader stopped: {e}", exc_info=True)
            if not self._closing:
                self._emit_error(e)
            return

        if not self._closing:
            self._emit_disconnect()

    def _dispatch(self, frame: Frame) -> None:
        raise NotImplementedError


class PubSubWebSocketSource(WebSocketSource):
    """
    JSON envelope pub/sub protocol.

    Outbound: {"type": "subscribe", "topic": ..., "last_n": 0}
    Inbound:  event envelopes carry the payload in "data"; error envelopes
    end the session; ack/info/pong are informational.
    """

    async def subscribe(self, topic: str, on_message: MessageHandler) -> None:
        if self.websocket is None:
            raise RuntimeError("Not connected")
        await super().subscribe(topic, on_message)
        message = SubscribeMessage(topic=topic, last_n=0)
        try:
            await self.websocket.send(message.model_dump_json())
        except ConnectionClosed as e:
            raise ProtocolError(f"Failed to subscribe to '{topic}': {e}") from e

    def _dispatch(self, frame: Frame) -> None:
        try:
            envelope = Envelope.model_validate_json(frame)
        except ValidationError as e:
            self._emit_decode_error(
                PayloadDecodeError(f"Malformed frame: {e.errors()[0]['msg']}", raw=frame)
            )
            return

        if envelope.type == MessageType.EVENT:
            try:
                event = EventMessage.model_validate_json(frame)
            except ValidationError as e:
                self._emit_decode_error(
                    PayloadDecodeError(f"Malformed event: {e.errors()[0]['msg']}", raw=frame)
                )
                return
            handler = self._handlers.get(event.topic)
            if handler is None:
                logger.debug(f"[{self.client_id}] event for unsubscribed topic {event.topic}")
                return
            handler(event.data)

        elif envelope.type == MessageType.ERROR:
            try:
                error = ErrorMessage.model_validate_json(frame)
            except ValidationError:
                error = ErrorMessage(message=str(frame))
            self._emit_error(ProtocolError(f"{error.code}: {error.message}"))

        elif envelope.type == MessageType.ACK:
            try:
                ack = AckMessage.model_validate_json(frame)
            except ValidationError:
                logger.debug(f"[{self.client_id}] unreadable ack: {frame!r}")
                return
            logger.debug(f"[{self.client_id}] {ack.request_type} acknowledged for {ack.topic}")

        else:
            logger.debug(f"[{self.client_id}] {envelope.type} frame: {frame!r}")


class RawWebSocketSource(WebSocketSource):
    """
    Listen-only variant: the endpoint pushes without subscription frames.
    Every frame goes once to each distinct handler.
    """

    def _dispatch(self, frame: Frame) -> None:
        delivered = []
        for handler in list(self._handlers.values()):
            if handler in delivered:
                continue
            delivered.append(handler)
            handler(frame)


SOURCES = {
    "pubsub": PubSubWebSocketSource,
    "raw": RawWebSocketSource,
}
