import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from ..config import RunConfig
from ..errors import ConnectError, PayloadDecodeError, ProtocolError
from ..metrics.run_metrics import RunMetrics
from ..sources.base import MessageSource
from ..utils.time_utils import now_ms

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    RECEIVING = "receiving"
    FINISHED = "finished"


class FinishReason(str, Enum):
    MAX_MESSAGES = "max_messages"
    CONNECT_ERROR = "connect_error"
    PROTOCOL_ERROR = "protocol_error"
    TRANSPORT_ERROR = "transport_error"
    DISCONNECTED = "disconnected"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class SessionResult:
    client_id: str
    message_count: int
    reason: FinishReason
    connected: bool


def make_client_id(number: int) -> str:
    return f"loadtest-client-{number}-{int(now_ms())}-{uuid4().hex[:6]}"


def decode_payload(body: Any) -> Any:
    """
    Turn an inbound body into a structured payload.

    Mappings are already decoded. str/bytes bodies must be JSON.
    """
    if isinstance(body, Mapping):
        return body
    if isinstance(body, (bytes, bytearray)):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PayloadDecodeError(f"Payload is not valid UTF-8: {e}", raw=body) from e
    if isinstance(body, str):
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise PayloadDecodeError(f"Payload is not valid JSON: {e}", raw=body) from e
    return body


class ClientSession:
    """
    One simulated client: a single connection subscribed to every topic.

    STATE MACHINE:
    IDLE -> CONNECTING -> SUBSCRIBED -> RECEIVING -> FINISHED

    The session finishes on whichever comes first:
    - the per-client message cap (if > 0)
    - a protocol or transport error
    - a disconnect from the server
    - the run duration elapsing

    finish() is idempotent: only the first call settles the session, and
    events arriving afterwards are ignored. All callbacks run on the
    event loop that runs the session, so the settle flag needs no lock.
    """

    def __init__(
        self,
        client_id: str,
        config: RunConfig,
        metrics: RunMetrics,
        source: MessageSource,
    ):
        self.client_id = client_id
        self.config = config
        self.metrics = metrics
        self.source = source
        self.state = SessionState.IDLE
        self.message_count = 0
        self.connected = False
        self.finish_reason: Optional[FinishReason] = None
        self._settled = False
        self._done: Optional[asyncio.Future] = None

    @property
    def settled(self) -> bool:
        return self._settled

    async def run(self) -> SessionResult:
        """
        Drive the session to completion. Never raises for per-session
        failures; those are recorded in the shared metrics.
        """
        self._done = asyncio.get_running_loop().create_future()
        if self._settled:
            self._done.set_result(self._result())

        self.source.on_error = self._handle_error
        self.source.on_disconnect = self._handle_disconnect
        self.source.on_decode_error = self._handle_decode_error

        opener = asyncio.create_task(self._open())
        try:
            await asyncio.wait_for(
                asyncio.shield(self._done),
                timeout=self.config.duration_seconds
            )
        except asyncio.TimeoutError:
            self.finish(FinishReason.TIMEOUT)

        if not opener.done():
            opener.cancel()
        await asyncio.gather(opener, return_exceptions=True)

        await self._release()
        return self._done.result()

    def finish(self, reason: FinishReason) -> bool:
        """
        Settle the session. Returns False if it was already settled.
        """
        if self._settled:
            return False
        self._settled = True
        self.state = SessionState.FINISHED
        self.finish_reason = reason
        if self._done is not None and not self._done.done():
            self._done.set_result(self._result())
        logger.debug(
            f"[{self.client_id}] finished ({reason.value}) after {self.message_count} messages"
        )
        return True

    def _result(self) -> SessionResult:
        return SessionResult(
            client_id=self.client_id,
            message_count=self.message_count,
            reason=self.finish_reason,
            connected=self.connected,
        )

    async def _open(self) -> None:
        self.state = SessionState.CONNECTING
        try:
            await self.source.connect()
        except Exception as e:
            self._fail_connect(e)
            return

        self.connected = True
        self.metrics.record_connected()
        self.state = SessionState.SUBSCRIBED

        handler = self._handle_message
        try:
            for topic in self.config.topics():
                await self.source.subscribe(topic, handler)
            self.state = SessionState.RECEIVING
            self.source.start()
        except ProtocolError as e:
            self._handle_error(e)
        except Exception as e:
            logger.error(f"[{self.client_id}] Unexpected error while subscribing: {e}", exc_info=True)
            self._handle_error(e)

    def _fail_connect(self, error: Exception) -> None:
        if self._settled:
            return
        self.metrics.record_failed_client()
        self.metrics.record_error()
        if isinstance(error, ConnectError):
            logger.error(f"[{self.client_id}] {error}")
        else:
            logger.error(f"[{self.client_id}] Unexpected connect failure: {error}", exc_info=True)
        self.finish(FinishReason.CONNECT_ERROR)

    def _handle_message(self, body: Any) -> None:
        if self._settled:
            return

        try:
            payload = decode_payload(body)
        except PayloadDecodeError as e:
            self._handle_decode_error(e)
            return

        self.message_count += 1
        self.metrics.record_message()
        self.metrics.latency.record_payload(payload)

        max_messages = self.config.max_messages
        if max_messages > 0 and self.message_count >= max_messages:
            logger.info(
                f"[{self.client_id}] reached max messages ({self.message_count}), disconnecting"
            )
            self.finish(FinishReason.MAX_MESSAGES)
        elif self.config.log_every > 0 and self.message_count % self.config.log_every == 0:
            logger.info(f"[{self.client_id}] messages={self.message_count}")

    def _handle_decode_error(self, error: Exception) -> None:
        if self._settled:
            return
        self.metrics.record_error()
        logger.warning(f"[{self.client_id}] Failed to decode payload: {error}")

    def _handle_error(self, error: Exception) -> None:
        if self._settled:
            return
        self.metrics.record_error()
        if isinstance(error, ProtocolError):
            logger.error(f"[{self.client_id}] Protocol error: {error}")
            self.finish(FinishReason.PROTOCOL_ERROR)
        else:
            logger.error(f"[{self.client_id}] Transport error: {error}")
            self.finish(FinishReason.TRANSPORT_ERROR)

    def _handle_disconnect(self) -> None:
        self.finish(FinishReason.DISCONNECTED)

    async def _release(self) -> None:
        try:
            await self.source.disconnect()
        except Exception as e:
            logger.warning(f"[{self.client_id}] Error while disconnecting: {e}")
