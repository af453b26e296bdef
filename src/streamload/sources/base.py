from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

MessageHandler = Callable[[Any], None]
ErrorHandler = Callable[[Exception], None]
DisconnectHandler = Callable[[], None]


class MessageSource(ABC):
    """
    One connection to the messaging endpoint.

    LIFECYCLE:
    1. connect() - raises ConnectError if the endpoint is unreachable
    2. subscribe() - once per topic, every topic may share one handler
    3. start() - begin delivering inbound messages to the handlers
    4. disconnect() - release the connection

    Handlers receive either an already decoded value or the raw str/bytes
    body; decoding raw bodies is the caller's job. Frames the source itself
    cannot parse are reported through on_decode_error.

    Terminal events are reported through on_error and on_disconnect.
    The owner assigns all callbacks before calling start(); they run on
    the event loop that called start().
    """

    def __init__(self, url: str, client_id: str):
        self.url = url
        self.client_id = client_id
        self.on_error: Optional[ErrorHandler] = None
        self.on_disconnect: Optional[DisconnectHandler] = None
        self.on_decode_error: Optional[ErrorHandler] = None

    @abstractmethod
    async def connect(self) -> None:
        ...

    @abstractmethod
    async def subscribe(self, topic: str, on_message: MessageHandler) -> None:
        ...

    @abstractmethod
    def start(self) -> None:
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        ...

    def _emit_error(self, error: Exception) -> None:
        if self.on_error is not None:
            self.on_error(error)

    def _emit_disconnect(self) -> None:
        if self.on_disconnect is not None:
            self.on_disconnect()

    def _emit_decode_error(self, error: Exception) -> None:
        if self.on_decode_error is not None:
            self.on_decode_error(error)
