class StreamLoadError(Exception):
    """Base class for all load harness errors."""


class ConfigError(StreamLoadError):
    """
    Invalid flags or settings.
    Fatal: raised before any client session starts.
    """


class InvalidDurationError(ConfigError, ValueError):
    def __init__(self, value: str, reason: str = "expected <number><ms|s|m|h>"):
        self.value = value
        super().__init__(f"Invalid duration '{value}': {reason}")


class ConnectError(StreamLoadError):
    """A session could not establish its connection."""


class ProtocolError(StreamLoadError):
    """Subscription or transport level failure in the middle of a session."""


class PayloadDecodeError(StreamLoadError):
    """An inbound message could not be decoded. The session keeps running."""

    def __init__(self, message: str, raw: object = None):
        super().__init__(message)
        self.raw = raw
