from .messages import (
    AckMessage,
    Envelope,
    ErrorMessage,
    EventMessage,
    MessageType,
    SubscribeMessage,
)
from .summary import LatencySummary, RunSummary

__all__ = [
    "AckMessage",
    "Envelope",
    "ErrorMessage",
    "EventMessage",
    "MessageType",
    "SubscribeMessage",
    "LatencySummary",
    "RunSummary",
]
