from .client_session import (
    ClientSession,
    FinishReason,
    SessionResult,
    SessionState,
    decode_payload,
    make_client_id,
)

__all__ = [
    "ClientSession",
    "FinishReason",
    "SessionResult",
    "SessionState",
    "decode_payload",
    "make_client_id",
]
