from dataclasses import dataclass, field
from threading import Lock
from typing import Optional

from ..utils.time_utils import now_ms
from .latency import DEFAULT_SAMPLE_LIMIT, LatencyStats


@dataclass
class RunMetrics:
    """
    Counters shared by every session of one run.

    Sessions only ever increment; the reporter reads after the run.
    """
    target_url: str = ""
    clients: int = 0
    start_time_ms: float = field(default_factory=now_ms)
    connected_clients: int = 0
    failed_clients: int = 0
    messages_received: int = 0
    errors: int = 0
    latency: Optional[LatencyStats] = None
    latency_samples: int = DEFAULT_SAMPLE_LIMIT

    def __post_init__(self):
        if self.latency is None:
            self.latency = LatencyStats(self.latency_samples)
        self._lock = Lock()

    def record_connected(self) -> None:
        with self._lock:
            self.connected_clients += 1

    def record_failed_client(self) -> None:
        with self._lock:
            self.failed_clients += 1

    def record_message(self) -> None:
        with self._lock:
            self.messages_received += 1

    def record_error(self) -> None:
        with self._lock:
            self.errors += 1

    def elapsed_seconds(self, now: Optional[float] = None) -> float:
        if now is None:
            now = now_ms()
        return max(0.0, (now - self.start_time_ms) / 1000.0)
