import math
import random
import re
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..utils.time_utils import now_ms

DEFAULT_SAMPLE_LIMIT = 10000

_ISO_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}')


class LatencyStats:
    """
    Streaming latency aggregate with bounded memory.

    Keeps exact running count/sum/min/max and a fixed-capacity reservoir
    of samples (Algorithm R) for percentile estimation. After n samples
    each observed latency is present in the reservoir with probability
    capacity/n.

    CONCURRENCY:
    - Sessions normally share one asyncio event loop, so updates never
      interleave.
    - The lock covers the read-count/compare/write step of the reservoir
      so the recorder stays correct if sessions are driven from threads.
    """

    def __init__(self, capacity: int = DEFAULT_SAMPLE_LIMIT, rng: Optional[random.Random] = None):
        if capacity <= 0:
            raise ValueError("Capacity must be positive")
        self._capacity = capacity
        self._samples: List[float] = []
        self._rng = rng or random.Random()
        self._lock = Lock()
        self.count = 0
        self.sum = 0.0
        self.min = math.inf
        self.max = -math.inf

    @property
    def capacity(self) -> int:
        return self._capacity

    def record(self, observed_ms: Any, now: Optional[float] = None) -> bool:
        """
        Record the latency of a message stamped at observed_ms.

        Returns False (and changes nothing) when the latency is negative
        or not a finite number, e.g. clock skew or a malformed timestamp.
        """
        if isinstance(observed_ms, bool) or not isinstance(observed_ms, (int, float)):
            return False
        if now is None:
            now = now_ms()
        return self.add_sample(now - observed_ms)

    def add_sample(self, latency_ms: float) -> bool:
        if not math.isfinite(latency_ms) or latency_ms < 0:
            return False

        with self._lock:
            self.count += 1
            self.sum += latency_ms
            self.min = min(self.min, latency_ms)
            self.max = max(self.max, latency_ms)

            if len(self._samples) < self._capacity:
                self._samples.append(latency_ms)
            else:
                replace_index = self._rng.randrange(self.count)
                if replace_index < self._capacity:
                    self._samples[replace_index] = latency_ms
        return True

    def record_payload(self, payload: Any, now: Optional[float] = None) -> bool:
        timestamp = extract_timestamp(payload)
        if timestamp is None:
            return False
        return self.record(timestamp, now)

    @property
    def average(self) -> Optional[float]:
        with self._lock:
            if self.count == 0:
                return None
            return self.sum / self.count

    def snapshot(self) -> List[float]:
        with self._lock:
            return self._samples.copy()

    def percentile(self, p: float) -> float:
        return pick_percentile(sorted(self.snapshot()), p)

    def percentiles(self) -> Dict[str, float]:
        values = sorted(self.snapshot())
        return {
            "p50": pick_percentile(values, 0.5),
            "p90": pick_percentile(values, 0.9),
            "p99": pick_percentile(values, 0.99),
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)


def pick_percentile(sorted_values: List[float], p: float) -> float:
    if not sorted_values:
        return 0
    # Round half up, not Python's banker's rounding.
    index = int(math.floor(p * (len(sorted_values) - 1) + 0.5))
    index = min(len(sorted_values) - 1, max(0, index))
    return sorted_values[index]


def _positive(value: float) -> Optional[float]:
    return value if math.isfinite(value) and value > 0 else None


def _parse_timestamp(candidate: Any) -> Optional[float]:
    if isinstance(candidate, bool):
        return None

    if isinstance(candidate, (int, float)):
        try:
            return _positive(float(candidate))
        except OverflowError:
            return None

    if isinstance(candidate, str):
        text = candidate.strip()
        if _ISO_DATE_RE.match(text):
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                parsed = None
            if parsed is not None:
                if parsed.tzinfo is None:
                    parsed = parsed.replace(tzinfo=timezone.utc)
                return _positive(parsed.timestamp() * 1000.0)
        try:
            return _positive(float(text))
        except (OverflowError, ValueError):
            return None

    return None


def _nested(*path: str) -> Callable[[Mapping], Any]:
    def lookup(payload: Mapping) -> Any:
        value: Any = payload
        for key in path:
            if not isinstance(value, Mapping):
                return None
            value = value.get(key)
        return value
    return lookup


# Probed in order; first present and parseable field wins.
TIMESTAMP_FIELDS = (
    ("timestamp", _nested("timestamp")),
    ("generatedAt", _nested("generatedAt")),
    ("time", _nested("time")),
    ("meta.timestamp", _nested("meta", "timestamp")),
)


def extract_timestamp(payload: Any) -> Optional[float]:
    """
    Server-side send time of a decoded payload, in epoch milliseconds.

    Returns None when the payload carries no usable timestamp. That is
    not an error: such messages still count as received.
    """
    if not isinstance(payload, Mapping):
        return None

    for _name, lookup in TIMESTAMP_FIELDS:
        candidate = lookup(payload)
        if candidate is None:
            continue
        parsed = _parse_timestamp(candidate)
        if parsed is not None:
            return parsed
    return None
