from typing import Any, Dict, Optional

from pydantic import BaseModel


class LatencySummary(BaseModel):
    count: int
    avg: float
    min: float
    max: float
    p50: float
    p90: float
    p99: float
    sample_size: int


class RunSummary(BaseModel):
    target_url: str
    clients: int
    connected_clients: int
    failed_clients: int
    messages_received: int
    errors: int
    duration_seconds: float
    throughput_per_second: float
    # None when no message carried a usable timestamp
    latency: Optional[LatencySummary] = None
    health: Optional[Dict[str, Any]] = None
