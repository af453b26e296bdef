from .latency import LatencyStats, extract_timestamp, pick_percentile
from .run_metrics import RunMetrics

__all__ = ["LatencyStats", "extract_timestamp", "pick_percentile", "RunMetrics"]
