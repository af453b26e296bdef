import pytest

from streamload.config import RunConfig
from streamload.metrics.run_metrics import RunMetrics


@pytest.fixture
def make_config():
    def _make(**overrides) -> RunConfig:
        values = {
            "url": "ws://localhost:8000/ws",
            "clients": 1,
            "duration_ms": 200,
            "log_every": 0,
        }
        values.update(overrides)
        return RunConfig(**values)
    return _make


@pytest.fixture
def metrics() -> RunMetrics:
    return RunMetrics(target_url="ws://localhost:8000/ws", clients=1)
