import math
import random

import pytest

from streamload.metrics.latency import LatencyStats, extract_timestamp, pick_percentile


class ScriptedRandom:
    """Returns preset values from randrange, in order."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = []

    def randrange(self, n):
        self.calls.append(n)
        return self.values.pop(0)


def test_percentiles_of_known_sequence():
    stats = LatencyStats(capacity=10)
    now = 1_000_000.0
    for latency in [30, 10, 50, 20, 40]:
        assert stats.record(now - latency, now=now)

    assert stats.percentile(0.5) == 30
    assert stats.percentile(0) == 10
    assert stats.percentile(1) == 50
    assert stats.count == 5
    assert stats.sum == 150
    assert stats.min == 10
    assert stats.max == 50
    assert stats.average == 30


def test_percentile_index_rounds_half_up():
    assert pick_percentile([1, 2], 0.5) == 2
    assert pick_percentile([1, 2, 3, 4], 0.5) == 3


def test_percentile_is_clamped():
    values = [1.0, 2.0, 3.0]
    assert pick_percentile(values, -1) == 1.0
    assert pick_percentile(values, 2) == 3.0


def test_empty_buffer_percentile_is_zero():
    stats = LatencyStats()
    assert stats.percentile(0.99) == 0
    assert stats.average is None
    assert stats.percentiles() == {"p50": 0, "p90": 0, "p99": 0}


def test_negative_latency_is_ignored():
    stats = LatencyStats()
    assert stats.record(2000, now=1000) is False
    assert stats.count == 0
    assert stats.sum == 0
    assert stats.min == math.inf
    assert stats.max == -math.inf
    assert len(stats) == 0


@pytest.mark.parametrize("observed", [float("nan"), float("inf"), "123", None, True])
def test_non_numeric_latency_is_ignored(observed):
    stats = LatencyStats()
    stats.record(10, now=20)
    assert stats.record(observed, now=1000) is False
    assert stats.count == 1
    assert stats.min == 10
    assert stats.max == 10


def test_buffer_never_exceeds_capacity():
    stats = LatencyStats(capacity=5, rng=random.Random(42))
    for latency in range(1000):
        stats.add_sample(latency)
        assert len(stats) <= 5

    assert len(stats) == 5
    assert stats.count == 1000
    assert stats.min == 0
    assert stats.max == 999
    assert all(0 <= value < 1000 for value in stats.snapshot())


def test_reservoir_replaces_only_when_draw_is_below_capacity():
    rng = ScriptedRandom([0, 5, 1])
    stats = LatencyStats(capacity=2, rng=rng)
    stats.add_sample(1)
    stats.add_sample(2)
    assert rng.calls == []

    stats.add_sample(3)
    assert stats.snapshot() == [3, 2]
    stats.add_sample(4)
    assert stats.snapshot() == [3, 2]
    stats.add_sample(5)
    assert stats.snapshot() == [3, 5]

    # draws are taken over [0, count) using the count after increment
    assert rng.calls == [3, 4, 5]


def test_reservoir_keeps_a_representative_subset():
    stats = LatencyStats(capacity=200, rng=random.Random(1234))
    for latency in range(20_000):
        stats.add_sample(latency)

    samples = stats.snapshot()
    mean = sum(samples) / len(samples)
    assert 7_000 < mean < 13_000
    # late values must be able to enter the reservoir
    assert max(samples) > 15_000


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        LatencyStats(capacity=0)


def test_record_payload_uses_extracted_timestamp():
    stats = LatencyStats()
    assert stats.record_payload({"timestamp": 900}, now=1000) is True
    assert stats.record_payload({"vehicle": "bus"}, now=1000) is False
    assert stats.count == 1
    assert stats.sum == 100


class TestExtractTimestamp:
    def test_numeric_epoch_millis(self):
        assert extract_timestamp({"timestamp": 1_700_000_000_000}) == 1_700_000_000_000

    def test_field_priority(self):
        payload = {"time": 3, "generatedAt": 2, "timestamp": 1, "meta": {"timestamp": 4}}
        assert extract_timestamp(payload) == 1
        assert extract_timestamp({"time": 3, "generatedAt": 2}) == 2
        assert extract_timestamp({"time": 3, "meta": {"timestamp": 4}}) == 3
        assert extract_timestamp({"meta": {"timestamp": 4}}) == 4

    def test_falls_through_unparseable_fields(self):
        assert extract_timestamp({"timestamp": "garbage", "generatedAt": 5}) == 5
        assert extract_timestamp({"timestamp": 0, "time": 7}) == 7

    def test_iso_date_string(self):
        assert extract_timestamp({"generatedAt": "2024-01-01T00:00:00Z"}) == 1_704_067_200_000
        assert extract_timestamp({"generatedAt": "2024-01-01T01:00:00+01:00"}) == 1_704_067_200_000

    def test_naive_iso_date_is_utc(self):
        assert extract_timestamp({"time": "2024-01-01T00:00:00"}) == 1_704_067_200_000

    def test_numeric_string(self):
        assert extract_timestamp({"timestamp": "1700000000000"}) == 1_700_000_000_000
        assert extract_timestamp({"timestamp": " 12.5 "}) == 12.5

    def test_huge_integer_is_not_a_timestamp(self):
        huge = int("9" * 400)
        assert extract_timestamp({"timestamp": huge}) is None
        assert extract_timestamp({"timestamp": huge, "time": 7}) == 7

    def test_pre_epoch_date_falls_through(self):
        assert extract_timestamp({"timestamp": "1960-01-01T00:00:00Z", "time": 9}) == 9

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"timestamp": None},
            {"timestamp": 0},
            {"timestamp": -5},
            {"timestamp": True},
            {"timestamp": float("inf")},
            {"timestamp": "nan"},
            {"timestamp": "yesterday"},
            {"timestamp": "1960-01-01T00:00:00Z"},
            {"timestamp": "1970-01-01"},
            {"timestamp": int("9" * 400)},
            {"timestamp": [1]},
            {"meta": "2024-01-01"},
            {"meta": {"time": 5}},
            "2024-01-01",
            [1, 2, 3],
            None,
        ],
    )
    def test_unavailable(self, payload):
        assert extract_timestamp(payload) is None
