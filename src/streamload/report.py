from typing import Any, Dict, Optional

from .metrics.run_metrics import RunMetrics
from .models.summary import LatencySummary, RunSummary


def build_summary(
    metrics: RunMetrics,
    health: Optional[Dict[str, Any]] = None,
    now: Optional[float] = None,
) -> RunSummary:
    """
    Snapshot the run metrics into a summary.

    Percentiles are only computed here, once the run is over. Without any
    latency sample the latency section is left out rather than zeroed.
    """
    elapsed = metrics.elapsed_seconds(now)
    stats = metrics.latency

    latency = None
    if stats.count > 0:
        percentiles = stats.percentiles()
        latency = LatencySummary(
            count=stats.count,
            avg=stats.average,
            min=stats.min,
            max=stats.max,
            p50=percentiles["p50"],
            p90=percentiles["p90"],
            p99=percentiles["p99"],
            sample_size=len(stats),
        )

    return RunSummary(
        target_url=metrics.target_url,
        clients=metrics.clients,
        connected_clients=metrics.connected_clients,
        failed_clients=metrics.failed_clients,
        messages_received=metrics.messages_received,
        errors=metrics.errors,
        duration_seconds=elapsed,
        throughput_per_second=metrics.messages_received / elapsed if elapsed > 0 else 0.0,
        latency=latency,
        health=health,
    )


def print_summary(summary: RunSummary) -> None:
    """Print the end-of-run report"""
    print("\n" + "=" * 80)
    print("📊 LOAD TEST COMPLETE")
    print("=" * 80)

    print(f"\n🎯 Target: {summary.target_url}")
    print(f"⏱️  Duration (wall): {summary.duration_seconds:.1f}s")

    print(f"\n🔌 Clients:")
    print(f"  Requested: {summary.clients}")
    print(f"  Connected: {summary.connected_clients}")
    print(f"  Failed: {summary.failed_clients}")

    print(f"\n📨 Messages:")
    print(f"  Received: {summary.messages_received:,}")
    print(f"  Throughput: {summary.throughput_per_second:,.0f} msg/s")

    print(f"\n⚡ Latency:")
    latency = summary.latency
    if latency is None:
        print("  n/a (no timestamp field in payloads)")
    else:
        print(f"  Average: {latency.avg:.1f}ms")
        print(f"  P50/P90/P99: {latency.p50:.1f} / {latency.p90:.1f} / {latency.p99:.1f}ms")
        print(f"  Min/Max: {latency.min:.1f} / {latency.max:.1f}ms")
        print(f"  Samples: {latency.sample_size:,} of {latency.count:,}")

    print(f"\n❌ Errors: {summary.errors}")

    if summary.health is not None:
        print(f"\n🏥 System Health:")
        print(f"  Status: {summary.health.get('status', 'unknown')}")
        print(f"  Active subscribers: {summary.health.get('active_subscriber_count', 0)}")
        print(f"  Topics: {summary.health.get('topic_count', 0)}")

    print("\n" + "=" * 80 + "\n")
