import asyncio
import logging
from typing import Callable, List, Optional

from .config import RunConfig
from .health import HealthClient
from .metrics.run_metrics import RunMetrics
from .models.summary import RunSummary
from .report import build_summary
from .sessions.client_session import ClientSession, SessionResult, make_client_id
from .sources.base import MessageSource
from .sources.websocket import SOURCES
from .utils.time_utils import now_ms

logger = logging.getLogger(__name__)

SourceFactory = Callable[[RunConfig, str], MessageSource]


def default_source_factory(config: RunConfig, client_id: str) -> MessageSource:
    source_cls = SOURCES[config.protocol]
    return source_cls(config.url, client_id, open_timeout=config.open_timeout)


class LoadTestRunner:
    """
    Runs config.clients sessions concurrently and aggregates their metrics.

    Waits for every session to settle; one client failing never aborts
    the measurement of the others. Each session enforces the run duration
    itself, so the run ends once the slowest session has timed out.
    """

    def __init__(
        self,
        config: RunConfig,
        source_factory: Optional[SourceFactory] = None,
        metrics: Optional[RunMetrics] = None,
    ):
        self.config = config
        self.source_factory = source_factory or default_source_factory
        self.metrics = metrics or RunMetrics(
            target_url=config.url,
            clients=config.clients,
            latency_samples=config.latency_samples,
        )
        self.results: List[SessionResult] = []
        self.running = False

    def create_session(self, number: int) -> ClientSession:
        client_id = make_client_id(number)
        source = self.source_factory(self.config, client_id)
        return ClientSession(client_id, self.config, self.metrics, source)

    async def monitor_progress(self) -> None:
        """Log running totals every progress_interval seconds"""
        while self.running:
            await asyncio.sleep(self.config.progress_interval)
            logger.info(
                f"Connected: {self.metrics.connected_clients}/{self.config.clients} | "
                f"Failed: {self.metrics.failed_clients} | "
                f"Received: {self.metrics.messages_received} | "
                f"Errors: {self.metrics.errors}"
            )

    async def run(self) -> RunSummary:
        config = self.config
        topics = config.topics()
        logger.info(f"Starting load test against {config.url}")
        logger.info(
            f"Clients: {config.clients}, Duration: {config.duration_seconds:g}s, "
            f"Protocol: {config.protocol}, Topics: {', '.join(topics)}"
        )

        self.metrics.start_time_ms = now_ms()
        self.running = True

        monitor_task = None
        if config.progress_interval > 0:
            monitor_task = asyncio.create_task(self.monitor_progress())

        sessions = [self.create_session(i + 1) for i in range(config.clients)]
        tasks = [asyncio.create_task(session.run()) for session in sessions]

        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        self.running = False
        if monitor_task is not None:
            monitor_task.cancel()
            try:
                await monitor_task
            except asyncio.CancelledError:
                pass

        for session, outcome in zip(sessions, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"[{session.client_id}] session crashed: {outcome!r}")
                self.metrics.record_error()
            else:
                self.results.append(outcome)

        summary = build_summary(self.metrics)

        if config.api_url:
            health = HealthClient(config.api_url).fetch_health()
            summary = summary.model_copy(update={"health": health})

        logger.info(
            f"Load test finished: {summary.connected_clients} connected, "
            f"{summary.messages_received} messages, {summary.errors} errors"
        )
        return summary
