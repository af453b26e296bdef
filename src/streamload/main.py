"""
Command line entry point for the load harness
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config import (
    DEFAULT_LOG_EVERY,
    DEFAULT_OPEN_TIMEOUT,
    DEFAULT_TOPIC_TEMPLATE,
    RunConfig,
    dimensions_from_lists,
    load_defaults_from_env,
)
from .errors import ConfigError
from .metrics.latency import DEFAULT_SAMPLE_LIMIT
from .report import print_summary
from .runner import LoadTestRunner
from .utils.validation import parse_duration, parse_non_negative_int

logger = logging.getLogger(__name__)


def setup_logging(level: str):
    """Setup logging configuration"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_parser() -> argparse.ArgumentParser:
    defaults = load_defaults_from_env()
    parser = argparse.ArgumentParser(
        prog="streamload",
        description="WebSocket pub/sub load tester: many concurrent subscribers, "
                    "throughput and end-to-end latency",
    )
    parser.add_argument("-u", "--url", default=defaults["url"],
                        help="WebSocket endpoint URL")
    parser.add_argument("-c", "--clients", type=parse_non_negative_int,
                        default=defaults["clients"],
                        help="number of concurrent clients")
    parser.add_argument("-d", "--duration", default=defaults["duration"],
                        help="test duration (e.g. 500ms, 30s, 2m, 1h)")
    parser.add_argument("-r", "--regions", default=defaults["regions"],
                        help="comma separated regions")
    parser.add_argument("-t", "--vehicle-types", default=defaults["vehicle_types"],
                        help="comma separated vehicle types")
    parser.add_argument("--dimension", action="append", default=None, metavar="LIST",
                        help="comma separated topic dimension; repeat to replace "
                             "--regions/--vehicle-types")
    parser.add_argument("--topic-template", default=DEFAULT_TOPIC_TEMPLATE,
                        help="topic name template, one positional field per dimension")
    parser.add_argument("-m", "--max-messages", type=parse_non_negative_int, default=0,
                        help="max messages per client before disconnect (0 = unlimited)")
    parser.add_argument("--log-every", type=parse_non_negative_int, default=DEFAULT_LOG_EVERY,
                        help="log progress every N messages per client (0 = off)")
    parser.add_argument("--latency-samples", type=parse_non_negative_int,
                        default=DEFAULT_SAMPLE_LIMIT,
                        help="number of latency samples kept for percentile calculation")
    parser.add_argument("--protocol", choices=["pubsub", "raw"], default="pubsub",
                        help="pubsub: send subscribe frames; raw: listen only")
    parser.add_argument("--open-timeout", type=float, default=DEFAULT_OPEN_TIMEOUT,
                        help="seconds allowed for the WebSocket handshake")
    parser.add_argument("--api-url", default=None,
                        help="HTTP base URL of the server, probed at /health after the run")
    parser.add_argument("--progress-interval", type=float, default=0.0,
                        help="seconds between progress lines (0 = off)")
    parser.add_argument("--log-level", default=defaults["log_level"],
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Log level")
    return parser


def config_from_args(args: argparse.Namespace) -> RunConfig:
    if args.dimension:
        dimensions = dimensions_from_lists(args.dimension)
    else:
        dimensions = dimensions_from_lists([args.regions, args.vehicle_types])

    return RunConfig.build(
        url=args.url,
        clients=args.clients,
        duration_ms=parse_duration(args.duration),
        dimensions=dimensions,
        topic_template=args.topic_template,
        max_messages=args.max_messages,
        log_every=args.log_every,
        latency_samples=args.latency_samples,
        protocol=args.protocol,
        open_timeout=args.open_timeout,
        api_url=args.api_url,
        progress_interval=args.progress_interval,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level)

    try:
        config = config_from_args(args)
    except ConfigError as e:
        logger.error(f"Fatal error: {e}")
        return 1

    runner = LoadTestRunner(config)
    try:
        summary = asyncio.run(runner.run())
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 1

    print_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
