import argparse
import re
from typing import List

from ..errors import InvalidDurationError

_DURATION_RE = re.compile(r'^([0-9]+)(ms|s|m|h)$')

_UNIT_MS = {
    "ms": 1,
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
}


def parse_duration(value: str) -> int:
    """
    Convert a duration such as '500ms', '30s', '2m' or '1h' to milliseconds.
    """
    match = _DURATION_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise InvalidDurationError(str(value))
    amount, unit = match.groups()
    if unit not in _UNIT_MS:
        raise InvalidDurationError(value, f"unsupported unit '{unit}'")
    return int(amount) * _UNIT_MS[unit]


def csv_to_list(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def parse_non_negative_int(value: str) -> int:
    try:
        parsed = int(value, 10)
    except (TypeError, ValueError):
        raise argparse.ArgumentTypeError(f"Expected a non-negative integer, got {value}")
    if parsed < 0:
        raise argparse.ArgumentTypeError(f"Expected a non-negative integer, got {value}")
    return parsed
