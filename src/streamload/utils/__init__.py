from .time_utils import now_ms
from .validation import csv_to_list, parse_duration, parse_non_negative_int

__all__ = ["now_ms", "csv_to_list", "parse_duration", "parse_non_negative_int"]
