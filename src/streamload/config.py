"""
Run configuration for the load harness.
"""

import itertools
import os
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ConfigError
from .metrics.latency import DEFAULT_SAMPLE_LIMIT
from .utils.validation import csv_to_list

DEFAULT_URL = "ws://localhost:8000/ws"
DEFAULT_CLIENTS = 10
DEFAULT_DURATION = "1m"
DEFAULT_REGIONS = "ul,sl"
DEFAULT_VEHICLE_TYPES = "bus,train"
DEFAULT_TOPIC_TEMPLATE = "/topic/{0}/vehicles/{1}"
DEFAULT_LOG_EVERY = 25
DEFAULT_OPEN_TIMEOUT = 10.0


class RunConfig(BaseModel):
    """Immutable settings for one load test run"""
    model_config = ConfigDict(frozen=True)

    url: str = DEFAULT_URL
    clients: int = Field(DEFAULT_CLIENTS, ge=0)
    duration_ms: int = Field(60_000, gt=0)
    dimensions: Tuple[Tuple[str, ...], ...] = (("ul", "sl"), ("bus", "train"))
    topic_template: str = DEFAULT_TOPIC_TEMPLATE
    max_messages: int = Field(0, ge=0)  # 0 = unlimited
    log_every: int = Field(DEFAULT_LOG_EVERY, ge=0)
    latency_samples: int = Field(DEFAULT_SAMPLE_LIMIT, ge=1)
    protocol: Literal["pubsub", "raw"] = "pubsub"
    open_timeout: float = Field(DEFAULT_OPEN_TIMEOUT, gt=0)
    api_url: Optional[str] = None
    progress_interval: float = Field(0.0, ge=0)

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        if not value.startswith(("ws://", "wss://")):
            raise ValueError("url must start with ws:// or wss://")
        return value

    @field_validator("dimensions")
    @classmethod
    def _check_dimensions(cls, value: Tuple[Tuple[str, ...], ...]) -> Tuple[Tuple[str, ...], ...]:
        if not value:
            raise ValueError("at least one topic dimension is required")
        for index, dimension in enumerate(value):
            if not dimension:
                raise ValueError(f"topic dimension {index} is empty")
        return value

    @model_validator(mode="after")
    def _check_template(self) -> "RunConfig":
        sample = tuple(dimension[0] for dimension in self.dimensions)
        try:
            self.topic_template.format(*sample)
        except (IndexError, KeyError, ValueError) as e:
            raise ValueError(
                f"topic template '{self.topic_template}' does not fit "
                f"{len(self.dimensions)} dimension(s): {e}"
            )
        return self

    @property
    def duration_seconds(self) -> float:
        return self.duration_ms / 1000.0

    def topics(self) -> List[str]:
        """Cross product of the dimensions, in declaration order."""
        return [
            self.topic_template.format(*combination)
            for combination in itertools.product(*self.dimensions)
        ]

    @classmethod
    def build(cls, **values: Any) -> "RunConfig":
        """Like the constructor, but reports bad values as ConfigError."""
        try:
            return cls(**values)
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'config'}: {error['msg']}"
                for error in e.errors()
            )
            raise ConfigError(f"Invalid configuration: {details}") from e


def load_defaults_from_env() -> Dict[str, Any]:
    """Defaults for the CLI, overridable through environment variables"""
    return {
        "url": os.environ.get("STREAMLOAD_URL", DEFAULT_URL),
        "clients": os.environ.get("STREAMLOAD_CLIENTS", str(DEFAULT_CLIENTS)),
        "duration": os.environ.get("STREAMLOAD_DURATION", DEFAULT_DURATION),
        "regions": os.environ.get("STREAMLOAD_REGIONS", DEFAULT_REGIONS),
        "vehicle_types": os.environ.get("STREAMLOAD_VEHICLE_TYPES", DEFAULT_VEHICLE_TYPES),
        "log_level": os.environ.get("LOG_LEVEL", "INFO"),
    }


def dimensions_from_lists(lists: List[str]) -> Tuple[Tuple[str, ...], ...]:
    return tuple(tuple(csv_to_list(item)) for item in lists)
