"""
HTTP health probe for the target server.

Read-only: a single GET /health after the run, reported next to the
load test results. Failures are logged and never affect the run.
"""

import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class HealthClient:
    def __init__(self, base_url: str, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def fetch_health(self) -> Optional[Dict[str, Any]]:
        """
        Fetch GET /health.

        Returns:
            Health data dict or None if the request fails.
        """
        try:
            response = requests.get(
                f"{self.base_url}/health",
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.warning(f"Failed to fetch health: {e}")
            return None
        except ValueError as e:
            logger.warning(f"Health endpoint returned invalid JSON: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Unexpected health response: {data!r}")
            return None
        return data
