"""Analytics module for sending usage metrics to Datadog.

This module implements fail-open analytics integration with Datadog HTTP API.
Metric failures are logged but do not block user flow.
"""

import logging
import time
from typing import List, Optional

import requests

logger = logging.getLogger(__name__)

DATADOG_API_URL = "https://api.datadoghq.com/api/v1/series"

METRIC_PREFIX = "favortracker"


def send_count_metric(name: str, datadog_api_key: str, tags: Optional[List[str]] = None,
                      value: int = 1) -> bool:
    """Send a COUNT metric to Datadog.

    Uses fail-open design: logs errors but returns False instead of raising
    exceptions. Nothing is sent when no API key is configured.

    Args:
        name: Metric name without the "favortracker." prefix
        datadog_api_key: Datadog API key for authentication
        tags: Datadog tags such as "difficulty:elite"
        value: Count to report

    Returns:
        True if metric was sent successfully, False otherwise

    Example:
        >>> send_count_metric("character_created", "your-api-key")
        True
    """
    if not datadog_api_key:
        return False

    metric = f"{METRIC_PREFIX}.{name}"
    try:
        timestamp = int(time.time())

        payload = {
            "series": [{
                "metric": metric,
                "type": "count",
                "points": [[timestamp, value]],
                "tags": list(tags or [])
            }]
        }

        headers = {
            "Content-Type": "application/json",
            "DD-API-KEY": datadog_api_key
        }

        response = requests.post(
            DATADOG_API_URL,
            json=payload,
            headers=headers,
            timeout=5  # 5 second timeout
        )

        response.raise_for_status()
        logger.info(f"Successfully sent metric: {metric}")
        return True

    except requests.exceptions.RequestException as e:
        logger.error(f"Failed to send Datadog metric {metric}: {e}")
        return False
    except Exception as e:
        logger.error(f"Unexpected error sending Datadog metric {metric}: {e}")
        return False


def send_completion_metric(difficulty: str, checked: bool, datadog_api_key: str) -> bool:
    """Report a quest tier being ticked or unticked."""
    action = "completed" if checked else "cleared"
    return send_count_metric(
        "quest_completion_changed",
        datadog_api_key,
        tags=[f"difficulty:{difficulty}", f"action:{action}"],
    )


def send_import_metric(imported_count: int, datadog_api_key: str) -> bool:
    """Report how many completions a CSV import wrote."""
    return send_count_metric("completions_imported", datadog_api_key, value=imported_count)
