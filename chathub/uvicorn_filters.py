"""Custom filters and log config for uvicorn access logging."""

import copy
import logging
from typing import Any

from uvicorn.config import LOGGING_CONFIG

from chathub.settings import app_settings


class ExcludeMetricsFilter(logging.Filter):
    """
    Logging filter to exclude monitoring endpoint requests from access logs.

    Keeps Prometheus scraping and health checks out of uvicorn's access
    log. Paths come from the LOG_EXCLUDED_PATHS setting.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        return not any(
            path in message for path in app_settings.LOG_EXCLUDED_PATHS
        )


def build_uvicorn_log_config() -> dict[str, Any]:
    """
    Uvicorn's default log config with ExcludeMetricsFilter on the access log.
    """
    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config.setdefault("filters", {})["exclude_metrics"] = {
        "()": "chathub.uvicorn_filters.ExcludeMetricsFilter"
    }
    log_config["handlers"]["access"]["filters"] = ["exclude_metrics"]
    return log_config
