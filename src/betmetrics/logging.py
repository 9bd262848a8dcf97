"""structlog setup for betmetrics.

Engines log through a module-level ``structlog.get_logger()`` and only at
debug level, when they degrade instead of failing:
- ``non_finite_bet_value``: a payout overflowed and the bet counts as 0
- ``contract_metrics_missing_contract``: bets reference an unknown contract
- ``elasticity_unknown_mechanism``: price impact reported as 0

``MetricsUpdater.run`` logs ``metrics_update_started`` (debug) and
``metrics_update_completed`` (info) through a run logger that carries the
run id on every entry.

Level and renderer come from ``settings`` (``BETMETRICS_LOG_LEVEL``,
``BETMETRICS_LOG_JSON``) on import; call ``configure_logging`` to change them.
"""

import logging
from datetime import datetime, timezone
from typing import Any

import structlog

from betmetrics.config import settings

SERVICE_NAME = "betmetrics"


def add_timestamp(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Add ISO 8601 timestamp to log entries."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def add_service_name(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    event_dict["service"] = SERVICE_NAME
    return event_dict


def configure_logging(
    log_level: str | None = None,
    json_output: bool | None = None,
) -> None:
    """
    Configure structlog for betmetrics.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR (defaults to settings.log_level)
        json_output: JSON lines (True) or console output (False), defaults
            to settings.log_json
    """
    level_name = (log_level or settings.log_level).upper()
    use_json = settings.log_json if json_output is None else json_output

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if use_json
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            add_timestamp,
            add_service_name,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level_name)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def create_run_logger(run_id: str, operation: str) -> structlog.BoundLogger:
    """
    Create a logger with run_id and operation bound to all entries.

    Args:
        run_id: Unique identifier for one metrics update run
        operation: Operation name, e.g. "metrics_update"

    Returns:
        A logger with context bound
    """
    return structlog.get_logger().bind(run_id=run_id, operation=operation)  # type: ignore[no-any-return]


configure_logging()
