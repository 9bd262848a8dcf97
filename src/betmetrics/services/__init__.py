"""Services package for batch metrics operations."""

from betmetrics.services.metrics_update import (
    MetricsUpdater,
    count_unique_bettors,
)

__all__ = [
    "MetricsUpdater",
    "count_unique_bettors",
]
