"""
Prometheus metric helpers.

Usage:
    from utils.metrics import get_or_create_metric

    ROWS_TOTAL = get_or_create_metric(
        lambda: Counter("rows_total", "Total rows", ["table"]),
        "rows_total",
    )
"""

import logging
from typing import Callable, TypeVar

from prometheus_client import REGISTRY, CollectorRegistry

logger = logging.getLogger(__name__)

# Type variable for metric types
T = TypeVar("T")


def get_or_create_metric(
    metric_factory: Callable[[], T],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> T:
    """
    Create a metric or return the one already registered under the same name.

    Module reloads (and test collection) register metrics more than once;
    the registry rejects duplicates with ValueError.

    Args:
        metric_factory: Callable that creates the metric (e.g., lambda: Counter(...))
        metric_name: Name of the metric for lookup if already registered
        registry: Prometheus registry to use (default: global REGISTRY)

    Returns:
        The metric instance (either newly created or existing)
    """
    try:
        return metric_factory()
    except ValueError:
        existing = registry._names_to_collectors.get(metric_name)
        if existing is not None:
            logger.debug(f"Reusing registered metric {metric_name}")
            return existing
        raise
