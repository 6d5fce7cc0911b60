"""Economy aggregation boundaries."""

from .statistics import SERVICE_TYPES, StatisticsEngine, count_nearby

__all__ = ["SERVICE_TYPES", "StatisticsEngine", "count_nearby"]
