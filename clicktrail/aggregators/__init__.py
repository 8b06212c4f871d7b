"""Analytics aggregation."""

from clicktrail.aggregators.analytics import AnalyticsAggregator, estimate_unique_visitors
from clicktrail.aggregators.granularity import auto_rebucket, rebucket, select_granularity

__all__ = [
    "AnalyticsAggregator",
    "auto_rebucket",
    "estimate_unique_visitors",
    "rebucket",
    "select_granularity",
]
