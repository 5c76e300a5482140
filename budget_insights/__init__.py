"""
budget_insights
~~~~~~~~~~~~~~~

Financial analytics and insight engine for a personal budget tracker. The
pure calculators (Aggregator, budget comparison, growth and forecast) can be
used on their own; the InsightPipeline combines them with a record store and a
generative reasoning service to produce one chained insight per day.
"""

from .utils.aggregator import Aggregator, Bucket, Granularity
from .utils.budget_comparator import BudgetComparison, Severity, compare, summarize_month
from .utils.forecast import Forecast, forecast, forecast_next, growth
from .utils.insight_pipeline import InsightPipeline

__all__ = [
    "Aggregator",
    "Bucket",
    "BudgetComparison",
    "Forecast",
    "Granularity",
    "InsightPipeline",
    "Severity",
    "compare",
    "forecast",
    "forecast_next",
    "growth",
    "summarize_month",
]
