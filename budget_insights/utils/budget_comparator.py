from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import tzinfo
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from budget_insights.core.errors import InvalidRecordError
from budget_insights.models.budget import BudgetSettings
from budget_insights.utils.aggregator import Aggregator, TransactionLike
from budget_insights.utils.periods import MonthLike, month_bounds, month_key, parse_month

NEAR_THRESHOLD = 0.8
OVER_THRESHOLD = 1.0


class Severity(str, Enum):
    WITHIN = "within"
    NEAR = "near"
    OVER = "over"
    UNKNOWN = "unknown"


def classify(utilization: Optional[float]) -> Severity:
    if utilization is None:
        return Severity.UNKNOWN
    if utilization >= OVER_THRESHOLD:
        return Severity.OVER
    if utilization >= NEAR_THRESHOLD:
        return Severity.NEAR
    return Severity.WITHIN


def utilization_of(spent: float, budget_amount: float) -> Optional[float]:
    # undefined rather than a division by zero when no budget is set
    if budget_amount > 0:
        return spent / budget_amount
    return None


@dataclass
class BudgetComparison:
    """Spend against budget for one category."""

    category: str
    spent: float
    budget_amount: float
    utilization: Optional[float]
    severity: Severity

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["severity"] = self.severity.value
        return data


@dataclass
class MonthlyBudgetSummary:
    month: str
    spent: float
    monthly_budget: float
    remaining: float
    utilization: Optional[float]
    severity: Severity
    categories: List[BudgetComparison] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "spent": self.spent,
            "monthly_budget": self.monthly_budget,
            "remaining": self.remaining,
            "utilization": self.utilization,
            "severity": self.severity.value,
            "categories": [row.to_dict() for row in self.categories],
        }


def compare(spent_by_category: Mapping[str, float], budget: BudgetSettings) -> List[BudgetComparison]:
    """
    One row per category budget, in the order the budget lists them.
    Categories with spend but no budget entry are not reported.
    """
    rows = []
    for item in budget.category_budgets:
        spent = float(spent_by_category.get(item.category, 0.0))
        if not math.isfinite(spent) or spent < 0:
            raise InvalidRecordError(f"Spent amount for {item.category} must be a non-negative number, got {spent}")
        utilization = utilization_of(spent, item.amount)
        rows.append(BudgetComparison(
            category=item.category,
            spent=spent,
            budget_amount=item.amount,
            utilization=utilization,
            severity=classify(utilization),
        ))
    return rows


def summarize_month(
    transactions: Iterable[TransactionLike],
    budget: BudgetSettings,
    month: MonthLike,
    tz: Optional[tzinfo] = None,
) -> MonthlyBudgetSummary:
    aggregator = Aggregator(tz=tz)
    year, month_number = parse_month(month, aggregator.tz)
    start, end = month_bounds(year, month_number, aggregator.tz)
    in_month = [tx for tx in aggregator.ingest(transactions) if start <= tx.occurred_at < end]

    spent = aggregator.total(in_month)
    utilization = utilization_of(spent, budget.monthly_budget)
    return MonthlyBudgetSummary(
        month=month_key(year, month_number),
        spent=spent,
        monthly_budget=budget.monthly_budget,
        remaining=round(budget.monthly_budget - spent, 2),
        utilization=utilization,
        severity=classify(utilization),
        categories=compare(aggregator.by_category(in_month), budget),
    )
