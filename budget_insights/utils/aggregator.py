from __future__ import annotations

import calendar
from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from budget_insights.core.errors import InvalidRecordError
from budget_insights.models.transaction import Transaction
from budget_insights.utils.periods import (
    add_months,
    day_bounds,
    local_date,
    month_bounds,
    month_key,
    start_of_day,
    to_local,
    week_start,
)

TransactionLike = Union[Transaction, Mapping[str, Any]]


class Granularity(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# Chart period selectors -> (granularity, window size)
PERIODS: Dict[str, Tuple[Granularity, int]] = {
    "1W": (Granularity.DAY, 7),
    "1M": (Granularity.WEEK, 5),
    "6M": (Granularity.MONTH, 6),
    "12M": (Granularity.MONTH, 12),
}


def group_by_month(items: Iterable[Any], tz: Optional[tzinfo] = None) -> Dict[str, List[Any]]:
    """
    ``"YYYY-MM"`` -> items in input order, for anything with an ``occurred_at``.
    Months without items are never present.
    """
    grouped: Dict[str, List[Any]] = {}
    for item in items:
        local = to_local(item.occurred_at, tz)
        grouped.setdefault(month_key(local.year, local.month), []).append(item)
    return grouped


@dataclass
class Bucket:
    """One time interval ``[start, end)`` and the sum of amounts inside it."""

    label: str
    start: datetime
    end: datetime
    total: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["start"] = self.start.isoformat()
        data["end"] = self.end.isoformat()
        return data


class Aggregator:
    """
    Pure, in-memory aggregation over already-fetched transactions.

    Two grouping shapes are offered on purpose:

    * ``bucket`` is dense: it always yields ``window_size`` consecutive
      intervals, zero-filled where nothing was spent. Charts use it so that
      quiet periods render as zero bars.
    * ``by_month`` is sparse: a month only appears once it has at least one
      transaction. List views use it so that months without data show an
      empty state instead of an empty section.

    Calendar boundaries are evaluated in ``tz``; weeks start on
    ``first_weekday`` (``calendar.MONDAY`` .. ``calendar.SUNDAY``).
    """

    def __init__(self, tz: Optional[tzinfo] = None, first_weekday: int = calendar.MONDAY) -> None:
        if not 0 <= first_weekday <= 6:
            raise InvalidRecordError(f"first_weekday must be 0..6, got {first_weekday}")
        self.tz = tz or timezone.utc
        self.first_weekday = first_weekday

    @staticmethod
    def ingest(transactions: Iterable[TransactionLike]) -> List[Transaction]:
        """Validate inputs; raw mappings are decoded, invalid ones raise ``InvalidRecordError``."""
        accepted = []
        for item in transactions:
            if isinstance(item, Transaction):
                if item.amount is None or item.amount < 0:
                    raise InvalidRecordError(f"Transaction {item.id} has an invalid amount: {item.amount}")
                accepted.append(item)
            else:
                accepted.append(Transaction.from_record(item))
        return accepted

    def total(self, transactions: Iterable[TransactionLike]) -> float:
        return round(sum(tx.amount for tx in self.ingest(transactions)), 2)

    def by_category(self, transactions: Iterable[TransactionLike]) -> Dict[str, float]:
        totals: Dict[str, float] = defaultdict(float)
        for tx in self.ingest(transactions):
            totals[tx.category] += tx.amount
        return {cat: round(total, 2) for cat, total in totals.items()}

    def by_month(self, transactions: Iterable[TransactionLike]) -> Dict[str, List[Transaction]]:
        return group_by_month(self.ingest(transactions), self.tz)

    def for_day(self, transactions: Iterable[TransactionLike], day: Union[date, datetime]) -> List[Transaction]:
        start, end = day_bounds(day, self.tz)
        return [tx for tx in self.ingest(transactions) if start <= tx.occurred_at < end]

    def intervals(
        self,
        granularity: Union[Granularity, str],
        reference_date: Union[date, datetime],
        window_size: int,
    ) -> List[Tuple[str, datetime, datetime]]:
        """The ``window_size`` consecutive intervals ending with the one holding ``reference_date``."""
        if window_size < 1:
            raise InvalidRecordError(f"window_size must be positive, got {window_size}")
        granularity = Granularity(granularity)
        ref = local_date(reference_date, self.tz)

        intervals = []
        for offset in range(window_size - 1, -1, -1):
            if granularity is Granularity.DAY:
                day = ref - timedelta(days=offset)
                intervals.append((day.isoformat(), *day_bounds(day, self.tz)))
            elif granularity is Granularity.WEEK:
                first = week_start(ref, self.first_weekday) - timedelta(weeks=offset)
                intervals.append((
                    first.isoformat(),
                    start_of_day(first, self.tz),
                    start_of_day(first + timedelta(days=7), self.tz),
                ))
            else:
                year, month = add_months(ref.year, ref.month, -offset)
                intervals.append((month_key(year, month), *month_bounds(year, month, self.tz)))
        return intervals

    def bucket(
        self,
        transactions: Iterable[TransactionLike],
        granularity: Union[Granularity, str],
        reference_date: Union[date, datetime],
        window_size: int,
    ) -> List[Bucket]:
        accepted = self.ingest(transactions)
        buckets = []
        for label, start, end in self.intervals(granularity, reference_date, window_size):
            total = sum(tx.amount for tx in accepted if start <= tx.occurred_at < end)
            buckets.append(Bucket(label=label, start=start, end=end, total=round(total, 2)))
        return buckets

    def spending_trend(
        self,
        transactions: Iterable[TransactionLike],
        reference_date: Union[date, datetime],
        months: int = 6,
    ) -> List[Bucket]:
        return self.bucket(transactions, Granularity.MONTH, reference_date, months)

    def period_series(
        self,
        transactions: Iterable[TransactionLike],
        period: str,
        reference_date: Union[date, datetime],
    ) -> List[Bucket]:
        if period not in PERIODS:
            raise InvalidRecordError(f"Unknown period {period!r}, expected one of {sorted(PERIODS)}")
        granularity, window = PERIODS[period]
        return self.bucket(transactions, granularity, reference_date, window)

    def hourly_pattern(self, transactions: Iterable[TransactionLike]) -> List[float]:
        """Totals per local hour of day, always 24 entries."""
        totals = [0.0] * 24
        for tx in self.ingest(transactions):
            totals[to_local(tx.occurred_at, self.tz).hour] += tx.amount
        return [round(total, 2) for total in totals]
