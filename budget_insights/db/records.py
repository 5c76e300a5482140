"""
Typed access to the collections the analytics engine works with.

Every read decodes stored documents through an explicit step; documents that
fail validation are logged and skipped rather than aborting the read.
"""
import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Any, List, Mapping, Optional, Type

from budget_insights.core.errors import NotFoundError, require_owner
from budget_insights.db.store import Filter, OrderBy, RecordStore
from budget_insights.models.base import T, decode_records, utcnow
from budget_insights.models.budget import BudgetSettings, CategoryBudget
from budget_insights.models.insight import Insight, InsightSchedule
from budget_insights.models.transaction import (
    Income,
    IncomeCreate,
    Transaction,
    TransactionCreate,
    TransactionUpdate,
    derive_time_label,
)
from budget_insights.utils.formatting import DEFAULT_CATEGORIES, icon_and_color
from budget_insights.utils.periods import day_bounds

logger = logging.getLogger(__name__)

EXPENSES = "expenses"
INCOMES = "incomes"
BUDGET_SETTINGS = "budgetSettings"
INSIGHTS = "insights"
INSIGHT_SCHEDULES = "insightSchedules"
COLLECTIONS = (EXPENSES, INCOMES, BUDGET_SETTINGS, INSIGHTS, INSIGHT_SCHEDULES)


def default_category_budgets() -> List[CategoryBudget]:
    budgets = []
    for category in DEFAULT_CATEGORIES:
        icon, color = icon_and_color(category)
        budgets.append(CategoryBudget(category=category, amount=0, icon=icon, color=color))
    return budgets


class RecordStoreAdapter:
    def __init__(self, store: RecordStore, tz: Optional[tzinfo] = None) -> None:
        self.store = store
        self.tz = tz or timezone.utc

    # Expenses

    def add_transaction(self, owner_id: str, data: TransactionCreate) -> Transaction:
        owner_id = require_owner(owner_id)
        default_icon, default_color = icon_and_color(data.category)
        transaction = Transaction.from_record({
            "ownerId": owner_id,
            "title": data.title,
            "amount": data.amount,
            "category": data.category,
            "date": data.occurred_at,
            "time": derive_time_label(data.occurred_at, self.tz),
            "icon": data.icon or default_icon,
            "color": data.color or default_color,
        })
        transaction.id = self.store.create(EXPENSES, transaction.to_record())
        logger.info(f"Added expense {transaction.id} for owner {owner_id}")
        return transaction

    def get_transaction(self, owner_id: str, transaction_id: str) -> Transaction:
        return self._get_owned(EXPENSES, Transaction, owner_id, transaction_id)

    def update_transaction(
        self, owner_id: str, transaction_id: str, updates: TransactionUpdate
    ) -> Transaction:
        current = self.get_transaction(owner_id, transaction_id)
        changes = updates.model_dump(exclude_unset=True, exclude_none=True)
        record = current.to_record()
        if "occurred_at" in changes:
            record["date"] = changes.pop("occurred_at")
            record["time"] = derive_time_label(record["date"], self.tz)
        record.update(changes)
        updated = Transaction.from_record(record)
        updated.id = transaction_id
        self.store.set(EXPENSES, transaction_id, updated.to_record())
        return updated

    def delete_transaction(self, owner_id: str, transaction_id: str) -> None:
        self.get_transaction(owner_id, transaction_id)
        self.store.delete(EXPENSES, transaction_id)
        logger.info(f"Deleted expense {transaction_id} for owner {owner_id}")

    def transactions_between(self, owner_id: str, start: datetime, end: datetime) -> List[Transaction]:
        owner_id = require_owner(owner_id)
        records = self.store.query(
            EXPENSES,
            filters=[
                Filter("ownerId", "==", owner_id),
                Filter("date", ">=", start),
                Filter("date", "<", end),
            ],
            order_by=OrderBy("date"),
        )
        return self._decode(EXPENSES, records, Transaction)

    def transactions_for_day(self, owner_id: str, day: date) -> List[Transaction]:
        start, end = day_bounds(day, self.tz)
        return self.transactions_between(owner_id, start, end)

    def all_transactions(self, owner_id: str) -> List[Transaction]:
        owner_id = require_owner(owner_id)
        records = self.store.query(
            EXPENSES,
            filters=[Filter("ownerId", "==", owner_id)],
            order_by=OrderBy("date", descending=True),
        )
        return self._decode(EXPENSES, records, Transaction)

    # Incomes

    def add_income(self, owner_id: str, data: IncomeCreate) -> Income:
        owner_id = require_owner(owner_id)
        income = Income.from_record({
            "ownerId": owner_id,
            "title": data.title,
            "amount": data.amount,
            "date": data.occurred_at,
            "time": derive_time_label(data.occurred_at, self.tz),
        })
        income.id = self.store.create(INCOMES, income.to_record())
        return income

    def delete_income(self, owner_id: str, income_id: str) -> None:
        self._get_owned(INCOMES, Income, owner_id, income_id)
        self.store.delete(INCOMES, income_id)

    def all_incomes(self, owner_id: str) -> List[Income]:
        owner_id = require_owner(owner_id)
        records = self.store.query(
            INCOMES,
            filters=[Filter("ownerId", "==", owner_id)],
            order_by=OrderBy("date", descending=True),
        )
        return self._decode(INCOMES, records, Income)

    # Budget settings

    def current_budget_settings(self, owner_id: str) -> BudgetSettings:
        """
        Most recently updated valid settings. Malformed documents are skipped;
        a zero-valued default is created only if the owner has no valid one.
        """
        owner_id = require_owner(owner_id)
        records = self.store.query(
            BUDGET_SETTINGS,
            filters=[Filter("ownerId", "==", owner_id)],
            order_by=OrderBy("updatedAt", descending=True),
        )
        decoded = self._decode(BUDGET_SETTINGS, records, BudgetSettings)
        if decoded:
            return decoded[0]

        logger.info(f"No valid budget settings for owner {owner_id}, creating defaults")
        return self.save_budget_settings(owner_id, 0.0, default_category_budgets())

    def save_budget_settings(
        self,
        owner_id: str,
        monthly_budget: float,
        category_budgets: List[CategoryBudget],
        existing: Optional[BudgetSettings] = None,
    ) -> BudgetSettings:
        owner_id = require_owner(owner_id)
        now = utcnow()
        budget = BudgetSettings.from_record({
            "ownerId": owner_id,
            "monthlyBudget": monthly_budget,
            "categoryBudgets": [item.model_dump() for item in category_budgets],
            "createdAt": existing.created_at if existing else now,
            "updatedAt": now,
        })
        if existing is not None and existing.id:
            self.store.set(BUDGET_SETTINGS, existing.id, budget.to_record())
            budget.id = existing.id
        else:
            budget.id = self.store.create(BUDGET_SETTINGS, budget.to_record())
        return budget

    # Insights

    def recent_insights(self, owner_id: str, limit: int = 10) -> List[Insight]:
        owner_id = require_owner(owner_id)
        records = self.store.query(
            INSIGHTS,
            filters=[Filter("ownerId", "==", owner_id)],
            order_by=OrderBy("date", descending=True),
            limit=limit,
        )
        return self._decode(INSIGHTS, records, Insight)

    def insights_between(self, owner_id: str, start: datetime, end: datetime) -> List[Insight]:
        owner_id = require_owner(owner_id)
        records = self.store.query(
            INSIGHTS,
            filters=[
                Filter("ownerId", "==", owner_id),
                Filter("date", ">=", start),
                Filter("date", "<", end),
            ],
            order_by=OrderBy("date", descending=True),
        )
        return self._decode(INSIGHTS, records, Insight)

    def create_insight(self, insight: Insight) -> Insight:
        require_owner(insight.owner_id)
        insight.id = self.store.create(INSIGHTS, insight.to_record())
        return insight

    # Daily insight schedules

    def insight_schedule(self, owner_id: str) -> Optional[InsightSchedule]:
        owner_id = require_owner(owner_id)
        records = self.store.query(
            INSIGHT_SCHEDULES,
            filters=[Filter("ownerId", "==", owner_id)],
            order_by=OrderBy("updatedAt", descending=True),
        )
        decoded = self._decode(INSIGHT_SCHEDULES, records, InsightSchedule)
        return decoded[0] if decoded else None

    def save_insight_schedule(self, owner_id: str, hour: int, minute: int, enabled: bool) -> InsightSchedule:
        """One schedule document per owner, overwritten in place."""
        owner_id = require_owner(owner_id)
        existing = self.insight_schedule(owner_id)
        schedule = InsightSchedule.from_record({
            "ownerId": owner_id,
            "hour": hour,
            "minute": minute,
            "enabled": enabled,
            "updatedAt": utcnow(),
        })
        if existing is not None and existing.id:
            self.store.set(INSIGHT_SCHEDULES, existing.id, schedule.to_record())
            schedule.id = existing.id
        else:
            schedule.id = self.store.create(INSIGHT_SCHEDULES, schedule.to_record())
        logger.info(f"Saved insight schedule for owner {owner_id}: {hour:02d}:{minute:02d} enabled={enabled}")
        return schedule

    def enabled_insight_schedules(self) -> List[InsightSchedule]:
        """Every owner's enabled schedule; read only by the scheduler at startup and refresh."""
        records = self.store.query(INSIGHT_SCHEDULES, filters=[Filter("enabled", "==", True)])
        return self._decode(INSIGHT_SCHEDULES, records, InsightSchedule)

    # Helpers

    def _get_owned(self, collection: str, model: Type[T], owner_id: str, record_id: str) -> T:
        owner_id = require_owner(owner_id)
        record = self.store.get(collection, record_id)
        # records of other owners are indistinguishable from missing ones
        if record is None or record.get("ownerId") != owner_id:
            raise NotFoundError(f"{collection} record {record_id} not found")
        value = model.from_record(record)
        value.id = record_id
        return value

    @staticmethod
    def _decode(collection: str, records: List[Mapping[str, Any]], model: Type[T]) -> List[T]:
        values = []
        for result in decode_records(records, model):
            if result.ok:
                values.append(result.value)
            else:
                logger.warning(f"Skipping malformed {collection} record {result.record_id}: {result.error}")
        return values
