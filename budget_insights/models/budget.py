from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from budget_insights.models.base import StoredModel, ensure_aware, utcnow


class CategoryBudget(BaseModel):
    # icon and color are display metadata, never interpreted here
    category: str
    amount: float = Field(default=0.0, ge=0)
    icon: str = ""
    color: str = ""


class BudgetSettings(StoredModel):
    """Budget configuration. Stored in the ``budgetSettings`` collection."""

    id: Optional[str] = None
    owner_id: str = Field(alias="ownerId", min_length=1)
    monthly_budget: float = Field(default=0.0, ge=0, alias="monthlyBudget")
    category_budgets: List[CategoryBudget] = Field(default_factory=list, alias="categoryBudgets")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")

    @field_validator("category_budgets")
    @classmethod
    def _unique_categories(cls, value: List[CategoryBudget]) -> List[CategoryBudget]:
        seen = set()
        for item in value:
            if item.category in seen:
                raise ValueError(f"duplicate category budget: {item.category}")
            seen.add(item.category)
        return value

    @field_validator("created_at", "updated_at")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    def budget_for(self, category: str) -> Optional[CategoryBudget]:
        for item in self.category_budgets:
            if item.category == category:
                return item
        return None


class BudgetSettingsUpdate(BaseModel):
    monthly_budget: float
    category_budgets: List[CategoryBudget]
