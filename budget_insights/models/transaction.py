from datetime import datetime, tzinfo
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from budget_insights.models.base import StoredModel, ensure_aware, utcnow
from budget_insights.utils.periods import to_local


def derive_time_label(moment: datetime, tz: Optional[tzinfo] = None) -> str:
    """``hh:mm AM`` in ``tz``; without a zone the stored (UTC) clock is used."""
    return to_local(moment, tz).strftime("%I:%M %p")


class Transaction(StoredModel):
    """An expense. Stored in the ``expenses`` collection."""

    id: Optional[str] = None
    owner_id: str = Field(alias="ownerId", min_length=1)
    title: str
    category: str
    amount: float = Field(ge=0)
    occurred_at: datetime = Field(alias="date")
    time_label: str = Field(default="", alias="time")
    icon: str = ""
    color: str = ""

    @field_validator("title", "category")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("occurred_at")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @model_validator(mode="after")
    def _fill_time_label(self):
        if not self.time_label:
            self.time_label = derive_time_label(self.occurred_at)
        return self


class Income(StoredModel):
    """Money coming in. Stored in the ``incomes`` collection."""

    id: Optional[str] = None
    owner_id: str = Field(alias="ownerId", min_length=1)
    title: str
    amount: float = Field(ge=0)
    occurred_at: datetime = Field(alias="date")
    time_label: str = Field(default="", alias="time")

    @field_validator("title")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("occurred_at")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @model_validator(mode="after")
    def _fill_time_label(self):
        if not self.time_label:
            self.time_label = derive_time_label(self.occurred_at)
        return self


class TransactionCreate(BaseModel):
    title: str
    amount: float
    category: str
    occurred_at: datetime = Field(default_factory=utcnow)
    icon: Optional[str] = None
    color: Optional[str] = None


class TransactionUpdate(BaseModel):
    title: Optional[str] = None
    amount: Optional[float] = None
    category: Optional[str] = None
    occurred_at: Optional[datetime] = None
    icon: Optional[str] = None
    color: Optional[str] = None


class IncomeCreate(BaseModel):
    title: str
    amount: float
    occurred_at: datetime = Field(default_factory=utcnow)
