from datetime import datetime, tzinfo
from typing import List, Optional

from pydantic import Field, field_validator

from budget_insights.models.base import StoredModel, ensure_aware, utcnow


def format_insight_date(moment: datetime, tz: Optional[tzinfo] = None) -> str:
    """Abbreviated date with short time, e.g. ``Feb 22, 2025 at 3:04 PM``."""
    local = moment.astimezone(tz) if tz else moment
    clock = local.strftime("%I:%M %p").lstrip("0")
    return f"{local:%b} {local.day}, {local:%Y} at {clock}"


class Insight(StoredModel):
    """A generated daily insight. Append-only; stored in ``insights``."""

    id: Optional[str] = None
    owner_id: str = Field(alias="ownerId", min_length=1)
    date: datetime
    insight_text: str = Field(alias="insightText")
    analyzed_transaction_ids: List[str] = Field(default_factory=list, alias="analyzedTransactionIds")
    previous_context_text: str = Field(default="", alias="previousContextText")

    @field_validator("date")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    def formatted_date(self, tz: Optional[tzinfo] = None) -> str:
        return format_insight_date(self.date, tz)


class InsightSchedule(StoredModel):
    """An owner's daily generation preference. Stored in ``insightSchedules``."""

    id: Optional[str] = None
    owner_id: str = Field(alias="ownerId", min_length=1)
    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)
    enabled: bool = True
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")

    @field_validator("updated_at")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)
