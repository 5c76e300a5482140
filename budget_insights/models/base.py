from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from budget_insights.core.errors import InvalidRecordError

T = TypeVar("T", bound="StoredModel")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(moment: datetime) -> datetime:
    """Naive datetimes are treated as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class StoredModel(BaseModel):
    """Base for every document kept in the record store (camelCase on disk)."""

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_record(cls: Type[T], record: Mapping[str, Any]) -> T:
        try:
            return cls.model_validate(dict(record))
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise InvalidRecordError(f"Invalid {cls.__name__}: {problems}") from e

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"id"})


@dataclass
class Decoded(Generic[T]):
    """Tagged result of decoding one stored document."""

    record_id: Optional[str]
    value: Optional[T] = None
    error: Optional[InvalidRecordError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def decode_records(records: List[Mapping[str, Any]], model: Type[T]) -> List[Decoded[T]]:
    results: List[Decoded[T]] = []
    for record in records:
        record_id = record.get("id")
        try:
            results.append(Decoded(record_id=record_id, value=model.from_record(record)))
        except InvalidRecordError as e:
            results.append(Decoded(record_id=record_id, error=e))
    return results
