"""
Generic document store contract used by the record adapter, plus an
in-process backend for local runs and tests.

Records are plain dicts keyed by their stored (camelCase) field names. Every
record returned by ``query``/``get`` carries its ``id``.
"""
import copy
import logging
import operator
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence
from uuid import uuid4

from budget_insights.core.errors import InvalidRecordError

logger = logging.getLogger(__name__)

OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    ">=": operator.ge,
    "<=": operator.le,
    "<": operator.lt,
}


class Filter(NamedTuple):
    field: str
    op: str
    value: Any


class OrderBy(NamedTuple):
    field: str
    descending: bool = False


def validate_filters(filters: Iterable[Filter]) -> List[Filter]:
    checked = []
    for f in filters:
        if f.op not in OPERATORS:
            raise InvalidRecordError(f"Unsupported filter operator: {f.op!r}")
        checked.append(Filter(*f))
    return checked


def matches(record: Dict[str, Any], filters: Sequence[Filter]) -> bool:
    for f in filters:
        if f.field not in record:
            return False
        value = record[f.field]
        try:
            if not OPERATORS[f.op](value, f.value):
                return False
        except TypeError:
            return False
    return True


def sort_and_limit(
    records: List[Dict[str, Any]],
    order_by: Optional[OrderBy] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    if order_by is not None:
        present = [r for r in records if r.get(order_by.field) is not None]
        missing = [r for r in records if r.get(order_by.field) is None]
        present.sort(key=lambda r: r[order_by.field], reverse=order_by.descending)
        records = present + missing
    if limit is not None:
        records = records[: max(limit, 0)]
    return records


class RecordStore(ABC):
    """Per-document atomic reads/writes with filtered, sorted queries."""

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def create(self, collection: str, record: Dict[str, Any]) -> str:
        ...

    @abstractmethod
    def set(self, collection: str, record_id: str, record: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def delete(self, collection: str, record_id: str) -> bool:
        ...

    def healthcheck(self, collections: Iterable[str]) -> Dict[str, str]:
        return {name: "accessible" for name in collections}


class MemoryRecordStore(RecordStore):
    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def query(self, collection, filters=(), order_by=None, limit=None):
        checked = validate_filters(filters)
        with self._lock:
            docs = self._collections.get(collection, {})
            found = [
                {**copy.deepcopy(doc), "id": doc_id}
                for doc_id, doc in docs.items()
                if matches(doc, checked)
            ]
        return sort_and_limit(found, order_by, limit)

    def get(self, collection, record_id):
        with self._lock:
            doc = self._collections.get(collection, {}).get(record_id)
            if doc is None:
                return None
            return {**copy.deepcopy(doc), "id": record_id}

    def create(self, collection, record):
        record_id = uuid4().hex
        self.set(collection, record_id, record)
        logger.debug(f"Created {collection}/{record_id}")
        return record_id

    def set(self, collection, record_id, record):
        doc = {k: copy.deepcopy(v) for k, v in record.items() if k != "id"}
        with self._lock:
            self._collections.setdefault(collection, {})[record_id] = doc

    def delete(self, collection, record_id):
        with self._lock:
            return self._collections.get(collection, {}).pop(record_id, None) is not None
