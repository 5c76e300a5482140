import logging
from datetime import datetime, timezone
from decimal import Decimal
from functools import reduce
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from budget_insights.core.config import settings
from budget_insights.core.errors import StoreError
from budget_insights.db.store import Filter, RecordStore, sort_and_limit, validate_filters

logger = logging.getLogger(__name__)

OWNER_FIELD = "ownerId"


class DynamoRecordStore(RecordStore):
    """
    Record store backed by one DynamoDB table per collection
    (``<prefix>-<collection>``, partition key ``id``).

    Queries with an ``ownerId ==`` filter go through the owner GSI when one is
    configured; everything else is a filtered scan. Ordering and limits are
    applied after the full result set is read.
    """

    def __init__(
        self,
        region: str = settings.DYNAMO_REGION,
        table_prefix: str = settings.DYNAMO_TABLE_PREFIX,
        owner_index: Optional[str] = settings.DYNAMO_OWNER_INDEX,
        resource: Any = None,
    ) -> None:
        self._dynamodb = resource or boto3.resource("dynamodb", region_name=region)
        self._table_prefix = table_prefix
        self._owner_index = owner_index

    def table(self, collection: str):
        return self._dynamodb.Table(f"{self._table_prefix}-{collection}")

    def query(self, collection, filters=(), order_by=None, limit=None):
        checked = validate_filters(filters)
        table = self.table(collection)

        owner_filter = next(
            (f for f in checked if f.field == OWNER_FIELD and f.op == "=="), None
        )
        use_index = owner_filter is not None and bool(self._owner_index)
        remaining = [f for f in checked if not (use_index and f is owner_filter)]

        kwargs: Dict[str, Any] = {}
        condition = _build_condition(remaining)
        if condition is not None:
            kwargs["FilterExpression"] = condition
        if use_index:
            kwargs["IndexName"] = self._owner_index
            kwargs["KeyConditionExpression"] = Key(OWNER_FIELD).eq(owner_filter.value)

        try:
            items = self._collect(table.query if use_index else table.scan, kwargs)
        except ClientError as e:
            logger.error(f"query on {collection} failed: {e.response['Error']['Message']}")
            raise StoreError(f"Failed to query {collection}") from e

        return sort_and_limit([_from_dynamo(item) for item in items], order_by, limit)

    def get(self, collection, record_id):
        try:
            response = self.table(collection).get_item(Key={"id": record_id})
        except ClientError as e:
            logger.error(f"get on {collection} failed: {e.response['Error']['Message']}")
            raise StoreError(f"Failed to read {collection}/{record_id}") from e
        item = response.get("Item")
        return _from_dynamo(item) if item else None

    def create(self, collection, record):
        record_id = uuid4().hex
        self.set(collection, record_id, record)
        return record_id

    def set(self, collection, record_id, record):
        item = {**record, "id": record_id}
        try:
            self.table(collection).put_item(Item=_convert_for_dynamo(item))
        except ClientError as e:
            logger.error(f"put on {collection} failed: {e.response['Error']['Message']}")
            raise StoreError(f"Failed to write {collection}/{record_id}") from e

    def delete(self, collection, record_id):
        try:
            response = self.table(collection).delete_item(
                Key={"id": record_id},
                ReturnValues="ALL_OLD",
            )
        except ClientError as e:
            logger.error(f"delete on {collection} failed: {e.response['Error']['Message']}")
            raise StoreError(f"Failed to delete {collection}/{record_id}") from e
        return "Attributes" in response

    def healthcheck(self, collections):
        status = {}
        for name in collections:
            try:
                self.table(name).scan(Limit=1)
                status[name] = "accessible"
            except ClientError as e:
                logger.error(f"DynamoDB check failed for {name}: {e}")
                status[name] = "error"
        return status

    @staticmethod
    def _collect(operation, kwargs: Dict[str, Any]) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        while True:
            response = operation(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs = {**kwargs, "ExclusiveStartKey": last_key}


def _build_condition(filters: Sequence[Filter]):
    conditions = []
    for f in filters:
        attr = Attr(f.field)
        value = _convert_for_dynamo(f.value)
        if f.op == "==":
            conditions.append(attr.eq(value))
        elif f.op == ">=":
            conditions.append(attr.gte(value))
        elif f.op == "<=":
            conditions.append(attr.lte(value))
        elif f.op == "<":
            conditions.append(attr.lt(value))
    if not conditions:
        return None
    return reduce(lambda left, right: left & right, conditions)


def to_timestamp(moment: datetime) -> str:
    """Fixed-width UTC ISO-8601 so stored timestamps compare lexicographically."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal and datetimes to timestamps for DynamoDB.
    """
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, datetime):
        return to_timestamp(obj)
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
