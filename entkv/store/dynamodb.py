"""
DynamoDB store implementation.

This module implements the Store protocol on top of DynamoDB using
aiobotocore for async operations.

Table layout expected by entkv:
    base table:     hash key "pk" (S), range key "sk" (S)
    sk-data-index:  hash key "sk" (S), range key "data" (S)
    TimeSeries:     table "{base}-{TYPE}", hash key "pk" (S), range key "sk" (N),
                    one index per Searchable field named after the field

Invariants:
    - No retries: every failure surfaces as StoreError
    - Batch writes are chunked into groups of 25 (DynamoDB limit)
    - Unprocessed batch items are reported as a failure, never dropped silently

How to change safely:
    - Keep attribute value conversion symmetric (_to_attribute/_from_attribute)
    - Test expression building against DynamoDB Local
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from aiobotocore.session import get_session
from botocore.exceptions import BotoCoreError, ClientError

from ..config import StoreConfig
from ..errors import StoreError
from .base import QuerySpec, Row, SortOp

logger = logging.getLogger(__name__)

BATCH_SIZE = 25


def _to_attribute(value: Any) -> Dict[str, Any]:
    if value is None:
        return {"NULL": True}
    if isinstance(value, bool):
        return {"BOOL": value}
    if isinstance(value, (int, float)):
        return {"N": str(value)}
    if isinstance(value, str):
        return {"S": value}
    raise StoreError(f"Unsupported attribute value type: {type(value).__name__}")


def _from_attribute(attribute: Dict[str, Any]) -> Any:
    if "S" in attribute:
        return attribute["S"]
    if "N" in attribute:
        number = attribute["N"]
        return int(number) if number.lstrip("-").isdigit() else float(number)
    if "BOOL" in attribute:
        return attribute["BOOL"]
    if "NULL" in attribute:
        return None
    raise StoreError(f"Unsupported attribute type: {sorted(attribute)}")


def to_item(row: Row) -> Dict[str, Any]:
    """Convert a row to a DynamoDB item."""
    return {name: _to_attribute(value) for name, value in row.items()}


def from_item(item: Dict[str, Any]) -> Row:
    """Convert a DynamoDB item to a row."""
    return {name: _from_attribute(value) for name, value in item.items()}


def build_query_params(spec: QuerySpec) -> Dict[str, Any]:
    """Translate a QuerySpec into DynamoDB Query parameters."""
    names = {"#h": spec.hash_key}
    values = {":h": _to_attribute(spec.hash_value)}
    expression = "#h = :h"

    if spec.condition is not None:
        names["#r"] = spec.range_key
        values[":r"] = _to_attribute(spec.condition.value)
        op = spec.condition.op
        if op == SortOp.EQ:
            expression += " AND #r = :r"
        elif op == SortOp.BEGINS_WITH:
            expression += " AND begins_with(#r, :r)"
        elif op == SortOp.BETWEEN:
            values[":r2"] = _to_attribute(spec.condition.upper)
            expression += " AND #r BETWEEN :r AND :r2"
        elif op == SortOp.GTE:
            expression += " AND #r >= :r"
        else:
            expression += " AND #r <= :r"

    params: Dict[str, Any] = {
        "TableName": spec.table,
        "KeyConditionExpression": expression,
        "ScanIndexForward": not spec.descending,
    }
    if spec.index:
        params["IndexName"] = spec.index

    if spec.filters:
        clauses = []
        for i, (name, value) in enumerate(spec.filters):
            names[f"#f{i}"] = name
            values[f":f{i}"] = _to_attribute(value)
            clauses.append(f"#f{i} = :f{i}")
        params["FilterExpression"] = " AND ".join(clauses)

    params["ExpressionAttributeNames"] = names
    params["ExpressionAttributeValues"] = values
    return params


class DynamoDbStore:
    """DynamoDB implementation of the Store protocol.

    Example:
        >>> async with DynamoDbStore(StoreConfig.from_env()) as store:
        ...     session = Session(store, registry)
    """

    def __init__(self, config: StoreConfig) -> None:
        """Initialize DynamoDB store.

        Args:
            config: StoreConfig instance
        """
        self.config = config
        self._session = None
        self._client_ctx = None
        self._client = None

    @property
    def is_connected(self) -> bool:
        """Whether the client has been created."""
        return self._client is not None

    async def connect(self) -> None:
        """Create the DynamoDB client."""
        if self._client is not None:
            return

        self._session = get_session()

        client_kwargs: Dict[str, Any] = {"region_name": self.config.region}
        if self.config.endpoint_url:
            client_kwargs["endpoint_url"] = self.config.endpoint_url
        if self.config.access_key_id:
            client_kwargs["aws_access_key_id"] = self.config.access_key_id
            client_kwargs["aws_secret_access_key"] = self.config.secret_access_key

        self._client_ctx = self._session.create_client("dynamodb", **client_kwargs)
        self._client = await self._client_ctx.__aenter__()

        logger.info(
            "Connected to DynamoDB",
            extra={
                "region": self.config.region,
                "endpoint": self.config.endpoint_url or "AWS",
                "table": self.config.table_name,
            },
        )

    async def close(self) -> None:
        """Close the DynamoDB client."""
        if self._client_ctx is not None:
            await self._client_ctx.__aexit__(None, None, None)

        self._client_ctx = None
        self._client = None
        self._session = None
        logger.info("DynamoDB connection closed")

    async def __aenter__(self) -> DynamoDbStore:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _require_client(self) -> Any:
        if not self.is_connected:
            raise StoreError("Not connected to DynamoDB")
        return self._client

    async def put(self, table: str, row: Row) -> None:
        """Upsert a single row."""
        client = self._require_client()
        try:
            await client.put_item(TableName=table, Item=to_item(row))
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"DynamoDB put_item failed: {e}", operation="put") from e

    async def batch_write(self, table: str, rows: List[Row]) -> None:
        """Upsert many rows in chunks of 25."""
        client = self._require_client()

        for start in range(0, len(rows), BATCH_SIZE):
            chunk = rows[start : start + BATCH_SIZE]
            request = {table: [{"PutRequest": {"Item": to_item(row)}} for row in chunk]}
            try:
                response = await client.batch_write_item(RequestItems=request)
            except (ClientError, BotoCoreError) as e:
                raise StoreError(
                    f"DynamoDB batch_write_item failed: {e}", operation="batch_write"
                ) from e

            unprocessed = response.get("UnprocessedItems") or {}
            if unprocessed.get(table):
                raise StoreError(
                    f"{len(unprocessed[table])} rows were not processed",
                    operation="batch_write",
                )

        logger.debug("Batch written to DynamoDB", extra={"table": table, "rows": len(rows)})

    async def query(self, spec: QuerySpec) -> List[Row]:
        """Run a query, following pagination until exhausted or limit reached."""
        client = self._require_client()
        params = build_query_params(spec)

        rows: List[Row] = []
        start_key: Optional[Dict[str, Any]] = None
        while True:
            if start_key is not None:
                params["ExclusiveStartKey"] = start_key
            if spec.limit is not None and not spec.filters:
                params["Limit"] = spec.limit - len(rows)

            try:
                response = await client.query(**params)
            except (ClientError, BotoCoreError) as e:
                raise StoreError(f"DynamoDB query failed: {e}", operation="query") from e

            rows.extend(from_item(item) for item in response.get("Items", []))

            if spec.limit is not None and len(rows) >= spec.limit:
                return rows[: spec.limit]

            start_key = response.get("LastEvaluatedKey")
            if not start_key:
                return rows
