"""
Primary-key drivers.

RelationalKeyAttribute addresses the root row of a Flat record:
    pk="{TYPE}#{id}", sk="{TYPE}", data="$nil", one column per field

TimeSeriesKeyAttribute addresses the single row of a TimeSeries record in
its per-type table:
    pk="{id}", sk={timestamp}, data="$nil", one column per field
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List

from ..codec import DELIMITER
from ..errors import ValidationError
from ..schema.types import Layout, Role
from ..store.base import DATA_KEY, NIL, PARTITION_KEY, SORT_KEY, QuerySpec, Row, SortCondition, SortOp
from .base import Attribute

if TYPE_CHECKING:
    from ..entity import Entity


class RelationalKeyAttribute(Attribute):
    """Primary key of a Flat record."""

    role = Role.PRIMARY_KEY
    compatible_layouts = frozenset({Layout.FLAT})

    def partition_key(self, id: str) -> str:
        return f"{self.type_key}{DELIMITER}{id}"

    def equals(self, value: Any) -> QuerySpec:
        return QuerySpec(
            table=self.strategy.table_name,
            hash_key=PARTITION_KEY,
            hash_value=self.partition_key(value),
            range_key=SORT_KEY,
            condition=SortCondition(SortOp.EQ, self.type_key),
            limit=1,
            descending=True,
        )

    def lookup(self, record: Entity) -> QuerySpec:
        return self.equals(record.id)

    def rows_to_write(self, record: Entity) -> List[Row]:
        row: Row = {
            PARTITION_KEY: self.partition_key(record.id),
            SORT_KEY: self.type_key,
            DATA_KEY: NIL,
        }
        row.update(self.strategy.encode_columns(record))
        return [row]

    async def extract_key_value(self, row: Row) -> Any:
        return row[PARTITION_KEY].partition(DELIMITER)[2]


class TimeSeriesKeyAttribute(Attribute):
    """(id, timestamp) key of a TimeSeries record."""

    role = Role.PRIMARY_KEY
    compatible_layouts = frozenset({Layout.TIME_SERIES})

    def equals(self, value: Any) -> QuerySpec:
        """All rows of one id, newest first."""
        return QuerySpec(
            table=self.strategy.table_name,
            hash_key=PARTITION_KEY,
            hash_value=value,
            range_key=SORT_KEY,
            descending=True,
        )

    def range(self, start: Any = None, end: Any = None, id: Any = None) -> List[QuerySpec]:
        """Rows of one id with start <= timestamp <= end, newest first.

        Raises:
            ValidationError: If no id is given
        """
        if id is None:
            raise ValidationError("TimeSeries range queries require an id", field_name=self.name)

        if start is not None and end is not None:
            condition = SortCondition(SortOp.BETWEEN, start, end)
        elif start is not None:
            condition = SortCondition(SortOp.GTE, start)
        elif end is not None:
            condition = SortCondition(SortOp.LTE, end)
        else:
            return [self.equals(id)]

        return [
            QuerySpec(
                table=self.strategy.table_name,
                hash_key=PARTITION_KEY,
                hash_value=id,
                range_key=SORT_KEY,
                condition=condition,
                descending=True,
            )
        ]

    def lookup(self, record: Entity) -> QuerySpec:
        if record.timestamp is None:
            spec = self.equals(record.id)
            return QuerySpec(
                table=spec.table,
                hash_key=spec.hash_key,
                hash_value=spec.hash_value,
                range_key=spec.range_key,
                limit=1,
                descending=True,
            )
        return QuerySpec(
            table=self.strategy.table_name,
            hash_key=PARTITION_KEY,
            hash_value=record.id,
            range_key=SORT_KEY,
            condition=SortCondition(SortOp.EQ, record.timestamp),
            limit=1,
        )

    def rows_to_write(self, record: Entity) -> List[Row]:
        timestamp = record.timestamp
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise ValidationError(
                f"TimeSeries record '{record.id}' requires an integer timestamp",
                field_name="timestamp",
            )

        row: Row = {PARTITION_KEY: record.id, SORT_KEY: timestamp, DATA_KEY: NIL}
        row.update(self.strategy.encode_columns(record))
        return [row]

    async def extract_key_value(self, row: Row) -> Any:
        return row[PARTITION_KEY]
