"""
Searchable attribute drivers.

Flat layout: one extra row per field, queried through the (sk, data) index:
    pk="{TYPE}#{id}", sk="{TYPE}:{field}", data=<encoded value>

Composite values are packed in reverse declaration order, so match() with a
partial mapping addresses the trailing declared components:
    name={"first": "Clem", "last": "Fandango"} -> data="#Fandango#Clem"
    match({"last": "Fandango"})                -> begins_with(data, "#Fandango")

TimeSeries layout: no extra rows; the field column of the record row is
indexed by a secondary index named after the field. Only equality works.

Invariants:
    - Range bounds are encoded with the field's max magnitude
    - A signed range spanning zero is issued as two queries, negative half
      first, so concatenated results are in numeric order
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List

from ..codec import DELIMITER, KIND_SEPARATOR
from ..errors import ValidationError
from ..schema.types import Layout, Role
from ..store.base import DATA_KEY, PARTITION_KEY, SORT_KEY, QuerySpec, Row, SortCondition, SortOp
from .base import Attribute

if TYPE_CHECKING:
    from ..entity import Entity


class SearchableAttribute(Attribute):
    role = Role.SEARCHABLE
    compatible_layouts = frozenset({Layout.FLAT})

    @property
    def index_sort_key(self) -> str:
        return f"{self.type_key}{KIND_SEPARATOR}{self.name}"

    def _encode_number(self, value: int) -> str:
        if value < 0 and self.descriptor is not None and not self.descriptor.signed:
            raise ValidationError(
                f"Field '{self.name}' is not signed, got {value}", field_name=self.name
            )
        return super()._encode_number(value)

    def _spec(self, condition: SortCondition) -> QuerySpec:
        return QuerySpec(
            table=self.strategy.table_name,
            hash_key=SORT_KEY,
            hash_value=self.index_sort_key,
            range_key=DATA_KEY,
            condition=condition,
            index=self.strategy.index_name,
        )

    def equals(self, value: Any) -> QuerySpec:
        return self._spec(SortCondition(SortOp.EQ, self.encode_operand(value)))

    def match(self, value: Any) -> QuerySpec:
        return self._spec(SortCondition(SortOp.BEGINS_WITH, self.encode_operand(value)))

    def range(self, start: Any = None, end: Any = None, id: Any = None) -> List[QuerySpec]:
        """Build one or two bounded queries on the encoded value.

        Raises:
            ValidationError: If neither bound is given or start > end
        """
        if start is None and end is None:
            raise ValidationError("Range queries need a start or an end", field_name=self.name)

        if isinstance(start, int) and isinstance(end, int):
            if start > end:
                raise ValidationError(
                    f"Range start {start} is greater than end {end}", field_name=self.name
                )
            if start < 0 <= end:
                return [self._bounded(start, -1), self._bounded(0, end)]

        return [self._bounded(start, end)]

    def _bounded(self, start: Any, end: Any) -> QuerySpec:
        if start is not None and end is not None:
            condition = SortCondition(
                SortOp.BETWEEN, self.encode_operand(start), self.encode_operand(end)
            )
        elif start is not None:
            condition = SortCondition(SortOp.GTE, self.encode_operand(start))
        else:
            condition = SortCondition(SortOp.LTE, self.encode_operand(end))
        return self._spec(condition)

    def rows_to_write(self, record: Entity) -> List[Row]:
        row: Row = {
            PARTITION_KEY: f"{self.type_key}{DELIMITER}{record.id}",
            SORT_KEY: self.index_sort_key,
            DATA_KEY: self.encode_value(record, self.name),
        }
        row.update(self.index_columns(record))
        return [row]

    async def extract_key_value(self, row: Row) -> Any:
        return await self.decode_value({self.name: row[DATA_KEY]}, self.name)


class TimeSeriesSearchableAttribute(SearchableAttribute):
    """Searchable field of a TimeSeries type, backed by a per-field index."""

    compatible_layouts = frozenset({Layout.TIME_SERIES})

    def equals(self, value: Any) -> QuerySpec:
        return QuerySpec(
            table=self.strategy.table_name,
            hash_key=self.name,
            hash_value=self.encode_operand(value),
            range_key=SORT_KEY,
            index=self.name,
            descending=True,
        )

    def match(self, value: Any) -> QuerySpec:
        return Attribute.match(self, value)

    def range(self, start: Any = None, end: Any = None, id: Any = None) -> List[QuerySpec]:
        return Attribute.range(self, start, end, id)

    def rows_to_write(self, record: Entity) -> List[Row]:
        return []

    async def extract_key_value(self, row: Row) -> Any:
        return await self.decode_value(row, self.name)
