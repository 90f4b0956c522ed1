"""
Unique attribute driver.

A Unique field gets one extra row whose sort key is the raw value:
    pk="{TYPE}#{id}", sk="{value}", data="$nil"

Querying the (sk, data) index by that value finds the owning record.
Only equality is supported; match and range raise UnsupportedOperation.
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


class UniqueAttribute(Attribute):
    role = Role.UNIQUE
    compatible_layouts = frozenset({Layout.FLAT})

    def encode_operand(self, value: Any) -> Any:
        if not isinstance(value, str):
            raise ValidationError(
                f"Unique field '{self.name}' requires a string value, got {type(value).__name__}",
                field_name=self.name,
            )
        return value

    def equals(self, value: Any) -> QuerySpec:
        return QuerySpec(
            table=self.strategy.table_name,
            hash_key=SORT_KEY,
            hash_value=self.encode_operand(value),
            range_key=DATA_KEY,
            condition=SortCondition(SortOp.EQ, NIL),
            index=self.strategy.index_name,
        )

    def rows_to_write(self, record: Entity) -> List[Row]:
        row: Row = {
            PARTITION_KEY: f"{self.type_key}{DELIMITER}{record.id}",
            SORT_KEY: self.encode_value(record, self.name),
            DATA_KEY: NIL,
        }
        row.update(self.index_columns(record))
        return [row]

    async def extract_key_value(self, row: Row) -> Any:
        return row[SORT_KEY]
