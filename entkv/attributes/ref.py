"""
Reference attribute driver.

A reference field stores the target's id as a column and gets one extra row
keyed by the target identity:
    pk="{TYPE}#{id}", sk="{TARGET}#{targetId}", data="{TYPE}#{id}"

Querying the (sk, data) index with sk="{TARGET}#{targetId}" and a
data prefix of "{TYPE}#" answers "every TYPE referencing this target".
Loaded references are id-only stubs of the target type.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List

from ..codec import DELIMITER
from ..errors import ValidationError
from ..schema.types import Layout, Role
from ..store.base import DATA_KEY, PARTITION_KEY, SORT_KEY, QuerySpec, Row, SortCondition, SortOp
from .base import Attribute

if TYPE_CHECKING:
    from ..entity import Entity


class RefAttribute(Attribute):
    role = Role.REFERENCE
    compatible_layouts = frozenset({Layout.FLAT})

    @property
    def target_cls(self) -> type[Entity]:
        return self.strategy.session.registry.get(self.descriptor.reference_target)

    @property
    def target_key(self) -> str:
        return self.descriptor.reference_target.upper()

    def encode_operand(self, value: Any) -> Any:
        """A reference is stored as the target id."""
        if isinstance(value, str):
            return value

        entity_type = getattr(value, "entity_type", None)
        if entity_type is None or entity_type.name != self.descriptor.reference_target:
            raise ValidationError(
                f"Ref field '{self.name}' must reference a "
                f"{self.descriptor.reference_target}, got {type(value).__name__}",
                field_name=self.name,
            )
        return value.id

    def equals(self, value: Any) -> QuerySpec:
        return QuerySpec(
            table=self.strategy.table_name,
            hash_key=SORT_KEY,
            hash_value=f"{self.target_key}{DELIMITER}{self.encode_operand(value)}",
            range_key=DATA_KEY,
            condition=SortCondition(SortOp.BEGINS_WITH, f"{self.type_key}{DELIMITER}"),
            index=self.strategy.index_name,
        )

    def rows_to_write(self, record: Entity) -> List[Row]:
        owner = f"{self.type_key}{DELIMITER}{record.id}"
        row: Row = {
            PARTITION_KEY: owner,
            SORT_KEY: f"{self.target_key}{DELIMITER}{self.encode_value(record, self.name)}",
            DATA_KEY: owner,
        }
        row.update(self.index_columns(record))
        return [row]

    def stub(self, target_id: str) -> Entity:
        return self.target_cls(target_id)

    async def extract_key_value(self, row: Row) -> Any:
        return self.stub(row[SORT_KEY].partition(DELIMITER)[2])

    async def decode_value(self, row: Row, field_name: str) -> Any:
        target_id = row.get(field_name)
        if target_id is None:
            return None
        return self.stub(target_id)
