"""
Flat layout: every type shares the base table.

A record with one Unique and one Searchable field is written as three rows
under the same partition key:
    root:       pk="USER#u1", sk="USER",       data="$nil"
    unique:     pk="USER#u1", sk="a@b.com",    data="$nil"
    searchable: pk="USER#u1", sk="USER:name",  data="#Fandango#Clem"
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Set

from ..attributes import RelationalKeyAttribute
from ..codec import DELIMITER
from ..errors import ValidationError
from ..schema.types import Layout
from ..store.base import PARTITION_KEY, SORT_KEY, Row
from .base import StorageStrategy

if TYPE_CHECKING:
    from ..entity import Entity


class RelationalStorageStrategy(StorageStrategy):
    layout = Layout.FLAT
    key_attribute_class = RelationalKeyAttribute

    @property
    def table_name(self) -> str:
        return self.session.config.store.table_name

    def owns(self, row: Row) -> bool:
        pk = row.get(PARTITION_KEY)
        return isinstance(pk, str) and pk.startswith(f"{self.entity_type.key}{DELIMITER}")

    def identity(self, row: Row) -> Dict[str, Any]:
        return {"id": row[PARTITION_KEY].partition(DELIMITER)[2]}

    def rows_for(self, record: Entity) -> List[Row]:
        """Collect the root row and one row per set field.

        Raises:
            ValidationError: If two rows of the record share a sort key, e.g.
                two Unique fields holding the same value
        """
        rows = self.key.rows_to_write(record)
        for name, value in record.values().items():
            if value is not None:
                rows.extend(self.driver(name).rows_to_write(record))

        seen: Set[Any] = set()
        for row in rows:
            sort_key = row[SORT_KEY]
            if sort_key in seen:
                raise ValidationError(
                    f"Fields of {self.entity_type.name} {record.id} produce duplicate row key '{sort_key}'"
                )
            seen.add(sort_key)
        return rows

    def _pick_row(self, rows: List[Row]) -> Row:
        for row in rows:
            if row.get(SORT_KEY) == self.entity_type.key:
                return row
        return rows[0]
