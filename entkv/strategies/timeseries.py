"""
TimeSeries layout: one append-only table per type, "{table}-{TYPE}".

Each record is exactly one row keyed by (id, timestamp); Searchable fields
are served by secondary indexes named after the field.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List

from ..attributes import TimeSeriesKeyAttribute, TimeSeriesSearchableAttribute
from ..schema.types import Layout, Role
from ..store.base import PARTITION_KEY, SORT_KEY, Row
from .base import StorageStrategy

if TYPE_CHECKING:
    from ..entity import Entity


class TimeSeriesStorageStrategy(StorageStrategy):
    layout = Layout.TIME_SERIES
    key_attribute_class = TimeSeriesKeyAttribute
    driver_overrides = {Role.SEARCHABLE: TimeSeriesSearchableAttribute}

    @property
    def table_name(self) -> str:
        return f"{self.session.config.store.table_name}-{self.entity_type.key}"

    def identity(self, row: Row) -> Dict[str, Any]:
        return {"id": row[PARTITION_KEY], "timestamp": row[SORT_KEY]}

    def rows_for(self, record: Entity) -> List[Row]:
        return self.key.rows_to_write(record)
