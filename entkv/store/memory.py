"""
In-memory store implementation for testing.

This module provides a simple in-memory Store backend for:
- Unit tests
- Integration tests
- Local development without DynamoDB

Invariants:
    - All data is lost on process exit
    - Provides the same ordering and sparse-index semantics as DynamoDB
    - Rows are copied on write and on read

How to change safely:
    - This is test-only code, changes don't affect production
    - Keep interface compatible with the Store protocol
    - Add features to help with testing scenarios
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections import defaultdict
from typing import Any, Dict, List, Tuple

from .base import PARTITION_KEY, SORT_KEY, QuerySpec, Row

logger = logging.getLogger(__name__)


class InMemoryStore:
    """In-memory implementation of Store for testing.

    Tables are created on first write. Indexes need no declaration: a query
    against an index scans every row that carries both the index hash and
    range attributes.

    Attributes:
        queries: Every QuerySpec executed, in order (useful for assertions)
        writes: Number of rows written

    Example:
        >>> store = InMemoryStore()
        >>> await store.put("entkv", {"pk": "USER#u1", "sk": "USER"})
        >>> await store.query(QuerySpec("entkv", "pk", "USER#u1", "sk"))
        [{'pk': 'USER#u1', 'sk': 'USER'}]
    """

    def __init__(self) -> None:
        """Initialize empty store."""
        self._tables: Dict[str, Dict[Tuple[Any, Any], Row]] = defaultdict(dict)
        self._lock = asyncio.Lock()
        self.queries: List[QuerySpec] = []
        self.writes = 0

    async def put(self, table: str, row: Row) -> None:
        """Upsert a single row."""
        async with self._lock:
            self._write(table, row)

    async def batch_write(self, table: str, rows: List[Row]) -> None:
        """Upsert many rows."""
        async with self._lock:
            for row in rows:
                self._write(table, row)

        logger.debug("Batch written to in-memory store", extra={"table": table, "rows": len(rows)})

    def _write(self, table: str, row: Row) -> None:
        key = (row[PARTITION_KEY], row[SORT_KEY])
        self._tables[table][key] = copy.deepcopy(row)
        self.writes += 1

    async def query(self, spec: QuerySpec) -> List[Row]:
        """Return rows matching the spec in range-key order."""
        self.queries.append(spec)

        async with self._lock:
            candidates = [
                row
                for row in self._tables.get(spec.table, {}).values()
                if self._matches(row, spec)
            ]

        if spec.range_key is not None:
            candidates.sort(key=lambda r: r[spec.range_key], reverse=spec.descending)
        elif spec.descending:
            candidates.reverse()

        if spec.limit is not None:
            candidates = candidates[: spec.limit]

        return [copy.deepcopy(row) for row in candidates]

    @staticmethod
    def _matches(row: Row, spec: QuerySpec) -> bool:
        if row.get(spec.hash_key) != spec.hash_value:
            return False
        if spec.range_key is not None and spec.range_key not in row:
            return False
        if spec.condition is not None and not spec.condition.matches(row[spec.range_key]):
            return False
        return all(row.get(name) == value for name, value in spec.filters)

    def rows(self, table: str) -> List[Row]:
        """All rows of a table ordered by (pk, sk)."""
        rows = list(self._tables.get(table, {}).values())
        rows.sort(key=lambda r: (str(r[PARTITION_KEY]), str(r[SORT_KEY])))
        return [copy.deepcopy(row) for row in rows]

    def clear(self) -> None:
        """Drop every table."""
        self._tables.clear()
        self.queries.clear()
        self.writes = 0
