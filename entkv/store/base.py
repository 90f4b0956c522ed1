"""
Base protocol and types for the sorted key-value store abstraction.

This module defines the Store protocol that every backend implements,
along with the query specification the attribute drivers build.

Rows are plain dictionaries: {"pk": ..., "sk": ..., "data": ..., <columns>}.
A query addresses either the base table (hash key "pk", range key "sk")
or a named secondary index (e.g. "sk-data-index" keyed on (sk, data)).

Invariants:
    - put/batch_write are unconditional upserts keyed by (pk, sk)
    - batch_write is not transactional across rows
    - query returns rows in range-key order (ascending unless descending=True)
    - Indexes are sparse: rows lacking an index key attribute are not indexed

How to change safely:
    - Protocol changes require updating all implementations
    - Add new SortCondition operators to every backend at once
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

Row = Dict[str, Any]

PARTITION_KEY = "pk"
SORT_KEY = "sk"
DATA_KEY = "data"
NIL = "$nil"


class SortOp(Enum):
    """Sort-key condition operators."""

    EQ = "="
    BEGINS_WITH = "begins_with"
    BETWEEN = "between"
    GTE = ">="
    LTE = "<="


@dataclass(frozen=True)
class SortCondition:
    """Condition on the range key of a table or index.

    Attributes:
        op: Operator
        value: Operand (lower bound for BETWEEN)
        upper: Upper bound for BETWEEN
    """

    op: SortOp
    value: Any
    upper: Any = None

    def matches(self, candidate: Any) -> bool:
        """Evaluate the condition against a range-key value."""
        if self.op == SortOp.EQ:
            return candidate == self.value
        if self.op == SortOp.BEGINS_WITH:
            return isinstance(candidate, str) and candidate.startswith(self.value)
        if self.op == SortOp.BETWEEN:
            return self.value <= candidate <= self.upper
        if self.op == SortOp.GTE:
            return candidate >= self.value
        return candidate <= self.value


@dataclass(frozen=True)
class QuerySpec:
    """A single store query.

    Attributes:
        table: Table name
        hash_key: Name of the partition attribute for the table/index
        hash_value: Required partition value
        range_key: Name of the range attribute (sets result order)
        condition: Optional condition on the range attribute
        index: Secondary index name, None for the base table
        filters: Attribute-equality filters applied after the key condition
        limit: Maximum number of rows
        descending: Return rows newest/largest first
    """

    table: str
    hash_key: str
    hash_value: Any
    range_key: Optional[str] = None
    condition: Optional[SortCondition] = None
    index: Optional[str] = None
    filters: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)
    limit: Optional[int] = None
    descending: bool = False

    def with_filters(self, filters: Tuple[Tuple[str, Any], ...]) -> QuerySpec:
        """Copy of this spec with extra filters appended."""
        return QuerySpec(
            table=self.table,
            hash_key=self.hash_key,
            hash_value=self.hash_value,
            range_key=self.range_key,
            condition=self.condition,
            index=self.index,
            filters=self.filters + tuple(filters),
            limit=self.limit,
            descending=self.descending,
        )


@runtime_checkable
class Store(Protocol):
    """Protocol for the sorted key-value store consumed by entkv."""

    async def put(self, table: str, row: Row) -> None:
        """Upsert a single row."""
        ...

    async def batch_write(self, table: str, rows: List[Row]) -> None:
        """Upsert many rows; no atomicity across rows."""
        ...

    async def query(self, spec: QuerySpec) -> List[Row]:
        """Return rows matching the spec in range-key order."""
        ...
