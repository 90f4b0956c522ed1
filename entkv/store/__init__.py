"""
Store module for entkv.

This module provides the sorted key-value store abstraction:
- Store protocol and query specification types
- In-memory implementation (testing and local development)
- DynamoDB implementation (aiobotocore)

Invariants:
    - All backends provide the same ordering guarantees
    - Writes are unconditional upserts; nothing is transactional
"""

from .base import (
    DATA_KEY,
    NIL,
    PARTITION_KEY,
    SORT_KEY,
    QuerySpec,
    Row,
    SortCondition,
    SortOp,
    Store,
)
from .memory import InMemoryStore

__all__ = [
    "Store",
    "QuerySpec",
    "SortCondition",
    "SortOp",
    "Row",
    "PARTITION_KEY",
    "SORT_KEY",
    "DATA_KEY",
    "NIL",
    "InMemoryStore",
]
