"""
Storage strategies for entkv, one per layout.

STRATEGIES maps a Layout to its strategy class; Session.strategy_for()
looks strategies up here.
"""

from __future__ import annotations

from typing import Dict

from ..schema.types import Layout
from .base import StorageStrategy
from .relational import RelationalStorageStrategy
from .timeseries import TimeSeriesStorageStrategy

STRATEGIES: Dict[Layout, type[StorageStrategy]] = {
    Layout.FLAT: RelationalStorageStrategy,
    Layout.TIME_SERIES: TimeSeriesStorageStrategy,
}

__all__ = [
    "StorageStrategy",
    "RelationalStorageStrategy",
    "TimeSeriesStorageStrategy",
    "STRATEGIES",
]
