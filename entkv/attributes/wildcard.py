"""
Wildcard pseudo-attribute.

select("*").equals("*") lists every record of a type by querying the
(sk, data) index for root rows (sk="{TYPE}"). Writes nothing.
"""

from __future__ import annotations

from typing import Any

from ..schema.types import Layout, Role
from ..store.base import DATA_KEY, SORT_KEY, QuerySpec
from .base import Attribute

WILDCARD = "*"


class WildcardAttribute(Attribute):
    role = Role.WILDCARD
    compatible_layouts = frozenset({Layout.FLAT})

    def equals(self, value: Any = WILDCARD) -> QuerySpec:
        return QuerySpec(
            table=self.strategy.table_name,
            hash_key=SORT_KEY,
            hash_value=self.type_key,
            range_key=DATA_KEY,
            index=self.strategy.index_name,
        )
