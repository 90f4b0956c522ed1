"""
Base class for attribute drivers.

A driver owns one field of an entity type. It knows how to:
- Build store queries for the field (equals / match / range)
- Shape the extra row(s) the field needs in the table
- Encode the field's value as a stored column and decode it back
- Recover the field's value from a row returned by its own index

Drivers are built per (strategy, field) and hold no record state; the
record being written is always passed in explicitly.

Invariants:
    - Unsupported query operations raise UnsupportedOperation, never degrade
    - Index rows never carry the driver's own field as a column; the value
      is recovered from the row key instead (extract_key_value)
    - Numeric columns are order-encoded; composite columns are packed

How to change safely:
    - A new role needs a driver here plus an entry in DRIVERS
    - Keep encode_value and decode_value symmetric
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, FrozenSet, List

from ..codec import (
    decode_scalar,
    encode_scalar,
    encode_string,
    looks_encoded,
    pack_composite,
    unpack_composite,
)
from ..errors import UnsupportedOperation, ValidationError
from ..schema.types import FieldDescriptor, FieldKind, Layout, Role
from ..store.base import QuerySpec, Row

if TYPE_CHECKING:
    from ..entity import Entity
    from ..strategies.base import StorageStrategy

logger = logging.getLogger(__name__)


class Attribute:
    """Driver for one field of an entity type.

    Attributes:
        name: Field name the driver owns
        strategy: Storage strategy of the owning entity type
        descriptor: Field descriptor (None for key and wildcard drivers)
    """

    role: Role = Role.PLAIN
    compatible_layouts: FrozenSet[Layout] = frozenset({Layout.FLAT, Layout.TIME_SERIES})

    def __init__(
        self,
        name: str,
        strategy: StorageStrategy,
        descriptor: FieldDescriptor | None = None,
    ) -> None:
        self.name = name
        self.strategy = strategy
        self.descriptor = descriptor

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.strategy.entity_type.name}.{self.name})"

    @property
    def type_key(self) -> str:
        return self.strategy.entity_type.key

    def supports(self, layout: Layout) -> bool:
        return layout in self.compatible_layouts

    # Query building

    def equals(self, value: Any) -> QuerySpec:
        raise UnsupportedOperation(self.role.value, "equality", self.name)

    def match(self, value: Any) -> QuerySpec:
        raise UnsupportedOperation(self.role.value, "match", self.name)

    def range(self, start: Any = None, end: Any = None, id: Any = None) -> List[QuerySpec]:
        raise UnsupportedOperation(self.role.value, "range", self.name)

    # Row shaping

    def rows_to_write(self, record: Entity) -> List[Row]:
        return []

    async def extract_key_value(self, row: Row) -> Any:
        """Recover this driver's field value from a row of its own index."""
        return None

    # Value encoding

    def encode_operand(self, value: Any) -> Any:
        """Encode a value the way it is stored in a column or key.

        Raises:
            ValidationError: If the value does not fit the field declaration
        """
        descriptor = self.descriptor
        if isinstance(value, dict):
            if descriptor is not None and not descriptor.composite and descriptor.role != Role.PLAIN:
                raise ValidationError(
                    f"Field '{self.name}' is not declared composite", field_name=self.name
                )
            return pack_composite(value)

        if descriptor is not None and descriptor.composite:
            raise ValidationError(
                f"Composite field '{self.name}' requires a mapping value", field_name=self.name
            )

        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise ValidationError(
                f"Field '{self.name}' holds unsupported value type {type(value).__name__}",
                field_name=self.name,
            )

        if isinstance(value, int):
            return self._encode_number(value)
        return encode_string(value, self.name)

    def _encode_number(self, value: int) -> str:
        if self.descriptor is None:
            return encode_scalar(value)
        return encode_scalar(value, self.descriptor.max_magnitude)

    def encode_value(self, record: Entity, field_name: str) -> Any:
        """Encoded column value of a record field."""
        return self.encode_operand(record.get(field_name))

    async def decode_value(self, row: Row, field_name: str) -> Any:
        """Decode a stored column back into a record value.

        Only values carrying a composite or numeric marker consult the type
        cache; everything else is returned as stored.
        """
        raw = row.get(field_name)
        if not looks_encoded(raw):
            return raw

        meta = self.strategy.meta
        entity_type = self.strategy.entity_type
        kind = await meta.resolve_type(entity_type, field_name)
        if kind == FieldKind.NUMBER:
            return decode_scalar(raw)
        if kind == FieldKind.COMPOSITE:
            schema = await meta.resolve_schema(entity_type, field_name)
            return unpack_composite(raw, schema.components, schema.kinds)
        return raw

    def index_columns(self, record: Entity) -> Row:
        """Encoded columns of every other field, projected onto an index row."""
        return self.strategy.encode_columns(record, exclude=(self.name,))


class PlainAttribute(Attribute):
    """Unindexed field: stored as a column, never queried."""

    role = Role.PLAIN
