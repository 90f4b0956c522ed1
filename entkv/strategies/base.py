"""
Storage strategy base.

A strategy binds an entity type to a layout. It owns one driver per
declared field plus the layout's key driver, and uses them to:
- Assemble every row a record needs and write them in one batch
- Persist the schema/type metadata needed to decode those rows later
- Turn rows returned by a query back into a record

Invariants:
    - Metadata is written for every non-reference field that has a value
    - With sync_metadata, metadata is durable before any row is written;
      otherwise both writes race and a reader may briefly see NotFoundError
    - load_entity only returns after every field resolution has succeeded
    - Nothing is rolled back when one of the writes fails

How to change safely:
    - Subclasses define layout, key_attribute_class, table_name and identity()
    - Keep row assembly in the drivers; the strategy only orchestrates
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Dict, Iterable, List, Mapping, Optional

from ..attributes import WILDCARD, Attribute, driver_class
from ..concurrency import gather_bounded
from ..errors import NotFoundError, ValidationError
from ..schema.types import RESERVED_NAMES, FieldKind, Layout, Role
from ..store.base import Row

if TYPE_CHECKING:
    from ..entity import Entity
    from ..meta import MetaRepository
    from ..session import Session

logger = logging.getLogger(__name__)


class StorageStrategy:
    """Layout-specific orchestration of attribute drivers.

    Attributes:
        session: Owning session (store, registry, metadata cache, config)
        entity_cls: Entity subclass this strategy stores
        entity_type: Descriptor table of entity_cls
        key: Key driver of the layout
    """

    layout: Layout
    key_attribute_class: type[Attribute]
    driver_overrides: Mapping[Role, type[Attribute]] = {}

    def __init__(self, session: Session, entity_cls: type[Entity]) -> None:
        self.session = session
        self.entity_cls = entity_cls
        self.entity_type = entity_cls.entity_type
        self.key = self.key_attribute_class("id", self)
        self._wildcard = driver_class(Role.WILDCARD, self.driver_overrides, self.entity_type.name)(
            WILDCARD, self
        )
        self._drivers: Dict[str, Attribute] = {
            f.name: driver_class(f.role, self.driver_overrides, self.entity_type.name)(
                f.name, self, f
            )
            for f in self.entity_type.fields
        }

    @property
    def table_name(self) -> str:
        raise NotImplementedError

    @property
    def index_name(self) -> str:
        return self.session.config.store.index_name

    @property
    def meta(self) -> MetaRepository:
        return self.session.meta

    @property
    def fanout(self) -> int:
        return self.session.config.query.fanout

    def driver(self, field_name: str) -> Attribute:
        """Driver owning a field ("*" for the wildcard, id/timestamp for the key).

        Raises:
            ValidationError: If the type declares no such field
        """
        if field_name == WILDCARD:
            return self._wildcard
        if field_name in RESERVED_NAMES:
            return self.key
        try:
            return self._drivers[field_name]
        except KeyError:
            raise ValidationError(
                f"{self.entity_type.name} has no field '{field_name}'", field_name=field_name
            ) from None

    def drivers(self) -> Iterable[Attribute]:
        return self._drivers.values()

    def owns(self, row: Row) -> bool:
        """Whether a row returned by a query belongs to this entity type."""
        return True

    def identity(self, row: Row) -> Dict[str, Any]:
        raise NotImplementedError

    def encode_columns(self, record: Entity, exclude: Iterable[str] = ()) -> Row:
        """Encoded value of every set field, keyed by field name."""
        excluded = set(exclude)
        return {
            name: self._drivers[name].encode_value(record, name)
            for name, value in record.values().items()
            if value is not None and name not in excluded
        }

    def rows_for(self, record: Entity) -> List[Row]:
        raise NotImplementedError

    def metadata_writes(self, record: Entity) -> List[Awaitable[bool]]:
        writes: List[Awaitable[bool]] = []
        for name, value in record.values().items():
            if value is None or self._drivers[name].role == Role.REFERENCE:
                continue
            kind = FieldKind.of(value)
            writes.append(self.meta.store_type(self.entity_type, name, kind))
            if kind == FieldKind.COMPOSITE:
                writes.append(self.meta.store_schema(self.entity_type, name, value))
        return writes

    async def store_entity(self, record: Entity) -> None:
        """Write every row of a record plus its decode metadata.

        Raises:
            ValidationError: If a value does not fit its field declaration
            StoreError: If the store rejects a write
        """
        rows = self.rows_for(record)
        writes = self.metadata_writes(record)

        if self.session.config.query.sync_metadata:
            await gather_bounded(writes, self.fanout)
            await self.session.store.batch_write(self.table_name, rows)
        else:
            await asyncio.gather(
                gather_bounded(writes, self.fanout),
                self.session.store.batch_write(self.table_name, rows),
            )

        logger.debug(
            "Stored entity",
            extra={
                "type_name": self.entity_type.name,
                "entity_id": record.id,
                "rows": len(rows),
                "metadata_writes": len(writes),
            },
        )

    def _pick_row(self, rows: List[Row]) -> Row:
        return rows[0]

    async def load_entity(self, rows: List[Row], queried_by: Optional[Attribute] = None) -> Entity:
        """Assemble a record from rows of one identity.

        Args:
            rows: Rows of the record (the root row is preferred if present)
            queried_by: Driver whose index returned the rows; recovers the
                field that index rows do not carry as a column

        Raises:
            NotFoundError: If rows is empty
            SchemaMismatch: If a composite column disagrees with its schema
        """
        if not rows:
            raise NotFoundError(
                f"{self.entity_type.name} not found",
                resource_type=self.entity_type.name,
                resource_id="",
            )

        row = self._pick_row(rows)
        names: List[str] = []
        resolutions: List[Awaitable[Any]] = []
        for name, driver in self._drivers.items():
            if name in row:
                names.append(name)
                resolutions.append(driver.decode_value(row, name))
            elif queried_by is driver:
                names.append(name)
                resolutions.append(driver.extract_key_value(row))

        values = await gather_bounded(resolutions, self.fanout)
        return self.entity_cls(**self.identity(row), **dict(zip(names, values)))
