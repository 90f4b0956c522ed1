"""
Schema and type metadata cache.

Composite fields are stored as packed strings ("#Fandango#Clem") and
numbers as encoded strings ("0000000000000042"). Decoding them later, possibly
in another process, needs two pieces of metadata per (entity type, field):

- SchemaEntry: component names and kinds of a composite field
- TypeEntry: scalar kind of a field (string, number or composite)

Both are persisted as rows in the base table and cached in memory for
the lifetime of the repository.

Metadata rows:
    schema: pk="SCHEMA#{TYPE}:{field}", sk="META#{TYPE}",
            data="#name:kind..." (reverse declaration order), hash=md5(data)
    type:   pk="TYPE#{TYPE}:{field}",   sk="META#{TYPE}",
            data=kind, hash=md5(kind)

Invariants:
    - Schema and type rows never collide (SCHEMA# vs TYPE# namespaces)
    - The cache is append-mostly; the last write observed wins
    - Cache updates replace the whole mapping (copy-on-write) under a lock
    - A write whose checksum equals the cached entry is skipped
    - The cache is only updated after the metadata row is durable

How to change safely:
    - Never change the row key formats; deployed tables depend on them
    - Staleness after a schema change is accepted until process restart
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from .codec import DELIMITER, pack_schema, unpack_schema
from .errors import NotFoundError, SchemaMismatch
from .schema.types import EntityType, FieldKind
from .store.base import DATA_KEY, PARTITION_KEY, SORT_KEY, QuerySpec, Store

logger = logging.getLogger(__name__)

SCHEMA_PREFIX = "SCHEMA"
TYPE_PREFIX = "TYPE"
META_PREFIX = "META"


def checksum(data: str) -> str:
    return hashlib.md5(data.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class SchemaEntry:
    """Component layout of a composite field.

    Attributes:
        components: Component names in declaration order
        kinds: Component kinds ("string" or "number") in declaration order
        hash: MD5 checksum of the packed schema data
    """

    components: tuple[str, ...]
    kinds: tuple[str, ...]
    hash: str

    @classmethod
    def from_data(cls, data: str) -> SchemaEntry:
        components, kinds = unpack_schema(data)
        return cls(components=components, kinds=kinds, hash=checksum(data))


class MetaRepository:
    """Process-wide schema/type cache backed by the store.

    Example:
        >>> meta = MetaRepository(store, table_name="entkv", index_name="sk-data-index")
        >>> await meta.store_schema(User.entity_type, "name", {"first": "Clem", "last": "F"})
        >>> (await meta.resolve_schema(User.entity_type, "name")).components
        ('first', 'last')
    """

    def __init__(self, store: Store, table_name: str, index_name: str) -> None:
        """Initialize the repository.

        Args:
            store: Backing store
            table_name: Base table holding metadata rows
            index_name: Secondary index keyed on (sk, data)
        """
        self.store = store
        self.table_name = table_name
        self.index_name = index_name
        self._schemas: Dict[str, SchemaEntry] = {}
        self._types: Dict[str, FieldKind] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def target(entity_type: EntityType, field_name: str) -> str:
        return f"{entity_type.key}:{field_name}"

    async def _cache_schema(self, target: str, entry: SchemaEntry) -> None:
        async with self._lock:
            self._schemas = {**self._schemas, target: entry}

    async def _cache_type(self, target: str, kind: FieldKind) -> None:
        async with self._lock:
            self._types = {**self._types, target: kind}

    def cached_schema(self, entity_type: EntityType, field_name: str) -> SchemaEntry | None:
        return self._schemas.get(self.target(entity_type, field_name))

    def cached_type(self, entity_type: EntityType, field_name: str) -> FieldKind | None:
        return self._types.get(self.target(entity_type, field_name))

    async def store_schema(
        self,
        entity_type: EntityType,
        field_name: str,
        value: Mapping[str, Any],
    ) -> bool:
        """Derive and persist the schema of a composite value.

        Returns:
            True if a row was written, False if the cached schema already matched

        Raises:
            ValidationError: If the composite value is nested
        """
        target = self.target(entity_type, field_name)
        data = pack_schema(value)
        entry = SchemaEntry.from_data(data)

        cached = self._schemas.get(target)
        if cached is not None and cached.hash == entry.hash:
            return False

        await self.store.put(
            self.table_name,
            {
                PARTITION_KEY: f"{SCHEMA_PREFIX}#{target}",
                SORT_KEY: f"{META_PREFIX}#{entity_type.key}",
                DATA_KEY: data,
                "hash": entry.hash,
            },
        )
        await self._cache_schema(target, entry)

        logger.debug("Stored schema", extra={"target": target, "hash": entry.hash})
        return True

    async def store_type(self, entity_type: EntityType, field_name: str, kind: FieldKind) -> bool:
        """Persist the scalar kind of a field.

        Returns:
            True if a row was written, False if the cached kind already matched
        """
        target = self.target(entity_type, field_name)
        if self._types.get(target) == kind:
            return False

        await self.store.put(
            self.table_name,
            {
                PARTITION_KEY: f"{TYPE_PREFIX}#{target}",
                SORT_KEY: f"{META_PREFIX}#{entity_type.key}",
                DATA_KEY: kind.value,
                "hash": checksum(kind.value),
            },
        )
        await self._cache_type(target, kind)

        logger.debug("Stored type", extra={"target": target, "kind": kind.value})
        return True

    async def _load_row(self, prefix: str, target: str) -> Dict[str, Any]:
        rows = await self.store.query(
            QuerySpec(
                table=self.table_name,
                hash_key=PARTITION_KEY,
                hash_value=f"{prefix}#{target}",
                range_key=SORT_KEY,
                limit=1,
            )
        )
        if not rows:
            raise NotFoundError(
                f"{prefix.lower()} not found for {target}",
                resource_type=prefix.lower(),
                resource_id=target,
            )
        return rows[0]

    async def resolve_schema(self, entity_type: EntityType, field_name: str) -> SchemaEntry:
        """Return the schema of a composite field, loading it on a cache miss.

        Raises:
            NotFoundError: If no schema row exists
        """
        target = self.target(entity_type, field_name)
        cached = self._schemas.get(target)
        if cached is not None:
            return cached

        row = await self._load_row(SCHEMA_PREFIX, target)
        entry = SchemaEntry.from_data(row[DATA_KEY])
        await self._cache_schema(target, entry)
        return entry

    async def resolve_type(self, entity_type: EntityType, field_name: str) -> FieldKind:
        """Return the scalar kind of a field, loading it on a cache miss.

        Raises:
            NotFoundError: If no type row exists
        """
        target = self.target(entity_type, field_name)
        cached = self._types.get(target)
        if cached is not None:
            return cached

        row = await self._load_row(TYPE_PREFIX, target)
        kind = FieldKind.from_str(row[DATA_KEY])
        await self._cache_type(target, kind)
        return kind

    async def fetch_all(self, entity_type: EntityType) -> int:
        """Warm the cache with every metadata row of a type in one query.

        Returns:
            Number of metadata rows loaded

        Raises:
            SchemaMismatch: If a metadata row has an unrecognized namespace
        """
        rows = await self.store.query(
            QuerySpec(
                table=self.table_name,
                hash_key=SORT_KEY,
                hash_value=f"{META_PREFIX}#{entity_type.key}",
                range_key=DATA_KEY,
                index=self.index_name,
            )
        )

        schemas: Dict[str, SchemaEntry] = {}
        types: Dict[str, FieldKind] = {}
        for row in rows:
            namespace, _, target = row[PARTITION_KEY].partition(DELIMITER)
            if namespace == SCHEMA_PREFIX:
                schemas[target] = SchemaEntry.from_data(row[DATA_KEY])
            elif namespace == TYPE_PREFIX:
                types[target] = FieldKind.from_str(row[DATA_KEY])
            else:
                raise SchemaMismatch(f"Unrecognized metadata type {namespace}")

        async with self._lock:
            self._schemas = {**self._schemas, **schemas}
            self._types = {**self._types, **types}

        logger.debug(
            "Fetched metadata",
            extra={"type_name": entity_type.name, "schemas": len(schemas), "types": len(types)},
        )
        return len(rows)


__all__ = ["MetaRepository", "SchemaEntry", "checksum"]
