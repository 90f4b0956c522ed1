"""
Unit tests for the schema/type metadata repository.

Tests cover:
- Metadata row formats
- Checksum-based write skipping
- Cache misses served from the store
- Bulk warming with fetch_all
"""

import hashlib

import pytest

from entkv.errors import NotFoundError, SchemaMismatch, StoreError
from entkv.meta import MetaRepository
from entkv.schema import EntityType, FieldKind, searchable
from entkv.store import InMemoryStore

User = EntityType(name="User", fields=(searchable("name", composite=True), searchable("age")))


def _repository(store):
    return MetaRepository(store, table_name="entkv", index_name="sk-data-index")


class TestMetaRepository:
    """Tests for MetaRepository."""

    @pytest.fixture
    def store(self):
        return InMemoryStore()

    @pytest.mark.asyncio
    async def test_schema_row_format(self, store):
        """Schema rows are keyed by SCHEMA# and carry an md5 hash."""
        meta = _repository(store)

        written = await meta.store_schema(User, "name", {"first": "Clem", "last": "Fandango"})

        assert written
        [row] = store.rows("entkv")
        assert row["pk"] == "SCHEMA#USER:name"
        assert row["sk"] == "META#USER"
        assert row["data"] == "#last:string#first:string"
        assert row["hash"] == hashlib.md5(b"#last:string#first:string").hexdigest()

    @pytest.mark.asyncio
    async def test_type_row_format(self, store):
        """Type rows are keyed by TYPE# and never collide with schema rows."""
        meta = _repository(store)

        await meta.store_type(User, "name", FieldKind.COMPOSITE)
        await meta.store_schema(User, "name", {"first": "Clem", "last": "Fandango"})

        rows = {row["pk"]: row for row in store.rows("entkv")}
        assert set(rows) == {"TYPE#USER:name", "SCHEMA#USER:name"}
        assert rows["TYPE#USER:name"]["data"] == "composite"
        assert rows["TYPE#USER:name"]["sk"] == "META#USER"

    @pytest.mark.asyncio
    async def test_unchanged_metadata_is_not_rewritten(self, store):
        """A second write with the same checksum is skipped."""
        meta = _repository(store)

        assert await meta.store_schema(User, "name", {"first": "A", "last": "B"})
        assert not await meta.store_schema(User, "name", {"first": "C", "last": "D"})
        assert await meta.store_type(User, "age", FieldKind.NUMBER)
        assert not await meta.store_type(User, "age", FieldKind.NUMBER)

        assert store.writes == 2

    @pytest.mark.asyncio
    async def test_failed_put_leaves_cache_untouched(self, store):
        """A write the store rejected is not remembered as done."""
        meta = _repository(store)
        healthy_put = store.put

        async def failing_put(table, row):
            raise StoreError("put failed", operation="put")

        store.put = failing_put
        with pytest.raises(StoreError):
            await meta.store_type(User, "age", FieldKind.NUMBER)
        with pytest.raises(StoreError):
            await meta.store_schema(User, "name", {"first": "A", "last": "B"})

        assert meta.cached_type(User, "age") is None
        assert meta.cached_schema(User, "name") is None

        store.put = healthy_put
        assert await meta.store_type(User, "age", FieldKind.NUMBER)
        assert await meta.store_schema(User, "name", {"first": "A", "last": "B"})
        assert len(store.rows("entkv")) == 2

    @pytest.mark.asyncio
    async def test_changed_schema_overwrites(self, store):
        """A different component layout replaces the cached schema."""
        meta = _repository(store)

        await meta.store_schema(User, "name", {"first": "A", "last": "B"})
        await meta.store_schema(User, "name", {"first": "A", "middle": "M", "last": "B"})

        schema = await meta.resolve_schema(User, "name")
        assert schema.components == ("first", "middle", "last")
        assert len(store.rows("entkv")) == 1

    @pytest.mark.asyncio
    async def test_resolve_from_store_on_miss(self, store):
        """A fresh repository loads metadata written by another one."""
        await _repository(store).store_schema(User, "name", {"first": "Clem", "last": "F"})
        await _repository(store).store_type(User, "age", FieldKind.NUMBER)

        meta = _repository(store)
        schema = await meta.resolve_schema(User, "name")
        kind = await meta.resolve_type(User, "age")

        assert schema.components == ("first", "last")
        assert schema.kinds == ("string", "string")
        assert kind == FieldKind.NUMBER
        assert meta.cached_type(User, "age") == FieldKind.NUMBER

    @pytest.mark.asyncio
    async def test_resolve_missing_raises(self, store):
        meta = _repository(store)

        with pytest.raises(NotFoundError):
            await meta.resolve_schema(User, "name")
        with pytest.raises(NotFoundError):
            await meta.resolve_type(User, "age")

    @pytest.mark.asyncio
    async def test_fetch_all_warms_cache_in_one_query(self, store):
        """fetch_all loads every metadata row of a type with one index query."""
        writer = _repository(store)
        await writer.store_schema(User, "name", {"first": "Clem", "last": "F"})
        await writer.store_type(User, "name", FieldKind.COMPOSITE)
        await writer.store_type(User, "age", FieldKind.NUMBER)

        meta = _repository(store)
        count = await meta.fetch_all(User)

        assert count == 3
        assert len(store.queries) == 1
        assert store.queries[0].index == "sk-data-index"
        assert meta.cached_schema(User, "name").components == ("first", "last")
        assert meta.cached_type(User, "age") == FieldKind.NUMBER

        await meta.resolve_type(User, "name")
        assert len(store.queries) == 1

    @pytest.mark.asyncio
    async def test_fetch_all_rejects_unknown_namespace(self, store):
        await store.put("entkv", {"pk": "OTHER#USER:x", "sk": "META#USER", "data": "string"})

        with pytest.raises(SchemaMismatch, match="Unrecognized metadata type OTHER"):
            await _repository(store).fetch_all(User)
