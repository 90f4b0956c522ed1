"""
Unit tests for the in-memory store and bounded fan-out.

Tests cover:
- Upsert semantics
- Sort conditions, ordering, limits and filters
- Sparse index behavior
- gather_bounded ordering and concurrency cap
"""

import asyncio

import pytest

from entkv.concurrency import gather_bounded
from entkv.store import InMemoryStore, QuerySpec, SortCondition, SortOp, Store


@pytest.fixture
def store():
    return InMemoryStore()


async def _seed(store):
    await store.batch_write(
        "t",
        [
            {"pk": "USER#u1", "sk": "USER", "data": "$nil", "team": "core"},
            {"pk": "USER#u1", "sk": "USER:age", "data": "0030", "team": "core"},
            {"pk": "USER#u2", "sk": "USER:age", "data": "0012", "team": "web"},
            {"pk": "USER#u3", "sk": "USER:age", "data": "-990", "team": "core"},
            {"pk": "USER#u3", "sk": "nodata"},
        ],
    )


class TestInMemoryStore:
    """Tests for InMemoryStore."""

    def test_satisfies_protocol(self, store):
        assert isinstance(store, Store)

    @pytest.mark.asyncio
    async def test_put_is_upsert(self, store):
        await store.put("t", {"pk": "a", "sk": "b", "data": "1"})
        await store.put("t", {"pk": "a", "sk": "b", "data": "2"})

        assert store.rows("t") == [{"pk": "a", "sk": "b", "data": "2"}]

    @pytest.mark.asyncio
    async def test_rows_are_copied(self, store):
        row = {"pk": "a", "sk": "b"}
        await store.put("t", row)
        row["sk"] = "changed"

        [result] = await store.query(QuerySpec("t", "pk", "a", "sk"))
        result["pk"] = "changed"

        assert store.rows("t") == [{"pk": "a", "sk": "b"}]

    @pytest.mark.asyncio
    async def test_index_query_sorted_by_range_key(self, store):
        await _seed(store)

        rows = await store.query(QuerySpec("t", "sk", "USER:age", "data", index="sk-data-index"))

        assert [r["data"] for r in rows] == ["-990", "0012", "0030"]

    @pytest.mark.asyncio
    async def test_descending_and_limit(self, store):
        await _seed(store)

        rows = await store.query(
            QuerySpec("t", "sk", "USER:age", "data", limit=2, descending=True)
        )

        assert [r["data"] for r in rows] == ["0030", "0012"]

    @pytest.mark.asyncio
    async def test_sort_conditions(self, store):
        await _seed(store)

        def spec(condition):
            return QuerySpec("t", "sk", "USER:age", "data", condition=condition)

        between = await store.query(spec(SortCondition(SortOp.BETWEEN, "0000", "0020")))
        gte = await store.query(spec(SortCondition(SortOp.GTE, "0012")))
        lte = await store.query(spec(SortCondition(SortOp.LTE, "0000")))
        prefix = await store.query(spec(SortCondition(SortOp.BEGINS_WITH, "-")))

        assert [r["pk"] for r in between] == ["USER#u2"]
        assert [r["pk"] for r in gte] == ["USER#u2", "USER#u1"]
        assert [r["pk"] for r in lte] == ["USER#u3"]
        assert [r["pk"] for r in prefix] == ["USER#u3"]

    @pytest.mark.asyncio
    async def test_filters(self, store):
        await _seed(store)

        rows = await store.query(
            QuerySpec("t", "sk", "USER:age", "data", filters=(("team", "core"),))
        )

        assert [r["pk"] for r in rows] == ["USER#u3", "USER#u1"]

    @pytest.mark.asyncio
    async def test_sparse_index(self, store):
        """Rows without the index range attribute are not indexed."""
        await _seed(store)

        rows = await store.query(QuerySpec("t", "sk", "nodata", "data"))

        assert rows == []
        assert len(store.queries) == 1

    @pytest.mark.asyncio
    async def test_clear(self, store):
        await _seed(store)
        store.clear()

        assert store.rows("t") == []
        assert store.writes == 0


class TestGatherBounded:
    """Tests for gather_bounded."""

    @pytest.mark.asyncio
    async def test_results_in_input_order(self):
        async def delayed(value, delay):
            await asyncio.sleep(delay)
            return value

        results = await gather_bounded(
            [delayed(1, 0.03), delayed(2, 0.01), delayed(3, 0.02)], limit=3
        )

        assert results == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_concurrency_is_capped(self):
        in_flight = 0
        peak = 0

        async def work():
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1

        await gather_bounded([work() for _ in range(10)], limit=2)

        assert peak == 2

    @pytest.mark.asyncio
    async def test_first_failure_propagates(self):
        async def fail():
            raise RuntimeError("boom")

        async def ok():
            return 1

        with pytest.raises(RuntimeError, match="boom"):
            await gather_bounded([ok(), fail(), ok()], limit=2)

    @pytest.mark.asyncio
    async def test_invalid_limit(self):
        with pytest.raises(ValueError):
            await gather_bounded([], limit=0)
