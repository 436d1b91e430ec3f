"""Tests for the query result cache."""

import asyncio

import pytest

from cache.invalidation import MutationType
from cache.query_cache import DEFAULT_STALE_TIME, QueryCache
from conftest import make_table


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return QueryCache(stale_times={"crypto_prices": 60}, clock=clock)


def counting_producer(values):
    calls = []

    async def producer():
        calls.append(1)
        return values[len(calls) - 1]

    return producer, calls


class TestFetch:
    def test_fresh_entries_are_served_from_cache(self, cache, clock):
        producer, calls = counting_producer(["first", "second"])

        first = asyncio.run(cache.fetch("GET", "goals", producer, {"user_id": "u"}))
        clock.now += DEFAULT_STALE_TIME - 1
        second = asyncio.run(cache.fetch("GET", "goals", producer, {"user_id": "u"}))

        assert first == second == "first"
        assert len(calls) == 1

    def test_stale_entries_are_refetched(self, cache, clock):
        producer, calls = counting_producer(["first", "second"])

        asyncio.run(cache.fetch("GET", "goals", producer))
        clock.now += DEFAULT_STALE_TIME
        result = asyncio.run(cache.fetch("GET", "goals", producer))

        assert result == "second"
        assert len(calls) == 2

    def test_partition_stale_time_override(self, cache, clock):
        producer, calls = counting_producer(["first", "second"])

        asyncio.run(cache.fetch("GET", "crypto_prices", producer))
        clock.now += 45
        asyncio.run(cache.fetch("GET", "crypto_prices", producer))

        assert len(calls) == 1

    def test_explicit_stale_time_wins(self, cache, clock):
        producer, calls = counting_producer(["first", "second"])

        asyncio.run(cache.fetch("GET", "goals", producer, stale_time=0))
        asyncio.run(cache.fetch("GET", "goals", producer, stale_time=0))

        assert len(calls) == 2

    def test_concurrent_misses_share_one_producer_call(self, cache):
        calls = []

        async def producer():
            calls.append(1)
            await asyncio.sleep(0.01)
            return ["row"]

        async def scenario():
            return await asyncio.gather(
                cache.fetch("GET", "transactions", producer, {"b": 2, "a": 1}),
                cache.fetch("GET", "transactions", producer, {"a": 1, "b": 2}),
            )

        assert asyncio.run(scenario()) == [["row"], ["row"]]
        assert len(calls) == 1

    def test_errors_are_not_cached(self, cache):
        attempts = []

        async def producer():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("timeout")
            return "ok"

        with pytest.raises(RuntimeError):
            asyncio.run(cache.fetch("GET", "goals", producer))

        assert asyncio.run(cache.fetch("GET", "goals", producer)) == "ok"

    def test_result_invalidated_mid_fetch_is_not_stored(self, cache):
        async def producer():
            await asyncio.sleep(0)
            cache.invalidate(MutationType.GOAL_CONTRIBUTE)
            return "stale"

        result = asyncio.run(cache.fetch("GET", "goals", producer))

        assert result == "stale"
        assert len(cache) == 0


class TestSelect:
    def test_select_caches_rows_by_query(self, cache):
        table = make_table("goals", [{"id": "g1"}])

        first = asyncio.run(cache.select(table, filters={"user_id": "u"}, order="created_at.desc"))
        second = asyncio.run(cache.select(table, filters={"user_id": "u"}, order="created_at.desc"))

        assert first == second == [{"id": "g1"}]
        table.select.assert_called_once_with(
            columns="*", filters={"user_id": "u"}, order="created_at.desc", range=None
        )

    def test_order_and_columns_are_part_of_the_key(self, cache):
        table = make_table("goals", [])

        asyncio.run(cache.select(table, filters={"user_id": "u"}, order="name.asc"))
        asyncio.run(cache.select(table, filters={"user_id": "u"}, order="name.desc"))
        asyncio.run(cache.select(table, filters={"user_id": "u"}, columns="id"))

        assert table.select.call_count == 3

    def test_concurrent_selects_of_different_tables(self, cache):
        goals = make_table("goals", [{"id": "g"}])
        budgets = make_table("budgets", [{"id": "b"}])

        async def scenario():
            return await asyncio.gather(cache.select(goals), cache.select(budgets))

        assert asyncio.run(scenario()) == [[{"id": "g"}], [{"id": "b"}]]


class TestInvalidation:
    @staticmethod
    def seed(cache, resource, filters=None, value="cached"):
        async def producer():
            return value

        asyncio.run(cache.fetch("GET", resource, producer, filters))

    def test_invalidate_drops_listed_partitions_only(self, cache):
        self.seed(cache, "goals", {"user_id": "u"})
        self.seed(cache, "net_worth")
        self.seed(cache, "budgets", value=["b"])

        keys = cache.invalidate("goal:contribute")

        assert "goals" in keys and "net_worth" in keys
        assert len(cache) == 1

    def test_unknown_mutation_invalidates_nothing(self, cache):
        self.seed(cache, "goals")

        assert cache.invalidate("nope:nothing") == []
        assert len(cache) == 1

    def test_invalidate_keys_returns_removed_count(self, cache):
        self.seed(cache, "goals", {"a": 1})
        self.seed(cache, "goals", {"a": 2})

        assert cache.invalidate_keys(["goals", "pots"]) == 2

    def test_invalidated_partition_is_refetched(self, cache):
        producer, calls = counting_producer(["old", "new"])

        asyncio.run(cache.fetch("GET", "goals", producer))
        cache.invalidate(MutationType.GOAL_UPDATE)
        result = asyncio.run(cache.fetch("GET", "goals", producer))

        assert result == "new"
        assert len(calls) == 2
