"""Tests for CounterService validation, retries and read degradation."""

import asyncio

import pytest

from postviews.core.core import Core
from postviews.errors import InvalidIdentifierError, StoreUnavailableError, TransientStoreError


class TestGet:
    """Tests for CounterService.get."""

    @pytest.mark.asyncio
    async def test_unknown_id_is_zero(self, core):
        """Test that an id never incremented reads 0."""
        assert await core.services.counter.get("never-seen") == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content_id", ["", " ", "a b", None, 0, -3, True, "../etc"])
    async def test_invalid_id_is_zero_without_store_access(self, core, flaky_store, content_id):
        """Test that malformed ids read 0 and never reach the store."""
        assert await core.services.counter.get(content_id) == 0
        assert flaky_store.get_calls == 0

    @pytest.mark.asyncio
    async def test_integer_and_string_ids_match(self, core):
        """Test that 42 and "42" address the same counter."""
        await core.services.counter.increment(42)
        assert await core.services.counter.get("42") == 1

    @pytest.mark.asyncio
    async def test_degrades_to_last_known_value(self, core, flaky_store):
        """Test that a store outage serves the last committed count."""
        await core.services.counter.increment("42")
        await core.services.counter.increment("42")
        flaky_store.unavailable = True
        assert await core.services.counter.get("42") == 2

    @pytest.mark.asyncio
    async def test_degrades_to_zero_when_never_seen(self, core, flaky_store):
        """Test that a store outage reads 0 for ids never seen."""
        flaky_store.unavailable = True
        assert await core.services.counter.get("42") == 0

    @pytest.mark.asyncio
    async def test_last_known_cache_is_bounded(self, config, flaky_store):
        """Test that the fallback cache evicts the oldest ids."""
        small = Core(config.model_copy(update={"last_known_cache_size": 2}), store=flaky_store)
        for content_id in ("a", "b", "c"):
            await small.services.counter.increment(content_id)
        flaky_store.unavailable = True
        assert await small.services.counter.get("a") == 0
        assert await small.services.counter.get("c") == 1


class TestIncrement:
    """Tests for CounterService.increment."""

    @pytest.mark.asyncio
    async def test_sequential_increments(self, core):
        """Test that N increments read back as N."""
        for expected in range(1, 8):
            assert await core.services.counter.increment("42") == expected
        assert await core.services.counter.get("42") == 7

    @pytest.mark.asyncio
    @pytest.mark.parametrize("k", [2, 10, 100])
    async def test_concurrent_increments(self, core, k):
        """Test that K concurrent increments are all counted."""
        await asyncio.gather(*(core.services.counter.increment("42") for _ in range(k)))
        assert await core.services.counter.get("42") == k

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content_id", ["", "a b", None, 0, -1, 1.5])
    async def test_invalid_id_raises_without_mutation(self, core, flaky_store, content_id):
        """Test that malformed ids are rejected before reaching the store."""
        with pytest.raises(InvalidIdentifierError):
            await core.services.counter.increment(content_id)
        assert flaky_store.increment_calls == 0

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self, core, flaky_store):
        """Test that transient failures within the attempt budget are retried."""
        flaky_store.transient_failures = 2
        assert await core.services.counter.increment("42") == 1
        assert flaky_store.increment_calls == 3

    @pytest.mark.asyncio
    async def test_retries_are_bounded(self, core, flaky_store):
        """Test that the failure surfaces once all attempts are used."""
        flaky_store.transient_failures = 5
        with pytest.raises(TransientStoreError):
            await core.services.counter.increment("42")
        assert flaky_store.increment_calls == 3
        flaky_store.transient_failures = 0
        assert await core.services.counter.get("42") == 0

    @pytest.mark.asyncio
    async def test_unavailable_store_is_not_retried(self, core, flaky_store):
        """Test that non-transient failures surface immediately."""
        flaky_store.unavailable = True
        with pytest.raises(StoreUnavailableError):
            await core.services.counter.increment("42")
        assert flaky_store.increment_calls == 1

    @pytest.mark.asyncio
    async def test_failed_increment_keeps_committed_value(self, core, flaky_store):
        """Test that a failed write does not leak into the degraded read."""
        await core.services.counter.increment("42")
        flaky_store.unavailable = True
        with pytest.raises(StoreUnavailableError):
            await core.services.counter.increment("42")
        assert await core.services.counter.get("42") == 1


class TestOrderByCount:
    """Tests for CounterService.order_by_count."""

    @pytest.mark.asyncio
    async def test_orders_through_store(self, core):
        """Test ordering is delegated with ties by id ascending."""
        for content_id in ("b", "a", "a", "c"):
            await core.services.counter.increment(content_id)
        page = await core.services.counter.order_by_count(limit=10)
        assert [(r.id, r.count) for r in page.items] == [("a", 2), ("b", 1), ("c", 1)]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("limit", "offset"), [(0, 0), (-1, 0), (10, -1)])
    async def test_rejects_bad_paging(self, core, limit, offset):
        """Test that invalid limit/offset raise ValueError."""
        with pytest.raises(ValueError):
            await core.services.counter.order_by_count(limit=limit, offset=offset)


class TestPurge:
    """Tests for CounterService.purge."""

    @pytest.mark.asyncio
    async def test_purge_removes_counter_and_fallback(self, core, flaky_store):
        """Test that purge drops both the stored and the last known count."""
        await core.services.counter.increment("42")
        assert await core.services.counter.purge("42") is True
        flaky_store.unavailable = True
        assert await core.services.counter.get("42") == 0
