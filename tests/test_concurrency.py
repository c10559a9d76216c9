"""
Concurrency safety tests.

Demonstrates:
1. Distributed lock acquire / release / retry against a mocked Redis.
2. The in-process keyed lock serializes work per booking but not across
   bookings, and forgets a booking once nobody holds or awaits it.
3. Racing transitions on one booking apply exactly once, and racing
   location pushes never leave a tracker behind a completed journey.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.domain.enums import JourneyStatus
from src.domain.errors import InvalidStateTransition
from src.infrastructure.locks import (
    DistributedLock,
    KeyedLock,
    LockNotAcquired,
    RedisLockProvider,
)
from tests.conftest import NEAR_AIRPORT


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "REQ-1", ttl_seconds=10)
        assert await lock.acquire() is True
        mock_redis.set.assert_awaited_once_with(
            "lock:REQ-1", lock.token, nx=True, ex=10
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "REQ-1", ttl_seconds=10)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_acquire_retries_until_free(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(side_effect=[False, False, True])

        lock = DistributedLock(
            mock_redis, "REQ-1", wait_seconds=1.0, retry_interval=0.001
        )
        assert await lock.acquire() is True
        assert mock_redis.set.await_count == 3

    @pytest.mark.asyncio
    async def test_release_calls_eval(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        lock = DistributedLock(mock_redis, "REQ-1", ttl_seconds=10)
        await lock.acquire()
        await lock.release()

        mock_redis.eval.assert_awaited_once()
        assert mock_redis.eval.call_args.args[2:] == ("lock:REQ-1", lock.token)

    @pytest.mark.asyncio
    async def test_context_manager_acquire_fail_raises(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "REQ-1", ttl_seconds=10)
        with pytest.raises(LockNotAcquired, match="Could not acquire lock"):
            async with lock:
                pass

    @pytest.mark.asyncio
    async def test_provider_namespaces_journey_keys(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        provider = RedisLockProvider(mock_redis, ttl_seconds=5, wait_seconds=0)
        async with provider.lock("REQ-1") as lock:
            assert lock.key == "lock:journey:REQ-1"
        mock_redis.eval.assert_awaited_once()


class TestKeyedLock:
    @pytest.mark.asyncio
    async def test_same_key_is_serialized(self):
        locks = KeyedLock()
        active = 0
        peak = 0

        async def critical():
            nonlocal active, peak
            async with locks.lock("REQ-1"):
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1

        await asyncio.gather(*(critical() for _ in range(5)))
        assert peak == 1

    @pytest.mark.asyncio
    async def test_different_keys_run_concurrently(self):
        locks = KeyedLock()
        entered = asyncio.Event()

        async def hold_first():
            async with locks.lock("REQ-1"):
                await asyncio.wait_for(entered.wait(), timeout=1)

        async def enter_second():
            async with locks.lock("REQ-2"):
                entered.set()

        await asyncio.gather(hold_first(), enter_second())
        assert entered.is_set()

    @pytest.mark.asyncio
    async def test_released_keys_are_dropped(self):
        locks = KeyedLock()
        for request_id in ("REQ-1", "REQ-2", "REQ-3"):
            async with locks.lock(request_id):
                assert len(locks) == 1
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_key_kept_while_callers_wait(self):
        locks = KeyedLock()
        order = []

        async def worker(name):
            async with locks.lock("REQ-1"):
                order.append(name)
                assert len(locks) == 1
                await asyncio.sleep(0.01)

        await asyncio.gather(*(worker(n) for n in range(3)))

        assert order == [0, 1, 2]
        assert len(locks) == 0


class TestRacingTransitions:
    @pytest.mark.asyncio
    async def test_start_and_on_board_race(self, machine, repository, notifier, assigned_booking):
        await assigned_booking()

        results = await asyncio.gather(
            machine.start_journey("REQ-1"),
            machine.start_journey("REQ-1"),
            machine.mark_on_board("REQ-1"),
            return_exceptions=True,
        )

        # on-board either ran after a start, or was refused before one
        for result in results:
            if isinstance(result, Exception):
                assert isinstance(result, InvalidStateTransition)
        stored = await repository.find("REQ-1")
        assert stored.journey_status in (JourneyStatus.EN_ROUTE, JourneyStatus.ON_BOARD)
        departed = [
            call.args[0]
            for call in notifier.notify.await_args_list
            if call.args[0].event_type == "journey.driver_departed"
        ]
        assert len(departed) == 1

    @pytest.mark.asyncio
    async def test_location_and_proximity_racing_completion_leave_no_tracker(
        self, machine, trackers, repository, assigned_booking
    ):
        await assigned_booking(destination_location=None)
        await machine.start_journey("REQ-1")
        await machine.mark_on_board("REQ-1")
        assert await machine.record_location("REQ-1", NEAR_AIRPORT)
        await trackers.get("REQ-1").drain()
        # tracker lost, e.g. after a restart
        await trackers.stop("REQ-1")

        results = await asyncio.gather(
            machine.record_location("REQ-1", NEAR_AIRPORT),
            machine.complete("REQ-1"),
            machine.proximity("REQ-1"),
            machine.record_location("REQ-1", NEAR_AIRPORT),
            return_exceptions=True,
        )

        assert not [r for r in results if isinstance(r, Exception)]
        stored = await repository.find("REQ-1")
        assert stored.journey_status == JourneyStatus.COMPLETED
        assert trackers.get("REQ-1") is None
        assert len(trackers) == 0
