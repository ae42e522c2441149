import asyncio

import pytest

from app.utils.cache import BATCH_KEYS, CACHE_KEYS, SyncCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class Recorder:
    def __init__(self, fail_times: int = 0):
        self.calls = []
        self.fail_times = fail_times

    async def __call__(self, updates):
        if self.fail_times:
            self.fail_times -= 1
            raise RuntimeError("sheet down")
        self.calls.append(list(updates))
        return len(updates)


def test_get_returns_value_until_ttl_expires():
    clock = FakeClock()
    cache = SyncCache(default_ttl=30, clock=clock)
    cache.set(CACHE_KEYS.STATS, {"total": 3})

    clock.now += 29
    assert cache.get(CACHE_KEYS.STATS) == {"total": 3}

    clock.now += 2
    assert cache.get(CACHE_KEYS.STATS) is None


def test_per_entry_ttl_overrides_default():
    clock = FakeClock()
    cache = SyncCache(default_ttl=30, clock=clock)
    cache.set("short", 1, ttl=5)
    clock.now += 6
    assert cache.get("short") is None


def test_invalidate_pattern_only_drops_matching_keys():
    cache = SyncCache()
    cache.set(CACHE_KEYS.SHEET_DATA, [1])
    cache.set(CACHE_KEYS.SHEET_STATS, {})
    cache.set(CACHE_KEYS.STATS, {})

    cache.invalidate_pattern(r"^sheet_")

    assert cache.get(CACHE_KEYS.SHEET_DATA) is None
    assert cache.get(CACHE_KEYS.SHEET_STATS) is None
    assert cache.get(CACHE_KEYS.STATS) == {}


@pytest.mark.asyncio
async def test_queued_updates_coalesce_into_one_flush_in_order():
    cache = SyncCache(batch_delay=0.05)
    recorder = Recorder()

    for i in range(5):
        cache.queue_update(BATCH_KEYS.SHEET_UPDATES, i, recorder)
        await asyncio.sleep(0.01)

    assert recorder.calls == []
    await asyncio.sleep(0.15)

    assert recorder.calls == [[0, 1, 2, 3, 4]]
    assert cache.pending_count(BATCH_KEYS.SHEET_UPDATES) == 0


@pytest.mark.asyncio
async def test_failed_timer_flush_requeues_items():
    cache = SyncCache(batch_delay=0.01)
    recorder = Recorder(fail_times=1)

    cache.queue_update(BATCH_KEYS.SHEET_UPDATES, "a", recorder)
    cache.queue_update(BATCH_KEYS.SHEET_UPDATES, "b", recorder)
    await asyncio.sleep(0.05)

    assert cache.pending_count(BATCH_KEYS.SHEET_UPDATES) == 2
    assert await cache.flush_updates(BATCH_KEYS.SHEET_UPDATES, recorder) == 2
    assert recorder.calls == [["a", "b"]]


@pytest.mark.asyncio
async def test_flush_updates_cancels_timer_and_returns_result():
    cache = SyncCache(batch_delay=10)
    recorder = Recorder()
    cache.queue_update("sheet_writeback", "x", recorder)

    assert await cache.flush_updates("sheet_writeback", recorder) == 1
    assert await cache.flush_updates("sheet_writeback", recorder) is None
    assert recorder.calls == [["x"]]


@pytest.mark.asyncio
async def test_flush_updates_failure_requeues_ahead_of_newer_items():
    cache = SyncCache(batch_delay=10)
    recorder = Recorder(fail_times=1)
    cache.queue_update(BATCH_KEYS.SHEET_UPDATES, "old", recorder)

    with pytest.raises(RuntimeError):
        await cache.flush_updates(BATCH_KEYS.SHEET_UPDATES, recorder)

    cache.queue_update(BATCH_KEYS.SHEET_UPDATES, "new", recorder)
    await cache.flush_updates(BATCH_KEYS.SHEET_UPDATES, recorder)
    assert recorder.calls == [["old", "new"]]


@pytest.mark.asyncio
async def test_flush_all_drains_every_batch():
    cache = SyncCache(batch_delay=10)
    sheet, writeback = Recorder(), Recorder()
    cache.queue_update(BATCH_KEYS.SHEET_UPDATES, 1, sheet)
    cache.queue_update("sheet_writeback", 2, writeback)

    await cache.flush_all()

    assert sheet.calls == [[1]]
    assert writeback.calls == [[2]]
