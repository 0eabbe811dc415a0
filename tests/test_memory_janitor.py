import asyncio

import pytest

from conftest import make_settings
from easysearch.core.index.janitor import MemoryJanitor
from easysearch.core.index.store import IndexStore
from easysearch.core.models import IndexedFile


def _fill(store, stamps):
    for i, at in enumerate(stamps):
        ident = f"/ws/f{i}.txt"
        store.put(ident, IndexedFile(identity=ident, content="x", size_bytes=1, indexed_at=at))


def test_sweep_evicts_stale_entries():
    store = IndexStore(100)
    _fill(store, [0.0, 50.0, 150.0])
    janitor = MemoryJanitor(store, make_settings(STALE_AFTER_SEC=100.0, SOFT_TARGET_FILES=100))

    report = janitor.sweep(now=200.0)

    assert report.evicted_stale == 2
    assert report.evicted_over_capacity == 0
    assert report.remaining == 1
    assert [e.identity for e in store.all_entries()] == ["/ws/f2.txt"]
    assert janitor.last_report is report


def test_sweep_trims_oldest_above_soft_target():
    store = IndexStore(100)
    _fill(store, [40.0, 10.0, 30.0, 20.0])
    janitor = MemoryJanitor(store, make_settings(STALE_AFTER_SEC=10_000.0, SOFT_TARGET_FILES=2))

    report = janitor.sweep(now=50.0)

    assert report.evicted_over_capacity == 2
    assert report.evicted == 2
    assert sorted(e.indexed_at for e in store.all_entries()) == [30.0, 40.0]


def test_sweep_on_small_fresh_store_is_noop():
    store = IndexStore(100)
    _fill(store, [100.0, 100.0])
    janitor = MemoryJanitor(store, make_settings(STALE_AFTER_SEC=60.0, SOFT_TARGET_FILES=10), clock=lambda: 120.0)

    report = janitor.sweep()

    assert report.evicted == 0
    assert store.size() == 2
    assert report.rss_mb is None or report.rss_mb > 0


@pytest.mark.asyncio
async def test_periodic_sweep_runs_until_disposed():
    store = IndexStore(100)
    _fill(store, [0.0])
    janitor = MemoryJanitor(
        store,
        make_settings(JANITOR_INTERVAL_SEC=0.01, STALE_AFTER_SEC=1.0, SOFT_TARGET_FILES=10),
        clock=lambda: 100.0,
    )

    janitor.start()
    assert janitor.running
    for _ in range(50):
        if janitor.last_report is not None:
            break
        await asyncio.sleep(0.01)

    assert janitor.last_report is not None
    assert store.size() == 0

    janitor.dispose()
    assert not janitor.running
    # Disposed janitors never restart.
    janitor.start()
    assert not janitor.running


def test_on_evict_hook_only_fires_when_something_was_evicted():
    store = IndexStore(100)
    _fill(store, [0.0, 500.0])
    janitor = MemoryJanitor(store, make_settings(STALE_AFTER_SEC=100.0, SOFT_TARGET_FILES=100))
    seen = []
    janitor.on_evict = seen.append

    janitor.sweep(now=520.0)
    janitor.sweep(now=520.0)

    assert [r.evicted_stale for r in seen] == [1]


def test_failing_on_evict_hook_does_not_break_sweep():
    store = IndexStore(100)
    _fill(store, [0.0])
    janitor = MemoryJanitor(store, make_settings(STALE_AFTER_SEC=1.0))

    def _boom(report):
        raise RuntimeError("boom")

    janitor.on_evict = _boom
    report = janitor.sweep(now=10.0)
    assert report.evicted == 1
