from easysearch.core.index.store import IndexStore
from easysearch.core.models import IndexedFile, PutOutcome


def _entry(identity, content="x", at=0.0):
    return IndexedFile(identity=identity, content=content, size_bytes=len(content), indexed_at=at)


def test_put_insert_replace_and_capacity():
    store = IndexStore(capacity=2)
    assert store.put("a", _entry("a")) == PutOutcome.INSERTED
    assert store.put("b", _entry("b")) == PutOutcome.INSERTED
    assert store.is_full()

    # Replacing an existing identity is allowed at capacity.
    assert store.put("a", _entry("a", "new")) == PutOutcome.REPLACED
    assert store.get("a").content == "new"

    assert store.put("c", _entry("c")) == PutOutcome.CAPACITY_EXCEEDED
    assert "c" not in store
    assert store.size() == 2


def test_replace_keeps_insertion_order():
    store = IndexStore(capacity=10)
    for name in ("a", "b", "c"):
        store.put(name, _entry(name))
    store.put("a", _entry("a", "changed"))
    assert [e.identity for e in store.all_entries()] == ["a", "b", "c"]


def test_all_entries_is_restartable_snapshot():
    store = IndexStore(capacity=10)
    store.put("a", _entry("a"))
    view = store.all_entries()

    it = iter(view)
    store.put("b", _entry("b"))
    # An iteration already in progress does not see later writes.
    assert [e.identity for e in it] == ["a"]
    # A fresh iteration does.
    assert [e.identity for e in view] == ["a", "b"]
    assert len(view) == 2


def test_remove_and_clear():
    store = IndexStore(capacity=10)
    store.put("a", _entry("a"))
    store.put("b", _entry("b"))
    removed = store.remove("a")
    assert removed is not None and removed.identity == "a"
    assert store.remove("missing") is None
    assert store.contains("b")
    store.clear()
    assert len(store) == 0
    assert store.get("b") is None


def test_evict_skips_entries_replaced_since_snapshot():
    store = IndexStore(capacity=10)
    old = _entry("a", "old")
    store.put("a", old)
    store.put("b", _entry("b"))
    snapshot = list(store.all_entries())

    store.put("a", _entry("a", "fresh"))
    assert store.evict(snapshot) == 1
    assert store.get("a").content == "fresh"
    assert store.get("b") is None


def test_zero_capacity_rejects_everything():
    store = IndexStore(capacity=0)
    assert store.put("a", _entry("a")) == PutOutcome.CAPACITY_EXCEEDED
    assert store.size() == 0
