from __future__ import annotations

from entitystate.adapters.memory import InMemoryDocumentStore


def test_documents_are_copied_in_and_out() -> None:
    original = {"entities": {"tom": {"notes": "Friendly"}}}
    store = InMemoryDocumentStore()

    store.save("s:entities", original)  # pyright: ignore[reportArgumentType]
    original["entities"]["tom"]["notes"] = "changed"
    loaded = store.load("s:entities")

    assert loaded == {"entities": {"tom": {"notes": "Friendly"}}}
    assert loaded is not store.load("s:entities")


def test_missing_key_loads_none() -> None:
    store = InMemoryDocumentStore({"a": {"v": 1}})

    assert store.load("b") is None
    assert store.keys() == ["a"]
    assert store.save_count == 0
