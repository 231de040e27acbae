"""Tests for the JSON-backed user store."""

import threading

import pytest


def test_create_and_find_user(store):
    from memory.store import is_valid_id

    user = store.create_user("ona")

    assert is_valid_id(user["id"])
    assert store.find_by_username("ona") == user
    assert store.find_by_id(user["id"]) == user
    assert user["long_term_memory"] == {"preferences": [], "facts": [], "relationships": []}
    assert user["short_term_memory"] == []


def test_missing_user_returns_none(store):
    assert store.find_by_username("niekas") is None
    assert store.find_by_id("0" * 32) is None


def test_duplicate_username_is_rejected(store):
    store.create_user("ona")
    with pytest.raises(ValueError):
        store.create_user("ona")


def test_is_valid_id():
    from memory.store import is_valid_id

    assert is_valid_id("a" * 32)
    assert not is_valid_id("A" * 32)
    assert not is_valid_id("abc")
    assert not is_valid_id(None)
    assert not is_valid_id(12345)


def test_save_overwrites_document(store, user):
    user["short_term_memory"] = [{"sender": "agent", "text": "Labas", "timestamp": "2024-01-01T00:00:00+00:00"}]
    store.save(user)

    assert store.find_by_id(user["id"])["short_term_memory"][0]["text"] == "Labas"


def test_update_unknown_user_raises(store):
    from agent.errors import UserNotFound

    with pytest.raises(UserNotFound):
        store.update("f" * 32, lambda doc: doc)


def test_update_does_not_lose_concurrent_writes(store, user):
    """Concurrent read-modify-write cycles on one user all land."""

    def add_fact(n):
        def mutate(doc):
            doc["long_term_memory"]["facts"].append({"content": f"fact-{n}"})
            return doc

        store.update(user["id"], mutate)

    threads = [threading.Thread(target=add_fact, args=(n,)) for n in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    facts = store.find_by_id(user["id"])["long_term_memory"]["facts"]
    assert sorted(f["content"] for f in facts) == sorted(f"fact-{n}" for n in range(20))


def test_corrupt_file_raises_persistence_error(tmp_path):
    from agent.errors import PersistenceError
    from memory.store import UserStore

    path = tmp_path / "users.json"
    path.write_text("{not json", encoding="utf-8")
    store = UserStore(path=str(path))

    with pytest.raises(PersistenceError):
        store.find_by_username("ona")
