"""Tests for the durability backends."""

import json

from textpilot.memory.storage import InMemoryStorage, JsonFileStorage, atomic_json_save


def test_json_file_storage_round_trip(tmp_path):
    path = tmp_path / "nested" / "memory.json"
    storage = JsonFileStorage(str(path))

    storage.set("conversationMemory", [{"id": "mem_1"}])
    storage.set("other", 3)

    reopened = JsonFileStorage(str(path))
    assert reopened.get("conversationMemory") == [{"id": "mem_1"}]
    assert reopened.get("other") == 3
    assert not (tmp_path / "nested" / "memory.json.tmp").exists()


def test_json_file_storage_missing_key_and_file(tmp_path):
    storage = JsonFileStorage(str(tmp_path / "absent.json"))
    assert storage.get("conversationMemory") is None


def test_json_file_storage_corrupt_file_reads_empty(tmp_path):
    path = tmp_path / "memory.json"
    path.write_text("{not json", encoding="utf-8")
    storage = JsonFileStorage(str(path))

    assert storage.get("conversationMemory") is None

    storage.set("conversationMemory", [])
    assert json.loads(path.read_text(encoding="utf-8")) == {"conversationMemory": []}


def test_atomic_json_save_keeps_unicode(tmp_path):
    path = tmp_path / "data.json"
    atomic_json_save(str(path), {"text": "Grüße"})
    assert "Grüße" in path.read_text(encoding="utf-8")


def test_in_memory_storage_copies_values():
    storage = InMemoryStorage()
    value = [{"id": "a"}]
    storage.set("key", value)
    value.append({"id": "b"})

    loaded = storage.get("key")
    loaded.append({"id": "c"})

    assert storage.get("key") == [{"id": "a"}]
