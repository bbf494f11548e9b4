"""Tests for the local store implementations."""

import asyncio
import json

import pytest

from artprov.errors import StoreUnavailable
from artprov.ledger import RecordLedger
from artprov.store import FileStore, MemoryStore

from conftest import OWNER


def test_memory_store_absent_key_is_empty_bytes(memory_store):
    assert asyncio.run(memory_store.get_data("missing")) == b""


def test_memory_store_round_trip(memory_store):
    async def scenario():
        await memory_store.set_data("k", b"v")
        return await memory_store.get_data("k")

    assert asyncio.run(scenario()) == b"v"


def test_file_store_unavailable_until_initialized(tmp_path):
    store = FileStore(tmp_path / "store.json")
    assert asyncio.run(store.is_available()) is False

    assert store.initialize() is True
    assert store.initialize() is False
    assert asyncio.run(store.is_available()) is True
    assert json.loads(store.path.read_text()) == {}


def test_file_store_persists_text_values(tmp_path):
    path = tmp_path / "nested" / "store.json"
    store = FileStore(path)

    async def scenario():
        await store.set_data("art_record_keys", b'["a"]')
        return await FileStore(path).get_data("art_record_keys")

    assert asyncio.run(scenario()) == b'["a"]'
    assert json.loads(path.read_text()) == {"art_record_keys": '["a"]'}
    assert list(path.parent.glob("*.tmp")) == []


def test_file_store_address_is_stable(tmp_path):
    a = asyncio.run(FileStore(tmp_path / "s.json").get_address())
    b = asyncio.run(FileStore(tmp_path / "s.json").get_address())
    c = asyncio.run(FileStore(tmp_path / "other.json").get_address())
    assert a == b
    assert a != c
    assert a.startswith("0x") and len(a) == 42


def test_corrupt_file_store_raises_unavailable(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{broken")
    with pytest.raises(StoreUnavailable):
        asyncio.run(FileStore(path).get_data("k"))


def test_ledger_over_corrupt_file_store_lists_empty(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("[]")
    assert asyncio.run(RecordLedger(FileStore(path)).list_records()) == []


def test_ledger_over_file_store(tmp_path):
    store = FileStore(tmp_path / "store.json")
    store.initialize()
    ledger = RecordLedger(store)

    async def scenario():
        record_id = await ledger.create("Guernica", "Picasso", 99.5, "Museum loan", OWNER)
        await ledger.append_note(record_id, "Returned", OWNER)
        return await RecordLedger(FileStore(store.path)).list_records()

    records = asyncio.run(scenario())
    assert len(records) == 1
    assert records[0].provenance == ["Museum loan", "Returned"]


def test_memory_store_unavailable_flag():
    assert asyncio.run(MemoryStore(available=False).is_available()) is False


def test_file_store_concurrent_writes_keep_every_key(tmp_path):
    """Writes to distinct keys never clobber each other or fail."""
    store = FileStore(tmp_path / "store.json")
    store.initialize()

    async def scenario():
        await asyncio.gather(*(store.set_data(f"k{i}", f"v{i}".encode()) for i in range(20)))
        return await store.get_data("k0"), json.loads(store.path.read_text())

    first, data = asyncio.run(scenario())

    assert first == b"v0"
    assert data == {f"k{i}": f"v{i}" for i in range(20)}
    assert list(tmp_path.glob("*.tmp")) == []


def test_concurrent_notes_on_distinct_records_all_persist(tmp_path):
    store = FileStore(tmp_path / "store.json")
    store.initialize()
    ledger = RecordLedger(store)

    async def scenario():
        ids = [await ledger.create(f"Work {i}", "Artist", 10 + i, "n1", OWNER) for i in range(6)]
        await asyncio.gather(*(ledger.append_note(record_id, "n2", OWNER) for record_id in ids))
        return ids, await ledger.list_records()

    ids, records = asyncio.run(scenario())

    assert len(records) == 6
    assert {r.id for r in records} == set(ids)
    assert all(r.provenance == ["n1", "n2"] for r in records)
