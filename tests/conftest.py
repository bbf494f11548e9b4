"""Pytest fixtures for artprov tests."""

import itertools

import pytest

from artprov.disclosure import Ed25519Signer
from artprov.ledger import RecordLedger
from artprov.models.record import ArtRecord, RecordStatus
from artprov.serializer import serialize
from artprov.store import MemoryStore

OWNER = "0x" + "ab" * 20
OTHER = "0x" + "cd" * 20


def make_clock(*values):
    """Return a clock yielding the given epoch seconds, then repeating the last one."""
    it = itertools.chain(values, itertools.repeat(values[-1]))
    return lambda: next(it)


def make_record(record_id: str, created_at: int = 1_700_000_000, **overrides) -> ArtRecord:
    fields = dict(
        id=record_id,
        encoded_price="FHE-MTUwMA==",
        created_at=created_at,
        owner=OWNER,
        title=f"Artwork {record_id}",
        creator="Unknown Artist",
        provenance=["acquired at auction"],
        status=RecordStatus.PENDING,
    )
    fields.update(overrides)
    return ArtRecord(**fields)


def put_record(store: MemoryStore, record: ArtRecord, prefix: str = "art_record_") -> None:
    """Write a record straight into the store, bypassing the index."""
    store.data[f"{prefix}{record.id}"] = serialize(record)


@pytest.fixture
def memory_store():
    """Create an empty, available in-memory store.

    Returns:
        MemoryStore instance
    """
    return MemoryStore()


@pytest.fixture
def ledger(memory_store):
    """Create a RecordLedger over the in-memory store.

    Args:
        memory_store: Empty MemoryStore

    Returns:
        RecordLedger instance
    """
    return RecordLedger(memory_store)


@pytest.fixture
def signer():
    """Create a fresh Ed25519 signer (stand-in for a connected wallet)."""
    return Ed25519Signer.generate()
