"""Record id index kept as a single value in the key/value store.

The store has no collection type, so the ordered list of record ids lives as
one JSON array under a reserved index key.

Known limitation: ``add_id`` is a read-modify-write of the whole array with
no lock or compare-and-swap. Two callers appending from the same base index
race, and the last write wins, so one append can be lost. A production
deployment must serialize index writes (the ledger's own transaction
ordering, or a store-side append primitive). Callers must not assume more.
"""

import json
import logging

from .errors import DecodeError
from .store import KeyValueStore

logger = logging.getLogger(__name__)


def parse_ids(raw: bytes) -> list[str]:
    """Parse an index payload. Blank payloads are an empty index.

    Duplicate ids keep their first position.

    Raises:
        DecodeError: If the payload is not a JSON array of strings
    """
    try:
        text = bytes(raw).decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Index payload is not UTF-8: {e}") from e
    if not text.strip():
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Index payload is not JSON: {e}") from e
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        raise DecodeError("Index payload must be a JSON array of strings")

    ids: list[str] = []
    seen: set[str] = set()
    for item in data:
        if item not in seen:
            seen.add(item)
            ids.append(item)
    return ids


def dump_ids(ids: list[str]) -> bytes:
    return json.dumps(ids, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


class KeyIndex:
    """Ordered set of record ids stored under ``index_key``."""

    def __init__(self, store: KeyValueStore, index_key: str):
        self.store = store
        self.index_key = index_key

    async def list_ids(self) -> list[str]:
        """Return the ids in insertion order.

        A missing, blank or malformed index reads as empty (a malformed one is logged).
        """
        raw = await self.store.get_data(self.index_key)
        try:
            return parse_ids(raw)
        except DecodeError as e:
            logger.warning("Ignoring malformed index under %s: %s", self.index_key, e)
            return []

    async def add_id(self, record_id: str) -> None:
        """Append ``record_id`` by read-modify-write. Not atomic; see module docstring.

        An id already in the index is not appended again.

        Raises:
            DecodeError: If the current index is malformed; it is left untouched
                rather than overwritten
        """
        raw = await self.store.get_data(self.index_key)
        ids = parse_ids(raw)
        if record_id in ids:
            logger.debug("Id %s already indexed under %s", record_id, self.index_key)
            return
        ids.append(record_id)
        await self.store.set_data(self.index_key, dump_ids(ids))
