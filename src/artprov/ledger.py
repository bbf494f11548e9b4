"""Record ledger for artprov.

Builds create/list/verify/reject/append-note on top of a plain key/value
store: one key per record (``<record_prefix><id>``) plus the id index
(see :mod:`artprov.index`).

Authorization is not enforced here. ``caller`` is accepted and logged, but
deciding whether a caller may verify, reject or annotate a record is the
caller's job (``ArtRecord.is_owned_by``), and ultimately the job of the
store's own access control.
"""

import asyncio
import logging
import math
import re
import secrets
import string
import time
from typing import Callable

from . import codec
from .errors import (
    ArtProvError,
    DecodeError,
    InvalidTransitionError,
    NotFoundError,
    StoreUnavailable,
    WriteError,
)
from .index import KeyIndex
from .models.record import ADDRESS_PATTERN, ArtRecord, RecordStatus
from .serializer import deserialize, serialize
from .store import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_INDEX_KEY = "art_record_keys"
DEFAULT_RECORD_PREFIX = "art_record_"

RECORD_ID_PATTERN = re.compile(r"\d+-[0-9a-z]+")
ADDRESS_RE = re.compile(ADDRESS_PATTERN)

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LENGTH = 7


def new_record_id(now: float | None = None) -> str:
    """Mint a record id: epoch milliseconds plus a random base36 suffix."""
    millis = int((time.time() if now is None else now) * 1000)
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
    return f"{millis}-{suffix}"


def validate_submission(title: str, creator: str, price: float, owner: str | None = None) -> None:
    """Domain checks callers run before :meth:`RecordLedger.create`.

    Raises:
        ValueError: If title or creator is blank, price is not a positive finite
            number, or ``owner`` (when given) is not a 0x-prefixed 20-byte address
    """
    if not title or not title.strip():
        raise ValueError("Artwork title is required")
    if not creator or not creator.strip():
        raise ValueError("Artist is required")
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        raise ValueError("Price must be a number")
    if not math.isfinite(price) or price <= 0:
        raise ValueError("Price must be a positive number")
    if owner is not None and not ADDRESS_RE.fullmatch(owner):
        raise ValueError(f"Owner must be a 0x-prefixed 20-byte address, got {owner!r}")


def _log_persist_outcome(task: "asyncio.Future[None]") -> None:
    # The caller may have been cancelled and never await this task.
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Record persistence failed: %s", exc)


class RecordLedger:
    """Artwork records persisted through a :class:`KeyValueStore`.

    Not reentrant-safe for the index key: concurrent ``create`` calls can
    lose index appends (see :mod:`artprov.index`).
    """

    def __init__(
        self,
        store: KeyValueStore,
        index_key: str = DEFAULT_INDEX_KEY,
        record_prefix: str = DEFAULT_RECORD_PREFIX,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the ledger.

        Args:
            store: Key/value store collaborator
            index_key: Reserved key holding the id index
            record_prefix: Namespace prefix for record keys
            clock: Source of epoch seconds (injectable for tests)
        """
        self.store = store
        self.index_key = index_key
        self.record_prefix = record_prefix
        self.index = KeyIndex(store, index_key)
        self._clock = clock

    def record_key(self, record_id: str) -> str:
        key = f"{self.record_prefix}{record_id}"
        if key == self.index_key:
            raise ValueError(f"Record id {record_id!r} collides with the index key")
        return key

    async def _write(self, key: str, value: bytes) -> None:
        try:
            await self.store.set_data(key, value)
        except ArtProvError:
            raise
        except Exception as e:
            raise WriteError(f"Failed to write {key}: {e}") from e

    async def create(self, title: str, creator: str, price: float, note: str, owner: str) -> str:
        """Register a new pending record and return its id.

        Domain validation is the caller's job (:func:`validate_submission`).
        The record is written before its id is appended to the index; once
        started, that pair of writes runs to completion even if the caller is
        cancelled.

        Raises:
            CodecError: If ``price`` is not a finite number
            ValueError: If ``owner`` is not a 0x-prefixed 20-byte address
                (pydantic ``ValidationError``); nothing is written
            WriteError: If either store write fails. If only the index append
                failed the record exists but stays invisible to listing.
        """
        encoded_price = codec.encode(price)
        now = self._clock()
        record = ArtRecord(
            id=new_record_id(now),
            encoded_price=encoded_price,
            created_at=int(now),
            owner=owner,
            title=title,
            creator=creator,
            provenance=[note],
            status=RecordStatus.PENDING,
        )
        task = asyncio.ensure_future(self._persist_new(record))
        task.add_done_callback(_log_persist_outcome)
        await asyncio.shield(task)
        return record.id

    async def _persist_new(self, record: ArtRecord) -> None:
        await self._write(self.record_key(record.id), serialize(record))
        try:
            await self.index.add_id(record.id)
        except DecodeError:
            logger.error("Record %s written but index %s is malformed; record is orphaned", record.id, self.index_key)
            raise
        except ArtProvError:
            raise
        except Exception as e:
            logger.error("Record %s written but index append failed; record is orphaned", record.id)
            raise WriteError(f"Failed to append {record.id} to {self.index_key}: {e}") from e
        logger.info("Created record %s for %s", record.id, record.owner)

    async def list_records(self) -> list[ArtRecord]:
        """Return all indexed records, newest ``created_at`` first.

        Ties keep index order. Empty or undecodable record payloads are
        skipped with a warning. An unavailable store lists as empty.
        """
        try:
            if not await self.store.is_available():
                logger.info("Store is not available yet; no records")
                return []

            ids = await self.index.list_ids()
            records: list[ArtRecord] = []
            skipped = 0
            for record_id in ids:
                if f"{self.record_prefix}{record_id}" == self.index_key:
                    skipped += 1
                    logger.warning("Index entry %s collides with the index key", record_id)
                    continue
                raw = await self.store.get_data(self.record_key(record_id))
                if not raw:
                    skipped += 1
                    logger.warning("Index entry %s has no stored record", record_id)
                    continue
                try:
                    records.append(deserialize(raw, record_id))
                except DecodeError as e:
                    skipped += 1
                    logger.warning("Skipping malformed record %s: %s", record_id, e)
        except StoreUnavailable as e:
            logger.info("Store unavailable: %s", e)
            return []

        if skipped:
            logger.warning("Skipped %d unreadable record(s)", skipped)

        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    async def get(self, record_id: str) -> ArtRecord:
        """Read a single record.

        Raises:
            NotFoundError: If nothing is stored under the record key
            DecodeError: If the stored payload is malformed
        """
        raw = await self.store.get_data(self.record_key(record_id))
        if not raw:
            raise NotFoundError(f"Record not found: {record_id}")
        return deserialize(raw, record_id)

    async def set_status(self, record_id: str, new_status: RecordStatus | str, caller: str | None) -> ArtRecord:
        """Move a pending record to ``verified`` or ``rejected``.

        The caller must have checked ownership already.

        Raises:
            NotFoundError: If the record does not exist
            InvalidTransitionError: If the record is not pending, or the target is not terminal
            WriteError: If the store write fails
        """
        target = RecordStatus(new_status)
        record = await self.get(record_id)
        if not record.status.can_transition_to(target):
            raise InvalidTransitionError(
                f"Cannot move record {record_id} from {record.status.value} to {target.value}"
            )

        updated = record.model_copy(update={"status": target})
        await self._write(self.record_key(record_id), serialize(updated))
        logger.info("Record %s: %s -> %s (caller %s)", record_id, record.status.value, target.value, caller or "-")
        return updated

    async def verify(self, record_id: str, caller: str | None) -> ArtRecord:
        return await self.set_status(record_id, RecordStatus.VERIFIED, caller)

    async def reject(self, record_id: str, caller: str | None) -> ArtRecord:
        return await self.set_status(record_id, RecordStatus.REJECTED, caller)

    async def append_note(self, record_id: str, note: str, caller: str | None) -> ArtRecord:
        """Append a provenance note. Allowed in every status.

        Raises:
            NotFoundError: If the record does not exist
            WriteError: If the store write fails
        """
        record = await self.get(record_id)
        updated = record.model_copy(update={"provenance": [*record.provenance, note]})
        await self._write(self.record_key(record_id), serialize(updated))
        logger.info("Record %s: provenance note %d added (caller %s)", record_id, len(updated.provenance), caller or "-")
        return updated
