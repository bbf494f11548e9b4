"""Key/value store contract consumed by the ledger, plus local implementations.

The ledger only ever talks to a store through four calls: ``is_available``,
``get_data``, ``set_data`` and ``get_address``. An empty byte string from
``get_data`` means the key is absent. Every call is a suspension point.
"""

import asyncio
import hashlib
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from .errors import StoreUnavailable

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract single-value-per-key store (e.g. a ledger contract)."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Return True once the store is provisioned and readable."""
        pass

    @abstractmethod
    async def get_data(self, key: str) -> bytes:
        """Return the value for ``key``, or ``b""`` if the key was never written."""
        pass

    @abstractmethod
    async def set_data(self, key: str, value: bytes) -> None:
        """Replace the value for ``key``. May fail."""
        pass

    @abstractmethod
    async def get_address(self) -> str:
        """Return the identity of the store endpoint."""
        pass


class MemoryStore(KeyValueStore):
    """In-process store.

    Each call yields to the event loop once, so concurrent callers interleave
    the way they would against a remote store.
    """

    def __init__(
        self,
        address: str = "0x" + "00" * 19 + "01",
        available: bool = True,
        data: dict[str, bytes] | None = None,
    ):
        self.address = address
        self.available = available
        self.data: dict[str, bytes] = dict(data or {})

    async def is_available(self) -> bool:
        await asyncio.sleep(0)
        return self.available

    async def get_data(self, key: str) -> bytes:
        await asyncio.sleep(0)
        return self.data.get(key, b"")

    async def set_data(self, key: str, value: bytes) -> None:
        await asyncio.sleep(0)
        self.data[key] = bytes(value)

    async def get_address(self) -> str:
        return self.address


class FileStore(KeyValueStore):
    """Store persisted as one JSON object of ``key -> UTF-8 text`` in a file.

    The file must be created with :meth:`initialize` before the store reports
    itself available. Each write rewrites the whole file, so writes through
    one instance are serialized by a lock and go through their own temp file
    that replaces the original.
    """

    def __init__(self, path: Path):
        self.path = path
        self._write_lock = threading.Lock()

    def initialize(self) -> bool:
        """Create an empty store file. Returns False if it already existed."""
        with self._write_lock:
            if self.path.exists():
                return False
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._write_all({})
        return True

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as e:
            raise StoreUnavailable(f"Store file is not valid JSON: {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreUnavailable(f"Store file must contain a JSON object: {self.path}")
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=self.path.parent,
            prefix=self.path.name + ".",
            suffix=".tmp",
            delete=False,
        ) as f:
            json.dump(data, f, ensure_ascii=False, indent=2, sort_keys=True)
            f.write("\n")
        try:
            os.replace(f.name, self.path)
        except OSError:
            os.unlink(f.name)
            raise

    def _set(self, key: str, value: bytes) -> None:
        text = bytes(value).decode("utf-8")
        with self._write_lock:
            data = self._read_all()
            data[key] = text
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._write_all(data)

    async def is_available(self) -> bool:
        return self.path.exists()

    async def get_data(self, key: str) -> bytes:
        data = await asyncio.to_thread(self._read_all)
        value = data.get(key)
        if not isinstance(value, str):
            return b""
        return value.encode("utf-8")

    async def set_data(self, key: str, value: bytes) -> None:
        await asyncio.to_thread(self._set, key, value)
        logger.debug("Wrote %d byte(s) to %s in %s", len(value), key, self.path)

    async def get_address(self) -> str:
        digest = hashlib.sha256(str(self.path.resolve()).encode("utf-8")).hexdigest()
        return "0x" + digest[-40:]
