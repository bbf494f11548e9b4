"""Record <-> byte payload conversion.

Payloads are UTF-8 JSON text so the store's raw byte interface stays
readable. Deserialization either returns a fully typed ``ArtRecord`` or
raises ``DecodeError``; it never yields a partially typed object.
"""

import json
from typing import Any

from pydantic import ValidationError

from .errors import DecodeError
from .models.record import ArtRecord


def _json_dumps(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


def serialize(record: ArtRecord) -> bytes:
    """Serialize a record to its stored byte payload."""
    payload = record.model_dump(mode="json", by_alias=True)
    return _json_dumps(payload).encode("utf-8")


def deserialize(data: bytes, record_id: str | None = None) -> ArtRecord:
    """Parse a stored payload into an ``ArtRecord``.

    Args:
        data: Raw bytes read from the store
        record_id: Id taken from the storage key; overrides any id in the payload

    Returns:
        The decoded record

    Raises:
        DecodeError: If the payload is not valid UTF-8 JSON or misses/mistypes a required field
    """
    try:
        text = bytes(data).decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Payload is not UTF-8: {e}") from e

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Payload is not JSON: {e}") from e

    if not isinstance(payload, dict):
        raise DecodeError(f"Payload must be a JSON object, got {type(payload).__name__}")

    if record_id is not None:
        payload = {**payload, "id": record_id}

    try:
        return ArtRecord.model_validate(payload)
    except ValidationError as e:
        raise DecodeError(f"Invalid record payload: {e.error_count()} error(s): {e.errors()[0]['msg']}") from e


def try_deserialize(data: bytes, record_id: str | None = None) -> ArtRecord | None:
    """Deserialize, returning ``None`` for an invalid payload."""
    try:
        return deserialize(data, record_id)
    except DecodeError:
        return None
