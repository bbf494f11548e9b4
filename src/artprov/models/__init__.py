"""Pydantic models for artprov."""

from .disclosure import SessionParams, SignatureProof
from .record import ADDRESS_PATTERN, ArtRecord, RecordStatus

__all__ = [
    "ADDRESS_PATTERN",
    "ArtRecord",
    "RecordStatus",
    # Disclosure
    "SessionParams",
    "SignatureProof",
]
