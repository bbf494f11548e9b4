"""Read-side helpers over listed records: counts and search."""

from dataclasses import dataclass
from typing import Iterable

from .models.record import ArtRecord, RecordStatus


@dataclass(frozen=True)
class RecordStats:
    total: int
    pending: int
    verified: int
    rejected: int


def summarize(records: Iterable[ArtRecord]) -> RecordStats:
    counts = {status: 0 for status in RecordStatus}
    total = 0
    for record in records:
        counts[record.status] += 1
        total += 1
    return RecordStats(
        total=total,
        pending=counts[RecordStatus.PENDING],
        verified=counts[RecordStatus.VERIFIED],
        rejected=counts[RecordStatus.REJECTED],
    )


def search(records: Iterable[ArtRecord], term: str) -> list[ArtRecord]:
    """Case-insensitive substring match on title or creator. Blank term matches all."""
    needle = term.strip().lower()
    if not needle:
        return list(records)
    return [r for r in records if needle in r.title.lower() or needle in r.creator.lower()]
