"""Pydantic models for artwork provenance records."""

from enum import Enum

from pydantic import AliasChoices, BaseModel, Field, field_validator

ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"


class RecordStatus(str, Enum):
    """Review status of an artwork record.

    ``pending`` is the only non-terminal state. A record moves to
    ``verified`` or ``rejected`` exactly once and never back.
    """

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not RecordStatus.PENDING

    def can_transition_to(self, target: "RecordStatus") -> bool:
        return self is RecordStatus.PENDING and target.is_terminal


class ArtRecord(BaseModel):
    """One artwork entry as stored under ``<record_prefix><id>``.

    Field names on the wire are camelCase. The names written by the first
    web client (``encryptedPrice``, ``timestamp``, ``artworkName``,
    ``artist``, ``provenanceHistory``) are still accepted when reading.
    Unknown fields are ignored.
    """

    id: str = Field(min_length=1, description="Generator-assigned record id")
    encoded_price: str = Field(
        validation_alias=AliasChoices("encodedPrice", "encryptedPrice", "encoded_price"),
        serialization_alias="encodedPrice",
        description="Codec token for the last-sale price (opaque to the ledger)",
    )
    created_at: int = Field(
        validation_alias=AliasChoices("createdAt", "timestamp", "created_at"),
        serialization_alias="createdAt",
        description="Creation time in epoch seconds",
    )
    owner: str = Field(pattern=ADDRESS_PATTERN, description="Account that registered the record")
    title: str = Field(
        validation_alias=AliasChoices("title", "artworkName"),
        serialization_alias="title",
    )
    creator: str = Field(
        validation_alias=AliasChoices("creator", "artist"),
        serialization_alias="creator",
    )
    provenance: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("provenance", "provenanceHistory"),
        serialization_alias="provenance",
        description="Append-only provenance notes, oldest first",
    )
    status: RecordStatus = Field(default=RecordStatus.PENDING)

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator("provenance", mode="before")
    @classmethod
    def _null_provenance(cls, value):
        return [] if value is None else value

    @field_validator("status", mode="before")
    @classmethod
    def _null_status(cls, value):
        return RecordStatus.PENDING if value is None else value

    def is_owned_by(self, address: str | None) -> bool:
        """Case-insensitive owner comparison. ``None`` (not connected) never owns."""
        if not address:
            return False
        return self.owner.lower() == address.lower()
