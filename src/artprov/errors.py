"""Error taxonomy for the provenance ledger.

Codec and serializer errors are swallowed when listing (one bad record must
not hide the others). Errors raised by a targeted operation reach the caller
unchanged; nothing here is retried automatically.
"""


class ArtProvError(Exception):
    """Base class for all provenance ledger errors."""
    pass


class StoreUnavailable(ArtProvError):
    """The key/value store is not provisioned yet. Treated as empty state."""
    pass


class CodecError(ArtProvError):
    """A confidential value token could not be encoded or decoded."""
    pass


class DecodeError(ArtProvError):
    """A stored payload is not a structurally valid record or index."""
    pass


class NotFoundError(ArtProvError):
    """The targeted record id has no stored payload."""
    pass


class InvalidTransitionError(ArtProvError):
    """The requested status change is not allowed from the current status."""
    pass


class AuthenticationError(ArtProvError):
    """The disclosure signature challenge was not satisfied."""
    pass


class WriteError(ArtProvError):
    """The underlying store rejected or failed a write.

    Retrying ``create`` is safe because it mints a fresh id. Status and note
    updates must re-read the record before retrying so an interleaved write
    is not clobbered.
    """
    pass
