"""artprov - confidential art provenance records on a shared key/value ledger."""

__version__ = "0.1.0"
