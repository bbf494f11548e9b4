"""Pydantic models for the price disclosure challenge."""

import secrets
import time

from pydantic import BaseModel, Field

PSEUDO_PUBLIC_KEY_HEX_DIGITS = 2000
SECONDS_PER_DAY = 86400


class SessionParams(BaseModel):
    """Parameters a caller signs before a confidential value is revealed."""

    public_key: str = Field(description="Pseudo public key for this session (0x-prefixed hex)")
    contract_address: str = Field(description="Address of the store endpoint")
    chain_id: int = Field(description="Network id of the store")
    start_timestamp: int = Field(description="Validity window start, epoch seconds")
    duration_days: int = Field(default=30, ge=0, description="Validity window length in days")

    model_config = {"frozen": True}

    @property
    def expires_at(self) -> int:
        """End of the validity window, epoch seconds (exclusive)."""
        return self.start_timestamp + self.duration_days * SECONDS_PER_DAY

    @classmethod
    def generate(
        cls,
        contract_address: str,
        chain_id: int,
        duration_days: int = 30,
        start_timestamp: int | None = None,
    ) -> "SessionParams":
        """Create session parameters with a fresh random pseudo public key."""
        return cls(
            public_key="0x" + secrets.token_hex(PSEUDO_PUBLIC_KEY_HEX_DIGITS // 2),
            contract_address=contract_address,
            chain_id=chain_id,
            start_timestamp=int(time.time()) if start_timestamp is None else start_timestamp,
            duration_days=duration_days,
        )


class SignatureProof(BaseModel):
    """A signer's claim that ``address`` signed ``message``."""

    address: str = Field(description="Signer account address")
    public_key: str = Field(description="Raw public key, hex encoded")
    message: str = Field(description="The exact message that was signed")
    signature: str = Field(description="Signature bytes, hex encoded")

    model_config = {"frozen": True}
