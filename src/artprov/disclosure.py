"""Signature-gated disclosure of confidential values.

Revealing a price takes a fresh signature over a canonical challenge built
from the session parameters. Nothing is cached between reveals: every call
re-checks a proof, even though the placeholder codec itself is trivially
invertible.
"""

import hashlib
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from . import codec
from .errors import AuthenticationError
from .models.disclosure import SessionParams, SignatureProof

logger = logging.getLogger(__name__)


def build_challenge(params: SessionParams) -> str:
    """Format session parameters as the canonical challenge message (one field per line)."""
    return "\n".join(
        [
            f"publickey:{params.public_key}",
            f"contractAddresses:{params.contract_address}",
            f"contractsChainId:{params.chain_id}",
            f"startTimestamp:{params.start_timestamp}",
            f"durationDays:{params.duration_days}",
        ]
    )


def address_from_public_key(public_key: bytes) -> str:
    """Derive a 20-byte account address: last 20 bytes of SHA-256 of the raw key."""
    return "0x" + hashlib.sha256(public_key).hexdigest()[-40:]


def verify_proof(proof: SignatureProof, message: str) -> bool:
    """Check an Ed25519 proof: address matches key, message matches, signature verifies."""
    if proof.message != message:
        return False
    try:
        public_bytes = bytes.fromhex(proof.public_key)
        signature = bytes.fromhex(proof.signature)
    except ValueError:
        return False
    if address_from_public_key(public_bytes) != proof.address.lower():
        return False
    try:
        Ed25519PublicKey.from_public_bytes(public_bytes).verify(signature, message.encode("utf-8"))
    except (InvalidSignature, ValueError):
        return False
    return True


class Signer(ABC):
    """A connected wallet able to sign challenge messages.

    Implementations raise ``AuthenticationError`` when the user declines.
    """

    @property
    @abstractmethod
    def address(self) -> str:
        pass

    @abstractmethod
    async def sign_message(self, message: str) -> SignatureProof:
        pass


class Ed25519Signer(Signer):
    """Local signer backed by an Ed25519 private key."""

    def __init__(self, private_key: Ed25519PrivateKey):
        self._private_key = private_key
        self._public_bytes = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    @classmethod
    def generate(cls) -> "Ed25519Signer":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_file(cls, path: Path) -> "Ed25519Signer":
        """Load a PEM (PKCS8, unencrypted) private key."""
        key = serialization.load_pem_private_key(path.read_bytes(), password=None)
        if not isinstance(key, Ed25519PrivateKey):
            raise ValueError(f"Not an Ed25519 private key: {path}")
        return cls(key)

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        pem = self._private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        path.write_bytes(pem)
        path.chmod(0o600)

    @property
    def address(self) -> str:
        return address_from_public_key(self._public_bytes)

    async def sign_message(self, message: str) -> SignatureProof:
        signature = self._private_key.sign(message.encode("utf-8"))
        return SignatureProof(
            address=self.address,
            public_key=self._public_bytes.hex(),
            message=message,
            signature=signature.hex(),
        )


class DisclosureGate:
    """Releases decoded values only against a valid signature over the challenge."""

    def __init__(
        self,
        params: SessionParams,
        verifier: Callable[[SignatureProof, str], bool] = verify_proof,
        clock: Callable[[], float] = time.time,
    ):
        self.params = params
        self._verifier = verifier
        self._clock = clock

    def challenge(self) -> str:
        return build_challenge(self.params)

    async def reveal(self, token: str, proof: SignatureProof | None, caller: str | None = None) -> float:
        """Decode ``token`` if ``proof`` signs the current challenge.

        Args:
            token: Codec token to decode
            proof: Signature proof; ``None`` means the caller is not connected
            caller: Optional expected signer address (case-insensitive)

        Raises:
            AuthenticationError: If there is no proof, it is for another signer
                or message, the signature does not verify, or the session's
                validity window has ended
            CodecError: If the token itself is malformed
        """
        if proof is None:
            raise AuthenticationError("Wallet not connected; cannot sign disclosure challenge")
        if caller is not None and proof.address.lower() != caller.lower():
            raise AuthenticationError(f"Proof was signed by {proof.address}, not {caller}")
        if self._clock() >= self.params.expires_at:
            raise AuthenticationError(
                f"Disclosure session expired at {self.params.expires_at}; sign a new challenge"
            )
        if not self._verifier(proof, self.challenge()):
            logger.warning("Rejected disclosure proof from %s", proof.address)
            raise AuthenticationError("Signature does not satisfy the disclosure challenge")

        logger.info("Disclosure granted to %s", proof.address)
        return codec.decode(token)

    async def request_reveal(self, token: str, signer: Signer | None) -> float:
        """Ask ``signer`` to sign a fresh challenge, then reveal."""
        if signer is None:
            raise AuthenticationError("Wallet not connected; cannot sign disclosure challenge")
        proof = await signer.sign_message(self.challenge())
        return await self.reveal(token, proof, caller=signer.address)
