"""Tests for the signature-gated disclosure of prices."""

import asyncio

import pytest

from artprov import codec
from artprov.disclosure import (
    DisclosureGate,
    Ed25519Signer,
    Signer,
    address_from_public_key,
    build_challenge,
    verify_proof,
)
from artprov.errors import AuthenticationError, CodecError
from artprov.models.disclosure import SessionParams, SignatureProof

STORE_ADDRESS = "0x" + "12" * 20


@pytest.fixture
def params():
    return SessionParams(
        public_key="0xabc123",
        contract_address=STORE_ADDRESS,
        chain_id=11155111,
        start_timestamp=1_700_000_000,
        duration_days=30,
    )


@pytest.fixture
def gate(params):
    return DisclosureGate(params, clock=lambda: params.start_timestamp + 60)


class DecliningSigner(Signer):
    """Wallet whose user refuses every signature prompt."""

    @property
    def address(self) -> str:
        return "0x" + "ee" * 20

    async def sign_message(self, message: str) -> SignatureProof:
        raise AuthenticationError("User rejected the signature request")


class CountingSigner(Signer):
    def __init__(self, inner: Ed25519Signer):
        self.inner = inner
        self.calls = 0

    @property
    def address(self) -> str:
        return self.inner.address

    async def sign_message(self, message: str) -> SignatureProof:
        self.calls += 1
        return await self.inner.sign_message(message)


def test_challenge_format(params):
    assert build_challenge(params) == (
        "publickey:0xabc123\n"
        f"contractAddresses:{STORE_ADDRESS}\n"
        "contractsChainId:11155111\n"
        "startTimestamp:1700000000\n"
        "durationDays:30"
    )


def test_challenge_is_deterministic(params, gate):
    assert gate.challenge() == build_challenge(params) == build_challenge(params.model_copy())


def test_generated_session_params():
    params = SessionParams.generate(STORE_ADDRESS, chain_id=1, duration_days=7, start_timestamp=42)
    assert params.public_key.startswith("0x")
    assert len(params.public_key) == 2 + 2000
    assert params.contract_address == STORE_ADDRESS
    assert params.start_timestamp == 42
    assert params.duration_days == 7
    assert SessionParams.generate(STORE_ADDRESS, 1).public_key != params.public_key


def test_reveal_with_valid_proof(gate, signer):
    token = codec.encode(25000)
    proof = asyncio.run(signer.sign_message(gate.challenge()))

    assert asyncio.run(gate.reveal(token, proof)) == 25000


def test_reveal_passes_legacy_plain_value(gate, signer):
    proof = asyncio.run(signer.sign_message(gate.challenge()))
    assert asyncio.run(gate.reveal("980.5", proof)) == 980.5


def test_reveal_without_proof_fails(gate):
    with pytest.raises(AuthenticationError):
        asyncio.run(gate.reveal(codec.encode(1), None))


def test_reveal_with_proof_for_other_message_fails(gate, signer):
    proof = asyncio.run(signer.sign_message("publickey:0xother"))
    with pytest.raises(AuthenticationError):
        asyncio.run(gate.reveal(codec.encode(1), proof))


def test_reveal_with_forged_signature_fails(gate, signer):
    proof = asyncio.run(signer.sign_message(gate.challenge()))
    forged = proof.model_copy(update={"signature": "00" * 64})
    with pytest.raises(AuthenticationError):
        asyncio.run(gate.reveal(codec.encode(1), forged))


def test_reveal_with_borrowed_address_fails(gate, signer):
    """A valid signature from one key cannot be presented as another account's."""
    proof = asyncio.run(signer.sign_message(gate.challenge()))
    impostor = proof.model_copy(update={"address": "0x" + "99" * 20})
    with pytest.raises(AuthenticationError):
        asyncio.run(gate.reveal(codec.encode(1), impostor))


def test_reveal_checks_expected_caller(gate, signer):
    proof = asyncio.run(signer.sign_message(gate.challenge()))
    with pytest.raises(AuthenticationError):
        asyncio.run(gate.reveal(codec.encode(1), proof, caller="0x" + "77" * 20))
    assert asyncio.run(gate.reveal(codec.encode(1), proof, caller=signer.address.upper().replace("0X", "0x"))) == 1


def test_proof_for_old_session_is_rejected(params, signer):
    now = lambda: params.start_timestamp + 60
    old_gate = DisclosureGate(params, clock=now)
    proof = asyncio.run(signer.sign_message(old_gate.challenge()))
    new_gate = DisclosureGate(params.model_copy(update={"start_timestamp": params.start_timestamp + 1}), clock=now)

    with pytest.raises(AuthenticationError):
        asyncio.run(new_gate.reveal(codec.encode(1), proof))


def test_reveal_malformed_token_raises_codec_error(gate, signer):
    proof = asyncio.run(signer.sign_message(gate.challenge()))
    with pytest.raises(CodecError):
        asyncio.run(gate.reveal("FHE-???", proof))


def test_request_reveal_signs_every_time(gate, signer):
    """No unlock persists: each reveal prompts the signer again."""
    counting = CountingSigner(signer)
    token = codec.encode(321)

    async def scenario():
        first = await gate.request_reveal(token, counting)
        second = await gate.request_reveal(token, counting)
        return first, second

    assert asyncio.run(scenario()) == (321, 321)
    assert counting.calls == 2


def test_request_reveal_after_success_still_requires_proof(gate, signer):
    token = codec.encode(5)
    assert asyncio.run(gate.request_reveal(token, signer)) == 5
    with pytest.raises(AuthenticationError):
        asyncio.run(gate.reveal(token, None))


def test_request_reveal_not_connected(gate):
    with pytest.raises(AuthenticationError):
        asyncio.run(gate.request_reveal(codec.encode(1), None))


def test_request_reveal_declined(gate):
    with pytest.raises(AuthenticationError):
        asyncio.run(gate.request_reveal(codec.encode(1), DecliningSigner()))


def test_signer_key_round_trip(tmp_path, signer):
    key_path = tmp_path / "keys" / "signing_key.pem"
    signer.save(key_path)

    loaded = Ed25519Signer.from_file(key_path)

    assert loaded.address == signer.address
    proof = asyncio.run(loaded.sign_message("hello"))
    assert verify_proof(proof, "hello")


def test_signer_address_is_20_bytes(signer):
    proof = asyncio.run(signer.sign_message("m"))
    assert len(signer.address) == 42
    assert address_from_public_key(bytes.fromhex(proof.public_key)) == signer.address


def test_verify_proof_rejects_bad_hex(signer):
    proof = asyncio.run(signer.sign_message("m"))
    assert not verify_proof(proof.model_copy(update={"public_key": "zz"}), "m")
    assert not verify_proof(proof.model_copy(update={"public_key": "00" * 5}), "m")


def test_session_expires_at(params):
    assert params.expires_at == 1_700_000_000 + 30 * 86400


def test_reveal_after_window_ends_fails(params, signer):
    token = codec.encode(10)
    proof = asyncio.run(signer.sign_message(build_challenge(params)))

    last_second = DisclosureGate(params, clock=lambda: params.expires_at - 1)
    assert asyncio.run(last_second.reveal(token, proof)) == 10

    expired = DisclosureGate(params, clock=lambda: params.expires_at)
    with pytest.raises(AuthenticationError):
        asyncio.run(expired.reveal(token, proof))


def test_zero_day_window_never_reveals(params, signer):
    closed = params.model_copy(update={"duration_days": 0})
    gate = DisclosureGate(closed, clock=lambda: closed.start_timestamp)
    with pytest.raises(AuthenticationError):
        asyncio.run(gate.request_reveal(codec.encode(1), signer))


def test_generated_session_is_open_now(signer):
    params = SessionParams.generate(STORE_ADDRESS, chain_id=1)
    assert asyncio.run(DisclosureGate(params).request_reveal(codec.encode(3), signer)) == 3
