"""Tests for structured messages and Ed25519 verification."""

import base64
import json

from cryptography.hazmat.primitives import serialization

from agentregistry.signing import (
    MESSAGE_PREFIX,
    Ed25519Signer,
    Ed25519Verifier,
    SignatureVerifier,
    SigningDomain,
    load_public_key,
    structured_message,
)

DOMAIN = SigningDomain(name="identity-registry", version="2.0.0", chain_id=1)
SEED = bytes(range(32))


class TestStructuredMessage:
    def test_prefix_and_canonical_json(self):
        message = structured_message(DOMAIN, "AgentWalletSet", {"b": 2, "a": 1})

        assert message.startswith(MESSAGE_PREFIX)
        payload = json.loads(message[len(MESSAGE_PREFIX):])
        assert payload["type"] == "AgentWalletSet"
        assert payload["domain"] == {"name": "identity-registry", "version": "2.0.0", "chainId": 1}
        assert payload["message"] == {"a": "1", "b": "2"}

    def test_deterministic_regardless_of_field_order(self):
        one = structured_message(DOMAIN, "K", {"x": 1, "y": "z"})
        two = structured_message(DOMAIN, "K", {"y": "z", "x": 1})
        assert one == two

    def test_domain_separates_messages(self):
        other = SigningDomain(name="identity-registry", version="2.0.0", chain_id=2)
        assert structured_message(DOMAIN, "K", {}) != structured_message(other, "K", {})

    def test_bytes_are_hex_encoded(self):
        message = structured_message(DOMAIN, "K", {"hash": b"\x01\x02"})
        assert b'"hash":"0x0102"' in message


class TestEd25519:
    def test_signer_account_is_hex_public_key(self):
        signer = Ed25519Signer.from_seed(SEED)

        assert len(signer.account) == 64
        assert bytes.fromhex(signer.account)
        assert signer.account == Ed25519Signer.from_seed(SEED).account

    def test_verify_with_account_as_key(self):
        signer = Ed25519Signer.generate()
        message = structured_message(DOMAIN, "K", {"n": 1})

        assert Ed25519Verifier().verify(message, signer.sign(message), signer.account)

    def test_tampered_message_rejected(self):
        signer = Ed25519Signer.generate()
        message = structured_message(DOMAIN, "K", {"n": 1})
        signature = signer.sign(message)

        tampered = structured_message(DOMAIN, "K", {"n": 2})
        assert not Ed25519Verifier().verify(tampered, signature, signer.account)

    def test_wrong_signer_rejected(self):
        signer = Ed25519Signer.generate()
        impostor = Ed25519Signer.generate()
        message = b"hello"

        assert not Ed25519Verifier().verify(message, impostor.sign(message), signer.account)

    def test_non_key_account_rejected(self):
        assert not Ed25519Verifier().verify(b"hello", b"\x00" * 64, "wallet_1")

    def test_malformed_signature_rejected(self):
        signer = Ed25519Signer.generate()
        assert not Ed25519Verifier().verify(b"hello", b"short", signer.account)

    def test_key_directory(self):
        signer = Ed25519Signer.generate()
        verifier = Ed25519Verifier(keys={"wallet_1": signer.public_key})
        message = b"hello"

        assert verifier.verify(message, signer.sign(message), "wallet_1")

    def test_register_key(self):
        signer = Ed25519Signer.generate()
        verifier = Ed25519Verifier()
        verifier.register_key("wallet_2", signer.account)

        assert verifier.verify(b"m", signer.sign(b"m"), "wallet_2")

    def test_satisfies_protocol(self):
        assert isinstance(Ed25519Verifier(), SignatureVerifier)


class TestLoadPublicKey:
    def test_formats(self):
        signer = Ed25519Signer.from_seed(SEED)
        raw = bytes.fromhex(signer.account)
        pem = signer.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode()

        for key in (raw, signer.account, "0x" + signer.account, base64.b64encode(raw).decode(), pem):
            loaded = load_public_key(key)
            assert loaded is not None
            assert loaded.public_bytes(
                encoding=serialization.Encoding.Raw,
                format=serialization.PublicFormat.Raw,
            ) == raw

    def test_garbage(self):
        assert load_public_key("wallet_1") is None
        assert load_public_key(b"\x01\x02") is None
