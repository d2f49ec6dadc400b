"""
Signature verification for off-chain authorizations.

Registries never look inside a signature: they build a structured message,
hand it to a SignatureVerifier together with the account that is supposed
to have signed it, and act on the boolean answer. Ed25519Verifier is the
default implementation; anything with a compatible ``verify`` works.
"""

from __future__ import annotations

import base64
import binascii
import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from agentregistry.core.logging import get_logger

logger = get_logger("signing.verifier")

MESSAGE_PREFIX = b"\x19agentregistry"


@runtime_checkable
class SignatureVerifier(Protocol):
    """Opaque ``verify(message, signature, expected_signer) -> bool``."""

    def verify(self, message: bytes, signature: bytes, expected_signer: str) -> bool: ...


@dataclass(frozen=True)
class SigningDomain:
    """Binds a signature to one contract on one chain."""

    name: str
    version: str
    chain_id: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "version": self.version, "chainId": self.chain_id}


def _jsonable(value: Any) -> Any:
    if isinstance(value, bytes):
        return "0x" + value.hex()
    if isinstance(value, int) and not isinstance(value, bool):
        # ints above 2**53 do not survive every JSON reader
        return str(value)
    return value


def structured_message(domain: SigningDomain, kind: str, fields: Mapping[str, Any]) -> bytes:
    """
    Canonical bytes to sign for an authorization of type ``kind``.

    Sorted keys and compact separators make the encoding deterministic, so
    signer and verifier always agree on the exact bytes.
    """
    payload = {
        "domain": domain.to_dict(),
        "type": kind,
        "message": {k: _jsonable(v) for k, v in fields.items()},
    }
    body = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=_jsonable)
    return MESSAGE_PREFIX + body.encode("utf-8")


def load_public_key(key: str | bytes | Ed25519PublicKey) -> Ed25519PublicKey | None:
    """
    Parse an Ed25519 public key from PEM, hex, base64 or raw bytes.

    Returns None when ``key`` is none of those.
    """
    if isinstance(key, Ed25519PublicKey):
        return key

    if isinstance(key, bytes):
        try:
            return Ed25519PublicKey.from_public_bytes(key)
        except ValueError:
            return None

    if "-----BEGIN PUBLIC KEY-----" in key:
        try:
            loaded = serialization.load_pem_public_key(key.encode("utf-8"))
        except ValueError:
            return None
        return loaded if isinstance(loaded, Ed25519PublicKey) else None

    text = key[2:] if key.startswith("0x") else key
    try:
        return Ed25519PublicKey.from_public_bytes(bytes.fromhex(text))
    except ValueError:
        pass

    try:
        return Ed25519PublicKey.from_public_bytes(base64.b64decode(key, validate=True))
    except (ValueError, binascii.Error):
        return None


class Ed25519Verifier:
    """
    Ed25519 implementation of SignatureVerifier.

    The expected signer's public key is looked up in ``keys`` first; failing
    that, the account string itself is parsed as a key (accounts created by
    Ed25519Signer are the hex of their raw public key).
    """

    def __init__(self, keys: Mapping[str, str | bytes | Ed25519PublicKey] | None = None) -> None:
        self._keys = dict(keys or {})

    def register_key(self, account: str, key: str | bytes | Ed25519PublicKey) -> None:
        self._keys[account] = key

    def verify(self, message: bytes, signature: bytes, expected_signer: str) -> bool:
        public_key = load_public_key(self._keys.get(expected_signer, expected_signer))
        if public_key is None:
            logger.warning(f"No usable Ed25519 key for signer {expected_signer[:24]}")
            return False

        try:
            public_key.verify(signature, message)
        except InvalidSignature:
            logger.warning(f"Signature mismatch for signer {expected_signer[:24]}")
            return False
        except (TypeError, ValueError) as e:
            logger.warning(f"Malformed signature for signer {expected_signer[:24]}: {e}")
            return False
        return True


class Ed25519Signer:
    """
    Client-side counterpart of Ed25519Verifier.

    Example:
        >>> wallet = Ed25519Signer.generate()
        >>> sig = wallet.sign(message)
        >>> Ed25519Verifier().verify(message, sig, wallet.account)
        True
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key

    @classmethod
    def generate(cls) -> Ed25519Signer:
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> Ed25519Signer:
        """Deterministic signer from a 32-byte seed."""
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    @property
    def public_key(self) -> Ed25519PublicKey:
        return self._private_key.public_key()

    @property
    def account(self) -> str:
        raw = self.public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return raw.hex()

    def sign(self, message: bytes) -> bytes:
        return self._private_key.sign(message)
