"""
Signing module - structured authorization messages and Ed25519 verification.
"""

from agentregistry.signing.verifier import (
    MESSAGE_PREFIX,
    Ed25519Signer,
    Ed25519Verifier,
    SignatureVerifier,
    SigningDomain,
    load_public_key,
    structured_message,
)

__all__ = [
    "MESSAGE_PREFIX",
    "Ed25519Signer",
    "Ed25519Verifier",
    "SignatureVerifier",
    "SigningDomain",
    "load_public_key",
    "structured_message",
]
