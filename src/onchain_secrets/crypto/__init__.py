"""Key handling and symmetric envelopes built on the ``cryptography`` package."""
from __future__ import annotations

from onchain_secrets.crypto.envelope import (
    SealedKey,
    decrypt_document,
    encrypt_document,
    new_symmetric_key,
    open_key,
    seal_key,
)
from onchain_secrets.crypto.keys import Point, ReencryptionKeyPair, SigningKey, verify_signature

__all__ = [
    "Point",
    "ReencryptionKeyPair",
    "SealedKey",
    "SigningKey",
    "decrypt_document",
    "encrypt_document",
    "new_symmetric_key",
    "open_key",
    "seal_key",
    "verify_signature",
]
