"""Symmetric envelopes for documents and document keys.

A document is encrypted with a fresh AES-256-GCM key. That key is then
*sealed* towards an X25519 point: an ephemeral key pair is generated, the
Diffie-Hellman secret with the recipient point is stretched with HKDF, and
the symmetric key is encrypted under the result. Only the holder of the
recipient's private key can open the seal.

Writers seal towards the ledger's shared public key. The re-encryption
service seals towards the reader (long-term or ephemeral key), so the key
the reader receives is never in plaintext on the wire.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from onchain_secrets.crypto.keys import Point, ReencryptionKeyPair
from onchain_secrets.errors import CryptoStructureError

SYMMETRIC_KEY_LENGTH: int = 32
_NONCE_LENGTH: int = 12
_SEAL_INFO: bytes = b"onchain-secrets/seal"
# Each seal uses a fresh ephemeral key, so a fixed nonce never repeats under one key.
_SEAL_NONCE: bytes = b"\x00" * _NONCE_LENGTH


@dataclass(frozen=True)
class SealedKey:
    """A symmetric key sealed towards one X25519 point.

    Parameters
    ----------
    ephemeral:
        The sender's one-time public point.
    ciphertext:
        AES-GCM encryption of the symmetric key (key + 16-byte tag).
    """

    ephemeral: Point
    ciphertext: bytes

    def to_dict(self) -> dict[str, str]:
        return {"ephemeral": self.ephemeral.hex(), "ciphertext": self.ciphertext.hex()}

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "SealedKey":
        try:
            ciphertext = bytes.fromhex(str(data["ciphertext"]))
        except (KeyError, ValueError) as exc:
            raise CryptoStructureError(f"Malformed sealed key: {exc}") from exc
        return cls(ephemeral=Point.from_hex(str(data["ephemeral"])), ciphertext=ciphertext)


def _derive(secret: bytes, ephemeral: Point, recipient: Point) -> bytes:
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=SYMMETRIC_KEY_LENGTH,
        salt=ephemeral.raw + recipient.raw,
        info=_SEAL_INFO,
    )
    return hkdf.derive(secret)


def seal_key(symmetric_key: bytes, recipient: Point) -> SealedKey:
    """Seal *symmetric_key* so that only *recipient*'s private key opens it."""
    if len(symmetric_key) != SYMMETRIC_KEY_LENGTH:
        raise CryptoStructureError(
            f"Symmetric key must be {SYMMETRIC_KEY_LENGTH} bytes, got {len(symmetric_key)}."
        )
    ephemeral = ReencryptionKeyPair.generate()
    wrap_key = _derive(ephemeral.exchange(recipient), ephemeral.public, recipient)
    ciphertext = AESGCM(wrap_key).encrypt(_SEAL_NONCE, symmetric_key, None)
    return SealedKey(ephemeral=ephemeral.public, ciphertext=ciphertext)


def open_key(sealed: SealedKey, recipient: ReencryptionKeyPair) -> bytes:
    """Open a :class:`SealedKey` with the recipient's key pair.

    Raises
    ------
    CryptoStructureError
        If the seal was not made for this key pair or was tampered with.
    """
    wrap_key = _derive(recipient.exchange(sealed.ephemeral), sealed.ephemeral, recipient.public)
    try:
        return AESGCM(wrap_key).decrypt(_SEAL_NONCE, sealed.ciphertext, None)
    except InvalidTag as exc:
        raise CryptoStructureError("Sealed key does not open with this key pair.") from exc


def new_symmetric_key() -> bytes:
    return AESGCM.generate_key(bit_length=SYMMETRIC_KEY_LENGTH * 8)


def encrypt_document(key: bytes, plaintext: bytes, associated_data: bytes | None = None) -> bytes:
    """Encrypt *plaintext* with AES-GCM; the nonce is prefixed to the result."""
    nonce = os.urandom(_NONCE_LENGTH)
    return nonce + AESGCM(key).encrypt(nonce, plaintext, associated_data)


def decrypt_document(key: bytes, ciphertext: bytes, associated_data: bytes | None = None) -> bytes:
    """Reverse :func:`encrypt_document`."""
    nonce, body = ciphertext[:_NONCE_LENGTH], ciphertext[_NONCE_LENGTH:]
    try:
        return AESGCM(key).decrypt(nonce, body, associated_data)
    except (InvalidTag, ValueError) as exc:
        raise CryptoStructureError("Document does not decrypt with this key.") from exc


__all__ = [
    "SYMMETRIC_KEY_LENGTH",
    "SealedKey",
    "decrypt_document",
    "encrypt_document",
    "new_symmetric_key",
    "open_key",
    "seal_key",
]
