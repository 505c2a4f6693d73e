"""Key material: Ed25519 signing keys and X25519 re-encryption keys.

A thin wrapper around the ``cryptography`` package. Signing keys identify
writers, readers and Darc administrators. Re-encryption keys are the points a
symmetric document key is sealed towards: the ledger's shared key when a
document is written, and the reader's long-term or ephemeral key when the
service hands the key back.

All public material is handled as raw 32-byte values so it can be embedded
in identities and wire messages without depending on this module's types.
"""
from __future__ import annotations

from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from onchain_secrets.errors import CryptoStructureError

KEY_LENGTH: int = 32
SIGNATURE_LENGTH: int = 64


def _check_length(label: str, data: bytes, expected: int) -> bytes:
    if not isinstance(data, (bytes, bytearray)) or len(data) != expected:
        size = len(data) if isinstance(data, (bytes, bytearray)) else type(data).__name__
        raise CryptoStructureError(f"{label} must be {expected} bytes, got {size}.")
    return bytes(data)


# ---------------------------------------------------------------------------
# Ed25519
# ---------------------------------------------------------------------------


class SigningKey:
    """An Ed25519 private key used to sign Darc evolutions and requests.

    Example
    -------
    ::

        key = SigningKey.generate()
        signature = key.sign(b"hello world")
        assert verify_signature(key.public_bytes, signature, b"hello world")
    """

    def __init__(self, private_bytes: bytes) -> None:
        raw = _check_length("Ed25519 private key", private_bytes, KEY_LENGTH)
        self._key = Ed25519PrivateKey.from_private_bytes(raw)

    @classmethod
    def generate(cls) -> "SigningKey":
        key = Ed25519PrivateKey.generate()
        return cls(key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption()))

    @property
    def private_bytes(self) -> bytes:
        return self._key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())

    @property
    def public_bytes(self) -> bytes:
        return self._key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)

    def sign(self, data: bytes) -> bytes:
        """Return the 64-byte Ed25519 signature over *data*."""
        return self._key.sign(data)

    def __repr__(self) -> str:
        return f"SigningKey(public={self.public_bytes.hex()[:16]}...)"


def verify_signature(public_bytes: bytes, signature: bytes, data: bytes) -> bool:
    """Verify an Ed25519 signature.

    Parameters
    ----------
    public_bytes:
        The 32-byte raw public key.
    signature:
        The 64-byte signature to verify.
    data:
        The original signed data.

    Returns
    -------
    bool
        ``True`` if the signature is valid, ``False`` otherwise.

    Raises
    ------
    CryptoStructureError
        If the key or signature has the wrong length.
    """
    _check_length("Ed25519 public key", public_bytes, KEY_LENGTH)
    _check_length("Ed25519 signature", signature, SIGNATURE_LENGTH)
    try:
        public_key = Ed25519PublicKey.from_public_bytes(public_bytes)
    except ValueError as exc:
        raise CryptoStructureError(f"Invalid Ed25519 public key: {exc}") from exc
    try:
        public_key.verify(signature, data)
        return True
    except InvalidSignature:
        return False


# ---------------------------------------------------------------------------
# X25519
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Point:
    """A 32-byte X25519 public point.

    Used for the ledger's shared public key, reader keys and ephemeral keys.
    """

    raw: bytes

    def __post_init__(self) -> None:
        _check_length("Point", self.raw, KEY_LENGTH)

    @classmethod
    def from_hex(cls, value: str) -> "Point":
        try:
            return cls(bytes.fromhex(value))
        except (TypeError, ValueError) as exc:
            raise CryptoStructureError(f"Invalid hex for Point: {value!r}") from exc

    def hex(self) -> str:
        return self.raw.hex()

    def to_public_key(self) -> X25519PublicKey:
        return X25519PublicKey.from_public_bytes(self.raw)

    def __repr__(self) -> str:
        return f"Point({self.raw.hex()[:16]}...)"


class ReencryptionKeyPair:
    """An X25519 key pair that sealed key material can be re-encrypted to.

    A reader keeps one long-term pair for direct decryption requests and
    generates a fresh pair for every ephemeral request.
    """

    def __init__(self, private_bytes: bytes) -> None:
        raw = _check_length("X25519 private key", private_bytes, KEY_LENGTH)
        self._key = X25519PrivateKey.from_private_bytes(raw)

    @classmethod
    def generate(cls) -> "ReencryptionKeyPair":
        key = X25519PrivateKey.generate()
        return cls(key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption()))

    @property
    def private_bytes(self) -> bytes:
        return self._key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())

    @property
    def public(self) -> Point:
        return Point(self._key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw))

    def exchange(self, peer: Point) -> bytes:
        """Return the raw Diffie-Hellman secret with *peer*."""
        return self._key.exchange(peer.to_public_key())

    def __repr__(self) -> str:
        return f"ReencryptionKeyPair(public={self.public.hex()[:16]}...)"


__all__ = [
    "KEY_LENGTH",
    "Point",
    "ReencryptionKeyPair",
    "SIGNATURE_LENGTH",
    "SigningKey",
    "verify_signature",
]
