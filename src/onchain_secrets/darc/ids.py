"""Fixed-length ledger identifiers.

All identifiers handled by the ledger are 32-byte hashes. They compare
byte-exactly and render as lowercase hex. Constructing one from data of the
wrong length raises :class:`~onchain_secrets.errors.CryptoStructureError`
so malformed ids never reach the network.
"""
from __future__ import annotations

import secrets

from onchain_secrets.errors import CryptoStructureError

ID_LENGTH: int = 32


class _FixedId:
    """Immutable 32-byte identifier."""

    __slots__ = ("_raw",)

    # Ids of the same family compare equal; a block id is never a darc id.
    _family: str = ""

    def __init__(self, raw: bytes) -> None:
        if not isinstance(raw, (bytes, bytearray)):
            raise CryptoStructureError(
                f"{type(self).__name__} requires bytes, got {type(raw).__name__}."
            )
        if len(raw) != ID_LENGTH:
            raise CryptoStructureError(
                f"{type(self).__name__} must be {ID_LENGTH} bytes, got {len(raw)}."
            )
        object.__setattr__(self, "_raw", bytes(raw))

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @classmethod
    def from_hex(cls, value: str):
        """Parse a hex string; invalid hex is a structure error too."""
        try:
            raw = bytes.fromhex(value)
        except (TypeError, ValueError) as exc:
            raise CryptoStructureError(
                f"Invalid hex for {cls.__name__}: {value!r}"
            ) from exc
        return cls(raw)

    @classmethod
    def random(cls):
        return cls(secrets.token_bytes(ID_LENGTH))

    @property
    def raw(self) -> bytes:
        return self._raw

    def hex(self) -> str:
        return self._raw.hex()

    def __bytes__(self) -> bytes:
        return self._raw

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _FixedId):
            return NotImplemented
        return self._family == other._family and self._raw == other._raw

    def __hash__(self) -> int:
        return hash((self._family, self._raw))

    def __str__(self) -> str:
        return self.hex()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.hex()[:16]}...)"


class DarcId(_FixedId):
    """Content hash of a Darc's canonical encoding."""

    _family = "darc"


class SkipblockId(_FixedId):
    """Hash of a block on the ledger; the genesis block id names a ledger."""

    _family = "block"


class WriteRequestId(SkipblockId):
    """Block id of an accepted write record."""


class ReadRequestId(SkipblockId):
    """Block id of an accepted read record."""


__all__ = [
    "DarcId",
    "ID_LENGTH",
    "ReadRequestId",
    "SkipblockId",
    "WriteRequestId",
]
