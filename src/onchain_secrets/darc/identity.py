"""Identity — who may appear in a Darc rule.

An identity is a closed tagged variant with two kinds:

``PublicKeyIdentity``
    An Ed25519 public key. Satisfied only by the identical key.
``DarcIdentity``
    A reference to another Darc, by the id of that Darc's first version
    (its base id). Satisfied by the same reference or by a valid signature
    path whose last Darc belongs to the referenced Darc's history.

Every evaluation site switches on :attr:`Identity.kind` and raises on an
unknown kind, so a new kind has to be handled everywhere before it works.

String form::

    ed25519:<64 hex chars>
    darc:<64 hex chars>
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from onchain_secrets.crypto.keys import KEY_LENGTH
from onchain_secrets.darc.ids import DarcId
from onchain_secrets.errors import CryptoStructureError

if TYPE_CHECKING:
    from onchain_secrets.darc.signature import SignaturePath


class IdentityKind(str, enum.Enum):
    """Tag of the identity variant; the value is the string-form prefix."""

    ED25519 = "ed25519"
    DARC = "darc"


@dataclass(frozen=True)
class PublicKeyIdentity:
    """An identity backed by a 32-byte Ed25519 public key."""

    public_key: bytes

    kind = IdentityKind.ED25519

    def __post_init__(self) -> None:
        if not isinstance(self.public_key, (bytes, bytearray)) or len(self.public_key) != KEY_LENGTH:
            raise CryptoStructureError(
                f"Ed25519 identity key must be {KEY_LENGTH} bytes."
            )
        object.__setattr__(self, "public_key", bytes(self.public_key))

    def satisfied_by(self, candidate: "Identity | SignaturePath") -> bool:
        """Return True only for an identical public key."""
        return isinstance(candidate, PublicKeyIdentity) and candidate.public_key == self.public_key

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.public_key.hex()}"


@dataclass(frozen=True)
class DarcIdentity:
    """An identity that delegates to the rules of another Darc."""

    darc_id: DarcId

    kind = IdentityKind.DARC

    def __post_init__(self) -> None:
        if not isinstance(self.darc_id, DarcId):
            raise CryptoStructureError(
                f"DarcIdentity requires a DarcId, got {type(self.darc_id).__name__}."
            )

    def satisfied_by(self, candidate: "Identity | SignaturePath") -> bool:
        """Return True for the same reference or a valid path ending at this Darc.

        A path is only accepted after :meth:`SignaturePath.validate` succeeds;
        a path that fails validation does not satisfy the reference.
        """
        from onchain_secrets.darc.signature import SignaturePath
        from onchain_secrets.errors import AuthorizationResolutionError

        if isinstance(candidate, DarcIdentity):
            return candidate.darc_id == self.darc_id
        if isinstance(candidate, SignaturePath):
            try:
                candidate.validate()
            except AuthorizationResolutionError:
                return False
            return candidate.darcs[-1].matches(self.darc_id)
        return False

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.darc_id.hex()}"


Identity = Union[PublicKeyIdentity, DarcIdentity]


# ---------------------------------------------------------------------------
# Parsing and serialization
# ---------------------------------------------------------------------------


def parse_identity(value: str) -> Identity:
    """Parse the ``<kind>:<hex>`` string form.

    Raises
    ------
    CryptoStructureError
        For an unknown kind, bad hex, or a wrong-length value.
    """
    prefix, sep, body = value.strip().partition(":")
    if not sep:
        raise CryptoStructureError(f"Identity {value!r} is missing a '<kind>:' prefix.")
    try:
        kind = IdentityKind(prefix)
    except ValueError as exc:
        raise CryptoStructureError(f"Unknown identity kind {prefix!r}.") from exc
    if kind is IdentityKind.ED25519:
        try:
            raw = bytes.fromhex(body)
        except ValueError as exc:
            raise CryptoStructureError(f"Invalid hex in identity {value!r}.") from exc
        return PublicKeyIdentity(raw)
    if kind is IdentityKind.DARC:
        return DarcIdentity(DarcId.from_hex(body))
    raise CryptoStructureError(f"Unhandled identity kind {kind!r}.")


def identity_to_dict(identity: Identity) -> dict[str, str]:
    """Serialize an identity to a plain dictionary."""
    if isinstance(identity, PublicKeyIdentity):
        return {"type": identity.kind.value, "public_key": identity.public_key.hex()}
    if isinstance(identity, DarcIdentity):
        return {"type": identity.kind.value, "darc_id": identity.darc_id.hex()}
    raise CryptoStructureError(f"Unhandled identity type {type(identity).__name__}.")


def identity_from_dict(data: dict[str, object]) -> Identity:
    """Reconstruct an identity from :func:`identity_to_dict` output."""
    try:
        kind = IdentityKind(str(data["type"]))
    except (KeyError, ValueError) as exc:
        raise CryptoStructureError(f"Malformed identity record: {data!r}") from exc
    if kind is IdentityKind.ED25519:
        try:
            raw = bytes.fromhex(str(data["public_key"]))
        except (KeyError, ValueError) as exc:
            raise CryptoStructureError(f"Malformed ed25519 identity: {data!r}") from exc
        return PublicKeyIdentity(raw)
    if kind is IdentityKind.DARC:
        if "darc_id" not in data:
            raise CryptoStructureError(f"Malformed darc identity: {data!r}")
        return DarcIdentity(DarcId.from_hex(str(data["darc_id"])))
    raise CryptoStructureError(f"Unhandled identity kind {kind!r}.")


__all__ = [
    "DarcIdentity",
    "Identity",
    "IdentityKind",
    "PublicKeyIdentity",
    "identity_from_dict",
    "identity_to_dict",
    "parse_identity",
]
