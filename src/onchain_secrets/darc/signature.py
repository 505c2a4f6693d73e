"""Signature paths, signers and Darc signatures.

A :class:`SignaturePath` proves that a target identity holds a role in a
base Darc, possibly through a chain of Darcs that delegate to each other via
:class:`~onchain_secrets.darc.identity.DarcIdentity` references::

    base Darc --role--> darc:<D1> --role--> darc:<D2> --role--> ed25519:<target>

Paths usually come from the remote service, which sees the whole trust
graph. They are only trusted after :meth:`SignaturePath.validate` has
checked every hop locally.

A :class:`DarcSignature` bundles an Ed25519 signature with the signer's
identity and, when the signer is not named directly in the Darc, the path
that authorizes it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from onchain_secrets.crypto.keys import SigningKey, verify_signature
from onchain_secrets.darc.darc import Darc, Role
from onchain_secrets.darc.identity import (
    DarcIdentity,
    Identity,
    PublicKeyIdentity,
    identity_from_dict,
    identity_to_dict,
)
from onchain_secrets.darc.ids import DarcId
from onchain_secrets.errors import AuthorizationResolutionError, CryptoStructureError


# ---------------------------------------------------------------------------
# SignaturePath
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignaturePath:
    """An ordered chain of Darcs from a base Darc to a target identity.

    Parameters
    ----------
    darcs:
        Darcs ordered from the base (first) to the leaf (last).
    target:
        The identity the path ends at.
    role:
        The role that must hold at every hop.
    """

    darcs: tuple[Darc, ...]
    target: Identity
    role: Role

    def __post_init__(self) -> None:
        object.__setattr__(self, "darcs", tuple(self.darcs))

    @property
    def base(self) -> Darc:
        if not self.darcs:
            raise AuthorizationResolutionError("Signature path is empty.")
        return self.darcs[0]

    @property
    def leaf(self) -> Darc:
        if not self.darcs:
            raise AuthorizationResolutionError("Signature path is empty.")
        return self.darcs[-1]

    def validate(self) -> None:
        """Check every hop of the path.

        Raises
        ------
        AuthorizationResolutionError
            If the path is empty, visits a Darc twice, has a hop whose rule
            for :attr:`role` does not name the next Darc, or ends at a Darc
            whose rule is not satisfied by :attr:`target`.
        """
        if not self.darcs:
            raise AuthorizationResolutionError("Signature path is empty.")

        visited: set[DarcId] = set()
        last = len(self.darcs) - 1
        for index, darc in enumerate(self.darcs):
            if darc.base in visited:
                raise AuthorizationResolutionError(
                    f"Signature path revisits darc {darc.base.hex()[:16]} at hop {index}."
                )
            visited.add(darc.base)

            if index < last:
                nxt = self.darcs[index + 1]
                linked = darc.evaluate_with(
                    self.role,
                    lambda leaf: isinstance(leaf, DarcIdentity) and nxt.matches(leaf.darc_id),
                )
                if not linked:
                    raise AuthorizationResolutionError(
                        f"Hop {index}: darc {darc.base.hex()[:16]} does not grant "
                        f"{self.role.action!r} to darc {nxt.base.hex()[:16]}."
                    )
            elif not darc.evaluate(self.role, self.target):
                raise AuthorizationResolutionError(
                    f"Final darc {darc.base.hex()[:16]} does not grant "
                    f"{self.role.action!r} to {self.target}."
                )

    def is_valid(self) -> bool:
        try:
            self.validate()
        except AuthorizationResolutionError:
            return False
        return True

    def to_dict(self) -> dict[str, object]:
        return {
            "darcs": [d.to_dict() for d in self.darcs],
            "target": identity_to_dict(self.target),
            "role": self.role.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "SignaturePath":
        try:
            role = Role(str(data["role"]))
            darcs = tuple(Darc.from_dict(d) for d in data["darcs"])  # type: ignore[union-attr]
            target = identity_from_dict(data["target"])  # type: ignore[arg-type]
        except (KeyError, TypeError, ValueError) as exc:
            raise CryptoStructureError(f"Malformed signature path: {exc}") from exc
        return cls(darcs=darcs, target=target, role=role)


# ---------------------------------------------------------------------------
# Signer
# ---------------------------------------------------------------------------


class Signer:
    """An Ed25519 signing key together with the identity it proves.

    Example
    -------
    ::

        signer = Signer.generate()
        darc = Darc.new(owners=[signer.identity])
        evolved = darc.evolve(signer, description=b"second version")
    """

    def __init__(self, key: SigningKey) -> None:
        self._key = key

    @classmethod
    def generate(cls) -> "Signer":
        return cls(SigningKey.generate())

    @classmethod
    def from_private_bytes(cls, private_bytes: bytes) -> "Signer":
        return cls(SigningKey(private_bytes))

    @property
    def identity(self) -> PublicKeyIdentity:
        return PublicKeyIdentity(self._key.public_bytes)

    @property
    def private_bytes(self) -> bytes:
        return self._key.private_bytes

    def sign(self, message: bytes) -> bytes:
        return self._key.sign(message)

    def __repr__(self) -> str:
        return f"Signer({self.identity})"


# ---------------------------------------------------------------------------
# DarcSignature
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DarcSignature:
    """A signature by a public-key identity, optionally with its signature path.

    Parameters
    ----------
    signature:
        64-byte Ed25519 signature over the signed message.
    signer:
        The identity whose key produced the signature.
    path:
        Path from the authorizing Darc to :attr:`signer`. ``None`` when the
        signer is named directly in the Darc's rule.
    """

    signature: bytes
    signer: PublicKeyIdentity
    path: Optional[SignaturePath] = None

    def __post_init__(self) -> None:
        if len(self.signature) != 64:
            raise CryptoStructureError(
                f"Ed25519 signature must be 64 bytes, got {len(self.signature)}."
            )

    @classmethod
    def create(
        cls, signer: Signer, message: bytes, path: SignaturePath | None = None
    ) -> "DarcSignature":
        """Sign *message* with *signer*, attaching *path* if given."""
        return cls(signature=signer.sign(message), signer=signer.identity, path=path)

    def authorizes(self, darc: Darc, role: Role, *, exact_head: bool = False) -> bool:
        """Return True when the signer holds *role* in *darc*.

        Without a path the signer must be named directly in the rule. With a
        path, the path must be valid, prove *role*, end at the signer and
        start at *darc*: the same version when *exact_head* is set, any
        version of the same Darc otherwise.
        """
        if self.path is None:
            return darc.evaluate(role, self.signer)
        path = self.path
        if path.role is not role or path.target != self.signer or not path.darcs:
            return False
        head = path.darcs[0]
        if exact_head and head.id != darc.id:
            return False
        if head.base != darc.base:
            return False
        return path.is_valid()

    def verify(self, message: bytes, darc: Darc, role: Role, *, exact_head: bool = False) -> bool:
        """Check the Ed25519 signature over *message* and the authorization."""
        if not verify_signature(self.signer.public_key, self.signature, message):
            return False
        return self.authorizes(darc, role, exact_head=exact_head)

    def to_dict(self) -> dict[str, object]:
        return {
            "signature": self.signature.hex(),
            "signer": identity_to_dict(self.signer),
            "path": self.path.to_dict() if self.path else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "DarcSignature":
        try:
            raw = bytes.fromhex(str(data["signature"]))
            signer = identity_from_dict(data["signer"])  # type: ignore[arg-type]
        except (KeyError, TypeError, ValueError) as exc:
            raise CryptoStructureError(f"Malformed darc signature: {exc}") from exc
        if not isinstance(signer, PublicKeyIdentity):
            raise CryptoStructureError("A darc signature must be made by a public-key identity.")
        path = data.get("path")
        return cls(
            signature=raw,
            signer=signer,
            path=SignaturePath.from_dict(path) if path else None,  # type: ignore[arg-type]
        )


__all__ = ["DarcSignature", "SignaturePath", "Signer"]
