"""Darc — a versioned, rule-based access-control list.

A Darc maps action names to :mod:`rule expressions <onchain_secrets.darc.expression>`
over identities. Darcs are immutable values: changing the rules means
*evolving* the Darc into a new version that points back at the version it
came from and carries a signature satisfying that previous version's
``invoke:evolve`` rule. The ledger is authoritative for accepting an
evolution, but the client refuses to build or submit one that it can already
tell is unauthorized.

The id of a Darc is the SHA-256 hash of its canonical JSON encoding, which
covers every field except the evolution signature. Identities refer to a
Darc by its *base id*, the id of version 0, so a reference stays valid as the
Darc evolves.
"""
from __future__ import annotations

import dataclasses
import enum
import hashlib
import json
from dataclasses import dataclass, field
from functools import cached_property
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, Optional

from onchain_secrets.darc.expression import Expression, any_of, parse_expression
from onchain_secrets.darc.identity import DarcIdentity, Identity
from onchain_secrets.darc.ids import DarcId
from onchain_secrets.errors import CryptoStructureError, DarcEvolutionError

if TYPE_CHECKING:
    from onchain_secrets.darc.signature import DarcSignature, SignaturePath, Signer


class Role(str, enum.Enum):
    """Roles a signature path can prove; the value is the rule's action name."""

    OWNER = "_owner"
    WRITER = "write"
    READER = "read"
    ADMIN = "invoke:evolve"

    @property
    def action(self) -> str:
        return self.value


def _action_name(role: Role | str) -> str:
    return role.action if isinstance(role, Role) else str(role)


@dataclass(frozen=True)
class Darc:
    """One version of a Darc.

    Parameters
    ----------
    rules:
        Mapping from action name to the expression that must be satisfied
        to perform that action. Actions absent from the mapping are denied.
    version:
        Zero for a new Darc, incremented by one on every evolution.
    description:
        Free-form bytes describing the Darc.
    base_id:
        Id of version 0. ``None`` for version 0 itself.
    prev_id:
        Id of the version this one evolved from. ``None`` for version 0.
    signature:
        Evolution signature by an identity satisfying the previous version's
        ``invoke:evolve`` rule. ``None`` for version 0 and for unsigned drafts.

    Examples
    --------
    >>> from onchain_secrets.darc.signature import Signer
    >>> owner = Signer.generate()
    >>> darc = Darc.new(owners=[owner.identity])
    >>> darc.evaluate(Role.ADMIN, owner.identity)
    True
    """

    rules: Mapping[str, Expression]
    version: int = 0
    description: bytes = b""
    base_id: Optional[DarcId] = None
    prev_id: Optional[DarcId] = None
    signature: Optional["DarcSignature"] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", dict(self.rules))
        if self.version < 0:
            raise CryptoStructureError(f"Darc version must be >= 0, got {self.version}.")
        if self.version == 0:
            if self.prev_id is not None or self.base_id is not None:
                raise CryptoStructureError("Version 0 of a Darc cannot point to a previous version.")
        elif self.prev_id is None or self.base_id is None:
            raise CryptoStructureError(
                f"Darc version {self.version} must carry prev_id and base_id."
            )

    def __hash__(self) -> int:
        return hash(self.id)

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def new(
        cls,
        owners: Iterable[Identity],
        writers: Iterable[Identity] = (),
        readers: Iterable[Identity] = (),
        description: bytes = b"",
    ) -> "Darc":
        """Create a version-0 Darc from lists of identities.

        Owners may evolve the Darc and act as owners. Writers and readers get
        their own rules; when no readers are given the owners may read.
        """
        owners = list(owners)
        if not owners:
            raise CryptoStructureError("A Darc needs at least one owner.")
        rules: dict[str, Expression] = {
            Role.ADMIN.action: any_of(*owners),
            Role.OWNER.action: any_of(*owners),
        }
        writers = list(writers)
        if writers:
            rules[Role.WRITER.action] = any_of(*writers)
        readers = list(readers) or owners
        rules[Role.READER.action] = any_of(*readers)
        return cls(rules=rules, description=description)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @cached_property
    def id(self) -> DarcId:
        return DarcId(hashlib.sha256(self.canonical_bytes()).digest())

    @property
    def base(self) -> DarcId:
        """The id every version of this Darc shares."""
        return self.base_id if self.base_id is not None else self.id

    @property
    def identity(self) -> DarcIdentity:
        return DarcIdentity(self.base)

    def matches(self, darc_id: DarcId) -> bool:
        """Return True when *darc_id* names this version or its base."""
        return darc_id == self.id or darc_id == self.base

    def canonical_bytes(self) -> bytes:
        """Deterministic encoding of everything the id covers."""
        payload = {
            "version": self.version,
            "description": self.description.hex(),
            "base_id": self.base_id.hex() if self.base_id else None,
            "prev_id": self.prev_id.hex() if self.prev_id else None,
            "rules": {action: str(expr) for action, expr in self.rules.items()},
        }
        return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate_with(self, role: Role | str, predicate: Callable[[Identity], bool]) -> bool:
        """Evaluate the rule for *role* with a custom leaf predicate.

        Unknown actions are denied.
        """
        expr = self.rules.get(_action_name(role))
        if expr is None:
            return False
        return expr.evaluate(predicate)

    def evaluate(self, role: Role | str, identity: Identity) -> bool:
        """Return True when *identity* alone satisfies the rule for *role*."""
        return self.evaluate_with(role, lambda leaf: leaf.satisfied_by(identity))

    def evaluate_all(self, role: Role | str, identities: Iterable[Identity]) -> bool:
        """Return True when the presented *identities* together satisfy *role*."""
        presented = list(identities)
        return self.evaluate_with(
            role, lambda leaf: any(leaf.satisfied_by(i) for i in presented)
        )

    # ------------------------------------------------------------------
    # Evolution
    # ------------------------------------------------------------------

    def evolve(
        self,
        signer: "Signer",
        rules: Mapping[str, Expression] | None = None,
        *,
        path: "SignaturePath | None" = None,
        description: bytes | None = None,
    ) -> "Darc":
        """Build and sign the next version of this Darc.

        Parameters
        ----------
        signer:
            The identity authorizing the evolution.
        rules:
            Rules of the new version; defaults to the current rules.
        path:
            Signature path proving *signer* satisfies ``invoke:evolve`` through
            delegated Darcs. Not needed when the signer is named directly.
        description:
            New description; defaults to the current one.

        Raises
        ------
        DarcEvolutionError
            If the signer is not authorized by the current version. No
            request is ever sent for such an evolution.
        """
        from onchain_secrets.darc.signature import DarcSignature

        draft = Darc(
            rules=self.rules if rules is None else rules,
            version=self.version + 1,
            description=self.description if description is None else description,
            base_id=self.base,
            prev_id=self.id,
        )
        signature = DarcSignature.create(signer, draft.id.raw, path=path)
        if not signature.authorizes(self, Role.ADMIN, exact_head=True):
            raise DarcEvolutionError(
                f"Signer {signer.identity} is not authorized to evolve darc {self.base.hex()[:16]}."
            )
        return dataclasses.replace(draft, signature=signature)

    def verify_evolution(self, previous: "Darc") -> None:
        """Check that this Darc is a valid, signed evolution of *previous*.

        Raises
        ------
        DarcEvolutionError
            On a version gap, mismatched ids, a missing or invalid
            signature, or a signer not authorized by *previous*.
        """
        if self.version != previous.version + 1:
            raise DarcEvolutionError(
                f"Version {self.version} does not follow version {previous.version}."
            )
        if self.prev_id != previous.id or self.base != previous.base:
            raise DarcEvolutionError("Darc does not point to the given previous version.")
        if self.signature is None:
            raise DarcEvolutionError(f"Darc version {self.version} carries no evolution signature.")
        if not self.signature.verify(self.id.raw, previous, Role.ADMIN, exact_head=True):
            raise DarcEvolutionError("Evolution signature does not satisfy the previous version.")

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        return {
            "version": self.version,
            "description": self.description.hex(),
            "base_id": self.base_id.hex() if self.base_id else None,
            "prev_id": self.prev_id.hex() if self.prev_id else None,
            "rules": {action: str(expr) for action, expr in self.rules.items()},
            "signature": self.signature.to_dict() if self.signature else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Darc":
        """Reconstruct a Darc from :meth:`to_dict` output."""
        from onchain_secrets.darc.signature import DarcSignature

        try:
            raw_rules = dict(data["rules"])  # type: ignore[call-overload]
            description = bytes.fromhex(str(data.get("description") or ""))
        except (KeyError, TypeError, ValueError) as exc:
            raise CryptoStructureError(f"Malformed darc record: {exc}") from exc
        signature = data.get("signature")
        return cls(
            rules={str(k): parse_expression(str(v)) for k, v in raw_rules.items()},
            version=int(data.get("version") or 0),  # type: ignore[arg-type]
            description=description,
            base_id=DarcId.from_hex(str(data["base_id"])) if data.get("base_id") else None,
            prev_id=DarcId.from_hex(str(data["prev_id"])) if data.get("prev_id") else None,
            signature=DarcSignature.from_dict(signature) if signature else None,  # type: ignore[arg-type]
        )

    def __str__(self) -> str:
        lines = [f"Darc {self.base.hex()[:16]} v{self.version} ({self.id.hex()[:16]})"]
        for action in sorted(self.rules):
            lines.append(f"  {action}: {self.rules[action]}")
        return "\n".join(lines)


__all__ = ["Darc", "Role"]
