"""Roster — the ordered set of servers that hold a ledger.

Rosters are usually loaded from the TOML file a cothority publishes::

    [[servers]]
      Address = "tls://10.0.0.1:7770"
      Public = "4e3008c1a2b6e022fb60b76b834f174911653e9c9b4156cc8845bfb334075655"
      Description = "conode 1"

Every ledger call is directed at the first server (the leader). Only the
health check contacts every server.
"""
from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Mapping, Sequence


@dataclass(frozen=True)
class ServerIdentity:
    """One server of the roster.

    Parameters
    ----------
    address:
        ``scheme://host:port`` or bare ``host:port``.
    public:
        Hex-encoded public key of the server, if known.
    description:
        Human-readable label.
    """

    address: str
    public: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        if not self.address.strip():
            raise ValueError("Server address must not be empty.")

    @property
    def host_port(self) -> str:
        """The address without its scheme."""
        _, sep, rest = self.address.partition("://")
        return rest if sep else self.address

    def to_dict(self) -> dict[str, str]:
        return {"address": self.address, "public": self.public, "description": self.description}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "ServerIdentity":
        # Accept both the cothority TOML capitalization and our own keys.
        address = data.get("Address", data.get("address"))
        if not address:
            raise ValueError(f"Server entry has no address: {dict(data)!r}")
        return cls(
            address=str(address),
            public=str(data.get("Public", data.get("public", "")) or ""),
            description=str(data.get("Description", data.get("description", "")) or ""),
        )

    def __str__(self) -> str:
        return self.address


class Roster:
    """An ordered, non-empty list of :class:`ServerIdentity`.

    Parameters
    ----------
    nodes:
        The servers; the first one is the leader.

    Raises
    ------
    ValueError
        If *nodes* is empty or lists the same address twice.
    """

    def __init__(self, nodes: Sequence[ServerIdentity]) -> None:
        nodes = tuple(nodes)
        if not nodes:
            raise ValueError("A roster needs at least one server.")
        addresses = [n.address for n in nodes]
        if len(set(addresses)) != len(addresses):
            raise ValueError("Roster lists the same server address more than once.")
        self._nodes = nodes

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Roster":
        servers = data.get("servers", data.get("Servers"))
        if not isinstance(servers, list):
            raise ValueError("Roster data must contain a 'servers' list.")
        return cls([ServerIdentity.from_dict(s) for s in servers])

    @classmethod
    def from_toml(cls, text: str) -> "Roster":
        return cls.from_dict(tomllib.loads(text))

    @classmethod
    def load(cls, path: str | Path) -> "Roster":
        """Load a roster from a ``.toml`` or ``.json`` file."""
        path = Path(path)
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() == ".json":
            return cls.from_dict(json.loads(text))
        return cls.from_toml(text)

    def to_dict(self) -> dict[str, object]:
        return {"servers": [n.to_dict() for n in self._nodes]}

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def leader(self) -> ServerIdentity:
        return self._nodes[0]

    @property
    def nodes(self) -> tuple[ServerIdentity, ...]:
        return self._nodes

    def __iter__(self) -> Iterator[ServerIdentity]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Roster):
            return NotImplemented
        return self._nodes == other._nodes

    def __hash__(self) -> int:
        return hash(self._nodes)

    def __repr__(self) -> str:
        return f"Roster({', '.join(n.address for n in self._nodes)})"


__all__ = ["Roster", "ServerIdentity"]
