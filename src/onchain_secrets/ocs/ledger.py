"""Ledger records as returned by ``Skipchain/GetSingleBlock``.

A block's ``data`` holds one transaction, and a transaction holds exactly
one of: a Darc (genesis and Darc updates), a write record or a read record.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional

from onchain_secrets.darc.darc import Darc
from onchain_secrets.darc.ids import SkipblockId
from onchain_secrets.errors import CommunicationError, OnchainSecretsError
from onchain_secrets.ocs.documents import ReadRequest, WriteRequest


@dataclass(frozen=True)
class Transaction:
    """The payload of one ledger block."""

    darc: Optional[Darc] = None
    write: Optional[WriteRequest] = None
    read: Optional[ReadRequest] = None

    def to_bytes(self) -> bytes:
        payload = {
            "darc": self.darc.to_dict() if self.darc else None,
            "write": self.write.to_dict() if self.write else None,
            "read": self.read.to_dict() if self.read else None,
        }
        return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Transaction":
        """Decode block data; anything malformed is a communication failure."""
        try:
            payload = json.loads(raw.decode("utf-8"))
            return cls(
                darc=Darc.from_dict(payload["darc"]) if payload.get("darc") else None,
                write=WriteRequest.from_dict(payload["write"]) if payload.get("write") else None,
                read=ReadRequest.from_dict(payload["read"]) if payload.get("read") else None,
            )
        except (ValueError, KeyError, TypeError, AttributeError, OnchainSecretsError) as exc:
            raise CommunicationError(f"Block does not hold a valid transaction: {exc}") from exc


@dataclass(frozen=True)
class SkipBlock:
    """One ledger block: its hash, position and raw transaction bytes."""

    hash: SkipblockId
    index: int
    data: bytes

    def transaction(self) -> Transaction:
        return Transaction.from_bytes(self.data)


__all__ = ["SkipBlock", "Transaction"]
