"""On-chain secrets: documents, write/read records and ledger blocks."""
from __future__ import annotations

from onchain_secrets.ocs.documents import (
    DecryptKey,
    Document,
    ReadRequest,
    WriteRequest,
    ephemeral_message,
    read_message,
)
from onchain_secrets.ocs.ledger import SkipBlock, Transaction

__all__ = [
    "DecryptKey",
    "Document",
    "ReadRequest",
    "SkipBlock",
    "Transaction",
    "WriteRequest",
    "ephemeral_message",
    "read_message",
]
