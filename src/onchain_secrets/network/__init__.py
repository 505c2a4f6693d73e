"""Roster, transport and wire messages for talking to ledger servers."""
from __future__ import annotations

from onchain_secrets.network.roster import Roster, ServerIdentity
from onchain_secrets.network.transport import HttpTransport, Transport

__all__ = ["HttpTransport", "Roster", "ServerIdentity", "Transport"]
