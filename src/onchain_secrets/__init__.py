"""onchain-secrets — encrypted documents on a ledger with Darc-based access control.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import onchain_secrets
>>> onchain_secrets.__version__
'0.1.0'

Quick start
-----------
::

    from onchain_secrets import (
        # Access control
        Darc, Role, Signer, DarcSignature, SignaturePath, DarcResolver,
        # Documents
        Document, WriteRequest, ReadRequest, DecryptKey,
        # Client
        OnchainSecretsClient, ClientConfig, Roster, HttpTransport,
    )
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------
from onchain_secrets.errors import (
    AuthorizationResolutionError,
    ClientStateError,
    CommunicationError,
    CryptoStructureError,
    DarcEvolutionError,
    OnchainSecretsError,
)

# ------------------------------------------------------------------
# Keys
# ------------------------------------------------------------------
from onchain_secrets.crypto.keys import Point, ReencryptionKeyPair, SigningKey

# ------------------------------------------------------------------
# Access control
# ------------------------------------------------------------------
from onchain_secrets.darc.darc import Darc, Role
from onchain_secrets.darc.expression import all_of, any_of, parse_expression
from onchain_secrets.darc.identity import DarcIdentity, Identity, PublicKeyIdentity, parse_identity
from onchain_secrets.darc.ids import DarcId, ReadRequestId, SkipblockId, WriteRequestId
from onchain_secrets.darc.resolver import DarcResolver
from onchain_secrets.darc.signature import DarcSignature, SignaturePath, Signer

# ------------------------------------------------------------------
# Documents and ledger records
# ------------------------------------------------------------------
from onchain_secrets.ocs.documents import (
    DecryptKey,
    Document,
    ReadRequest,
    WriteRequest,
    ephemeral_message,
)
from onchain_secrets.ocs.ledger import SkipBlock, Transaction

# ------------------------------------------------------------------
# Network and client
# ------------------------------------------------------------------
from onchain_secrets.network.roster import Roster, ServerIdentity
from onchain_secrets.network.transport import HttpTransport, Transport
from onchain_secrets.client import ChainState, ClientConfig, NodeStatus, OnchainSecretsClient

__all__ = [
    # version
    "__version__",
    # errors
    "AuthorizationResolutionError",
    "ClientStateError",
    "CommunicationError",
    "CryptoStructureError",
    "DarcEvolutionError",
    "OnchainSecretsError",
    # keys
    "Point",
    "ReencryptionKeyPair",
    "SigningKey",
    # access control
    "Darc",
    "DarcId",
    "DarcIdentity",
    "DarcResolver",
    "DarcSignature",
    "Identity",
    "PublicKeyIdentity",
    "ReadRequestId",
    "Role",
    "SignaturePath",
    "Signer",
    "SkipblockId",
    "WriteRequestId",
    "all_of",
    "any_of",
    "parse_expression",
    "parse_identity",
    # documents
    "DecryptKey",
    "Document",
    "ReadRequest",
    "SkipBlock",
    "Transaction",
    "WriteRequest",
    "ephemeral_message",
    # network and client
    "ChainState",
    "ClientConfig",
    "HttpTransport",
    "NodeStatus",
    "OnchainSecretsClient",
    "Roster",
    "ServerIdentity",
    "Transport",
]
