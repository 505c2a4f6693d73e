"""Distributed access-rights control: identities, Darcs and signature paths.

Quick start
-----------
::

    from onchain_secrets.darc import Darc, DarcResolver, Role, Signer

    admin = Signer.generate()
    writer = Signer.generate()

    darc = Darc.new(owners=[admin.identity], writers=[writer.identity])
    assert darc.evaluate(Role.WRITER, writer.identity)

    # Only an identity satisfying "invoke:evolve" may evolve the darc.
    evolved = darc.evolve(admin, description=b"v1")
    evolved.verify_evolution(darc)
"""
from __future__ import annotations

from onchain_secrets.darc.darc import Darc, Role
from onchain_secrets.darc.expression import (
    AllOf,
    AnyOf,
    Expression,
    Leaf,
    all_of,
    any_of,
    parse_expression,
)
from onchain_secrets.darc.identity import (
    DarcIdentity,
    Identity,
    IdentityKind,
    PublicKeyIdentity,
    identity_from_dict,
    identity_to_dict,
    parse_identity,
)
from onchain_secrets.darc.ids import DarcId, ReadRequestId, SkipblockId, WriteRequestId
from onchain_secrets.darc.resolver import DarcResolver
from onchain_secrets.darc.signature import DarcSignature, SignaturePath, Signer

__all__ = [
    "AllOf",
    "AnyOf",
    "Darc",
    "DarcId",
    "DarcIdentity",
    "DarcResolver",
    "DarcSignature",
    "Expression",
    "Identity",
    "IdentityKind",
    "Leaf",
    "PublicKeyIdentity",
    "ReadRequestId",
    "Role",
    "SignaturePath",
    "Signer",
    "SkipblockId",
    "WriteRequestId",
    "all_of",
    "any_of",
    "identity_from_dict",
    "identity_to_dict",
    "parse_identity",
    "parse_expression",
]
