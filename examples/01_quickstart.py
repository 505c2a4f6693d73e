#!/usr/bin/env python3
"""Example: Quickstart

Creates a Darc, evolves it, and proves a delegated read right through a
signature path. Runs entirely offline.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install onchain-secrets
"""
from __future__ import annotations

import onchain_secrets
from onchain_secrets import Darc, Role, SignaturePath, Signer, any_of


def main() -> None:
    print(f"onchain-secrets version: {onchain_secrets.__version__}")

    # Step 1: Keys for an administrator and a team member
    admin = Signer.generate()
    member = Signer.generate()

    # Step 2: A team Darc naming the member, and a document Darc delegating to it
    team = Darc.new(owners=[member.identity], description=b"team")
    documents = Darc(
        rules={"invoke:evolve": any_of(admin.identity), "read": any_of(team.identity)},
        description=b"documents",
    )
    print(f"Team darc:     {team.base.hex()[:16]}")
    print(f"Document darc: {documents.base.hex()[:16]}")

    # Step 3: Prove the member may read through the team Darc
    path = SignaturePath(darcs=(documents, team), target=member.identity, role=Role.READER)
    print(f"Member may read via path: {path.is_valid()}")

    # Step 4: Only the administrator can evolve the document Darc
    evolved = documents.evolve(admin, description=b"documents v1")
    evolved.verify_evolution(documents)
    print(f"Evolved to version {evolved.version}")

    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()
