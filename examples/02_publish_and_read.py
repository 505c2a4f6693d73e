#!/usr/bin/env python3
"""Example: Publish and read a document

Creates a ledger on the servers of a roster file, publishes an encrypted
document and reads it back through the re-encryption service.

Usage:
    python examples/02_publish_and_read.py public.toml

Requirements:
    pip install onchain-secrets
    A running set of ledger servers listed in the roster file.
"""
from __future__ import annotations

import sys

from onchain_secrets import (
    Darc,
    DarcSignature,
    Document,
    HttpTransport,
    OnchainSecretsClient,
    ReadRequest,
    ReencryptionKeyPair,
    Roster,
    Signer,
    ephemeral_message,
)


def main(roster_path: str) -> None:
    roster = Roster.load(roster_path)
    admin, writer, reader = Signer.generate(), Signer.generate(), Signer.generate()

    # Step 1: Check the servers before doing anything
    client = OnchainSecretsClient(roster, HttpTransport())
    if not client.verify():
        print("Not every server in the roster is healthy.")
        sys.exit(1)

    # Step 2: Create a ledger governed by an admin Darc
    admin_darc = Darc.new(
        owners=[admin.identity], writers=[writer.identity], readers=[reader.identity]
    )
    ledger_id = client.create_chain(admin_darc)
    print(f"Ledger: {ledger_id.hex()[:16]}")

    # Step 3: Publish an encrypted document
    write = client.publish(Document(b"launch codes", extra_data=b"label"), admin_darc, writer)
    print(f"Write request: {write.id.hex()[:16]}")

    # Step 4: File a read request and fetch the re-sealed key
    reader_keys = ReencryptionKeyPair.generate()
    read_id = client.create_read_request(ReadRequest.create(write.id, reader, reader_keys.public))
    key = client.get_decryption_key(read_id).recover_key(reader_keys)
    print(f"Document: {client.get_write(write.id).decrypt(key).data!r}")

    # Step 5: The same key, delivered to a one-time ephemeral key
    ephemeral = ReencryptionKeyPair.generate()
    signature = DarcSignature.create(reader, ephemeral_message(read_id, ephemeral.public))
    decrypt_key = client.get_decryption_key_ephemeral(read_id, signature, ephemeral.public)
    print(f"Ephemeral key matches: {decrypt_key.recover_key(ephemeral) == key}")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)
    main(sys.argv[1])
