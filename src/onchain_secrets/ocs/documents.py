"""Documents and the write → read → decrypt records.

``Document``
    Plaintext and public extra data, held only by the writer and the
    eventual reader.
``WriteRequest``
    The encrypted document, its symmetric key sealed towards the ledger's
    shared public key, and the Darc whose readers may ask for the key.
``ReadRequest``
    A signed request by a reader for the key of one write record.
``DecryptKey``
    The key re-sealed by the service towards the reader; opened locally
    with the reader's private key.
"""
from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from typing import Mapping, Optional

from onchain_secrets.crypto.envelope import (
    SealedKey,
    decrypt_document,
    encrypt_document,
    new_symmetric_key,
    open_key,
    seal_key,
)
from onchain_secrets.crypto.keys import Point, ReencryptionKeyPair
from onchain_secrets.darc.darc import Darc
from onchain_secrets.darc.identity import Identity, identity_from_dict, identity_to_dict
from onchain_secrets.darc.ids import ReadRequestId, WriteRequestId
from onchain_secrets.darc.signature import DarcSignature, SignaturePath, Signer
from onchain_secrets.errors import CryptoStructureError


def _hexbytes(data: Mapping[str, object], key: str) -> bytes:
    try:
        return bytes.fromhex(str(data.get(key) or ""))
    except ValueError as exc:
        raise CryptoStructureError(f"Field {key!r} is not valid hex.") from exc


@dataclass
class Document:
    """A plaintext document and its unencrypted extra data."""

    data: bytes
    extra_data: bytes = b""


# ---------------------------------------------------------------------------
# WriteRequest
# ---------------------------------------------------------------------------


@dataclass
class WriteRequest:
    """An encrypted document ready to be published.

    Parameters
    ----------
    data:
        AES-GCM ciphertext of the document.
    encrypted_key:
        The document key sealed towards the ledger's shared public key.
    owner:
        Darc whose ``read`` rule decides who may request the key.
    extra_data:
        Public data stored in clear next to the ciphertext.
    id:
        Assigned by the ledger when the write is accepted.
    """

    data: bytes
    encrypted_key: SealedKey
    owner: Darc
    extra_data: bytes = b""
    id: Optional[WriteRequestId] = None

    @classmethod
    def from_document(
        cls, document: Document, owner: Darc, shared_public_key: Point
    ) -> "WriteRequest":
        """Encrypt *document* under a fresh key sealed towards the ledger."""
        key = new_symmetric_key()
        ciphertext = encrypt_document(key, document.data, owner.base.raw)
        return cls(
            data=ciphertext,
            encrypted_key=seal_key(key, shared_public_key),
            owner=owner,
            extra_data=document.extra_data,
        )

    def signing_message(self) -> bytes:
        """Bytes a writer signs to publish this request."""
        payload = {
            "data": hashlib.sha256(self.data).hexdigest(),
            "extra_data": self.extra_data.hex(),
            "encrypted_key": self.encrypted_key.to_dict(),
            "owner": self.owner.id.hex(),
        }
        return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")

    def sign(self, signer: Signer, path: SignaturePath | None = None) -> DarcSignature:
        return DarcSignature.create(signer, self.signing_message(), path=path)

    def decrypt(self, key: bytes) -> Document:
        """Decrypt the document with the recovered symmetric *key*."""
        plaintext = decrypt_document(key, self.data, self.owner.base.raw)
        return Document(data=plaintext, extra_data=self.extra_data)

    def to_dict(self) -> dict[str, object]:
        return {
            "data": self.data.hex(),
            "extra_data": self.extra_data.hex(),
            "encrypted_key": self.encrypted_key.to_dict(),
            "owner": self.owner.to_dict(),
            "id": self.id.hex() if self.id else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "WriteRequest":
        try:
            sealed = SealedKey.from_dict(data["encrypted_key"])  # type: ignore[arg-type]
            owner = Darc.from_dict(data["owner"])  # type: ignore[arg-type]
        except KeyError as exc:
            raise CryptoStructureError(f"Malformed write request: missing {exc}") from exc
        return cls(
            data=_hexbytes(data, "data"),
            encrypted_key=sealed,
            owner=owner,
            extra_data=_hexbytes(data, "extra_data"),
            id=WriteRequestId.from_hex(str(data["id"])) if data.get("id") else None,
        )


# ---------------------------------------------------------------------------
# ReadRequest
# ---------------------------------------------------------------------------


def read_message(write_id: WriteRequestId, reader_key: Point) -> bytes:
    return b"read" + write_id.raw + reader_key.raw


def ephemeral_message(read_id: ReadRequestId, ephemeral: Point) -> bytes:
    return b"decrypt" + read_id.raw + ephemeral.raw


@dataclass
class ReadRequest:
    """A reader's signed request for the key of one write record.

    Parameters
    ----------
    write_id:
        The write record whose key is requested.
    requester:
        The identity asking; a key or a Darc the signer belongs to.
    reader_key:
        Long-term point the key is re-sealed to on a direct decrypt request.
    signature:
        Signature over :func:`read_message`, authorized by the write's owner Darc.
    """

    write_id: WriteRequestId
    requester: Identity
    reader_key: Point
    signature: DarcSignature

    @classmethod
    def create(
        cls,
        write_id: WriteRequestId,
        signer: Signer,
        reader_key: Point,
        *,
        path: SignaturePath | None = None,
        requester: Identity | None = None,
    ) -> "ReadRequest":
        signature = DarcSignature.create(signer, read_message(write_id, reader_key), path=path)
        return cls(
            write_id=write_id,
            requester=requester if requester is not None else signer.identity,
            reader_key=reader_key,
            signature=signature,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "write_id": self.write_id.hex(),
            "requester": identity_to_dict(self.requester),
            "reader_key": self.reader_key.hex(),
            "signature": self.signature.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "ReadRequest":
        try:
            return cls(
                write_id=WriteRequestId.from_hex(str(data["write_id"])),
                requester=identity_from_dict(data["requester"]),  # type: ignore[arg-type]
                reader_key=Point.from_hex(str(data["reader_key"])),
                signature=DarcSignature.from_dict(data["signature"]),  # type: ignore[arg-type]
            )
        except KeyError as exc:
            raise CryptoStructureError(f"Malformed read request: missing {exc}") from exc


# ---------------------------------------------------------------------------
# DecryptKey
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DecryptKey:
    """Key material re-sealed by the service towards a reader's point.

    Never contains the plaintext document key.
    """

    key_material: SealedKey
    service_public_key: Point = field(compare=False)

    def recover_key(self, key_pair: ReencryptionKeyPair) -> bytes:
        """Open the key material with the reader's (or ephemeral) key pair."""
        return open_key(self.key_material, key_pair)


__all__ = [
    "DecryptKey",
    "Document",
    "ReadRequest",
    "WriteRequest",
    "ephemeral_message",
    "read_message",
]
