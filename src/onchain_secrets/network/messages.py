"""Pydantic request/reply models and the JSON codec.

One model pair per service call. Binary values travel as lowercase hex with
an even number of digits; ids and points are exactly 32 bytes (64 hex
characters). Darcs, identities, signatures and ledger records travel as the
plain dictionaries produced by their ``to_dict`` methods.

:func:`decode` turns every validation failure into a
:class:`~onchain_secrets.errors.CommunicationError`: a reply the client
cannot read is indistinguishable from a failed call.
"""
from __future__ import annotations

from typing import Annotated, Any, Optional, TypeVar

from pydantic import BaseModel, Field, ValidationError

from onchain_secrets.errors import CommunicationError

HexStr = Annotated[str, Field(pattern=r"^(?:[0-9a-f]{2})*$")]
Hex32 = Annotated[str, Field(pattern=r"^[0-9a-f]{64}$")]

# ---------------------------------------------------------------------------
# Service names
# ---------------------------------------------------------------------------

CREATE_SKIPCHAINS = "OnChainSecrets/CreateSkipchainsRequest"
UPDATE_DARC = "OnChainSecrets/UpdateDarc"
SHARED_PUBLIC = "OnChainSecrets/SharedPublicRequest"
WRITE_REQUEST = "OnChainSecrets/WriteRequest"
GET_DARC_PATH = "OnChainSecrets/GetDarcPath"
READ_REQUEST = "OnChainSecrets/ReadRequest"
DECRYPT_KEY = "OnChainSecrets/DecryptKeyRequest"
GET_LATEST_DARC = "OnChainSecrets/GetLatestDarc"
GET_SINGLE_BLOCK = "Skipchain/GetSingleBlock"
STATUS = "Status/Request"


class ServerModel(BaseModel):
    address: str
    public: str = ""
    description: str = ""


class CreateSkipchainsRequest(BaseModel):
    roster: list[ServerModel]
    writers: dict[str, Any]


class CreateSkipchainsReply(BaseModel):
    ocs: Hex32
    x: Hex32


class UpdateDarcRequest(BaseModel):
    ocs: Hex32
    darc: dict[str, Any]


class UpdateDarcReply(BaseModel):
    sb: Hex32


class SharedPublicRequest(BaseModel):
    genesis: Hex32


class SharedPublicReply(BaseModel):
    x: Hex32


class WriteRequestMessage(BaseModel):
    ocs: Hex32
    write: dict[str, Any]
    readers: dict[str, Any]
    signature: dict[str, Any]


class WriteReply(BaseModel):
    sb: Hex32


class GetDarcPathRequest(BaseModel):
    ocs: Hex32
    base_darc_id: Hex32
    identity: dict[str, Any]
    role: str


class GetDarcPathReply(BaseModel):
    path: list[dict[str, Any]] = Field(default_factory=list)


class ReadRequestMessage(BaseModel):
    ocs: Hex32
    read: dict[str, Any]


class ReadReply(BaseModel):
    sb: Hex32


class GetSingleBlockRequest(BaseModel):
    id: Hex32


class SkipBlockReply(BaseModel):
    hash: Hex32
    index: int = Field(ge=0)
    data: HexStr


class DecryptKeyRequest(BaseModel):
    read: Hex32
    ephemeral: Optional[Hex32] = None
    signature: Optional[dict[str, Any]] = None


class DecryptKeyReply(BaseModel):
    ephemeral: Hex32
    ciphertext: HexStr
    x: Hex32


class GetLatestDarcRequest(BaseModel):
    ocs: Hex32
    darc_id: Hex32


class GetLatestDarcReply(BaseModel):
    darcs: list[dict[str, Any]] = Field(default_factory=list)


class StatusRequest(BaseModel):
    pass


class StatusReply(BaseModel):
    status: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------

M = TypeVar("M", bound=BaseModel)


def encode(message: BaseModel) -> bytes:
    return message.model_dump_json().encode("utf-8")


def decode(model: type[M], raw: bytes) -> M:
    """Parse *raw* into *model*.

    Raises
    ------
    CommunicationError
        If *raw* is not valid JSON for *model*.
    """
    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        raise CommunicationError(
            f"Could not decode {model.__name__}: {exc.error_count()} validation error(s)"
        ) from exc


__all__ = [
    "CREATE_SKIPCHAINS",
    "CreateSkipchainsReply",
    "CreateSkipchainsRequest",
    "DECRYPT_KEY",
    "DecryptKeyReply",
    "DecryptKeyRequest",
    "GET_DARC_PATH",
    "GET_LATEST_DARC",
    "GET_SINGLE_BLOCK",
    "GetDarcPathReply",
    "GetDarcPathRequest",
    "GetLatestDarcReply",
    "GetLatestDarcRequest",
    "GetSingleBlockRequest",
    "READ_REQUEST",
    "ReadReply",
    "ReadRequestMessage",
    "SHARED_PUBLIC",
    "STATUS",
    "ServerModel",
    "SharedPublicReply",
    "SharedPublicRequest",
    "SkipBlockReply",
    "StatusReply",
    "StatusRequest",
    "UPDATE_DARC",
    "UpdateDarcReply",
    "UpdateDarcRequest",
    "WRITE_REQUEST",
    "WriteReply",
    "decode",
    "encode",
]
