"""Shared fixtures: an in-process fake ledger service and a recording transport.

The fake service plays the remote side of the protocol: it stores Darc
histories and ledger blocks, searches signature paths, checks signatures
against Darcs, and re-seals document keys towards readers. Every server in
the roster routes to the same service instance.
"""
from __future__ import annotations

import collections
import threading

import pytest

from onchain_secrets.client import OnchainSecretsClient
from onchain_secrets.crypto.envelope import open_key, seal_key
from onchain_secrets.crypto.keys import Point, ReencryptionKeyPair
from onchain_secrets.darc.darc import Darc, Role
from onchain_secrets.darc.identity import DarcIdentity, identity_from_dict
from onchain_secrets.darc.ids import DarcId, ReadRequestId, SkipblockId
from onchain_secrets.darc.signature import DarcSignature, Signer
from onchain_secrets.network import messages
from onchain_secrets.network.roster import Roster, ServerIdentity
from onchain_secrets.ocs.documents import ReadRequest, WriteRequest, ephemeral_message, read_message
from onchain_secrets.ocs.ledger import Transaction


class ServiceRefused(RuntimeError):
    """The fake service rejected a request."""


class FakeLedgerService:
    """In-memory stand-in for the remote ledger and re-encryption service."""

    def __init__(self) -> None:
        self.blocks: dict[SkipblockId, tuple[int, bytes]] = {}
        self.histories: dict[DarcId, list[Darc]] = {}
        self.shared_keys: dict[SkipblockId, ReencryptionKeyPair] = {}
        self.path_override: list[Darc] | None = None
        self._handlers = {
            messages.CREATE_SKIPCHAINS: self._create_skipchains,
            messages.UPDATE_DARC: self._update_darc,
            messages.SHARED_PUBLIC: self._shared_public,
            messages.WRITE_REQUEST: self._write,
            messages.GET_DARC_PATH: self._darc_path,
            messages.READ_REQUEST: self._read,
            messages.GET_SINGLE_BLOCK: self._single_block,
            messages.DECRYPT_KEY: self._decrypt_key,
            messages.GET_LATEST_DARC: self._latest_darc,
            messages.STATUS: self._status,
        }

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle(self, service_name: str, payload: bytes) -> bytes:
        handler = self._handlers.get(service_name)
        if handler is None:
            raise ServiceRefused(f"unknown service {service_name}")
        return handler(payload).model_dump_json().encode("utf-8")

    # ------------------------------------------------------------------
    # Storage helpers
    # ------------------------------------------------------------------

    def _store(self, transaction: Transaction) -> SkipblockId:
        block_id = SkipblockId.random()
        self.blocks[block_id] = (len(self.blocks), transaction.to_bytes())
        return block_id

    def _transaction(self, block_id: SkipblockId) -> Transaction:
        if block_id not in self.blocks:
            raise ServiceRefused(f"no block {block_id}")
        return Transaction.from_bytes(self.blocks[block_id][1])

    def latest(self, darc_id: DarcId) -> Darc | None:
        for history in self.histories.values():
            if any(d.matches(darc_id) for d in history):
                return history[-1]
        return None

    def _register(self, darc: Darc) -> None:
        if darc.version == 0:
            self.histories.setdefault(darc.base, [darc])

    def find_path(self, base_id: DarcId, target, role: Role) -> list[Darc]:
        start = self.latest(base_id)
        if start is None:
            return []
        queue = collections.deque([[start]])
        while queue:
            path = queue.popleft()
            darc = path[-1]
            if darc.evaluate(role, target):
                return path
            expr = darc.rules.get(role.action)
            if expr is None:
                continue
            for ident in expr.identities():
                if isinstance(ident, DarcIdentity):
                    nxt = self.latest(ident.darc_id)
                    if nxt is not None and nxt.base not in {d.base for d in path}:
                        queue.append(path + [nxt])
        return []

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _create_skipchains(self, payload: bytes):
        request = messages.decode(messages.CreateSkipchainsRequest, payload)
        darc = Darc.from_dict(request.writers)
        self._register(darc)
        genesis = self._store(Transaction(darc=darc))
        self.shared_keys[genesis] = ReencryptionKeyPair.generate()
        return messages.CreateSkipchainsReply(
            ocs=genesis.hex(), x=self.shared_keys[genesis].public.hex()
        )

    def _update_darc(self, payload: bytes):
        request = messages.decode(messages.UpdateDarcRequest, payload)
        darc = Darc.from_dict(request.darc)
        if darc.version == 0:
            if darc.base in self.histories:
                raise ServiceRefused("darc already exists")
            self._register(darc)
        else:
            history = self.histories.get(darc.base)
            if history is None:
                raise ServiceRefused("unknown darc")
            darc.verify_evolution(history[-1])
            history.append(darc)
        return messages.UpdateDarcReply(sb=self._store(Transaction(darc=darc)).hex())

    def _shared_public(self, payload: bytes):
        request = messages.decode(messages.SharedPublicRequest, payload)
        key = self.shared_keys.get(SkipblockId.from_hex(request.genesis))
        if key is None:
            raise ServiceRefused("unknown ledger")
        return messages.SharedPublicReply(x=key.public.hex())

    def _write(self, payload: bytes):
        request = messages.decode(messages.WriteRequestMessage, payload)
        write = WriteRequest.from_dict(request.write)
        signature = DarcSignature.from_dict(request.signature)
        self._register(write.owner)
        owner = self.latest(write.owner.base) or write.owner
        if not signature.verify(write.signing_message(), owner, Role.WRITER):
            raise ServiceRefused("write signature does not satisfy the owner darc")
        return messages.WriteReply(sb=self._store(Transaction(write=write)).hex())

    def _darc_path(self, payload: bytes):
        request = messages.decode(messages.GetDarcPathRequest, payload)
        if self.path_override is not None:
            darcs = self.path_override
        else:
            darcs = self.find_path(
                DarcId.from_hex(request.base_darc_id),
                identity_from_dict(request.identity),
                Role(request.role),
            )
        return messages.GetDarcPathReply(path=[d.to_dict() for d in darcs])

    def _read(self, payload: bytes):
        request = messages.decode(messages.ReadRequestMessage, payload)
        read = ReadRequest.from_dict(request.read)
        write = self._transaction(read.write_id).write
        if write is None:
            raise ServiceRefused("read request does not point to a write record")
        owner = self.latest(write.owner.base) or write.owner
        message = read_message(read.write_id, read.reader_key)
        if not read.signature.verify(message, owner, Role.READER):
            raise ServiceRefused("read signature does not satisfy the owner darc")
        return messages.ReadReply(sb=self._store(Transaction(read=read)).hex())

    def _single_block(self, payload: bytes):
        request = messages.decode(messages.GetSingleBlockRequest, payload)
        block_id = SkipblockId.from_hex(request.id)
        if block_id not in self.blocks:
            raise ServiceRefused(f"no block {block_id}")
        index, data = self.blocks[block_id]
        return messages.SkipBlockReply(hash=block_id.hex(), index=index, data=data.hex())

    def _decrypt_key(self, payload: bytes):
        request = messages.decode(messages.DecryptKeyRequest, payload)
        read_block = SkipblockId.from_hex(request.read)
        read = self._transaction(read_block).read
        if read is None:
            raise ServiceRefused("not a read request")
        write = self._transaction(read.write_id).write
        if write is None:
            raise ServiceRefused("read request does not point to a write record")
        owner = self.latest(write.owner.base) or write.owner

        if request.ephemeral is not None:
            ephemeral = Point.from_hex(request.ephemeral)
            signature = DarcSignature.from_dict(request.signature or {})
            message = ephemeral_message(ReadRequestId(read_block.raw), ephemeral)
            if not signature.verify(message, owner, Role.READER):
                raise ServiceRefused("ephemeral signature does not satisfy the owner darc")
            target = ephemeral
        else:
            target = read.reader_key

        # The real service re-encrypts with threshold shares and never sees
        # the key; the fake opens it directly.
        shared = next(iter(self.shared_keys.values()))
        key = open_key(write.encrypted_key, shared)
        sealed = seal_key(key, target)
        return messages.DecryptKeyReply(
            ephemeral=sealed.ephemeral.hex(),
            ciphertext=sealed.ciphertext.hex(),
            x=shared.public.hex(),
        )

    def _latest_darc(self, payload: bytes):
        request = messages.decode(messages.GetLatestDarcRequest, payload)
        darc_id = DarcId.from_hex(request.darc_id)
        for history in self.histories.values():
            if any(d.matches(darc_id) for d in history):
                return messages.GetLatestDarcReply(darcs=[d.to_dict() for d in history])
        return messages.GetLatestDarcReply(darcs=[])

    def _status(self, payload: bytes):
        messages.decode(messages.StatusRequest, payload)
        return messages.StatusReply(status={"Available_Services": "OnChainSecrets,Skipchain"})


class FakeTransport:
    """Routes every server to one :class:`FakeLedgerService` and records calls."""

    def __init__(self, service: FakeLedgerService) -> None:
        self.service = service
        self.down: set[str] = set()
        self.garbled: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.timeouts: list[float | None] = []
        self._lock = threading.Lock()

    def send(
        self,
        server: ServerIdentity,
        service_name: str,
        payload: bytes,
        timeout: float | None = None,
    ) -> bytes:
        with self._lock:
            self.calls.append((server.address, service_name))
            self.timeouts.append(timeout)
        if server.address in self.down:
            raise ConnectionError(f"{server.address} is unreachable")
        if service_name in self.garbled:
            return b"\x00not json"
        return self.service.handle(service_name, payload)

    def count(self, service_name: str) -> int:
        return sum(1 for _, name in self.calls if name == service_name)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def admin() -> Signer:
    return Signer.generate()


@pytest.fixture()
def writer() -> Signer:
    return Signer.generate()


@pytest.fixture()
def reader() -> Signer:
    return Signer.generate()


@pytest.fixture()
def admin_darc(admin: Signer, writer: Signer, reader: Signer) -> Darc:
    return Darc.new(
        owners=[admin.identity],
        writers=[writer.identity],
        readers=[reader.identity],
        description=b"admin darc",
    )


@pytest.fixture()
def ledger() -> FakeLedgerService:
    return FakeLedgerService()


@pytest.fixture()
def transport(ledger: FakeLedgerService) -> FakeTransport:
    return FakeTransport(ledger)


@pytest.fixture()
def roster() -> Roster:
    return Roster(
        [
            ServerIdentity("tls://127.0.0.1:7770", description="conode 1"),
            ServerIdentity("tls://127.0.0.1:7772", description="conode 2"),
            ServerIdentity("tls://127.0.0.1:7774", description="conode 3"),
        ]
    )


@pytest.fixture()
def client(roster: Roster, transport: FakeTransport, admin_darc: Darc) -> OnchainSecretsClient:
    return OnchainSecretsClient.create(roster, transport, admin_darc)
