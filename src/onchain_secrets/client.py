"""OnchainSecretsClient — the write → read → decrypt protocol against a ledger.

A client starts *unattached*. It becomes *active* either by creating a new
ledger (:meth:`OnchainSecretsClient.create_chain`) or by attaching to an
existing one (:meth:`OnchainSecretsClient.attach`). Once active it can
evolve Darcs, publish write requests, file read requests and fetch
re-encrypted document keys.

Every call is a single blocking request to the roster's leader, except the
health check, which checks every server concurrently. Nothing is retried:
each call may change the ledger (a repeated write publishes a duplicate
record), so retry policy is left to the caller.

Example
-------
::

    roster = Roster.load("roster.toml")
    admin = Signer.generate()
    client = OnchainSecretsClient(roster, HttpTransport())
    client.create_chain(Darc.new(owners=[admin.identity], writers=[admin.identity]))

    write = client.publish(Document(b"secret"), client.admin_darc, admin)
"""
from __future__ import annotations

import concurrent.futures
import dataclasses
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

from pydantic import BaseModel

from onchain_secrets.crypto.envelope import SealedKey
from onchain_secrets.crypto.keys import Point
from onchain_secrets.darc.darc import Darc, Role
from onchain_secrets.darc.identity import Identity, identity_to_dict
from onchain_secrets.darc.ids import DarcId, ReadRequestId, SkipblockId, WriteRequestId
from onchain_secrets.darc.resolver import DarcResolver
from onchain_secrets.darc.signature import DarcSignature, SignaturePath, Signer
from onchain_secrets.errors import (
    ClientStateError,
    CommunicationError,
    CryptoStructureError,
    DarcEvolutionError,
    OnchainSecretsError,
)
from onchain_secrets.network import messages
from onchain_secrets.network.roster import Roster, ServerIdentity
from onchain_secrets.network.transport import Transport
from onchain_secrets.ocs.documents import DecryptKey, Document, ReadRequest, WriteRequest
from onchain_secrets.ocs.ledger import SkipBlock, Transaction

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)
T = TypeVar("T")


@dataclass(frozen=True)
class ClientConfig:
    """Tunables for :class:`OnchainSecretsClient`.

    Parameters
    ----------
    timeout_seconds:
        Transport timeout for every ledger call.
    verify_timeout_seconds:
        Per-server timeout of a health check.
    verify_max_workers:
        Threads used by :meth:`OnchainSecretsClient.verify`; defaults to one
        per roster member.
    """

    timeout_seconds: float = 10.0
    verify_timeout_seconds: float = 5.0
    verify_max_workers: Optional[int] = None


@dataclass(frozen=True)
class ChainState:
    """What an active client knows about its ledger."""

    ledger_id: SkipblockId
    shared_public_key: Point
    admin_darc: Darc
    roster: Roster


@dataclass(frozen=True)
class NodeStatus:
    """Outcome of checking one server."""

    server: ServerIdentity
    healthy: bool
    status: dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None


class OnchainSecretsClient:
    """Client for one on-chain secrets ledger.

    Parameters
    ----------
    roster:
        Servers holding the ledger; calls go to the first one.
    transport:
        Delivers encoded requests; see :class:`~onchain_secrets.network.transport.Transport`.
    config:
        Timeouts and worker counts. Defaults to :class:`ClientConfig`.

    The cached shared public key and admin Darc are only changed by the
    explicit ``refresh_*`` methods. All access to them goes through one lock,
    so a client may be shared between threads.
    """

    def __init__(
        self,
        roster: Roster,
        transport: Transport,
        config: ClientConfig | None = None,
    ) -> None:
        self._roster = roster
        self._transport = transport
        self._config = config or ClientConfig()
        self._state: ChainState | None = None
        self._lock = threading.Lock()
        self.resolver = DarcResolver(self.fetch_darc_path)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def roster(self) -> Roster:
        return self._roster

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._state is not None

    @property
    def state(self) -> ChainState:
        """A snapshot of the chain state.

        Raises
        ------
        ClientStateError
            If the client is not attached to a ledger.
        """
        with self._lock:
            if self._state is None:
                raise ClientStateError(
                    "Client is not attached to a ledger; call create_chain() or attach() first."
                )
            return self._state

    @property
    def ledger_id(self) -> SkipblockId:
        return self.state.ledger_id

    @property
    def shared_public_key(self) -> Point:
        """The cached shared public key of the ledger."""
        return self.state.shared_public_key

    @property
    def admin_darc(self) -> Darc:
        """The cached admin Darc; see :meth:`refresh_admin_darc`."""
        return self.state.admin_darc

    def _activate(self, state: ChainState) -> None:
        with self._lock:
            if self._state is not None:
                raise ClientStateError(
                    f"Client is already attached to ledger {self._state.ledger_id}."
                )
            self._state = state

    def _update_state(self, **changes: object) -> ChainState:
        with self._lock:
            if self._state is None:
                raise ClientStateError("Client is not attached to a ledger.")
            self._state = dataclasses.replace(self._state, **changes)  # type: ignore[arg-type]
            return self._state

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _call(
        self,
        service: str,
        request: BaseModel,
        reply_model: type[R],
        *,
        server: ServerIdentity | None = None,
        timeout: float | None = None,
    ) -> R:
        target = server or self._roster.leader
        payload = messages.encode(request)
        try:
            raw = self._transport.send(
                target,
                service,
                payload,
                timeout if timeout is not None else self._config.timeout_seconds,
            )
        except CommunicationError:
            raise
        except Exception as exc:
            raise CommunicationError(f"{service} to {target} failed: {exc}") from exc
        reply = messages.decode(reply_model, raw)
        logger.debug("%s reply from %s: %s", service, target, reply)
        return reply

    @staticmethod
    def _parse(what: str, build: Callable[[], T]) -> T:
        """Build a domain value from reply data; bad data is a failed call."""
        try:
            return build()
        except (CryptoStructureError, KeyError, TypeError, ValueError) as exc:
            raise CommunicationError(f"Malformed {what} in reply: {exc}") from exc

    # ------------------------------------------------------------------
    # Chain lifecycle
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        roster: Roster,
        transport: Transport,
        admin_darc: Darc,
        config: ClientConfig | None = None,
    ) -> "OnchainSecretsClient":
        """Create a new ledger and return a client attached to it."""
        client = cls(roster, transport, config)
        client.create_chain(admin_darc)
        return client

    @classmethod
    def connect(
        cls,
        roster: Roster,
        transport: Transport,
        ledger_id: SkipblockId,
        config: ClientConfig | None = None,
    ) -> "OnchainSecretsClient":
        """Return a client attached to the existing ledger *ledger_id*."""
        client = cls(roster, transport, config)
        client.attach(ledger_id)
        return client

    def create_chain(self, admin_darc: Darc) -> SkipblockId:
        """Create a new ledger governed by *admin_darc*.

        On success the client becomes active with the new ledger id and the
        shared public key returned by the service. On any failure the client
        stays unattached.

        Raises
        ------
        ClientStateError
            If the client is already attached.
        CommunicationError
            If the request fails.
        """
        if self.is_active:
            raise ClientStateError("Client is already attached to a ledger.")
        request = messages.CreateSkipchainsRequest(
            roster=[messages.ServerModel(**n.to_dict()) for n in self._roster],
            writers=admin_darc.to_dict(),
        )
        reply = self._call(messages.CREATE_SKIPCHAINS, request, messages.CreateSkipchainsReply)
        state = ChainState(
            ledger_id=SkipblockId.from_hex(reply.ocs),
            shared_public_key=Point.from_hex(reply.x),
            admin_darc=admin_darc,
            roster=self._roster,
        )
        self._activate(state)
        logger.info("Initialised ledger %s", state.ledger_id)
        return state.ledger_id

    def attach(self, ledger_id: SkipblockId) -> None:
        """Attach to an existing ledger.

        Fetches the shared public key and reads the admin Darc from the
        genesis block.

        Raises
        ------
        CommunicationError
            If a request fails or the genesis block does not hold a Darc.
        """
        if not isinstance(ledger_id, SkipblockId):
            raise CryptoStructureError("attach() requires a SkipblockId.")
        if self.is_active:
            raise ClientStateError("Client is already attached to a ledger.")
        shared = self._request_shared_public_key(ledger_id)
        genesis = self.get_transaction(ledger_id)
        if genesis.darc is None:
            raise CommunicationError(
                f"Genesis block of {ledger_id} is not an administrative transaction."
            )
        self._activate(
            ChainState(
                ledger_id=ledger_id,
                shared_public_key=shared,
                admin_darc=genesis.darc,
                roster=self._roster,
            )
        )
        logger.info("Attached to ledger %s; admin darc is %s", ledger_id, genesis.darc.base)

    # ------------------------------------------------------------------
    # Darcs
    # ------------------------------------------------------------------

    def update_darc(self, darc: Darc, previous: Darc | None = None) -> SkipblockId:
        """Store a new Darc or a new version of an existing one.

        The cached admin Darc is left alone even when *darc* evolves it; call
        :meth:`refresh_admin_darc` to pick up the new version.

        Parameters
        ----------
        darc:
            The Darc to store.
        previous:
            The version *darc* evolves from. When omitted it is the cached
            admin Darc if that is the predecessor, otherwise it is looked up
            in the Darc's history on the ledger.

        Returns
        -------
        SkipblockId
            The block the Darc was stored in.

        Raises
        ------
        DarcEvolutionError
            If *darc* is an unsigned evolution, its previous version cannot
            be found, or it does not verify against that version. Nothing is
            submitted in that case.
        """
        state = self.state
        if darc.version > 0:
            if darc.signature is None:
                raise DarcEvolutionError(
                    f"Darc version {darc.version} carries no evolution signature."
                )
            darc.verify_evolution(previous or self._previous_version(darc))
        request = messages.UpdateDarcRequest(ocs=state.ledger_id.hex(), darc=darc.to_dict())
        reply = self._call(messages.UPDATE_DARC, request, messages.UpdateDarcReply)
        block = SkipblockId.from_hex(reply.sb)
        logger.info("Updated darc %s v%d stored in block %s", darc.base, darc.version, block)
        return block

    def _previous_version(self, darc: Darc) -> Darc:
        admin = self.admin_darc
        if darc.prev_id is not None and admin.id == darc.prev_id:
            return admin
        for version in self.get_latest_darc_chain(darc.base):
            if version.id == darc.prev_id:
                return version
        raise DarcEvolutionError(
            f"Previous version of darc {darc.base} v{darc.version} not found on the ledger."
        )

    def get_latest_darc_chain(self, darc_id: DarcId) -> list[Darc]:
        """Return every version of the Darc *darc_id* belongs to, oldest first.

        The last element is the current version according to the ledger; it
        may be newer than anything cached locally.
        """
        state = self.state
        request = messages.GetLatestDarcRequest(ocs=state.ledger_id.hex(), darc_id=darc_id.hex())
        reply = self._call(messages.GET_LATEST_DARC, request, messages.GetLatestDarcReply)
        darcs = self._parse("darc chain", lambda: [Darc.from_dict(d) for d in reply.darcs])
        if not darcs:
            raise CommunicationError(f"Ledger returned no versions for darc {darc_id}.")
        logger.info("Got %d version(s) of darc %s", len(darcs), darc_id)
        return darcs

    def refresh_admin_darc(self) -> Darc:
        """Fetch the latest admin Darc and replace the cached one."""
        chain = self.get_latest_darc_chain(self.admin_darc.base)
        latest = chain[-1]
        self._update_state(admin_darc=latest)
        return latest

    def fetch_darc_path(self, base_id: DarcId, identity: Identity, role: Role) -> list[Darc]:
        """Ask the service for a candidate path; the result is *not* validated.

        Use :meth:`get_darc_path` unless you validate the result yourself.
        """
        state = self.state
        request = messages.GetDarcPathRequest(
            ocs=state.ledger_id.hex(),
            base_darc_id=base_id.hex(),
            identity=identity_to_dict(identity),
            role=role.value,
        )
        reply = self._call(messages.GET_DARC_PATH, request, messages.GetDarcPathReply)
        return self._parse("darc path", lambda: [Darc.from_dict(d) for d in reply.path])

    def get_darc_path(self, base_id: DarcId, identity: Identity, role: Role) -> SignaturePath:
        """Return a locally validated path from *base_id* to *identity*.

        Raises
        ------
        AuthorizationResolutionError
            If the service's path does not validate.
        """
        return self.resolver.resolve(base_id, identity, role)

    # ------------------------------------------------------------------
    # Shared key
    # ------------------------------------------------------------------

    def _request_shared_public_key(self, ledger_id: SkipblockId) -> Point:
        request = messages.SharedPublicRequest(genesis=ledger_id.hex())
        reply = self._call(messages.SHARED_PUBLIC, request, messages.SharedPublicReply)
        logger.info("Got shared public key of ledger %s", ledger_id)
        return Point.from_hex(reply.x)

    def get_shared_public_key(self) -> Point:
        """Ask the ledger for its shared public key without touching the cache."""
        return self._request_shared_public_key(self.ledger_id)

    def refresh_shared_public_key(self) -> Point:
        """Fetch the shared public key and replace the cached one."""
        shared = self.get_shared_public_key()
        self._update_state(shared_public_key=shared)
        return shared

    # ------------------------------------------------------------------
    # Write / read / decrypt
    # ------------------------------------------------------------------

    def create_write_request(self, write: WriteRequest, signature: DarcSignature) -> WriteRequestId:
        """Publish *write*; *signature* must prove the writer role in its owner Darc.

        The assigned id is also stored on ``write.id``.
        """
        state = self.state
        request = messages.WriteRequestMessage(
            ocs=state.ledger_id.hex(),
            write=write.to_dict(),
            readers=write.owner.to_dict(),
            signature=signature.to_dict(),
        )
        reply = self._call(messages.WRITE_REQUEST, request, messages.WriteReply)
        write.id = WriteRequestId.from_hex(reply.sb)
        logger.info("Published document %s", write.id)
        return write.id

    def publish(
        self,
        document: Document,
        owner: Darc,
        signer: Signer,
        path: SignaturePath | None = None,
    ) -> WriteRequest:
        """Encrypt *document* for this ledger, sign and publish it.

        Returns the write request with its assigned id.
        """
        write = WriteRequest.from_document(document, owner, self.shared_public_key)
        self.create_write_request(write, write.sign(signer, path))
        return write

    def create_read_request(self, read: ReadRequest) -> ReadRequestId:
        """File a read request.

        The service checks that the write record exists and that the
        signature satisfies the write's owner Darc; the client does not.
        """
        state = self.state
        request = messages.ReadRequestMessage(ocs=state.ledger_id.hex(), read=read.to_dict())
        reply = self._call(messages.READ_REQUEST, request, messages.ReadReply)
        read_id = ReadRequestId.from_hex(reply.sb)
        logger.info("Created read request %s for document %s", read_id, read.write_id)
        return read_id

    def get_decryption_key(self, read_id: ReadRequestId) -> DecryptKey:
        """Fetch the document key re-sealed to the reader key of the read request."""
        request = messages.DecryptKeyRequest(read=read_id.hex())
        return self._request_decrypt_key(request)

    def get_decryption_key_ephemeral(
        self,
        read_id: ReadRequestId,
        signature: DarcSignature,
        ephemeral: Point,
    ) -> DecryptKey:
        """Fetch the document key re-sealed to a one-time *ephemeral* point.

        *signature* must be over
        :func:`~onchain_secrets.ocs.documents.ephemeral_message` and satisfy
        the read rule of the write's owner Darc. This lets a delegate receive
        the key without holding the reader's long-term private key.
        """
        request = messages.DecryptKeyRequest(
            read=read_id.hex(),
            ephemeral=ephemeral.hex(),
            signature=signature.to_dict(),
        )
        return self._request_decrypt_key(request)

    def _request_decrypt_key(self, request: messages.DecryptKeyRequest) -> DecryptKey:
        reply = self._call(messages.DECRYPT_KEY, request, messages.DecryptKeyReply)
        logger.info("Got decryption key for read request %s", request.read)
        return self._parse(
            "decrypt key",
            lambda: DecryptKey(
                key_material=SealedKey(
                    ephemeral=Point.from_hex(reply.ephemeral),
                    ciphertext=bytes.fromhex(reply.ciphertext),
                ),
                service_public_key=Point.from_hex(reply.x),
            ),
        )

    # ------------------------------------------------------------------
    # Ledger records
    # ------------------------------------------------------------------

    def get_skipblock(self, block_id: SkipblockId) -> SkipBlock:
        """Return the raw block *block_id*.

        Raises
        ------
        CommunicationError
            If the reply is for a different block or its payload is not
            valid hex.
        """
        request = messages.GetSingleBlockRequest(id=block_id.hex())
        reply = self._call(messages.GET_SINGLE_BLOCK, request, messages.SkipBlockReply)
        if reply.hash != block_id.hex():
            raise CommunicationError(f"Asked for block {block_id}, got {reply.hash[:16]}...")
        return self._parse(
            "block",
            lambda: SkipBlock(
                hash=SkipblockId.from_hex(reply.hash),
                index=reply.index,
                data=bytes.fromhex(reply.data),
            ),
        )

    def get_transaction(self, block_id: SkipblockId) -> Transaction:
        return self.get_skipblock(block_id).transaction()

    def get_write(self, write_id: WriteRequestId) -> WriteRequest:
        """Return the write record stored in block *write_id*."""
        transaction = self.get_transaction(write_id)
        logger.debug("Getting write request from block %s", write_id)
        if transaction.write is None:
            raise CommunicationError(f"Block {write_id} does not hold a write request.")
        transaction.write.id = WriteRequestId(write_id.raw)
        return transaction.write

    def get_read(self, read_id: ReadRequestId) -> ReadRequest:
        """Return the read record stored in block *read_id*."""
        transaction = self.get_transaction(read_id)
        logger.debug("Getting read request from block %s", read_id)
        if transaction.read is None:
            raise CommunicationError(f"Block {read_id} does not hold a read request.")
        return transaction.read

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def _check_node(self, server: ServerIdentity) -> NodeStatus:
        logger.info("Testing node %s", server.address)
        try:
            reply = self._call(
                messages.STATUS,
                messages.StatusRequest(),
                messages.StatusReply,
                server=server,
                timeout=self._config.verify_timeout_seconds,
            )
        except OnchainSecretsError as exc:
            logger.warning("Failing node %s: %s", server.address, exc)
            return NodeStatus(server=server, healthy=False, error=str(exc))
        return NodeStatus(server=server, healthy=True, status=dict(reply.status))

    def verify_nodes(self) -> list[NodeStatus]:
        """Check every server concurrently and return one status per server.

        A failing server never stops the others from being checked. Results
        are in roster order.
        """
        nodes = list(self._roster)
        workers = self._config.verify_max_workers or len(nodes)
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self._check_node, nodes))

    def verify(self) -> bool:
        """Return True only if every server in the roster answered healthy."""
        return all(status.healthy for status in self.verify_nodes())

    def __repr__(self) -> str:
        with self._lock:
            ledger = self._state.ledger_id if self._state else None
        return f"OnchainSecretsClient(roster={self._roster!r}, ledger={ledger})"


__all__ = ["ChainState", "ClientConfig", "NodeStatus", "OnchainSecretsClient"]
