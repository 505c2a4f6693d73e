"""DarcResolver — server-assisted signature path discovery.

The remote service sees every Darc and its whole history, so finding a path
from a base Darc to an identity is its job. The resolver asks for a
candidate and then validates it hop by hop before handing it to anything
that builds a signature on top of it. A path that fails validation is
reported as an :class:`~onchain_secrets.errors.AuthorizationResolutionError`;
the resolver never repairs a path or searches for an alternative.
"""
from __future__ import annotations

import logging
from typing import Callable, Sequence

from onchain_secrets.darc.darc import Darc, Role
from onchain_secrets.darc.identity import Identity
from onchain_secrets.darc.ids import DarcId
from onchain_secrets.darc.signature import SignaturePath
from onchain_secrets.errors import AuthorizationResolutionError

logger = logging.getLogger(__name__)

PathFetcher = Callable[[DarcId, Identity, Role], Sequence[Darc]]


class DarcResolver:
    """Resolve and validate signature paths.

    Parameters
    ----------
    fetch:
        Callable returning the service's candidate path (base first) for a
        ``(base_id, target, role)`` query. Usually
        :meth:`OnchainSecretsClient.fetch_darc_path`.
    """

    def __init__(self, fetch: PathFetcher) -> None:
        self._fetch = fetch

    def resolve(self, base_id: DarcId, target: Identity, role: Role) -> SignaturePath:
        """Return a validated path from *base_id* to *target* for *role*.

        Raises
        ------
        AuthorizationResolutionError
            If the candidate path fails local validation.
        CommunicationError
            If the service could not be asked.
        """
        darcs = self._fetch(base_id, target, role)
        path = SignaturePath(darcs=tuple(darcs), target=target, role=role)
        self.validate(path, base_id=base_id)
        logger.debug("Resolved %d-hop path from %s for %s", len(path.darcs), base_id, role.action)
        return path

    @staticmethod
    def validate(path: SignaturePath, base_id: DarcId | None = None) -> None:
        """Validate *path*, optionally requiring it to start at *base_id*.

        Raises
        ------
        AuthorizationResolutionError
            On any structural failure (see :meth:`SignaturePath.validate`)
            or when the path starts somewhere other than *base_id*.
        """
        if not path.darcs:
            raise AuthorizationResolutionError("Service returned an empty signature path.")
        if base_id is not None and not path.darcs[0].matches(base_id):
            raise AuthorizationResolutionError(
                f"Signature path starts at {path.darcs[0].base.hex()[:16]}, "
                f"expected {base_id.hex()[:16]}."
            )
        path.validate()


__all__ = ["DarcResolver", "PathFetcher"]
