"""Transport — delivers one encoded request to one server.

The client only depends on the :class:`Transport` protocol. Any failure a
transport raises (network, HTTP status, timeout) is turned into a
:class:`~onchain_secrets.errors.CommunicationError` by the client, so
implementations may raise whatever is natural for them.

:class:`HttpTransport` posts the payload to ``http://<host:port>/<service>``
with ``urllib``.
"""
from __future__ import annotations

import logging
import urllib.error
import urllib.request
from typing import Protocol

from onchain_secrets.errors import CommunicationError
from onchain_secrets.network.roster import ServerIdentity

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Send an encoded request to a server and return the encoded reply."""

    def send(
        self,
        server: ServerIdentity,
        service_name: str,
        payload: bytes,
        timeout: float | None = None,
    ) -> bytes:
        ...


class HttpTransport:
    """Minimal HTTP transport for ledger services.

    Parameters
    ----------
    scheme:
        URL scheme used to reach servers (``http`` or ``https``).
    headers:
        Extra headers sent with every request.
    """

    def __init__(self, scheme: str = "http", headers: dict[str, str] | None = None) -> None:
        self._scheme = scheme
        self._headers = {"Content-Type": "application/json", **(headers or {})}

    def url_for(self, server: ServerIdentity, service_name: str) -> str:
        return f"{self._scheme}://{server.host_port}/{service_name}"

    def send(
        self,
        server: ServerIdentity,
        service_name: str,
        payload: bytes,
        timeout: float | None = None,
    ) -> bytes:
        url = self.url_for(server, service_name)
        req = urllib.request.Request(url, data=payload, headers=self._headers, method="POST")
        logger.debug("POST %s (%d bytes)", url, len(payload))
        try:
            with urllib.request.urlopen(req, timeout=timeout) as resp:
                return resp.read()
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise CommunicationError(f"{server} answered HTTP {exc.code}: {detail}") from exc
        except (urllib.error.URLError, OSError) as exc:
            raise CommunicationError(f"Could not reach {server}: {exc}") from exc


__all__ = ["HttpTransport", "Transport"]
