"""Error taxonomy for onchain-secrets.

Every failure raised by this package derives from :class:`OnchainSecretsError`
so callers can catch the whole family with one clause. None of the client
operations retry internally; a failed call surfaces immediately.
"""
from __future__ import annotations


class OnchainSecretsError(Exception):
    """Base class for all onchain-secrets errors."""


class CommunicationError(OnchainSecretsError):
    """The request could not be completed.

    Raised for transport failures, undecodable replies, and replies that lack
    a field the operation requires (for example a block that does not hold a
    write record). The client cannot tell a down node from a protocol
    mismatch, so all of these are reported the same way.
    """


class CryptoStructureError(OnchainSecretsError):
    """A locally detected malformed identifier, key, or signature.

    Always raised before any network call.
    """


class AuthorizationResolutionError(OnchainSecretsError):
    """A signature path or authorization claim failed local validation.

    Not retryable: a bad path does not become valid by asking again.
    """


class DarcEvolutionError(AuthorizationResolutionError):
    """A Darc evolution is not authorized by the previous version."""


class ClientStateError(OnchainSecretsError):
    """The client is not attached to a ledger yet."""


__all__ = [
    "AuthorizationResolutionError",
    "ClientStateError",
    "CommunicationError",
    "CryptoStructureError",
    "DarcEvolutionError",
    "OnchainSecretsError",
]
