"""
Error types raised by the wallet provider and chain data clients.

Every failure surfaced by the library is a WalletError subclass, so callers
can decide per call site whether to abort or degrade.
"""

from typing import Optional


class WalletError(Exception):
    """Base exception for wallet session errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderUnavailable(WalletError):
    """No wallet provider is reachable."""

    pass


class UserRejected(WalletError):
    """The user denied the permission request."""

    pass


class InvalidAddress(WalletError):
    """A malformed address was passed to an address-taking call."""

    pass


class NetworkUnreachable(WalletError):
    """HTTP or RPC transport failure after retries were exhausted."""

    pass


class MalformedResponse(WalletError):
    """A response payload did not have the expected shape."""

    pass


class ProviderRPCError(WalletError):
    """The provider answered with a JSON-RPC error not covered above."""

    pass


class SessionBusy(WalletError):
    """Another connect, refresh or disconnect call is still running."""

    pass
