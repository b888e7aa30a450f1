"""
Wallet provider access.

WalletProvider is the capability the rest of the library depends on: a
single JSON-RPC style request method, as exposed by browser and desktop
wallets. HttpWalletProvider reaches a wallet over its local HTTP RPC port.
WalletProviderClient wraps the handful of calls the session needs and turns
raw hex responses into Python values.
"""

import itertools
import re
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import requests

from .errors import (
    InvalidAddress,
    MalformedResponse,
    NetworkUnreachable,
    ProviderRPCError,
    ProviderUnavailable,
    UserRejected,
)
from .http_client import DEFAULT_TIMEOUT, RetryingHttpClient
from .networks import parse_chain_id
from .units import parse_hex_quantity

DEFAULT_PROVIDER_URL = "http://127.0.0.1:1248"
DEFAULT_PROMPT_TIMEOUT = 120.0  # seconds

# Methods that may open a permission prompt in the wallet
PROMPTING_METHODS = {"eth_requestAccounts"}

# EIP-1193 provider error codes
USER_REJECTED_CODE = 4001
UNAUTHORIZED_CODE = 4100
DISCONNECTED_CODE = 4900
CHAIN_DISCONNECTED_CODE = 4901

# balanceOf(address) function selector
BALANCE_OF_SELECTOR = bytes.fromhex("70a08231")

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_address(value: Any) -> bool:
    """Check that a value is a 0x-prefixed 20-byte hex address."""
    return isinstance(value, str) and bool(ADDRESS_PATTERN.match(value))


def validate_address(value: Any) -> str:
    """
    Return the address unchanged if it is well formed.

    Raises:
        InvalidAddress: If the value is not a 0x-prefixed 20-byte hex string
    """
    if not is_address(value):
        raise InvalidAddress(f"Invalid address: {value!r}")
    return value


def encode_balance_of(owner: str) -> bytes:
    """
    Encode call data for the ERC-20 balanceOf(owner) query.

    The 4-byte selector is followed by the owner address left-padded to
    32 bytes.
    """
    validate_address(owner)
    return BALANCE_OF_SELECTOR + bytes.fromhex(owner[2:]).rjust(32, b"\x00")


class WalletProvider(ABC):
    """Capability interface for an injected wallet."""

    @abstractmethod
    def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Issue a JSON-RPC request to the wallet.

        Returns:
            The 'result' value of the response

        Raises:
            WalletError: Any subclass describing the failure
        """
        pass


class HttpWalletProvider(RetryingHttpClient, WalletProvider):
    """
    Wallet provider reached over a local JSON-RPC HTTP endpoint.

    Desktop wallets expose the same request interface as the browser
    extension on a local port; permission prompts are shown by the wallet
    itself while the HTTP request stays open.
    """

    def __init__(
        self,
        url: str = DEFAULT_PROVIDER_URL,
        timeout: float = DEFAULT_TIMEOUT,
        prompt_timeout: float = DEFAULT_PROMPT_TIMEOUT,
        **retry_options: Any,
    ):
        """
        Initialize the provider.

        Args:
            url: Wallet RPC endpoint
            timeout: Timeout in seconds for non-interactive requests
            prompt_timeout: Timeout in seconds for requests that may wait on
                a user permission prompt
            retry_options: Passed through to RetryingHttpClient
        """
        super().__init__(timeout=timeout, **retry_options)
        self.url = url
        self.prompt_timeout = prompt_timeout
        # Token lookups call request() from worker threads; next() on a count
        # is atomic, and requests.Session only shares its connection pool.
        self._request_ids = itertools.count(1)

    def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._request_ids),
        }

        prompting = method in PROMPTING_METHODS
        timeout = self.prompt_timeout if prompting else self.timeout

        try:
            response = self._execute_with_retry(
                lambda: self.session.post(self.url, json=payload, timeout=timeout),
                # A retried prompt would be shown to the user twice
                max_retries=0 if prompting else None,
            )
        except NetworkUnreachable as e:
            if isinstance(e.__cause__, requests.Timeout):
                raise ProviderUnavailable(
                    f"Wallet did not respond within {timeout:g}s"
                ) from e
            if e.status_code is None:
                raise ProviderUnavailable(
                    f"No wallet provider reachable at {self.url}"
                ) from e
            raise

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponse(
                f"Wallet returned non-JSON response (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from e

        if not isinstance(data, dict):
            raise MalformedResponse("Wallet response is not a JSON-RPC object")

        if data.get("error") is not None:
            raise _error_from_rpc(data["error"])

        if response.status_code >= 400:
            raise ProviderRPCError(
                f"Wallet request failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        if "result" not in data:
            raise MalformedResponse("Wallet response has no result")

        return data["result"]


def _error_from_rpc(error: Any) -> Exception:
    """Map a JSON-RPC error object to the matching WalletError subclass."""
    if not isinstance(error, dict):
        return ProviderRPCError(f"Wallet error: {error}")

    code = error.get("code")
    message = error.get("message", str(error))

    if code in (USER_REJECTED_CODE, UNAUTHORIZED_CODE):
        return UserRejected(message, status_code=code)
    if code in (DISCONNECTED_CODE, CHAIN_DISCONNECTED_CODE):
        return ProviderUnavailable(message, status_code=code)
    return ProviderRPCError(f"Wallet error: {message}", status_code=code)


class WalletProviderClient:
    """
    Typed access to the wallet calls the session needs.

    Holds no state besides the provider; every failure propagates as a
    WalletError for the caller to handle.
    """

    def __init__(self, provider: Optional[WalletProvider]):
        """
        Initialize the client.

        Args:
            provider: Wallet provider, or None when no wallet is installed
        """
        self.provider = provider

    def _request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        if self.provider is None:
            raise ProviderUnavailable("No wallet provider found. Please install a wallet.")
        return self.provider.request(method, params)

    def _accounts(self, method: str) -> List[str]:
        result = self._request(method)
        if not isinstance(result, list) or not all(isinstance(a, str) for a in result):
            raise MalformedResponse(f"Expected a list of accounts from {method}")
        return result

    def request_accounts(self) -> List[str]:
        """
        Request account access, which may open a permission prompt.

        Returns:
            Authorized account addresses, active account first
        """
        return self._accounts("eth_requestAccounts")

    def get_accounts(self) -> List[str]:
        """Get already-authorized accounts without prompting the user."""
        return self._accounts("eth_accounts")

    def get_chain_id(self) -> int:
        """Get the chain id of the network selected in the wallet."""
        return parse_chain_id(self._request("eth_chainId"))

    def get_balance(self, address: str) -> int:
        """
        Get the native currency balance at the latest block.

        Returns:
            Balance in wei
        """
        validate_address(address)
        return parse_hex_quantity(self._request("eth_getBalance", [address, "latest"]))

    def call_contract(self, to: str, data: bytes) -> bytes:
        """
        Run a read-only contract call at the latest block.

        Args:
            to: Contract address
            data: ABI-encoded call data

        Returns:
            Raw return data
        """
        validate_address(to)
        result = self._request("eth_call", [{"to": to, "data": "0x" + data.hex()}, "latest"])

        if not isinstance(result, str) or not result.lower().startswith("0x"):
            raise MalformedResponse(f"Expected hex data from eth_call, got: {result!r}")
        try:
            return bytes.fromhex(result[2:])
        except ValueError as e:
            raise MalformedResponse(f"Expected hex data from eth_call, got: {result!r}") from e
