"""
Pytest configuration and shared fixtures for wallet session tests.
"""

from typing import Any, Dict, List, Optional

import pytest

from scripts.lib.aggregator import ChainDataAggregator
from scripts.lib.errors import WalletError
from scripts.lib.models import TokenInfo
from scripts.lib.provider_client import WalletProvider, WalletProviderClient

ONE_ETH_HEX = "0xde0b6b3a7640000"


class FakeWalletProvider(WalletProvider):
    """
    In-process wallet provider returning canned responses.

    responses maps a method name to a result, or to an exception instance to
    raise. eth_call results are looked up per contract in call_results.
    """

    def __init__(
        self,
        responses: Optional[Dict[str, Any]] = None,
        call_results: Optional[Dict[str, Any]] = None,
    ):
        self.responses = dict(responses or {})
        self.call_results = {k.lower(): v for k, v in (call_results or {}).items()}
        self.calls: List[tuple] = []

    def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        self.calls.append((method, params))

        if method == "eth_call":
            result = self.call_results.get(params[0]["to"].lower())
            if result is None:
                raise WalletError("execution reverted")
        else:
            if method not in self.responses:
                raise WalletError(f"Unexpected method: {method}")
            result = self.responses[method]

        if isinstance(result, Exception):
            raise result
        return result

    def methods(self) -> List[str]:
        return [method for method, _ in self.calls]


@pytest.fixture
def sample_wallet_address():
    """Sample Ethereum wallet address for testing."""
    return "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"  # vitalik.eth


@pytest.fixture
def dead_beef_address():
    return "0xDEAD00000000000000000000000000000000BEEF"


@pytest.fixture
def mock_etherscan_api_key():
    """Mock explorer API key for testing."""
    return "test-api-key-12345"


@pytest.fixture
def token_catalog():
    """Three tokens with distinct contract addresses."""
    return [
        TokenInfo("USDC", "0x" + "a" * 40, 6),
        TokenInfo("USDT", "0x" + "b" * 40, 6),
        TokenInfo("DAI", "0x" + "c" * 40, 18),
    ]


@pytest.fixture
def fake_provider(sample_wallet_address):
    """A wallet with one authorized account holding 1 ETH on mainnet."""
    return FakeWalletProvider(
        responses={
            "eth_requestAccounts": [sample_wallet_address],
            "eth_accounts": [sample_wallet_address],
            "eth_chainId": "0x1",
            "eth_getBalance": ONE_ETH_HEX,
        }
    )


@pytest.fixture
def make_aggregator(token_catalog):
    """Factory building an aggregator around a provider with no history service."""

    def _make(provider, history=None, chain_info=None, catalog=None, **kwargs):
        return ChainDataAggregator(
            WalletProviderClient(provider),
            history=history,
            chain_info=chain_info,
            token_catalog=token_catalog if catalog is None else catalog,
            **kwargs,
        )

    return _make


@pytest.fixture
def provider_factory():
    """The fake provider class, for tests that need custom responses."""
    return FakeWalletProvider
