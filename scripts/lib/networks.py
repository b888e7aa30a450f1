"""
Network registry mapping chain identifiers to display names and explorers.

The table is reference data: support for a new network is added by inserting
a row into NETWORKS, never by special-casing chain ids in calling code.
"""

from enum import Enum
from typing import Dict, Union

from .errors import MalformedResponse
from .models import NetworkDescriptor

DEFAULT_EXPLORER_URL = "https://etherscan.io"

NETWORKS: Dict[int, NetworkDescriptor] = {
    1: NetworkDescriptor(1, "Ethereum Mainnet", "https://etherscan.io"),
    3: NetworkDescriptor(3, "Ropsten Testnet", "https://ropsten.etherscan.io"),
    4: NetworkDescriptor(4, "Rinkeby Testnet", "https://rinkeby.etherscan.io"),
    5: NetworkDescriptor(5, "Goerli Testnet", "https://goerli.etherscan.io"),
    11155111: NetworkDescriptor(11155111, "Sepolia Testnet", "https://sepolia.etherscan.io"),
    137: NetworkDescriptor(137, "Polygon Mainnet", "https://polygonscan.com"),
    80001: NetworkDescriptor(80001, "Mumbai Testnet", "https://mumbai.polygonscan.com"),
    56: NetworkDescriptor(56, "BSC Mainnet", "https://bscscan.com"),
    97: NetworkDescriptor(97, "BSC Testnet", "https://testnet.bscscan.com"),
    42161: NetworkDescriptor(42161, "Arbitrum One", "https://arbiscan.io"),
    10: NetworkDescriptor(10, "Optimism", "https://optimistic.etherscan.io"),
}


class ExplorerKind(Enum):
    """Kind of explorer page, valued by its URL path segment."""

    ADDRESS = "address"
    TRANSACTION = "tx"


def parse_chain_id(value: Union[str, int]) -> int:
    """
    Parse a chain identifier from a provider response.

    Providers return eth_chainId as a hex string ("0x89"); plain ints pass through.
    """
    if isinstance(value, bool):
        raise MalformedResponse(f"Invalid chain id: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise MalformedResponse(f"Invalid chain id: {value!r}")
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.lower().startswith("0x") else int(value)
        except ValueError as e:
            raise MalformedResponse(f"Invalid chain id: {value!r}") from e
    raise MalformedResponse(f"Invalid chain id: {value!r}")


def name_for(chain_id: int) -> str:
    """
    Get the display name for a chain.

    Examples:
        name_for(1) -> "Ethereum Mainnet"
        name_for(999999) -> "Unknown Network (Chain ID: 999999)"
    """
    network = NETWORKS.get(chain_id)
    if network is None:
        return f"Unknown Network (Chain ID: {chain_id})"
    return network.name


def explorer_url_for(chain_id: int, kind: ExplorerKind, value: str) -> str:
    """
    Build an explorer URL for an address or transaction hash.

    Unmapped chains fall back to the Ethereum mainnet explorer.
    """
    network = NETWORKS.get(chain_id)
    base_url = network.explorer_base_url if network else DEFAULT_EXPLORER_URL
    return f"{base_url}/{kind.value}/{value}"
