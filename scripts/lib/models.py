"""
Data models for wallet sessions.

This module defines the connection record owned by the session state
machine and the token and transaction records derived for the active
address.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from .units import GAS_PRICE_PRECISION, NATIVE_PRECISION, TOKEN_PRECISION, format_amount


# CSV column order for transaction history export
TRANSACTION_CSV_COLUMNS = [
    "hash",
    "from",
    "to",
    "value_eth",
    "gas_used",
    "gas_price_gwei",
    "block_number",
    "timestamp",
    "status",
]


class SessionState(Enum):
    """Connection lifecycle state."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class TransactionStatus(Enum):
    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"


@dataclass(frozen=True)
class NetworkDescriptor:
    """Static reference data for one chain."""

    chain_id: int
    name: str
    explorer_base_url: str


@dataclass(frozen=True)
class TokenInfo:
    """Catalog entry for a token whose balance is looked up."""

    symbol: str
    contract_address: str
    decimals: int


@dataclass
class WalletSession:
    """
    The current wallet connection.

    address, native_balance, network_name and chain_id are either all set
    (connected) or all None (disconnected).
    """

    connected: bool = False
    address: Optional[str] = None
    native_balance: Optional[Decimal] = None
    network_name: Optional[str] = None
    chain_id: Optional[int] = None
    loading: bool = False
    error: Optional[str] = None

    @property
    def display_balance(self) -> Optional[str]:
        """Native balance rendered with NATIVE_PRECISION places."""
        if self.native_balance is None:
            return None
        return format_amount(self.native_balance, NATIVE_PRECISION)


@dataclass
class TokenBalance:
    """A non-zero fungible token holding, amount in display units."""

    symbol: str
    contract_address: str
    decimals: int
    amount: Decimal

    @property
    def display_amount(self) -> str:
        return format_amount(self.amount, TOKEN_PRECISION)


@dataclass
class TransactionRecord:
    """
    One historical transaction of the active address.

    to_address is None for contract creation. is_placeholder marks
    synthetic records substituted when the history service failed.
    """

    hash: str
    from_address: str
    to_address: Optional[str]
    value_eth: Decimal
    gas_used: int
    gas_price_gwei: Decimal
    block_number: int
    timestamp: int
    status: TransactionStatus
    is_placeholder: bool = False

    def to_csv_row(self) -> List[str]:
        """Convert the transaction to a CSV row (list of strings)."""
        return [
            self.hash,
            self.from_address,
            self.to_address or "",
            format_amount(self.value_eth, NATIVE_PRECISION),
            str(self.gas_used),
            format_amount(self.gas_price_gwei, GAS_PRICE_PRECISION),
            str(self.block_number),
            str(self.timestamp),
            self.status.value,
        ]


@dataclass
class AccountSnapshot:
    """Balances and history fetched for one address."""

    native_balance: Decimal
    token_balances: List[TokenBalance] = field(default_factory=list)
    transactions: List[TransactionRecord] = field(default_factory=list)


@dataclass
class ConnectResult:
    """Outcome of a successful connect: the session plus its derived data."""

    session: WalletSession
    snapshot: AccountSnapshot


@dataclass
class ChainInfo:
    """Network summary from the chain-info service."""

    gas_price_gwei: Decimal
    block_number: int
    network: str
    chain_id: int
    eth_price: Decimal


@dataclass
class TokenQuote:
    """Token holding as reported by the chain-info service."""

    symbol: str
    balance: Decimal
    usd_value: Decimal
    contract_address: str


@dataclass
class AccountBalance:
    """Balance summary for an address from the chain-info service."""

    address: str
    balance: Decimal
    usd_value: Decimal
    tokens: List[TokenQuote] = field(default_factory=list)
