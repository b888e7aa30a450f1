"""
Chain data aggregation for a connected wallet.

The aggregator runs the provider calls that build a session and collects
the best-effort enrichments (token balances, transaction history, network
info) around them. Account, chain id and native balance failures propagate;
enrichment failures are logged and degrade to partial or placeholder data.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from .chain_info_client import ChainInfoClient
from .console import log
from .errors import MalformedResponse, UserRejected, WalletError
from .history_client import EtherscanClient
from .models import (
    AccountBalance,
    AccountSnapshot,
    ChainInfo,
    ConnectResult,
    TokenBalance,
    TokenInfo,
    TransactionRecord,
    TransactionStatus,
    WalletSession,
)
from .networks import name_for
from .provider_client import WalletProviderClient, encode_balance_of
from .units import TOKEN_PRECISION, to_display, to_ether, to_gwei

DEFAULT_MAX_TRANSACTIONS = 10
DEFAULT_MAX_WORKERS = 4

# Popular Ethereum mainnet tokens
TOKEN_CATALOG = [
    TokenInfo("USDC", "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", 6),
    TokenInfo("USDT", "0xdAC17F958D2ee523a2206206994597C13D831ec7", 6),
    TokenInfo("DAI", "0x6B175474E89094C44Da98b954EedeAC495271d0F", 18),
]

# Fields of the synthetic record shown when history cannot be fetched
PLACEHOLDER_HASH = "0x1234567890abcdef1234567890abcdef12345678"
PLACEHOLDER_TO = "0x9876543210fedcba9876543210fedcba98765432"
PLACEHOLDER_VALUE_ETH = Decimal("0.123456")
PLACEHOLDER_GAS_USED = 21000
PLACEHOLDER_GAS_PRICE_GWEI = Decimal("20.50")
PLACEHOLDER_BLOCK_NUMBER = 12345678
PLACEHOLDER_AGE = 3600  # seconds


def placeholder_transactions(address: str) -> List[TransactionRecord]:
    """Build the single synthetic history entry used when the history service fails."""
    return [
        TransactionRecord(
            hash=PLACEHOLDER_HASH,
            from_address=address,
            to_address=PLACEHOLDER_TO,
            value_eth=PLACEHOLDER_VALUE_ETH,
            gas_used=PLACEHOLDER_GAS_USED,
            gas_price_gwei=PLACEHOLDER_GAS_PRICE_GWEI,
            block_number=PLACEHOLDER_BLOCK_NUMBER,
            timestamp=int(time.time()) - PLACEHOLDER_AGE,
            status=TransactionStatus.SUCCESS,
            is_placeholder=True,
        )
    ]


def normalize_transaction(raw: Dict[str, Any]) -> TransactionRecord:
    """
    Convert a raw txlist entry into a TransactionRecord.

    Raises:
        MalformedResponse: If a required field is missing or not numeric
    """
    try:
        return TransactionRecord(
            hash=str(raw["hash"]),
            from_address=str(raw["from"]),
            # Contract creations have an empty "to"
            to_address=raw.get("to") or None,
            value_eth=to_ether(int(raw["value"])),
            gas_used=int(raw["gasUsed"]),
            gas_price_gwei=to_gwei(int(raw["gasPrice"])),
            block_number=int(raw["blockNumber"]),
            timestamp=int(raw["timeStamp"]),
            status=(
                TransactionStatus.SUCCESS
                if str(raw.get("isError", "0")) == "0"
                else TransactionStatus.FAILED
            ),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise MalformedResponse(f"Malformed transaction record: {e}") from e


class ChainDataAggregator:
    """
    Builds wallet sessions and account snapshots from provider and service calls.

    Holds no session state; every call returns fresh data for the session
    state machine to apply.
    """

    def __init__(
        self,
        client: WalletProviderClient,
        history: Optional[EtherscanClient] = None,
        chain_info: Optional[ChainInfoClient] = None,
        token_catalog: Optional[Sequence[TokenInfo]] = None,
        max_transactions: int = DEFAULT_MAX_TRANSACTIONS,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        """
        Initialize the aggregator.

        Args:
            client: Wallet provider client for account, chain and balance calls
            history: Transaction history client (placeholder history when None)
            chain_info: Optional chain-info client for network summaries
            token_catalog: Tokens to look up (defaults to TOKEN_CATALOG)
            max_transactions: Number of most recent transactions to keep
            max_workers: Thread pool size for concurrent token lookups
        """
        self.client = client
        self.history = history
        self.chain_info = chain_info
        self.token_catalog = list(TOKEN_CATALOG if token_catalog is None else token_catalog)
        self.max_transactions = max_transactions
        self.max_workers = max_workers

    def connect(
        self, interactive: bool = True, accounts: Optional[List[str]] = None
    ) -> ConnectResult:
        """
        Connect to the wallet and build a fully populated session.

        Args:
            interactive: Request account access (may prompt the user). When
                False only already-authorized accounts are used.
            accounts: Accounts already obtained by the caller; skips the account
                request when given

        Returns:
            ConnectResult with the session and its token balances and history

        Raises:
            UserRejected: If no account is available
            WalletError: If the account, chain id or balance call fails
        """
        if accounts is None:
            if interactive:
                accounts = self.client.request_accounts()
            else:
                accounts = self.client.get_accounts()

        if not accounts:
            raise UserRejected("No accounts found")

        address = accounts[0]
        chain_id = self.client.get_chain_id()
        balance = to_ether(self.client.get_balance(address))

        session = WalletSession(
            connected=True,
            address=address,
            native_balance=balance,
            network_name=name_for(chain_id),
            chain_id=chain_id,
        )

        snapshot = AccountSnapshot(
            native_balance=balance,
            token_balances=self.fetch_token_balances(address),
            transactions=self.fetch_transactions(address),
        )
        return ConnectResult(session=session, snapshot=snapshot)

    def refresh(self, address: str) -> AccountSnapshot:
        """
        Re-fetch balance, token balances and history of a connected address.

        Raises:
            WalletError: If the native balance call fails
        """
        balance = to_ether(self.client.get_balance(address))
        return AccountSnapshot(
            native_balance=balance,
            token_balances=self.fetch_token_balances(address),
            transactions=self.fetch_transactions(address),
        )

    def _fetch_token_balance(self, token: TokenInfo, address: str) -> Optional[TokenBalance]:
        data = self.client.call_contract(token.contract_address, encode_balance_of(address))
        if not data:
            raise MalformedResponse("Empty return data (no contract at address)")

        amount = to_display(int.from_bytes(data, "big"), token.decimals, TOKEN_PRECISION)
        if amount <= 0:
            return None

        return TokenBalance(
            symbol=token.symbol,
            contract_address=token.contract_address,
            decimals=token.decimals,
            amount=amount,
        )

    def fetch_token_balances(self, address: str) -> List[TokenBalance]:
        """
        Look up the catalog tokens held by an address.

        Lookups run concurrently. A token whose call fails is skipped; zero
        balances are omitted.

        Returns:
            Non-zero balances in catalog order
        """
        if not self.token_catalog:
            return []

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                (token, executor.submit(self._fetch_token_balance, token, address))
                for token in self.token_catalog
            ]

        balances: List[TokenBalance] = []
        skipped = 0
        for token, future in futures:
            try:
                balance = future.result()
            except WalletError as e:
                log("tokens", f"Error fetching {token.symbol} balance: {e}")
                skipped += 1
                continue
            if balance is not None:
                balances.append(balance)

        if skipped > 0:
            log("tokens", f"Skipped {skipped} token(s) due to balance lookup failures")

        return balances

    def fetch_transactions(self, address: str) -> List[TransactionRecord]:
        """
        Fetch the most recent transactions of an address.

        When the history service fails, a single placeholder record marked
        is_placeholder is returned instead and the failure is logged.

        Returns:
            At most max_transactions records, most recent first
        """
        if self.history is None:
            log("history", "No history service configured, using placeholder history")
            return placeholder_transactions(address)

        try:
            raw_transactions = self.history.get_transactions(address, limit=self.max_transactions)
            records = [normalize_transaction(raw) for raw in raw_transactions]
        except WalletError as e:
            log("history", f"Error fetching transactions: {e}. Using placeholder history")
            return placeholder_transactions(address)

        records.sort(key=lambda tx: (tx.block_number, tx.timestamp), reverse=True)
        return records[: self.max_transactions]

    def fetch_chain_info(self) -> Optional[ChainInfo]:
        """Get the network summary, or None when unavailable."""
        if self.chain_info is None:
            return None

        try:
            return self.chain_info.get_info()
        except WalletError as e:
            log("chain-info", f"Error fetching network info: {e}")
            return None

    def fetch_account_quote(self, address: str) -> Optional[AccountBalance]:
        """Get the USD-valued balance summary of an address, or None when unavailable."""
        if self.chain_info is None:
            return None

        try:
            return self.chain_info.get_balance(address)
        except WalletError as e:
            log("chain-info", f"Error fetching balance quote: {e}")
            return None
