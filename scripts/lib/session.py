"""
Wallet session state machine.

WalletSessionMachine is the single writer of the session record and its
derived data. Transitions:

    DISCONNECTED --connect--> CONNECTING --> CONNECTED | ERROR
    ERROR        --connect--> CONNECTING
    CONNECTED    --refresh--> CONNECTED
    any          --disconnect--> DISCONNECTED

Only one operation runs at a time; an overlapping call raises SessionBusy.
"""

import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional

from .aggregator import ChainDataAggregator
from .console import log
from .errors import SessionBusy, WalletError
from .models import (
    AccountBalance,
    AccountSnapshot,
    ChainInfo,
    SessionState,
    TokenBalance,
    TransactionRecord,
    WalletSession,
)
from .networks import ExplorerKind, explorer_url_for


class WalletSessionMachine:
    """Holds the wallet session and drives it through connect, refresh and disconnect."""

    def __init__(self, aggregator: ChainDataAggregator):
        self.aggregator = aggregator
        self.state = SessionState.DISCONNECTED
        self.session = WalletSession()
        self.token_balances: List[TokenBalance] = []
        self.transactions: List[TransactionRecord] = []
        self.chain_info: Optional[ChainInfo] = None
        self.account_quote: Optional[AccountBalance] = None
        self.refreshing = False
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self.state is SessionState.CONNECTED

    @contextmanager
    def _exclusive(self, operation: str) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise SessionBusy(f"Cannot {operation} while another wallet operation is running")
        try:
            yield
        finally:
            self._lock.release()

    def _reset(self, error: Optional[str] = None) -> None:
        self.session = WalletSession(error=error)
        self.token_balances = []
        self.transactions = []
        self.chain_info = None
        self.account_quote = None

    def start(self) -> SessionState:
        """
        Restore a connection the user already authorized.

        Uses the non-prompting account query, so no permission prompt is
        shown. Probe failures are logged and leave the machine disconnected.
        Skipped when another operation is already running.
        """
        try:
            with self._exclusive("check the wallet connection"):
                try:
                    accounts = self.aggregator.client.get_accounts()
                except WalletError as e:
                    log("session", f"Error checking wallet connection: {e}")
                    return self.state

                if accounts:
                    self._connect(interactive=False, accounts=accounts)
        except SessionBusy as e:
            log("session", str(e))
        return self.state

    def connect(self, interactive: bool = True) -> WalletSession:
        """
        Connect the wallet and load balances and history.

        On failure the machine moves to ERROR with session.error set and
        connected False.

        Args:
            interactive: Allow the wallet to show a permission prompt

        Raises:
            SessionBusy: If another operation is running
        """
        with self._exclusive("connect"):
            return self._connect(interactive=interactive)

    def _connect(
        self, interactive: bool, accounts: Optional[List[str]] = None
    ) -> WalletSession:
        self.state = SessionState.CONNECTING
        self.session = WalletSession(loading=True)

        try:
            result = self.aggregator.connect(interactive=interactive, accounts=accounts)
        except WalletError as e:
            log("session", f"Error connecting wallet: {e}")
            self._reset(error=str(e))
            self.state = SessionState.ERROR
            return self.session
        except Exception:
            self._reset(error="Failed to connect wallet")
            self.state = SessionState.ERROR
            raise

        self.session = result.session
        self.token_balances = result.snapshot.token_balances
        self.transactions = result.snapshot.transactions
        self.chain_info = self.aggregator.fetch_chain_info()
        self.account_quote = self.aggregator.fetch_account_quote(result.session.address)
        self.state = SessionState.CONNECTED
        log("session", f"Wallet connected: {self.session.address} on {self.session.network_name}")
        return self.session

    def refresh(self) -> Optional[AccountSnapshot]:
        """
        Reload balance, token balances and history of the connected address.

        Does nothing when not connected. A failure keeps the previous data
        and sets session.error.

        Returns:
            The new snapshot, or None if nothing was refreshed

        Raises:
            SessionBusy: If another operation is running
        """
        with self._exclusive("refresh"):
            if not self.is_connected or self.session.address is None:
                return None

            self.refreshing = True
            try:
                snapshot = self.aggregator.refresh(self.session.address)
                chain_info = self.aggregator.fetch_chain_info()
                account_quote = self.aggregator.fetch_account_quote(self.session.address)
            except WalletError as e:
                log("session", f"Error refreshing data: {e}")
                self.session.error = str(e)
                return None
            finally:
                self.refreshing = False

            self.session.native_balance = snapshot.native_balance
            self.session.error = None
            self.token_balances = snapshot.token_balances
            self.transactions = snapshot.transactions
            self.chain_info = chain_info
            self.account_quote = account_quote
            log("session", "Data refreshed")
            return snapshot

    def disconnect(self) -> WalletSession:
        """
        Drop the connection and all derived data.

        Raises:
            SessionBusy: If another operation is running
        """
        with self._exclusive("disconnect"):
            self._reset()
            self.state = SessionState.DISCONNECTED
            log("session", "Wallet disconnected")
            return self.session

    def address_explorer_url(self) -> Optional[str]:
        """Explorer page of the connected address."""
        if self.session.address is None or self.session.chain_id is None:
            return None
        return explorer_url_for(self.session.chain_id, ExplorerKind.ADDRESS, self.session.address)

    def transaction_explorer_url(self, tx_hash: str) -> str:
        """Explorer page of a transaction on the connected chain."""
        chain_id = self.session.chain_id if self.session.chain_id is not None else 1
        return explorer_url_for(chain_id, ExplorerKind.TRANSACTION, tx_hash)
