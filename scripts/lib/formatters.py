"""
Output formatters for wallet session reports.

This module renders the session for the terminal and handles CSV export
of transaction history with timestamp-based filenames.
"""

import csv
from datetime import datetime
from pathlib import Path
from typing import List, Optional, TextIO

from .models import TRANSACTION_CSV_COLUMNS, TransactionRecord
from .session import WalletSessionMachine
from .units import GAS_PRICE_PRECISION, NATIVE_PRECISION, format_amount


def format_address(address: str) -> str:
    """
    Shorten an address for display.

    Examples:
        format_address("0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045") -> "0xd8dA...6045"
    """
    return f"{address[:6]}...{address[-4:]}"


def format_timestamp(timestamp: int) -> str:
    """Format a unix timestamp (seconds) as local time."""
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S")


def generate_timestamp() -> str:
    """
    Generate a timestamp string for filenames.

    Returns:
        Timestamp in YYYYMMDD_HHMMSS format
    """
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def generate_filename(base_path: str, timestamp: Optional[str] = None) -> str:
    """
    Generate a timestamped filename for a history export.

    Examples:
        generate_filename("history.csv", "20241214_153022")
        -> "history_20241214_153022.csv"
    """
    if timestamp is None:
        timestamp = generate_timestamp()

    path = Path(base_path)
    suffix = path.suffix or ".csv"
    return str(path.parent / f"{path.stem}_{timestamp}{suffix}")


def write_transactions_to_stream(transactions: List[TransactionRecord], stream: TextIO) -> None:
    """
    Write transactions to a CSV stream.

    Placeholder records are never exported.
    """
    writer = csv.writer(stream)
    writer.writerow(TRANSACTION_CSV_COLUMNS)

    for tx in transactions:
        if tx.is_placeholder:
            continue
        writer.writerow(tx.to_csv_row())


def write_transactions_csv(transactions: List[TransactionRecord], output_path: str) -> str:
    """
    Write transactions to a timestamped CSV file.

    Returns:
        Path of the written file
    """
    filename = generate_filename(output_path)
    with open(filename, "w", newline="", encoding="utf-8") as f:
        write_transactions_to_stream(transactions, f)
    return filename


def render_session(machine: WalletSessionMachine) -> List[str]:
    """Render the session and its derived data as report lines."""
    session = machine.session

    if not session.connected:
        lines = [f"Status: {machine.state.value}"]
        if session.error:
            lines.append(f"Error: {session.error}")
        return lines

    lines = [
        f"Status: {machine.state.value}",
        f"Address: {session.address} ({format_address(session.address or '')})",
        f"Network: {session.network_name} (Chain ID: {session.chain_id})",
        f"Balance: {session.display_balance} ETH",
    ]

    explorer_url = machine.address_explorer_url()
    if explorer_url:
        lines.append(f"Explorer: {explorer_url}")

    if machine.chain_info is not None:
        info = machine.chain_info
        usd_value = (session.native_balance or 0) * info.eth_price
        lines.append(
            f"Gas price: {format_amount(info.gas_price_gwei, GAS_PRICE_PRECISION)} Gwei, "
            f"block {info.block_number}, "
            f"balance value ${format_amount(usd_value, 2)}"
        )

    quote = machine.account_quote
    if quote is not None:
        lines.append(f"Quoted value: ${format_amount(quote.usd_value, 2)}")
        for token in quote.tokens:
            lines.append(
                f"  {token.symbol}: {format_amount(token.balance, 2)} "
                f"(${format_amount(token.usd_value, 2)})"
            )

    lines.append("")
    lines.append("Tokens:")
    if machine.token_balances:
        for token in machine.token_balances:
            lines.append(f"  {token.symbol}: {token.display_amount} ({token.contract_address})")
    else:
        lines.append("  No token balances found")

    lines.append("")
    lines.append("Recent transactions:")
    if not machine.transactions:
        lines.append("  No transactions found")
    for tx in machine.transactions:
        direction = "OUT" if tx.from_address.lower() == (session.address or "").lower() else "IN"
        counterparty = tx.to_address if direction == "OUT" else tx.from_address
        marker = " [placeholder]" if tx.is_placeholder else ""
        lines.append(
            f"  {format_address(tx.hash)} {direction} "
            f"{format_amount(tx.value_eth, NATIVE_PRECISION)} ETH "
            f"{'to' if direction == 'OUT' else 'from'} "
            f"{format_address(counterparty) if counterparty else 'contract creation'} "
            f"[{tx.status.value}] {format_timestamp(tx.timestamp)}{marker}"
        )

    return lines
