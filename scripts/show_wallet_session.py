#!/usr/bin/env python3
"""
Connect a wallet and show its balances and recent transactions.

This script connects to a wallet's local RPC endpoint, reuses an existing
authorization when there is one, and prints the native balance, token
balances and transaction history of the active account.
"""

import argparse
import os
import sys
from typing import List, Optional

from scripts.lib.aggregator import ChainDataAggregator
from scripts.lib.chain_info_client import ChainInfoClient
from scripts.lib.console import log
from scripts.lib.errors import WalletError
from scripts.lib.formatters import render_session, write_transactions_csv
from scripts.lib.history_client import DEFAULT_API_KEY, DEFAULT_HISTORY_URL, EtherscanClient
from scripts.lib.http_client import DEFAULT_TIMEOUT
from scripts.lib.provider_client import (
    DEFAULT_PROMPT_TIMEOUT,
    DEFAULT_PROVIDER_URL,
    HttpWalletProvider,
    WalletProviderClient,
)
from scripts.lib.session import WalletSessionMachine


def positive_float(value: str) -> float:
    """Argparse type for timeouts."""
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not a number: {value}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"Must be positive: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Connect a wallet and show its balances and recent transactions.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Connect to a local wallet, prompting for access if needed
  %(prog)s

  # Only reuse an existing authorization, export history to CSV
  %(prog)s --no-prompt --output history.csv
        """,
    )

    parser.add_argument(
        "--provider-url",
        default=DEFAULT_PROVIDER_URL,
        help=f"Wallet RPC endpoint (default: {DEFAULT_PROVIDER_URL})",
    )
    parser.add_argument(
        "--etherscan-api-key",
        default=os.environ.get("ETHERSCAN_API_KEY", DEFAULT_API_KEY),
        help="Explorer API key for transaction history (default: $ETHERSCAN_API_KEY)",
    )
    parser.add_argument(
        "--history-url",
        default=DEFAULT_HISTORY_URL,
        help=f"Explorer API endpoint (default: {DEFAULT_HISTORY_URL})",
    )
    parser.add_argument(
        "--chain-info-url",
        help="Chain-info API endpoint for gas price and ETH price. Skipped if not specified.",
    )
    parser.add_argument(
        "--no-prompt",
        action="store_true",
        help="Never ask the wallet for account access; only reuse an existing authorization",
    )
    parser.add_argument(
        "--timeout",
        type=positive_float,
        default=DEFAULT_TIMEOUT,
        help=f"HTTP request timeout in seconds (default: {DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument(
        "--prompt-timeout",
        type=positive_float,
        default=DEFAULT_PROMPT_TIMEOUT,
        help=(
            "Seconds to wait for the user to answer a wallet permission prompt "
            f"(default: {DEFAULT_PROMPT_TIMEOUT:g})"
        ),
    )
    parser.add_argument(
        "--output",
        help="Export transaction history to CSV (timestamp auto-appended).",
    )
    return parser


def build_machine(parsed_args: argparse.Namespace) -> WalletSessionMachine:
    """Wire the provider, service clients and aggregator into a session machine."""
    provider = HttpWalletProvider(
        parsed_args.provider_url,
        timeout=parsed_args.timeout,
        prompt_timeout=parsed_args.prompt_timeout,
    )
    history = EtherscanClient(
        parsed_args.etherscan_api_key,
        base_url=parsed_args.history_url,
        timeout=parsed_args.timeout,
    )
    chain_info = None
    if parsed_args.chain_info_url:
        chain_info = ChainInfoClient(parsed_args.chain_info_url, timeout=parsed_args.timeout)

    aggregator = ChainDataAggregator(
        WalletProviderClient(provider),
        history=history,
        chain_info=chain_info,
    )
    return WalletSessionMachine(aggregator)


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 for success, 1 for error)
    """
    parsed_args = build_parser().parse_args(args)
    machine = build_machine(parsed_args)

    log("session", "Checking for an existing wallet connection...")
    machine.start()

    if not machine.is_connected and not parsed_args.no_prompt:
        log("session", "Requesting wallet access, approve the request in your wallet...")
        machine.connect()

    for line in render_session(machine):
        print(line)

    if not machine.is_connected:
        if parsed_args.no_prompt and machine.session.error is None:
            log("session", "No authorized account found. Run without --no-prompt to connect.")
        return 1

    if parsed_args.output:
        try:
            filename = write_transactions_csv(machine.transactions, parsed_args.output)
        except OSError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print(f"\nHistory written to: {filename}", file=sys.stderr)

    return 0


def run() -> None:
    try:
        sys.exit(main())
    except WalletError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()
