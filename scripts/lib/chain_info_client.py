"""
Client for the chain-info HTTP API.

The service answers two queries on a single endpoint:
    GET ?action=info                     -> network summary
    GET ?action=balance&address=<addr>   -> balance summary with token quotes
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict

import requests

from .errors import InvalidAddress, MalformedResponse, NetworkUnreachable
from .http_client import RetryingHttpClient
from .models import AccountBalance, ChainInfo, TokenQuote
from .provider_client import validate_address

DEFAULT_CHAIN_INFO_URL = "http://localhost:3000/api/blockchain"


def _decimal(payload: Dict[str, Any], key: str) -> Decimal:
    try:
        return Decimal(str(payload[key]))
    except (KeyError, InvalidOperation) as e:
        raise MalformedResponse(f"Missing or invalid field: {key}") from e


def _error_message(response: requests.Response, default: str) -> str:
    try:
        data = response.json()
    except ValueError:
        return default
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return default


def _integer(payload: Dict[str, Any], key: str) -> int:
    try:
        return int(payload[key])
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedResponse(f"Missing or invalid field: {key}") from e


class ChainInfoClient(RetryingHttpClient):
    """Client for network and balance summaries."""

    def __init__(self, base_url: str = DEFAULT_CHAIN_INFO_URL, **retry_options: Any):
        """
        Initialize the client.

        Args:
            base_url: Chain-info endpoint
            retry_options: Passed through to RetryingHttpClient
        """
        super().__init__(**retry_options)
        self.base_url = base_url

    def _get(self, params: Dict[str, str]) -> Dict[str, Any]:
        response = self._execute_with_retry(
            lambda: self.session.get(self.base_url, params=params, timeout=self.timeout)
        )

        if response.status_code == 400:
            raise InvalidAddress(_error_message(response, "Bad request"), status_code=400)
        if not response.ok:
            raise NetworkUnreachable(
                f"Chain info request failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponse("Chain info response is not JSON") from e
        if not isinstance(data, dict):
            raise MalformedResponse("Chain info response is not an object")

        return data

    def get_info(self) -> ChainInfo:
        """Get the current gas price, block number, network and ETH price."""
        data = self._get({"action": "info"})
        return ChainInfo(
            gas_price_gwei=_decimal(data, "gasPrice"),
            block_number=_integer(data, "blockNumber"),
            network=str(data.get("network", "")),
            chain_id=_integer(data, "chainId"),
            eth_price=_decimal(data, "ethPrice"),
        )

    def get_balance(self, address: str) -> AccountBalance:
        """
        Get the balance summary of an address.

        Raises:
            InvalidAddress: If the address is malformed or rejected by the service
        """
        validate_address(address)
        data = self._get({"action": "balance", "address": address})

        tokens = data.get("tokens", [])
        if not isinstance(tokens, list):
            raise MalformedResponse("Field tokens is not a list")

        quotes = []
        for token in tokens:
            if not isinstance(token, dict):
                raise MalformedResponse("Token entry is not an object")
            quotes.append(
                TokenQuote(
                    symbol=str(token.get("symbol", "")),
                    balance=_decimal(token, "balance"),
                    usd_value=_decimal(token, "usdValue"),
                    contract_address=str(token.get("contractAddress", "")),
                )
            )

        return AccountBalance(
            address=str(data.get("address", address)),
            balance=_decimal(data, "balance"),
            usd_value=_decimal(data, "usdValue"),
            tokens=quotes,
        )
