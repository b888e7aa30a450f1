"""
Transaction history client for Etherscan-compatible explorer APIs.

Returns the raw transaction dictionaries of the txlist endpoint; turning
them into TransactionRecords is left to the aggregator.
"""

from typing import Any, Dict, List, Optional

from .errors import MalformedResponse, NetworkUnreachable
from .http_client import RetryingHttpClient

DEFAULT_HISTORY_URL = "https://api.etherscan.io/api"
DEFAULT_API_KEY = "demo"

NO_TRANSACTIONS_MESSAGE = "No transactions found"


class EtherscanClient(RetryingHttpClient):
    """Client for the account txlist endpoint."""

    def __init__(
        self,
        api_key: str = DEFAULT_API_KEY,
        base_url: str = DEFAULT_HISTORY_URL,
        **retry_options: Any,
    ):
        """
        Initialize the client.

        Args:
            api_key: Explorer API key
            base_url: API endpoint (varies per explorer)
            retry_options: Passed through to RetryingHttpClient
        """
        super().__init__(**retry_options)
        self.api_key = api_key
        self.base_url = base_url

    def _sanitize_error_message(self, message: str) -> str:
        """Remove API key from error messages to prevent credential leakage."""
        return message.replace(self.api_key, "[REDACTED]")

    def get_transactions(
        self, address: str, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Get the transactions of an address, most recent first.

        Args:
            address: Account address
            limit: Maximum number of transactions to request (all when None)

        Returns:
            Raw transaction objects as returned by the API

        Raises:
            NetworkUnreachable: On transport failure or non-success HTTP status
            MalformedResponse: If the payload is not a recognizable txlist result
        """
        params = {
            "module": "account",
            "action": "txlist",
            "address": address,
            "sort": "desc",
            "apikey": self.api_key,
        }
        if limit is not None:
            params["page"] = "1"
            params["offset"] = str(limit)

        response = self._execute_with_retry(
            lambda: self.session.get(self.base_url, params=params, timeout=self.timeout)
        )
        if not response.ok:
            raise NetworkUnreachable(
                f"History request failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponse("History response is not JSON") from e

        if not isinstance(data, dict):
            raise MalformedResponse("History response is not an object")

        status = data.get("status")
        result = data.get("result")

        if status == "1" and isinstance(result, list):
            return result

        if status == "0" and data.get("message") == NO_TRANSACTIONS_MESSAGE:
            return []

        # Errors come back as status "0" with the reason in result
        reason = result if isinstance(result, str) else data.get("message", "unknown error")
        raise MalformedResponse(
            f"History service error: {self._sanitize_error_message(str(reason))}"
        )
