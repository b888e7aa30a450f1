"""
Unit tests for the wallet provider and provider client.

Tests follow the Given/When/Then pattern for clarity.
"""

import json
from concurrent.futures import ThreadPoolExecutor

import pytest
import requests
import responses

from scripts.lib.errors import (
    InvalidAddress,
    MalformedResponse,
    NetworkUnreachable,
    ProviderRPCError,
    ProviderUnavailable,
    UserRejected,
)
from scripts.lib.provider_client import (
    HttpWalletProvider,
    WalletProviderClient,
    encode_balance_of,
    is_address,
)

PROVIDER_URL = "http://127.0.0.1:1248"


def make_provider(**kwargs):
    """Provider with fast retries for testing."""
    options = {"initial_delay": 0.001, "max_retries": 2, "jitter": 0}
    options.update(kwargs)
    return HttpWalletProvider(PROVIDER_URL, **options)


class TestEncodeBalanceOf:
    """Tests for balanceOf call data encoding."""

    def test_selector_followed_by_padded_owner(self, sample_wallet_address):
        """
        Given an owner address
        When encoding the balanceOf call
        Then the data should be the selector plus the address padded to 32 bytes
        """
        # When
        data = encode_balance_of(sample_wallet_address)

        # Then
        assert len(data) == 36
        assert data.hex() == "70a08231" + sample_wallet_address[2:].lower().rjust(64, "0")

    def test_rejects_malformed_owner(self):
        # When / Then
        with pytest.raises(InvalidAddress):
            encode_balance_of("0x1234")


class TestIsAddress:
    """Tests for address validation."""

    @pytest.mark.parametrize(
        "value",
        ["0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045", "0x" + "0" * 40],
    )
    def test_accepts_valid_addresses(self, value):
        # When / Then
        assert is_address(value)

    @pytest.mark.parametrize(
        "value",
        ["d8dA6BF26964aF9D7eEd9e03E53415D37aA96045", "0x123", "0x" + "g" * 40, None],
    )
    def test_rejects_invalid_addresses(self, value):
        # When / Then
        assert not is_address(value)


class TestHttpWalletProvider:
    """Tests for the JSON-RPC HTTP provider."""

    @responses.activate
    def test_sends_json_rpc_request_and_returns_result(self):
        """
        Given a wallet answering eth_chainId
        When requesting the chain id
        Then a JSON-RPC 2.0 payload should be sent and the result returned
        """
        # Given
        provider = make_provider()
        responses.add(
            responses.POST,
            PROVIDER_URL,
            json={"jsonrpc": "2.0", "id": 1, "result": "0x1"},
            status=200,
        )

        # When
        result = provider.request("eth_chainId")

        # Then
        assert result == "0x1"
        body = json.loads(responses.calls[0].request.body)
        assert body["jsonrpc"] == "2.0"
        assert body["method"] == "eth_chainId"
        assert body["params"] == []

    @responses.activate
    def test_request_ids_increase_per_request(self):
        # Given
        provider = make_provider()
        responses.add(responses.POST, PROVIDER_URL, json={"jsonrpc": "2.0", "id": 1, "result": "0x1"})

        # When
        provider.request("eth_chainId")
        provider.request("eth_chainId")

        # Then
        ids = [json.loads(call.request.body)["id"] for call in responses.calls]
        assert ids == [1, 2]

    @responses.activate
    def test_concurrent_requests_get_distinct_ids(self):
        """
        Given a provider shared by several worker threads
        When requests are sent concurrently
        Then every request should carry its own id
        """
        # Given
        provider = make_provider()
        responses.add(responses.POST, PROVIDER_URL, json={"jsonrpc": "2.0", "id": 1, "result": "0x"})

        # When
        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(lambda _: provider.request("eth_call"), range(50)))

        # Then
        ids = [json.loads(call.request.body)["id"] for call in responses.calls]
        assert sorted(ids) == list(range(1, 51))

    @responses.activate
    def test_user_rejection_maps_to_user_rejected(self):
        """
        Given a wallet whose user declines the permission prompt
        When requesting accounts
        Then UserRejected should be raised with the wallet's message
        """
        # Given
        provider = make_provider()
        responses.add(
            responses.POST,
            PROVIDER_URL,
            json={
                "jsonrpc": "2.0",
                "id": 1,
                "error": {"code": 4001, "message": "User rejected the request."},
            },
            status=200,
        )

        # When / Then
        with pytest.raises(UserRejected, match="User rejected") as exc_info:
            provider.request("eth_requestAccounts")

        assert exc_info.value.status_code == 4001

    @responses.activate
    def test_disconnected_code_maps_to_provider_unavailable(self):
        # Given
        provider = make_provider()
        responses.add(
            responses.POST,
            PROVIDER_URL,
            json={"jsonrpc": "2.0", "id": 1, "error": {"code": 4900, "message": "Disconnected"}},
            status=200,
        )

        # When / Then
        with pytest.raises(ProviderUnavailable):
            provider.request("eth_chainId")

    @responses.activate
    def test_other_rpc_errors_map_to_provider_rpc_error(self):
        # Given
        provider = make_provider()
        responses.add(
            responses.POST,
            PROVIDER_URL,
            json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "Method not found"}},
            status=200,
        )

        # When / Then
        with pytest.raises(ProviderRPCError, match="Method not found"):
            provider.request("eth_foo")

    @responses.activate
    def test_connection_refused_maps_to_provider_unavailable(self):
        """
        Given no wallet listening on the RPC port
        When sending a request
        Then ProviderUnavailable should be raised after retries
        """
        # Given
        provider = make_provider()
        for _ in range(3):
            responses.add(
                responses.POST,
                PROVIDER_URL,
                body=requests.ConnectionError("Connection refused"),
            )

        # When / Then
        with pytest.raises(ProviderUnavailable, match="No wallet provider reachable"):
            provider.request("eth_accounts")

        assert len(responses.calls) == 3  # Initial + 2 retries

    @responses.activate
    def test_prompt_timeout_is_not_retried(self):
        """
        Given a wallet that never answers a permission prompt
        When requesting accounts
        Then the request should fail once without re-prompting
        """
        # Given
        provider = make_provider(prompt_timeout=5)
        responses.add(
            responses.POST,
            PROVIDER_URL,
            body=requests.ReadTimeout("Read timed out"),
        )

        # When / Then
        with pytest.raises(ProviderUnavailable, match="did not respond within 5s"):
            provider.request("eth_requestAccounts")

        assert len(responses.calls) == 1

    @responses.activate
    def test_retries_on_server_error(self):
        # Given
        provider = make_provider()
        responses.add(responses.POST, PROVIDER_URL, status=502)
        responses.add(
            responses.POST,
            PROVIDER_URL,
            json={"jsonrpc": "2.0", "id": 1, "result": []},
            status=200,
        )

        # When
        result = provider.request("eth_accounts")

        # Then
        assert result == []
        assert len(responses.calls) == 2

    @responses.activate
    def test_persistent_server_error_raises_network_unreachable(self):
        # Given
        provider = make_provider()
        for _ in range(3):
            responses.add(responses.POST, PROVIDER_URL, status=500)

        # When / Then
        with pytest.raises(NetworkUnreachable) as exc_info:
            provider.request("eth_accounts")

        assert exc_info.value.status_code == 500

    @responses.activate
    def test_non_json_body_raises_malformed_response(self):
        # Given
        provider = make_provider()
        responses.add(responses.POST, PROVIDER_URL, body="<html>oops</html>", status=200)

        # When / Then
        with pytest.raises(MalformedResponse):
            provider.request("eth_accounts")


class TestWalletProviderClient:
    """Tests for WalletProviderClient."""

    def test_missing_provider_raises_provider_unavailable(self):
        """
        Given no wallet provider installed
        When requesting accounts
        Then ProviderUnavailable should be raised
        """
        # Given
        client = WalletProviderClient(None)

        # When / Then
        with pytest.raises(ProviderUnavailable):
            client.request_accounts()

    def test_request_accounts_uses_prompting_method(self, fake_provider, sample_wallet_address):
        # Given
        client = WalletProviderClient(fake_provider)

        # When
        accounts = client.request_accounts()

        # Then
        assert accounts == [sample_wallet_address]
        assert fake_provider.methods() == ["eth_requestAccounts"]

    def test_get_accounts_does_not_prompt(self, fake_provider):
        # Given
        client = WalletProviderClient(fake_provider)

        # When
        client.get_accounts()

        # Then
        assert fake_provider.methods() == ["eth_accounts"]

    def test_accounts_must_be_a_list(self, provider_factory):
        # Given
        client = WalletProviderClient(provider_factory({"eth_accounts": "0xabc"}))

        # When / Then
        with pytest.raises(MalformedResponse):
            client.get_accounts()

    def test_get_chain_id_parses_hex(self, provider_factory):
        # Given
        client = WalletProviderClient(provider_factory({"eth_chainId": "0x89"}))

        # When / Then
        assert client.get_chain_id() == 137

    def test_get_balance_queries_latest_block(self, fake_provider, dead_beef_address):
        """
        Given a wallet reporting 1 ETH in hex
        When getting the balance
        Then the wei integer should be returned for the latest block
        """
        # Given
        client = WalletProviderClient(fake_provider)

        # When
        balance = client.get_balance(dead_beef_address)

        # Then
        assert balance == 10**18
        assert fake_provider.calls == [("eth_getBalance", [dead_beef_address, "latest"])]

    def test_get_balance_rejects_invalid_address(self, fake_provider):
        # Given
        client = WalletProviderClient(fake_provider)

        # When / Then
        with pytest.raises(InvalidAddress):
            client.get_balance("not-an-address")
        assert fake_provider.calls == []

    def test_call_contract_sends_hex_data_and_decodes_result(
        self, provider_factory, sample_wallet_address
    ):
        # Given
        contract = "0x" + "a" * 40
        provider = provider_factory(call_results={contract: "0x" + "00" * 31 + "2a"})
        client = WalletProviderClient(provider)
        data = encode_balance_of(sample_wallet_address)

        # When
        result = client.call_contract(contract, data)

        # Then
        assert int.from_bytes(result, "big") == 42
        method, params = provider.calls[0]
        assert method == "eth_call"
        assert params == [{"to": contract, "data": "0x" + data.hex()}, "latest"]

    def test_call_contract_rejects_non_hex_result(self, provider_factory):
        # Given
        contract = "0x" + "a" * 40
        client = WalletProviderClient(provider_factory(call_results={contract: "0xzz"}))

        # When / Then
        with pytest.raises(MalformedResponse):
            client.call_contract(contract, b"\x00")
