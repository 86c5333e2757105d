"""
Tests for the chain gateway
===========================

No network access: the ledger client is a MagicMock produced by a fake
factory and the broadcast helper is patched.
"""

import json
from unittest.mock import MagicMock, Mock, patch

import pytest
import requests
from requests.adapters import HTTPAdapter

from oroswap_bot.config import BotSettings
from oroswap_bot.gateway import (
    BalanceOracle, ChainGateway, TimeoutHTTPAdapter, TransactionReceipt,
    build_network_config, make_ledger_factory
)
from oroswap_bot.retry import RetryExecutor
from oroswap_bot.utils import ChainError, ErrorKind


@pytest.fixture
def ledger():
    return MagicMock(name="ledger")


@pytest.fixture
def ledger_factory(ledger):
    return Mock(return_value=ledger)


@pytest.fixture
def sleep():
    return Mock()


@pytest.fixture
def gateway(settings, ledger_factory, sleep):
    return ChainGateway(settings, RetryExecutor(600, sleep=sleep), ledger_factory=ledger_factory)


class TestNetworkConfig:

    def test_rest_prefix_added(self):
        config = build_network_config(BotSettings(rest_url="https://testnet-api.zigchain.com"))
        assert config.url == "rest+https://testnet-api.zigchain.com"
        assert config.chain_id == "zig-test-2"
        assert config.fee_denomination == "uzig"
        assert config.fee_minimum_gas_price == 0.026

    def test_existing_prefix_kept(self):
        config = build_network_config(BotSettings(rest_url="rest+https://node.example"))
        assert config.url == "rest+https://node.example"


class TestReads:

    def test_get_balance(self, gateway, ledger, ledger_factory):
        ledger.query_bank_balance.return_value = 2_500_000

        assert gateway.get_balance("zig1abc", "uzig") == 2_500_000
        ledger.query_bank_balance.assert_called_once_with("zig1abc", denom="uzig")
        ledger_factory.assert_called_once()

    def test_fresh_client_per_call(self, gateway, ledger, ledger_factory):
        ledger.query_bank_balance.return_value = 1

        gateway.get_balance("zig1abc", "uzig")
        gateway.get_balance("zig1abc", "uzig")

        assert ledger_factory.call_count == 2

    def test_oracle_scales_to_decimal(self, gateway, ledger):
        ledger.query_bank_balance.return_value = 2_500_000
        assert BalanceOracle(gateway).get_decimal_balance("zig1abc", "uzig") == 2.5

    def test_rate_limited_read_is_retried(self, gateway, ledger, sleep):
        ledger.query_bank_balance.side_effect = [Exception("429 Too Many Requests"), 7]

        assert gateway.get_balance("zig1abc", "uzig") == 7
        sleep.assert_called_once_with(600)

    def test_rate_limited_connect_is_retried(self, settings, ledger, sleep):
        factory = Mock(side_effect=[Exception("Headers Timeout Error"), ledger])
        ledger.query_bank_balance.return_value = 3
        gateway = ChainGateway(settings, RetryExecutor(600, sleep=sleep), ledger_factory=factory)

        assert gateway.get_balance("zig1abc", "uzig") == 3
        assert factory.call_count == 2

    def test_stalled_node_is_retried(self, gateway, ledger, sleep):
        ledger.query_bank_balance.side_effect = [requests.exceptions.ReadTimeout("read timed out"), 5]

        assert gateway.get_balance("zig1abc", "uzig") == 5
        sleep.assert_called_once_with(600)

    def test_query_contract_smart(self, gateway, ledger):
        pool = {"assets": [{"info": {"native_token": {"denom": "uzig"}}, "amount": "5"}]}
        ledger.wasm.SmartContractState.return_value = Mock(data=json.dumps(pool).encode())

        assert gateway.query_contract_smart("zig1pair", {"pool": {}}) == pool

        request = ledger.wasm.SmartContractState.call_args[0][0]
        assert request.address == "zig1pair"
        assert json.loads(request.query_data) == {"pool": {}}

    def test_query_failure_is_classified(self, gateway, ledger):
        ledger.wasm.SmartContractState.side_effect = Exception("contract not found")

        with pytest.raises(ChainError) as excinfo:
            gateway.query_contract_smart("zig1pair", {"pool": {}})

        assert excinfo.value.kind == ErrorKind.NOT_FOUND
        assert excinfo.value.context == "query zig1pair"


class TestExecute:

    @patch("oroswap_bot.gateway.Transaction")
    @patch("oroswap_bot.gateway.MsgExecuteContract")
    @patch("oroswap_bot.gateway.prepare_and_broadcast_basic_transaction")
    def test_execute_builds_and_waits(self, mock_broadcast, mock_msg, mock_tx, gateway, ledger, wallet):
        submitted = Mock(tx_hash="ABC123")
        mock_broadcast.return_value = submitted
        msg = {"swap": {"max_spread": "0.01"}}
        funds = [
            {"denom": "uzig", "amount": "2000000"},
            {"denom": "coin.zig1x.uoro", "amount": "1000000"},
        ]

        receipt = gateway.execute(wallet, "zig1pair", msg, funds, context="ORO LP")

        assert receipt == TransactionReceipt(tx_hash="ABC123")
        submitted.wait_to_complete.assert_called_once()

        kwargs = mock_msg.call_args.kwargs
        assert kwargs["sender"] == wallet.address
        assert kwargs["contract"] == "zig1pair"
        assert json.loads(kwargs["msg"]) == msg
        assert [c.denom for c in kwargs["funds"]] == ["coin.zig1x.uoro", "uzig"]
        assert [c.amount for c in kwargs["funds"]] == ["1000000", "2000000"]

        mock_tx.return_value.add_message.assert_called_once_with(mock_msg.return_value)
        mock_broadcast.assert_called_once_with(ledger, mock_tx.return_value, wallet.signer)

    @patch("oroswap_bot.gateway.prepare_and_broadcast_basic_transaction")
    def test_rejected_tx_propagates(self, mock_broadcast, gateway, wallet, sleep):
        mock_broadcast.side_effect = RuntimeError("insufficient funds")

        with pytest.raises(ChainError) as excinfo:
            gateway.execute(wallet, "zig1pair", {"swap": {}}, [{"denom": "uzig", "amount": "1"}],
                            context="swap ORO")

        assert excinfo.value.kind == ErrorKind.PERMANENT
        assert excinfo.value.context == "swap ORO"
        sleep.assert_not_called()


class TestRequestTimeout:

    @patch.object(HTTPAdapter, "send")
    def test_rest_requests_carry_timeout(self, mock_send, settings):
        mock_send.side_effect = requests.exceptions.ConnectionError("offline")
        ledger = make_ledger_factory(30)(build_network_config(settings))

        with pytest.raises(requests.exceptions.ConnectionError):
            ledger.query_bank_balance("zig1abc", denom="uzig")

        assert mock_send.call_args.kwargs["timeout"] == 30

    @patch.object(HTTPAdapter, "send")
    def test_explicit_timeout_kept(self, mock_send):
        mock_send.side_effect = requests.exceptions.ConnectionError("offline")
        session = requests.Session()
        session.mount("https://", TimeoutHTTPAdapter(30))

        with pytest.raises(requests.exceptions.ConnectionError):
            session.get("https://node.example/status", timeout=5)

        assert mock_send.call_args.kwargs["timeout"] == 5

    def test_default_factory_uses_configured_timeout(self):
        settings = BotSettings(request_timeout_seconds=12)
        gateway = ChainGateway(settings, RetryExecutor(600, sleep=Mock()))

        ledger = gateway.connect_read_only()

        adapter = ledger.bank._rest_api._session.get_adapter("https://testnet-api.zigchain.com")
        assert isinstance(adapter, TimeoutHTTPAdapter)
        assert adapter.timeout == 12
