"""
Chain Client Gateway
====================
Read-only and signing access to the CosmWasm chain through one REST
endpoint. Every remote call is routed through the RetryExecutor with a
label naming the call site. A fresh client is built for every call.
"""

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from cosmpy.aerial.client import LedgerClient, NetworkConfig
from cosmpy.aerial.client.utils import prepare_and_broadcast_basic_transaction
from cosmpy.aerial.tx import Transaction
from cosmpy.protos.cosmos.base.v1beta1.coin_pb2 import Coin
from cosmpy.protos.cosmwasm.wasm.v1.query_pb2 import QuerySmartContractStateRequest
from cosmpy.protos.cosmwasm.wasm.v1.tx_pb2 import MsgExecuteContract

from .config import BotSettings
from .retry import RetryExecutor
from .utils import from_micro
from .wallet import WalletHandle


@dataclass(frozen=True)
class TransactionReceipt:
    """Hash of a committed transaction, kept only for reporting."""
    tx_hash: str


def build_network_config(settings: BotSettings) -> NetworkConfig:
    url = settings.rest_url
    if not url.startswith(("rest+", "grpc+")):
        url = f"rest+{url}"
    return NetworkConfig(
        chain_id=settings.chain_id,
        url=url,
        fee_minimum_gas_price=settings.gas_price,
        fee_denomination=settings.native_denom,
        staking_denomination=settings.native_denom,
    )


class TimeoutHTTPAdapter(HTTPAdapter):
    """HTTPAdapter that applies a default timeout to requests sent without one."""

    def __init__(self, timeout: float, *args, **kwargs):
        self.timeout = timeout
        super().__init__(*args, **kwargs)

    def send(self, request, **kwargs):
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = self.timeout
        return super().send(request, **kwargs)


def _rest_sessions(ledger: LedgerClient) -> List[requests.Session]:
    """The HTTP sessions behind a REST-backed ledger client."""
    sessions = []
    for client in vars(ledger).values():
        rest = getattr(client, "_rest_api", None) or getattr(client, "rest_client", None)
        session = getattr(rest, "_session", None)
        if isinstance(session, requests.Session) and not any(session is s for s in sessions):
            sessions.append(session)
    return sessions


def make_ledger_factory(timeout_seconds: float) -> Callable[[NetworkConfig], LedgerClient]:
    """
    Ledger client factory whose REST requests time out after timeout_seconds.

    A stalled node then surfaces as a requests Timeout, which the executor
    treats as transient.
    """
    def factory(network: NetworkConfig) -> LedgerClient:
        ledger = LedgerClient(network)
        adapter = TimeoutHTTPAdapter(timeout_seconds)
        for session in _rest_sessions(ledger):
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        return ledger

    return factory


class SigningClient:
    """A ledger client bound to one wallet for submitting transactions."""

    def __init__(self, ledger: LedgerClient, wallet: WalletHandle):
        self.ledger = ledger
        self.wallet = wallet

    def execute(self, sender: str, contract: str, msg: Dict[str, Any],
                funds: List[Dict[str, str]]) -> TransactionReceipt:
        """Broadcast a MsgExecuteContract with simulated gas and wait for inclusion."""
        # The SDK rejects unsorted coin lists
        coins = [Coin(denom=f["denom"], amount=str(f["amount"]))
                 for f in sorted(funds, key=lambda f: f["denom"])]
        execute_msg = MsgExecuteContract(
            sender=sender,
            contract=contract,
            msg=json.dumps(msg).encode("UTF8"),
            funds=coins,
        )

        tx = Transaction()
        tx.add_message(execute_msg)

        submitted = prepare_and_broadcast_basic_transaction(self.ledger, tx, self.wallet.signer)
        submitted.wait_to_complete()
        return TransactionReceipt(tx_hash=submitted.tx_hash)


class ChainGateway:
    """
    Produces clients bound to the configured endpoint and performs
    reads and writes through the executor.
    """

    def __init__(self, settings: BotSettings, executor: RetryExecutor,
                 ledger_factory: Optional[Callable[[NetworkConfig], Any]] = None):
        self.settings = settings
        self.executor = executor
        self._network = build_network_config(settings)
        self._ledger_factory = ledger_factory or make_ledger_factory(settings.request_timeout_seconds)

    def connect_read_only(self, context: str = "query") -> LedgerClient:
        return self.executor.execute(
            lambda: self._ledger_factory(self._network),
            f"{context} connect"
        )

    def connect_signing(self, wallet: WalletHandle, context: str = "tx") -> SigningClient:
        return self.executor.execute(
            lambda: SigningClient(self._ledger_factory(self._network), wallet),
            f"{context} signerConnect"
        )

    def get_balance(self, address: str, denom: str) -> int:
        """Raw balance in micro-units."""
        client = self.connect_read_only("getBalance")
        return int(self.executor.execute(
            lambda: client.query_bank_balance(address, denom=denom),
            f"getBalance {denom}"
        ))

    def query_contract_smart(self, contract: str, query: Dict[str, Any]) -> Any:
        """Run a smart query and return the decoded JSON response."""
        client = self.connect_read_only("queryContract")

        def _query():
            request = QuerySmartContractStateRequest(
                address=contract,
                query_data=json.dumps(query).encode("UTF8"),
            )
            response = client.wasm.SmartContractState(request)
            return json.loads(response.data)

        return self.executor.execute(_query, f"query {contract}")

    def execute(self, sender: WalletHandle, contract: str, msg: Dict[str, Any],
                funds: List[Dict[str, str]], context: str = "execute") -> TransactionReceipt:
        """Sign and submit a contract execution from sender."""
        client = self.connect_signing(sender, context)
        return self.executor.execute(
            lambda: client.execute(sender.address, contract, msg, funds),
            context
        )


class BalanceOracle:
    """Decimal balances, always read fresh from the chain."""

    def __init__(self, gateway: ChainGateway):
        self.gateway = gateway

    def get_decimal_balance(self, address: str, denom: str) -> float:
        return from_micro(self.gateway.get_balance(address, denom))
