"""Shared fixtures for the test suite."""

from unittest.mock import Mock

import pytest

from oroswap_bot.config import BotSettings
from oroswap_bot.wallet import WalletHandle


@pytest.fixture
def settings():
    return BotSettings()


@pytest.fixture
def wallet():
    return WalletHandle(signer=Mock(name="signer"), address="zig1qypqxpq9qcrsszg2pvxq6rs0zqg3yyc5lzv7xu")


@pytest.fixture
def balances():
    """Mutable denom -> decimal balance map backing fake_oracle."""
    return {}


@pytest.fixture
def fake_oracle(balances):
    oracle = Mock()
    oracle.get_decimal_balance.side_effect = lambda address, denom: balances.get(denom, 0.0)
    return oracle
