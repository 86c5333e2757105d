"""
Oroswap Volume Bot for ZigChain Testnet

Multi-wallet swap and liquidity bot for Oroswap pair contracts.

Usage:
    oroswap-bot init-config
    oroswap-bot run --min-swap 1 --max-swap 2 --swaps 5 --lp-rounds 2 --delay 5

    # See README.md for full documentation
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .config import BotSettings, ConfigManager, RunConfig, TokenPair
from .wallet import WalletHandle, SecureMnemonicStore, load_mnemonics
from .retry import RetryExecutor, classify_error
from .gateway import ChainGateway, BalanceOracle
from .trader import SwapInvoker, LiquidityBalancer, RunStats, balance_contribution
from .scheduler import WalletScheduler, run_for_duration
from .bot import OroswapBot
from .utils import (
    logger,
    setup_logging,
    format_duration,
    ChainError,
    ErrorKind,
    ConfigError,
    WalletError,
)

__all__ = [
    "BotSettings",
    "ConfigManager",
    "RunConfig",
    "TokenPair",
    "WalletHandle",
    "SecureMnemonicStore",
    "load_mnemonics",
    "RetryExecutor",
    "classify_error",
    "ChainGateway",
    "BalanceOracle",
    "SwapInvoker",
    "LiquidityBalancer",
    "RunStats",
    "balance_contribution",
    "WalletScheduler",
    "run_for_duration",
    "OroswapBot",
    "logger",
    "setup_logging",
    "format_duration",
    "ChainError",
    "ErrorKind",
    "ConfigError",
    "WalletError",
]
