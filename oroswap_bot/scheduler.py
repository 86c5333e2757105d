"""
Wallet Scheduler
================
Runs one wallet through its swap, optional swap-back and liquidity
phases, and repeats full passes over all wallets inside a time window.

Actions for a wallet are strictly sequential so each transaction sees
the account sequence left by the previous one.
"""

import random
import time
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, Optional

from .config import BotSettings, RunConfig
from .gateway import BalanceOracle
from .trader import LiquidityBalancer, RunStats, SwapInvoker
from .utils import console, format_amount, format_duration, logger
from .wallet import WalletHandle


@dataclass
class WalletPassResult:
    """What one wallet did during one pass."""
    address: str
    swaps_submitted: int = 0
    swaps_skipped: int = 0
    swap_backs_submitted: int = 0
    liquidity_submitted: int = 0
    liquidity_skipped: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class WalletScheduler:
    """
    Sequences the actions of a single wallet pass.

    Args:
        oracle: Balance reader
        swapper: Swap submitter
        balancer: Liquidity submitter
        settings: Native denom, pair table and trading constants
        sleep: Sleep function used for the inter-action delay
        rng: Source of swap amounts
    """

    def __init__(self, oracle: BalanceOracle, swapper: SwapInvoker, balancer: LiquidityBalancer,
                 settings: BotSettings, sleep: Callable[[float], None] = time.sleep,
                 rng: Optional[random.Random] = None):
        self.oracle = oracle
        self.swapper = swapper
        self.balancer = balancer
        self.settings = settings
        self._sleep = sleep
        self._rng = rng or random.Random()

    def snapshot_balances(self, address: str) -> Dict[str, float]:
        """Native balance plus every pair token's balance, keyed by symbol."""
        balances = {}
        for pair in self.settings.pairs:
            balances[pair.symbol] = self.oracle.get_decimal_balance(address, pair.denom)
        balances[self.settings.native_symbol] = self.oracle.get_decimal_balance(
            address, self.settings.native_denom
        )
        return balances

    def draw_swap_amount(self, config: RunConfig) -> float:
        """Uniform in [min, max)."""
        spread = config.max_swap_amount - config.min_swap_amount
        return config.min_swap_amount + self._rng.random() * spread

    def process_wallet(self, wallet: WalletHandle, config: RunConfig, wallet_index: int,
                       total_wallets: int, stats: RunStats) -> WalletPassResult:
        result = WalletPassResult(address=wallet.address)

        console.print(
            f"\n[bold bright_cyan]≡ Wallet {wallet_index}/{total_wallets}[/bold bright_cyan] "
            f"[yellow]{wallet.address}[/yellow]"
        )

        balances = self.snapshot_balances(wallet.address)
        console.print("\n[magenta]≡ Initial Balances:[/magenta]")
        for symbol, amount in balances.items():
            console.print(f"   [green]{symbol}[/green]: [yellow]{format_amount(amount)}[/yellow]")

        self._swap_phase(wallet, config, stats, result)

        if config.swap_back_enabled:
            self._swap_back_phase(wallet, config, stats, result)

        self._liquidity_phase(wallet, config, stats, result)

        stats.wallets_processed += 1
        logger.debug(f"Wallet pass finished: {result.to_dict()}")
        return result

    def _swap_phase(self, wallet: WalletHandle, config: RunConfig,
                    stats: RunStats, result: WalletPassResult):
        pairs = self.settings.pairs
        if not pairs or config.total_swap_count <= 0:
            return

        native = self.settings.native_denom
        max_attempts = config.total_swap_count * len(pairs)

        for attempt in range(max_attempts):
            if result.swaps_submitted >= config.total_swap_count:
                break

            pair = pairs[attempt % len(pairs)]
            amount = self.draw_swap_amount(config)
            balance = self.oracle.get_decimal_balance(wallet.address, native)
            if amount > balance or amount < config.min_swap_amount:
                result.swaps_skipped += 1
                stats.swaps_skipped += 1
                continue

            self.swapper.perform_swap(
                wallet, native, pair.denom, amount, pair.symbol,
                result.swaps_submitted + 1, config.total_swap_count
            )
            result.swaps_submitted += 1
            stats.swaps_submitted += 1
            self._sleep(config.inter_action_delay)

    def _swap_back_phase(self, wallet: WalletHandle, config: RunConfig,
                         stats: RunStats, result: WalletPassResult):
        console.print(
            f"\n[bright_blue]↩ Swapping back {self.settings.swap_back_fraction:.0%} "
            f"of each token to {self.settings.native_symbol}...[/bright_blue]"
        )
        for pair in self.settings.pairs:
            balance = self.oracle.get_decimal_balance(wallet.address, pair.denom)
            if balance <= self.settings.dust_threshold:
                continue

            amount = balance * self.settings.swap_back_fraction
            self.swapper.perform_swap(
                wallet, pair.denom, self.settings.native_denom, amount, pair.symbol, 0, 0
            )
            result.swap_backs_submitted += 1
            stats.swap_backs_submitted += 1
            self._sleep(config.inter_action_delay)

    def _liquidity_phase(self, wallet: WalletHandle, config: RunConfig,
                         stats: RunStats, result: WalletPassResult):
        pairs = self.settings.pairs
        if not pairs:
            return

        for i in range(config.liquidity_round_count):
            pair = pairs[i % len(pairs)]
            receipt = self.balancer.add_liquidity(
                wallet, pair.denom, self.settings.native_denom, pair.symbol, stats
            )
            if receipt is None:
                result.liquidity_skipped += 1
            else:
                result.liquidity_submitted += 1
            self._sleep(config.inter_action_delay)


def run_for_duration(window_seconds: float, pass_fn: Callable[[], Any],
                     clock: Callable[[], float] = time.monotonic,
                     sleep: Callable[[float], None] = time.sleep,
                     pause_seconds: float = 10) -> int:
    """
    Repeat pass_fn while less than window_seconds have elapsed.

    Elapsed time is only checked before each pass, so a pass that starts
    inside the window always runs to completion. Every pass is followed
    by a pause of pause_seconds.

    Returns:
        Number of passes run
    """
    start = clock()
    passes = 0

    while clock() - start < window_seconds:
        pass_fn()
        passes += 1
        sleep(pause_seconds)

    logger.info(f"Window of {format_duration(int(window_seconds))} elapsed after {passes} pass(es)")
    return passes
