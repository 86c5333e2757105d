"""
Trading Logic Module

Swaps and liquidity provisioning against Oroswap pair contracts.
Both go straight to the chain with no simulation step. Liquidity is
provided in the pool's current reserve ratio.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Tuple

from .config import BotSettings
from .gateway import BalanceOracle, ChainGateway, TransactionReceipt
from .utils import ChainError, ConfigError, console, format_amount, format_tx_link, logger, to_micro
from .wallet import WalletHandle


@dataclass(frozen=True)
class PoolState:
    """Reserve snapshot of a two-asset pool, in decimal units."""
    reserve_token: float
    reserve_native: float

    @property
    def ratio(self) -> float:
        return self.reserve_token / self.reserve_native


@dataclass
class RunStats:
    """Counters accumulated over one run of the bot."""
    passes: int = 0
    wallets_processed: int = 0
    swaps_submitted: int = 0
    swaps_skipped: int = 0
    swap_backs_submitted: int = 0
    liquidity_tx_count: int = 0
    liquidity_skipped: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _asset_denom(asset: Dict[str, Any]) -> Optional[str]:
    info = asset.get("info") or {}
    native = info.get("native_token") or {}
    return native.get("denom")


def parse_pool_state(pool_info: Any, token_denom: str, native_denom: str) -> Optional[PoolState]:
    """
    Extract token and native reserves from a pair's `pool` query response.

    Assets are matched by denom; when the response does not name them the
    first asset is taken as the token side and the second as native.
    Returns None for a missing response, fewer than two assets, or a
    non-positive reserve.
    """
    if not pool_info or not isinstance(pool_info, dict):
        return None

    assets = pool_info.get("assets") or []
    if len(assets) < 2:
        return None

    by_denom = {_asset_denom(a): a for a in assets}
    token_asset = by_denom.get(token_denom, assets[0])
    native_asset = by_denom.get(native_denom, assets[1])

    reserve_token = float(token_asset["amount"]) / 1e6
    reserve_native = float(native_asset["amount"]) / 1e6
    if reserve_token <= 0 or reserve_native <= 0:
        return None

    return PoolState(reserve_token=reserve_token, reserve_native=reserve_native)


def balance_contribution(token_budget: float, native_budget: float,
                         reserve_token: float, reserve_native: float) -> Tuple[float, float]:
    """
    Scale one side of a (token, native) budget so it matches the pool ratio.

    If the token budget is proportionally larger than the reserves imply,
    the token side is cut to native_budget * ratio; otherwise the native
    side is cut to token_budget / ratio. The other side is used in full.
    """
    ratio = reserve_token / reserve_native

    if token_budget / native_budget > ratio:
        return native_budget * ratio, native_budget
    return token_budget, token_budget / ratio


class SwapInvoker:
    """Builds and submits swap transactions for configured pairs."""

    def __init__(self, gateway: ChainGateway, settings: BotSettings):
        self.gateway = gateway
        self.settings = settings

    def _symbol(self, denom: str) -> str:
        if denom == self.settings.native_denom:
            return self.settings.native_symbol
        for pair in self.settings.pairs:
            if pair.denom == denom:
                return pair.symbol
        return denom

    def perform_swap(self, wallet: WalletHandle, offer_denom: str, ask_denom: str,
                     amount: float, pair_name: str, index: int, total: int) -> Optional[TransactionReceipt]:
        """
        Swap `amount` of offer_denom through the pair contract of pair_name.

        Returns:
            The receipt, or None when pair_name is not configured
        """
        pair = self.settings.get_pair(pair_name)
        if pair is None:
            logger.debug(f"No contract configured for pair {pair_name}, skipping swap")
            return None

        micro_amount = to_micro(amount)
        funds = [{"denom": offer_denom, "amount": micro_amount}]
        msg = {
            "swap": {
                "offer_asset": {
                    "amount": micro_amount,
                    "info": {"native_token": {"denom": offer_denom}},
                },
                "max_spread": self.settings.swap_max_spread,
            }
        }

        receipt = self.gateway.execute(wallet, pair.contract, msg, funds, context=f"swap {pair_name}")

        progress = f"[{index}/{total}]" if total else "[swap-back]"
        console.print(
            f"[yellow]{progress}[/yellow] Swapped [green]{self._symbol(offer_denom)}[/green] → "
            f"[cyan]{self._symbol(ask_denom)}[/cyan] ([magenta]{format_amount(amount)}[/magenta]) | "
            f"[blue]{format_tx_link(self.settings.explorer_url, receipt.tx_hash)}[/blue]"
        )
        return receipt


class LiquidityBalancer:
    """Provides liquidity in the live pool ratio from a slice of the wallet's balances."""

    def __init__(self, gateway: ChainGateway, oracle: BalanceOracle, settings: BotSettings):
        self.gateway = gateway
        self.oracle = oracle
        self.settings = settings

    def fetch_pool_state(self, contract: str, token_denom: str, native_denom: str) -> Optional[PoolState]:
        """Current reserves, or None with a warning when the pool cannot be read."""
        try:
            pool_info = self.gateway.query_contract_smart(contract, {"pool": {}})
        except ChainError as e:
            logger.warning(f"[Pool] Failed to get pool info for {contract}: {e}")
            return None

        pool = parse_pool_state(pool_info, token_denom, native_denom)
        if pool is None:
            logger.warning(f"[Pool] Unusable pool info for {contract}")
        return pool

    def add_liquidity(self, wallet: WalletHandle, token_denom: str, native_denom: str,
                      pair_name: str, stats: RunStats) -> Optional[TransactionReceipt]:
        """
        Provide liquidity to pair_name with a ratio-matched contribution.

        Args:
            wallet: Contributing wallet
            token_denom: Denomination of the pair's token side
            native_denom: Denomination of the native side
            pair_name: Configured pair symbol
            stats: Run counters; liquidity_tx_count numbers each submission

        Returns:
            The receipt, or None if the action was skipped

        Raises:
            ConfigError: pair_name has no configured contract
        """
        pair = self.settings.get_pair(pair_name)
        if pair is None:
            raise ConfigError(f"No contract configured for pair {pair_name}")

        token_balance = self.oracle.get_decimal_balance(wallet.address, token_denom)
        native_balance = self.oracle.get_decimal_balance(wallet.address, native_denom)
        if token_balance <= 0 or native_balance <= 0:
            stats.liquidity_skipped += 1
            return None

        token_budget = token_balance * self.settings.liquidity_budget_fraction
        native_budget = native_balance * self.settings.liquidity_budget_fraction

        pool = self.fetch_pool_state(pair.contract, token_denom, native_denom)
        if pool is None:
            stats.liquidity_skipped += 1
            return None

        token_amount, native_amount = balance_contribution(
            token_budget, native_budget, pool.reserve_token, pool.reserve_native
        )

        micro_token = to_micro(token_amount)
        micro_native = to_micro(native_amount)
        if micro_token == "0" or micro_native == "0":
            stats.liquidity_skipped += 1
            return None

        msg = {
            "provide_liquidity": {
                "assets": [
                    {"amount": micro_token, "info": {"native_token": {"denom": token_denom}}},
                    {"amount": micro_native, "info": {"native_token": {"denom": native_denom}}},
                ],
                "slippage_tolerance": self.settings.liquidity_slippage_tolerance,
            }
        }
        funds = [
            {"denom": token_denom, "amount": micro_token},
            {"denom": native_denom, "amount": micro_native},
        ]

        receipt = self.gateway.execute(
            wallet, pair.contract, msg, funds, context=f"{pair_name} LP on {wallet.address}"
        )

        stats.liquidity_tx_count += 1
        console.print(
            f"[green][{stats.liquidity_tx_count}] LP[/green] [yellow]{pair_name}[/yellow] + "
            f"{self.settings.native_symbol} | Amount = {format_amount(token_amount)} "
            f"[blue]{format_tx_link(self.settings.explorer_url, receipt.tx_hash)}[/blue]"
        )
        return receipt
