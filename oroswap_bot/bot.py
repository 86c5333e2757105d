#!/usr/bin/env python3
"""
Oroswap Volume Bot
==================
Multi-wallet swap and liquidity bot for Oroswap on ZigChain testnet.

Each pass walks every wallet in order: random-size swaps from ZIG into
the configured tokens, an optional partial swap back, then liquidity
provision in the live pool ratio. Passes repeat until the run window
closes.
"""

import sys
import time
import random
import getpass
import argparse
from pathlib import Path
from typing import Callable, List, Optional

from rich import box
from rich.panel import Panel
from rich.prompt import Confirm, FloatPrompt, IntPrompt
from rich.table import Table

from . import __version__
from .config import BotSettings, ConfigManager, RunConfig
from .gateway import BalanceOracle, ChainGateway
from .retry import RetryExecutor
from .scheduler import WalletScheduler, run_for_duration
from .trader import LiquidityBalancer, RunStats, SwapInvoker
from .utils import (
    ConfigError, WalletError, console, format_address, format_amount,
    format_duration, logger, setup_logging
)
from .wallet import SecureMnemonicStore, WalletHandle, derive_wallets, load_mnemonics


class OroswapBot:
    """
    Wires the executor, gateway and traders together and runs passes.

    Args:
        settings: Network and trading settings
        wallets: Wallets processed in order on every pass
        sleep: Sleep function shared by retries, delays and pauses
        clock: Monotonic clock for the run window
        ledger_factory: Builds a ledger client from a NetworkConfig; defaults
            to LedgerClient with the configured request timeout
        rng: Random source for swap amounts
    """

    def __init__(self, settings: BotSettings, wallets: List[WalletHandle],
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic,
                 ledger_factory=None,
                 rng: Optional[random.Random] = None):
        self.settings = settings
        self.wallets = wallets
        self._sleep = sleep
        self._clock = clock

        self.executor = RetryExecutor(settings.retry_delay_seconds, sleep=sleep)
        self.gateway = ChainGateway(settings, self.executor, ledger_factory=ledger_factory)
        self.oracle = BalanceOracle(self.gateway)
        self.swapper = SwapInvoker(self.gateway, settings)
        self.balancer = LiquidityBalancer(self.gateway, self.oracle, settings)
        self.scheduler = WalletScheduler(
            self.oracle, self.swapper, self.balancer, settings, sleep=sleep, rng=rng
        )

    def run_pass(self, config: RunConfig, stats: RunStats):
        total = len(self.wallets)
        for index, wallet in enumerate(self.wallets, start=1):
            self.scheduler.process_wallet(wallet, config, index, total, stats)

    def run(self, config: RunConfig, duration_seconds: Optional[float] = None) -> RunStats:
        """
        Run passes over all wallets until the window closes.

        Args:
            config: Validated run parameters
            duration_seconds: Window override; settings value when None

        Returns:
            Counters for the whole run
        """
        window = self.settings.run_duration_seconds if duration_seconds is None else duration_seconds
        stats = RunStats()

        logger.info(
            f"Starting run: {len(self.wallets)} wallet(s), window {format_duration(int(window))}"
        )
        stats.passes = run_for_duration(
            window,
            lambda: self.run_pass(config, stats),
            clock=self._clock,
            sleep=self._sleep,
            pause_seconds=self.settings.pass_pause_seconds,
        )
        return stats

    def balance_table(self) -> Table:
        """Native and pair balances of every wallet."""
        table = Table(title="💰 Wallet Balances", box=box.ROUNDED)
        table.add_column("Wallet", style="cyan")
        table.add_column(self.settings.native_symbol, style="green", justify="right")
        for pair in self.settings.pairs:
            table.add_column(pair.symbol, style="yellow", justify="right")

        for wallet in self.wallets:
            balances = self.scheduler.snapshot_balances(wallet.address)
            row = [format_address(wallet.address), format_amount(balances[self.settings.native_symbol])]
            row.extend(format_amount(balances[pair.symbol]) for pair in self.settings.pairs)
            table.add_row(*row)

        return table


def stats_table(stats: RunStats) -> Table:
    """Summary of a finished run."""
    table = Table(title="📊 Run Summary", box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Passes", str(stats.passes))
    table.add_row("Wallet Passes", str(stats.wallets_processed))
    table.add_row("Swaps Submitted", str(stats.swaps_submitted))
    table.add_row("Swaps Skipped", str(stats.swaps_skipped))
    table.add_row("Swap Backs", str(stats.swap_backs_submitted))
    table.add_row("Liquidity Txs", str(stats.liquidity_tx_count))
    table.add_row("Liquidity Skipped", str(stats.liquidity_skipped))
    return table


def print_banner():
    console.print(Panel.fit(
        f"[bold white]🚀 OROSWAP - ZIGCHAIN TESTNET BOT 🚀[/bold white]\n"
        f"[dim]v{__version__}[/dim]",
        style="on blue",
        box=box.DOUBLE
    ))


def collect_run_config(args: argparse.Namespace) -> RunConfig:
    """Build a RunConfig from flags, prompting for whatever was not given."""
    min_swap = args.min_swap if args.min_swap is not None else FloatPrompt.ask("Min ZIG Swap")
    max_swap = args.max_swap if args.max_swap is not None else FloatPrompt.ask("Max ZIG Swap")
    swaps = args.swaps if args.swaps is not None else IntPrompt.ask("Swap rounds (max total swaps)")
    lp_rounds = args.lp_rounds if args.lp_rounds is not None else IntPrompt.ask("LP rounds")
    delay = args.delay if args.delay is not None else FloatPrompt.ask("Delay (seconds)")
    if args.swap_back is not None:
        swap_back = args.swap_back
    else:
        swap_back = Confirm.ask("Do you want to swap back to ZIG after swaps?", default=False)

    return RunConfig(
        min_swap_amount=min_swap,
        max_swap_amount=max_swap,
        total_swap_count=swaps,
        liquidity_round_count=lp_rounds,
        inter_action_delay=delay,
        swap_back_enabled=swap_back,
    ).validate()


def load_wallets(settings: BotSettings, encrypted: bool = False,
                 wallet_file: Optional[str] = None) -> List[WalletHandle]:
    """Derive wallets from the plain wallet file or the encrypted store."""
    if encrypted:
        store = SecureMnemonicStore(settings.encrypted_wallet_file)
        console.print("[yellow]Enter wallet password:[/yellow]")
        mnemonics = store.load_and_decrypt(getpass.getpass("> "))
    else:
        mnemonics = load_mnemonics(wallet_file or settings.wallet_file)

    return derive_wallets(mnemonics, settings.address_prefix)


def show_run_config(config: RunConfig, settings: BotSettings, wallet_count: int, window: float):
    table = Table(title="⚙️  Run Configuration", box=box.ROUNDED)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Wallets", str(wallet_count))
    table.add_row("Swap Range", f"{config.min_swap_amount} - {config.max_swap_amount} {settings.native_symbol}")
    table.add_row("Swap Rounds", str(config.total_swap_count))
    table.add_row("LP Rounds", str(config.liquidity_round_count))
    table.add_row("Delay", f"{config.inter_action_delay:g}s")
    table.add_row("Swap Back", "yes" if config.swap_back_enabled else "no")
    table.add_row("Pairs", ", ".join(p.symbol for p in settings.pairs))
    table.add_row("Window", format_duration(int(window)))

    console.print(table)


def run_command(args: argparse.Namespace, settings: BotSettings) -> int:
    print_banner()

    wallets = load_wallets(settings, encrypted=args.encrypted, wallet_file=args.wallet_file)
    config = collect_run_config(args)
    window = args.duration if args.duration is not None else settings.run_duration_seconds
    show_run_config(config, settings, len(wallets), window)

    bot = OroswapBot(settings, wallets)
    try:
        stats = bot.run(config, duration_seconds=window)
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠ Bot stopped by user[/yellow]")
        return 130

    console.print(stats_table(stats))
    return 0


def balance_command(args: argparse.Namespace, settings: BotSettings) -> int:
    wallets = load_wallets(settings, encrypted=args.encrypted, wallet_file=args.wallet_file)
    bot = OroswapBot(settings, wallets)
    console.print(bot.balance_table())
    return 0


def encrypt_wallets_command(args: argparse.Namespace, settings: BotSettings) -> int:
    mnemonics = load_mnemonics(args.wallet_file or settings.wallet_file)
    store = SecureMnemonicStore(args.output or settings.encrypted_wallet_file)

    if store.exists() and not Confirm.ask(f"{store.key_file} exists. Overwrite?", default=False):
        console.print("[yellow]Cancelled.[/yellow]")
        return 1

    console.print("[yellow]Create encryption password:[/yellow]")
    password = getpass.getpass("> ")
    if len(password) < 8:
        console.print("[red]Password must be at least 8 characters![/red]")
        return 1

    console.print("[yellow]Confirm password:[/yellow]")
    if getpass.getpass("> ") != password:
        console.print("[red]Passwords don't match![/red]")
        return 1

    store.encrypt_and_save(mnemonics, password)
    console.print(f"[green]✓ {len(mnemonics)} wallet(s) encrypted to {store.key_file}[/green]")
    console.print("[dim]You can now delete the plain wallet file and run with --encrypted.[/dim]")
    return 0


def init_config_command(args: argparse.Namespace, manager: ConfigManager) -> int:
    if manager.write_default(overwrite=args.force):
        console.print(f"[green]✓ Default config written to {manager.config_path}[/green]")
        return 0

    console.print(f"[yellow]{manager.config_path} already exists. Use --force to overwrite.[/yellow]")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oroswap-bot",
        description="Oroswap swap and liquidity bot for ZigChain testnet"
    )
    parser.add_argument("--config", "-c", type=Path, default=Path("./oroswap_config.yaml"),
                        help="Path to YAML settings file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Start trading")
    run_parser.add_argument("--min-swap", type=float, help="Minimum ZIG per swap")
    run_parser.add_argument("--max-swap", type=float, help="Maximum ZIG per swap")
    run_parser.add_argument("--swaps", type=int, help="Max total swaps per wallet pass")
    run_parser.add_argument("--lp-rounds", type=int, help="Liquidity actions per wallet pass")
    run_parser.add_argument("--delay", type=float, help="Seconds to wait after each action")
    swap_back = run_parser.add_mutually_exclusive_group()
    swap_back.add_argument("--swap-back", dest="swap_back", action="store_true", default=None,
                           help="Swap part of each token back to ZIG")
    swap_back.add_argument("--no-swap-back", dest="swap_back", action="store_false",
                           help="Skip the swap-back phase")
    run_parser.add_argument("--duration", type=float, help="Run window in seconds")
    run_parser.add_argument("--encrypted", action="store_true", help="Read mnemonics from the encrypted store")
    run_parser.add_argument("--wallet-file", help="Plain mnemonic file, one per line")

    # Balance command
    balance_parser = subparsers.add_parser("balance", help="Show wallet balances")
    balance_parser.add_argument("--encrypted", action="store_true", help="Read mnemonics from the encrypted store")
    balance_parser.add_argument("--wallet-file", help="Plain mnemonic file, one per line")

    # Encrypt command
    encrypt_parser = subparsers.add_parser("encrypt-wallets", help="Encrypt the mnemonic file")
    encrypt_parser.add_argument("--wallet-file", help="Plain mnemonic file, one per line")
    encrypt_parser.add_argument("--output", help="Encrypted store path")

    # Init command
    init_parser = subparsers.add_parser("init-config", help="Write the default YAML settings")
    init_parser.add_argument("--force", action="store_true", help="Overwrite an existing file")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    manager = ConfigManager(args.config)
    if args.command == "init-config":
        return init_config_command(args, manager)

    try:
        settings = manager.load_settings()
        setup_logging(settings.log_level, settings.log_file)

        if args.command == "run":
            return run_command(args, settings)
        elif args.command == "balance":
            return balance_command(args, settings)
        elif args.command == "encrypt-wallets":
            return encrypt_wallets_command(args, settings)
    except (ConfigError, WalletError) as e:
        console.print(f"[red]✗ {e}[/red]")
        return 1
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        console.print(f"\n[red]✗ Fatal error: {e}[/red]")
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
