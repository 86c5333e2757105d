"""
Configuration Management Module

Network settings and the pair table live in a YAML file managed by
ConfigManager. Per-run trading parameters are collected at launch into
an immutable RunConfig.
"""

import os
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field, asdict

import yaml

from .utils import ConfigError, logger


@dataclass(frozen=True)
class TokenPair:
    """A token tradeable against the native unit through one pair contract."""
    symbol: str
    denom: str
    contract: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenPair":
        try:
            return cls(symbol=data["symbol"], denom=data["denom"], contract=data["contract"])
        except KeyError as e:
            raise ConfigError(f"Pair entry missing field {e}: {data}")


DEFAULT_PAIRS = [
    TokenPair(
        symbol="ORO",
        denom="coin.zig10rfjm85jmzfhravjwpq3hcdz8ngxg7lxd0drkr.uoro",
        contract="zig15jqg0hmp9n06q0as7uk3x9xkwr9k3r7yh4ww2uc0hek8zlryrgmsamk4qg",
    ),
    TokenPair(
        symbol="NFA",
        denom="coin.zig1qaf4dvjt5f8naam2mzpmysjm5e8sp2yhrzex8d.nfa",
        contract="zig1dye3zfsn83jmnxqdplkfmelyszhkve9ae6jfxf5mzgqnuylr0sdq8ng9tv",
    ),
    TokenPair(
        symbol="CULTCOIN",
        denom="coin.zig12jgpgq5ec88nwzkkjx7jyrzrljpph5pnags8sn.ucultcoin",
        contract="zig1j55nw46crxkm03fjdf3cqx3py5cd32jny685x9c3gftfdt2xlvjs63znce",
    ),
    TokenPair(
        symbol="DYOR",
        denom="coin.zig1fepzhtkq2r5gc4prq94yukg6vaqjvkam27gwk3.dyor",
        contract="zig1us8t6pklp2v2pjqnnedg9wnp3pv50kl448csv0lsuad599ef56jsyvakl9",
    ),
    TokenPair(
        symbol="BEE",
        denom="coin.zig1ptxpjgl3lsxrq99zl6ad2nmrx4lhnhne26m6ys.bee",
        contract="zig1r50m5lafnmctat4xpvwdpzqndynlxt2skhr4fhzh76u0qar2y9hqu74u5h",
    ),
]


@dataclass(frozen=True)
class RunConfig:
    """Trading parameters for one run. Read-only once built."""
    min_swap_amount: float
    max_swap_amount: float
    total_swap_count: int
    liquidity_round_count: int
    inter_action_delay: float  # seconds
    swap_back_enabled: bool = False

    def validate(self) -> "RunConfig":
        """Raise ConfigError on parameters the scheduler cannot honor."""
        if self.min_swap_amount <= 0:
            raise ConfigError("Minimum swap amount must be positive")
        if self.max_swap_amount < self.min_swap_amount:
            raise ConfigError("Maximum swap amount must not be below the minimum")
        if self.total_swap_count < 0 or self.liquidity_round_count < 0:
            raise ConfigError("Swap and liquidity round counts cannot be negative")
        if self.inter_action_delay < 0:
            raise ConfigError("Delay cannot be negative")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BotSettings:
    """Network and behavior settings."""

    # Network (ZigChain testnet)
    rest_url: str = "https://testnet-api.zigchain.com"
    chain_id: str = "zig-test-2"
    address_prefix: str = "zig"
    native_denom: str = "uzig"
    native_symbol: str = "ZIG"
    gas_price: float = 0.026
    explorer_url: str = "https://zigscan.org/tx/"

    # Timing
    run_duration_seconds: int = 600
    pass_pause_seconds: int = 10
    retry_delay_seconds: int = 600
    request_timeout_seconds: int = 30

    # Trading constants
    swap_max_spread: str = "0.01"
    liquidity_slippage_tolerance: str = "0.5"
    liquidity_budget_fraction: float = 0.2
    swap_back_fraction: float = 0.5
    dust_threshold: float = 0.0001

    # Operation
    wallet_file: str = "./wallet.txt"
    encrypted_wallet_file: str = "./.wallets.enc"
    log_level: str = "INFO"
    log_file: str = "./oroswap_bot.log"

    pairs: List[TokenPair] = field(default_factory=lambda: list(DEFAULT_PAIRS))

    def get_pair(self, symbol: str) -> Optional[TokenPair]:
        for pair in self.pairs:
            if pair.symbol == symbol:
                return pair
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BotSettings":
        """Create BotSettings from dictionary."""
        # Filter only valid fields
        valid_fields = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        if "pairs" in valid_fields:
            valid_fields["pairs"] = [
                p if isinstance(p, TokenPair) else TokenPair.from_dict(p)
                for p in (valid_fields["pairs"] or [])
            ]
        return cls(**valid_fields)


class ConfigManager:
    """Manages the YAML settings file."""

    def __init__(self, config_path: Path = Path("./oroswap_config.yaml")):
        self.config_path = Path(config_path)

    def load_settings(self) -> BotSettings:
        """Load settings, falling back to defaults when no file exists."""
        if not self.config_path.exists():
            logger.info(f"No config at {self.config_path}, using defaults")
            return BotSettings()

        with open(self.config_path, 'r') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {self.config_path} must contain a mapping")

        settings = BotSettings.from_dict(data)
        logger.info(f"Configuration loaded: {len(settings.pairs)} pairs")
        return settings

    def write_default(self, overwrite: bool = False) -> bool:
        """Write the default template. Returns False if a file already exists."""
        if self.config_path.exists() and not overwrite:
            return False

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, 'w') as f:
            f.write(DEFAULT_CONFIG + "\n")
        os.chmod(self.config_path, 0o600)

        logger.info(f"Default configuration written to {self.config_path}")
        return True


# Default configuration template
DEFAULT_CONFIG = """
# Oroswap Volume Bot Configuration

rest_url: https://testnet-api.zigchain.com
chain_id: zig-test-2
address_prefix: zig
native_denom: uzig
native_symbol: ZIG
gas_price: 0.026
explorer_url: https://zigscan.org/tx/

# Timing (seconds)
run_duration_seconds: 600
pass_pause_seconds: 10
retry_delay_seconds: 600
request_timeout_seconds: 30

# Trading constants
swap_max_spread: "0.01"
liquidity_slippage_tolerance: "0.5"
liquidity_budget_fraction: 0.2
swap_back_fraction: 0.5
dust_threshold: 0.0001

# Operation
wallet_file: ./wallet.txt
encrypted_wallet_file: ./.wallets.enc
log_level: INFO
log_file: ./oroswap_bot.log

# Pair contracts (token vs ZIG)
pairs:
  - symbol: ORO
    denom: coin.zig10rfjm85jmzfhravjwpq3hcdz8ngxg7lxd0drkr.uoro
    contract: zig15jqg0hmp9n06q0as7uk3x9xkwr9k3r7yh4ww2uc0hek8zlryrgmsamk4qg
  - symbol: NFA
    denom: coin.zig1qaf4dvjt5f8naam2mzpmysjm5e8sp2yhrzex8d.nfa
    contract: zig1dye3zfsn83jmnxqdplkfmelyszhkve9ae6jfxf5mzgqnuylr0sdq8ng9tv
  - symbol: CULTCOIN
    denom: coin.zig12jgpgq5ec88nwzkkjx7jyrzrljpph5pnags8sn.ucultcoin
    contract: zig1j55nw46crxkm03fjdf3cqx3py5cd32jny685x9c3gftfdt2xlvjs63znce
  - symbol: DYOR
    denom: coin.zig1fepzhtkq2r5gc4prq94yukg6vaqjvkam27gwk3.dyor
    contract: zig1us8t6pklp2v2pjqnnedg9wnp3pv50kl448csv0lsuad599ef56jsyvakl9
  - symbol: BEE
    denom: coin.zig1ptxpjgl3lsxrq99zl6ad2nmrx4lhnhne26m6ys.bee
    contract: zig1r50m5lafnmctat4xpvwdpzqndynlxt2skhr4fhzh76u0qar2y9hqu74u5h
""".strip()
