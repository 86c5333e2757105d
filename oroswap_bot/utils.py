"""
Utility Module

Error types, secure logging, unit conversion and formatting helpers
shared by the whole bot.
"""

import os
import re
import logging
from enum import Enum
from decimal import Decimal, ROUND_DOWN
from typing import Optional, Union

from rich.logging import RichHandler
from rich.console import Console
from cosmpy.mnemonic.words import ENGLISH_MNEMONIC_WORDS


# Global console for Rich output
console = Console()

# On-chain amounts are integers scaled by 10^6
MICRO_SCALE = 10 ** 6


class ErrorKind(Enum):
    """Classification tag attached to every remote failure."""
    TRANSIENT = "transient"
    PERMANENT = "permanent"
    NOT_FOUND = "not_found"


class ChainError(Exception):
    """A remote call failure, classified once at the executor boundary."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.PERMANENT,
                 context: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.context = context

    @property
    def is_transient(self) -> bool:
        return self.kind is ErrorKind.TRANSIENT


class ConfigError(Exception):
    """Invalid run parameters or bot settings."""
    pass


class WalletError(Exception):
    """Missing, unreadable or undecryptable wallet secrets."""
    pass


class SecureLogger:
    """
    Logger that sanitizes sensitive data from log messages.

    Mnemonics travel through the same process as every log call, so
    any run of 12 or more BIP-39 wordlist words, and anything that looks
    like a raw key, is redacted.
    """

    MNEMONIC_MIN_WORDS = 12
    MNEMONIC_REDACTED = '[MNEMONIC_REDACTED]'

    # Candidate word runs; each is checked against the wordlist
    WORD_RUN_PATTERN = re.compile(r'\b[a-z]+(?:\s+[a-z]+){11,}\b')

    SENSITIVE_PATTERNS = [
        (r'(?:0x)?[a-fA-F0-9]{64}\b', '[KEY_REDACTED]'),
        (r'password["\']?\s*[:=]\s*\S+', 'password=[REDACTED]'),
        (r'mnemonic["\']?\s*[:=]\s*["\'][^"\']+["\']', 'mnemonic=[REDACTED]'),
    ]

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _redact_word_run(self, match: re.Match) -> str:
        words = match.group(0).split()
        out = []
        run = []
        redacted = False

        for word in words + [None]:
            if word is not None and word in ENGLISH_MNEMONIC_WORDS:
                run.append(word)
                continue
            if len(run) >= self.MNEMONIC_MIN_WORDS:
                out.append(self.MNEMONIC_REDACTED)
                redacted = True
            else:
                out.extend(run)
            run = []
            if word is not None:
                out.append(word)

        return " ".join(out) if redacted else match.group(0)

    def _sanitize(self, msg: str) -> str:
        """Remove sensitive data from log message."""
        if not isinstance(msg, str):
            msg = str(msg)

        sanitized = self.WORD_RUN_PATTERN.sub(self._redact_word_run, msg)
        for pattern, replacement in self.SENSITIVE_PATTERNS:
            sanitized = re.sub(pattern, replacement, sanitized)
        return sanitized

    def setLevel(self, level: Union[int, str]):
        self._logger.setLevel(level)

    def debug(self, msg: str, *args, **kwargs):
        self._logger.debug(self._sanitize(msg), *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._logger.info(self._sanitize(msg), *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._logger.warning(self._sanitize(msg), *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._logger.error(self._sanitize(msg), *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        self._logger.exception(self._sanitize(msg), *args, **kwargs)

    def critical(self, msg: str, *args, **kwargs):
        self._logger.critical(self._sanitize(msg), *args, **kwargs)


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = "./oroswap_bot.log") -> SecureLogger:
    """
    Setup logging with Rich console output and an optional log file.

    Returns a SecureLogger that sanitizes sensitive data.
    """
    base = logging.getLogger("oroswap_bot")
    base.setLevel(getattr(logging, log_level.upper()))

    # Remove existing handlers
    base.handlers = []

    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        rich_tracebacks=True
    )
    rich_handler.setLevel(getattr(logging, log_level.upper()))
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    base.addHandler(rich_handler)

    if log_file:
        log_path = os.path.abspath(log_file)
        os.makedirs(os.path.dirname(log_path) or ".", exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(getattr(logging, log_level.upper()))
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        base.addHandler(file_handler)

    return SecureLogger(base)


# Shared logger; the CLI reconfigures handlers once settings are loaded.
logger = setup_logging(log_file=None)


# Unit conversion

def to_micro(amount: Union[float, Decimal, str]) -> str:
    """Convert a decimal amount to floored integer micro-units, as a string."""
    scaled = (Decimal(str(amount)) * MICRO_SCALE).quantize(Decimal("1"), rounding=ROUND_DOWN)
    return str(int(scaled))


def from_micro(raw: Union[int, str]) -> float:
    """Convert integer micro-units to a decimal amount."""
    return int(raw) / MICRO_SCALE


# Formatting utilities

def format_amount(amount: float, decimals: int = 6) -> str:
    return f"{amount:.{decimals}f}"


def format_tx_link(explorer_url: str, tx_hash: str) -> str:
    """Explorer link for a transaction hash."""
    return f"{explorer_url}{tx_hash}"


def format_address(address: str, length: int = 6) -> str:
    """Format a bech32 address with ellipsis."""
    prefix_len = address.rfind("1") + 1
    if len(address) <= prefix_len + length * 2:
        return address
    return f"{address[:prefix_len + length]}...{address[-length:]}"


def format_duration(seconds: int) -> str:
    """Format duration in seconds to human-readable string."""
    if seconds < 60:
        return f"{seconds}s"
    elif seconds < 3600:
        minutes = seconds // 60
        secs = seconds % 60
        return f"{minutes}m {secs}s" if secs > 0 else f"{minutes}m"
    else:
        hours = seconds // 3600
        minutes = (seconds % 3600) // 60
        return f"{hours}h {minutes}m" if minutes > 0 else f"{hours}h"
