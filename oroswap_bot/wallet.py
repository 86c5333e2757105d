"""
Wallet Module - Mnemonic Loading and Key Derivation
===================================================
Turns configured mnemonics into signing wallets.

Mnemonics come either from a plain newline-delimited file (one per line)
or from an encrypted store:
- PBKDF2-HMAC-SHA256 key derivation (600k iterations)
- Fernet (AES-128-CBC) encryption
- Unique salt per encryption
- File permissions 0o600 (owner-only)
- Rate limiting on password attempts
"""

import os
import json
import base64
import secrets
from pathlib import Path
from typing import Optional, Dict, List, Tuple
from dataclasses import dataclass
from datetime import datetime, timedelta

from cosmpy.aerial.wallet import LocalWallet
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .utils import WalletError, logger, format_address


@dataclass(frozen=True)
class WalletHandle:
    """Opaque signer plus its derived address."""
    signer: LocalWallet
    address: str

    @classmethod
    def from_mnemonic(cls, mnemonic: str, prefix: str = "zig") -> "WalletHandle":
        """
        Derive a wallet from a BIP-39 mnemonic (coin type 118, account 0).

        A malformed mnemonic raises straight out of the derivation library.
        """
        signer = LocalWallet.from_mnemonic(mnemonic.strip(), prefix=prefix)
        return cls(signer=signer, address=str(signer.address()))

    def __repr__(self) -> str:
        return f"WalletHandle({format_address(self.address)})"


def parse_mnemonics(text: str) -> List[str]:
    """One mnemonic per line; surrounding whitespace and blank lines dropped."""
    return [line.strip() for line in text.split("\n") if line.strip()]


def load_mnemonics(path: str) -> List[str]:
    """Read mnemonics from a plain wallet file."""
    wallet_path = Path(path)
    if not wallet_path.exists():
        raise WalletError(f"Wallet file not found: {wallet_path}")

    mnemonics = parse_mnemonics(wallet_path.read_text(encoding="utf-8"))
    if not mnemonics:
        raise WalletError(f"Wallet file {wallet_path} contains no mnemonics")
    return mnemonics


def derive_wallets(mnemonics: List[str], prefix: str = "zig") -> List[WalletHandle]:
    wallets = [WalletHandle.from_mnemonic(m, prefix) for m in mnemonics]
    logger.info(f"Loaded {len(wallets)} wallet(s)")
    return wallets


@dataclass
class RateLimitEntry:
    """Tracks password attempt rate limiting."""
    attempts: int = 0
    first_attempt: Optional[datetime] = None
    locked_until: Optional[datetime] = None

    def is_locked(self) -> bool:
        if self.locked_until is None:
            return False
        return datetime.now() < self.locked_until

    def record_attempt(self):
        now = datetime.now()
        if self.first_attempt is None or (now - self.first_attempt) > timedelta(hours=1):
            self.attempts = 1
            self.first_attempt = now
        else:
            self.attempts += 1

        # Lock after 5 failed attempts for 30 minutes
        if self.attempts >= 5:
            self.locked_until = now + timedelta(minutes=30)

    def reset(self):
        self.attempts = 0
        self.first_attempt = None
        self.locked_until = None


class SecureMnemonicStore:
    """
    Encrypted storage for a list of mnemonics.

    Uses PBKDF2-HMAC-SHA256 with 600,000 iterations for key derivation,
    and Fernet for encryption.
    """

    KEY_FILE = ".wallets.enc"
    ITERATIONS = 600_000

    def __init__(self, key_file: Optional[str] = None):
        self.key_file = Path(key_file or self.KEY_FILE)
        self._rate_limits: Dict[str, RateLimitEntry] = {}

    def _check_rate_limit(self, key: str) -> Tuple[bool, Optional[str]]:
        entry = self._rate_limits.get(key, RateLimitEntry())

        if entry.is_locked():
            remaining = (entry.locked_until - datetime.now()).seconds
            return False, f"Too many failed attempts. Locked for {remaining} seconds."

        self._rate_limits[key] = entry
        return True, None

    def _derive_key(self, password: str, salt: bytes) -> bytes:
        """Derive a Fernet key from password and salt."""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=self.ITERATIONS,
        )
        return base64.urlsafe_b64encode(kdf.derive(password.encode()))

    def encrypt_and_save(self, mnemonics: List[str], password: str):
        """
        Encrypt and save mnemonics.

        Args:
            mnemonics: Mnemonic phrases, one per wallet
            password: Encryption password
        """
        if not mnemonics:
            raise WalletError("Nothing to encrypt: no mnemonics given")

        salt = secrets.token_bytes(16)
        fernet = Fernet(self._derive_key(password, salt))
        encrypted = fernet.encrypt("\n".join(m.strip() for m in mnemonics).encode())

        data = {
            "salt": base64.b64encode(salt).decode(),
            "encrypted_mnemonics": encrypted.decode(),
            "count": len(mnemonics),
            "version": 1,
            "created": datetime.now().isoformat(),
            "iterations": self.ITERATIONS
        }

        self.key_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.key_file, 'w') as f:
            json.dump(data, f)

        os.chmod(self.key_file, 0o600)
        logger.info(f"Encrypted {len(mnemonics)} mnemonic(s) to {self.key_file}")

    def load_and_decrypt(self, password: str) -> List[str]:
        """
        Load and decrypt the stored mnemonics.

        Raises:
            WalletError: Missing file, locked out, or wrong password
        """
        rate_key = str(self.key_file)

        allowed, error = self._check_rate_limit(rate_key)
        if not allowed:
            raise WalletError(error)

        if not self.key_file.exists():
            raise WalletError(f"Encrypted wallet file not found: {self.key_file}")

        with open(self.key_file, 'r') as f:
            data = json.load(f)

        salt = base64.b64decode(data["salt"])
        fernet = Fernet(self._derive_key(password, salt))

        try:
            decrypted = fernet.decrypt(data["encrypted_mnemonics"].encode())
        except InvalidToken:
            self._rate_limits[rate_key].record_attempt()
            raise WalletError("Failed to decrypt wallets. Wrong password?")

        self._rate_limits[rate_key].reset()
        return parse_mnemonics(decrypted.decode())

    def exists(self) -> bool:
        return self.key_file.exists()
