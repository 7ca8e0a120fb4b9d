"""
Signer interface and the file-backed keypair implementation.

The workflow only needs a public key plus two capabilities: sign one
transaction, sign many. Anything that can do that (file keypair, hardware
wallet bridge) plugs in without the workflow caring which.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from drift_admin.core.exceptions import ConfigurationError
from drift_admin.logging import get_logger

logger = get_logger(__name__)

SECRET_KEY_LEN = 64


@runtime_checkable
class Signer(Protocol):
    @property
    def public_key(self) -> Pubkey: ...

    def sign_transaction(self, tx: Transaction) -> Transaction: ...

    def sign_all_transactions(self, txs: Sequence[Transaction]) -> list[Transaction]: ...


class KeypairSigner:
    """Signer backed by an in-memory solders Keypair. Never persisted or mutated."""

    def __init__(self, keypair: Keypair) -> None:
        self._keypair = keypair

    @property
    def public_key(self) -> Pubkey:
        return self._keypair.pubkey()

    @property
    def keypair(self) -> Keypair:
        return self._keypair

    def sign_transaction(self, tx: Transaction) -> Transaction:
        tx.partial_sign([self._keypair], tx.message.recent_blockhash)
        return tx

    def sign_all_transactions(self, txs: Sequence[Transaction]) -> list[Transaction]:
        return [self.sign_transaction(tx) for tx in txs]

    def __repr__(self) -> str:
        return f"KeypairSigner({self.public_key})"


def resolve_key_path(raw_path: str) -> Path:
    """
    Expand ~ and resolve a relative path against the working directory first,
    then the home directory (where `solana-keygen` writes keys by default).
    """
    path = Path(os.path.expanduser(raw_path.strip()))
    if path.is_absolute() or path.exists():
        return path
    home_candidate = Path.home() / path
    if home_candidate.exists():
        return home_candidate
    return path


def load_keypair_file(raw_path: str, *, setting: str = "ADMIN_PRIVATE_KEY_PATH") -> Keypair:
    """Load Keypair from a JSON array of 64 byte values. Fails with ConfigurationError."""
    if not raw_path or not raw_path.strip():
        raise ConfigurationError(f"{setting} is not set", setting=setting)
    path = resolve_key_path(raw_path)
    if not path.is_file():
        raise ConfigurationError(f"Keypair file not found at {path} ({setting})", setting=setting)
    try:
        secret = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Keypair file {path} is not valid JSON: {e}", setting=setting) from e
    if (
        not isinstance(secret, list)
        or len(secret) != SECRET_KEY_LEN
        or not all(isinstance(b, int) and 0 <= b <= 255 for b in secret)
    ):
        raise ConfigurationError(
            f"Keypair file {path} must contain a JSON array of {SECRET_KEY_LEN} bytes",
            setting=setting,
        )
    try:
        keypair = Keypair.from_bytes(bytes(secret))
    except ValueError as e:
        raise ConfigurationError(f"Keypair file {path} holds an invalid secret key: {e}", setting=setting) from e
    logger.info("keypair_loaded", path=str(path), public_key=str(keypair.pubkey()))
    return keypair


def load_signer(raw_path: str) -> KeypairSigner:
    return KeypairSigner(load_keypair_file(raw_path))
