"""
Operator settings, built once per invocation and passed into the session.

Required settings fail fast with ConfigurationError naming the variable,
before any network call is made.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from solders.pubkey import Pubkey

from drift_admin.config.env import (
    first_env,
    get_drift_env,
    get_rpc_url,
    load_operator_env,
    parse_bool_env,
    parse_float_env,
)
from drift_admin.core.exceptions import ConfigurationError

COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")
DEFAULT_COMMITMENT = "confirmed"
DEFAULT_ACCOUNT_POLL_INTERVAL_SEC = 1.0
DEFAULT_CONFIRM_POLL_INTERVAL_SEC = 1.0


def parse_pubkey(raw: str, setting: str) -> Pubkey:
    """Parse a base58 address; ConfigurationError names the setting it came from."""
    if not raw or not raw.strip():
        raise ConfigurationError(f"{setting} is not set", setting=setting)
    try:
        return Pubkey.from_string(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"{setting} is not a valid public key: {raw!r}", setting=setting) from e


def _default_commitment() -> str:
    return (first_env("SOLANA_COMMITMENT") or DEFAULT_COMMITMENT).lower()


@dataclass
class OperatorSettings:
    """Config for one operator run (env or explicit)."""

    rpc_url: str = field(default_factory=get_rpc_url)
    drift_env: str = field(default_factory=get_drift_env)
    key_path: str = field(default_factory=lambda: first_env("ADMIN_PRIVATE_KEY_PATH"))
    program_id: str = field(default_factory=lambda: first_env("PROGRAM_ID", "DRIFT_PROGRAM_ID"))
    commitment: str = field(default_factory=_default_commitment)
    skip_preflight: bool = field(default_factory=lambda: parse_bool_env("SKIP_PREFLIGHT", False))
    account_poll_interval_sec: float = field(
        default_factory=lambda: parse_float_env("ACCOUNT_POLL_INTERVAL_SEC", DEFAULT_ACCOUNT_POLL_INTERVAL_SEC)
    )
    confirm_poll_interval_sec: float = field(
        default_factory=lambda: parse_float_env("CONFIRM_POLL_INTERVAL_SEC", DEFAULT_CONFIRM_POLL_INTERVAL_SEC)
    )

    def __post_init__(self) -> None:
        if not self.key_path:
            raise ConfigurationError(
                "ADMIN_PRIVATE_KEY_PATH environment variable not set (path to the signer keypair JSON)",
                setting="ADMIN_PRIVATE_KEY_PATH",
            )
        self.commitment = self.commitment.strip().lower()
        if self.commitment not in COMMITMENT_LEVELS:
            raise ConfigurationError(
                f"SOLANA_COMMITMENT must be one of {', '.join(COMMITMENT_LEVELS)}, got {self.commitment!r}",
                setting="SOLANA_COMMITMENT",
            )
        if self.account_poll_interval_sec <= 0:
            self.account_poll_interval_sec = DEFAULT_ACCOUNT_POLL_INTERVAL_SEC
        if self.confirm_poll_interval_sec < 0:
            self.confirm_poll_interval_sec = 0.0

    def require_program_id(self) -> Pubkey:
        return parse_pubkey(self.program_id, "PROGRAM_ID")


def get_settings(**overrides: object) -> OperatorSettings:
    """Load .env, then build settings from env with explicit overrides (CLI flags) applied."""
    load_operator_env()
    explicit = {k: v for k, v in overrides.items() if v is not None}
    return OperatorSettings(**explicit)
