"""
Environment variable loading for operator commands.

- DRIFT_ENV: devnet | mainnet-beta (default: devnet)
- RPC_URL: RPC endpoint (SOLANA_RPC_URL accepted as fallback)
- PROGRAM_ID: deployed protocol program (DRIFT_PROGRAM_ID accepted as fallback)
- Loads .env from the project root and the working directory when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEVNET_RPC_URL = "https://api.devnet.solana.com"
MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"
EXPLORER_TX_URL = "https://explorer.solana.com/tx/{signature}?cluster={cluster}"

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def load_operator_env() -> None:
    """Load .env from project root, then cwd (cwd does not override). Safe to call multiple times."""
    load_dotenv(_ENV_PATH)
    load_dotenv(Path.cwd() / ".env")


def parse_bool_env(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    return default


def parse_float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    return float(raw)


def first_env(*names: str) -> str:
    """Return the first non-empty value among names, stripped; empty string if none set."""
    for name in names:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return ""


def get_drift_env() -> str:
    """
    Return DRIFT_ENV: devnet | mainnet-beta.
    Default: devnet.
    """
    raw = (os.getenv("DRIFT_ENV") or "devnet").strip().lower()
    if raw in ("mainnet", "mainnet-beta"):
        return "mainnet-beta"
    return "devnet"


def get_rpc_url() -> str:
    """
    Resolve RPC URL from env.
    Order: RPC_URL > SOLANA_RPC_URL > devnet/mainnet default for DRIFT_ENV.
    """
    url = first_env("RPC_URL", "SOLANA_RPC_URL")
    if url:
        return url
    return DEVNET_RPC_URL if get_drift_env() == "devnet" else MAINNET_RPC_URL


def mask_rpc_url(url: str) -> str:
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url


def explorer_link(signature: str, drift_env: str | None = None) -> str:
    return EXPLORER_TX_URL.format(signature=signature, cluster=drift_env or get_drift_env())
