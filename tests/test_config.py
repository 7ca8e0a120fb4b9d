"""
Tests for settings, env helpers and keypair loading. All failures here are
ConfigurationError naming the setting, raised before any network call.
"""

from __future__ import annotations

import json

import pytest
from solders.keypair import Keypair

from drift_admin.config.env import (
    DEVNET_RPC_URL,
    MAINNET_RPC_URL,
    explorer_link,
    get_drift_env,
    get_rpc_url,
    mask_rpc_url,
    parse_bool_env,
)
from drift_admin.config.settings import OperatorSettings, parse_pubkey
from drift_admin.core.exceptions import ConfigurationError
from drift_admin.core.signer import KeypairSigner, Signer, load_keypair_file, load_signer

VALID_PUBKEY = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"


def test_load_keypair_file(keypair_file, keypair):
    loaded = load_keypair_file(str(keypair_file))
    assert loaded.pubkey() == keypair.pubkey()


def test_load_signer_satisfies_protocol(keypair_file, keypair):
    signer = load_signer(str(keypair_file))
    assert isinstance(signer, KeypairSigner)
    assert isinstance(signer, Signer)
    assert signer.public_key == keypair.pubkey()


def test_load_keypair_missing_file(tmp_path):
    with pytest.raises(ConfigurationError) as exc_info:
        load_keypair_file(str(tmp_path / "nope.json"))
    assert exc_info.value.setting == "ADMIN_PRIVATE_KEY_PATH"


def test_load_keypair_empty_path():
    with pytest.raises(ConfigurationError):
        load_keypair_file("  ")


@pytest.mark.parametrize(
    "content",
    ["not json", json.dumps([1, 2, 3]), json.dumps({"secret": []}), json.dumps([256] * 64)],
    ids=["invalid_json", "short", "object", "out_of_range"],
)
def test_load_keypair_bad_content(tmp_path, content):
    path = tmp_path / "bad.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_keypair_file(str(path))


def test_load_keypair_relative_to_cwd(tmp_path, monkeypatch):
    keypair = Keypair()
    (tmp_path / "id.json").write_text(json.dumps(list(bytes(keypair))), encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    assert load_keypair_file("id.json").pubkey() == keypair.pubkey()


def test_settings_require_key_path():
    with pytest.raises(ConfigurationError) as exc_info:
        OperatorSettings(key_path="", rpc_url=DEVNET_RPC_URL)
    assert exc_info.value.setting == "ADMIN_PRIVATE_KEY_PATH"


def test_settings_reject_unknown_commitment():
    with pytest.raises(ConfigurationError) as exc_info:
        OperatorSettings(key_path="id.json", commitment="max")
    assert exc_info.value.setting == "SOLANA_COMMITMENT"


def test_settings_program_id(monkeypatch):
    settings = OperatorSettings(key_path="id.json", program_id=VALID_PUBKEY)
    assert str(settings.require_program_id()) == VALID_PUBKEY

    with pytest.raises(ConfigurationError) as exc_info:
        OperatorSettings(key_path="id.json", program_id="").require_program_id()
    assert exc_info.value.setting == "PROGRAM_ID"

    with pytest.raises(ConfigurationError):
        OperatorSettings(key_path="id.json", program_id="not-a-key").require_program_id()


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("ADMIN_PRIVATE_KEY_PATH", "/keys/admin.json")
    monkeypatch.delenv("PROGRAM_ID", raising=False)
    monkeypatch.setenv("DRIFT_PROGRAM_ID", VALID_PUBKEY)
    monkeypatch.setenv("SOLANA_COMMITMENT", "Finalized")
    monkeypatch.setenv("SKIP_PREFLIGHT", "yes")

    settings = OperatorSettings()

    assert settings.key_path == "/keys/admin.json"
    assert settings.program_id == VALID_PUBKEY
    assert settings.commitment == "finalized"
    assert settings.skip_preflight is True


def test_parse_pubkey():
    assert str(parse_pubkey(f" {VALID_PUBKEY} ", "NEW_ADMIN_PUBLIC_KEY")) == VALID_PUBKEY
    with pytest.raises(ConfigurationError) as exc_info:
        parse_pubkey("", "NEW_ADMIN_PUBLIC_KEY")
    assert exc_info.value.setting == "NEW_ADMIN_PUBLIC_KEY"


def test_rpc_url_resolution(monkeypatch):
    monkeypatch.delenv("RPC_URL", raising=False)
    monkeypatch.delenv("SOLANA_RPC_URL", raising=False)
    monkeypatch.setenv("DRIFT_ENV", "mainnet")
    assert get_drift_env() == "mainnet-beta"
    assert get_rpc_url() == MAINNET_RPC_URL

    monkeypatch.delenv("DRIFT_ENV")
    assert get_rpc_url() == DEVNET_RPC_URL

    monkeypatch.setenv("SOLANA_RPC_URL", "https://fallback.example")
    assert get_rpc_url() == "https://fallback.example"
    monkeypatch.setenv("RPC_URL", "https://primary.example")
    assert get_rpc_url() == "https://primary.example"


def test_env_helpers(monkeypatch):
    monkeypatch.setenv("SKIP_PREFLIGHT", "maybe")
    assert parse_bool_env("SKIP_PREFLIGHT", True) is True
    assert mask_rpc_url("https://rpc.example/?api-key=secret") == "https://rpc.example/?api-key=***"
    assert explorer_link("abc", "devnet") == "https://explorer.solana.com/tx/abc?cluster=devnet"
