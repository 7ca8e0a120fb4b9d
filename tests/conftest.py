"""
Pytest fixtures for drift_admin tests. RPC is replaced by FakeConnection, which
records raw transactions and replays scripted signature statuses / block heights.
"""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from drift_admin.config.settings import OperatorSettings
from drift_admin.core.signer import KeypairSigner
from drift_admin.protocol.session import ProtocolSession
from drift_admin.workflow.runner import TransactionWorkflow

MEMO_PROGRAM = Pubkey.new_unique()


def status(level: str | None = "confirmed", err: Any = None) -> SimpleNamespace:
    """Signature status as returned in get_signature_statuses().value."""
    return SimpleNamespace(err=err, confirmation_status=level)


def noop_ix(signer: Pubkey, data: bytes = b"\x01") -> Instruction:
    return Instruction(MEMO_PROGRAM, data, [AccountMeta(signer, is_signer=True, is_writable=True)])


def account(data: bytes = b"", owner: Pubkey | None = None) -> SimpleNamespace:
    return SimpleNamespace(data=data, owner=owner or Pubkey.default(), lamports=1_000_000)


class FakeConnection:
    """Stand-in for solana AsyncClient. Scripted lists repeat their last entry once exhausted."""

    def __init__(
        self,
        *,
        last_valid_block_height: int = 200,
        block_heights: list[int] | None = None,
        statuses: list[Any] | None = None,
        send_error: Exception | None = None,
        tx_logs: list[str] | None = None,
    ) -> None:
        self.blockhash = Hash.new_unique()
        self.last_valid_block_height = last_valid_block_height
        self.block_heights = list(block_heights or [100])
        self.statuses = list(statuses if statuses is not None else [status("confirmed")])
        self.send_error = send_error
        self.tx_logs = list(tx_logs or [])
        self.accounts: dict[Pubkey, Any] = {}
        self.token_balance = 0
        self.sent: list[Transaction] = []
        self.send_opts: list[Any] = []
        self.status_calls = 0
        self.close_calls = 0

    @staticmethod
    def _next(items: list[Any]) -> Any:
        return items.pop(0) if len(items) > 1 else items[0]

    async def get_latest_blockhash(self, commitment=None):
        return MagicMock(
            value=SimpleNamespace(blockhash=self.blockhash, last_valid_block_height=self.last_valid_block_height)
        )

    async def send_raw_transaction(self, raw, opts=None):
        if self.send_error is not None:
            raise self.send_error
        tx = Transaction.from_bytes(raw)
        self.sent.append(tx)
        self.send_opts.append(opts)
        return MagicMock(value=tx.signatures[0])

    async def get_signature_statuses(self, signatures):
        self.status_calls += 1
        return MagicMock(value=[self._next(self.statuses)])

    async def get_block_height(self, commitment=None):
        return MagicMock(value=self._next(self.block_heights))

    async def get_transaction(self, signature, commitment=None, max_supported_transaction_version=None):
        meta = SimpleNamespace(log_messages=self.tx_logs)
        return MagicMock(value=SimpleNamespace(transaction=SimpleNamespace(meta=meta)))

    async def get_account_info(self, address, commitment=None):
        return MagicMock(value=self.accounts.get(address))

    async def get_minimum_balance_for_rent_exemption(self, size, commitment=None):
        return MagicMock(value=1_461_600)

    async def get_token_account_balance(self, address, commitment=None):
        return MagicMock(value=SimpleNamespace(amount=str(self.token_balance), decimals=6))

    async def close(self):
        self.close_calls += 1


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def signer(keypair) -> KeypairSigner:
    return KeypairSigner(keypair)


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def keypair_file(tmp_path, keypair):
    """Keypair JSON in solana-keygen format (array of 64 ints)."""
    path = tmp_path / "admin.json"
    path.write_text(json.dumps(list(bytes(keypair))), encoding="utf-8")
    return path


@pytest.fixture
def settings(keypair_file) -> OperatorSettings:
    return OperatorSettings(
        rpc_url="http://127.0.0.1:8899",
        drift_env="devnet",
        key_path=str(keypair_file),
        program_id="",
        commitment="confirmed",
        skip_preflight=False,
        account_poll_interval_sec=0.01,
        confirm_poll_interval_sec=0,
    )


def make_workflow(connection, signer, **kwargs) -> TransactionWorkflow:
    kwargs.setdefault("poll_interval_sec", 0)
    return TransactionWorkflow(connection, signer, **kwargs)


@pytest.fixture
def builder(signer):
    """Instruction builder double: every instruction is a noop signed by the signer."""
    program_id = Pubkey.new_unique()
    b = MagicMock()
    b.program_id = program_id
    b.authority = signer.public_key
    b.state_public_key.return_value = Pubkey.new_unique()
    b.signer_public_key.return_value = Pubkey.new_unique()
    b.user_public_key.return_value = Pubkey.new_unique()
    for name in (
        "initialize",
        "update_admin",
        "initialize_spot_market",
        "initialize_perp_market",
        "initialize_prediction_market",
        "initialize_user_stats",
        "initialize_user",
        "place_perp_order",
    ):
        getattr(b, name).return_value = noop_ix(signer.public_key, name.encode())
    return b


@pytest.fixture
def session(connection, signer, builder) -> ProtocolSession:
    return ProtocolSession(
        connection,
        signer,
        make_workflow(connection, signer),
        builder=builder,
        poll_interval_sec=0.01,
    )


def drift_state(**overrides) -> SimpleNamespace:
    fields = {
        "admin": Pubkey.new_unique(),
        "signer": Pubkey.new_unique(),
        "number_of_markets": 0,
        "number_of_spot_markets": 0,
        "exchange_status": 0,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)
