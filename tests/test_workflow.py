"""
Tests for the transaction workflow (build, sign, send, confirm, verify).

FakeConnection records the raw bytes sent so the compiled message can be
inspected: fee payer, blockhash, signatures.
"""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest
from solana.rpc.core import RPCException
from solders.hash import Hash
from solders.keypair import Keypair
from solders.signature import Signature
from solders.system_program import CreateAccountParams, create_account

from conftest import FakeConnection, make_workflow, noop_ix, status
from drift_admin.core.exceptions import (
    ConfirmationTimeoutError,
    SubmissionError,
    ValidationError,
    VerificationError,
)
from drift_admin.workflow.runner import (
    Verification,
    check_authority,
    commitment_name,
    extract_rpc_logs,
)

PREFLIGHT_LOGS = [
    "Program dRiftyHA39MWEi3m9aunc5MzRF1JYuBsbn6VPcn33UH invoke [1]",
    "Program log: AnchorError caused by account: admin. Error Code: ConstraintHasOne.",
    "Program dRiftyHA39MWEi3m9aunc5MzRF1JYuBsbn6VPcn33UH failed: custom program error: 0x7d1",
]


def _preflight_error() -> RPCException:
    return RPCException(
        {
            "code": -32002,
            "message": "Transaction simulation failed: Error processing Instruction 0",
            "data": {"logs": PREFLIGHT_LOGS},
        }
    )


def test_fee_payer_is_signer_and_blockhash_is_fresh(signer):
    """Compiled message: account 0 is the signer (fee payer), blockhash from this call."""
    conn = FakeConnection()
    workflow = make_workflow(conn, signer)

    result = asyncio.run(workflow.execute([noop_ix(signer.public_key)], label="noop"))

    assert len(conn.sent) == 1
    tx = conn.sent[0]
    assert tx.message.account_keys[0] == signer.public_key
    assert tx.message.recent_blockhash == conn.blockhash
    assert tx.signatures[0] != Signature.default()
    assert result.signature == str(tx.signatures[0])
    assert result.commitment == "confirmed"
    assert "cluster=devnet" in result.explorer


def test_extra_signer_is_applied(signer):
    conn = FakeConnection()
    workflow = make_workflow(conn, signer)
    new_account = Keypair()
    ix = create_account(
        CreateAccountParams(
            from_pubkey=signer.public_key,
            to_pubkey=new_account.pubkey(),
            lamports=1_000,
            space=0,
            owner=signer.public_key,
        )
    )

    asyncio.run(workflow.execute([ix], extra_signers=[new_account]))

    tx = conn.sent[0]
    assert tx.message.account_keys[0] == signer.public_key
    assert len(tx.signatures) == 2
    assert all(sig != Signature.default() for sig in tx.signatures)


def test_each_execute_fetches_its_own_blockhash(signer):
    conn = FakeConnection()
    workflow = make_workflow(conn, signer)
    asyncio.run(workflow.execute([noop_ix(signer.public_key)]))
    first = conn.blockhash
    conn.blockhash = Hash.new_unique()
    asyncio.run(workflow.execute([noop_ix(signer.public_key, b"\x02")]))

    assert conn.sent[0].message.recent_blockhash == first
    assert conn.sent[1].message.recent_blockhash == conn.blockhash


def test_empty_instructions_rejected_before_network(signer):
    conn = FakeConnection()
    workflow = make_workflow(conn, signer)

    with pytest.raises(ValidationError):
        asyncio.run(workflow.execute([]))
    assert conn.sent == []


def test_preflight_failure_surfaces_logs_and_skips_confirmation(signer):
    conn = FakeConnection(send_error=_preflight_error())
    workflow = make_workflow(conn, signer)

    with pytest.raises(SubmissionError) as exc_info:
        asyncio.run(workflow.execute([noop_ix(signer.public_key)]))

    assert exc_info.value.logs == PREFLIGHT_LOGS
    assert exc_info.value.signature is None
    assert "simulation failed" in str(exc_info.value)
    assert conn.status_calls == 0


def test_skip_preflight_is_passed_to_send(signer):
    conn = FakeConnection()
    workflow = make_workflow(conn, signer, skip_preflight=True)
    asyncio.run(workflow.execute([noop_ix(signer.public_key)]))

    assert conn.send_opts[0].skip_preflight is True


def test_confirmation_times_out_when_blockhash_expires(signer):
    conn = FakeConnection(last_valid_block_height=200, block_heights=[150, 199, 201], statuses=[None])
    workflow = make_workflow(conn, signer)

    with pytest.raises(ConfirmationTimeoutError) as exc_info:
        asyncio.run(workflow.execute([noop_ix(signer.public_key)]))

    assert exc_info.value.signature == str(conn.sent[0].signatures[0])
    assert exc_info.value.last_valid_block_height == 200
    assert conn.status_calls == 3


def test_confirmation_waits_for_target_commitment(signer):
    conn = FakeConnection(statuses=[None, status("processed"), status("finalized")])
    workflow = make_workflow(conn, signer, commitment="finalized")

    result = asyncio.run(workflow.execute([noop_ix(signer.public_key)]))

    assert result.commitment == "finalized"
    assert conn.status_calls == 3


def test_onchain_error_reports_transaction_logs(signer):
    logs = ["Program log: Instruction: UpdateAdmin", "Program log: custom program error: 0x1770"]
    conn = FakeConnection(statuses=[status("confirmed", err="InstructionError(0, Custom(6000))")], tx_logs=logs)
    workflow = make_workflow(conn, signer)

    with pytest.raises(SubmissionError) as exc_info:
        asyncio.run(workflow.execute([noop_ix(signer.public_key)]))

    assert exc_info.value.logs == logs
    assert exc_info.value.signature == str(conn.sent[0].signatures[0])


def test_verification_mismatch_raises(signer):
    conn = FakeConnection()
    workflow = make_workflow(conn, signer)

    async def fetch():
        return 3

    verification = Verification(description="counter is 4", fetch=fetch, check=lambda v: v == 4, expected=4)
    with pytest.raises(VerificationError) as exc_info:
        asyncio.run(workflow.execute([noop_ix(signer.public_key)], verification=verification))

    assert exc_info.value.expected == 4
    assert exc_info.value.observed == 3
    assert exc_info.value.signature == str(conn.sent[0].signatures[0])


def test_verification_success_returns_observed(signer):
    conn = FakeConnection()
    workflow = make_workflow(conn, signer)

    async def fetch():
        return {"admin": "new"}

    verification = Verification(description="admin rotated", fetch=fetch, check=lambda v: v["admin"] == "new")
    result = asyncio.run(workflow.execute([noop_ix(signer.public_key)], verification=verification))

    assert result.verified == {"admin": "new"}


def test_unknown_commitment_rejected(signer):
    with pytest.raises(ValidationError):
        make_workflow(FakeConnection(), signer, commitment="recent")


def test_commitment_name_normalizes_enum_strings():
    assert commitment_name("TransactionConfirmationStatus.Finalized") == "finalized"
    assert commitment_name("confirmed") == "confirmed"
    assert commitment_name(None) == ""


def test_extract_rpc_logs_from_dict_payload():
    message, logs = extract_rpc_logs(_preflight_error())
    assert message.startswith("Transaction simulation failed")
    assert logs == PREFLIGHT_LOGS


def test_extract_rpc_logs_without_data():
    message, logs = extract_rpc_logs(RPCException({"code": -32005, "message": "Node is behind"}))
    assert message == "Node is behind"
    assert logs == []


def test_check_authority(signer):
    with patch("drift_admin.workflow.runner.logger") as mock_logger:
        assert check_authority(signer.public_key, signer.public_key) is True
        assert check_authority(signer.public_key, Keypair().pubkey()) is False
        assert check_authority(signer.public_key, None) is False

    assert mock_logger.warning.call_count == 2
    assert mock_logger.warning.call_args_list[0].args[0] == "authority_mismatch"
