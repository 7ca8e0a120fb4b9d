"""
Transaction workflow: the single build -> sign -> send -> confirm -> verify path
every operator command goes through.

- Fetches a fresh blockhash per transaction; fee payer is always the signer.
- Preflight failures surface program logs and never reach the confirmation wait.
- Confirmation is bounded by the blockhash's last valid block height, not a wall clock.
- Optional post-condition re-fetches state; mismatch is a VerificationError.
- No retries: every failure goes back to the operator.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Sequence

from solana.rpc.commitment import Commitment
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from drift_admin.config.env import explorer_link
from drift_admin.core.exceptions import (
    ConfirmationTimeoutError,
    SubmissionError,
    ValidationError,
    VerificationError,
)
from drift_admin.core.signer import Signer
from drift_admin.logging import get_logger

logger = get_logger(__name__)

COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


def commitment_name(status: Any) -> str:
    """Normalize TransactionConfirmationStatus enum or plain string to processed/confirmed/finalized."""
    if status is None:
        return ""
    return str(status).rsplit(".", 1)[-1].strip().lower()


def extract_rpc_logs(exc: RPCException) -> tuple[str, list[str]]:
    """
    Pull (message, program logs) out of an RPCException. solana-py wraps either a
    solders error message (SendTransactionPreflightFailureMessage: .message, .data.logs)
    or a raw JSON-RPC error dict.
    """
    payload = exc.args[0] if exc.args else None
    if isinstance(payload, dict):
        message = str(payload.get("message") or payload)
        data = payload.get("data") or {}
        logs = data.get("logs") if isinstance(data, dict) else None
        return message, [str(line) for line in (logs or [])]
    message = str(getattr(payload, "message", None) or payload or exc)
    data = getattr(payload, "data", None)
    logs = getattr(data, "logs", None) if data is not None else None
    return message, [str(line) for line in (logs or [])]


def check_authority(signer_pubkey: Pubkey, authority: Pubkey | None, *, role: str = "admin") -> bool:
    """
    Warn (never raise) when the loaded signer is not the on-chain authority. The
    network rejection stays the authoritative check. Returns True on match.
    """
    if authority is not None and signer_pubkey == authority:
        logger.info("authority_matches", role=role, authority=str(authority))
        return True
    logger.warning(
        "authority_mismatch",
        role=role,
        signer=str(signer_pubkey),
        onchain_authority=str(authority) if authority is not None else None,
        message=f"Loaded signer is not the current {role}; the transaction will likely be rejected",
    )
    return False


@dataclass
class Verification:
    """Post-condition: re-fetch with `fetch`, accept when `check(observed)` is true."""

    description: str
    fetch: Callable[[], Awaitable[Any]]
    check: Callable[[Any], bool]
    expected: Any = None
    render: Callable[[Any], Any] = str


@dataclass
class WorkflowResult:
    signature: str
    commitment: str
    explorer: str
    verified: Any = None
    extra: dict[str, Any] = field(default_factory=dict)


class TransactionWorkflow:
    """
    Runs one transaction end to end against a connection (AsyncClient or compatible).
    Stateless between calls; each execute() builds a fresh transaction.
    """

    def __init__(
        self,
        connection: Any,
        signer: Signer,
        *,
        commitment: str = "confirmed",
        skip_preflight: bool = False,
        poll_interval_sec: float = 1.0,
        drift_env: str = "devnet",
    ) -> None:
        if commitment not in COMMITMENT_RANK:
            raise ValidationError(f"Unknown commitment level {commitment!r}", field="commitment", value=commitment)
        self._connection = connection
        self._signer = signer
        self._commitment = commitment
        self._skip_preflight = skip_preflight
        self._poll_interval = poll_interval_sec
        self._drift_env = drift_env

    @property
    def signer(self) -> Signer:
        return self._signer

    @property
    def commitment(self) -> str:
        return self._commitment

    async def latest_blockhash(self) -> tuple[Hash, int]:
        resp = await self._connection.get_latest_blockhash(Commitment(self._commitment))
        value = resp.value
        return value.blockhash, value.last_valid_block_height

    def build_transaction(
        self,
        instructions: Sequence[Instruction],
        blockhash: Hash,
        extra_signers: Sequence[Keypair] = (),
    ) -> Transaction:
        """Compile instructions with signer as fee payer and sign locally (no network I/O)."""
        if not instructions:
            raise ValidationError("Cannot build a transaction without instructions", field="instructions")
        message = Message.new_with_blockhash(list(instructions), self._signer.public_key, blockhash)
        tx = Transaction.new_unsigned(message)
        if extra_signers:
            tx.partial_sign(list(extra_signers), blockhash)
        return self._signer.sign_transaction(tx)

    async def submit(self, tx: Transaction) -> str:
        opts = TxOpts(
            skip_preflight=self._skip_preflight,
            preflight_commitment=Commitment(self._commitment),
        )
        try:
            resp = await self._connection.send_raw_transaction(bytes(tx), opts=opts)
        except RPCException as e:
            message, logs = extract_rpc_logs(e)
            logger.error("tx_submission_failed", error=message, logs=logs)
            raise SubmissionError(f"Transaction rejected before inclusion: {message}", logs=logs) from e
        signature = str(resp.value)
        logger.info(
            "tx_sent",
            signature=signature,
            explorer=explorer_link(signature, self._drift_env),
            skip_preflight=self._skip_preflight,
        )
        return signature

    async def _transaction_logs(self, signature: Signature) -> list[str]:
        try:
            resp = await self._connection.get_transaction(
                signature,
                commitment=Commitment("confirmed"),
                max_supported_transaction_version=0,
            )
        except RPCException as e:
            logger.warning("tx_logs_unavailable", signature=str(signature), error=str(e))
            return []
        tx = getattr(resp, "value", None)
        meta = getattr(getattr(tx, "transaction", None), "meta", None)
        return [str(line) for line in (getattr(meta, "log_messages", None) or [])]

    async def confirm(self, signature: str, last_valid_block_height: int) -> str:
        """
        Poll signature status until it reaches the target commitment. Fails with
        ConfirmationTimeoutError once block height passes last_valid_block_height.
        """
        sig = Signature.from_string(signature)
        target = COMMITMENT_RANK[self._commitment]
        logger.info(
            "tx_confirming",
            signature=signature,
            commitment=self._commitment,
            last_valid_block_height=last_valid_block_height,
        )
        while True:
            resp = await self._connection.get_signature_statuses([sig])
            statuses = resp.value or []
            status = statuses[0] if statuses else None
            if status is not None:
                if status.err is not None:
                    logs = await self._transaction_logs(sig)
                    logger.error("tx_execution_failed", signature=signature, err=str(status.err), logs=logs)
                    raise SubmissionError(
                        f"Transaction {signature} failed on-chain: {status.err}",
                        logs=logs,
                        signature=signature,
                    )
                level = commitment_name(status.confirmation_status)
                if level in COMMITMENT_RANK and COMMITMENT_RANK[level] >= target:
                    logger.info("tx_confirmed", signature=signature, confirmation_status=level)
                    return level
            height = (await self._connection.get_block_height(Commitment(self._commitment))).value
            if height > last_valid_block_height:
                logger.error(
                    "tx_confirm_expired",
                    signature=signature,
                    block_height=height,
                    last_valid_block_height=last_valid_block_height,
                )
                raise ConfirmationTimeoutError(
                    f"Transaction {signature} was not {self._commitment} before block height "
                    f"{last_valid_block_height} (blockhash expired)",
                    signature=signature,
                    last_valid_block_height=last_valid_block_height,
                )
            await asyncio.sleep(self._poll_interval)

    async def verify(self, signature: str, verification: Verification) -> Any:
        observed = await verification.fetch()
        if not verification.check(observed):
            rendered = verification.render(observed) if observed is not None else None
            logger.error(
                "tx_verification_failed",
                signature=signature,
                check=verification.description,
                expected=str(verification.expected),
                observed=rendered,
            )
            raise VerificationError(
                f"Transaction {signature} confirmed but {verification.description} does not hold "
                f"(expected {verification.expected}, observed {rendered})",
                signature=signature,
                expected=verification.expected,
                observed=observed,
            )
        logger.info("tx_verified", signature=signature, check=verification.description)
        return observed

    async def execute(
        self,
        instructions: Sequence[Instruction],
        *,
        extra_signers: Sequence[Keypair] = (),
        verification: Verification | None = None,
        label: str = "transaction",
    ) -> WorkflowResult:
        logger.info("tx_building", label=label, instruction_count=len(instructions))
        blockhash, last_valid_block_height = await self.latest_blockhash()
        tx = self.build_transaction(instructions, blockhash, extra_signers)
        signature = await self.submit(tx)
        level = await self.confirm(signature, last_valid_block_height)
        verified = None
        if verification is not None:
            verified = await self.verify(signature, verification)
        return WorkflowResult(
            signature=signature,
            commitment=level,
            explorer=explorer_link(signature, self._drift_env),
            verified=verified,
        )
