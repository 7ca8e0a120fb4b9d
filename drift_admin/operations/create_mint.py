"""
Devnet helper: create a mock collateral mint and fund the signer with it.

Two transactions: (1) allocate + initialize the mint, signed by payer and the
fresh mint keypair; (2) create the payer's associated token account and mint
into it.
"""

from __future__ import annotations

from solders.keypair import Keypair
from spl.token.constants import MINT_LEN

from drift_admin.core.exceptions import ValidationError
from drift_admin.logging import get_logger
from drift_admin.protocol.session import ProtocolSession
from drift_admin.protocol.token import (
    create_mint_instructions,
    mint_to_owner_instructions,
    parse_mint_decimals,
)
from drift_admin.workflow.runner import Verification, WorkflowResult

logger = get_logger(__name__)

DEFAULT_DECIMALS = 6
# 1 million tokens at 6 decimals
DEFAULT_MINT_AMOUNT = 1_000_000 * 10**DEFAULT_DECIMALS
MAX_DECIMALS = 255
U64_MAX = 2**64 - 1


async def create_mint(
    session: ProtocolSession,
    decimals: int = DEFAULT_DECIMALS,
    amount: int = DEFAULT_MINT_AMOUNT,
    mint_keypair: Keypair | None = None,
) -> WorkflowResult:
    if decimals < 0 or decimals > MAX_DECIMALS:
        raise ValidationError(f"decimals must be within [0, {MAX_DECIMALS}]", field="decimals", value=decimals)
    if amount <= 0 or amount > U64_MAX:
        raise ValidationError("amount must be a positive u64", field="amount", value=amount)

    payer = session.authority
    mint = mint_keypair or Keypair()
    mint_pk = mint.pubkey()
    lamports = (await session.connection.get_minimum_balance_for_rent_exemption(MINT_LEN)).value
    logger.info("mint_creating", mint=str(mint_pk), decimals=decimals, rent_lamports=lamports)

    created = await session.workflow.execute(
        create_mint_instructions(payer, mint_pk, lamports, decimals, payer),
        extra_signers=[mint],
        verification=Verification(
            description="mint account initialized with requested decimals",
            fetch=lambda: session.get_account_info(mint_pk),
            check=lambda info: info is not None and parse_mint_decimals(bytes(info.data)) == decimals,
            expected=decimals,
            render=lambda info: parse_mint_decimals(bytes(info.data)),
        ),
        label="create_mint",
    )
    logger.info("mint_created", mint=str(mint_pk), signature=created.signature)

    ixs, token_account = mint_to_owner_instructions(payer, mint_pk, payer, amount)

    async def token_balance() -> int | None:
        resp = await session.connection.get_token_account_balance(token_account)
        return int(resp.value.amount) if resp.value is not None else None

    funded = await session.workflow.execute(
        ixs,
        verification=Verification(
            description="token account balance equals minted amount",
            fetch=token_balance,
            check=lambda balance: balance == amount,
            expected=amount,
        ),
        label="mint_to",
    )
    funded.extra.update(
        mint=str(mint_pk),
        token_account=str(token_account),
        amount=amount,
        create_signature=created.signature,
    )
    logger.info("mint_funded", mint=str(mint_pk), token_account=str(token_account), signature=funded.signature)
    return funded
