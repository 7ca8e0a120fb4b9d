"""
SPL token helpers for devnet collateral mints.
"""

from __future__ import annotations

from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, create_account
from spl.token.constants import MINT_LEN, TOKEN_PROGRAM_ID
from spl.token.instructions import (
    InitializeMintParams,
    MintToParams,
    create_associated_token_account,
    get_associated_token_address,
    initialize_mint,
    mint_to,
)

# Mint layout: mint_authority COption<Pubkey> (4 + 32) + supply u64 (8), then decimals u8
MINT_DECIMALS_OFFSET = 44


def parse_mint_decimals(data: bytes) -> int | None:
    """Decimals byte of a raw SPL mint account, or None if data is too short."""
    if data is None or len(data) <= MINT_DECIMALS_OFFSET:
        return None
    return data[MINT_DECIMALS_OFFSET]


def create_mint_instructions(
    payer: Pubkey,
    mint: Pubkey,
    lamports: int,
    decimals: int,
    authority: Pubkey,
) -> list[Instruction]:
    """Allocate a rent-exempt mint account and initialize it (payer is mint + freeze authority)."""
    return [
        create_account(
            CreateAccountParams(
                from_pubkey=payer,
                to_pubkey=mint,
                lamports=lamports,
                space=MINT_LEN,
                owner=TOKEN_PROGRAM_ID,
            )
        ),
        initialize_mint(
            InitializeMintParams(
                decimals=decimals,
                program_id=TOKEN_PROGRAM_ID,
                mint=mint,
                mint_authority=authority,
                freeze_authority=authority,
            )
        ),
    ]


def mint_to_owner_instructions(
    payer: Pubkey,
    mint: Pubkey,
    owner: Pubkey,
    amount: int,
) -> tuple[list[Instruction], Pubkey]:
    """Create owner's associated token account and mint `amount` base units into it."""
    ata = get_associated_token_address(owner, mint)
    ixs = [
        create_associated_token_account(payer=payer, owner=owner, mint=mint),
        mint_to(
            MintToParams(
                program_id=TOKEN_PROGRAM_ID,
                mint=mint,
                dest=ata,
                mint_authority=payer,
                amount=amount,
            )
        ),
    ]
    return ixs, ata
