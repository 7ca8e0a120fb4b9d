"""
Initialize the program state account with a quote asset mint.
"""

from __future__ import annotations

from solders.pubkey import Pubkey

from drift_admin.core.exceptions import AccountNotFoundError
from drift_admin.logging import get_logger
from drift_admin.protocol.session import ProtocolSession
from drift_admin.workflow.runner import Verification, WorkflowResult

logger = get_logger(__name__)


async def initialize_program(session: ProtocolSession, quote_asset_mint: Pubkey) -> WorkflowResult | None:
    """Returns None without submitting when the state account already exists."""
    builder = session.instructions
    state_pk = builder.state_public_key()
    drift_signer = builder.signer_public_key()
    logger.info("program_addresses", state=str(state_pk), drift_signer=str(drift_signer))

    if await session.get_account_info(state_pk) is not None:
        logger.warning("program_already_initialized", state=str(state_pk))
        return None
    if await session.get_account_info(quote_asset_mint) is None:
        raise AccountNotFoundError(
            f"Quote asset mint {quote_asset_mint} does not exist",
            address=str(quote_asset_mint),
        )

    admin = session.authority
    verification = Verification(
        description="state exists with signer as admin and program signer PDA",
        fetch=session.fetch_state,
        check=lambda s: s is not None and s.admin == admin and s.signer == drift_signer,
        expected=str(admin),
        render=lambda s: str(s.admin),
    )
    result = await session.workflow.execute(
        [builder.initialize(quote_asset_mint)],
        verification=verification,
        label="initialize",
    )
    result.extra.update(state=str(state_pk), admin=str(admin), quote_asset_mint=str(quote_asset_mint))
    logger.info("program_initialized", state=str(state_pk), signature=result.signature)
    return result
