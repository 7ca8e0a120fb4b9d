"""
Create a spot market (the quote/USDC market when the program has none yet).

Local checks before anything is built: parameter ranges, quote-market oracle
rules, program signer PDA, mint decimals. Admin mismatch is only a warning.
"""

from __future__ import annotations

from drift_admin.core.exceptions import AccountNotFoundError, ValidationError
from drift_admin.logging import get_logger
from drift_admin.protocol.params import SpotMarketParams
from drift_admin.protocol.session import ProtocolSession
from drift_admin.protocol.token import parse_mint_decimals
from drift_admin.workflow.runner import Verification, WorkflowResult, check_authority

logger = get_logger(__name__)


async def check_mint_decimals(session: ProtocolSession, params: SpotMarketParams) -> None:
    if params.expected_decimals is None:
        return
    info = await session.get_account_info(params.mint)
    if info is None:
        raise AccountNotFoundError(f"Mint {params.mint} does not exist", address=str(params.mint))
    decimals = parse_mint_decimals(bytes(info.data))
    logger.info("spot_market_mint_decimals", mint=str(params.mint), decimals=decimals)
    if decimals != params.expected_decimals:
        raise ValidationError(
            f"Mint {params.mint} has {decimals} decimals, expected {params.expected_decimals}",
            field="mint",
            value=decimals,
        )


async def create_spot_market(session: ProtocolSession, params: SpotMarketParams) -> WorkflowResult:
    state = await session.fetch_state()
    if state is None:
        raise AccountNotFoundError("State account not found", address=str(session.state_public_key))
    market_index = state.number_of_spot_markets
    logger.info(
        "spot_market_preparing",
        market_index=market_index,
        mint=str(params.mint),
        oracle=str(params.oracle),
        oracle_source=params.oracle_source,
        number_of_markets=state.number_of_markets,
    )

    params.validate(market_index)

    expected_signer = session.instructions.signer_public_key()
    if state.signer != expected_signer:
        raise ValidationError(
            f"Program signer mismatch: state has {state.signer}, expected PDA {expected_signer}",
            field="drift_signer",
            value=str(state.signer),
        )
    check_authority(session.authority, state.admin, role="admin")
    await check_mint_decimals(session, params)
    logger.info("spot_market_checks_passed", market_index=market_index)

    ix = session.instructions.initialize_spot_market(params, market_index)
    verification = Verification(
        description="number_of_spot_markets incremented",
        fetch=session.fetch_state,
        check=lambda s: s is not None and s.number_of_spot_markets > market_index,
        expected=market_index + 1,
        render=lambda s: s.number_of_spot_markets,
    )
    result = await session.workflow.execute([ix], verification=verification, label="initialize_spot_market")
    result.extra.update(market_index=market_index, mint=str(params.mint), name=params.name)
    logger.info("spot_market_initialized", market_index=market_index, signature=result.signature)
    return result
