"""
Create a perp market at the next free index, optionally converting it to a
prediction market in a second transaction.
"""

from __future__ import annotations

from drift_admin.core.exceptions import AccountNotFoundError
from drift_admin.logging import get_logger
from drift_admin.protocol.params import PerpMarketParams
from drift_admin.protocol.session import ProtocolSession
from drift_admin.workflow.runner import Verification, WorkflowResult, check_authority

logger = get_logger(__name__)


async def create_perp_market(session: ProtocolSession, params: PerpMarketParams) -> WorkflowResult:
    state = await session.fetch_state()
    if state is None:
        raise AccountNotFoundError(
            f"State account does not exist at {session.state_public_key}. Run initialize-program first.",
            address=str(session.state_public_key),
        )
    market_index = state.number_of_markets
    logger.info(
        "perp_market_preparing",
        market_index=market_index,
        oracle=str(params.oracle),
        oracle_source=params.oracle_source,
        contract_tier=params.contract_tier,
    )

    params.validate()
    check_authority(session.authority, state.admin, role="admin")

    ix = session.instructions.initialize_perp_market(params, market_index)
    verification = Verification(
        description="number_of_markets incremented",
        fetch=session.fetch_state,
        check=lambda s: s is not None and s.number_of_markets > market_index,
        expected=market_index + 1,
        render=lambda s: s.number_of_markets,
    )
    result = await session.workflow.execute([ix], verification=verification, label="initialize_perp_market")
    result.extra.update(market_index=market_index, name=params.name)
    logger.info("perp_market_initialized", market_index=market_index, signature=result.signature)

    if params.prediction_market:
        prediction = await session.workflow.execute(
            [session.instructions.initialize_prediction_market(market_index)],
            label="initialize_prediction_market",
        )
        result.extra["prediction_signature"] = prediction.signature
        logger.info("perp_market_converted_to_prediction", market_index=market_index, signature=prediction.signature)
    return result
