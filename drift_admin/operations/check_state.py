"""
Read-only inspection of the state account and one spot market.

Never submits anything; the same chain state always yields the same report.
"""

from __future__ import annotations

from typing import Any

from driftpy.addresses import get_spot_market_public_key
from solders.pubkey import Pubkey

from drift_admin.core.exceptions import AccountNotFoundError
from drift_admin.logging import get_logger
from drift_admin.protocol.session import ProtocolSession

logger = get_logger(__name__)


def describe_account(address: Pubkey, info: Any) -> dict[str, Any]:
    """Existence, size and owner of a raw account."""
    return {
        "address": str(address),
        "exists": info is not None,
        "size": len(info.data) if info is not None else 0,
        "owner": str(info.owner) if info is not None else None,
    }


async def check_state(session: ProtocolSession, spot_market_index: int = 0) -> dict[str, Any]:
    builder = session.instructions
    state_pk = builder.state_public_key()
    state = await session.fetch_state()
    if state is None:
        raise AccountNotFoundError(f"State account does not exist at {state_pk}", address=str(state_pk))

    expected_signer = builder.signer_public_key()
    state_report = describe_account(state_pk, await session.get_account_info(state_pk))
    state_report.update(
        admin=str(state.admin),
        signer=str(state.signer),
        signer_matches_pda=state.signer == expected_signer,
        number_of_markets=state.number_of_markets,
        number_of_spot_markets=state.number_of_spot_markets,
        exchange_status=state.exchange_status,
    )
    logger.info("state_account", **state_report)

    spot_pk = get_spot_market_public_key(builder.program_id, spot_market_index)
    spot_report = describe_account(spot_pk, await session.get_account_info(spot_pk))
    spot_report["market_index"] = spot_market_index
    if spot_report["exists"]:
        market = await session.fetch_spot_market(spot_market_index)
        if market is not None:
            spot_report.update(
                mint=str(market.mint),
                oracle=str(market.oracle),
                oracle_source=str(market.oracle_source),
                status=str(market.status),
            )
        else:
            logger.warning("spot_market_undecodable", address=str(spot_pk))
    logger.info("spot_market_account", **spot_report)

    return {"state": state_report, "spot_market": spot_report}
