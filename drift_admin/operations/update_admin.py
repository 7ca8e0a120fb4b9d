"""
Rotate the program admin key.

The loaded signer must be the CURRENT admin. A mismatch is logged and the
transaction still goes out; the program's rejection is the authoritative check.
"""

from __future__ import annotations

from solders.pubkey import Pubkey

from drift_admin.core.exceptions import AccountNotFoundError
from drift_admin.logging import get_logger
from drift_admin.protocol.session import ProtocolSession
from drift_admin.workflow.runner import Verification, WorkflowResult, check_authority

logger = get_logger(__name__)


async def update_admin(session: ProtocolSession, new_admin: Pubkey) -> WorkflowResult:
    state = await session.fetch_state()
    if state is None:
        raise AccountNotFoundError("Could not fetch state account", address=str(session.state_public_key))
    logger.info("admin_current", admin=str(state.admin), new_admin=str(new_admin))
    check_authority(session.authority, state.admin, role="admin")

    ix = session.instructions.update_admin(new_admin)
    verification = Verification(
        description="state.admin equals new admin",
        fetch=session.fetch_state,
        check=lambda s: s is not None and s.admin == new_admin,
        expected=str(new_admin),
        render=lambda s: str(s.admin),
    )
    result = await session.workflow.execute([ix], verification=verification, label="update_admin")
    result.extra["new_admin"] = str(result.verified.admin)
    logger.info("admin_updated", admin=result.extra["new_admin"], signature=result.signature)
    return result
