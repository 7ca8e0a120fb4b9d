"""
Create the signer's user account (and user stats for sub account 0).
"""

from __future__ import annotations

from drift_admin.core.exceptions import ValidationError
from drift_admin.logging import get_logger
from drift_admin.protocol.instructions import DEFAULT_USER_NAME
from drift_admin.protocol.session import ProtocolSession
from drift_admin.workflow.runner import Verification, WorkflowResult

logger = get_logger(__name__)

MAX_SUB_ACCOUNT_ID = 2**16 - 1


def default_user_name(sub_account_id: int) -> str:
    if sub_account_id == 0:
        return DEFAULT_USER_NAME
    return f"Subaccount {sub_account_id + 1}"


async def create_user(
    session: ProtocolSession,
    sub_account_id: int = 0,
    name: str | None = None,
) -> WorkflowResult | None:
    """Returns None without submitting when the user account already exists."""
    if sub_account_id < 0 or sub_account_id > MAX_SUB_ACCOUNT_ID:
        raise ValidationError(
            f"sub_account_id must be within [0, {MAX_SUB_ACCOUNT_ID}]",
            field="sub_account_id",
            value=sub_account_id,
        )
    builder = session.instructions
    user_pk = builder.user_public_key(sub_account_id)
    logger.info("user_account_address", user=str(user_pk), sub_account_id=sub_account_id)
    if await session.fetch_user(sub_account_id) is not None:
        logger.warning("user_already_exists", user=str(user_pk), sub_account_id=sub_account_id)
        return None

    ixs = []
    if sub_account_id == 0:
        ixs.append(builder.initialize_user_stats())
    ixs.append(builder.initialize_user(sub_account_id, name or default_user_name(sub_account_id)))

    authority = session.authority
    verification = Verification(
        description="user account exists for signer",
        fetch=lambda: session.fetch_user(sub_account_id),
        check=lambda u: u is not None and u.authority == authority,
        expected=str(authority),
        render=lambda u: str(u.authority),
    )
    result = await session.workflow.execute(ixs, verification=verification, label="initialize_user")
    result.extra.update(user=str(user_pk), sub_account_id=sub_account_id)
    logger.info("user_created", user=str(user_pk), signature=result.signature)
    return result
