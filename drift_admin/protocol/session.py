"""
Protocol session: connection + signer + program coder + workflow, scoped to one
operator run.

- subscribe() loads the state account and starts a background polling task.
- unsubscribe() cancels polling and closes the connection; open_session()
  guarantees it runs exactly once on every exit path (success, error, early return).
- A failed poll is logged and retried on the next tick; the cached state
  keeps its last good value.
- Fresh fetch_* calls bypass the cache; post-condition checks always use them.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from anchorpy.error import AccountDoesNotExistError
from driftpy.addresses import get_perp_market_public_key, get_spot_market_public_key
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solders.pubkey import Pubkey

from drift_admin.config.env import mask_rpc_url
from drift_admin.config.settings import OperatorSettings
from drift_admin.core.exceptions import AccountNotFoundError
from drift_admin.core.signer import Signer, load_signer
from drift_admin.logging import get_logger
from drift_admin.protocol.instructions import DriftInstructionBuilder, build_program
from drift_admin.workflow.runner import TransactionWorkflow

logger = get_logger(__name__)


class ProtocolSession:
    """One subscribed view of the protocol for the duration of a command."""

    def __init__(
        self,
        connection: Any,
        signer: Signer,
        workflow: TransactionWorkflow,
        *,
        program: Any = None,
        builder: DriftInstructionBuilder | None = None,
        commitment: str = "confirmed",
        poll_interval_sec: float = 1.0,
    ) -> None:
        self.connection = connection
        self.signer = signer
        self.workflow = workflow
        self.program = program
        self.builder = builder
        self._commitment = commitment
        self._poll_interval = poll_interval_sec
        self._state: Any = None
        self._poll_task: asyncio.Task | None = None
        self._subscribed = False
        self._closed = False

    @property
    def authority(self) -> Pubkey:
        return self.signer.public_key

    @property
    def is_subscribed(self) -> bool:
        return self._subscribed

    @property
    def instructions(self) -> DriftInstructionBuilder:
        if self.builder is None:
            raise AccountNotFoundError("Session has no program bound (PROGRAM_ID not configured)")
        return self.builder

    @property
    def state_public_key(self) -> Pubkey:
        return self.instructions.state_public_key()

    async def get_account_info(self, address: Pubkey) -> Any:
        """Raw AccountInfo (data, owner, lamports) or None when the account does not exist."""
        resp = await self.connection.get_account_info(address, commitment=Commitment(self._commitment))
        return resp.value

    async def fetch_account(self, account_name: str, address: Pubkey) -> Any:
        """Decode an account through the program coder; None when it does not exist."""
        if self.program is None:
            raise AccountNotFoundError("Session has no program bound (PROGRAM_ID not configured)")
        try:
            return await self.program.account[account_name].fetch(address, Commitment(self._commitment))
        except AccountDoesNotExistError:
            return None

    async def fetch_state(self) -> Any:
        return await self.fetch_account("State", self.state_public_key)

    async def fetch_spot_market(self, market_index: int) -> Any:
        builder = self.instructions
        return await self.fetch_account("SpotMarket", get_spot_market_public_key(builder.program_id, market_index))

    async def fetch_perp_market(self, market_index: int) -> Any:
        builder = self.instructions
        return await self.fetch_account("PerpMarket", get_perp_market_public_key(builder.program_id, market_index))

    async def fetch_user(self, sub_account_id: int = 0) -> Any:
        builder = self.instructions
        return await self.fetch_account("User", builder.user_public_key(sub_account_id))

    def get_state_account(self) -> Any:
        """Cached state from the subscription."""
        if self._state is None:
            raise AccountNotFoundError(
                "State account not loaded; is the program initialized?",
                address=str(self.state_public_key) if self.builder is not None else None,
            )
        return self._state

    async def subscribe(self) -> None:
        if self._subscribed:
            return
        state = await self.fetch_state()
        if state is None:
            raise AccountNotFoundError(
                f"State account does not exist at {self.state_public_key}. Run initialize-program first.",
                address=str(self.state_public_key),
            )
        self._state = state
        self._subscribed = True
        self._poll_task = asyncio.create_task(self._poll_state())
        logger.info(
            "session_subscribed",
            state=str(self.state_public_key),
            poll_interval_sec=self._poll_interval,
        )

    async def _poll_state(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                state = await self.fetch_state()
            except Exception as e:
                logger.warning("session_state_poll_failed", error_kind=type(e).__name__, error=str(e))
                continue
            if state is not None:
                self._state = state

    async def unsubscribe(self) -> None:
        """Stop polling and release the connection. Safe to call once per session."""
        if self._closed:
            logger.debug("session_already_closed")
            return
        self._closed = True
        self._subscribed = False
        try:
            if self._poll_task is not None:
                self._poll_task.cancel()
                try:
                    await self._poll_task
                except asyncio.CancelledError:
                    pass
                except Exception as e:
                    # Poll failures never replace the operation's outcome
                    logger.warning("session_poll_task_failed", error_kind=type(e).__name__, error=str(e))
                self._poll_task = None
        finally:
            await self.connection.close()
        logger.info("session_unsubscribed")


def create_session(
    settings: OperatorSettings,
    *,
    signer: Signer | None = None,
    connection: Any = None,
    require_program: bool = True,
) -> ProtocolSession:
    """
    Build a session from settings. Signer and program id are resolved first so
    configuration errors surface before any network call.
    """
    signer = signer or load_signer(settings.key_path)
    program_id = settings.require_program_id() if require_program else None
    connection = connection or AsyncClient(settings.rpc_url, commitment=Commitment(settings.commitment))
    program = None
    builder = None
    if program_id is not None:
        program = build_program(connection, program_id, settings.commitment)
        builder = DriftInstructionBuilder(program, signer.public_key)
    workflow = TransactionWorkflow(
        connection,
        signer,
        commitment=settings.commitment,
        skip_preflight=settings.skip_preflight,
        poll_interval_sec=settings.confirm_poll_interval_sec,
        drift_env=settings.drift_env,
    )
    logger.info(
        "session_created",
        rpc_url=mask_rpc_url(settings.rpc_url),
        drift_env=settings.drift_env,
        program_id=str(program_id) if program_id is not None else None,
        signer=str(signer.public_key),
        commitment=settings.commitment,
    )
    return ProtocolSession(
        connection,
        signer,
        workflow,
        program=program,
        builder=builder,
        commitment=settings.commitment,
        poll_interval_sec=settings.account_poll_interval_sec,
    )


@asynccontextmanager
async def open_session(
    settings: OperatorSettings,
    *,
    subscribe: bool = True,
    require_program: bool = True,
    signer: Signer | None = None,
    connection: Any = None,
) -> AsyncIterator[ProtocolSession]:
    session = create_session(settings, signer=signer, connection=connection, require_program=require_program)
    try:
        if subscribe:
            await session.subscribe()
        yield session
    finally:
        await session.unsubscribe()
