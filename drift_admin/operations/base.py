"""
Top-level operation runner: open a session, run one operation, log the outcome.

Errors are logged with their kind, signature and program logs, then re-raised
after the session has been released. The CLI turns them into exit status 1.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from drift_admin.config.settings import OperatorSettings
from drift_admin.core.exceptions import OperatorError, program_logs
from drift_admin.logging import bind_operation, clear_operation, get_logger
from drift_admin.protocol.session import ProtocolSession, open_session
from drift_admin.workflow.runner import WorkflowResult

logger = get_logger(__name__)

Operation = Callable[[ProtocolSession], Awaitable[Any]]


def summarize(result: Any) -> dict[str, Any]:
    """Loggable view of an operation result."""
    if isinstance(result, WorkflowResult):
        out: dict[str, Any] = {
            "signature": result.signature,
            "commitment": result.commitment,
            "explorer": result.explorer,
        }
        out.update(result.extra)
        return out
    if isinstance(result, dict):
        return result
    return {"result": result}


async def run_operation(
    name: str,
    settings: OperatorSettings,
    operation: Operation,
    *,
    subscribe: bool = True,
    require_program: bool = True,
    session_factory: Callable[..., Any] = open_session,
) -> Any:
    bind_operation(name)
    logger.info("operation_started")
    try:
        async with session_factory(settings, subscribe=subscribe, require_program=require_program) as session:
            result = await operation(session)
        if result is None:
            logger.info("operation_skipped")
        else:
            logger.info("operation_succeeded", **summarize(result))
        return result
    except OperatorError as e:
        logger.error(
            "operation_failed",
            error_kind=type(e).__name__,
            error=str(e),
            signature=getattr(e, "signature", None),
            logs=program_logs(e),
        )
        raise
    except Exception as e:
        logger.exception("operation_failed_unexpected", error_kind=type(e).__name__, error=str(e))
        raise
    finally:
        clear_operation()
