"""
Operator-level exceptions.

Each failure kind of an administrative run gets its own type so the operator
can tell "never sent" from "sent but unconfirmed" from "landed without the
intended effect". Nothing here is retried automatically.
"""

from __future__ import annotations

from typing import Any


class OperatorError(Exception):
    """Base class for every failure surfaced by an operator command."""


class ConfigurationError(OperatorError):
    """Required setting missing or key file unreadable. Raised before any network call."""

    def __init__(self, message: str, *, setting: str | None = None) -> None:
        super().__init__(message)
        self.setting = setting


class ValidationError(OperatorError):
    """Local parameter or precondition check failed; nothing was submitted."""

    def __init__(self, message: str, *, field: str | None = None, value: Any = None) -> None:
        super().__init__(message)
        self.field = field
        self.value = value


class AccountNotFoundError(OperatorError):
    """A protocol account the operation depends on does not exist."""

    def __init__(self, message: str, *, address: str | None = None) -> None:
        super().__init__(message)
        self.address = address


class SubmissionError(OperatorError):
    """
    The network rejected the transaction (preflight/simulation) or the program
    returned an error once it landed. Program log lines are kept verbatim.
    """

    def __init__(
        self,
        message: str,
        *,
        logs: list[str] | None = None,
        signature: str | None = None,
    ) -> None:
        super().__init__(message)
        self.logs = list(logs or [])
        self.signature = signature


class ConfirmationTimeoutError(OperatorError):
    """Signature did not reach the target commitment before its blockhash expired."""

    def __init__(
        self,
        message: str,
        *,
        signature: str,
        last_valid_block_height: int | None = None,
    ) -> None:
        super().__init__(message)
        self.signature = signature
        self.last_valid_block_height = last_valid_block_height


class VerificationError(OperatorError):
    """Transaction confirmed but the re-fetched state does not show the expected change."""

    def __init__(
        self,
        message: str,
        *,
        signature: str,
        expected: Any = None,
        observed: Any = None,
    ) -> None:
        super().__init__(message)
        self.signature = signature
        self.expected = expected
        self.observed = observed


def program_logs(exc: BaseException) -> list[str]:
    """Program log lines attached to an error, or an empty list."""
    logs = getattr(exc, "logs", None)
    if isinstance(logs, list):
        return [str(line) for line in logs]
    return []
