"""
Core types shared by every command: exceptions and the signer interface.
"""

from drift_admin.core.exceptions import (
    AccountNotFoundError,
    ConfigurationError,
    ConfirmationTimeoutError,
    OperatorError,
    SubmissionError,
    ValidationError,
    VerificationError,
)
from drift_admin.core.signer import KeypairSigner, Signer, load_keypair_file, load_signer

__all__ = [
    "AccountNotFoundError",
    "ConfigurationError",
    "ConfirmationTimeoutError",
    "KeypairSigner",
    "OperatorError",
    "Signer",
    "SubmissionError",
    "ValidationError",
    "VerificationError",
    "load_keypair_file",
    "load_signer",
]
