"""Common utilities - logging, config, exceptions."""

from mfa_guard.common.logging.logger import get_logger
from mfa_guard.common.config import Config, get_config, reset_config
from mfa_guard.common.exceptions import (
    MFAGuardException,
    ConfigurationError,
    ValidationError,
    EvaluatorUnavailable,
    PersistenceFailure,
    AuditError,
    InsufficientFactorsError,
)

__all__ = [
    # Logging
    "get_logger",
    # Config
    "Config",
    "get_config",
    "reset_config",
    # Exceptions
    "MFAGuardException",
    "ConfigurationError",
    "ValidationError",
    "EvaluatorUnavailable",
    "PersistenceFailure",
    "AuditError",
    "InsufficientFactorsError",
]
