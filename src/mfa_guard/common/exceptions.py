"""Custom exceptions for MFA Guard.

Provides a hierarchy of exceptions for different error types.
All MFA Guard exceptions inherit from MFAGuardException.
"""

from typing import Any, Dict, Optional

from mfa_guard.common.constants import DenialConstants


class MFAGuardException(Exception):
    """Base exception for all MFA Guard errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: str = "MFA_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(MFAGuardException):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIG_ERROR", details=details)


class ValidationError(MFAGuardException):
    """Raised when input validation fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class EvaluatorUnavailable(MFAGuardException):
    """Raised when a factor evaluator cannot produce a state.

    Never fatal to an evaluation: the factor is treated as UNKNOWN
    and contributes no weight.
    """

    def __init__(
        self,
        message: str,
        factor_name: str,
        details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        details["factor_name"] = factor_name
        self.factor_name = factor_name
        super().__init__(message, code="EVALUATOR_UNAVAILABLE", details=details)


class PersistenceFailure(MFAGuardException):
    """Raised when the session decision cannot be persisted."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="PERSISTENCE_FAILURE", details=details)


class AuditError(MFAGuardException):
    """Raised when audit logging fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="AUDIT_ERROR", details=details)


class InsufficientFactorsError(MFAGuardException):
    """Raised after a denied user has been logged out.

    Carries the landing page the user should be sent to.
    """

    def __init__(
        self,
        message: str = "You have not passed enough authentication factors.",
        redirect_url: str = DenialConstants.DEFAULT_REDIRECT_URL,
        details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        details["redirect_url"] = redirect_url
        self.redirect_url = redirect_url
        super().__init__(message, code=DenialConstants.ERROR_CODE, details=details)
