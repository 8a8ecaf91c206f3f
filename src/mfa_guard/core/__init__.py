"""Core types and base classes."""

from mfa_guard.core.types import (
    UserId,
    FactorState,
    OverallState,
    FactorDescriptor,
    ActiveUserFactor,
    WeightedFactorState,
    MFASession,
    is_valid_factor_name,
    validate_factor_name,
)
from mfa_guard.core.base import AuditSink, Factor, FactorFactory, SessionStore

__all__ = [
    "UserId",
    "FactorState",
    "OverallState",
    "FactorDescriptor",
    "ActiveUserFactor",
    "WeightedFactorState",
    "MFASession",
    "is_valid_factor_name",
    "validate_factor_name",
    "Factor",
    "FactorFactory",
    "SessionStore",
    "AuditSink",
]
