"""MFA Guard - multi-factor authentication aggregation engine."""

__version__ = "0.1.0"
__author__ = "MFA Guard Team"

# Core exports
from mfa_guard.core.types import FactorState, OverallState, MFASession
from mfa_guard.core.base import Factor

__all__ = [
    "FactorState",
    "OverallState",
    "MFASession",
    "Factor",
]
