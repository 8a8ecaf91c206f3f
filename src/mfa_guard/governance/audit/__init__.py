"""Audit module - Immutable logging of MFA events.

Provides append-only JSONL logging with hash chain integrity verification.
"""

from mfa_guard.governance.audit.logger import AuditLogger, AuditLogIntegrityError

__all__ = [
    "AuditLogger",
    "AuditLogIntegrityError",
]
