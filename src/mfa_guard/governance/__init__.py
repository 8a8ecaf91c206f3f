"""Governance - ownership checks, denial and the audit trail.

Components:
- OwnershipValidator: factor-instance ids must belong to the caller
- DenialHandler: unconditional logout for users who may not proceed
- AuditLogger: immutable JSONL record of MFA events
"""

from mfa_guard.governance.audit.logger import AuditLogger, AuditLogIntegrityError
from mfa_guard.governance.denial import AuthBackend, DenialHandler
from mfa_guard.governance.ownership import (
    InMemoryOwnershipStore,
    OwnershipStore,
    OwnershipValidator,
)
from mfa_guard.governance.schemas import AuditEntry, AuditEventType

__all__ = [
    "AuditLogger",
    "AuditLogIntegrityError",
    "AuthBackend",
    "DenialHandler",
    "InMemoryOwnershipStore",
    "OwnershipStore",
    "OwnershipValidator",
    "AuditEntry",
    "AuditEventType",
]
