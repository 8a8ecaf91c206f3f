"""Governance schemas - type definitions for the audit trail."""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from mfa_guard.common.constants import AuditConstants


class AuditEventType(str, Enum):
    """Types of audit events."""
    USER_PASSED_MFA = AuditConstants.USER_PASSED_MFA_EVENT
    DENIAL = "denial"
    SYSTEM_EVENT = "system_event"


class AuditEntry(BaseModel):
    """A single immutable audit log entry.

    Entries are append-only. The hash chain links every entry to the
    one written before it in the same log file.
    """
    entry_id: str = Field(
        default_factory=lambda: f"aud_{uuid4().hex[:12]}",
        description="Unique audit entry identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred"
    )
    event_type: AuditEventType = Field(
        ...,
        description="Type of audit event"
    )

    # Core identifiers
    session_id: Optional[str] = Field(
        default=None,
        description="Associated session ID"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Associated user ID"
    )

    # Decision details
    total_weight: Optional[int] = Field(
        default=None,
        ge=0,
        description="Achieved factor weight at the time of the event"
    )
    factors: List[str] = Field(
        default_factory=list,
        description="Factors relevant to the event"
    )

    # Integrity
    previous_hash: Optional[str] = Field(
        default=None,
        description="Hash of previous entry (for chain integrity)"
    )
    entry_hash: Optional[str] = Field(
        default=None,
        description="Hash of this entry"
    )

    # Metadata
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional context"
    )

    def to_jsonl(self) -> str:
        """Serialize entry to JSONL format."""
        return json.dumps(self.model_dump(mode="json"), default=str)

    @classmethod
    def from_jsonl(cls, line: str) -> "AuditEntry":
        """Deserialize entry from JSONL format."""
        return cls.model_validate(json.loads(line))
