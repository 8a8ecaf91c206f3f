"""Debug report - per-factor breakdown for administrators."""

from datetime import datetime, timezone
from typing import List, Literal

from pydantic import BaseModel, Field

from mfa_guard.core.types import FactorState


class DebugRow(BaseModel):
    """One enabled factor as the user currently sees it."""
    factor: str = Field(..., description="Factor name")
    weight: int = Field(..., ge=0, description="Configured weight")
    setup: Literal["yes", "no", "n/a"] = Field(
        ...,
        description="Whether the user set the factor up; n/a if it needs no setup"
    )
    achieved_weight: int = Field(..., ge=0, description="Weight contributed now")
    state: FactorState


class DebugReport(BaseModel):
    """Debug table for one user, plus the overall row."""
    user_id: str
    rows: List[DebugRow] = Field(default_factory=list)
    total_weight: int = Field(..., ge=0, description="Achieved weight over active factors")
    overall_state: FactorState = Field(
        ...,
        description="PASS once enough weight is achieved, UNKNOWN otherwise"
    )
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
