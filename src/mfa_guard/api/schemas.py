"""API Schemas - Request/Response models for the MFA gateway.
"""

from typing import List, Optional, Union

from pydantic import BaseModel, Field

from mfa_guard.core.types import FactorState, OverallState


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class SessionRequest(BaseModel):
    """Session identity for status and denial requests."""
    session_id: str = Field(..., min_length=1, description="Host session identifier")
    user_id: str = Field(..., min_length=1, description="Authenticated user")


class EvaluateRequest(BaseModel):
    """Request body for POST /mfa/evaluate."""
    user_id: str = Field(..., min_length=1, description="User to evaluate")


class OwnershipRequest(BaseModel):
    """Request body for POST /mfa/ownership."""
    factor_type: str = Field(..., description="Factor type namespace, e.g. totp")
    factor_id: Union[int, str] = Field(..., description="Factor instance id from the client")
    user_id: str = Field(..., min_length=1, description="Authenticated user")


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class StatusResponse(BaseModel):
    """Response for POST /mfa/status."""
    state: OverallState
    cached: bool = Field(..., description="Whether the session holds a cached PASS")


class FactorResult(BaseModel):
    """One factor in an evaluation response."""
    name: str
    weight: int
    state: FactorState
    achieved_weight: int


class EvaluateResponse(BaseModel):
    """Response for POST /mfa/evaluate."""
    state: OverallState
    total_weight: int
    factors: List[FactorResult] = Field(default_factory=list)


class OwnershipResponse(BaseModel):
    """Response for POST /mfa/ownership."""
    owned: bool


class ErrorResponse(BaseModel):
    """Error response body."""
    error: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    request_id: Optional[str] = Field(default=None, description="Request ID for tracing")
