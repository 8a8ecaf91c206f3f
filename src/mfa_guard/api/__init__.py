"""API - HTTP adapter over the MFA manager.

Endpoints:
    POST /mfa/status
    POST /mfa/evaluate
    POST /mfa/ownership
    POST /mfa/deny
    GET  /mfa/debug/{user_id}

The host installs its MFAManager with ServiceManager.install().
"""

from mfa_guard.api.gateway import app, ServiceManager
from mfa_guard.api.schemas import (
    SessionRequest,
    EvaluateRequest,
    OwnershipRequest,
    StatusResponse,
    EvaluateResponse,
    OwnershipResponse,
    ErrorResponse,
)

__all__ = [
    "app",
    "ServiceManager",
    "SessionRequest",
    "EvaluateRequest",
    "OwnershipRequest",
    "StatusResponse",
    "EvaluateResponse",
    "OwnershipResponse",
    "ErrorResponse",
]
