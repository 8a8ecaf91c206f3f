"""API Gateway - FastAPI adapter over the MFA manager."""

import logging
import os
import threading
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse

from mfa_guard.api.schemas import (
    ErrorResponse,
    EvaluateRequest,
    EvaluateResponse,
    FactorResult,
    OwnershipRequest,
    OwnershipResponse,
    SessionRequest,
    StatusResponse,
)
from mfa_guard.common.exceptions import (
    ConfigurationError,
    InsufficientFactorsError,
    MFAGuardException,
    ValidationError,
)
from mfa_guard.core.types import MFASession
from mfa_guard.orchestration.manager import MFAManager
from mfa_guard.orchestration.report import DebugReport

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("mfa_api")


class ServiceManager:
    """Thread-safe holder of the host's MFA manager."""

    _instance: Optional[MFAManager] = None
    _lock = threading.Lock()

    @classmethod
    def install(cls, manager: MFAManager) -> None:
        """Install the manager built by the host application."""
        with cls._lock:
            cls._instance = manager
            logger.info("MFAManager installed")

    @classmethod
    def get_manager(cls) -> MFAManager:
        """Get the installed manager.

        Raises:
            ConfigurationError: If no manager was installed
        """
        if cls._instance is None:
            raise ConfigurationError("No MFA manager installed")
        return cls._instance

    @classmethod
    def shutdown(cls) -> None:
        """Release the installed manager."""
        with cls._lock:
            if cls._instance is not None:
                cls._instance = None
                logger.info("MFAManager released")


def get_manager() -> MFAManager:
    """Get the MFA manager instance."""
    return ServiceManager.get_manager()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("MFA Guard API starting up...")

    yield

    logger.info("MFA Guard API shutting down...")
    ServiceManager.shutdown()

    from mfa_guard.orchestration.evaluator_router import shutdown_executor
    shutdown_executor()

    logger.info("MFA Guard API shutdown complete")


# Create FastAPI application
environment = os.environ.get("MFA_ENVIRONMENT", "development")
enable_docs_default = "false" if environment == "production" else "true"
enable_docs = os.environ.get("MFA_ENABLE_DOCS", enable_docs_default).lower() == "true"

app = FastAPI(
    title="MFA Guard API",
    description="Multi-factor authentication decisions for host applications.",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if enable_docs else None,
    redoc_url="/redoc" if enable_docs else None,
)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

def _error(request: Request, status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            message=message,
            request_id=getattr(request.state, "request_id", None),
        ).model_dump(),
    )


@app.exception_handler(InsufficientFactorsError)
async def insufficient_factors_handler(
    request: Request, exc: InsufficientFactorsError
) -> RedirectResponse:
    """Send a denied user to the landing page."""
    logger.info(
        "Redirecting denied user",
        extra={"request_id": getattr(request.state, "request_id", None)}
    )
    return RedirectResponse(url=exc.redirect_url, status_code=303)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle malformed factor names and ids."""
    logger.warning(
        "Validation error",
        extra={"request_id": getattr(request.state, "request_id", None), "error": exc.message}
    )
    return _error(request, 400, "validation_error", exc.message)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error(
        "Service not configured",
        extra={"request_id": getattr(request.state, "request_id", None), "error": exc.message}
    )
    return _error(request, 503, "not_configured", "MFA service is not available")


@app.exception_handler(MFAGuardException)
async def mfa_error_handler(request: Request, exc: MFAGuardException) -> JSONResponse:
    logger.error(
        "MFA processing error",
        extra={"request_id": getattr(request.state, "request_id", None), "error_code": exc.code},
        exc_info=True
    )
    return _error(request, 500, "processing_error", "An error occurred while processing the request")


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected errors.

    Logs full exception for debugging but returns sanitized message to client.
    """
    logger.exception(
        "Unexpected error",
        extra={"request_id": getattr(request.state, "request_id", None), "error_type": type(exc).__name__}
    )
    return _error(request, 500, "internal_error", "An unexpected error occurred")


# =============================================================================
# MIDDLEWARE
# =============================================================================

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID to each request for tracing."""
    request_id = f"req_{uuid4().hex[:12]}"
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.post("/mfa/status", response_model=StatusResponse)
def check_status(request: SessionRequest) -> StatusResponse:
    """Overall MFA state for a session; PASS is cached for the session."""
    manager = get_manager()
    session = MFASession(session_id=request.session_id, user_id=request.user_id)

    state = manager.check_status(session)
    return StatusResponse(state=state, cached=manager.session_cache.is_cached(session))


@app.post("/mfa/evaluate", response_model=EvaluateResponse)
def evaluate(request: EvaluateRequest) -> EvaluateResponse:
    """Aggregate a user's active factors without touching any session."""
    result = get_manager().evaluate_detailed(request.user_id)
    return EvaluateResponse(
        state=result.state,
        total_weight=result.total_weight,
        factors=[
            FactorResult(
                name=f.name,
                weight=f.weight,
                state=f.state,
                achieved_weight=f.achieved_weight,
            )
            for f in result.factors
        ],
    )


@app.post("/mfa/ownership", response_model=OwnershipResponse)
def check_ownership(request: OwnershipRequest) -> OwnershipResponse:
    """Check that a factor instance belongs to the user."""
    owned = get_manager().is_factor_owned_by_user(
        request.factor_type, request.factor_id, request.user_id
    )
    return OwnershipResponse(owned=owned)


@app.post("/mfa/deny", status_code=303)
def deny(request: SessionRequest) -> None:
    """Log the user out and redirect to the landing page."""
    session = MFASession(session_id=request.session_id, user_id=request.user_id)
    get_manager().deny(session)


@app.get("/mfa/debug/{user_id}", response_model=DebugReport)
def debug_report(user_id: str) -> DebugReport:
    """Per-factor debug table; only served in debug mode."""
    manager = get_manager()
    if not manager.debug_mode:
        raise HTTPException(status_code=404, detail="not_found")
    return manager.debug_report(user_id)


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy", "service": "mfa-guard"}


# =============================================================================
# DEVELOPMENT SERVER
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mfa_guard.api.gateway:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
