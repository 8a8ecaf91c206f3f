"""Denial Handler - logs a user out when they may not proceed.

The sequence always runs to the end: every auth backend gets its
logout hook, then the session is invalidated, then the user is sent
to the landing page with an insufficient-factors error.
"""

import logging
from typing import List, NoReturn, Optional, Protocol, Sequence

from mfa_guard.common.constants import DenialConstants
from mfa_guard.common.exceptions import InsufficientFactorsError
from mfa_guard.core.types import MFASession
from mfa_guard.core.base import AuditSink, SessionStore


logger = logging.getLogger(__name__)


class AuthBackend(Protocol):
    """An enabled host authentication backend."""

    name: str

    def logout_hook(self, session: MFASession) -> None:
        ...


class DenialHandler:
    """Runs the full logout sequence and raises InsufficientFactorsError."""

    def __init__(
        self,
        session_store: SessionStore,
        backends: Sequence[AuthBackend] = (),
        audit_sink: Optional[AuditSink] = None,
        redirect_url: str = DenialConstants.DEFAULT_REDIRECT_URL,
    ):
        self.session_store = session_store
        self.backends = list(backends)
        self.audit_sink = audit_sink
        self.redirect_url = redirect_url

    def logout(self, session: MFASession) -> List[str]:
        """Run every backend's logout hook, then invalidate the session.

        Returns:
            Names of backends whose hook raised
        """
        failed: List[str] = []
        for backend in self.backends:
            try:
                backend.logout_hook(session)
            except Exception as e:
                name = getattr(backend, "name", type(backend).__name__)
                logger.error(
                    f"Logout hook failed for backend {name}: {type(e).__name__}: {e}",
                    extra={"session_id": session.session_id}
                )
                failed.append(name)

        try:
            self.session_store.invalidate(session.session_id)
        except Exception as e:
            logger.error(
                f"Session invalidation failed: {type(e).__name__}: {e}",
                extra={"session_id": session.session_id}
            )

        return failed

    def deny(self, session: MFASession) -> NoReturn:
        """Log the user out and surface the insufficient-factors error.

        Raises:
            InsufficientFactorsError: Always, carrying the redirect URL
        """
        failed = self.logout(session)

        logger.info(
            "User denied for insufficient factors",
            extra={"user_id": str(session.user_id), "session_id": session.session_id}
        )

        if self.audit_sink is not None:
            try:
                self.audit_sink.log_denial(
                    user_id=session.user_id,
                    session_id=session.session_id,
                    failed_backends=failed,
                )
            except Exception as e:
                logger.error(f"Failed to record denial event: {type(e).__name__}: {e}")

        raise InsufficientFactorsError(redirect_url=self.redirect_url)
