"""Session Decision Cache - remembers a reached PASS for the session.

Per-session state machine:

    UNSET --(PASS)--> CACHED_PASS      terminal, never reset within the session
    UNSET --(FAIL)--> UNSET            nothing persisted, next call re-evaluates
    UNSET --(NEUTRAL)--> UNSET

The transition into CACHED_PASS is a compare-and-set on the session
flag. Only the caller that wins it emits the user_passed_mfa event,
so the event fires once per session even under concurrent requests.
"""

import logging
import threading
from typing import Callable, Optional, Set

from mfa_guard.common.exceptions import PersistenceFailure
from mfa_guard.core.base import AuditSink, SessionStore
from mfa_guard.core.types import MFASession, OverallState, UserId
from mfa_guard.orchestration.aggregation import AggregationResult


logger = logging.getLogger(__name__)


class InMemorySessionStore:
    """Session store kept in process memory, safe across threads."""

    def __init__(self):
        self._lock = threading.Lock()
        self._authenticated: Set[str] = set()

    def is_authenticated(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._authenticated

    def compare_and_set(self, session_id: str) -> bool:
        with self._lock:
            if session_id in self._authenticated:
                return False
            self._authenticated.add(session_id)
            return True

    def invalidate(self, session_id: str) -> None:
        with self._lock:
            self._authenticated.discard(session_id)


Evaluation = Callable[[UserId], AggregationResult]


class SessionDecisionCache:
    """Short-circuits evaluation once a session has passed MFA."""

    def __init__(
        self,
        store: SessionStore,
        audit_sink: Optional[AuditSink] = None,
        revalidate_cached_pass: bool = False,
    ):
        """Initialize the cache.

        Args:
            store: Session storage holding the authenticated flag
            audit_sink: Receives the user_passed_mfa event on transition
            revalidate_cached_pass: Re-run evaluation for cached sessions and
                report FAIL if a factor has since failed. The flag itself
                stays set and no second event is emitted.
        """
        self.store = store
        self.audit_sink = audit_sink
        self.revalidate_cached_pass = revalidate_cached_pass

    def is_cached(self, session: MFASession) -> bool:
        """Read the session flag. An unreadable flag counts as unset."""
        try:
            return self.store.is_authenticated(session.session_id)
        except Exception as e:
            logger.error(
                f"Session flag unreadable, re-evaluating: {type(e).__name__}: {e}",
                extra={"session_id": session.session_id}
            )
            return False

    def check_status(self, session: MFASession, evaluate: Evaluation) -> OverallState:
        """Get the overall state for a session.

        Args:
            session: Session context, carries the user id
            evaluate: Runs the aggregation for a user

        Returns:
            PASS, FAIL or NEUTRAL
        """
        if self.is_cached(session):
            if not self.revalidate_cached_pass:
                return OverallState.PASS
            return self._revalidate(session, evaluate)

        result = evaluate(session.user_id)

        if result.state == OverallState.PASS:
            self._transition_to_pass(session, result)

        return result.state

    def _revalidate(self, session: MFASession, evaluate: Evaluation) -> OverallState:
        result = evaluate(session.user_id)
        if result.state == OverallState.FAIL:
            logger.warning(
                "Cached PASS session now has failing factors",
                extra={
                    "session_id": session.session_id,
                    "failed_factors": list(result.failed_factors),
                }
            )
            return OverallState.FAIL
        return OverallState.PASS

    def _transition_to_pass(self, session: MFASession, result: AggregationResult) -> None:
        """Persist the PASS flag and emit the audit event once.

        A failed write still lets this call return PASS; the next call
        re-evaluates and retries the transition.
        """
        try:
            won = self.store.compare_and_set(session.session_id)
        except PersistenceFailure as e:
            logger.error(e.message, extra={"session_id": session.session_id})
            return
        except Exception as e:
            logger.error(
                f"Could not cache PASS for session: {type(e).__name__}: {e}",
                extra={"session_id": session.session_id}
            )
            return

        if not won:
            # Another request for this session made the transition
            return

        logger.info(
            "User passed MFA",
            extra={
                "user_id": str(session.user_id),
                "session_id": session.session_id,
                "total_weight": result.total_weight,
            }
        )

        if self.audit_sink is None:
            return

        try:
            self.audit_sink.log_user_passed_mfa(
                user_id=session.user_id,
                session_id=session.session_id,
                total_weight=result.total_weight,
                factors=result.passed_factors,
            )
        except Exception as e:
            logger.error(
                f"Failed to record user_passed_mfa event: {type(e).__name__}: {e}",
                extra={"session_id": session.session_id}
            )
