"""Base factor class and contract.

Concrete factors (password, TOTP, email, ...) live in the host
application. They subclass Factor and only decide their own state.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Protocol, Sequence

from mfa_guard.core.types import FactorDescriptor, FactorState, UserId


class Factor(ABC):
    """Abstract base class for factor evaluators.

    Weight and setup requirements come from the descriptor the
    factor was bound to at startup, never from the factor itself.
    """

    def __init__(self, descriptor: FactorDescriptor):
        self.descriptor = descriptor

    @property
    def name(self) -> str:
        return self.descriptor.name

    def get_weight(self) -> int:
        return self.descriptor.weight

    def has_setup(self) -> bool:
        """Whether the factor needs explicit per-user setup."""
        return self.descriptor.requires_setup

    @abstractmethod
    def get_state(self, user_id: UserId) -> FactorState:
        """Evaluate the factor for a user.

        Args:
            user_id: User being authenticated

        Returns:
            Current FactorState. May block on I/O.
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, weight={self.get_weight()})"


# Builds a bound evaluator from its descriptor
FactorFactory = Callable[[FactorDescriptor], Factor]


class SessionStore(Protocol):
    """Host session storage for the write-once authenticated flag."""

    def is_authenticated(self, session_id: str) -> bool:
        ...

    def compare_and_set(self, session_id: str) -> bool:
        """Set the flag if unset. Returns True only for the caller that set it."""
        ...

    def invalidate(self, session_id: str) -> None:
        ...


class AuditSink(Protocol):
    """Receiver of MFA audit events."""

    def log_user_passed_mfa(
        self,
        user_id: UserId,
        session_id: str,
        total_weight: int,
        factors: Sequence[str],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Any:
        ...

    def log_denial(
        self,
        user_id: UserId,
        session_id: str,
        failed_backends: Sequence[str] = (),
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Any:
        ...
