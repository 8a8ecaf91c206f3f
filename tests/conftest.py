"""Shared fixtures for MFA Guard tests."""

import shutil
import tempfile
from typing import Any, Dict, List, Optional, Sequence

import pytest

from mfa_guard.common.config import reset_config
from mfa_guard.core.base import Factor
from mfa_guard.core.types import FactorDescriptor, FactorState, UserId
from mfa_guard.factors.registry import FactorRegistry, InMemoryActiveFactorStore
from mfa_guard.factors.schema import FactorRules
from mfa_guard.governance.audit.logger import AuditLogger
from mfa_guard.governance.denial import DenialHandler
from mfa_guard.governance.ownership import InMemoryOwnershipStore, OwnershipValidator
from mfa_guard.orchestration.evaluator_router import EvaluatorRouter
from mfa_guard.orchestration.manager import MFAManager
from mfa_guard.orchestration.session_cache import InMemorySessionStore, SessionDecisionCache


class StubFactor(Factor):
    """Factor whose state is set by the test through the harness."""

    def __init__(self, descriptor: FactorDescriptor, harness: "FactorHarness"):
        super().__init__(descriptor)
        self.harness = harness
        self.calls = 0

    def get_state(self, user_id: UserId) -> FactorState:
        self.calls += 1
        state = self.harness.states[self.name]
        if isinstance(state, Exception):
            raise state
        return state


class FactorHarness:
    """Builds factor rules and stub evaluators from a few lines of setup."""

    def __init__(self):
        self.settings: Dict[str, Dict[str, Any]] = {}
        self.states: Dict[str, Any] = {}
        self.evaluators: Dict[str, StubFactor] = {}

    def add(
        self,
        name: str,
        weight: int,
        state: Any = FactorState.NEUTRAL,
        requires_setup: bool = False,
        enabled: bool = True,
    ) -> "FactorHarness":
        self.settings[name] = {
            "weight": weight,
            "enabled": enabled,
            "requires_setup": requires_setup,
        }
        self.states[name] = state
        return self

    def set_state(self, name: str, state: Any) -> None:
        self.states[name] = state

    @property
    def rules(self) -> FactorRules:
        return FactorRules.model_validate({
            "metadata": {"version": "1.0.0-test"},
            "factors": self.settings,
        })

    @property
    def factories(self):
        return {name: self._build for name in self.settings}

    def _build(self, descriptor: FactorDescriptor) -> StubFactor:
        factor = StubFactor(descriptor, self)
        self.evaluators[descriptor.name] = factor
        return factor

    def total_calls(self) -> int:
        return sum(f.calls for f in self.evaluators.values())


class RecordingAuditSink:
    """Audit sink that keeps events in memory."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.passed: List[Dict[str, Any]] = []
        self.denials: List[Dict[str, Any]] = []

    def log_user_passed_mfa(
        self,
        user_id: UserId,
        session_id: str,
        total_weight: int,
        factors: Sequence[str],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self.fail:
            raise OSError("audit sink unavailable")
        self.passed.append({
            "user_id": user_id,
            "session_id": session_id,
            "total_weight": total_weight,
            "factors": list(factors),
        })

    def log_denial(
        self,
        user_id: UserId,
        session_id: str,
        failed_backends: Sequence[str] = (),
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self.fail:
            raise OSError("audit sink unavailable")
        self.denials.append({
            "user_id": user_id,
            "session_id": session_id,
            "failed_backends": list(failed_backends),
        })


class RecordingBackend:
    """Auth backend that records logout hook calls."""

    def __init__(self, name: str, calls: List[str], fail: bool = False):
        self.name = name
        self.calls = calls
        self.fail = fail

    def logout_hook(self, session) -> None:
        self.calls.append(self.name)
        if self.fail:
            raise RuntimeError(f"{self.name} logout failed")


@pytest.fixture(autouse=True)
def clean_config():
    """Keep the global config singleton out of test-to-test state."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def temp_log_dir():
    """Create a temporary directory for logs."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def harness():
    return FactorHarness()


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture
def failing_audit_sink():
    return RecordingAuditSink(fail=True)


@pytest.fixture
def audit_logger(temp_log_dir):
    """Create an AuditLogger with temp directory."""
    return AuditLogger(log_dir=temp_log_dir, enable_hash_chain=True)


@pytest.fixture
def backend_factory():
    """Build recording auth backends sharing one call log."""
    calls: List[str] = []

    def build(name: str, fail: bool = False) -> RecordingBackend:
        return RecordingBackend(name, calls, fail=fail)

    build.calls = calls
    return build


@pytest.fixture
def active_store():
    return InMemoryActiveFactorStore()


@pytest.fixture
def ownership_store():
    return InMemoryOwnershipStore()


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def make_manager(harness, active_store, ownership_store, session_store, audit_sink):
    """Build an MFAManager over the harness with in-memory collaborators."""

    def build(
        debug_mode: bool = False,
        revalidate_cached_pass: bool = False,
        backends: Sequence[Any] = (),
        parallel: bool = False,
    ) -> MFAManager:
        return MFAManager(
            registry=FactorRegistry(harness.rules, harness.factories, active_store),
            session_cache=SessionDecisionCache(
                store=session_store,
                audit_sink=audit_sink,
                revalidate_cached_pass=revalidate_cached_pass,
            ),
            ownership_validator=OwnershipValidator(ownership_store),
            denial_handler=DenialHandler(
                session_store=session_store,
                backends=backends,
                audit_sink=audit_sink,
                redirect_url="/login",
            ),
            router=EvaluatorRouter(parallel=parallel),
            debug_mode=debug_mode,
        )

    return build
