"""Unit tests for the Evaluator Router.

Tests that factor evaluators run independently, that a broken
evaluator degrades to UNKNOWN, and that a FAIL stops pending work
only when short-circuiting is asked for.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest

from mfa_guard.common.exceptions import EvaluatorUnavailable
from mfa_guard.core.base import Factor
from mfa_guard.core.types import FactorDescriptor, FactorState
from mfa_guard.factors.registry import FactorRegistry
from mfa_guard.orchestration.evaluator_router import EvaluatorRouter


class BlockingFactor(Factor):
    """Factor that waits on an event before reporting PASS."""

    def __init__(self, descriptor, release: threading.Event):
        super().__init__(descriptor)
        self.release = release

    def get_state(self, user_id):
        self.release.wait(timeout=5)
        return FactorState.PASS


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="TestFactor")
    yield pool
    pool.shutdown(wait=True)


def evaluators(harness):
    return FactorRegistry(harness.rules, harness.factories).get_evaluators()


class TestParallelCollection:
    """Tests for collection on a thread pool."""

    def test_states_in_input_order(self, harness, executor):
        harness.add("auth", 50, FactorState.PASS)
        harness.add("totp", 100, FactorState.NEUTRAL)
        harness.add("email", 50, FactorState.PASS)
        router = EvaluatorRouter(executor=executor)

        result = router.collect("alice", evaluators(harness))

        assert [s.name for s in result.states] == ["auth", "totp", "email"]
        assert [s.state for s in result.states] == [
            FactorState.PASS, FactorState.NEUTRAL, FactorState.PASS
        ]
        assert result.errors == []
        assert result.short_circuited is False

    def test_weights_come_from_descriptors(self, harness, executor):
        harness.add("auth", 50, FactorState.PASS)
        harness.add("totp", 100, FactorState.PASS)
        result = EvaluatorRouter(executor=executor).collect("alice", evaluators(harness))
        assert [s.weight for s in result.states] == [50, 100]

    def test_every_evaluator_called_once(self, harness, executor):
        for name in ("auth", "totp", "email"):
            harness.add(name, 50, FactorState.NEUTRAL)
        EvaluatorRouter(executor=executor).collect("alice", evaluators(harness))
        assert all(f.calls == 1 for f in harness.evaluators.values())

    def test_empty_input(self, executor):
        result = EvaluatorRouter(executor=executor).collect("alice", [])
        assert result.states == []

    def test_fail_cancels_pending_evaluations(self, executor):
        release = threading.Event()
        slow = BlockingFactor(FactorDescriptor(name="email", weight=50), release)

        class FailingFactor(Factor):
            def get_state(self, user_id):
                return FactorState.FAIL

        fast = FailingFactor(FactorDescriptor(name="iprange", weight=0))
        try:
            result = EvaluatorRouter(executor=executor).collect(
                "alice", [slow, fast], short_circuit=True
            )
        finally:
            release.set()

        assert result.short_circuited is True
        assert result.states[0].state == FactorState.UNKNOWN
        assert result.states[1].state == FactorState.FAIL


class TestEvaluatorFailures:
    """A broken evaluator never aborts the evaluation."""

    def test_exception_becomes_unknown(self, harness, executor):
        harness.add("auth", 50, FactorState.PASS)
        harness.add("totp", 100, RuntimeError("otp service down"))
        result = EvaluatorRouter(executor=executor).collect("alice", evaluators(harness))

        assert result.states[1].state == FactorState.UNKNOWN
        assert result.states[0].state == FactorState.PASS
        assert len(result.errors) == 1
        assert result.errors[0].factor_name == "totp"
        assert result.errors[0].error_type == "RuntimeError"

    def test_evaluator_unavailable_keeps_its_message(self, harness):
        harness.add("totp", 100, EvaluatorUnavailable("no secret", factor_name="totp"))
        result = EvaluatorRouter(parallel=False).collect("alice", evaluators(harness))
        assert result.states[0].state == FactorState.UNKNOWN
        assert result.errors[0].error_message == "no secret"

    def test_invalid_state_becomes_unknown(self, harness):
        harness.add("totp", 100, "maybe")
        result = EvaluatorRouter(parallel=False).collect("alice", evaluators(harness))
        assert result.states[0].state == FactorState.UNKNOWN
        assert result.errors[0].error_type == "InvalidState"

    def test_string_state_is_coerced(self, harness):
        harness.add("totp", 100, "pass")
        result = EvaluatorRouter(parallel=False).collect("alice", evaluators(harness))
        assert result.states[0].state == FactorState.PASS
        assert result.errors == []


class TestSequentialCollection:
    """Tests for collection in the calling thread."""

    def test_runs_in_calling_thread(self, harness):
        seen = []

        class ThreadRecordingFactor(Factor):
            def get_state(self, user_id):
                seen.append(threading.current_thread())
                return FactorState.PASS

        factors = [
            ThreadRecordingFactor(FactorDescriptor(name="auth", weight=50)),
            ThreadRecordingFactor(FactorDescriptor(name="email", weight=50)),
        ]
        EvaluatorRouter(parallel=False).collect("alice", factors)
        assert seen == [threading.current_thread()] * 2

    def test_fail_skips_remaining(self, harness):
        harness.add("auth", 50, FactorState.PASS)
        harness.add("iprange", 50, FactorState.FAIL)
        harness.add("email", 50, FactorState.PASS)
        result = EvaluatorRouter(parallel=False).collect(
            "alice", evaluators(harness), short_circuit=True
        )

        assert [s.state for s in result.states] == [
            FactorState.PASS, FactorState.FAIL, FactorState.UNKNOWN
        ]
        assert result.short_circuited is True
        assert harness.evaluators["email"].calls == 0

    def test_fail_last_is_not_short_circuit(self, harness):
        harness.add("auth", 50, FactorState.PASS)
        harness.add("iprange", 50, FactorState.FAIL)
        result = EvaluatorRouter(parallel=False).collect(
            "alice", evaluators(harness), short_circuit=True
        )
        assert result.short_circuited is False

    def test_fail_evaluates_everything_by_default(self, harness):
        harness.add("iprange", 50, FactorState.FAIL)
        harness.add("totp", 100, FactorState.PASS)
        result = EvaluatorRouter(parallel=False).collect("alice", evaluators(harness))

        assert [s.state for s in result.states] == [FactorState.FAIL, FactorState.PASS]
        assert result.short_circuited is False
        assert harness.evaluators["totp"].calls == 1


class TestFullCollectionAfterFail:
    """Without short_circuit every factor reports its real state."""

    def test_parallel_waits_for_slow_factor(self, executor):
        release = threading.Event()
        slow = BlockingFactor(FactorDescriptor(name="totp", weight=100), release)

        class FailingFactor(Factor):
            def get_state(self, user_id):
                release.set()
                return FactorState.FAIL

        fast = FailingFactor(FactorDescriptor(name="iprange", weight=50))
        result = EvaluatorRouter(executor=executor).collect("alice", [slow, fast])

        assert [s.state for s in result.states] == [FactorState.PASS, FactorState.FAIL]
        assert [s.achieved_weight for s in result.states] == [100, 0]
        assert result.short_circuited is False


class TestSharedExecutor:
    """Tests for the module-level executor lifecycle."""

    def test_rebuild_does_not_register_exit_hook_again(self):
        from mfa_guard.orchestration import evaluator_router

        with patch.object(evaluator_router.atexit, "register") as register:
            evaluator_router.shutdown_executor()
            evaluator_router._get_shared_executor(2)
            evaluator_router.shutdown_executor()
            evaluator_router._get_shared_executor(2)
            evaluator_router.shutdown_executor()

        register.assert_not_called()

    def test_rebuilt_after_shutdown(self):
        from mfa_guard.orchestration import evaluator_router

        first = evaluator_router._get_shared_executor(2)
        evaluator_router.shutdown_executor()
        second = evaluator_router._get_shared_executor(2)
        try:
            assert second is not first
            assert second.submit(lambda: 7).result(timeout=5) == 7
        finally:
            evaluator_router.shutdown_executor()
