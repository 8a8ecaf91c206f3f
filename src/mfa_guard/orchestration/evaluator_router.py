"""Evaluator Router - Parallel, Independent Factor Evaluation."""

import atexit
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from mfa_guard.common.constants import EvaluatorConstants
from mfa_guard.common.exceptions import EvaluatorUnavailable
from mfa_guard.core.base import Factor
from mfa_guard.core.types import FactorState, UserId, WeightedFactorState


logger = logging.getLogger(__name__)


@dataclass
class EvaluatorError:
    """Structured error from a factor evaluator."""
    factor_name: str
    error_type: str
    error_message: str


@dataclass
class RouterResult:
    """States collected from all evaluators, in input order.

    Factors whose evaluator failed or was cancelled are UNKNOWN.
    """
    states: List[WeightedFactorState]
    errors: List[EvaluatorError] = field(default_factory=list)
    short_circuited: bool = False


# Module-level shared executor for performance
_shared_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()


def _get_shared_executor(max_workers: int = EvaluatorConstants.DEFAULT_MAX_WORKERS) -> ThreadPoolExecutor:
    """Get or create the shared thread pool executor.

    Reuses a module-level executor to avoid thread creation overhead per request.
    """
    global _shared_executor

    with _executor_lock:
        if _shared_executor is None:
            _shared_executor = ThreadPoolExecutor(
                max_workers=max_workers,
                thread_name_prefix=EvaluatorConstants.THREAD_NAME_PREFIX
            )
            logger.info(f"Created shared factor executor with {max_workers} workers")

    return _shared_executor


def _shutdown_shared_executor() -> None:
    """Shutdown the shared executor on process exit."""
    global _shared_executor
    with _executor_lock:
        if _shared_executor is not None:
            _shared_executor.shutdown(wait=True, cancel_futures=True)
            logger.info("Shared factor executor shutdown complete")
            _shared_executor = None


# Registered once; the executor may be rebuilt after shutdown_executor()
atexit.register(_shutdown_shared_executor)


class EvaluatorRouter:
    """Asks every factor evaluator for its current state.

    Execution model:
    - Factors are independent and read-only, so they run in parallel
    - All results are collected before any decision is made
    - With short_circuit on, once a FAIL is collected, evaluations still
      pending are cancelled and recorded as UNKNOWN. Only callers that
      need the decision alone should ask for this; weight queries need
      every factor's real state.

    An evaluator that raises or returns something other than a
    FactorState is reported as unavailable and treated as UNKNOWN.
    Callers own timeouts for individual evaluators.
    """

    def __init__(
        self,
        max_workers: int = EvaluatorConstants.DEFAULT_MAX_WORKERS,
        executor: Optional[ThreadPoolExecutor] = None,
        parallel: bool = True,
    ):
        """Initialize router.

        Args:
            max_workers: Maximum parallel evaluations (if using shared executor)
            executor: Custom executor. Uses shared executor if not provided.
            parallel: Evaluate sequentially in the calling thread when False.
        """
        self.max_workers = max_workers
        self.parallel = parallel
        self._executor = executor

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is not None:
            return self._executor
        return _get_shared_executor(self.max_workers)

    def collect(
        self,
        user_id: UserId,
        factors: Sequence[Factor],
        short_circuit: bool = False,
    ) -> RouterResult:
        """Evaluate all factors for a user.

        Args:
            user_id: User being authenticated
            factors: Bound evaluators to ask
            short_circuit: Stop evaluating once a factor reports FAIL;
                factors not yet evaluated are recorded as UNKNOWN

        Returns:
            RouterResult with one WeightedFactorState per factor
        """
        if not factors:
            return RouterResult(states=[])

        if not self.parallel or len(factors) == 1:
            return self._collect_sequential(user_id, factors, short_circuit)
        return self._collect_parallel(user_id, factors, short_circuit)

    def _collect_sequential(
        self, user_id: UserId, factors: Sequence[Factor], short_circuit: bool
    ) -> RouterResult:
        errors: List[EvaluatorError] = []
        states: List[WeightedFactorState] = []
        failed = False
        skipped = 0

        for factor in factors:
            if failed:
                states.append(self._weighted(factor, FactorState.UNKNOWN))
                skipped += 1
                continue
            try:
                state = self._run_factor(factor, user_id)
            except Exception as e:
                state = self._record_failure(factor, e, errors)
            states.append(self._weighted(factor, state))
            failed = short_circuit and state == FactorState.FAIL

        return RouterResult(states=states, errors=errors, short_circuited=skipped > 0)

    def _collect_parallel(
        self, user_id: UserId, factors: Sequence[Factor], short_circuit: bool
    ) -> RouterResult:
        errors: List[EvaluatorError] = []
        executor = self._get_executor()
        resolved: Dict[int, FactorState] = {}

        futures: Dict[Future, int] = {
            executor.submit(self._run_factor, factor, user_id): index
            for index, factor in enumerate(factors)
        }

        short_circuited = False
        for future in as_completed(futures):
            index = futures[future]
            resolved[index] = self._resolve(future, factors[index], errors)
            if short_circuit and resolved[index] == FactorState.FAIL:
                short_circuited = len(resolved) < len(factors)
                break

        if short_circuited:
            for future, index in futures.items():
                if index in resolved:
                    continue
                if future.done() and not future.cancelled():
                    resolved[index] = self._resolve(future, factors[index], errors)
                else:
                    future.cancel()
                    resolved[index] = FactorState.UNKNOWN
            logger.debug(
                "Factor FAIL collected, remaining evaluations skipped",
                extra={"user_id": str(user_id)}
            )

        states = [self._weighted(factor, resolved[i]) for i, factor in enumerate(factors)]
        return RouterResult(states=states, errors=errors, short_circuited=short_circuited)

    def _resolve(self, future: Future, factor: Factor, errors: List[EvaluatorError]) -> FactorState:
        try:
            return future.result()
        except Exception as e:
            return self._record_failure(factor, e, errors)

    def _record_failure(
        self,
        factor: Factor,
        exc: Exception,
        errors: List[EvaluatorError],
    ) -> FactorState:
        """Log an unavailable evaluator and fall back to UNKNOWN."""
        if not isinstance(exc, EvaluatorUnavailable):
            exc = EvaluatorUnavailable(
                f"Factor {factor.name} could not be evaluated: {type(exc).__name__}: {exc}",
                factor_name=factor.name,
                details={"error_type": type(exc).__name__},
            )
        logger.warning(exc.message, extra={"factor_name": factor.name})
        errors.append(EvaluatorError(
            factor_name=factor.name,
            error_type=exc.details.get("error_type", type(exc).__name__),
            error_message=exc.message,
        ))
        return FactorState.UNKNOWN

    @staticmethod
    def _run_factor(factor: Factor, user_id: UserId) -> FactorState:
        """Run one evaluator and check it produced a FactorState."""
        result = factor.get_state(user_id)
        if isinstance(result, FactorState):
            return result
        try:
            return FactorState(result)
        except ValueError:
            raise EvaluatorUnavailable(
                f"Factor {factor.name} returned an invalid state: {result!r}",
                factor_name=factor.name,
                details={"error_type": "InvalidState"},
            )

    @staticmethod
    def _weighted(factor: Factor, state: FactorState) -> WeightedFactorState:
        return WeightedFactorState(name=factor.name, weight=factor.get_weight(), state=state)


def shutdown_executor() -> None:
    """Explicitly shutdown the shared executor.

    Call this during application shutdown for clean termination.
    """
    _shutdown_shared_executor()
