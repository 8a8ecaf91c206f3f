"""MFA Manager - the single entry point for MFA decisions.

Wires the factor registry, evaluator router, aggregation engine and
session cache together, and exposes ownership checks and denial.
Every call takes its user or session explicitly; the manager keeps
no per-request state.
"""

import logging
from typing import Dict, Mapping, NoReturn, Optional, Sequence

from mfa_guard.common.config import Config, get_config
from mfa_guard.common.exceptions import ConfigurationError
from mfa_guard.core.base import AuditSink, FactorFactory, SessionStore
from mfa_guard.core.types import (
    FactorState,
    MFASession,
    OverallState,
    UserId,
    WeightedFactorState,
)
from mfa_guard.factors.registry import ActiveFactorStore, FactorRegistry
from mfa_guard.factors.schema import load_factor_rules
from mfa_guard.governance.audit.logger import AuditLogger
from mfa_guard.governance.denial import AuthBackend, DenialHandler
from mfa_guard.governance.ownership import (
    FactorInstanceId,
    InMemoryOwnershipStore,
    OwnershipStore,
    OwnershipValidator,
)
from mfa_guard.orchestration.aggregation import AggregationEngine, AggregationResult
from mfa_guard.orchestration.evaluator_router import EvaluatorRouter
from mfa_guard.orchestration.report import DebugReport, DebugRow
from mfa_guard.orchestration.session_cache import InMemorySessionStore, SessionDecisionCache


logger = logging.getLogger(__name__)


class MFAManager:
    """Derives the overall authentication decision for users and sessions."""

    def __init__(
        self,
        registry: FactorRegistry,
        session_cache: SessionDecisionCache,
        ownership_validator: OwnershipValidator,
        denial_handler: DenialHandler,
        router: Optional[EvaluatorRouter] = None,
        engine: Optional[AggregationEngine] = None,
        debug_mode: bool = False,
    ):
        self.registry = registry
        self.session_cache = session_cache
        self.ownership_validator = ownership_validator
        self.denial_handler = denial_handler
        self.router = router or EvaluatorRouter()
        self.engine = engine or AggregationEngine()
        self.debug_mode = debug_mode

    @classmethod
    def from_config(
        cls,
        factories: Mapping[str, FactorFactory],
        active_store: Optional[ActiveFactorStore] = None,
        ownership_store: Optional[OwnershipStore] = None,
        session_store: Optional[SessionStore] = None,
        backends: Sequence[AuthBackend] = (),
        audit_sink: Optional[AuditSink] = None,
        config: Optional[Config] = None,
    ) -> "MFAManager":
        """Build a manager from configuration.

        Args:
            factories: Factor name -> factory for each enabled factor
            active_store: Per-user factor setup lookup
            ownership_store: Factor-instance ownership lookup
            session_store: Session flag storage. In-memory if not provided.
            backends: Auth backends whose logout hooks run on denial
            audit_sink: Audit event receiver. File audit log if not provided.
            config: Configuration. Global config if not provided.
        """
        config = config or get_config()
        rules = load_factor_rules(config.factor_file)
        session_store = session_store or InMemorySessionStore()

        if audit_sink is None:
            audit_sink = AuditLogger(
                log_dir=str(config.audit_log_dir),
                enable_hash_chain=config.audit_enable_hash_chain,
            )

        return cls(
            registry=FactorRegistry(rules, factories, active_store),
            session_cache=SessionDecisionCache(
                store=session_store,
                audit_sink=audit_sink,
                revalidate_cached_pass=config.revalidate_cached_pass,
            ),
            ownership_validator=OwnershipValidator(ownership_store or InMemoryOwnershipStore()),
            denial_handler=DenialHandler(
                session_store=session_store,
                backends=backends,
                audit_sink=audit_sink,
                redirect_url=config.deny_redirect_url,
            ),
            router=EvaluatorRouter(
                max_workers=config.evaluator_max_workers,
                parallel=config.evaluator_parallel,
            ),
            debug_mode=config.debug_mode,
        )

    # =========================================================================
    # Evaluation
    # =========================================================================

    def evaluate_detailed(self, user_id: UserId, short_circuit: bool = False) -> AggregationResult:
        """Evaluate all active factors of a user and aggregate them.

        Args:
            user_id: User being authenticated
            short_circuit: Skip the remaining factors once one FAILs. The
                state is unaffected; the weight and per-factor states of
                the result then cover only what was evaluated.
        """
        states = self._collect_active_states(user_id, short_circuit=short_circuit)
        result = self.engine.evaluate(states)
        logger.debug(
            "Factors aggregated",
            extra={
                "user_id": str(user_id),
                "state": result.state.value,
                "total_weight": result.total_weight,
            }
        )
        return result

    def evaluate(self, user_id: UserId) -> OverallState:
        return self._decide(user_id).state

    def get_total_weight(self, user_id: UserId) -> int:
        """Weight achieved by the user's currently passing factors."""
        return self.engine.total_weight(self._collect_active_states(user_id))

    def passed_enough_factors(self, user_id: UserId) -> bool:
        return self.engine.passed_enough_factors(self._collect_active_states(user_id))

    def check_status(self, session: MFASession) -> OverallState:
        """Overall state for a session, cached once it reaches PASS."""
        return self.session_cache.check_status(session, self._decide)

    def _decide(self, user_id: UserId) -> AggregationResult:
        return self.evaluate_detailed(user_id, short_circuit=True)

    def _collect_active_states(
        self, user_id: UserId, short_circuit: bool = False
    ) -> Sequence[WeightedFactorState]:
        active = self.registry.get_active_user_factors(user_id)
        evaluators = [self.registry.get_evaluator(f.name) for f in active]
        return self.router.collect(user_id, evaluators, short_circuit=short_circuit).states

    # =========================================================================
    # Ownership and denial
    # =========================================================================

    def is_factor_owned_by_user(
        self,
        factor_type_name: str,
        factor_instance_id: FactorInstanceId,
        user_id: UserId,
    ) -> bool:
        return self.ownership_validator.is_owned_by(
            factor_type_name, factor_instance_id, user_id
        )

    def deny(self, session: MFASession) -> NoReturn:
        """Log the user out; always raises InsufficientFactorsError."""
        self.denial_handler.deny(session)

    # =========================================================================
    # Debug report
    # =========================================================================

    def debug_report(self, user_id: UserId) -> DebugReport:
        """Per-factor breakdown of every enabled factor for a user.

        Raises:
            ConfigurationError: If debug mode is off
        """
        if not self.debug_mode:
            raise ConfigurationError("MFA debug mode is disabled")

        evaluators = self.registry.get_evaluators()
        collected = self.router.collect(user_id, evaluators).states
        states: Dict[str, WeightedFactorState] = {s.name: s for s in collected}

        rows = []
        for factor in evaluators:
            setup = self.registry.has_user_setup(factor.name, user_id)
            rows.append(DebugRow(
                factor=factor.name,
                weight=factor.get_weight(),
                setup="n/a" if setup is None else ("yes" if setup else "no"),
                achieved_weight=states[factor.name].achieved_weight,
                state=states[factor.name].state,
            ))

        active = {f.name for f in self.registry.get_active_user_factors(user_id)}
        active_states = [s for s in collected if s.name in active]
        total_weight = self.engine.total_weight(active_states)

        return DebugReport(
            user_id=str(user_id),
            rows=rows,
            total_weight=total_weight,
            overall_state=(
                FactorState.PASS
                if total_weight >= self.engine.PASS_THRESHOLD
                else FactorState.UNKNOWN
            ),
        )
