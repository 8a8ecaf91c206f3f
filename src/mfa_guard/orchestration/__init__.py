"""Orchestration - factor evaluation, aggregation and session decisions.

Components:
- EvaluatorRouter: parallel, independent factor evaluation
- AggregationEngine: fail-fast and pass-threshold rules
- SessionDecisionCache: write-once PASS per session
- MFAManager: the single entry point for callers
"""

from mfa_guard.orchestration.aggregation import AggregationEngine, AggregationResult
from mfa_guard.orchestration.evaluator_router import (
    EvaluatorError,
    EvaluatorRouter,
    RouterResult,
)
from mfa_guard.orchestration.session_cache import (
    InMemorySessionStore,
    SessionDecisionCache,
)
from mfa_guard.orchestration.report import DebugReport, DebugRow
from mfa_guard.orchestration.manager import MFAManager

__all__ = [
    "AggregationEngine",
    "AggregationResult",
    "EvaluatorError",
    "EvaluatorRouter",
    "RouterResult",
    "InMemorySessionStore",
    "SessionDecisionCache",
    "DebugReport",
    "DebugRow",
    "MFAManager",
]
