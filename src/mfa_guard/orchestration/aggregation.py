"""Aggregation Engine - combines factor states into one decision.

Rules, applied in order:
1. Any FAIL -> FAIL. A failed factor cannot be outweighed.
2. Total weight of PASS factors >= 100 -> PASS.
3. Otherwise NEUTRAL: not a denial, keep collecting factors.

The engine is stateless; every call sees only the states it is given.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from mfa_guard.common.constants import AggregationConstants
from mfa_guard.core.types import FactorState, OverallState, WeightedFactorState


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregationResult:
    """Outcome of one aggregation."""
    state: OverallState
    total_weight: int
    factors: Tuple[WeightedFactorState, ...]
    failed_factors: Tuple[str, ...] = ()

    @property
    def passed_factors(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.factors if f.state == FactorState.PASS)


class AggregationEngine:
    """Applies the fail-fast and pass-threshold rules."""

    PASS_THRESHOLD = AggregationConstants.PASS_THRESHOLD

    def evaluate(self, factors: Iterable[WeightedFactorState]) -> AggregationResult:
        """Derive the overall state from evaluated factors.

        Args:
            factors: One entry per active factor instance. Repeated
                entries for the same factor are counted once.

        Returns:
            AggregationResult with the overall state and achieved weight
        """
        unique = self._deduplicate(factors)
        failed = tuple(f.name for f in unique if f.state == FactorState.FAIL)
        total_weight = self.total_weight(unique)

        if failed:
            state = OverallState.FAIL
        elif total_weight >= self.PASS_THRESHOLD:
            state = OverallState.PASS
        else:
            state = OverallState.NEUTRAL

        return AggregationResult(
            state=state,
            total_weight=total_weight,
            factors=tuple(unique),
            failed_factors=failed,
        )

    def total_weight(self, factors: Iterable[WeightedFactorState]) -> int:
        """Sum the weight of passing factors only."""
        return sum(f.achieved_weight for f in self._deduplicate(factors))

    def passed_enough_factors(self, factors: Iterable[WeightedFactorState]) -> bool:
        return self.total_weight(factors) >= self.PASS_THRESHOLD

    @staticmethod
    def _deduplicate(factors: Iterable[WeightedFactorState]) -> List[WeightedFactorState]:
        """Keep one entry per factor name, in first-seen order.

        A FAIL in any repeated entry wins over the first-seen state.
        """
        seen: Dict[str, WeightedFactorState] = {}
        for factor in factors:
            existing = seen.get(factor.name)
            if existing is None:
                seen[factor.name] = factor
                continue
            logger.debug(f"Ignoring repeated entry for factor {factor.name}")
            if factor.state == FactorState.FAIL and existing.state != FactorState.FAIL:
                seen[factor.name] = WeightedFactorState(
                    name=existing.name,
                    weight=existing.weight,
                    state=FactorState.FAIL,
                )
        return list(seen.values())
