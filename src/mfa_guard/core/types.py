"""Core types and enums."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Union

from mfa_guard.common.constants import ValidationConstants
from mfa_guard.common.exceptions import ValidationError


UserId = Union[str, int]

_FACTOR_NAME_RE = re.compile(ValidationConstants.FACTOR_NAME_PATTERN)


class FactorState(str, Enum):
    """State reported by a single factor evaluator."""
    PASS = "pass"
    FAIL = "fail"
    NEUTRAL = "neutral"
    UNKNOWN = "unknown"


class OverallState(str, Enum):
    """Aggregated authentication decision for one evaluation."""
    PASS = "pass"
    FAIL = "fail"
    NEUTRAL = "neutral"


def is_valid_factor_name(name: object) -> bool:
    """Check a factor type name against the allowed identifier pattern."""
    return isinstance(name, str) and _FACTOR_NAME_RE.match(name) is not None


def validate_factor_name(name: object) -> str:
    """Return the name unchanged or raise ValidationError."""
    if not is_valid_factor_name(name):
        raise ValidationError(
            f"Invalid factor name: {name!r}",
            details={"factor_name": repr(name)},
        )
    return name  # type: ignore[return-value]


def _validate_weight(name: str, weight: object) -> None:
    if isinstance(weight, bool) or not isinstance(weight, int) or weight < 0:
        raise ValidationError(
            f"Factor '{name}' weight must be a non-negative integer, got {weight!r}",
            details={"factor_name": name, "weight": repr(weight)},
        )


@dataclass(frozen=True)
class FactorDescriptor:
    """Immutable factor metadata loaded from configuration."""
    name: str
    weight: int
    requires_setup: bool = False

    def __post_init__(self):
        validate_factor_name(self.name)
        _validate_weight(self.name, self.weight)


@dataclass(frozen=True)
class ActiveUserFactor:
    """A factor the user has configured and enabled."""
    descriptor: FactorDescriptor
    user_id: UserId

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def weight(self) -> int:
        return self.descriptor.weight


@dataclass(frozen=True)
class WeightedFactorState:
    """One evaluated factor as seen by the aggregation engine."""
    name: str
    weight: int
    state: FactorState

    def __post_init__(self):
        _validate_weight(self.name, self.weight)

    @property
    def achieved_weight(self) -> int:
        """Weight this factor contributes; zero unless it passed."""
        return self.weight if self.state == FactorState.PASS else 0


@dataclass(frozen=True)
class MFASession:
    """Explicit session context passed into every engine call."""
    session_id: str
    user_id: UserId

    def __post_init__(self):
        if not self.session_id:
            raise ValidationError("session_id must not be empty")
