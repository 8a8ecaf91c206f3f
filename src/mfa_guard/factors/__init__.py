"""Factors - configuration and registry of enabled factor evaluators."""

from mfa_guard.factors.schema import FactorRules, load_factor_rules
from mfa_guard.factors.registry import (
    ActiveFactorStore,
    FactorRegistry,
    InMemoryActiveFactorStore,
)

__all__ = [
    "FactorRules",
    "load_factor_rules",
    "ActiveFactorStore",
    "FactorRegistry",
    "InMemoryActiveFactorStore",
]
