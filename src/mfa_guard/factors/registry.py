"""Factor Registry - typed table of enabled factors, resolved once at startup."""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Set

from mfa_guard.common.exceptions import ConfigurationError
from mfa_guard.core.base import Factor, FactorFactory
from mfa_guard.core.types import ActiveUserFactor, FactorDescriptor, UserId
from mfa_guard.factors.schema import FactorRules


logger = logging.getLogger(__name__)


class ActiveFactorStore(Protocol):
    """Lookup of the factors each user has set up."""

    def get_user_factor_names(self, user_id: UserId) -> Iterable[str]:
        ...


class InMemoryActiveFactorStore:
    """Active-factor store kept in process memory."""

    def __init__(self):
        self._factors: Dict[str, Set[str]] = {}

    def enable(self, user_id: UserId, factor_name: str) -> None:
        self._factors.setdefault(str(user_id), set()).add(factor_name)

    def remove(self, user_id: UserId, factor_name: str) -> None:
        self._factors.get(str(user_id), set()).discard(factor_name)

    def get_user_factor_names(self, user_id: UserId) -> Iterable[str]:
        return frozenset(self._factors.get(str(user_id), ()))


class FactorRegistry:
    """Maps enabled factor descriptors to their evaluators.

    Every enabled factor is bound to exactly one evaluator when the
    registry is built. Lookups never dispatch on strings afterwards.
    """

    def __init__(
        self,
        rules: FactorRules,
        factories: Mapping[str, FactorFactory],
        active_store: Optional[ActiveFactorStore] = None,
    ):
        """Initialize the registry.

        Args:
            rules: Parsed factor configuration
            factories: Factor name -> factory building the bound evaluator
            active_store: Per-user setup lookup. Without one, factors
                requiring setup are never active.

        Raises:
            ConfigurationError: If an enabled factor has no factory
        """
        self.rules = rules
        self.active_store = active_store
        self._descriptors: List[FactorDescriptor] = rules.descriptors()
        self._evaluators: Dict[str, Factor] = {}

        missing = [d.name for d in self._descriptors if d.name not in factories]
        if missing:
            raise ConfigurationError(
                f"No evaluator registered for enabled factors: {missing}",
                details={"missing": missing},
            )

        for descriptor in self._descriptors:
            self._evaluators[descriptor.name] = factories[descriptor.name](descriptor)

        unused = sorted(set(factories) - set(self._evaluators))
        if unused:
            logger.debug(f"Ignoring evaluators for disabled or unknown factors: {unused}")

        logger.info(
            "Factor registry ready",
            extra={
                "factors": [d.name for d in self._descriptors],
                "rules_version": rules.version,
            }
        )

    def get_enabled_factors(self) -> List[FactorDescriptor]:
        """Get descriptors of all enabled factors in configuration order."""
        return list(self._descriptors)

    def get_evaluator(self, name: str) -> Factor:
        """Get the evaluator bound to an enabled factor.

        Raises:
            KeyError: If the factor is not enabled
        """
        return self._evaluators[name]

    def get_evaluators(self) -> List[Factor]:
        return [self._evaluators[d.name] for d in self._descriptors]

    def get_active_user_factors(self, user_id: UserId) -> List[ActiveUserFactor]:
        """Get the factors that count for this user.

        A factor without setup is active for every user while enabled.
        A factor requiring setup is active only once the user set it up.
        """
        configured = self._user_factor_names(user_id)
        return [
            ActiveUserFactor(descriptor=d, user_id=user_id)
            for d in self._descriptors
            if not d.requires_setup or d.name in configured
        ]

    def has_user_setup(self, name: str, user_id: UserId) -> Optional[bool]:
        """Whether the user set up a factor; None if it needs no setup."""
        descriptor = self.get_evaluator(name).descriptor
        if not descriptor.requires_setup:
            return None
        return name in self._user_factor_names(user_id)

    def _user_factor_names(self, user_id: UserId) -> Set[str]:
        if self.active_store is None:
            return set()
        return set(self.active_store.get_user_factor_names(user_id))
