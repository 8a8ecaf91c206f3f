"""Ownership Validator - factor-instance ids must belong to the caller.

Prevents a client from presenting another user's factor record
(cross-user confusion or replay). Every doubt resolves to False.
"""

import logging
import re
from typing import Dict, Optional, Protocol, Tuple, Union

from mfa_guard.common.constants import ValidationConstants
from mfa_guard.common.exceptions import ValidationError
from mfa_guard.core.types import UserId, validate_factor_name


logger = logging.getLogger(__name__)

FactorInstanceId = Union[str, int]

_FACTOR_ID_RE = re.compile(ValidationConstants.FACTOR_ID_PATTERN)


class OwnershipStore(Protocol):
    """Lookup of factor-instance records, namespaced by factor type."""

    def find_owner(
        self, factor_type_name: str, factor_instance_id: FactorInstanceId
    ) -> Optional[UserId]:
        ...


class InMemoryOwnershipStore:
    """Ownership store kept in process memory."""

    def __init__(self):
        self._owners: Dict[Tuple[str, str], UserId] = {}

    def register(
        self, factor_type_name: str, factor_instance_id: FactorInstanceId, user_id: UserId
    ) -> None:
        self._owners[(factor_type_name, str(factor_instance_id))] = user_id

    def remove(self, factor_type_name: str, factor_instance_id: FactorInstanceId) -> None:
        self._owners.pop((factor_type_name, str(factor_instance_id)), None)

    def find_owner(
        self, factor_type_name: str, factor_instance_id: FactorInstanceId
    ) -> Optional[UserId]:
        return self._owners.get((factor_type_name, str(factor_instance_id)))


def validate_factor_instance_id(factor_instance_id: object) -> FactorInstanceId:
    """Return the id unchanged or raise ValidationError."""
    if isinstance(factor_instance_id, bool):
        valid = False
    elif isinstance(factor_instance_id, int):
        valid = factor_instance_id >= 0
    elif isinstance(factor_instance_id, str):
        valid = _FACTOR_ID_RE.match(factor_instance_id) is not None
    else:
        valid = False

    if not valid:
        raise ValidationError(
            f"Invalid factor instance id: {factor_instance_id!r}",
            details={"factor_instance_id": repr(factor_instance_id)},
        )
    return factor_instance_id  # type: ignore[return-value]


class OwnershipValidator:
    """Checks factor-instance ownership against the ownership store."""

    def __init__(self, store: OwnershipStore):
        self.store = store

    def is_owned_by(
        self,
        factor_type_name: str,
        factor_instance_id: FactorInstanceId,
        user_id: UserId,
    ) -> bool:
        """Check that a factor-instance record belongs to a user.

        Args:
            factor_type_name: Factor type namespace, e.g. "totp"
            factor_instance_id: Record id presented by the client
            user_id: Authenticated user

        Returns:
            True only if the record exists and is owned by exactly this user

        Raises:
            ValidationError: If the factor type or instance id is malformed
        """
        validate_factor_name(factor_type_name)
        validate_factor_instance_id(factor_instance_id)

        if user_id is None or user_id == "":
            return False

        try:
            owner = self.store.find_owner(factor_type_name, factor_instance_id)
        except Exception as e:
            logger.warning(
                f"Ownership lookup failed, denying: {type(e).__name__}: {e}",
                extra={"factor_type": factor_type_name}
            )
            return False

        if owner is None or owner == "" or owner == 0:
            return False

        if str(owner) != str(user_id):
            logger.warning(
                "Factor instance presented by a user who does not own it",
                extra={"factor_type": factor_type_name, "user_id": str(user_id)}
            )
            return False

        return True
