"""Factor rules - parsed representation of factors.yaml."""

from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from mfa_guard.common.exceptions import ConfigurationError
from mfa_guard.core.types import FactorDescriptor, is_valid_factor_name


class FactorRules(BaseModel):
    """Administrator-assigned factor configuration.

    This is the in-memory representation of factors.yaml. Factor
    order in the file is preserved and used for evaluation and reports.
    """

    class Metadata(BaseModel):
        version: str
        description: str = ""

    class FactorSettings(BaseModel):
        weight: int = Field(ge=0, description="Points toward the 100-point threshold")
        enabled: bool = Field(default=True)
        requires_setup: bool = Field(
            default=False,
            description="Whether each user must configure the factor before it counts"
        )

    metadata: Metadata
    factors: Dict[str, FactorSettings] = Field(default_factory=dict)

    @field_validator("factors")
    @classmethod
    def check_factor_names(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        invalid = [name for name in value if not is_valid_factor_name(name)]
        if invalid:
            raise ValueError(f"Invalid factor names: {invalid}")
        return value

    @property
    def version(self) -> str:
        return self.metadata.version

    def descriptors(self, enabled_only: bool = True) -> List[FactorDescriptor]:
        """Build immutable descriptors in configuration order."""
        return [
            FactorDescriptor(
                name=name,
                weight=settings.weight,
                requires_setup=settings.requires_setup,
            )
            for name, settings in self.factors.items()
            if settings.enabled or not enabled_only
        ]


def load_factor_rules(path: Union[str, Path]) -> FactorRules:
    """Load and validate factor rules from a YAML file.

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(
            f"Factor file not found: {path}", details={"path": str(path)}
        )

    try:
        with open(path, "r") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Factor file is not valid YAML: {e}", details={"path": str(path)}
        ) from e

    try:
        return FactorRules.model_validate(raw_config)
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"Factor file failed validation: {e.error_count()} error(s)",
            details={"path": str(path), "errors": e.errors(include_url=False)},
        ) from e
