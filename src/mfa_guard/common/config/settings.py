"""Configuration management - Centralized configuration for MFA Guard.

Provides environment-aware configuration with sensible defaults.
All configuration is loaded from environment variables with fallbacks.
"""

import os
import warnings
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from mfa_guard.common.constants import DenialConstants, EvaluatorConstants


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def _get_project_root() -> Path:
    """Get the project root directory."""
    # settings.py -> config -> common -> mfa_guard -> src -> project_root
    current = Path(__file__).resolve()
    return current.parent.parent.parent.parent.parent


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Config:
    """Central configuration object for MFA Guard.

    All settings can be overridden via environment variables prefixed with MFA_.

    Example:
        MFA_ENVIRONMENT=production
        MFA_LOG_LEVEL=INFO
        MFA_DEBUG_MODE=false
    """

    # Core settings
    environment: Environment = field(
        default_factory=lambda: Environment(
            os.getenv("MFA_ENVIRONMENT", "development")
        )
    )
    debug: bool = field(default_factory=lambda: _env_flag("MFA_DEBUG"))
    log_level: LogLevel = field(
        default_factory=lambda: LogLevel(os.getenv("MFA_LOG_LEVEL", "INFO"))
    )

    # Per-factor breakdown for administrators
    debug_mode: bool = field(default_factory=lambda: _env_flag("MFA_DEBUG_MODE"))

    # Paths
    project_root: Path = field(default_factory=_get_project_root)
    factor_file: Path = field(
        default_factory=lambda: Path(
            os.getenv("MFA_FACTOR_FILE", "./config/factors.yaml")
        )
    )

    # Audit settings
    audit_log_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv("MFA_AUDIT_LOG_DIR", "./logs/audit")
        )
    )
    audit_enable_hash_chain: bool = field(
        default_factory=lambda: _env_flag("MFA_AUDIT_ENABLE_HASH_CHAIN", "true")
    )

    # Evaluator settings
    evaluator_parallel: bool = field(
        default_factory=lambda: _env_flag("MFA_EVALUATOR_PARALLEL", "true")
    )
    evaluator_max_workers: int = field(
        default_factory=lambda: int(
            os.getenv(
                "MFA_EVALUATOR_MAX_WORKERS",
                str(EvaluatorConstants.DEFAULT_MAX_WORKERS),
            )
        )
    )

    # Session decision settings
    revalidate_cached_pass: bool = field(
        default_factory=lambda: _env_flag("MFA_REVALIDATE_CACHED_PASS")
    )
    deny_redirect_url: str = field(
        default_factory=lambda: os.getenv(
            "MFA_DENY_REDIRECT_URL", DenialConstants.DEFAULT_REDIRECT_URL
        )
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.evaluator_max_workers < 1:
            raise ValueError("MFA_EVALUATOR_MAX_WORKERS must be at least 1")

        if not self.deny_redirect_url:
            raise ValueError("MFA_DENY_REDIRECT_URL must not be empty")

        # Debug tables expose per-factor state
        if self.environment == Environment.PRODUCTION and self.debug_mode:
            warnings.warn(
                "MFA debug mode is enabled in production environment",
                RuntimeWarning,
                stacklevel=2
            )

    @property
    def config_dir(self) -> Path:
        """Get the config directory path."""
        return self.project_root / "config"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT


# Singleton instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance.

    Returns:
        Config: The global configuration singleton.
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
