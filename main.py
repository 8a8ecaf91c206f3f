#!/usr/bin/env python3
"""Main entry point for MFA Guard."""

from mfa_guard.common.logging import get_logger
from mfa_guard.common.config import Config
from mfa_guard.factors import load_factor_rules

logger = get_logger(__name__)


def main():
    """Main entry point."""
    config = Config()
    rules = load_factor_rules(config.factor_file)
    logger.info(f"MFA Guard initialized in {config.environment.value} mode")
    logger.info(f"Factor rules {rules.version} from {config.factor_file}")
    for descriptor in rules.descriptors():
        logger.info(
            f"  {descriptor.name}: weight={descriptor.weight} "
            f"requires_setup={descriptor.requires_setup}"
        )


if __name__ == "__main__":
    main()
