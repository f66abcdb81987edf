"""Production configuration guard: enforces hard constraints in production.

Runs once when the registry is wired.  Every violation is collected and
reported together; any violation raises ``ProductionConfigError``.
"""

from __future__ import annotations

import logging

from pantry.config import RegistryConfig

logger = logging.getLogger(__name__)

# Widest clock skew accepted for signed requests in production.
MAX_PRODUCTION_SKEW_SECONDS = 3600


class ProductionConfigError(RuntimeError):
    """Raised when production configuration constraints are violated.

    The registry cannot safely start in production mode with the current
    configuration.  The process should exit.
    """


def enforce_production_constraints(config: RegistryConfig) -> None:
    """Validate all production-critical configuration constraints.

    No-op unless ``config.is_production`` is True.

    Constraints enforced
    --------------------
    1. Debug mode must be disabled.
    2. ``base_url`` must be https.
    3. Clock skew must not exceed one hour.
    4. Parse and commit timeouts must be positive.

    Raises
    ------
    ProductionConfigError
        If any production constraint is violated.
    """
    if not config.is_production:
        return

    violations: list[str] = []

    if config.debug:
        violations.append(
            "debug=True is not allowed in production. Set PANTRY_DEBUG=false."
        )

    if not config.base_url.startswith("https://"):
        violations.append(
            f"base_url must use https in production (got {config.base_url!r}). "
            "Set PANTRY_BASE_URL."
        )

    if config.clock_skew_seconds > MAX_PRODUCTION_SKEW_SECONDS:
        violations.append(
            f"clock_skew_seconds={config.clock_skew_seconds} exceeds "
            f"{MAX_PRODUCTION_SKEW_SECONDS}. Set PANTRY_CLOCK_SKEW_SECONDS."
        )

    for field_name in ("parse_timeout_seconds", "commit_timeout_seconds"):
        if getattr(config, field_name) <= 0:
            violations.append(
                f"{field_name} must be positive in production. "
                f"Set PANTRY_{field_name.upper()}."
            )

    if violations:
        msg = (
            "Production configuration guard failed.\n"
            + "\n".join(f"  - {v}" for v in violations)
        )
        logger.critical(msg)
        raise ProductionConfigError(msg)

    logger.info("Production configuration guard passed.")
