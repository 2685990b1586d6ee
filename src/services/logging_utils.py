"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across production, sales and import
operations.

Usage:
    from src.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="produce",
        outcome="success",
        production_log_id=123,
        product_id=45,
    )

    log_operation(
        logger,
        operation="sell",
        outcome="insufficient_stock",
        level=logging.WARNING,
        product_id=45,
        requested=15,
        available=10,
    )
"""

import logging
from typing import Any, Optional

LOGGER_PREFIX = "pack_tracker.services"


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger named 'pack_tracker.services.<module>'.

    Example:
        >>> logger = get_service_logger("src.services.production_service")
        >>> logger.name
        'pack_tracker.services.production_service'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"{LOGGER_PREFIX}.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The context is passed via the 'extra' parameter so handlers can emit it
    as structured fields.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "produce", "import_material")
        outcome: Outcome description (e.g., "success", "insufficient_stock")
        level: Log level (default: INFO)
        **context: Additional context fields (entity IDs, quantities, errors)
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)


def configure_logging(level: int = logging.INFO, fmt: Optional[str] = None) -> None:
    """Attach a basic stream handler for command-line use."""
    logging.basicConfig(
        level=level,
        format=fmt or "%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
