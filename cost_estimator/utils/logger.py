"""
Structured Logger Module

Configures structlog for JSON-formatted structured logging with correlation IDs.
Every estimation run binds one correlation ID so resolver, gateway and
coordinator events can be traced together.

Example Usage:
    from cost_estimator.utils.logger import get_logger

    logger = get_logger(
        correlation_id="a1b2c3d4-e5f6-7890-abcd-ef1234567890",
        phase="tuition",
        component="tuition_resolver",
    )

    logger.info("Resolving tuition", university="MIT")
    logger.warning("Low confidence figure, escalating", confidence=0.55)
    logger.error("Oracle call failed", attempt=2, reason="Timeout after 30s")

Log Levels:
    - DEBUG: Prompts, raw oracle responses, template rendering
    - INFO: Phase progress, resolver results, completed runs
    - WARNING: Fallback data used, rejected oracle answers, low confidence
    - ERROR: Exhausted retries, resolver failures, timeouts
    - CRITICAL: Unrecoverable failures requiring user intervention
"""

import logging
import os
import sys
import uuid
from pathlib import Path
from typing import Optional

import structlog
from structlog.types import BindableLogger, EventDict, WrappedLogger

DEFAULT_LOG_FILE = "logs/cost-estimator.log"


def mask_credentials(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Processor to mask sensitive credentials in log output.

    Args:
        logger: Logger instance
        method_name: Logging method name
        event_dict: Event dictionary to process

    Returns:
        Event dictionary with masked credentials

    Masks:
        - password, api_key, token, secret, credential, auth fields
        - Replaces values with "***MASKED***"
        - Uses word boundary matching to avoid false positives
    """
    sensitive_fields = {"password", "api_key", "token", "secret", "credential", "auth"}

    for key in list(event_dict.keys()):
        key_lower = key.lower()
        for sensitive in sensitive_fields:
            if (
                key_lower == sensitive
                or key_lower.endswith(f"_{sensitive}")
                or key_lower.endswith(f"-{sensitive}")
                or key_lower.startswith(f"{sensitive}_")
                or key_lower.startswith(f"{sensitive}-")
            ):
                event_dict[key] = "***MASKED***"
                break

    return event_dict


def configure_logging(
    log_file: Optional[str] = DEFAULT_LOG_FILE, log_level: str = "INFO"
) -> None:
    """
    Configure structlog with JSON output and optional file logging.

    Args:
        log_file: Path to log file, or None to log to stdout only
        log_level: Logging level (default: "INFO")

    Log Format (JSON):
        {
            "timestamp": "2026-03-06T10:30:45Z",
            "level": "info",
            "correlation_id": "a1b2c3d4-...",
            "phase": "living",
            "component": "accommodation_resolver",
            "event": "Using fallback accommodation table",
            "country": "AU"
        }
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.insert(0, logging.FileHandler(log_file))

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
        handlers=handlers,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            mask_credentials,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(
    correlation_id: Optional[str] = None,
    phase: Optional[str] = None,
    component: Optional[str] = None,
) -> BindableLogger:
    """
    Get structured logger with bound context.

    Args:
        correlation_id: Correlation ID for run tracing (generates UUID if not provided)
        phase: Estimation phase (e.g., "tuition", "living", "other", "report")
        component: Component name (e.g., "oracle_gateway", "tuition_resolver")

    Returns:
        BoundLogger with correlation_id, phase, and component bound to context
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())

    logger = structlog.get_logger()

    if correlation_id:
        logger = logger.bind(correlation_id=correlation_id)
    if phase:
        logger = logger.bind(phase=phase)
    if component:
        logger = logger.bind(component=component)

    return logger


# Initialize logging on module import with default settings
configure_logging(
    log_file=os.getenv("COST_ESTIMATOR_LOG_FILE", DEFAULT_LOG_FILE) or None,
    log_level=os.getenv("COST_ESTIMATOR_LOG_LEVEL", "INFO"),
)
