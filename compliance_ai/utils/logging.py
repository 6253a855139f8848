"""Logging utilities for the orchestration layer."""

import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from loguru import logger

from ..config.settings import Settings, get_settings


class InterceptHandler(logging.Handler):
    """Route standard library log records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure logging for the application."""
    settings = settings or get_settings()
    log_level = settings.log_level.value

    # Remove default handler
    logger.remove()

    log_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )

    logger.add(
        sys.stderr,
        format=log_format,
        level=log_level,
        colorize=not settings.json_logs,
        serialize=settings.json_logs,
        backtrace=True,
        diagnose=False,
    )

    # Structured file log
    if settings.log_file:
        logger.add(
            settings.log_file,
            level=log_level,
            rotation="1 day",
            retention="30 days",
            compression="gz",
            serialize=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)


def log_operation(
    operation: str,
    status: str,
    duration: Optional[float] = None,
    metadata: Optional[Dict[str, Any]] = None,
    error: Optional[str] = None
) -> None:
    """Log an operation with structured metadata."""
    log_data = {
        "operation": operation,
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if duration is not None:
        log_data["duration_seconds"] = duration

    if metadata:
        log_data["metadata"] = metadata

    if error:
        log_data["error"] = error

    bound = logger.bind(**log_data)
    if status == "success":
        bound.info(f"Operation completed: {operation}")
    elif status == "error":
        bound.error(f"Operation failed: {operation}")
    else:
        bound.info(f"Operation {status}: {operation}")


def log_guardrail_check(
    request_id: str,
    action: str,
    severity: str,
    prompt_risk_score: float,
    response_risk_score: float,
    duration: Optional[float] = None
) -> None:
    """Log a completed guardrail check. Never includes prompt or response text."""
    log_operation(
        operation="guardrail_check",
        status="success",
        duration=duration,
        metadata={
            "request_id": request_id,
            "action": action,
            "severity": severity,
            "prompt_risk_score": prompt_risk_score,
            "response_risk_score": response_risk_score,
        },
    )


def log_provider_call(
    provider: str,
    request_id: str,
    duration: Optional[float] = None,
    fallback: bool = False,
    error: Optional[str] = None
) -> None:
    """Log a provider call."""
    log_operation(
        operation="provider_call",
        status="error" if error else "success",
        duration=duration,
        metadata={"provider": provider, "request_id": request_id, "fallback": fallback},
        error=error,
    )


class OperationLogger:
    """
    Context manager timing one orchestration operation.

    Metadata added through ``update_metadata`` while the block runs is
    included in the final record; exceptions are logged and re-raised.
    """

    def __init__(self, operation: str, metadata: Optional[Dict[str, Any]] = None):
        self.operation = operation
        self.metadata = dict(metadata or {})
        self._started: Optional[float] = None

    def __enter__(self) -> 'OperationLogger':
        self._started = time.perf_counter()
        logger.bind(**self.metadata).debug(f"Starting operation: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        log_operation(
            operation=self.operation,
            status="success" if exc_type is None else "error",
            duration=time.perf_counter() - self._started,
            metadata=self.metadata,
            error=None if exc_type is None else str(exc_val),
        )
        return False

    def update_metadata(self, **kwargs):
        self.metadata.update(kwargs)
