# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Core - Structured logging with deployment context
# PURPOSE: Consistent, queryable logging across resolver, packager, deployer
# CREATED: 06 OCT 2026
# ============================================================================
"""
Structured Logging

Human-readable output for terminal runs, JSON output for CI pipelines
(set LOG_FORMAT=json).

Every record carries the active deployment context: which service is being
deployed, which function and binding are being processed, and which
deployment phase is running. Context is pushed with log_context() and
is thread-local, so worker threads used for packaging keep their own.

Usage:
    from core.logging import get_logger, log_context

    logger = get_logger("orchestrator.deployment")

    with log_context(service="my-app", function_name="hello"):
        logger.info("Packaging function")
"""

import json
import logging
import os
import sys
import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, Optional, TextIO, Tuple, Union


class ComponentType(str, Enum):
    """Which part of the deployer emitted a record."""
    CLI = "cli"
    ORCHESTRATOR = "orchestrator"
    RESOLVER = "resolver"
    PACKAGER = "packager"
    SERVICE = "service"
    INFRASTRUCTURE = "infrastructure"


# ============================================================================
# DEPLOYMENT CONTEXT
# ============================================================================

@dataclass(frozen=True)
class LogContext:
    """Deployment fields attached to every record logged inside log_context()."""
    service: Optional[str] = None
    function_name: Optional[str] = None
    binding_type: Optional[str] = None
    phase: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


_EMPTY_CONTEXT = LogContext()
_local = threading.local()


def _frames() -> Tuple[LogContext, ...]:
    return getattr(_local, "frames", ())


def get_current_context() -> LogContext:
    """Innermost deployment context of the calling thread."""
    frames = _frames()
    return frames[-1] if frames else _EMPTY_CONTEXT


@contextmanager
def log_context(**fields: Optional[str]) -> Iterator[LogContext]:
    """
    Narrow the deployment context for the duration of a block.

    Fields not given are inherited from the enclosing block; unknown
    field names raise TypeError.

    Example:
        with log_context(function_name="hello", phase="package"):
            logger.info("Writing function.json")
    """
    context = replace(get_current_context(), **fields)
    outer = _frames()
    _local.frames = outer + (context,)
    try:
        yield context
    finally:
        _local.frames = outer


# ============================================================================
# FORMATTERS
# ============================================================================

def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, for CI log collectors."""

    def __init__(self, include_source: bool = True):
        super().__init__()
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": _utc_now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = get_current_context().to_dict()
        if context:
            payload["context"] = context

        data = getattr(record, "extra", None)
        if data:
            payload["data"] = data
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if self.include_source:
            payload["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(payload, default=str)


class HumanFormatter(logging.Formatter):
    """
    Terminal formatter showing function, binding and phase inline:

        2026-10-12 09:14:02 INFO     bindings.resolver [fn=hello, binding=httpTrigger]: ...
    """

    LABELS = (("function_name", "fn"), ("binding_type", "binding"), ("phase", "phase"))

    def format(self, record: logging.LogRecord) -> str:
        context = get_current_context()
        tags = [
            f"{label}={getattr(context, attr)}"
            for attr, label in self.LABELS
            if getattr(context, attr)
        ]
        where = f"{record.name} [{', '.join(tags)}]" if tags else record.name

        line = (
            f"{_utc_now():%Y-%m-%d %H:%M:%S} {record.levelname:<8} "
            f"{where}: {record.getMessage()}"
        )
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


# ============================================================================
# LOGGERS
# ============================================================================

class ContextLogger(logging.LoggerAdapter):
    """Copies the component and the deployment context onto record.extra."""

    def process(self, msg, kwargs):
        data = dict(kwargs.get("extra") or {})
        component = self.extra.get("component")
        if component is not None:
            data["component"] = component.value
        data.update(get_current_context().to_dict())
        kwargs["extra"] = {"extra": data}
        return msg, kwargs


def get_logger(name: str, component: Optional[ComponentType] = None) -> ContextLogger:
    """Context-aware logger for a module, optionally tagged with its component."""
    return ContextLogger(logging.getLogger(name), {"component": component})


def configure_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = False,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Install a single handler on the root logger.

    Args:
        level: Log level name or number
        json_output: Emit JSON lines (also enabled by LOG_FORMAT=json)
        stream: Destination (default stdout)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    as_json = json_output or os.getenv("LOG_FORMAT", "").lower() == "json"
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(StructuredFormatter() if as_json else HumanFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # The Azure SDK and httpx log every request at INFO
    for noisy in ("azure", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def log_checkpoint(
    name: str,
    data: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Record a named deployment milestone (e.g. "functions_uploaded").

    The service and function in scope are copied into the record so
    milestones can be filtered per deployment.
    """
    context = get_current_context()
    milestone: Dict[str, Any] = {"checkpoint": name, "timestamp": _utc_now().isoformat()}
    milestone.update(
        (key, value)
        for key, value in (("service", context.service), ("function_name", context.function_name))
        if value
    )
    if data:
        milestone["data"] = data

    (logger or logging.getLogger("checkpoint")).info(
        f"CHECKPOINT: {name}", extra={"extra": milestone}
    )


__all__ = [
    "ComponentType",
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
    "log_checkpoint",
]
