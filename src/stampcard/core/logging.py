from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict, Literal

from loguru import logger
from opentelemetry import trace

# Attributes every stdlib LogRecord carries; anything else arrived through ``extra=``.
_STDLIB_RECORD_FIELDS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_QUIET_LIBRARIES = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite")

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level> | {extra}"
)


class InterceptHandler(logging.Handler):
    """Route stdlib logging (httpx, sqlalchemy, aiosqlite) through Loguru."""

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - bridging glue
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        context = {key: value for key, value in vars(record).items() if key not in _STDLIB_RECORD_FIELDS}
        # Loguru formats messages with bound kwargs, so literal braces must be escaped.
        message = record.getMessage().replace("{", "{{").replace("}", "}}")
        logger.bind(stdlib_logger=record.name, **context).opt(
            depth=6, exception=record.exc_info
        ).log(level, message)


def _trace_context() -> Dict[str, str]:
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return {}
    return {
        "trace_id": f"{span_context.trace_id:032x}",
        "span_id": f"{span_context.span_id:016x}",
    }


def _json_sink(service: Dict[str, str]):
    def sink(message: "logger.Message") -> None:
        record = message.record
        payload: Dict[str, Any] = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name.lower(),
            "message": record["message"],
            "logger": record["name"],
            **service,
            **_trace_context(),
            **record["extra"],
        }
        if record["exception"] is not None:
            payload["exception"] = repr(record["exception"].value)
        sys.stderr.write(json.dumps(payload, default=str) + "\n")

    return sink


def configure_logging(
    *,
    service_name: str,
    environment: str,
    version: str,
    level: str = "INFO",
    log_format: Literal["json", "console"] = "json",
) -> None:
    """Install the stampcard Loguru sink and bridge stdlib loggers into it.

    Logs always go to stderr; stdout is reserved for CLI output. The JSON sink
    stamps every line with service metadata and, inside an active span, the
    OpenTelemetry trace and span ids.
    """

    logger.remove()
    if log_format == "console":
        logger.add(sys.stderr, level=level.upper(), format=_CONSOLE_FORMAT, backtrace=False, diagnose=False)
    else:
        service = {"service": service_name, "environment": environment, "version": version}
        logger.add(_json_sink(service), level=level.upper(), backtrace=False, diagnose=False)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
