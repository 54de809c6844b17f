"""
Structured logging for billsync.

Every module logs through logging.getLogger(__name__); those loggers sit under
the "billsync" logger configured here. LOG_LEVEL sets the level and
USE_JSON_LOGS=true switches the console output to one JSON object per line,
which is what the job runner ships to the log collector.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

PACKAGE_LOGGER = "billsync"

logger = logging.getLogger(PACKAGE_LOGGER)


class JSONFormatter(logging.Formatter):
    """One JSON object per record; structured fields ride on record.extra_fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.pathname:
            entry["where"] = f"{record.module}:{record.lineno}"
        entry.update(getattr(record, "extra_fields", {}))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> logging.Logger:
    """(Re)attach the console handler of the billsync logger."""
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if json_logs is None:
        json_logs = os.getenv("USE_JSON_LOGS", "false").lower() == "true"

    handler = logging.StreamHandler(sys.stdout)
    if json_logs:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        )

    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level, logging.INFO))
    logger.propagate = False
    return logger


configure_logging()


def _emit(level: int, message: str, **fields: Any) -> None:
    record = logger.makeRecord(logger.name, level, "", 0, message, (), None)
    record.extra_fields = fields
    logger.handle(record)


def log_request(method: str, path: str, status_code: int, duration_ms: float, client_id: Optional[str] = None):
    """Log one handled HTTP request to the trigger API."""
    fields: Dict[str, Any] = {
        "type": "http_request",
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": round(duration_ms, 1),
    }
    if client_id:
        fields["client_id"] = client_id
    _emit(logging.INFO, f"{method} {path} {status_code}", **fields)


def log_job_run(job: str, duration_ms: float, **counts: Any):
    """Log the summary of a finished sync or creation run."""
    summary = " ".join(f"{key}={value}" for key, value in counts.items())
    _emit(
        logging.INFO,
        f"{job} finished in {duration_ms:.0f}ms {summary}".rstrip(),
        type="job_run",
        job=job,
        duration_ms=round(duration_ms, 1),
        **counts,
    )


def log_error(error_type: str, message: str, context: Optional[Dict[str, Any]] = None):
    """Log a failure with its structured context (an ErrorCode value as error_type)."""
    _emit(logging.ERROR, message, type="error", error_type=error_type, **(context or {}))
