import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4


class StructuredFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key in ("request_id", "user_id", "http", "error", "course"):
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(f"coursebook.{name}")

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper()))
        logger.propagate = False

    return logger


class RequestLogger:
    def __init__(self, logger_name: str = "api"):
        self.logger = get_logger(logger_name)

    def log_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration_ms: float,
        request_id: Optional[str] = None,
        user_id: Optional[str] = None,
        **extra,
    ):
        self.logger.info(
            f"{method} {path} {status_code}",
            extra={
                "request_id": request_id or str(uuid4()),
                "user_id": user_id,
                "http": {
                    "method": method,
                    "path": path,
                    "status_code": status_code,
                    "duration_ms": round(duration_ms, 2),
                    **extra,
                },
            },
        )

    def log_error(
        self,
        error: Exception,
        context: Dict[str, Any],
        request_id: Optional[str] = None,
    ):
        self.logger.error(
            str(error),
            extra={
                "request_id": request_id or str(uuid4()),
                "error": {
                    "type": type(error).__name__,
                    "message": str(error),
                    "context": context,
                },
            },
            exc_info=True,
        )


api_logger = RequestLogger("api")
