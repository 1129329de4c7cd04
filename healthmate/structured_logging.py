"""
Structured JSON logging for HealthMate.
Provides request tracing plus completion, advice and chat event logging.
"""

import os
import json
import logging
import uuid
from contextvars import ContextVar, Token
from typing import Dict, Any, Optional
from datetime import datetime, timezone
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with request context."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        # per request: each asyncio task sees its own copy
        self._context: ContextVar[Dict[str, Any]] = ContextVar(f"{name}_request_context", default={})

    @property
    def request_context(self) -> Dict[str, Any]:
        return self._context.get()

    def set_request_context(self, request_id: str, endpoint: Optional[str] = None,
                            method: Optional[str] = None) -> Token:
        """Set request context for tracing.

        Args:
            request_id: Unique request identifier
            endpoint: API endpoint being called
            method: HTTP method
        """
        return self._context.set({
            "request_id": request_id,
            "endpoint": endpoint,
            "method": method,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    def clear_context(self, token: Optional[Token] = None):
        """Clear request context, restoring the value from before `token` if given."""
        if token is not None:
            self._context.reset(token)
        else:
            self._context.set({})

    def log(self, level: str, message: str, **kwargs):
        """Log message with structured context.

        Args:
            level: Log level ('debug', 'info', 'warning', 'error', 'critical')
            message: Log message
            **kwargs: Additional fields to include in JSON
        """
        log_data = {
            "message": message,
            **self.request_context,
            **kwargs,
        }

        getattr(self.logger, level)(json.dumps(log_data, ensure_ascii=False, default=str))

    def debug(self, message: str, **kwargs):
        self.log("debug", message, **kwargs)

    def info(self, message: str, **kwargs):
        self.log("info", message, **kwargs)

    def warning(self, message: str, **kwargs):
        self.log("warning", message, **kwargs)

    def error(self, message: str, exc_info: Optional[str] = None, **kwargs):
        self.log("error", message, exc_info=exc_info, **kwargs)

    def log_request(self, method: str, endpoint: str) -> Token:
        """Log incoming request. Returns the token that ends its context."""
        token = self.set_request_context(str(uuid.uuid4()), endpoint, method)
        self.info(f"{method} {endpoint} received")
        return token

    def log_response(self, status_code: int, response_time_ms: float, error: Optional[str] = None):
        """Log outgoing response."""
        log_data = {
            "status_code": status_code,
            "response_time_ms": round(response_time_ms, 2),
        }

        if error:
            log_data["error"] = error
            self.error(f"Request failed with status {status_code}", **log_data)
        else:
            self.info(f"Request completed with status {status_code}", **log_data)

    def log_completion(self, kind: str, elapsed_ms: float, prompt_chars: int):
        """Log the terminal result of one completion call."""
        log_data = {
            "kind": kind,
            "elapsed_ms": round(elapsed_ms, 2),
            "prompt_chars": prompt_chars,
        }
        if kind == "ok":
            self.info("Completion succeeded", **log_data)
        else:
            self.warning(f"Completion failed: {kind}", **log_data)

    def log_advice(self, sequence: int, kind: str, superseded: bool):
        """Log a settled advice regeneration."""
        self.info(
            f"Advice #{sequence} settled: {kind}",
            sequence=sequence,
            kind=kind,
            superseded=superseded,
        )

    def log_chat_turn(self, session_id: str, speaker: str, length: int):
        """Log a transcript append."""
        self.debug(
            f"Chat turn appended: {speaker}",
            session_id=session_id,
            speaker=speaker,
            length=length,
        )


def setup_json_logging(log_file: Optional[str] = None, level: int = logging.INFO):
    """Setup JSON logging to console and, optionally, a file.

    Args:
        log_file: Optional file path for JSON logs
        level: Root log level
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    json_formatter = jsonlogger.JsonFormatter()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(json_formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(json_formatter)
        root_logger.addHandler(file_handler)

        root_logger.info(f"JSON logging initialized to {log_file}")


# Global structured logger instance
logger = StructuredLogger("healthmate")
