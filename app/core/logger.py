"""
Structured logging on top of the standard library.

Every record emitted through StructuredLogger carries a ``log_context`` dict
(module, action, userId, metadata, requestId...). ContextFormatter renders it
as JSON after the message so operators can grep by module/action when a
fail-closed decision hides a store outage from the user.
"""

import json
import logging
from typing import Any, Dict, List, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

REDACTED = "[REDACTED]"
MAX_SANITIZE_DEPTH = 10

SENSITIVE_PATTERNS = [
    "password",
    "token",
    "secret",
    "key",
    "auth",
    "bearer",
    "api_key",
    "apikey",
    "credential",
    "ssn",
    "social_security",
    "credit_card",
    "card_number",
    "cvv",
    "pin",
    "private",
]

MODULE_SENSITIVE_PATTERNS: Dict[str, List[str]] = {
    "auth": ["session_id", "refresh_token", "access_token", "jwt", "bearer"],
    "users": ["ssn", "social_security", "date_of_birth", "dob", "salary"],
    "finance": ["account_number", "routing_number", "card_number", "cvv", "pin"],
    "hr": ["employee_id", "compensation", "review_score", "performance_rating"],
}


def get_sensitive_patterns(module: Optional[str] = None) -> List[str]:
    if not module:
        return list(SENSITIVE_PATTERNS)
    return SENSITIVE_PATTERNS + MODULE_SENSITIVE_PATTERNS.get(module, [])


def sanitize(value: Any, patterns: List[str], depth: int = 0) -> Any:
    """Recursively replace values whose key matches a sensitive pattern."""
    if depth > MAX_SANITIZE_DEPTH:
        return "[Max depth exceeded]"
    if isinstance(value, list):
        return [sanitize(item, patterns, depth + 1) for item in value]
    if not isinstance(value, dict):
        return value

    sanitized = {}
    for key, item in value.items():
        lower_key = str(key).lower()
        if any(pattern in lower_key for pattern in patterns):
            sanitized[key] = REDACTED
        else:
            sanitized[key] = sanitize(item, patterns, depth + 1)
    return sanitized


def sanitize_context(context: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Only ``metadata`` is free-form; the other context fields are ours."""
    if not context:
        return {}
    sanitized = dict(context)
    if sanitized.get("metadata") is not None:
        patterns = get_sensitive_patterns(sanitized.get("module"))
        sanitized["metadata"] = sanitize(sanitized["metadata"], patterns)
    return sanitized


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = getattr(record, "log_context", None)
        if context:
            line = f"{line} context={json.dumps(context, default=str, sort_keys=True)}"
        return line


class StructuredLogger:
    """Logger with the error(message, error, context) signature used by the RBAC layer."""

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, message: str, error: Optional[BaseException], context: Optional[Dict[str, Any]]):
        if error is not None:
            message = f"{message}: {error}"
        self._logger.log(
            level,
            message,
            exc_info=error if error is not None and self._logger.isEnabledFor(logging.DEBUG) else None,
            extra={"log_context": sanitize_context(context)},
        )

    def debug(self, message: str, context: Optional[Dict[str, Any]] = None):
        self._log(logging.DEBUG, message, None, context)

    def info(self, message: str, context: Optional[Dict[str, Any]] = None):
        self._log(logging.INFO, message, None, context)

    def warning(self, message: str, context: Optional[Dict[str, Any]] = None):
        self._log(logging.WARNING, message, None, context)

    def error(self, message: str, error: Optional[BaseException] = None, context: Optional[Dict[str, Any]] = None):
        self._log(logging.ERROR, message, error, context)


def get_structured_logger(name: str) -> StructuredLogger:
    return StructuredLogger(name)


def configure_logging(level: str = "INFO"):
    handler = logging.StreamHandler()
    handler.setFormatter(ContextFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )
