"""
Logging redaction helpers.
Redacts API keys and tokens from log messages.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable


_PATTERNS: Iterable[tuple[re.Pattern, str]] = (
    # Polygon apiKey query parameter: ?apiKey=<key> / &apiKey=<key>
    (re.compile(r"(?i)([?&]apiKey=)([^&\s\"']+)"), r"\1[REDACTED]"),
    # Authorization: Bearer <token>
    (re.compile(r"(Bearer\s+)([A-Za-z0-9\-\._]+)"), r"\1[REDACTED]"),
    # Generic api key / token key-value output
    (re.compile(r"(?i)(api[_-]?key|access_token|token)\s*[:=]\s*([A-Za-z0-9\-\._]+)"), r"\1=[REDACTED]"),
)


def redact_message(message: str) -> str:
    redacted = message
    for pattern, replacement in _PATTERNS:
        redacted = pattern.sub(replacement, redacted)
    return redacted


class RedactingFilter(logging.Filter):
    """Filter that redacts sensitive data from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Malformed format args; let the handler report it
            return True
        record.msg = redact_message(message)
        record.args = ()
        return True


def install_redaction_filter() -> None:
    """Attach the filter to the root logger and its handlers (idempotent)."""
    root = logging.getLogger()
    targets = [root, *root.handlers]
    for target in targets:
        if any(isinstance(existing, RedactingFilter) for existing in target.filters):
            continue
        target.addFilter(RedactingFilter())
