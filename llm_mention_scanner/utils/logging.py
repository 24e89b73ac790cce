"""
Structured JSON logging for LLM Mention Scanner.

Provides standardized logging with:
- JSON formatted output to stderr
- Structured context fields and scan_id correlation
- Secret redaction (provider API keys never reach a log line in full)

All logs use Python's standard logging module with custom formatting.
Log level defaults to INFO, use setup_logging(verbose=True) for DEBUG.

Examples:
    >>> from llm_mention_scanner.utils.logging import setup_logging, log_with_context
    >>> setup_logging(verbose=True)
    >>> logger = logging.getLogger("llm_mention_scanner.llm_runner.runner")
    >>> log_with_context(logger, logging.INFO, "Scan started", scan_id="...")
"""

import json
import logging
import re
import sys
from typing import Any

from llm_mention_scanner.utils.time import utc_timestamp


class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs each record as one JSON object.

    Fields:
    - timestamp: ISO 8601 UTC timestamp
    - level: Log level name
    - component: Logger name
    - message: Rendered log message
    - context: Structured data from extra={'context': {...}}
    - scan_id: Scan batch identifier from extra={'scan_id': '...'}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": utc_timestamp(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "context") and isinstance(record.context, dict):
            log_entry["context"] = record.context

        if hasattr(record, "scan_id"):
            log_entry["scan_id"] = record.scan_id

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class SecretRedactingFilter(logging.Filter):
    """
    Logging filter that redacts provider credentials from log records.

    Covers OpenAI and Perplexity keys (sk-*, pplx-*), Google API keys
    (AIza*), Bearer tokens and any long opaque token. Only the last four
    characters survive:
    "sk-proj-abcdef123456..." -> "sk-...3456"
    """

    SECRET_PATTERNS = [
        (re.compile(r"\bsk-[a-zA-Z0-9_-]{20,}\b"), "sk-...{last4}"),
        (re.compile(r"\bpplx-[a-zA-Z0-9_-]{20,}\b"), "pplx-...{last4}"),
        (re.compile(r"\bAIza[a-zA-Z0-9_-]{30,}\b"), "AIza...{last4}"),
        (re.compile(r"\bBearer\s+[a-zA-Z0-9_-]{20,}\b"), "Bearer ***{last4}"),
        (re.compile(r"\b[a-zA-Z0-9_-]{32,}\b"), "***{last4}"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self._redact_secrets(str(record.msg))

        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: self._redact_secrets(str(v)) for k, v in record.args.items()
                }
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    self._redact_secrets(str(arg)) for arg in record.args
                )

        if hasattr(record, "context") and isinstance(record.context, dict):
            record.context = self._redact_dict(record.context)

        return True

    def _redact_secrets(self, text: str) -> str:
        for pattern, template in self.SECRET_PATTERNS:

            def redact_match(match: re.Match, template: str = template) -> str:
                return template.format(last4=match.group(0)[-4:])

            text = pattern.sub(redact_match, text)

        return text

    def _redact_dict(self, data: dict[str, Any]) -> dict[str, Any]:
        result = {}
        for key, value in data.items():
            if isinstance(value, str):
                result[key] = self._redact_secrets(value)
            elif isinstance(value, dict):
                result[key] = self._redact_dict(value)
            elif isinstance(value, list):
                result[key] = [
                    self._redact_secrets(v) if isinstance(v, str) else v for v in value
                ]
            else:
                result[key] = value
        return result


def setup_logging(verbose: bool = False) -> None:
    """
    Configure structured JSON logging on the root logger.

    Installs a single stderr handler with JSONFormatter and
    SecretRedactingFilter, replacing any handlers already present.
    httpx request logging is capped at WARNING so request URLs are not
    echoed on every provider call.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise, use INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(SecretRedactingFilter())
    root_logger.addHandler(handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: dict[str, Any] | None = None,
    scan_id: str | None = None,
) -> None:
    """
    Log a message with structured context and optional scan_id.

    Equivalent to logger.log(level, message, extra={'context': ..., 'scan_id': ...})

    Example:
        >>> log_with_context(
        ...     logger,
        ...     logging.INFO,
        ...     "Provider answered",
        ...     context={"provider": "gemini", "duration_ms": 812},
        ...     scan_id="2025-11-02T08-30-00Z-1a2b3c4d",
        ... )
    """
    extra = {}

    if context is not None:
        extra["context"] = context

    if scan_id is not None:
        extra["scan_id"] = scan_id

    logger.log(level, message, extra=extra if extra else None)
