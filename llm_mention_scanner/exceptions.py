"""
Custom exceptions for LLM Mention Scanner.

This module provides a hierarchy of exceptions that enable type-safe error
handling throughout the scanner. All exceptions inherit from the base
MentionScannerError for consistent catching.

Exception Hierarchy:
    MentionScannerError (base)
    ├── ConfigurationError
    │   ├── ConfigFileNotFoundError
    │   ├── ConfigValidationError
    │   └── APIKeyMissingError
    ├── DatabaseError
    │   ├── DatabaseInitError
    │   └── DatabaseQueryError
    ├── ProviderError
    │   ├── ProviderAuthenticationError
    │   ├── ProviderRateLimitError
    │   ├── ProviderTimeoutError
    │   ├── ProviderConnectionError
    │   └── ProviderResponseError
    │       └── EmptyAnswerError
    └── ResultPersistenceError

Usage:
    from llm_mention_scanner.exceptions import ResultPersistenceError

    try:
        batch = await run_scan(request, adapters, sink=sink)
    except ResultPersistenceError as e:
        logger.error(f"Scan {e.batch.scan_id} finished but was not stored: {e}")
"""

from typing import Any


class MentionScannerError(Exception):
    """
    Base exception for all LLM Mention Scanner errors.

    Example:
        try:
            runtime_config = load_config(path)
        except MentionScannerError as e:
            logger.error(f"Scanner error: {e}")
    """

    pass


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(MentionScannerError):
    """
    Base class for configuration-related errors.

    Raised when configuration loading, parsing, or validation fails.
    """

    pass


class ConfigFileNotFoundError(ConfigurationError):
    """
    Configuration file does not exist at the specified path.

    Example:
        raise ConfigFileNotFoundError("Configuration file not found: scanner.yaml")
    """

    pass


class ConfigValidationError(ConfigurationError):
    """
    Configuration file has invalid YAML or fails schema validation.

    Example:
        raise ConfigValidationError("Duplicate provider names: chatgpt")
    """

    pass


class APIKeyMissingError(ConfigurationError):
    """
    Environment variable named by a provider's env_api_key is not set.

    Example:
        raise APIKeyMissingError("Environment variable $OPENAI_API_KEY not set")
    """

    pass


# ============================================================================
# Database Errors
# ============================================================================


class DatabaseError(MentionScannerError):
    """Base class for SQLite storage errors."""

    pass


class DatabaseInitError(DatabaseError):
    """Database file could not be created or its schema could not be applied."""

    pass


class DatabaseQueryError(DatabaseError):
    """An insert or select against the scan database failed."""

    pass


# ============================================================================
# Provider Errors
# ============================================================================


class ProviderError(MentionScannerError):
    """
    Base class for answer provider failures.

    Carries the name of the provider that failed so the orchestrator can
    attribute the failure in logs.

    Example:
        raise ProviderTimeoutError("Request timed out after 30s", provider="gemini")
    """

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


class ProviderAuthenticationError(ProviderError):
    """Provider rejected the credentials (HTTP 401/403)."""

    pass


class ProviderRateLimitError(ProviderError):
    """Provider kept returning HTTP 429 after all retry attempts."""

    pass


class ProviderTimeoutError(ProviderError):
    """Provider did not answer within the per-request timeout."""

    pass


class ProviderConnectionError(ProviderError):
    """Provider endpoint could not be reached."""

    pass


class ProviderResponseError(ProviderError):
    """
    Provider answered with an error status or a payload we cannot decode.

    Example:
        raise ProviderResponseError(
            "Missing 'choices' in response", provider="chatgpt"
        )
    """

    pass


class EmptyAnswerError(ProviderResponseError):
    """Provider returned a well-formed response with no answer text."""

    pass


# ============================================================================
# Persistence Errors
# ============================================================================


class ResultPersistenceError(MentionScannerError):
    """
    Result sink failed to store a completed scan batch.

    The batch is attached so callers can retry persistence or inspect
    results that were computed but not stored.

    Example:
        try:
            batch = await run_scan(request, adapters, sink=sink)
        except ResultPersistenceError as e:
            fallback_sink.persist_results(e.batch)
    """

    def __init__(self, message: str, batch: Any = None):
        super().__init__(message)
        self.batch = batch
