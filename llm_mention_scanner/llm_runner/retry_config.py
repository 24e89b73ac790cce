"""
Retry configuration for provider API calls.

Centralized retry policy built on tenacity. Every provider adapter sends its
HTTP requests through the same policy so total scan latency stays bounded:
a provider call can take at most timeout x (1 + max_retries) plus a short
backoff.

Key features:
- Bounded retries (default: one retry after the initial attempt)
- Short exponential backoff between attempts
- Retry on network errors and server errors (429, 5xx)
- Fail fast on client errors (400, 401, 403, 404)

Example:
    >>> from llm_mention_scanner.llm_runner.retry_config import build_retrying
    >>> async for attempt in build_retrying(max_retries=1):
    ...     with attempt:
    ...         response = await client.post(url, json=payload)
    ...         response.raise_for_status()
"""

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

# ============================================================================
# RETRY CONSTANTS
# ============================================================================

# Retries after the initial attempt. Total attempts = 1 + DEFAULT_MAX_RETRIES
DEFAULT_MAX_RETRIES = 1

# Upper bound accepted from configuration
MAX_RETRIES_LIMIT = 3

# Backoff window between attempts (seconds)
MIN_WAIT_SECONDS = 0.5
MAX_WAIT_SECONDS = 2.0

# 429: rate limit, 500-504: server errors
RETRY_STATUS_CODES = frozenset([429, 500, 502, 503, 504])

# 400: bad request, 401/403: credentials rejected, 404: unknown model/endpoint
NO_RETRY_STATUS_CODES = frozenset([400, 401, 403, 404])

# Per-request timeout in seconds, applies to each attempt
REQUEST_TIMEOUT = 30.0

# Exceptions that are worth another attempt
RETRYABLE_EXCEPTIONS = (
    httpx.HTTPStatusError,
    httpx.ConnectError,
    httpx.TimeoutException,
)

# ============================================================================
# RETRY FACTORY
# ============================================================================


def build_retrying(max_retries: int = DEFAULT_MAX_RETRIES) -> AsyncRetrying:
    """
    Create a tenacity AsyncRetrying controller for one provider request.

    Args:
        max_retries: Retries after the first attempt (0 disables retrying)

    Returns:
        AsyncRetrying iterator that reraises the last error once attempts
        are exhausted.

    Raises:
        ValueError: If max_retries is negative or above MAX_RETRIES_LIMIT

    Note:
        Callers must raise a non-retryable exception for NO_RETRY_STATUS_CODES
        before calling response.raise_for_status(), otherwise permanent
        errors would be retried as HTTPStatusError.
    """
    if max_retries < 0 or max_retries > MAX_RETRIES_LIMIT:
        raise ValueError(
            f"max_retries must be between 0 and {MAX_RETRIES_LIMIT}, got {max_retries}"
        )

    return AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(
            multiplier=MIN_WAIT_SECONDS,
            min=MIN_WAIT_SECONDS,
            max=MAX_WAIT_SECONDS,
        ),
        retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
        reraise=True,
    )
