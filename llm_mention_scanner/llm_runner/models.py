"""
Provider adapter abstraction and factory for LLM Mention Scanner.

This module provides a provider-agnostic interface for asking generative
answer services (ChatGPT, Perplexity, Gemini) a topic question through a
unified Protocol-based design.

Key components:
- SourceHint: Structured citation returned inline by a provider
- ProviderAnswer: Answer text plus any source material from one provider
- ProviderAdapter: Protocol every adapter implements
- build_adapter: Factory creating the adapter for a provider type

Example:
    >>> from llm_mention_scanner.llm_runner.models import build_adapter
    >>> adapter = build_adapter("perplexity", "perplexity", "sonar-pro", api_key)
    >>> answer = await adapter.ask("What are the best CRM tools?")
    >>> print(answer.answer_text)
"""

from dataclasses import dataclass
from typing import Protocol

import httpx

from llm_mention_scanner.llm_runner.retry_config import (
    DEFAULT_MAX_RETRIES,
    REQUEST_TIMEOUT,
)


@dataclass(frozen=True)
class SourceHint:
    """
    Citation delivered by a provider alongside its answer.

    Attributes:
        url: Cited URL exactly as the provider returned it
        title: Page title, if the provider supplied one
        date: Publication or crawl date, if the provider supplied one
    """

    url: str
    title: str | None = None
    date: str | None = None


@dataclass(frozen=True)
class ProviderAnswer:
    """
    Outcome of one successful adapter ask().

    Attributes:
        provider_name: Name of the adapter that produced the answer
        answer_text: Provider's answer to the topic question (never empty)
        raw_source_hints: Structured citations from the primary response
        follow_up_text: Answer to the source follow-up question, or None when
            no follow-up was needed or the follow-up failed
        model_name: Model that produced the answer

    Example:
        >>> answer = ProviderAnswer(
        ...     provider_name="gemini",
        ...     answer_text="1. Notion 2. Asana 3. Trello",
        ... )
        >>> answer.raw_source_hints
        ()
    """

    provider_name: str
    answer_text: str
    raw_source_hints: tuple[SourceHint, ...] = ()
    follow_up_text: str | None = None
    model_name: str | None = None


class ProviderAdapter(Protocol):
    """
    Protocol for answer provider adapters.

    Implementations issue one primary request for the topic and, when the
    response carries no usable source URLs, one bounded follow-up request
    asking for sources. Failures are raised as ProviderError subclasses.

    Attributes:
        name: Provider name used to key results (e.g. "chatgpt")
    """

    name: str

    async def ask(self, topic: str, deadline: float | None = None) -> ProviderAnswer:
        """
        Ask the provider the topic question.

        Args:
            topic: Question to send to the provider
            deadline: Event loop time by which the answer must be ready. A
                source follow-up still running at the deadline is abandoned
                and the primary answer returned.

        Raises:
            ValueError: If topic is empty
            ProviderError: On transport failure, error status or bad payload
        """
        ...


def build_adapter(
    provider: str,
    name: str,
    model_name: str,
    api_key: str,
    base_url: str | None = None,
    timeout_seconds: float = REQUEST_TIMEOUT,
    max_retries: int = DEFAULT_MAX_RETRIES,
    http_client: httpx.AsyncClient | None = None,
) -> ProviderAdapter:
    """
    Factory function to create the adapter for a provider type.

    Supported providers:
    - "openai": OpenAI Chat Completions (ChatGPT)
    - "perplexity": Perplexity chat completions (Sonar models)
    - "gemini": Google Gemini generateContent

    Args:
        provider: Provider type identifier (lowercase)
        name: Result key for this adapter (e.g. "chatgpt")
        model_name: Model identifier
        api_key: API key for authentication (NEVER logged)
        base_url: Optional endpoint override
        timeout_seconds: Per-request timeout
        max_retries: Retries after the first attempt on transient failures
        http_client: Optional shared httpx.AsyncClient

    Raises:
        ValueError: If provider is not supported

    Example:
        >>> adapter = build_adapter("openai", "chatgpt", "gpt-4o-mini", "sk-...")
        >>> adapter.name
        'chatgpt'
    """
    kwargs = {
        "name": name,
        "model_name": model_name,
        "api_key": api_key,
        "base_url": base_url,
        "timeout_seconds": timeout_seconds,
        "max_retries": max_retries,
        "http_client": http_client,
    }

    if provider == "openai":
        # Import here to keep provider modules lazy
        from llm_mention_scanner.llm_runner.openai_client import OpenAIAdapter

        return OpenAIAdapter(**kwargs)

    if provider == "perplexity":
        from llm_mention_scanner.llm_runner.perplexity_client import (
            PerplexityAdapter,
        )

        return PerplexityAdapter(**kwargs)

    if provider == "gemini":
        from llm_mention_scanner.llm_runner.gemini_client import GeminiAdapter

        return GeminiAdapter(**kwargs)

    raise ValueError(
        f"Unsupported provider: '{provider}'. "
        f"Supported providers: openai, perplexity, gemini"
    )
