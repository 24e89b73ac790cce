"""
Provider runner module for LLM Mention Scanner.

This module provides the adapter layer and the scan orchestrator:
- ProviderAdapter protocol and build_adapter factory
- OpenAI (ChatGPT), Perplexity and Gemini adapters, plus a mock adapter
- run_scan / scan_with_config fan-out over all configured adapters

Example:
    >>> from llm_mention_scanner.llm_runner import build_adapter
    >>> adapter = build_adapter("gemini", "gemini", "gemini-2.0-flash", api_key)
    >>> answer = await adapter.ask("What are the best CRM tools?")
"""

from .models import ProviderAdapter, ProviderAnswer, SourceHint, build_adapter

__all__ = [
    "ProviderAdapter",
    "ProviderAnswer",
    "SourceHint",
    "build_adapter",
]
