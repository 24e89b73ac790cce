"""
Configuration constants for LLM Mention Scanner.

This module contains global constants used across the package
to avoid tight coupling between modules.
"""

# Only top-10 visibility is tracked; deeper positions are reported as None
MAX_TRACKED_POSITION = 10

# Source references kept per scan result
MAX_SOURCES_PER_RESULT = 2

# Topics longer than this are rejected before any provider is called
MAX_TOPIC_LENGTH = 2_000

# Providers that get a dedicated slot in the per-provider position rollup
TRACKED_PROVIDERS = ("chatgpt", "perplexity", "gemini")

# Answer text stored on a result whose provider call failed
FAILED_SCAN_ANSWER_TEXT = "Scan failed due to API error"

# Longest context snippet kept from an answer
MAX_CONTEXT_SNIPPET_LENGTH = 300
