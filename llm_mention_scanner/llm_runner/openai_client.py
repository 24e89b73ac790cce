"""
OpenAI (ChatGPT) adapter for LLM Mention Scanner.

Asks the OpenAI Chat Completions API a topic question and decodes the answer
plus any url_citation annotations (returned by search-enabled models).

Key features:
- Async HTTP via the shared BaseProviderAdapter machinery
- Retry on transient failures (429, 5xx), fail fast on 400/401/403/404
- Typed decoding of the chat completion payload
- Security: NEVER logs API keys

Example:
    >>> adapter = OpenAIAdapter(model_name="gpt-4o-mini", api_key="sk-...")
    >>> answer = await adapter.ask("What are the best CRM tools?")
    >>> answer.provider_name
    'chatgpt'
"""

from typing import Any

from pydantic import BaseModel, Field

from llm_mention_scanner.llm_runner.base_client import (
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_TEMPERATURE,
    BaseProviderAdapter,
    Message,
)
from llm_mention_scanner.llm_runner.models import SourceHint

OPENAI_BASE_URL = "https://api.openai.com/v1"


class URLCitation(BaseModel):
    url: str
    title: str | None = None


class MessageAnnotation(BaseModel):
    type: str | None = None
    url_citation: URLCitation | None = None


class ChatMessage(BaseModel):
    content: str | None = None
    annotations: list[MessageAnnotation] = []


class ChatChoice(BaseModel):
    message: ChatMessage


class ChatCompletionResponse(BaseModel):
    """Subset of a /chat/completions response the scanner relies on."""

    choices: list[ChatChoice] = Field(min_length=1)


class OpenAIAdapter(BaseProviderAdapter):
    """
    ChatGPT adapter over the OpenAI Chat Completions API.

    Example:
        >>> adapter = OpenAIAdapter(model_name="gpt-4o-mini", api_key="sk-...")
        >>> adapter._endpoint()
        'https://api.openai.com/v1/chat/completions'
    """

    display_name = "OpenAI"
    default_name = "chatgpt"
    default_base_url = OPENAI_BASE_URL
    response_model = ChatCompletionResponse

    def _endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _build_payload(self, messages: list[Message]) -> dict[str, Any]:
        return {
            "model": self.model_name,
            "messages": [
                {"role": role, "content": content} for role, content in messages
            ],
            "max_tokens": DEFAULT_MAX_OUTPUT_TOKENS,
            "temperature": DEFAULT_TEMPERATURE,
        }

    def _decode(self, response: ChatCompletionResponse) -> tuple[str, list[SourceHint]]:
        message = response.choices[0].message
        hints = [
            SourceHint(url=a.url_citation.url, title=a.url_citation.title)
            for a in message.annotations
            if a.url_citation is not None
        ]
        return message.content or "", hints
