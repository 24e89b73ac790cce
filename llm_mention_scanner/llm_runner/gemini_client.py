"""
Google Gemini adapter for LLM Mention Scanner.

Asks the Gemini generateContent API a topic question. When Google Search
grounding is active the response carries groundingMetadata, whose web chunks
become source hints.

Key features:
- API key sent in the x-goog-api-key header, never in the URL
- Conversation turns mapped to Gemini's user/model roles
- Blocked answers (safety, recitation) surface as ProviderResponseError
- Security: NEVER logs API keys

Example:
    >>> adapter = GeminiAdapter(model_name="gemini-2.0-flash", api_key="AIza...")
    >>> adapter._endpoint()
    'https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent'
"""

from typing import Any

from pydantic import BaseModel, Field

from llm_mention_scanner.exceptions import ProviderResponseError
from llm_mention_scanner.llm_runner.base_client import (
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_TEMPERATURE,
    BaseProviderAdapter,
    Message,
)
from llm_mention_scanner.llm_runner.models import SourceHint

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

# finishReason values meaning the answer was withheld
BLOCKED_FINISH_REASONS = frozenset(
    ["SAFETY", "RECITATION", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"]
)


class Part(BaseModel):
    text: str | None = None


class Content(BaseModel):
    parts: list[Part] = []


class WebChunk(BaseModel):
    uri: str
    title: str | None = None


class GroundingChunk(BaseModel):
    web: WebChunk | None = None


class GroundingMetadata(BaseModel):
    groundingChunks: list[GroundingChunk] = []


class Candidate(BaseModel):
    content: Content | None = None
    finishReason: str | None = None
    groundingMetadata: GroundingMetadata | None = None


class GenerateContentResponse(BaseModel):
    """Subset of a generateContent response the scanner relies on."""

    candidates: list[Candidate] = Field(min_length=1)


class GeminiAdapter(BaseProviderAdapter):
    """Gemini adapter over the generateContent REST API."""

    display_name = "Gemini"
    default_name = "gemini"
    default_base_url = GEMINI_BASE_URL
    response_model = GenerateContentResponse

    def _endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model_name}:generateContent"

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

    def _build_payload(self, messages: list[Message]) -> dict[str, Any]:
        return {
            "contents": [
                {
                    "role": "model" if role == "assistant" else "user",
                    "parts": [{"text": content}],
                }
                for role, content in messages
            ],
            "generationConfig": {
                "maxOutputTokens": DEFAULT_MAX_OUTPUT_TOKENS,
                "temperature": DEFAULT_TEMPERATURE,
            },
        }

    def _decode(self, response: GenerateContentResponse) -> tuple[str, list[SourceHint]]:
        candidate = response.candidates[0]

        if candidate.finishReason in BLOCKED_FINISH_REASONS:
            raise ProviderResponseError(
                f"Gemini withheld the answer: finishReason={candidate.finishReason}, "
                f"model={self.model_name}",
                provider=self.name,
            )

        parts = candidate.content.parts if candidate.content else []
        answer_text = "".join(part.text for part in parts if part.text)

        hints = []
        if candidate.groundingMetadata:
            hints = [
                SourceHint(url=chunk.web.uri, title=chunk.web.title)
                for chunk in candidate.groundingMetadata.groundingChunks
                if chunk.web is not None
            ]

        return answer_text, hints
