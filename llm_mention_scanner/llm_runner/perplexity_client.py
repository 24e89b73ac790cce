"""
Perplexity adapter for LLM Mention Scanner.

Perplexity's chat completions endpoint is OpenAI-compatible, so this adapter
reuses OpenAIAdapter's request shape and only changes the endpoint and the
decoding of Perplexity's citation fields.

Citations come from `search_results` (url, title, date) when present,
otherwise from the flat `citations` URL list.

Example:
    >>> adapter = PerplexityAdapter(model_name="sonar-pro", api_key="pplx-...")
    >>> answer = await adapter.ask("What are the best CRM tools?")
    >>> answer.raw_source_hints[0].url
    'https://www.g2.com/categories/crm'
"""

from pydantic import BaseModel, Field

from llm_mention_scanner.llm_runner.models import SourceHint
from llm_mention_scanner.llm_runner.openai_client import ChatChoice, OpenAIAdapter

PERPLEXITY_BASE_URL = "https://api.perplexity.ai"
PERPLEXITY_DEFAULT_MODEL = "sonar-pro"


class SearchResult(BaseModel):
    url: str
    title: str | None = None
    date: str | None = None


class PerplexityResponse(BaseModel):
    """Chat completion plus Perplexity's citation fields."""

    choices: list[ChatChoice] = Field(min_length=1)
    citations: list[str] = []
    search_results: list[SearchResult] = []


class PerplexityAdapter(OpenAIAdapter):
    """Perplexity Sonar adapter."""

    display_name = "Perplexity"
    default_name = "perplexity"
    default_base_url = PERPLEXITY_BASE_URL
    response_model = PerplexityResponse

    def _decode(self, response: PerplexityResponse) -> tuple[str, list[SourceHint]]:
        if response.search_results:
            hints = [
                SourceHint(url=r.url, title=r.title, date=r.date)
                for r in response.search_results
            ]
        else:
            hints = [SourceHint(url=url) for url in response.citations]

        return response.choices[0].message.content or "", hints
