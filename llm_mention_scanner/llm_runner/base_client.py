"""
Shared HTTP behavior for provider adapters.

Every concrete adapter (OpenAI, Perplexity, Gemini) only describes its
endpoint, headers, request payload and typed response decoding. This base
class owns the rest:

Key features:
- Async HTTP via httpx.AsyncClient (shared pool or per-request client)
- Bounded tenacity retries on 429/5xx, connect errors and timeouts
- Fail fast on 400/401/403/404
- Typed pydantic decoding; a missing field is a ProviderResponseError
- One bounded follow-up request asking for sources when the primary
  answer cites none
- Security: NEVER logs API keys
"""

import asyncio
import logging
from typing import Any, ClassVar

import httpx
from pydantic import BaseModel, ValidationError

from llm_mention_scanner.config.constants import MAX_TOPIC_LENGTH
from llm_mention_scanner.exceptions import (
    EmptyAnswerError,
    ProviderAuthenticationError,
    ProviderConnectionError,
    ProviderError,
    ProviderRateLimitError,
    ProviderResponseError,
    ProviderTimeoutError,
)
from llm_mention_scanner.extractor.url_extractor import contains_source_urls
from llm_mention_scanner.llm_runner.models import ProviderAnswer, SourceHint
from llm_mention_scanner.llm_runner.retry_config import (
    DEFAULT_MAX_RETRIES,
    NO_RETRY_STATUS_CODES,
    REQUEST_TIMEOUT,
    build_retrying,
)

# Suppress HTTPX request logging to keep request URLs out of scan logs
httpx_logger = logging.getLogger("httpx")
httpx_logger.setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

SOURCE_FOLLOW_UP_PROMPT = (
    "For your previous response about {topic}, please provide the specific URLs "
    "and sources you used to get this information. List each source with its "
    "URL, domain name, and title."
)

# Generation parameters shared by all providers
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_OUTPUT_TOKENS = 1000

# A conversation turn: ("user" | "assistant", text)
Message = tuple[str, str]


def _extract_error_detail(response: httpx.Response) -> str:
    """
    Extract a short error message from an error response body.

    Providers use {"error": {"message": ...}} or {"error": "..."}; anything
    else falls back to the first 200 characters of the body.
    """
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] if response.text else "No error details"

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
        if data.get("detail"):
            return str(data["detail"])

    return str(data)[:200]


class BaseProviderAdapter:
    """
    Base class for HTTP provider adapters.

    Subclasses set display_name and response_model and implement
    _endpoint(), _headers(), _build_payload() and _decode().

    Attributes:
        name: Result key (e.g. "chatgpt")
        model_name: Model identifier sent to the provider
        api_key: API key (NEVER logged)
        base_url: Endpoint root without trailing slash
        timeout_seconds: Per-request timeout
        max_retries: Retries after the first attempt on transient failures
    """

    display_name: ClassVar[str] = "Provider"
    default_name: ClassVar[str] = "provider"
    default_base_url: ClassVar[str] = ""
    response_model: ClassVar[type[BaseModel]]

    def __init__(
        self,
        name: str | None = None,
        model_name: str = "",
        api_key: str = "",
        base_url: str | None = None,
        timeout_seconds: float = REQUEST_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the adapter with explicit credentials and endpoint.

        Raises:
            ValueError: If name, model_name or api_key is empty, the timeout
                is not positive, or max_retries is out of range
        """
        name = self.default_name if name is None else name

        if not name or name.isspace():
            raise ValueError("name cannot be empty")

        if not model_name or model_name.isspace():
            raise ValueError("model_name cannot be empty")

        if not api_key or api_key.isspace():
            raise ValueError("api_key cannot be empty")

        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got: {timeout_seconds}")

        # Validates the retry bound up front
        build_retrying(max_retries)

        self.name = name
        self.model_name = model_name
        self.api_key = api_key
        self.base_url = (base_url or self.default_base_url).rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self._http_client = http_client

        logger.info(
            f"Initialized {self.display_name} adapter '{self.name}' "
            f"for model: {self.model_name}"
        )

    # ------------------------------------------------------------------
    # Provider-specific hooks
    # ------------------------------------------------------------------

    def _endpoint(self) -> str:
        raise NotImplementedError

    def _headers(self) -> dict[str, str]:
        raise NotImplementedError

    def _build_payload(self, messages: list[Message]) -> dict[str, Any]:
        raise NotImplementedError

    def _decode(self, response: BaseModel) -> tuple[str, list[SourceHint]]:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ask(self, topic: str, deadline: float | None = None) -> ProviderAnswer:
        """
        Ask the topic question, following up for sources if none were cited.

        Both requests share one budget. The follow-up only gets whatever time
        the primary request left; running out of it keeps the primary answer.

        Args:
            topic: Question to send to the provider
            deadline: Event loop time (loop.time()) by which everything must
                finish. Defaults to timeout_seconds x (1 + max_retries) from now.

        Returns:
            ProviderAnswer with answer text, citations and optional follow-up text

        Raises:
            ValueError: If topic is empty or longer than MAX_TOPIC_LENGTH
            EmptyAnswerError: If the provider answered with no text
            ProviderTimeoutError: If the primary answer misses the deadline
            ProviderError: On transport failure, error status or bad payload
        """
        if not topic or topic.isspace():
            raise ValueError("topic cannot be empty")

        if len(topic) > MAX_TOPIC_LENGTH:
            raise ValueError(
                f"topic exceeds maximum length of {MAX_TOPIC_LENGTH:,} characters "
                f"(received {len(topic):,} characters)"
            )

        logger.debug(f"Asking {self.name}: model={self.model_name}")

        if deadline is None:
            deadline = asyncio.get_running_loop().time() + self.timeout_seconds * (
                1 + self.max_retries
            )

        try:
            async with asyncio.timeout_at(deadline):
                answer_text, hints = await self._complete([("user", topic)])
        except TimeoutError as e:
            raise ProviderTimeoutError(
                f"{self.display_name} answer missed the scan deadline: "
                f"model={self.model_name}",
                provider=self.name,
            ) from e

        if not answer_text or answer_text.isspace():
            raise EmptyAnswerError(
                f"{self.display_name} returned an empty answer: model={self.model_name}",
                provider=self.name,
            )

        follow_up_text = None
        if not hints and not contains_source_urls(answer_text):
            follow_up_text, follow_up_hints = await self._ask_for_sources(
                topic, answer_text, deadline
            )
            hints = hints + follow_up_hints

        return ProviderAnswer(
            provider_name=self.name,
            answer_text=answer_text,
            raw_source_hints=tuple(hints),
            follow_up_text=follow_up_text,
            model_name=self.model_name,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _ask_for_sources(
        self, topic: str, answer_text: str, deadline: float
    ) -> tuple[str | None, list[SourceHint]]:
        """
        Issue the single follow-up request asking for sources.

        A failed or late follow-up never fails the scan: it is logged and the
        primary answer is kept.
        """
        messages = [
            ("user", topic),
            ("assistant", answer_text),
            ("user", SOURCE_FOLLOW_UP_PROMPT.format(topic=topic)),
        ]

        try:
            async with asyncio.timeout_at(deadline):
                follow_up_text, hints = await self._complete(messages)
        except TimeoutError:
            logger.warning(
                f"{self.display_name} source follow-up ran out of time, keeping "
                f"primary answer: provider={self.name}"
            )
            return None, []
        except ProviderError as e:
            logger.warning(
                f"{self.display_name} source follow-up failed, keeping primary "
                f"answer: provider={self.name}, error={e}"
            )
            return None, []

        if not follow_up_text or follow_up_text.isspace():
            return None, hints

        return follow_up_text, hints

    async def _complete(self, messages: list[Message]) -> tuple[str, list[SourceHint]]:
        data = await self._post_json(self._build_payload(messages))

        try:
            parsed = self.response_model.model_validate(data)
        except ValidationError as e:
            raise ProviderResponseError(
                f"{self.display_name} response missing expected fields: "
                f"model={self.model_name}, errors={e.error_count()}",
                provider=self.name,
            ) from e

        return self._decode(parsed)

    async def _post_json(self, payload: dict[str, Any]) -> Any:
        url = self._endpoint()
        headers = self._headers()

        try:
            async for attempt in build_retrying(self.max_retries):
                with attempt:
                    response = await self._send(url, payload, headers)

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            detail = _extract_error_detail(e.response)
            error_class = (
                ProviderRateLimitError if status == 429 else ProviderResponseError
            )
            raise error_class(
                f"{self.display_name} API error after {self.max_retries + 1} "
                f"attempt(s): status={status}, model={self.model_name}, "
                f"detail={detail}",
                provider=self.name,
            ) from e

        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                f"{self.display_name} API timeout after {self.timeout_seconds}s: "
                f"model={self.model_name}",
                provider=self.name,
            ) from e

        except httpx.HTTPError as e:
            raise ProviderConnectionError(
                f"{self.display_name} API connection error: "
                f"model={self.model_name}, error={type(e).__name__}",
                provider=self.name,
            ) from e

        try:
            return response.json()
        except ValueError as e:
            raise ProviderResponseError(
                f"Failed to parse {self.display_name} response JSON: {e}",
                provider=self.name,
            ) from e

    async def _send(
        self, url: str, payload: dict[str, Any], headers: dict[str, str]
    ) -> httpx.Response:
        """Send one attempt; raise for retryable statuses, fail fast on the rest."""
        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    url, json=payload, headers=headers, timeout=self.timeout_seconds
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(url, json=payload, headers=headers)

            if response.status_code in NO_RETRY_STATUS_CODES:
                detail = _extract_error_detail(response)
                error_class = (
                    ProviderAuthenticationError
                    if response.status_code in (401, 403)
                    else ProviderResponseError
                )
                raise error_class(
                    f"{self.display_name} API error (non-retryable): "
                    f"status={response.status_code}, "
                    f"model={self.model_name}, "
                    f"detail={detail}",
                    provider=self.name,
                )

            # Raise for retryable errors (429, 5xx)
            response.raise_for_status()

        except httpx.HTTPStatusError as e:
            logger.warning(
                f"{self.display_name} API HTTP error: "
                f"status={e.response.status_code}, model={self.model_name}"
            )
            raise

        except httpx.ConnectError as e:
            logger.warning(
                f"{self.display_name} API connection error: "
                f"model={self.model_name}, error={e}"
            )
            raise

        except httpx.TimeoutException as e:
            logger.warning(
                f"{self.display_name} API timeout: model={self.model_name}, error={e}"
            )
            raise

        return response
