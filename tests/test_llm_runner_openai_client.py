"""
Tests for llm_runner.openai_client module.

Tests cover:
- OpenAIAdapter initialization and validation
- Successful asks with url_citation annotations
- The source follow-up request when no sources are cited, and its deadline
- Retry on transient failures (429, 5xx) and fail fast on 400/401/404
- Transport errors (timeouts, connection failures)
- Malformed responses (bad JSON, missing fields, empty answers)
- Logging without API keys
"""

import asyncio
import json
import logging

import httpx
import pytest

from llm_mention_scanner.exceptions import (
    EmptyAnswerError,
    ProviderAuthenticationError,
    ProviderConnectionError,
    ProviderRateLimitError,
    ProviderResponseError,
    ProviderTimeoutError,
)
from llm_mention_scanner.llm_runner.base_client import SOURCE_FOLLOW_UP_PROMPT
from llm_mention_scanner.llm_runner.models import ProviderAnswer, SourceHint
from llm_mention_scanner.llm_runner.openai_client import OPENAI_BASE_URL, OpenAIAdapter

ENDPOINT = f"{OPENAI_BASE_URL}/chat/completions"
TOPIC = "What are the best CRM tools?"


def completion(content, annotations=None):
    message = {"role": "assistant", "content": content}
    if annotations is not None:
        message["annotations"] = annotations
    return {"choices": [{"message": message}], "model": "gpt-4o-mini"}


class SlowOpenAIAdapter(OpenAIAdapter):
    """Answers without sources after primary_delay, then stalls the follow-up."""

    def __init__(self, primary_delay=0.0, follow_up_delay=5.0, **kwargs):
        super().__init__(model_name="gpt-4o-mini", api_key="sk-test123", **kwargs)
        self.primary_delay = primary_delay
        self.follow_up_delay = follow_up_delay

    async def _complete(self, messages):
        if len(messages) == 1:
            await asyncio.sleep(self.primary_delay)
            return "1. Acme is the best CRM.", []
        await asyncio.sleep(self.follow_up_delay)
        return "Sources: https://www.g2.com/crm", []


@pytest.fixture
def adapter():
    return OpenAIAdapter(model_name="gpt-4o-mini", api_key="sk-test123", max_retries=0)


class TestOpenAIAdapterInit:
    """Test suite for OpenAIAdapter initialization."""

    def test_init_defaults(self):
        """Test default name and endpoint."""
        adapter = OpenAIAdapter(model_name="gpt-4o-mini", api_key="sk-test123")

        assert adapter.name == "chatgpt"
        assert adapter.model_name == "gpt-4o-mini"
        assert adapter._endpoint() == ENDPOINT
        assert adapter.max_retries == 1

    def test_init_custom_base_url(self):
        """Test that a trailing slash on base_url is dropped."""
        adapter = OpenAIAdapter(
            model_name="gpt-4o-mini",
            api_key="sk-test123",
            base_url="https://proxy.internal.net/v1/",
        )

        assert adapter._endpoint() == "https://proxy.internal.net/v1/chat/completions"

    def test_init_empty_model_name(self):
        """Test that empty model_name raises ValueError."""
        with pytest.raises(ValueError, match="model_name cannot be empty"):
            OpenAIAdapter(model_name="   ", api_key="sk-test123")

    def test_init_empty_api_key(self):
        """Test that empty api_key raises ValueError."""
        with pytest.raises(ValueError, match="api_key cannot be empty"):
            OpenAIAdapter(model_name="gpt-4o-mini", api_key="")

    def test_init_empty_name(self):
        """Test that an explicit empty name raises ValueError."""
        with pytest.raises(ValueError, match="name cannot be empty"):
            OpenAIAdapter(name=" ", model_name="gpt-4o-mini", api_key="sk-test123")

    def test_init_non_positive_timeout(self):
        """Test that a zero timeout raises ValueError."""
        with pytest.raises(ValueError, match="timeout_seconds must be positive"):
            OpenAIAdapter(model_name="gpt-4o-mini", api_key="sk-test123", timeout_seconds=0)

    def test_init_retry_bound(self):
        """Test that max_retries above the limit raises ValueError."""
        with pytest.raises(ValueError, match="max_retries must be between 0 and 3"):
            OpenAIAdapter(model_name="gpt-4o-mini", api_key="sk-test123", max_retries=4)

    def test_init_logs_model_not_api_key(self, caplog):
        """Test that initialization logs the model but NEVER the API key."""
        caplog.set_level(logging.INFO)

        OpenAIAdapter(model_name="gpt-4o-mini", api_key="sk-secret123")

        assert "gpt-4o-mini" in caplog.text
        assert "sk-secret123" not in caplog.text


class TestAskSuccess:
    """Test suite for successful asks."""

    @pytest.mark.asyncio
    async def test_answer_with_citations(self, httpx_mock, adapter):
        """Test that url_citation annotations become source hints and skip the follow-up."""
        httpx_mock.add_response(
            method="POST",
            url=ENDPOINT,
            json=completion(
                "The top CRM tools are Salesforce, HubSpot, and Zoho.",
                annotations=[
                    {
                        "type": "url_citation",
                        "url_citation": {
                            "url": "https://www.g2.com/categories/crm",
                            "title": "Best CRM Software",
                        },
                    }
                ],
            ),
        )

        answer = await adapter.ask(TOPIC)

        assert isinstance(answer, ProviderAnswer)
        assert answer.provider_name == "chatgpt"
        assert answer.answer_text == "The top CRM tools are Salesforce, HubSpot, and Zoho."
        assert answer.raw_source_hints == (
            SourceHint(url="https://www.g2.com/categories/crm", title="Best CRM Software"),
        )
        assert answer.follow_up_text is None
        assert answer.model_name == "gpt-4o-mini"
        assert len(httpx_mock.get_requests()) == 1

    @pytest.mark.asyncio
    async def test_answer_with_inline_url_skips_follow_up(self, httpx_mock, adapter):
        """Test that a URL in the answer text counts as a cited source."""
        httpx_mock.add_response(
            json=completion("HubSpot leads (see https://www.g2.com/categories/crm).")
        )

        answer = await adapter.ask(TOPIC)

        assert answer.follow_up_text is None
        assert answer.raw_source_hints == ()
        assert len(httpx_mock.get_requests()) == 1

    @pytest.mark.asyncio
    async def test_sends_correct_payload(self, httpx_mock, adapter):
        """Test the request body and headers."""
        httpx_mock.add_response(json=completion("Read https://hubspot.com/crm"))

        await adapter.ask(TOPIC)

        request = httpx_mock.get_request()
        payload = json.loads(request.content)
        assert payload["model"] == "gpt-4o-mini"
        assert payload["messages"] == [{"role": "user", "content": TOPIC}]
        assert payload["max_tokens"] == 1000
        assert payload["temperature"] == 0.7
        assert request.headers["Authorization"] == "Bearer sk-test123"

    @pytest.mark.asyncio
    async def test_shared_http_client(self, httpx_mock):
        """Test that a shared AsyncClient is used when provided."""
        httpx_mock.add_response(json=completion("Read https://hubspot.com/crm"))

        async with httpx.AsyncClient() as client:
            adapter = OpenAIAdapter(
                model_name="gpt-4o-mini", api_key="sk-test123", http_client=client
            )
            answer = await adapter.ask(TOPIC)

        assert answer.answer_text == "Read https://hubspot.com/crm"


class TestSourceFollowUp:
    """Test suite for the source follow-up request."""

    @pytest.mark.asyncio
    async def test_follow_up_when_no_sources(self, httpx_mock, adapter):
        """Test that an answer without sources triggers exactly one follow-up."""
        httpx_mock.add_response(json=completion("HubSpot and Zoho are popular."))
        httpx_mock.add_response(
            json=completion("Sources: G2 CRM Grid Report - https://www.g2.com/crm")
        )

        answer = await adapter.ask(TOPIC)

        assert answer.answer_text == "HubSpot and Zoho are popular."
        assert answer.follow_up_text == "Sources: G2 CRM Grid Report - https://www.g2.com/crm"

        requests = httpx_mock.get_requests()
        assert len(requests) == 2
        messages = json.loads(requests[1].content)["messages"]
        assert messages == [
            {"role": "user", "content": TOPIC},
            {"role": "assistant", "content": "HubSpot and Zoho are popular."},
            {"role": "user", "content": SOURCE_FOLLOW_UP_PROMPT.format(topic=TOPIC)},
        ]

    @pytest.mark.asyncio
    async def test_follow_up_citations_merged(self, httpx_mock, adapter):
        """Test that citations on the follow-up response become hints."""
        httpx_mock.add_response(json=completion("HubSpot and Zoho are popular."))
        httpx_mock.add_response(
            json=completion(
                "See the G2 grid.",
                annotations=[{"url_citation": {"url": "https://www.g2.com/crm"}}],
            )
        )

        answer = await adapter.ask(TOPIC)

        assert answer.raw_source_hints == (SourceHint(url="https://www.g2.com/crm"),)

    @pytest.mark.asyncio
    async def test_failed_follow_up_keeps_answer(self, httpx_mock, adapter, caplog):
        """Test that a follow-up failure is logged and the primary answer survives."""
        httpx_mock.add_response(json=completion("HubSpot and Zoho are popular."))
        httpx_mock.add_response(status_code=500, json={"error": {"message": "boom"}})

        with caplog.at_level(logging.WARNING):
            answer = await adapter.ask(TOPIC)

        assert answer.answer_text == "HubSpot and Zoho are popular."
        assert answer.follow_up_text is None
        assert answer.raw_source_hints == ()
        assert "follow-up failed" in caplog.text

    @pytest.mark.asyncio
    async def test_late_follow_up_keeps_answer(self, caplog):
        """Test that a follow-up still running at the deadline is abandoned."""
        adapter = SlowOpenAIAdapter(primary_delay=0.05)
        deadline = asyncio.get_running_loop().time() + 0.3

        with caplog.at_level(logging.WARNING):
            answer = await asyncio.wait_for(adapter.ask(TOPIC, deadline=deadline), 2.0)

        assert answer.answer_text == "1. Acme is the best CRM."
        assert answer.follow_up_text is None
        assert answer.raw_source_hints == ()
        assert "follow-up ran out of time" in caplog.text

    @pytest.mark.asyncio
    async def test_default_deadline_bounds_follow_up(self):
        """Test that without a deadline the follow-up is bounded by the adapter budget."""
        adapter = SlowOpenAIAdapter(timeout_seconds=0.2, max_retries=0)

        answer = await asyncio.wait_for(adapter.ask(TOPIC), 2.0)

        assert answer.answer_text == "1. Acme is the best CRM."
        assert answer.follow_up_text is None

    @pytest.mark.asyncio
    async def test_late_primary_answer_times_out(self):
        """Test that a primary answer missing the deadline raises ProviderTimeoutError."""
        adapter = SlowOpenAIAdapter(primary_delay=5.0)
        deadline = asyncio.get_running_loop().time() + 0.05

        with pytest.raises(ProviderTimeoutError, match="missed the scan deadline"):
            await asyncio.wait_for(adapter.ask(TOPIC, deadline=deadline), 2.0)


class TestAskValidation:
    """Test suite for topic and answer validation."""

    @pytest.mark.asyncio
    async def test_empty_topic(self, adapter):
        """Test that an empty topic raises ValueError without a request."""
        with pytest.raises(ValueError, match="topic cannot be empty"):
            await adapter.ask("   ")

    @pytest.mark.asyncio
    async def test_topic_too_long(self, adapter):
        """Test that an oversized topic raises ValueError."""
        with pytest.raises(ValueError, match="topic exceeds maximum length"):
            await adapter.ask("x" * 2001)

    @pytest.mark.asyncio
    async def test_empty_answer(self, httpx_mock, adapter):
        """Test that an empty answer raises EmptyAnswerError."""
        httpx_mock.add_response(json=completion(""))

        with pytest.raises(EmptyAnswerError, match="empty answer") as exc_info:
            await adapter.ask(TOPIC)

        assert exc_info.value.provider == "chatgpt"

    @pytest.mark.asyncio
    async def test_null_content(self, httpx_mock, adapter):
        """Test that a null message content is an empty answer."""
        httpx_mock.add_response(json=completion(None))

        with pytest.raises(EmptyAnswerError):
            await adapter.ask(TOPIC)

    @pytest.mark.asyncio
    async def test_missing_choices(self, httpx_mock, adapter):
        """Test that a response without choices raises ProviderResponseError."""
        httpx_mock.add_response(json={"choices": []})

        with pytest.raises(ProviderResponseError, match="missing expected fields"):
            await adapter.ask(TOPIC)

    @pytest.mark.asyncio
    async def test_invalid_json(self, httpx_mock, adapter):
        """Test that a non-JSON body raises ProviderResponseError."""
        httpx_mock.add_response(text="<html>gateway</html>")

        with pytest.raises(ProviderResponseError, match="Failed to parse OpenAI response JSON"):
            await adapter.ask(TOPIC)


class TestAskErrors:
    """Test suite for HTTP and transport errors."""

    @pytest.mark.asyncio
    async def test_401_fails_fast(self, httpx_mock):
        """Test that 401 raises ProviderAuthenticationError without retrying."""
        httpx_mock.add_response(
            status_code=401, json={"error": {"message": "Incorrect API key"}}
        )
        adapter = OpenAIAdapter(model_name="gpt-4o-mini", api_key="sk-test123", max_retries=3)

        with pytest.raises(ProviderAuthenticationError, match="Incorrect API key"):
            await adapter.ask(TOPIC)

        assert len(httpx_mock.get_requests()) == 1

    @pytest.mark.asyncio
    async def test_400_fails_fast(self, httpx_mock):
        """Test that 400 raises ProviderResponseError without retrying."""
        httpx_mock.add_response(status_code=400, json={"error": "bad request"})
        adapter = OpenAIAdapter(model_name="gpt-4o-mini", api_key="sk-test123", max_retries=3)

        with pytest.raises(ProviderResponseError, match=r"non-retryable\): status=400"):
            await adapter.ask(TOPIC)

        assert len(httpx_mock.get_requests()) == 1

    @pytest.mark.asyncio
    async def test_retry_then_success(self, httpx_mock):
        """Test that a 500 is retried and the second attempt succeeds."""
        httpx_mock.add_response(status_code=500, json={"error": {"message": "boom"}})
        httpx_mock.add_response(json=completion("See https://hubspot.com/crm"))
        adapter = OpenAIAdapter(model_name="gpt-4o-mini", api_key="sk-test123", max_retries=1)

        answer = await adapter.ask(TOPIC)

        assert answer.answer_text == "See https://hubspot.com/crm"
        assert len(httpx_mock.get_requests()) == 2

    @pytest.mark.asyncio
    async def test_server_error_after_retries(self, httpx_mock):
        """Test that persistent 5xx raises ProviderResponseError after all attempts."""
        httpx_mock.add_response(status_code=503, is_reusable=True)
        adapter = OpenAIAdapter(model_name="gpt-4o-mini", api_key="sk-test123", max_retries=1)

        with pytest.raises(ProviderResponseError, match="after 2 attempt"):
            await adapter.ask(TOPIC)

        assert len(httpx_mock.get_requests()) == 2

    @pytest.mark.asyncio
    async def test_rate_limit(self, httpx_mock, adapter):
        """Test that 429 raises ProviderRateLimitError once retries are exhausted."""
        httpx_mock.add_response(status_code=429, json={"error": {"message": "slow down"}})

        with pytest.raises(ProviderRateLimitError, match="status=429"):
            await adapter.ask(TOPIC)

    @pytest.mark.asyncio
    async def test_timeout(self, httpx_mock, adapter):
        """Test that a read timeout raises ProviderTimeoutError."""
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"))

        with pytest.raises(ProviderTimeoutError, match="timeout"):
            await adapter.ask(TOPIC)

    @pytest.mark.asyncio
    async def test_connection_error(self, httpx_mock, adapter):
        """Test that a connection failure raises ProviderConnectionError."""
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))

        with pytest.raises(ProviderConnectionError) as exc_info:
            await adapter.ask(TOPIC)

        assert exc_info.value.provider == "chatgpt"

    @pytest.mark.asyncio
    async def test_errors_never_log_api_key(self, httpx_mock, caplog):
        """Test that error paths never log the API key."""
        httpx_mock.add_response(status_code=500, is_reusable=True)
        adapter = OpenAIAdapter(
            model_name="gpt-4o-mini", api_key="sk-secret-key-456", max_retries=0
        )

        with caplog.at_level(logging.DEBUG), pytest.raises(ProviderResponseError):
            await adapter.ask(TOPIC)

        assert "sk-secret-key-456" not in caplog.text
