"""
Tests for llm_runner.mock_client module.

Tests cover:
- MockAdapter initialization
- Configured and default answers
- Configured errors, empty answers and delays
- Topic recording
"""

import asyncio
import time

import pytest

from llm_mention_scanner.exceptions import (
    EmptyAnswerError,
    ProviderConnectionError,
    ProviderTimeoutError,
)
from llm_mention_scanner.llm_runner.mock_client import MockAdapter
from llm_mention_scanner.llm_runner.models import ProviderAdapter, SourceHint


class TestMockAdapterInit:
    """Test suite for MockAdapter initialization."""

    def test_defaults(self):
        """Test default attribute values."""
        adapter = MockAdapter()

        assert adapter.name == "mock"
        assert adapter.answers == {}
        assert adapter.asked == []

    def test_empty_name(self):
        """Test that an empty name raises ValueError."""
        with pytest.raises(ValueError, match="name cannot be empty"):
            MockAdapter(name="")

    def test_satisfies_protocol(self):
        """Test that MockAdapter is usable where a ProviderAdapter is expected."""
        adapter: ProviderAdapter = MockAdapter(name="chatgpt")

        assert adapter.name == "chatgpt"


class TestMockAdapterAsk:
    """Test suite for MockAdapter.ask."""

    @pytest.mark.asyncio
    async def test_configured_answer(self):
        """Test that a configured topic returns its answer."""
        hint = SourceHint(url="https://hubspot.com")
        adapter = MockAdapter(
            name="gemini",
            answers={"best CRM": "1. HubSpot"},
            source_hints=(hint,),
            follow_up_text="More at https://hubspot.com",
        )

        answer = await adapter.ask("best CRM")

        assert answer.provider_name == "gemini"
        assert answer.answer_text == "1. HubSpot"
        assert answer.raw_source_hints == (hint,)
        assert answer.follow_up_text == "More at https://hubspot.com"
        assert answer.model_name == "mock-model"

    @pytest.mark.asyncio
    async def test_default_answer(self):
        """Test that unknown topics get the default answer."""
        answer = await MockAdapter().ask("anything")

        assert answer.answer_text == "Mock provider answer."

    @pytest.mark.asyncio
    async def test_records_topics(self):
        """Test that every asked topic is recorded in order."""
        adapter = MockAdapter()

        await adapter.ask("first topic")
        await adapter.ask("second topic")

        assert adapter.asked == ["first topic", "second topic"]

    @pytest.mark.asyncio
    async def test_configured_error(self):
        """Test that a configured error is raised."""
        adapter = MockAdapter(
            name="gemini", error=ProviderConnectionError("network down", provider="gemini")
        )

        with pytest.raises(ProviderConnectionError, match="network down"):
            await adapter.ask("best CRM")

        assert adapter.asked == ["best CRM"]

    @pytest.mark.asyncio
    async def test_empty_answer(self):
        """Test that an empty configured answer raises EmptyAnswerError."""
        adapter = MockAdapter(default_answer="  ")

        with pytest.raises(EmptyAnswerError):
            await adapter.ask("best CRM")

    @pytest.mark.asyncio
    async def test_empty_topic(self):
        """Test that an empty topic raises ValueError."""
        with pytest.raises(ValueError, match="topic cannot be empty"):
            await MockAdapter().ask("")

    @pytest.mark.asyncio
    async def test_delay(self):
        """Test that delay_seconds delays the answer."""
        adapter = MockAdapter(delay_seconds=0.05)

        start = time.monotonic()
        await adapter.ask("slow topic")

        assert time.monotonic() - start >= 0.04

    @pytest.mark.asyncio
    async def test_delay_can_be_cancelled(self):
        """Test that a delayed ask can be cut off by a deadline."""
        adapter = MockAdapter(delay_seconds=1.0)

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(adapter.ask("slow topic"), timeout=0.01)

    @pytest.mark.asyncio
    async def test_delay_past_deadline(self):
        """Test that a delay running past the deadline raises ProviderTimeoutError."""
        adapter = MockAdapter(name="gemini", delay_seconds=1.0)
        deadline = asyncio.get_running_loop().time() + 0.01

        with pytest.raises(ProviderTimeoutError) as exc_info:
            await adapter.ask("slow topic", deadline=deadline)

        assert exc_info.value.provider == "gemini"
