"""
Mock provider adapter for testing.

Provides MockAdapter that implements the ProviderAdapter protocol without
making real API calls. Used for deterministic testing of the scan pipeline
and for offline demos.

Example:
    >>> adapter = MockAdapter(
    ...     name="chatgpt",
    ...     answers={"best CRM tools": "1. HubSpot 2. Salesforce"},
    ... )
    >>> answer = await adapter.ask("best CRM tools")
    >>> answer.answer_text
    '1. HubSpot 2. Salesforce'

Failure example:
    >>> adapter = MockAdapter(
    ...     name="gemini",
    ...     error=ProviderConnectionError("network down", provider="gemini"),
    ... )
    >>> await adapter.ask("best CRM tools")
    Traceback (most recent call last):
    ...
    ProviderConnectionError: network down
"""

import asyncio
import logging
from dataclasses import dataclass, field

from llm_mention_scanner.exceptions import EmptyAnswerError, ProviderTimeoutError
from llm_mention_scanner.llm_runner.models import ProviderAnswer, SourceHint

logger = logging.getLogger(__name__)


@dataclass
class MockAdapter:
    """
    Mock adapter returning configured answers.

    Attributes:
        name: Result key reported on every answer
        answers: Dict mapping topics to answers. Unknown topics get default_answer.
        default_answer: Answer for topics not in answers
        source_hints: Citations attached to every answer
        follow_up_text: Reported as the source follow-up answer
        error: Exception raised by ask() instead of answering
        delay_seconds: Simulated latency before answering (or failing)
        model_name: Model identifier reported on every answer
        asked: Topics received, in call order
    """

    name: str = "mock"
    answers: dict[str, str] = field(default_factory=dict)
    default_answer: str = "Mock provider answer."
    source_hints: tuple[SourceHint, ...] = ()
    follow_up_text: str | None = None
    error: Exception | None = None
    delay_seconds: float = 0.0
    model_name: str = "mock-model"
    asked: list[str] = field(default_factory=list)

    def __post_init__(self):
        """Validate name and log configured answers."""
        if not self.name or self.name.isspace():
            raise ValueError("name cannot be empty")

        logger.info(
            f"Initialized MockAdapter '{self.name}' with "
            f"{len(self.answers)} configured answers"
        )

    async def ask(self, topic: str, deadline: float | None = None) -> ProviderAnswer:
        """
        Return the configured answer for the topic.

        Raises:
            ValueError: If topic is empty
            EmptyAnswerError: If the configured answer is empty
            ProviderTimeoutError: If the delay runs past deadline
            Exception: The configured error, if any
        """
        if not topic or topic.isspace():
            raise ValueError("topic cannot be empty")

        self.asked.append(topic)

        if self.delay_seconds > 0:
            try:
                async with asyncio.timeout_at(deadline):
                    await asyncio.sleep(self.delay_seconds)
            except TimeoutError as e:
                raise ProviderTimeoutError(
                    f"MockAdapter '{self.name}' missed the scan deadline",
                    provider=self.name,
                ) from e

        if self.error is not None:
            raise self.error

        answer_text = self.answers.get(topic, self.default_answer)
        if not answer_text or answer_text.isspace():
            raise EmptyAnswerError(
                f"MockAdapter '{self.name}' has an empty answer", provider=self.name
            )

        logger.debug(f"MockAdapter '{self.name}' answering topic: {topic[:50]}")

        return ProviderAnswer(
            provider_name=self.name,
            answer_text=answer_text,
            raw_source_hints=tuple(self.source_hints),
            follow_up_text=self.follow_up_text,
            model_name=self.model_name,
        )
