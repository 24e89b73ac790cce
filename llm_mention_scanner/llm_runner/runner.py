"""
Scan orchestration engine for LLM Mention Scanner.

This module implements run_scan(), the single entry point the surrounding
application calls: ask every configured provider the topic concurrently,
analyze each answer for the brand, and roll the results up into a ScanBatch.

Key responsibilities:
- Resolve the topic (falling back to a keyword-derived question)
- Fan out one task per provider, all started before any is awaited
- Bound each provider by timeout x (1 + retries)
- Turn any provider failure into a zero-confidence, unmentioned result
- Analyze answers and extract sources
- Aggregate positions across providers
- Hand the finished batch to an optional result sink

Example:
    >>> from llm_mention_scanner.config.loader import load_config
    >>> config = load_config("examples/scanner.config.yaml")
    >>> request = ScanRequest(
    ...     requester_id="user-42",
    ...     brand_name="HubSpot",
    ...     topic="What are the best CRM tools for startups?",
    ... )
    >>> batch = await scan_with_config(request, config)
    >>> batch.aggregate.avg_position
    2.0

Architecture:
    Providers share nothing but the HTTP connection pool. Results are merged
    only after asyncio.gather() has collected every outcome, and the sink
    write happens once, sequentially, after the join.
"""

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import httpx

from ..config.constants import FAILED_SCAN_ANSWER_TEXT, MAX_TOPIC_LENGTH
from ..config.schema import RuntimeConfig, ScanSettings
from ..exceptions import ProviderTimeoutError, ResultPersistenceError
from ..extractor.mention_analyzer import analyze_mention
from ..extractor.relevance import GenericCategory
from ..extractor.url_extractor import (
    SourceReference,
    extract_sources,
    sources_from_hints,
)
from ..storage.sink import ResultSink, SQLiteResultSink
from ..utils.logging import log_with_context
from ..utils.time import scan_id_from_timestamp, utc_now, utc_timestamp
from .models import ProviderAdapter, ProviderAnswer, build_adapter

logger = logging.getLogger(__name__)

# Short topics that are still meaningful questions on their own
ACCEPTED_SHORT_TOPICS = frozenset(["ai", "seo", "web", "app", "api"])
MIN_TOPIC_LENGTH = 5

KEYWORD_TOPIC_TEMPLATE = "What are the best {keyword} tools and services?"

# Extra time given to an adapter past its deadline before it is cancelled
DEADLINE_GRACE_SECONDS = 1.0


# ============================================================================
# DATA MODEL
# ============================================================================


@dataclass(frozen=True)
class ScanRequest:
    """
    One request to scan providers for a brand.

    Attributes:
        requester_id: Opaque owner of the scan (user, project, tenant)
        brand_name: Brand to look for in answers
        topic: Question sent to every provider
        provider_set: Provider names to query, in result order. Empty means
            every configured adapter.
        keyword: Tracked keyword the topic was derived from; used to rebuild
            a usable topic when the stored one is blank or truncated
    """

    requester_id: str
    brand_name: str
    topic: str
    provider_set: tuple[str, ...] = ()
    keyword: str | None = None

    def __post_init__(self):
        """Validate identifiers and normalize provider_set to a tuple."""
        if not self.requester_id or self.requester_id.isspace():
            raise ValueError("requester_id cannot be empty")

        if not self.brand_name or self.brand_name.isspace():
            raise ValueError("brand_name cannot be empty")

        object.__setattr__(self, "provider_set", tuple(self.provider_set))


@dataclass
class ScanResult:
    """
    Outcome of one provider for one scan.

    A provider that failed (transport error, empty answer, timeout) yields
    brand_mentioned=False, position=None, confidence=0.0, no sources and
    answer_text "Scan failed due to API error". The failure itself is only
    visible in the logs.

    Attributes:
        provider_name: Provider that produced the result
        query: Topic sent to the provider
        brand_mentioned: Brand found after relevance filtering
        position: Rank in 1..10 or None
        answer_text: Provider answer (or the failure marker)
        context_snippet: Sentence holding the first relevant mention
        sources: At most two cited sources
        duration_ms: Wall-clock time spent on this provider
        confidence: Heuristic score in [0.0, 1.0]
    """

    provider_name: str
    query: str
    brand_mentioned: bool
    position: int | None
    answer_text: str
    context_snippet: str | None
    sources: list[SourceReference]
    duration_ms: int
    confidence: float


@dataclass
class ScanAggregate:
    """
    Cross-provider roll-up of one scan.

    Attributes:
        avg_position: Mean position over mentioned results with a position,
            None if there are none
        per_provider_position: Position per tracked provider (None when the
            provider is absent, failed, or did not rank the brand)
    """

    avg_position: float | None
    per_provider_position: dict[str, int | None] = field(default_factory=dict)


@dataclass
class ScanBatch:
    """
    All results of one scan.

    Attributes:
        scan_id: Sortable identifier (timestamp plus random suffix)
        request: The request that was scanned
        topic: Topic actually sent to providers
        results: One result per selected provider, in selection order
        aggregate: Cross-provider roll-up
        started_at: ISO 8601 UTC timestamp when dispatch began
        completed_at: ISO 8601 UTC timestamp when every provider settled
    """

    scan_id: str
    request: ScanRequest
    topic: str
    results: list[ScanResult]
    aggregate: ScanAggregate
    started_at: str
    completed_at: str


# ============================================================================
# TOPIC RESOLUTION
# ============================================================================


def resolve_scan_topic(topic: str | None, keyword: str | None = None) -> str:
    """
    Return a usable topic, rebuilding it from the keyword when it is corrupt.

    A topic is corrupt when it is blank, or shorter than 5 characters and
    not one of the accepted short terms (ai, seo, web, app, api).

    Args:
        topic: Stored topic text
        keyword: Tracked keyword the topic derives from

    Returns:
        The stripped topic, or "What are the best {keyword} tools and services?"

    Raises:
        ValueError: If the topic is corrupt and no usable keyword (more than
            2 characters) is available, or the topic is too long

    Examples:
        >>> resolve_scan_topic("best CRM tools")
        'best CRM tools'
        >>> resolve_scan_topic("cr", keyword="CRM software")
        'What are the best CRM software tools and services?'
    """
    cleaned = (topic or "").strip()

    if len(cleaned) > MAX_TOPIC_LENGTH:
        raise ValueError(
            f"topic exceeds maximum length of {MAX_TOPIC_LENGTH:,} characters"
        )

    if len(cleaned) >= MIN_TOPIC_LENGTH or cleaned.lower() in ACCEPTED_SHORT_TOPICS:
        return cleaned

    keyword = (keyword or "").strip()
    if len(keyword) <= 2:
        raise ValueError(
            f"topic {cleaned!r} is too short and no keyword is available to rebuild it"
        )

    return KEYWORD_TOPIC_TEMPLATE.format(keyword=keyword)


# ============================================================================
# PER-PROVIDER EXECUTION
# ============================================================================


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _failed_result(provider_name: str, topic: str, duration_ms: int) -> ScanResult:
    return ScanResult(
        provider_name=provider_name,
        query=topic,
        brand_mentioned=False,
        position=None,
        answer_text=FAILED_SCAN_ANSWER_TEXT,
        context_snippet=None,
        sources=[],
        duration_ms=duration_ms,
        confidence=0.0,
    )


def collect_sources(
    answer: ProviderAnswer, observed_date: str | None = None
) -> list[SourceReference]:
    """
    Pick the sources for an answer.

    Structured citations win; otherwise URLs from the follow-up answer;
    otherwise URLs found in the answer text itself.
    """
    sources = sources_from_hints(answer.raw_source_hints, observed_date)
    if not sources and answer.follow_up_text:
        sources = extract_sources(answer.follow_up_text, observed_date)
    if not sources:
        sources = extract_sources(answer.answer_text, observed_date)
    return sources


async def _scan_provider(
    provider_name: str,
    adapter: ProviderAdapter | None,
    request: ScanRequest,
    topic: str,
    categories: Sequence[GenericCategory],
    deadline_seconds: float,
    scan_id: str,
) -> ScanResult:
    """
    Ask one provider and analyze its answer.

    Never raises for provider problems: a missing adapter, a timeout or any
    adapter exception becomes a failed result.
    """
    started = time.monotonic()

    if adapter is None:
        log_with_context(
            logger,
            logging.ERROR,
            f"No adapter configured for provider={provider_name}",
            context={"provider": provider_name},
            scan_id=scan_id,
        )
        return _failed_result(provider_name, topic, _elapsed_ms(started))

    deadline = asyncio.get_running_loop().time() + deadline_seconds

    try:
        # Adapters enforce the deadline themselves; the outer cap only
        # catches one that overruns it
        answer = await asyncio.wait_for(
            adapter.ask(topic, deadline=deadline),
            timeout=deadline_seconds + DEADLINE_GRACE_SECONDS,
        )
    except (TimeoutError, ProviderTimeoutError) as e:
        log_with_context(
            logger,
            logging.ERROR,
            f"Provider timed out: provider={provider_name}, "
            f"deadline={deadline_seconds}s, error={type(e).__name__}",
            context={"provider": provider_name},
            scan_id=scan_id,
        )
        return _failed_result(provider_name, topic, _elapsed_ms(started))
    except Exception as e:
        logger.error(
            f"Provider failed: provider={provider_name}, error={e}",
            exc_info=True,
            extra={"scan_id": scan_id, "context": {"provider": provider_name}},
        )
        return _failed_result(provider_name, topic, _elapsed_ms(started))

    analysis = analyze_mention(
        answer.answer_text,
        request.brand_name,
        topic=topic,
        categories=categories,
    )
    sources = collect_sources(answer, observed_date=utc_timestamp())
    duration_ms = _elapsed_ms(started)

    log_with_context(
        logger,
        logging.INFO,
        f"Provider answered: provider={provider_name}, "
        f"mentioned={analysis.mentioned}, position={analysis.position}",
        context={
            "provider": provider_name,
            "duration_ms": duration_ms,
            "sources": len(sources),
        },
        scan_id=scan_id,
    )

    return ScanResult(
        provider_name=provider_name,
        query=topic,
        brand_mentioned=analysis.mentioned,
        position=analysis.position,
        answer_text=answer.answer_text,
        context_snippet=analysis.context_snippet,
        sources=sources,
        duration_ms=duration_ms,
        confidence=analysis.confidence,
    )


# ============================================================================
# AGGREGATION
# ============================================================================


def aggregate_results(
    results: Sequence[ScanResult], tracked_providers: Sequence[str]
) -> ScanAggregate:
    """
    Roll results up into average and per-provider positions.

    Only mentioned results with a position count toward the average. Every
    tracked provider gets a slot, even when it was not part of the scan.
    """
    positions = [
        r.position for r in results if r.brand_mentioned and r.position is not None
    ]
    avg_position = sum(positions) / len(positions) if positions else None

    by_provider = {r.provider_name: r for r in results}
    per_provider_position = {}
    for name in tracked_providers:
        result = by_provider.get(name)
        per_provider_position[name] = (
            result.position if result is not None and result.brand_mentioned else None
        )

    return ScanAggregate(
        avg_position=avg_position,
        per_provider_position=per_provider_position,
    )


# ============================================================================
# ENTRY POINTS
# ============================================================================


async def run_scan(
    request: ScanRequest,
    adapters: Mapping[str, ProviderAdapter],
    settings: ScanSettings | None = None,
    sink: ResultSink | None = None,
    categories: Sequence[GenericCategory] | None = None,
) -> ScanBatch:
    """
    Scan every selected provider concurrently and aggregate the results.

    Args:
        request: What to scan
        adapters: Provider name -> adapter
        settings: Timeouts, retries and tracked providers (defaults apply)
        sink: Optional result sink, called once with the finished batch
        categories: Relevance category table, defaults to settings.categories()

    Returns:
        ScanBatch with exactly one result per selected provider

    Raises:
        ValueError: If the topic cannot be resolved or nothing is selected
        ResultPersistenceError: If the sink fails; the finished batch is
            attached as .batch
    """
    settings = settings or ScanSettings()
    categories = settings.categories() if categories is None else categories

    topic = resolve_scan_topic(request.topic, request.keyword)
    provider_names = list(request.provider_set or adapters.keys())
    if not provider_names:
        raise ValueError("No providers selected and no adapters configured")

    scan_id = scan_id_from_timestamp()
    started_at = utc_timestamp(utc_now())
    deadline_seconds = settings.adapter_timeout_seconds * (1 + settings.max_retries)

    if topic != (request.topic or "").strip():
        log_with_context(
            logger,
            logging.WARNING,
            f"Topic rebuilt from keyword: {topic!r}",
            context={"original_topic": request.topic, "keyword": request.keyword},
            scan_id=scan_id,
        )

    log_with_context(
        logger,
        logging.INFO,
        f"Scan started: brand={request.brand_name}, "
        f"providers={', '.join(provider_names)}",
        context={"requester_id": request.requester_id},
        scan_id=scan_id,
    )

    tasks = [
        _scan_provider(
            provider_name=name,
            adapter=adapters.get(name),
            request=request,
            topic=topic,
            categories=categories,
            deadline_seconds=deadline_seconds,
            scan_id=scan_id,
        )
        for name in provider_names
    ]
    outcomes = await asyncio.gather(*tasks, return_exceptions=True)

    results: list[ScanResult] = []
    for name, outcome in zip(provider_names, outcomes, strict=True):
        if isinstance(outcome, BaseException):
            logger.error(
                f"Provider task crashed: provider={name}, error={outcome}",
                exc_info=outcome,
                extra={"scan_id": scan_id},
            )
            outcome = _failed_result(name, topic, 0)
        results.append(outcome)

    aggregate = aggregate_results(results, settings.tracked_providers)
    batch = ScanBatch(
        scan_id=scan_id,
        request=request,
        topic=topic,
        results=results,
        aggregate=aggregate,
        started_at=started_at,
        completed_at=utc_timestamp(),
    )

    mentioned = sum(1 for r in results if r.brand_mentioned)
    log_with_context(
        logger,
        logging.INFO,
        f"Scan completed: {mentioned}/{len(results)} providers mention "
        f"{request.brand_name}, avg_position={aggregate.avg_position}",
        context={"per_provider_position": aggregate.per_provider_position},
        scan_id=scan_id,
    )

    if sink is not None:
        try:
            sink.persist_results(batch)
        except Exception as e:
            logger.error(
                f"Failed to persist scan results: {e}",
                exc_info=True,
                extra={"scan_id": scan_id},
            )
            raise ResultPersistenceError(
                f"Scan {scan_id} completed but results could not be saved: {e}",
                batch=batch,
            ) from e

    return batch


def build_adapters(
    config: RuntimeConfig, http_client: httpx.AsyncClient | None = None
) -> dict[str, ProviderAdapter]:
    """Create one adapter per configured provider, keyed by provider name."""
    settings = config.scan_settings
    return {
        provider.name: build_adapter(
            provider=provider.provider,
            name=provider.name,
            model_name=provider.model_name,
            api_key=provider.api_key,
            base_url=provider.base_url,
            timeout_seconds=settings.adapter_timeout_seconds,
            max_retries=settings.max_retries,
            http_client=http_client,
        )
        for provider in config.providers
    }


async def scan_with_config(
    request: ScanRequest,
    config: RuntimeConfig,
    sink: ResultSink | None = None,
) -> ScanBatch:
    """
    Run a scan with adapters built from a loaded RuntimeConfig.

    All adapters share one httpx.AsyncClient for the duration of the scan.
    When no sink is given and scan_settings.sqlite_db_path is set, results
    are stored with SQLiteResultSink.
    """
    settings = config.scan_settings

    if sink is None and settings.sqlite_db_path:
        sink = SQLiteResultSink(settings.sqlite_db_path)

    async with httpx.AsyncClient(timeout=settings.adapter_timeout_seconds) as client:
        adapters = build_adapters(config, http_client=client)
        return await run_scan(request, adapters, settings=settings, sink=sink)
