"""
Brand mention analysis for LLM Mention Scanner.

Turns one provider answer into a MentionAnalysis: whether the brand is
mentioned, its rank position, a heuristic confidence score and the sentence
it was found in.

Key features:
- Lenient case-insensitive substring matching ("Corp" matches "Corporate")
- Relevance filter discarding generic enumerations (see extractor.relevance)
- Position extraction with priority-ordered heuristics (see extractor.rank_extractor)
- Keyword, quotation and rank based confidence scoring

Security:
- Always uses re.escape() on the brand name to prevent regex injection

Example:
    >>> analysis = analyze_mention(
    ...     "The best tools are Acme, Zenith, and Corp.",
    ...     "Corp",
    ...     topic="best project management tools",
    ... )
    >>> analysis.mentioned, analysis.position, analysis.confidence
    (True, 3, 0.67)
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass

from llm_mention_scanner.config.constants import (
    MAX_CONTEXT_SNIPPET_LENGTH,
    MAX_TRACKED_POSITION,
)
from llm_mention_scanner.extractor.rank_extractor import (
    extract_position,
    sentence_bounds,
)
from llm_mention_scanner.extractor.relevance import (
    DEFAULT_RELEVANCE_CATEGORIES,
    GenericCategory,
    is_generic_occurrence,
)

# ============================================================================
# CONFIDENCE SCORING
# ============================================================================

BASE_CONFIDENCE = 0.5

POSITIVE_KEYWORDS = (
    "best",
    "excellent",
    "amazing",
    "great",
    "top",
    "premium",
    "quality",
    "recommended",
    "outstanding",
    "superior",
    "leading",
    "innovative",
)

NEGATIVE_KEYWORDS = (
    "worst",
    "bad",
    "poor",
    "terrible",
    "avoid",
    "disappointing",
    "inferior",
    "subpar",
    "unreliable",
)

KEYWORD_WEIGHT = 0.1
MAX_POSITIVE_BONUS = 0.3
QUOTED_MENTION_BONUS = 0.2
POSITION_BONUS_WEIGHT = 0.1

_POSITIVE_PATTERNS = tuple(
    re.compile(rf"\b{keyword}\b", re.IGNORECASE) for keyword in POSITIVE_KEYWORDS
)
_NEGATIVE_PATTERNS = tuple(
    re.compile(rf"\b{keyword}\b", re.IGNORECASE) for keyword in NEGATIVE_KEYWORDS
)


@dataclass(frozen=True)
class MentionAnalysis:
    """
    Result of analyzing one answer for one brand.

    Attributes:
        mentioned: Brand found after relevance filtering
        position: Rank in 1..10, None when unknown or not mentioned
        confidence: Heuristic score in [0.0, 1.0], 0.0 when not mentioned
        context_snippet: Sentence holding the first relevant mention
    """

    mentioned: bool
    position: int | None = None
    confidence: float = 0.0
    context_snippet: str | None = None

    def __post_init__(self):
        """Validate position range, confidence range and mention consistency."""
        if self.position is not None:
            if not self.mentioned:
                raise ValueError("position must be None when brand is not mentioned")
            if not 1 <= self.position <= MAX_TRACKED_POSITION:
                raise ValueError(
                    f"position must be in range [1, {MAX_TRACKED_POSITION}], "
                    f"got: {self.position}"
                )
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(
                f"confidence must be in range [0.0, 1.0], got: {self.confidence}"
            )


NOT_MENTIONED = MentionAnalysis(mentioned=False)


def find_occurrences(answer_text: str, brand_name: str) -> list[int]:
    """
    Return start offsets of every case-insensitive occurrence of brand_name.

    No word boundaries: a brand inside a longer word still counts.

    Example:
        >>> find_occurrences("Acme and ACME Corp", "acme")
        [0, 9]
    """
    pattern = re.compile(re.escape(brand_name), re.IGNORECASE)
    return [match.start() for match in pattern.finditer(answer_text)]


def is_quoted(answer_text: str, brand_name: str) -> bool:
    """
    Tell whether the brand appears wrapped in quotes.

    Straight and curly, double and single quotes all count.

    Example:
        >>> is_quoted('Many call "Acme" the industry leader.', "acme")
        True
    """
    pattern = re.compile(
        r"[\"'“‘]\s*" + re.escape(brand_name) + r"\s*[\"'”’]",
        re.IGNORECASE,
    )
    return pattern.search(answer_text) is not None


def score_confidence(answer_text: str, brand_name: str, position: int | None) -> float:
    """
    Compute the heuristic confidence for a mentioned brand.

    Start at 0.5; +0.1 per distinct positive keyword (bonus capped at +0.3);
    -0.1 per distinct negative keyword; +0.2 for a quoted mention;
    +0.1 x (10 - position) / 10 when a position is known. Clamped to [0, 1].

    Example:
        >>> score_confidence('Many call "Acme" the industry leader.', "Acme", None)
        0.7
    """
    positives = sum(1 for pattern in _POSITIVE_PATTERNS if pattern.search(answer_text))
    negatives = sum(1 for pattern in _NEGATIVE_PATTERNS if pattern.search(answer_text))

    confidence = BASE_CONFIDENCE
    confidence += min(positives * KEYWORD_WEIGHT, MAX_POSITIVE_BONUS)
    confidence -= negatives * KEYWORD_WEIGHT

    if is_quoted(answer_text, brand_name):
        confidence += QUOTED_MENTION_BONUS

    if position is not None:
        confidence += (
            POSITION_BONUS_WEIGHT * (MAX_TRACKED_POSITION - position) / MAX_TRACKED_POSITION
        )

    return round(max(0.0, min(1.0, confidence)), 4)


def context_snippet_at(answer_text: str, index: int) -> str:
    """Return the sentence containing answer_text[index], trimmed for storage."""
    start, end = sentence_bounds(answer_text, index)
    snippet = answer_text[start:end].strip()
    if len(snippet) > MAX_CONTEXT_SNIPPET_LENGTH:
        snippet = snippet[:MAX_CONTEXT_SNIPPET_LENGTH].rstrip()
    return snippet


def analyze_mention(
    answer_text: str,
    brand_name: str,
    topic: str | None = None,
    categories: Sequence[GenericCategory] | None = None,
) -> MentionAnalysis:
    """
    Analyze an answer for mentions of a brand.

    Args:
        answer_text: Provider answer
        brand_name: Brand to look for (case-insensitive, substring match)
        topic: Topic the answer responds to. Enables the relevance filter;
            without a topic every occurrence counts as relevant.
        categories: Relevance category table, defaults to
            DEFAULT_RELEVANCE_CATEGORIES

    Returns:
        MentionAnalysis. An unmentioned brand always yields
        (False, None, 0.0, None).

    Raises:
        ValueError: If brand_name is empty

    Examples:
        >>> analyze_mention("1. Google, 2. Bing, 3. DuckDuckGo", "Bing").position
        2
        >>> analyze_mention("Nothing relevant here.", "Acme").mentioned
        False
    """
    if not brand_name or brand_name.isspace():
        raise ValueError("brand_name cannot be empty")

    if not answer_text:
        return NOT_MENTIONED

    brand_name = brand_name.strip()
    occurrences = find_occurrences(answer_text, brand_name)
    if not occurrences:
        return NOT_MENTIONED

    if topic is not None:
        table = DEFAULT_RELEVANCE_CATEGORIES if categories is None else categories
        occurrences = [
            index
            for index in occurrences
            if not is_generic_occurrence(answer_text, index, topic, table)
        ]
        if not occurrences:
            return NOT_MENTIONED

    position = extract_position(answer_text, occurrences)

    return MentionAnalysis(
        mentioned=True,
        position=position,
        confidence=score_confidence(answer_text, brand_name, position),
        context_snippet=context_snippet_at(answer_text, occurrences[0]),
    )
