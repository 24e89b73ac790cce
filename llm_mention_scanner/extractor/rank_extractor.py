"""
Rank position extraction for LLM Mention Scanner.

Estimates the 1-based position of a brand inside whatever enumeration an
answer uses. Providers format lists inconsistently, so several heuristics
are tried in priority order and the first one that yields a number wins:

1. Numbered markers: "1. Acme" / "2) Acme", earlier in the same clause
2. Ordinal words: "first ... Acme" through "tenth ... Acme", same clause
3. Comma enumeration: index among the comma-separated items of the sentence
4. Bullet enumeration: index among bullet-separated segments of the text

A raw position above MAX_TRACKED_POSITION is reported as None; it does not
fall through to the next heuristic.

Example:
    >>> text = "1. Google, 2. Bing, 3. DuckDuckGo"
    >>> extract_position(text, [text.index("Bing")])
    2
"""

import re
from collections.abc import Callable, Sequence

from llm_mention_scanner.config.constants import MAX_TRACKED_POSITION

# "3. " or "3) " not glued to a preceding word, digit or dot ("v2.", "3.5")
NUMBERED_MARKER_PATTERN = re.compile(r"(?<![\w.])(\d{1,3})[.)]\s+")

ORDINAL_WORDS = {
    "first": 1,
    "second": 2,
    "third": 3,
    "fourth": 4,
    "fifth": 5,
    "sixth": 6,
    "seventh": 7,
    "eighth": 8,
    "ninth": 9,
    "tenth": 10,
}

ORDINAL_PATTERN = re.compile(
    r"\b(" + "|".join(ORDINAL_WORDS) + r")\b",
    re.IGNORECASE,
)

# A period only ends a clause when it is not part of a "2." list marker
CLAUSE_BREAK_PATTERN = re.compile(r"[,;:!?\n]|(?<!\d)\.(?=\s|$)")

SENTENCE_BREAK_PATTERN = re.compile(r"(?<=[.!?])\s+|\n")

BULLET_PATTERN = re.compile(r"[•·▪◦‣]|^[ \t]*[-*](?=\s)", re.MULTILINE)


def _clause_start(text: str, index: int) -> int:
    """Return the start offset of the clause containing text[index]."""
    start = 0
    for match in CLAUSE_BREAK_PATTERN.finditer(text, 0, index):
        start = match.end()
    return start


def sentence_bounds(text: str, index: int) -> tuple[int, int]:
    """
    Return (start, end) offsets of the sentence containing text[index].

    Sentences end at ". ", "! ", "? " or a newline.
    """
    start = 0
    end = len(text)
    for match in SENTENCE_BREAK_PATTERN.finditer(text):
        if match.end() <= index:
            start = match.end()
        elif match.start() >= index:
            end = match.start()
            break
    return start, end


def position_from_numbered_marker(text: str, index: int) -> int | None:
    """Number of the nearest "N." / "N)" marker earlier in the same clause."""
    clause = text[_clause_start(text, index) : index]
    markers = NUMBERED_MARKER_PATTERN.findall(clause)
    if not markers:
        return None
    return int(markers[-1])


def position_from_ordinal_word(text: str, index: int) -> int | None:
    """Value of the nearest ordinal word (first..tenth) earlier in the same clause."""
    clause = text[_clause_start(text, index) : index]
    words = ORDINAL_PATTERN.findall(clause)
    if not words:
        return None
    return ORDINAL_WORDS[words[-1].lower()]


def position_from_comma_list(text: str, index: int) -> int | None:
    """
    1-based index of the comma-separated item holding text[index].

    Only applies when the containing sentence has at least one comma.
    """
    start, end = sentence_bounds(text, index)
    sentence = text[start:end]
    if "," not in sentence:
        return None
    return text.count(",", start, index) + 1


def position_from_bullets(text: str, index: int) -> int | None:
    """
    1-based index of the bullet segment holding text[index].

    Text before the first bullet does not count as a segment.
    """
    preceding = sum(1 for match in BULLET_PATTERN.finditer(text) if match.start() < index)
    return preceding or None


STRATEGIES: tuple[Callable[[str, int], int | None], ...] = (
    position_from_numbered_marker,
    position_from_ordinal_word,
    position_from_comma_list,
    position_from_bullets,
)


def extract_position(text: str, occurrences: Sequence[int]) -> int | None:
    """
    Extract the brand's rank position from the answer text.

    Strategies run in priority order. Within a strategy the earliest
    occurrence that yields a position wins.

    Args:
        text: Answer text
        occurrences: Start offsets of the (relevant) brand occurrences,
            in ascending order

    Returns:
        Position in 1..MAX_TRACKED_POSITION, or None if no strategy
        matched or the matched position is deeper than the tracked range

    Examples:
        >>> text = "The best tools are Acme, Zenith, and Corp."
        >>> extract_position(text, [text.index("Corp")])
        3
        >>> extract_position("12. Acme", [4]) is None
        True
    """
    if not text or not occurrences:
        return None

    for strategy in STRATEGIES:
        for index in occurrences:
            position = strategy(text, index)
            if position is None:
                continue
            if position < 1 or position > MAX_TRACKED_POSITION:
                return None
            return position

    return None
