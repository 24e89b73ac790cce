"""
Relevance filtering for brand mentions.

A brand that is also a common word or a well-known product can show up in an
answer only because the provider listed "the usual suspects" of some
category (search engines, social networks, ...). Such an occurrence says
nothing about the brand's visibility for the topic and is treated as a
false positive.

The category table is data: each GenericCategory lists well-known items and
the topic phrases that make the category on-topic. Callers can extend or
replace DEFAULT_RELEVANCE_CATEGORIES without touching this module.

Example:
    >>> text = "Google, Bing, Yahoo and Yandex all index your site."
    >>> is_generic_occurrence(text, text.index("Yandex"), "best laptops 2024")
    True
    >>> is_generic_occurrence(text, text.index("Yandex"), "top search engines")
    False
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from functools import cached_property


@dataclass(frozen=True)
class GenericCategory:
    """
    A category of well-known items whose enumeration is usually generic.

    Attributes:
        name: Category identifier
        topic_keywords: Phrases that, when found in the topic, make the
            category on-topic and disable filtering for it
        items: Well-known members, matched case-insensitively on word boundaries
        min_items: Distinct members on one line that mark it as a generic list
    """

    name: str
    topic_keywords: tuple[str, ...]
    items: tuple[str, ...]
    min_items: int = 3

    def __post_init__(self):
        """Validate name, items and min_items."""
        if not self.name or self.name.isspace():
            raise ValueError("name cannot be empty")
        if not self.items:
            raise ValueError(f"Category '{self.name}' must list at least one item")
        if self.min_items < 2:
            raise ValueError(f"min_items must be >= 2, got: {self.min_items}")

    @cached_property
    def _item_patterns(self) -> tuple[tuple[str, re.Pattern], ...]:
        return tuple(
            (item.lower(), re.compile(rf"(?<!\w){re.escape(item)}(?!\w)", re.IGNORECASE))
            for item in self.items
        )

    def is_on_topic(self, topic: str) -> bool:
        """Tell whether the topic names this category."""
        topic_lower = topic.lower()
        return any(keyword.lower() in topic_lower for keyword in self.topic_keywords)

    def count_items(self, text: str) -> int:
        """Count distinct category items present in text."""
        return len({key for key, pattern in self._item_patterns if pattern.search(text)})


DEFAULT_RELEVANCE_CATEGORIES: tuple[GenericCategory, ...] = (
    GenericCategory(
        name="search_engines",
        topic_keywords=("search engine", "web search", "search provider"),
        items=(
            "Google",
            "Bing",
            "Yahoo",
            "DuckDuckGo",
            "Baidu",
            "Yandex",
            "Ecosia",
            "Ask.com",
            "Startpage",
            "Brave Search",
        ),
    ),
    GenericCategory(
        name="social_platforms",
        topic_keywords=("social media", "social network", "social platform"),
        items=(
            "Facebook",
            "Instagram",
            "Twitter",
            "TikTok",
            "LinkedIn",
            "YouTube",
            "Snapchat",
            "Pinterest",
            "Reddit",
            "WhatsApp",
        ),
    ),
    GenericCategory(
        name="big_tech",
        topic_keywords=(
            "big tech",
            "tech giant",
            "tech compan",
            "technology compan",
        ),
        items=(
            "Google",
            "Apple",
            "Microsoft",
            "Amazon",
            "Meta",
            "Alphabet",
            "IBM",
            "Nvidia",
            "Netflix",
            "Oracle",
        ),
    ),
    GenericCategory(
        name="browsers",
        topic_keywords=("browser",),
        items=(
            "Chrome",
            "Firefox",
            "Safari",
            "Microsoft Edge",
            "Opera",
            "Brave",
            "Vivaldi",
            "Tor Browser",
        ),
    ),
)


def line_at(text: str, index: int) -> str:
    """Return the line of text containing character index."""
    start = text.rfind("\n", 0, index) + 1
    end = text.find("\n", index)
    return text[start:] if end == -1 else text[start:end]


def is_generic_occurrence(
    text: str,
    index: int,
    topic: str,
    categories: Sequence[GenericCategory] = DEFAULT_RELEVANCE_CATEGORIES,
) -> bool:
    """
    Tell whether the occurrence at text[index] sits in a generic enumeration.

    The occurrence is generic when its line contains at least min_items
    distinct items of some category that the topic does not name.

    Args:
        text: Answer text
        index: Start index of the brand occurrence
        topic: Topic the answer responds to
        categories: Category table to check against

    Returns:
        True if the occurrence should be discarded as a false positive
    """
    line = line_at(text, index)

    for category in categories:
        if category.is_on_topic(topic):
            continue
        if category.count_items(line) >= category.min_items:
            return True

    return False
