"""
Extractor module for analyzing provider answers.

Pure, synchronous helpers with no I/O: brand mention analysis (relevance
filter, rank position, confidence) and source URL extraction.

Public API:
    - MentionAnalysis: Result of analyzing one answer for one brand
    - analyze_mention: Detect, rank and score a brand mention
    - GenericCategory: Data record for the relevance filter table
    - DEFAULT_RELEVANCE_CATEGORIES: Built-in relevance categories
    - SourceReference: Cited source attached to a scan result
    - extract_sources: Extract up to two source references from text
    - sources_from_hints: Convert provider citations into source references
"""

from llm_mention_scanner.extractor.mention_analyzer import (
    MentionAnalysis,
    analyze_mention,
)
from llm_mention_scanner.extractor.relevance import (
    DEFAULT_RELEVANCE_CATEGORIES,
    GenericCategory,
)
from llm_mention_scanner.extractor.url_extractor import (
    SourceReference,
    extract_sources,
    sources_from_hints,
)

__all__ = [
    "DEFAULT_RELEVANCE_CATEGORIES",
    "GenericCategory",
    "MentionAnalysis",
    "SourceReference",
    "analyze_mention",
    "extract_sources",
    "sources_from_hints",
]
