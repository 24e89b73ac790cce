"""
Tests for extractor.rank_extractor module.

Tests cover:
- Numbered markers ("1." and "1)") and clause scoping
- Ordinal words
- Comma enumerations
- Bullet enumerations
- Strategy priority and the tracked position cap
"""

from llm_mention_scanner.extractor.rank_extractor import (
    extract_position,
    position_from_bullets,
    position_from_comma_list,
    position_from_numbered_marker,
    position_from_ordinal_word,
    sentence_bounds,
)


def _position(text: str, brand: str) -> int | None:
    return extract_position(text, [text.index(brand)])


class TestNumberedMarkers:
    """Test suite for numbered list markers."""

    def test_period_marker(self):
        """Test "N." markers."""
        assert _position("1. Google, 2. Bing, 3. DuckDuckGo", "Bing") == 2

    def test_parenthesis_marker(self):
        """Test "N)" markers."""
        assert _position("1) Zenith 2) Acme", "Acme") == 2

    def test_multiline_list(self):
        """Test a conventional one-item-per-line list."""
        text = "Top options:\n1. Zenith\n2. Corp\n3. Acme"

        assert _position(text, "Acme") == 3

    def test_marker_in_earlier_clause_is_ignored(self):
        """Test that a marker separated by a clause break does not apply."""
        assert position_from_numbered_marker(
            "1. Zenith is great; Acme is also fine", 20
        ) is None
        assert _position("1. Zenith is great; Acme is also fine", "Acme") is None

    def test_version_numbers_are_not_markers(self):
        """Test that "v2." is not read as a list marker."""
        assert _position("We shipped v2. Acme is new", "Acme") is None

    def test_decimals_are_not_markers(self):
        """Test that "4.5" is not read as a list marker."""
        assert _position("Rated 4.5 Acme", "Acme") is None


class TestOrdinalWords:
    """Test suite for ordinal word positions."""

    def test_ordinal_in_same_clause(self):
        """Test an ordinal word before the brand."""
        text = "The first choice is Acme for most teams."

        assert position_from_ordinal_word(text, text.index("Acme")) == 1

    def test_nearest_ordinal_wins(self):
        """Test that the closest preceding ordinal word is used."""
        text = "Second only to the third option is Acme"

        assert position_from_ordinal_word(text, text.index("Acme")) == 3

    def test_ordinal_is_case_insensitive(self):
        """Test capitalized ordinals."""
        assert _position("Fifth place: Acme", "Acme") is None
        assert _position("Fifth place goes to Acme", "Acme") == 5


class TestCommaEnumeration:
    """Test suite for comma enumerations."""

    def test_index_among_comma_items(self):
        """Test that the item index is commas-before plus one."""
        text = "The best tools are Acme, Zenith, and Corp."

        assert position_from_comma_list(text, text.index("Corp")) == 3
        assert position_from_comma_list(text, text.index("Acme")) == 1

    def test_sentence_without_comma(self):
        """Test that a sentence without commas yields nothing."""
        assert position_from_comma_list("Acme is great.", 0) is None

    def test_commas_in_other_sentences_ignored(self):
        """Test that counting restarts at the sentence boundary."""
        text = "Zenith, Corp and Basecamp are fine. Try Acme, Zenith, or Corp."

        assert _position(text, "Acme") == 1


class TestBulletEnumeration:
    """Test suite for bullet enumerations."""

    def test_dash_bullets(self):
        """Test markdown dash bullets."""
        assert _position("Options:\n- Zenith\n- Acme", "Acme") == 2

    def test_unicode_bullets(self):
        """Test bullet characters."""
        assert _position("Top picks:\n• Zenith\n• Acme\n• Corp", "Corp") == 3

    def test_text_before_first_bullet(self):
        """Test that text before the first bullet is not a segment."""
        assert position_from_bullets("Acme leads.\n• Zenith\n• Corp", 0) is None


class TestExtractPosition:
    """Test suite for strategy priority and bounds."""

    def test_no_occurrences(self):
        """Test that no occurrences means no position."""
        assert extract_position("1. Acme", []) is None

    def test_numbered_beats_comma(self):
        """Test that numbered markers take priority over comma counting."""
        assert _position("Zenith, Corp and 1. Acme", "Acme") == 1

    def test_position_above_cap_does_not_fall_through(self):
        """Test that an out-of-range marker yields None even if commas would match."""
        assert _position("15. Acme, Zenith", "Acme") is None

    def test_earliest_occurrence_wins_within_strategy(self):
        """Test that the first occurrence yielding a position is used."""
        text = "1. Acme\n2. Zenith\n3. Acme"
        occurrences = [text.index("Acme"), text.rindex("Acme")]

        assert extract_position(text, occurrences) == 1

    def test_plain_prose(self):
        """Test that prose without any enumeration yields None."""
        assert _position("Acme is a solid tool for teams.", "Acme") is None


class TestSentenceBounds:
    """Test suite for sentence_bounds."""

    def test_middle_sentence(self):
        """Test bounds of a sentence between two others."""
        text = "One. Two has Acme. Three."
        start, end = sentence_bounds(text, text.index("Acme"))

        assert text[start:end] == "Two has Acme."

    def test_newline_is_boundary(self):
        """Test that newlines end sentences."""
        text = "Intro line\nAcme here"
        start, end = sentence_bounds(text, text.index("Acme"))

        assert text[start:end] == "Acme here"
