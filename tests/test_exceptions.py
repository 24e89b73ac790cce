"""Tests for the exception hierarchy."""

import pytest

from llm_mention_scanner.exceptions import (
    APIKeyMissingError,
    ConfigurationError,
    DatabaseError,
    DatabaseQueryError,
    EmptyAnswerError,
    MentionScannerError,
    ProviderError,
    ProviderRateLimitError,
    ProviderResponseError,
    ResultPersistenceError,
)


class TestExceptionHierarchy:
    """Test suite for exception inheritance."""

    @pytest.mark.parametrize(
        "error_class,parent",
        [
            (APIKeyMissingError, ConfigurationError),
            (DatabaseQueryError, DatabaseError),
            (ProviderRateLimitError, ProviderError),
            (EmptyAnswerError, ProviderResponseError),
            (ResultPersistenceError, MentionScannerError),
        ],
    )
    def test_parents(self, error_class, parent):
        """Test that each error can be caught through its parent."""
        assert issubclass(error_class, parent)
        assert issubclass(error_class, MentionScannerError)


class TestProviderError:
    """Test suite for ProviderError."""

    def test_carries_provider(self):
        """Test that the failing provider is attached."""
        error = ProviderRateLimitError("slow down", provider="perplexity")

        assert error.provider == "perplexity"
        assert str(error) == "slow down"

    def test_provider_optional(self):
        """Test that provider defaults to None."""
        assert ProviderError("boom").provider is None


class TestResultPersistenceError:
    """Test suite for ResultPersistenceError."""

    def test_carries_batch(self):
        """Test that the unsaved batch is attached."""
        batch = object()

        error = ResultPersistenceError("disk full", batch=batch)

        assert error.batch is batch
        assert str(error) == "disk full"
