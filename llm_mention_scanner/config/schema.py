"""
Configuration schema models for LLM Mention Scanner.

This module defines Pydantic models for validating and parsing the
scanner.config.yaml file.

Models:
    ProviderConfig: One answer provider (type, model, env var holding the key)
    RelevanceCategoryConfig: Extra generic-enumeration category for the relevance filter
    ScanSettings: Timeouts, retries, tracked providers, storage path
    ScannerConfig: Root configuration model (validates entire YAML)
    RuntimeProvider: Provider configuration with its resolved API key
    RuntimeConfig: Runtime configuration with resolved API keys
"""

from typing import Literal

from pydantic import BaseModel, field_validator, model_validator

from llm_mention_scanner.config.constants import TRACKED_PROVIDERS
from llm_mention_scanner.extractor.relevance import (
    DEFAULT_RELEVANCE_CATEGORIES,
    GenericCategory,
)
from llm_mention_scanner.llm_runner.retry_config import (
    DEFAULT_MAX_RETRIES,
    MAX_RETRIES_LIMIT,
    REQUEST_TIMEOUT,
)


class ProviderConfig(BaseModel):
    """
    Answer provider configuration from scanner.config.yaml.

    Attributes:
        name: Result key for this provider (e.g. "chatgpt"), unique per config
        provider: Adapter type (openai, perplexity, gemini)
        model_name: Specific model identifier (e.g. "gpt-4o-mini")
        env_api_key: Environment variable name containing the API key
        base_url: Optional endpoint override (proxies, regional endpoints)
    """

    name: str
    provider: Literal["openai", "perplexity", "gemini"]
    model_name: str
    env_api_key: str
    base_url: str | None = None

    @field_validator("name", "model_name", "env_api_key")
    @classmethod
    def validate_non_empty(cls, v: str) -> str:
        """Validate required strings are non-empty."""
        if not v or v.isspace():
            raise ValueError("value cannot be empty")
        return v.strip()

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str | None) -> str | None:
        """Validate base_url is an http(s) URL if specified."""
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must start with http:// or https://, got: {v}")
        return v.rstrip("/")


class RelevanceCategoryConfig(BaseModel):
    """
    Generic-enumeration category added through configuration.

    Attributes:
        name: Category identifier (e.g. "email_providers")
        topic_keywords: Topic phrases that make this category on-topic
        items: Well-known members of the category
        min_items: Distinct members on one line that mark it as a generic list
    """

    name: str
    topic_keywords: list[str] = []
    items: list[str]
    min_items: int = 3

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is non-empty."""
        if not v or v.isspace():
            raise ValueError("name cannot be empty")
        return v

    @field_validator("items")
    @classmethod
    def validate_items(cls, v: list[str]) -> list[str]:
        """Validate at least one non-empty item."""
        items = [item.strip() for item in v if item and not item.isspace()]
        if not items:
            raise ValueError("items must contain at least one entry")
        return items

    @field_validator("min_items")
    @classmethod
    def validate_min_items(cls, v: int) -> int:
        """Validate min_items is at least 2."""
        if v < 2:
            raise ValueError(f"min_items must be at least 2, got: {v}")
        return v

    def to_category(self) -> GenericCategory:
        return GenericCategory(
            name=self.name,
            topic_keywords=tuple(self.topic_keywords),
            items=tuple(self.items),
            min_items=self.min_items,
        )


class ScanSettings(BaseModel):
    """
    Runtime settings for scans.

    Attributes:
        adapter_timeout_seconds: Per-request provider timeout (1-300)
        max_retries: Retries after the first attempt on transient failures (0-3)
        tracked_providers: Provider names rolled up in per-provider positions
        sqlite_db_path: SQLite database for the reference result sink
        relevance_categories: Extra categories for the relevance filter
        include_default_categories: Keep the built-in categories alongside
            relevance_categories (False replaces them)
    """

    adapter_timeout_seconds: float = REQUEST_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    tracked_providers: list[str] = list(TRACKED_PROVIDERS)
    sqlite_db_path: str | None = None
    relevance_categories: list[RelevanceCategoryConfig] = []
    include_default_categories: bool = True

    @field_validator("adapter_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate timeout is within 0-300 seconds (exclusive of 0)."""
        if v <= 0 or v > 300:
            raise ValueError(f"adapter_timeout_seconds must be in (0, 300], got: {v}")
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        """Validate retry count stays small."""
        if v < 0 or v > MAX_RETRIES_LIMIT:
            raise ValueError(
                f"max_retries must be between 0 and {MAX_RETRIES_LIMIT}, got: {v}"
            )
        return v

    def categories(self) -> tuple[GenericCategory, ...]:
        """
        Return the effective relevance category table.

        Example:
            >>> ScanSettings().categories() == DEFAULT_RELEVANCE_CATEGORIES
            True
        """
        configured = tuple(c.to_category() for c in self.relevance_categories)
        if self.include_default_categories:
            return DEFAULT_RELEVANCE_CATEGORIES + configured
        return configured


class ScannerConfig(BaseModel):
    """
    Root configuration model for scanner.config.yaml.

    Attributes:
        scan_settings: Scan settings (defaults apply when omitted)
        providers: Answer providers to query, in dispatch order
    """

    scan_settings: ScanSettings = ScanSettings()
    providers: list[ProviderConfig]

    @field_validator("providers")
    @classmethod
    def validate_providers(cls, v: list[ProviderConfig]) -> list[ProviderConfig]:
        """Validate at least one provider is configured."""
        if not v:
            raise ValueError("At least one provider must be configured")
        return v

    @model_validator(mode="after")
    def validate_unique_names(self) -> "ScannerConfig":
        """
        Validate provider names are unique.

        Raises:
            ValueError: If two providers share a name
        """
        seen: set[str] = set()
        duplicates: set[str] = set()
        for provider in self.providers:
            if provider.name in seen:
                duplicates.add(provider.name)
            seen.add(provider.name)

        if duplicates:
            raise ValueError(
                f"Duplicate provider names: {', '.join(sorted(duplicates))}"
            )
        return self


class RuntimeProvider(BaseModel):
    """
    Resolved provider configuration with API key.

    Attributes:
        name: Result key for this provider
        provider: Adapter type
        model_name: Model identifier
        api_key: Resolved API key from environment (NEVER log this)
        base_url: Optional endpoint override
    """

    name: str
    provider: str
    model_name: str
    api_key: str
    base_url: str | None = None

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Validate API key is non-empty."""
        if not v or v.isspace():
            raise ValueError("API key cannot be empty")
        return v

    def __repr__(self) -> str:
        return (
            f"RuntimeProvider(name={self.name!r}, provider={self.provider!r}, "
            f"model_name={self.model_name!r}, api_key='***')"
        )

    __str__ = __repr__


class RuntimeConfig(BaseModel):
    """
    Runtime configuration with resolved API keys.

    Created by config.loader after validating YAML and resolving
    environment variables. This is what scan_with_config() consumes.
    """

    scan_settings: ScanSettings
    providers: list[RuntimeProvider]
