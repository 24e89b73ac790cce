"""
Configuration loader for LLM Mention Scanner.

This module loads YAML configuration files, validates them with Pydantic models,
and resolves API keys from environment variables to create a RuntimeConfig.

Keys are read from the environment once, here. Adapters receive them as
explicit constructor arguments and never look at the environment themselves.

Functions:
    load_config: Main entrypoint to load and validate scanner.config.yaml
    resolve_api_keys: Helper to resolve environment variables to API keys
"""

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from llm_mention_scanner.exceptions import (
    APIKeyMissingError,
    ConfigFileNotFoundError,
    ConfigValidationError,
)

from .schema import RuntimeConfig, RuntimeProvider, ScannerConfig

logger = logging.getLogger(__name__)


def load_config(config_path: str | Path) -> RuntimeConfig:
    """
    Load scanner.config.yaml and resolve API keys from environment variables.

    Args:
        config_path: Path to the YAML file (relative or absolute)

    Returns:
        RuntimeConfig with resolved API keys and validated settings

    Raises:
        ConfigFileNotFoundError: If config file doesn't exist at the specified path
        ConfigValidationError: If YAML is invalid or config validation fails
        APIKeyMissingError: If a provider's API key variable is not set

    Example:
        >>> config = load_config("examples/scanner.config.yaml")
        >>> [p.name for p in config.providers]
        ['chatgpt', 'perplexity', 'gemini']

    Security:
        - Uses yaml.safe_load() to prevent code injection
        - API keys are never logged
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigFileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open(encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigValidationError(
            f"Failed to read configuration file {config_path}: {e}"
        ) from e

    if raw_config is None:
        raise ConfigValidationError(f"Configuration file is empty: {config_path}")

    try:
        scanner_config = ScannerConfig.model_validate(raw_config)
    except ValidationError as e:
        error_messages = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            msg = error["msg"]
            error_messages.append(f"  - {loc}: {msg}")

        raise ConfigValidationError(
            f"Configuration validation failed in {config_path}:\n"
            + "\n".join(error_messages)
        ) from e

    providers = resolve_api_keys(scanner_config)

    logger.info(
        f"Loaded scanner config from {config_path}: "
        f"{len(providers)} provider(s): {', '.join(p.name for p in providers)}"
    )

    return RuntimeConfig(
        scan_settings=scanner_config.scan_settings,
        providers=providers,
    )


def resolve_api_keys(config: ScannerConfig) -> list[RuntimeProvider]:
    """
    Resolve each provider's env_api_key to the actual key.

    Raises:
        APIKeyMissingError: If any referenced environment variable is unset or blank

    Security:
        - Error messages name the variable, never its value
    """
    resolved: list[RuntimeProvider] = []

    for provider_config in config.providers:
        env_var_name = provider_config.env_api_key
        api_key = os.environ.get(env_var_name)

        if not api_key or api_key.isspace():
            raise APIKeyMissingError(
                f"Environment variable ${env_var_name} not set "
                f"(required for provider '{provider_config.name}')"
            )

        resolved.append(
            RuntimeProvider(
                name=provider_config.name,
                provider=provider_config.provider,
                model_name=provider_config.model_name,
                api_key=api_key,
                base_url=provider_config.base_url,
            )
        )

    return resolved
