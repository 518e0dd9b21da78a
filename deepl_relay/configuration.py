"""Layered configuration loader for the DeepL relay."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Sequence

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, SettingsError

from .constants import (
    MIN_INTERVAL_SECONDS,
    RESERVED_API_OPTIONS,
    TEST_MIN_INTERVAL_SECONDS,
)
from .errors import TranslationProviderConfigurationError

CONFIG_FILE_NAME = "deepl-relay.yaml"


class RelaySettings(BaseSettings):
    """Schema describing all supported configuration options."""

    model_config = SettingsConfigDict(
        env_prefix="DEEPL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: str | None = Field(default=None, description="DeepL authentication key.")
    api_url: str | None = Field(default=None, description="Override of the DeepL server URL.")
    locale_map: Dict[str, str] = Field(default_factory=dict)
    api_options: Dict[str, Any] = Field(default_factory=dict)
    provider: Literal["deepl", "echo"] = "deepl"
    environment: str = "production"
    provider_debug: bool = False

    @field_validator("provider", mode="before")
    @classmethod
    def _normalise_provider(cls, value: Any) -> Any:
        if isinstance(value, str):
            normalized = value.strip().lower()
            synonyms = {"mock": "echo", "noop": "echo", "default": "deepl"}
            return synonyms.get(normalized, normalized)
        return value

    @field_validator("locale_map", "api_options", mode="before")
    @classmethod
    def _empty_mapping(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("api_options")
    @classmethod
    def _no_reserved_options(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        reserved = sorted(RESERVED_API_OPTIONS.intersection(value))
        if reserved:
            raise ValueError(
                "api_options may not set " + ", ".join(reserved)
                + "; these are filled in for every request."
            )
        return value

    @property
    def min_interval(self) -> float:
        """Spacing between dispatched calls for the current environment."""

        if self.environment.strip().lower() == "test":
            return TEST_MIN_INTERVAL_SECONDS
        return MIN_INTERVAL_SECONDS


def _load_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML configuration file that must hold a mapping."""

    try:
        with path.open("r", encoding="utf-8") as handle:
            parsed = yaml.safe_load(handle)
    except OSError as exc:
        raise TranslationProviderConfigurationError(
            f"Configuration file {path} could not be read: {exc}"
        ) from exc
    except yaml.YAMLError as exc:
        raise TranslationProviderConfigurationError(
            f"Configuration file {path} is not valid YAML: {exc}"
        ) from exc

    if parsed is None:
        return {}
    if not isinstance(parsed, Mapping):
        raise TranslationProviderConfigurationError(
            f"Invalid configuration file {path}: expected a mapping at the root."
        )
    return {str(key).lower(): value for key, value in parsed.items()}


def _format_validation_errors(entries: Sequence[Mapping[str, Any]]) -> str:
    details: list[str] = []
    for entry in entries:
        path = entry.get("loc") or []
        if isinstance(path, (list, tuple)):
            location = ".".join(str(part) for part in path if part not in {None, ""})
        else:
            location = str(path)
        message = str(entry.get("msg") or "Invalid value")
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}")
    return "Configuration validation errors detected:\n" + "\n".join(details)


def load_settings(
    config_file: Path | None = None,
    *,
    app_dir: Path | None = None,
) -> RelaySettings:
    """Build settings from defaults, YAML, ``.env`` and the environment.

    Later layers win: a value in the process environment overrides the same
    value from ``.env``, which overrides the YAML file.
    """

    base_dir = app_dir or Path.cwd()
    if config_file is None:
        candidate = base_dir / CONFIG_FILE_NAME
        config_file = candidate if candidate.exists() else None
    elif not config_file.exists():
        raise TranslationProviderConfigurationError(
            f"Configuration file {config_file} does not exist."
        )

    file_values = _load_yaml(config_file) if config_file is not None else {}
    env_file = base_dir / ".env"

    try:
        from_env = RelaySettings(_env_file=env_file if env_file.exists() else None)
        env_values = from_env.model_dump(include=from_env.model_fields_set)
        return RelaySettings(_env_file=None, **{**file_values, **env_values})
    except ValidationError as exc:
        raise TranslationProviderConfigurationError(
            _format_validation_errors(exc.errors())
        ) from exc
    except SettingsError as exc:
        raise TranslationProviderConfigurationError(
            f"Configuration could not be parsed: {exc}"
        ) from exc


@lru_cache(maxsize=1)
def get_settings() -> RelaySettings:
    """Return the cached settings for the current working directory."""

    return load_settings()
