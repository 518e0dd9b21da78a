"""Translation provider abstractions."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Sequence

import deepl

from .constants import APP_NAME, APP_VERSION
from .errors import (
    RemoteServiceError,
    TranslationProviderConfigurationError,
    TranslationProviderError,
)
from .structures import TranslatedText, UsageReport

logger = logging.getLogger(__name__)


class TranslationProvider(ABC):
    """Abstract adapter for remote translation services."""

    name: str = "provider"

    @abstractmethod
    async def translate_texts(
        self,
        texts: Sequence[str],
        source_lang: str,
        target_lang: str,
        **options: Any,
    ) -> List[TranslatedText]:
        """Translate ``texts`` and return one result per input, in order."""

    @abstractmethod
    async def usage(self) -> UsageReport:
        """Return the character usage reported by the service."""


class EchoTranslationProvider(TranslationProvider):
    """A provider that returns the original text (useful for testing)."""

    name = "echo"

    def __init__(self) -> None:
        self.characters = 0

    async def translate_texts(
        self,
        texts: Sequence[str],
        source_lang: str,
        target_lang: str,
        **options: Any,
    ) -> List[TranslatedText]:
        self.characters += sum(len(text) for text in texts)
        return [
            TranslatedText(text=text, detected_source_lang=source_lang)
            for text in texts
        ]

    async def usage(self) -> UsageReport:
        return UsageReport(character_count=self.characters)


class DeepLTranslationProvider(TranslationProvider):
    """Translation provider backed by the official DeepL client."""

    name = "deepl"

    def __init__(
        self,
        *,
        api_key: str | None,
        api_url: str | None = None,
        debug: bool = False,
    ) -> None:
        if not api_key:
            raise TranslationProviderConfigurationError(
                "DeepL configuration missing. Set DEEPL_API_KEY or choose a "
                "different provider."
            )
        self.debug = debug
        self._client = deepl.Translator(api_key, server_url=api_url or None)
        self._client.set_app_info(APP_NAME, APP_VERSION)

    async def translate_texts(
        self,
        texts: Sequence[str],
        source_lang: str,
        target_lang: str,
        **options: Any,
    ) -> List[TranslatedText]:
        if not texts:
            return []

        self._log_debug(
            "provider.request",
            {
                "source_lang": source_lang,
                "target_lang": target_lang,
                "options": options,
                "texts": list(texts),
            },
        )
        try:
            results = await asyncio.to_thread(
                self._client.translate_text,
                list(texts),
                source_lang=source_lang,
                target_lang=target_lang,
                **options,
            )
        except deepl.DeepLException as exc:
            raise RemoteServiceError(f"DeepL request failed: {exc}") from exc

        if not isinstance(results, list):
            results = [results]
        if len(results) != len(texts):
            raise TranslationProviderError(
                f"DeepL returned {len(results)} translations for {len(texts)} texts."
            )

        translated = [
            TranslatedText(
                text=result.text,
                detected_source_lang=getattr(result, "detected_source_lang", None),
            )
            for result in results
        ]
        self._log_debug("provider.response", [item.text for item in translated])
        return translated

    async def usage(self) -> UsageReport:
        try:
            usage = await asyncio.to_thread(self._client.get_usage)
        except deepl.DeepLException as exc:
            raise RemoteServiceError(f"DeepL usage request failed: {exc}") from exc

        detail = usage.character
        if detail is None:
            raise TranslationProviderError(
                "DeepL did not report character usage for this account."
            )
        return UsageReport(character_count=detail.count, character_limit=detail.limit)

    def _log_debug(self, label: str, payload: Any) -> None:
        """Emit structured debug information when enabled."""

        if not self.debug:
            return
        try:
            message = json.dumps(payload, ensure_ascii=False, indent=2, default=str)
        except (TypeError, ValueError):
            message = repr(payload)
        logger.debug("%s:\n%s", label, message)


def build_provider(
    name: str | None,
    *,
    api_key: str | None = None,
    api_url: str | None = None,
    debug: bool = False,
) -> TranslationProvider:
    """Factory to create providers by name."""

    normalized = (name or "deepl").strip().lower()
    if normalized in {"deepl", "default"}:
        return DeepLTranslationProvider(api_key=api_key, api_url=api_url, debug=debug)
    if normalized in {"echo", "noop", "mock"}:
        return EchoTranslationProvider()
    raise TranslationProviderConfigurationError(
        f"Unknown translation provider '{name}'."
    )
