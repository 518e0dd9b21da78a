"""Shared fixtures for the relay tests."""

from typing import Any, Callable, List, Optional, Sequence

import pytest

from deepl_relay.dispatcher import RateLimitedDispatcher
from deepl_relay.providers import TranslationProvider
from deepl_relay.structures import TranslatedText, UsageReport
from deepl_relay.translator import Translator


class RecordingProvider(TranslationProvider):
    """Fake provider that records every call and tags translated text."""

    name = "recording"

    def __init__(
        self,
        transform: Optional[Callable[[str, str], str]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.calls: List[dict[str, Any]] = []
        self.transform = transform or (lambda text, target: f"[{target}]{text}")
        self.error = error
        self.usage_calls = 0

    async def translate_texts(
        self,
        texts: Sequence[str],
        source_lang: str,
        target_lang: str,
        **options: Any,
    ) -> List[TranslatedText]:
        self.calls.append(
            {
                "texts": list(texts),
                "source_lang": source_lang,
                "target_lang": target_lang,
                "options": options,
            }
        )
        if self.error is not None:
            raise self.error
        return [TranslatedText(text=self.transform(text, target_lang)) for text in texts]

    async def usage(self) -> UsageReport:
        self.usage_calls += 1
        return UsageReport(character_count=1234, character_limit=500000)


@pytest.fixture
def provider():
    """Fresh recording provider."""
    return RecordingProvider()


@pytest.fixture
def make_translator():
    """Build a translator with its own fast dispatcher."""

    def factory(provider: TranslationProvider, **kwargs: Any) -> Translator:
        dispatcher = RateLimitedDispatcher(
            provider.translate_texts,
            max_concurrent=5,
            min_interval=0,
        )
        return Translator(provider=provider, dispatcher=dispatcher, **kwargs)

    return factory
