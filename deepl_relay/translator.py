"""High-level orchestration of translation requests."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Sequence

from .blocks import is_block_document, translate_tree
from .configuration import RelaySettings, get_settings
from .constants import (
    DEFAULT_PRIORITY,
    HTML_TAG_HANDLING,
    MAX_CONCURRENT,
    RESERVED_API_OPTIONS,
)
from .dispatcher import RateLimitedDispatcher
from .errors import RequestValidationError, TranslationProviderConfigurationError
from .formatting import MarkdownConverter
from .locales import resolve_locale
from .providers import TranslationProvider, build_provider
from .segmenter import ChunkSplitter
from .structures import (
    ChunkLimits,
    InputKind,
    TextFormat,
    TextInput,
    TranslatedText,
    TranslationRequest,
    UsageReport,
)

logger = logging.getLogger(__name__)


def is_empty(text: TextInput) -> bool:
    """True when a request carries nothing to translate."""

    if text is None:
        return True
    if isinstance(text, str):
        return text == ""
    return len(text) == 0


def classify_input(text: TextInput, text_format: TextFormat | None) -> InputKind:
    """Decide which pipeline a request's text goes through."""

    if is_block_document(text):
        return InputKind.TREE
    if text_format is TextFormat.MARKDOWN:
        return InputKind.MARKDOWN
    return InputKind.FLAT


def _as_text_list(text: TextInput) -> List[str]:
    if isinstance(text, str):
        return [text]
    items = list(text or [])
    for item in items:
        if not isinstance(item, str):
            raise RequestValidationError(
                "Flat input must be a string or a list of strings."
            )
    return items


class Translator:
    """Routes requests through chunking, dispatch and reassembly.

    The dispatcher is injected so that every translator in a process can
    share the same rate limits.
    """

    def __init__(
        self,
        *,
        provider: TranslationProvider,
        dispatcher: RateLimitedDispatcher,
        locale_map: Mapping[str, str] | None = None,
        api_options: Mapping[str, Any] | None = None,
        limits: ChunkLimits | None = None,
        converter: MarkdownConverter | None = None,
    ) -> None:
        self.provider = provider
        self.dispatcher = dispatcher
        self.locale_map: Dict[str, str] = dict(locale_map or {})
        self.api_options: Dict[str, Any] = dict(api_options or {})
        reserved = sorted(RESERVED_API_OPTIONS.intersection(self.api_options))
        if reserved:
            raise TranslationProviderConfigurationError(
                f"api_options may not set {', '.join(reserved)}."
            )
        self.splitter = ChunkSplitter(limits)
        self.converter = converter or MarkdownConverter()

    async def translate(self, request: TranslationRequest) -> List[Any]:
        """Translate a request and return output in the input's shape."""

        if is_empty(request.text):
            return []
        if not request.source_locale or not request.target_locale:
            raise RequestValidationError("source and target locale must be defined")

        source_lang = resolve_locale(request.source_locale, self.locale_map, "source")
        target_lang = resolve_locale(request.target_locale, self.locale_map, "target")
        priority = DEFAULT_PRIORITY if request.priority is None else request.priority
        tag_handling = None if request.format is TextFormat.PLAIN else HTML_TAG_HANDLING
        kind = classify_input(request.text, request.format)

        async def translate_chunked(texts: Sequence[str]) -> List[str]:
            plan = self.splitter.split(texts)
            logger.info(
                "Translating %d texts in %d chunks (%s -> %s, priority %s).",
                len(texts),
                len(plan.chunks),
                source_lang,
                target_lang,
                priority,
            )
            results = await asyncio.gather(
                *(
                    self._dispatch(
                        chunk.texts,
                        source_lang,
                        target_lang,
                        priority=priority,
                        tag_handling=tag_handling,
                    )
                    for chunk in plan.chunks
                )
            )
            return plan.reassemble(results)

        if kind is InputKind.TREE:
            async def translate_leaf(text: str) -> str:
                return "".join(await translate_chunked([text]))

            return await translate_tree(request.text, translate_leaf)  # type: ignore[arg-type]

        texts = _as_text_list(request.text)
        if kind is InputKind.MARKDOWN:
            texts = self.converter.markdown_to_html(texts)

        translated = await translate_chunked(texts)

        if kind is InputKind.MARKDOWN:
            return self.converter.html_to_markdown(translated)
        return translated

    async def translate_text(
        self,
        text: TextInput,
        *,
        source_locale: str | None,
        target_locale: str | None,
        priority: float | None = None,
        format: TextFormat | str | None = None,
    ) -> List[Any]:
        """Keyword form of :meth:`translate`."""

        return await self.translate(
            TranslationRequest(
                text=text,
                source_locale=source_locale,
                target_locale=target_locale,
                priority=priority,
                format=format,  # type: ignore[arg-type]
            )
        )

    async def usage(self) -> UsageReport:
        """Return the service's character usage, unmodified."""

        return await self.provider.usage()

    async def _dispatch(
        self,
        texts: List[str],
        source_lang: str,
        target_lang: str,
        *,
        priority: float,
        tag_handling: str | None,
    ) -> List[str]:
        options = {**self.api_options, "tag_handling": tag_handling}
        results: List[TranslatedText] = await self.dispatcher.submit(
            texts,
            source_lang,
            target_lang,
            priority=priority,
            keywords=options,
        )
        return [result.text for result in results]


def build_translator(
    settings: RelaySettings | None = None,
    *,
    provider: TranslationProvider | None = None,
    dispatcher: RateLimitedDispatcher | None = None,
) -> Translator:
    """Assemble a translator, its provider and its dispatcher from settings.

    Rate limits are enforced per dispatcher. Without ``dispatcher=`` a new one
    is built for this translator alone, so callers that create several
    translators for the same account must build one dispatcher and pass it
    to each of them. The CLI builds exactly one translator per process.
    """

    settings = settings or get_settings()
    provider = provider or build_provider(
        settings.provider,
        api_key=settings.api_key,
        api_url=settings.api_url,
        debug=settings.provider_debug,
    )
    dispatcher = dispatcher or RateLimitedDispatcher(
        provider.translate_texts,
        max_concurrent=MAX_CONCURRENT,
        min_interval=settings.min_interval,
    )
    return Translator(
        provider=provider,
        dispatcher=dispatcher,
        locale_map=settings.locale_map,
        api_options=settings.api_options,
    )
