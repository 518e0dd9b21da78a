"""Tests for the translation facade."""

import asyncio

import pytest

from conftest import RecordingProvider
from deepl_relay.dispatcher import RateLimitedDispatcher
from deepl_relay.errors import (
    RemoteServiceError,
    RequestValidationError,
    TranslationProviderConfigurationError,
    UnsupportedLocaleError,
)
from deepl_relay.structures import (
    ChunkLimits,
    InputKind,
    TextFormat,
    TranslationRequest,
)
from deepl_relay.translator import Translator, build_translator, classify_input


class RecordingConverter:
    """Markdown converter stand-in that records the order of conversions."""

    def __init__(self, events):
        self.events = events

    def markdown_to_html(self, texts):
        self.events.append(("to_html", list(texts)))
        return [f"<p>{text}</p>" for text in texts]

    def html_to_markdown(self, texts):
        self.events.append(("to_markdown", list(texts)))
        return [text.replace("<p>", "").replace("</p>", "") for text in texts]


class RecordingDispatcher(RateLimitedDispatcher):
    """Dispatcher that remembers the priority and keywords of each call."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.submitted = []

    async def submit(self, *args, priority=None, keywords=None):
        self.submitted.append({"priority": priority, "keywords": dict(keywords or {})})
        return await super().submit(*args, priority=priority, keywords=keywords)


class TestClassifyInput:
    def test_tree(self):
        text = [[{"type": "paragraph", "children": []}]]

        assert classify_input(text, None) is InputKind.TREE
        assert classify_input(text, TextFormat.MARKDOWN) is InputKind.TREE

    def test_markdown(self):
        assert classify_input(["# title"], TextFormat.MARKDOWN) is InputKind.MARKDOWN

    @pytest.mark.parametrize("text_format", [None, TextFormat.PLAIN, TextFormat.HTML])
    def test_flat(self, text_format):
        assert classify_input("hello", text_format) is InputKind.FLAT
        assert classify_input(["a", "b"], text_format) is InputKind.FLAT


class TestTranslationRequest:
    def test_format_from_string(self):
        request = TranslationRequest(text="x", source_locale="en", target_locale="de", format="Markdown")

        assert request.format is TextFormat.MARKDOWN

    def test_unknown_format(self):
        with pytest.raises(RequestValidationError):
            TranslationRequest(text="x", source_locale="en", target_locale="de", format="rtf")

    def test_priority_must_be_a_number(self):
        with pytest.raises(RequestValidationError):
            TranslationRequest(text="x", source_locale="en", target_locale="de", priority="high")

    def test_fractional_priority(self):
        request = TranslationRequest(text="x", source_locale="en", target_locale="de", priority=2.5)

        assert request.priority == 2.5

    def test_boolean_priority_rejected(self):
        with pytest.raises(RequestValidationError):
            TranslationRequest(text="x", source_locale="en", target_locale="de", priority=True)


class TestEmptyAndValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", [], None])
    async def test_empty_text_short_circuits(self, provider, make_translator, text):
        translator = make_translator(provider)

        result = await translator.translate_text(text, source_locale=None, target_locale=None)

        assert result == []
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_missing_source_locale(self, provider, make_translator):
        translator = make_translator(provider)

        with pytest.raises(RequestValidationError):
            await translator.translate_text("x", source_locale=None, target_locale="en")
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_missing_target_locale(self, provider, make_translator):
        translator = make_translator(provider)

        with pytest.raises(RequestValidationError):
            await translator.translate_text("x", source_locale="en", target_locale="")
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_unsupported_locale(self, provider, make_translator):
        translator = make_translator(provider)

        with pytest.raises(UnsupportedLocaleError):
            await translator.translate_text("x", source_locale="en", target_locale="xx")
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_non_string_items_rejected(self, provider, make_translator):
        translator = make_translator(provider)

        with pytest.raises(RequestValidationError):
            await translator.translate_text(["a", 3], source_locale="en", target_locale="de")


class TestFlatTranslation:
    @pytest.mark.asyncio
    async def test_single_string(self, provider, make_translator):
        translator = make_translator(provider)

        result = await translator.translate_text("Hello", source_locale="en", target_locale="de")

        assert result == ["[DE]Hello"]
        assert provider.calls[0]["texts"] == ["Hello"]
        assert provider.calls[0]["source_lang"] == "EN"
        assert provider.calls[0]["target_lang"] == "DE"

    @pytest.mark.asyncio
    async def test_list_keeps_order_across_chunks(self, provider, make_translator):
        translator = make_translator(provider, limits=ChunkLimits(max_items=2, max_byte_size=1000))
        texts = [f"t{i}" for i in range(5)]

        result = await translator.translate_text(texts, source_locale="en", target_locale="fr")

        assert result == [f"[FR]t{i}" for i in range(5)]
        assert [call["texts"] for call in provider.calls] == [["t0", "t1"], ["t2", "t3"], ["t4"]]

    @pytest.mark.asyncio
    async def test_html_tag_handling_by_default(self, provider, make_translator):
        translator = make_translator(provider)

        await translator.translate_text("<b>x</b>", source_locale="en", target_locale="de")

        assert provider.calls[0]["options"]["tag_handling"] == "html"

    @pytest.mark.asyncio
    async def test_plain_format_disables_tag_handling(self, provider, make_translator):
        translator = make_translator(provider)

        await translator.translate_text("x", source_locale="en", target_locale="de", format="plain")

        assert provider.calls[0]["options"]["tag_handling"] is None

    @pytest.mark.asyncio
    async def test_api_options_forwarded(self, provider, make_translator):
        translator = make_translator(provider, api_options={"formality": "more"})

        await translator.translate_text("x", source_locale="en", target_locale="de")

        assert provider.calls[0]["options"] == {"formality": "more", "tag_handling": "html"}

    def test_reserved_api_option_rejected(self, provider, make_translator):
        with pytest.raises(TranslationProviderConfigurationError, match="priority"):
            make_translator(provider, api_options={"priority": 5})

    @pytest.mark.asyncio
    async def test_locale_map_applied(self, provider, make_translator):
        translator = make_translator(provider, locale_map={"en": "en-GB", "pt": "pt-BR"})

        await translator.translate_text("x", source_locale="pt", target_locale="en")

        assert provider.calls[0]["source_lang"] == "PT"
        assert provider.calls[0]["target_lang"] == "EN-GB"

    @pytest.mark.asyncio
    async def test_remote_failure_fails_whole_request(self, make_translator):
        provider = RecordingProvider(error=RemoteServiceError("quota exceeded"))
        translator = make_translator(provider, limits=ChunkLimits(max_items=1, max_byte_size=100))

        with pytest.raises(RemoteServiceError):
            await translator.translate_text(["a", "b"], source_locale="en", target_locale="de")


class TestPriorityRouting:
    @pytest.mark.asyncio
    async def test_priority_passed_to_dispatcher(self, provider):
        submitted = []

        class SpyDispatcher(RateLimitedDispatcher):
            async def submit(self, *args, priority=None, keywords=None):
                submitted.append(priority)
                return await super().submit(*args, priority=priority, keywords=keywords)

        dispatcher = SpyDispatcher(provider.translate_texts, min_interval=0)
        translator = Translator(provider=provider, dispatcher=dispatcher)

        await translator.translate_text("a", source_locale="en", target_locale="de", priority=10)
        await translator.translate_text("b", source_locale="en", target_locale="de")

        assert submitted == [10, 1]


class TestMarkdown:
    @pytest.mark.asyncio
    async def test_converts_before_and_after_remote_call(self, make_translator):
        events = []

        def transform(text, target):
            events.append(("remote", text))
            return text

        provider = RecordingProvider(transform=transform)
        translator = make_translator(provider, converter=RecordingConverter(events))

        result = await translator.translate_text(
            ["**bold**"], source_locale="en", target_locale="de", format="markdown"
        )

        assert [event[0] for event in events] == ["to_html", "remote", "to_markdown"]
        assert provider.calls[0]["texts"] == ["<p>**bold**</p>"]
        assert provider.calls[0]["options"]["tag_handling"] == "html"
        assert result == ["**bold**"]

    @pytest.mark.asyncio
    async def test_real_converter_returns_markdown(self, make_translator):
        provider = RecordingProvider(transform=lambda text, target: text)
        translator = make_translator(provider)

        result = await translator.translate_text(
            ["**bold**"], source_locale="en", target_locale="de", format="markdown"
        )

        assert "<strong>" in provider.calls[0]["texts"][0]
        assert result == ["**bold**"]


class TestBlocks:
    @pytest.mark.asyncio
    async def test_tree_translation(self, provider, make_translator):
        translator = make_translator(provider)
        document = [
            [
                {"type": "paragraph", "children": [{"type": "text", "text": "hi"}]},
                {"type": "other", "data": 1},
            ]
        ]

        result = await translator.translate_text(document, source_locale="en", target_locale="de", priority=4)

        assert len(result) == 1
        assert len(result[0]) == 2
        assert result[0][0]["children"][0]["text"] == "[DE]hi"
        assert result[0][1] == {"type": "other", "data": 1}
        assert document[0][0]["children"][0]["text"] == "hi"
        assert provider.calls[0]["texts"] == ["hi"]
        assert provider.calls[0]["options"]["tag_handling"] == "html"

    @pytest.mark.asyncio
    async def test_same_document_into_two_languages(self, provider, make_translator):
        translator = make_translator(provider)
        document = [[{"type": "paragraph", "children": [{"type": "text", "text": "hi"}]}]]

        german, french = await asyncio.gather(
            translator.translate_text(document, source_locale="en", target_locale="de"),
            translator.translate_text(document, source_locale="en", target_locale="fr"),
        )

        assert german[0][0]["children"][0]["text"] == "[DE]hi"
        assert french[0][0]["children"][0]["text"] == "[FR]hi"


    @pytest.mark.asyncio
    async def test_every_leaf_carries_request_priority(self, provider):
        dispatcher = RecordingDispatcher(provider.translate_texts, min_interval=0)
        translator = Translator(provider=provider, dispatcher=dispatcher)
        document = [
            [
                {
                    "type": "paragraph",
                    "children": [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}],
                },
                {"type": "paragraph", "children": [{"type": "text", "text": "c"}]},
            ],
            [{"type": "paragraph", "children": [{"type": "text", "text": "d"}]}],
        ]

        await translator.translate_text(document, source_locale="en", target_locale="de", priority=4)

        assert [entry["priority"] for entry in dispatcher.submitted] == [4, 4, 4, 4]
        assert sorted(call["texts"][0] for call in provider.calls) == ["a", "b", "c", "d"]

    @pytest.mark.asyncio
    async def test_plain_tree_disables_tag_handling(self, provider):
        dispatcher = RecordingDispatcher(provider.translate_texts, min_interval=0)
        translator = Translator(provider=provider, dispatcher=dispatcher)
        document = [
            [
                {
                    "type": "paragraph",
                    "children": [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}],
                }
            ]
        ]

        result = await translator.translate_text(
            document, source_locale="en", target_locale="de", format="plain"
        )

        assert [node["text"] for node in result[0][0]["children"]] == ["[DE]a", "[DE]b"]
        assert len(provider.calls) == 2
        assert all(call["options"]["tag_handling"] is None for call in provider.calls)
        assert all(entry["keywords"]["tag_handling"] is None for entry in dispatcher.submitted)


class TestUsage:
    @pytest.mark.asyncio
    async def test_usage_is_returned_verbatim(self, provider, make_translator):
        translator = make_translator(provider)

        report = await translator.usage()

        assert report.character_count == 1234
        assert report.character_limit == 500000
        assert provider.calls == []


class TestBuildTranslator:
    def test_builds_echo_translator(self):
        from deepl_relay.configuration import RelaySettings

        settings = RelaySettings(_env_file=None, provider="echo", environment="test", locale_map={"en": "en-GB"})
        translator = build_translator(settings)

        assert translator.provider.name == "echo"
        assert translator.dispatcher.min_interval == 0.01
        assert translator.dispatcher.max_concurrent == 5
        assert translator.locale_map == {"en": "en-GB"}

    @pytest.mark.asyncio
    async def test_echo_round_trip(self):
        from deepl_relay.configuration import RelaySettings

        translator = build_translator(RelaySettings(_env_file=None, provider="echo", environment="test"))

        result = await translator.translate_text(["a", "b"], source_locale="en", target_locale="de")
        report = await translator.usage()

        assert result == ["a", "b"]
        assert report.character_count == 2

    def test_translators_share_an_injected_dispatcher(self, provider):
        from deepl_relay.configuration import RelaySettings

        settings = RelaySettings(_env_file=None, provider="echo", environment="test")
        dispatcher = RateLimitedDispatcher(provider.translate_texts, max_concurrent=1, min_interval=0)

        first = build_translator(settings, provider=provider, dispatcher=dispatcher)
        second = build_translator(settings, provider=provider, dispatcher=dispatcher)

        assert first.dispatcher is dispatcher
        assert second.dispatcher is dispatcher

    def test_default_dispatcher_is_per_translator(self):
        from deepl_relay.configuration import RelaySettings

        settings = RelaySettings(_env_file=None, provider="echo", environment="test")

        first = build_translator(settings)
        second = build_translator(settings)

        assert first.dispatcher is not second.dispatcher

    @pytest.mark.asyncio
    async def test_shared_dispatcher_limits_both_translators(self):
        active = []
        peak = []

        class SlowProvider(RecordingProvider):
            async def translate_texts(self, texts, source_lang, target_lang, **options):
                active.append(1)
                peak.append(len(active))
                try:
                    await asyncio.sleep(0.01)
                    return await super().translate_texts(texts, source_lang, target_lang, **options)
                finally:
                    active.pop()

        from deepl_relay.configuration import RelaySettings

        provider = SlowProvider()
        settings = RelaySettings(_env_file=None, provider="echo", environment="test")
        dispatcher = RateLimitedDispatcher(provider.translate_texts, max_concurrent=1, min_interval=0)
        first = build_translator(settings, provider=provider, dispatcher=dispatcher)
        second = build_translator(settings, provider=provider, dispatcher=dispatcher)

        await asyncio.gather(
            first.translate_text("a", source_locale="en", target_locale="de"),
            second.translate_text("b", source_locale="en", target_locale="fr"),
        )

        assert max(peak) == 1
        assert len(provider.calls) == 2
