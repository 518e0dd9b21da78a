"""Rate-limited DeepL translation of text, markdown and rich-text blocks."""

from .constants import APP_VERSION as __version__
from .dispatcher import RateLimitedDispatcher
from .errors import (
    RelayError,
    RemoteServiceError,
    RequestValidationError,
    TranslationProviderConfigurationError,
    TranslationProviderError,
    UnsupportedLocaleError,
)
from .structures import (
    ChunkLimits,
    InputKind,
    TextFormat,
    TranslationRequest,
    UsageReport,
)
from .translator import Translator, build_translator, classify_input

__all__ = [
    "__version__",
    "ChunkLimits",
    "InputKind",
    "RateLimitedDispatcher",
    "RelayError",
    "RemoteServiceError",
    "RequestValidationError",
    "TextFormat",
    "TranslationProviderConfigurationError",
    "TranslationProviderError",
    "TranslationRequest",
    "Translator",
    "UnsupportedLocaleError",
    "UsageReport",
    "build_translator",
    "classify_input",
]
