"""Error definitions for the DeepL relay."""

from __future__ import annotations


class RelayError(Exception):
    """Base exception for all custom errors."""


class RequestValidationError(RelayError):
    """Raised when a translation request is incomplete or malformed."""


class UnsupportedLocaleError(RequestValidationError):
    """Raised when a locale cannot be mapped to a DeepL language code."""


class TranslationProviderConfigurationError(RelayError):
    """Raised when the translation provider is misconfigured."""


class TranslationProviderError(RelayError):
    """Raised when the translation provider returns unusable results."""


class RemoteServiceError(TranslationProviderError):
    """Raised when the remote translation service rejects or fails a call."""
