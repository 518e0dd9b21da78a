"""Mapping of application locale codes onto DeepL language codes."""

from __future__ import annotations

from typing import Literal, Mapping

from .errors import UnsupportedLocaleError

LocaleRole = Literal["source", "target"]

DEEPL_LANGUAGES = frozenset(
    {
        "AR",
        "BG",
        "CS",
        "DA",
        "DE",
        "EL",
        "EN",
        "ES",
        "ET",
        "FI",
        "FR",
        "HE",
        "HU",
        "ID",
        "IT",
        "JA",
        "KO",
        "LT",
        "LV",
        "NB",
        "NL",
        "PL",
        "PT",
        "RO",
        "RU",
        "SK",
        "SL",
        "SV",
        "TH",
        "TR",
        "UK",
        "VI",
        "ZH",
    }
)

# Codes that DeepL spells differently from ISO 639-1.
BASE_ALIASES = {
    "NO": "NB",
    "NN": "NB",
    "IW": "HE",
}

TRADITIONAL_CHINESE_MARKERS = {"HANT", "TW", "HK", "MO"}


def _normalise(code: str) -> str:
    return code.strip().replace("_", "-").upper()


def resolve_locale(
    code: str,
    locale_map: Mapping[str, str] | None = None,
    role: LocaleRole = "target",
) -> str:
    """Return the DeepL language code for an application locale.

    Aliases from ``locale_map`` are applied first, so ``{"nb-NO": "NB"}``
    style overrides win over the built-in rules. Source languages are always
    returned without a region; target languages keep the regional variant
    DeepL requires for English, Portuguese and Chinese.
    """

    if role not in ("source", "target"):
        raise ValueError(f"Unknown locale role '{role}'.")
    if not code or not code.strip():
        raise UnsupportedLocaleError("Locale code must not be empty.")

    aliases = locale_map or {}
    mapped = aliases.get(code)
    if mapped is None:
        upper_aliases = {_normalise(key): value for key, value in aliases.items()}
        mapped = upper_aliases.get(_normalise(code), code)

    normalised = _normalise(mapped)
    parts = normalised.split("-")
    base = BASE_ALIASES.get(parts[0], parts[0])
    variants = set(parts[1:])

    if base not in DEEPL_LANGUAGES:
        raise UnsupportedLocaleError(
            f"Locale '{code}' is not supported by DeepL."
        )

    if role == "source":
        return base

    if base == "EN":
        return "EN-GB" if "GB" in variants else "EN-US"
    if base == "PT":
        return "PT-BR" if "BR" in variants else "PT-PT"
    if base == "ZH":
        return "ZH-HANT" if variants & TRADITIONAL_CHINESE_MARKERS else "ZH-HANS"
    return base
