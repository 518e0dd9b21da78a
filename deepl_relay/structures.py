"""Core data structures for the DeepL relay."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Sequence, Union

from .constants import DEEPL_API_MAX_TEXTS, DEEPL_API_ROUGH_MAX_REQUEST_SIZE
from .errors import RequestValidationError


Node = Dict[str, Any]
RichTextDocument = List[List[Node]]
TextInput = Union[str, Sequence[str], RichTextDocument, None]


class TextFormat(str, Enum):
    """Declared format of the text in a request."""

    PLAIN = "plain"
    MARKDOWN = "markdown"
    HTML = "html"


class InputKind(Enum):
    """Shape of a request's text once classified."""

    FLAT = "flat"
    MARKDOWN = "markdown"
    TREE = "tree"


@dataclass
class TranslationRequest:
    """A single call to the translation facade."""

    text: TextInput
    source_locale: str | None
    target_locale: str | None
    priority: float | None = None
    format: TextFormat | None = None

    def __post_init__(self) -> None:
        if self.format is not None and not isinstance(self.format, TextFormat):
            try:
                self.format = TextFormat(str(self.format).strip().lower())
            except ValueError as exc:
                raise RequestValidationError(
                    f"Unknown text format '{self.format}'. "
                    "Use 'plain', 'markdown' or 'html'."
                ) from exc
        if self.priority is not None and (
            isinstance(self.priority, bool) or not isinstance(self.priority, (int, float))
        ):
            raise RequestValidationError("Priority must be a number.")


@dataclass(frozen=True)
class ChunkLimits:
    """Bounds a single remote request must respect."""

    max_items: int = DEEPL_API_MAX_TEXTS
    max_byte_size: int = DEEPL_API_ROUGH_MAX_REQUEST_SIZE

    def __post_init__(self) -> None:
        if self.max_items < 1:
            raise ValueError("max_items must be at least 1")
        if self.max_byte_size < 1:
            raise ValueError("max_byte_size must be at least 1")


@dataclass
class Chunk:
    """An ordered run of texts sent together in one remote request."""

    texts: List[str] = field(default_factory=list)
    byte_size: int = 0

    @property
    def item_count(self) -> int:
        return len(self.texts)


@dataclass
class ChunkPlan:
    """Chunks for a text list plus the function that undoes the split."""

    chunks: List[Chunk]
    reassemble: Callable[[Sequence[Sequence[str]]], List[str]]


@dataclass
class ScheduledCall:
    """A pending invocation held in the dispatcher queue."""

    priority: float
    sequence: int
    args: tuple
    kwargs: Dict[str, Any]
    future: asyncio.Future

    def sort_key(self) -> tuple[float, int]:
        # Highest priority first, then submission order.
        return (-self.priority, self.sequence)

    def __lt__(self, other: "ScheduledCall") -> bool:
        return self.sort_key() < other.sort_key()


@dataclass
class TranslatedText:
    """One translated text as returned by a provider."""

    text: str
    detected_source_lang: str | None = None


@dataclass
class UsageReport:
    """Character usage snapshot reported by the remote service."""

    character_count: int
    character_limit: int | None = None
