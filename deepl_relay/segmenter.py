"""Chunking of text lists into request-sized batches."""

from __future__ import annotations

from typing import List, Sequence

from .errors import TranslationProviderError
from .structures import Chunk, ChunkLimits, ChunkPlan


def byte_size(text: str) -> int:
    """Approximate wire size of a text: its UTF-8 length."""

    return len(text.encode("utf-8"))


class ChunkSplitter:
    """Aggregates texts into chunks within an item count and byte budget."""

    def __init__(self, limits: ChunkLimits | None = None) -> None:
        self.limits = limits or ChunkLimits()

    def build(self, items: Sequence[str]) -> List[Chunk]:
        chunks: List[Chunk] = []
        current = Chunk()

        for item in items:
            size = byte_size(item)
            if size > self.limits.max_byte_size:
                # Oversized items travel alone and untouched.
                if current.texts:
                    chunks.append(current)
                    current = Chunk()
                chunks.append(Chunk(texts=[item], byte_size=size))
                continue

            if current.texts and (
                current.item_count + 1 > self.limits.max_items
                or current.byte_size + size > self.limits.max_byte_size
            ):
                chunks.append(current)
                current = Chunk()

            current.texts.append(item)
            current.byte_size += size

        if current.texts:
            chunks.append(current)

        return chunks

    def split(self, items: Sequence[str]) -> ChunkPlan:
        chunks = self.build(items)
        sizes = [chunk.item_count for chunk in chunks]

        def reassemble(results: Sequence[Sequence[str]]) -> List[str]:
            if len(results) != len(sizes):
                raise TranslationProviderError(
                    f"Expected results for {len(sizes)} chunks, got {len(results)}."
                )
            flat: List[str] = []
            for index, (expected, result) in enumerate(zip(sizes, results)):
                if len(result) != expected:
                    raise TranslationProviderError(
                        f"Chunk {index} returned {len(result)} translations "
                        f"for {expected} texts."
                    )
                flat.extend(result)
            return flat

        return ChunkPlan(chunks=chunks, reassemble=reassemble)


def split(items: Sequence[str], limits: ChunkLimits | None = None) -> ChunkPlan:
    """Split texts into bounded chunks and return the matching reassembler."""

    return ChunkSplitter(limits).split(items)
