"""Translation of rich-text block documents."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, List, Sequence

from .structures import Node, RichTextDocument

LeafTranslator = Callable[[str], Awaitable[str]]


def is_block_document(value: Any) -> bool:
    """Detect the ``[[node, ...]]`` wrapper holding at least one paragraph."""

    if not isinstance(value, (list, tuple)) or not value:
        return False
    nodes = value[0]
    if not isinstance(nodes, (list, tuple)):
        return False
    return any(
        isinstance(node, dict) and node.get("type") == "paragraph"
        for node in nodes
    )


def _translatable(child: Any) -> bool:
    return (
        isinstance(child, dict)
        and child.get("type") == "text"
        and isinstance(child.get("text"), str)
        and child["text"] != ""
    )


async def _translate_paragraph(node: Node, translate_leaf: LeafTranslator) -> Node:
    children = node.get("children")
    if not isinstance(children, list):
        return node

    targets = [index for index, child in enumerate(children) if _translatable(child)]
    if not targets:
        return node

    translated = await asyncio.gather(
        *(translate_leaf(children[index]["text"]) for index in targets)
    )
    new_children = list(children)
    for index, text in zip(targets, translated):
        new_children[index] = {**children[index], "text": text}
    return {**node, "children": new_children}


async def translate_tree(
    document: Sequence[Sequence[Node]],
    translate_leaf: LeafTranslator,
) -> RichTextDocument:
    """Return a copy of ``document`` with paragraph text translated.

    Only the direct ``text`` children of top-level paragraphs are visited.
    Every other node, including nested containers, is carried over as the
    same object. The input document is left untouched.
    """

    nodes = document[0]
    translated: List[Node] = list(
        await asyncio.gather(
            *(_rewrite(node, translate_leaf) for node in nodes)
        )
    )
    return [translated]


async def _rewrite(node: Any, translate_leaf: LeafTranslator) -> Any:
    if isinstance(node, dict) and node.get("type") == "paragraph":
        return await _translate_paragraph(node, translate_leaf)
    return node
