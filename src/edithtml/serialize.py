"""HTML serialization utilities for edithtml nodes.

Stored text and attribute values are already markup-ready, so rendering never
escapes. Escaping happens once, when a value enters the tree.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .constants import COMMENT_NODE, TEXT_NODE, VOID_ELEMENTS

if TYPE_CHECKING:
    from .node import Node


def escape_text(text: str | None) -> str:
    if not text:
        return ""
    return str(text).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def escape_attribute(value: str | None) -> str:
    """Escape a value for use inside a double-quoted attribute."""
    if not value:
        return ""
    return escape_text(value).replace('"', "&quot;")


def escape_comment(value: str | None) -> str:
    # A raw "--" is not allowed inside a comment.
    if not value:
        return ""
    return str(value).replace("--", "\\x2D\\x2D")


def serialize_start_tag(name: str, attrs: dict[str, str] | None) -> str:
    parts: list[str] = ["<", name]
    if attrs:
        for key in sorted(attrs):
            parts.extend((" ", key, '="', attrs[key], '"'))
    parts.append(">")
    return "".join(parts)


def serialize_end_tag(name: str) -> str:
    if name in VOID_ELEMENTS:
        return ""
    return f"</{name}>"


def serialize_comment(data: str) -> str:
    return f"<!-- {data} -->"


def to_html(node: Node) -> str:
    """Render a node including its own markup (outerHTML)."""
    parts: list[str] = []
    _append_outer(node, parts)
    return "".join(parts)


def to_inner_html(node: Node) -> str:
    """Render the children of a node (innerHTML).

    Text nodes render their text, comments render nothing.
    """
    name = node.tag_name
    if name == TEXT_NODE:
        return node.data or ""
    if name == COMMENT_NODE:
        return ""
    parts: list[str] = []
    for child in node.children:
        _append_outer(child, parts)
    return "".join(parts)


def _append_outer(node: Node, parts: list[str]) -> None:
    name = node.tag_name
    if name == TEXT_NODE:
        parts.append(node.data or "")
        return
    if name == COMMENT_NODE:
        parts.append(serialize_comment(node.data or ""))
        return
    parts.append(serialize_start_tag(name, node.attributes))
    for child in node.children:
        _append_outer(child, parts)
    parts.append(serialize_end_tag(name))


def to_text(node: Node) -> str:
    """Collect the text below a node.

    Non-empty child texts are joined with a single space; comments and markup
    contribute nothing.
    """
    name = node.tag_name
    if name == TEXT_NODE:
        return node.data or ""
    if name == COMMENT_NODE:
        return ""
    rendered = (to_text(child) for child in node.children)
    return " ".join(text for text in rendered if text)
