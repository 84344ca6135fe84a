"""Import markup into edithtml nodes.

Parsing is delegated to BeautifulSoup with the ``html.parser`` builder. That
builder does not add missing html/head/body elements and keeps whitespace, so
untouched parts of a document render back as they came in.

The builder lowercases tag and attribute names, so mixed-case names such as
``myWidget`` or ``viewBox`` come out lowercased and only match lowercase
selectors.
"""

from __future__ import annotations

import logging
from pathlib import Path

from bs4 import (
    BeautifulSoup,
    CData,
    Comment,
    Declaration,
    Doctype,
    NavigableString,
    ParserRejectedMarkup,
    ProcessingInstruction,
    Tag,
)

from .constants import RAWTEXT_ELEMENTS
from .errors import HtmlParseError, NothingImportedError
from .node import Node
from .serialize import escape_attribute, escape_text

logger = logging.getLogger(__name__)

_SKIPPED_STRINGS = (Doctype, Declaration, ProcessingInstruction)


def parse_markup(markup: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(markup, "html.parser", multi_valued_attributes=None)
    except ParserRejectedMarkup as exc:
        raise HtmlParseError(str(exc)) from exc


def load_html(markup: str) -> Node:
    """Parse markup and return its root element.

    The root is the last top-level element of the document. Top-level text,
    comments and declarations are dropped.
    """
    soup = parse_markup(markup)
    roots = [child for child in soup.children if isinstance(child, Tag)]

    if not roots:
        raise NothingImportedError
    if len(roots) > 1:
        logger.warning("Document has %d top-level elements, using the last one", len(roots))

    return _convert_tag(roots[-1])


def load_html_file(path: str | Path) -> Node:
    markup = Path(path).read_text(encoding="utf-8")
    logger.debug("Loaded %d characters from %s", len(markup), path)
    return load_html(markup)


def _convert_tag(tag: Tag) -> Node:
    attributes = {key: escape_attribute(_attribute_text(value)) for key, value in tag.attrs.items()}
    node = Node(tag.name, attributes)
    raw = tag.name in RAWTEXT_ELEMENTS

    for child in tag.children:
        converted = _convert_child(child, raw)
        if converted is not None:
            node.append_child(converted)

    return node


def _convert_child(child: object, raw: bool) -> Node | None:
    if isinstance(child, Tag):
        return _convert_tag(child)
    # Comment and the skipped kinds are NavigableString subclasses, check them first.
    if isinstance(child, Comment):
        return Node.comment(str(child).strip())
    if isinstance(child, _SKIPPED_STRINGS):
        return None
    if isinstance(child, CData):
        return Node.text(f"<![CDATA[{child}]]>")
    if isinstance(child, NavigableString):
        text = str(child)
        return Node.text(text if raw else escape_text(text))
    return None


def _attribute_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value)
    return str(value)
