"""String-creating pipelines.

A string-creating pipeline turns one element into a list of strings: an
element-selecting command picks context nodes, a value-extracting command
reads one string per context node, and value-processing commands rewrite the
strings. Command indices: selecting 0, extracting 1, processing 2 onwards.
"""

from __future__ import annotations

import logging
import re
from html import unescape
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING

from .errors import CommandError, InvalidRegexError, PipelineError

if TYPE_CHECKING:
    from collections.abc import Callable

    from .node import Node
    from .selector import CssSelectorList

logger = logging.getLogger(__name__)


# ---------------------------
# Element-selecting commands
# ---------------------------


@dataclass(frozen=True, slots=True)
class UseElement:
    """The element itself."""


@dataclass(frozen=True, slots=True)
class UseParent:
    """The parent of the element, nothing for a root."""


@dataclass(frozen=True, slots=True)
class QueryElement:
    selector: CssSelectorList


@dataclass(frozen=True, slots=True)
class QueryParent:
    selector: CssSelectorList


@dataclass(frozen=True, slots=True)
class QueryRoot:
    selector: CssSelectorList


ElementSelectingCommand = UseElement | UseParent | QueryElement | QueryParent | QueryRoot


def select_elements(command: ElementSelectingCommand, node: Node) -> list[Node]:
    if isinstance(command, UseElement):
        return [node]
    if isinstance(command, UseParent):
        return [] if node.parent is None else [node.parent]
    if isinstance(command, QueryElement):
        return command.selector.query([node])
    if isinstance(command, QueryParent):
        if node.parent is None:
            return []
        return command.selector.query([node.parent])
    if isinstance(command, QueryRoot):
        return command.selector.query([node.root()])
    raise TypeError(f"Unsupported element-selecting command: {type(command).__name__}")


# ---------------------------
# Value-extracting commands
# ---------------------------


@dataclass(frozen=True, slots=True)
class GetAttribute:
    attribute: str


@dataclass(frozen=True, slots=True)
class GetTextContent:
    pass


ValueExtractingCommand = GetAttribute | GetTextContent


def extract_values(command: ValueExtractingCommand, nodes: list[Node]) -> list[str]:
    """Read one plain string per node.

    Stored attribute values and text are markup; the extracted strings are
    unescaped so that writing them back escapes them exactly once.
    """
    values: list[str] = []
    if isinstance(command, GetAttribute):
        for node in nodes:
            value = node.get_attribute(command.attribute)
            if value is not None:
                values.append(unescape(value))
        return values
    if isinstance(command, GetTextContent):
        for node in nodes:
            text = node.text_content()
            if text:
                values.append(unescape(text))
        return values
    raise TypeError(f"Unsupported value-extracting command: {type(command).__name__}")


# ---------------------------
# Value-processing commands
# ---------------------------


@dataclass(frozen=True, slots=True)
class RegexReplace:
    """Replace every match of ``pattern``.

    The replacement refers to groups as ``$1``, ``${1}``, ``$name`` or
    ``${name}``; ``$$`` is a literal dollar sign. Groups that did not take part
    in the match, or do not exist, expand to the empty string.
    """

    pattern: str
    replacement: str


@dataclass(frozen=True, slots=True)
class ToLower:
    pass


@dataclass(frozen=True, slots=True)
class ToUpper:
    pass


@dataclass(frozen=True, slots=True)
class AddPrefix:
    value: str


@dataclass(frozen=True, slots=True)
class AddSuffix:
    value: str


ValueProcessingCommand = RegexReplace | ToLower | ToUpper | AddPrefix | AddSuffix


def process_values(command: ValueProcessingCommand, values: list[str]) -> list[str]:
    if isinstance(command, RegexReplace):
        try:
            compiled = re.compile(command.pattern)
        except re.error as exc:
            raise InvalidRegexError(command.pattern, str(exc)) from exc
        expand = _compile_replacement(command.replacement)
        return [compiled.sub(expand, value) for value in values]
    if isinstance(command, ToLower):
        return [value.lower() for value in values]
    if isinstance(command, ToUpper):
        return [value.upper() for value in values]
    if isinstance(command, AddPrefix):
        return [command.value + value for value in values]
    if isinstance(command, AddSuffix):
        return [value + command.value for value in values]
    raise TypeError(f"Unsupported value-processing command: {type(command).__name__}")


_GROUP_NAME_CHARS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_")


@lru_cache(maxsize=64)
def _compile_replacement(template: str) -> Callable[[re.Match[str]], str]:
    # Parts are literal strings or group references (int or name).
    parts: list[str | int | tuple[str]] = []
    literal: list[str] = []
    pos = 0
    length = len(template)

    while pos < length:
        ch = template[pos]
        if ch != "$":
            literal.append(ch)
            pos += 1
            continue

        nxt = template[pos + 1] if pos + 1 < length else ""
        if nxt == "$":
            literal.append("$")
            pos += 2
            continue

        if nxt == "{":
            end = template.find("}", pos + 2)
            name = template[pos + 2 : end] if end != -1 else ""
            if end == -1 or not name or any(c not in _GROUP_NAME_CHARS for c in name):
                literal.append("$")
                pos += 1
                continue
            pos = end + 1
        else:
            end = pos + 1
            while end < length and template[end] in _GROUP_NAME_CHARS:
                end += 1
            name = template[pos + 1 : end]
            if not name:
                literal.append("$")
                pos += 1
                continue
            pos = end

        if literal:
            parts.append("".join(literal))
            literal = []
        parts.append(int(name) if name.isdigit() else (name,))

    if literal:
        parts.append("".join(literal))

    def expand(match: re.Match[str]) -> str:
        out: list[str] = []
        for part in parts:
            if isinstance(part, str):
                out.append(part)
                continue
            group = part if isinstance(part, int) else part[0]
            try:
                value = match.group(group)
            except IndexError:
                value = None
            out.append(value or "")
        return "".join(out)

    return expand


# ---------------------------
# Pipelines and value sources
# ---------------------------


@dataclass(frozen=True, slots=True)
class StringValueCreatingPipeline:
    selecting: ElementSelectingCommand
    extracting: ValueExtractingCommand
    processing: tuple[ValueProcessingCommand, ...] = ()

    def run_on(self, node: Node) -> list[str]:
        try:
            selected = select_elements(self.selecting, node)
        except CommandError as exc:
            raise PipelineError(0) from exc
        logger.debug("%s selected %d element(s)", type(self.selecting).__name__, len(selected))

        try:
            values = extract_values(self.extracting, selected)
        except CommandError as exc:
            raise PipelineError(1) from exc

        for index, command in enumerate(self.processing, start=2):
            try:
                values = process_values(command, values)
            except CommandError as exc:
                raise PipelineError(index) from exc

        if not values:
            logger.debug("Value pipeline resulted in no values")
        return values

    def render(self, node: Node) -> list[str]:
        return self.run_on(node)


@dataclass(frozen=True, slots=True)
class StringValue:
    """A literal value written in the pipeline definition."""

    value: str

    def render(self, node: Node) -> list[str]:
        return [self.value]


ValueSource = StringValue | StringValueCreatingPipeline
