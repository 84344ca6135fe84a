"""CSS selectors for the pipeline language.

Supported: element names, ``#id``, ``.class``, positional pseudo-classes and
attribute selectors, combined with descendant, child, general sibling and
adjacent sibling combinators, and joined into comma-separated lists.

Queries return nodes in the order they are found. Duplicates are kept: a node
reached through two paths of a list, or twice through one path, appears twice.

Attribute values are stored escaped; matching compares against the unescaped
value, as written in the selector.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from html import unescape
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .node import Node


class _StrEnum(str, Enum):
    """Backport of enum.StrEnum (Python 3.11+).

    We support Python 3.10+, so we use this small mixin instead.
    """


class AttributeOperator(_StrEnum):
    EXISTS = ""
    STARTS = "^="
    ENDS = "$="
    SUBSTRING_CONTAINS = "*="
    WHITESPACE_TERM_CONTAINS = "~="
    EQUALS_EXACT = "="
    EQUALS_UP_TO_HYPHEN = "|="


class Combinator(_StrEnum):
    START = "start"
    DESCENDANT = " "
    DIRECT_CHILD = ">"
    GENERAL_SIBLING = "~"
    ADJACENT_SIBLING = "+"


class PseudoClassKind(_StrEnum):
    FIRST_CHILD = "first-child"
    NTH_CHILD = "nth-child"
    FIRST_OF_TYPE = "first-of-type"
    NTH_OF_TYPE = "nth-of-type"
    LAST_CHILD = "last-child"
    NTH_LAST_CHILD = "nth-last-child"
    LAST_OF_TYPE = "last-of-type"
    NTH_LAST_OF_TYPE = "nth-last-of-type"


_OF_TYPE_KINDS = frozenset(
    {
        PseudoClassKind.FIRST_OF_TYPE,
        PseudoClassKind.NTH_OF_TYPE,
        PseudoClassKind.LAST_OF_TYPE,
        PseudoClassKind.NTH_LAST_OF_TYPE,
    }
)
_FROM_END_KINDS = frozenset(
    {
        PseudoClassKind.LAST_CHILD,
        PseudoClassKind.NTH_LAST_CHILD,
        PseudoClassKind.LAST_OF_TYPE,
        PseudoClassKind.NTH_LAST_OF_TYPE,
    }
)
_NUMBERED_KINDS = frozenset(
    {
        PseudoClassKind.NTH_CHILD,
        PseudoClassKind.NTH_OF_TYPE,
        PseudoClassKind.NTH_LAST_CHILD,
        PseudoClassKind.NTH_LAST_OF_TYPE,
    }
)


def _attribute_value(node: Node, name: str) -> str | None:
    value = node.get_attribute(name)
    if value is None or "&" not in value:
        return value
    return unescape(value)


@dataclass(frozen=True, slots=True)
class CssAttributeSelector:
    attribute: str
    operator: AttributeOperator = AttributeOperator.EXISTS
    value: str | None = None

    def matches(self, node: Node) -> bool:
        given = _attribute_value(node, self.attribute)
        if given is None:
            return False

        op = self.operator
        if op == AttributeOperator.EXISTS:
            return True

        expected = self.value or ""
        if op == AttributeOperator.STARTS:
            return given.startswith(expected)
        if op == AttributeOperator.ENDS:
            return given.endswith(expected)
        if op == AttributeOperator.SUBSTRING_CONTAINS:
            return expected in given
        if op == AttributeOperator.WHITESPACE_TERM_CONTAINS:
            return expected in given.split()
        if op == AttributeOperator.EQUALS_EXACT:
            return given == expected
        # EQUALS_UP_TO_HYPHEN
        return given == expected or given.split("-", 1)[0] == expected

    def __str__(self) -> str:
        if self.operator == AttributeOperator.EXISTS:
            return f"[{self.attribute}]"
        return f"[{self.attribute}{self.operator.value}{_quote(self.value or '')}]"


@dataclass(frozen=True, slots=True)
class CssPseudoClass:
    kind: PseudoClassKind
    # 1-based position for the nth-* kinds; 1 for first-* and last-*.
    position: int = 1

    def matches(self, node: Node) -> bool:
        parent = node.parent
        if parent is None:
            siblings = [node]
        elif self.kind in _OF_TYPE_KINDS:
            siblings = [child for child in parent.children if child.tag_name == node.tag_name]
        else:
            siblings = [child for child in parent.children if child.is_tag]

        index = _position_in(siblings, node)
        if index < 0:
            return False
        if self.kind in _FROM_END_KINDS:
            return len(siblings) - index == self.position
        return index + 1 == self.position

    def __str__(self) -> str:
        if self.kind in _NUMBERED_KINDS:
            return f":{self.kind.value}({self.position})"
        return f":{self.kind.value}"


def _position_in(siblings: list[Node], node: Node) -> int:
    for idx, sibling in enumerate(siblings):
        if sibling is node:
            return idx
    return -1


@dataclass(frozen=True, slots=True)
class CssSelector:
    """A compound selector: all present constraints must hold."""

    element: str | None = None
    id: str | None = None
    classes: tuple[str, ...] = ()
    pseudo_classes: tuple[CssPseudoClass, ...] = ()
    attributes: tuple[CssAttributeSelector, ...] = ()

    def matches(self, node: Node) -> bool:
        if not node.is_tag:
            return False

        if self.element is not None and node.tag_name != self.element:
            return False

        if self.id is not None and _attribute_value(node, "id") != self.id:
            return False

        if self.classes:
            node_classes = (_attribute_value(node, "class") or "").split()
            for cls in self.classes:
                if cls not in node_classes:
                    return False

        for pseudo in self.pseudo_classes:
            if not pseudo.matches(node):
                return False

        for attribute in self.attributes:
            if not attribute.matches(node):
                return False

        return True

    def __str__(self) -> str:
        parts = [self.element or ""]
        if self.id is not None:
            parts.append(f"#{self.id}")
        parts.extend(f".{cls}" for cls in self.classes)
        parts.extend(str(pseudo) for pseudo in self.pseudo_classes)
        parts.extend(str(attribute) for attribute in self.attributes)
        return "".join(parts)


@dataclass(frozen=True, slots=True)
class CssSelectorStep:
    selector: CssSelector
    combinator: Combinator = Combinator.START


@dataclass(frozen=True, slots=True)
class CssSelectorPath:
    """A chain of compound selectors. The first step always uses START."""

    steps: tuple[CssSelectorStep, ...]

    def __post_init__(self) -> None:
        if not self.steps:
            msg = "A selector path needs at least one step"
            raise ValueError(msg)
        if self.steps[0].combinator != Combinator.START:
            msg = "The first step of a selector path must use the START combinator"
            raise ValueError(msg)

    @classmethod
    def single(cls, selector: CssSelector) -> CssSelectorPath:
        return cls((CssSelectorStep(selector),))

    def query(self, nodes: Iterable[Node]) -> list[Node]:
        findings = list(nodes)
        for step in self.steps:
            candidates = _expand(step.combinator, findings)
            selector = step.selector
            findings = [node for node in candidates if selector.matches(node)]
        return findings

    def __str__(self) -> str:
        parts: list[str] = []
        for step in self.steps:
            if step.combinator == Combinator.DESCENDANT:
                parts.append(" ")
            elif step.combinator != Combinator.START:
                parts.append(f" {step.combinator.value} ")
            parts.append(str(step.selector))
        return "".join(parts)


def _expand(combinator: Combinator, sources: list[Node]) -> list[Node]:
    expanded: list[Node] = []
    if combinator == Combinator.START:
        for node in sources:
            expanded.append(node)
            expanded.extend(node.iter_descendants())
    elif combinator == Combinator.DESCENDANT:
        for node in sources:
            expanded.extend(node.iter_descendants())
    elif combinator == Combinator.DIRECT_CHILD:
        for node in sources:
            expanded.extend(node.children)
    elif combinator == Combinator.GENERAL_SIBLING:
        for node in sources:
            expanded.extend(node.iter_following_siblings())
    else:
        for node in sources:
            sibling = node.next_tag_sibling()
            if sibling is not None:
                expanded.append(sibling)
    return expanded


@dataclass(frozen=True, slots=True)
class CssSelectorList:
    paths: tuple[CssSelectorPath, ...] = field(default_factory=tuple)

    @classmethod
    def single(cls, selector: CssSelector) -> CssSelectorList:
        return cls((CssSelectorPath.single(selector),))

    def query(self, nodes: Iterable[Node]) -> list[Node]:
        start = list(nodes)
        findings: list[Node] = []
        for path in self.paths:
            findings.extend(path.query(start))
        return findings

    def __str__(self) -> str:
        return ", ".join(str(path) for path in self.paths)


def _quote(value: str) -> str:
    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"
    return '"' + value.replace('"', '\\"') + '"'
