"""Element-processing and element-creating commands.

Commands are immutable descriptions produced by the grammar. ``execute`` and
``create`` dispatch them to one function per command. Processing commands
receive the current node list and return the next one; mutations happen in
place on the shared nodes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .errors import (
    HtmlImportError,
    ParsingCommandInputFailedError,
    PipelineError,
    ReadingCommandInputFailedError,
    SubpipelineFailedError,
)
from .loader import load_html_file
from .node import Node
from .serialize import escape_attribute, escape_comment, escape_text

if TYPE_CHECKING:
    from .pipeline import ElementCreatingPipeline, ElementProcessingPipeline
    from .selector import CssSelectorList
    from .values import ValueSource

logger = logging.getLogger(__name__)


# ------------------------------
# Element-processing commands
# ------------------------------


@dataclass(frozen=True, slots=True)
class ExtractElement:
    selector: CssSelectorList


@dataclass(frozen=True, slots=True)
class RemoveElement:
    selector: CssSelectorList


@dataclass(frozen=True, slots=True)
class ForEach:
    selector: CssSelectorList
    pipeline: ElementProcessingPipeline


@dataclass(frozen=True, slots=True)
class ReplaceElement:
    selector: CssSelectorList
    pipeline: ElementCreatingPipeline


@dataclass(frozen=True, slots=True)
class ClearAttribute:
    attribute: str


@dataclass(frozen=True, slots=True)
class ClearContent:
    pass


@dataclass(frozen=True, slots=True)
class SetAttribute:
    attribute: str
    value: ValueSource


@dataclass(frozen=True, slots=True)
class SetTextContent:
    value: ValueSource


@dataclass(frozen=True, slots=True)
class AppendTextContent:
    value: ValueSource


@dataclass(frozen=True, slots=True)
class AppendComment:
    value: ValueSource


@dataclass(frozen=True, slots=True)
class AppendElement:
    pipeline: ElementCreatingPipeline


@dataclass(frozen=True, slots=True)
class PrependTextContent:
    value: ValueSource


@dataclass(frozen=True, slots=True)
class PrependComment:
    value: ValueSource


@dataclass(frozen=True, slots=True)
class PrependElement:
    pipeline: ElementCreatingPipeline


ElementProcessingCommand = (
    ExtractElement
    | RemoveElement
    | ForEach
    | ReplaceElement
    | ClearAttribute
    | ClearContent
    | SetAttribute
    | SetTextContent
    | AppendTextContent
    | AppendComment
    | AppendElement
    | PrependTextContent
    | PrependComment
    | PrependElement
)


# ----------------------------
# Element-creating commands
# ----------------------------


@dataclass(frozen=True, slots=True)
class CreateElement:
    tag_name: str


@dataclass(frozen=True, slots=True)
class FromFile:
    path: str


@dataclass(frozen=True, slots=True)
class FromReplaced:
    selector: CssSelectorList


ElementCreatingCommand = CreateElement | FromFile | FromReplaced


# ---------
# Dispatch
# ---------


def execute(command: ElementProcessingCommand, nodes: list[Node]) -> list[Node]:
    """Run one processing command and return the next intermediate result."""
    if isinstance(command, ExtractElement):
        return _extract_element(command, nodes)
    if isinstance(command, RemoveElement):
        return _remove_element(command, nodes)
    if isinstance(command, ForEach):
        return _for_each(command, nodes)
    if isinstance(command, ReplaceElement):
        return _replace_element(command, nodes)
    if isinstance(command, ClearAttribute):
        return _clear_attribute(command, nodes)
    if isinstance(command, ClearContent):
        return _clear_content(nodes)
    if isinstance(command, SetAttribute):
        return _set_attribute(command, nodes)
    if isinstance(command, SetTextContent):
        return _set_text_content(command, nodes)
    if isinstance(command, (AppendTextContent, PrependTextContent)):
        return _add_text_content(command, nodes, prepend=isinstance(command, PrependTextContent))
    if isinstance(command, (AppendComment, PrependComment)):
        return _add_comment(command, nodes, prepend=isinstance(command, PrependComment))
    if isinstance(command, (AppendElement, PrependElement)):
        return _add_element(command, nodes, prepend=isinstance(command, PrependElement))
    raise TypeError(f"Unsupported element-processing command: {type(command).__name__}")


def create(command: ElementCreatingCommand, nodes: list[Node]) -> list[Node]:
    """Run one creating command against the creating pipeline's input."""
    if isinstance(command, CreateElement):
        logger.debug("Creating element <%s>", command.tag_name)
        return [Node(command.tag_name)]
    if isinstance(command, FromFile):
        return _from_file(command)
    if isinstance(command, FromReplaced):
        logger.debug("Copying elements matching %s", command.selector)
        return [node.deep_copy() for node in command.selector.query(nodes)]
    raise TypeError(f"Unsupported element-creating command: {type(command).__name__}")


# ------------------------
# Processing implementations
# ------------------------


def _extract_element(command: ExtractElement, nodes: list[Node]) -> list[Node]:
    logger.debug("Extracting elements matching %s", command.selector)
    return [node.deep_copy() for node in command.selector.query(nodes)]


def _remove_element(command: RemoveElement, nodes: list[Node]) -> list[Node]:
    logger.debug("Removing elements matching %s", command.selector)
    for node in command.selector.query(nodes):
        node.detach()
    return nodes


def _for_each(command: ForEach, nodes: list[Node]) -> list[Node]:
    matches = command.selector.query(nodes)
    logger.debug("Running sub-pipeline on %d element(s) matching %s", len(matches), command.selector)
    _run_subpipeline(command.pipeline, matches)
    return nodes


def _replace_element(command: ReplaceElement, nodes: list[Node]) -> list[Node]:
    logger.debug("Replacing elements matching %s", command.selector)
    for target in command.selector.query(nodes):
        created = _run_subpipeline(command.pipeline, [target])
        parent = target.parent
        if parent is not None:
            for new_node in created:
                parent.insert_before(new_node.deep_copy(), target)
        target.detach()
    return nodes


def _clear_attribute(command: ClearAttribute, nodes: list[Node]) -> list[Node]:
    logger.debug("Clearing attribute %r", command.attribute)
    for node in nodes:
        node.clear_attribute(command.attribute)
    return nodes


def _clear_content(nodes: list[Node]) -> list[Node]:
    logger.debug("Clearing content")
    for node in nodes:
        node.clear_children()
    return nodes


def _set_attribute(command: SetAttribute, nodes: list[Node]) -> list[Node]:
    logger.debug("Setting attribute %r from %r", command.attribute, command.value)
    for node in nodes:
        value = escape_attribute(_render(command.value, node))
        node.set_attribute(command.attribute, value.replace("\n", "\\n"))
    return nodes


def _set_text_content(command: SetTextContent, nodes: list[Node]) -> list[Node]:
    logger.debug("Setting text content from %r", command.value)
    for node in nodes:
        # The value may read the current content, render it before clearing.
        text = escape_text(_render(command.value, node))
        node.clear_children()
        node.append_child(Node.text(text))
    return nodes


def _add_text_content(
    command: AppendTextContent | PrependTextContent, nodes: list[Node], *, prepend: bool
) -> list[Node]:
    logger.debug("%s text content from %r", "Prepending" if prepend else "Appending", command.value)
    for node in nodes:
        _attach(node, Node.text(escape_text(_render(command.value, node))), prepend=prepend)
    return nodes


def _add_comment(command: AppendComment | PrependComment, nodes: list[Node], *, prepend: bool) -> list[Node]:
    logger.debug("%s comment from %r", "Prepending" if prepend else "Appending", command.value)
    for node in nodes:
        _attach(node, Node.comment(escape_comment(_render(command.value, node))), prepend=prepend)
    return nodes


def _add_element(command: AppendElement | PrependElement, nodes: list[Node], *, prepend: bool) -> list[Node]:
    logger.debug("%s created element", "Prepending" if prepend else "Appending")
    for node in nodes:
        created = _run_subpipeline(command.pipeline, [])
        if created:
            _attach(node, created[-1], prepend=prepend)
    return nodes


def _from_file(command: FromFile) -> list[Node]:
    logger.debug("Loading HTML from %s", command.path)
    try:
        root = load_html_file(command.path)
    except (OSError, UnicodeDecodeError) as exc:
        raise ReadingCommandInputFailedError(command.path) from exc
    except HtmlImportError as exc:
        raise ParsingCommandInputFailedError(command.path) from exc
    return [root.deep_copy()]


# --------
# Helpers
# --------


def _attach(node: Node, child: Node, *, prepend: bool) -> None:
    if prepend:
        node.prepend_child(child)
    else:
        node.append_child(child)


def _render(value: ValueSource, node: Node) -> str:
    try:
        return "".join(value.render(node))
    except PipelineError as exc:
        raise SubpipelineFailedError from exc


def _run_subpipeline(pipeline: ElementProcessingPipeline | ElementCreatingPipeline, nodes: list[Node]) -> list[Node]:
    try:
        return pipeline.run_on(nodes)
    except PipelineError as exc:
        raise SubpipelineFailedError from exc
