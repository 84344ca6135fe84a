"""Run a pipeline definition against an HTML document."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, BinaryIO

from .errors import (
    HtmlParseError,
    LoadingParsedHtmlFailedError,
    NothingImportedError,
    ParsingInputFailedError,
    ParsingPipelineFailedError,
    PipelineError,
    PipelineSyntaxError,
    ReadingInputFailedError,
    RunningPipelineFailedError,
    WritingOutputFailedError,
)
from .grammar import parse_pipeline
from .loader import load_html

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .node import Node

logger = logging.getLogger(__name__)


class HtmlStreamingEditor:
    """Reads a UTF-8 document from ``input_stream`` and edits it with a pipeline.

    >>> import io
    >>> editor = HtmlStreamingEditor(io.BytesIO(b'<p id="a">text</p>'))
    >>> [node.outer_html() for node in editor.run("SET-ATTR{id <= 'b'}")]
    ['<p id="b">text</p>']
    """

    __slots__ = ("input_stream",)

    def __init__(self, input_stream: BinaryIO) -> None:
        self.input_stream = input_stream

    def run(self, definition: str) -> list[Node]:
        # The definition is parsed before any input is read, so a syntax
        # error never leaves a half-processed document behind.
        try:
            pipeline = parse_pipeline(definition)
        except PipelineSyntaxError as exc:
            raise ParsingPipelineFailedError from exc
        logger.debug("Parsed pipeline with %d command(s)", len(pipeline.commands))

        try:
            raw = self.input_stream.read()
        except OSError as exc:
            raise ReadingInputFailedError from exc

        try:
            markup = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        except UnicodeDecodeError as exc:
            raise ParsingInputFailedError from exc

        try:
            root = load_html(markup)
        except HtmlParseError as exc:
            raise ParsingInputFailedError from exc
        except NothingImportedError as exc:
            raise LoadingParsedHtmlFailedError from exc

        try:
            return pipeline.run_on([root])
        except PipelineError as exc:
            raise RunningPipelineFailedError from exc


def write_result(nodes: Iterable[Node], output: BinaryIO) -> None:
    """Write the markup of every node followed by a newline, then flush."""
    try:
        for node in nodes:
            output.write(node.outer_html().encode("utf-8"))
            output.write(b"\n")
        output.flush()
    except OSError as exc:
        raise WritingOutputFailedError from exc
