"""Edit HTML documents with a pipeline of CSS-selector based commands."""

from .editor import HtmlStreamingEditor, write_result
from .errors import (
    CommandError,
    EditorError,
    HtmlImportError,
    PipelineError,
    PipelineSyntaxError,
    command_path,
    report,
)
from .grammar import parse_pipeline, parse_selector_list
from .loader import load_html, load_html_file
from .node import Node
from .pipeline import ElementCreatingPipeline, ElementProcessingPipeline

__all__ = [
    "CommandError",
    "EditorError",
    "ElementCreatingPipeline",
    "ElementProcessingPipeline",
    "HtmlImportError",
    "HtmlStreamingEditor",
    "Node",
    "PipelineError",
    "PipelineSyntaxError",
    "command_path",
    "load_html",
    "load_html_file",
    "parse_pipeline",
    "parse_selector_list",
    "report",
    "write_result",
]
