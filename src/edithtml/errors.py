"""Exception hierarchy for edithtml.

Every error raised by the package derives from EditorError. Nested failures
are chained with ``raise ... from ...``; walking ``__cause__`` from a run-level
error reaches the failing command, passing one PipelineError per enclosing
pipeline.
"""

from __future__ import annotations

from typing import TextIO

# sysexits.h values
EX_USAGE = 64
EX_DATAERR = 65
EX_NOINPUT = 66
EX_SOFTWARE = 70
EX_CANTCREAT = 73
EX_IOERR = 74


class EditorError(Exception):
    """Base class for all edithtml errors."""

    exit_code: int = EX_SOFTWARE


class PipelineSyntaxError(EditorError, ValueError):
    """Raised when a pipeline definition does not follow the pipeline grammar."""

    exit_code = EX_DATAERR

    def __init__(self, text: str, position: int, expected: list[str]) -> None:
        self.text = text
        self.position = position
        self.expected = expected
        self.line = text.count("\n", 0, position) + 1
        self.column = position - (text.rfind("\n", 0, position) + 1) + 1
        super().__init__(self._format())

    def _format(self) -> str:
        found = repr(self.text[self.position]) if self.position < len(self.text) else "end of input"
        if not self.expected:
            return f"Unexpected {found} at line {self.line}, column {self.column}"
        return f"Expected one of {', '.join(self.expected)} at line {self.line}, column {self.column}, found {found}"


# ------------
# HTML import
# ------------


class HtmlImportError(EditorError):
    """The markup could not be turned into a node tree."""

    exit_code = EX_DATAERR


class HtmlParseError(HtmlImportError):
    def __init__(self, message: str = "HTML parser rejected the markup") -> None:
        super().__init__(message)


class NothingImportedError(HtmlImportError):
    def __init__(self) -> None:
        super().__init__("Nothing imported: the document contains no element")


# --------------------
# Pipeline execution
# --------------------


class PipelineError(EditorError):
    """A command inside a pipeline failed; the cause is the command's error."""

    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"Command at index {index} failed")


class CommandError(EditorError):
    """A single command failed."""


class SubpipelineFailedError(CommandError):
    def __init__(self) -> None:
        super().__init__("Sub-Pipeline failed")


class ReadingCommandInputFailedError(CommandError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Failed reading file {path!r}")


class ParsingCommandInputFailedError(CommandError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Failed parsing HTML from {path!r}")


class InvalidRegexError(CommandError):
    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        super().__init__(f"Invalid regular expression {pattern!r}: {reason}")


# ---------------------
# Run-level (editor)
# ---------------------


class ParsingPipelineFailedError(EditorError):
    exit_code = EX_DATAERR

    def __init__(self) -> None:
        super().__init__("Failed parsing pipeline definition")


class ReadingInputFailedError(EditorError):
    exit_code = EX_IOERR

    def __init__(self) -> None:
        super().__init__("Failed reading input")


class ParsingInputFailedError(EditorError):
    exit_code = EX_DATAERR

    def __init__(self) -> None:
        super().__init__("Failed parsing HTML input")


class LoadingParsedHtmlFailedError(EditorError):
    exit_code = EX_DATAERR

    def __init__(self) -> None:
        super().__init__("Failed converting parsed HTML")


class RunningPipelineFailedError(EditorError):
    exit_code = EX_SOFTWARE

    def __init__(self) -> None:
        super().__init__("Failed running pipeline")


class WritingOutputFailedError(EditorError):
    exit_code = EX_IOERR

    def __init__(self) -> None:
        super().__init__("Failed writing output")


def error_chain(error: BaseException) -> list[BaseException]:
    """Return the error followed by its causes, outermost first."""
    chain: list[BaseException] = []
    current: BaseException | None = error
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__
    return chain


def command_path(error: BaseException) -> list[int]:
    """Indices of the failing command, from the top-level pipeline down to the leaf."""
    return [e.index for e in error_chain(error) if isinstance(e, PipelineError)]


def report(error: BaseException, stream: TextIO) -> None:
    chain = error_chain(error)
    stream.write(f"[ERROR] {chain[0]}\n")
    if len(chain) > 1:
        stream.write("\nCaused by:\n")
        for number, cause in enumerate(chain[1:]):
            stream.write(f"    {number}: {cause}\n")
