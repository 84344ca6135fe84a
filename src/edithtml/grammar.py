# Parser for the pipeline language
# Recursive descent with backtracking; alternatives are tried in order and the
# first one that matches wins.

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn, TypeVar

from .commands import (
    AppendComment,
    AppendElement,
    AppendTextContent,
    ClearAttribute,
    ClearContent,
    CreateElement,
    ExtractElement,
    ForEach,
    FromFile,
    FromReplaced,
    PrependComment,
    PrependElement,
    PrependTextContent,
    RemoveElement,
    ReplaceElement,
    SetAttribute,
    SetTextContent,
)
from .constants import IDENTIFIER_CHARS, WHITESPACE_CHARS
from .errors import PipelineSyntaxError
from .pipeline import ElementCreatingPipeline, ElementProcessingPipeline
from .selector import (
    AttributeOperator,
    Combinator,
    CssAttributeSelector,
    CssPseudoClass,
    CssSelector,
    CssSelectorList,
    CssSelectorPath,
    CssSelectorStep,
    PseudoClassKind,
)
from .values import (
    AddPrefix,
    AddSuffix,
    GetAttribute,
    GetTextContent,
    QueryElement,
    QueryParent,
    QueryRoot,
    RegexReplace,
    StringValue,
    StringValueCreatingPipeline,
    ToLower,
    ToUpper,
    UseElement,
    UseParent,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from .commands import ElementCreatingCommand, ElementProcessingCommand
    from .values import (
        ElementSelectingCommand,
        ValueExtractingCommand,
        ValueProcessingCommand,
        ValueSource,
    )

T = TypeVar("T")

__all__ = [
    "PipelineParser",
    "PipelineSyntaxError",
    "parse_element_creating_pipeline",
    "parse_element_processing_command",
    "parse_element_selecting_command",
    "parse_pipeline",
    "parse_selector",
    "parse_selector_list",
    "parse_selector_path",
    "parse_string_value_pipeline",
    "parse_value",
    "parse_value_extracting_command",
    "parse_value_processing_command",
]

VALUE_DELIMITERS = "\"'?"
ASSIGNMENT_MARKERS = ("↤", "<=")
ITERATION_MARKERS = ("↦", "=>")

# Longest operators first: "=" would otherwise shadow the two-character forms.
_ATTRIBUTE_OPERATORS = (
    ("^=", AttributeOperator.STARTS),
    ("$=", AttributeOperator.ENDS),
    ("*=", AttributeOperator.SUBSTRING_CONTAINS),
    ("~=", AttributeOperator.WHITESPACE_TERM_CONTAINS),
    ("|=", AttributeOperator.EQUALS_UP_TO_HYPHEN),
    ("=", AttributeOperator.EQUALS_EXACT),
)

_COMBINATORS = {
    ">": Combinator.DIRECT_CHILD,
    "~": Combinator.GENERAL_SIBLING,
    "+": Combinator.ADJACENT_SIBLING,
}

_NUMBERED_PSEUDO_CLASSES = frozenset(
    {
        PseudoClassKind.NTH_CHILD,
        PseudoClassKind.NTH_OF_TYPE,
        PseudoClassKind.NTH_LAST_CHILD,
        PseudoClassKind.NTH_LAST_OF_TYPE,
    }
)


class _NoMatch(Exception):
    """Raised by a rule that does not match at the current position."""


class PipelineParser:
    """Parses pipeline definitions and their parts.

    Rules raise ``_NoMatch`` and leave ``pos`` undefined on failure; callers
    that want to try another alternative go through ``_attempt`` which restores
    the position. The furthest failure position and what was expected there are
    kept for the error message.
    """

    __slots__ = ("_expected", "_furthest", "length", "pos", "text")

    text: str
    pos: int
    length: int

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self.length = len(text)
        self._furthest = 0
        self._expected: set[str] = set()

    def parse_entire(self, rule: Callable[[], T], *, strip: bool = False) -> T:
        """Apply ``rule`` to the whole text or raise PipelineSyntaxError."""
        try:
            if strip:
                self._ws()
            result = rule()
            if strip:
                self._ws()
            if self.pos != self.length:
                self._fail("end of input")
            return result
        except _NoMatch:
            raise PipelineSyntaxError(self.text, self._furthest, sorted(self._expected)) from None

    # ----------
    # Primitives
    # ----------

    def _fail(self, expected: str) -> NoReturn:
        self._record(expected)
        raise _NoMatch

    def _record(self, expected: str) -> None:
        if self.pos > self._furthest:
            self._furthest = self.pos
            self._expected = {expected}
        elif self.pos == self._furthest:
            self._expected.add(expected)

    def _peek(self) -> str:
        if self.pos < self.length:
            return self.text[self.pos]
        return ""

    def _attempt(self, rule: Callable[[], T]) -> T | None:
        start = self.pos
        try:
            return rule()
        except _NoMatch:
            self.pos = start
            return None

    def _choice(self, *rules: Callable[[], T]) -> T:
        for rule in rules:
            result = self._attempt(rule)
            if result is not None:
                return result
        raise _NoMatch

    def _ws(self) -> None:
        while self.pos < self.length and self.text[self.pos] in WHITESPACE_CHARS:
            self.pos += 1

    def _literal(self, *tokens: str) -> str:
        for token in tokens:
            if self.text.startswith(token, self.pos):
                self.pos += len(token)
                return token
        for token in tokens:
            self._record(repr(token))
        raise _NoMatch

    def _keyword(self, *spellings: str) -> str:
        for spelling in spellings:
            end = self.pos + len(spelling)
            if self.text.startswith(spelling, self.pos) and (end >= self.length or self.text[end] not in IDENTIFIER_CHARS):
                self.pos = end
                return spelling
        for spelling in spellings:
            self._record(spelling)
        raise _NoMatch

    def _identifier(self) -> str:
        start = self.pos
        while self.pos < self.length and self.text[self.pos] in IDENTIFIER_CHARS:
            self.pos += 1
        if self.pos == start:
            self._fail("identifier")
        return self.text[start : self.pos]

    def _number(self) -> int:
        start = self.pos
        while self.pos < self.length and self.text[self.pos] in "0123456789":
            self.pos += 1
        if self.pos == start:
            self._fail("number")
        return int(self.text[start : self.pos])

    def value(self) -> str:
        """A quoted value; a backslash before the delimiter escapes it."""
        delimiter = self._peek()
        if not delimiter or delimiter not in VALUE_DELIMITERS:
            self._fail("quoted value")
        self.pos += 1

        parts: list[str] = []
        start = self.pos
        while self.pos < self.length:
            ch = self.text[self.pos]
            if ch == "\\" and self.text.startswith(delimiter, self.pos + 1):
                parts.append(self.text[start : self.pos])
                parts.append(delimiter)
                self.pos += 2
                start = self.pos
            elif ch == delimiter:
                parts.append(self.text[start : self.pos])
                self.pos += 1
                return "".join(parts)
            else:
                self.pos += 1

        self._fail(f"closing {delimiter}")

    def _open(self) -> None:
        self._ws()
        self._literal("{")
        self._ws()

    def _close(self) -> None:
        self._ws()
        self._literal("}")

    def _pipe(self) -> None:
        self._ws()
        self._literal("|")
        self._ws()

    def _assignment(self) -> str:
        marker = self._literal(*ASSIGNMENT_MARKERS)
        self._ws()
        return marker

    def _iteration(self) -> str:
        marker = self._literal(*ITERATION_MARKERS)
        self._ws()
        return marker

    # ---------
    # Selectors
    # ---------

    def _attribute_operator(self) -> AttributeOperator:
        for token, operator in _ATTRIBUTE_OPERATORS:
            if self.text.startswith(token, self.pos):
                self.pos += len(token)
                return operator
        self._fail("attribute operator")

    def _css_attribute(self) -> CssAttributeSelector:
        self._literal("[")
        self._ws()
        name = self._identifier()
        self._ws()

        operator = self._attempt(self._attribute_operator)
        if operator is None:
            self._literal("]")
            return CssAttributeSelector(name)

        self._ws()
        expected = self._choice(self.value, self._identifier)
        self._ws()
        self._literal("]")
        return CssAttributeSelector(name, operator, expected)

    def _css_pseudo_class(self) -> CssPseudoClass:
        self._literal(":")
        start = self.pos
        name = self._identifier()
        try:
            kind = PseudoClassKind(name)
        except ValueError:
            self.pos = start
            self._fail("pseudo-class")

        if kind not in _NUMBERED_PSEUDO_CLASSES:
            return CssPseudoClass(kind)

        self._literal("(")
        self._ws()
        position = self._number()
        self._ws()
        self._literal(")")
        return CssPseudoClass(kind, position)

    def css_selector(self) -> CssSelector:
        start = self.pos
        element = self._attempt(self._identifier)

        element_id = None
        if self._peek() == "#":
            self.pos += 1
            element_id = self._identifier()

        classes: list[str] = []
        while self._peek() == ".":
            self.pos += 1
            classes.append(self._identifier())

        pseudo_classes: list[CssPseudoClass] = []
        while self._peek() == ":":
            pseudo_classes.append(self._css_pseudo_class())

        attributes: list[CssAttributeSelector] = []
        while self._peek() == "[":
            attributes.append(self._css_attribute())

        if self.pos == start:
            self._fail("selector")

        return CssSelector(element, element_id, tuple(classes), tuple(pseudo_classes), tuple(attributes))

    def _css_selector_step(self) -> CssSelectorStep:
        start = self.pos
        self._ws()
        ch = self._peek()
        if ch in _COMBINATORS:
            self.pos += 1
            self._ws()
            combinator = _COMBINATORS[ch]
        elif self.pos > start:
            combinator = Combinator.DESCENDANT
        else:
            self._fail("combinator")
        return CssSelectorStep(self.css_selector(), combinator)

    def css_selector_path(self) -> CssSelectorPath:
        steps = [CssSelectorStep(self.css_selector(), Combinator.START)]
        while (step := self._attempt(self._css_selector_step)) is not None:
            steps.append(step)
        return CssSelectorPath(tuple(steps))

    def _next_css_selector_path(self) -> CssSelectorPath:
        self._ws()
        self._literal(",")
        self._ws()
        return self.css_selector_path()

    def css_selector_list(self) -> CssSelectorList:
        paths = [self.css_selector_path()]
        while (path := self._attempt(self._next_css_selector_path)) is not None:
            paths.append(path)
        return CssSelectorList(tuple(paths))

    def _enclosed_selector_list(self) -> CssSelectorList:
        self._open()
        selector = self.css_selector_list()
        self._close()
        return selector

    def _enclosed_identifier(self) -> str:
        self._open()
        name = self._identifier()
        self._close()
        return name

    def _enclosed_value(self) -> str:
        self._open()
        text = self.value()
        self._close()
        return text

    # ------------------------
    # String-creating pipeline
    # ------------------------

    def element_selecting_command(self) -> ElementSelectingCommand:
        return self._choice(
            self._use_element,
            self._use_parent,
            self._query_element,
            self._query_parent,
            self._query_root,
        )

    def _use_element(self) -> UseElement:
        self._keyword("USE-ELEMENT", "THIS")
        return UseElement()

    def _use_parent(self) -> UseParent:
        self._keyword("USE-PARENT", "PARENT")
        return UseParent()

    def _query_element(self) -> QueryElement:
        self._keyword("QUERY-ELEMENT", "FROM-ELEMENT")
        return QueryElement(self._enclosed_selector_list())

    def _query_parent(self) -> QueryParent:
        self._keyword("QUERY-PARENT", "FROM-PARENT")
        return QueryParent(self._enclosed_selector_list())

    def _query_root(self) -> QueryRoot:
        self._keyword("QUERY-ROOT", "FROM-ROOT")
        return QueryRoot(self._enclosed_selector_list())

    def value_extracting_command(self) -> ValueExtractingCommand:
        return self._choice(self._get_attribute, self._get_text_content)

    def _get_attribute(self) -> GetAttribute:
        self._keyword("GET-ATTRIBUTE", "GET-ATTR")
        return GetAttribute(self._enclosed_identifier())

    def _get_text_content(self) -> GetTextContent:
        self._keyword("GET-TEXT-CONTENT", "GET-TEXT")
        return GetTextContent()

    def value_processing_command(self) -> ValueProcessingCommand:
        return self._choice(
            self._regex_replace,
            self._to_lower,
            self._to_upper,
            self._add_prefix,
            self._add_suffix,
        )

    def _regex_replace(self) -> RegexReplace:
        self._keyword("REGEX-REPLACE", "SUBSTITUTE")
        self._open()
        pattern = self.value()
        self._ws()
        self._assignment()
        replacement = self.value()
        self._close()
        return RegexReplace(pattern, replacement)

    def _to_lower(self) -> ToLower:
        self._keyword("TO-LOWER", "LOWERCASE")
        return ToLower()

    def _to_upper(self) -> ToUpper:
        self._keyword("TO-UPPER", "UPPERCASE")
        return ToUpper()

    def _add_prefix(self) -> AddPrefix:
        self._keyword("ADD-PREFIX", "PREFIX")
        return AddPrefix(self._enclosed_value())

    def _add_suffix(self) -> AddSuffix:
        self._keyword("ADD-SUFFIX", "SUFFIX")
        return AddSuffix(self._enclosed_value())

    def _piped_value_processing_command(self) -> ValueProcessingCommand:
        self._pipe()
        return self.value_processing_command()

    def string_value_pipeline(self) -> StringValueCreatingPipeline:
        selecting = self.element_selecting_command()
        self._pipe()
        extracting = self.value_extracting_command()
        processing: list[ValueProcessingCommand] = []
        while (command := self._attempt(self._piped_value_processing_command)) is not None:
            processing.append(command)
        return StringValueCreatingPipeline(selecting, extracting, tuple(processing))

    def _string_value(self) -> StringValue:
        return StringValue(self.value())

    def value_source(self) -> ValueSource:
        return self._choice(self._string_value, self.string_value_pipeline)

    def _assigned_value_source(self) -> ValueSource:
        self._attempt(self._assignment)
        return self.value_source()

    # -------------------------
    # Element-creating pipeline
    # -------------------------

    def element_creating_command(self) -> ElementCreatingCommand:
        return self._choice(self._create_element, self._from_file, self._from_replaced)

    def _create_element(self) -> CreateElement:
        self._keyword("CREATE-ELEMENT", "NEW")
        return CreateElement(self._enclosed_identifier())

    def _from_file(self) -> FromFile:
        self._keyword("LOAD-FILE", "SOURCE")
        return FromFile(self._enclosed_value())

    def _from_replaced(self) -> FromReplaced:
        self._keyword("QUERY-REPLACED", "KEEP")
        return FromReplaced(self._enclosed_selector_list())

    def element_creating_pipeline(self) -> ElementCreatingPipeline:
        command = self.element_creating_command()
        return ElementCreatingPipeline(command, self._piped_processing_commands())

    # ---------------------------
    # Element-processing pipeline
    # ---------------------------

    def element_processing_command(self) -> ElementProcessingCommand:
        return self._choice(
            self._extract_element,
            self._remove_element,
            self._for_each,
            self._replace_element,
            self._clear_attribute,
            self._clear_content,
            self._set_attribute,
            self._set_text_content,
            self._append_text_content,
            self._append_comment,
            self._append_element,
            self._prepend_text_content,
            self._prepend_comment,
            self._prepend_element,
        )

    def _extract_element(self) -> ExtractElement:
        self._keyword("EXTRACT-ELEMENT", "ONLY")
        return ExtractElement(self._enclosed_selector_list())

    def _remove_element(self) -> RemoveElement:
        self._keyword("REMOVE-ELEMENT", "WITHOUT")
        return RemoveElement(self._enclosed_selector_list())

    def _for_each(self) -> ForEach:
        self._keyword("FOR-EACH", "WITH")
        self._open()
        selector = self.css_selector_list()
        self._ws()
        self._iteration()
        pipeline = self.element_processing_pipeline()
        self._close()
        return ForEach(selector, pipeline)

    def _replace_element(self) -> ReplaceElement:
        self._keyword("REPLACE-ELEMENT", "REPLACE")
        self._open()
        selector = self.css_selector_list()
        self._ws()
        self._assignment()
        pipeline = self.element_creating_pipeline()
        self._close()
        return ReplaceElement(selector, pipeline)

    def _clear_attribute(self) -> ClearAttribute:
        self._keyword("CLEAR-ATTRIBUTE", "CLEAR-ATTR")
        return ClearAttribute(self._enclosed_identifier())

    def _clear_content(self) -> ClearContent:
        self._keyword("CLEAR-CONTENT", "EMPTY")
        return ClearContent()

    def _set_attribute(self) -> SetAttribute:
        self._keyword("SET-ATTRIBUTE", "SET-ATTR")
        self._open()
        name = self._identifier()
        self._ws()
        self._assignment()
        value = self.value_source()
        self._close()
        return SetAttribute(name, value)

    def _enclosed_value_source(self) -> ValueSource:
        self._open()
        value = self._assigned_value_source()
        self._close()
        return value

    def _set_text_content(self) -> SetTextContent:
        self._keyword("SET-TEXT-CONTENT", "SET-TEXT")
        return SetTextContent(self._enclosed_value_source())

    def _append_text_content(self) -> AppendTextContent:
        self._keyword("APPEND-TEXT-CONTENT", "ADD-TEXT-CONTENT")
        return AppendTextContent(self._enclosed_value_source())

    def _append_comment(self) -> AppendComment:
        self._keyword("APPEND-COMMENT", "ADD-COMMENT")
        return AppendComment(self._enclosed_value_source())

    def _prepend_text_content(self) -> PrependTextContent:
        self._keyword("PREPEND-TEXT-CONTENT", "INSERT-TEXT-CONTENT")
        return PrependTextContent(self._enclosed_value_source())

    def _prepend_comment(self) -> PrependComment:
        self._keyword("PREPEND-COMMENT", "INSERT-COMMENT")
        return PrependComment(self._enclosed_value_source())

    def _enclosed_creating_pipeline(self) -> ElementCreatingPipeline:
        self._open()
        self._attempt(self._assignment)
        pipeline = self.element_creating_pipeline()
        self._close()
        return pipeline

    def _append_element(self) -> AppendElement:
        self._keyword("APPEND-ELEMENT", "ADD-ELEMENT")
        return AppendElement(self._enclosed_creating_pipeline())

    def _prepend_element(self) -> PrependElement:
        self._keyword("PREPEND-ELEMENT", "INSERT-ELEMENT")
        return PrependElement(self._enclosed_creating_pipeline())

    def _piped_processing_command(self) -> ElementProcessingCommand:
        self._pipe()
        return self.element_processing_command()

    def _piped_processing_commands(self) -> tuple[ElementProcessingCommand, ...]:
        commands: list[ElementProcessingCommand] = []
        while (command := self._attempt(self._piped_processing_command)) is not None:
            commands.append(command)
        return tuple(commands)

    def element_processing_pipeline(self) -> ElementProcessingPipeline:
        first = self.element_processing_command()
        return ElementProcessingPipeline((first, *self._piped_processing_commands()))


# ----------------
# Public functions
# ----------------


def parse_pipeline(text: str) -> ElementProcessingPipeline:
    """Parse a complete pipeline definition; surrounding whitespace is ignored."""
    parser = PipelineParser(text)
    return parser.parse_entire(parser.element_processing_pipeline, strip=True)


def parse_element_processing_command(text: str) -> ElementProcessingCommand:
    parser = PipelineParser(text)
    return parser.parse_entire(parser.element_processing_command)


def parse_element_creating_pipeline(text: str) -> ElementCreatingPipeline:
    parser = PipelineParser(text)
    return parser.parse_entire(parser.element_creating_pipeline)


def parse_string_value_pipeline(text: str) -> StringValueCreatingPipeline:
    parser = PipelineParser(text)
    return parser.parse_entire(parser.string_value_pipeline)


def parse_element_selecting_command(text: str) -> ElementSelectingCommand:
    parser = PipelineParser(text)
    return parser.parse_entire(parser.element_selecting_command)


def parse_value_extracting_command(text: str) -> ValueExtractingCommand:
    parser = PipelineParser(text)
    return parser.parse_entire(parser.value_extracting_command)


def parse_value_processing_command(text: str) -> ValueProcessingCommand:
    parser = PipelineParser(text)
    return parser.parse_entire(parser.value_processing_command)


def parse_selector(text: str) -> CssSelector:
    parser = PipelineParser(text)
    return parser.parse_entire(parser.css_selector)


def parse_selector_path(text: str) -> CssSelectorPath:
    parser = PipelineParser(text)
    return parser.parse_entire(parser.css_selector_path)


def parse_selector_list(text: str) -> CssSelectorList:
    parser = PipelineParser(text)
    return parser.parse_entire(parser.css_selector_list)


def parse_value(text: str) -> str:
    parser = PipelineParser(text)
    return parser.parse_entire(parser.value)
