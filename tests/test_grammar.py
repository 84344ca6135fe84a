import unittest

from edithtml.commands import (
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
from edithtml.errors import PipelineSyntaxError
from edithtml.grammar import (
    parse_element_creating_pipeline,
    parse_element_processing_command,
    parse_element_selecting_command,
    parse_pipeline,
    parse_selector,
    parse_selector_list,
    parse_selector_path,
    parse_string_value_pipeline,
    parse_value,
    parse_value_extracting_command,
    parse_value_processing_command,
)
from edithtml.pipeline import ElementCreatingPipeline, ElementProcessingPipeline
from edithtml.selector import (
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
from edithtml.values import (
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


def _element(name):
    return CssSelectorList.single(CssSelector(element=name))


SUB_PIPELINE = "USE-ELEMENT | GET-ATTR{data-test}"
PARSED_SUB_PIPELINE = StringValueCreatingPipeline(UseElement(), GetAttribute("data-test"))


class TestValues(unittest.TestCase):
    def test_all_delimiters(self):
        assert parse_value('"a"') == "a"
        assert parse_value("'a'") == "a"
        assert parse_value("?a?") == "a"

    def test_other_delimiters_inside(self):
        assert parse_value("'Hä?'") == "Hä?"
        assert parse_value("\"it's\"") == "it's"

    def test_whitespace_is_preserved(self):
        assert parse_value("'  padded\n text '") == "  padded\n text "

    def test_empty_value(self):
        assert parse_value("''") == ""

    def test_escaped_delimiter(self):
        assert parse_value(r"'it\'s'") == "it's"

    def test_other_backslashes_are_kept(self):
        assert parse_value(r"'\s+\d'") == r"\s+\d"

    def test_delimiter_must_not_recur(self):
        for text in ('"a"b"', "'a'b'", "?a?b?"):
            with self.assertRaises(PipelineSyntaxError):
                parse_value(text)

    def test_unterminated(self):
        with self.assertRaises(PipelineSyntaxError):
            parse_value("'abc")


class TestSelectors(unittest.TestCase):
    def test_compound_order(self):
        parsed = parse_selector('a#id.c1.c2:first-child[href^="http"][target]')
        assert parsed == CssSelector(
            element="a",
            id="id",
            classes=("c1", "c2"),
            pseudo_classes=(CssPseudoClass(PseudoClassKind.FIRST_CHILD),),
            attributes=(
                CssAttributeSelector("href", AttributeOperator.STARTS, "http"),
                CssAttributeSelector("target"),
            ),
        )

    def test_single_parts(self):
        assert parse_selector("#first-para") == CssSelector(id="first-para")
        assert parse_selector(".x") == CssSelector(classes=("x",))
        assert parse_selector("[a]") == CssSelector(attributes=(CssAttributeSelector("a"),))

    def test_wrong_order_is_rejected(self):
        with self.assertRaises(PipelineSyntaxError):
            parse_selector(".x#id")

    def test_empty_selector_is_rejected(self):
        with self.assertRaises(PipelineSyntaxError):
            parse_selector("")

    def test_attribute_operators(self):
        cases = {
            "[a=b]": AttributeOperator.EQUALS_EXACT,
            "[a|=b]": AttributeOperator.EQUALS_UP_TO_HYPHEN,
            "[a^=b]": AttributeOperator.STARTS,
            "[a$=b]": AttributeOperator.ENDS,
            "[a*=b]": AttributeOperator.SUBSTRING_CONTAINS,
            "[a~=b]": AttributeOperator.WHITESPACE_TERM_CONTAINS,
        }
        for text, operator in cases.items():
            parsed = parse_selector(text)
            assert parsed.attributes == (CssAttributeSelector("a", operator, "b"),), text

    def test_quoted_attribute_value(self):
        parsed = parse_selector("meta[name='test']")
        assert parsed.attributes == (CssAttributeSelector("name", AttributeOperator.EQUALS_EXACT, "test"),)

    def test_pseudo_classes(self):
        parsed = parse_selector(
            "li:first-child:nth-child(2):first-of-type:nth-of-type(3)"
            ":last-child:nth-last-child(4):last-of-type:nth-last-of-type(5)"
        )
        assert parsed.pseudo_classes == (
            CssPseudoClass(PseudoClassKind.FIRST_CHILD),
            CssPseudoClass(PseudoClassKind.NTH_CHILD, 2),
            CssPseudoClass(PseudoClassKind.FIRST_OF_TYPE),
            CssPseudoClass(PseudoClassKind.NTH_OF_TYPE, 3),
            CssPseudoClass(PseudoClassKind.LAST_CHILD),
            CssPseudoClass(PseudoClassKind.NTH_LAST_CHILD, 4),
            CssPseudoClass(PseudoClassKind.LAST_OF_TYPE),
            CssPseudoClass(PseudoClassKind.NTH_LAST_OF_TYPE, 5),
        )

    def test_unknown_pseudo_class(self):
        with self.assertRaises(PipelineSyntaxError):
            parse_selector("li:hover")

    def test_path_combinators(self):
        parsed = parse_selector_path("div p > a ~ b + i")
        assert parsed == CssSelectorPath(
            (
                CssSelectorStep(CssSelector(element="div"), Combinator.START),
                CssSelectorStep(CssSelector(element="p"), Combinator.DESCENDANT),
                CssSelectorStep(CssSelector(element="a"), Combinator.DIRECT_CHILD),
                CssSelectorStep(CssSelector(element="b"), Combinator.GENERAL_SIBLING),
                CssSelectorStep(CssSelector(element="i"), Combinator.ADJACENT_SIBLING),
            )
        )

    def test_combinator_without_spaces(self):
        parsed = parse_selector_path("ul>li")
        assert parsed.steps[1] == CssSelectorStep(CssSelector(element="li"), Combinator.DIRECT_CHILD)

    def test_list(self):
        parsed = parse_selector_list("h1, p , ul > li")
        assert len(parsed.paths) == 3
        assert str(parsed) == "h1, p, ul > li"

    def test_trailing_whitespace_is_not_part_of_a_path(self):
        with self.assertRaises(PipelineSyntaxError):
            parse_selector_list("p ")


class TestProcessingCommands(unittest.TestCase):
    def test_both_spellings(self):
        pairs = [
            ("EXTRACT-ELEMENT{a}", "ONLY{a}", ExtractElement(_element("a"))),
            ("REMOVE-ELEMENT{a}", "WITHOUT{a}", RemoveElement(_element("a"))),
            ("CLEAR-ATTRIBUTE{a}", "CLEAR-ATTR{a}", ClearAttribute("a")),
            ("CLEAR-CONTENT", "EMPTY", ClearContent()),
            ("SET-ATTRIBUTE{a ↤ 'x'}", "SET-ATTR{a ↤ 'x'}", SetAttribute("a", StringValue("x"))),
            ("SET-TEXT-CONTENT{'x'}", "SET-TEXT{'x'}", SetTextContent(StringValue("x"))),
            ("APPEND-TEXT-CONTENT{'x'}", "ADD-TEXT-CONTENT{'x'}", AppendTextContent(StringValue("x"))),
            ("APPEND-COMMENT{'x'}", "ADD-COMMENT{'x'}", AppendComment(StringValue("x"))),
            ("PREPEND-TEXT-CONTENT{'x'}", "INSERT-TEXT-CONTENT{'x'}", PrependTextContent(StringValue("x"))),
            ("PREPEND-COMMENT{'x'}", "INSERT-COMMENT{'x'}", PrependComment(StringValue("x"))),
            (
                "APPEND-ELEMENT{CREATE-ELEMENT{div}}",
                "ADD-ELEMENT{NEW{div}}",
                AppendElement(ElementCreatingPipeline(CreateElement("div"))),
            ),
            (
                "PREPEND-ELEMENT{CREATE-ELEMENT{div}}",
                "INSERT-ELEMENT{NEW{div}}",
                PrependElement(ElementCreatingPipeline(CreateElement("div"))),
            ),
        ]
        for verbose, terse, expected in pairs:
            assert parse_element_processing_command(verbose) == expected, verbose
            assert parse_element_processing_command(terse) == expected, terse

    def test_assignment_marker_spellings(self):
        expected = SetAttribute("data-test", StringValue("some text"))
        assert parse_element_processing_command("SET-ATTR{data-test ↤ 'some text'}") == expected
        assert parse_element_processing_command("SET-ATTR{data-test <= 'some text'}") == expected

    def test_optional_assignment_marker(self):
        expected = SetTextContent(StringValue("some text"))
        for text in ("SET-TEXT-CONTENT{'some text'}", "SET-TEXT-CONTENT{ ↤ 'some text'}", "SET-TEXT-CONTENT{ <= 'some text'}"):
            assert parse_element_processing_command(text) == expected, text

        expected_element = AppendElement(ElementCreatingPipeline(CreateElement("div")))
        assert parse_element_processing_command("APPEND-ELEMENT{ ↤ CREATE-ELEMENT{div}}") == expected_element
        assert parse_element_processing_command("APPEND-ELEMENT{ <= CREATE-ELEMENT{div}}") == expected_element

    def test_sub_pipeline_value(self):
        parsed = parse_element_processing_command(f"SET-ATTR{{data-test ↤ {SUB_PIPELINE} }}")
        assert parsed == SetAttribute("data-test", PARSED_SUB_PIPELINE)

        parsed = parse_element_processing_command(f"SET-TEXT-CONTENT{{ {SUB_PIPELINE} }}")
        assert parsed == SetTextContent(PARSED_SUB_PIPELINE)

    def test_for_each(self):
        expected = ForEach(
            _element("li"),
            ElementProcessingPipeline((SetAttribute("data-test", StringValue("some text")),)),
        )
        for text in (
            "FOR-EACH{li ↦ SET-ATTR{data-test ↤ 'some text'}}",
            "WITH{li ↦ SET-ATTR{data-test ↤ 'some text'}}",
            "FOR-EACH{li => SET-ATTR{data-test ↤ 'some text'}}",
        ):
            assert parse_element_processing_command(text) == expected, text

    def test_for_each_with_pipeline(self):
        parsed = parse_element_processing_command("FOR-EACH{li ↦ CLEAR-CONTENT | SET-TEXT{'x'}}")
        assert parsed.pipeline.commands == (ClearContent(), SetTextContent(StringValue("x")))

    def test_replace(self):
        selector = CssSelectorList.single(CssSelector(classes=("replace-me",)))
        expected = ReplaceElement(selector, ElementCreatingPipeline(CreateElement("p")))
        assert parse_element_processing_command("REPLACE-ELEMENT{.replace-me ↤ CREATE-ELEMENT{p} }") == expected
        assert parse_element_processing_command("REPLACE{.replace-me <= NEW{p} }") == expected

        parsed = parse_element_processing_command("REPLACE-ELEMENT{.replace-me ↤ KEEP{p} }")
        assert parsed == ReplaceElement(selector, ElementCreatingPipeline(FromReplaced(_element("p"))))

    def test_keyword_needs_boundary(self):
        with self.assertRaises(PipelineSyntaxError):
            parse_element_processing_command("EMPTYX")

    def test_unknown_command(self):
        with self.assertRaises(PipelineSyntaxError):
            parse_element_processing_command("DELETE{a}")


class TestCreatingPipeline(unittest.TestCase):
    def test_creating_commands(self):
        assert parse_element_creating_pipeline("CREATE-ELEMENT{div}") == ElementCreatingPipeline(CreateElement("div"))
        assert parse_element_creating_pipeline("NEW{div}") == ElementCreatingPipeline(CreateElement("div"))
        assert parse_element_creating_pipeline("LOAD-FILE{'tests/source.html'}") == ElementCreatingPipeline(
            FromFile("tests/source.html")
        )
        assert parse_element_creating_pipeline("SOURCE{'x.html'}") == ElementCreatingPipeline(FromFile("x.html"))
        assert parse_element_creating_pipeline("QUERY-REPLACED{p}") == ElementCreatingPipeline(
            FromReplaced(_element("p"))
        )

    def test_with_processing_commands(self):
        parsed = parse_element_creating_pipeline("NEW{div} | SET-TEXT{'a'} | SET-ATTR{id ↤ 'b'}")
        assert parsed == ElementCreatingPipeline(
            CreateElement("div"),
            (SetTextContent(StringValue("a")), SetAttribute("id", StringValue("b"))),
        )


class TestStringValuePipeline(unittest.TestCase):
    def test_selecting_commands(self):
        sel = _element("ul")
        pairs = [
            ("USE-ELEMENT", "THIS", UseElement()),
            ("USE-PARENT", "PARENT", UseParent()),
            ("QUERY-ELEMENT{ul}", "FROM-ELEMENT{ul}", QueryElement(sel)),
            ("QUERY-PARENT{ul}", "FROM-PARENT{ul}", QueryParent(sel)),
            ("QUERY-ROOT{ul}", "FROM-ROOT{ul}", QueryRoot(sel)),
        ]
        for verbose, terse, expected in pairs:
            assert parse_element_selecting_command(verbose) == expected
            assert parse_element_selecting_command(terse) == expected

    def test_extracting_commands(self):
        assert parse_value_extracting_command("GET-ATTRIBUTE{id}") == GetAttribute("id")
        assert parse_value_extracting_command("GET-ATTR{id}") == GetAttribute("id")
        assert parse_value_extracting_command("GET-TEXT-CONTENT") == GetTextContent()
        assert parse_value_extracting_command("GET-TEXT") == GetTextContent()

    def test_processing_commands(self):
        assert parse_value_processing_command(r"REGEX-REPLACE{'\s' ↤ '_'}") == RegexReplace(r"\s", "_")
        assert parse_value_processing_command("SUBSTITUTE{'a' <= 'b'}") == RegexReplace("a", "b")
        assert parse_value_processing_command("TO-LOWER") == ToLower()
        assert parse_value_processing_command("LOWERCASE") == ToLower()
        assert parse_value_processing_command("TO-UPPER") == ToUpper()
        assert parse_value_processing_command("UPPERCASE") == ToUpper()
        assert parse_value_processing_command("ADD-PREFIX{'#'}") == AddPrefix("#")
        assert parse_value_processing_command("PREFIX{'#'}") == AddPrefix("#")
        assert parse_value_processing_command("ADD-SUFFIX{'!'}") == AddSuffix("!")
        assert parse_value_processing_command("SUFFIX{'!'}") == AddSuffix("!")

    def test_full_pipeline(self):
        parsed = parse_string_value_pipeline("QUERY-ROOT{title} | GET-TEXT-CONTENT | TO-UPPER | ADD-SUFFIX{'!'}")
        assert parsed == StringValueCreatingPipeline(
            QueryRoot(_element("title")),
            GetTextContent(),
            (ToUpper(), AddSuffix("!")),
        )

    def test_extracting_command_is_required(self):
        with self.assertRaises(PipelineSyntaxError):
            parse_string_value_pipeline("USE-ELEMENT")


class TestPipeline(unittest.TestCase):
    def test_two_commands(self):
        parsed = parse_pipeline("EXTRACT-ELEMENT{a} | REMOVE-ELEMENT{b}")
        assert parsed == ElementProcessingPipeline((ExtractElement(_element("a")), RemoveElement(_element("b"))))

    def test_whitespace_variants(self):
        expected = ElementProcessingPipeline(
            (ExtractElement(_element("a")), RemoveElement(_element("b")), RemoveElement(_element("c")))
        )
        assert parse_pipeline("EXTRACT-ELEMENT{a}\n\t| REMOVE-ELEMENT{b}\n\t|\tREMOVE-ELEMENT{c}") == expected
        assert parse_pipeline("  EXTRACT-ELEMENT{ a }\r\n|REMOVE-ELEMENT{b}|REMOVE-ELEMENT{c}\n") == expected

    def test_nested_pipelines(self):
        parsed = parse_pipeline(
            "FOR-EACH{#first-para ↦ SET-TEXT-CONTENT{ QUERY-PARENT{#second-para} | GET-TEXT-CONTENT } }"
        )
        inner = parsed.commands[0].pipeline.commands[0]
        assert inner == SetTextContent(
            StringValueCreatingPipeline(
                QueryParent(CssSelectorList.single(CssSelector(id="second-para"))),
                GetTextContent(),
            )
        )


class TestSyntaxErrors(unittest.TestCase):
    def test_error_position(self):
        with self.assertRaises(PipelineSyntaxError) as ctx:
            parse_pipeline("ONLY{p} |\n  WITHOUT{")
        error = ctx.exception
        assert error.line == 2
        assert error.column == 11
        assert error.position == len("ONLY{p} |\n  WITHOUT{")
        assert "selector" in error.expected or "identifier" in error.expected

    def test_is_a_value_error(self):
        with self.assertRaises(ValueError):
            parse_pipeline("")

    def test_trailing_garbage(self):
        with self.assertRaises(PipelineSyntaxError) as ctx:
            parse_pipeline("ONLY{p} garbage")
        assert ctx.exception.column >= len("ONLY{p} ")

    def test_message_mentions_location(self):
        with self.assertRaises(PipelineSyntaxError) as ctx:
            parse_pipeline("ONLY{p")
        assert "line 1, column 7" in str(ctx.exception)
