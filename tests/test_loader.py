import os
import tempfile
import unittest
from pathlib import Path

from edithtml.errors import NothingImportedError
from edithtml.loader import load_html, load_html_file

SOURCE = Path(__file__).parent / "source.html"


class TestLoadHtml(unittest.TestCase):
    def test_round_trip_keeps_whitespace(self):
        markup = '<div>\n    <p id="a">x</p>\n</div>'
        assert load_html(markup).outer_html() == markup

    def test_no_wrapper_elements_are_added(self):
        root = load_html("<p>x</p>")
        assert root.tag_name == "p"
        assert root.parent is None

    def test_last_top_level_element_is_root(self):
        with self.assertLogs("edithtml.loader", level="WARNING"):
            root = load_html("<p>one</p><div>two</div>")
        assert root.outer_html() == "<div>two</div>"

    def test_nothing_imported(self):
        with self.assertRaises(NothingImportedError):
            load_html("just text <!-- and a comment -->")

    def test_comment_is_trimmed(self):
        root = load_html("<div><!--   spaced   --></div>")
        comment = root.children[0]
        assert comment.is_comment
        assert comment.data == "spaced"
        assert root.outer_html() == "<div><!-- spaced --></div>"

    def test_doctype_is_dropped(self):
        root = load_html("<!DOCTYPE html><html><body></body></html>")
        assert root.outer_html() == "<html><body></body></html>"

    def test_entities_stay_escaped(self):
        root = load_html("<p>a &amp; b &lt;c&gt;</p>")
        assert root.outer_html() == "<p>a &amp; b &lt;c&gt;</p>"
        assert root.text_content() == "a &amp; b &lt;c&gt;"

    def test_attribute_values_stay_escaped(self):
        root = load_html('<a href="?a=1&amp;b=2" title="&quot;q&quot;">x</a>')
        assert root.get_attribute("href") == "?a=1&amp;b=2"
        assert root.get_attribute("title") == "&quot;q&quot;"

    def test_class_attribute_is_a_plain_string(self):
        root = load_html('<p class="a  b">x</p>')
        assert root.get_attribute("class") == "a  b"

    def test_valueless_attribute(self):
        root = load_html("<div><input disabled></div>")
        assert root.outer_html() == '<div><input disabled=""></div>'

    def test_script_text_is_not_escaped(self):
        root = load_html("<div><script>if (a < b && c) {}</script></div>")
        assert root.outer_html() == "<div><script>if (a < b && c) {}</script></div>"

    def test_void_elements_have_no_children(self):
        root = load_html('<p>text <img src=""> more</p>')
        img = root.children[1]
        assert img.tag_name == "img"
        assert img.children == []
        assert root.outer_html() == '<p>text <img src=""> more</p>'


class TestLoadHtmlFile(unittest.TestCase):
    def test_load_source_fixture(self):
        root = load_html_file(SOURCE)
        assert root.tag_name == "html"
        assert root.get_attribute("lang") == "en"

    def test_load_utf8_file(self):
        fd, name = tempfile.mkstemp(suffix=".html")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write("<p>Grüße</p>")
            assert load_html_file(name).outer_html() == "<p>Grüße</p>"
        finally:
            os.unlink(name)

    def test_missing_file_raises_oserror(self):
        with self.assertRaises(OSError):
            load_html_file(Path(__file__).parent / "does-not-exist.html")
