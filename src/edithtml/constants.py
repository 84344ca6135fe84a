"""Element classification tables shared by the loader and the serializer."""

# Elements rendered without an end tag.
VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "command",
        "embed",
        "hr",
        "img",
        "input",
        "keygen",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)

# Elements whose text the parser hands over undecoded.
RAWTEXT_ELEMENTS = frozenset({"script", "style"})

TEXT_NODE = "#text"
COMMENT_NODE = "#comment"

# Characters allowed in element names, attribute names, ids and classes of the pipeline language.
IDENTIFIER_CHARS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_-")

WHITESPACE_CHARS = " \t\r\n"
