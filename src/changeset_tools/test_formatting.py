"""Tests for the content formatter."""

import pytest

from changeset_tools.modules.formatting import DefaultFormatter, NullFormatter, get_parser_hint


@pytest.mark.parametrize("path, hint", [
    ("src/app.js", "babel"),
    ("src/App.JSX", "babel"),
    ("src/index.ts", "typescript"),
    ("src/View.tsx", "typescript"),
    ("styles/site.css", "css"),
    ("package.json", "json"),
    ("public/index.html", "html"),
    ("pom.xml", "xml"),
    ("README.md", "markdown"),
    ("main.py", None),
    ("Makefile", None),
])
def test_parser_hints(path, hint):
    assert get_parser_hint(path) == hint


@pytest.fixture
def formatter():
    return DefaultFormatter()


def test_script_formatting(formatter):
    assert formatter.format("const x=1;", "typescript") == "const x = 1;\n"
    assert formatter.format("function f(){return 1}", "babel") == "function f() {\n  return 1\n}\n"


def test_css_formatting(formatter):
    assert formatter.format("a{color:red}", "css") == "a {\n  color: red\n}\n"


def test_json_formatting(formatter):
    assert formatter.format('{"b":1,"a":[1,2]}', "json") == '{\n  "b": 1,\n  "a": [\n    1,\n    2\n  ]\n}\n'


def test_invalid_json_raises(formatter):
    with pytest.raises(ValueError):
        formatter.format("{not json", "json")


def test_xml_formatting_keeps_declaration_choice(formatter):
    assert formatter.format("<a><b>1</b></a>", "xml") == "<a>\n  <b>1</b>\n</a>\n"
    formatted = formatter.format('<?xml version="1.0" ?><a/>', "xml")
    assert formatted.startswith("<?xml")


def test_markdown_formatting(formatter):
    formatted = formatter.format("# Title\nSome text", "markdown")
    assert formatted.startswith("# Title\n")
    assert formatted.endswith("Some text\n")


def test_html_passes_through(formatter):
    html = "<div><p>hi</p></div>"
    assert formatter.format(html, "html") == html


def test_null_formatter():
    assert NullFormatter().format("const x=1;", "babel") == "const x=1;"
