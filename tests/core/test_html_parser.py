# tests/core/test_html_parser.py
import re

import pytest
from bs4 import BeautifulSoup

from visual_editor.dom.builder import HtmlParser
from visual_editor.dom.identifiers import IdentifierGenerator
from visual_editor.errors import InvalidInputError

FRAGMENT = (
    '<div id="main">'
    '<p class="intro lead">Hello <b>big</b> world</p>'
    '<button>Go</button>'
    '</div>'
)

FULL_DOCUMENT = """<!DOCTYPE html>
<html>
<head>
  <style>body { margin: 0; }</style>
  <link rel="stylesheet" href="theme.css">
  <script src="vendor.js"></script>
</head>
<body>
  <script>console.log(1)</script>
  <img src="hero.png" alt="Hero">
  <style>.card { padding: 4px; }</style>
</body>
</html>"""

GENERATED_ID = re.compile(r"^[a-z0-9]+-\d+-[a-z0-9]{8}$")


@pytest.fixture
def parser():
    """Een verse parser met een eigen identifier-generator per test."""
    return HtmlParser(IdentifierGenerator())


# --- parse ---

def test_parse_fragment_builds_synthetic_body(parser):
    """Een fragment zonder <body> krijgt een body-equivalente root."""
    result = parser.parse(FRAGMENT)

    assert result.root.tag_name == "body"
    assert result.root.parent is None
    main = result.root.children[0]
    assert main.identifier == "main"
    assert main.selector == "#main"
    assert [c.tag_name for c in main.children] == ["p", "button"]


def test_element_map_covers_every_node(parser):
    """Root, div, p, b en button zijn allemaal via hun identifier op te zoeken."""
    result = parser.parse(FRAGMENT)

    assert len(result.element_map) == 5
    assert result.element_map[result.root.identifier] is result.root
    for element in result.root.iter_tree():
        assert result.element_map[element.identifier] is element


def test_text_content_is_direct_text_only(parser):
    """Alleen de directe tekstnodes tellen; tekst van kinderen valt erbuiten."""
    result = parser.parse(FRAGMENT)
    paragraph = result.root.children[0].children[0]

    assert paragraph.text_content == "Hello  world"
    assert paragraph.children[0].text_content == "big"


def test_whitespace_only_text_is_empty(parser):
    result = parser.parse("<div>\n   \n  <span>x</span>\n</div>")
    assert result.root.children[0].text_content == ""


def test_selector_falls_back_to_tag_and_classes(parser):
    result = parser.parse(FRAGMENT)
    paragraph = result.root.children[0].children[0]
    button = result.root.children[0].children[1]

    assert paragraph.selector == "p.intro.lead"
    assert button.selector == "button"
    assert GENERATED_ID.match(button.identifier)
    assert button.identifier.startswith("button-")


def test_data_uuid_is_used_as_identifier(parser):
    result = parser.parse('<section data-uuid="abc-123"><span>x</span></section>')
    section = result.root.children[0]

    assert section.identifier == "abc-123"
    assert section.selector == '[data-uuid="abc-123"]'


def test_duplicate_ids_still_yield_unique_identifiers(parser):
    result = parser.parse('<span id="dup">a</span><span id="dup">b</span>')
    first, second = result.root.children

    assert first.identifier == "dup"
    assert second.identifier != "dup"
    assert GENERATED_ID.match(second.identifier)
    assert len(result.element_map) == 3


def test_generated_identifiers_unique_across_parses(parser):
    """De teller leeft zo lang als de parser, dus herhaalde parses botsen nooit."""
    first = parser.parse("<div></div>").root.children[0].identifier
    second = parser.parse("<div></div>").root.children[0].identifier

    assert first != second
    assert int(first.split("-")[1]) < int(second.split("-")[1])


def test_attributes_preserved_verbatim(parser):
    html = '<div data-role="dialog" aria-label="Close it" class="a  b" title="T">x</div>'
    element = parser.parse(html).root.children[0]

    assert element.attributes == {
        "data-role": "dialog",
        "aria-label": "Close it",
        "class": "a  b",
        "title": "T",
    }
    assert list(element.attributes) == ["data-role", "aria-label", "class", "title"]


def test_inline_styles_are_camel_cased_and_values_kept(parser):
    html = (
        '<div style="background: linear-gradient(90deg, #fff 0%, #000 100%); '
        'transform: rotate(45deg) scale(1.2); font-size: 12px">x</div>'
    )
    element = parser.parse(html).root.children[0]

    assert element.inline_styles == {
        "background": "linear-gradient(90deg, #fff 0%, #000 100%)",
        "transform": "rotate(45deg) scale(1.2)",
        "fontSize": "12px",
    }


def test_parent_back_reference(parser):
    result = parser.parse(FRAGMENT)
    main = result.root.children[0]
    paragraph = main.children[0]

    assert paragraph.parent is main
    assert paragraph.parent_identifier == "main"
    assert main.parent is result.root
    # Dumpen loopt nooit terug omhoog via de parent-pointer
    assert "parent" not in paragraph.model_dump()


def test_full_document_extracts_styles_scripts_and_resources(parser):
    result = parser.parse(FULL_DOCUMENT)

    assert result.root.tag_name == "body"
    assert result.styles == "body { margin: 0; }\n.card { padding: 4px; }"
    assert result.scripts == "console.log(1)"
    assert result.external_resources.stylesheets == ["theme.css"]
    assert result.external_resources.scripts == ["vendor.js"]
    assert result.external_resources.images == ["hero.png"]


def test_supplied_css_and_js_win(parser):
    result = parser.parse(FULL_DOCUMENT, css=".x { color: red; }", js="run()")

    assert result.styles == ".x { color: red; }"
    assert result.scripts == "run()"


@pytest.mark.parametrize("bad_input", ["", "   \n\t", None, 42])
def test_parse_rejects_empty_input(parser, bad_input):
    with pytest.raises(InvalidInputError):
        parser.parse(bad_input)


def test_parse_is_lenient_with_mismatched_tags(parser):
    """Kapotte markup wordt automatisch gecorrigeerd in plaats van afgewezen."""
    result = parser.parse("<div><span>unclosed</div>")
    assert result.root.children[0].tag_name == "div"


def test_selectors_resolve_to_same_identifier_in_fresh_render(parser):
    html = (
        '<main id="app"><nav data-uuid="nav-1"><a id="home-link" href="/">Home</a></nav>'
        '<section id="s.1"><h2 id="title">T</h2></section></main>'
    )
    result = parser.parse(html)
    soup = BeautifulSoup(html, "html.parser")

    for element in result.root.children[0].iter_tree():
        match = soup.select_one(element.selector)
        assert match is not None
        assert (match.get("id") or match.get("data-uuid")) == element.identifier


# --- validate ---

def test_validate_accepts_balanced_markup(parser):
    result = parser.validate('<div><p>One<br>Two</p><img src="x.png"><input type="text"/></div>')
    assert result.valid
    assert result.errors == []


def test_validate_reports_mismatched_tags(parser):
    result = parser.validate("<div><span>text</div>")

    assert not result.valid
    assert any("<span>" in error for error in result.errors)


def test_validate_ignores_script_bodies_and_comments(parser):
    html = '<div><script>var s = "<div>";</script><!-- <p> --></div>'
    assert parser.validate(html).valid


@pytest.mark.parametrize("bad_input", ["", "   ", None])
def test_validate_rejects_empty_input(parser, bad_input):
    result = parser.validate(bad_input)
    assert not result.valid
    assert result.errors


# --- extract_external_resources ---

def test_external_resources_skip_inline_content(parser):
    html = (
        '<link rel="stylesheet" href="a.css"><link rel="icon" href="fav.ico">'
        '<style>.x{}</style><script>inline()</script><script src="b.js"></script>'
        '<img src="c.png"><img alt="no source">'
    )
    resources = parser.extract_external_resources(html)

    assert resources.stylesheets == ["a.css"]
    assert resources.scripts == ["b.js"]
    assert resources.images == ["c.png"]


# --- inject_identifiers ---

INJECT_SOURCE = """<div class="wrap">
  <a href="#">Link</a>
  <button id="b1">B</button>
  <span onclick="go()">S</span>
  <input type='text' data-uuid='keep'>
  <p>plain <em>text</em></p>
</div>"""

INJECTED_ATTR = re.compile(r' data-uuid="[a-z]+-\d+-[a-z0-9]{8}"')


def test_inject_identifiers_targets_unidentified_interactive_elements(parser):
    result = parser.inject_identifiers(INJECT_SOURCE)

    assert len(INJECTED_ATTR.findall(result)) == 2
    soup = BeautifulSoup(result, "html.parser")
    assert soup.find("a").has_attr("data-uuid")
    assert soup.find("span").has_attr("data-uuid")
    assert not soup.find("button").has_attr("data-uuid")
    assert soup.find("input")["data-uuid"] == "keep"
    assert not soup.find("div").has_attr("data-uuid")
    assert not soup.find("p").has_attr("data-uuid")


def test_inject_identifiers_preserves_everything_else(parser):
    result = parser.inject_identifiers(INJECT_SOURCE)
    assert INJECTED_ATTR.sub("", result) == INJECT_SOURCE


def test_inject_identifiers_does_not_inject_twice(parser):
    once = parser.inject_identifiers(INJECT_SOURCE)
    assert parser.inject_identifiers(once) == once
