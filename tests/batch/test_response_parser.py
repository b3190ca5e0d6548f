# tests/batch/test_response_parser.py
import json

import pytest

from pagebatch.model import AppContext, GeneratedPage, PageSpec
from pagebatch.response_parser import (
    inject_shared_theme,
    parse_multi_page_response,
    repair_json,
    try_parse_json,
    validate_inter_page_links,
)

STRUCTURED = {
    "appName": "Bakery",
    "sharedTheme": ":root { --primary: #c60; }",
    "sharedNavigation": {"header": "<nav data-shared=\"header\"></nav>", "footer": "<footer></footer>"},
    "pages": [
        {"name": "home", "html": "<main>Home</main>", "css": ".home {}", "js": ""},
        {"name": "menu", "html": "<main>Menu</main>"},
    ],
}


def test_plain_json_response():
    result = parse_multi_page_response(json.dumps(STRUCTURED))

    assert result.error is None
    assert result.app_name == "Bakery"
    assert result.shared_theme == ":root { --primary: #c60; }"
    assert result.shared_navigation.footer == "<footer></footer>"
    assert [p.name for p in result.pages] == ["home", "menu"]
    assert result.pages[1].css == ""


def test_json_inside_fenced_block():
    raw = "Here you go!\n```json\n" + json.dumps(STRUCTURED, indent=2) + "\n```\nEnjoy."
    result = parse_multi_page_response(raw)

    assert result.error is None
    assert len(result.pages) == 2


def test_almost_json_is_repaired():
    raw = """{
  appName: 'Shop',
  'pages': [
    {name: 'home', html: '<div class="x">It\\'s here</div>',},
  ],
}"""
    result = parse_multi_page_response(raw)

    assert result.error is None
    assert result.app_name == "Shop"
    assert result.pages[0].html == '<div class="x">It\'s here</div>'


def test_repair_json_leaves_strings_alone():
    fixed = repair_json('{"a": "x, }", b: 1,}')
    assert json.loads(fixed) == {"a": "x, }", "b": 1}


def test_try_parse_json_gives_up_on_prose():
    assert try_parse_json("not json at all") is None
    assert try_parse_json("") is None


def test_pages_without_html_are_dropped_and_names_defaulted():
    raw = json.dumps({"pages": [{"html": "<p>a</p>"}, {"name": "empty", "html": "   "}]})
    result = parse_multi_page_response(raw)

    assert [p.name for p in result.pages] == ["unnamed"]


def test_structured_but_unusable_payload_is_an_error():
    result = parse_multi_page_response(json.dumps({"pages": [{"name": "x", "html": ""}]}))

    assert result.pages == []
    assert result.error.startswith("Failed to parse response")


def test_missing_pages_array_is_an_error():
    result = parse_multi_page_response(json.dumps({"appName": "x"}))
    assert "pages" in result.error


def test_fenced_html_blocks_become_pages():
    raw = "First:\n```html\n<main>One</main>\n```\nSecond:\n```html\n<main>Two</main>\n```"
    result = parse_multi_page_response(raw)

    assert result.error is None
    assert [(p.name, p.html) for p in result.pages] == [
        ("page-1", "<main>One</main>"),
        ("page-2", "<main>Two</main>"),
    ]


def test_bare_html_becomes_single_page():
    result = parse_multi_page_response("<!DOCTYPE html><html><body>Hi</body></html>")

    assert result.error is None
    assert len(result.pages) == 1
    assert result.pages[0].name == "page-1"


@pytest.mark.parametrize("raw, message", [
    ("", "Empty response"),
    ("   \n", "Empty response"),
    ("Just some words", "Could not extract any valid HTML from response"),
])
def test_unusable_responses(raw, message):
    result = parse_multi_page_response(raw)
    assert result.error == message
    assert result.pages == []


def test_inject_shared_theme_does_not_mutate_input():
    pages = [
        GeneratedPage(name="home", html="<main></main>", css=".home {}"),
        GeneratedPage(name="about", html="<main></main>"),
    ]

    themed = inject_shared_theme(pages, ":root { --a: 1; }")

    assert themed[0].css == ":root { --a: 1; }\n\n.home {}"
    assert themed[1].css == ":root { --a: 1; }"
    assert pages[0].css == ".home {}"
    assert themed[0] is not pages[0]


def test_inject_empty_theme_copies_pages():
    pages = [GeneratedPage(name="home", html="<main></main>", css=".home {}")]
    themed = inject_shared_theme(pages, "")

    assert themed == pages
    assert themed[0] is not pages[0]


def test_validate_inter_page_links():
    context = AppContext(app_name="Bakery", pages=[PageSpec(name="home"), PageSpec(name="menu")])
    pages = [
        GeneratedPage(name="home", html='<a data-page-target="menu">Menu</a><a data-page-target="contact">C</a>'),
        GeneratedPage(name="menu", html="<a data-page-target='home'>H</a><a data-page-target=\"contact\">C</a>"),
    ]

    result = validate_inter_page_links(pages, context)

    assert not result.valid
    assert result.missing_targets == ["contact"]


def test_validate_inter_page_links_all_known():
    context = AppContext(pages=[PageSpec(name="home")])
    pages = [GeneratedPage(name="home", html='<a data-page-target="home">H</a>')]

    assert validate_inter_page_links(pages, context).valid
