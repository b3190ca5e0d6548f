# src/visual_editor/app.py
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from tqdm import tqdm

from pagebatch.css_extractor import extract_shared_css
from pagebatch.model import GeneratedPage
from pagebatch.response_parser import inject_shared_theme, parse_multi_page_response
from visual_editor.dom.builder import HtmlParser
from visual_editor.dom.models import ParsedElement
from visual_editor.errors import InvalidInputError
from visual_editor.model import ElementOverride
from visual_editor.sync.diff import calculate_diff
from visual_editor.utils.config_manager import config_manager
from visual_editor.utils.configure_logging import configure_logger

logger = logging.getLogger(__name__)


def _read(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def _summarize(element: ParsedElement) -> Dict[str, Any]:
    """Compact JSON view of a parsed element subtree."""
    summary: Dict[str, Any] = {
        "identifier": element.identifier,
        "tag": element.tag_name,
        "selector": element.selector,
    }
    if element.text_content:
        summary["text"] = element.text_content
    if element.children:
        summary["children"] = [_summarize(child) for child in element.children]
    return summary


def _handle_parse(args: argparse.Namespace) -> int:
    parser = HtmlParser()
    output = {}
    for path in tqdm(args.files, desc="Parsing", unit="file", leave=False, disable=len(args.files) < 2):
        try:
            result = parser.parse(_read(path))
        except (OSError, InvalidInputError) as e:
            logger.error("Could not parse %s: %s", path, e)
            return 1
        output[path] = {
            "elements": len(result.element_map),
            "externalResources": result.external_resources.model_dump(),
            "tree": _summarize(result.root),
        }
    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


def _handle_validate(args: argparse.Namespace) -> int:
    result = HtmlParser().validate(_read(args.file))
    if result.valid:
        print("✅ Markup is structurally valid.")
        return 0
    for error in result.errors:
        print(f"❌ {error}")
    return 1


def _handle_inject_ids(args: argparse.Namespace) -> int:
    html = HtmlParser().inject_identifiers(_read(args.file))
    if args.output:
        Path(args.output).write_text(html, encoding="utf-8")
        print(f"✅ Written to {args.output}")
    else:
        sys.stdout.write(html)
    return 0


def _handle_split_css(args: argparse.Namespace) -> int:
    pages = [GeneratedPage(name=Path(path).stem, html="", css=_read(path)) for path in args.files]
    result = extract_shared_css(pages)
    print(json.dumps({"sharedCSS": result.shared_css, "pageCSS": result.page_css}, indent=2, ensure_ascii=False))
    return 0


def _handle_diff(args: argparse.Namespace) -> int:
    try:
        original = HtmlParser().parse(_read(args.html))
        overrides = [ElementOverride.from_wire(item) for item in json.loads(_read(args.overrides))]
    except (InvalidInputError, ValueError, TypeError) as e:
        logger.error("Could not load diff input: %s", e)
        return 1
    diff = calculate_diff(original, overrides)
    print(json.dumps(diff.to_wire(), indent=2, ensure_ascii=False))
    return 0


def _handle_parse_response(args: argparse.Namespace) -> int:
    result = parse_multi_page_response(_read(args.file))
    if result.error:
        print(f"❌ {result.error}")
        return 1
    if args.theme_inject:
        result.pages = inject_shared_theme(result.pages, result.shared_theme)
    print(json.dumps(result.model_dump(exclude_none=True), indent=2, ensure_ascii=False))
    return 0


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="visual-editor", description="Visual HTML editor core tools.")
    parser.add_argument("--log-level", default=None, help="Overrides debug.level from settings.json.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_parse = sub.add_parser("parse", help="Print the element tree of one or more HTML files.")
    p_parse.add_argument("files", nargs="+")
    p_parse.set_defaults(func=_handle_parse)

    p_validate = sub.add_parser("validate", help="Check an HTML file for mismatched tags.")
    p_validate.add_argument("file")
    p_validate.set_defaults(func=_handle_validate)

    p_inject = sub.add_parser("inject-ids", help="Add data-uuid attributes to interactive elements.")
    p_inject.add_argument("file")
    p_inject.add_argument("--output", "-o", help="Write the result here instead of stdout.")
    p_inject.set_defaults(func=_handle_inject_ids)

    p_split = sub.add_parser("split-css", help="Factor rules shared by all CSS files into one stylesheet.")
    p_split.add_argument("files", nargs="+")
    p_split.set_defaults(func=_handle_split_css)

    p_diff = sub.add_parser("diff", help="Describe which elements a JSON list of overrides modifies.")
    p_diff.add_argument("html")
    p_diff.add_argument("overrides")
    p_diff.set_defaults(func=_handle_diff)

    p_response = sub.add_parser("parse-response", help="Parse a saved multi-page AI response.")
    p_response.add_argument("file")
    p_response.add_argument("--theme-inject", action="store_true", help="Prepend the shared theme to each page's CSS.")
    p_response.set_defaults(func=_handle_parse_response)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entrypoint for the visual-editor command."""
    args = build_arg_parser().parse_args(argv)
    configure_logger(args.log_level or config_manager.get_nested("debug.level", "WARNING"))
    try:
        return args.func(args)
    except OSError as e:
        logger.error("I/O error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
