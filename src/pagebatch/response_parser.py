# src/pagebatch/response_parser.py
import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from visual_editor.utils.config_manager import config_manager
from .model import (
    AppContext,
    GeneratedPage,
    LinkValidationResult,
    MultiPageResult,
    SharedNavigation,
)

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```[ \t]*([A-Za-z0-9_+-]*)[ \t]*\r?\n(.*?)```", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_UNQUOTED_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_-]*)(\s*:)")
_HTML_TAG_RE = re.compile(r"<(!doctype|[a-zA-Z][a-zA-Z0-9-]*)\b[^>]*>", re.IGNORECASE)
_PAGE_TARGET_RE = re.compile(r"""data-page-target\s*=\s*(?:"([^"]*)"|'([^']*)')""")


class ResponseFormatError(ValueError):
    """Internal signal for a JSON payload that parsed but is not a usable result."""


def _fenced_blocks(text: str) -> List[tuple]:
    """(language, body) for every fenced code block, in order."""
    return [(m.group(1).lower(), m.group(2).strip()) for m in _FENCE_RE.finditer(text)]


def _outside_strings(text: str, transform) -> str:
    """Applies 'transform' to the segments of 'text' that are not inside double-quoted strings."""
    out: List[str] = []
    segment: List[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            out.append(transform("".join(segment)))
            segment = []
            in_string = True
            out.append(ch)
        else:
            segment.append(ch)
    out.append(transform("".join(segment)))
    return "".join(out)


def _convert_single_quotes(text: str) -> str:
    """Rewrites 'single quoted' JSON strings as "double quoted" ones."""
    out: List[str] = []
    i = 0
    in_double = False
    while i < len(text):
        ch = text[i]
        if in_double:
            out.append(ch)
            if ch == "\\" and i + 1 < len(text):
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_double = False
            i += 1
            continue
        if ch == '"':
            in_double = True
            out.append(ch)
            i += 1
            continue
        if ch == "'":
            j = i + 1
            value: List[str] = []
            while j < len(text) and text[j] != "'":
                if text[j] == "\\" and j + 1 < len(text):
                    nxt = text[j + 1]
                    value.append(nxt if nxt == "'" else text[j:j + 2])
                    j += 2
                    continue
                value.append('\\"' if text[j] == '"' else text[j])
                j += 1
            out.append('"' + "".join(value) + '"')
            i = j + 1
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def repair_json(text: str) -> str:
    """
    Mechanical fixes for almost-JSON: single-quoted keys/strings become
    double-quoted, bare keys get quoted and trailing commas are dropped.
    """
    fixed = _convert_single_quotes(text.strip())
    fixed = _outside_strings(fixed, lambda s: _UNQUOTED_KEY_RE.sub(r'\1"\2"\3', s))
    fixed = _outside_strings(fixed, lambda s: _TRAILING_COMMA_RE.sub(r"\1", s))
    return fixed


def try_parse_json(text: str) -> Optional[Any]:
    """Strict parse first, then a repaired parse that also tolerates raw newlines in strings."""
    if not text or not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return json.loads(repair_json(text), strict=False)
    except json.JSONDecodeError as e:
        logger.debug("JSON repair failed: %s", e)
        return None


def _text_field(value: Any) -> str:
    return value if isinstance(value, str) else ""


def build_result(parsed: Any) -> MultiPageResult:
    """
    Turns a decoded JSON payload into a MultiPageResult.

    Raises:
        ResponseFormatError: If 'pages' is missing, not a list, or empty once
            pages without HTML are dropped.
    """
    if not isinstance(parsed, dict) or not isinstance(parsed.get("pages"), list):
        raise ResponseFormatError('Invalid response: missing or invalid "pages" array')

    navigation = parsed.get("sharedNavigation")
    navigation = navigation if isinstance(navigation, dict) else {}

    pages = [
        GeneratedPage(
            name=_text_field(page.get("name")) or "unnamed",
            html=_text_field(page.get("html")),
            css=_text_field(page.get("css")),
            js=_text_field(page.get("js")),
        )
        for page in parsed["pages"]
        if isinstance(page, dict)
    ]
    pages = [page for page in pages if page.html.strip()]
    if not pages:
        raise ResponseFormatError("No valid pages found in response")

    return MultiPageResult(
        app_name=_text_field(parsed.get("appName")),
        shared_theme=_text_field(parsed.get("sharedTheme")),
        shared_navigation=SharedNavigation(
            header=_text_field(navigation.get("header")),
            footer=_text_field(navigation.get("footer")),
        ),
        pages=pages,
    )


def _looks_like_html(text: str) -> bool:
    return bool(_HTML_TAG_RE.search(text))


def _fallback_html_pages(text: str) -> List[GeneratedPage]:
    prefix = config_manager.get_nested("response_parser.fallback_page_prefix", "page")
    blocks = _fenced_blocks(text)

    if blocks:
        bodies = [body for lang, body in blocks if lang == "html" and body]
        if not bodies:
            bodies = [body for lang, body in blocks if not lang and _looks_like_html(body)]
    else:
        stripped = text.strip()
        bodies = [stripped] if stripped and _looks_like_html(stripped) else []

    return [GeneratedPage(name=f"{prefix}-{i}", html=body) for i, body in enumerate(bodies, start=1)]


def parse_multi_page_response(raw_response: str) -> MultiPageResult:
    """
    Parses a raw AI completion into pages plus shared theme and navigation.

    Tried in order, first success wins: the whole text as JSON, the first
    fenced block as JSON (each with repair on failure), fenced html blocks
    as separate pages, and finally the whole text as one page of HTML.
    Failures are returned in the 'error' field, never raised.
    """
    if not isinstance(raw_response, str) or not raw_response.strip():
        return MultiPageResult(error="Empty response")

    candidates = [raw_response]
    blocks = _fenced_blocks(raw_response)
    if blocks:
        candidates.append(blocks[0][1])

    for candidate in candidates:
        parsed = try_parse_json(candidate)
        if parsed is None:
            continue
        try:
            return build_result(parsed)
        except ResponseFormatError as e:
            logger.warning("Structured response rejected: %s", e)
            return MultiPageResult(error=f"Failed to parse response: {e}")

    pages = _fallback_html_pages(raw_response)
    if not pages:
        return MultiPageResult(error="Could not extract any valid HTML from response")

    logger.info("Response was not JSON; recovered %d HTML page(s)", len(pages))
    return MultiPageResult(pages=pages)


def inject_shared_theme(pages: Iterable[GeneratedPage], shared_theme: str) -> List[GeneratedPage]:
    """
    Prepends 'shared_theme' (and a blank line) to every page's CSS. Returns
    new page objects; the input is never mutated.
    """
    pages = list(pages)
    if not shared_theme or not shared_theme.strip():
        return [page.model_copy() for page in pages]

    return [
        page.model_copy(update={"css": f"{shared_theme}\n\n{page.css}" if page.css else shared_theme})
        for page in pages
    ]


def validate_inter_page_links(pages: Iterable[GeneratedPage], app_context: AppContext) -> LinkValidationResult:
    """Reports data-page-target values that name no page of the app."""
    known = {page_spec.name for page_spec in app_context.pages}
    missing: Dict[str, None] = {}

    for page in pages:
        for match in _PAGE_TARGET_RE.finditer(page.html):
            target = match.group(1) if match.group(1) is not None else match.group(2)
            if target not in known:
                missing[target] = None

    return LinkValidationResult(valid=not missing, missing_targets=list(missing))
