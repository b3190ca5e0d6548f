# src/pagebatch/css_extractor.py
import logging
import re
from typing import Dict, List, Sequence

from .model import CssExtractionResult, GeneratedPage

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def split_css_rules(css: str) -> List[str]:
    """
    Splits a stylesheet into top-level rules, each in its original formatting.

    Braces are balanced, so an @media block with nested rules is one rule.
    Statement at-rules (@import ...;) end at their top-level semicolon.
    Braces inside strings and comments are ignored; a comment is kept with
    the rule that follows it.
    """
    rules: List[str] = []
    if not css or not css.strip():
        return rules

    depth = 0
    start = 0
    i = 0
    length = len(css)
    while i < length:
        ch = css[i]
        if ch == "/" and css.startswith("/*", i):
            end = css.find("*/", i + 2)
            i = length if end == -1 else end + 2
            continue
        if ch in ("'", '"'):
            end = i + 1
            while end < length and css[end] != ch:
                end += 2 if css[end] == "\\" else 1
            i = end + 1
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth = max(depth - 1, 0)
            if depth == 0:
                rules.append(css[start:i + 1].strip())
                start = i + 1
        elif ch == ";" and depth == 0:
            rules.append(css[start:i + 1].strip())
            start = i + 1
        i += 1

    tail = css[start:].strip()
    if tail:
        rules.append(tail)
    return [rule for rule in rules if rule]


def normalize_rule(rule: str) -> str:
    """Comparison key for a rule: whitespace runs collapsed, ends trimmed."""
    return _WHITESPACE_RE.sub(" ", rule).strip()


def extract_shared_css(pages: Sequence[GeneratedPage]) -> CssExtractionResult:
    """
    Factors the CSS rules common to every page into one shared stylesheet.

    A rule is shared when its normalized form occurs in every page. Shared
    rules are emitted once, in order of first appearance; each page keeps
    its remaining rules in their original order and formatting. With fewer
    than two pages nothing is shared and page CSS is returned untouched.
    """
    if len(pages) <= 1:
        return CssExtractionResult(shared_css="", page_css={p.name: p.css for p in pages})

    page_rules: List[List[str]] = [split_css_rules(page.css) for page in pages]
    rule_sets = [{normalize_rule(rule) for rule in rules} for rules in page_rules]
    common = set.intersection(*rule_sets)

    shared: List[str] = []
    emitted = set()
    for rules in page_rules:
        for rule in rules:
            key = normalize_rule(rule)
            if key in common and key not in emitted:
                emitted.add(key)
                shared.append(rule)

    page_css: Dict[str, str] = {}
    for page, rules in zip(pages, page_rules):
        page_css[page.name] = "\n\n".join(rule for rule in rules if normalize_rule(rule) not in common)

    logger.debug("Extracted %d shared rules across %d pages", len(shared), len(pages))
    return CssExtractionResult(shared_css="\n\n".join(shared), page_css=page_css)
