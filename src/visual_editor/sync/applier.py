# src/visual_editor/sync/applier.py
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from visual_editor.dom.selector import find_elements
from visual_editor.dom.style import StyleDeclaration
from visual_editor.errors import SelectorMissError
from visual_editor.model import ElementOverride

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """Outcome of applying one override; 'miss' is set when nothing matched."""
    selector: str
    matched: int = 0
    miss: Optional[SelectorMissError] = field(default=None)

    @property
    def applied(self) -> bool:
        return self.matched > 0


def px(value: float) -> str:
    """Formats a pixel length the way the DOM serializes it: 10 -> '10px', 10.5 -> '10.5px'."""
    number = float(value)
    return f"{int(number)}px" if number.is_integer() else f"{number}px"


def set_inner_html(tag: Tag, html: str) -> None:
    tag.clear()
    fragment = BeautifulSoup(html, "html.parser", multi_valued_attributes=None)
    for child in list(fragment.contents):
        tag.append(child.extract())


def set_text_content(tag: Tag, text: str) -> None:
    tag.clear()
    if text:
        tag.append(text)


def apply_geometry(tag: Tag, x: float, y: float, width: float, height: float) -> None:
    """Absolutely positions 'tag' at (x, y) with the given pixel size."""
    style = StyleDeclaration(tag)
    style.update({
        "position": "absolute",
        "left": px(x),
        "top": px(y),
        "width": px(width),
        "height": px(height),
    })


def _apply_to_element(tag: Tag, override: ElementOverride) -> None:
    if override.text is not None:
        set_text_content(tag, override.text)

    if override.styles:
        # camelCase or kebab-case keys; the declaration stores kebab-case
        StyleDeclaration(tag).update(override.styles)

    if override.html is not None:
        set_inner_html(tag, override.html)

    if override.attributes:
        for name, value in override.attributes.items():
            tag[name] = value

    if override.position is not None:
        StyleDeclaration(tag).update({
            "position": "absolute",
            "left": px(override.position.x),
            "top": px(override.position.y),
        })

    if override.size is not None:
        StyleDeclaration(tag).update({
            "width": px(override.size.width),
            "height": px(override.size.height),
        })


def apply_override_to_dom(dom_root: Tag, override: ElementOverride) -> ApplyResult:
    """
    Applies one override to every element under 'dom_root' (root included)
    that its selector matches. A miss is logged and reported, never raised.
    """
    result = ApplyResult(selector=override.selector)
    if not override.has_payload:
        return result

    targets = find_elements(dom_root, override.selector)
    if not targets:
        result.miss = SelectorMissError(override.selector)
        logger.warning("%s", result.miss)
        return result

    for tag in targets:
        _apply_to_element(tag, override)
    result.matched = len(targets)
    return result


def ordered(overrides: Iterable[ElementOverride]) -> List[ElementOverride]:
    """Ascending timestamp; ties keep insertion order."""
    return sorted(overrides, key=lambda o: o.timestamp)


def replay_overrides(dom_root: Tag, overrides: Iterable[ElementOverride]) -> List[ApplyResult]:
    return [apply_override_to_dom(dom_root, override) for override in ordered(overrides)]


def apply_overrides_to_html(html: str, overrides: Iterable[ElementOverride]) -> Tuple[str, List[ApplyResult]]:
    """
    Applies overrides to raw markup and returns the serialized result along
    with one ApplyResult per override.
    """
    soup = BeautifulSoup(html, "html.parser", multi_valued_attributes=None)
    root = soup.html if soup.html is not None else soup
    results = replay_overrides(root, overrides)

    applied = sum(1 for r in results if r.applied)
    logger.debug("Applied %d overrides, skipped %d", applied, len(results) - applied)
    return str(soup), results
