# src/visual_editor/dom/selector.py
import logging
from typing import List, Optional

import soupsieve as sv
from bs4 import BeautifulSoup, Tag

from .models import ParsedElement

logger = logging.getLogger(__name__)


def generate_css_selector(element: ParsedElement) -> str:
    """
    Builds a selector that retargets 'element' in the same document.

    Priority: #id, then [data-uuid="..."], then tag name plus every class.
    The last form is not disambiguated with :nth-child and may match
    siblings that share the same classes.
    """
    element_id = element.attributes.get("id")
    if element_id:
        return f"#{sv.escape(element_id)}"

    data_uuid = element.attributes.get("data-uuid")
    if data_uuid:
        return f'[data-uuid="{_escape_attr_value(data_uuid)}"]'

    selector = element.tag_name.lower()
    for cls in element.classes:
        selector += f".{sv.escape(cls)}"
    return selector


def _escape_attr_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def selector_for_tag(tag: Tag, root: Optional[Tag] = None) -> str:
    """
    Builds a selector for a live bs4 tag: #id, [data-uuid], or a
    'tag:nth-child(n)' path from just below 'root' down to the tag.
    """
    element_id = tag.get("id")
    if element_id:
        return f"#{sv.escape(element_id)}"

    data_uuid = tag.get("data-uuid")
    if data_uuid:
        return f'[data-uuid="{_escape_attr_value(data_uuid)}"]'

    path: List[str] = []
    current: Optional[Tag] = tag
    while isinstance(current, Tag) and current is not root and current.name != "[document]":
        part = current.name
        parent = current.parent
        if isinstance(parent, Tag):
            siblings = [c for c in parent.children if isinstance(c, Tag)]
            if len(siblings) > 1:
                index = next(i for i, s in enumerate(siblings) if s is current)
                part += f":nth-child({index + 1})"
        path.insert(0, part)
        current = parent

    if root is not None and current is root:
        return ":scope > " + " > ".join(path) if path else ":scope"
    return " > ".join(path)


def child_index_path(tag: Tag, root: Tag) -> Optional[List[int]]:
    """
    Element-child indexes leading from 'root' down to 'tag' ([] for the
    root itself), or None when 'tag' is not inside 'root'.
    """
    path: List[int] = []
    current = tag
    while current is not root:
        parent = current.parent
        if not isinstance(parent, Tag):
            return None
        siblings = [c for c in parent.children if isinstance(c, Tag)]
        path.insert(0, next(i for i, s in enumerate(siblings) if s is current))
        current = parent
    return path


def find_elements(root: Tag, selector: str) -> List[Tag]:
    """
    Returns every tag matching 'selector', the root itself included.
    Blank or syntactically invalid selectors match nothing.
    """
    if not selector or not selector.strip():
        return []
    try:
        compiled = sv.compile(selector)
        matches = list(compiled.select(root))
        if not isinstance(root, BeautifulSoup) and compiled.match(root):
            matches.insert(0, root)
    except sv.SelectorSyntaxError as e:
        logger.warning("Invalid CSS selector %r: %s", selector, e)
        return []
    return matches


def validate_selector(selector: str, root: Tag) -> bool:
    """True when 'selector' identifies exactly one element under 'root'."""
    return len(find_elements(root, selector)) == 1
