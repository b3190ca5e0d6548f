# src/visual_editor/sync/diff.py
import logging
from typing import Iterable

from visual_editor.dom.models import HtmlParseResult
from visual_editor.model import ElementOverride, HtmlDiff, ModifiedElement
from .override_store import OverrideStore

logger = logging.getLogger(__name__)


def calculate_diff(original: HtmlParseResult, overrides: Iterable[ElementOverride]) -> HtmlDiff:
    """
    Describes the edits in 'overrides' relative to 'original'.

    Overrides are merged per selector (see OverrideStore.merge_overrides);
    every merged override whose selector addresses an element of the
    original parse is reported as modified, in order of first appearance.
    Selectors unknown to the original are left out.
    """
    store = OverrideStore()
    for override in overrides:
        store.add_override(override)

    diff = HtmlDiff()
    for selector in store.get_selectors():
        if original.find_by_selector(selector) is None:
            logger.debug("Selector %r not in original parse; left out of diff", selector)
            continue
        diff.modified.append(ModifiedElement(selector=selector, changes=store.merge_overrides(selector)))
    return diff
