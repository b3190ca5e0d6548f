# src/visual_editor/sync/engine.py
import copy
import logging
import re
from typing import Dict, List, Optional

from bs4 import Tag

from visual_editor.dom.models import HtmlParseResult, ParsedElement
from visual_editor.dom.selector import child_index_path, find_elements, selector_for_tag
from visual_editor.dom.style import StyleDeclaration, camel_to_kebab, get_style_diff
from visual_editor.errors import UnknownShapeError
from visual_editor.model import ElementOverride, HistoryEntry, ShapeProps, SyncState, now_ms
from visual_editor.utils.config_manager import config_manager
from .applier import ApplyResult, apply_geometry, apply_override_to_dom, replay_overrides

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)")


def _style_px(style: StyleDeclaration, prop: str) -> float:
    """Reads a pixel length from an inline style; unset or unparsable counts as 0."""
    match = _NUMBER_RE.match(style.get_property_value(prop))
    return float(match.group(1)) if match else 0.0


class SyncEngine:
    """
    Keeps one SyncState per rendered shape and keeps its live DOM subtree,
    its structured geometry and its override log consistent.

    Per shape:
      1. init_sync() records the parsed original with an empty log.
      2. apply_override() appends to the log and, when a DOM root is bound,
         applies the payload to the matching elements right away.
      3. sync_shape_to_dom() pushes host geometry onto the DOM container.
      4. validate_sync() detects drift between geometry and DOM;
         recover_sync() rebuilds the DOM from the log.

    Status goes synced -> pending on any edit or geometry push and back to
    synced on recovery or restore. All calls for one shape are expected to
    come from a single editor, one at a time.
    """

    def __init__(self, tolerance_px: Optional[float] = None):
        self._sync_states: Dict[str, SyncState] = {}
        # Pristine copy of each bound DOM root, taken at bind time
        self._dom_snapshots: Dict[str, Tag] = {}
        self.tolerance_px = (
            tolerance_px if tolerance_px is not None
            else float(config_manager.get_nested("sync.tolerance_px", 2))
        )

    def _require(self, shape_id: str) -> SyncState:
        state = self._sync_states.get(shape_id)
        if state is None:
            raise UnknownShapeError(shape_id)
        return state

    # -------- Lifecycle --------

    def init_sync(self, shape_id: str, parse_result: HtmlParseResult) -> SyncState:
        """Creates a fresh sync state (empty log, status 'synced') for a shape."""
        state = SyncState(shape_id=shape_id, original_html=parse_result)
        self._sync_states[shape_id] = state
        self._dom_snapshots.pop(shape_id, None)
        logger.debug("Sync initialized for shape %s", shape_id)
        return state

    def get_sync_state(self, shape_id: str) -> Optional[SyncState]:
        return self._sync_states.get(shape_id)

    def remove_sync(self, shape_id: str) -> None:
        self._sync_states.pop(shape_id, None)
        self._dom_snapshots.pop(shape_id, None)

    def get_all_sync_states(self) -> Dict[str, SyncState]:
        """Returns a shallow copy of the state map."""
        return dict(self._sync_states)

    def clear_all_sync_states(self) -> None:
        self._sync_states.clear()
        self._dom_snapshots.clear()

    # -------- Overrides --------

    def apply_override(self, shape_id: str, override: ElementOverride) -> Optional[ApplyResult]:
        """
        Records an override and applies it to the bound DOM, if any.

        The log stays in timestamp order. An override older than the newest
        logged one is inserted at its place and a bound DOM is rebuilt, so
        the live tree always equals a replay of the log.

        Returns the DOM ApplyResult, or None when no DOM root is bound.

        Raises:
            UnknownShapeError: If the shape has no sync state.
        """
        state = self._require(shape_id)

        position = len(state.overrides)
        while position > 0 and state.overrides[position - 1].timestamp > override.timestamp:
            position -= 1
        state.overrides.insert(position, override)
        self.add_history_entry(shape_id, override)

        result = None
        if state.dom_root is not None:
            if position == len(state.overrides) - 1:
                result = apply_override_to_dom(state.dom_root, override)
            else:
                logger.debug("Out-of-order override for shape %s; rebuilding DOM", shape_id)
                result = self._rebuild(shape_id, state)[position]

        state.status = "pending"
        return result

    def add_history_entry(self, shape_id: str, override: ElementOverride) -> None:
        state = self._require(shape_id)
        state.history.append(HistoryEntry(timestamp=override.timestamp, override=override))

    # -------- Geometry --------

    def sync_shape_to_dom(self, shape_id: str, shape_props: ShapeProps) -> None:
        """
        Records the host geometry and pushes it onto the DOM container.

        Raises:
            UnknownShapeError: If the shape has no sync state.
        """
        state = self._require(shape_id)
        state.shape_ref = shape_props

        if state.dom_root is not None:
            apply_geometry(state.dom_root, shape_props.x, shape_props.y,
                           shape_props.width, shape_props.height)

        state.status = "pending"

    def sync_dom_to_shape(self, shape_id: str, element: Tag) -> ElementOverride:
        """
        Captures the live state of 'element' as a new override.

        Styles are diffed against the element's parsed original (when the
        element can be found in it); text is captured for leaf elements
        whose text changed.

        Raises:
            UnknownShapeError: If the shape has no sync state or no geometry.
        """
        state = self._sync_states.get(shape_id)
        if state is None or state.shape_ref is None:
            raise UnknownShapeError(shape_id, "Sync state or shape reference not found for shape")

        selector = selector_for_tag(element, state.dom_root)
        baseline = self._find_baseline(state, element)

        baseline_styles = (
            {camel_to_kebab(k): v for k, v in baseline.inline_styles.items()} if baseline else {}
        )
        styles = get_style_diff(baseline_styles, StyleDeclaration(element).to_dict())

        text = None
        if not element.find(True):
            current_text = element.get_text().strip()
            baseline_text = baseline.text_content if baseline else ""
            if current_text and current_text != baseline_text:
                text = current_text

        override = ElementOverride.create(selector=selector, text=text, styles=styles or None)
        self.apply_override(shape_id, override)
        return override

    @staticmethod
    def _find_baseline(state: SyncState, element: Tag) -> Optional[ParsedElement]:
        """
        Locates the parsed original of a live element: by id/data-uuid when
        it has one, else by its child-index position below the bound root.
        """
        parsed = state.original_html
        identifier = element.get("id") or element.get("data-uuid")
        if identifier and identifier in parsed.element_map:
            return parsed.element_map[identifier]

        root = state.dom_root
        path = child_index_path(element, root) if root is not None else None
        if path is None:
            return None

        root_identifier = root.get("id") or root.get("data-uuid")
        if root_identifier and root_identifier in parsed.element_map:
            anchor = parsed.element_map[root_identifier]
        else:
            # The bound root is either the parsed body itself or one of its top-level elements
            candidates = [parsed.root] + parsed.root.children
            anchor = next((c for c in candidates if c.tag_name == root.name), None)
        return parsed.find_by_path(anchor, path) if anchor is not None else None

    # -------- Consistency --------

    def validate_sync(self, shape_id: str) -> bool:
        """
        Compares the recorded geometry with the DOM container's inline
        left/top/width/height. Unknown shapes are reported as invalid;
        nothing to compare counts as valid.
        """
        state = self._sync_states.get(shape_id)
        if state is None:
            return False
        if state.shape_ref is None or state.dom_root is None:
            return True

        style = StyleDeclaration(state.dom_root)
        ref = state.shape_ref
        for prop, expected in (("left", ref.x), ("top", ref.y), ("width", ref.width), ("height", ref.height)):
            actual = _style_px(style, prop)
            if abs(expected - actual) > self.tolerance_px:
                logger.debug("Drift on shape %s: %s is %s, expected %s", shape_id, prop, actual, expected)
                return False
        return True

    def _restore_snapshot(self, shape_id: str, dom_root: Tag) -> None:
        """Puts the bound root's attributes and children back to how they were at bind time."""
        snapshot = self._dom_snapshots.get(shape_id)
        if snapshot is None:
            return
        fresh = copy.copy(snapshot)
        dom_root.attrs = dict(fresh.attrs)
        dom_root.clear()
        for child in list(fresh.contents):
            dom_root.append(child.extract())

    def _rebuild(self, shape_id: str, state: SyncState) -> List[ApplyResult]:
        """Snapshot, then last geometry, then the whole log in timestamp order."""
        self._restore_snapshot(shape_id, state.dom_root)
        if state.shape_ref is not None:
            ref = state.shape_ref
            apply_geometry(state.dom_root, ref.x, ref.y, ref.width, ref.height)
        return replay_overrides(state.dom_root, state.overrides)

    def recover_sync(self, shape_id: str) -> List[ApplyResult]:
        """
        Rebuilds the bound DOM from the override log: restores the root to
        its bind-time snapshot, re-pushes the last geometry and replays every
        override in timestamp order. Unknown shapes are ignored.
        """
        state = self._sync_states.get(shape_id)
        if state is None:
            logger.error("Cannot recover sync: state not found for shape %s", shape_id)
            return []

        results = self._rebuild(shape_id, state) if state.dom_root is not None else []

        state.status = "synced"
        state.last_sync = now_ms()
        logger.info("Sync recovered for shape %s (%d overrides replayed)", shape_id, len(results))
        return results

    def restore_to_version(self, shape_id: str, timestamp: int) -> None:
        """
        Drops every override and history entry newer than 'timestamp'.

        The DOM is left as is; call recover_sync() afterwards to rebuild a
        bound root.

        Raises:
            UnknownShapeError: If the shape has no sync state.
        """
        state = self._require(shape_id)
        state.overrides = [o for o in state.overrides if o.timestamp <= timestamp]
        state.history = [h for h in state.history if h.timestamp <= timestamp]
        state.status = "synced"

    def set_dom_root(self, shape_id: str, element: Tag) -> List[ApplyResult]:
        """
        Binds a live DOM subtree to the shape and replays the existing log
        onto it, so a freshly attached root reflects every edit so far.

        Raises:
            UnknownShapeError: If the shape has no sync state.
        """
        state = self._require(shape_id)
        state.dom_root = element
        self._dom_snapshots[shape_id] = copy.copy(element)
        return replay_overrides(element, state.overrides)

    def find_in_dom(self, shape_id: str, selector: str) -> List[Tag]:
        """Looks up live elements of a bound shape; empty when unknown or unbound."""
        state = self._sync_states.get(shape_id)
        if state is None or state.dom_root is None:
            return []
        return find_elements(state.dom_root, selector)


# Shared engine for hosts that manage a single editor session
sync_engine = SyncEngine()
