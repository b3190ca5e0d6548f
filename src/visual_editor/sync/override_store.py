# src/visual_editor/sync/override_store.py
import logging
from typing import Any, Dict, List, Optional

from visual_editor.model import ElementOverride, OverrideOriginal

logger = logging.getLogger(__name__)

_SCALAR_FIELDS = ("text", "html", "position", "size")
_MAP_FIELDS = ("styles", "attributes")


class OverrideStore:
    """
    Keeps element overrides grouped by selector, without touching any markup.
    Repeated edits of one element can be collapsed with merge_overrides().
    """

    def __init__(self):
        self._overrides: Dict[str, List[ElementOverride]] = {}
        # Every override across selectors, in the order it was added
        self._added: List[ElementOverride] = []

    def add_override(self, override: ElementOverride) -> ElementOverride:
        self._overrides.setdefault(override.selector, []).append(override)
        self._added.append(override)
        return override

    def merge_overrides(self, selector: str) -> Optional[ElementOverride]:
        """
        Collapses every override for 'selector' into one.

        Overrides are folded oldest first, so later payloads win; style and
        attribute maps are merged key by key, as are their 'original'
        snapshots. The result carries the latest timestamp and is flagged
        AI-generated if any contributor was.
        """
        overrides = self._overrides.get(selector)
        if not overrides:
            return None

        ordered = sorted(overrides, key=lambda o: o.timestamp)
        merged: Dict[str, Any] = {}
        original: Dict[str, Any] = {}

        for override in ordered:
            for name in _SCALAR_FIELDS:
                value = getattr(override, name)
                if value is None:
                    continue
                merged[name] = value
                previous = getattr(override.original, name, None) if override.original else None
                if previous is not None:
                    original[name] = previous

            for name in _MAP_FIELDS:
                value = getattr(override, name)
                if value is None:
                    continue
                merged[name] = {**merged.get(name, {}), **value}
                previous = getattr(override.original, name, None) if override.original else None
                if previous is not None:
                    original[name] = {**original.get(name, {}), **previous}

        return ElementOverride(
            selector=selector,
            timestamp=ordered[-1].timestamp,
            ai_generated=any(o.ai_generated for o in ordered),
            original=OverrideOriginal(**original) if original else None,
            **merged,
        )

    def get_overrides_by_selector(self, selector: str) -> List[ElementOverride]:
        return list(self._overrides.get(selector, []))

    def remove_override(self, selector: str, timestamp: int) -> bool:
        """Removes the overrides of 'selector' stamped 'timestamp'. True if any were removed."""
        overrides = self._overrides.get(selector)
        if not overrides:
            return False

        remaining = [o for o in overrides if o.timestamp != timestamp]
        if remaining:
            self._overrides[selector] = remaining
        else:
            del self._overrides[selector]
        self._added = [o for o in self._added if o.selector != selector or o.timestamp != timestamp]
        return len(remaining) < len(overrides)

    def get_all_overrides(self) -> List[ElementOverride]:
        """All overrides across selectors in chronological order; ties keep insertion order."""
        return sorted(self._added, key=lambda o: o.timestamp)

    def clear_overrides(self) -> None:
        self._overrides.clear()
        self._added.clear()

    def get_override_count(self) -> int:
        return sum(len(overrides) for overrides in self._overrides.values())

    def get_selectors(self) -> List[str]:
        return list(self._overrides.keys())

    def has_overrides(self, selector: str) -> bool:
        return bool(self._overrides.get(selector))
