# src/pagebatch/theme_manager.py
import logging
from typing import Dict, Iterable, List, Optional

from visual_editor.model import ElementOverride, OverrideOriginal, now_ms
from .css_variables import parse_root_block, replace_root_block
from .model import PageGroup, SharedNavigation

logger = logging.getLogger(__name__)

ROOT_SELECTOR = ":root"
HEADER_SELECTOR = 'nav[data-shared="header"], header[data-shared="header"]'
FOOTER_SELECTOR = 'footer[data-shared="footer"]'

# Individual selectors that address a shared component.
SHARED_NAV_SELECTORS = (
    'nav[data-shared="header"]',
    'header[data-shared="header"]',
    FOOTER_SELECTOR,
)

OverrideMap = Dict[str, List[ElementOverride]]


class SharedThemeManager:
    """
    Tracks groups of related pages and turns theme or navigation edits into
    one batch of overrides per page, so every page of a group stays in step.
    """

    def __init__(self):
        self._page_groups: Dict[str, PageGroup] = {}

    def register_page_group(self, group_id: str, shape_ids: Iterable[str], shared_theme: str,
                            shared_navigation: Optional[SharedNavigation] = None) -> PageGroup:
        group = PageGroup(
            group_id=group_id,
            # Set semantics, registration order kept
            shape_ids=list(dict.fromkeys(shape_ids)),
            shared_theme=shared_theme or "",
            shared_navigation=shared_navigation or SharedNavigation(),
        )
        self._page_groups[group_id] = group
        logger.debug("Registered page group %s with %d shapes", group_id, len(group.shape_ids))
        return group

    def map_page_to_shape(self, group_id: str, page_name: str, shape_id: str) -> None:
        """Records which shape renders 'page_name'. Unknown groups are ignored."""
        group = self._page_groups.get(group_id)
        if group is None:
            logger.debug("map_page_to_shape: unknown group %s", group_id)
            return
        group.page_name_to_shape_id[page_name] = shape_id

    def update_shared_theme(self, group_id: str, changes: Dict[str, str]) -> OverrideMap:
        """
        Merges 'changes' into the group's :root block and returns one
        ':root' override per shape. Each override's original.styles holds the
        previous values of the touched keys that existed before.
        """
        group = self._page_groups.get(group_id)
        if group is None:
            return {}

        current = parse_root_block(group.shared_theme)
        previous = {key: current[key] for key in changes if key in current}
        group.shared_theme = replace_root_block(group.shared_theme, {**current, **changes})

        timestamp = now_ms()
        overrides: OverrideMap = {}
        for shape_id in group.shape_ids:
            overrides[shape_id] = [ElementOverride(
                selector=ROOT_SELECTOR,
                styles=dict(changes),
                timestamp=timestamp,
                ai_generated=False,
                original=OverrideOriginal(styles=dict(previous)),
            )]

        logger.info("Theme update on group %s fans out to %d shapes", group_id, len(overrides))
        return overrides

    def update_shared_navigation(self, group_id: str, header: Optional[str] = None,
                                 footer: Optional[str] = None) -> OverrideMap:
        """
        Replaces the shared header and/or footer. For each fragment given,
        every shape gets an override (header first, then footer) whose
        original.html is the fragment being replaced.
        """
        group = self._page_groups.get(group_id)
        if group is None or (header is None and footer is None):
            return {}

        timestamp = now_ms()
        nav = group.shared_navigation
        overrides: OverrideMap = {}
        for shape_id in group.shape_ids:
            batch = []
            if header is not None:
                batch.append(ElementOverride(
                    selector=HEADER_SELECTOR, html=header, timestamp=timestamp,
                    original=OverrideOriginal(html=nav.header),
                ))
            if footer is not None:
                batch.append(ElementOverride(
                    selector=FOOTER_SELECTOR, html=footer, timestamp=timestamp,
                    original=OverrideOriginal(html=nav.footer),
                ))
            overrides[shape_id] = batch

        group.shared_navigation = SharedNavigation(
            header=header if header is not None else nav.header,
            footer=footer if footer is not None else nav.footer,
        )
        return overrides

    def is_shared_component(self, group_id: str, selector: str) -> bool:
        """
        True when 'selector' addresses the theme root, a shared header/footer,
        or something inside one (shared selector followed by a descendant
        combinator). Used to decide whether an edit fans out to the group.
        """
        if group_id not in self._page_groups or not selector:
            return False

        selector = selector.strip()
        if selector in (ROOT_SELECTOR, HEADER_SELECTOR) or selector in SHARED_NAV_SELECTORS:
            return True
        # A comma after the prefix starts a selector list, not a descendant
        return any(
            selector.startswith(shared + " ") and "," not in selector[len(shared):]
            for shared in SHARED_NAV_SELECTORS
        )

    def get_page_group(self, group_id: str) -> Optional[PageGroup]:
        return self._page_groups.get(group_id)

    def get_all_page_groups(self) -> List[PageGroup]:
        return list(self._page_groups.values())

    def remove_page_group(self, group_id: str) -> None:
        self._page_groups.pop(group_id, None)


shared_theme_manager = SharedThemeManager()
