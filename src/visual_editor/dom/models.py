# src/visual_editor/dom/models.py
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


class ParsedElement(BaseModel):
    """
    One node of the parsed element tree.

    `children` owns the subtree. The parent is a non-owning lookup pointer
    kept as a private attribute, so dumping, repr and equality never walk
    back up the tree; `parent_identifier` is its serializable form.
    """
    identifier: str
    tag_name: str
    attributes: Dict[str, str] = Field(default_factory=dict)
    inline_styles: Dict[str, str] = Field(default_factory=dict)
    text_content: str = ""
    selector: str = ""
    children: List['ParsedElement'] = Field(default_factory=list)
    parent_identifier: Optional[str] = None

    _parent: Optional['ParsedElement'] = PrivateAttr(default=None)

    @property
    def parent(self) -> Optional['ParsedElement']:
        return self._parent

    def attach_parent(self, parent: Optional['ParsedElement']) -> None:
        self._parent = parent
        self.parent_identifier = parent.identifier if parent else None

    @property
    def classes(self) -> List[str]:
        return (self.attributes.get("class") or "").split()

    def iter_tree(self):
        """Yields this element and all descendants, depth-first in document order."""
        yield self
        for child in self.children:
            yield from child.iter_tree()


class ExternalResources(BaseModel):
    """URLs referenced by the document but not inlined in it."""
    stylesheets: List[str] = Field(default_factory=list)
    scripts: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)


class HtmlParseResult(BaseModel):
    """
    Output of a single HtmlParser.parse() call. Frozen once built; the
    SyncEngine keeps it as the 'original' baseline of a shape.
    """
    model_config = ConfigDict(frozen=True)

    root: ParsedElement
    element_map: Dict[str, ParsedElement] = Field(default_factory=dict)
    styles: str = ""
    scripts: str = ""
    external_resources: ExternalResources = Field(default_factory=ExternalResources)

    def find_by_selector(self, selector: str) -> Optional[ParsedElement]:
        """Returns the first element (document order) whose generated selector equals 'selector'."""
        for element in self.root.iter_tree():
            if element.selector == selector:
                return element
        return None

    def find_by_path(self, start: ParsedElement, path: List[int]) -> Optional[ParsedElement]:
        """Follows child indexes down from 'start'; None when the tree has no such position."""
        current = start
        for index in path:
            if index >= len(current.children):
                return None
            current = current.children[index]
        return current


class ValidationResult(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)
