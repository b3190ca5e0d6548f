# src/visual_editor/model.py
import time
from typing import Any, Dict, List, Literal, Optional

from bs4 import Tag
from pydantic import BaseModel, ConfigDict, Field

from visual_editor.dom.models import HtmlParseResult, ParsedElement

SyncStatus = Literal["synced", "pending", "error"]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds; the ordering key of overrides."""
    return int(time.time() * 1000)


class Position(BaseModel):
    x: float
    y: float


class Size(BaseModel):
    width: float
    height: float


class OverrideOriginal(BaseModel):
    """Pre-edit snapshot of the payload kinds an override touches."""
    model_config = ConfigDict(frozen=True)

    text: Optional[str] = None
    html: Optional[str] = None
    styles: Optional[Dict[str, str]] = None
    attributes: Optional[Dict[str, str]] = None
    position: Optional[Position] = None
    size: Optional[Size] = None


class ElementOverride(BaseModel):
    """
    One atomic visual edit against a CSS selector.

    Immutable: a new edit produces a new override. An override with no
    payload field is legal and applies as a no-op.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    selector: str
    timestamp: int = Field(default_factory=now_ms)
    ai_generated: bool = Field(default=False, alias="aiGenerated")

    text: Optional[str] = None
    html: Optional[str] = None
    styles: Optional[Dict[str, str]] = None
    attributes: Optional[Dict[str, str]] = None
    position: Optional[Position] = None
    size: Optional[Size] = None

    original: Optional[OverrideOriginal] = None

    @classmethod
    def create(cls, selector: str, ai_generated: bool = False, **payload: Any) -> "ElementOverride":
        """Builds an override stamped with the current time in epoch milliseconds."""
        return cls(selector=selector, timestamp=now_ms(), ai_generated=ai_generated, **payload)

    @property
    def has_payload(self) -> bool:
        return any(
            value is not None
            for value in (self.text, self.html, self.styles, self.attributes, self.position, self.size)
        )

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dict in the editor's camelCase wire shape; unset payloads omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "ElementOverride":
        return cls.model_validate(data)


class HistoryEntry(BaseModel):
    timestamp: int
    override: ElementOverride


class ShapeProps(BaseModel):
    """Structured geometry pushed by the host, in pixels."""
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0


class SyncState(BaseModel):
    """
    Authoritative per-shape record: the parsed original, the override log,
    its audit history and the binding to a live DOM subtree.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    shape_id: str
    original_html: HtmlParseResult
    overrides: List[ElementOverride] = Field(default_factory=list)
    history: List[HistoryEntry] = Field(default_factory=list)
    status: SyncStatus = "synced"
    last_sync: int = Field(default_factory=now_ms)
    dom_root: Optional[Tag] = Field(default=None, exclude=True, repr=False)
    shape_ref: Optional[ShapeProps] = None


class ModifiedElement(BaseModel):
    selector: str
    changes: ElementOverride


class HtmlDiff(BaseModel):
    """
    What changed relative to a parsed original. Overrides only ever modify
    existing elements, so 'added' and 'removed' stay empty for now.
    """
    added: List[ParsedElement] = Field(default_factory=list)
    modified: List[ModifiedElement] = Field(default_factory=list)
    removed: List[ParsedElement] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "added": [element.identifier for element in self.added],
            "modified": [{"selector": m.selector, "changes": m.changes.to_wire()} for m in self.modified],
            "removed": [element.identifier for element in self.removed],
        }
