# src/pagebatch/model.py (Batch Layer)
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class PageSpec(BaseModel):
    name: str
    role: str = ""
    links_to: List[str] = Field(default_factory=list)
    order: int = 0


class AppContext(BaseModel):
    """Describes the multi-page app that was requested from the AI."""
    app_name: str = ""
    app_type: str = ""
    pages: List[PageSpec] = Field(default_factory=list)
    original_prompt: str = ""


class GeneratedPage(BaseModel):
    name: str
    html: str
    css: str = ""
    js: str = ""


class SharedNavigation(BaseModel):
    header: str = ""
    footer: str = ""


class MultiPageResult(BaseModel):
    app_name: str = ""
    shared_theme: str = ""
    shared_navigation: SharedNavigation = Field(default_factory=SharedNavigation)
    pages: List[GeneratedPage] = Field(default_factory=list)
    error: Optional[str] = None


class LinkValidationResult(BaseModel):
    valid: bool
    missing_targets: List[str] = Field(default_factory=list)


class CssExtractionResult(BaseModel):
    shared_css: str = ""
    # page name -> remaining page specific CSS
    page_css: Dict[str, str] = Field(default_factory=dict)


class CssVariable(BaseModel):
    name: str
    value: str
    category: Literal["color", "font", "spacing", "other"] = "other"


class PageGroup(BaseModel):
    """A set of rendered pages that share one theme block and one header/footer."""
    group_id: str
    shape_ids: List[str] = Field(default_factory=list)
    shared_theme: str = ""
    shared_navigation: SharedNavigation = Field(default_factory=SharedNavigation)
    page_name_to_shape_id: Dict[str, str] = Field(default_factory=dict)
