# src/pagebatch/css_variables.py
import logging
import re
from typing import Dict, List, Optional, Tuple

from visual_editor.dom.style import parse_declarations
from .model import CssVariable

logger = logging.getLogger(__name__)

_ROOT_BLOCK_RE = re.compile(r":root\s*\{([^}]*)\}", re.IGNORECASE)
_HEX_RE = re.compile(r"^#([0-9a-f]{3,4}|[0-9a-f]{6}|[0-9a-f]{8})$", re.IGNORECASE)
_FUNC_COLOR_RE = re.compile(r"^(rgb|rgba|hsl|hsla)\s*\(")


def _is_color_value(value: str) -> bool:
    return bool(_HEX_RE.match(value) or _FUNC_COLOR_RE.match(value))


def classify_variable(name: str, value: str) -> str:
    """
    Buckets a custom property into color / font / spacing / other.
    Name hints are checked before value hints, color before font.
    """
    lower_name = name.lower()
    lower_value = value.lower().strip()

    if any(hint in lower_name for hint in ("color", "bg", "background")):
        return "color"
    if _is_color_value(lower_value):
        return "color"
    if "font" in lower_name or "text" in lower_name:
        return "font"
    if any(hint in lower_name for hint in ("spacing", "gap", "margin", "padding", "radius")):
        return "spacing"
    return "other"


def parse_css_variables(css_text: str) -> List[CssVariable]:
    """Extracts custom properties (--name: value) from every :root block."""
    if not css_text or not css_text.strip():
        return []

    variables = []
    for block in _ROOT_BLOCK_RE.finditer(css_text):
        for name, value in parse_declarations(block.group(1)):
            if name.startswith("--"):
                variables.append(CssVariable(name=name, value=value, category=classify_variable(name, value)))
    return variables


def serialize_css_variables(variables: List[CssVariable]) -> str:
    if not variables:
        return ":root {\n}"
    lines = "\n".join(f"  {v.name}: {v.value};" for v in variables)
    return f":root {{\n{lines}\n}}"


def find_root_block(css_text: str) -> Optional[Tuple[int, int, str]]:
    """Returns (start, end, body) of the first :root block, or None."""
    match = _ROOT_BLOCK_RE.search(css_text or "")
    if not match:
        return None
    return match.start(), match.end(), match.group(1)


def parse_root_block(css_text: str) -> Dict[str, str]:
    """Flat property map of the first :root block (all declarations, not only variables)."""
    found = find_root_block(css_text)
    if found is None:
        return {}
    return dict(parse_declarations(found[2]))


def serialize_root_block(properties: Dict[str, str]) -> str:
    lines = "\n".join(f"  {name}: {value};" for name, value in properties.items())
    return f":root {{\n{lines}\n}}" if lines else ":root {\n}"


def replace_root_block(css_text: str, properties: Dict[str, str]) -> str:
    """
    Rewrites the first :root block with 'properties'. Without one, a new
    block is prepended, separated from the existing CSS by a blank line.
    """
    block = serialize_root_block(properties)
    found = find_root_block(css_text)
    if found is None:
        return f"{block}\n\n{css_text}" if css_text and css_text.strip() else block
    start, end, _ = found
    return css_text[:start] + block + css_text[end:]
