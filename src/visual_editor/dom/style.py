# src/visual_editor/dom/style.py
"""
Style adapter.

This module is the single place where CSS property casing is decided.
Parsed inline styles are exposed with camelCase keys (``fontSize``),
the live DOM (a bs4 tag's ``style`` attribute) is written in kebab-case
(``font-size``). Custom properties (``--primary``) are never re-cased.
"""
import logging
import re
from typing import Dict, Iterator, List, Optional, Tuple

from bs4 import Tag

logger = logging.getLogger(__name__)

_KEBAB_RE = re.compile(r"-([a-z])")
_CAMEL_RE = re.compile(r"[A-Z]")


def kebab_to_camel(name: str) -> str:
    """'background-color' -> 'backgroundColor'. Custom properties pass through."""
    if name.startswith("--"):
        return name
    return _KEBAB_RE.sub(lambda m: m.group(1).upper(), name)


def camel_to_kebab(name: str) -> str:
    """'backgroundColor' -> 'background-color'. Custom properties pass through."""
    if name.startswith("--"):
        return name
    return _CAMEL_RE.sub(lambda m: f"-{m.group(0).lower()}", name)


def split_declarations(css: str) -> List[str]:
    """
    Splits a declaration list on top-level semicolons.

    Semicolons inside quotes or parentheses (``url(data:image/png;base64,...)``)
    do not end a declaration.
    """
    parts: List[str] = []
    buf: List[str] = []
    depth = 0
    quote: Optional[str] = None

    for ch in css:
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(depth - 1, 0)
        elif ch == ";" and depth == 0:
            parts.append("".join(buf))
            buf = []
            continue
        buf.append(ch)

    parts.append("".join(buf))
    return [p.strip() for p in parts if p.strip()]


def parse_declarations(css: str) -> List[Tuple[str, str]]:
    """Returns (property, value) pairs in source order, property names untouched."""
    pairs: List[Tuple[str, str]] = []
    if not css or not isinstance(css, str):
        return pairs

    for declaration in split_declarations(css):
        colon = declaration.find(":")
        if colon == -1:
            continue  # Skip invalid declarations
        prop = declaration[:colon].strip()
        value = declaration[colon + 1:].strip()
        if prop and value:
            pairs.append((prop, value))
    return pairs


def parse_css_string(css: str) -> Dict[str, str]:
    """
    Parses a style attribute into a camelCase property map.

    "color: red; font-size: 16px" -> {"color": "red", "fontSize": "16px"}
    Values are kept exactly as written (gradients, transforms, urls).
    """
    return {kebab_to_camel(prop): value for prop, value in parse_declarations(css)}


def style_to_css_string(styles: Dict[str, str]) -> str:
    """Serializes a camelCase or kebab-case map into "prop: value;" text."""
    if not styles:
        return ""
    declarations = [
        f"{camel_to_kebab(prop)}: {value}"
        for prop, value in styles.items()
        if value is not None and value != ""
    ]
    return "; ".join(declarations) + ";" if declarations else ""


def merge_styles(*styles: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Merges style maps; later maps win."""
    merged: Dict[str, str] = {}
    for style_map in styles:
        if style_map:
            merged.update(style_map)
    return merged


def get_style_diff(initial: Dict[str, str], current: Dict[str, str]) -> Dict[str, str]:
    """
    Returns the entries of 'current' whose value differs from 'initial',
    including keys that are absent from the baseline.
    """
    return {key: value for key, value in current.items() if initial.get(key) != value}


class StyleDeclaration:
    """
    A live view over the ``style`` attribute of a bs4 tag, modelled on the
    browser's CSSStyleDeclaration. Every write re-serializes the attribute.
    Accepts camelCase or kebab-case names; stores kebab-case.
    """

    def __init__(self, tag: Tag):
        self.tag = tag

    def _read(self) -> Dict[str, str]:
        raw = self.tag.get("style") or ""
        if isinstance(raw, list):
            raw = " ".join(raw)
        return {camel_to_kebab(prop): value for prop, value in parse_declarations(raw)}

    def _write(self, declarations: Dict[str, str]) -> None:
        if declarations:
            self.tag["style"] = "; ".join(f"{p}: {v}" for p, v in declarations.items()) + ";"
        elif "style" in self.tag.attrs:
            del self.tag["style"]

    def get_property_value(self, name: str) -> str:
        return self._read().get(camel_to_kebab(name), "")

    def set_property(self, name: str, value: Optional[str]) -> None:
        """Sets one property; an empty or None value removes it, like the DOM does."""
        declarations = self._read()
        prop = camel_to_kebab(name)
        if value is None or str(value).strip() == "":
            declarations.pop(prop, None)
        else:
            declarations[prop] = str(value).strip()
        self._write(declarations)

    def update(self, styles: Dict[str, str]) -> None:
        for name, value in styles.items():
            self.set_property(name, value)

    def remove_property(self, name: str) -> str:
        declarations = self._read()
        old = declarations.pop(camel_to_kebab(name), "")
        self._write(declarations)
        return old

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(self._read().items())

    def to_dict(self) -> Dict[str, str]:
        return self._read()

    def __len__(self) -> int:
        return len(self._read())

    def __repr__(self) -> str:
        return f"<StyleDeclaration {self.tag.get('style')!r}>"
