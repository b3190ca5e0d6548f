# src/visual_editor/dom/builder.py
import logging
import re
from typing import Dict, List, Optional, Set, Tuple

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from visual_editor.errors import InvalidInputError
from visual_editor.utils.config_manager import config_manager
from .identifiers import IdentifierGenerator
from .models import ExternalResources, HtmlParseResult, ParsedElement, ValidationResult
from .selector import generate_css_selector
from .style import parse_css_string

logger = logging.getLogger(__name__)

# Elements that never take a closing tag.
VOID_ELEMENTS = {
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
}

# Top-level elements that belong to the document head when no <body> exists.
HEAD_ONLY_ELEMENTS = {"head", "title", "meta", "link", "style", "base"}

_OPEN_TAG_RE = re.compile(r"<([a-zA-Z][a-zA-Z0-9-]*)\b[^>]*>")
_CLOSE_TAG_RE = re.compile(r"</([a-zA-Z][a-zA-Z0-9-]*)\s*>")
_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_RAW_TEXT_RE = re.compile(r"(<(script|style)\b[^>]*>).*?(</\2\s*>)", re.DOTALL | re.IGNORECASE)


def _make_soup(html: str) -> BeautifulSoup:
    # Keep 'class', 'rel' etc. as the literal attribute string.
    return BeautifulSoup(html, "html.parser", multi_valued_attributes=None)


def _direct_text(node) -> str:
    """Concatenates the direct text children of a node (comments excluded), trimmed."""
    parts = [
        str(child) for child in node.children
        if isinstance(child, NavigableString) and not isinstance(child, PreformattedString)
    ]
    return "".join(parts).strip()


def _raw_text(tag: Tag) -> str:
    """Returns the unparsed text of a raw-text element such as <style>."""
    return "".join(str(child) for child in tag.contents)


def _is_blank(html) -> Optional[str]:
    """Returns an error message for missing/blank input, None when usable."""
    if not html or not isinstance(html, str):
        return "HTML is empty or not a string"
    if not html.strip():
        return "HTML is empty after trimming"
    return None


class HtmlParser:
    """
    Parses HTML strings into an addressable ParsedElement tree.

    Alongside the tree it extracts <style>/<script> text and external
    resource URLs, validates markup structure, and can inject data-uuid
    attributes into raw markup for interactive elements.
    """

    def __init__(self, generator: Optional[IdentifierGenerator] = None):
        self.generator = generator or IdentifierGenerator(
            suffix_length=config_manager.get_nested("parser.random_suffix_length", 8)
        )
        self.interactive_tags: Set[str] = set(
            config_manager.get_nested("parser.interactive_tags", ["button", "a", "input"])
        )
        # Identifiers claimed during the current parse (id / data-uuid / generated)
        self._seen: Set[str] = set()

    # -------- Parsing --------

    def parse(self, html: str, css: Optional[str] = None, js: Optional[str] = None) -> HtmlParseResult:
        """
        Parses 'html' into an HtmlParseResult.

        Args:
            html (str): The markup; parsed leniently.
            css (Optional[str]): CSS to attach. When omitted, the text of all
                <style> elements is concatenated in document order.
            js (Optional[str]): Script to attach. When omitted, the text of all
                inline <script> elements (no src) is concatenated.

        Raises:
            InvalidInputError: If html is empty, not a string, or blank.
        """
        problem = _is_blank(html)
        if problem:
            raise InvalidInputError(f"Invalid HTML: {problem}")

        self._seen = set()
        soup = _make_soup(html)

        styles = css if css else "\n".join(_raw_text(tag) for tag in soup.find_all("style"))
        scripts = js if js else "\n".join(
            _raw_text(tag) for tag in soup.find_all("script") if not tag.has_attr("src")
        )

        element_map: Dict[str, ParsedElement] = {}
        if soup.body is not None:
            root = self._build_tree(soup.body, None, element_map)
        else:
            root = self._build_synthetic_root(soup, element_map)

        logger.debug("Parsed %d elements", len(element_map))
        return HtmlParseResult(
            root=root,
            element_map=element_map,
            styles=styles,
            scripts=scripts,
            external_resources=self._collect_external_resources(soup),
        )

    def _build_synthetic_root(self, soup: BeautifulSoup, element_map: Dict[str, ParsedElement]) -> ParsedElement:
        """Creates a BODY-equivalent root for fragments that have no <body>."""
        container = soup.html if soup.html is not None else soup
        root = self._make_element("body", {}, _direct_text(container), None, element_map)
        for child in container.children:
            if isinstance(child, Tag) and child.name not in HEAD_ONLY_ELEMENTS:
                root.children.append(self._build_tree(child, root, element_map))
        return root

    def _build_tree(self, tag: Tag, parent: Optional[ParsedElement],
                    element_map: Dict[str, ParsedElement]) -> ParsedElement:
        """Recursively converts a bs4 tag and its element children."""
        element = self._make_element(
            tag.name,
            {k: self._attr_str(v) for k, v in tag.attrs.items()},
            _direct_text(tag),
            parent,
            element_map,
            tag=tag,
        )
        for child in tag.children:
            if isinstance(child, Tag):
                element.children.append(self._build_tree(child, element, element_map))
        return element

    def _make_element(self, tag_name: str, attributes: Dict[str, str], text: str,
                      parent: Optional[ParsedElement], element_map: Dict[str, ParsedElement],
                      tag: Optional[Tag] = None) -> ParsedElement:
        identifier = self.extract_identifiers(tag) if tag is not None else self._generate(tag_name)
        element = ParsedElement(
            identifier=identifier,
            tag_name=tag_name,
            attributes=attributes,
            inline_styles=parse_css_string(attributes.get("style", "")),
            text_content=text,
        )
        element.attach_parent(parent)
        element.selector = self.generate_selector(element)
        element_map[identifier] = element
        return element

    @staticmethod
    def _attr_str(value) -> str:
        return " ".join(value) if isinstance(value, list) else str(value)

    # -------- Identifiers & Selectors --------

    def extract_identifiers(self, tag: Tag) -> str:
        """
        Resolves the identifier of a tag: 'id' attribute, then 'data-uuid',
        then a generated one. Values already claimed in this parse are skipped.
        """
        for attr in ("id", "data-uuid"):
            value = tag.get(attr)
            if value and value not in self._seen:
                self._seen.add(value)
                return value
        return self._generate(tag.name)

    def _generate(self, tag_name: str) -> str:
        identifier = self.generator.next(tag_name, self._seen)
        self._seen.add(identifier)
        return identifier

    def generate_selector(self, element: ParsedElement) -> str:
        return generate_css_selector(element)

    # -------- Validation --------

    def validate(self, html: str) -> ValidationResult:
        """
        Checks markup for emptiness and opening/closing tag mismatches.

        The scan runs on the raw text, before any lenient parser gets the
        chance to repair it. Comments and script/style bodies are ignored,
        as are void elements and explicitly self-closed tags.
        """
        problem = _is_blank(html)
        if problem:
            return ValidationResult(valid=False, errors=[problem])

        scrubbed = _COMMENT_RE.sub("", html)
        scrubbed = _RAW_TEXT_RE.sub(lambda m: m.group(1) + m.group(3), scrubbed)

        open_counts: Dict[str, int] = {}
        for match in _OPEN_TAG_RE.finditer(scrubbed):
            name = match.group(1).lower()
            if name in VOID_ELEMENTS or match.group(0).endswith("/>"):
                continue
            open_counts[name] = open_counts.get(name, 0) + 1

        close_counts: Dict[str, int] = {}
        for match in _CLOSE_TAG_RE.finditer(scrubbed):
            name = match.group(1).lower()
            close_counts[name] = close_counts.get(name, 0) + 1

        errors = []
        for name in sorted(set(open_counts) | set(close_counts)):
            if name in VOID_ELEMENTS:
                continue
            opened, closed = open_counts.get(name, 0), close_counts.get(name, 0)
            if opened != closed:
                errors.append(
                    f"Mismatched tags: <{name}> opened {opened} times but closed {closed} times"
                )

        return ValidationResult(valid=not errors, errors=errors)

    # -------- Resources --------

    def extract_external_resources(self, html: str) -> ExternalResources:
        """Collects stylesheet hrefs, script srcs and image srcs referenced by the markup."""
        if _is_blank(html):
            return ExternalResources()
        return self._collect_external_resources(_make_soup(html))

    @staticmethod
    def _collect_external_resources(soup: BeautifulSoup) -> ExternalResources:
        stylesheets = [
            link["href"] for link in soup.find_all("link", href=True)
            if "stylesheet" in (link.get("rel") or "").lower().split()
        ]
        scripts = [tag["src"] for tag in soup.find_all("script", src=True) if tag["src"]]
        images = [tag["src"] for tag in soup.find_all("img", src=True) if tag["src"]]
        return ExternalResources(stylesheets=stylesheets, scripts=scripts, images=images)

    # -------- Identifier Injection --------

    def _is_interactive(self, tag: Tag) -> bool:
        if tag.name in self.interactive_tags:
            return True
        return any(name.lower().startswith("on") for name in tag.attrs)

    def injectable_tags(self, soup: BeautifulSoup) -> List[Tag]:
        return [
            tag for tag in soup.find_all(True)
            if self._is_interactive(tag) and not tag.has_attr("id") and not tag.has_attr("data-uuid")
        ]

    def inject_identifiers(self, html: str) -> str:
        """
        Adds a generated data-uuid to every interactive element (button, a,
        input, anything with an on* handler) that has neither id nor data-uuid.

        The attribute is spliced into the raw markup right after the tag
        name, so everything else in the document stays byte-for-byte intact.
        """
        if _is_blank(html):
            return html

        soup = _make_soup(html)
        taken = {
            tag.get(attr) for tag in soup.find_all(True)
            for attr in ("id", "data-uuid") if tag.get(attr)
        }

        line_starts = [0] + [i + 1 for i, ch in enumerate(html) if ch == "\n"]
        insertions: List[Tuple[int, str]] = []

        for tag in self.injectable_tags(soup):
            if tag.sourceline is None or tag.sourcepos is None:
                logger.warning("No source position for <%s>; skipping identifier injection", tag.name)
                continue
            start = line_starts[tag.sourceline - 1] + tag.sourcepos
            name_end = start + 1 + len(tag.name)
            if html[start:start + 1] != "<" or html[start + 1:name_end].lower() != tag.name:
                logger.warning("Source position mismatch for <%s> at offset %d; skipping", tag.name, start)
                continue

            identifier = self.generator.next(tag.name, taken)
            taken.add(identifier)
            insertions.append((name_end, f' data-uuid="{identifier}"'))

        for offset, text in sorted(insertions, reverse=True):
            html = html[:offset] + text + html[offset:]

        logger.debug("Injected %d identifiers", len(insertions))
        return html


# Shared parser instance for callers that don't need their own generator state
html_parser = HtmlParser()
