"""Signal gathering for static HTML documents parsed with BeautifulSoup.

This adapter lets the classifier run against saved pages or server-rendered
markup without a browser. Geometry and computed style are not available from
markup alone, so the visual signals fall back to zero sizes and a
visibility flag derived from ``hidden`` / inline ``display:none`` markers.
"""
from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from bs4 import BeautifulSoup, Tag

from .signals import SignalBundle

logger = logging.getLogger(__name__)

__all__ = [
    "CONTROL_TAGS",
    "SKIPPED_INPUT_TYPES",
    "HtmlDocument",
    "HtmlSignalGatherer",
    "iter_form_controls",
    "element_selector",
]

CONTROL_TAGS = ("input", "textarea", "select")
"""Tags treated as classifiable form controls."""

SKIPPED_INPUT_TYPES = frozenset(
    {"hidden", "submit", "button", "reset", "image", "file", "checkbox", "radio"}
)
"""Input types a page scan never classifies."""

LABEL_SIBLING_MAX_CHARS = 100
SIBLING_WINDOW = 2

_HIDDEN_STYLE_RE = re.compile(r"(display\s*:\s*none|visibility\s*:\s*hidden)", re.IGNORECASE)


@dataclass
class HtmlDocument:
    """Parsed document plus the URL it was loaded from."""

    soup: BeautifulSoup
    url: str = ""

    @classmethod
    def from_html(cls, html: str, *, url: str = "", parser: str = "html.parser") -> "HtmlDocument":
        return cls(soup=BeautifulSoup(html, parser), url=url)

    @property
    def title(self) -> str:
        if self.soup.title is None:
            return ""
        return self.soup.title.get_text(" ", strip=True)

    @property
    def headings(self) -> str:
        return " ".join(heading.get_text(" ", strip=True) for heading in self.soup.find_all(["h1", "h2", "h3"]))

    def select_one(self, selector: str) -> Optional[Tag]:
        return self.soup.select_one(selector)


def _attr(element: Tag, name: str) -> str:
    value = element.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def _text_of(node: Optional[Tag]) -> str:
    if node is None:
        return ""
    return node.get_text(" ", strip=True)


def _element_children(parent: Optional[Tag]) -> List[Tag]:
    if parent is None:
        return []
    return [child for child in parent.children if isinstance(child, Tag)]


def _input_type(element: Tag) -> str:
    # Mirrors the DOM ``type`` property defaults.
    if element.name == "select":
        return "select-multiple" if element.has_attr("multiple") else "select-one"
    if element.name == "textarea":
        return "textarea"
    return _attr(element, "type") or "text"


def _associated_label(element: Tag, document: HtmlDocument) -> str:
    labelled_by = _attr(element, "aria-labelledby").split()
    if labelled_by:
        parts = [_text_of(document.soup.find(id=ref)) for ref in labelled_by]
        text = " ".join(part for part in parts if part)
        if text:
            return text

    element_id = _attr(element, "id")
    if element_id:
        label = document.soup.find("label", attrs={"for": element_id})
        if label is not None:
            return _text_of(label)

    wrapping = element.find_parent("label")
    if wrapping is not None:
        return _text_of(wrapping)

    previous = element.find_previous_sibling()
    while previous is not None and previous.name != "input":
        text = _text_of(previous)
        if previous.name == "label" or len(text) < LABEL_SIBLING_MAX_CHARS:
            return text
        previous = previous.find_previous_sibling()
    return ""


def _container_text(element: Tag) -> str:
    parent = element.parent
    if not isinstance(parent, Tag) or isinstance(parent, BeautifulSoup):
        return ""
    clone = copy.copy(parent)
    for control in clone.find_all(list(CONTROL_TAGS)):
        control.decompose()
    return clone.get_text(" ", strip=True)


def _sibling_text(element: Tag) -> str:
    siblings = _element_children(element.parent)
    index = next((i for i, sibling in enumerate(siblings) if sibling is element), None)
    if index is None:
        return ""
    window = siblings[max(0, index - SIBLING_WINDOW) : index + SIBLING_WINDOW + 1]
    return " ".join(_text_of(sibling) for sibling in window if sibling is not element)


def _is_section(tag: Tag) -> bool:
    if tag.name == "section":
        return True
    return tag.name == "div" and "section" in _attr(tag, "class")


def _form_position(element: Tag, form: Optional[Tag]) -> int:
    if form is None:
        return 0
    for index, control in enumerate(form.find_all(list(CONTROL_TAGS))):
        if control is element:
            return index
    return 0


def _is_hidden(element: Tag) -> bool:
    if element.name == "input" and _attr(element, "type").lower() == "hidden":
        return True
    node: Optional[Tag] = element
    while node is not None and not isinstance(node, BeautifulSoup):
        if node.has_attr("hidden") or _HIDDEN_STYLE_RE.search(_attr(node, "style")):
            return True
        node = node.parent
    return False


def _current_value(element: Tag) -> str:
    if element.name == "textarea":
        return element.get_text()
    if element.name == "select":
        selected = element.find("option", selected=True)
        return _attr(selected, "value") if selected is not None else ""
    return _attr(element, "value")


class HtmlSignalGatherer:
    """Collect a :class:`SignalBundle` for a control inside an :class:`HtmlDocument`."""

    def gather(self, element: Tag, document: HtmlDocument) -> SignalBundle:
        return SignalBundle.from_raw(self.collect_raw(element, document))

    def collect_raw(self, element: Tag, document: HtmlDocument) -> Dict[str, Any]:
        form = element.find_parent("form")
        fieldset = element.find_parent("fieldset")
        section = element.find_parent(_is_section)
        input_type = _input_type(element)
        hidden = _is_hidden(element)

        return {
            "attributes": {
                "name": _attr(element, "name"),
                "id": _attr(element, "id"),
                "class_name": _attr(element, "class"),
                "placeholder": _attr(element, "placeholder"),
                "input_type": input_type,
                "autocomplete": _attr(element, "autocomplete"),
                "title": _attr(element, "title"),
                "aria_label": _attr(element, "aria-label"),
                "data_testid": _attr(element, "data-testid"),
            },
            "context": {
                "label": _associated_label(element, document),
                "parent_text": _container_text(element),
                "sibling_text": _sibling_text(element),
                "page": {
                    "title": document.title,
                    "url": document.url,
                    "headings": document.headings,
                },
            },
            "structure": {
                "form_class": _attr(form, "class") if form is not None else "",
                "fieldset_legend": _text_of(fieldset.find("legend")) if fieldset is not None else "",
                "section_text": _text_of(section),
                "position": _form_position(element, form),
            },
            "visual": {
                "width": 0.0,
                "height": 0.0,
                "font_size": 0.0,
                "is_visible": not hidden,
                "input_type": input_type,
                "max_length": _attr(element, "maxlength"),
            },
            "behavioral": {
                "has_been_focused": _attr(element, "data-has-been-focused"),
                "has_user_input": bool(_current_value(element)),
                "is_required": element.has_attr("required"),
                "has_validation": any(element.has_attr(name) for name in ("pattern", "min", "max")),
            },
        }


def iter_form_controls(document: HtmlDocument) -> Iterator[Tag]:
    """Yield fillable controls in document order."""

    for element in document.soup.find_all(list(CONTROL_TAGS)):
        if element.name == "input" and _input_type(element).lower() in SKIPPED_INPUT_TYPES:
            continue
        yield element


def element_selector(element: Tag) -> str:
    """Build a CSS selector that finds ``element`` again in the same document."""

    element_id = _attr(element, "id")
    if element_id and re.fullmatch(r"[A-Za-z_][\w-]*", element_id):
        return f"#{element_id}"
    name = _attr(element, "name")
    if name:
        escaped = name.replace("\\", "\\\\").replace('"', '\\"')
        return f'{element.name}[name="{escaped}"]'

    selector = element.name
    classes = element.get("class") or []
    if classes:
        selector += f".{classes[0]}"

    parent = element.parent
    if isinstance(parent, Tag):
        same_kind = [child for child in _element_children(parent) if child.name == element.name]
        if len(same_kind) > 1:
            index = next(i for i, child in enumerate(same_kind) if child is element) + 1
            selector += f":nth-of-type({index})"
        if not isinstance(parent, BeautifulSoup):
            selector = f"{element_selector(parent) if parent.name != 'body' else 'body'} > {selector}"
    return selector
