"""Immutable signal bundle describing one form control at classification time.

Host adapters (static HTML, live Playwright handles) collect a loosely typed
mapping and hand it to :meth:`SignalBundle.from_raw`, which is the single place
where values are coerced, whitespace-collapsed and lower-cased. Missing or
malformed values become empty strings, zeros or ``False``; they never raise.

The nested mapping produced by :meth:`SignalBundle.to_dict` is the persisted
snapshot shape stored alongside corrections and is accepted back by
:meth:`SignalBundle.from_raw` without loss.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Mapping

__all__ = [
    "SECTION_TEXT_LIMIT",
    "ElementAttributes",
    "PageContext",
    "ElementContext",
    "StructuralContext",
    "VisualSignals",
    "BehavioralSignals",
    "SignalBundle",
    "element_signature",
]

SECTION_TEXT_LIMIT = 200


def _text(value: Any) -> str:
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return ""
    return " ".join(value.split()).lower()


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        # computed styles arrive as "16px"
        cleaned = value.strip().lower().removesuffix("px")
        try:
            return float(cleaned)
        except ValueError:
            return 0.0
    return 0.0


def _integer(value: Any) -> int:
    number = _number(value)
    return int(number) if number > 0 else 0


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(value, (int, float)):
        return value != 0
    return False


def _section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key) if isinstance(raw, Mapping) else None
    return value if isinstance(value, Mapping) else {}


@dataclass(frozen=True, slots=True)
class ElementAttributes:
    name: str = ""
    id: str = ""
    class_name: str = ""
    placeholder: str = ""
    input_type: str = ""
    autocomplete: str = ""
    title: str = ""
    aria_label: str = ""
    data_testid: str = ""

    def values(self) -> tuple[str, ...]:
        return (
            self.name,
            self.id,
            self.class_name,
            self.placeholder,
            self.input_type,
            self.autocomplete,
            self.title,
            self.aria_label,
            self.data_testid,
        )

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "ElementAttributes":
        return cls(
            name=_text(raw.get("name")),
            id=_text(raw.get("id")),
            class_name=_text(raw.get("class_name")),
            placeholder=_text(raw.get("placeholder")),
            input_type=_text(raw.get("input_type")),
            autocomplete=_text(raw.get("autocomplete")),
            title=_text(raw.get("title")),
            aria_label=_text(raw.get("aria_label")),
            data_testid=_text(raw.get("data_testid")),
        )


@dataclass(frozen=True, slots=True)
class PageContext:
    title: str = ""
    url: str = ""
    headings: str = ""

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "PageContext":
        return cls(
            title=_text(raw.get("title")),
            url=_text(raw.get("url")),
            headings=_text(raw.get("headings")),
        )


@dataclass(frozen=True, slots=True)
class ElementContext:
    label: str = ""
    parent_text: str = ""
    sibling_text: str = ""
    page: PageContext = field(default_factory=PageContext)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "ElementContext":
        return cls(
            label=_text(raw.get("label")),
            parent_text=_text(raw.get("parent_text")),
            sibling_text=_text(raw.get("sibling_text")),
            page=PageContext.from_raw(_section(raw, "page")),
        )


@dataclass(frozen=True, slots=True)
class StructuralContext:
    form_class: str = ""
    fieldset_legend: str = ""
    section_text: str = ""
    position: int = 0

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "StructuralContext":
        return cls(
            form_class=_text(raw.get("form_class")),
            fieldset_legend=_text(raw.get("fieldset_legend")),
            section_text=_text(raw.get("section_text"))[:SECTION_TEXT_LIMIT],
            position=_integer(raw.get("position")),
        )


@dataclass(frozen=True, slots=True)
class VisualSignals:
    width: float = 0.0
    height: float = 0.0
    font_size: float = 0.0
    is_visible: bool = False
    input_type: str = ""
    max_length: int = 0

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "VisualSignals":
        width = _number(raw.get("width"))
        height = _number(raw.get("height"))
        visible = raw.get("is_visible")
        return cls(
            width=width,
            height=height,
            font_size=_number(raw.get("font_size")),
            is_visible=_flag(visible) if visible is not None else (width > 0 and height > 0),
            input_type=_text(raw.get("input_type")),
            max_length=_integer(raw.get("max_length")),
        )


@dataclass(frozen=True, slots=True)
class BehavioralSignals:
    has_been_focused: bool = False
    has_user_input: bool = False
    is_required: bool = False
    has_validation: bool = False

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "BehavioralSignals":
        return cls(
            has_been_focused=_flag(raw.get("has_been_focused")),
            has_user_input=_flag(raw.get("has_user_input")),
            is_required=_flag(raw.get("is_required")),
            has_validation=_flag(raw.get("has_validation")),
        )


@dataclass(frozen=True, slots=True)
class SignalBundle:
    """Everything the scorer is allowed to know about one element."""

    attributes: ElementAttributes = field(default_factory=ElementAttributes)
    context: ElementContext = field(default_factory=ElementContext)
    structure: StructuralContext = field(default_factory=StructuralContext)
    visual: VisualSignals = field(default_factory=VisualSignals)
    behavioral: BehavioralSignals = field(default_factory=BehavioralSignals)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "SignalBundle":
        """Normalize a host-collected mapping into a bundle."""

        return cls(
            attributes=ElementAttributes.from_raw(_section(raw, "attributes")),
            context=ElementContext.from_raw(_section(raw, "context")),
            structure=StructuralContext.from_raw(_section(raw, "structure")),
            visual=VisualSignals.from_raw(_section(raw, "visual")),
            behavioral=BehavioralSignals.from_raw(_section(raw, "behavioral")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def signature(self) -> str:
        return element_signature(self)


def element_signature(bundle: SignalBundle) -> str:
    """Stable key identifying the same logical field across page loads.

    Joins the non-empty values of name, id, label text and form position with
    ``|``. The position is always present, so the signature is never empty.
    """

    parts = (
        bundle.attributes.name,
        bundle.attributes.id,
        bundle.context.label,
        str(bundle.structure.position),
    )
    return "|".join(part for part in parts if part)
