"""Closed enumeration of semantic form field categories.

Member order is significant: when two field types finish with the same score
the resolver keeps the one declared first here.
"""
from __future__ import annotations

import re
from enum import Enum
from typing import Dict, Optional, Tuple

from rapidfuzz import fuzz, process

from ..errors import UnknownFieldTypeError

__all__ = [
    "FieldType",
    "ConfidenceBand",
    "SCORED_FIELD_TYPES",
]


class FieldType(Enum):
    """Semantic category a form control can be classified as."""

    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    FULL_NAME = "full_name"
    EMAIL = "email"
    PHONE = "phone"
    STREET = "street"
    CITY = "city"
    STATE = "state"
    ZIP = "zip"
    COUNTRY = "country"
    CARD_NUMBER = "card_number"
    CVV = "cvv"
    EXPIRY_DATE = "expiry_date"
    COMPANY = "company"
    JOB_TITLE = "job_title"
    WEBSITE = "website"
    LINKEDIN = "linkedin"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, text: "str | FieldType", *, score_cutoff: int = 80) -> "FieldType":
        """Map loosely formatted user or storage input onto a member.

        Accepts enum values (``"first_name"``), member names (``"FIRST_NAME"``),
        camelCase identifiers (``"firstName"``) and near misspellings such as
        ``"emial"`` when RapidFuzz scores them at or above ``score_cutoff``.
        """

        if isinstance(text, FieldType):
            return text
        if not isinstance(text, str) or not text.strip():
            raise UnknownFieldTypeError(f"Empty field type: {text!r}")

        key = _normalize_key(text)
        member = _LOOKUP.get(key)
        if member is not None:
            return member

        match: Optional[Tuple[str, float, int]] = process.extractOne(
            key,
            list(_LOOKUP),
            scorer=fuzz.ratio,
            score_cutoff=score_cutoff,
        )
        if match is None:
            raise UnknownFieldTypeError(f"Unknown field type: {text!r}")
        return _LOOKUP[match[0]]


class ConfidenceBand(Enum):
    """Coarse grouping of a detection score."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


SCORED_FIELD_TYPES: Tuple[FieldType, ...] = tuple(
    member for member in FieldType if member is not FieldType.UNKNOWN
)
"""Field types the scorer evaluates, in tie-break order."""


def _normalize_key(value: str) -> str:
    # firstName -> first_name, "first name" -> first_name
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", value.strip())
    return re.sub(r"[^a-z0-9]+", "_", spaced.lower()).strip("_")


_ALIASES: Dict[str, FieldType] = {
    "expiry": FieldType.EXPIRY_DATE,
    "postal_code": FieldType.ZIP,
    "zip_code": FieldType.ZIP,
    "cc_number": FieldType.CARD_NUMBER,
    "social_profile": FieldType.LINKEDIN,
    "fullname": FieldType.FULL_NAME,
}

_LOOKUP: Dict[str, FieldType] = {member.value: member for member in FieldType}
_LOOKUP.update(_ALIASES)
