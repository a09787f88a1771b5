"""Topical context categories used by the contextual relevance strategy."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Tuple

from .field_types import FieldType

__all__ = [
    "ContextVector",
    "DEFAULT_CONTEXT_VECTORS",
    "DEFAULT_CATEGORY_FIELD_TYPES",
    "ContextVectorTable",
]


@dataclass(frozen=True, slots=True)
class ContextVector:
    """Keyword set for one topical category and the weight of each hit."""

    keywords: FrozenSet[str]
    weight: float

    def relevance(self, text: str) -> float:
        """Return ``hits * weight`` for keywords appearing anywhere in ``text``."""

        hits = sum(1 for keyword in self.keywords if keyword in text)
        return hits * self.weight


DEFAULT_CONTEXT_VECTORS: Dict[str, ContextVector] = {
    "personal": ContextVector(
        keywords=frozenset({"name", "personal", "profile", "bio", "about", "contact"}),
        weight=1.2,
    ),
    "address": ContextVector(
        keywords=frozenset({"address", "location", "home", "residence", "shipping", "billing"}),
        weight=1.1,
    ),
    "payment": ContextVector(
        keywords=frozenset({"payment", "card", "billing", "checkout", "purchase", "order"}),
        weight=1.3,
    ),
    "work": ContextVector(
        keywords=frozenset({"work", "job", "career", "professional", "business", "employment"}),
        weight=1.0,
    ),
}

DEFAULT_CATEGORY_FIELD_TYPES: Dict[str, Tuple[FieldType, ...]] = {
    "personal": (
        FieldType.FIRST_NAME,
        FieldType.LAST_NAME,
        FieldType.FULL_NAME,
        FieldType.EMAIL,
        FieldType.PHONE,
    ),
    "address": (
        FieldType.STREET,
        FieldType.CITY,
        FieldType.STATE,
        FieldType.ZIP,
        FieldType.COUNTRY,
    ),
    "payment": (
        FieldType.CARD_NUMBER,
        FieldType.CVV,
        FieldType.EXPIRY_DATE,
    ),
    "work": (
        FieldType.COMPANY,
        FieldType.JOB_TITLE,
        FieldType.WEBSITE,
        FieldType.LINKEDIN,
    ),
}


class ContextVectorTable:
    """Read-only pairing of context vectors with their field-type membership."""

    def __init__(
        self,
        vectors: Dict[str, ContextVector] | None = None,
        memberships: Dict[str, Tuple[FieldType, ...]] | None = None,
    ) -> None:
        self._vectors = dict(DEFAULT_CONTEXT_VECTORS if vectors is None else vectors)
        self._memberships = dict(DEFAULT_CATEGORY_FIELD_TYPES if memberships is None else memberships)

    def members(self, category: str) -> Tuple[FieldType, ...]:
        return self._memberships.get(category, ())

    def relevances(self, text: str) -> Dict[str, float]:
        """Relevance of every category for ``text``."""

        return {category: vector.relevance(text) for category, vector in self._vectors.items()}
