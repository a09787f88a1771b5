"""Multi-strategy scoring of a signal bundle against every field type.

Each field type receives four independent, fixed-magnitude strategy scores:

=========== ===== ==========================================================
strategy    bound trigger
=========== ===== ==========================================================
exact       100   an attribute value contains one of the type's tokens
fuzzy        70   name/id/placeholder/label/container text matches a regex
shape        50   the placeholder (or input flag) matches a value shape
contextual   40   page-level topical keywords of a category the type is in
=========== ===== ==========================================================

A strategy reports the maximum over its pattern list, so several matching
patterns never stack. The strategy sum is capped at 100, the correction
adjustment moves it by at most 30 in either direction, and the result is
clamped to ``[0, 100]``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from .context_vectors import ContextVectorTable
from .corrections import CorrectionRecord, CorrectionStore
from .field_types import SCORED_FIELD_TYPES, FieldType
from .patterns import PatternLibrary
from .signals import SignalBundle

__all__ = [
    "EXACT_MATCH_SCORE",
    "FUZZY_MATCH_SCORE",
    "SHAPE_MATCH_SCORE",
    "CONTEXT_SCORE",
    "CORRECTION_BOOST",
    "MAX_SCORE",
    "ScoreBreakdown",
    "Scorer",
]

EXACT_MATCH_SCORE = 100.0
FUZZY_MATCH_SCORE = 70.0
SHAPE_MATCH_SCORE = 50.0
CONTEXT_SCORE = 40.0
CORRECTION_BOOST = 30.0
MAX_SCORE = 100.0


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    """Per-strategy contributions for one field type."""

    exact: float = 0.0
    fuzzy: float = 0.0
    shape: float = 0.0
    contextual: float = 0.0
    adjustment: float = 0.0

    @property
    def base(self) -> float:
        return min(self.exact + self.fuzzy + self.shape + self.contextual, MAX_SCORE)

    @property
    def unclamped(self) -> float:
        return self.base + self.adjustment

    @property
    def total(self) -> float:
        return max(0.0, min(self.unclamped, MAX_SCORE))

    def to_dict(self) -> Dict[str, float]:
        return {
            "exact": self.exact,
            "fuzzy": self.fuzzy,
            "shape": self.shape,
            "contextual": self.contextual,
            "adjustment": self.adjustment,
            "total": self.total,
        }


def _matches_any(patterns: Iterable, text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


class Scorer:
    """Score bundles using a pattern library, context table and correction store."""

    def __init__(
        self,
        patterns: PatternLibrary,
        contexts: ContextVectorTable,
        corrections: CorrectionStore,
    ) -> None:
        self.patterns = patterns
        self.contexts = contexts
        self.corrections = corrections

    def exact_score(self, bundle: SignalBundle, field_type: FieldType) -> float:
        attribute_text = " ".join(bundle.attributes.values())
        for token in self.patterns.exact_tokens(field_type):
            if token in attribute_text:
                return EXACT_MATCH_SCORE
        return 0.0

    def fuzzy_score(self, bundle: SignalBundle, field_type: FieldType) -> float:
        text = " ".join(
            (
                bundle.attributes.name,
                bundle.attributes.id,
                bundle.attributes.placeholder,
                bundle.context.label,
                bundle.context.parent_text,
            )
        )
        if _matches_any(self.patterns.fuzzy_patterns(field_type), text):
            return FUZZY_MATCH_SCORE
        return 0.0

    def shape_score(self, bundle: SignalBundle, field_type: FieldType) -> float:
        value = bundle.attributes.placeholder or str(bundle.behavioral.has_user_input).lower()
        if _matches_any(self.patterns.shape_patterns(field_type), value):
            return SHAPE_MATCH_SCORE
        return 0.0

    def context_score(
        self,
        bundle: SignalBundle,
        field_type: FieldType,
        relevances: Optional[Dict[str, float]] = None,
    ) -> float:
        if relevances is None:
            relevances = self.contexts.relevances(self._context_text(bundle))
        best = 0.0
        for category, relevance in relevances.items():
            if field_type in self.contexts.members(category):
                best = max(best, relevance * CONTEXT_SCORE)
        return min(best, CONTEXT_SCORE)

    def correction_adjustment(
        self,
        field_type: FieldType,
        correction: Optional[CorrectionRecord],
    ) -> float:
        if correction is None:
            return 0.0
        if correction.corrected_type is field_type:
            return CORRECTION_BOOST
        if field_type in correction.rejected_types:
            return -CORRECTION_BOOST
        return 0.0

    def breakdown(self, bundle: SignalBundle) -> Dict[FieldType, ScoreBreakdown]:
        """Strategy contributions for every scored field type, in enumeration order."""

        relevances = self.contexts.relevances(self._context_text(bundle))
        correction = self.corrections.get(bundle.signature)
        return {
            field_type: ScoreBreakdown(
                exact=self.exact_score(bundle, field_type),
                fuzzy=self.fuzzy_score(bundle, field_type),
                shape=self.shape_score(bundle, field_type),
                contextual=self.context_score(bundle, field_type, relevances),
                adjustment=self.correction_adjustment(field_type, correction),
            )
            for field_type in SCORED_FIELD_TYPES
        }

    def score(self, bundle: SignalBundle) -> Dict[FieldType, float]:
        """Fresh score map; every value lies in ``[0, 100]``."""

        return {field_type: parts.total for field_type, parts in self.breakdown(bundle).items()}

    @staticmethod
    def _context_text(bundle: SignalBundle) -> str:
        return " ".join(
            (
                bundle.context.label,
                bundle.context.parent_text,
                bundle.context.page.title,
                bundle.context.page.headings,
                bundle.structure.section_text,
            )
        )
