"""Best-match resolution, confidence banding and the learning override."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .corrections import CorrectionRecord
from .field_types import ConfidenceBand, FieldType
from .scoring import CORRECTION_BOOST, MAX_SCORE

__all__ = [
    "SCORE_THRESHOLD",
    "HIGH_CONFIDENCE_SCORE",
    "MEDIUM_CONFIDENCE_SCORE",
    "DetectionResult",
    "confidence_band",
    "resolve",
    "apply_learning",
]

SCORE_THRESHOLD = 60.0
HIGH_CONFIDENCE_SCORE = 90.0
MEDIUM_CONFIDENCE_SCORE = 70.0


@dataclass(frozen=True, slots=True)
class DetectionResult:
    field_type: FieldType
    score: float
    confidence: ConfidenceBand
    is_learned: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field_type": self.field_type.value,
            "score": self.score,
            "confidence": self.confidence.value,
            "is_learned": self.is_learned,
        }


def confidence_band(score: float) -> ConfidenceBand:
    if score >= HIGH_CONFIDENCE_SCORE:
        return ConfidenceBand.HIGH
    if score >= MEDIUM_CONFIDENCE_SCORE:
        return ConfidenceBand.MEDIUM
    if score >= SCORE_THRESHOLD:
        return ConfidenceBand.LOW
    return ConfidenceBand.NONE


def resolve(scores: Mapping[FieldType, float], threshold: float = SCORE_THRESHOLD) -> Optional[DetectionResult]:
    """Pick the strictly highest score at or above ``threshold``.

    Candidates are visited in :class:`FieldType` declaration order whatever
    the mapping's own order, so an exact tie always keeps the earlier member.
    """

    best_type: Optional[FieldType] = None
    best_score = 0.0
    for field_type in FieldType:
        score = scores.get(field_type)
        if score is None:
            continue
        if score >= threshold and score > best_score:
            best_type = field_type
            best_score = score
    if best_type is None:
        return None
    return DetectionResult(field_type=best_type, score=best_score, confidence=confidence_band(best_score))


def apply_learning(
    result: Optional[DetectionResult],
    correction: Optional[CorrectionRecord],
    scores: Mapping[FieldType, float],
) -> Optional[DetectionResult]:
    """Replace ``result`` with the user's correction when they disagree.

    A correction to ``UNKNOWN`` suppresses detection entirely. Otherwise the
    learned score is the resolved score (or, with nothing resolved, the
    corrected type's own score) plus the correction boost, capped at 100.
    """

    if correction is None:
        return result
    corrected = correction.corrected_type
    if corrected is FieldType.UNKNOWN:
        # the user marked this control as not a known field
        return None
    if result is not None and result.field_type is corrected:
        return result

    base = result.score if result is not None else scores.get(corrected, 0.0)
    score = min(base + CORRECTION_BOOST, MAX_SCORE)
    return DetectionResult(
        field_type=corrected,
        score=score,
        confidence=confidence_band(score),
        is_learned=True,
    )
