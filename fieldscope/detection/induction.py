"""Derive new fuzzy patterns from recurring words in the correction history."""
from __future__ import annotations

import logging
import math
import re
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .corrections import CorrectionRecord
from .field_types import FieldType
from .patterns import PatternLibrary

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_MIN_GROUP_SIZE",
    "DEFAULT_MAJORITY_RATIO",
    "InducedPattern",
    "PatternInductor",
    "common_words",
]

DEFAULT_MIN_GROUP_SIZE = 3
DEFAULT_MAJORITY_RATIO = 0.6
MIN_WORD_LENGTH = 3

_WORD_RE = re.compile(r"\b\w{%d,}\b" % MIN_WORD_LENGTH)

CorrectionPair = Tuple[FieldType, FieldType]


@dataclass(frozen=True, slots=True)
class InducedPattern:
    detected_type: FieldType
    corrected_type: FieldType
    word: str
    support: int

    @property
    def pattern(self) -> str:
        # page text is untrusted; match it literally
        return re.escape(self.word)


def _record_words(record: CorrectionRecord) -> set[str]:
    text = " ".join(
        (
            record.signals.context.label,
            record.signals.context.parent_text,
            record.signals.attributes.placeholder,
        )
    ).lower()
    return set(_WORD_RE.findall(text))


def common_words(records: Sequence[CorrectionRecord], ratio: float = DEFAULT_MAJORITY_RATIO) -> List[str]:
    """Words present in at least ``ceil(len(records) * ratio)`` of the records, sorted."""

    if not records:
        return []
    counts: Counter[str] = Counter()
    for record in records:
        counts.update(_record_words(record))
    needed = math.ceil(len(records) * ratio)
    return sorted(word for word, count in counts.items() if count >= needed)


class PatternInductor:
    """Mine the correction history and append induced fuzzy patterns.

    Entries are grouped by ``(detected_type, corrected_type)``. Every group
    with at least ``min_group_size`` entries contributes one literal pattern
    per word shared by a majority of the group, for its corrected type.
    Running :meth:`retrain` again over the same history adds nothing.
    """

    def __init__(
        self,
        patterns: PatternLibrary,
        *,
        min_group_size: int = DEFAULT_MIN_GROUP_SIZE,
        majority_ratio: float = DEFAULT_MAJORITY_RATIO,
    ) -> None:
        self.patterns = patterns
        self.min_group_size = min_group_size
        self.majority_ratio = majority_ratio

    def group(self, history: Sequence[CorrectionRecord]) -> Dict[CorrectionPair, List[CorrectionRecord]]:
        groups: Dict[CorrectionPair, List[CorrectionRecord]] = defaultdict(list)
        for record in history:
            groups[(record.detected_type, record.corrected_type)].append(record)
        return dict(groups)

    def propose(self, history: Sequence[CorrectionRecord]) -> List[InducedPattern]:
        """Patterns the history supports, whether or not they are already present."""

        proposals: List[InducedPattern] = []
        for (detected, corrected), records in self.group(history).items():
            if len(records) < self.min_group_size or corrected is FieldType.UNKNOWN:
                continue
            for word in common_words(records, self.majority_ratio):
                proposals.append(
                    InducedPattern(
                        detected_type=detected,
                        corrected_type=corrected,
                        word=word,
                        support=len(records),
                    )
                )
        return proposals

    def retrain(self, history: Sequence[CorrectionRecord]) -> List[InducedPattern]:
        """Append newly supported patterns to the library; return the ones added."""

        if len(history) < self.min_group_size:
            return []

        added: List[InducedPattern] = []
        proposals = self.propose(history)
        for proposal in proposals:
            if self.patterns.add_induced_word(proposal.corrected_type, proposal.word):
                added.append(proposal)
        logger.info(
            f"Retrained on {len(history)} corrections: {len(proposals)} supported patterns, {len(added)} new"
        )
        return added
