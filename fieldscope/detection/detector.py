"""Field detector: the public entry point tying the detection pieces together.

A :class:`FieldDetector` owns one pattern library, one context table and one
correction store. Construct it once per host session and pass it to the code
that needs classification; nothing in the package keeps global state.

Classification is synchronous and only reads snapshots of the shared tables.
Loading and saving corrections are ``async`` and go through a
:class:`~fieldscope.utils.learning_store.KeyValueStore`. A detector that has
not loaded yet simply classifies with an empty correction store.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Union

from ..config import Settings, get_settings
from ..errors import PersistenceError
from ..utils.learning_store import JsonFileStore, KeyValueStore
from .context_vectors import ContextVectorTable
from .corrections import CORRECTIONS_KEY, HISTORY_KEY, INDUCED_KEY, CorrectionRecord, CorrectionStore
from .field_types import FieldType
from .html_signals import HtmlDocument, HtmlSignalGatherer, element_selector, iter_form_controls
from .induction import DEFAULT_MAJORITY_RATIO, DEFAULT_MIN_GROUP_SIZE, InducedPattern, PatternInductor
from .patterns import PatternLibrary
from .resolver import SCORE_THRESHOLD, DetectionResult, apply_learning, resolve
from .scoring import ScoreBreakdown, Scorer
from .signals import SignalBundle

logger = logging.getLogger(__name__)

__all__ = [
    "SignalGatherer",
    "DetectionDetails",
    "ScannedField",
    "FieldDetector",
]

FieldTypeLike = Union[FieldType, str]


class SignalGatherer(Protocol):
    """Host adapter turning an element and its document into a bundle."""

    def gather(self, element: Any, document: Any) -> SignalBundle:
        ...


@dataclass(frozen=True)
class DetectionDetails:
    """Full intermediate state of one classification, for diagnostics."""

    signals: SignalBundle
    scores: Dict[FieldType, float]
    breakdown: Dict[FieldType, ScoreBreakdown]
    result: Optional[DetectionResult]
    threshold: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signals": self.signals.to_dict(),
            "scores": {field_type.value: score for field_type, score in self.scores.items()},
            "breakdown": {field_type.value: parts.to_dict() for field_type, parts in self.breakdown.items()},
            "result": self.result.to_dict() if self.result else None,
            "threshold": self.threshold,
        }


@dataclass(frozen=True)
class ScannedField:
    selector: str
    signals: SignalBundle
    result: Optional[DetectionResult]


class FieldDetector:
    """Classify form controls and learn from user corrections."""

    def __init__(
        self,
        *,
        gatherer: Optional[SignalGatherer] = None,
        store: Optional[KeyValueStore] = None,
        patterns: Optional[PatternLibrary] = None,
        contexts: Optional[ContextVectorTable] = None,
        corrections: Optional[CorrectionStore] = None,
        min_group_size: int = DEFAULT_MIN_GROUP_SIZE,
        majority_ratio: float = DEFAULT_MAJORITY_RATIO,
        auto_retrain: bool = True,
        threshold: float = SCORE_THRESHOLD,
    ) -> None:
        self.gatherer: SignalGatherer = gatherer or HtmlSignalGatherer()
        self.store = store
        self.patterns = patterns or PatternLibrary()
        self.contexts = contexts or ContextVectorTable()
        self.corrections = corrections or CorrectionStore()
        self.scorer = Scorer(self.patterns, self.contexts, self.corrections)
        self.inductor = PatternInductor(
            self.patterns,
            min_group_size=min_group_size,
            majority_ratio=majority_ratio,
        )
        self.auto_retrain = auto_retrain
        self.threshold = threshold

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        *,
        store: Optional[KeyValueStore] = None,
        gatherer: Optional[SignalGatherer] = None,
    ) -> "FieldDetector":
        settings = settings or get_settings()
        return cls(
            gatherer=gatherer,
            store=store if store is not None else JsonFileStore(settings.resolved_store_path()),
            patterns=PatternLibrary(max_induced_patterns=settings.max_induced_patterns),
            corrections=CorrectionStore(
                history_limit=settings.history_limit,
                history_trim_to=settings.history_trim_to,
            ),
            min_group_size=settings.min_group_size,
            majority_ratio=settings.majority_ratio,
            auto_retrain=settings.auto_retrain,
        )

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------
    def classify(self, bundle: SignalBundle) -> Optional[DetectionResult]:
        """Classify an already gathered bundle."""

        return self.details(bundle).result

    def details(self, bundle: SignalBundle) -> DetectionDetails:
        breakdown = self.scorer.breakdown(bundle)
        scores = {field_type: parts.total for field_type, parts in breakdown.items()}
        result = apply_learning(
            resolve(scores, self.threshold),
            self.corrections.get(bundle.signature),
            scores,
        )
        if result is not None:
            logger.debug(
                f"Detected {result.field_type.value} ({result.score:.0f}, {result.confidence.value}"
                f"{', learned' if result.is_learned else ''}) for {bundle.signature!r}"
            )
        return DetectionDetails(
            signals=bundle,
            scores=scores,
            breakdown=breakdown,
            result=result,
            threshold=self.threshold,
        )

    def detect_field_type(self, element: Any, document: Any = None) -> Optional[DetectionResult]:
        """Return the detected field type for ``element`` or ``None``."""

        return self.classify(self.gatherer.gather(element, document))

    def get_detection_details(self, element: Any, document: Any = None) -> DetectionDetails:
        """Return signals, score map, result and threshold for ``element``."""

        return self.details(self.gatherer.gather(element, document))

    def scan_page(self, document: HtmlDocument) -> List[ScannedField]:
        """Classify every fillable control of a static document in DOM order."""

        scanned: List[ScannedField] = []
        for element in iter_form_controls(document):
            bundle = self.gatherer.gather(element, document)
            scanned.append(
                ScannedField(
                    selector=element_selector(element),
                    signals=bundle,
                    result=self.classify(bundle),
                )
            )
        return scanned

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------
    async def record_user_correction(
        self,
        element: Any,
        document: Any,
        detected_type: FieldTypeLike,
        corrected_type: FieldTypeLike,
    ) -> CorrectionRecord:
        """Remember that ``element`` should be ``corrected_type`` and persist it.

        The in-memory store is updated before persisting, so a
        :class:`PersistenceError` leaves the correction in effect; retrying
        the call is safe.
        """

        bundle = self.gatherer.gather(element, document)
        return await self.record_correction(bundle, detected_type, corrected_type)

    async def record_correction(
        self,
        bundle: SignalBundle,
        detected_type: FieldTypeLike,
        corrected_type: FieldTypeLike,
    ) -> CorrectionRecord:
        detected = FieldType.parse(detected_type)
        corrected = FieldType.parse(corrected_type)
        record = self.corrections.record(bundle, detected, corrected)
        logger.info(f"Learned correction: {detected.value} -> {corrected.value} for element {record.signature!r}")
        if self.auto_retrain:
            self.inductor.retrain(self.corrections.history)
        await self.save()
        return record

    async def retrain_model(self) -> List[InducedPattern]:
        """Induce fuzzy patterns from the correction history; return the new ones.

        Newly induced patterns are persisted with the rest of the learning state.
        """

        added = self.inductor.retrain(self.corrections.history)
        if added:
            await self.save()
        return added

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    async def load(self) -> bool:
        """Load stored corrections and induced patterns.

        Failures leave an empty store and return ``False``. Stored induced
        patterns are restored in their original order before any retraining,
        so a reloaded detector matches exactly what the saving session did.
        """

        if self.store is None:
            return False
        try:
            corrections_payload = await self.store.get(CORRECTIONS_KEY)
            history_payload = await self.store.get(HISTORY_KEY)
            induced_payload = await self.store.get(INDUCED_KEY)
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Could not load learning data, starting empty: {exc}")
            return False

        loaded, history_size = self.corrections.load_state(corrections_payload, history_payload)
        restored = self.patterns.restore_induced(induced_payload)
        logger.info(
            f"Loaded {loaded} corrections, {history_size} history entries and {restored} induced patterns"
        )
        if self.auto_retrain and history_size:
            self.inductor.retrain(self.corrections.history)
        return True

    async def save(self) -> None:
        """Persist corrections, history and induced patterns in one write.

        Raises :class:`PersistenceError` on failure.
        """

        if self.store is None:
            return
        state = self.corrections.to_state()
        state[INDUCED_KEY] = self.patterns.induced_state()
        try:
            await self.store.set_many(state)
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Could not save learning data: {exc}")
            raise PersistenceError(f"Could not save learning data: {exc}") from exc
