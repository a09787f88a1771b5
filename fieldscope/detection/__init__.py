"""Signal-based form field classification with correction learning."""

from .context_vectors import ContextVector, ContextVectorTable
from .corrections import CorrectionRecord, CorrectionStore
from .detector import DetectionDetails, FieldDetector, ScannedField, SignalGatherer
from .dom_signals import PlaywrightSignalGatherer
from .field_types import ConfidenceBand, FieldType
from .html_signals import HtmlDocument, HtmlSignalGatherer, element_selector, iter_form_controls
from .induction import InducedPattern, PatternInductor
from .patterns import PatternLibrary
from .resolver import SCORE_THRESHOLD, DetectionResult, confidence_band, resolve
from .scoring import ScoreBreakdown, Scorer
from .signals import SignalBundle, element_signature

__all__ = [
    "ConfidenceBand",
    "ContextVector",
    "ContextVectorTable",
    "CorrectionRecord",
    "CorrectionStore",
    "DetectionDetails",
    "DetectionResult",
    "FieldDetector",
    "FieldType",
    "HtmlDocument",
    "HtmlSignalGatherer",
    "InducedPattern",
    "PatternInductor",
    "PatternLibrary",
    "PlaywrightSignalGatherer",
    "SCORE_THRESHOLD",
    "ScannedField",
    "ScoreBreakdown",
    "Scorer",
    "SignalBundle",
    "SignalGatherer",
    "confidence_band",
    "element_selector",
    "element_signature",
    "iter_form_controls",
    "resolve",
]
