"""fieldscope: classify form controls into semantic field types."""

from .detection import (
	ConfidenceBand,
	DetectionDetails,
	DetectionResult,
	FieldDetector,
	FieldType,
	HtmlDocument,
	HtmlSignalGatherer,
	PlaywrightSignalGatherer,
	SignalBundle,
)
from .errors import FieldScopeError, PersistenceError, UnknownFieldTypeError
from .utils import JsonFileStore, KeyValueStore, MemoryStore

__all__ = [
	"ConfidenceBand",
	"DetectionDetails",
	"DetectionResult",
	"FieldDetector",
	"FieldType",
	"HtmlDocument",
	"HtmlSignalGatherer",
	"PlaywrightSignalGatherer",
	"SignalBundle",
	# Errors
	"FieldScopeError",
	"PersistenceError",
	"UnknownFieldTypeError",
	# Persistence
	"JsonFileStore",
	"KeyValueStore",
	"MemoryStore",
]
