"""User corrections keyed by element signature, plus the bounded history.

The store keeps two structures:

* a map from element signature to the most recent correction for it, read on
  every classification;
* an append-only history of every correction, mined by pattern induction.

Both are published as immutable snapshots; :meth:`CorrectionStore.record`
builds new ones under a lock so classification can read without locking.
"""
from __future__ import annotations

import datetime as _dt
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .field_types import FieldType
from .signals import SignalBundle, element_signature

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "DEFAULT_HISTORY_TRIM_TO",
    "CORRECTIONS_KEY",
    "HISTORY_KEY",
    "INDUCED_KEY",
    "CorrectionRecord",
    "CorrectionStore",
]

DEFAULT_HISTORY_LIMIT = 1000
DEFAULT_HISTORY_TRIM_TO = 800

CORRECTIONS_KEY = "user_corrections"
HISTORY_KEY = "correction_history"
INDUCED_KEY = "induced_patterns"


def _now_millis() -> int:
    return int(_dt.datetime.now(_dt.timezone.utc).timestamp() * 1000)


@dataclass(frozen=True, slots=True)
class CorrectionRecord:
    """One explicit user override of a classification."""

    signature: str
    detected_type: FieldType
    corrected_type: FieldType
    timestamp: int
    signals: SignalBundle
    rejected_types: Tuple[FieldType, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signature": self.signature,
            "detected_type": self.detected_type.value,
            "corrected_type": self.corrected_type.value,
            "timestamp": self.timestamp,
            "signals": self.signals.to_dict(),
            "rejected_types": [field_type.value for field_type in self.rejected_types],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CorrectionRecord":
        """Rebuild a record from its stored shape.

        Raises ``ValueError``/``TypeError``/``KeyError`` for payloads that are
        not a usable record; callers decide whether to skip them.
        """

        if not isinstance(payload, Mapping):
            raise TypeError(f"Correction record must be a mapping, got {type(payload).__name__}")
        signals_payload = payload.get("signals") or {}
        if not isinstance(signals_payload, Mapping):
            raise TypeError("Correction record 'signals' must be a mapping")
        signals = SignalBundle.from_raw(signals_payload)

        signature = payload.get("signature") or element_signature(signals)
        if not isinstance(signature, str):
            raise TypeError("Correction record 'signature' must be a string")

        timestamp = payload.get("timestamp", 0)
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise TypeError("Correction record 'timestamp' must be numeric")

        rejected_raw = payload.get("rejected_types") or []
        if not isinstance(rejected_raw, list):
            raise TypeError("Correction record 'rejected_types' must be a list")

        return cls(
            signature=signature,
            detected_type=FieldType.parse(payload["detected_type"]),
            corrected_type=FieldType.parse(payload["corrected_type"]),
            timestamp=int(timestamp),
            signals=signals,
            rejected_types=tuple(FieldType.parse(value) for value in rejected_raw),
        )


class CorrectionStore:
    """Signature-keyed corrections with a bounded, ordered history."""

    def __init__(
        self,
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        history_trim_to: int = DEFAULT_HISTORY_TRIM_TO,
    ) -> None:
        if history_trim_to > history_limit:
            raise ValueError("history_trim_to cannot exceed history_limit")
        self.history_limit = history_limit
        self.history_trim_to = history_trim_to
        self._corrections: Dict[str, CorrectionRecord] = {}
        self._history: Tuple[CorrectionRecord, ...] = ()
        self._write_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._corrections)

    def get(self, signature: str) -> Optional[CorrectionRecord]:
        return self._corrections.get(signature)

    def corrections(self) -> Dict[str, CorrectionRecord]:
        return dict(self._corrections)

    @property
    def history(self) -> Tuple[CorrectionRecord, ...]:
        return self._history

    def record(
        self,
        bundle: SignalBundle,
        detected_type: FieldType,
        corrected_type: FieldType,
        *,
        timestamp: Optional[int] = None,
    ) -> CorrectionRecord:
        """Upsert the correction for ``bundle``'s signature and append it to history.

        Rejected types accumulate across corrections of the same signature so
        that every type the user has moved away from keeps its penalty. A
        correction identical to the newest history entry for the same
        signature (a retried call) is not appended a second time.
        """

        signature = element_signature(bundle)
        with self._write_lock:
            previous = self._corrections.get(signature)
            rejected: List[FieldType] = list(previous.rejected_types) if previous else []
            if detected_type is not corrected_type and detected_type is not FieldType.UNKNOWN:
                if detected_type not in rejected:
                    rejected.append(detected_type)
            rejected = [field_type for field_type in rejected if field_type is not corrected_type]

            record = CorrectionRecord(
                signature=signature,
                detected_type=detected_type,
                corrected_type=corrected_type,
                timestamp=_now_millis() if timestamp is None else timestamp,
                signals=bundle,
                rejected_types=tuple(rejected),
            )
            corrections = dict(self._corrections)
            corrections[signature] = record

            history = self._history
            last = history[-1] if history else None
            is_retry = (
                last is not None
                and last.signature == signature
                and last.detected_type is detected_type
                and last.corrected_type is corrected_type
            )
            if not is_retry:
                history = self._trimmed(history + (record,))

            self._corrections = corrections
            self._history = history
        return record

    def clear(self) -> None:
        with self._write_lock:
            self._corrections = {}
            self._history = ()

    def _trimmed(self, history: Tuple[CorrectionRecord, ...]) -> Tuple[CorrectionRecord, ...]:
        if len(history) > self.history_limit:
            dropped = len(history) - self.history_trim_to
            logger.debug(f"Correction history over {self.history_limit}; dropping {dropped} oldest entries")
            return history[-self.history_trim_to :]
        return history

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_state(self) -> Dict[str, Any]:
        """Return the persisted shape: correction pairs and history records."""

        corrections = self._corrections
        history = self._history
        return {
            CORRECTIONS_KEY: [[signature, record.to_dict()] for signature, record in corrections.items()],
            HISTORY_KEY: [record.to_dict() for record in history],
        }

    def load_state(self, corrections_payload: Any, history_payload: Any) -> Tuple[int, int]:
        """Replace the in-memory state with stored payloads.

        Malformed entries are skipped one by one. Returns the number of
        corrections and history entries that were loaded.
        """

        corrections: Dict[str, CorrectionRecord] = {}
        for entry in _as_list(corrections_payload, CORRECTIONS_KEY):
            try:
                signature, payload = entry
                record = CorrectionRecord.from_dict(payload)
                if not isinstance(signature, str) or not signature:
                    raise TypeError("correction signature must be a non-empty string")
            except (TypeError, ValueError, KeyError) as exc:
                logger.warning(f"Skipping malformed stored correction: {exc}")
                continue
            corrections[signature] = record

        history: List[CorrectionRecord] = []
        for payload in _as_list(history_payload, HISTORY_KEY):
            try:
                history.append(CorrectionRecord.from_dict(payload))
            except (TypeError, ValueError, KeyError) as exc:
                logger.warning(f"Skipping malformed correction history entry: {exc}")

        with self._write_lock:
            self._corrections = corrections
            self._history = self._trimmed(tuple(history))
        return len(corrections), len(self._history)


def _as_list(payload: Any, key: str) -> List[Any]:
    if payload is None:
        return []
    if isinstance(payload, Mapping):
        # tolerate a plain {signature: record} object
        return [[signature, record] for signature, record in payload.items()]
    if not isinstance(payload, list):
        logger.warning(f"Ignoring stored {key}: expected a list, got {type(payload).__name__}")
        return []
    return payload
