"""End-to-end tests for FieldDetector: classification, learning and persistence."""
from __future__ import annotations

import json

import pytest

from fieldscope.detection import ConfidenceBand, FieldDetector, FieldType, HtmlDocument
from fieldscope.detection.corrections import CORRECTIONS_KEY, HISTORY_KEY, INDUCED_KEY
from fieldscope.errors import PersistenceError, UnknownFieldTypeError
from fieldscope.utils.learning_store import MemoryStore


class FailingStore:
    """Store whose every call raises, like an unreachable backend."""

    def __init__(self):
        self.set_calls = 0

    async def get(self, key):
        raise OSError("storage offline")

    async def set(self, key, value):
        self.set_calls += 1
        raise OSError("storage offline")

    async def set_many(self, items):
        self.set_calls += 1
        raise OSError("storage offline")


class RecordingStore(MemoryStore):
    """Memory store that remembers each write it receives."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.writes = []

    async def set(self, key, value):
        self.writes.append({key: value})
        await super().set(key, value)

    async def set_many(self, items):
        self.writes.append(dict(items))
        await super().set_many(items)


def _single_control(html: str):
    document = HtmlDocument.from_html(html)
    element = document.select_one("input, select, textarea")
    assert element is not None
    return element, document


def test_fname_detected_as_first_name_with_high_confidence() -> None:
    detector = FieldDetector()
    element, document = _single_control('<form><input name="fname"></form>')

    result = detector.detect_field_type(element, document)

    assert result.field_type is FieldType.FIRST_NAME
    assert result.score == 100
    assert result.confidence is ConfidenceBand.HIGH
    assert result.is_learned is False


def test_unmatched_control_is_not_detected() -> None:
    detector = FieldDetector()
    element, document = _single_control('<form><input name="q1x"></form>')

    assert detector.detect_field_type(element, document) is None


@pytest.mark.asyncio
async def test_correction_overrides_detection() -> None:
    detector = FieldDetector(store=MemoryStore())
    element, document = _single_control('<form><input name="fname"></form>')

    await detector.record_user_correction(element, document, "first_name", "company")
    result = detector.detect_field_type(element, document)

    assert result.field_type is FieldType.COMPANY
    assert result.is_learned is True
    assert result.score == 100
    assert result.confidence is ConfidenceBand.HIGH


@pytest.mark.asyncio
async def test_correction_of_undetected_control_reaches_threshold() -> None:
    detector = FieldDetector(store=MemoryStore())
    element, document = _single_control('<form><input name="q1x"></form>')

    await detector.record_user_correction(element, document, FieldType.UNKNOWN, FieldType.EMAIL)
    result = detector.detect_field_type(element, document)

    assert result.field_type is FieldType.EMAIL
    assert result.is_learned is True
    assert result.score == 60
    assert result.confidence is ConfidenceBand.LOW


@pytest.mark.asyncio
async def test_repeated_correction_is_idempotent() -> None:
    detector = FieldDetector(store=MemoryStore())
    element, document = _single_control('<form><input name="fname"></form>')

    await detector.record_user_correction(element, document, "first_name", "company")
    first = detector.detect_field_type(element, document)
    await detector.record_user_correction(element, document, "first_name", "company")

    assert detector.detect_field_type(element, document) == first
    assert len(detector.corrections) == 1
    assert len(detector.corrections.history) == 1


@pytest.mark.asyncio
async def test_corrections_persist_and_reload() -> None:
    store = MemoryStore()
    detector = FieldDetector(store=store)
    element, document = _single_control('<form><input name="fname"></form>')
    await detector.record_user_correction(element, document, "first_name", "company")

    saved = store.snapshot()
    json.dumps(saved)
    assert saved[CORRECTIONS_KEY][0][0] == "fname|0"
    assert saved[HISTORY_KEY][0]["corrected_type"] == "company"
    assert saved[INDUCED_KEY] == {}

    restarted = FieldDetector(store=store)
    assert await restarted.load() is True
    result = restarted.detect_field_type(element, document)

    assert result.field_type is FieldType.COMPANY
    assert result.is_learned is True


@pytest.mark.asyncio
async def test_unloaded_detector_uses_empty_store() -> None:
    store = MemoryStore()
    element, document = _single_control('<form><input name="fname"></form>')
    await FieldDetector(store=store).record_user_correction(element, document, "first_name", "company")

    assert FieldDetector(store=store).detect_field_type(element, document).field_type is FieldType.FIRST_NAME


@pytest.mark.asyncio
async def test_load_failure_starts_empty() -> None:
    detector = FieldDetector(store=FailingStore())

    assert await detector.load() is False
    assert len(detector.corrections) == 0


@pytest.mark.asyncio
async def test_save_failure_keeps_in_memory_correction() -> None:
    store = FailingStore()
    detector = FieldDetector(store=store)
    element, document = _single_control('<form><input name="fname"></form>')

    with pytest.raises(PersistenceError):
        await detector.record_user_correction(element, document, "first_name", "company")
    with pytest.raises(PersistenceError):
        await detector.record_user_correction(element, document, "first_name", "company")

    assert store.set_calls == 2
    assert len(detector.corrections.history) == 1
    assert detector.detect_field_type(element, document).field_type is FieldType.COMPANY


@pytest.mark.asyncio
async def test_malformed_stored_records_are_skipped() -> None:
    source = FieldDetector(store=MemoryStore())
    element, document = _single_control('<form><input name="fname"></form>')
    record = await source.record_correction(source.gatherer.gather(element, document), "first_name", "company")
    good = record.to_dict()
    bad = dict(good, corrected_type="not-a-type-at-all-xyz")
    store = MemoryStore(
        {
            CORRECTIONS_KEY: [["broken|0", bad], [record.signature, good]],
            HISTORY_KEY: [bad, good, "junk"],
        }
    )

    detector = FieldDetector(store=store)

    assert await detector.load() is True
    assert len(detector.corrections) == 1
    assert len(detector.corrections.history) == 1
    assert detector.detect_field_type(element, document).field_type is FieldType.COMPANY


def _employer_controls():
    for index, suffix in enumerate(("abc", "xyz", "qrs")):
        yield _single_control(f'<div><label>Employer {suffix}</label><input name="org{index}"></div>')


@pytest.mark.asyncio
async def test_recurring_corrections_induce_a_pattern() -> None:
    store = MemoryStore()
    detector = FieldDetector(store=store)
    for element, document in _employer_controls():
        await detector.record_user_correction(element, document, "full_name", "company")

    assert detector.patterns.induced_patterns(FieldType.COMPANY) == ("employer",)

    element, document = _single_control('<div><label>Employer</label><input name="q9"></div>')
    result = detector.detect_field_type(element, document)
    assert result.field_type is FieldType.COMPANY
    assert result.score == 70
    assert result.confidence is ConfidenceBand.MEDIUM
    assert result.is_learned is False

    restarted = FieldDetector(store=store)
    await restarted.load()
    assert restarted.patterns.induced_patterns(FieldType.COMPANY) == ("employer",)


@pytest.mark.asyncio
async def test_manual_retrain() -> None:
    detector = FieldDetector(store=MemoryStore(), auto_retrain=False)
    for element, document in _employer_controls():
        await detector.record_user_correction(element, document, "full_name", "company")

    assert detector.patterns.induced_patterns(FieldType.COMPANY) == ()

    added = await detector.retrain_model()

    assert [proposal.pattern for proposal in added] == ["employer"]
    assert await detector.retrain_model() == []


def test_detection_details_expose_intermediate_state() -> None:
    detector = FieldDetector()
    element, document = _single_control('<form><input name="email_address" placeholder="john@example.com"></form>')

    details = detector.get_detection_details(element, document)

    assert details.threshold == 60
    assert details.result.field_type is FieldType.EMAIL
    assert details.scores[FieldType.EMAIL] == 100
    assert FieldType.UNKNOWN not in details.scores
    assert details.breakdown[FieldType.EMAIL].shape == 50
    payload = json.loads(json.dumps(details.to_dict()))
    assert payload["result"]["field_type"] == "email"
    assert payload["signals"]["attributes"]["name"] == "email_address"


def test_scan_page_skips_non_fillable_controls() -> None:
    detector = FieldDetector()
    document = HtmlDocument.from_html(
        "<h1>Checkout</h1><form>"
        '<input type="hidden" name="token" value="x">'
        '<label for="email">Email</label><input id="email" name="email">'
        '<input name="cc-num">'
        '<input type="submit" value="Pay">'
        "</form>"
    )

    scanned = detector.scan_page(document)

    assert [entry.selector for entry in scanned] == ["#email", 'input[name="cc-num"]']
    assert [entry.result.field_type for entry in scanned] == [FieldType.EMAIL, FieldType.CARD_NUMBER]


@pytest.mark.asyncio
async def test_unknown_correction_type_is_rejected() -> None:
    detector = FieldDetector(store=MemoryStore())
    element, document = _single_control('<form><input name="fname"></form>')

    with pytest.raises(UnknownFieldTypeError):
        await detector.record_user_correction(element, document, "first_name", "zzzzzz")

    assert detector.corrections.history == ()


@pytest.mark.asyncio
async def test_correction_to_unknown_suppresses_detection() -> None:
    detector = FieldDetector(store=MemoryStore())
    element, document = _single_control('<form><input name="fname"></form>')

    await detector.record_user_correction(element, document, "first_name", "unknown")

    assert detector.detect_field_type(element, document) is None
    # the rejected type alone would still clear the threshold
    assert detector.get_detection_details(element, document).scores[FieldType.FIRST_NAME] == 70


@pytest.mark.asyncio
async def test_unknown_correction_of_weak_control_stays_undetected() -> None:
    detector = FieldDetector(store=MemoryStore())
    element, document = _single_control('<form><input name="q1x"></form>')

    await detector.record_user_correction(element, document, FieldType.UNKNOWN, FieldType.UNKNOWN)

    assert detector.detect_field_type(element, document) is None


@pytest.mark.asyncio
async def test_save_writes_all_learning_state_at_once() -> None:
    store = RecordingStore()
    detector = FieldDetector(store=store)
    element, document = _single_control('<form><input name="fname"></form>')

    await detector.record_user_correction(element, document, "first_name", "company")

    assert len(store.writes) == 1
    assert set(store.writes[0]) == {CORRECTIONS_KEY, HISTORY_KEY, INDUCED_KEY}


def _shifting_majority_controls():
    labels = ("Employer alpha", "Employer alpha", "Employer beta", "Employer beta")
    for index, label in enumerate(labels):
        yield _single_control(f'<div><label>{label}</label><input name="org{index}"></div>')


@pytest.mark.asyncio
async def test_induced_patterns_survive_restart() -> None:
    store = MemoryStore()
    detector = FieldDetector(store=store)
    for element, document in _shifting_majority_controls():
        await detector.record_user_correction(element, document, "full_name", "company")

    # "alpha" was a majority word after three corrections, not after four
    assert detector.patterns.induced_words(FieldType.COMPANY) == ("alpha", "employer")
    element, document = _single_control('<div><label>Alpha</label><input name="q9"></div>')
    live = detector.detect_field_type(element, document)
    assert live.field_type is FieldType.COMPANY
    assert live.score == 70

    restarted = FieldDetector(store=store)
    assert await restarted.load() is True

    assert restarted.patterns.all_induced_words() == detector.patterns.all_induced_words()
    assert restarted.detect_field_type(element, document) == live


@pytest.mark.asyncio
async def test_manual_retrain_persists_new_patterns() -> None:
    store = MemoryStore()
    detector = FieldDetector(store=store, auto_retrain=False)
    for element, document in _employer_controls():
        await detector.record_user_correction(element, document, "full_name", "company")
    assert store.snapshot()[INDUCED_KEY] == {}

    await detector.retrain_model()

    assert store.snapshot()[INDUCED_KEY] == {"company": ["employer"]}
