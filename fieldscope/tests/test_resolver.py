"""Tests for best-match resolution and the learning override."""
from __future__ import annotations

import pytest

from fieldscope.detection.corrections import CorrectionRecord
from fieldscope.detection.field_types import ConfidenceBand, FieldType
from fieldscope.detection.resolver import DetectionResult, apply_learning, confidence_band, resolve
from fieldscope.detection.signals import SignalBundle


@pytest.mark.parametrize(
    ("score", "band"),
    [
        (0, ConfidenceBand.NONE),
        (59, ConfidenceBand.NONE),
        (59.99, ConfidenceBand.NONE),
        (60, ConfidenceBand.LOW),
        (69.9, ConfidenceBand.LOW),
        (70, ConfidenceBand.MEDIUM),
        (89.99, ConfidenceBand.MEDIUM),
        (90, ConfidenceBand.HIGH),
        (100, ConfidenceBand.HIGH),
    ],
)
def test_confidence_band_boundaries(score, band) -> None:
    assert confidence_band(score) is band


def test_resolve_returns_none_below_threshold() -> None:
    assert resolve({FieldType.EMAIL: 59.9, FieldType.PHONE: 10}) is None
    assert resolve({}) is None


def test_resolve_accepts_score_equal_to_threshold() -> None:
    result = resolve({FieldType.CITY: 60.0})

    assert result == DetectionResult(FieldType.CITY, 60.0, ConfidenceBand.LOW)


def test_resolve_picks_highest_score() -> None:
    result = resolve({FieldType.EMAIL: 70, FieldType.PHONE: 100, FieldType.ZIP: 90})

    assert result.field_type is FieldType.PHONE
    assert result.confidence is ConfidenceBand.HIGH
    assert result.is_learned is False


@pytest.mark.parametrize(
    "scores",
    [
        {FieldType.FIRST_NAME: 100, FieldType.FULL_NAME: 100},
        {FieldType.FULL_NAME: 100, FieldType.FIRST_NAME: 100},
    ],
)
def test_resolve_ties_keep_declaration_order(scores) -> None:
    assert resolve(scores).field_type is FieldType.FIRST_NAME


def test_resolve_custom_threshold() -> None:
    assert resolve({FieldType.EMAIL: 50}, threshold=40).field_type is FieldType.EMAIL
    assert resolve({FieldType.EMAIL: 70}, threshold=80) is None


def _correction(detected: FieldType, corrected: FieldType) -> CorrectionRecord:
    return CorrectionRecord(
        signature="fname|0",
        detected_type=detected,
        corrected_type=corrected,
        timestamp=0,
        signals=SignalBundle(),
    )


def test_apply_learning_without_correction_keeps_result() -> None:
    result = DetectionResult(FieldType.EMAIL, 80, ConfidenceBand.MEDIUM)

    assert apply_learning(result, None, {}) is result


def test_apply_learning_agreeing_correction_keeps_result() -> None:
    result = DetectionResult(FieldType.COMPANY, 75, ConfidenceBand.MEDIUM)

    assert apply_learning(result, _correction(FieldType.FIRST_NAME, FieldType.COMPANY), {}) is result


def test_apply_learning_overrides_with_boost() -> None:
    result = DetectionResult(FieldType.FIRST_NAME, 65, ConfidenceBand.LOW)

    learned = apply_learning(result, _correction(FieldType.FIRST_NAME, FieldType.COMPANY), {})

    assert learned == DetectionResult(FieldType.COMPANY, 95, ConfidenceBand.HIGH, is_learned=True)


def test_apply_learning_caps_score_at_100() -> None:
    result = DetectionResult(FieldType.FIRST_NAME, 90, ConfidenceBand.HIGH)

    learned = apply_learning(result, _correction(FieldType.FIRST_NAME, FieldType.COMPANY), {})

    assert learned.score == 100


def test_apply_learning_when_nothing_resolved_uses_corrected_score() -> None:
    learned = apply_learning(
        None,
        _correction(FieldType.UNKNOWN, FieldType.EMAIL),
        {FieldType.EMAIL: 30.0},
    )

    assert learned == DetectionResult(FieldType.EMAIL, 60.0, ConfidenceBand.LOW, is_learned=True)


@pytest.mark.parametrize(
    "result",
    [DetectionResult(FieldType.FIRST_NAME, 70, ConfidenceBand.MEDIUM), None],
)
def test_apply_learning_correction_to_unknown_means_no_detection(result) -> None:
    correction = _correction(FieldType.FIRST_NAME, FieldType.UNKNOWN)

    assert apply_learning(result, correction, {FieldType.FIRST_NAME: 70.0}) is None
