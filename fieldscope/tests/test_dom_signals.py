from __future__ import annotations

import copy

from playwright.sync_api import Error as PlaywrightError

from fieldscope.detection import FieldDetector, FieldType
from fieldscope.detection.dom_signals import COLLECT_SIGNALS_SCRIPT, PlaywrightSignalGatherer
from fieldscope.detection.signals import SECTION_TEXT_LIMIT, SignalBundle


class HandleStub:
    def __init__(self, raw=None, error=None):
        self.raw = raw
        self.error = error
        self.calls = []

    def evaluate(self, script, arg=None):
        self.calls.append((script, arg))
        if self.error is not None:
            raise self.error
        return self.raw


class PageStub:
    def __init__(self, title="Checkout", url="https://shop.example.com/pay", error=None):
        self._title = title
        self.url = url
        self.error = error

    def title(self):
        if self.error is not None:
            raise self.error
        return self._title


_RAW_CARD_FIELD = {
    "attributes": {"name": "cc-num", "id": "", "placeholder": "1234 5678 9012 3456", "input_type": "text"},
    "context": {
        "label": "Card number",
        "parent_text": "",
        "sibling_text": "",
        "page": {"title": "stale title", "url": "about:blank", "headings": "Payment"},
    },
    "structure": {"form_class": "pay", "fieldset_legend": "", "section_text": "", "position": 0},
    "visual": {"width": 240, "height": 32, "font_size": "14px", "is_visible": True, "max_length": 19},
    "behavioral": {"has_been_focused": False, "has_user_input": False, "is_required": True},
}


def _raw_card_field():
    return copy.deepcopy(_RAW_CARD_FIELD)


def test_gather_runs_a_single_evaluate_with_section_limit() -> None:
    handle = HandleStub(raw=_raw_card_field())

    bundle = PlaywrightSignalGatherer().gather(handle)

    assert handle.calls == [(COLLECT_SIGNALS_SCRIPT, SECTION_TEXT_LIMIT)]
    assert bundle.attributes.name == "cc-num"
    assert bundle.context.label == "card number"
    assert bundle.visual.font_size == 14.0
    assert bundle.visual.max_length == 19
    assert bundle.context.page.title == "stale title"


def test_page_overrides_in_page_title_and_url() -> None:
    handle = HandleStub(raw={"attributes": {"name": "email"}})

    bundle = PlaywrightSignalGatherer().gather(handle, PageStub())

    assert bundle.context.page.title == "checkout"
    assert bundle.context.page.url == "https://shop.example.com/pay"
    assert bundle.attributes.name == "email"


def test_page_errors_keep_in_page_values() -> None:
    handle = HandleStub(raw=_raw_card_field())

    bundle = PlaywrightSignalGatherer().gather(handle, PageStub(error=PlaywrightError("navigated")))

    assert bundle.context.page.title == "stale title"


def test_detached_handle_gives_empty_bundle() -> None:
    handle = HandleStub(error=PlaywrightError("Element is not attached to the DOM"))

    assert PlaywrightSignalGatherer().gather(handle) == SignalBundle()


def test_non_mapping_result_gives_empty_bundle() -> None:
    assert PlaywrightSignalGatherer().collect_raw(HandleStub(raw=None)) == {}
    assert PlaywrightSignalGatherer().collect_raw(HandleStub(raw=["x"])) == {}


def test_detector_classifies_live_handles() -> None:
    detector = FieldDetector(gatherer=PlaywrightSignalGatherer())

    result = detector.detect_field_type(HandleStub(raw=_raw_card_field()), PageStub())
    missing = detector.detect_field_type(HandleStub(error=PlaywrightError("detached")))

    assert result.field_type is FieldType.CARD_NUMBER
    assert missing is None
