"""Signal gathering for live pages through Playwright element handles."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from playwright.sync_api import ElementHandle, Error as PlaywrightError, Page

from .signals import SECTION_TEXT_LIMIT, SignalBundle

logger = logging.getLogger(__name__)

__all__ = [
    "COLLECT_SIGNALS_SCRIPT",
    "PlaywrightSignalGatherer",
]

COLLECT_SIGNALS_SCRIPT = """
(el, sectionLimit) => {
    const text = (node) => (node && (node.textContent || "").trim()) || "";
    const attr = (name) => el.getAttribute(name) || "";

    const resolveLabel = () => {
        if (el.labels && el.labels.length) {
            return text(el.labels[0]);
        }
        if (el.id) {
            const byFor = document.querySelector(`label[for="${CSS.escape(el.id)}"]`);
            if (byFor) {
                return text(byFor);
            }
        }
        const wrapping = el.closest("label");
        if (wrapping) {
            return text(wrapping);
        }
        let prev = el.previousElementSibling;
        while (prev && prev.tagName !== "INPUT") {
            if (prev.tagName === "LABEL" || text(prev).length < 100) {
                return text(prev);
            }
            prev = prev.previousElementSibling;
        }
        return "";
    };

    const parent = el.parentElement;
    let parentText = "";
    let siblingText = "";
    if (parent) {
        const clone = parent.cloneNode(true);
        clone.querySelectorAll("input, textarea, select").forEach((node) => node.remove());
        parentText = text(clone);
        const siblings = Array.from(parent.children);
        const index = siblings.indexOf(el);
        siblingText = siblings
            .slice(Math.max(0, index - 2), index + 3)
            .filter((sibling) => sibling !== el)
            .map(text)
            .join(" ");
    }

    const form = el.closest("form");
    const fieldset = el.closest("fieldset");
    const section = el.closest('section, div[class*="section"]');
    const position = form
        ? Array.from(form.querySelectorAll("input, textarea, select")).indexOf(el)
        : 0;

    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);

    return {
        attributes: {
            name: el.name || attr("name"),
            id: el.id || "",
            class_name: typeof el.className === "string" ? el.className : attr("class"),
            placeholder: el.placeholder || attr("placeholder"),
            input_type: el.type || "",
            autocomplete: el.autocomplete || attr("autocomplete"),
            title: el.title || "",
            aria_label: attr("aria-label"),
            data_testid: attr("data-testid"),
        },
        context: {
            label: resolveLabel(),
            parent_text: parentText,
            sibling_text: siblingText,
            page: {
                title: document.title || "",
                url: window.location.href || "",
                headings: Array.from(document.querySelectorAll("h1, h2, h3")).map(text).join(" "),
            },
        },
        structure: {
            form_class: form ? String(form.className || "") : "",
            fieldset_legend: fieldset ? text(fieldset.querySelector("legend")) : "",
            section_text: section ? text(section).substring(0, sectionLimit) : "",
            position: Math.max(position, 0),
        },
        visual: {
            width: rect.width,
            height: rect.height,
            font_size: style.fontSize,
            is_visible: rect.width > 0 && rect.height > 0,
            input_type: el.type || "",
            max_length: el.maxLength > 0 ? el.maxLength : 0,
        },
        behavioral: {
            has_been_focused: el.dataset ? el.dataset.hasBeenFocused === "true" : false,
            has_user_input: ((el.value || "").length || 0) > 0,
            is_required: !!el.required,
            has_validation: !!(el.pattern || el.min || el.max),
        },
    };
}
"""


class PlaywrightSignalGatherer:
    """Collect a :class:`SignalBundle` from a live element handle.

    A single ``evaluate`` round trip gathers every signal. When the handle is
    detached or the page navigates mid-call the gatherer logs the failure and
    returns an empty bundle, which classifies as "no detection".
    """

    def gather(self, element: ElementHandle, document: Optional[Page] = None) -> SignalBundle:
        raw = self.collect_raw(element)
        if document is not None:
            page_context = raw.setdefault("context", {}).setdefault("page", {})
            try:
                page_context["title"] = document.title()
                page_context["url"] = document.url
            except PlaywrightError as exc:
                logger.debug(f"Falling back to in-page title/url: {exc}")
        return SignalBundle.from_raw(raw)

    def collect_raw(self, element: ElementHandle) -> Dict[str, Any]:
        try:
            raw = element.evaluate(COLLECT_SIGNALS_SCRIPT, SECTION_TEXT_LIMIT)
        except PlaywrightError as exc:
            logger.warning(f"Could not collect signals from element: {exc}")
            return {}
        if not isinstance(raw, dict):
            return {}
        return raw
