"""Pattern tables that map field types to tokens and regular expressions.

Three tables back the matcher strategies:

1. ``EXACT_TOKENS`` - literal substrings searched for in attribute values.
2. ``FUZZY_PATTERNS`` - regular expressions tested against attribute and
   label text.
3. ``SHAPE_PATTERNS`` - regular expressions describing the shape of a value
   hint (placeholder text such as ``555-123-4567``).

The tables are defaults. A :class:`PatternLibrary` owns a private copy and is
the only thing the scorer reads; pattern induction appends to it.
"""
from __future__ import annotations

import logging
import re
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .field_types import FieldType

logger = logging.getLogger(__name__)

__all__ = [
    "EXACT_TOKENS",
    "FUZZY_PATTERNS",
    "SHAPE_PATTERNS",
    "DEFAULT_MAX_INDUCED_PATTERNS",
    "PatternLibrary",
]

EXACT_TOKENS: Dict[FieldType, Sequence[str]] = {
    FieldType.FIRST_NAME: ["firstname", "first_name", "given_name", "fname", "forename"],
    FieldType.LAST_NAME: ["lastname", "last_name", "family_name", "surname", "lname"],
    FieldType.FULL_NAME: ["fullname", "full_name", "name", "complete_name"],
    FieldType.EMAIL: ["email", "email_address", "e_mail", "emailaddress"],
    FieldType.PHONE: ["phone", "telephone", "tel", "mobile", "cell", "phone_number"],
    FieldType.STREET: ["street", "address", "street_address", "addr", "address1"],
    FieldType.CITY: ["city", "town", "locality", "municipality"],
    FieldType.STATE: ["state", "province", "region", "territory"],
    FieldType.ZIP: ["zip", "zipcode", "postal", "postal_code", "postcode"],
    FieldType.COUNTRY: ["country", "nation", "nationality"],
    FieldType.CARD_NUMBER: ["cardnumber", "card_number", "ccnumber", "cc_number"],
    FieldType.CVV: ["cvv", "cvc", "security_code", "card_code"],
    FieldType.EXPIRY_DATE: ["expiry", "exp_date", "expiration", "exp"],
    FieldType.COMPANY: ["company", "organization", "employer", "workplace"],
    FieldType.JOB_TITLE: ["job_title", "position", "title", "role"],
    FieldType.WEBSITE: ["website", "url", "web_site", "homepage"],
    FieldType.LINKEDIN: ["linkedin", "linked_in", "profile_url"],
}

FUZZY_PATTERNS: Dict[FieldType, Sequence[str]] = {
    FieldType.FIRST_NAME: [r"first.*name", r"given.*name", r"f.*name"],
    FieldType.LAST_NAME: [r"last.*name", r"family.*name", r"sur.*name"],
    FieldType.FULL_NAME: [r"full.*name", r"complete.*name", r"your.*name"],
    FieldType.EMAIL: [r"e.*mail", r"mail.*address", r"email.*addr"],
    FieldType.PHONE: [r"phone.*number", r"tel.*number", r"mobile.*number"],
    FieldType.STREET: [r"street.*address", r"home.*address", r"address.*line"],
    FieldType.CITY: [r"city.*name", r"town.*name"],
    FieldType.STATE: [r"state.*province", r"region.*state"],
    FieldType.ZIP: [r"zip.*code", r"postal.*code", r"post.*code"],
    FieldType.CARD_NUMBER: [r"card.*number", r"credit.*card", r"cc.*num"],
    FieldType.CVV: [r"security.*code", r"cvv.*code", r"card.*verification"],
    FieldType.COMPANY: [r"company.*name", r"organization.*name"],
    FieldType.JOB_TITLE: [r"job.*title", r"work.*title", r"position.*title"],
}

SHAPE_PATTERNS: Dict[FieldType, Sequence[str]] = {
    FieldType.FIRST_NAME: [r"^fn$", r"^givenname$", r"first$"],
    FieldType.LAST_NAME: [r"^ln$", r"^familyname$", r"last$"],
    FieldType.EMAIL: [r"@", r"mail$", r"^em$"],
    FieldType.PHONE: [r"^\d{3}[-.\s]?\d{3}[-.\s]?\d{4}$", r"tel$", r"ph$"],
    FieldType.ZIP: [r"^\d{5}(-\d{4})?$", r"postal$", r"^zip$"],
    FieldType.CARD_NUMBER: [r"^\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}$", r"card$"],
    FieldType.CVV: [r"^\d{3,4}$", r"security$"],
}

DEFAULT_MAX_INDUCED_PATTERNS = 25

CompiledTable = Dict[FieldType, Tuple[re.Pattern[str], ...]]


def _compile_table(table: Mapping[FieldType, Sequence[str]]) -> CompiledTable:
    return {
        field_type: tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns)
        for field_type, patterns in table.items()
    }


class PatternLibrary:
    """Per-detector copy of the pattern tables.

    Readers call the accessor methods and receive immutable tuples. Writers go
    through :meth:`add_induced_word`, which takes a lock and publishes a new
    table so a concurrent reader never observes a half-updated list.
    """

    def __init__(
        self,
        exact_tokens: Optional[Mapping[FieldType, Sequence[str]]] = None,
        fuzzy_patterns: Optional[Mapping[FieldType, Sequence[str]]] = None,
        shape_patterns: Optional[Mapping[FieldType, Sequence[str]]] = None,
        *,
        max_induced_patterns: int = DEFAULT_MAX_INDUCED_PATTERNS,
    ) -> None:
        exact = EXACT_TOKENS if exact_tokens is None else exact_tokens
        self._exact: Dict[FieldType, Tuple[str, ...]] = {
            field_type: tuple(token.lower() for token in tokens) for field_type, tokens in exact.items()
        }
        self._fuzzy: CompiledTable = _compile_table(FUZZY_PATTERNS if fuzzy_patterns is None else fuzzy_patterns)
        self._shape: CompiledTable = _compile_table(SHAPE_PATTERNS if shape_patterns is None else shape_patterns)
        self._induced: Dict[FieldType, Tuple[str, ...]] = {}
        self.max_induced_patterns = max_induced_patterns
        self._write_lock = threading.Lock()

    def exact_tokens(self, field_type: FieldType) -> Tuple[str, ...]:
        return self._exact.get(field_type, ())

    def fuzzy_patterns(self, field_type: FieldType) -> Tuple[re.Pattern[str], ...]:
        return self._fuzzy.get(field_type, ())

    def shape_patterns(self, field_type: FieldType) -> Tuple[re.Pattern[str], ...]:
        return self._shape.get(field_type, ())

    def induced_words(self, field_type: FieldType) -> Tuple[str, ...]:
        """Words added by induction for ``field_type``, oldest first."""

        return self._induced.get(field_type, ())

    def induced_patterns(self, field_type: FieldType) -> Tuple[str, ...]:
        """Escaped pattern sources of the induced words."""

        return tuple(re.escape(word) for word in self.induced_words(field_type))

    def all_induced_words(self) -> Dict[FieldType, Tuple[str, ...]]:
        return dict(self._induced)

    def has_fuzzy_pattern(self, field_type: FieldType, source: str) -> bool:
        return any(pattern.pattern == source for pattern in self.fuzzy_patterns(field_type))

    def add_induced_word(self, field_type: FieldType, word: str) -> bool:
        """Append a fuzzy pattern matching ``word`` literally; return ``True`` when added.

        The word is escaped before compilation, so page text never acts as a
        regular expression. Existing patterns are never replaced. An
        equivalent pattern already in the table, or a field type that reached
        ``max_induced_patterns``, leaves the library unchanged.
        """

        source = re.escape(word)
        with self._write_lock:
            if self.has_fuzzy_pattern(field_type, source):
                return False
            induced = self._induced.get(field_type, ())
            if len(induced) >= self.max_induced_patterns:
                logger.warning(
                    f"Induced pattern cap ({self.max_induced_patterns}) reached for {field_type.value}; "
                    f"dropping {word!r}"
                )
                return False
            compiled = re.compile(source, re.IGNORECASE)
            fuzzy = dict(self._fuzzy)
            fuzzy[field_type] = fuzzy.get(field_type, ()) + (compiled,)
            induced_table = dict(self._induced)
            induced_table[field_type] = induced + (word,)
            self._fuzzy = fuzzy
            self._induced = induced_table
        logger.info(f"Added induced pattern {source!r} for {field_type.value}")
        return True

    def extend_induced(self, words: Mapping[FieldType, Iterable[str]]) -> List[Tuple[FieldType, str]]:
        """Add several induced words in order, returning those that were new."""

        added: List[Tuple[FieldType, str]] = []
        for field_type, entries in words.items():
            for word in entries:
                if self.add_induced_word(field_type, word):
                    added.append((field_type, word))
        return added

    def induced_state(self) -> Dict[str, List[str]]:
        """Persisted shape of the induced words: ``{field_type value: [word, ...]}``."""

        return {field_type.value: list(words) for field_type, words in self._induced.items()}

    def restore_induced(self, payload: Any) -> int:
        """Re-add stored induced words; malformed entries are skipped. Returns the number added."""

        if payload is None:
            return 0
        if not isinstance(payload, Mapping):
            logger.warning(f"Ignoring stored induced patterns: expected a mapping, got {type(payload).__name__}")
            return 0
        words: Dict[FieldType, List[str]] = {}
        for key, entries in payload.items():
            try:
                field_type = FieldType.parse(key)
            except ValueError as exc:
                logger.warning(f"Skipping induced patterns for unknown field type: {exc}")
                continue
            if field_type is FieldType.UNKNOWN or not isinstance(entries, list):
                logger.warning(f"Skipping malformed induced patterns for {key!r}")
                continue
            words[field_type] = [word for word in entries if isinstance(word, str) and word]
        return len(self.extend_induced(words))
