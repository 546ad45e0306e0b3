"""Facility name resolution against the canonical alias table.

Pipeline (each stage short-circuits on success):

1. Explicit per-file mapping supplied by the operator
2. Sanitize (drop file extension, underscores, extra whitespace)
3. Exact alias lookup on the lowercase alphanumeric key
4. Strip noise: bracketed qualifiers, "price list"/"tariff list"/
   "for office use" phrases, month names, 20xx years
5. Alias lookup again
6. Reject generic-only or blocklisted names, falling back to the file
   name when the inference threshold allows it
7. Title-case, keeping short uppercase acronyms

An empty string means the facility was rejected; no record may be emitted
for it.
"""

import re
from pathlib import PurePath
from typing import Dict, Iterable, Optional

import structlog

from pricelist_ingestion.config import parser_settings
from pricelist_ingestion.data.facility_aliases import FACILITY_ALIASES, FacilityAliasEntry

logger = structlog.get_logger(__name__)

_EXTENSION_RE = re.compile(r"\.(?:csv|txt|docx?|xlsx?|xlsm|pdf)$", re.IGNORECASE)
_BRACKETED_RE = re.compile(r"\([^)]*\)|\[[^\]]*\]")
_NOISE_PHRASES = (
    "price list for",
    "for office use",
    "price list",
    "tariff list",
    "office use",
)
_NOISE_PHRASE_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(p).replace(r"\ ", r"\s+") for p in _NOISE_PHRASES) + r")\b",
    re.IGNORECASE,
)
_MONTH_RE = re.compile(
    r"\b(?:january|february|march|april|may|june|july|august|september|october|november|december"
    r"|jan|feb|mar|apr|jun|jul|aug|sept?|oct|nov|dec)\b\.?",
    re.IGNORECASE,
)
_YEAR_RE = re.compile(r"\b20\d{2}\b")
_WHITESPACE_RE = re.compile(r"\s+")
_EDGE_PUNCTUATION = " -_,.:;/&|#"
_TOKEN_RE = re.compile(r"[a-z0-9]+")
_VOWELS = set("AEIOU")


def facility_key(value: Optional[str]) -> str:
    """Lowercase alphanumeric match key."""
    return re.sub(r"[^a-z0-9]", "", (value or "").lower())


def _build_alias_index(entries: Iterable[FacilityAliasEntry]) -> Dict[str, FacilityAliasEntry]:
    index: Dict[str, FacilityAliasEntry] = {}
    for entry in entries:
        for name in (entry.canonical_name,) + entry.aliases:
            index.setdefault(facility_key(name), entry)
    return index


_ALIAS_INDEX = _build_alias_index(FACILITY_ALIASES)


def lookup_alias(value: Optional[str]) -> Optional[FacilityAliasEntry]:
    """Exact alias match on the normalized key."""
    key = facility_key(value)
    if not key:
        return None
    return _ALIAS_INDEX.get(key)


def match_facility_alias(value: Optional[str]) -> Optional[FacilityAliasEntry]:
    """First table entry whose alias key is contained in ``value``'s key."""
    key = facility_key(value)
    if not key:
        return None
    for entry in FACILITY_ALIASES:
        if any(facility_key(alias) in key for alias in entry.aliases):
            return entry
    return None


def sanitize_candidate(value: Optional[str]) -> str:
    """Drop a file extension, turn underscores into spaces, collapse whitespace."""
    text = _EXTENSION_RE.sub("", (value or "").strip())
    text = text.replace("_", " ")
    return _WHITESPACE_RE.sub(" ", text).strip()


def filename_candidate(source_file: Optional[str]) -> str:
    """Facility candidate derived from a file name."""
    if not source_file:
        return ""
    return sanitize_candidate(PurePath(source_file).name)


def strip_noise(value: str) -> str:
    """Remove list-title phrases, bracketed qualifiers, months and years."""
    text = _BRACKETED_RE.sub(" ", value)
    text = _NOISE_PHRASE_RE.sub(" ", text)
    text = _MONTH_RE.sub(" ", text)
    text = _YEAR_RE.sub(" ", text)
    text = _WHITESPACE_RE.sub(" ", text)
    return text.strip(_EDGE_PUNCTUATION).strip()


def is_generic_name(value: str) -> bool:
    """True when no token distinguishes the name from any other facility."""
    generic = {token.lower() for token in parser_settings.generic_facility_tokens}
    tokens = _TOKEN_RE.findall(value.lower())
    return not any(token not in generic and not token.isdigit() for token in tokens)


def is_blocklisted_name(value: str) -> bool:
    blocklist = {name.lower() for name in parser_settings.non_facility_names}
    return _WHITESPACE_RE.sub(" ", value.lower()).strip() in blocklist


def _capitalize_word(word: str) -> str:
    lowered = word.lower()
    for index, char in enumerate(lowered):
        if char.isalpha():
            return lowered[:index] + char.upper() + lowered[index + 1:]
    return lowered


def _is_acronym(word: str, shouting: bool) -> bool:
    letters = re.sub(r"[^A-Za-z]", "", word)
    if not letters or len(letters) > 5 or not letters.isupper():
        return False
    if not shouting:
        return True
    # In an all-caps title only bracketed or vowel-less words are acronyms.
    return word[0] in "([" or not (set(letters) & _VOWELS)


def format_facility_name(value: str) -> str:
    """Title-case each word, keeping uppercase acronyms of up to 5 letters."""
    letters = re.sub(r"[^A-Za-z]", "", value)
    shouting = bool(letters) and letters.isupper()
    words = value.split(" ")
    return " ".join(word if _is_acronym(word, shouting) else _capitalize_word(word) for word in words)


def _resolve_candidate(candidate: str) -> Optional[str]:
    """Stages 2-7 on a single candidate; None when rejected."""
    sanitized = sanitize_candidate(candidate)
    if not sanitized:
        return None

    entry = lookup_alias(sanitized)
    if entry:
        return entry.canonical_name

    stripped = strip_noise(sanitized)
    entry = lookup_alias(stripped)
    if entry:
        return entry.canonical_name

    if not stripped or is_blocklisted_name(stripped) or is_generic_name(stripped):
        return None

    return format_facility_name(stripped)


def resolve_facility_name(
    candidate: Optional[str],
    source_file: Optional[str] = None,
    threshold: Optional[float] = None,
    explicit_mapping: Optional[Dict[str, str]] = None,
) -> str:
    """Resolve a raw facility candidate to its canonical display name.

    Args:
        candidate: Name found in the document (title row, LLM output, ...)
        source_file: File the candidate came from, used for the explicit
            mapping and the file name fallback
        threshold: Facility inference threshold; the file name fallback is
            used only when it does not exceed ``filename_fallback_confidence``
        explicit_mapping: Operator-supplied file name -> facility name map

    Returns:
        The resolved name, or "" when the facility is rejected.

    Examples:
        >>> resolve_facility_name(
        ...     "LAGOS STATE UNIVERSITY TEACHING HOSPITAL PRICE LIST",
        ...     "NEW LASUTH PRICE LIST (SERVICES).csv",
        ... )
        'Lagos State University Teaching Hospital (LASUTH)'
        >>> resolve_facility_name("PRICE LIST FOR OFFICE USE[1]", "PRICE_LIST_FOR_OFFICE_USE[1].docx")
        ''
    """
    if explicit_mapping and source_file:
        mapped = explicit_mapping.get(source_file) or explicit_mapping.get(PurePath(source_file).name)
        if mapped and mapped.strip():
            return _WHITESPACE_RE.sub(" ", mapped).strip()

    resolved = _resolve_candidate(candidate or "")
    if resolved:
        return resolved

    if threshold is None:
        threshold = parser_settings.facility_inference_threshold
    fallback = filename_candidate(source_file)
    if fallback and fallback != sanitize_candidate(candidate or ""):
        if threshold <= parser_settings.filename_fallback_confidence:
            resolved = _resolve_candidate(fallback)
            if resolved:
                logger.info(
                    "facility_name_from_filename",
                    candidate=candidate,
                    source_file=source_file,
                    facility_name=resolved,
                )
                return resolved

    logger.warning("facility_name_rejected", candidate=candidate, source_file=source_file)
    return ""


def normalize_identifier(value: Optional[str]) -> str:
    """Lowercase, non-alphanumeric runs to a single underscore, trimmed."""
    text = (value or "").strip().lower()
    return re.sub(r"[^a-z0-9]+", "_", text).strip("_")


def build_facility_id(provider_id: Optional[str], facility_name: Optional[str]) -> str:
    """Stable ``<provider>_<identifier>`` facility id ("" for an empty name)."""
    normalized = normalize_identifier(facility_name)
    if not normalized:
        return ""
    prefix = (provider_id or "provider").strip()
    if not prefix:
        return normalized
    return f"{prefix}_{normalized}"
