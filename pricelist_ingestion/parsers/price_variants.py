"""Price cell expansion into priced variants.

A single price cell may encode several priced options::

    "5,000 Adult only\\nFree for Paed."          -> adult 5000, paediatric 0
    "Consultation 2,000\\nDrugs 1,500\\nTOTAL 3,500" -> one variant, 3500
    "N10,000 per day (depending on market value)"  -> 10000, per_day, qualifier

Age labels such as "18YRS" or "0-12YRS" never parse as prices.
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from pricelist_ingestion.models.price_record import BreakdownItem, PriceTier, PriceUnit

_NUMBER_RE = re.compile(r"\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?")
_AGE_TOKEN_RE = re.compile(r"\d+\s*(?:-\s*\d+\s*)?(?:yrs?|years?)\b", re.IGNORECASE)
# Separators and currency marks allowed between a label and its amount.
_AMOUNT_GAP = r"(?:\s|NGN|USD|[₦$#N=:\-])*"
_TOTAL_RE = re.compile(r"\bTOTAL\b" + _AMOUNT_GAP + r"(\d[\d,]*(?:\.\d+)?)", re.IGNORECASE)
_SEGMENT_SPLIT_RE = re.compile(r"\n|;")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]", re.IGNORECASE)

_MARKET_VALUE_RE = re.compile(r"\(depending on market value\)", re.IGNORECASE)
_PER_SESSION_RE = re.compile(r"\([^)]*per session[^)]*\)", re.IGNORECASE)
_OUTSIDE_RE = re.compile(r"\([^)]*outside[^)]*\)", re.IGNORECASE)
_ADDITIONAL_RE = re.compile(r"for additional \w+", re.IGNORECASE)

_AMOUNT_TOKEN = r"(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)"
_AMOUNT_BEFORE_ADULT_RE = re.compile(_AMOUNT_TOKEN + r"\s*adult", re.IGNORECASE)
_AMOUNT_BEFORE_PAED_RE = re.compile(_AMOUNT_TOKEN + r"\s*(?:paed|pediatric|child)", re.IGNORECASE)
_TIER_LABEL_RE = re.compile(r"adult|paed|pediatric|child", re.IGNORECASE)
_ADULT_BEFORE_AMOUNT_RE = re.compile(r"adults?" + _AMOUNT_GAP + r"(\d[\d,]*(?:\.\d+)?)", re.IGNORECASE)
_PAED_BEFORE_AMOUNT_RE = re.compile(
    r"(?:paed\w*|pediatric\w*|child\w*)" + _AMOUNT_GAP + r"(\d[\d,]*(?:\.\d+)?)",
    re.IGNORECASE,
)

_TRAILING_AMOUNT_RE = re.compile(r"\d[\d,]*(?:\.\d+)?\s*$")
_LABEL_STRIP_CHARS = " \t:=-–—#₦"

_UNIT_KEYWORDS: Tuple[Tuple[PriceUnit, Tuple[str, ...]], ...] = (
    (PriceUnit.PER_DAY, ("per day", "daily")),
    (PriceUnit.PER_HOUR, ("per hour", "hourly")),
    (PriceUnit.PER_WEEK, ("per week", "weekly")),
    (PriceUnit.PER_MONTH, ("per month", "monthly")),
)


@dataclass
class PriceVariant:
    """One (price, tier, unit, qualifier) option parsed from a price cell."""
    price: Decimal
    raw_text: str
    tier: Optional[PriceTier] = None
    unit: Optional[PriceUnit] = None
    qualifier: Optional[str] = None
    breakdown: List[BreakdownItem] = field(default_factory=list)


def parse_amount(text: str) -> Optional[Decimal]:
    """Parse "130,000.00" style numbers; None when not a finite number."""
    try:
        value = Decimal(text.replace(",", ""))
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    return value


def extract_numbers(value: str) -> List[Decimal]:
    """All numeric tokens in ``value``, ignoring age labels like "18YRS"."""
    if not value:
        return []
    stripped = _AGE_TOKEN_RE.sub(" ", value)
    numbers = []
    for match in _NUMBER_RE.findall(stripped):
        amount = parse_amount(match)
        if amount is not None:
            numbers.append(amount)
    return numbers


def detect_tier(value: str) -> Optional[PriceTier]:
    """Tier keyword in ``value``, checked in a fixed order."""
    lower = (value or "").lower()
    if "adult" in lower:
        return PriceTier.ADULT
    if "paed" in lower or "pediatric" in lower or "child" in lower:
        return PriceTier.PAEDIATRIC
    if "executive" in lower:
        return PriceTier.EXECUTIVE
    if "private" in lower:
        return PriceTier.PRIVATE
    if "general" in lower:
        return PriceTier.GENERAL
    return None


def normalize_tier(value: Optional[str]) -> Optional[PriceTier]:
    """Map free-text tier labels (e.g. from an LLM) onto ``PriceTier``."""
    if not value:
        return None
    lower = value.strip().lower()
    if lower == PriceTier.FREE.value:
        return PriceTier.FREE
    return detect_tier(lower)


def extract_unit(value: str) -> Optional[PriceUnit]:
    lower = (value or "").lower()
    for unit, keywords in _UNIT_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return unit
    return None


def normalize_unit(value: Optional[str]) -> Optional[PriceUnit]:
    """Map "per_day", "per day", "daily", ... onto ``PriceUnit``."""
    if not value:
        return None
    return extract_unit(value.replace("_", " "))


def extract_price_qualifier(text: str) -> Optional[str]:
    """Free-text notes such as "depending on market value"."""
    if not text:
        return None
    qualifiers = []
    if _MARKET_VALUE_RE.search(text):
        qualifiers.append("depending on market value")
    for pattern in (_PER_SESSION_RE, _OUTSIDE_RE):
        match = pattern.search(text)
        if match:
            qualifiers.append(match.group(0).replace("(", "").replace(")", "").strip())
    match = _ADDITIONAL_RE.search(text)
    if match:
        qualifiers.append(match.group(0))
    return "; ".join(qualifiers) if qualifiers else None


def _strip_qualifier_notes(text: str) -> str:
    for pattern in (_MARKET_VALUE_RE, _PER_SESSION_RE, _OUTSIDE_RE):
        text = pattern.sub(" ", text)
    return text


def clean_price_text(price_text: str, description: str) -> str:
    """Strip a repeated description from the start of a price cell.

    Some exports repeat the procedure name inside the price cell before the
    actual amounts ("CAESAREAN SECTION: Adult 150,000"). The prefix is cut at
    the first colon, else the first newline.
    """
    if not description or not price_text:
        return price_text
    description_key = _NON_ALNUM_RE.sub("", description).lower()
    price_key = _NON_ALNUM_RE.sub("", price_text).lower()
    if (
        len(description_key) > 10
        and price_key.startswith(description_key)
        and len(price_key) > len(description_key)
    ):
        colon_index = price_text.find(":")
        cut_index = colon_index if colon_index >= 0 else price_text.find("\n")
        if 0 < cut_index < len(price_text) - 1:
            return price_text[cut_index + 1:].strip()
    return price_text


def detect_total_price(text: str) -> Optional[Decimal]:
    """The positive amount following a TOTAL keyword, if any."""
    match = _TOTAL_RE.search(text or "")
    if not match:
        return None
    amount = parse_amount(match.group(1))
    if amount is None or amount <= 0:
        return None
    return amount


def parse_breakdown(text: str) -> List[BreakdownItem]:
    """Labelled amounts on the lines preceding the TOTAL line."""
    items = []
    for line in _SEGMENT_SPLIT_RE.split(text or ""):
        line = line.strip()
        if not line:
            continue
        if _TOTAL_RE.search(line):
            break
        numbers = extract_numbers(line)
        if not numbers:
            continue
        if _TRAILING_AMOUNT_RE.search(line):
            label = _TRAILING_AMOUNT_RE.sub("", line)
        else:
            label = _NUMBER_RE.sub("", line)
        label = label.strip(_LABEL_STRIP_CHARS).strip() or line
        items.append(BreakdownItem(label=label, amount=numbers[-1]))
    return items


def _free_for_paed(lower: str) -> bool:
    return "free" in lower and ("paed" in lower or "child" in lower)


def split_by_tier(text: str) -> List[Tuple[Decimal, PriceTier]]:
    """Adult/paediatric amounts in a segment with several numbers or a free paediatric note.

    Handles "5,000 Adult 2,000 Paed.", "Adult 5,000, Paed 2,000" and
    "5,000 Adult only, free for children". Whether amounts precede or follow
    their labels is decided by which comes first in the text. Returns an
    empty list when no tier indicator is found.
    """
    results: List[Tuple[Decimal, PriceTier]] = []
    lower = text.lower()

    first_label = _TIER_LABEL_RE.search(text)
    first_number = _NUMBER_RE.search(_AGE_TOKEN_RE.sub(lambda m: " " * len(m.group(0)), text))
    if first_label and (first_number is None or first_label.start() < first_number.start()):
        adult_re, paed_re = _ADULT_BEFORE_AMOUNT_RE, _PAED_BEFORE_AMOUNT_RE
    else:
        adult_re, paed_re = _AMOUNT_BEFORE_ADULT_RE, _AMOUNT_BEFORE_PAED_RE

    adult = adult_re.search(text)
    paed = paed_re.search(text)
    free_for_paed = _free_for_paed(lower)

    if adult:
        amount = parse_amount(adult.group(1))
        if amount is not None:
            results.append((amount, PriceTier.ADULT))
    if paed:
        amount = parse_amount(paed.group(1))
        if amount is not None:
            results.append((amount, PriceTier.PAEDIATRIC))
    elif free_for_paed:
        results.append((Decimal("0"), PriceTier.PAEDIATRIC))

    return results


def expand_price_variants(price_text: str, description: str = "") -> List[PriceVariant]:
    """Expand one price cell into its priced variants.

    Unit and qualifier are attached to every variant. A cell with a TOTAL
    line is a single consolidated variant carrying its breakdown. A cell
    with no number and no "free" marker yields no variants.
    """
    if not price_text or not price_text.strip():
        return []

    unit = extract_unit(f"{description} {price_text}")
    qualifier = extract_price_qualifier(price_text)
    cleaned = clean_price_text(price_text, description)

    total = detect_total_price(cleaned)
    if total is not None:
        return [
            PriceVariant(
                price=total,
                raw_text=price_text,
                tier=detect_tier(cleaned),
                unit=unit,
                qualifier=qualifier,
                breakdown=parse_breakdown(cleaned),
            )
        ]

    variants: List[PriceVariant] = []
    seen = set()

    def add_variant(price: Decimal, tier: Optional[PriceTier], raw_text: str) -> None:
        key = (price, tier)
        if key in seen:
            return
        seen.add(key)
        variants.append(
            PriceVariant(price=price, raw_text=raw_text, tier=tier, unit=unit, qualifier=qualifier)
        )

    segments = [segment.strip() for segment in _SEGMENT_SPLIT_RE.split(cleaned) if segment.strip()]
    for part in segments or [cleaned]:
        lower = part.lower()
        # A bare zero is a placeholder, not a price; only "free" yields 0.
        numbers = [n for n in extract_numbers(_strip_qualifier_notes(part)) if n > 0]

        if not numbers:
            if "free" in lower:
                add_variant(Decimal("0"), detect_tier(lower) or PriceTier.FREE, part)
            continue

        if len(numbers) == 1 and not _free_for_paed(lower):
            add_variant(numbers[0], detect_tier(lower), part)
            continue

        tiered = split_by_tier(part)
        if tiered:
            for price, tier in tiered:
                add_variant(price, tier, part)
            if len(numbers) == 1 and all(price != numbers[0] for price, _ in tiered):
                add_variant(numbers[0], None, part)
            continue

        for number in numbers:
            add_variant(number, detect_tier(lower), part)

    return variants
