"""Tests for price cell expansion into variants."""

from decimal import Decimal

import pytest

from pricelist_ingestion.models.price_record import BreakdownItem, PriceTier, PriceUnit
from pricelist_ingestion.parsers.area_hierarchy import AreaHierarchy, parse_area_hierarchy
from pricelist_ingestion.parsers.price_variants import (
    clean_price_text,
    detect_total_price,
    expand_price_variants,
    extract_numbers,
    extract_price_qualifier,
    normalize_tier,
    normalize_unit,
    parse_breakdown,
    split_by_tier,
)


class TestExtractNumbers:

    def test_thousands_and_decimals(self):
        assert extract_numbers("130,000.00 and 45.5") == [Decimal("130000.00"), Decimal("45.5")]

    @pytest.mark.parametrize("text", ["18YRS ABOVE", "0-12YRS", "5 years", "12 yrs"])
    def test_age_labels_are_not_prices(self, text):
        assert extract_numbers(text) == []

    def test_empty(self):
        assert extract_numbers("") == []


class TestSplitByTier:

    def test_amount_before_labels(self):
        assert split_by_tier("5,000 Adult 2,000 Paed.") == [
            (Decimal("5000"), PriceTier.ADULT),
            (Decimal("2000"), PriceTier.PAEDIATRIC),
        ]

    def test_labels_before_amounts(self):
        assert split_by_tier("Adult 8,000, Paed 4,000") == [
            (Decimal("8000"), PriceTier.ADULT),
            (Decimal("4000"), PriceTier.PAEDIATRIC),
        ]

    def test_free_for_paediatrics(self):
        assert split_by_tier("5,000 Adult only Free for Paed.") == [
            (Decimal("5000"), PriceTier.ADULT),
            (Decimal("0"), PriceTier.PAEDIATRIC),
        ]

    def test_no_tier_indicator(self):
        assert split_by_tier("5,000 10,000") == []


class TestTotals:

    def test_detect_total(self):
        assert detect_total_price("Bed 5,000\nTOTAL = 203,000") == Decimal("203000")

    def test_zero_total_ignored(self):
        assert detect_total_price("TOTAL 0") is None

    @pytest.mark.parametrize("total_line", ["TOTAL ₦3,500", "TOTAL: NGN 3,500", "TOTAL $3,500", "Total = N3,500"])
    def test_total_with_currency_sign(self, total_line):
        assert detect_total_price(f"Consultation 2,000\nDrugs 1,500\n{total_line}") == Decimal("3500")

    def test_parse_breakdown_stops_at_total(self):
        items = parse_breakdown("Consultation 2,000\nDrugs: 1,500\nTOTAL 3,500\nExtra 100")
        assert items == [
            BreakdownItem(label="Consultation", amount=Decimal("2000")),
            BreakdownItem(label="Drugs", amount=Decimal("1500")),
        ]


class TestQualifiersAndUnits:

    def test_market_value_qualifier(self):
        assert extract_price_qualifier("10,000 (depending on market value)") == "depending on market value"

    def test_multiple_qualifiers(self):
        text = "5,000 (per session) for additional session"
        assert extract_price_qualifier(text) == "per session; for additional session"

    def test_no_qualifier(self):
        assert extract_price_qualifier("5,000") is None

    @pytest.mark.parametrize("value,expected", [
        ("per_day", PriceUnit.PER_DAY),
        ("hourly", PriceUnit.PER_HOUR),
        ("per week", PriceUnit.PER_WEEK),
        ("monthly", PriceUnit.PER_MONTH),
        ("each", None),
        (None, None),
    ])
    def test_normalize_unit(self, value, expected):
        assert normalize_unit(value) == expected

    @pytest.mark.parametrize("value,expected", [
        ("Adult", PriceTier.ADULT),
        ("paediatric", PriceTier.PAEDIATRIC),
        ("children", PriceTier.PAEDIATRIC),
        ("FREE", PriceTier.FREE),
        ("private", PriceTier.PRIVATE),
        ("VIP", None),
        (None, None),
    ])
    def test_normalize_tier(self, value, expected):
        assert normalize_tier(value) == expected


class TestCleanPriceText:

    def test_repeated_description_is_stripped(self):
        cleaned = clean_price_text("CAESAREAN SECTION: Adult 150,000", "CAESAREAN SECTION")
        assert cleaned == "Adult 150,000"

    def test_short_description_left_alone(self):
        assert clean_price_text("ECG: 4,000", "ECG") == "ECG: 4,000"


class TestExpandPriceVariants:

    def test_single_price(self):
        variants = expand_price_variants("5,000")
        assert len(variants) == 1
        assert variants[0].price == Decimal("5000")
        assert variants[0].tier is None

    def test_adult_and_free_paediatric_lines(self):
        variants = expand_price_variants("5,000 Adult only\nFree for Paed.")
        assert [(v.price, v.tier) for v in variants] == [
            (Decimal("5000"), PriceTier.ADULT),
            (Decimal("0"), PriceTier.PAEDIATRIC),
        ]

    @pytest.mark.parametrize("text", ["5,000 Adult, Free for Paed", "Adult 5,000, free for children"])
    def test_adult_and_free_paediatric_on_one_line(self, text):
        variants = expand_price_variants(text, "CONSULTATION")
        assert [(v.price, v.tier) for v in variants] == [
            (Decimal("5000"), PriceTier.ADULT),
            (Decimal("0"), PriceTier.PAEDIATRIC),
        ]

    def test_untiered_amount_kept_beside_free_paediatric_note(self):
        variants = expand_price_variants("5,000 (free for children)")
        assert [(v.price, v.tier) for v in variants] == [
            (Decimal("0"), PriceTier.PAEDIATRIC),
            (Decimal("5000"), None),
        ]

    def test_adult_and_paediatric_on_separate_lines(self):
        variants = expand_price_variants("5,000 Adult\n\n3,000 Paed.", "AUTOMATED IOP")
        assert [(v.price, v.tier) for v in variants] == [
            (Decimal("5000"), PriceTier.ADULT),
            (Decimal("3000"), PriceTier.PAEDIATRIC),
        ]

    def test_total_collapses_to_one_variant_with_breakdown(self):
        variants = expand_price_variants("Consultation 2,000\nDrugs 1,500\nTOTAL 3,500")
        assert len(variants) == 1
        assert variants[0].price == Decimal("3500")
        assert [item.label for item in variants[0].breakdown] == ["Consultation", "Drugs"]

    def test_total_after_currency_sign_collapses_breakdown(self):
        variants = expand_price_variants("Consultation 2,000\nDrugs 1,500\nTOTAL ₦3,500", "DELIVERY PACKAGE")
        assert len(variants) == 1
        assert variants[0].price == Decimal("3500")
        assert [item.amount for item in variants[0].breakdown] == [Decimal("2000"), Decimal("1500")]

    def test_unit_and_qualifier_attached(self):
        variants = expand_price_variants("N10,000 per day (depending on market value)")
        assert len(variants) == 1
        assert variants[0].price == Decimal("10000")
        assert variants[0].unit == PriceUnit.PER_DAY
        assert variants[0].qualifier == "depending on market value"

    def test_unit_from_description(self):
        variants = expand_price_variants("2,500", "OXYGEN PER HOUR")
        assert variants[0].unit == PriceUnit.PER_HOUR

    def test_free_only(self):
        variants = expand_price_variants("Free")
        assert [(v.price, v.tier) for v in variants] == [(Decimal("0"), PriceTier.FREE)]

    def test_bare_zero_is_not_a_price(self):
        assert expand_price_variants("0") == []

    def test_no_number_no_variants(self):
        assert expand_price_variants("see pharmacy") == []
        assert expand_price_variants("   ") == []

    def test_untiered_numbers_each_become_variants(self):
        variants = expand_price_variants("5,000 / 10,000")
        assert [v.price for v in variants] == [Decimal("5000"), Decimal("10000")]

    def test_duplicate_amounts_deduplicated(self):
        variants = expand_price_variants("5,000\n5,000")
        assert len(variants) == 1

    def test_age_label_not_parsed_as_price(self):
        variants = expand_price_variants("18YRS ABOVE 20,000")
        assert [v.price for v in variants] == [Decimal("20000")]


class TestAreaHierarchy:

    @pytest.mark.parametrize("value,expected", [
        ("DENTAL UNIT: ORAL AND MAXILLOFACIAL SURGERY",
         AreaHierarchy("DENTAL UNIT", "ORAL AND MAXILLOFACIAL SURGERY")),
        ("VIP SERVICES (ACCELERATED CARE)", AreaHierarchy("VIP SERVICES", "ACCELERATED CARE")),
        ("AMBULANCE RATE", AreaHierarchy("AMBULANCE RATE")),
        (": ORPHAN", AreaHierarchy(": ORPHAN")),
        ("WARD:", AreaHierarchy("WARD:")),
    ])
    def test_parse_area_hierarchy(self, value, expected):
        assert parse_area_hierarchy(value) == expected
