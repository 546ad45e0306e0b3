"""Tests for the grouped (hierarchical) parser of headerless price lists."""

from decimal import Decimal

import pytest

from pricelist_ingestion.models.parse_context import ParseContext
from pricelist_ingestion.models.price_record import PriceTier
from pricelist_ingestion.parsers.hierarchical import (
    extract_cell_price,
    is_skip_row,
    looks_grouped,
    section_name,
    tier_from_label,
)
from pricelist_ingestion.parsers.price_list_parser import rows_to_price_records

CONTEXT = ParseContext(facility_name="General Hospital Ijede", source_file="ijede.csv")


def _parse(rows):
    return rows_to_price_records(rows, CONTEXT)


class TestGroupHelpers:

    @pytest.mark.parametrize("label,expected_tier", [
        ("0-12YRS", PriceTier.PAEDIATRIC),
        ("18YRS ABOVE", PriceTier.ADULT),
        ("13-17YRS", PriceTier.PAEDIATRIC),
        ("18-60YRS", PriceTier.ADULT),
        ("ADULT", PriceTier.ADULT),
    ])
    def test_tier_from_label(self, label, expected_tier):
        tier, qualifier = tier_from_label(label)
        assert tier is expected_tier
        assert qualifier == label

    def test_non_population_label_becomes_qualifier(self):
        assert tier_from_label("COMPLEX") == (None, "complex")

    @pytest.mark.parametrize("cell,expected", [
        (" 130,000.00 ", Decimal("130000.00")),
        ("#5,000", Decimal("5000")),
        ("0-12YRS", Decimal("0")),
        ("SIMPLE", Decimal("0")),
        ("per day", Decimal("0")),
        ("", Decimal("0")),
    ])
    def test_extract_cell_price(self, cell, expected):
        assert extract_cell_price(cell) == expected

    def test_section_names(self):
        assert section_name(["", "NEW PRICE LIST FOR RADIOLOGY SECTION"]) == "RADIOLOGY"
        assert section_name(["", "PAEDIATRICS WARD"]) == "PAEDIATRICS"
        assert section_name(["", "SCAN:"]) == "SCAN"
        assert section_name(["1", "CONSULTATION"]) is None

    @pytest.mark.parametrize("row", [
        ["YEAR 2024 PRICE LIST"],
        ["", "SIGN BY: MEDICAL DIRECTOR"],
        ["", "NOTE: prices subject to review"],
        ["", "GENERAL HOSPITAL IJEDE PRICE LIST"],
    ])
    def test_skip_rows(self, row):
        assert is_skip_row(row)

    def test_looks_grouped(self):
        rows = [
            ["1", "CONSULTATION", "2,000", ""],
            ["2", "LABORATORY TESTS", "", ""],
            ["", "FULL BLOOD COUNT", "3,000", ""],
        ]
        assert looks_grouped(rows)
        assert not looks_grouped([["CONSULTATION", "2,000"], ["SCAN", "5,000"]])


class TestGroupedParsing:

    def test_surgical_components_collapse_to_one_record(self):
        rows = [
            ["16", "MYOMECTOMY", "", ""],
            ["", "SURGICAL PACK", "130,000.00", ""],
            ["", "OPERATION FEE", "85,000.00", ""],
            ["", "ANAESTHESIA", "150,000.00", "365,000.00"],
            ["17", "CONSULTATION", "2,000", ""],
        ]
        records = _parse(rows)
        myomectomy = [r for r in records if r.procedure_description == "MYOMECTOMY"]
        assert len(myomectomy) == 1
        record = myomectomy[0]
        assert record.price == Decimal("365000.00")
        assert [item.label for item in record.metadata.breakdown] == [
            "SURGICAL PACK", "OPERATION FEE", "ANAESTHESIA",
        ]
        assert not any(r.procedure_description == "SURGICAL PACK" for r in records)

    def test_explicit_total_row(self):
        rows = [
            ["3", "EMERGENCY ADMISSION FEE AT MESD", "", ""],
            ["", "BED", "5,000", ""],
            ["", "DEPOSIT", "198,000", ""],
            ["", "TOTAL", "203,000", ""],
            ["4", "ECG", "4,000", ""],
        ]
        records = _parse(rows)
        admission = [r for r in records if r.procedure_description == "EMERGENCY ADMISSION FEE AT MESD"]
        assert [r.price for r in admission] == [Decimal("203000")]
        assert len(admission[0].metadata.breakdown) == 2

    def test_simple_and_complex_totals(self):
        rows = [
            ["5", "HERNIORRHAPHY", "", ""],
            ["", "SURGICAL PACK", "50,000", "80,000"],
            ["", "TOTAL", "100,000", "150,000"],
            ["6", "ECG", "4,000", ""],
        ]
        records = _parse(rows)
        hernia = sorted(
            (r for r in records if r.procedure_description == "HERNIORRHAPHY"),
            key=lambda r: r.price,
        )
        assert [r.price for r in hernia] == [Decimal("100000"), Decimal("150000")]
        assert [r.metadata.price_qualifier for r in hernia] == ["simple", "complex"]

    def test_plain_group_becomes_category(self):
        rows = [
            ["18", "LABORATORY TESTS", "", ""],
            ["", "FULL BLOOD COUNT", "3,000", ""],
            ["", "MALARIA PARASITE", "1,500", ""],
            ["19", "ECG", "4,000", ""],
        ]
        records = _parse(rows)
        by_description = {r.procedure_description: r for r in records}
        assert by_description["FULL BLOOD COUNT"].procedure_category == "LABORATORY TESTS"
        assert by_description["MALARIA PARASITE"].price == Decimal("1500")
        assert not any(r.procedure_description == "LABORATORY TESTS" for r in records)

    def test_tier_labelled_parent(self):
        rows = [
            ["7", "CIRCUMCISION", "0-12YRS", "18YRS ABOVE"],
            ["", "SURGICAL PACK", "10,000", "20,000"],
            ["", "TOTAL", "25,000", "45,000"],
            ["8", "ECG", "4,000", ""],
        ]
        records = _parse(rows)
        circumcision = {r.metadata.price_tier: r.price for r in records if r.procedure_description == "CIRCUMCISION"}
        assert circumcision == {
            PriceTier.PAEDIATRIC.value: Decimal("25000"),
            PriceTier.ADULT.value: Decimal("45000"),
        }

    def test_sections_set_area(self):
        rows = [
            ["", "NEW PRICE LIST FOR RADIOLOGY SECTION", "", ""],
            ["1", "CHEST X-RAY", "8,000", ""],
            ["2", "ABDOMINAL ULTRASOUND", "10,000", ""],
        ]
        records = _parse(rows)
        assert {r.metadata.area for r in records} == {"RADIOLOGY"}
        assert {r.procedure_category for r in records} == {"RADIOLOGY"}

    def test_skip_rows_produce_no_records(self):
        rows = [
            ["", "GENERAL HOSPITAL IJEDE PRICE LIST", "", ""],
            ["1", "CONSULTATION", "2,000", ""],
            ["2", "ECG", "4,000", ""],
            ["", "SIGN BY: MEDICAL DIRECTOR", "", ""],
        ]
        records = _parse(rows)
        assert sorted(r.procedure_description for r in records) == ["CONSULTATION", "ECG"]
