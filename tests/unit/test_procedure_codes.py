"""Tests for deterministic procedure codes."""

import pytest

from pricelist_ingestion.services.procedure_codes import build_procedure_code, fnv1a_32, procedure_slug


class TestFnv1a:

    def test_known_values(self):
        assert fnv1a_32("") == "811c9dc5"
        assert fnv1a_32("a") == "e40c292c"

    def test_fixed_width(self):
        assert len(fnv1a_32("PLASTER_OF_PARIS_APPLICATION")) == 8


class TestBuildProcedureCode:

    @pytest.mark.parametrize("description,expected", [
        ("Full Blood Count", "FULL_BLOOD_COUNT"),
        ("PAD", "PAD"),
        ("X-Ray (chest)", "X_RAY_CHEST"),
    ])
    def test_short_descriptions_are_slugs(self, description, expected):
        assert build_procedure_code(description, 0) == expected

    def test_empty_description_uses_row_index(self):
        assert build_procedure_code("  ", 4) == "ITEM_5"
        assert build_procedure_code("***", 0) == "ITEM_1"

    def test_long_descriptions_with_shared_prefix_stay_distinct(self):
        left = build_procedure_code("PLASTER OF PARIS APPLICATION ABOVE KNEE LEFT", 0)
        right = build_procedure_code("PLASTER OF PARIS APPLICATION ABOVE KNEE RIGHT", 0)
        assert left != right
        assert len(left) <= 32 and len(right) <= 32
        assert left.startswith("PLASTER_OF_PARIS_APPLIC")

    def test_deterministic(self):
        description = "EXAMINATION UNDER ANAESTHESIA AND BIOPSY"
        assert build_procedure_code(description, 0) == build_procedure_code(description, 99)

    def test_custom_max_length(self):
        code = build_procedure_code("ABCDEFGHIJKLMNOPQRSTUVWXYZ", 0, max_length=16)
        assert len(code) == 16
        assert code.startswith("ABCDEFG_")

    def test_slug_trims_separators(self):
        assert procedure_slug(" -- ecg / echo -- ") == "ECG_ECHO"
