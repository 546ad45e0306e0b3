"""Pytest configuration and fixtures for test suite.

Provides:
- Python path setup (so the package imports without installation)
- Basic environment variable defaults
- Factories writing sample CSV/DOCX/XLSX price lists into tmp_path
- A generated hospital export with tiers, TOTAL breakdowns and multi-line cells
"""
import csv
import os
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pytest

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LLM_ENABLED", "false")
os.environ.setdefault("CACHE_BACKEND", "memory")

from pricelist_ingestion.services.llm.client import MockLLMClient  # noqa: E402

LASUTH_TITLE = "LAGOS STATE UNIVERSITY TEACHING HOSPITAL"

HOSPITAL_AREAS = (
    "ACCIDENT AND EMERGENCY",
    "DENTAL UNIT: ORAL AND MAXILLOFACIAL SURGERY",
    "RADIOLOGY",
    "VIP SERVICES (ACCELERATED CARE)",
    "LABORATORY SERVICES",
    "OBSTETRICS AND GYNAECOLOGY",
    "PHYSIOTHERAPY",
)

PROCEDURE_NAMES = (
    "CONSULTATION", "ADMISSION", "WOUND DRESSING", "BLOOD TRANSFUSION",
    "CHEST X-RAY", "ABDOMINAL ULTRASOUND", "TOOTH EXTRACTION", "SCALING AND POLISHING",
    "ANTENATAL BOOKING", "NORMAL DELIVERY", "CATARACT SURGERY", "TONSILLECTOMY",
    "CIRCUMCISION", "PLASTER OF PARIS APPLICATION", "AMBULANCE SERVICE", "OXYGEN THERAPY",
    "MEDICAL REPORT", "URINE CULTURE", "PHYSIOTHERAPY SESSION", "DIETARY COUNSELLING",
    "ICU BED",
)

PROCEDURE_QUALIFIERS = (
    "ROUTINE", "URGENT", "REVIEW", "FOLLOW UP", "SPECIALIST", "RESIDENT",
    "WEEKEND", "NIGHT", "PRIVATE WING", "GENERAL WARD", "TEACHING CLINIC",
    "OUTREACH", "STANDARD", "EXTENDED", "BASIC", "ADVANCED", "PRIMARY",
    "SECONDARY", "TERTIARY", "COMPREHENSIVE",
)

# Price cell templates and the number of records each yields.
PRICE_TEMPLATES = (
    ("5,000", 1),
    ("5,000 Adult only\nFree for Paed.", 2),
    ("Consultation 2,000\nDrugs 1,500\nTOTAL 3,500", 1),
    ("N10,000 per day (depending on market value)", 1),
    ("Adult 8,000, Paed 4,000", 2),
)

HOSPITAL_ROW_COUNT = 420


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Set up basic test environment variables before any tests run."""
    os.environ.setdefault("PARSER_DEFAULT_CURRENCY", "NGN")
    yield


def _write_delimited(path: Path, rows: Sequence[Sequence[str]], quote_all: bool = True) -> Path:
    with open(path, "w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(
            handle,
            quoting=csv.QUOTE_ALL if quote_all else csv.QUOTE_MINIMAL,
            lineterminator="\n",
        )
        for row in rows:
            writer.writerow(row)
    return path


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing rows to ``tmp_path/<name>`` as fully quoted CSV."""

    def _write(name: str, rows: Sequence[Sequence[str]], quote_all: bool = True) -> Path:
        return _write_delimited(tmp_path / name, rows, quote_all)

    return _write


@pytest.fixture
def write_docx(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing title paragraphs plus one table to a .docx file."""
    from docx import Document

    def _write(name: str, rows: Sequence[Sequence[str]], titles: Optional[List[str]] = None) -> Path:
        document = Document()
        for title in titles or []:
            document.add_paragraph(title)
        width = max(len(row) for row in rows)
        table = document.add_table(rows=len(rows), cols=width)
        for row_index, row in enumerate(rows):
            for col_index, value in enumerate(row):
                table.cell(row_index, col_index).text = value
        path = tmp_path / name
        document.save(str(path))
        return path

    return _write


@pytest.fixture
def write_xlsx(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing rows to the first sheet of an .xlsx workbook."""
    import pandas as pd

    def _write(name: str, rows: Sequence[Sequence[object]]) -> Path:
        path = tmp_path / name
        pd.DataFrame(list(rows)).to_excel(path, header=False, index=False, engine="openpyxl")
        return path

    return _write


def build_hospital_rows(row_count: int = HOSPITAL_ROW_COUNT) -> List[List[str]]:
    """Columnar hospital export: titles, header, areas, category rows, blanks."""
    rows: List[List[str]] = [
        [LASUTH_TITLE, "", "", ""],
        ["PRICE LIST 2024", "", "", ""],
        ["S/N", "AREA", "PROCEDURES", "PRICE (N)"],
    ]
    for index in range(row_count):
        if index % 60 == 0:
            area = HOSPITAL_AREAS[(index // 60) % len(HOSPITAL_AREAS)]
            rows.append(["", area, "SPECIAL PROCEDURES:", ""])
        name = PROCEDURE_NAMES[index % len(PROCEDURE_NAMES)]
        qualifier = PROCEDURE_QUALIFIERS[(index // len(PROCEDURE_NAMES)) % len(PROCEDURE_QUALIFIERS)]
        price_text, _ = PRICE_TEMPLATES[index % len(PRICE_TEMPLATES)]
        area = HOSPITAL_AREAS[(index // 60) % len(HOSPITAL_AREAS)]
        rows.append([str(index + 1), area, f"{name} {qualifier}", price_text])
        if index % 50 == 49:
            rows.append([])
    return rows


def expected_hospital_record_count(row_count: int = HOSPITAL_ROW_COUNT) -> int:
    return sum(PRICE_TEMPLATES[index % len(PRICE_TEMPLATES)][1] for index in range(row_count))


@pytest.fixture
def hospital_rows() -> List[List[str]]:
    return build_hospital_rows()


@pytest.fixture
def hospital_export_csv(tmp_path: Path, hospital_rows: List[List[str]]) -> Path:
    """LASUTH-style export with 420 priced rows (588 expected records)."""
    return _write_delimited(tmp_path / "NEW LASUTH PRICE LIST (SERVICES).csv", hospital_rows)


@pytest.fixture
def simple_price_list_csv(write_csv) -> Path:
    return write_csv(
        "randle_general_hospital.csv",
        [
            ["RANDLE GENERAL HOSPITAL", "", ""],
            ["S/N", "DESCRIPTION", "AMOUNT"],
            ["1", "CONSULTATION", "2,000"],
            ["2", "FULL BLOOD COUNT", "3,500"],
            ["3", "CHEST X-RAY", "8,000"],
        ],
    )


VALID_SUMMARY_RESPONSE = """{
  "facilityName": "Randle General Hospital",
  "currency": "NGN",
  "effectiveDate": "2024-01-01",
  "items": [
    {"description": "Consultation", "price": 2000, "unit": null, "tier": null,
     "category": null, "notes": null, "rawRow": "1 | CONSULTATION | 2,000"},
    {"description": "Full Blood Count", "price": "₦3,500.00", "unit": null, "tier": "adult",
     "category": "Laboratory", "notes": "fasting", "rawRow": null},
    {"description": "Antenatal Booking", "price": 0, "unit": null, "tier": null,
     "category": null, "notes": null, "rawRow": null}
  ],
  "documentMetadata": {"sourceFile": "randle_general_hospital.csv",
                       "extractedAt": "2024-01-01T00:00:00+00:00",
                       "model": "mock", "tokensUsed": null, "confidence": 0.9, "warnings": null}
}"""


@pytest.fixture
def valid_summary_response() -> str:
    return VALID_SUMMARY_RESPONSE


@pytest.fixture
def mock_llm_client() -> MockLLMClient:
    """Mock client answering every prompt with a valid summary."""
    return MockLLMClient(default_response=VALID_SUMMARY_RESPONSE)
