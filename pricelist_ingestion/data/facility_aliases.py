"""Canonical facility table.

Each entry maps a canonical display name to the spellings seen in document
titles and file names, plus the curated tags (and their sources) attached
to every record of that facility. Built once at import, never mutated.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class FacilityAliasEntry:
    key: str
    canonical_name: str
    aliases: Tuple[str, ...]
    tags: Tuple[str, ...]
    sources: Tuple[str, ...]


FACILITY_ALIASES: Tuple[FacilityAliasEntry, ...] = (
    FacilityAliasEntry(
        key="lasuth",
        canonical_name="Lagos State University Teaching Hospital (LASUTH)",
        aliases=(
            "lagos state university teaching hospital",
            "lagos state university teaching hospital price list",
            "lasuth",
            "new lasuth",
        ),
        tags=(
            "teaching_hospital",
            "hospital",
            "lagos_state",
            "ikeja",
            "nigeria",
            "emergency",
        ),
        sources=("services.gphas.org",),
    ),
    FacilityAliasEntry(
        key="randle",
        canonical_name="Randle General Hospital",
        aliases=(
            "randle general hospital",
            "randle general hospital price list",
            "general hospital randle",
            "surulere general hospital",
        ),
        tags=(
            "general_hospital",
            "hospital",
            "lagos_state",
            "surulere",
            "nigeria",
            "emergency",
            "maternal_child_health",
            "dental",
            "medical",
            "surgical",
            "obstetrics_gynecology",
            "gynecology",
            "vct",
            "dots",
            "pediatrics",
            "pharmacy",
            "laboratory",
            "radiology",
            "blood_bank",
            "inpatient",
        ),
        sources=("lshsc.com.ng", "panafrican-med-journal.com"),
    ),
    FacilityAliasEntry(
        key="ijede",
        canonical_name="General Hospital Ijede",
        aliases=(
            "ijede general hospital",
            "general hospital ijede",
        ),
        tags=(
            "general_hospital",
            "hospital",
            "lagos_state",
            "ikorodu",
            "ijede",
            "nigeria",
        ),
        sources=("adekunlegoldfoundation.com",),
    ),
)
