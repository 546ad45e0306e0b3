"""Ordered keyword rules for procedure tagging.

Every rule is evaluated independently against the description, procedure
code, category and area of a record; all matching rules contribute tags.
"""

import re
from dataclasses import dataclass
from typing import Pattern, Tuple


@dataclass(frozen=True)
class TagRule:
    id: str
    pattern: Pattern[str]
    tags: Tuple[str, ...]


def _rule(rule_id: str, pattern: str, *tags: str) -> TagRule:
    return TagRule(id=rule_id, pattern=re.compile(pattern, re.IGNORECASE), tags=tags)


TAG_RULES: Tuple[TagRule, ...] = (
    _rule(
        "obgyn",
        r"\b(antenatal|prenatal|postnatal|labou?r|delivery|c[-\s]?section|c/s|obstet|gyn|o&g|o/g)\b",
        "obstetrics_gynecology", "maternity",
    ),
    _rule("pediatrics", r"\b(paed|pediatric|paediatric|child|neonate|newborn|infant)\b", "pediatrics"),
    _rule("dental", r"\b(dental|tooth|dentist)\b", "dental"),
    _rule("imaging", r"\b(x[-\s]?ray|radiograph|ultrasound|scan|ct|mri|echo)\b", "imaging", "radiology"),
    _rule(
        "laboratory",
        r"\b(lab|laboratory|haematology|hematology|microbiology|pathology|urine|blood|culture)\b",
        "laboratory", "diagnostics",
    ),
    _rule(
        "surgery",
        r"\b(surgery|surgical|theatre|operation|operative|laparotomy|laparoscopy)\b",
        "surgery", "operating_theatre",
    ),
    _rule("anaesthesia", r"\b(anaesth|anesth|sedation)\b", "anesthesia"),
    _rule("inpatient", r"\b(ward|admission|accommodation|bed|inpatient)\b", "inpatient", "accommodation"),
    _rule("emergency", r"\b(emergency|casualty|accident|triage|observation)\b", "emergency"),
    _rule("ambulance", r"\b(ambulance)\b", "ambulance", "emergency"),
    _rule("oxygen", r"\b(oxygen)\b", "oxygen_therapy"),
    _rule("outpatient", r"\b(consultation|clinic|outpatient|opd)\b", "outpatient"),
    _rule(
        "administrative",
        r"\b(card|folder|registration|appointment|certificate|report|notification of birth"
        r"|police report|sick leave|maternity leave)\b",
        "administrative", "documentation",
    ),
    _rule("consumables", r"\b(consumable|pack|gown|pad|underlay|dressing)\b", "consumables"),
    _rule("physiotherapy", r"\b(physio|physiotherapy|rehab)\b", "physiotherapy", "rehabilitation"),
    _rule("pharmacy", r"\b(pharmacy|drug|medication)\b", "pharmacy"),
    _rule("blood_bank", r"\b(blood bank|transfusion)\b", "blood_bank"),
    _rule("icu", r"\b(icu|intensive care)\b", "critical_care", "icu"),
    _rule(
        "ophthalmology",
        r"\b(ophthal|ophthamol|cataract|glaucoma|retina|cornea|eyelid|lacrimal|orbital|pterygium"
        r"|iop|tonometry|refraction|eye)\b",
        "ophthalmology", "eye_care",
    ),
    _rule(
        "ent",
        r"\b(ent|tonsil|adenoid|septoplasty|rhinoplasty|mastoid|myringotomy|turbinect|laryngoscopy"
        r"|tracheostomy|ear\s*nose|otolaryngol)\b",
        "ent", "ear_nose_throat",
    ),
    _rule("urology", r"\b(urol|catheter|endourol|lithotrip|cystoscopy|prostat|circumcision)\b", "urology"),
    _rule("oncology", r"\b(oncol|chemo|chemotherapy|radiotherapy|cancer)\b", "oncology"),
    _rule("stroke", r"\b(stroke|cerebrovascular)\b", "stroke", "neurology"),
    _rule(
        "dermatology",
        r"\b(dermatol|skin biopsy|hyfrecation|cryotherapy|chemical peel)\b",
        "dermatology",
    ),
    _rule("dietary", r"\b(diet|dietary|nutrition|nutritional|feeding|meal)\b", "dietary", "nutrition"),
    _rule(
        "psychiatry",
        r"\b(psychiatr|psycholog|mental|electroconvulsive|ect|hypnotherapy)\b",
        "psychiatry", "mental_health",
    ),
    _rule("orthopaedics", r"\b(ortho|orthop|plaster of paris|fracture|pop)\b", "orthopaedics"),
    _rule(
        "endoscopy",
        r"\b(endoscop|colonoscop|polypectomy|peg tube|variceal band|phototherapy)\b",
        "endoscopy", "gastroenterology",
    ),
    _rule("eeg", r"\b(eeg|electroencephalogr)\b", "eeg", "neurology"),
    _rule("vip", r"\b(vip|accelerated care)\b", "vip", "premium_care"),
    _rule(
        "reports",
        r"\b(medical report|death certificate|police report|assault fee|adoption fee|notification of death)\b",
        "reports", "administrative",
    ),
    _rule(
        "sti_testing",
        r"\b(hiv|sti|std|vdrl|hepatitis|sexual\s*health|gonorrh|chlamydia|syphilis)\b",
        "sti_testing", "diagnostics",
    ),
)
