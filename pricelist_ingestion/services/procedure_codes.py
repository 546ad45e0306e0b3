"""Deterministic procedure code generation."""

import re
from typing import Optional

from pricelist_ingestion.config import parser_settings

_NON_ALNUM_RUN_RE = re.compile(r"[^A-Z0-9]+")

FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193
HASH_LENGTH = 8


def fnv1a_32(value: str) -> str:
    """32-bit FNV-1a hash as 8 lowercase hex digits."""
    digest = FNV_OFFSET_BASIS
    for char in value:
        digest ^= ord(char)
        digest = (digest * FNV_PRIME) & 0xFFFFFFFF
    return f"{digest:0{HASH_LENGTH}x}"


def procedure_slug(description: str) -> str:
    return _NON_ALNUM_RUN_RE.sub("_", (description or "").upper()).strip("_")


def build_procedure_code(description: str, index: int, max_length: Optional[int] = None) -> str:
    """Build a procedure code from a description.

    Slugs that fit in ``max_length`` are returned unchanged ("PAD" stays
    "PAD"). Longer slugs keep a prefix and end in a hash of the full slug,
    so two descriptions sharing a long common prefix still get distinct
    codes. An empty slug falls back to ``ITEM_<index + 1>``.
    """
    limit = max_length or parser_settings.procedure_code_max_length
    slug = procedure_slug(description)
    if not slug:
        return f"ITEM_{index + 1}"
    if len(slug) <= limit:
        return slug
    prefix = slug[:limit - HASH_LENGTH - 1].rstrip("_")
    return f"{prefix}_{fnv1a_32(slug)}"
