"""Decomposition of compound area strings into parent area and sub category."""

import re
from dataclasses import dataclass
from typing import Optional

_PARENTHETICAL_RE = re.compile(r"^(.+?)\s*\(([^)]+)\)\s*$")


@dataclass(frozen=True)
class AreaHierarchy:
    parent_area: str
    sub_category: Optional[str] = None


def parse_area_hierarchy(area_cell: str) -> AreaHierarchy:
    """Split "PARENT: CHILD" or "PARENT (CHILD)" into its two parts.

    The colon form is checked first and only applies when both sides are
    non-empty. Anything else is returned whole as the parent area.

    Examples:
        >>> parse_area_hierarchy("DENTAL UNIT: ORAL AND MAXILLOFACIAL SURGERY")
        AreaHierarchy(parent_area='DENTAL UNIT', sub_category='ORAL AND MAXILLOFACIAL SURGERY')
        >>> parse_area_hierarchy("VIP SERVICES (ACCELERATED CARE)")
        AreaHierarchy(parent_area='VIP SERVICES', sub_category='ACCELERATED CARE')
        >>> parse_area_hierarchy("AMBULANCE RATE")
        AreaHierarchy(parent_area='AMBULANCE RATE', sub_category=None)
    """
    colon_index = area_cell.find(":")
    if colon_index > 0:
        parent = area_cell[:colon_index].strip()
        child = area_cell[colon_index + 1:].strip()
        if parent and child:
            return AreaHierarchy(parent_area=parent, sub_category=child)

    match = _PARENTHETICAL_RE.match(area_cell)
    if match:
        return AreaHierarchy(parent_area=match.group(1).strip(), sub_category=match.group(2).strip())

    return AreaHierarchy(parent_area=area_cell)
