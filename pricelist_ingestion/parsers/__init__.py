"""Price list parsing: container extraction through record assembly."""
from pricelist_ingestion.parsers.containers import (
    ContainerType,
    detect_container_type,
    extract_raw_rows,
    extract_rows,
)
from pricelist_ingestion.parsers.price_list_parser import (
    DocumentLayout,
    parse_price_list,
    rows_to_price_records,
)

__all__ = [
    "ContainerType",
    "detect_container_type",
    "extract_raw_rows",
    "extract_rows",
    "DocumentLayout",
    "parse_price_list",
    "rows_to_price_records",
]
