"""Parsers turning VDC help-center pages into availability facts."""

from vdcregions.parsers.table import (
    is_grouping_token,
    parse_availability_table,
)
from vdcregions.parsers.tiered import (
    ADVANCED_UNAVAILABLE_MARKER,
    parse_tiered_availability,
)

__all__ = [
    "ADVANCED_UNAVAILABLE_MARKER",
    "is_grouping_token",
    "parse_availability_table",
    "parse_tiered_availability",
]
