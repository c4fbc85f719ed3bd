"""
Row normalizer for fitment imports.

Turns one spreadsheet row into the fitment values, tag and SKU list sent
to the upsert RPC. The last column always holds the SKUs; every other
column is a fitment field named by its header.

Example:
    headers = ["Year", "Make", "SKU"]
    row     = ["2022", "Toyota", "A1,A2"]
    →  values = [{year: 2022}, {make: Toyota}], tags = ["2022-toyota"], skus = ["A1", "A2"]
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence
import structlog

from exceptions import RowRejectedError
from models.fitment import FitmentValue
from utils.text_utils import clean_cell, slugify, split_skus

logger = structlog.get_logger(__name__)

INVALID_ROW_STRUCTURE = "Invalid row structure"
NO_SKUS_FOUND = "No SKUs found"
NO_VALID_TAGS = "No valid tags generated"


@dataclass(frozen=True)
class HeaderColumn:
    """One header cell and its field slug."""
    original: str
    slug: str


@dataclass
class NormalizedRow:
    """Row ready for the fitment upsert."""
    values: list[FitmentValue] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    skus: list[str] = field(default_factory=list)


def build_header_map(headers: Sequence[Optional[str]]) -> tuple[HeaderColumn, ...]:
    """
    Slugify every header once per job.

    The SKU column is kept in the mapping so indexes line up with row cells;
    normalize_row() never reads its slug.
    """
    return tuple(
        HeaderColumn(original=h or "", slug=slugify(h or ""))
        for h in headers
    )


def build_slugified_tags(values: list[FitmentValue]) -> list[str]:
    """
    Join all values with a space and slugify the result as one tag.

    Returns an empty list when no value survives.
    """
    parts = [v.value.strip() for v in values if v.value and v.value.strip()]
    if not parts:
        return []
    tag = slugify(" ".join(parts))
    return [tag] if tag else []


def normalize_row(
    header_map: Sequence[HeaderColumn],
    row: Optional[Sequence[Optional[str]]],
) -> NormalizedRow:
    """
    Normalize a single row.

    Checks run in this order, first failure wins:
    1. Row shorter than the header list → "Invalid row structure"
    2. Empty SKU column → "No SKUs found"
    3. No fitment values → "No valid tags generated"

    Args:
        header_map: Output of build_header_map()
        row: Raw cells, SKU column last

    Returns:
        NormalizedRow

    Raises:
        RowRejectedError: With one of the messages above
    """
    column_count = len(header_map)

    if not isinstance(row, (list, tuple)) or len(row) < column_count:
        raise RowRejectedError(INVALID_ROW_STRUCTURE, row=list(row) if isinstance(row, (list, tuple)) else None)

    values = []
    for index, header in enumerate(header_map[:-1]):
        value = clean_cell(row[index])
        if value and header.slug:
            values.append(FitmentValue(field_slug=header.slug, value=value))

    skus = split_skus(row[column_count - 1])
    if not skus:
        logger.warning("row_rejected", reason=NO_SKUS_FOUND, row=list(row))
        raise RowRejectedError(NO_SKUS_FOUND, row=list(row))

    tags = build_slugified_tags(values)
    if not tags:
        logger.warning("row_rejected", reason=NO_VALID_TAGS, row=list(row))
        raise RowRejectedError(NO_VALID_TAGS, row=list(row))

    return NormalizedRow(values=values, tags=tags, skus=skus)
