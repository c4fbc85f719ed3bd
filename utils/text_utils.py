"""
Text utilities for turning spreadsheet text into tag-safe handles.

The storefront widget derives the same handles from the fitment values, so
slugify() must stay byte-compatible with it:
- "Toyota Camry"   → "toyota-camry"
- " USA-Model 2022 " → "usa-model-2022"
- "O'Reilly \"XL\""  → "oreilly-xl"
"""

import re
from typing import Any, Optional

_QUOTES = re.compile(r"['\"]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: Optional[str]) -> str:
    """
    Convert free text to a lowercase hyphenated handle.

    Quote characters are removed, every run of other non-alphanumeric
    characters becomes one hyphen, and edge hyphens are trimmed.
    slugify(slugify(x)) == slugify(x) for every x.

    Args:
        text: Raw text (header, cell value, joined values)

    Returns:
        Handle string, or "" for empty/non-string input
    """
    if not text or not isinstance(text, str):
        return ""

    slug = _QUOTES.sub("", text.lower().strip())
    slug = _NON_ALNUM.sub("-", slug)
    return slug.strip("-")


def clean_cell(value: Any) -> str:
    """
    Normalize a spreadsheet cell to a trimmed string.

    None becomes "", numbers are stringified.
    """
    if value is None:
        return ""
    return str(value).strip()


def split_skus(cell: Any) -> list[str]:
    """
    Split a comma-separated SKU cell.

    "A1, A2,,A3 " → ["A1", "A2", "A3"]
    """
    return [sku.strip() for sku in clean_cell(cell).split(",") if sku.strip()]


def dedupe_preserving_order(items: list[str]) -> list[str]:
    """Trim items, drop empties and duplicates, keep first occurrence order."""
    seen: set[str] = set()
    result = []
    for item in items:
        cleaned = clean_cell(item)
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result
