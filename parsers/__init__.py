"""
File and row parsers for fitment imports.
"""

from parsers.fitment_file_parser import (
    parse_fitment_file,
    validate_upload,
    validate_headers,
    ensure_valid_headers,
    build_sample_template,
    ParsedFitmentFile,
)
from parsers.row_normalizer import (
    build_header_map,
    normalize_row,
    HeaderColumn,
    NormalizedRow,
)

__all__ = [
    "parse_fitment_file",
    "validate_upload",
    "validate_headers",
    "ensure_valid_headers",
    "build_sample_template",
    "ParsedFitmentFile",
    "build_header_map",
    "normalize_row",
    "HeaderColumn",
    "NormalizedRow",
]
