"""
Fitment file parser.

Reads an uploaded CSV/XLSX/XLS fitment sheet into a header row and string
rows, and validates the header row against the store's fitment fields.

Expected layout: one column per fitment field (Year, Make, Model, ...)
followed by a final SKU column holding comma-separated SKUs.
"""

import csv
from dataclasses import dataclass, field
from io import BytesIO, StringIO
from pathlib import Path
from typing import Optional, Union
import structlog

import pandas as pd

from exceptions import FileParseError, MissingColumnsError
from models.fitment import FitmentField

logger = structlog.get_logger(__name__)

SUPPORTED_EXTENSIONS = {".csv", ".xlsx", ".xls"}
SKU_HEADER = "SKU"
CSV_ENCODINGS = ["utf-8-sig", "latin-1", "cp1252"]


@dataclass
class ParsedFitmentFile:
    """Header row plus data rows, every cell a trimmed string."""
    headers: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)


def file_extension(filename: str) -> str:
    """Lowercased extension including the dot ("" if none)."""
    return Path(filename or "").suffix.lower()


def validate_upload(filename: str, size: int, max_bytes: int) -> None:
    """
    Check extension and size before parsing.

    Raises:
        FileParseError: Listing every problem found
    """
    problems = []
    if file_extension(filename) not in SUPPORTED_EXTENSIONS:
        problems.append("Please upload a CSV or XLSX file.")
    if size == 0:
        problems.append("File is empty.")
    if size > max_bytes:
        problems.append(f"File size exceeds {max_bytes // (1024 * 1024)}MB limit.")

    if problems:
        raise FileParseError(
            message="Invalid upload",
            details={"filename": filename, "problems": problems}
        )


def _load_csv(content: bytes) -> pd.DataFrame:
    """Load CSV bytes, trying common encodings."""
    last_error: Optional[Exception] = None
    for enc in CSV_ENCODINGS:
        try:
            return pd.read_csv(
                BytesIO(content),
                header=None,
                dtype=str,
                encoding=enc,
                keep_default_na=False,
                skip_blank_lines=True,
            )
        except UnicodeDecodeError as e:
            last_error = e
            continue
    raise last_error or FileParseError("Could not decode CSV file")


def _load_excel(content: bytes, extension: str) -> pd.DataFrame:
    """Load the first sheet of an Excel workbook."""
    engine = "xlrd" if extension == ".xls" else "openpyxl"
    return pd.read_excel(BytesIO(content), sheet_name=0, header=None, dtype=str, engine=engine)


def parse_fitment_file(
    file: Union[bytes, BytesIO],
    filename: str,
) -> ParsedFitmentFile:
    """
    Parse a fitment upload.

    The first non-blank row is the header row. Fully blank rows are dropped.

    Args:
        file: Raw bytes or BytesIO of the upload
        filename: Original filename (selects CSV vs Excel)

    Returns:
        ParsedFitmentFile

    Raises:
        FileParseError: If the file cannot be read or has no header row
    """
    content = file.getvalue() if isinstance(file, BytesIO) else file
    extension = file_extension(filename)
    logger.info("parsing_fitment_file", filename=filename, extension=extension, size=len(content))

    try:
        if extension == ".csv":
            df = _load_csv(content)
        elif extension in (".xlsx", ".xls"):
            df = _load_excel(content, extension)
        else:
            raise FileParseError(
                message="Unsupported file type",
                details={"filename": filename, "supported": sorted(SUPPORTED_EXTENSIONS)}
            )
    except FileParseError:
        raise
    except Exception as e:
        logger.error("fitment_file_read_failed", filename=filename, error=str(e))
        raise FileParseError(
            message="Failed to parse file. Please check file format.",
            details={"filename": filename, "original_error": str(e)}
        )

    df = df.fillna("")
    records = [
        [str(cell).strip() for cell in row]
        for row in df.itertuples(index=False, name=None)
    ]
    records = [row for row in records if any(row)]

    if not records:
        raise FileParseError(message="File has no header row", details={"filename": filename})

    headers, rows = records[0], records[1:]
    logger.info("fitment_file_parsed", filename=filename, columns=len(headers), rows=len(rows))
    return ParsedFitmentFile(headers=headers, rows=rows)


def validate_headers(headers: list[str], fitment_fields: list[FitmentField]) -> list[str]:
    """
    Check the header row against the store's fitment fields.

    Every required field label must appear (case-insensitive) and the last
    column must be SKU.

    Returns:
        List of problems, empty if the header row is usable
    """
    problems = []
    normalized = [h.strip().lower() for h in headers]

    for fitment_field in fitment_fields:
        if fitment_field.required and fitment_field.label.strip().lower() not in normalized:
            problems.append(f"Missing required column: {fitment_field.label}")

    if not normalized or normalized[-1] != SKU_HEADER.lower():
        problems.append("SKU column is required and must be the last column")

    return problems


def ensure_valid_headers(headers: list[str], fitment_fields: list[FitmentField]) -> None:
    """
    Raise if validate_headers() finds problems.

    Raises:
        MissingColumnsError
    """
    problems = validate_headers(headers, fitment_fields)
    if problems:
        logger.warning("fitment_header_validation_failed", problems=problems)
        raise MissingColumnsError(problems)


def _sample_value(fitment_field: FitmentField) -> str:
    if fitment_field.field_type == "int":
        return "2020-2023"
    if fitment_field.field_type == "string":
        if fitment_field.label == "Make":
            return "Ford"
        if fitment_field.label == "Model":
            return "F-150"
        return "XLT"
    if fitment_field.field_type == "boolean":
        return "true"
    return "Sample"


def build_sample_template(fitment_fields: list[FitmentField]) -> str:
    """
    CSV template for a store: field labels + SKU, and one example row.

    Every cell is double-quoted.
    """
    ordered = sorted(fitment_fields, key=lambda f: f.sort_order)
    headers = [f.label for f in ordered] + [SKU_HEADER]
    sample = [_sample_value(f) for f in ordered] + ["12345, 67890"]

    output = StringIO()
    pd.DataFrame([sample], columns=headers).to_csv(
        output,
        index=False,
        quoting=csv.QUOTE_ALL,
        lineterminator="\n",
    )
    return output.getvalue()
