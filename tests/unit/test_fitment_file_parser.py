"""
Unit tests for the fitment file parser.

Tests CSV/XLSX reading, upload checks, header validation and the sample
template.
"""

from io import BytesIO
import pytest

import pandas as pd

from parsers.fitment_file_parser import (
    build_sample_template,
    ensure_valid_headers,
    file_extension,
    parse_fitment_file,
    validate_headers,
    validate_upload,
)
from models.fitment import FitmentField
from exceptions import FileParseError, MissingColumnsError

MB = 1024 * 1024


@pytest.fixture
def fitment_fields(sample_fitment_fields):
    return [FitmentField(**f) for f in sample_fitment_fields]


def make_xlsx(rows: list[list]) -> bytes:
    output = BytesIO()
    pd.DataFrame(rows).to_excel(output, index=False, header=False, engine="openpyxl")
    return output.getvalue()


# ===================
# UPLOAD CHECKS
# ===================

class TestValidateUpload:

    @pytest.mark.parametrize("filename,expected", [
        ("fitments.CSV", ".csv"),
        ("sheet.xlsx", ".xlsx"),
        ("noext", ""),
        ("", ""),
    ])
    def test_file_extension(self, filename, expected):
        assert file_extension(filename) == expected

    def test_accepts_csv(self):
        validate_upload("fitments.csv", 1024, 10 * MB)

    def test_rejects_unsupported_and_oversized(self):
        with pytest.raises(FileParseError) as exc:
            validate_upload("fitments.pdf", 11 * MB, 10 * MB)

        problems = exc.value.details["problems"]
        assert "Please upload a CSV or XLSX file." in problems
        assert "File size exceeds 10MB limit." in problems

    def test_rejects_empty(self):
        with pytest.raises(FileParseError) as exc:
            validate_upload("fitments.csv", 0, 10 * MB)

        assert exc.value.details["problems"] == ["File is empty."]


# ===================
# PARSING
# ===================

class TestParseFitmentFile:

    def test_parse_csv(self):
        content = b'Year,Make,Model,SKU\n2022,Toyota,Camry,"A1,A2"\n2021, Ford ,F-150,B1\n'

        parsed = parse_fitment_file(content, "fitments.csv")

        assert parsed.headers == ["Year", "Make", "Model", "SKU"]
        assert parsed.rows == [
            ["2022", "Toyota", "Camry", "A1,A2"],
            ["2021", "Ford", "F-150", "B1"],
        ]
        assert parsed.row_count == 2

    def test_parse_csv_keeps_empty_cells_as_strings(self):
        content = b"Year,Make,SKU\n,Toyota,A1\n"

        parsed = parse_fitment_file(BytesIO(content), "fitments.csv")

        assert parsed.rows == [["", "Toyota", "A1"]]

    def test_parse_csv_latin1(self):
        content = "Year,Make,SKU\n2020,Citroën,C1\n".encode("latin-1")

        parsed = parse_fitment_file(content, "fitments.csv")

        assert parsed.rows[0][1] == "Citroën"

    def test_parse_xlsx(self):
        content = make_xlsx([
            ["Year", "Make", "SKU"],
            [2022, "Toyota", "A1, A2"],
            [None, None, None],
            [2019, "Honda", "H9"],
        ])

        parsed = parse_fitment_file(content, "fitments.xlsx")

        assert parsed.headers == ["Year", "Make", "SKU"]
        assert parsed.rows == [["2022", "Toyota", "A1, A2"], ["2019", "Honda", "H9"]]

    def test_unsupported_extension(self):
        with pytest.raises(FileParseError) as exc:
            parse_fitment_file(b"whatever", "fitments.pdf")

        assert exc.value.message == "Unsupported file type"

    def test_corrupt_xlsx(self):
        with pytest.raises(FileParseError) as exc:
            parse_fitment_file(b"not really a workbook", "fitments.xlsx")

        assert exc.value.message == "Failed to parse file. Please check file format."

    def test_blank_file_has_no_header_row(self):
        with pytest.raises(FileParseError):
            parse_fitment_file(b"\n\n", "fitments.csv")


# ===================
# HEADER VALIDATION
# ===================

class TestValidateHeaders:

    def test_valid_headers(self, fitment_fields):
        assert validate_headers(["Year", "make", "Model", "SKU"], fitment_fields) == []

    def test_optional_field_may_be_missing(self, fitment_fields):
        assert validate_headers(["Year", "Make", "SKU"], fitment_fields) == []

    def test_missing_required_field(self, fitment_fields):
        problems = validate_headers(["Year", "Model", "SKU"], fitment_fields)
        assert problems == ["Missing required column: Make"]

    def test_sku_must_be_last(self, fitment_fields):
        problems = validate_headers(["SKU", "Year", "Make"], fitment_fields)
        assert problems == ["SKU column is required and must be the last column"]

    def test_ensure_valid_headers_raises(self, fitment_fields):
        with pytest.raises(MissingColumnsError) as exc:
            ensure_valid_headers(["Model"], fitment_fields)

        assert exc.value.details["problems"] == [
            "Missing required column: Year",
            "Missing required column: Make",
            "SKU column is required and must be the last column",
        ]


# ===================
# SAMPLE TEMPLATE
# ===================

class TestSampleTemplate:

    def test_template_follows_field_order(self, fitment_fields):
        template = build_sample_template(list(reversed(fitment_fields)))

        assert template == (
            '"Year","Make","Model","SKU"\n'
            '"2020-2023","Ford","F-150","12345, 67890"\n'
        )
