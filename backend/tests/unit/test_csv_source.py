"""
Unit Tests for CSV lead import parsing
"""
import pytest

from powerdialer.core.exceptions import InvalidArgumentError
from powerdialer.infrastructure.sources.csv_source import CsvLeadSource, decode_csv


class TestDecode:
    """Tests for decode_csv"""

    def test_utf8_bom_stripped(self):
        assert decode_csv("\ufeffPhone\n".encode("utf-8")) == "Phone\n"

    def test_latin1_fallback(self):
        content = "Business,Phone\nCafé Roma,9195550100\n".encode("latin-1")
        assert "Café Roma" in decode_csv(content)


class TestFetchRows:
    """Tests for header mapping and row extraction"""

    def test_maps_common_headers(self):
        source = CsvLeadSource(
            "State,Company Name,Phone Number,Owner,First Name,Website,Ignored\n"
            "NC,Acme Roofing,(919) 555-0100,Jane Doe,Jane,acme.example,x\n"
        )

        rows = source.fetch_rows()

        assert len(rows) == 1
        row = rows[0]
        assert row.region == "NC"
        assert row.business_name == "Acme Roofing"
        assert row.phone_number == "(919) 555-0100"
        assert row.owner_name == "Jane Doe"
        assert row.first_name == "Jane"
        assert row.website == "acme.example"

    def test_headers_case_and_whitespace_insensitive(self):
        rows = CsvLeadSource("  PHONE  ,ST\n9195550100,tx\n").fetch_rows()
        assert rows[0].phone_number == "9195550100"
        assert rows[0].region == "tx"

    def test_first_matching_column_wins(self):
        rows = CsvLeadSource("Phone,Mobile\n9195550100,7045550199\n").fetch_rows()
        assert rows[0].phone_number == "9195550100"

    def test_blank_cells_become_none_and_empty_rows_skipped(self):
        rows = CsvLeadSource("Phone,Business\n9195550100,  \n,\n7045550199,Queen City\n").fetch_rows()

        assert len(rows) == 2
        assert rows[0].business_name is None
        assert rows[1].business_name == "Queen City"

    def test_missing_phone_column(self):
        with pytest.raises(InvalidArgumentError, match="phone column. Found: Business, State"):
            CsvLeadSource("Business,State\nAcme,NC\n").fetch_rows()

    def test_empty_file(self):
        with pytest.raises(InvalidArgumentError):
            CsvLeadSource("").fetch_rows()

    def test_from_bytes_keeps_batch_name(self):
        source = CsvLeadSource.from_bytes(b"Phone\n9195550100\n", batch_name="csv:leads.csv")
        assert source.batch_name == "csv:leads.csv"
        assert source.requires_business_name is False
        assert len(source.fetch_rows()) == 1
