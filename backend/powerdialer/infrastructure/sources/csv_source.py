"""
CSV Lead Source
Parses an uploaded CSV file into reconciliation rows
"""
import csv
import io
import logging
from typing import Dict, List, Optional

from powerdialer.core.exceptions import InvalidArgumentError
from powerdialer.domain.interfaces.lead_source import LeadSource
from powerdialer.domain.models.dialer_reports import ReconciliationRow

logger = logging.getLogger(__name__)

ENCODINGS = ("utf-8", "utf-8-sig", "latin-1", "cp1252")

# Lowercased header -> ReconciliationRow field
COLUMN_ALIASES: Dict[str, str] = {
    # Region
    "state": "region",
    "st": "region",
    "state code": "region",
    "region": "region",
    # Business name
    "business name": "business_name",
    "business_name": "business_name",
    "business": "business_name",
    "company": "business_name",
    "company name": "business_name",
    # Phone
    "phone": "phone_number",
    "phone number": "phone_number",
    "phone_number": "phone_number",
    "phone #": "phone_number",
    "telephone": "phone_number",
    "mobile": "phone_number",
    "cell": "phone_number",
    # Owner
    "owner name": "owner_name",
    "owner_name": "owner_name",
    "owner": "owner_name",
    "contact": "owner_name",
    "contact name": "owner_name",
    "name": "owner_name",
    # First name
    "first name": "first_name",
    "first_name": "first_name",
    "first": "first_name",
    "firstname": "first_name",
    "fname": "first_name",
    # Website
    "website": "website",
    "url": "website",
}


def decode_csv(content: bytes) -> str:
    """Decode uploaded bytes, trying common spreadsheet encodings in order."""
    for encoding in ENCODINGS:
        try:
            text = content.decode(encoding)
            return text.lstrip("\ufeff")
        except UnicodeDecodeError:
            continue
    raise InvalidArgumentError("Unable to decode CSV file. Please use UTF-8 encoding.")


class CsvLeadSource(LeadSource):
    """
    Lead rows from CSV text.

    Header names are matched case-insensitively against COLUMN_ALIASES;
    unknown columns are ignored.
    """

    def __init__(self, text: str, batch_name: Optional[str] = None):
        self._text = text
        self._batch_name = batch_name

    @classmethod
    def from_bytes(cls, content: bytes, batch_name: Optional[str] = None) -> "CsvLeadSource":
        return cls(decode_csv(content), batch_name=batch_name)

    @property
    def batch_name(self) -> Optional[str]:
        return self._batch_name

    def fetch_rows(self) -> List[ReconciliationRow]:
        reader = csv.DictReader(io.StringIO(self._text))
        if not reader.fieldnames:
            raise InvalidArgumentError("CSV file is empty")

        mapping = {}
        for header in reader.fieldnames:
            field = COLUMN_ALIASES.get((header or "").lower().strip())
            # First matching column wins
            if field and field not in mapping.values():
                mapping[header] = field

        if "phone_number" not in mapping.values():
            raise InvalidArgumentError(
                f"CSV must have a phone column. Found: {', '.join(h for h in reader.fieldnames if h)}"
            )

        rows = []
        for row in reader:
            values = {
                field: (row.get(header) or "").strip() or None
                for header, field in mapping.items()
            }
            if not any(values.values()):
                continue
            rows.append(ReconciliationRow(**values))

        logger.info(f"Parsed {len(rows)} rows from CSV ({len(mapping)} mapped columns)")
        return rows
