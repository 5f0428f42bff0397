"""
Google Sheets Lead Source
Reads the cold-call sheet with google-auth service account credentials.

Setup Required:
- Enable the Google Sheets API in Google Cloud Console
- Create a service account and download its JSON key
- Share the sheet with the service account's client_email
- Set GOOGLE_SERVICE_ACCOUNT_FILE and GOOGLE_SHEET_ID env vars
"""
import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from powerdialer.core.exceptions import InvalidArgumentError, UpstreamUnavailableError
from powerdialer.domain.interfaces.lead_source import LeadSource
from powerdialer.domain.models.dialer_reports import ReconciliationRow

logger = logging.getLogger(__name__)

# Sheet column positions
COL_REGION = 0
COL_WEBSITE = 1
COL_BUSINESS = 2
COL_PHONE = 3
COL_OWNER = 4
COL_FIRST_NAME = 5
COL_LAST_NAME = 6
COL_ANSWERED = 7
COL_OUTCOME = 8
COL_DATE = 9
COL_NOTE = 10


def _cell(row: List[Any], index: int) -> str:
    if index < len(row) and row[index] is not None:
        return str(row[index]).strip()
    return ""


def sheet_row_to_lead_row(row: List[Any], sheet_row_number: int) -> ReconciliationRow:
    """
    Map one sheet row onto a reconciliation row.

    The sheet's note and outcome columns become the lead's initial notes.
    """
    outcome = _cell(row, COL_OUTCOME)
    call_date = _cell(row, COL_DATE)
    note = _cell(row, COL_NOTE)

    notes_parts = []
    if note:
        notes_parts.append(note)
    if outcome and call_date:
        notes_parts.append(f"[Sheet {call_date}] {outcome}")
    elif outcome:
        notes_parts.append(f"[Sheet] {outcome}")

    return ReconciliationRow(
        region=_cell(row, COL_REGION) or None,
        website=_cell(row, COL_WEBSITE) or None,
        business_name=_cell(row, COL_BUSINESS) or None,
        phone_number=_cell(row, COL_PHONE) or None,
        owner_name=_cell(row, COL_OWNER) or None,
        first_name=_cell(row, COL_FIRST_NAME) or None,
        sheet_row_id=f"row-{sheet_row_number}",
        sheet_outcome=outcome or None,
        sheet_notes="\n".join(notes_parts) or None,
    )


class GoogleSheetLeadSource(LeadSource):
    """Rows from a Google Sheet read through the Sheets values API"""

    API_BASE_URL = "https://sheets.googleapis.com/v4/spreadsheets"
    SCOPE = "https://www.googleapis.com/auth/spreadsheets.readonly"
    BATCH_NAME = "google-sheets-sync"

    def __init__(
        self,
        sheet_id: Optional[str],
        sheet_range: str = "Sheet1!A1:Z10000",
        credentials: Optional[Dict[str, Any]] = None,
        credentials_file: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
        auth_request: Optional[Request] = None,
        timeout: float = 30.0,
    ):
        """
        Args:
            sheet_id: Spreadsheet id from the sheet URL
            sheet_range: A1 range to read, header row first
            credentials: Parsed service account JSON
            credentials_file: Path to the service account JSON (used when `credentials` is None)
            http_client: Client for the Sheets API calls
            auth_request: google-auth transport used to refresh the access token
        """
        self.sheet_id = sheet_id
        self.sheet_range = sheet_range
        self._credentials_info = credentials
        self._credentials_file = credentials_file
        self._google_credentials: Optional[service_account.Credentials] = None
        self._client = http_client
        self._auth_request = auth_request
        self._timeout = timeout

    @property
    def batch_name(self) -> str:
        return self.BATCH_NAME

    @property
    def requires_business_name(self) -> bool:
        return True

    def _load_credentials(self) -> service_account.Credentials:
        if self._google_credentials is not None:
            return self._google_credentials

        info = self._credentials_info
        if info is None:
            if not self._credentials_file:
                raise InvalidArgumentError(
                    "Google service account not configured. Set GOOGLE_SERVICE_ACCOUNT_FILE."
                )
            with open(self._credentials_file, "r", encoding="utf-8") as f:
                info = json.load(f)

        try:
            self._google_credentials = service_account.Credentials.from_service_account_info(
                info,
                scopes=[self.SCOPE]
            )
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid service account JSON: {e}") from e
        return self._google_credentials

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout)
        return self._client

    def get_access_token(self) -> str:
        """Current access token, refreshed through google-auth when expired."""
        credentials = self._load_credentials()
        if not credentials.valid:
            try:
                credentials.refresh(self._auth_request or Request())
            except GoogleAuthError as e:
                logger.error(f"Token refresh failed: {e}")
                raise UpstreamUnavailableError(f"Failed to authenticate with Google: {e}") from e
        return credentials.token

    def fetch_rows(self) -> List[ReconciliationRow]:
        if not self.sheet_id:
            raise InvalidArgumentError("Google Sheet id is not configured. Set GOOGLE_SHEET_ID.")

        token = self.get_access_token()
        url = f"{self.API_BASE_URL}/{self.sheet_id}/values/{quote(self.sheet_range, safe='')}"

        try:
            response = self._http().get(url, headers={"Authorization": f"Bearer {token}"})
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(f"Google Sheets API unreachable: {e}") from e

        if response.status_code != 200:
            logger.error(f"Google Sheets API error: {response.text}")
            raise UpstreamUnavailableError(f"Google Sheets API error: {response.status_code}")

        values = response.json().get("values") or []
        if len(values) < 2:
            logger.warning(f"No data rows found in sheet {self.sheet_id}")
            return []

        # First row is the header; sheet rows are 1-based
        rows = [
            sheet_row_to_lead_row(row, index)
            for index, row in enumerate(values[1:], start=2)
        ]
        logger.info(f"Fetched {len(rows)} rows from sheet {self.sheet_id}")
        return rows

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
