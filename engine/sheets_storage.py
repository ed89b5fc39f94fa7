"""Google Sheets entry store (Sheets v4 REST API over an authorized requests session)."""

import json
import logging
from typing import List, Dict, Optional, Any
from urllib.parse import quote

import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

from engine.errors import StoreIOError, StoreUnavailable
from engine.models import COLUMNS, CacheRow, Entry
from engine.storage import EntryStore

logger = logging.getLogger(__name__)

SHEETS_API = "https://sheets.googleapis.com/v4/spreadsheets"
SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
LAST_COLUMN = chr(ord("A") + len(COLUMNS) - 1)  # H


class SheetsStorage(EntryStore):
    """
    Cache rows kept in one tab of a Google spreadsheet.

    The sheet is a flat log: rows are appended with INSERT_ROWS and never
    edited. Lookups read the whole tab and filter client-side.
    """

    name = "sheets"

    def __init__(
        self,
        spreadsheet_id: Optional[str],
        credentials_json: Optional[str] = None,
        credentials_file: Optional[str] = None,
        sheet_name: str = "Cache",
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize Sheets store.

        Args:
            spreadsheet_id: Target spreadsheet ID
            credentials_json: Service account key as a JSON string
            credentials_file: Path to a service account key file
            sheet_name: Tab holding the cache rows
            timeout: Per-request timeout in seconds
            session: Pre-authorized session (skips credential loading)
        """
        self.spreadsheet_id = spreadsheet_id
        self.credentials_json = credentials_json
        self.credentials_file = credentials_file
        self.sheet_name = sheet_name
        self.timeout = timeout
        self.session = session

    @property
    def quoted_sheet_name(self) -> str:
        """A1-notation sheet reference; embedded quotes are doubled."""
        escaped = self.sheet_name.replace("'", "''")
        return f"'{escaped}'"

    @property
    def data_range(self) -> str:
        return f"{self.quoted_sheet_name}!A:{LAST_COLUMN}"

    @property
    def header_range(self) -> str:
        return f"{self.quoted_sheet_name}!A1:{LAST_COLUMN}1"

    def _build_session(self) -> AuthorizedSession:
        """Create an authorized session from service account credentials."""
        if self.credentials_json:
            info = json.loads(self.credentials_json)
            credentials = service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
        elif self.credentials_file:
            credentials = service_account.Credentials.from_service_account_file(self.credentials_file, scopes=SCOPES)
        else:
            raise StoreUnavailable("GOOGLE_SHEETS_CREDENTIALS is missing")
        return AuthorizedSession(credentials)

    def _values_url(self, cell_range: str, action: str = "") -> str:
        return f"{SHEETS_API}/{self.spreadsheet_id}/values/{quote(cell_range, safe='!:')}{action}"

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        response.raise_for_status()
        return response.json() if response.content else {}

    def bootstrap(self) -> bool:
        """Verify access, create the cache tab and header row if missing."""
        if not self.spreadsheet_id:
            logger.warning("Sheets cache disabled: GOOGLE_SHEETS_SPREADSHEET_ID is not set")
            return False

        try:
            if self.session is None:
                self.session = self._build_session()

            meta = self._request(
                "GET",
                f"{SHEETS_API}/{self.spreadsheet_id}",
                params={"fields": "sheets.properties.title"},
            )
            titles = [s.get("properties", {}).get("title") for s in meta.get("sheets", [])]
            logger.debug(f"Spreadsheet tabs: {titles}")

            if self.sheet_name not in titles:
                logger.info(f"Creating cache sheet '{self.sheet_name}'")
                self._request(
                    "POST",
                    f"{SHEETS_API}/{self.spreadsheet_id}:batchUpdate",
                    json={"requests": [{
                        "addSheet": {
                            "properties": {
                                "title": self.sheet_name,
                                "gridProperties": {"rowCount": 1000, "columnCount": len(COLUMNS)},
                            }
                        }
                    }]},
                )

            header = self._request("GET", self._values_url(self.header_range))
            if not header.get("values"):
                self._request(
                    "PUT",
                    self._values_url(self.header_range),
                    params={"valueInputOption": "RAW"},
                    json={"values": [COLUMNS]},
                )
                logger.info("Wrote cache header row")

        except StoreUnavailable as e:
            logger.warning(f"Sheets cache disabled: {e}")
            return False
        except (requests.RequestException, GoogleAuthError, ValueError, OSError) as e:
            logger.error(f"Sheets cache initialization failed: {e}")
            return False

        logger.info(f"Sheets cache ready: {self.spreadsheet_id} ({self.sheet_name})")
        return True

    def append(self, entry: Entry) -> None:
        self.append_row(entry.to_row())

    def append_row(self, row: CacheRow) -> None:
        if self.session is None:
            raise StoreIOError("Sheets client not initialized")
        try:
            result = self._request(
                "POST",
                self._values_url(self.data_range, ":append"),
                params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
                json={"values": [row.to_values()]},
            )
        except (requests.RequestException, GoogleAuthError, ValueError) as e:
            raise StoreIOError(f"Sheets append failed: {e}") from e

        updates = result.get("updates", {})
        logger.debug(f"Appended cache row: {updates.get('updatedRange')}")

    def scan_all(self) -> List[CacheRow]:
        if self.session is None:
            raise StoreIOError("Sheets client not initialized")
        try:
            data = self._request("GET", self._values_url(self.data_range))
        except (requests.RequestException, GoogleAuthError, ValueError) as e:
            raise StoreIOError(f"Sheets read failed: {e}") from e

        values = data.get("values", [])
        # First row is the header
        return [CacheRow.from_values(row) for row in values[1:] if any(row)]

    def close(self):
        if self.session is not None:
            self.session.close()
