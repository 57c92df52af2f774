"""
Status model import from Google Sheets.

The status model is authored in a sheet with one rule per row:
Status | New Status | Wait Time (Business Days) | Description | Private Email |
Email Subject | Email Custom Message | Additional Recipients
"""

import asyncio
import uuid
from typing import Iterable, List, Optional, Sequence

import gspread
from google.oauth2.service_account import Credentials as ServiceAccountCredentials

from order_automation.config.constants import INSTANT_WAIT_TIME, STATUS_MODEL_HEADERS
from order_automation.core.exceptions import StatusModelImportError
from order_automation.core.logger import setup_logger
from order_automation.models import StatusRule
from order_automation.repositories.base import RuleRepository

logger = setup_logger(__name__)

# Column positions (0-based) in the status model sheet
COL_STATUS = 0
COL_NEW_STATUS = 1
COL_WAIT_TIME = 2
COL_DESCRIPTION = 3
COL_PRIVATE_EMAIL = 4
COL_EMAIL_SUBJECT = 5
COL_EMAIL_MESSAGE = 6
COL_ADDITIONAL_RECIPIENTS = 7

# Read-only access is enough for importing
GOOGLE_SHEETS_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets.readonly",
]


def _cell(row: Sequence[str], index: int) -> str:
    if index < len(row) and row[index] is not None:
        return str(row[index]).strip()
    return ""


def parse_wait_time(value: str) -> int:
    """'Instant', blank and non-numeric values all mean no wait."""
    if not value or value.lower() == INSTANT_WAIT_TIME:
        return 0
    try:
        return max(int(float(value)), 0)
    except ValueError:
        return 0


def clean_message(value: str) -> Optional[str]:
    """Strip wrapping quotes and turn literal \\n sequences into newlines."""
    if not value:
        return None
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]
    return value.replace("\\n", "\n").strip() or None


def parse_recipients(value: str) -> List[str]:
    return [email.strip() for email in value.split(",") if email.strip()]


def parse_status_model_rows(
    rows: List[List[str]],
    allowed_statuses: Optional[Iterable[str]] = None,
) -> List[StatusRule]:
    """
    Convert raw sheet values (header row first) into active status rules.

    Args:
        rows: Worksheet values including the header row
        allowed_statuses: Optional whitelist of trigger statuses

    Returns:
        Parsed rules in sheet order
    """
    if rows:
        header = [_cell(rows[0], i) for i in range(len(STATUS_MODEL_HEADERS))]
        if header != STATUS_MODEL_HEADERS:
            logger.warning(f"Unexpected status model headers: {header}")

    allowed = set(allowed_statuses) if allowed_statuses is not None else None
    rules = []

    for row in rows[1:]:
        status = _cell(row, COL_STATUS)
        new_status = _cell(row, COL_NEW_STATUS)
        if not status or not new_status:
            continue
        if allowed is not None and status not in allowed:
            logger.debug(f"Skipping unknown status row: {status}")
            continue

        rules.append(
            StatusRule(
                id=str(uuid.uuid4()),
                trigger_status=status,
                target_status=new_status,
                wait_business_days=parse_wait_time(_cell(row, COL_WAIT_TIME)),
                description=_cell(row, COL_DESCRIPTION) or None,
                internal_recipient=_cell(row, COL_PRIVATE_EMAIL) or None,
                customer_email_subject=_cell(row, COL_EMAIL_SUBJECT) or None,
                customer_email_body=clean_message(_cell(row, COL_EMAIL_MESSAGE)),
                additional_recipients=parse_recipients(_cell(row, COL_ADDITIONAL_RECIPIENTS)),
                is_active=True,
            )
        )

    logger.info(f"Status model data parsed: {len(rules)} valid rows of {max(len(rows) - 1, 0)}")
    return rules


class GoogleSheetsStatusModelSource:
    """Reads status model rows from a Google Sheet with a service account."""

    def __init__(self, credentials_path: str, spreadsheet_id: str, sheet_name: Optional[str] = None):
        """
        Args:
            credentials_path: Path to service account JSON
            spreadsheet_id: Google Spreadsheet ID (from URL)
            sheet_name: Optional sheet name; the first sheet is used when omitted
        """
        self.credentials_path = credentials_path
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name

    def _fetch_rows_sync(self) -> List[List[str]]:
        creds = ServiceAccountCredentials.from_service_account_file(
            self.credentials_path,
            scopes=GOOGLE_SHEETS_SCOPES,
        )
        client = gspread.authorize(creds)
        spreadsheet = client.open_by_key(self.spreadsheet_id)
        worksheet = (
            spreadsheet.worksheet(self.sheet_name) if self.sheet_name else spreadsheet.sheet1
        )
        return worksheet.get_all_values()

    async def fetch_rows(self) -> List[List[str]]:
        """Fetch all worksheet values (gspread is blocking)."""
        logger.info(f"Fetching status model from Google Sheets: {self.spreadsheet_id}")
        try:
            return await asyncio.to_thread(self._fetch_rows_sync)
        except (gspread.exceptions.GSpreadException, OSError, ValueError) as e:
            raise StatusModelImportError(f"Failed to read status model sheet: {e}") from e


class StatusModelImporter:
    """Replaces the stored status model with the sheet contents."""

    def __init__(
        self,
        source: GoogleSheetsStatusModelSource,
        rule_repository: RuleRepository,
        allowed_statuses: Optional[Iterable[str]] = None,
    ):
        self.source = source
        self.rule_repository = rule_repository
        self.allowed_statuses = allowed_statuses

    async def import_and_replace(self) -> List[StatusRule]:
        """
        Import the sheet and replace all stored rules.

        Raises:
            StatusModelImportError: If the sheet is empty or has no valid rows;
                stored rules are left untouched in that case
        """
        rows = await self.source.fetch_rows()
        if len(rows) < 2:
            raise StatusModelImportError("No data found in the status model sheet")

        rules = parse_status_model_rows(rows, self.allowed_statuses)
        if not rules:
            raise StatusModelImportError("Status model sheet has no valid rule rows")

        await self.rule_repository.replace_rules(rules)
        logger.info(f"Status model import completed: {len(rules)} rules")
        return rules
