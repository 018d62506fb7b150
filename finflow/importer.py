"""Spreadsheet and JSON import, JSON export and the import template."""
import io
import json
import logging
import numbers
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional

import pandas as pd

from finflow.domain import DEFAULT_PAYMENT_METHOD, EXPENSE, UNCATEGORIZED, FinanceError
from finflow.events import DATA_IMPORTED
from finflow.store import LedgerStore

logger = logging.getLogger(__name__)

# spreadsheet serial 0 is 1899-12-31, and serials past Feb 1900 carry the
# phantom 1900-02-29, hence the two day shift
SPREADSHEET_EPOCH = date(1899, 12, 30)

COLUMNS = {
    "date": ("Date", "date"),
    "amount": ("Amount", "amount"),
    "category": ("Category", "category"),
    "type": ("Type", "type"),
    "payment_method": ("Payment Method", "paymentMethod", "payment_method"),
    "description": ("Description", "description"),
    "notes": ("Notes", "notes"),
}

TEMPLATE_ROWS = [
    {
        "Date": "2024-01-15",
        "Amount": 50.00,
        "Category": "Food & Dining",
        "Type": "expense",
        "Payment Method": "Credit Card",
        "Description": "Lunch at restaurant",
        "Notes": "Business lunch",
    },
    {
        "Date": "2024-01-16",
        "Amount": 3000.00,
        "Category": "Salary",
        "Type": "income",
        "Payment Method": "Bank Transfer",
        "Description": "Monthly salary",
        "Notes": "",
    },
]


class ImportFormatError(FinanceError):
    pass


class UnsupportedFileError(FinanceError):
    pass


@dataclass(frozen=True)
class ImportResult:
    imported: int
    skipped: int

    @property
    def message(self) -> str:
        return f"Imported {self.imported} transactions, skipped {self.skipped}"


def read_table(filename: str, data: bytes) -> list[dict]:
    """Parse an uploaded xlsx/xls/csv file into row dicts keyed by column header."""
    name = filename.lower()
    buffer = io.BytesIO(data)
    try:
        if name.endswith((".xlsx", ".xls")):
            frame = pd.read_excel(buffer)
        elif name.endswith(".csv"):
            frame = pd.read_csv(buffer)
        else:
            raise UnsupportedFileError(f"Unsupported file type: {filename}")
    except (ValueError, pd.errors.ParserError) as e:
        raise ImportFormatError(f"Could not read {filename}: {e}") from e
    return frame.to_dict(orient="records")


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _lookup(row: dict, field: str) -> Any:
    """First non-blank value among the field's accepted column names, any case."""
    lowered = {str(k).strip().lower(): v for k, v in row.items()}
    for column in COLUMNS[field]:
        for value in (row.get(column), lowered.get(column.lower())):
            if not _blank(value):
                return value
    return None


def spreadsheet_serial_to_date(serial: float) -> date:
    return SPREADSHEET_EPOCH + timedelta(days=int(serial))


def normalize_date(value: Any, today: Optional[date] = None) -> date:
    today = today or date.today()
    if _blank(value):
        return today
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return spreadsheet_serial_to_date(value)
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = pd.to_datetime(str(value), errors="coerce")
    if pd.isna(parsed):
        logger.warning("Unparseable date %r, using %s", value, today)
        return today
    return parsed.date()


def normalize_row(row: dict, today: Optional[date] = None) -> dict:
    """Map one spreadsheet row onto transaction fields, filling defaults."""
    def text(field: str, default: str = "") -> str:
        value = _lookup(row, field)
        return default if value is None else str(value).strip()

    return {
        "date": normalize_date(_lookup(row, "date"), today),
        "amount": _lookup(row, "amount"),
        "category": text("category", UNCATEGORIZED),
        "type": text("type", EXPENSE).lower(),
        "payment_method": text("payment_method", DEFAULT_PAYMENT_METHOD),
        "description": text("description"),
        "notes": text("notes"),
    }


def import_rows(store: LedgerStore, rows: Iterable[dict], today: Optional[date] = None) -> ImportResult:
    imported = 0
    skipped = 0
    for row in rows:
        try:
            fields = normalize_row(row, today)
        except (TypeError, ValueError, OverflowError) as e:
            logger.warning("Error importing row %r: %s", row, e)
            skipped += 1
            continue
        result = store.add_transaction(fields, today, notify=False)
        if result.is_right():
            imported += 1
        else:
            logger.debug("Skipped row %r: %s", row, result.get_error()["message"])
            skipped += 1

    summary = ImportResult(imported=imported, skipped=skipped)
    logger.info(summary.message)
    store.bus.publish(DATA_IMPORTED, {"imported": imported, "skipped": skipped, "message": summary.message})
    return summary


def template_frame() -> pd.DataFrame:
    return pd.DataFrame(TEMPLATE_ROWS)


def template_bytes(fmt: str = "xlsx") -> bytes:
    frame = template_frame()
    if fmt == "csv":
        return frame.to_csv(index=False).encode("utf-8")
    buffer = io.BytesIO()
    frame.to_excel(buffer, index=False, sheet_name="Transactions")
    return buffer.getvalue()


def export_json(store: LedgerStore, now: Optional[datetime] = None) -> str:
    data = store.snapshot()
    data["exportDate"] = (now or datetime.now()).isoformat()
    return json.dumps(data, indent=2)


def export_filename(today: Optional[date] = None) -> str:
    return f"finance-tracker-{(today or date.today()).isoformat()}.json"


def import_json(store: LedgerStore, text: str) -> None:
    """Replace transactions and/or budgets with those in an exported document.

    Collections missing from the document are left alone; there is no merge.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportFormatError("Error importing data. Please check the file format.") from e
    if not isinstance(data, dict):
        raise ImportFormatError("Error importing data. Please check the file format.")

    transactions = data.get("transactions")
    budgets = data.get("budgets")
    for name, value in (("transactions", transactions), ("budgets", budgets)):
        if value is not None and not isinstance(value, list):
            raise ImportFormatError(f"Expected '{name}' to be a list")

    if store.replace(transactions=transactions, budgets=budgets):
        store.bus.publish(DATA_IMPORTED, {"message": "Data imported successfully!"})
