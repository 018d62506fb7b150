"""Persistence for transactions and budgets.

State lives as JSON documents in a string key/value blob store, the same
shape a browser's local storage would hold. Reads never fail: a corrupt
document reads as an empty collection. Writes that fail are logged and
reported on the event bus, and leave whatever was stored before in place.
"""
import json
import logging
import os
import time
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, Optional, Protocol

from finflow.aggregation import budget_status_for
from finflow.domain import Budget, Transaction
from finflow.events import (
    BUDGET_ADDED,
    BUDGET_ALERT,
    BUDGET_DELETED,
    STORAGE_ERROR,
    TRANSACTION_ADDED,
    TRANSACTION_DELETED,
    EventBus,
)
from finflow.functional import Either, Left, Right
from finflow.validation import validate_budget_fields, validate_transaction_fields

logger = logging.getLogger(__name__)

TRANSACTIONS_KEY = "financeTransactions"
BUDGETS_KEY = "financeBudgets"

SAVE_ERROR_MESSAGE = "Error saving data. Storage may be full."


class BlobStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def clear(self) -> None: ...


class MemoryBlobStore:
    def __init__(self, initial: Optional[dict] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def clear(self) -> None:
        self._data.clear()


class FileBlobStore:
    """One `<key>.json` file per key under `directory`."""

    def __init__(self, directory):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)

    def clear(self) -> None:
        if not self.directory.exists():
            return
        for path in self.directory.glob("*.json"):
            path.unlink()


def _row_id(row: dict) -> Optional[int]:
    """The id a persisted row lists under, or None when it has no usable one."""
    try:
        return int(row["id"])
    except (KeyError, TypeError, ValueError, OverflowError):
        return None


def _ids(rows: Iterable[dict]) -> Iterable[int]:
    for row in rows:
        row_id = _row_id(row)
        if row_id is not None:
            yield row_id


def _without(rows: list, item_id) -> list:
    # rows without a usable id never match, not even a None id
    return [r for r in rows if item_id is None or _row_id(r) != item_id]


def _next_id(existing: Iterable[int]) -> int:
    # millisecond clock, bumped past anything already stored so ids stay unique
    return max(int(time.time() * 1000), max(existing, default=0) + 1)


class LedgerStore:
    def __init__(self, blobs: BlobStore, bus: Optional[EventBus] = None):
        self.blobs = blobs
        self.bus = bus or EventBus()

    # -- raw documents

    def _read(self, key: str) -> list:
        try:
            raw = self.blobs.get(key)
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Error reading %s: %s", key, e)
            return []
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Error reading %s: %s", key, e)
            return []
        if not isinstance(data, list):
            logger.error("Error reading %s: expected a list, got %s", key, type(data).__name__)
            return []
        return [row for row in data if isinstance(row, dict)]

    def _write(self, key: str, rows: list) -> bool:
        try:
            self.blobs.set(key, json.dumps(rows))
        except OSError as e:
            logger.error("Error saving %s: %s", key, e)
            self.bus.publish(STORAGE_ERROR, {"key": key, "message": SAVE_ERROR_MESSAGE})
            return False
        return True

    def _load(self, key: str, factory) -> list:
        items = []
        for row in self._read(key):
            try:
                items.append(factory(row))
            except (KeyError, TypeError, ValueError, OverflowError) as e:
                logger.warning("Skipping malformed %s row %r: %s", key, row, e)
        return items

    # -- transactions

    def list_transactions(self) -> list[Transaction]:
        transactions = self._load(TRANSACTIONS_KEY, Transaction.from_dict)
        return sorted(transactions, key=lambda t: t.date, reverse=True)

    def add_transaction(
        self, fields: dict, today: Optional[date] = None, notify: bool = True
    ) -> Either[dict, Transaction]:
        checked = validate_transaction_fields(fields, today)
        if checked.is_left():
            logger.info("Rejected transaction: %s", checked.get_error()["message"])
            return checked

        rows = self._read(TRANSACTIONS_KEY)
        transaction = Transaction(
            id=_next_id(_ids(rows)),
            timestamp=datetime.now().isoformat(),
            **checked.get_or_else({}),
        )
        rows.append(transaction.to_dict())
        rows.sort(key=lambda r: str(r.get("date", "")), reverse=True)
        if not self._write(TRANSACTIONS_KEY, rows):
            return Left({"error": "storage_error", "message": SAVE_ERROR_MESSAGE})

        if notify:
            self.bus.publish(TRANSACTION_ADDED, {
                "transaction": transaction,
                "message": "Transaction added successfully!",
            })
        if notify and transaction.is_expense:
            self._check_budgets(transaction, today)
        return Right(transaction)

    def _check_budgets(self, transaction: Transaction, today: Optional[date]) -> None:
        transactions = self.list_transactions()
        for budget in self.list_budgets():
            if budget.category == transaction.category:
                status = budget_status_for(budget, transactions, today)
                self.bus.publish(BUDGET_ALERT, {"status": status})

    def delete_transaction(self, transaction_id: int) -> bool:
        rows = self._read(TRANSACTIONS_KEY)
        kept = _without(rows, transaction_id)
        if len(kept) == len(rows):
            return False
        if not self._write(TRANSACTIONS_KEY, kept):
            return False
        self.bus.publish(TRANSACTION_DELETED, {"id": transaction_id, "message": "Transaction deleted"})
        return True

    # -- budgets

    def list_budgets(self) -> list[Budget]:
        return self._load(BUDGETS_KEY, Budget.from_dict)

    def add_budget(self, fields: dict) -> Either[dict, Budget]:
        checked = validate_budget_fields(fields)
        if checked.is_left():
            logger.info("Rejected budget: %s", checked.get_error()["message"])
            return checked

        rows = self._read(BUDGETS_KEY)
        budget = Budget(id=_next_id(_ids(rows)), **checked.get_or_else({}))
        rows.append(budget.to_dict())
        if not self._write(BUDGETS_KEY, rows):
            return Left({"error": "storage_error", "message": SAVE_ERROR_MESSAGE})

        self.bus.publish(BUDGET_ADDED, {"budget": budget, "message": "Budget created successfully!"})
        return Right(budget)

    def delete_budget(self, budget_id: int) -> bool:
        rows = self._read(BUDGETS_KEY)
        kept = _without(rows, budget_id)
        if len(kept) == len(rows):
            return False
        if not self._write(BUDGETS_KEY, kept):
            return False
        self.bus.publish(BUDGET_DELETED, {"id": budget_id, "message": "Budget deleted"})
        return True

    # -- whole state

    def replace(self, transactions: Optional[list] = None, budgets: Optional[list] = None) -> bool:
        """Overwrite the collections that are given, as raw persisted rows."""
        ok = True
        if transactions is not None:
            ok = self._write(TRANSACTIONS_KEY, list(transactions)) and ok
        if budgets is not None:
            ok = self._write(BUDGETS_KEY, list(budgets)) and ok
        return ok

    def snapshot(self) -> dict:
        return {
            "transactions": self._read(TRANSACTIONS_KEY),
            "budgets": self._read(BUDGETS_KEY),
        }

    def data_size(self) -> int:
        return len(json.dumps(self.snapshot()).encode("utf-8"))

    def clear(self) -> None:
        try:
            self.blobs.clear()
        except OSError as e:
            logger.error("Error clearing data: %s", e)
            self.bus.publish(STORAGE_ERROR, {"message": SAVE_ERROR_MESSAGE})

    # -- settings

    def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        try:
            value = self.blobs.get(key)
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Error reading setting %s: %s", key, e)
            return default
        return default if value is None else value

    def set_setting(self, key: str, value: str) -> None:
        try:
            self.blobs.set(key, value)
        except OSError as e:
            logger.error("Error saving setting %s: %s", key, e)
