import io
import json
from datetime import date, datetime

import pandas as pd
import pytest

from finflow.domain import UNCATEGORIZED
from finflow.events import DATA_IMPORTED, EventBus
from finflow.importer import (
    ImportFormatError,
    UnsupportedFileError,
    export_filename,
    export_json,
    import_json,
    import_rows,
    normalize_date,
    normalize_row,
    read_table,
    spreadsheet_serial_to_date,
    template_bytes,
    template_frame,
)
from finflow.store import LedgerStore, MemoryBlobStore

TODAY = date(2025, 3, 15)


def make_store():
    events = []
    bus = EventBus()
    bus.subscribe(DATA_IMPORTED, lambda event, payload: events.append(payload) or {})
    return LedgerStore(MemoryBlobStore(), bus), events


def test_spreadsheet_serial_dates():
    assert spreadsheet_serial_to_date(45000) == date(2023, 3, 15)
    assert spreadsheet_serial_to_date(1) == date(1899, 12, 31)
    assert spreadsheet_serial_to_date(45000.75) == date(2023, 3, 15)


def test_normalize_date_variants():
    assert normalize_date("2024-01-15", TODAY) == date(2024, 1, 15)
    assert normalize_date(datetime(2024, 1, 15, 9, 30), TODAY) == date(2024, 1, 15)
    assert normalize_date(pd.Timestamp("2024-02-01"), TODAY) == date(2024, 2, 1)
    assert normalize_date(None, TODAY) == TODAY
    assert normalize_date("not a date", TODAY) == TODAY


def test_normalize_row_case_insensitive_columns_and_defaults():
    fields = normalize_row({"DATE": "2024-01-15", "amount": "12.5", "PAYMENT METHOD": "Debit Card"}, TODAY)
    assert fields["date"] == date(2024, 1, 15)
    assert fields["amount"] == "12.5"
    assert fields["category"] == UNCATEGORIZED
    assert fields["type"] == "expense"
    assert fields["payment_method"] == "Debit Card"


def test_normalize_row_camel_case_payment_method():
    fields = normalize_row({"Amount": 5, "paymentMethod": "Credit Card", "Type": "Income"}, TODAY)
    assert fields["payment_method"] == "Credit Card"
    assert fields["type"] == "income"


def test_import_skips_zero_and_keeps_uncategorized():
    store, events = make_store()
    rows = [
        {"Date": "2025-03-01", "Amount": 0, "Category": "Food"},
        {"Date": "2025-03-02", "Amount": 50},
        {"Date": "2025-03-03", "Amount": "abc"},
        {"Date": 45000, "Amount": 20, "Type": "income", "Category": "Gifts"},
    ]
    result = import_rows(store, rows, TODAY)
    assert (result.imported, result.skipped) == (2, 2)
    assert result.message == "Imported 2 transactions, skipped 2"
    assert events[-1]["message"] == result.message

    by_category = {t.category: t for t in store.list_transactions()}
    assert by_category[UNCATEGORIZED].amount == 50
    assert by_category["Gifts"].date == date(2023, 3, 15)


def test_import_does_not_deduplicate():
    store, _ = make_store()
    row = {"Date": "2025-03-02", "Amount": 10, "Category": "Food"}
    import_rows(store, [row, row], TODAY)
    transactions = store.list_transactions()
    assert len(transactions) == 2
    assert transactions[0].id != transactions[1].id


def test_import_bad_type_is_skipped_not_fatal():
    store, _ = make_store()
    result = import_rows(store, [{"Amount": 10, "Type": "transfer"}, {"Amount": 10}], TODAY)
    assert (result.imported, result.skipped) == (1, 1)


def test_read_table_csv():
    data = b"Date,Amount,Category,Type\n2025-03-01,12.5,Food,expense\n2025-03-02,100,Salary,income\n"
    rows = read_table("upload.CSV", data)
    assert len(rows) == 2
    assert rows[0]["Category"] == "Food"
    assert rows[1]["Amount"] == 100


def test_read_table_xlsx_template_round_trip():
    rows = read_table("template.xlsx", template_bytes("xlsx"))
    assert [r["Type"] for r in rows] == ["expense", "income"]
    store, _ = make_store()
    assert import_rows(store, rows, TODAY).imported == 2


def test_read_table_rejects_unknown_extension():
    with pytest.raises(UnsupportedFileError):
        read_table("data.pdf", b"%PDF")


def test_read_table_empty_csv_is_format_error():
    with pytest.raises(ImportFormatError):
        read_table("empty.csv", b"")


def test_template_has_two_example_rows():
    frame = template_frame()
    assert list(frame.columns) == ["Date", "Amount", "Category", "Type", "Payment Method", "Description", "Notes"]
    assert len(frame) == 2
    csv = pd.read_csv(io.BytesIO(template_bytes("csv")))
    assert list(csv["Type"]) == ["expense", "income"]


def test_export_json_document():
    store, _ = make_store()
    store.add_transaction({"amount": 10, "date": "2025-03-01"}, TODAY)
    store.add_budget({"category": "Food", "amount": 100})
    document = json.loads(export_json(store, datetime(2025, 3, 15, 12, 0)))
    assert document["exportDate"] == "2025-03-15T12:00:00"
    assert len(document["transactions"]) == 1
    assert document["budgets"][0]["category"] == "Food"
    assert export_filename(TODAY) == "finance-tracker-2025-03-15.json"


def test_import_json_replaces_wholesale():
    store, events = make_store()
    store.add_transaction({"amount": 10, "date": "2025-03-01"}, TODAY)
    store.add_budget({"category": "Food", "amount": 100})
    document = {"transactions": [{"id": 9, "type": "income", "date": "2025-03-02", "amount": 5, "category": "Gifts"}]}

    import_json(store, json.dumps(document))

    assert [t.id for t in store.list_transactions()] == [9]
    assert len(store.list_budgets()) == 1
    assert events[-1]["message"] == "Data imported successfully!"


@pytest.mark.parametrize("text", ["{oops", "[1, 2]", json.dumps({"budgets": "nope"})])
def test_import_json_rejects_bad_documents(text):
    store, _ = make_store()
    with pytest.raises(ImportFormatError):
        import_json(store, text)
