"""Checks applied to user and import input before anything is persisted.

Failures come back as `Left` error dicts carrying an `error` code and a
human readable `message`; the cleaned fields come back as `Right`.
"""
from datetime import date
from typing import Any, Optional

from finflow.domain import (
    DEFAULT_PAYMENT_METHOD,
    EXPENSE,
    TRANSACTION_TYPES,
    category_label,
    parse_date,
    to_amount,
)
from finflow.functional import Either, Left, Right


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def validate_transaction_fields(fields: dict, today: Optional[date] = None) -> Either[dict, dict]:
    amount = to_amount(fields.get("amount"))
    if amount is None:
        return Left({
            "error": "invalid_amount",
            "message": f"Amount {fields.get('amount')!r} is not a number",
            "amount": fields.get("amount"),
        })
    if amount <= 0:
        return Left({
            "error": "non_positive_amount",
            "message": f"Amount must be greater than zero, got {amount}",
            "amount": amount,
        })

    tx_type = _text(fields.get("type") or EXPENSE).lower()
    if tx_type not in TRANSACTION_TYPES:
        return Left({
            "error": "invalid_type",
            "message": f"Transaction type must be income or expense, got {tx_type!r}",
            "type": tx_type,
        })

    raw_date = fields.get("date")
    tx_date = parse_date(raw_date) if raw_date else (today or date.today())
    if tx_date is None:
        return Left({
            "error": "invalid_date",
            "message": f"Date {raw_date!r} is not a valid YYYY-MM-DD date",
            "date": raw_date,
        })

    return Right({
        "type": tx_type,
        "date": tx_date,
        "amount": amount,
        "category": category_label(fields.get("category")),
        "payment_method": _text(fields.get("payment_method")) or DEFAULT_PAYMENT_METHOD,
        "description": _text(fields.get("description")),
        "notes": _text(fields.get("notes")),
    })


def validate_budget_fields(fields: dict) -> Either[dict, dict]:
    category = _text(fields.get("category"))
    if not category:
        return Left({
            "error": "missing_category",
            "message": "A budget needs a category",
        })

    amount = to_amount(fields.get("amount"))
    if amount is None or amount <= 0:
        return Left({
            "error": "invalid_amount",
            "message": f"Budget amount must be a positive number, got {fields.get('amount')!r}",
            "amount": fields.get("amount"),
        })

    return Right({"category": category, "amount": amount})
