import logging
import math
from dataclasses import dataclass, asdict
from datetime import date, datetime
from typing import Any, Optional

logger = logging.getLogger(__name__)

INCOME = "income"
EXPENSE = "expense"
TRANSACTION_TYPES = (INCOME, EXPENSE)

UNCATEGORIZED = "Uncategorized"
DEFAULT_PAYMENT_METHOD = "Cash"


class FinanceError(Exception):
    """Base class for errors raised by finflow."""


def to_amount(value: Any) -> Optional[float]:
    """Parse an amount. Returns None for anything that is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", "").lstrip("$")
        if not value:
            return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(amount):
        return None
    return amount


def contribution(value: Any) -> float:
    # unparseable or negative amounts contribute nothing to sums
    amount = to_amount(value)
    if amount is None or amount < 0:
        return 0.0
    return amount


def category_label(category: Optional[str]) -> str:
    if category is None:
        return UNCATEGORIZED
    label = str(category).strip()
    return label or UNCATEGORIZED


def parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


@dataclass(frozen=True)
class Transaction:
    id: int
    type: str         # "income" or "expense"
    date: date        # user-specified transaction day
    amount: float     # always non-negative, the type carries the sign
    category: str
    payment_method: str = DEFAULT_PAYMENT_METHOD
    description: str = ""
    notes: str = ""
    timestamp: str = ""  # creation instant, ISO-8601

    @property
    def is_income(self) -> bool:
        return self.type == INCOME

    @property
    def is_expense(self) -> bool:
        return self.type == EXPENSE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "date": self.date.isoformat(),
            "amount": self.amount,
            "category": self.category,
            "paymentMethod": self.payment_method,
            "description": self.description,
            "notes": self.notes,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Transaction":
        """Build a transaction from its persisted JSON form.

        Persisted rows are trusted to have an id and a type. Amounts that no
        longer parse are kept as 0.0 so the row still shows up in counts.
        """
        amount = to_amount(data.get("amount"))
        if amount is None:
            logger.warning("Transaction %s has unparseable amount %r, using 0", data.get("id"), data.get("amount"))
            amount = 0.0
        return cls(
            id=int(data["id"]),
            type=str(data.get("type", EXPENSE)).lower(),
            date=parse_date(data.get("date")) or date.min,
            amount=amount,
            category=category_label(data.get("category")),
            payment_method=data.get("paymentMethod") or data.get("payment_method") or DEFAULT_PAYMENT_METHOD,
            description=data.get("description") or "",
            notes=data.get("notes") or "",
            timestamp=data.get("timestamp") or "",
        )


# A monthly spending limit for one category
@dataclass(frozen=True)
class Budget:
    id: int
    category: str
    amount: float

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Budget":
        amount = to_amount(data.get("amount"))
        return cls(
            id=int(data["id"]),
            category=category_label(data.get("category")),
            amount=amount if amount is not None else 0.0,
        )
