import calendar
from datetime import date, timedelta
from typing import Callable, Optional, Union

from finflow.domain import FinanceError, Transaction, category_label

MONTH = "month"
ALL = "all"

Period = Union[str, int]


class InvalidPeriodError(FinanceError, ValueError):
    pass


def parse_period(value) -> Period:
    """Normalize a period selector: "month", "all" or a positive day count.

    Numeric strings such as "30" are accepted since that is how select
    widgets hand them over.
    """
    if isinstance(value, str):
        text = value.strip().lower()
        if text in (MONTH, ALL):
            return text
        if text.isdigit():
            value = int(text)
        else:
            raise InvalidPeriodError(f"Unknown period selector: {value!r}")
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidPeriodError(f"Unknown period selector: {value!r}")
    if value <= 0:
        raise InvalidPeriodError(f"Day window must be positive, got {value}")
    return value


def month_start(day: date) -> date:
    return day.replace(day=1)


def month_end(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def shift_month(day: date, months: int) -> date:
    """First day of the month `months` away from `day` (negative goes back)."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def by_type(tx_type: str):
    def _filter(t: Transaction) -> bool:
        return t.type == tx_type

    return _filter


def by_category(category: str):
    def _filter(t: Transaction) -> bool:
        return category_label(t.category) == category

    return _filter


def by_date_range(start: Optional[date], end: Optional[date]):
    def _filter(t: Transaction) -> bool:
        if start is not None and t.date < start:
            return False
        if end is not None and t.date > end:
            return False
        return True

    return _filter


def period_bounds(period: Period, today: date) -> tuple[Optional[date], Optional[date]]:
    period = parse_period(period)
    if period == ALL:
        return None, None
    if period == MONTH:
        return month_start(today), month_end(today)
    # trailing window has no upper bound, future-dated rows stay visible
    return today - timedelta(days=period), None


def in_period(period: Period, today: Optional[date] = None) -> Callable[[Transaction], bool]:
    start, end = period_bounds(period, today or date.today())
    return by_date_range(start, end)
