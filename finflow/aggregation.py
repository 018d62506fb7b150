"""Derived statistics over transaction and budget snapshots.

Every function here is pure: it reads the snapshot it is given, never
mutates it and keeps nothing between calls. `today` defaults to the local
calendar day and exists so callers and tests can pin the clock.
"""
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from finflow.domain import (
    EXPENSE,
    INCOME,
    TRANSACTION_TYPES,
    Budget,
    Transaction,
    category_label,
    contribution,
)
from finflow.periods import ALL, MONTH, Period, by_category, by_type, in_period, month_end, shift_month

SUCCESS = "success"
WARNING = "warning"
DANGER = "danger"

WARNING_THRESHOLD = 80.0
DANGER_THRESHOLD = 100.0


@dataclass(frozen=True)
class Stats:
    income: float
    expenses: float
    balance: float
    count: int


@dataclass(frozen=True)
class MonthPoint:
    label: str
    month: date  # first day of the month
    income: float
    expenses: float


@dataclass(frozen=True)
class DayPoint:
    day: date
    income: float
    expenses: float


@dataclass(frozen=True)
class BudgetStatus:
    budget: Budget
    spent: float
    percentage: float          # raw, drives the status tier
    display_percentage: float  # clamped to [0, 100] for progress bars
    remaining: float
    status: str


@dataclass(frozen=True)
class SummaryStats:
    stats: Stats
    average_transaction: float
    highest_expense: float
    top_category: Optional[str]


def _today(today: Optional[date]) -> date:
    return today or date.today()


def filter_period(
    transactions: Iterable[Transaction], period: Period, today: Optional[date] = None
) -> list[Transaction]:
    return list(filter(in_period(period, _today(today)), transactions))


def _total(transactions: Iterable[Transaction]) -> float:
    return math.fsum(contribution(t.amount) for t in transactions)


def _group_totals(transactions: Iterable[Transaction]) -> dict[str, float]:
    # dicts keep insertion order, so ties stay in first-seen order after a stable sort
    grouped: dict[str, list[float]] = defaultdict(list)
    for t in transactions:
        grouped[category_label(t.category)].append(contribution(t.amount))
    return {category: math.fsum(values) for category, values in grouped.items()}


def compute_stats(
    transactions: Iterable[Transaction], period: Period = MONTH, today: Optional[date] = None
) -> Stats:
    filtered = filter_period(transactions, period, today)
    income = _total(filter(by_type(INCOME), filtered))
    expenses = _total(filter(by_type(EXPENSE), filtered))
    return Stats(income=income, expenses=expenses, balance=income - expenses, count=len(filtered))


def category_breakdown(
    transactions: Iterable[Transaction],
    period: Period = MONTH,
    tx_type: str = EXPENSE,
    today: Optional[date] = None,
    limit: Optional[int] = None,
) -> list[tuple[str, float]]:
    """Per-category totals for one transaction type, largest first.

    Categories whose total is zero are left out. `limit` keeps only the
    largest categories.
    """
    if tx_type not in TRANSACTION_TYPES:
        raise ValueError(f"Unknown transaction type: {tx_type!r}")
    filtered = filter(by_type(tx_type), filter_period(transactions, period, today))
    totals = [(category, total) for category, total in _group_totals(filtered).items() if total > 0]
    ranked = sorted(totals, key=lambda item: item[1], reverse=True)
    return ranked if limit is None else ranked[:limit]


def savings_rate(income: float, expenses: float) -> float:
    """Share of income kept, in percent. 0 when there is no income."""
    if income <= 0:
        return 0.0
    return (income - expenses) / income * 100


def average_transaction(stats: Stats) -> float:
    # expenses spread over every transaction in the window, income included
    return stats.expenses / stats.count if stats.count else 0.0


def income_sources(
    transactions: Iterable[Transaction], period: Period = ALL, today: Optional[date] = None
) -> list[tuple[str, float]]:
    return category_breakdown(transactions, period, INCOME, today)


def monthly_series(
    transactions: Iterable[Transaction], months_back: int = 6, today: Optional[date] = None
) -> list[MonthPoint]:
    """Income and expenses for the trailing calendar months, oldest first.

    Always returns `months_back` points; the current month is the last one.
    """
    today = _today(today)
    snapshot = list(transactions)
    series = []
    for offset in range(months_back - 1, -1, -1):
        start = shift_month(today, -offset)
        end = month_end(start)
        in_month = [t for t in snapshot if start <= t.date <= end]
        series.append(
            MonthPoint(
                label=start.strftime("%b"),
                month=start,
                income=_total(filter(by_type(INCOME), in_month)),
                expenses=_total(filter(by_type(EXPENSE), in_month)),
            )
        )
    return series


def savings_rate_series(
    transactions: Iterable[Transaction], months_back: int = 6, today: Optional[date] = None
) -> list[tuple[str, float]]:
    rates = []
    for point in monthly_series(transactions, months_back, today):
        rates.append((point.label, savings_rate(point.income, point.expenses)))
    return rates


def _tier(percentage: float) -> str:
    if percentage >= DANGER_THRESHOLD:
        return DANGER
    if percentage >= WARNING_THRESHOLD:
        return WARNING
    return SUCCESS


def budget_status_for(
    budget: Budget, transactions: Iterable[Transaction], today: Optional[date] = None
) -> BudgetStatus:
    """Utilization of one budget against the current calendar month."""
    expenses = filter(by_type(EXPENSE), filter_period(transactions, MONTH, today))
    spent = _total(filter(by_category(budget.category), expenses))
    limit = contribution(budget.amount)
    if limit > 0:
        percentage = spent / limit * 100
    else:
        # no usable limit: report as fully used rather than NaN/inf
        percentage = DANGER_THRESHOLD
    return BudgetStatus(
        budget=budget,
        spent=spent,
        percentage=percentage,
        display_percentage=min(max(percentage, 0.0), 100.0),
        remaining=limit - spent,
        status=_tier(percentage),
    )


def budget_status(
    budgets: Iterable[Budget], transactions: Iterable[Transaction], today: Optional[date] = None
) -> list[BudgetStatus]:
    snapshot = list(transactions)
    return [budget_status_for(b, snapshot, today) for b in budgets]


def daily_breakdown(
    transactions: Iterable[Transaction], period: Period = 30, today: Optional[date] = None
) -> list[DayPoint]:
    """Income and expenses per day, for days that have at least one transaction."""
    days: dict[date, dict[str, list[float]]] = {}
    for t in filter_period(transactions, period, today):
        if t.type not in TRANSACTION_TYPES:
            continue
        bucket = days.setdefault(t.date, {INCOME: [], EXPENSE: []})
        bucket[t.type].append(contribution(t.amount))
    return [
        DayPoint(day=day, income=math.fsum(days[day][INCOME]), expenses=math.fsum(days[day][EXPENSE]))
        for day in sorted(days)
    ]


def daily_spending(
    transactions: Iterable[Transaction], period: Period = 30, today: Optional[date] = None
) -> list[tuple[date, float]]:
    spending: dict[date, list[float]] = defaultdict(list)
    for t in filter(by_type(EXPENSE), filter_period(transactions, period, today)):
        spending[t.date].append(contribution(t.amount))
    return [(day, math.fsum(spending[day])) for day in sorted(spending)]


def payment_method_counts(
    transactions: Iterable[Transaction], period: Period = 30, today: Optional[date] = None
) -> list[tuple[str, int]]:
    counts: dict[str, int] = {}
    for t in filter_period(transactions, period, today):
        counts[t.payment_method] = counts.get(t.payment_method, 0) + 1
    return list(counts.items())


def summary_stats(
    transactions: Iterable[Transaction], period: Period = 30, today: Optional[date] = None
) -> SummaryStats:
    filtered = filter_period(transactions, period, today)
    stats = compute_stats(filtered, ALL)
    expense_amounts = [contribution(t.amount) for t in filtered if t.is_expense]
    top = category_breakdown(filtered, ALL, EXPENSE)
    return SummaryStats(
        stats=stats,
        average_transaction=average_transaction(stats),
        highest_expense=max(expense_amounts, default=0.0),
        top_category=top[0][0] if top else None,
    )


def filter_transactions(
    transactions: Iterable[Transaction],
    tx_type: str = ALL,
    category: str = ALL,
    period: Period = ALL,
    today: Optional[date] = None,
) -> list[Transaction]:
    """The transaction list filters: type, category and period, newest first."""
    filtered = filter_period(transactions, period, today)
    if tx_type != ALL:
        filtered = list(filter(by_type(tx_type), filtered))
    if category != ALL:
        filtered = list(filter(by_category(category), filtered))
    return sorted(filtered, key=lambda t: (t.date, t.id), reverse=True)


def recent_transactions(transactions: Iterable[Transaction], limit: int = 5) -> list[Transaction]:
    return filter_transactions(transactions)[:limit]


def distinct_categories(transactions: Iterable[Transaction]) -> list[str]:
    return sorted({category_label(t.category) for t in transactions})
