from datetime import date

from finflow.aggregation import category_breakdown, daily_breakdown, monthly_series
from finflow.charts import (
    category_doughnut,
    daily_spending_bars,
    daily_trend_lines,
    income_expense_bars,
    income_sources_bars,
    payment_methods_doughnut,
    savings_rate_line,
    template_for,
)
from finflow.domain import Transaction

TODAY = date(2025, 3, 15)


def make_sample():
    return (
        Transaction(1, "income", date(2025, 3, 1), 3000, "Salary"),
        Transaction(2, "expense", date(2025, 3, 3), 120, "Food"),
        Transaction(3, "expense", date(2025, 3, 5), 60, "Transport"),
    )


def test_empty_inputs_give_figures_without_traces():
    for fig in (
        category_doughnut([]),
        income_expense_bars([]),
        daily_trend_lines([]),
        daily_spending_bars([]),
        payment_methods_doughnut([]),
        income_sources_bars([]),
        savings_rate_line([]),
    ):
        assert len(fig.data) == 0


def test_category_doughnut_uses_breakdown_order():
    fig = category_doughnut(category_breakdown(make_sample(), "month", "expense", TODAY))
    assert list(fig.data[0].labels) == ["Food", "Transport"]
    assert list(fig.data[0].values) == [120, 60]


def test_income_expense_bars_has_two_series():
    fig = income_expense_bars(monthly_series(make_sample(), 6, TODAY), template="plotly_dark")
    assert [trace.name for trace in fig.data] == ["Income", "Expenses"]
    assert len(fig.data[0].x) == 6
    assert fig.data[0].y[-1] == 3000


def test_daily_trend_labels():
    fig = daily_trend_lines(daily_breakdown(make_sample(), 30, TODAY))
    assert list(fig.data[0].x) == ["Mar 1", "Mar 3", "Mar 5"]


def test_savings_rate_axis_is_percent():
    fig = savings_rate_line([("Jan", 50.0), ("Feb", 20.0)])
    assert tuple(fig.layout.yaxis.range) == (0, 100)


def test_template_for_theme():
    assert template_for("dark") == "plotly_dark"
    assert template_for("light") == "plotly_white"
    assert template_for("neon") == "plotly_white"
