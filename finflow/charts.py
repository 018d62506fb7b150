"""Plotly figures built from aggregation results.

Builders only see derived numbers, never the store. An empty input gives
a figure without traces so callers can render it unconditionally.
"""
from datetime import date
from typing import Sequence

import plotly.express as px
import plotly.graph_objects as go

from finflow.aggregation import DayPoint, MonthPoint
from finflow.formatting import day_label

INCOME_COLOR = "#10b981"
EXPENSE_COLOR = "#ef4444"
PALETTE = ["#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6", "#06b6d4", "#ec4899", "#84cc16"]

THEME_TEMPLATES = {"light": "plotly_white", "dark": "plotly_dark"}


def template_for(theme: str) -> str:
    return THEME_TEMPLATES.get(theme, "plotly_white")


def _layout(fig: go.Figure, title: str, template: str) -> go.Figure:
    fig.update_layout(title=title, template=template, margin=dict(t=40, b=10, l=10, r=10))
    return fig


def category_doughnut(breakdown: Sequence[tuple[str, float]], title: str = "Spending by Category",
                      template: str = "plotly_white") -> go.Figure:
    fig = go.Figure()
    if breakdown:
        fig.add_trace(go.Pie(
            labels=[c for c, _ in breakdown],
            values=[v for _, v in breakdown],
            hole=0.5,
            marker=dict(colors=PALETTE),
            hovertemplate="%{label}: $%{value:,.2f}<extra></extra>",
        ))
    return _layout(fig, title, template)


def income_expense_bars(series: Sequence[MonthPoint], template: str = "plotly_white") -> go.Figure:
    fig = go.Figure()
    if series:
        labels = [p.label for p in series]
        fig.add_trace(go.Bar(x=labels, y=[p.income for p in series], name="Income", marker_color=INCOME_COLOR))
        fig.add_trace(go.Bar(x=labels, y=[p.expenses for p in series], name="Expenses", marker_color=EXPENSE_COLOR))
        fig.update_layout(barmode="group", yaxis_tickprefix="$")
    return _layout(fig, "Income vs Expenses", template)


def daily_trend_lines(points: Sequence[DayPoint], template: str = "plotly_white") -> go.Figure:
    fig = go.Figure()
    if points:
        labels = [day_label(p.day) for p in points]
        fig.add_trace(go.Scatter(x=labels, y=[p.income for p in points], mode="lines+markers",
                                 name="Income", line=dict(color=INCOME_COLOR, shape="spline")))
        fig.add_trace(go.Scatter(x=labels, y=[p.expenses for p in points], mode="lines+markers",
                                 name="Expenses", line=dict(color=EXPENSE_COLOR, shape="spline")))
        fig.update_layout(yaxis_tickprefix="$")
    return _layout(fig, "Income & Expense Trends", template)


def daily_spending_bars(spending: Sequence[tuple[date, float]], template: str = "plotly_white") -> go.Figure:
    fig = go.Figure()
    if spending:
        fig.add_trace(go.Bar(x=[day_label(d) for d, _ in spending], y=[v for _, v in spending],
                             name="Daily Spending", marker_color=PALETTE[0]))
        fig.update_layout(yaxis_tickprefix="$", showlegend=False)
    return _layout(fig, "Daily Spending", template)


def payment_methods_doughnut(counts: Sequence[tuple[str, int]], template: str = "plotly_white") -> go.Figure:
    if not counts:
        return _layout(go.Figure(), "Payment Methods", template)
    fig = px.pie(names=[m for m, _ in counts], values=[n for _, n in counts],
                 hole=0.5, color_discrete_sequence=PALETTE)
    return _layout(fig, "Payment Methods", template)


def income_sources_bars(sources: Sequence[tuple[str, float]], template: str = "plotly_white") -> go.Figure:
    if not sources:
        return _layout(go.Figure(), "Income Sources", template)
    fig = px.bar(x=[c for c, _ in sources], y=[v for _, v in sources],
                 labels={"x": "Category", "y": "Amount"}, color_discrete_sequence=[INCOME_COLOR])
    fig.update_layout(yaxis_tickprefix="$", showlegend=False)
    return _layout(fig, "Income Sources", template)


def savings_rate_line(rates: Sequence[tuple[str, float]], template: str = "plotly_white") -> go.Figure:
    fig = go.Figure()
    if rates:
        fig.add_trace(go.Scatter(x=[label for label, _ in rates], y=[r for _, r in rates],
                                 mode="lines+markers", name="Savings Rate %", fill="tozeroy",
                                 line=dict(color=INCOME_COLOR, shape="spline")))
        fig.update_layout(yaxis=dict(range=[0, 100], ticksuffix="%"), showlegend=False)
    return _layout(fig, "Savings Rate", template)
