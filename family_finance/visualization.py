"""Plotly visualisation helpers for the family finance dashboard.

Each function accepts one of the chart-ready DataFrames produced by
:mod:`family_finance.analytics` (``trend_frame``, ``breakdown_frame``) or a
list of goals, and returns a ``plotly.graph_objects.Figure`` that Streamlit
renders via ``st.plotly_chart``.  An empty input yields an empty figure
titled "No data to display" instead of raising.
"""

from __future__ import annotations

from typing import Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .models import Goal

INCOME_COLOR = "#22c55e"
EXPENSE_COLOR = "#ef4444"


def _empty_figure(title: str = "No data to display") -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title=title)
    return fig


def create_trend_chart(trend: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Grouped income/expense bars per month with a net line.

    Parameters
    ----------
    trend : pandas.DataFrame
        Output of :func:`family_finance.analytics.trend_frame` with
        ``Month``, ``Income``, ``Expenses`` and ``Net`` columns.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Bar chart with one income and one expense trace plus a net line.
    """
    if trend.empty:
        return _empty_figure()
    fig = go.Figure()
    fig.add_trace(go.Bar(x=trend["Month"], y=trend["Income"], name="Income", marker_color=INCOME_COLOR))
    fig.add_trace(go.Bar(x=trend["Month"], y=trend["Expenses"], name="Expenses", marker_color=EXPENSE_COLOR))
    fig.add_trace(go.Scatter(x=trend["Month"], y=trend["Net"], name="Net", mode="lines+markers"))
    fig.update_layout(
        title=title or "Monthly trend",
        barmode="group",
        xaxis_title="Month",
        yaxis_title="Amount",
    )
    return fig


def create_category_pie_chart(breakdown: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Pie chart of a category breakdown using each category's own colour.

    Parameters
    ----------
    breakdown : pandas.DataFrame
        Output of :func:`family_finance.analytics.breakdown_frame`.
    title : str, optional
        Chart title.
    """
    if breakdown.empty:
        return _empty_figure()
    df = breakdown.assign(Label=breakdown["Icon"] + " " + breakdown["Category"])
    fig = px.pie(
        df,
        names="Label",
        values="Amount",
        color="Label",
        color_discrete_map=dict(zip(df["Label"], df["Color"])),
    )
    fig.update_layout(title=title or "Category breakdown")
    return fig


def create_category_bar_chart(breakdown: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Horizontal bars of a category breakdown, largest on top."""
    if breakdown.empty:
        return _empty_figure()
    fig = px.bar(
        breakdown.iloc[::-1],
        x="Amount",
        y="Category",
        orientation="h",
        text="Count",
    )
    fig.update_traces(marker_color=list(breakdown.iloc[::-1]["Color"]))
    fig.update_layout(
        title=title or "Spending by category",
        xaxis_title="Amount",
        yaxis_title="Category",
    )
    return fig


def create_goal_progress_chart(goals: Sequence[Goal], title: str | None = None) -> go.Figure:
    """Progress (capped at 100%) of each goal as horizontal bars."""
    if not goals:
        return _empty_figure("No goals to display")
    df = pd.DataFrame(
        {
            "Goal": [goal.title for goal in goals],
            "Progress": [goal.progress_percent for goal in goals],
        }
    )
    fig = px.bar(df, x="Progress", y="Goal", orientation="h", range_x=[0, 100])
    fig.update_layout(
        title=title or "Goal progress",
        xaxis_title="% of target",
        yaxis_title="Goal",
    )
    return fig
