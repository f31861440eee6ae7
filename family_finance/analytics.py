"""Reporting and aggregation over raw store collections.

All functions here are pure: they take collections already loaded from the
:class:`~family_finance.storage.FinanceStore` and an explicit reference time,
and recompute everything on each call.  No result is cached.

Sums keep the full precision of the stored amounts; rounding for display
belongs to the view layer.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Union

import pandas as pd

from .config import TREND_MONTHS
from .models import Category, Goal, Transaction, parse_iso_date

logger = logging.getLogger(__name__)

PERIODS = ("week", "month", "quarter", "year", "custom")
ALL = "all"

DateLike = Union[date, datetime, str]

FRAME_COLUMNS = ["id", "type", "amount", "category", "description", "date", "user_id"]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PeriodWindow:
    """Inclusive ``[start, end]`` range of calendar days."""

    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass
class Summary:
    income: float
    expenses: float
    balance: float
    count: int


@dataclass
class BreakdownEntry:
    category: Category
    amount: float
    count: int
    percentage: float


@dataclass
class TrendPoint:
    month: str  # YYYY-MM
    income: float
    expenses: float

    @property
    def net(self) -> float:
        return self.income - self.expenses


@dataclass
class GoalOverview:
    active: int
    completed: int
    total_target: float
    total_saved: float


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _as_day(value: Optional[DateLike]) -> date:
    if value is None:
        return date.today()
    return parse_iso_date(value)


def _safe_day(txn: Transaction) -> Optional[date]:
    try:
        return txn.day
    except (TypeError, ValueError):
        logger.warning("Transaction %s has an unreadable date %r", txn.id, txn.date)
        return None


def _month_window(today: date) -> PeriodWindow:
    last_day = calendar.monthrange(today.year, today.month)[1]
    return PeriodWindow(today.replace(day=1), today.replace(day=last_day))


def transactions_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """Tabular view of ``transactions`` with a parsed ``date`` column."""
    rows = [
        {
            "id": txn.id,
            "type": txn.type,
            "amount": txn.amount,
            "category": txn.category,
            "description": txn.description,
            "date": str(txn.date)[:10],
            "user_id": txn.user_id,
        }
        for txn in transactions
    ]
    frame = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    frame["amount"] = pd.to_numeric(frame["amount"], errors="coerce").fillna(0.0).astype(float)
    frame["date"] = pd.to_datetime(frame["date"], format="%Y-%m-%d", errors="coerce")
    return frame


# ---------------------------------------------------------------------------
# Period resolution and filtering
# ---------------------------------------------------------------------------


def resolve_period(
    period: str,
    now: Optional[DateLike] = None,
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
) -> PeriodWindow:
    """Compute the inclusive date window for a period selector.

    * ``week`` – the seven days before ``now`` through ``now``
    * ``month`` – first through last day of ``now``'s month
    * ``quarter`` – first through last day of the current three-month block
    * ``year`` – January 1 through December 31
    * ``custom`` – ``[start, end]``; falls back to the month window unless
      both bounds are supplied
    """
    today = _as_day(now)
    if period == "week":
        return PeriodWindow(today - timedelta(days=7), today)
    if period == "month":
        return _month_window(today)
    if period == "quarter":
        first_month = (today.month - 1) // 3 * 3 + 1
        last_month = first_month + 2
        last_day = calendar.monthrange(today.year, last_month)[1]
        return PeriodWindow(date(today.year, first_month, 1), date(today.year, last_month, last_day))
    if period == "year":
        return PeriodWindow(date(today.year, 1, 1), date(today.year, 12, 31))
    if period == "custom":
        if start and end:
            return PeriodWindow(parse_iso_date(start), parse_iso_date(end))
        return _month_window(today)
    raise ValueError(f"Unknown period '{period}'. Expected one of {', '.join(PERIODS)}")


def filter_transactions(
    transactions: Iterable[Transaction],
    window: Optional[PeriodWindow] = None,
    txn_type: str = ALL,
    category: str = ALL,
    user_id: Optional[str] = None,
) -> List[Transaction]:
    """Narrow ``transactions`` by window, type, category and user (all ANDed)."""
    selected: List[Transaction] = []
    for txn in transactions:
        if user_id is not None and txn.user_id != user_id:
            continue
        if txn_type != ALL and txn.type != txn_type:
            continue
        if category != ALL and txn.category != category:
            continue
        if window is not None:
            day = _safe_day(txn)
            if day is None or not window.contains(day):
                continue
        selected.append(txn)
    return selected


def sort_by_date_desc(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Newest first; transactions on the same day keep their stored order."""
    return sorted(transactions, key=lambda txn: _safe_day(txn) or date.min, reverse=True)


def recent_transactions(
    transactions: Iterable[Transaction],
    limit: int = 5,
    user_id: Optional[str] = None,
) -> List[Transaction]:
    """Newest ``limit`` transactions, optionally only those of ``user_id``."""
    return sort_by_date_desc(filter_transactions(transactions, user_id=user_id))[:limit]


# ---------------------------------------------------------------------------
# Aggregations
# ---------------------------------------------------------------------------


def _frame_summary(frame: pd.DataFrame) -> Summary:
    income = float(frame.loc[frame["type"] == "income", "amount"].sum())
    expenses = float(frame.loc[frame["type"] == "expense", "amount"].sum())
    return Summary(income=income, expenses=expenses, balance=income - expenses, count=len(frame))


def compute_summary(transactions: Iterable[Transaction]) -> Summary:
    return _frame_summary(transactions_frame(transactions))


def percentage_of_total(amount: float, summary: Summary) -> float:
    """``amount`` as a percentage of income plus expenses; 0 when both are 0."""
    total = summary.income + summary.expenses
    if total == 0:
        return 0.0
    return amount / total * 100


def category_breakdown(
    transactions: Sequence[Transaction],
    categories: Iterable[Category],
) -> List[BreakdownEntry]:
    """Sum and count ``transactions`` per category, largest amount first.

    Groups whose category id no longer resolves to a known category are
    logged and left out.  Ties keep the order in which categories were first
    seen.
    """
    frame = transactions_frame(transactions)
    if frame.empty:
        return []
    summary = _frame_summary(frame)
    lookup: Dict[str, Category] = {c.id: c for c in categories}

    grouped = frame.groupby("category", sort=False)["amount"].agg(["sum", "count"])
    unresolved = [cid for cid in grouped.index if cid not in lookup]
    if unresolved:
        logger.warning(
            "Dropping %d transaction(s) with unknown categories from breakdown: %s",
            int(grouped.loc[unresolved, "count"].sum()),
            ", ".join(map(str, unresolved)),
        )
        grouped = grouped.drop(index=unresolved)
    grouped = grouped.sort_values("sum", ascending=False, kind="stable")

    return [
        BreakdownEntry(
            category=lookup[cid],
            amount=float(row["sum"]),
            count=int(row["count"]),
            percentage=percentage_of_total(float(row["sum"]), summary),
        )
        for cid, row in grouped.iterrows()
    ]


def monthly_trend(
    transactions: Iterable[Transaction],
    now: Optional[DateLike] = None,
    months: int = TREND_MONTHS,
) -> List[TrendPoint]:
    """Income and expense totals for the ``months`` calendar months ending at ``now``.

    Always returns exactly ``months`` points, oldest first; months without
    transactions are zero.
    """
    today = _as_day(now)
    current = pd.Period(year=today.year, month=today.month, freq="M")
    periods = pd.period_range(end=current, periods=months, freq="M")
    totals = pd.DataFrame(0.0, index=periods, columns=["income", "expense"])

    frame = transactions_frame(transactions).dropna(subset=["date"]).copy()
    if not frame.empty:
        frame["month"] = frame["date"].dt.to_period("M")
        frame = frame[frame["month"].isin(periods)].copy()
        if not frame.empty:
            # anything that is not income counts as an expense
            frame["flow"] = frame["type"].where(frame["type"] == "income", "expense")
            sums = frame.groupby(["month", "flow"])["amount"].sum().unstack(fill_value=0.0)
            totals = sums.reindex(index=periods, columns=totals.columns, fill_value=0.0)

    return [
        TrendPoint(month=str(period), income=float(row["income"]), expenses=float(row["expense"]))
        for period, row in totals.iterrows()
    ]


def month_summary(
    transactions: Iterable[Transaction],
    now: Optional[DateLike] = None,
    user_id: Optional[str] = None,
) -> Summary:
    """Summary of the calendar month containing ``now``, optionally for one user."""
    window = resolve_period("month", now)
    return compute_summary(filter_transactions(transactions, window, user_id=user_id))


def goals_for_user(goals: Iterable[Goal], user_id: Optional[str]) -> List[Goal]:
    if user_id is None:
        return list(goals)
    return [goal for goal in goals if goal.user_id == user_id]


def goal_overview(goals: Iterable[Goal]) -> GoalOverview:
    goals = list(goals)
    active = [goal for goal in goals if goal.is_active]
    return GoalOverview(
        active=len(active),
        completed=sum(1 for goal in goals if goal.is_complete),
        total_target=sum(goal.target_amount for goal in active),
        total_saved=sum(goal.current_amount for goal in active),
    )


# ---------------------------------------------------------------------------
# Chart-ready frames
# ---------------------------------------------------------------------------


def breakdown_frame(entries: Sequence[BreakdownEntry]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Category": entry.category.name,
                "Icon": entry.category.icon,
                "Color": entry.category.color,
                "Amount": entry.amount,
                "Count": entry.count,
                "Percentage": entry.percentage,
            }
            for entry in entries
        ],
        columns=["Category", "Icon", "Color", "Amount", "Count", "Percentage"],
    )


def trend_frame(points: Sequence[TrendPoint]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"Month": p.month, "Income": p.income, "Expenses": p.expenses, "Net": p.net} for p in points],
        columns=["Month", "Income", "Expenses", "Net"],
    )
