"""Streamlit app for the family finance tracker.

The pages here are thin views: every figure comes from
:mod:`family_finance.analytics` and every write goes through the
:class:`~family_finance.storage.FinanceStore`.  Validation and write
failures are shown with ``st.error``; successful changes with
``st.success``.

To run the dashboard from the command line::

    streamlit run family_finance/dashboard.py
"""

from __future__ import annotations

import os
import sys
from datetime import date, datetime

import streamlit as st

# Conditional imports to support execution both as part of a package and
# directly via ``streamlit run family_finance/dashboard.py``.
if __package__:
    from . import analytics
    from . import visualization as viz
    from .config import LOCALE
    from .family import FamilyError, add_member, family_summary, member_summaries, remove_member, switch_user
    from .formatting import escape_dollar_for_markdown, format_currency, format_percent
    from .goals import contribute, create_goal, toggle_goal
    from .models import COLOR_SCHEMES, RECURRING_FREQUENCIES, ValidationError, categories_for_type
    from .serialization import export_filename, transactions_to_csv
    from .storage import FinanceStore, WriteError, get_store
    from .transactions import record_transaction
else:
    CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
    PARENT_DIR = os.path.dirname(CURRENT_DIR)
    if PARENT_DIR not in sys.path:
        sys.path.insert(0, PARENT_DIR)
    from family_finance import analytics  # type: ignore
    from family_finance import visualization as viz  # type: ignore
    from family_finance.config import LOCALE  # type: ignore
    from family_finance.family import (  # type: ignore
        FamilyError, add_member, family_summary, member_summaries, remove_member, switch_user,
    )
    from family_finance.formatting import escape_dollar_for_markdown, format_currency, format_percent  # type: ignore
    from family_finance.goals import contribute, create_goal, toggle_goal  # type: ignore
    from family_finance.models import (  # type: ignore
        COLOR_SCHEMES, RECURRING_FREQUENCIES, ValidationError, categories_for_type,
    )
    from family_finance.serialization import export_filename, transactions_to_csv  # type: ignore
    from family_finance.storage import FinanceStore, WriteError, get_store  # type: ignore
    from family_finance.transactions import record_transaction  # type: ignore


def money(amount: float) -> str:
    return escape_dollar_for_markdown(format_currency(amount, LOCALE))


def overview_page(store: FinanceStore) -> None:
    st.header("Overview")
    user = store.get_current_user()
    user_id = user.id if user else None
    transactions = store.list_transactions()
    summary = analytics.month_summary(transactions, date.today(), user_id=user_id)

    col1, col2, col3 = st.columns(3)
    col1.metric("Income this month", format_currency(summary.income, LOCALE))
    col2.metric("Expenses this month", format_currency(summary.expenses, LOCALE))
    col3.metric("Balance", format_currency(summary.balance, LOCALE))

    st.subheader("Recent transactions")
    categories = {c.id: c for c in store.list_categories()}
    for txn in analytics.recent_transactions(transactions, user_id=user_id):
        category = categories.get(txn.category)
        icon = category.icon if category else "❓"
        sign = "+" if txn.type == "income" else "-"
        st.markdown(f"{icon} **{txn.description}** · {txn.date} · {sign}{money(txn.amount)}")

    goals = [g for g in analytics.goals_for_user(store.list_goals(), user_id) if g.is_active]
    if goals:
        st.plotly_chart(viz.create_goal_progress_chart(goals[:3]), use_container_width=True)


def add_transaction_page(store: FinanceStore) -> None:
    st.header("Add transaction")
    txn_type = st.radio("Type", ["expense", "income"], horizontal=True)
    options = categories_for_type(store.list_categories(), txn_type)
    with st.form("add-transaction", clear_on_submit=True):
        amount = st.text_input("Amount")
        category = st.selectbox("Category", options, format_func=lambda c: f"{c.icon} {c.name}")
        description = st.text_input("Description")
        on = st.date_input("Date", value=date.today())
        tags = st.text_input("Tags (comma separated)")
        frequency = st.selectbox("Repeats", ["never", *RECURRING_FREQUENCIES])
        submitted = st.form_submit_button("Save")

    if not submitted:
        return
    try:
        record_transaction(
            store,
            txn_type=txn_type,
            amount=amount,
            category=category.id if category else "",
            description=description,
            on=on,
            tags=tags.split(","),
            recurring_frequency=None if frequency == "never" else frequency,
        )
    except (ValidationError, WriteError) as exc:
        st.error(str(exc))
        return
    st.success(f"{'Income' if txn_type == 'income' else 'Expense'} added")


def reports_page(store: FinanceStore) -> None:
    st.header("Reports")
    user = store.get_current_user()
    transactions = analytics.filter_transactions(
        store.list_transactions(), user_id=user.id if user else None
    )
    categories = store.list_categories()

    col1, col2, col3 = st.columns(3)
    period = col1.selectbox("Period", analytics.PERIODS, index=1)
    txn_type = col2.selectbox("Type", ["all", "income", "expense"])
    category = col3.selectbox("Category", ["all"] + [c.id for c in categories])
    start = end = None
    if period == "custom":
        start = st.date_input("Start date", value=None)
        end = st.date_input("End date", value=None)

    window = analytics.resolve_period(period, date.today(), start, end)
    filtered = analytics.sort_by_date_desc(
        analytics.filter_transactions(transactions, window, txn_type=txn_type, category=category)
    )
    summary = analytics.compute_summary(filtered)

    st.caption(f"{window.start.isoformat()} → {window.end.isoformat()}")
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Income", format_currency(summary.income, LOCALE))
    col2.metric("Expenses", format_currency(summary.expenses, LOCALE))
    col3.metric("Balance", format_currency(summary.balance, LOCALE))
    col4.metric("Transactions", summary.count)

    breakdown = analytics.category_breakdown(filtered, categories)
    frame = analytics.breakdown_frame(breakdown)
    left, right = st.columns(2)
    left.plotly_chart(viz.create_category_pie_chart(frame), use_container_width=True)
    right.plotly_chart(viz.create_category_bar_chart(frame), use_container_width=True)
    for entry in breakdown:
        st.markdown(
            f"{entry.category.icon} {entry.category.name}: {money(entry.amount)} "
            f"({entry.count}) · {format_percent(entry.percentage)}"
        )

    trend = analytics.monthly_trend(transactions, date.today())
    st.plotly_chart(viz.create_trend_chart(analytics.trend_frame(trend)), use_container_width=True)

    st.download_button(
        "Export CSV",
        data=transactions_to_csv(filtered, LOCALE),
        file_name=export_filename("financial-report"),
        mime="text/csv",
    )


def goals_page(store: FinanceStore) -> None:
    st.header("Goals")
    user = store.get_current_user()
    goals = analytics.goals_for_user(store.list_goals(), user.id if user else None)
    overview = analytics.goal_overview(goals)
    col1, col2, col3 = st.columns(3)
    col1.metric("Active", overview.active)
    col2.metric("Completed", overview.completed)
    col3.metric("Total target", format_currency(overview.total_target, LOCALE))

    with st.expander("New goal"):
        with st.form("new-goal", clear_on_submit=True):
            title = st.text_input("Title")
            description = st.text_area("Description")
            target = st.text_input("Target amount")
            deadline = st.date_input("Deadline")
            category = st.text_input("Category", placeholder="Geral")
            if st.form_submit_button("Create"):
                try:
                    create_goal(store, title, description, target, deadline, category)
                    st.success("Goal created")
                except (ValidationError, WriteError) as exc:
                    st.error(str(exc))

    today = date.today()
    for goal in goals:
        status = "✅" if goal.is_complete else ("⏸️" if not goal.is_active else "🎯")
        st.subheader(f"{status} {goal.title}")
        st.progress(goal.progress_percent / 100)
        days = goal.days_remaining(today)
        st.caption(
            f"{money(goal.current_amount)} of {money(goal.target_amount)} · "
            + (f"{days} days left" if days >= 0 else f"{abs(days)} days overdue")
        )
        col1, col2, col3 = st.columns(3)
        amount = col1.number_input("Amount", min_value=0.0, step=10.0, key=f"amount-{goal.id}")
        if col2.button("Add", key=f"add-{goal.id}"):
            result = contribute(store, goal.id, amount)
            if result and result.completed_now:
                st.balloons()
                st.success(f"Goal reached: {goal.title}")
        if col3.button("Pause" if goal.is_active else "Resume", key=f"toggle-{goal.id}"):
            toggle_goal(store, goal.id)
        if st.button("Delete", key=f"delete-{goal.id}"):
            store.delete_goal(goal.id)


def family_page(store: FinanceStore) -> None:
    st.header("Family")
    total = family_summary(store, date.today())
    st.metric("Family balance this month", format_currency(total.balance, LOCALE))
    current_id = store.current_user_id()

    for user, summary in member_summaries(store, date.today()):
        marker = " (current)" if user.id == current_id else ""
        st.subheader(f"{user.avatar} {user.name}{marker}")
        st.caption(
            f"Income {money(summary.income)} · Expenses {money(summary.expenses)} · "
            f"{summary.count} transactions"
        )
        col1, col2 = st.columns(2)
        if user.id != current_id and col1.button("Switch to", key=f"switch-{user.id}"):
            switch_user(store, user.id)
            st.success(f"Now using the profile of {user.name}")
        if col2.button("Remove", key=f"remove-{user.id}"):
            try:
                removed = remove_member(store, user.id)
                st.success(f"User and {removed} transaction(s) removed")
            except (FamilyError, WriteError) as exc:
                st.error(str(exc))

    with st.form("new-member", clear_on_submit=True):
        name = st.text_input("Name")
        avatar = st.text_input("Avatar", value="👤")
        scheme = st.selectbox("Color scheme", COLOR_SCHEMES)
        if st.form_submit_button("Add member"):
            try:
                add_member(store, name, avatar, scheme)
                st.success(f"{name} was added to the family")
            except (ValidationError, WriteError) as exc:
                st.error(str(exc))


def settings_page(store: FinanceStore) -> None:
    st.header("Settings")
    stats = store.storage_stats()
    st.write(
        f"{stats['transactions']} transactions · {stats['goals']} goals · "
        f"{stats['users']} users · {stats['categories']} categories · {stats['storage_kb']} KB"
    )

    st.download_button(
        "Export backup (JSON)",
        data=store.export_snapshot(),
        file_name=export_filename("minha-conta-backup", extension="json"),
        mime="application/json",
    )
    st.download_button(
        "Export transactions (CSV)",
        data=transactions_to_csv(store.list_transactions(), LOCALE),
        file_name=export_filename("transactions"),
        mime="text/csv",
    )

    uploaded = st.file_uploader("Import backup", type=["json"])
    if uploaded is not None and st.button("Import"):
        if store.import_snapshot(uploaded.getvalue()):
            st.success("Data imported")
        else:
            st.error("Invalid backup file")

    st.divider()
    if st.button("Clear all data", type="primary"):
        store.clear_all()
        st.warning(f"All data cleared at {datetime.now():%H:%M}")


PAGES = {
    "Overview": overview_page,
    "Add transaction": add_transaction_page,
    "Reports": reports_page,
    "Goals": goals_page,
    "Family": family_page,
    "Settings": settings_page,
}


def main() -> None:
    """Entry point for the Streamlit app."""
    st.set_page_config(page_title="Family Finance", layout="wide")
    store = get_store()
    user = store.get_current_user()
    st.sidebar.title("Family Finance")
    if user:
        st.sidebar.caption(f"{user.avatar} {user.name}")
    page = st.sidebar.radio("Navigate", list(PAGES))
    PAGES[page](store)


if __name__ == "__main__":
    main()
