from datetime import date

import pytest

from family_finance import analytics
from family_finance.analytics import PeriodWindow, Summary
from family_finance.models import Goal, Transaction, default_categories


def _txn(txn_id, txn_type, amount, category, day='2024-03-10', user_id='user-1'):
    return Transaction(
        id=txn_id,
        type=txn_type,
        amount=amount,
        category=category,
        description=f'{category} {txn_id}',
        date=day,
        tags=[],
        user_id=user_id,
    )


def sample_transactions():
    return [
        _txn('1', 'income', 100, 'salary', '2024-03-01'),
        _txn('2', 'income', 50, 'freelance', '2024-03-05', user_id='u2'),
        _txn('3', 'expense', 30, 'food', '2024-03-08'),
    ]


def test_summary_totals():
    summary = analytics.compute_summary(sample_transactions())
    assert summary == Summary(income=150.0, expenses=30.0, balance=120.0, count=3)


def test_summary_of_nothing_is_zero():
    assert analytics.compute_summary([]) == Summary(0.0, 0.0, 0.0, 0)


def test_breakdown_amounts_and_percentages():
    txns = [
        _txn('1', 'expense', 60, 'food'),
        _txn('2', 'expense', 10, 'transport'),
        _txn('3', 'expense', 30, 'food'),
    ]
    breakdown = analytics.category_breakdown(txns, default_categories())

    assert [e.category.id for e in breakdown] == ['food', 'transport']
    assert breakdown[0].amount == 90.0
    assert breakdown[0].count == 2
    assert breakdown[0].percentage == pytest.approx(90.0)
    assert breakdown[1].percentage == pytest.approx(10.0)


def test_breakdown_percentage_uses_income_plus_expenses():
    txns = [_txn('1', 'income', 300, 'salary'), _txn('2', 'expense', 100, 'food')]
    breakdown = analytics.category_breakdown(txns, default_categories())
    assert {e.category.id: e.percentage for e in breakdown} == {
        'salary': pytest.approx(75.0),
        'food': pytest.approx(25.0),
    }


def test_breakdown_ties_keep_first_seen_order():
    txns = [
        _txn('1', 'expense', 20, 'transport'),
        _txn('2', 'expense', 20, 'food'),
        _txn('3', 'expense', 5, 'health'),
        _txn('4', 'expense', 20, 'bills'),
    ]
    breakdown = analytics.category_breakdown(txns, default_categories())
    assert [e.category.id for e in breakdown] == ['transport', 'food', 'bills', 'health']


def test_breakdown_drops_unknown_categories_with_warning(caplog):
    txns = [_txn('1', 'expense', 40, 'food'), _txn('2', 'expense', 10, 'deleted-category')]
    breakdown = analytics.category_breakdown(txns, default_categories())

    assert [e.category.id for e in breakdown] == ['food']
    assert breakdown[0].percentage == pytest.approx(80.0)
    assert 'deleted-category' in caplog.text


def test_breakdown_of_nothing_is_empty():
    assert analytics.category_breakdown([], default_categories()) == []


def test_monthly_trend_has_six_zero_filled_months():
    txns = [
        _txn('1', 'income', 100, 'salary', '2024-01-15'),
        _txn('2', 'expense', 40, 'food', '2024-03-02'),
        _txn('3', 'expense', 999, 'food', '2023-09-30'),
        _txn('4', 'expense', 5, 'food', '2024-04-01'),
    ]
    trend = analytics.monthly_trend(txns, now=date(2024, 3, 15))

    assert [p.month for p in trend] == ['2023-10', '2023-11', '2023-12', '2024-01', '2024-02', '2024-03']
    assert trend[0].income == 0.0 and trend[0].expenses == 0.0
    assert trend[3].income == 100.0
    assert trend[5].expenses == 40.0
    assert trend[5].net == -40.0


def test_monthly_trend_without_transactions():
    trend = analytics.monthly_trend([], now='2024-01-10')
    assert len(trend) == 6
    assert trend[0].month == '2023-08'
    assert all(p.income == 0.0 and p.expenses == 0.0 for p in trend)


@pytest.mark.parametrize(
    'period, now, expected',
    [
        ('week', date(2024, 3, 15), PeriodWindow(date(2024, 3, 8), date(2024, 3, 15))),
        ('month', date(2024, 2, 10), PeriodWindow(date(2024, 2, 1), date(2024, 2, 29))),
        ('quarter', date(2024, 5, 10), PeriodWindow(date(2024, 4, 1), date(2024, 6, 30))),
        ('year', date(2024, 5, 10), PeriodWindow(date(2024, 1, 1), date(2024, 12, 31))),
    ],
)
def test_resolve_period(period, now, expected):
    assert analytics.resolve_period(period, now) == expected


def test_custom_period_needs_both_bounds():
    now = date(2024, 3, 15)
    assert analytics.resolve_period('custom', now, '2024-01-05', '2024-02-10') == PeriodWindow(
        date(2024, 1, 5), date(2024, 2, 10)
    )
    assert analytics.resolve_period('custom', now, start='2024-01-05') == PeriodWindow(
        date(2024, 3, 1), date(2024, 3, 31)
    )


def test_unknown_period_raises():
    with pytest.raises(ValueError):
        analytics.resolve_period('decade', date(2024, 1, 1))


def test_window_bounds_are_inclusive():
    window = analytics.resolve_period('month', date(2024, 3, 15))
    txns = [
        _txn('1', 'expense', 1, 'food', '2024-02-29'),
        _txn('2', 'expense', 1, 'food', '2024-03-01'),
        _txn('3', 'expense', 1, 'food', '2024-03-31'),
        _txn('4', 'expense', 1, 'food', '2024-04-01'),
    ]
    assert [t.id for t in analytics.filter_transactions(txns, window)] == ['2', '3']


def test_filters_combine():
    txns = sample_transactions() + [_txn('4', 'expense', 12, 'food', '2024-02-20')]
    window = analytics.resolve_period('month', date(2024, 3, 15))

    assert [t.id for t in analytics.filter_transactions(txns, window, txn_type='income')] == ['1', '2']
    assert [t.id for t in analytics.filter_transactions(txns, category='food')] == ['3', '4']
    assert [t.id for t in analytics.filter_transactions(txns, window, category='food')] == ['3']
    assert [t.id for t in analytics.filter_transactions(txns, user_id='u2')] == ['2']


def test_sort_by_date_desc_is_stable():
    txns = [
        _txn('a', 'expense', 1, 'food', '2024-03-01'),
        _txn('b', 'expense', 1, 'food', '2024-03-05'),
        _txn('c', 'expense', 1, 'food', '2024-03-01'),
    ]
    assert [t.id for t in analytics.sort_by_date_desc(txns)] == ['b', 'a', 'c']
    assert [t.id for t in analytics.recent_transactions(txns, limit=1)] == ['b']


def test_percentage_of_total_with_nothing():
    assert analytics.percentage_of_total(10, Summary(0.0, 0.0, 0.0, 0)) == 0.0


def test_month_summary_for_one_user():
    summary = analytics.month_summary(sample_transactions(), date(2024, 3, 20), user_id='user-1')
    assert summary.income == 100.0
    assert summary.expenses == 30.0
    assert summary.count == 2


def test_goal_overview():
    goals = [
        Goal(id='g1', title='Car', target_amount=1000, current_amount=1000, deadline='2025-01-01', user_id='u'),
        Goal(id='g2', title='Trip', target_amount=500, current_amount=100, deadline='2025-01-01', user_id='u'),
        Goal(id='g3', title='Old', target_amount=50, current_amount=60, deadline='2023-01-01', user_id='v',
             is_active=False),
    ]
    overview = analytics.goal_overview(goals)
    assert overview.active == 2
    assert overview.completed == 2
    assert overview.total_target == 1500
    assert overview.total_saved == 1100
    assert [g.id for g in analytics.goals_for_user(goals, 'v')] == ['g3']


def test_chart_frames_have_expected_columns():
    breakdown = analytics.category_breakdown(sample_transactions(), default_categories())
    frame = analytics.breakdown_frame(breakdown)
    assert list(frame.columns) == ['Category', 'Icon', 'Color', 'Amount', 'Count', 'Percentage']
    assert len(frame) == 3

    trend = analytics.trend_frame(analytics.monthly_trend(sample_transactions(), date(2024, 3, 31)))
    assert list(trend.columns) == ['Month', 'Income', 'Expenses', 'Net']
    assert trend['Net'].iloc[-1] == 120.0


def test_recent_transactions_for_one_user():
    txns = sample_transactions() + [_txn('4', 'expense', 9, 'food', '2024-03-20', user_id='u2')]
    assert [t.id for t in analytics.recent_transactions(txns, user_id='u2')] == ['4', '2']
    assert len(analytics.recent_transactions(txns)) == 4
