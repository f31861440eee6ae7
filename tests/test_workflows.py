"""Transactions, goals and family member workflows on an in-memory store."""

from datetime import date

import pytest

from family_finance.backends import MemoryBackend
from family_finance.family import (
    FamilyError,
    add_member,
    edit_member,
    family_summary,
    member_summaries,
    remove_member,
    switch_user,
)
from family_finance.goals import contribute, create_goal, edit_goal, toggle_goal
from family_finance.models import ValidationError
from family_finance.storage import FinanceStore
from family_finance.transactions import build_transaction, parse_amount, record_transaction


def _store():
    store = FinanceStore(MemoryBackend())
    store.initialize()
    return store


# Transactions ------------------------------------------------------------------


@pytest.mark.parametrize(
    'raw, expected',
    [('12,50', 12.5), ('R$ 1250,75', 1250.75), ('100', 100.0), ('abc', 0.0), ('', 0.0), (None, 0.0), (7, 7.0)],
)
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


def test_record_transaction_for_current_user():
    store = _store()
    txn = record_transaction(
        store, 'expense', '12,50', 'food', '  Lunch  ',
        on=date(2024, 3, 1), tags=['work', ' team', 'work'],
    )
    assert txn.amount == 12.5
    assert txn.description == 'Lunch'
    assert txn.tags == ['work', 'team']
    assert txn.user_id == 'user-1'
    assert txn.date == '2024-03-01'
    assert store.list_transactions() == [txn]


def test_build_transaction_sets_next_recurring_date():
    txn = build_transaction(_store(), 'income', 3500, 'salary', 'Salary', on='2024-01-31',
                            recurring_frequency='monthly')
    assert txn.recurring.frequency == 'monthly'
    assert txn.recurring.next_date == '2024-02-29'


def test_build_transaction_rejects_bad_input():
    store = _store()
    with pytest.raises(ValidationError, match='greater than zero'):
        build_transaction(store, 'expense', 'abc', 'food', 'Lunch')
    with pytest.raises(ValidationError):
        build_transaction(store, 'expense', 10, '', 'Lunch')
    with pytest.raises(ValidationError):
        build_transaction(store, 'expense', 10, 'food', '   ')
    assert store.list_transactions() == []


def test_build_transaction_without_current_user():
    store = _store()
    store.set_current_user(None)
    with pytest.raises(ValidationError, match='User not found'):
        build_transaction(store, 'expense', 10, 'food', 'Lunch')


# Goals ---------------------------------------------------------------------------


def test_create_goal_defaults():
    store = _store()
    goal = create_goal(store, ' Trip ', 'Beach', '2000', date(2024, 12, 20))
    assert goal.title == 'Trip'
    assert goal.target_amount == 2000.0
    assert goal.current_amount == 0.0
    assert goal.deadline == '2024-12-20'
    assert goal.category == 'Geral'
    assert goal.user_id == 'user-1'
    assert goal.is_active
    assert store.list_goals() == [goal]


def test_create_goal_requires_positive_target():
    with pytest.raises(ValidationError):
        create_goal(_store(), 'Trip', 'Beach', '0', '2024-12-20')


def test_contribute_detects_completion_once():
    store = _store()
    goal = create_goal(store, 'Trip', 'Beach', 100, '2024-12-20')

    first = contribute(store, goal.id, 60)
    assert first.goal.current_amount == 60.0
    assert not first.completed_now

    second = contribute(store, goal.id, 50)
    assert second.goal.current_amount == 110.0
    assert second.completed_now

    third = contribute(store, goal.id, 10)
    assert not third.completed_now


def test_contribute_never_goes_below_zero():
    store = _store()
    goal = create_goal(store, 'Trip', 'Beach', 100, '2024-12-20')
    contribute(store, goal.id, 30)
    result = contribute(store, goal.id, -80)
    assert result.goal.current_amount == 0.0
    assert contribute(store, 'missing', 10) is None


def test_toggle_and_edit_goal():
    store = _store()
    goal = create_goal(store, 'Trip', 'Beach', 100, '2024-12-20')
    assert toggle_goal(store, goal.id).is_active is False
    assert toggle_goal(store, goal.id).is_active is True
    assert toggle_goal(store, 'missing') is None

    edited = edit_goal(store, goal.id, title='Big trip', target_amount='250')
    assert edited.title == 'Big trip'
    assert edited.target_amount == 250.0
    assert edited.description == 'Beach'
    assert edit_goal(store, goal.id) is None


# Family --------------------------------------------------------------------------


def test_cannot_remove_last_user():
    store = _store()
    with pytest.raises(FamilyError):
        remove_member(store, 'user-1')
    assert len(store.list_users()) == 1


def test_cannot_remove_current_user():
    store = _store()
    add_member(store, 'Ana')
    with pytest.raises(FamilyError):
        remove_member(store, 'user-1')


def test_remove_member_cascades_to_transactions():
    store = _store()
    ana = add_member(store, 'Ana', '👩', 'feminine')
    record_transaction(store, 'expense', 10, 'food', 'Mine')
    record_transaction(store, 'expense', 20, 'food', 'Hers', user_id=ana.id)
    record_transaction(store, 'income', 30, 'salary', 'Hers too', user_id=ana.id)

    assert remove_member(store, ana.id) == 2
    assert [u.id for u in store.list_users()] == ['user-1']
    assert [t.description for t in store.list_transactions()] == ['Mine']


def test_switch_user():
    store = _store()
    ana = add_member(store, 'Ana')
    assert switch_user(store, ana.id) == ana
    assert store.get_current_user() == ana
    with pytest.raises(FamilyError):
        switch_user(store, 'ghost')
    assert store.current_user_id() == ana.id


def test_add_and_edit_member_validation():
    store = _store()
    with pytest.raises(ValidationError):
        add_member(store, '   ')
    ana = add_member(store, 'Ana')
    assert edit_member(store, ana.id, name='Ana Maria').name == 'Ana Maria'
    with pytest.raises(ValidationError):
        edit_member(store, ana.id, color_scheme='neon')


def test_member_and_family_summaries():
    store = _store()
    ana = add_member(store, 'Ana')
    record_transaction(store, 'income', 100, 'salary', 'Pay', on='2024-03-01')
    record_transaction(store, 'expense', 40, 'food', 'Market', on='2024-03-02', user_id=ana.id)
    record_transaction(store, 'expense', 5, 'food', 'Old', on='2024-02-02', user_id=ana.id)

    summaries = dict((user.id, summary) for user, summary in member_summaries(store, date(2024, 3, 15)))
    assert summaries['user-1'].income == 100.0
    assert summaries[ana.id].expenses == 40.0

    total = family_summary(store, date(2024, 3, 15))
    assert total.balance == 60.0
    assert total.count == 2
