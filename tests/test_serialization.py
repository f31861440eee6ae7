import io
from datetime import date

import pandas as pd
import pytest

from family_finance.backends import MalformedDataError
from family_finance.models import Transaction
from family_finance.serialization import (
    export_filename,
    parse_records,
    transactions_to_csv,
    write_transactions_csv,
)


def _txn(**overrides):
    values = dict(
        id='t1',
        type='expense',
        amount=12.5,
        category='food',
        description='Lunch, with team',
        date='2024-03-01',
        tags=['work', 'team'],
        user_id='user-1',
    )
    values.update(overrides)
    return Transaction(**values)


def test_csv_header_and_row():
    lines = transactions_to_csv([_txn()], locale='en').split('\n')
    assert lines == [
        'Date,Type,Category,Description,Amount,Tags',
        '"2024-03-01","Expense","food","Lunch, with team",12.5,"work, team"',
    ]


def test_csv_portuguese_labels():
    csv_text = transactions_to_csv([_txn(type='income', category='salary', amount=3500)], locale='pt-BR')
    header, row = csv_text.split('\n')
    assert header == 'Data,Tipo,Categoria,Descrição,Valor,Tags'
    assert row.startswith('"2024-03-01","Receita","salary",')
    assert ',3500.0,' in row


def test_csv_escapes_quotes_and_empty_tags():
    row = transactions_to_csv([_txn(description='The "good" one', tags=[])], locale='en').split('\n')[1]
    assert row == '"2024-03-01","Expense","food","The ""good"" one",12.5,""'


def test_csv_reads_back_with_pandas():
    txns = [_txn(), _txn(id='t2', description='Line one\nline two', amount=1234567.89, tags=['x'])]
    frame = pd.read_csv(io.StringIO(transactions_to_csv(txns, locale='en')))
    assert list(frame.columns) == ['Date', 'Type', 'Category', 'Description', 'Amount', 'Tags']
    assert frame['Description'].tolist() == ['Lunch, with team', 'Line one\nline two']
    assert frame['Amount'].tolist() == [12.5, 1234567.89]
    assert frame['Tags'].tolist() == ['work, team', 'x']


def test_csv_keeps_given_order_and_empty_input():
    txns = [_txn(id='a', date='2024-01-01'), _txn(id='b', date='2024-03-01')]
    rows = transactions_to_csv(txns, locale='en').split('\n')[1:]
    assert [r[1:11] for r in rows] == ['2024-01-01', '2024-03-01']
    assert transactions_to_csv([], locale='en') == 'Date,Type,Category,Description,Amount,Tags'


def test_export_filename():
    assert export_filename('financial-report', date(2024, 3, 9)) == 'financial-report-2024-03-09.csv'
    assert export_filename('backup', date(2024, 3, 9), extension='json') == 'backup-2024-03-09.json'


def test_write_transactions_csv(tmp_path):
    target = write_transactions_csv([_txn()], tmp_path / 'out' / 'report.csv', locale='en')
    assert target.read_text(encoding='utf-8').startswith('Date,Type,')


def test_parse_records_rejects_non_lists_and_bad_items():
    with pytest.raises(MalformedDataError):
        parse_records('goals', {'id': 'g1'})
    with pytest.raises(MalformedDataError, match='#1'):
        parse_records('users', [{'id': 'u1', 'name': 'Ana'}, {'name': 'no id'}])
