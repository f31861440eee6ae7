"""Turning raw form input into validated transactions."""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Iterable, Optional, Union

from .models import (
    Recurring,
    Transaction,
    ValidationError,
    next_recurring_date,
    normalize_tags,
    validate_transaction,
)
from .storage import FinanceStore

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")


def parse_amount(value: Union[str, float, int, None]) -> float:
    """Parse an amount typed by a person; unreadable input becomes ``0.0``.

    A decimal comma is accepted (``"12,50"`` -> ``12.5``).  Anything other
    than digits and separators is ignored.

    >>> parse_amount("R$ 1250,75")
    1250.75
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = re.sub(r"[^\d.,]", "", str(value)).replace(",", ".", 1)
    match = _NUMBER.match(cleaned)
    return float(match.group()) if match else 0.0


def build_transaction(
    store: FinanceStore,
    txn_type: str,
    amount: Any,
    category: str,
    description: str,
    on: Optional[Union[date, str]] = None,
    tags: Iterable[str] = (),
    recurring_frequency: Optional[str] = None,
    user_id: Optional[str] = None,
) -> Transaction:
    """Build a validated, not yet persisted transaction.

    ``user_id`` defaults to the store's current user.

    Raises:
        ValidationError: If there is no user to assign it to or a field
            breaks a business rule.
    """
    if user_id is None:
        user = store.get_current_user()
        if user is None:
            raise ValidationError("User not found")
        user_id = user.id

    day = on.isoformat() if isinstance(on, date) else (on or date.today().isoformat())
    recurring = None
    if recurring_frequency:
        recurring = Recurring(
            frequency=recurring_frequency,
            next_date=next_recurring_date(day, recurring_frequency),
        )

    transaction = Transaction(
        id=store.generate_id(),
        type=txn_type,
        amount=parse_amount(amount),
        category=category or "",
        description=(description or "").strip(),
        date=day,
        tags=normalize_tags(tags),
        user_id=user_id,
        recurring=recurring,
    )
    validate_transaction(transaction, store.list_categories())
    return transaction


def record_transaction(store: FinanceStore, *args: Any, **kwargs: Any) -> Transaction:
    """Build a transaction (see :func:`build_transaction`) and persist it.

    Raises:
        ValidationError: If the input is invalid
        WriteError: If the store cannot persist it
    """
    transaction = build_transaction(store, *args, **kwargs)
    store.add_transaction(transaction)
    logger.info("Recorded %s %s of %s", transaction.type, transaction.id, transaction.amount)
    return transaction
