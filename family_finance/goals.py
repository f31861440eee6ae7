"""Savings goal workflow: create, edit, contribute and pause."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional, Union

from .models import DEFAULT_GOAL_CATEGORY, Goal, ValidationError, utc_now_iso
from .storage import FinanceStore
from .transactions import parse_amount

logger = logging.getLogger(__name__)


@dataclass
class Contribution:
    goal: Goal
    completed_now: bool  # this change crossed the target


def _current_user_id(store: FinanceStore, user_id: Optional[str]) -> str:
    if user_id is not None:
        return user_id
    user = store.get_current_user()
    if user is None:
        raise ValidationError("User not found")
    return user.id


def create_goal(
    store: FinanceStore,
    title: str,
    description: str,
    target_amount: Any,
    deadline: Union[date, str],
    category: str = "",
    user_id: Optional[str] = None,
) -> Goal:
    """Create and persist a new active goal with nothing saved yet."""
    goal = Goal(
        id=store.generate_id(),
        title=(title or "").strip(),
        description=(description or "").strip(),
        target_amount=parse_amount(target_amount),
        current_amount=0.0,
        deadline=deadline.isoformat() if isinstance(deadline, date) else deadline,
        category=(category or "").strip() or DEFAULT_GOAL_CATEGORY,
        user_id=_current_user_id(store, user_id),
        is_active=True,
        created_at=utc_now_iso(),
    )
    return store.add_goal(goal)


def edit_goal(
    store: FinanceStore,
    goal_id: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
    target_amount: Any = None,
    deadline: Union[date, str, None] = None,
    category: Optional[str] = None,
) -> Optional[Goal]:
    """Change the editable fields of a goal; ``None`` leaves a field as is."""
    patch: Dict[str, Any] = {}
    if title is not None:
        patch["title"] = title.strip()
    if description is not None:
        patch["description"] = description.strip()
    if target_amount is not None:
        patch["target_amount"] = parse_amount(target_amount)
    if deadline is not None:
        patch["deadline"] = deadline.isoformat() if isinstance(deadline, date) else deadline
    if category is not None:
        patch["category"] = category.strip()
    if not patch:
        return None
    return store.update_goal(goal_id, patch)


def contribute(store: FinanceStore, goal_id: str, amount: float) -> Optional[Contribution]:
    """Add ``amount`` (negative to withdraw) to a goal's saved amount.

    The saved amount never drops below zero.  Returns ``None`` for an
    unknown goal.
    """
    goal = next((g for g in store.list_goals() if g.id == goal_id), None)
    if goal is None:
        return None
    new_amount = max(0.0, goal.current_amount + amount)
    updated = store.update_goal(goal_id, {"current_amount": new_amount})
    completed_now = new_amount >= goal.target_amount and not goal.is_complete
    if completed_now:
        logger.info("Goal %s reached its target of %s", goal_id, goal.target_amount)
    return Contribution(goal=updated, completed_now=completed_now)


def toggle_goal(store: FinanceStore, goal_id: str) -> Optional[Goal]:
    """Pause an active goal or reactivate a paused one."""
    goal = next((g for g in store.list_goals() if g.id == goal_id), None)
    if goal is None:
        return None
    return store.update_goal(goal_id, {"is_active": not goal.is_active})
