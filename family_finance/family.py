"""Family member management on top of the store.

Removing a member also removes their transactions; the store itself never
cascades.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

from .analytics import Summary, month_summary
from .models import User, ValidationError, utc_now_iso
from .storage import FinanceStore

logger = logging.getLogger(__name__)


class FamilyError(ValidationError):
    """A member operation would leave the family in an invalid state."""


def add_member(
    store: FinanceStore,
    name: str,
    avatar: str = "👤",
    color_scheme: str = "default",
) -> User:
    user = User(
        id=store.generate_id(),
        name=(name or "").strip(),
        avatar=avatar,
        theme="light",
        color_scheme=color_scheme,
        is_active=True,
        created_at=utc_now_iso(),
    )
    return store.add_user(user)


def edit_member(
    store: FinanceStore,
    user_id: str,
    name: Optional[str] = None,
    avatar: Optional[str] = None,
    color_scheme: Optional[str] = None,
) -> Optional[User]:
    patch: Dict[str, str] = {}
    if name is not None:
        patch["name"] = name.strip()
    if avatar is not None:
        patch["avatar"] = avatar
    if color_scheme is not None:
        patch["color_scheme"] = color_scheme
    if not patch:
        return None
    return store.update_user(user_id, patch)


def switch_user(store: FinanceStore, user_id: str) -> User:
    """Make ``user_id`` the current user.

    Raises:
        FamilyError: If no such user exists
    """
    user = next((u for u in store.list_users() if u.id == user_id), None)
    if user is None:
        raise FamilyError(f"Unknown user '{user_id}'")
    store.set_current_user(user.id)
    return user


def remove_member(store: FinanceStore, user_id: str) -> int:
    """Delete a member and all of their transactions.

    Returns the number of transactions removed.

    Raises:
        FamilyError: If this is the last user or the current user
    """
    users = store.list_users()
    if len(users) <= 1:
        raise FamilyError("There must be at least one user")
    if store.current_user_id() == user_id:
        raise FamilyError("The current user cannot be removed")
    if not store.delete_user(user_id):
        return 0
    removed = store.delete_transactions_for_user(user_id)
    logger.info("Removed user %s and %d transaction(s)", user_id, removed)
    return removed


def member_summaries(store: FinanceStore, now: Optional[date] = None) -> List[Tuple[User, Summary]]:
    """Current-month summary for each member."""
    transactions = store.list_transactions()
    return [(user, month_summary(transactions, now, user_id=user.id)) for user in store.list_users()]


def family_summary(store: FinanceStore, now: Optional[date] = None) -> Summary:
    """Current-month summary across every member."""
    return month_summary(store.list_transactions(), now)
