"""Persistence store for every finance collection.

:class:`FinanceStore` is the single source of truth of the application.  It
maps six named collections plus a schema-version marker onto a
:class:`~family_finance.backends.StorageBackend`, one key per collection:

=================  =============================================
key suffix         contents
=================  =============================================
``transactions``   list of :class:`~family_finance.models.Transaction`
``goals``          list of :class:`~family_finance.models.Goal`
``users``          list of :class:`~family_finance.models.User`
``budgets``        list of :class:`~family_finance.models.Budget`
``categories``     list of :class:`~family_finance.models.Category`
``current-user``   id of the current user, or absent
``version``        schema version string
=================  =============================================

Every mutation rewrites the whole collection.  Reads of a collection that is
absent or cannot be parsed degrade to an empty list (categories: the
defaults) and log a warning rather than raising.

The store is constructed once and handed to whoever needs it::

    store = FinanceStore(JsonFileBackend(STORE_DIR))
    store.initialize()
"""

from __future__ import annotations

import json
import logging
import secrets
import string
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from .backends import (
    JsonFileBackend,
    MalformedDataError,
    MemoryBackend,
    StorageBackend,
    StorageError,
    WriteError,
)
from .config import SCHEMA_VERSION, STORAGE_NAMESPACE, STORE_DIR, ensure_data_directories
from .models import (
    Budget,
    Category,
    Goal,
    Record,
    Transaction,
    User,
    default_categories,
    default_user,
    validate_budget,
    validate_goal,
    validate_transaction,
    validate_user,
)
from .serialization import (
    SNAPSHOT_COLLECTIONS,
    build_snapshot,
    dump_snapshot,
    parse_records,
    parse_snapshot,
)

__all__ = [
    "FinanceStore",
    "StorageError",
    "WriteError",
    "MalformedDataError",
    "generate_id",
    "get_store",
    "MemoryBackend",
    "JsonFileBackend",
]

logger = logging.getLogger(__name__)

CURRENT_USER = "current-user"
VERSION = "version"
ALL_KEYS = tuple(SNAPSHOT_COLLECTIONS) + (CURRENT_USER, VERSION)

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_id() -> str:
    """``<epoch millis>-<9 random base36 chars>``, unique within a process run."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{int(time.time() * 1000)}-{suffix}"


class FinanceStore:
    """Durable collections of transactions, goals, users, budgets and categories."""

    def __init__(
        self,
        backend: StorageBackend,
        namespace: str = STORAGE_NAMESPACE,
        version: str = SCHEMA_VERSION,
    ) -> None:
        self.backend = backend
        self.namespace = namespace
        self.version = version

    def key(self, suffix: str) -> str:
        return f"{self.namespace}-{suffix}"

    # Raw values ---------------------------------------------------------------

    def _read_value(self, suffix: str) -> Any:
        raw = self.backend.get(self.key(suffix))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedDataError(f"Stored '{suffix}' is not valid JSON: {exc}") from exc

    def _write_value(self, suffix: str, value: Any) -> None:
        try:
            self.backend.set(self.key(suffix), json.dumps(value, indent=2, ensure_ascii=False))
        except WriteError:
            logger.error("Failed to persist '%s'", self.key(suffix))
            raise

    # Collections --------------------------------------------------------------

    def _load(self, name: str) -> Optional[List[Record]]:
        """Stored collection, or ``None`` when absent or unreadable."""
        try:
            raw = self._read_value(name)
            if raw is None:
                return None
            return parse_records(name, raw)
        except MalformedDataError as exc:
            logger.warning("Ignoring unreadable '%s' collection: %s", name, exc)
            return None

    def _save(self, name: str, records: Sequence[Record]) -> None:
        self._write_value(name, [record.to_dict() for record in records])

    def _add(self, name: str, record: Record) -> None:
        records = self._load(name) or []
        records.append(record)
        self._save(name, records)

    def _update(self, name: str, record_id: str, patch: Mapping[str, Any],
                validate: Callable[[Any], None]) -> Optional[Record]:
        records = self._load(name) or []
        for index, record in enumerate(records):
            if record.id == record_id:
                updated = record.merged(patch)
                validate(updated)
                records[index] = updated
                self._save(name, records)
                return updated
        return None

    def _delete(self, name: str, record_id: str) -> bool:
        records = self._load(name) or []
        remaining = [record for record in records if record.id != record_id]
        self._save(name, remaining)
        return len(remaining) != len(records)

    # Initialization -----------------------------------------------------------

    def stored_version(self) -> Optional[str]:
        try:
            value = self._read_value(VERSION)
        except MalformedDataError:
            return None
        return value if isinstance(value, str) else None

    def initialize(self) -> bool:
        """Seed defaults on first run or after a schema version change.

        Returns ``True`` when seeding ran, ``False`` when the stored version
        already matched (no-op).
        """
        stored = self.stored_version()
        if stored == self.version:
            return False

        logger.info("Initializing store '%s' (stored version %s, current %s)",
                    self.namespace, stored, self.version)
        if self.backend.get(self.key("categories")) is None:
            self._save("categories", default_categories())
        if self.backend.get(self.key("users")) is None:
            user = default_user()
            self._save("users", [user])
            self.set_current_user(user.id)
        self._write_value(VERSION, self.version)
        return True

    # Transactions -------------------------------------------------------------

    def list_transactions(self) -> List[Transaction]:
        return self._load("transactions") or []

    def add_transaction(self, transaction: Transaction) -> Transaction:
        """Validate and append ``transaction``.

        Raises:
            ValidationError: If the transaction breaks a business rule or
                references an unknown category.
            WriteError: If the medium rejects the write.
        """
        validate_transaction(transaction, self.list_categories())
        self._add("transactions", transaction)
        return transaction

    def update_transaction(self, transaction_id: str, patch: Mapping[str, Any]) -> Optional[Transaction]:
        """Merge ``patch`` into the stored transaction; unknown ids are a no-op."""
        categories = self.list_categories()
        return self._update(
            "transactions", transaction_id, patch,
            lambda txn: validate_transaction(txn, categories),
        )

    def delete_transaction(self, transaction_id: str) -> bool:
        return self._delete("transactions", transaction_id)

    def delete_transactions_for_user(self, user_id: str) -> int:
        """Remove every transaction of ``user_id``; returns how many were removed."""
        records = self.list_transactions()
        remaining = [txn for txn in records if txn.user_id != user_id]
        self._save("transactions", remaining)
        return len(records) - len(remaining)

    # Goals --------------------------------------------------------------------

    def list_goals(self) -> List[Goal]:
        return self._load("goals") or []

    def add_goal(self, goal: Goal) -> Goal:
        validate_goal(goal)
        self._add("goals", goal)
        return goal

    def update_goal(self, goal_id: str, patch: Mapping[str, Any]) -> Optional[Goal]:
        return self._update("goals", goal_id, patch, validate_goal)

    def delete_goal(self, goal_id: str) -> bool:
        return self._delete("goals", goal_id)

    # Users --------------------------------------------------------------------

    def list_users(self) -> List[User]:
        return self._load("users") or []

    def add_user(self, user: User) -> User:
        validate_user(user)
        self._add("users", user)
        return user

    def update_user(self, user_id: str, patch: Mapping[str, Any]) -> Optional[User]:
        return self._update("users", user_id, patch, validate_user)

    def delete_user(self, user_id: str) -> bool:
        """Remove the user record only; transactions are the caller's concern."""
        return self._delete("users", user_id)

    def current_user_id(self) -> Optional[str]:
        try:
            value = self._read_value(CURRENT_USER)
        except MalformedDataError:
            return None
        return value if isinstance(value, str) and value else None

    def set_current_user(self, user_id: Optional[str]) -> None:
        if user_id is None:
            self.backend.remove(self.key(CURRENT_USER))
            return
        self._write_value(CURRENT_USER, user_id)

    def get_current_user(self) -> Optional[User]:
        """The current user, or ``None`` if unset or pointing at a deleted user."""
        user_id = self.current_user_id()
        if user_id is None:
            return None
        return next((user for user in self.list_users() if user.id == user_id), None)

    # Budgets ------------------------------------------------------------------

    def list_budgets(self) -> List[Budget]:
        return self._load("budgets") or []

    def add_budget(self, budget: Budget) -> Budget:
        validate_budget(budget)
        self._add("budgets", budget)
        return budget

    def update_budget(self, budget_id: str, patch: Mapping[str, Any]) -> Optional[Budget]:
        return self._update("budgets", budget_id, patch, validate_budget)

    def delete_budget(self, budget_id: str) -> bool:
        return self._delete("budgets", budget_id)

    # Categories ---------------------------------------------------------------

    def list_categories(self) -> List[Category]:
        stored = self._load("categories")
        return stored if stored is not None else default_categories()

    # Utilities ----------------------------------------------------------------

    def generate_id(self) -> str:
        return generate_id()

    def export_snapshot(self) -> str:
        """Serialize every collection and the current-user pointer as JSON text."""
        collections = {
            "transactions": self.list_transactions(),
            "goals": self.list_goals(),
            "users": self.list_users(),
            "budgets": self.list_budgets(),
            "categories": self.list_categories(),
        }
        return dump_snapshot(build_snapshot(self.version, collections, self.current_user_id()))

    def import_snapshot(self, document: Union[str, bytes, Mapping[str, Any]]) -> bool:
        """Replace every collection with the contents of ``document``.

        All-or-nothing: returns ``False`` and leaves the store untouched when
        the document is malformed or a write fails part-way.
        """
        try:
            snapshot = parse_snapshot(document)
        except MalformedDataError as exc:
            logger.error("Rejected snapshot import: %s", exc)
            return False

        written: List[str] = []
        previous = {suffix: self.backend.get(self.key(suffix)) for suffix in ALL_KEYS}
        try:
            for name, records in snapshot.collections().items():
                written.append(name)
                self._save(name, records)
            if snapshot.current_user:
                written.append(CURRENT_USER)
                self._write_value(CURRENT_USER, snapshot.current_user)
        except WriteError as exc:
            logger.error("Snapshot import failed, restoring previous state: %s", exc)
            self._restore(previous, written)
            return False

        logger.info("Imported snapshot version %s (%d transactions)",
                    snapshot.version, len(snapshot.transactions))
        return True

    def _restore(self, previous: Dict[str, Optional[str]], written: Sequence[str]) -> None:
        # drop the new values first so a size-limited medium has room for the old ones
        for suffix in written:
            try:
                self.backend.remove(self.key(suffix))
            except WriteError as exc:
                logger.error("Rollback could not remove '%s': %s", self.key(suffix), exc)
        for suffix in written:
            raw = previous[suffix]
            if raw is None:
                continue
            try:
                self.backend.set(self.key(suffix), raw)
            except WriteError as exc:
                logger.error("Rollback could not restore '%s': %s", self.key(suffix), exc)

    def clear_all(self) -> None:
        """Erase everything, including the version, then re-seed the defaults."""
        for suffix in ALL_KEYS:
            self.backend.remove(self.key(suffix))
        logger.info("Cleared store '%s'", self.namespace)
        self.initialize()

    def storage_stats(self) -> Dict[str, Any]:
        transactions = self.list_transactions()
        goals = self.list_goals()
        users = self.list_users()
        categories = self.list_categories()
        size = len(json.dumps({
            "transactions": [t.to_dict() for t in transactions],
            "goals": [g.to_dict() for g in goals],
            "users": [u.to_dict() for u in users],
            "categories": [c.to_dict() for c in categories],
        }, ensure_ascii=False))
        return {
            "transactions": len(transactions),
            "goals": len(goals),
            "users": len(users),
            "categories": len(categories),
            "storage_kb": round(size / 1024, 2),
        }


# Convenience factory ---------------------------------------------------------

_store: Optional[FinanceStore] = None


def get_store() -> FinanceStore:
    """File-backed store under ``STORE_DIR``, initialized on first use."""
    global _store
    if _store is None:
        ensure_data_directories()
        _store = FinanceStore(JsonFileBackend(STORE_DIR))
        _store.initialize()
    return _store
