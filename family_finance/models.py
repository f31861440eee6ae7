"""Entity definitions for the family finance tracker.

Every persisted record is a small dataclass with a fixed mapping between its
Python attribute names and the camelCase keys used on disk and in exported
snapshots.  Records read back from storage keep any keys they do not know
about in ``extra`` so that a newer snapshot survives a round trip through an
older build.

Only defaulting and shape checks live on the classes themselves; business
rules (positive amounts, non-empty descriptions and so on) are enforced by
the ``validate_*`` functions at the bottom of the module.
"""

from __future__ import annotations

import calendar
from dataclasses import MISSING, dataclass, field, fields, replace
from datetime import date, datetime, timedelta, timezone
from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Optional, Sequence

TRANSACTION_TYPES = ("income", "expense")
RECURRING_FREQUENCIES = ("daily", "weekly", "monthly", "yearly")
CATEGORY_TYPES = ("income", "expense", "both")
THEMES = ("light", "dark", "auto")
COLOR_SCHEMES = ("default", "masculine", "feminine")
BUDGET_PERIODS = ("monthly", "weekly")

DEFAULT_GOAL_CATEGORY = "Geral"


class ValidationError(ValueError):
    """A caller-supplied entity breaks a business rule."""


def utc_now_iso() -> str:
    """Timestamp in the format stored for ``createdAt`` fields."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso_date(value: Any) -> date:
    """Parse the calendar date out of an ISO 8601 date or timestamp string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


# ---------------------------------------------------------------------------
# Base record
# ---------------------------------------------------------------------------


class Record:
    """Mixin giving dataclass entities a camelCase dictionary form."""

    # attribute name -> persisted key, for attributes whose names differ
    KEY_MAP: ClassVar[Dict[str, str]] = {}

    @classmethod
    def _key(cls, attribute: str) -> str:
        return cls.KEY_MAP.get(attribute, attribute)

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls) if f.name != "extra"]

    @classmethod
    def resolve_field(cls, name: str) -> str:
        """Map a snake_case attribute or a camelCase key to the attribute name."""
        names = cls.field_names()
        if name in names:
            return name
        for attribute in names:
            if cls._key(attribute) == name:
                return attribute
        raise ValidationError(f"{cls.__name__} has no field '{name}'")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        """Build a record from its persisted form.

        Raises ``ValueError``/``TypeError``/``KeyError`` when a required key
        is missing or a value cannot be coerced.
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"{cls.__name__} record must be a mapping, got {type(data).__name__}")
        kwargs: Dict[str, Any] = {}
        known = set()
        for f in fields(cls):
            if f.name == "extra":
                continue
            key = cls._key(f.name)
            known.add(key)
            if key in data:
                kwargs[f.name] = data[key]
            elif f.default is MISSING and f.default_factory is MISSING:
                raise KeyError(f"{cls.__name__} record is missing '{key}'")
        kwargs["extra"] = {k: v for k, v in data.items() if k not in known}
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for f in fields(self):
            if f.name == "extra":
                continue
            value = getattr(self, f.name)
            if isinstance(value, Record):
                value = value.to_dict()
            payload[self._key(f.name)] = value
        payload.update(self.extra)
        return payload

    def merged(self, patch: Mapping[str, Any]):
        """Return a copy with ``patch`` shallow-merged over the current fields."""
        changes: Dict[str, Any] = {}
        for name, value in patch.items():
            attribute = self.resolve_field(name)
            if attribute == "id":
                raise ValidationError("The id of a record cannot be changed")
            changes[attribute] = value
        return replace(self, **changes)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass
class Recurring(Record):
    frequency: str
    next_date: str
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    KEY_MAP: ClassVar[Dict[str, str]] = {"next_date": "nextDate"}


@dataclass
class Transaction(Record):
    id: str
    type: str
    amount: float
    category: str
    description: str
    date: str
    tags: List[str] = field(default_factory=list)
    user_id: str = ""
    recurring: Optional[Recurring] = None
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    KEY_MAP: ClassVar[Dict[str, str]] = {"user_id": "userId"}

    def __post_init__(self) -> None:
        self.amount = float(self.amount)
        self.tags = normalize_tags(self.tags)
        if isinstance(self.recurring, Mapping):
            self.recurring = Recurring.from_dict(self.recurring)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        if self.recurring is None:
            # absent rather than null, matching records written by the app
            payload.pop("recurring")
        return payload

    @property
    def day(self) -> date:
        return parse_iso_date(self.date)


@dataclass
class Goal(Record):
    id: str
    title: str
    target_amount: float
    deadline: str
    user_id: str
    description: str = ""
    current_amount: float = 0.0
    category: str = DEFAULT_GOAL_CATEGORY
    is_active: bool = True
    created_at: str = field(default_factory=utc_now_iso)
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    KEY_MAP: ClassVar[Dict[str, str]] = {
        "target_amount": "targetAmount",
        "current_amount": "currentAmount",
        "user_id": "userId",
        "is_active": "isActive",
        "created_at": "createdAt",
    }

    def __post_init__(self) -> None:
        self.target_amount = float(self.target_amount)
        self.current_amount = float(self.current_amount)
        self.is_active = bool(self.is_active)
        if not str(self.category or "").strip():
            self.category = DEFAULT_GOAL_CATEGORY

    @property
    def is_complete(self) -> bool:
        return self.current_amount >= self.target_amount

    @property
    def progress_percent(self) -> float:
        if self.target_amount <= 0:
            return 0.0
        return min(self.current_amount / self.target_amount * 100, 100.0)

    @property
    def remaining_amount(self) -> float:
        return max(self.target_amount - self.current_amount, 0.0)

    def days_remaining(self, today: Optional[date] = None) -> int:
        """Days until the deadline; negative once it has passed."""
        today = today or date.today()
        return (parse_iso_date(self.deadline) - today).days


@dataclass
class User(Record):
    id: str
    name: str
    avatar: str = "👤"
    theme: str = "light"
    color_scheme: str = "default"
    is_active: bool = True
    created_at: str = field(default_factory=utc_now_iso)
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    KEY_MAP: ClassVar[Dict[str, str]] = {
        "color_scheme": "colorScheme",
        "is_active": "isActive",
        "created_at": "createdAt",
    }

    def __post_init__(self) -> None:
        self.is_active = bool(self.is_active)


@dataclass
class Category(Record):
    id: str
    name: str
    icon: str
    color: str
    type: str
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass
class Budget(Record):
    id: str
    category: str
    limit: float
    user_id: str
    spent: float = 0.0
    period: str = "monthly"
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    KEY_MAP: ClassVar[Dict[str, str]] = {"user_id": "userId"}

    def __post_init__(self) -> None:
        self.limit = float(self.limit)
        self.spent = float(self.spent)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_CATEGORIES = (
    # Income
    Category("salary", "Salário", "💼", "#22c55e", "income"),
    Category("freelance", "Freelance", "💻", "#3b82f6", "income"),
    Category("investment", "Investimentos", "📈", "#8b5cf6", "income"),
    Category("bonus", "Bônus", "🎁", "#f59e0b", "income"),
    # Expense
    Category("food", "Alimentação", "🍽️", "#ef4444", "expense"),
    Category("transport", "Transporte", "🚗", "#f97316", "expense"),
    Category("health", "Saúde", "🏥", "#06b6d4", "expense"),
    Category("entertainment", "Lazer", "🎬", "#ec4899", "expense"),
    Category("housing", "Moradia", "🏠", "#84cc16", "expense"),
    Category("education", "Educação", "📚", "#6366f1", "expense"),
    Category("shopping", "Compras", "🛍️", "#d946ef", "expense"),
    Category("bills", "Contas", "📄", "#64748b", "expense"),
)

DEFAULT_USER_ID = "user-1"
DEFAULT_USER_NAME = "Usuário Principal"


def default_categories() -> List[Category]:
    """Fresh copies of the seeded categories."""
    return [replace(category, extra={}) for category in DEFAULT_CATEGORIES]


def default_user() -> User:
    return User(
        id=DEFAULT_USER_ID,
        name=DEFAULT_USER_NAME,
        avatar="👤",
        theme="light",
        color_scheme="default",
        is_active=True,
        created_at=utc_now_iso(),
    )


def categories_for_type(categories: Iterable[Category], txn_type: str) -> List[Category]:
    """Categories offered for a transaction of ``txn_type``."""
    return [c for c in categories if c.type == txn_type or c.type == "both"]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def normalize_tags(tags: Optional[Iterable[Any]]) -> List[str]:
    """Strip tags and drop blanks and duplicates, keeping first occurrence."""
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = [tags]
    cleaned: List[str] = []
    for tag in tags:
        text = str(tag).strip()
        if text and text not in cleaned:
            cleaned.append(text)
    return cleaned


def next_recurring_date(current: Any, frequency: str) -> str:
    """Advance ``current`` by one ``frequency`` period.

    Month and year steps clamp to the last day of the target month, so
    2024-01-31 monthly becomes 2024-02-29.
    """
    day = parse_iso_date(current)
    if frequency == "daily":
        result = day + timedelta(days=1)
    elif frequency == "weekly":
        result = day + timedelta(days=7)
    elif frequency in ("monthly", "yearly"):
        months = 1 if frequency == "monthly" else 12
        index = day.month - 1 + months
        year = day.year + index // 12
        month = index % 12 + 1
        last_day = calendar.monthrange(year, month)[1]
        result = date(year, month, min(day.day, last_day))
    else:
        raise ValidationError(f"Unknown recurring frequency '{frequency}'")
    return result.isoformat()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _require_text(value: Any, message: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message)


def _require_iso_date(value: Any, label: str) -> None:
    try:
        parse_iso_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be an ISO 8601 date, got {value!r}") from None


def validate_transaction(
    transaction: Transaction,
    categories: Optional[Sequence[Category]] = None,
) -> None:
    """Raise ``ValidationError`` if ``transaction`` breaks a business rule.

    When ``categories`` is given the transaction's category must be one of them.
    """
    if transaction.type not in TRANSACTION_TYPES:
        raise ValidationError(f"Transaction type must be one of {', '.join(TRANSACTION_TYPES)}")
    if not transaction.amount > 0:
        raise ValidationError("The amount must be greater than zero")
    _require_text(transaction.category, "Select a category")
    _require_text(transaction.description, "Add a description")
    _require_iso_date(transaction.date, "Transaction date")
    if categories is not None and transaction.category not in {c.id for c in categories}:
        raise ValidationError(f"Unknown category '{transaction.category}'")
    if transaction.recurring is not None:
        if transaction.recurring.frequency not in RECURRING_FREQUENCIES:
            raise ValidationError(
                f"Recurring frequency must be one of {', '.join(RECURRING_FREQUENCIES)}"
            )
        _require_iso_date(transaction.recurring.next_date, "Next recurring date")


def validate_goal(goal: Goal) -> None:
    if not goal.target_amount > 0:
        raise ValidationError("The goal amount must be greater than zero")
    if goal.current_amount < 0:
        raise ValidationError("The saved amount cannot be negative")
    _require_text(goal.title, "Fill in all required fields")
    _require_text(goal.description, "Fill in all required fields")
    _require_iso_date(goal.deadline, "Goal deadline")


def validate_user(user: User) -> None:
    _require_text(user.name, "The name is required")
    if user.color_scheme not in COLOR_SCHEMES:
        raise ValidationError(f"Color scheme must be one of {', '.join(COLOR_SCHEMES)}")
    if user.theme not in THEMES:
        raise ValidationError(f"Theme must be one of {', '.join(THEMES)}")


def validate_budget(budget: Budget) -> None:
    if budget.period not in BUDGET_PERIODS:
        raise ValidationError(f"Budget period must be one of {', '.join(BUDGET_PERIODS)}")
