"""Snapshot and CSV formats.

Two formats leave the store:

* the JSON **snapshot**, a single document holding every collection plus the
  current-user pointer, used for backup and restore; and
* a **CSV** export of a transaction sequence for spreadsheets.  CSV is
  write-only; there is no CSV import path.
"""

from __future__ import annotations

import csv
import json
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Type, Union

import pandas as pd

from .backends import MalformedDataError
from .config import EXPORTS_DIR, LOCALE
from .models import (
    Budget,
    Category,
    Goal,
    Record,
    Transaction,
    User,
    default_categories,
    utc_now_iso,
)

SNAPSHOT_COLLECTIONS: Dict[str, Type[Record]] = {
    "transactions": Transaction,
    "goals": Goal,
    "users": User,
    "budgets": Budget,
    "categories": Category,
}

CSV_LABELS: Dict[str, Dict[str, Any]] = {
    "en": {
        "header": ["Date", "Type", "Category", "Description", "Amount", "Tags"],
        "income": "Income",
        "expense": "Expense",
    },
    "pt-BR": {
        "header": ["Data", "Tipo", "Categoria", "Descrição", "Valor", "Tags"],
        "income": "Receita",
        "expense": "Despesa",
    },
}

TAG_DELIMITER = ", "


# ---------------------------------------------------------------------------
# JSON snapshot
# ---------------------------------------------------------------------------


@dataclass
class Snapshot:
    version: str
    transactions: List[Transaction]
    goals: List[Goal] = field(default_factory=list)
    users: List[User] = field(default_factory=list)
    budgets: List[Budget] = field(default_factory=list)
    categories: List[Category] = field(default_factory=default_categories)
    current_user: Optional[str] = None
    export_date: Optional[str] = None

    def collections(self) -> Dict[str, List[Record]]:
        return {name: list(getattr(self, name)) for name in SNAPSHOT_COLLECTIONS}


def build_snapshot(
    version: str,
    collections: Mapping[str, Sequence[Record]],
    current_user: Optional[str],
    export_date: Optional[str] = None,
) -> Dict[str, Any]:
    """Assemble the snapshot document as plain JSON-ready data."""
    document: Dict[str, Any] = {
        "version": version,
        "exportDate": export_date or utc_now_iso(),
    }
    for name in SNAPSHOT_COLLECTIONS:
        document[name] = [record.to_dict() for record in collections.get(name, [])]
    document["currentUser"] = current_user
    return document


def dump_snapshot(document: Mapping[str, Any]) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False)


def parse_records(name: str, raw: Any) -> List[Record]:
    """Parse one serialized collection.

    Raises:
        MalformedDataError: If ``raw`` is not a list of well-formed records.
    """
    record_cls = SNAPSHOT_COLLECTIONS[name]
    if not isinstance(raw, list):
        raise MalformedDataError(f"'{name}' must be a list, got {type(raw).__name__}")
    records: List[Record] = []
    for index, item in enumerate(raw):
        try:
            records.append(record_cls.from_dict(item))
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedDataError(f"Invalid record #{index} in '{name}': {exc}") from exc
    return records


def parse_snapshot(document: Union[str, bytes, Mapping[str, Any]]) -> Snapshot:
    """Validate and parse a snapshot document.

    The minimum contract is a truthy ``version`` and a ``transactions`` list.
    Missing goals/users/budgets become empty, missing categories become the
    defaults.

    Raises:
        MalformedDataError: If the document cannot be parsed or lacks the
            required fields.
    """
    if isinstance(document, (str, bytes)):
        try:
            data = json.loads(document)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MalformedDataError(f"Snapshot is not valid JSON: {exc}") from exc
    else:
        data = document

    if not isinstance(data, Mapping):
        raise MalformedDataError("Snapshot must be a JSON object")
    if not data.get("version"):
        raise MalformedDataError("Snapshot has no version marker")
    if data.get("transactions") is None:
        raise MalformedDataError("Snapshot has no transactions field")

    parsed: Dict[str, List[Record]] = {}
    for name in SNAPSHOT_COLLECTIONS:
        raw = data.get(name)
        if raw is None:
            continue
        parsed[name] = parse_records(name, raw)

    current_user = data.get("currentUser")
    if current_user is not None and not isinstance(current_user, str):
        raise MalformedDataError("'currentUser' must be a user id string")

    return Snapshot(
        version=str(data["version"]),
        export_date=data.get("exportDate"),
        current_user=current_user or None,
        **parsed,
    )


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------


CSV_COLUMNS = ["date", "type", "category", "description", "amount", "tags"]


def csv_labels(locale: Optional[str] = None) -> Dict[str, Any]:
    return CSV_LABELS.get(locale or LOCALE, CSV_LABELS["en"])


def transactions_to_csv(transactions: Iterable[Transaction], locale: Optional[str] = None) -> str:
    """Render ``transactions`` (already filtered and ordered) as CSV text.

    Text fields are always quoted; the amount is written as a bare number.
    """
    labels = csv_labels(locale)
    frame = pd.DataFrame(
        [
            {
                "date": txn.date,
                "type": labels.get(txn.type, txn.type),
                "category": txn.category,
                "description": txn.description,
                "amount": float(txn.amount),
                "tags": TAG_DELIMITER.join(txn.tags),
            }
            for txn in transactions
        ],
        columns=CSV_COLUMNS,
    )
    frame["amount"] = frame["amount"].astype(float)
    rows = frame.to_csv(index=False, header=False, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    header = ",".join(labels["header"])
    return header + "\n" + rows[:-1] if rows else header


def export_filename(prefix: str, today: Optional[date] = None, extension: str = "csv") -> str:
    """``<prefix>-YYYY-MM-DD.<extension>``."""
    today = today or date.today()
    return f"{prefix}-{today.isoformat()}.{extension}"


def write_transactions_csv(
    transactions: Iterable[Transaction],
    path: Optional[Path] = None,
    locale: Optional[str] = None,
) -> Path:
    """Write the CSV export to ``path`` (default: a dated file in the exports dir).

    Raises:
        OSError: If the file cannot be written
    """
    target = Path(path) if path else EXPORTS_DIR / export_filename("transactions")
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8", newline="") as handle:
        handle.write(transactions_to_csv(transactions, locale))
    return target
