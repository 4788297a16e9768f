"""Typed ledger entities and the helpers used to coerce persisted values."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple
import math


Number = float


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _serialize_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat()


def normalize_date(value: Any) -> Optional[str]:
    """Return ``value`` as an ISO-8601 UTC string, ``None`` for blanks.

    Plain calendar dates (``2024-05-01``) are accepted and pinned to midnight
    UTC. Anything unparsable raises :class:`ValueError`.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        parsed: Optional[datetime] = value
        if value.tzinfo is None:
            parsed = value.replace(tzinfo=timezone.utc)
    else:
        candidate = str(value).strip()
        if candidate == "":
            return None
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        parsed = _parse_timestamp(candidate)
    if parsed is None:
        raise ValueError(f"Invalid date: {value!r}")
    return _serialize_timestamp(parsed)


def is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float)) and math.isfinite(value)


def coerce_number(value: Any, default: Number = 0) -> Number:
    """Convert ``value`` to a finite number, falling back to ``default``."""

    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else default
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return default
        return parsed if math.isfinite(parsed) else default
    return default


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _coerce_optional_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _require_id(record: Mapping[str, Any], kind: str) -> str:
    identifier = record.get("id")
    if not isinstance(identifier, str) or identifier.strip() == "":
        raise ValueError(f"{kind} record missing id")
    return identifier


@dataclass(frozen=True)
class InventoryItem:
    """A batch of stock, usually created by a single purchase."""

    item: str
    quantity: Number = 0
    cost_per_unit: Number = 0
    date: Optional[str] = None
    id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "item": self.item,
            "quantity": self.quantity,
            "costPerUnit": self.cost_per_unit,
            "date": self.date,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "InventoryItem":
        return cls(
            id=_require_id(record, "Inventory"),
            item=_coerce_text(record.get("item")),
            quantity=coerce_number(record.get("quantity")),
            cost_per_unit=coerce_number(record.get("costPerUnit")),
            date=_coerce_optional_text(record.get("date")),
        )


@dataclass(frozen=True)
class Purchase:
    """A recorded purchase. Purchases are only ever appended."""

    item: str
    quantity: Number
    cost: Number
    date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item": self.item,
            "quantity": self.quantity,
            "cost": self.cost,
            "date": self.date,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Purchase":
        return cls(
            item=_coerce_text(record.get("item")),
            quantity=coerce_number(record.get("quantity")),
            cost=coerce_number(record.get("cost")),
            date=_coerce_optional_text(record.get("date")),
        )


@dataclass(frozen=True)
class Sale:
    revenue: Number
    date: Optional[str] = None
    id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "revenue": self.revenue, "date": self.date}

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Sale":
        return cls(
            id=_require_id(record, "Sale"),
            revenue=coerce_number(record.get("revenue")),
            date=_coerce_optional_text(record.get("date")),
        )


@dataclass(frozen=True)
class Expense:
    name: str
    amount: Number = 0
    id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "amount": self.amount}

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Expense":
        return cls(
            id=_require_id(record, "Expense"),
            name=_coerce_text(record.get("name")),
            amount=coerce_number(record.get("amount")),
        )


_DOCUMENT_KEYS = frozenset({"inventory", "purchases", "sales", "rent", "otherExpenses"})


@dataclass(frozen=True)
class AppData:
    """Root aggregate of the ledger. Instances are never modified in place."""

    inventory: Tuple[InventoryItem, ...] = field(default_factory=tuple)
    purchases: Tuple[Purchase, ...] = field(default_factory=tuple)
    sales: Tuple[Sale, ...] = field(default_factory=tuple)
    rent: Number = 0
    other_expenses: Tuple[Expense, ...] = field(default_factory=tuple)
    # Top-level keys this version does not know about, kept for write-back.
    extras: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.extras,
            "inventory": [entry.to_dict() for entry in self.inventory],
            "purchases": [entry.to_dict() for entry in self.purchases],
            "sales": [entry.to_dict() for entry in self.sales],
            "rent": self.rent,
            "otherExpenses": [entry.to_dict() for entry in self.other_expenses],
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "AppData":
        """Parse a migrated, sanitized document.

        Raises :class:`ValueError` when an entry that must carry an id does not,
        which only happens if the document skipped migration.
        """

        return cls(
            inventory=tuple(InventoryItem.from_record(r) for r in document.get("inventory", [])),
            purchases=tuple(Purchase.from_record(r) for r in document.get("purchases", [])),
            sales=tuple(Sale.from_record(r) for r in document.get("sales", [])),
            rent=coerce_number(document.get("rent")),
            other_expenses=tuple(
                Expense.from_record(r) for r in document.get("otherExpenses", [])
            ),
            extras={k: v for k, v in document.items() if k not in _DOCUMENT_KEYS},
        )


__all__ = [
    "AppData",
    "Expense",
    "InventoryItem",
    "Purchase",
    "Sale",
    "coerce_number",
    "is_number",
    "normalize_date",
]
