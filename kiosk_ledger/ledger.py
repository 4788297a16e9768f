"""Ledger state transitions and the manager that persists them."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Iterable, List, Optional, Union
import logging
import time
import uuid

from . import codec, reports
from .migration import migrate, sanitize
from .models import (
    AppData,
    Expense,
    InventoryItem,
    Purchase,
    Sale,
    _now,
    _serialize_timestamp,
    is_number,
)
from .storage import JsonFileStore


logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "appData"


class DuplicateInventoryName(ValueError):
    """Raised when creating an inventory item whose name is already taken."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Item '{name}' already exists. Record a purchase to add more stock."
        )
        self.name = name


def _new_id(prefix: str, existing: Iterable[str] = ()) -> str:
    taken = set(existing)
    while True:
        candidate = f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"
        if candidate not in taken:
            return candidate


def _stamp(value: Optional[str], now: Optional[datetime]) -> str:
    if value:
        return value
    return _serialize_timestamp(now or _now())


def _require_number(value: Any, label: str) -> None:
    if not is_number(value):
        raise ValueError(f"{label} must be a number")


# ----------------------------------------------------------------------
# Reducers: (state, payload) -> state. None of them mutate their input; an
# update or delete that matches nothing returns the very same object.
# ----------------------------------------------------------------------
def record_purchase(
    state: AppData, purchase: Purchase, *, now: Optional[datetime] = None
) -> AppData:
    """Append ``purchase`` and a new inventory entry derived from it.

    The new entry is never merged into an existing one of the same name.
    """

    _require_number(purchase.quantity, "Quantity")
    _require_number(purchase.cost, "Cost")
    recorded = replace(purchase, date=_stamp(purchase.date, now))
    if recorded.cost > 0 and recorded.quantity > 0:
        cost_per_unit = recorded.cost / recorded.quantity
    else:
        cost_per_unit = 0
    entry = InventoryItem(
        id=_new_id("inv", (existing.id for existing in state.inventory)),
        item=recorded.item,
        quantity=recorded.quantity,
        cost_per_unit=cost_per_unit,
        date=recorded.date,
    )
    return replace(
        state,
        purchases=state.purchases + (recorded,),
        inventory=state.inventory + (entry,),
    )


def record_sale(state: AppData, sale: Sale, *, now: Optional[datetime] = None) -> AppData:
    _require_number(sale.revenue, "Revenue")
    recorded = replace(
        sale,
        id=_new_id("sale", (existing.id for existing in state.sales)),
        date=_stamp(sale.date, now),
    )
    return replace(state, sales=state.sales + (recorded,))


def update_sale(state: AppData, sale: Sale) -> AppData:
    _require_number(sale.revenue, "Revenue")
    if not any(existing.id == sale.id for existing in state.sales):
        return state
    return replace(
        state,
        sales=tuple(sale if existing.id == sale.id else existing for existing in state.sales),
    )


def delete_sale(state: AppData, sale_id: str) -> AppData:
    remaining = tuple(sale for sale in state.sales if sale.id != sale_id)
    if len(remaining) == len(state.sales):
        return state
    return replace(state, sales=remaining)


def create_inventory_item(state: AppData, item: InventoryItem) -> AppData:
    candidate = item.item.strip().lower()
    for existing in state.inventory:
        if existing.item.strip().lower() == candidate:
            raise DuplicateInventoryName(item.item)
    created = replace(
        item, id=_new_id("inv", (existing.id for existing in state.inventory))
    )
    return replace(state, inventory=state.inventory + (created,))


def update_inventory_item(state: AppData, item: InventoryItem) -> AppData:
    if not any(existing.id == item.id for existing in state.inventory):
        return state
    return replace(
        state,
        inventory=tuple(
            item if existing.id == item.id else existing for existing in state.inventory
        ),
    )


def delete_inventory_item(state: AppData, item_id: str) -> AppData:
    remaining = tuple(entry for entry in state.inventory if entry.id != item_id)
    if len(remaining) == len(state.inventory):
        return state
    return replace(state, inventory=remaining)


def set_rent(state: AppData, value: float) -> AppData:
    _require_number(value, "Rent")
    return replace(state, rent=value)


def add_expense(state: AppData, expense: Expense) -> AppData:
    _require_number(expense.amount, "Amount")
    created = replace(
        expense, id=_new_id("exp", (existing.id for existing in state.other_expenses))
    )
    return replace(state, other_expenses=state.other_expenses + (created,))


def delete_expense(state: AppData, expense_id: str) -> AppData:
    remaining = tuple(e for e in state.other_expenses if e.id != expense_id)
    if len(remaining) == len(state.other_expenses):
        return state
    return replace(state, other_expenses=remaining)


def delete_expense_at(state: AppData, index: int) -> AppData:
    """Remove the expense at ``index``.

    Positions shift whenever the collection changes, so an index captured
    before another edit can remove a different expense. Prefer
    :func:`delete_expense`.
    """

    if index < 0 or index >= len(state.other_expenses):
        return state
    remaining = state.other_expenses[:index] + state.other_expenses[index + 1 :]
    return replace(state, other_expenses=remaining)


Reducer = Callable[..., AppData]


@dataclass
class LedgerManager:
    """Holds the working copy of the ledger and persists every change."""

    storage_path: Path
    storage_key: str = DEFAULT_STORAGE_KEY
    _lock: RLock = field(default_factory=RLock, init=False)
    _store: JsonFileStore = field(init=False, repr=False)
    _state: AppData = field(default_factory=AppData, init=False)

    def __post_init__(self) -> None:
        self.storage_path = Path(self.storage_path)
        self._store = JsonFileStore(self.storage_path)
        with self._lock:
            self._state = self._load_state_locked()

    @property
    def snapshot(self) -> AppData:
        return self._state

    def reload(self) -> AppData:
        with self._lock:
            self._state = self._load_state_locked()
            return self._state

    def apply(self, reducer: Reducer, *args: Any, **kwargs: Any) -> AppData:
        """Run ``reducer`` against the latest snapshot and persist the result.

        Calls are serialized, so concurrent callers observe each other's
        changes in order. Unchanged state is not written back.
        """

        with self._lock:
            updated = reducer(self._state, *args, **kwargs)
            if updated is not self._state:
                self._state = updated
                self._write_state_locked(updated)
            return self._state

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def record_purchase(self, purchase: Purchase) -> InventoryItem:
        state = self.apply(record_purchase, purchase)
        return state.inventory[-1]

    def record_sale(self, sale: Sale) -> Sale:
        state = self.apply(record_sale, sale)
        return state.sales[-1]

    def update_sale(self, sale: Sale, *, keep_date: bool = False) -> bool:
        """Replace the sale with ``sale.id``; ``keep_date`` retains the stored date."""

        with self._lock:
            before = self._state
            if keep_date:
                current = next((s for s in before.sales if s.id == sale.id), None)
                if current is not None:
                    sale = replace(sale, date=current.date)
            return self.apply(update_sale, sale) is not before

    def delete_sale(self, sale_id: str) -> bool:
        with self._lock:
            before = self._state
            return self.apply(delete_sale, sale_id) is not before

    def create_inventory_item(self, item: InventoryItem) -> InventoryItem:
        state = self.apply(create_inventory_item, item)
        return state.inventory[-1]

    def update_inventory_item(self, item: InventoryItem) -> bool:
        with self._lock:
            before = self._state
            return self.apply(update_inventory_item, item) is not before

    def delete_inventory_item(self, item_id: str) -> bool:
        with self._lock:
            before = self._state
            return self.apply(delete_inventory_item, item_id) is not before

    def set_rent(self, value: float) -> float:
        return self.apply(set_rent, value).rent

    def add_expense(self, expense: Expense) -> Expense:
        state = self.apply(add_expense, expense)
        return state.other_expenses[-1]

    def delete_expense(self, expense_id: str) -> bool:
        with self._lock:
            before = self._state
            return self.apply(delete_expense, expense_id) is not before

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------
    def export_document(self) -> bytes:
        return codec.export_document(self._state)

    def preview_import(self, payload: Union[bytes, str]) -> AppData:
        """Validate a backup without touching the working copy."""

        return codec.import_document(payload)

    def replace_document(self, data: AppData) -> AppData:
        """Overwrite the whole ledger with ``data`` (a confirmed import)."""

        with self._lock:
            self._state = data
            self._write_state_locked(data)
            logger.info(
                "Ledger replaced: %d inventory, %d purchases, %d sales",
                len(data.inventory),
                len(data.purchases),
                len(data.sales),
            )
            return self._state

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------
    def report(self) -> reports.ProfitReport:
        return reports.build_report(self._state)

    def stock_summary(self) -> List[reports.StockLine]:
        return reports.stock_summary(self._state)

    def sales_history(self) -> List[Sale]:
        return reports.sales_history(self._state)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _load_state_locked(self) -> AppData:
        raw = self._store.get(self.storage_key)
        if raw is None:
            state = AppData()
            self._write_state_locked(state)
            return state
        migrated, changed = migrate(raw)
        if changed:
            logger.info("Migrated persisted ledger '%s'", self.storage_key)
            self._store.set(self.storage_key, migrated)
        return AppData.from_document(sanitize(migrated))

    def _write_state_locked(self, state: AppData) -> None:
        self._store.set(self.storage_key, state.to_dict())


__all__ = [
    "DEFAULT_STORAGE_KEY",
    "DuplicateInventoryName",
    "LedgerManager",
    "add_expense",
    "create_inventory_item",
    "delete_expense",
    "delete_expense_at",
    "delete_inventory_item",
    "delete_sale",
    "record_purchase",
    "record_sale",
    "set_rent",
    "update_inventory_item",
    "update_sale",
]
