"""Pizza kiosk ledger package."""
from __future__ import annotations

from .ledger import DuplicateInventoryName, LedgerManager
from .models import AppData, Expense, InventoryItem, Purchase, Sale

__all__ = [
    "create_app",
    "AppData",
    "DuplicateInventoryName",
    "Expense",
    "InventoryItem",
    "LedgerManager",
    "Purchase",
    "Sale",
]


def create_app(*args, **kwargs):
    from .app import create_app as _create_app

    return _create_app(*args, **kwargs)
