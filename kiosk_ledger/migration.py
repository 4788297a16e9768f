"""Structural repair of persisted ledger documents."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
import logging

from .models import _now, coerce_number, is_number


logger = logging.getLogger(__name__)

COLLECTION_KEYS = ("inventory", "purchases", "sales", "otherExpenses")
LEGACY_EXPENSES_NAME = "Legacy Other Expenses"

# Collections whose entries carry an id, with the prefix used for ids
# generated during migration.
_IDENTIFIED_COLLECTIONS = (
    ("inventory", "migrated-inv"),
    ("sales", "migrated-sale"),
    ("otherExpenses", "migrated-exp"),
)


def default_document() -> Dict[str, Any]:
    return {
        "inventory": [],
        "purchases": [],
        "sales": [],
        "rent": 0,
        "otherExpenses": [],
    }


def _next_identifier(base: str, existing: Iterable[str]) -> str:
    if base not in existing:
        return base
    index = 2
    while f"{base}-{index}" in existing:
        index += 1
    return f"{base}-{index}"


def _has_usable_id(entry: Dict[str, Any]) -> bool:
    identifier = entry.get("id")
    return isinstance(identifier, str) and identifier.strip() != ""


def sanitize(document: Any) -> Dict[str, Any]:
    """Project ``document`` onto a shape safe to read.

    Every collection becomes a list holding only objects and ``rent`` falls
    back to ``0``. Nothing is written and no ids are assigned, so id-less
    legacy entries survive until :func:`migrate` runs.
    """

    if not isinstance(document, dict):
        return default_document()
    view = dict(document)
    for key in COLLECTION_KEYS:
        value = document.get(key)
        entries = value if isinstance(value, list) else []
        view[key] = [entry for entry in entries if isinstance(entry, dict)]
    view["rent"] = document.get("rent") or 0
    return view


def _assign_ids(
    entries: List[Dict[str, Any]],
    prefix: str,
    stamp: int,
) -> Tuple[bool, List[Dict[str, Any]]]:
    kept: Set[str] = set()
    needs_id: List[int] = []
    for index, entry in enumerate(entries):
        if _has_usable_id(entry) and entry["id"] not in kept:
            kept.add(entry["id"])
        else:
            needs_id.append(index)
    if not needs_id:
        return False, entries
    assigned = list(entries)
    taken = set(kept)
    for index in needs_id:
        identifier = _next_identifier(f"{prefix}-{stamp}-{index}", taken)
        taken.add(identifier)
        assigned[index] = {**entries[index], "id": identifier}
    return True, assigned


def migrate(raw: Any, *, now: Optional[datetime] = None) -> Tuple[Dict[str, Any], bool]:
    """Upgrade ``raw`` to the current document shape.

    Returns the canonical document and whether anything had to change. The
    function never raises: values it cannot interpret degrade to the default
    for that field. Running it on its own output reports no change.
    """

    changed = False
    if not isinstance(raw, dict):
        logger.info("Persisted ledger is not an object; starting from defaults")
        raw = default_document()
        changed = True
    document: Dict[str, Any] = dict(raw)

    legacy_expenses = document.get("otherExpenses")
    if is_number(legacy_expenses):
        document["otherExpenses"] = (
            [{"name": LEGACY_EXPENSES_NAME, "amount": legacy_expenses}]
            if legacy_expenses > 0
            else []
        )
        changed = True

    for key in COLLECTION_KEYS:
        value = document.get(key)
        if not isinstance(value, list):
            logger.debug("Replacing non-list %s collection", key)
            document[key] = []
            changed = True
            continue
        entries = [entry for entry in value if isinstance(entry, dict)]
        if len(entries) < len(value):
            logger.debug("Dropped %d malformed %s entries", len(value) - len(entries), key)
            changed = True
        document[key] = entries

    stamp = int((now or _now()).timestamp() * 1000)
    for key, prefix in _IDENTIFIED_COLLECTIONS:
        assigned, entries = _assign_ids(document[key], prefix, stamp)
        if assigned:
            document[key] = entries
            changed = True

    rent = document.get("rent")
    if not is_number(rent):
        document["rent"] = coerce_number(rent)
        changed = True

    return document, changed


__all__ = [
    "COLLECTION_KEYS",
    "LEGACY_EXPENSES_NAME",
    "default_document",
    "migrate",
    "sanitize",
]
