from __future__ import annotations

import json
from datetime import date

import pytest

from kiosk_ledger import ledger
from kiosk_ledger.codec import (
    InvalidDocumentShape,
    export_document,
    export_filename,
    import_document,
    parse_document,
)
from kiosk_ledger.migration import migrate, sanitize
from kiosk_ledger.models import AppData, Expense, Purchase, Sale


def _populated() -> AppData:
    state = AppData()
    state = ledger.record_purchase(state, Purchase(item="Cheese", quantity=10, cost=50))
    state = ledger.record_purchase(state, Purchase(item="Flour", quantity=3, cost=10))
    state = ledger.record_sale(state, Sale(revenue=120.5))
    state = ledger.set_rent(state, 800)
    state = ledger.add_expense(state, Expense(name="Gas", amount=35))
    return state


def test_export_is_readable_json() -> None:
    data = _populated()

    content = export_document(data)

    assert content.startswith(b"{\n  ")
    assert json.loads(content.decode("utf-8")) == data.to_dict()


def test_round_trip() -> None:
    data = _populated()

    assert import_document(export_document(data)) == data


def test_round_trip_after_migration() -> None:
    raw = {
        "inventory": [{"item": "Dough", "quantity": 2, "costPerUnit": 1}, None],
        "purchases": [{"item": "Dough", "quantity": 2, "cost": 2, "date": "2024-05-01T00:00:00+00:00"}],
        "sales": [{"revenue": 9}],
        "rent": 100,
        "otherExpenses": 40,
    }
    migrated, _ = migrate(raw)
    data = AppData.from_document(sanitize(migrated))

    assert import_document(export_document(data)) == data


def test_unknown_keys_survive_import_and_export() -> None:
    payload = {**_populated().to_dict(), "theme": "dark", "rent": 5}

    data = import_document(json.dumps(payload))

    assert data.extras == {"theme": "dark"}
    exported = json.loads(export_document(data).decode("utf-8"))
    assert exported["theme"] == "dark"
    assert exported["rent"] == 5


def test_import_accepts_text_payload() -> None:
    data = _populated()

    assert import_document(export_document(data).decode("utf-8")) == data


def test_import_heals_entries() -> None:
    payload = json.dumps(
        {
            "inventory": [None, {"item": "Dough"}],
            "sales": "broken",
            "purchases": [],
            "otherExpenses": 55,
        }
    )

    data = import_document(payload)

    assert len(data.inventory) == 1
    assert data.inventory[0].id.startswith("migrated-inv-")
    assert data.sales == ()
    assert data.other_expenses[0].amount == 55
    assert data.rent == 0


@pytest.mark.parametrize(
    "missing",
    ["inventory", "sales", "purchases"],
)
def test_import_requires_core_keys(missing: str) -> None:
    document = {"inventory": [], "sales": [], "purchases": [], "rent": 0}
    del document[missing]

    with pytest.raises(InvalidDocumentShape) as excinfo:
        import_document(json.dumps(document))

    assert missing in str(excinfo.value)


@pytest.mark.parametrize(
    "payload",
    [b"not json", b"[1, 2, 3]", b"\xff\xfe\x00", "null"],
)
def test_import_rejects_non_documents(payload) -> None:
    with pytest.raises(InvalidDocumentShape):
        import_document(payload)


def test_parse_document_returns_raw_mapping() -> None:
    document = parse_document(b'{"inventory": [1], "sales": [], "purchases": []}')

    assert document["inventory"] == [1]


def test_export_filename() -> None:
    assert export_filename(date(2026, 10, 17)) == "kiosk-ledger-backup-2026-10-17.json"
    assert export_filename(date(2024, 1, 2), prefix="pizza") == "pizza-2024-01-02.json"
