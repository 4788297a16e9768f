from __future__ import annotations

import math
from dataclasses import replace

import pytest

from kiosk_ledger import ledger
from kiosk_ledger.models import AppData, Expense, InventoryItem, Purchase, Sale
from kiosk_ledger.reports import build_report, sales_history, stock_summary


def test_profit_report_totals() -> None:
    state = AppData()
    state = ledger.record_purchase(state, Purchase(item="Cheese", quantity=10, cost=50))
    state = ledger.record_purchase(state, Purchase(item="Dough", quantity=5, cost=25))
    state = ledger.record_sale(state, Sale(revenue=300))
    state = ledger.record_sale(state, Sale(revenue=100))
    state = ledger.set_rent(state, 150)
    state = ledger.add_expense(state, Expense(name="Gas", amount=40))
    state = ledger.add_expense(state, Expense(name="Water", amount=10))

    report = build_report(state)

    assert report.total_purchase_cost == 75
    assert report.total_revenue == 400
    assert report.rent == 150
    assert report.other_expenses_total == 50
    assert report.total_expenses == 200
    assert report.gross_profit == 325
    assert report.margin == 125
    assert report.margin_percent == pytest.approx(31.25)


def test_empty_report() -> None:
    report = build_report(AppData())

    assert report.to_dict() == {
        "total_purchase_cost": 0,
        "total_revenue": 0,
        "rent": 0,
        "other_expenses_total": 0,
        "total_expenses": 0,
        "gross_profit": 0,
        "margin": 0,
        "margin_percent": 0.0,
    }


def test_report_tolerates_non_numeric_values() -> None:
    document = {
        "inventory": [],
        "purchases": [{"item": "A", "cost": "abc"}, {"item": "B", "cost": 20}, None],
        "sales": [{"revenue": None}, {"revenue": "15.5"}, {"revenue": float("nan")}],
        "rent": "unknown",
        "otherExpenses": [{"name": "Gas", "amount": {}}, {"name": "Ice", "amount": 5}],
    }

    report = build_report(document)

    assert report.total_purchase_cost == 20
    assert report.total_revenue == 15.5
    assert report.total_expenses == 5
    assert not any(math.isnan(value) for value in report.to_dict().values())


def test_stock_summary_groups_by_name() -> None:
    state = AppData()
    state = ledger.record_purchase(
        state, Purchase(item="Cheese", quantity=10, cost=50, date="2024-05-01T00:00:00+00:00")
    )
    state = ledger.record_purchase(
        state, Purchase(item="cheese", quantity=10, cost=150, date="2024-05-03T00:00:00+00:00")
    )
    state = ledger.create_inventory_item(state, InventoryItem(item="Basil", quantity=0))

    lines = {line.item.lower(): line for line in stock_summary(state)}

    cheese = lines["cheese"]
    assert cheese.item == "cheese"
    assert cheese.quantity == 20
    assert cheese.entries == 2
    assert cheese.latest_cost_per_unit == 15
    assert cheese.weighted_average_cost == 10
    assert cheese.stock_value == 200
    assert cheese.last_date == "2024-05-03T00:00:00+00:00"

    basil = lines["basil"]
    assert basil.quantity == 0
    assert basil.weighted_average_cost == 0


def test_sales_history_newest_first() -> None:
    state = AppData()
    state = ledger.record_sale(state, Sale(revenue=1, date="2024-05-01T00:00:00+00:00"))
    state = ledger.record_sale(state, Sale(revenue=2, date="2024-05-03T00:00:00+00:00"))
    state = ledger.record_sale(state, Sale(revenue=3, date="2024-05-02T00:00:00+00:00"))
    undated = replace(state, sales=state.sales + (Sale(id="sale-legacy", revenue=4),))

    ordered = sales_history(undated)

    assert [sale.revenue for sale in ordered] == [2, 3, 1, 4]
