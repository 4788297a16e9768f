"""Read-only financial projections of the ledger."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Union

from .migration import sanitize
from .models import AppData, Sale, _parse_timestamp, coerce_number


LedgerLike = Union[AppData, Mapping[str, Any]]


def _as_document(data: LedgerLike) -> Dict[str, Any]:
    if isinstance(data, AppData):
        return data.to_dict()
    return sanitize(data)


@dataclass(frozen=True)
class ProfitReport:
    total_purchase_cost: float
    total_revenue: float
    rent: float
    other_expenses_total: float
    total_expenses: float
    gross_profit: float
    margin: float
    margin_percent: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "total_purchase_cost": self.total_purchase_cost,
            "total_revenue": self.total_revenue,
            "rent": self.rent,
            "other_expenses_total": self.other_expenses_total,
            "total_expenses": self.total_expenses,
            "gross_profit": self.gross_profit,
            "margin": self.margin,
            "margin_percent": self.margin_percent,
        }


@dataclass(frozen=True)
class StockLine:
    """On-hand position for one item name across all of its inventory entries."""

    item: str
    quantity: float
    entries: int
    latest_cost_per_unit: float
    weighted_average_cost: float
    stock_value: float
    last_date: Union[str, None]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item": self.item,
            "quantity": self.quantity,
            "entries": self.entries,
            "latest_cost_per_unit": self.latest_cost_per_unit,
            "weighted_average_cost": self.weighted_average_cost,
            "stock_value": self.stock_value,
            "last_date": self.last_date,
        }


def build_report(data: LedgerLike) -> ProfitReport:
    """Profit and loss over the whole ledger.

    Non-numeric ``cost``, ``revenue`` and ``amount`` values count as zero.
    """

    document = _as_document(data)
    total_purchase_cost = sum(coerce_number(p.get("cost")) for p in document["purchases"])
    total_revenue = sum(coerce_number(s.get("revenue")) for s in document["sales"])
    rent = coerce_number(document.get("rent"))
    other_total = sum(coerce_number(e.get("amount")) for e in document["otherExpenses"])
    total_expenses = rent + other_total
    gross_profit = total_revenue - total_purchase_cost
    margin = gross_profit - total_expenses
    margin_percent = (margin / total_revenue * 100) if total_revenue > 0 else 0.0
    return ProfitReport(
        total_purchase_cost=total_purchase_cost,
        total_revenue=total_revenue,
        rent=rent,
        other_expenses_total=other_total,
        total_expenses=total_expenses,
        gross_profit=gross_profit,
        margin=margin,
        margin_percent=margin_percent,
    )


def _date_sort_key(value: Any) -> float:
    parsed = _parse_timestamp(value) if isinstance(value, str) else None
    return parsed.timestamp() if parsed is not None else float("-inf")


def stock_summary(data: LedgerLike) -> List[StockLine]:
    """Group inventory entries by case-insensitive name.

    Repeated purchases leave several entries per name, so quantity is summed
    and both the most recent entry's unit cost and the quantity-weighted
    average are reported.
    """

    document = _as_document(data)
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for entry in document["inventory"]:
        name = str(entry.get("item") or "").strip()
        groups.setdefault(name.lower(), []).append(entry)
    lines: List[StockLine] = []
    for entries in groups.values():
        ordered = sorted(entries, key=lambda e: _date_sort_key(e.get("date")))
        latest = ordered[-1]
        quantity = sum(coerce_number(e.get("quantity")) for e in entries)
        value = sum(
            coerce_number(e.get("quantity")) * coerce_number(e.get("costPerUnit"))
            for e in entries
        )
        lines.append(
            StockLine(
                item=str(latest.get("item") or "").strip(),
                quantity=quantity,
                entries=len(entries),
                latest_cost_per_unit=coerce_number(latest.get("costPerUnit")),
                weighted_average_cost=(value / quantity) if quantity > 0 else 0.0,
                stock_value=value,
                last_date=latest.get("date"),
            )
        )
    lines.sort(key=lambda line: line.item.lower())
    return lines


def sales_history(data: AppData) -> List[Sale]:
    """Sales newest first; undated sales sort last."""

    return sorted(data.sales, key=lambda sale: _date_sort_key(sale.date), reverse=True)


__all__ = [
    "ProfitReport",
    "StockLine",
    "build_report",
    "sales_history",
    "stock_summary",
]
