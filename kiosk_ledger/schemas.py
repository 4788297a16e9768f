"""Pydantic schemas validating API payloads."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Expense, InventoryItem, Purchase, Sale, normalize_date


class _Payload(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)


class _DatedPayload(_Payload):
    date: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _normalize_date(cls, value: object) -> Optional[str]:
        return normalize_date(value)


class PurchaseCreate(_DatedPayload):
    item: str = Field(..., min_length=1)
    quantity: float = Field(..., ge=0)
    cost: float = Field(..., ge=0, description="Total amount paid.")

    def to_purchase(self) -> Purchase:
        return Purchase(item=self.item.strip(), quantity=self.quantity, cost=self.cost, date=self.date)


class SaleCreate(_DatedPayload):
    revenue: float

    def to_sale(self, sale_id: str = "") -> Sale:
        return Sale(id=sale_id, revenue=self.revenue, date=self.date)


class SaleUpdate(SaleCreate):
    pass


class InventoryItemCreate(_DatedPayload):
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    item: str = Field(..., min_length=1)
    quantity: float = Field(0, ge=0)
    cost_per_unit: float = Field(0, ge=0, alias="costPerUnit")

    def to_item(self, item_id: str = "") -> InventoryItem:
        return InventoryItem(
            id=item_id,
            item=self.item.strip(),
            quantity=self.quantity,
            cost_per_unit=self.cost_per_unit,
            date=self.date,
        )


class InventoryItemUpdate(InventoryItemCreate):
    pass


class RentUpdate(_Payload):
    rent: float


class ExpenseCreate(_Payload):
    name: str = Field(..., min_length=1)
    amount: float

    def to_expense(self) -> Expense:
        return Expense(name=self.name.strip(), amount=self.amount)


class ImportConfirmation(_Payload):
    token: str = Field(..., min_length=1)


__all__ = [
    "ExpenseCreate",
    "ImportConfirmation",
    "InventoryItemCreate",
    "InventoryItemUpdate",
    "PurchaseCreate",
    "RentUpdate",
    "SaleCreate",
    "SaleUpdate",
]
