from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class CartLineItem:
    product_id: str
    product_name: str
    size: str
    unit_price: Decimal
    quantity: int

    @property
    def key(self) -> tuple[str, str]:
        return self.product_id, self.size

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class OrderItem:
    product_id: str
    product_name: str
    quantity: int
    size: str
    price: Decimal
