from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal

from sewcraft.domain.entities.cart import CartLineItem, OrderItem
from sewcraft.domain.entities.catalog import Product


logger = logging.getLogger(__name__)


def _is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class CartStore:
    """In-memory cart for one client session.

    Line items are keyed by ``(product_id, size)`` and kept in insertion
    order. Quantities are always positive; invalid mutations are refused
    without raising.
    """

    def __init__(self) -> None:
        self._items: dict[tuple[str, str], CartLineItem] = {}

    @property
    def items(self) -> tuple[CartLineItem, ...]:
        return tuple(self._items.values())

    def get_item(self, product_id: str, size: str) -> CartLineItem | None:
        return self._items.get((product_id, size))

    def add_item(self, product: Product, quantity: int, size: str) -> None:
        if not _is_positive_int(quantity):
            logger.debug(
                "cart_store: add_item_rejected product_id=%s size=%s quantity=%r",
                product.id,
                size,
                quantity,
            )
            return

        key = (product.id, size)
        current = self._items.get(key)
        if current is None:
            item = CartLineItem(
                product_id=product.id,
                product_name=product.name,
                size=size,
                unit_price=Decimal(str(product.price)),
                quantity=quantity,
            )
            self._items[item.key] = item
            return

        self._items[key] = replace(current, quantity=current.quantity + quantity)

    def update_quantity(self, product_id: str, size: str, new_quantity: int) -> None:
        key = (product_id, size)
        current = self._items.get(key)
        if current is None:
            return
        if isinstance(new_quantity, bool) or not isinstance(new_quantity, int):
            logger.debug(
                "cart_store: update_quantity_rejected product_id=%s size=%s quantity=%r",
                product_id,
                size,
                new_quantity,
            )
            return
        if new_quantity <= 0:
            del self._items[key]
            return
        self._items[key] = replace(current, quantity=new_quantity)

    def remove_item(self, product_id: str, size: str) -> None:
        self._items.pop((product_id, size), None)

    def clear(self) -> None:
        self._items.clear()

    def get_total_items(self) -> int:
        return sum(item.quantity for item in self._items.values())

    def get_total_amount(self) -> Decimal:
        return sum((item.subtotal for item in self._items.values()), Decimal("0"))

    def to_order_items(self) -> list[OrderItem]:
        return [
            OrderItem(
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                size=item.size,
                price=item.unit_price,
            )
            for item in self._items.values()
        ]
