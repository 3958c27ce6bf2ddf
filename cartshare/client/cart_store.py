"""Shopper-side cart aggregation.

A ``CartStore`` is an explicit instance over a ``CartStorage`` backend. Only
the item collection is persisted; whether the cart drawer is open is
per-instance UI state. Two stores sharing one backend are last-write-wins,
since every mutation re-saves the full collection.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from decimal import Decimal
from pathlib import Path
from typing import Any, Protocol

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from cartshare.core.logging import get_logger
from cartshare.services.exceptions import InvalidQuantityError

logger = get_logger("cartshare.client.cart")


class CartItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    unit_price: Decimal = Field(..., ge=0, validation_alias=AliasChoices("unit_price", "unitPrice", "price"))
    quantity: int = Field(default=1, ge=1)
    customization: str | None = None
    image: str | None = None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


_ITEMS_ADAPTER = TypeAdapter(list[CartItem])


class CartStorage(Protocol):
    def load(self) -> list[CartItem]:
        ...

    def save(self, items: list[CartItem]) -> None:
        ...


class InMemoryCartStorage:
    def __init__(self) -> None:
        self._items: list[CartItem] = []

    def load(self) -> list[CartItem]:
        return list(self._items)

    def save(self, items: list[CartItem]) -> None:
        self._items = list(items)


class JsonFileCartStorage:
    """Keeps the cart in a JSON file so it survives process restarts."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def load(self) -> list[CartItem]:
        if not self.path.exists():
            return []
        try:
            return _ITEMS_ADAPTER.validate_json(self.path.read_bytes())
        except ValidationError:
            logger.warning("Discarding unreadable saved cart", extra={"path": str(self.path)})
            return []

    def save(self, items: list[CartItem]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_bytes(_ITEMS_ADAPTER.dump_json(items))
        os.replace(tmp_path, self.path)


def _check_quantity(quantity: Any) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError(f"Quantity must be an integer, got {quantity!r}")
    return quantity


def _added_quantity(item: CartItem | Mapping[str, Any], quantity: int | None) -> tuple[CartItem, int]:
    if isinstance(item, CartItem):
        parsed, default_quantity = item, item.quantity
    else:
        data = dict(item)
        default_quantity = data.pop("quantity", 1)
        parsed = CartItem.model_validate(data)
    added = default_quantity if quantity is None else quantity
    if _check_quantity(added) < 1:
        raise InvalidQuantityError(f"Quantity must be a positive integer, got {added!r}")
    return parsed, added


class CartStore:
    def __init__(self, storage: CartStorage | None = None) -> None:
        self._storage = storage if storage is not None else InMemoryCartStorage()
        self._items: dict[str, CartItem] = {item.id: item for item in self._storage.load()}
        self.is_open = False

    @property
    def items(self) -> tuple[CartItem, ...]:
        return tuple(self._items.values())

    @property
    def is_empty(self) -> bool:
        return not self._items

    def _persist(self) -> None:
        self._storage.save(list(self._items.values()))

    def add_item(self, item: CartItem | Mapping[str, Any], quantity: int | None = None) -> CartItem:
        """Add ``item``, merging into an existing line with the same id.

        The added amount is ``quantity`` when given, else the item's own
        quantity. Adding opens the cart.
        """
        parsed, added = _added_quantity(item, quantity)
        existing = self._items.get(parsed.id)
        if existing is not None:
            line = existing.model_copy(update={"quantity": existing.quantity + added})
        else:
            line = parsed.model_copy(update={"quantity": added})
        self._items[parsed.id] = line
        self._persist()
        self.is_open = True
        return line

    def remove_item(self, item_id: str) -> None:
        if self._items.pop(item_id, None) is not None:
            self._persist()

    def update_quantity(self, item_id: str, quantity: int) -> None:
        if _check_quantity(quantity) <= 0:
            self.remove_item(item_id)
            return
        existing = self._items.get(item_id)
        if existing is None:
            return
        self._items[item_id] = existing.model_copy(update={"quantity": quantity})
        self._persist()

    def clear(self) -> None:
        self._items.clear()
        self._persist()
        self.is_open = False

    def get_subtotal(self) -> Decimal:
        return sum((item.line_total for item in self._items.values()), Decimal("0"))

    def get_total_items(self) -> int:
        return sum(item.quantity for item in self._items.values())

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    def toggle(self) -> None:
        self.is_open = not self.is_open
