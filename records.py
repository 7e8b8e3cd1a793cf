# records.py - plain, immutable snapshots of what is in the database
#
# The ledger and the metrics functions only ever see these. Rows are turned
# into records at the repository edge, so loose shapes (tags stored as text,
# missing image rows, null prices) never travel further in.
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from errors import ValidationError

ZERO = Decimal("0")


def parse_tags(value) -> tuple[str, ...]:
    """Accepts "a, b", ["a", "b"] or None and returns clean unique tags."""
    if value is None:
        return ()
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple)):
        parts = value
    else:
        raise ValidationError("tags must be text or a list.")
    tags = []
    for part in parts:
        tag = str(part).strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tuple(tags)


def join_tags(tags) -> Optional[str]:
    tags = parse_tags(tags)
    return ",".join(tags) if tags else None


def to_money(value) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    # str() first so 0.1 stays 0.1 instead of its binary expansion
    return Decimal(str(value))


@dataclass(frozen=True)
class StockItem:
    id: int
    name: str
    type: str
    price: Decimal
    quantity: int
    images: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def primary_image(self) -> Optional[str]:
        return self.images[0] if self.images else None

    def is_low_stock(self, threshold: int = 5) -> bool:
        return self.quantity < threshold

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "price": str(self.price),
            "quantity": self.quantity,
            "images": list(self.images),
            "image_url": self.primary_image,
            "tags": list(self.tags),
            "description": self.description,
            "created_at": _iso(self.created_at),
        }


@dataclass(frozen=True)
class SaleRecord:
    id: int
    saree_id: int
    customer_name: str
    quantity: int
    selling_price: Decimal
    cost_price: Optional[Decimal]
    margin: Optional[Decimal]
    type: Optional[str]
    created_at: datetime
    saree_name: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def profit(self) -> Decimal:
        # a sale with no known cost adds nothing to profit
        if self.margin is None:
            return ZERO
        return self.margin * self.quantity

    @property
    def revenue(self) -> Decimal:
        return self.selling_price * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "saree_id": self.saree_id,
            "saree_name": self.saree_name,
            "type": self.type,
            "customer_name": self.customer_name,
            "quantity": self.quantity,
            "selling_price": str(self.selling_price),
            "cost_price": _money_str(self.cost_price),
            "margin": _money_str(self.margin),
            "image_url": self.image_url,
            "created_at": _iso(self.created_at),
        }


@dataclass(frozen=True)
class PurchaseRecord:
    id: int
    saree_id: int
    quantity: int
    unit_cost: Decimal
    total_cost: Decimal
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "saree_id": self.saree_id,
            "quantity": self.quantity,
            "unit_cost": str(self.unit_cost),
            "total_cost": str(self.total_cost),
            "created_at": _iso(self.created_at),
        }


@dataclass(frozen=True)
class Snapshot:
    """Everything the ledger knows after one fetch-all."""

    items: tuple[StockItem, ...] = ()
    sales: tuple[SaleRecord, ...] = ()
    purchases: tuple[PurchaseRecord, ...] = ()


def _money_str(value):
    return None if value is None else str(value)


def _iso(value):
    return value.isoformat() if value is not None else None
