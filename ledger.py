# ledger.py - the inventory ledger: validated changes to stock and sales
#
# One ledger holds the current snapshot of sarees, sales and purchases.
# Every change is checked here first, written through the repository, and
# then the whole snapshot is fetched again. If the write fails the old
# snapshot is kept untouched.
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from errors import InsufficientStock, NotFound, ValidationError
from records import Snapshot, parse_tags, to_money
from tags import suggest_tags

logger = logging.getLogger(__name__)

ITEM_FIELDS = {"name", "type", "price", "quantity", "tags", "description", "images"}
SALE_FIELDS = {"customer_name", "quantity", "selling_price", "image_url"}


def require_text(field, value) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required.")
    return str(value).strip()


def require_int(field, value, minimum=0) -> int:
    # bools are ints in python, but never a valid count
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a whole number.")
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise ValidationError(f"{field} must be a whole number.")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be a whole number.")
        value = int(value)
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be a whole number.")
    if value < minimum:
        raise ValidationError(f"{field} must be at least {minimum}.")
    return value


def require_money(field, value, allow_zero=True) -> Decimal:
    if isinstance(value, bool) or value is None or value == "":
        raise ValidationError(f"{field} is required.")
    try:
        amount = to_money(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number.")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number.")
    # stored as Numeric(12, 2), anything finer would be rounded away
    if amount.as_tuple().exponent < -2:
        raise ValidationError(f"{field} can have at most two decimal places.")
    if amount < 0 or (amount == 0 and not allow_zero):
        bound = "zero or more" if allow_zero else "greater than zero"
        raise ValidationError(f"{field} must be {bound}.")
    return amount


def optional_text(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def clean_images(images) -> tuple[str, ...]:
    if images is None:
        return ()
    if isinstance(images, str):
        images = [images]
    elif not isinstance(images, (list, tuple)):
        raise ValidationError("images must be a list of links.")
    return tuple(str(url).strip() for url in images if url and str(url).strip())


class InventoryLedger:
    """Current sarees, sales and purchases plus the rules for changing them."""

    def __init__(self, repository):
        self.repository = repository
        self._snapshot = Snapshot()
        self.refresh()

    def refresh(self):
        self._snapshot = self.repository.fetch_snapshot()
        return self._snapshot

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def items(self):
        return self._snapshot.items

    @property
    def sales(self):
        return self._snapshot.sales

    @property
    def purchases(self):
        return self._snapshot.purchases

    def get(self, item_id):
        for item in self._snapshot.items:
            if item.id == item_id:
                return item
        raise NotFound(f"Saree {item_id} not found.")

    def get_sale(self, sale_id):
        for sale in self._snapshot.sales:
            if sale.id == sale_id:
                return sale
        raise NotFound(f"Sale {sale_id} not found.")

    # stock items

    def add(self, name, type, price, quantity, images=(), tags=None, description=None, auto_tags=False):
        name = require_text("name", name)
        saree_type = require_text("type", type)
        price = require_money("price", price)
        quantity = require_int("quantity", quantity)
        if tags is None and auto_tags:
            tags = suggest_tags(name, saree_type)

        new_id = self.repository.insert_item(
            name=name,
            type=saree_type,
            price=price,
            quantity=quantity,
            images=clean_images(images),
            tags=parse_tags(tags),
            description=optional_text(description),
        )
        self.refresh()
        logger.info("Added saree %s (%s) with %d in stock", new_id, name, quantity)
        return self.get(new_id)

    def update(self, item_id, **fields):
        unknown = set(fields) - ITEM_FIELDS
        if unknown:
            raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")
        self.get(item_id)

        patch = {}
        if "name" in fields:
            patch["name"] = require_text("name", fields["name"])
        if "type" in fields:
            patch["type"] = require_text("type", fields["type"])
        if "price" in fields:
            patch["price"] = require_money("price", fields["price"])
        if "quantity" in fields:
            patch["quantity"] = require_int("quantity", fields["quantity"])
        if "tags" in fields:
            patch["tags"] = parse_tags(fields["tags"])
        if "description" in fields:
            patch["description"] = optional_text(fields["description"])
        images = clean_images(fields["images"]) if "images" in fields else None

        self.repository.update_item(item_id, patch, images=images)
        self.refresh()
        logger.info("Updated saree %s: %s", item_id, ", ".join(sorted(fields)) or "no changes")
        return self.get(item_id)

    def delete(self, item_id):
        # sales and purchases keep their copies of the saree's details
        self.get(item_id)
        self.repository.delete_item(item_id)
        self.refresh()
        logger.info("Deleted saree %s", item_id)

    def restock(self, item_id, quantity, unit_cost=None):
        item = self.get(item_id)
        quantity = require_int("quantity", quantity, minimum=1)
        unit_cost = item.price if unit_cost is None else require_money("unit_cost", unit_cost)

        purchase_id = self.repository.restock(item_id, quantity, unit_cost)
        self.refresh()
        logger.info("Restocked saree %s with %d at %s each", item_id, quantity, unit_cost)
        for purchase in self._snapshot.purchases:
            if purchase.id == purchase_id:
                return purchase
        raise NotFound(f"Purchase {purchase_id} not found.")

    # sales

    def record_sale(self, item_id, quantity, customer_name, selling_price, selected_image=None):
        """Sells stock of one saree.

        The stock decrement and the new sale row are committed together.
        Cost price, margin and type are copied from the saree as it is now,
        so later price edits do not change this sale's profit.
        """
        item = self.get(item_id)
        quantity = require_int("quantity", quantity, minimum=1)
        customer_name = require_text("customer_name", customer_name)
        selling_price = require_money("selling_price", selling_price, allow_zero=False)
        if quantity > item.quantity:
            raise InsufficientStock(quantity, item.quantity)

        sale_id = self.repository.sell(
            item_id,
            quantity,
            customer_name=customer_name,
            selling_price=selling_price,
            selected_image=optional_text(selected_image),
        )
        self.refresh()
        logger.info("Sold %d x saree %s to %s at %s", quantity, item_id, customer_name, selling_price)
        return self.get_sale(sale_id)

    def edit_sale(self, sale_id, **fields):
        """Corrects a recorded sale. Stock on hand is not adjusted."""
        unknown = set(fields) - SALE_FIELDS
        if unknown:
            raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")
        sale = self.get_sale(sale_id)

        patch = {}
        if "customer_name" in fields:
            patch["customer_name"] = require_text("customer_name", fields["customer_name"])
        if "quantity" in fields:
            patch["quantity"] = require_int("quantity", fields["quantity"], minimum=1)
        if "selling_price" in fields:
            patch["selling_price"] = require_money("selling_price", fields["selling_price"], allow_zero=False)
        if "image_url" in fields:
            patch["image_url"] = optional_text(fields["image_url"])

        # margin only follows the price when the cost is known
        if sale.cost_price is not None:
            selling_price = patch.get("selling_price", sale.selling_price)
            patch["margin"] = selling_price - sale.cost_price

        self.repository.update_sale(sale_id, patch)
        self.refresh()
        logger.info("Edited sale %s", sale_id)
        return self.get_sale(sale_id)

    def delete_sale(self, sale_id):
        # removes the sale only, the saree keeps its current quantity
        self.get_sale(sale_id)
        self.repository.delete_sale(sale_id)
        self.refresh()
        logger.info("Deleted sale %s", sale_id)
