# repository.py - the only code that talks to the database
#
# Reads come back as records (see records.py). Every write is one
# transaction: it either commits as a whole or is rolled back and reported
# as ExternalStoreError, so callers never see half-applied changes.
from __future__ import annotations

import logging
from contextlib import contextmanager

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from errors import ExternalStoreError, InsufficientStock, InventoryError, NotFound
from models import db, Saree, SareeImage, Sale, Purchase
from records import (
    PurchaseRecord,
    SaleRecord,
    Snapshot,
    StockItem,
    join_tags,
    parse_tags,
    to_money,
)

logger = logging.getLogger(__name__)


def item_from_row(row: Saree) -> StockItem:
    return StockItem(
        id=row.id,
        name=row.name,
        type=row.type,
        price=to_money(row.price),
        quantity=row.quantity,
        images=tuple(img.image_url for img in row.images),
        tags=parse_tags(row.tags),
        description=row.description,
        created_at=row.created_at,
    )


def sale_from_row(row: Sale) -> SaleRecord:
    return SaleRecord(
        id=row.id,
        saree_id=row.saree_id,
        saree_name=row.saree_name,
        type=row.type,
        customer_name=row.customer_name,
        quantity=row.quantity,
        selling_price=to_money(row.selling_price),
        cost_price=to_money(row.cost_price),
        margin=to_money(row.margin),
        image_url=row.image_url,
        created_at=row.created_at,
    )


def purchase_from_row(row: Purchase) -> PurchaseRecord:
    return PurchaseRecord(
        id=row.id,
        saree_id=row.saree_id,
        quantity=row.quantity,
        unit_cost=to_money(row.unit_cost),
        total_cost=to_money(row.total_cost),
        created_at=row.created_at,
    )


@contextmanager
def _transaction(action):
    try:
        yield db.session
        db.session.commit()
    except InventoryError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database write failed while trying to %s", action)
        raise ExternalStoreError(f"Could not {action}. Please try again.") from exc


def _image_rows(urls):
    return [SareeImage(image_url=url, position=i) for i, url in enumerate(urls)]


class SqlRepository:
    """Stores sarees, sales and purchases through Flask-SQLAlchemy."""

    def fetch_snapshot(self) -> Snapshot:
        try:
            items = (
                db.session.query(Saree)
                .options(selectinload(Saree.images))
                .order_by(Saree.id.asc())
                .all()
            )
            sales = db.session.query(Sale).order_by(Sale.created_at.asc(), Sale.id.asc()).all()
            purchases = (
                db.session.query(Purchase)
                .order_by(Purchase.created_at.asc(), Purchase.id.asc())
                .all()
            )
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Database read failed")
            raise ExternalStoreError("Could not load inventory. Please try again.") from exc

        return Snapshot(
            items=tuple(item_from_row(r) for r in items),
            sales=tuple(sale_from_row(r) for r in sales),
            purchases=tuple(purchase_from_row(r) for r in purchases),
        )

    def insert_item(self, *, name, type, price, quantity, images=(), tags=(), description=None) -> int:
        with _transaction("add the saree") as session:
            row = Saree(
                name=name,
                type=type,
                price=price,
                quantity=quantity,
                tags=join_tags(tags),
                description=description,
            )
            row.images = _image_rows(images)
            session.add(row)
            session.flush()  # need row.id for the purchase

            # opening stock counts as money invested
            if quantity > 0:
                session.add(Purchase(
                    saree_id=row.id,
                    quantity=quantity,
                    unit_cost=price,
                    total_cost=price * quantity,
                ))
            new_id = row.id
        return new_id

    def update_item(self, item_id, fields: dict, images=None) -> None:
        with _transaction("update the saree") as session:
            row = session.get(Saree, item_id)
            if row is None:
                raise NotFound(f"Saree {item_id} not found.")
            for key, value in fields.items():
                if key == "tags":
                    value = join_tags(value)
                setattr(row, key, value)
            if images is not None:
                row.images = _image_rows(images)

    def delete_item(self, item_id) -> None:
        with _transaction("delete the saree") as session:
            row = session.get(Saree, item_id)
            if row is None:
                raise NotFound(f"Saree {item_id} not found.")
            session.delete(row)

    def sell(self, item_id, quantity, *, customer_name, selling_price, selected_image=None) -> int:
        """Takes stock off the shelf and logs the sale in one commit."""
        with _transaction("record the sale") as session:
            row = session.get(Saree, item_id)
            if row is None:
                raise NotFound(f"Saree {item_id} not found.")
            cost_price = to_money(row.price)

            # guarded decrement: a concurrent sale cannot push stock below zero
            result = session.execute(
                update(Saree)
                .where(Saree.id == item_id, Saree.quantity >= quantity)
                .values(quantity=Saree.quantity - quantity)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                session.refresh(row)
                raise InsufficientStock(quantity, row.quantity)

            sale = Sale(
                saree_id=item_id,
                saree_name=row.name,
                type=row.type,
                customer_name=customer_name,
                quantity=quantity,
                selling_price=selling_price,
                cost_price=cost_price,
                margin=selling_price - cost_price,
                image_url=selected_image,
            )
            session.add(sale)
            session.flush()
            sale_id = sale.id
        return sale_id

    def restock(self, item_id, quantity, unit_cost) -> int:
        with _transaction("restock the saree") as session:
            row = session.get(Saree, item_id)
            if row is None:
                raise NotFound(f"Saree {item_id} not found.")
            row.quantity = row.quantity + quantity
            purchase = Purchase(
                saree_id=item_id,
                quantity=quantity,
                unit_cost=unit_cost,
                total_cost=unit_cost * quantity,
            )
            session.add(purchase)
            session.flush()
            purchase_id = purchase.id
        return purchase_id

    def update_sale(self, sale_id, fields: dict) -> None:
        with _transaction("update the sale") as session:
            row = session.get(Sale, sale_id)
            if row is None:
                raise NotFound(f"Sale {sale_id} not found.")
            for key, value in fields.items():
                setattr(row, key, value)

    def delete_sale(self, sale_id) -> None:
        # the saree's quantity is left as it is
        with _transaction("delete the sale") as session:
            row = session.get(Sale, sale_id)
            if row is None:
                raise NotFound(f"Sale {sale_id} not found.")
            session.delete(row)
