from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from errors import ExternalStoreError, InsufficientStock, NotFound, ValidationError
from models import db, Sale, Saree


def add_silk(ledger, **overrides):
    fields = dict(name='Royal Silk', type='Silk', price='12500', quantity=3)
    fields.update(overrides)
    return ledger.add(**fields)


class TestAddUpdateDelete:

    def test_add_round_trip(self, ledger):
        item = ledger.add(
            name='Royal Silk',
            type='Silk',
            price='12500',
            quantity=3,
            images=['https://img.example/a.jpg', 'https://img.example/b.jpg'],
            tags=['Wedding', 'Premium'],
            description='Zari border',
        )

        ledger.refresh()
        fetched = ledger.get(item.id)
        assert fetched.id is not None
        assert fetched.name == 'Royal Silk'
        assert fetched.type == 'Silk'
        assert fetched.price == Decimal('12500')
        assert fetched.quantity == 3
        assert fetched.images == ('https://img.example/a.jpg', 'https://img.example/b.jpg')
        assert fetched.tags == ('Wedding', 'Premium')
        assert fetched.description == 'Zari border'

    def test_add_issues_fresh_ids(self, ledger):
        first = add_silk(ledger)
        second = add_silk(ledger, name='Cotton Daily', type='Cotton')
        assert first.id != second.id
        assert len(ledger.items) == 2

    def test_add_records_opening_stock_as_purchase(self, ledger):
        item = add_silk(ledger, price='1000', quantity=4)
        assert len(ledger.purchases) == 1
        purchase = ledger.purchases[0]
        assert purchase.saree_id == item.id
        assert purchase.total_cost == Decimal('4000')

    def test_add_without_stock_records_no_purchase(self, ledger):
        add_silk(ledger, quantity=0)
        assert ledger.purchases == ()

    def test_auto_tags_from_type_and_name(self, ledger):
        item = ledger.add(name='Bridal Red', type='Silk', price='9000', quantity=1, auto_tags=True)
        assert item.tags == ('Traditional', 'Wedding')

    def test_tags_given_as_text(self, ledger):
        item = add_silk(ledger, tags='Festive, Soft,Festive')
        assert item.tags == ('Festive', 'Soft')

    def test_price_with_paise_is_kept_exactly(self, ledger):
        item = add_silk(ledger, price='10.05')
        ledger.refresh()
        assert ledger.get(item.id).price == Decimal('10.05')

    @pytest.mark.parametrize('fields', [
        dict(name=''),
        dict(type='   '),
        dict(price='-1'),
        dict(price='abc'),
        dict(quantity=-1),
        dict(quantity=2.5),
        dict(quantity=True),
        dict(quantity='--3'),
        dict(quantity='\u00b2'),
        dict(price='10.005'),
        dict(images=5),
        dict(tags=5),
    ])
    def test_add_rejects_bad_input(self, ledger, fields):
        with pytest.raises(ValidationError):
            add_silk(ledger, **fields)
        assert ledger.items == ()

    def test_update_keeps_id_and_changes_fields(self, ledger):
        item = add_silk(ledger)
        updated = ledger.update(item.id, name='Royal Silk II', price='13000', quantity=7, tags=['New'])
        assert updated.id == item.id
        assert updated.name == 'Royal Silk II'
        assert updated.price == Decimal('13000')
        assert updated.quantity == 7
        assert updated.tags == ('New',)

    def test_update_replaces_images_only_when_given(self, ledger):
        item = add_silk(ledger, images=['https://img.example/a.jpg'])
        assert ledger.update(item.id, name='Renamed').images == ('https://img.example/a.jpg',)
        assert ledger.update(item.id, images=['https://img.example/c.jpg']).images == ('https://img.example/c.jpg',)

    def test_update_unknown_id(self, ledger):
        with pytest.raises(NotFound):
            ledger.update(999, name='Nope')

    def test_update_unknown_field(self, ledger):
        item = add_silk(ledger)
        with pytest.raises(ValidationError):
            ledger.update(item.id, colour='red')

    def test_delete_keeps_sales(self, ledger):
        item = add_silk(ledger)
        sale = ledger.record_sale(item.id, 1, 'Priya', '15000')
        ledger.delete(item.id)

        assert ledger.items == ()
        kept = ledger.get_sale(sale.id)
        assert kept.saree_id == item.id
        assert kept.saree_name == 'Royal Silk'
        assert kept.type == 'Silk'

    def test_delete_unknown_id(self, ledger):
        with pytest.raises(NotFound):
            ledger.delete(42)


class TestRecordSale:

    def test_sale_decrements_stock_and_snapshots_prices(self, ledger):
        item = add_silk(ledger, price='12500', quantity=3)

        sale = ledger.record_sale(item.id, 2, 'Priya', '15000')

        assert ledger.get(item.id).quantity == 1
        assert len(ledger.sales) == 1
        assert sale.quantity == 2
        assert sale.selling_price == Decimal('15000')
        assert sale.cost_price == Decimal('12500')
        assert sale.margin == Decimal('2500')
        assert sale.type == 'Silk'
        assert sale.customer_name == 'Priya'
        assert sale.profit == Decimal('5000')

    def test_selling_more_than_stock_changes_nothing(self, ledger):
        item = add_silk(ledger, quantity=3)

        with pytest.raises(InsufficientStock) as excinfo:
            ledger.record_sale(item.id, 5, 'Priya', '15000')

        assert excinfo.value.available == 3
        assert ledger.get(item.id).quantity == 3
        assert ledger.sales == ()
        ledger.refresh()
        assert ledger.get(item.id).quantity == 3
        assert ledger.sales == ()

    def test_selling_whole_stock_leaves_zero(self, ledger):
        item = add_silk(ledger, quantity=3)
        ledger.record_sale(item.id, 1, 'A', '100')
        ledger.record_sale(item.id, 2, 'B', '100')
        assert ledger.get(item.id).quantity == 0
        with pytest.raises(InsufficientStock):
            ledger.record_sale(item.id, 1, 'C', '100')
        assert all(i.quantity >= 0 for i in ledger.items)

    def test_stale_snapshot_cannot_oversell(self, ledger):
        item = add_silk(ledger, quantity=3)
        # another session sells two behind this ledger's back
        db.session.get(Saree, item.id).quantity = 1
        db.session.commit()

        with pytest.raises(InsufficientStock):
            ledger.record_sale(item.id, 2, 'Priya', '15000')

        ledger.refresh()
        assert ledger.get(item.id).quantity == 1
        assert ledger.sales == ()

    @pytest.mark.parametrize('quantity, customer, price', [
        (0, 'Priya', '15000'),
        ('two', 'Priya', '15000'),
        (1, '  ', '15000'),
        (1, 'Priya', '0'),
        (1, 'Priya', '-5'),
        (1, 'Priya', None),
        (1, 'Priya', '0.004'),
        (1, 'Priya', '10.004'),
        ('--3', 'Priya', '15000'),
    ])
    def test_sale_rejects_bad_input(self, ledger, quantity, customer, price):
        item = add_silk(ledger)
        with pytest.raises(ValidationError):
            ledger.record_sale(item.id, quantity, customer, price)
        assert ledger.get(item.id).quantity == 3
        assert ledger.sales == ()

    def test_sale_of_unknown_saree(self, ledger):
        with pytest.raises(NotFound):
            ledger.record_sale(7, 1, 'Priya', '100')

    def test_margin_survives_catalog_price_change(self, ledger):
        item = add_silk(ledger, price='12500')
        sale = ledger.record_sale(item.id, 1, 'Priya', '15000')
        ledger.update(item.id, price='20000')
        assert ledger.get_sale(sale.id).margin == Decimal('2500')
        assert ledger.get_sale(sale.id).cost_price == Decimal('12500')

    def test_selected_image_is_kept(self, ledger):
        item = add_silk(ledger, images=['https://img.example/red.jpg'])
        sale = ledger.record_sale(item.id, 1, 'Priya', '15000', selected_image='https://img.example/red.jpg')
        assert sale.image_url == 'https://img.example/red.jpg'

    def test_store_failure_writes_nothing(self, ledger, monkeypatch):
        item = add_silk(ledger, quantity=3)

        def broken_commit():
            raise OperationalError('COMMIT', {}, Exception('disk I/O error'))

        monkeypatch.setattr(db.session, 'commit', broken_commit)
        with pytest.raises(ExternalStoreError):
            ledger.record_sale(item.id, 2, 'Priya', '15000')
        monkeypatch.undo()

        # local snapshot untouched
        assert ledger.get(item.id).quantity == 3
        assert ledger.sales == ()
        # and nothing half-written in the database
        assert db.session.get(Saree, item.id).quantity == 3
        assert db.session.query(Sale).count() == 0


class TestEditDeleteSale:

    def test_edit_recomputes_margin_from_cost(self, ledger):
        item = add_silk(ledger, price='12500', quantity=5)
        sale = ledger.record_sale(item.id, 2, 'Priya', '15000')

        edited = ledger.edit_sale(sale.id, selling_price='14000', quantity=3, customer_name='Priya S')

        assert edited.margin == Decimal('1500')
        assert edited.quantity == 3
        assert edited.customer_name == 'Priya S'
        # stock is not touched by edits
        assert ledger.get(item.id).quantity == 3

    def test_edit_without_known_cost_keeps_margin(self, ledger):
        item = add_silk(ledger)
        sale = ledger.record_sale(item.id, 1, 'Priya', '15000')
        row = db.session.get(Sale, sale.id)
        row.cost_price = None
        row.margin = Decimal('700')
        db.session.commit()
        ledger.refresh()

        edited = ledger.edit_sale(sale.id, selling_price='16000')
        assert edited.margin == Decimal('700')

    def test_edit_rejects_unknown_field(self, ledger):
        item = add_silk(ledger)
        sale = ledger.record_sale(item.id, 1, 'Priya', '15000')
        with pytest.raises(ValidationError):
            ledger.edit_sale(sale.id, margin='1')

    def test_delete_sale_does_not_restore_stock(self, ledger):
        item = add_silk(ledger, quantity=3)
        sale = ledger.record_sale(item.id, 2, 'Priya', '15000')

        ledger.delete_sale(sale.id)

        assert ledger.sales == ()
        assert ledger.get(item.id).quantity == 1

    def test_delete_unknown_sale(self, ledger):
        with pytest.raises(NotFound):
            ledger.delete_sale(123)


class TestRestock:

    def test_restock_adds_stock_and_investment(self, ledger):
        item = add_silk(ledger, price='1000', quantity=1)
        purchase = ledger.restock(item.id, 5, unit_cost='900')
        assert ledger.get(item.id).quantity == 6
        assert purchase.total_cost == Decimal('4500')
        assert len(ledger.purchases) == 2

    def test_restock_defaults_to_catalog_price(self, ledger):
        item = add_silk(ledger, price='1000', quantity=1)
        purchase = ledger.restock(item.id, 2)
        assert purchase.unit_cost == Decimal('1000')

    def test_restock_needs_positive_quantity(self, ledger):
        item = add_silk(ledger)
        with pytest.raises(ValidationError):
            ledger.restock(item.id, 0)
