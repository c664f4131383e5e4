# Overview: Pytest coverage for catalog items, serial registration and stock primitives.

import pytest

from backoffice.errors import ConflictError, InsufficientStockError, InvalidInputError, NotFoundError
from backoffice.models import Item, ItemSerial, StockReceipt
from backoffice.services import catalog_service
from conftest import make_generic_item, make_serialized_item


ITEM = {
    "item_type": "generic",
    "name": "Patch cord",
    "unit": "pcs",
    "mrp_cents": 15000,
    "purchase_price_cents": 9000,
    "sale_price_cents": 12000,
}


class TestItems:

    def test_new_item_starts_empty(self, db_session, owner_a):
        item = catalog_service.create_item(owner_a.id, dict(ITEM))
        assert item.stock_qty == 0
        assert item.warranty == "no_warranty"
        assert item.available_stock == 0

    def test_soft_deleted_item_disappears(self, db_session, owner_a):
        item = catalog_service.create_item(owner_a.id, dict(ITEM))
        catalog_service.delete_item(owner_a.id, item.id)

        assert db_session.get(Item, item.id).is_deleted is True
        assert catalog_service.list_items(owner_a.id) == []
        with pytest.raises(NotFoundError):
            catalog_service.get_item(owner_a.id, item.id)

    def test_other_owner_cannot_update(self, db_session, owner_a, owner_b):
        item = catalog_service.create_item(owner_a.id, dict(ITEM))
        with pytest.raises(NotFoundError):
            catalog_service.update_item(owner_b.id, item.id, {"name": "Hijacked"})
        assert db_session.get(Item, item.id).name == "Patch cord"


class TestAddStock:

    def test_generic_increments_and_records_receipt(self, db_session, owner_a):
        item = make_generic_item(owner_a, stock_qty=2)

        item = catalog_service.add_stock(owner_a.id, item.id, qty=5)

        assert item.stock_qty == 7
        assert [r.qty for r in db_session.query(StockReceipt).filter_by(item_id=item.id)] == [5]

    @pytest.mark.parametrize("qty", [None, 0, -1, "1.5"])
    def test_generic_rejects_bad_qty(self, db_session, owner_a, qty):
        item = make_generic_item(owner_a, stock_qty=2)
        with pytest.raises(InvalidInputError):
            catalog_service.add_stock(owner_a.id, item.id, qty=qty)

    def test_serials_strip_blanks(self, db_session, owner_a):
        item = make_serialized_item(owner_a)

        item = catalog_service.add_stock(owner_a.id, item.id, serial_numbers=[" SN-1 ", "", "SN-2"])

        assert sorted(s.serial_no for s in item.serials) == ["SN-1", "SN-2"]
        assert item.available_stock == 2

    def test_duplicate_serials_in_batch(self, db_session, owner_a):
        item = make_serialized_item(owner_a)
        with pytest.raises(InvalidInputError) as exc:
            catalog_service.add_stock(owner_a.id, item.id, serial_numbers=["SN-1", "SN-1"])
        assert exc.value.details["duplicates"] == ["SN-1"]

    def test_serial_unique_across_owners(self, db_session, owner_a, owner_b):
        make_serialized_item(owner_a, serials=["SN-1"], name="Router A")
        other = make_serialized_item(owner_b, name="Router B")

        with pytest.raises(ConflictError) as exc:
            catalog_service.add_stock(owner_b.id, other.id, serial_numbers=["SN-1", "SN-9"])

        assert "SN-1" in exc.value.message
        assert db_session.query(ItemSerial).filter_by(serial_no="SN-9").count() == 0

    def test_empty_serial_batch(self, db_session, owner_a):
        item = make_serialized_item(owner_a)
        with pytest.raises(InvalidInputError):
            catalog_service.add_stock(owner_a.id, item.id, serial_numbers=["  "])


class TestStockPrimitives:

    def test_decrement_is_conditional(self, db_session, owner_a):
        item = make_generic_item(owner_a, stock_qty=3)

        catalog_service.decrement_stock(owner_a.id, item.id, 3)
        with pytest.raises(InsufficientStockError) as exc:
            catalog_service.decrement_stock(owner_a.id, item.id, 1)
        db_session.commit()

        assert exc.value.available == 0
        assert exc.value.requested == 1
        db_session.expire_all()
        assert db_session.get(Item, item.id).stock_qty == 0

    def test_mark_serial_sold_once(self, db_session, owner_a):
        item = make_serialized_item(owner_a, serials=["SN-1"])

        catalog_service.mark_serial_sold(item.id, "SN-1")
        with pytest.raises(ConflictError):
            catalog_service.mark_serial_sold(item.id, "SN-1")

    def test_total_stock_counts_generic_and_available_serials(self, db_session, owner_a, owner_b):
        make_generic_item(owner_a, stock_qty=4)
        router = make_serialized_item(owner_a, serials=["SN-1", "SN-2", "SN-3"])
        make_generic_item(owner_b, stock_qty=50)
        catalog_service.mark_serial_sold(router.id, "SN-3")
        db_session.commit()

        assert catalog_service.total_stock(owner_a.id) == 6


def test_check_serial(db_session, owner_a):
    item = make_serialized_item(owner_a, serials=["SN-1"], name="Router")

    assert catalog_service.check_serial("SN-1") == {
        "exists": True,
        "message": "Serial number already exists in stock",
        "item_name": "Router",
        "item_id": item.id,
    }
    assert catalog_service.check_serial("SN-2")["exists"] is False
    with pytest.raises(InvalidInputError):
        catalog_service.check_serial(" ")
