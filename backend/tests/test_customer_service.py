# Overview: Pytest coverage for customer CRUD, duplicate phones and due-sorted listing.

import pytest

from backoffice.errors import ConflictError, InvalidInputError, NotFoundError
from backoffice.models import Customer
from backoffice.services import billing_service, customer_service
from conftest import make_customer, make_service


def _bill_for(owner, customer, due_cents):
    service = make_service(owner, price_cents=due_cents, name=f"Visit {due_cents}")
    return billing_service.create_bill(owner.id, customer.id, [{"line_type": "service", "item_ref": service.id}])


class TestCustomerCrud:

    def test_create_defaults_optional_fields(self, db_session, owner_a):
        customer = customer_service.create_customer(owner_a.id, {"name": "Asha", "phone": "9000000009"})
        assert customer.whatsapp == ""
        assert customer.address == ""

    def test_phone_unique_per_owner(self, db_session, owner_a, owner_b):
        make_customer(owner_a, phone="9000000001")

        with pytest.raises(ConflictError) as exc:
            customer_service.create_customer(owner_a.id, {"name": "Dup", "phone": "9000000001"})
        assert exc.value.message == customer_service.DUPLICATE_PHONE

        # The same phone is fine for a different engineer
        other = customer_service.create_customer(owner_b.id, {"name": "Other", "phone": "9000000001"})
        assert other.owner_id == owner_b.id

    def test_update_to_taken_phone(self, db_session, owner_a):
        make_customer(owner_a, name="First", phone="9000000001")
        second = make_customer(owner_a, name="Second", phone="9000000002")

        with pytest.raises(ConflictError):
            customer_service.update_customer(owner_a.id, second.id, {"phone": "9000000001"})

        # Re-saving a customer's own phone is not a conflict
        updated = customer_service.update_customer(owner_a.id, second.id, {"phone": "9000000002", "name": "Renamed"})
        assert updated.name == "Renamed"

    def test_delete_refused_while_bills_exist(self, db_session, owner_a):
        customer = make_customer(owner_a)
        _bill_for(owner_a, customer, 100)

        with pytest.raises(ConflictError) as exc:
            customer_service.delete_customer(owner_a.id, customer.id)
        assert exc.value.details == {"bill_count": 1}
        assert db_session.get(Customer, customer.id).is_deleted is False

    def test_delete_without_bills(self, db_session, owner_a):
        customer = make_customer(owner_a)
        customer_service.delete_customer(owner_a.id, customer.id)
        with pytest.raises(NotFoundError):
            customer_service.get_customer(owner_a.id, customer.id)

    def test_other_owner_is_not_found(self, db_session, owner_a, owner_b):
        customer = make_customer(owner_a)
        assert customer_service.find_customer(owner_b.id, customer.id) is None
        with pytest.raises(NotFoundError):
            customer_service.delete_customer(owner_b.id, customer.id)


class TestSearch:

    def test_matches_name_or_phone(self, db_session, owner_a, owner_b):
        make_customer(owner_a, name="Ravi Kumar", phone="9000000001")
        make_customer(owner_a, name="Meena", phone="9812345678")
        make_customer(owner_b, name="Ravi Other", phone="9000000003")

        assert [c.name for c in customer_service.search_customers(owner_a.id, "ravi")] == ["Ravi Kumar"]
        assert [c.name for c in customer_service.search_customers(owner_a.id, "98123")] == ["Meena"]

    def test_blank_query(self, db_session, owner_a):
        with pytest.raises(InvalidInputError):
            customer_service.search_customers(owner_a.id, "  ")


class TestListWithDue:

    def test_sorted_by_due_and_paginated(self, db_session, owner_a):
        low = make_customer(owner_a, name="Low", phone="1")
        high = make_customer(owner_a, name="High", phone="2")
        make_customer(owner_a, name="Zero", phone="3")
        _bill_for(owner_a, low, 50)
        _bill_for(owner_a, high, 300)
        _bill_for(owner_a, high, 20)

        first = customer_service.list_customers_with_due(owner_a.id, page=1, per_page=2)
        second = customer_service.list_customers_with_due(owner_a.id, page=2, per_page=2)

        assert [(c["name"], c["total_due_cents"]) for c in first["customers"]] == [("High", 320), ("Low", 50)]
        assert [(c["name"], c["total_due_cents"]) for c in second["customers"]] == [("Zero", 0)]
        assert first["pagination"] == {
            "current_page": 1,
            "per_page": 2,
            "total_pages": 2,
            "total_count": 3,
            "has_more": True,
        }
        assert second["pagination"]["has_more"] is False

    def test_summary_totals(self, db_session, owner_a):
        customer = make_customer(owner_a)
        bill = _bill_for(owner_a, customer, 200)
        billing_service.record_payment(owner_a.id, bill.id, 75)

        summary = customer_service.customer_summary(owner_a.id, customer.id)["summary"]

        assert summary == {
            "total_bills": 1,
            "total_billed_cents": 200,
            "total_received_cents": 75,
            "total_due_cents": 125,
        }


def test_sum_outstanding_due_ignores_other_customers(db_session, owner_a):
    ravi = make_customer(owner_a, name="Ravi", phone="1")
    meena = make_customer(owner_a, name="Meena", phone="2")
    _bill_for(owner_a, ravi, 120)
    _bill_for(owner_a, ravi, 30)
    _bill_for(owner_a, meena, 999)

    assert customer_service.sum_outstanding_due(owner_a.id, ravi.id) == 150
