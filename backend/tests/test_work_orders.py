# Overview: Pytest coverage for work order scheduling, completion and bill linking.

from datetime import date, timedelta

import pytest

from backoffice.errors import ConflictError, InvalidInputError, NotFoundError
from backoffice.models import WorkOrder
from backoffice.services import billing_service, work_order_service
from backoffice.time_utils import utcnow
from conftest import make_customer, make_service


TODAY = date(2026, 6, 1)


def _create(owner, customer, note="Install router", schedule_date=TODAY, schedule_time=None):
    return work_order_service.create_work_order(
        owner.id, customer.id, note=note, schedule_date=schedule_date, schedule_time=schedule_time, today=TODAY
    )


class TestCreate:

    def test_numbered_and_pending(self, db_session, owner_a):
        customer = make_customer(owner_a)
        work_order = _create(owner_a, customer)

        assert work_order.status == "pending"
        assert work_order.work_order_number == f"WO-{utcnow():%y%m}-0001"
        assert work_order.reminder_sent is False
        assert work_order.has_scheduled_time is False

    def test_past_date_rejected(self, db_session, owner_a):
        customer = make_customer(owner_a)
        with pytest.raises(InvalidInputError):
            _create(owner_a, customer, schedule_date=TODAY - timedelta(days=1))

    def test_note_required(self, db_session, owner_a):
        customer = make_customer(owner_a)
        with pytest.raises(InvalidInputError):
            _create(owner_a, customer, note="   ")

    def test_other_owners_customer(self, db_session, owner_a, owner_b):
        customer = make_customer(owner_a)
        with pytest.raises(NotFoundError):
            _create(owner_b, customer)
        assert db_session.query(WorkOrder).count() == 0


class TestListing:

    def test_pending_ordered_by_schedule(self, db_session, owner_a):
        customer = make_customer(owner_a)
        late = _create(owner_a, customer, note="late", schedule_date=TODAY + timedelta(days=2))
        timed = _create(owner_a, customer, note="timed", schedule_time="09:30")
        untimed = _create(owner_a, customer, note="untimed")
        done = _create(owner_a, customer, note="done")
        work_order_service.mark_completed(owner_a.id, done.id)

        assert [w.id for w in work_order_service.list_pending(owner_a.id)] == [untimed.id, timed.id, late.id]
        assert work_order_service.count_pending(owner_a.id) == 3
        assert [w.id for w in work_order_service.list_completed(owner_a.id)] == [done.id]


class TestUpdate:

    def test_reschedule_rearms_reminder(self, db_session, owner_a):
        customer = make_customer(owner_a)
        work_order = _create(owner_a, customer, schedule_time="10:00")
        work_order.reminder_sent = True
        db_session.commit()

        updated = work_order_service.update_work_order(
            owner_a.id, work_order.id, {"schedule_time": "11:00"}, today=TODAY
        )

        assert updated.schedule_time == "11:00"
        assert updated.reminder_sent is False

    def test_note_edit_keeps_reminder_state(self, db_session, owner_a):
        customer = make_customer(owner_a)
        work_order = _create(owner_a, customer, schedule_time="10:00")
        work_order.reminder_sent = True
        db_session.commit()

        updated = work_order_service.update_work_order(owner_a.id, work_order.id, {"note": "Bring cable"}, today=TODAY)

        assert updated.note == "Bring cable"
        assert updated.reminder_sent is True

    def test_completed_cannot_be_edited(self, db_session, owner_a):
        customer = make_customer(owner_a)
        work_order = _create(owner_a, customer)
        work_order_service.mark_completed(owner_a.id, work_order.id)

        with pytest.raises(ConflictError):
            work_order_service.update_work_order(owner_a.id, work_order.id, {"note": "x"}, today=TODAY)


class TestComplete:

    def test_complete_twice(self, db_session, owner_a):
        customer = make_customer(owner_a)
        work_order = _create(owner_a, customer)

        completed = work_order_service.mark_completed(owner_a.id, work_order.id)
        assert completed.status == "completed"
        assert completed.completed_at is not None

        with pytest.raises(InvalidInputError):
            work_order_service.mark_completed(owner_a.id, work_order.id)

    def test_other_owner_cannot_complete(self, db_session, owner_a, owner_b):
        customer = make_customer(owner_a)
        work_order = _create(owner_a, customer)
        with pytest.raises(NotFoundError):
            work_order_service.mark_completed(owner_b.id, work_order.id)


class TestBillLinking:

    def test_link_existing_bill(self, db_session, owner_a):
        customer = make_customer(owner_a)
        service = make_service(owner_a)
        work_order = _create(owner_a, customer)
        bill = billing_service.create_bill(owner_a.id, customer.id, [{"line_type": "service", "item_ref": service.id}])

        linked = work_order_service.link_bill(owner_a.id, work_order.id, bill.id)

        assert linked.status == "completed"
        assert linked.bill_id == bill.id
        assert bill.work_order_id == work_order.id

    def test_link_requires_same_customer(self, db_session, owner_a):
        customer = make_customer(owner_a, phone="1")
        other = make_customer(owner_a, name="Other", phone="2")
        service = make_service(owner_a)
        work_order = _create(owner_a, customer)
        bill = billing_service.create_bill(owner_a.id, other.id, [{"line_type": "service", "item_ref": service.id}])

        with pytest.raises(InvalidInputError):
            work_order_service.link_bill(owner_a.id, work_order.id, bill.id)
        assert db_session.get(WorkOrder, work_order.id).status == "pending"

    def test_linked_work_order_cannot_be_deleted(self, db_session, owner_a):
        customer = make_customer(owner_a)
        service = make_service(owner_a)
        work_order = _create(owner_a, customer)
        billing_service.create_bill(
            owner_a.id, customer.id, [{"line_type": "service", "item_ref": service.id}], work_order_id=work_order.id
        )

        with pytest.raises(ConflictError):
            work_order_service.delete_work_order(owner_a.id, work_order.id)

    def test_unlinked_work_order_is_hard_deleted(self, db_session, owner_a):
        customer = make_customer(owner_a)
        work_order = _create(owner_a, customer)
        work_order_service.delete_work_order(owner_a.id, work_order.id)
        assert db_session.get(WorkOrder, work_order.id) is None
