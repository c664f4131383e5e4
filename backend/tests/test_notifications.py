# Overview: Pytest coverage for device token storage, push delivery and work order reminders.

from datetime import date, datetime, timedelta

import pytest

from backoffice.errors import InvalidInputError
from backoffice.models import DeviceToken, WorkOrder
from backoffice.services import notification_service, work_order_service
from conftest import auth_headers, make_customer


REMINDER_DAY = date(2026, 7, 4)


def _work_order(owner, customer, schedule_time="09:15", note="Replace adapter"):
    return work_order_service.create_work_order(
        owner.id, customer.id, note=note, schedule_date=REMINDER_DAY, schedule_time=schedule_time, today=REMINDER_DAY
    )


class TestDeviceTokens:

    def test_register_is_idempotent(self, db_session, owner_a):
        _, created = notification_service.register_token(owner_a.id, "tok-1", "android")
        _, again = notification_service.register_token(owner_a.id, "tok-1", "android")

        assert created is True
        assert again is False
        assert db_session.query(DeviceToken).count() == 1

    def test_blank_token(self, db_session, owner_a):
        with pytest.raises(InvalidInputError):
            notification_service.register_token(owner_a.id, "  ")

    def test_remove_only_own_token(self, db_session, owner_a, owner_b):
        notification_service.register_token(owner_a.id, "shared")
        notification_service.register_token(owner_b.id, "shared")

        assert notification_service.remove_token(owner_a.id, "shared") == 1
        assert [t.user_id for t in db_session.query(DeviceToken)] == [owner_b.id]

    def test_purge_stale(self, db_session, owner_a):
        now = datetime(2026, 7, 1)
        stale, _ = notification_service.register_token(owner_a.id, "old")
        fresh, _ = notification_service.register_token(owner_a.id, "new")
        stale.last_seen_at = now - timedelta(days=61)
        fresh.last_seen_at = now - timedelta(days=5)
        db_session.commit()

        assert notification_service.purge_stale_device_tokens(60, now=now) == 1
        assert [t.token for t in db_session.query(DeviceToken)] == ["new"]


class TestSendNotification:

    def test_failed_tokens_are_removed(self, db_session, owner_a, push):
        notification_service.register_token(owner_a.id, "good")
        notification_service.register_token(owner_a.id, "dead")
        push.failing.add("dead")

        result = notification_service.send_notification(owner_a.id, "Hi", "There", {"id": 7})

        assert result == {"success": True, "success_count": 1, "failure_count": 1}
        assert push.sent[0]["tokens"] == ["good", "dead"]
        assert push.sent[0]["data"] == {"id": "7"}
        assert [t.token for t in db_session.query(DeviceToken)] == ["good"]

    def test_no_tokens(self, db_session, owner_a, push):
        result = notification_service.send_notification(owner_a.id, "Hi", "There")
        assert result["success"] is False
        assert push.sent == []


class TestWorkOrderReminders:

    def test_reminds_once_at_scheduled_minute(self, db_session, owner_a, push):
        customer = make_customer(owner_a, name="Ravi Kumar")
        notification_service.register_token(owner_a.id, "tok-1")
        work_order = _work_order(owner_a, customer)

        early = notification_service.send_work_order_reminders(now=datetime(2026, 7, 4, 9, 14))
        on_time = notification_service.send_work_order_reminders(now=datetime(2026, 7, 4, 9, 15, 40))
        repeat = notification_service.send_work_order_reminders(now=datetime(2026, 7, 4, 9, 15, 55))

        assert (early["notified"], on_time["notified"], repeat["notified"]) == (0, 1, 0)
        assert len(push.sent) == 1
        message = push.sent[0]
        assert message["title"] == "Work Order Reminder"
        assert message["body"] == "Ravi Kumar\nReplace adapter"
        assert message["data"] == {"work_order_id": str(work_order.id), "type": "work_order_reminder"}
        assert db_session.get(WorkOrder, work_order.id).reminder_sent is True

    def test_untimed_and_completed_are_skipped(self, db_session, owner_a, push):
        customer = make_customer(owner_a)
        notification_service.register_token(owner_a.id, "tok-1")
        _work_order(owner_a, customer, schedule_time=None)
        done = _work_order(owner_a, customer)
        work_order_service.mark_completed(owner_a.id, done.id)

        result = notification_service.send_work_order_reminders(now=datetime(2026, 7, 4, 9, 15))

        assert result["notified"] == 0
        assert push.sent == []

    def test_reschedule_rearms(self, db_session, owner_a, push):
        customer = make_customer(owner_a)
        notification_service.register_token(owner_a.id, "tok-1")
        work_order = _work_order(owner_a, customer)
        notification_service.send_work_order_reminders(now=datetime(2026, 7, 4, 9, 15))

        work_order_service.update_work_order(
            owner_a.id, work_order.id, {"schedule_time": "17:00"}, today=REMINDER_DAY
        )
        result = notification_service.send_work_order_reminders(now=datetime(2026, 7, 4, 17, 0))

        assert result["notified"] == 1
        assert len(push.sent) == 2


def test_register_token_route(client, db_session, owner_a):
    response = client.post(
        "/api/notifications/register-token",
        json={"token": "tok-web", "device": "web"},
        headers=auth_headers(owner_a),
    )
    assert response.status_code == 200
    assert response.get_json()["created"] is True

    response = client.post("/api/notifications/remove-token", json={"token": "tok-web"}, headers=auth_headers(owner_a))
    assert response.status_code == 200
    assert db_session.query(DeviceToken).count() == 0
