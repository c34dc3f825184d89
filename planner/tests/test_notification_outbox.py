"""
Notification outbox: delivery happens off the caller's thread and failures
never reach the caller.
"""
from __future__ import annotations

import threading

from planner.notifications import messages
from planner.notifications.outbox import NotificationOutbox
from planner.notifications.ports import EmailMessage


class _Sender:
    def __init__(self, fail_for: str = ""):
        self.sent = []
        self.fail_for = fail_for
        self.thread_names = set()

    def send(self, *, to: str, subject: str, body: str) -> None:
        self.thread_names.add(threading.current_thread().name)
        if to == self.fail_for:
            raise ConnectionError("smtp down")
        self.sent.append((to, subject))


def test_messages_are_delivered_by_the_worker():
    sender = _Sender()
    outbox = NotificationOutbox(sender)
    outbox.emit(EmailMessage(to="a@x.io", subject="One", body="b"))
    outbox.emit(EmailMessage(to="b@x.io", subject="Two", body="b"))

    assert outbox.drain(timeout=5)
    outbox.close()

    assert sender.sent == [("a@x.io", "One"), ("b@x.io", "Two")]
    assert sender.thread_names == {"notification-outbox"}
    assert outbox.sent == 2


def test_delivery_failure_is_counted_not_raised():
    sender = _Sender(fail_for="bad@x.io")
    outbox = NotificationOutbox(sender)
    outbox.emit(EmailMessage(to="bad@x.io", subject="Boom", body="b"))
    outbox.emit(EmailMessage(to="ok@x.io", subject="Fine", body="b"))

    assert outbox.drain(timeout=5)
    outbox.close()

    assert outbox.failed == 1
    assert sender.sent == [("ok@x.io", "Fine")]


def test_full_queue_drops_instead_of_blocking():
    outbox = NotificationOutbox(_Sender(), max_size=1, autostart=False)
    outbox.emit(EmailMessage(to="a@x.io", subject="kept", body=""))
    outbox.emit(EmailMessage(to="b@x.io", subject="dropped", body=""))
    assert outbox.dropped == 1


def test_emit_after_close_is_dropped_and_drain_returns():
    sender = _Sender()
    outbox = NotificationOutbox(sender)
    outbox.emit(EmailMessage(to="a@x.io", subject="Before", body=""))
    outbox.close()

    outbox.emit(EmailMessage(to="b@x.io", subject="After", body=""))
    outbox.start()

    assert outbox.drain() is True
    assert outbox.dropped == 1
    assert sender.sent == [("a@x.io", "Before")]


def test_drain_times_out_without_a_worker():
    outbox = NotificationOutbox(_Sender(), autostart=False)
    outbox.emit(EmailMessage(to="a@x.io", subject="Queued", body=""))
    threads_before = threading.active_count()

    assert outbox.drain(timeout=0.05) is False
    assert threading.active_count() <= threads_before


def test_drain_after_close_without_worker_does_not_block():
    outbox = NotificationOutbox(_Sender(), autostart=False)
    outbox.emit(EmailMessage(to="a@x.io", subject="Stuck", body=""))
    outbox.close()

    assert outbox.drain() is False


def test_message_without_recipient_is_dropped():
    sender = _Sender()
    outbox = NotificationOutbox(sender)
    outbox.emit(EmailMessage(to="", subject="nobody", body=""))
    assert outbox.drain(timeout=5)
    outbox.close()
    assert outbox.dropped == 1
    assert sender.sent == []


def test_price_message_carries_currency_and_amount():
    msg = messages.assignment_priced_student(student_email="ama@ug.edu.gh", student_first_name="Ama", title="Essay", price=75.5, currency="GHS")
    assert msg.to == "ama@ug.edu.gh"
    assert "GHS 75.50" in msg.body
