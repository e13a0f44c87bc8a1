"""
Unit tests for the delivery orchestrator and the status board.

Timers are replaced by manual FakeTimers so the 3s/5s resets can be fired
on demand instead of slept through.
"""

import threading
from datetime import datetime
from functools import partial
from unittest.mock import Mock

import pytest

from core.exceptions import (
    ConfigurationError,
    DeliveryInProgressError,
    NoStagesSelectedError,
    OrderNotFoundError,
    StorageError,
    ValidationError,
)
from models.delivery import SendStatus
from modules.email_config import check_email_configuration
from services.delivery_service import (
    ERROR_DISPLAY_SECONDS,
    SUCCESS_DISPLAY_SECONDS,
    DeliveryService,
    StatusBoard,
)
from services.email_service import EmailService, EmailSettings


# Fixtures

@pytest.fixture
def email_settings():
    """Mutable app-config style mapping; the readiness check reads it live."""
    return {
        "EMAIL_PUBLIC_KEY": "public-test-key",
        "EMAIL_SERVICE_ID": "service_test",
        "SENDER_EMAIL": "noreply@example.com",
        "EMAIL_TEMPLATE_CONTACT": "contact",
        "EMAIL_TEMPLATE_ORDER": "purchase_confirmation",
        "EMAIL_TEMPLATE_DOCUMENT_DELIVERY": "document_delivery",
        "OPERATOR_EMAIL": "operator@example.com",
    }


@pytest.fixture
def board(timers):
    return StatusBoard(timer_factory=timers)


def build_service(store, transport, email_settings, board):
    email_service = EmailService(
        transport,
        EmailSettings.from_config(email_settings),
        clock=lambda: datetime(2026, 10, 19, 12, 0, 0),
    )
    return DeliveryService(
        store=store,
        email_service=email_service,
        config_check=partial(check_email_configuration, email_settings),
        status_board=board,
    )


@pytest.fixture
def service(fake_store, recording_transport, email_settings, board):
    return build_service(fake_store, recording_transport, email_settings, board)


@pytest.fixture
def order(make_order, make_document, fake_store):
    """One order whose project has two active and one inactive review_1 document."""
    order = make_order()
    fake_store.orders.append(order)
    fake_store.documents.extend([
        make_document("d1", "review_1"),
        make_document("d2", "review_1"),
        make_document("d3", "review_1", is_active=False),
        make_document("d4", "review_3"),
    ])
    return order


# Tests for StatusBoard

class TestStatusBoard:
    """Per-order transient status and its timed reset."""

    def test_idle_order_has_no_entry(self, board):
        assert board.get("o1") is None
        assert board.snapshot() == {}

    def test_begin_marks_sending(self, board):
        entry = board.begin("o1")

        assert entry.status == SendStatus.SENDING
        assert board.get("o1") is entry

    def test_begin_twice_rejected(self, board):
        board.begin("o1")

        with pytest.raises(DeliveryInProgressError):
            board.begin("o1")

    def test_success_resets_after_window(self, board, timers):
        board.begin("o1")
        board.mark_success("o1")

        timer = timers.last
        assert timer.interval == SUCCESS_DISPLAY_SECONDS == 3.0
        assert timer.started and timer.daemon
        assert board.get("o1").status == SendStatus.SUCCESS

        timer.fire()

        assert board.get("o1") is None

    def test_error_resets_after_window(self, board, timers):
        board.begin("o1")
        board.mark_error("o1", "Quota exceeded")

        assert timers.last.interval == ERROR_DISPLAY_SECONDS == 5.0
        entry = board.get("o1")
        assert entry.status == SendStatus.ERROR
        assert entry.error_message == "Quota exceeded"

        timers.last.fire()

        assert board.get("o1") is None

    def test_resend_cancels_pending_reset(self, board, timers):
        board.begin("o1")
        board.mark_error("o1", "Quota exceeded")
        stale = timers.last

        board.begin("o1")

        assert stale.cancelled
        stale.fire()
        assert board.get("o1").status == SendStatus.SENDING

    def test_stale_timer_never_removes_newer_entry(self, board, timers):
        board.begin("o1")
        board.mark_error("o1", "first failure")
        stale = timers.last
        board.begin("o1")
        board.mark_success("o1")

        # Simulate a timer that had already started running when cancelled
        stale.function(*stale.args)

        assert board.get("o1").status == SendStatus.SUCCESS

    def test_clear_cancels_everything(self, board, timers):
        board.begin("o1")
        board.mark_success("o1")
        board.begin("o2")

        assert board.clear() == 2
        assert timers.last.cancelled
        assert board.snapshot() == {}

    def test_orders_are_independent(self, board, timers):
        board.begin("o1")
        board.begin("o2")
        board.mark_success("o1")

        timers.last.fire()

        assert board.get("o1") is None
        assert board.get("o2").status == SendStatus.SENDING


# Tests for stage validation

class TestValidateStages:

    def test_canonical_order(self):
        assert DeliveryService.validate_stages(["review_3", "review_1"]) == ["review_1", "review_3"]

    def test_empty(self):
        with pytest.raises(NoStagesSelectedError) as exc_info:
            DeliveryService.validate_stages([])
        assert exc_info.value.message == "Please select at least one review stage"

    def test_unknown(self):
        with pytest.raises(ValidationError) as exc_info:
            DeliveryService.validate_stages(["review_1", "review_9"])
        assert "review_9" in exc_info.value.message


# Tests for single-order delivery

class TestDeliver:
    """Synchronous single-order send."""

    def test_success(self, service, order, recording_transport, timers):
        entry = service.deliver(order, ["review_1"])

        assert entry.status == SendStatus.SUCCESS
        assert len(recording_transport.sent) == 1

        variables = recording_transport.last
        assert variables["documents_count"] == 2
        assert variables["review_stages"] == "Review 1"
        assert variables["customer_email"] == "asha@example.com"
        assert variables["access_expires"] == "Never (lifetime access)"
        assert "Document d1" in variables["documents_text"]
        assert "Document d3" not in variables["documents_text"]

        assert timers.last.interval == 3.0
        timers.last.fire()
        assert service.get_status(order.id) is None

    def test_partial_selection_label(self, service, order, recording_transport):
        service.deliver(order, ["review_3", "review_1"])
        assert recording_transport.last["review_stages"] == "Review 1, Review 3"
        assert recording_transport.last["documents_count"] == 3

    def test_all_stages_label(self, service, order, recording_transport):
        service.deliver(order, ["review_1", "review_2", "review_3"])
        assert recording_transport.last["review_stages"] == "All Review Stages"

    def test_sending_while_in_flight(self, fake_store, email_settings, board, order):
        seen = []
        transport = Mock()
        transport.send.side_effect = lambda **kwargs: seen.append(board.get(order.id).status)
        service = build_service(fake_store, transport, email_settings, board)

        service.deliver(order, ["review_1"])

        assert seen == [SendStatus.SENDING]
        assert board.get(order.id).status == SendStatus.SUCCESS

    def test_no_eligible_documents(self, service, order, recording_transport, timers):
        entry = service.deliver(order, ["review_2"])

        assert entry.status == SendStatus.ERROR
        assert entry.error_message == "No documents found for selected review stages"
        assert recording_transport.sent == []
        assert timers.last.interval == 5.0

    def test_transport_failure(self, fake_store, failing_transport, email_settings, board, order):
        service = build_service(fake_store, failing_transport, email_settings, board)

        entry = service.deliver(order, ["review_1"])

        assert entry.status == SendStatus.ERROR
        assert entry.error_message == (
            "Failed to send document delivery email. Please try again later."
        )

    def test_store_failure(self, service, order, fake_store):
        fake_store.list_documents = Mock(side_effect=StorageError("Could not reach the store"))

        entry = service.deliver(order, ["review_1"])

        assert entry.status == SendStatus.ERROR
        assert entry.error_message == "Could not reach the store"

    def test_unexpected_failure(self, service, order, fake_store):
        fake_store.list_documents = Mock(side_effect=RuntimeError("boom"))

        entry = service.deliver(order, ["review_1"])

        assert entry.status == SendStatus.ERROR
        assert entry.error_message == "boom"

    def test_no_stages_leaves_no_status(self, service, order, recording_transport):
        with pytest.raises(NoStagesSelectedError):
            service.deliver(order, [])

        assert service.get_status(order.id) is None
        assert recording_transport.sent == []

    def test_unconfigured_leaves_no_status(self, service, order, recording_transport, email_settings):
        email_settings["EMAIL_PUBLIC_KEY"] = ""

        with pytest.raises(ConfigurationError) as exc_info:
            service.deliver(order, ["review_1"])

        assert exc_info.value.issues == ["EMAIL_PUBLIC_KEY is not set"]
        assert service.get_status(order.id) is None
        assert recording_transport.sent == []

    def test_invalid_customer_address_never_sending(self, service, make_order, recording_transport, board):
        order = make_order(customer_email="not-an-address")
        board.begin = Mock(wraps=board.begin)

        with pytest.raises(ValidationError) as exc_info:
            service.deliver(order, ["review_1"])

        assert exc_info.value.field == "customer_email"
        board.begin.assert_not_called()
        assert service.get_status(order.id) is None
        assert recording_transport.sent == []

    def test_reentry_rejected(self, service, order, recording_transport):
        service.status_board.begin(order.id)

        with pytest.raises(DeliveryInProgressError):
            service.deliver(order, ["review_1"])

        assert recording_transport.sent == []

    def test_resend_after_success_allowed(self, service, order, recording_transport):
        service.deliver(order, ["review_1"])
        service.deliver(order, ["review_1"])

        assert len(recording_transport.sent) == 2


class TestStartDelivery:
    """Threaded single-order send."""

    def test_runs_in_worker(self, service, order, recording_transport):
        request = service.start_delivery(order.id, ["review_1"])

        assert request.order_id == order.id
        assert request.review_stages == frozenset({"review_1"})

        assert service.wait(timeout_per_thread=5.0)
        assert service.get_status(order.id).status == SendStatus.SUCCESS
        assert len(recording_transport.sent) == 1

    def test_unknown_order(self, service, order):
        with pytest.raises(OrderNotFoundError):
            service.start_delivery("missing", ["review_1"])
        assert service.statuses() == {}

    def test_invalid_customer_address(self, service, make_order, fake_store, recording_transport):
        fake_store.orders.append(make_order("bad-addr", customer_email="asha@"))

        with pytest.raises(ValidationError) as exc_info:
            service.start_delivery("bad-addr", ["review_1"])

        assert exc_info.value.field == "customer_email"
        assert service.get_status("bad-addr") is None
        assert service.wait(timeout_per_thread=5.0)
        assert recording_transport.sent == []

    def test_checks_run_before_lookup(self, service, fake_store):
        fake_store.get_order = Mock()

        with pytest.raises(NoStagesSelectedError):
            service.start_delivery("any", [])

        fake_store.get_order.assert_not_called()

    def test_shutdown_clears_board(self, service, order, timers):
        service.start_delivery(order.id, ["review_1"])

        service.shutdown(timeout_per_thread=5.0)

        assert service.statuses() == {}
        assert timers.last.cancelled


# Tests for batch delivery

@pytest.fixture
def batch_orders(make_order, make_document, fake_store):
    """Three orders; the middle one's project has no documents."""
    orders = [
        make_order("o1", project_id="p1", customer_email="one@example.com"),
        make_order("o2", project_id="p2", customer_email="two@example.com"),
        make_order("o3", project_id="p3", customer_email="three@example.com"),
    ]
    fake_store.orders.extend(orders)
    fake_store.documents.extend([
        make_document("p1-doc", "review_2", project_id="p1"),
        make_document("p3-doc", "review_3", project_id="p3"),
    ])
    return orders


class TestBatch:
    """Sequential batch over every review stage."""

    def test_middle_failure_does_not_halt(self, service, batch_orders, recording_transport):
        batch = service.run_batch(["o1", "o2", "o3"])

        assert batch.finished
        assert batch.succeeded == ["o1", "o3"]
        assert batch.failed == {"o2": "No documents found for selected review stages"}

        recipients = [call["variables"]["to_email"] for call in recording_transport.sent]
        assert recipients == ["one@example.com", "three@example.com"]

        assert service.get_status("o1").status == SendStatus.SUCCESS
        assert service.get_status("o2").status == SendStatus.ERROR
        assert service.get_status("o3").status == SendStatus.SUCCESS

    def test_sends_all_stages(self, service, batch_orders, recording_transport):
        service.run_batch(["o1"])
        assert recording_transport.last["review_stages"] == "All Review Stages"

    def test_unknown_orders_skipped(self, service, batch_orders):
        batch = service.run_batch(["ghost", "o1"])

        assert batch.skipped == ["ghost"]
        assert batch.succeeded == ["o1"]

    def test_duplicate_ids_sent_once(self, service, batch_orders, recording_transport):
        batch = service.run_batch(["o1", "o1"])

        assert batch.order_ids == ["o1"]
        assert len(recording_transport.sent) == 1

    def test_unconfigured_gates_whole_batch(self, service, batch_orders, email_settings, recording_transport):
        email_settings["SENDER_EMAIL"] = "not-an-address"

        with pytest.raises(ConfigurationError):
            service.run_batch(["o1", "o2", "o3"])

        assert service.statuses() == {}
        assert service.current_batch is None
        assert recording_transport.sent == []

    def test_invalid_address_fails_without_sending(self, service, batch_orders, make_order, fake_store, recording_transport):
        fake_store.orders.append(make_order("o4", project_id="p1", customer_email="nobody"))

        batch = service.run_batch(["o4", "o1"])

        assert batch.failed == {"o4": "Invalid recipient email address"}
        assert batch.succeeded == ["o1"]
        assert service.get_status("o4") is None
        assert len(recording_transport.sent) == 1

    def test_order_already_sending_fails_in_batch(self, service, batch_orders):
        service.status_board.begin("o1")

        batch = service.run_batch(["o1", "o3"])

        assert "o1" in batch.failed
        assert batch.succeeded == ["o3"]

    def test_threaded_batch(self, service, batch_orders):
        batch = service.start_batch(["o1", "o2", "o3"])

        assert service.wait(timeout_per_thread=5.0)
        assert batch.finished
        assert not service.is_batch_running
        assert service.current_batch is batch
        assert batch.succeeded == ["o1", "o3"]

    def test_second_batch_rejected_while_running(self, fake_store, email_settings, board, batch_orders):
        release = threading.Event()
        started = threading.Event()

        def blocking_send(**kwargs):
            started.set()
            release.wait(timeout=5.0)

        transport = Mock()
        transport.send.side_effect = blocking_send
        service = build_service(fake_store, transport, email_settings, board)

        service.start_batch(["o1"])
        assert started.wait(timeout=5.0)

        try:
            assert service.is_batch_running
            with pytest.raises(DeliveryInProgressError):
                service.start_batch(["o3"])
        finally:
            release.set()
            service.wait(timeout_per_thread=5.0)

        assert not service.is_batch_running
        service.run_batch(["o3"])
