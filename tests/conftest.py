"""
Shared fixtures: in-memory store, recording transport and manual timers.
"""

import pytest

from core.exceptions import TransportError
from models.document import ProjectDocument
from models.order import Order, OrderStatus


class FakeStore:
    """In-memory stand-in for StoreClient."""

    def __init__(self):
        self.orders = []
        self.documents = []

    def list_orders(self):
        return list(self.orders)

    def get_order(self, order_id):
        for order in self.orders:
            if order.id == order_id:
                return order
        return None

    def list_documents(self, project_id=None):
        if project_id is None:
            return list(self.documents)
        return [doc for doc in self.documents if doc.project_id == project_id]


class RecordingTransport:
    """Records every send; fails every send once fail_with is set."""

    def __init__(self):
        self.sent = []
        self.fail_with = None

    def send(self, service_id, template_id, variables, auth_key):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({
            "service_id": service_id,
            "template_id": template_id,
            "variables": dict(variables),
            "auth_key": auth_key,
        })

    @property
    def last(self):
        return self.sent[-1]["variables"]


class FakeTimer:
    """threading.Timer look-alike that only fires when told to."""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        # A cancelled threading.Timer never calls its function
        if not self.cancelled:
            self.function(*self.args, **self.kwargs)


class TimerRecorder:
    """timer_factory that keeps every FakeTimer it creates."""

    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = FakeTimer(interval, function, args, kwargs)
        self.timers.append(timer)
        return timer

    @property
    def last(self):
        return self.timers[-1]


# Fixtures

@pytest.fixture
def make_order():
    """Factory for orders with sensible defaults."""
    def _make(order_id="order-0001-aaaa", **overrides):
        fields = {
            "id": order_id,
            "customer_name": "Asha Rao",
            "customer_email": "asha@example.com",
            "project_id": "proj-1",
            "project_title": "Smart Attendance System",
            "price": 4999,
            "status": OrderStatus.PENDING,
            "created_at": "2026-10-19T09:30:00Z",
        }
        fields.update(overrides)
        return Order(**fields)
    return _make


@pytest.fixture
def make_document():
    """Factory for project documents with sensible defaults."""
    def _make(doc_id, review_stage="review_1", **overrides):
        fields = {
            "id": doc_id,
            "project_id": "proj-1",
            "name": f"Document {doc_id}",
            "url": f"https://files.example.com/{doc_id}.pdf",
            "document_category": "report",
            "review_stage": review_stage,
            "is_active": True,
        }
        fields.update(overrides)
        return ProjectDocument(**fields)
    return _make


@pytest.fixture
def fake_store():
    """Empty in-memory store."""
    return FakeStore()


@pytest.fixture
def recording_transport():
    """Transport that records sends instead of calling the provider."""
    return RecordingTransport()


@pytest.fixture
def failing_transport():
    """Transport whose every send fails like an expired quota."""
    transport = RecordingTransport()
    transport.fail_with = TransportError("Quota exceeded", status_code=429)
    return transport


@pytest.fixture
def timers():
    """Manual timer factory for StatusBoard."""
    return TimerRecorder()
