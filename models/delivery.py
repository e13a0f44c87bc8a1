"""
Delivery data models.

These models describe a document delivery as it moves through the
orchestrator: the request assembled before sending, the transient per-order
status shown in the admin listing, and the outcome of a batch run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, FrozenSet, Iterable, List, Optional

from .order import Order


# Shown to the operator next to every failed send
OPERATOR_CHECKLIST = (
    "Email provider API key is valid",
    "Sender email is verified with the provider",
    "Internet connection is stable",
)


class SendStatus(Enum):
    """
    Transient send status of one order.

    Lifecycle:
        (absent) -> SENDING -> (SUCCESS | ERROR) -> (absent)

    "Absent" is modelled as the lack of an entry, not as a member.
    """

    SENDING = "sending"
    """Documents are being resolved and emailed."""

    SUCCESS = "success"
    """Email accepted by the provider."""

    ERROR = "error"
    """Send failed; the entry carries the error message."""


@dataclass(frozen=True)
class StatusEntry:
    """
    One order's entry on the status board.

    A new entry replaces the previous one on every transition.
    """

    order_id: str
    status: SendStatus
    error_message: str = ""
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def sending(cls, order_id: str) -> "StatusEntry":
        return cls(order_id=order_id, status=SendStatus.SENDING)

    @classmethod
    def success(cls, order_id: str) -> "StatusEntry":
        return cls(order_id=order_id, status=SendStatus.SUCCESS)

    @classmethod
    def error(cls, order_id: str, error_message: str) -> "StatusEntry":
        return cls(order_id=order_id, status=SendStatus.ERROR, error_message=error_message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for status polling."""
        data: Dict[str, Any] = {
            "order_id": self.order_id,
            "status": self.status.value,
            "updated_at": self.updated_at.isoformat(),
        }
        if self.status == SendStatus.ERROR:
            data["error"] = self.error_message
            data["checklist"] = list(OPERATOR_CHECKLIST)
        return data


@dataclass(frozen=True)
class DeliveryRequest:
    """
    Immutable (order, stage selection) pair handed to a worker thread.

    Never persisted.
    """

    order: Order
    review_stages: FrozenSet[str]

    @classmethod
    def create(cls, order: Order, review_stages: Iterable[str]) -> "DeliveryRequest":
        return cls(order=order, review_stages=frozenset(review_stages))

    @property
    def order_id(self) -> str:
        return self.order.id


@dataclass(frozen=True)
class DocumentDeliveryOptions:
    """
    Optional fields of a document-delivery email.

    Every field left as None is filled in at send time:
        documents_count -> number of documents in the email
        review_stages   -> "All Review Stages"
        current_date    -> date of the send
        access_expires  -> "Never (lifetime access)"
        support_email   -> operator address
    """

    review_stages: Optional[str] = None
    documents_count: Optional[int] = None
    current_date: Optional[str] = None
    access_expires: Optional[str] = None
    support_email: Optional[str] = None


@dataclass
class BatchResult:
    """
    Outcome of a batch run, in the order the ids were processed.

    Populated by the batch thread; read by the status endpoint once finished.
    """

    order_ids: List[str]
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)
    finished: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_ids": list(self.order_ids),
            "succeeded": list(self.succeeded),
            "failed": dict(self.failed),
            "skipped": list(self.skipped),
            "finished": self.finished,
        }
