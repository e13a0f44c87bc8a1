"""
Order data models.

An order records a customer's purchase of a project. Orders are owned by the
store and are read-only here; the delivery workflow only looks them up and
passes them along.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, Union


class OrderStatus(Enum):
    """
    Lifecycle status of an order.

    Lifecycle:
        PENDING -> PROCESSING -> (COMPLETED | CANCELLED)
    """

    PENDING = "pending"
    """Order placed, documents not yet delivered."""

    PROCESSING = "processing"
    """Order is being worked on."""

    COMPLETED = "completed"
    """Order fulfilled."""

    CANCELLED = "cancelled"
    """Order cancelled."""

    @classmethod
    def values(cls) -> list:
        """Filter options in display order."""
        return [status.value for status in cls]


@dataclass(frozen=True)
class Order:
    """
    A customer's purchase of a project.

    This is a FROZEN dataclass - orders are read from the store and handed to
    worker threads as-is, so they must never be modified after loading.
    """

    id: str
    """Order identifier."""

    customer_name: str
    """Customer display name."""

    customer_email: str
    """Address documents are delivered to."""

    project_id: str
    """Project whose documents this order unlocks."""

    project_title: str
    """Project title shown in emails."""

    price: Union[int, float] = 0
    """Price paid, in rupees."""

    status: OrderStatus = OrderStatus.PENDING
    """Current lifecycle status."""

    created_at: str = ""
    """ISO timestamp of order creation."""

    def matches_search(self, term: str) -> bool:
        """
        Case-insensitive substring match on name, email or project title.

        An empty term matches every order.
        """
        needle = term.lower()
        return (
            needle in self.customer_name.lower()
            or needle in self.customer_email.lower()
            or needle in self.project_title.lower()
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "project_id": self.project_id,
            "project_title": self.project_title,
            "price": self.price,
            "status": self.status.value,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        """
        Create Order from a store row.

        Accepts both the column name ``project_id`` and the ``projectId``
        spelling used by older rows.

        Args:
            data: Row dictionary from the store

        Returns:
            Order instance
        """
        status_str = (data.get("status") or "pending").lower()
        try:
            status = OrderStatus(status_str)
        except ValueError:
            status = OrderStatus.PENDING

        return cls(
            id=str(data.get("id", "")),
            customer_name=data.get("customer_name") or "",
            customer_email=data.get("customer_email") or "",
            project_id=str(data.get("project_id", data.get("projectId", "")) or ""),
            project_title=data.get("project_title") or "",
            price=data.get("price") or 0,
            status=status,
            created_at=data.get("created_at") or "",
        )
