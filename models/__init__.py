"""
Data models for the document delivery admin.

This module contains dataclasses for:
- Order: A customer's purchase of a project (read-only, from the store)
- ProjectDocument / ReviewStage: Documents and the stages they belong to
- DeliveryRequest: Frozen (order, stages) snapshot for worker threads
- StatusEntry / SendStatus: Transient per-order send status
- DocumentDeliveryOptions: Optional email fields with documented defaults

Order, ProjectDocument and DeliveryRequest are frozen so they can be handed
to worker threads without copying.
"""

from .order import Order, OrderStatus
from .document import ProjectDocument, ReviewStage
from .delivery import (
    OPERATOR_CHECKLIST,
    BatchResult,
    DeliveryRequest,
    DocumentDeliveryOptions,
    SendStatus,
    StatusEntry,
)

__all__ = [
    # Order models
    "Order",
    "OrderStatus",
    # Document models
    "ProjectDocument",
    "ReviewStage",
    # Delivery models
    "OPERATOR_CHECKLIST",
    "BatchResult",
    "DeliveryRequest",
    "DocumentDeliveryOptions",
    "SendStatus",
    "StatusEntry",
]
