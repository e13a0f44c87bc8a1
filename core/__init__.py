"""
Core module for the document delivery admin.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- email_transport: Transactional email provider client
- storage_client: Read-only order/document store client
"""

from .exceptions import (
    DocumentDeliveryError,
    ValidationError,
    NoStagesSelectedError,
    ConfigurationError,
    NoEligibleDocumentsError,
    TransportError,
    DeliveryError,
    DeliveryInProgressError,
    OrderNotFoundError,
    StorageError,
)
from .email_transport import EmailTransport
from .storage_client import StoreClient

__all__ = [
    "DocumentDeliveryError",
    "ValidationError",
    "NoStagesSelectedError",
    "ConfigurationError",
    "NoEligibleDocumentsError",
    "TransportError",
    "DeliveryError",
    "DeliveryInProgressError",
    "OrderNotFoundError",
    "StorageError",
    "EmailTransport",
    "StoreClient",
]
