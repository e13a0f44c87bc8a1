"""
Services layer for the document delivery admin.

This module contains the business logic services:
- EmailService: Composes and sends the transactional emails
- DeliveryService: Orchestrates document deliveries and per-order status
- StatusBoard: Thread-safe per-order send status with timed reset

Thread Model:
    Main Thread (Flask)
    ├── Delivery threads (one per single-order send)
    └── Batch thread (one at a time, sends orders sequentially)
"""

from .email_service import EmailService, EmailSettings
from .delivery_service import DeliveryService, StatusBoard

__all__ = [
    "EmailService",
    "EmailSettings",
    "DeliveryService",
    "StatusBoard",
]
