"""
Custom exceptions for the document delivery admin.

Exception Hierarchy:
    DocumentDeliveryError (base)
    ├── ValidationError          - Bad recipient address or input (never sent)
    │   └── NoStagesSelectedError    - Delivery requested with no review stage
    ├── ConfigurationError       - Email provider not ready (checked before send)
    ├── NoEligibleDocumentsError - Stage selection resolved to zero documents
    ├── TransportError           - Provider call failed (network, auth, quota)
    ├── DeliveryError            - User-facing wrapper around a TransportError
    ├── DeliveryInProgressError  - Send already running for this order/batch
    ├── OrderNotFoundError       - Order id unknown to the store
    └── StorageError             - Order/document store unreachable or invalid

Usage:
    ValidationError and ConfigurationError are raised before any transport
    call and never reach the "sending" state.
    NoEligibleDocumentsError and TransportError/DeliveryError only occur after
    a send was initiated and drive the sending -> error transition.
"""

from typing import Optional, Dict, Any, List


class DocumentDeliveryError(Exception):
    """
    Base exception for all document delivery errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# PRE-SEND ERRORS - Reported before any transport call is made
# =============================================================================

class ValidationError(DocumentDeliveryError):
    """
    Input rejected before anything was sent to the provider.

    Typical causes:
    - Recipient address does not look like local@domain.tld
    - Required form fields missing
    """

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else None
        super().__init__(message, details)
        self.field = field


class NoStagesSelectedError(ValidationError):
    """A delivery was requested without selecting any review stage."""

    def __init__(self, message: str = "Please select at least one review stage"):
        super().__init__(message, field="review_stages")


class ConfigurationError(DocumentDeliveryError):
    """
    Email provider is not configured well enough to send.

    Carries the readiness check's issue list so the operator can be pointed
    at the configuration view.
    """

    def __init__(self, issues: List[str]):
        message = "Email service not configured properly"
        details = {
            "issues": list(issues),
            "resolution": "Check the email configuration settings",
        }
        super().__init__(message, details)
        self.issues = list(issues)


# =============================================================================
# SEND-TIME ERRORS - Drive the sending -> error transition
# =============================================================================

class NoEligibleDocumentsError(DocumentDeliveryError):
    """The selected review stages matched no active document for the order."""

    def __init__(self, order_id: Optional[str] = None, stages: Optional[List[str]] = None):
        details: Dict[str, Any] = {}
        if order_id:
            details["order_id"] = order_id
        if stages is not None:
            details["review_stages"] = sorted(stages)
        super().__init__("No documents found for selected review stages", details)
        self.order_id = order_id
        self.stages = stages


class TransportError(DocumentDeliveryError):
    """
    The email provider call failed.

    This covers connection failures, timeouts, authentication problems,
    exhausted quotas and unknown templates. The provider's own message is
    kept so it can be logged.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        template_id: Optional[str] = None
    ):
        details: Dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if template_id:
            details["template_id"] = template_id
        super().__init__(message, details)
        self.status_code = status_code
        self.template_id = template_id


class DeliveryError(DocumentDeliveryError):
    """
    Generic, user-facing send failure.

    Raised by the email service in place of a TransportError; the technical
    cause is logged and chained, never shown to the end user.
    """


class DeliveryInProgressError(DocumentDeliveryError):
    """A send is already running for this order (or a batch is running)."""

    def __init__(self, order_id: Optional[str] = None):
        if order_id:
            message = f"Documents are already being sent for order {order_id}"
            details = {"order_id": order_id}
        else:
            message = "A batch delivery is already running"
            details = {}
        super().__init__(message, details)
        self.order_id = order_id


class OrderNotFoundError(DocumentDeliveryError):
    """No readable order has the requested id."""

    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}", {"order_id": order_id})
        self.order_id = order_id


class StorageError(DocumentDeliveryError):
    """The order/document store could not be read."""

    def __init__(self, message: str, resource: Optional[str] = None, status_code: Optional[int] = None):
        details: Dict[str, Any] = {}
        if resource:
            details["resource"] = resource
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.resource = resource
        self.status_code = status_code
