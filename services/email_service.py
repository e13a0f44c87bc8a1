"""
Transactional email composition.

Builds the variable mappings for the three email templates and hands them to
the transport:

    send_contact_form        - visitor inquiry, delivered to the operator
    send_order_confirmation  - purchase receipt, delivered to the customer
    send_document_delivery   - download links, delivered to the customer

Every operation validates its recipient first (ValidationError, nothing is
sent), then makes exactly one transport call. Transport failures are logged
with full detail and re-raised as DeliveryError with a generic retry-later
message; the TransportError is kept as the exception's __cause__.

Variables are always a flat string mapping. The document list is rendered to
HTML and plain text (modules.email_content) before it goes into the mapping.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from core.email_transport import EmailTransport
from core.exceptions import DeliveryError, TransportError, ValidationError
from models.delivery import DocumentDeliveryOptions
from models.document import ProjectDocument
from modules.email_config import is_valid_email
from modules.email_content import (
    format_email_date,
    format_email_time,
    render_documents,
)
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

DOWNLOAD_INSTRUCTIONS = (
    "You will receive a separate email with download links for all project "
    "documents within 24 hours."
)
DEFAULT_REVIEW_STAGES = "All Review Stages"
DEFAULT_ACCESS_EXPIRES = "Never (lifetime access)"


@dataclass(frozen=True)
class EmailSettings:
    """Provider identifiers and addresses used when composing emails."""

    service_id: str
    public_key: str
    contact_template: str
    order_template: str
    document_template: str
    operator_email: str

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "EmailSettings":
        """Build from Flask app.config."""
        return cls(
            service_id=config.get("EMAIL_SERVICE_ID", ""),
            public_key=config.get("EMAIL_PUBLIC_KEY", ""),
            contact_template=config.get("EMAIL_TEMPLATE_CONTACT", ""),
            order_template=config.get("EMAIL_TEMPLATE_ORDER", ""),
            document_template=config.get("EMAIL_TEMPLATE_DOCUMENT_DELIVERY", ""),
            operator_email=config.get("OPERATOR_EMAIL", ""),
        )


class EmailService:
    """
    Composes and sends the application's transactional emails.

    Attributes:
        settings: Provider identifiers and addresses
    """

    def __init__(
        self,
        transport: EmailTransport,
        settings: EmailSettings,
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize the email service.

        Args:
            transport: Transport used for every send
            settings: Provider identifiers and operator address
            clock: Returns "now"; replaced in tests for stable dates
        """
        self._transport = transport
        self.settings = settings
        self._clock = clock

    def send_contact_form(
        self,
        from_name: str,
        from_email: str,
        project_type: str,
        budget: str,
        message: str
    ) -> None:
        """
        Forward a contact-form inquiry to the operator.

        Replies go straight back to the visitor.

        Raises:
            ValidationError: If from_email is not a valid address
            DeliveryError: If the provider call fails
        """
        if not is_valid_email(from_email):
            raise ValidationError("Invalid sender email address", field="from_email")

        now = self._clock()
        variables = {
            "name": from_name,
            "email": from_email,
            "project_type": project_type,
            "budget": budget,
            "message": message,
            "current_date": format_email_date(now),
            "current_time": format_email_time(now),
            "title": f"New inquiry from {from_name}",
            "to_email": self.settings.operator_email,
            "reply_to": from_email,
        }

        self._send(
            self.settings.contact_template,
            variables,
            "Failed to send your message. Please try again later.",
        )
        logger.info(f"Contact inquiry from {from_email} forwarded to operator")

    def send_order_confirmation(
        self,
        order_data: Mapping[str, Any],
        recipient_email: str
    ) -> None:
        """
        Send a purchase confirmation to the customer.

        Args:
            order_data: Template fields (project_title, customer_name, price,
                order_id, optional support_email, ...)
            recipient_email: Customer address

        Raises:
            ValidationError: If recipient_email is not a valid address
            DeliveryError: If the provider call fails
        """
        if not is_valid_email(recipient_email):
            raise ValidationError("Invalid recipient email address", field="recipient_email")

        variables: Dict[str, Any] = dict(order_data)
        variables.update({
            "email": recipient_email,
            "current_date": format_email_date(self._clock()),
            "to_email": recipient_email,
            "reply_to": order_data.get("support_email") or self.settings.operator_email,
            "download_instructions": DOWNLOAD_INSTRUCTIONS,
            "support_email": self.settings.operator_email,
        })

        self._send(
            self.settings.order_template,
            variables,
            "Failed to send order confirmation. Please try again later.",
        )
        logger.info(f"Order confirmation sent to {recipient_email}")

    def send_document_delivery(
        self,
        customer_name: str,
        customer_email: str,
        project_title: str,
        order_id: str,
        documents: Sequence[ProjectDocument],
        options: Optional[DocumentDeliveryOptions] = None
    ) -> None:
        """
        Email download links for a set of documents.

        Args:
            customer_name: Greeting name
            customer_email: Recipient address
            project_title: Purchased project
            order_id: Order being fulfilled
            documents: Documents to list, in display order
            options: Optional fields; see DocumentDeliveryOptions for defaults

        Raises:
            ValidationError: If customer_email is not a valid address
            DeliveryError: If the provider call fails
        """
        if not is_valid_email(customer_email):
            raise ValidationError("Invalid recipient email address", field="customer_email")

        options = options or DocumentDeliveryOptions()
        documents_html, documents_text = render_documents(documents)

        documents_count = options.documents_count
        if documents_count is None:
            documents_count = len(documents)

        variables = {
            "customer_name": customer_name,
            "customer_email": customer_email,
            "project_title": project_title,
            "order_id": order_id,
            "documents_html": documents_html,
            "documents_text": documents_text,
            "documents_count": documents_count,
            "review_stages": options.review_stages or DEFAULT_REVIEW_STAGES,
            "current_date": options.current_date or format_email_date(self._clock()),
            "access_expires": options.access_expires or DEFAULT_ACCESS_EXPIRES,
            "support_email": options.support_email or self.settings.operator_email,
            "to_email": customer_email,
            "reply_to": self.settings.operator_email,
        }

        self._send(
            self.settings.document_template,
            variables,
            "Failed to send document delivery email. Please try again later.",
        )
        logger.info(
            f"Delivered {len(documents)} document link(s) for order {order_id} to {customer_email}"
        )

    def _send(self, template_id: str, variables: Mapping[str, Any], user_message: str) -> None:
        """One transport call; TransportError becomes DeliveryError."""
        try:
            self._transport.send(
                service_id=self.settings.service_id,
                template_id=template_id,
                variables=variables,
                auth_key=self.settings.public_key,
            )
        except TransportError as e:
            logger.error(f"Email send failed (template '{template_id}'): {e}")
            raise DeliveryError(user_message, details={"template_id": template_id}) from e
