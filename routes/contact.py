"""
Contact and order-confirmation routes.

Handles:
- /api/contact                       - Public contact form, forwarded to the operator
- /api/orders/<id>/confirmation      - Send the purchase confirmation email
"""

from collections.abc import Mapping

import bleach
from flask import (
    Blueprint,
    current_app,
    jsonify,
    request,
)

from core.exceptions import OrderNotFoundError, ValidationError
from modules.email_content import generate_download_instructions
from modules.order_filters import format_price
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

contact_bp = Blueprint("contact", __name__, url_prefix="/api")

# Constants
MAX_NAME_LENGTH = 200
MAX_FIELD_LENGTH = 200
MAX_MESSAGE_LENGTH = 5000


def _sanitize_text(text: str, max_length: int = None) -> str:
    """Strip tags and surrounding whitespace from user input."""
    if not text:
        return ""
    text = str(text).strip()
    text = bleach.clean(text, tags=[], strip=True)
    if max_length and len(text) > max_length:
        text = text[:max_length]
    return text


@contact_bp.route("/contact", methods=["POST"])
def contact():
    """
    Forward a contact-form inquiry to the operator.

    Accepts JSON or form data with from_name, from_email, project_type,
    budget and message.
    """
    data = request.get_json(silent=True) or request.form
    if not isinstance(data, Mapping):
        raise ValidationError("Request body must be a JSON object or form data")

    from_name = _sanitize_text(data.get("from_name"), MAX_NAME_LENGTH)
    from_email = str(data.get("from_email") or "").strip()
    project_type = _sanitize_text(data.get("project_type"), MAX_FIELD_LENGTH)
    budget = _sanitize_text(data.get("budget"), MAX_FIELD_LENGTH)
    message = _sanitize_text(data.get("message"), MAX_MESSAGE_LENGTH)

    if not from_name:
        raise ValidationError("Please enter your name", field="from_name")
    if not message:
        raise ValidationError("Please enter a message", field="message")

    email_service = current_app.config["EMAIL_SERVICE"]
    email_service.send_contact_form(
        from_name=from_name,
        from_email=from_email,
        project_type=project_type,
        budget=budget,
        message=message,
    )

    return jsonify({"message": "Thank you! Your message has been sent."})


@contact_bp.route("/orders/<order_id>/confirmation", methods=["POST"])
def order_confirmation(order_id: str):
    """
    Email the purchase confirmation for an order to its customer.

    Returns the next-steps instructions so the page can show them too.
    """
    store = current_app.config["STORE"]
    email_service = current_app.config["EMAIL_SERVICE"]

    order = store.get_order(order_id)
    if order is None:
        raise OrderNotFoundError(order_id)

    order_data = {
        "project_title": order.project_title,
        "customer_name": order.customer_name,
        "price": format_price(order.price),
        "order_id": order.id,
    }
    email_service.send_order_confirmation(order_data, order.customer_email)
    logger.info(f"Confirmation sent for order {order.id[:8]}")

    instructions = generate_download_instructions(
        order.project_title,
        order.id,
        email_service.settings.operator_email,
    )
    return jsonify({"order_id": order.id, "instructions": instructions})
