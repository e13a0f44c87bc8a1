"""
Email Configuration Readiness

Answers "can we send email right now?" from the current settings, and
produces the setup instructions shown in the configuration view.

The check is a pure function of the settings it is given and is re-run on
every call; nothing is cached between checks.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(address: str) -> bool:
    """Basic local@domain.tld shape check."""
    if not isinstance(address, str):
        return False
    return bool(EMAIL_PATTERN.match(address))


@dataclass(frozen=True)
class EmailConfiguration:
    """Result of one readiness check."""
    configured: bool
    api_key: bool
    sender_email: str
    issues: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "configured": self.configured,
            "apiKey": self.api_key,
            "senderEmail": self.sender_email,
            "issues": list(self.issues),
        }


def check_email_configuration(settings: Mapping[str, Any]) -> EmailConfiguration:
    """
    Check that every prerequisite for sending is present.

    Args:
        settings: Flask app.config (or any mapping with the same keys)

    Returns:
        EmailConfiguration; configured is True only when issues is empty
    """
    issues = []

    api_key = bool((settings.get("EMAIL_PUBLIC_KEY") or "").strip())
    if not api_key:
        issues.append("EMAIL_PUBLIC_KEY is not set")

    if not (settings.get("EMAIL_SERVICE_ID") or "").strip():
        issues.append("EMAIL_SERVICE_ID is not set")

    sender_email = (settings.get("SENDER_EMAIL") or "").strip()
    if not sender_email:
        issues.append("SENDER_EMAIL is not set")
    elif not is_valid_email(sender_email):
        issues.append(f"SENDER_EMAIL '{sender_email}' is not a valid email address")

    if not (settings.get("EMAIL_TEMPLATE_DOCUMENT_DELIVERY") or "").strip():
        issues.append("EMAIL_TEMPLATE_DOCUMENT_DELIVERY is not set")

    return EmailConfiguration(
        configured=not issues,
        api_key=api_key,
        sender_email=sender_email or "Not configured",
        issues=issues,
    )


def get_setup_instructions() -> str:
    """Step-by-step setup text for the configuration view."""
    return "\n".join([
        "1. Create an account with the email provider and add an email service.",
        "2. Copy the service ID into EMAIL_SERVICE_ID.",
        "3. Copy the account public key into EMAIL_PUBLIC_KEY "
        "(and the private key into EMAIL_PRIVATE_KEY for server-side sends).",
        "4. Create the contact, order confirmation and document delivery templates "
        "and set EMAIL_TEMPLATE_CONTACT, EMAIL_TEMPLATE_ORDER and "
        "EMAIL_TEMPLATE_DOCUMENT_DELIVERY to their IDs.",
        "5. Verify the sender address with the provider and set SENDER_EMAIL.",
        "6. Set OPERATOR_EMAIL to the address that receives inquiries and replies.",
        "7. Restart the application and check that the email status shows Ready.",
    ])
