"""
Email Content Rendering

Pre-renders structured data into the flat strings that email templates bind.
Templates only accept scalar variables, so the document list is turned into
one HTML string and one plain-text string before sending.

Rendering is deterministic: the same documents in the same order always
produce the same output.
"""

from datetime import datetime
from typing import Iterable, Tuple

from markupsafe import escape

from models.document import ProjectDocument


DOCUMENT_HTML_TEMPLATE = (
    '<div style="margin-bottom: 15px; padding: 10px; border: 1px solid #e5e7eb; border-radius: 5px;">'
    '<h4 style="margin: 0 0 5px 0; color: #1f2937;">{name}</h4>'
    '<p style="margin: 0 0 5px 0; font-size: 14px; color: #6b7280;">'
    'Category: {category} | Review Stage: {stage}'
    '</p>'
    '{description}'
    '<a href="{url}" '
    'style="display: inline-block; padding: 8px 16px; background-color: #3b82f6; color: white; '
    'text-decoration: none; border-radius: 4px; font-size: 14px;" '
    'target="_blank">Download Document</a>'
    '</div>'
)

DESCRIPTION_HTML_TEMPLATE = (
    '<p style="margin: 0 0 8px 0; font-size: 13px; color: #9ca3af;">{description}</p>'
)


def normalize_stage_label(review_stage: str) -> str:
    """'review_1' -> 'REVIEW 1' (first underscore only)."""
    return review_stage.replace("_", " ", 1).upper()


def render_document_html(doc: ProjectDocument) -> str:
    """HTML card for one document, with a download button."""
    description = ""
    if doc.description:
        description = DESCRIPTION_HTML_TEMPLATE.format(description=escape(doc.description))
    return DOCUMENT_HTML_TEMPLATE.format(
        name=escape(doc.name),
        category=escape(doc.document_category),
        stage=escape(normalize_stage_label(doc.review_stage)),
        description=description,
        url=escape(doc.url),
    )


def render_document_text(doc: ProjectDocument) -> str:
    """Plain-text block for one document, same fields as the HTML card."""
    lines = [
        doc.name,
        f"Category: {doc.document_category} | Review Stage: {normalize_stage_label(doc.review_stage)}",
    ]
    if doc.description:
        lines.append(f"Description: {doc.description}")
    lines.append(f"Download: {doc.url}")
    return "\n".join(lines) + "\n\n"


def render_documents(documents: Iterable[ProjectDocument]) -> Tuple[str, str]:
    """
    Render a document list for a delivery email.

    Args:
        documents: Documents in the order they should appear

    Returns:
        (documents_html, documents_text)
    """
    html_parts = []
    text_parts = []
    for doc in documents:
        html_parts.append(render_document_html(doc))
        text_parts.append(render_document_text(doc))
    return "".join(html_parts), "".join(text_parts)


def format_email_date(moment: datetime) -> str:
    """Short date as shown in emails, e.g. '10/19/2026'."""
    return f"{moment.month}/{moment.day}/{moment.year}"


def format_email_time(moment: datetime) -> str:
    """Clock time as shown in emails, e.g. '3:04:05 PM'."""
    hour = moment.hour % 12 or 12
    suffix = "AM" if moment.hour < 12 else "PM"
    return f"{hour}:{moment.minute:02d}:{moment.second:02d} {suffix}"


def generate_download_instructions(project_title: str, order_id: str, support_email: str) -> str:
    """
    Next-steps text for an order confirmation.

    Args:
        project_title: Purchased project
        order_id: Order identifier shown to the customer
        support_email: Address customers can write to

    Returns:
        Multi-line instructions text
    """
    return "\n".join([
        f'Thank you for purchasing "{project_title}"!',
        "",
        f"Your Order ID: {order_id}",
        "",
        "What happens next:",
        "1. You will receive a separate email within 24 hours containing download links "
        "for all project documents",
        "2. Documents are organized by review stages (Review 1, 2, and 3)",
        "3. Each document includes presentations, documentation, and reports as applicable",
        "4. You'll have lifetime access to download these documents",
        "",
        f"If you have any questions or need support, please contact us at {support_email}",
        "",
        "Thank you for your business!",
    ])
