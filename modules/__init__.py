"""Helper modules for the document delivery admin."""

__all__ = [
    "eligibility",
    "email_config",
    "email_content",
    "order_filters",
]
