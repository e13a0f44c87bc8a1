"""
Order Listing Helpers

Search, status filtering, row selection and display formatting for the
delivery listing. Everything here is pure: functions take the current state
and return the new state.
"""

import re
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from models.order import Order, OrderStatus

# Postgres trims trailing zeros from fractional seconds
_FRACTION = re.compile(r"\.(\d+)")


def orders_with_documents(
    orders: Iterable[Order],
    document_counts: Mapping[str, int]
) -> List[Order]:
    """Orders whose project has at least one document."""
    return [order for order in orders if document_counts.get(order.project_id, 0) > 0]


def filter_orders(
    orders: Iterable[Order],
    search: str = "",
    status: Optional[str] = None
) -> List[Order]:
    """
    Apply the listing's search box and status filter.

    Args:
        orders: Candidate orders
        search: Case-insensitive substring of name, email or project title
        status: Exact status value, or None/"" for all

    Returns:
        Matching orders in input order
    """
    return [
        order for order in orders
        if order.matches_search(search or "")
        and (not status or order.status.value == status)
    ]


def toggle_selection(selected: Sequence[str], order_id: str) -> List[str]:
    """Add order_id if absent, remove it if present."""
    if order_id in selected:
        return [selected_id for selected_id in selected if selected_id != order_id]
    return list(selected) + [order_id]


def select_all(selected: Sequence[str], visible: Sequence[Order]) -> List[str]:
    """
    Header checkbox behaviour.

    Clears the selection when every visible order is already selected,
    otherwise selects exactly the visible orders.
    """
    visible_ids = [order.id for order in visible]
    if visible_ids and set(visible_ids) <= set(selected):
        return []
    return visible_ids


def dashboard_stats(
    orders: Sequence[Order],
    document_counts: Mapping[str, int],
    email_ready: bool
) -> Dict[str, Union[int, str]]:
    """Numbers for the cards above the listing."""
    with_documents = orders_with_documents(orders, document_counts)
    return {
        "total_orders": len(orders),
        "orders_with_documents": len(with_documents),
        "pending_delivery": sum(1 for o in with_documents if o.status == OrderStatus.PENDING),
        "email_status": "Ready" if email_ready else "Not Ready",
    }


def format_price(price: Union[int, float]) -> str:
    """Rupees with Indian digit grouping, no decimals: 149999 -> '₹1,49,999'."""
    amount = int(round(price))
    sign = "-" if amount < 0 else ""
    digits = str(abs(amount))
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups) + "," + tail
    return f"{sign}₹{digits}"


def _normalize_timestamp(value: str) -> str:
    """Make an ISO timestamp acceptable to datetime.fromisoformat on any 3.x."""
    value = value.replace("Z", "+00:00")
    return _FRACTION.sub(lambda m: "." + (m.group(1) + "000000")[:6], value, count=1)


def format_date(value: Optional[str]) -> str:
    """ISO timestamp -> 'Oct 19, 2026, 03:04 PM'."""
    if not value:
        return "N/A"
    try:
        moment = datetime.fromisoformat(_normalize_timestamp(value))
    except ValueError:
        return "Invalid Date"
    return moment.strftime("%b %d, %Y, %I:%M %p")
