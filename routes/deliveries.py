"""
Document delivery routes (JSON API for the admin panel).

Handles:
- /api/orders                      - Listing with search and status filter
- /api/stats                       - Dashboard cards
- /api/orders/<id>/delivery        - Delivery dialog data (stages + counts)
- /api/orders/<id>/deliver         - Start a single-order send
- /api/deliveries/batch            - Start a batch send of the selection
- /api/deliveries/status           - Poll per-order status and batch progress
- /api/selection/...               - Row selection (kept in the session)
- /api/email-config                - Readiness check and setup instructions

Sends return 202 immediately; the page polls /api/deliveries/status.
"""

from collections import Counter
from typing import Dict, List

from flask import (
    Blueprint,
    current_app,
    jsonify,
    request,
    session,
)

from core.exceptions import OrderNotFoundError, ValidationError
from models.document import ReviewStage
from models.order import Order, OrderStatus
from modules.eligibility import count_by_stage
from modules.email_config import get_setup_instructions
from modules.order_filters import (
    dashboard_stats,
    filter_orders,
    format_date,
    format_price,
    orders_with_documents,
    select_all,
    toggle_selection,
)
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

deliveries_bp = Blueprint("deliveries", __name__, url_prefix="/api")

SELECTION_KEY = "selected_orders"


def _store():
    return current_app.config["STORE"]


def _delivery_service():
    return current_app.config["DELIVERY_SERVICE"]


def _get_selection() -> List[str]:
    return list(session.get(SELECTION_KEY, []))


def _set_selection(selected: List[str]) -> None:
    session[SELECTION_KEY] = selected
    session.modified = True


def _document_counts() -> Dict[str, int]:
    """Document count per project id (active and inactive)."""
    return dict(Counter(doc.project_id for doc in _store().list_documents()))


def _visible_orders(search: str, status: str) -> List[Order]:
    counts = _document_counts()
    return filter_orders(orders_with_documents(_store().list_orders(), counts), search, status)


def _json_body() -> dict:
    """Request JSON object, {} when absent."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _read_filters(source) -> tuple:
    search = source.get("search") or ""
    status = source.get("status") or ""
    if not isinstance(search, str):
        raise ValidationError("search must be a string", field="search")
    if not isinstance(status, str):
        raise ValidationError("status must be a string", field="status")
    search = search.strip()
    status = status.strip().lower()
    if status and status not in OrderStatus.values():
        raise ValidationError(f"Unknown order status: {status}", field="status")
    return search, status


@deliveries_bp.route("/orders", methods=["GET"])
def list_orders():
    """
    Orders that have project documents, filtered by search and status.

    Each row carries its document count, display formatting, current send
    status and whether it is selected.
    """
    search, status = _read_filters(request.args)

    counts = _document_counts()
    with_documents = orders_with_documents(_store().list_orders(), counts)
    visible = filter_orders(with_documents, search, status)

    selected = _get_selection()
    statuses = _delivery_service().statuses()
    config = _delivery_service().check_configuration()

    rows = []
    for order in visible:
        row = order.to_dict()
        entry = statuses.get(order.id)
        row.update({
            "documents_count": counts.get(order.project_id, 0),
            "price_display": format_price(order.price),
            "created_display": format_date(order.created_at),
            "send_status": entry.to_dict() if entry else None,
            "selected": order.id in selected,
        })
        rows.append(row)

    return jsonify({
        "orders": rows,
        "total": len(rows),
        "has_documents": bool(with_documents),
        "selected": selected,
        "all_selected": bool(visible) and all(o.id in selected for o in visible),
        "status_options": OrderStatus.values(),
        "email_configured": config.configured,
    })


@deliveries_bp.route("/stats", methods=["GET"])
def stats():
    """Dashboard cards above the listing."""
    orders = _store().list_orders()
    config = _delivery_service().check_configuration()
    return jsonify(dashboard_stats(orders, _document_counts(), config.configured))


@deliveries_bp.route("/orders/<order_id>/delivery", methods=["GET"])
def delivery_dialog(order_id: str):
    """Customer details and per-stage live document counts for the dialog."""
    order = _store().get_order(order_id)
    if order is None:
        raise OrderNotFoundError(order_id)

    counts = count_by_stage(_store().list_documents(project_id=order.project_id))
    stages = []
    for stage in ReviewStage:
        data = stage.to_dict()
        data["documents_count"] = counts[stage.value]
        stages.append(data)

    return jsonify({"order": order.to_dict(), "review_stages": stages})


@deliveries_bp.route("/orders/<order_id>/deliver", methods=["POST"])
def deliver(order_id: str):
    """
    Start sending the documents of the selected review stages.

    Body: {"review_stages": ["review_1", ...]}
    """
    payload = _json_body()
    review_stages = payload.get("review_stages") or []
    if not isinstance(review_stages, list) or not all(isinstance(s, str) for s in review_stages):
        raise ValidationError("review_stages must be a list of stage names", field="review_stages")

    delivery_request = _delivery_service().start_delivery(order_id, review_stages)
    logger.info(f"Delivery started for order {order_id[:8]}")

    return jsonify({
        "order_id": delivery_request.order_id,
        "review_stages": sorted(delivery_request.review_stages),
        "status": "sending",
    }), 202


@deliveries_bp.route("/deliveries/batch", methods=["POST"])
def batch():
    """
    Send every review stage to each selected order, one order at a time.

    Body (optional): {"order_ids": [...]}; defaults to the session selection.
    The selection is cleared once the batch has started.
    """
    payload = _json_body()
    order_ids = payload.get("order_ids")
    if order_ids is None:
        order_ids = _get_selection()
    if not isinstance(order_ids, list) or not order_ids:
        raise ValidationError("Select at least one order", field="order_ids")

    batch_result = _delivery_service().start_batch([str(order_id) for order_id in order_ids])
    _set_selection([])

    return jsonify(batch_result.to_dict()), 202


@deliveries_bp.route("/deliveries/status", methods=["GET"])
def delivery_status():
    """Current send status of every busy order, plus batch progress."""
    service = _delivery_service()
    current_batch = service.current_batch
    return jsonify({
        "statuses": {order_id: entry.to_dict() for order_id, entry in service.statuses().items()},
        "batch": current_batch.to_dict() if current_batch else None,
        "batch_running": service.is_batch_running,
    })


@deliveries_bp.route("/deliveries/status/<order_id>", methods=["GET"])
def order_status(order_id: str):
    """Send status of one order; status is null when idle."""
    entry = _delivery_service().get_status(order_id)
    if entry is None:
        return jsonify({"order_id": order_id, "status": None})
    return jsonify(entry.to_dict())


@deliveries_bp.route("/selection/<order_id>/toggle", methods=["POST"])
def toggle(order_id: str):
    """Check or uncheck one row."""
    selected = toggle_selection(_get_selection(), order_id)
    _set_selection(selected)
    return jsonify({"selected": selected})


@deliveries_bp.route("/selection/all", methods=["POST"])
def toggle_all():
    """
    Header checkbox: select every visible row, or clear if all are selected.

    Body (optional): {"search": "...", "status": "..."} - the listing's
    current filters, so "visible" matches what the operator sees.
    """
    payload = _json_body()
    search, status = _read_filters(payload)
    selected = select_all(_get_selection(), _visible_orders(search, status))
    _set_selection(selected)
    return jsonify({"selected": selected})


@deliveries_bp.route("/email-config", methods=["GET"])
def email_config():
    """Readiness check result and setup instructions."""
    config = _delivery_service().check_configuration()
    data = config.to_dict()
    data["setup_instructions"] = get_setup_instructions()
    return jsonify(data)
