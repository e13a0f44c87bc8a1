"""
Main routes (index, health).
"""

from flask import Blueprint, current_app, jsonify, redirect, url_for

main_bp = Blueprint("main", __name__)


@main_bp.route("/")
def index():
    """Redirect root to the delivery listing."""
    return redirect(url_for("deliveries.list_orders"))


@main_bp.route("/health", methods=["GET"])
def health():
    """Liveness plus email readiness."""
    config = current_app.config["EMAIL_CONFIG_CHECK"]()
    return jsonify({"status": "ok", "email_configured": config.configured})
