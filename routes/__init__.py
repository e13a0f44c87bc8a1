"""
Flask route blueprints for the document delivery admin.

This module contains all route handlers organized by functionality:
- main: Index redirect and health check
- deliveries: Order listing, delivery dialog, single and batch sends,
  status polling, selection, email configuration
- contact: Contact form and order confirmation emails

Each blueprint is registered with the Flask app in create_app().
"""

from .main import main_bp
from .deliveries import deliveries_bp
from .contact import contact_bp

__all__ = [
    "main_bp",
    "deliveries_bp",
    "contact_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(main_bp)
    app.register_blueprint(deliveries_bp)
    app.register_blueprint(contact_bp)
