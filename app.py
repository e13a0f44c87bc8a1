"""
Document Delivery Admin - Flask Application Entry Point.

This is a slim app factory that:
1. Loads configuration (.env + config.Config)
2. Creates the store client and email transport (fail-fast on missing store)
3. Creates the email and delivery services
4. Registers route blueprints
5. Sets up error handlers and CLI commands

ARCHITECTURE:
    Main Thread
    ├── Flask request handling (listing, dialogs, status polling)
    └── Cleanup on shutdown

    Delivery Threads (one per single-order send)
    └── Resolve documents -> compose email -> send

    Batch Thread (at most one)
    └── Sends the selected orders one after another

The status board is the only state shared between threads.
"""

from __future__ import annotations

import atexit
import logging
import os
import sys
from functools import partial
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from flask import Flask, jsonify, url_for

from logging_config import setup_logging, get_logger
from core.email_transport import EmailTransport
from core.exceptions import (
    ConfigurationError,
    DeliveryError,
    DeliveryInProgressError,
    DocumentDeliveryError,
    NoEligibleDocumentsError,
    OrderNotFoundError,
    StorageError,
    TransportError,
    ValidationError,
)
from core.storage_client import StoreClient
from modules.email_config import check_email_configuration
from services.delivery_service import DeliveryService, StatusBoard
from services.email_service import EmailService, EmailSettings
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)

ERROR_STATUS_CODES = (
    (ValidationError, 400),
    (OrderNotFoundError, 404),
    (DeliveryInProgressError, 409),
    (ConfigurationError, 412),
    (NoEligibleDocumentsError, 422),
    (StorageError, 502),
    (DeliveryError, 502),
    (TransportError, 502),
)


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In a frozen bundle: the directory containing the executable
    In development: the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    return Path(__file__).parent


def shutdown_services(
    delivery_service: DeliveryService,
    store: StoreClient,
    transport: EmailTransport
) -> None:
    """
    Cleanup on application shutdown.

    Waits for delivery workers first, then releases the HTTP connection pools
    they were using.
    """
    logger.info("Shutting down...")
    delivery_service.shutdown()
    store.close()
    transport.close()
    logger.info("Shutdown complete")


def create_app(
    config_object: str = "config.Config",
    store: Optional[StoreClient] = None,
    transport: Optional[EmailTransport] = None,
    status_board: Optional[StatusBoard] = None,
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    FAIL-FAST: without a store URL there are no orders to deliver, so the
    app will not start. Missing email settings only disable sending.

    Args:
        config_object: Import path of the config class
        store: Store client to use instead of building one from config
        transport: Email transport to use instead of building one from config
        status_board: Status board to use (tests pass one with fake timers)

    Returns:
        Configured Flask application

    Raises:
        ValueError: If no store is given and STORE_URL is not configured
    """
    env_file = _get_base_path() / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)

    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting document delivery admin in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # CORE INITIALIZATION (FAIL-FAST)
    # =========================================================================

    if store is None:
        try:
            store = StoreClient(
                base_url=app.config.get("STORE_URL", ""),
                api_key=app.config.get("STORE_API_KEY", ""),
                timeout_seconds=app.config.get("STORE_TIMEOUT_SECONDS", 10.0),
            )
        except ValueError as e:
            logger.error(f"FATAL: Cannot start application - STORE_URL not configured ({e})")
            raise

    if transport is None:
        transport = EmailTransport(
            api_url=app.config["EMAIL_API_URL"],
            private_key=app.config.get("EMAIL_PRIVATE_KEY") or None,
            timeout_seconds=app.config.get("EMAIL_TIMEOUT_SECONDS", 10.0),
        )

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    email_service = EmailService(transport, EmailSettings.from_config(app.config))

    if status_board is None:
        status_board = StatusBoard(
            success_display_seconds=app.config.get("SUCCESS_DISPLAY_SECONDS", 3.0),
            error_display_seconds=app.config.get("ERROR_DISPLAY_SECONDS", 5.0),
        )

    # Re-evaluated on every call; reads app.config at check time
    config_check = partial(check_email_configuration, app.config)

    delivery_service = DeliveryService(
        store=store,
        email_service=email_service,
        config_check=config_check,
        status_board=status_board,
    )

    app.config["STORE"] = store
    app.config["EMAIL_SERVICE"] = email_service
    app.config["DELIVERY_SERVICE"] = delivery_service
    app.config["EMAIL_CONFIG_CHECK"] = config_check

    readiness = config_check()
    if readiness.configured:
        logger.info("Email service ready")
    else:
        logger.warning(f"Email service not configured: {'; '.join(readiness.issues)}")

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    if not app.config.get("TESTING"):
        atexit.register(shutdown_services, delivery_service, store, transport)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(DocumentDeliveryError)
    def handle_delivery_error(e: DocumentDeliveryError):
        status_code = 500
        for error_type, code in ERROR_STATUS_CODES:
            if isinstance(e, error_type):
                status_code = code
                break

        body = {"error": e.message, "details": e.details}
        if isinstance(e, ConfigurationError):
            body["issues"] = e.issues
            body["config_url"] = url_for("deliveries.email_config")

        if status_code >= 500:
            logger.error(f"{type(e).__name__}: {e}")
        else:
            logger.info(f"Request rejected ({status_code}): {e.message}")
        return jsonify(body), status_code

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return jsonify({"error": "An unexpected error occurred. Please try again."}), 500

    # =========================================================================
    # CLI COMMANDS
    # =========================================================================

    @app.cli.command("send-test-email")
    @click.option("--email", "from_email", default="test@example.com", help="Sender address for the test inquiry.")
    def send_test_email(from_email: str):
        """Send a sample contact-form inquiry to the operator address."""
        try:
            email_service.send_contact_form(
                from_name="Test User",
                from_email=from_email,
                project_type="Website Development",
                budget="$1000-$2000",
                message="This is a test message from the email service",
            )
        except DocumentDeliveryError as e:
            logger.error(f"Test email failed: {e}")
            raise click.ClickException(e.message)
        click.echo("Test email sent successfully")

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(debug=debug_mode)
