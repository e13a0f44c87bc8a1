"""
Configuration for the document delivery admin.

All provider identifiers and addresses come from the environment (or a .env
file next to the app). Missing email settings do not stop the app from
starting; they show up in the readiness check instead.
"""

import os

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
load_dotenv(override=True)


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    SESSION_COOKIE_NAME = "doc_delivery_session"
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # ==========================================================================
    # Email provider
    # ==========================================================================
    # EMAIL_PUBLIC_KEY identifies the account on every send.
    # EMAIL_PRIVATE_KEY is optional and only needed when the provider
    # account requires server-side sends to be signed.
    # ==========================================================================
    EMAIL_API_URL = os.environ.get(
        "EMAIL_API_URL", "https://api.emailjs.com/api/v1.0/email/send"
    )
    EMAIL_SERVICE_ID = os.environ.get("EMAIL_SERVICE_ID", "")
    EMAIL_PUBLIC_KEY = os.environ.get("EMAIL_PUBLIC_KEY", "")
    EMAIL_PRIVATE_KEY = os.environ.get("EMAIL_PRIVATE_KEY", "")
    EMAIL_TIMEOUT_SECONDS = float(os.environ.get("EMAIL_TIMEOUT_SECONDS", "10"))

    EMAIL_TEMPLATE_CONTACT = os.environ.get("EMAIL_TEMPLATE_CONTACT", "contact")
    EMAIL_TEMPLATE_ORDER = os.environ.get("EMAIL_TEMPLATE_ORDER", "purchase_confirmation")
    EMAIL_TEMPLATE_DOCUMENT_DELIVERY = os.environ.get(
        "EMAIL_TEMPLATE_DOCUMENT_DELIVERY", "document_delivery"
    )

    # Receives contact inquiries; used as reply-to and support address
    OPERATOR_EMAIL = os.environ.get("OPERATOR_EMAIL", "")
    # Verified sender address configured with the provider
    SENDER_EMAIL = os.environ.get("SENDER_EMAIL", "")

    # ==========================================================================
    # Order/document store
    # ==========================================================================
    STORE_URL = os.environ.get("STORE_URL", "")
    STORE_API_KEY = os.environ.get("STORE_API_KEY", "")
    STORE_TIMEOUT_SECONDS = float(os.environ.get("STORE_TIMEOUT_SECONDS", "10"))

    # ==========================================================================
    # Send status display windows (seconds)
    # ==========================================================================
    SUCCESS_DISPLAY_SECONDS = float(os.environ.get("SUCCESS_DISPLAY_SECONDS", "3"))
    ERROR_DISPLAY_SECONDS = float(os.environ.get("ERROR_DISPLAY_SECONDS", "5"))


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = 3600  # 1 hour


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    SECRET_KEY = "test-secret-key"
    EMAIL_SERVICE_ID = "service_test"
    EMAIL_PUBLIC_KEY = "public-test-key"
    EMAIL_PRIVATE_KEY = ""
    EMAIL_TEMPLATE_CONTACT = "contact"
    EMAIL_TEMPLATE_ORDER = "purchase_confirmation"
    EMAIL_TEMPLATE_DOCUMENT_DELIVERY = "document_delivery"
    OPERATOR_EMAIL = "operator@example.com"
    SENDER_EMAIL = "noreply@example.com"
    STORE_URL = "https://store.test"
    STORE_API_KEY = "store-test-key"
