"""
Transactional email transport.

Thin wrapper around the email provider's "send templated email" REST
endpoint. A send is one POST carrying the service id, the template id, the
public key and a flat mapping of template variables.

NO RETRIES:
    A failed call surfaces immediately as TransportError carrying the
    provider's message. Resending is not guaranteed to be safe - the
    provider may already have accepted the first request - so retry
    policy belongs to the caller.

THREAD SAFETY:
    httpx.Client is safe to share between threads, so one transport instance
    serves every delivery worker.

Usage:
    transport = EmailTransport(api_url, private_key="...")
    transport.send(
        service_id="service_abc",
        template_id="document_delivery",
        variables={"customer_name": "Asha", "documents_count": "3"},
        auth_key="public-key",
    )
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from .exceptions import TransportError


DEFAULT_API_URL = "https://api.emailjs.com/api/v1.0/email/send"

_NESTED_TYPES = (dict, list, tuple, set, frozenset)


def flatten_variables(variables: Mapping[str, Any]) -> Dict[str, str]:
    """
    Bind template variables as strings.

    Args:
        variables: Flat mapping of variable name to scalar value

    Returns:
        New dict with every value converted to str (None becomes "")

    Raises:
        TypeError: If a key is not a string or a value is a container
    """
    flat: Dict[str, str] = {}
    for key, value in variables.items():
        if not isinstance(key, str):
            raise TypeError(f"Template variable names must be strings, got {key!r}")
        if isinstance(value, _NESTED_TYPES):
            raise TypeError(
                f"Template variable '{key}' is a {type(value).__name__}; "
                "render nested data to a string before sending"
            )
        if value is None:
            flat[key] = ""
        elif isinstance(value, bool):
            flat[key] = "true" if value else "false"
        else:
            flat[key] = str(value)
    return flat


class EmailTransport:
    """
    Sends one templated email per call.

    Attributes:
        api_url: Provider endpoint that accepts send requests
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        private_key: Optional[str] = None,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.Client] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the transport.

        Args:
            api_url: Provider send endpoint
            private_key: Optional access token for server-side sends
            timeout_seconds: Per-request timeout
            client: Pre-built httpx.Client (tests pass one with a MockTransport)
            logger: Logger instance (creates default if not provided)

        Raises:
            ValueError: If api_url is empty
        """
        if not api_url:
            raise ValueError("api_url is required")

        self.api_url = api_url
        self._private_key = private_key
        self._client = client or httpx.Client(timeout=timeout_seconds)
        self._logger = logger or logging.getLogger("doc_delivery.core.email_transport")

    def send(
        self,
        service_id: str,
        template_id: str,
        variables: Mapping[str, Any],
        auth_key: str
    ) -> None:
        """
        Send one templated email.

        Args:
            service_id: Provider service identifier
            template_id: Template to render
            variables: Flat mapping bound into the template
            auth_key: Public key identifying the account

        Raises:
            TypeError: If variables contains nested containers
            TransportError: If the request fails or the provider rejects it
        """
        payload: Dict[str, Any] = {
            "service_id": service_id,
            "template_id": template_id,
            "user_id": auth_key,
            "template_params": flatten_variables(variables),
        }
        if self._private_key:
            payload["accessToken"] = self._private_key

        self._logger.debug(f"Sending template '{template_id}' via service '{service_id}'")

        try:
            response = self._client.post(self.api_url, json=payload)
        except httpx.TimeoutException as e:
            self._logger.error(f"Email provider timed out for template '{template_id}': {e}")
            raise TransportError(
                f"Email provider timed out: {e}", template_id=template_id
            ) from e
        except httpx.HTTPError as e:
            self._logger.error(f"Email provider unreachable for template '{template_id}': {e}")
            raise TransportError(
                f"Email provider request failed: {e}", template_id=template_id
            ) from e

        if response.status_code >= 400:
            provider_message = response.text.strip() or response.reason_phrase
            self._logger.error(
                f"Email provider rejected template '{template_id}': "
                f"{response.status_code} {provider_message}"
            )
            raise TransportError(
                provider_message,
                status_code=response.status_code,
                template_id=template_id,
            )

        self._logger.info(f"Email accepted by provider (template '{template_id}')")

    def close(self) -> None:
        """Release pooled connections."""
        self._client.close()
