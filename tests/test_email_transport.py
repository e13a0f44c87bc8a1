"""
Unit tests for the email transport.

Provider calls go through httpx.MockTransport; nothing leaves the process.
"""

import json

import httpx
import pytest

from core.email_transport import DEFAULT_API_URL, EmailTransport, flatten_variables
from core.exceptions import TransportError


# Fixtures

@pytest.fixture
def captured():
    """Requests seen by the mock provider."""
    return []


def make_transport(captured, handler=None, private_key=None):
    def default_handler(request):
        captured.append(request)
        return httpx.Response(200, text="OK")

    client = httpx.Client(transport=httpx.MockTransport(handler or default_handler))
    return EmailTransport(private_key=private_key, client=client)


# Tests for flatten_variables

class TestFlattenVariables:
    """Template variables are bound as a flat string mapping."""

    def test_scalars_become_strings(self):
        flat = flatten_variables({"count": 3, "price": 49.5, "name": "Asha"})
        assert flat == {"count": "3", "price": "49.5", "name": "Asha"}

    def test_none_becomes_empty_string(self):
        assert flatten_variables({"description": None}) == {"description": ""}

    def test_booleans_are_lowercase(self):
        assert flatten_variables({"a": True, "b": False}) == {"a": "true", "b": "false"}

    @pytest.mark.parametrize("value", [{"nested": 1}, [1, 2], ("a",), {"x"}])
    def test_nested_values_rejected(self, value):
        with pytest.raises(TypeError):
            flatten_variables({"documents": value})

    def test_non_string_key_rejected(self):
        with pytest.raises(TypeError):
            flatten_variables({1: "one"})


# Tests for send

class TestEmailTransportSend:
    """One POST per send, errors surfaced as TransportError."""

    def test_requires_api_url(self):
        with pytest.raises(ValueError):
            EmailTransport(api_url="")

    def test_posts_payload(self, captured):
        transport = make_transport(captured)

        transport.send(
            service_id="service_abc",
            template_id="document_delivery",
            variables={"customer_name": "Asha", "documents_count": 2},
            auth_key="public-key",
        )

        assert len(captured) == 1
        request = captured[0]
        assert request.method == "POST"
        assert str(request.url) == DEFAULT_API_URL

        body = json.loads(request.content)
        assert body == {
            "service_id": "service_abc",
            "template_id": "document_delivery",
            "user_id": "public-key",
            "template_params": {"customer_name": "Asha", "documents_count": "2"},
        }

    def test_private_key_sent_as_access_token(self, captured):
        transport = make_transport(captured, private_key="secret")

        transport.send("service_abc", "contact", {}, "public-key")

        body = json.loads(captured[0].content)
        assert body["accessToken"] == "secret"

    def test_nested_variables_never_reach_provider(self, captured):
        transport = make_transport(captured)

        with pytest.raises(TypeError):
            transport.send("service_abc", "contact", {"documents": [1, 2]}, "public-key")

        assert captured == []

    def test_rejection_raises_with_provider_message(self, captured):
        def handler(request):
            return httpx.Response(400, text="The template ID is invalid")

        transport = make_transport(captured, handler=handler)

        with pytest.raises(TransportError) as exc_info:
            transport.send("service_abc", "missing_template", {}, "public-key")

        error = exc_info.value
        assert error.message == "The template ID is invalid"
        assert error.status_code == 400
        assert error.template_id == "missing_template"

    def test_empty_error_body_uses_reason_phrase(self, captured):
        def handler(request):
            return httpx.Response(429)

        transport = make_transport(captured, handler=handler)

        with pytest.raises(TransportError) as exc_info:
            transport.send("service_abc", "contact", {}, "public-key")

        assert exc_info.value.message == "Too Many Requests"
        assert exc_info.value.status_code == 429

    def test_connection_failure(self, captured):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        transport = make_transport(captured, handler=handler)

        with pytest.raises(TransportError) as exc_info:
            transport.send("service_abc", "contact", {}, "public-key")

        assert "request failed" in exc_info.value.message
        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_timeout(self, captured):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        transport = make_transport(captured, handler=handler)

        with pytest.raises(TransportError) as exc_info:
            transport.send("service_abc", "contact", {}, "public-key")

        assert "timed out" in exc_info.value.message
