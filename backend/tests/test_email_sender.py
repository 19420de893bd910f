"""
Unit tests for the Resend email sender.
Tests response-shape normalization and HTTP behavior via httpx.MockTransport.
"""

import json
import os

import httpx
import pytest

os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "header.payload.signature")
os.environ.setdefault("RESEND_API_KEY", "re_test_key")

from app.models.purchase import NotificationRequest
from app.services.email_sender import ResendEmailSender, normalize_send_response


def _notification() -> NotificationRequest:
    return NotificationRequest(
        sender="orders@example.com",
        to="a@example.com",
        subject="Your order",
        html="<p>Thanks</p>",
    )


class TestNormalizeSendResponse:

    def test_plain_id(self):
        result = normalize_send_response({"id": "email-1"})
        assert result.id == "email-1"
        assert result.ok

    def test_wrapped_data_id(self):
        result = normalize_send_response({"data": {"id": "email-2"}, "error": None})
        assert result.id == "email-2"
        assert result.error is None

    def test_wrapped_error_object(self):
        result = normalize_send_response(
            {"data": None, "error": {"message": "Invalid `to` field", "name": "validation_error"}}
        )
        assert result.id is None
        assert result.error == "Invalid `to` field"
        assert not result.ok

    def test_bare_error_string(self):
        result = normalize_send_response({"error": "rate limited"})
        assert result.error == "rate limited"

    def test_rest_error_envelope(self):
        result = normalize_send_response(
            {"statusCode": 403, "name": "invalid_api_key", "message": "API key is invalid"}
        )
        assert result.error == "invalid_api_key: API key is invalid"

    @pytest.mark.parametrize("body", [None, [], "ok", {}])
    def test_unrecognized_bodies_are_errors(self, body):
        result = normalize_send_response(body)
        assert result.id is None
        assert result.error


class TestResendEmailSender:

    def _sender(self, handler) -> ResendEmailSender:
        return ResendEmailSender(
            api_key="re_test_key",
            base_url="https://api.resend.test",
            transport=httpx.MockTransport(handler),
        )

    def test_posts_payload_with_bearer_auth(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "email-1"})

        result = self._sender(handler).send(_notification())

        assert result.id == "email-1"
        assert seen["url"] == "https://api.resend.test/emails"
        assert seen["auth"] == "Bearer re_test_key"
        assert seen["body"] == {
            "from": "orders@example.com",
            "to": "a@example.com",
            "subject": "Your order",
            "html": "<p>Thanks</p>",
        }

    def test_http_error_with_error_body(self):
        def handler(request):
            return httpx.Response(
                422, json={"statusCode": 422, "name": "validation_error", "message": "bad from"}
            )

        result = self._sender(handler).send(_notification())

        assert result.error == "validation_error: bad from"

    def test_http_error_without_json_body(self):
        def handler(request):
            return httpx.Response(502, text="Bad Gateway")

        result = self._sender(handler).send(_notification())

        assert result.error == "Email API returned HTTP 502"

    def test_transport_failure_is_returned_not_raised(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = self._sender(handler).send(_notification())

        assert result.id is None
        assert "connection refused" in result.error
