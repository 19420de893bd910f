"""
Outbound email via the Resend HTTP API.

ResendEmailSender is the email collaborator for the webhook. Like the
storage collaborator it never raises; every outcome is normalized into an
EmailResult.

Resend response shapes
----------------------
The send call has been observed to answer in several shapes depending on the
client/SDK version in front of it:

  {"id": "..."}                                   plain REST success
  {"data": {"id": "..."}, "error": null}          SDK-wrapped success
  {"data": null, "error": {"message": "..."}}     SDK-wrapped failure
  {"error": "..."}                                bare error string
  {"statusCode": 422, "name": "...", "message": "..."}   REST failure

normalize_send_response() maps all of them to EmailResult so nothing above
this module branches on the provider's shape.
"""

import logging
from typing import Any, Optional

import httpx

from app.models.purchase import EmailResult, NotificationRequest

logger = logging.getLogger(__name__)

DEFAULT_RESEND_API_URL = "https://api.resend.com"


def _error_text(error: Any) -> Optional[str]:
    if error is None:
        return None
    if isinstance(error, dict):
        return error.get("message") or error.get("name") or str(error)
    return str(error) or None


def normalize_send_response(body: Any) -> EmailResult:
    """Normalize any known Resend response body to an EmailResult."""
    if not isinstance(body, dict):
        return EmailResult(error="Unexpected email response")

    error = _error_text(body.get("error"))
    if error:
        return EmailResult(error=error)

    # REST error envelope
    if body.get("statusCode") and body.get("message"):
        return EmailResult(error=f"{body.get('name') or 'error'}: {body['message']}")

    email_id = body.get("id")
    data = body.get("data")
    if not email_id and isinstance(data, dict):
        email_id = data.get("id")

    if not email_id:
        return EmailResult(error="Email response did not include an id")
    return EmailResult(id=str(email_id))


class ResendEmailSender:
    """Sends NotificationRequests through Resend's /emails endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_RESEND_API_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._client = httpx.Client(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    def send(self, request: NotificationRequest) -> EmailResult:
        try:
            response = self._client.post("/emails", json=request.to_payload())
        except httpx.HTTPError as e:
            return EmailResult(error=f"Email request failed: {e}")

        try:
            body = response.json()
        except ValueError:
            body = None

        result = normalize_send_response(body)
        if response.is_error and result.ok:
            # 4xx/5xx with a body that looked like success
            return EmailResult(error=f"Email API returned HTTP {response.status_code}")
        if response.is_error and body is None:
            return EmailResult(error=f"Email API returned HTTP {response.status_code}")
        return result

    def close(self) -> None:
        self._client.close()
