"""
Stripe checkout webhook router.

Receives checkout.session.completed events, records the purchase and sends a
confirmation email.

Response contract (the only statuses Stripe ever sees):
  405  any method other than POST (empty body)
  400  signature missing/invalid/stale, or a body that is not an event
       envelope (plain text)
  200  {"received": true} for everything else, including storage and email
       failures; Stripe retries any non-2xx, and a retry cannot fix those.

Endpoints:
  POST /webhook   - Stripe webhook (auth: Stripe-Signature header)
"""

import logging
from typing import Optional

import stripe
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, Response
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from app.config import Settings, get_settings
from app.dependencies import get_email_sender, get_purchase_store
from app.models.checkout_event import (
    CHECKOUT_SESSION_COMPLETED,
    CheckoutSession,
    StripeEvent,
)
from app.services.checkout_parser import build_purchase_record
from app.services.email_sender import ResendEmailSender
from app.services.email_template import build_confirmation
from app.services.purchase_store import PurchaseStore

logger = logging.getLogger(__name__)

router = APIRouter()

# Every method is routed here so non-POST requests get an empty 405 rather
# than FastAPI's JSON error body.
_ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class WebhookRejected(Exception):
    """The request could not be authenticated or parsed; maps to HTTP 400."""


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------

def verify_event(
    payload: bytes,
    signature: Optional[str],
    secret: str,
    tolerance: int,
) -> StripeEvent:
    """
    Verify the Stripe-Signature header over the raw body and parse the event.

    The signature covers the exact bytes Stripe sent, so the body must not be
    decoded as JSON (or otherwise re-serialized) before this check.

    Raises:
        WebhookRejected: missing header, non-UTF-8 body, signature mismatch,
            timestamp outside tolerance, or a body that is not an event.
    """
    if not signature:
        raise WebhookRejected("Missing Stripe-Signature header")

    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError:
        raise WebhookRejected("Payload is not valid UTF-8")

    try:
        stripe.WebhookSignature.verify_header(text, signature, secret, tolerance)
    except stripe.SignatureVerificationError as e:
        raise WebhookRejected(getattr(e, "user_message", None) or str(e))

    try:
        return StripeEvent.model_validate_json(payload)
    except ValidationError as e:
        raise WebhookRejected(f"Invalid payload ({e.error_count()} validation errors)")


# ---------------------------------------------------------------------------
# Processing
# ---------------------------------------------------------------------------

def _process_checkout_completed(
    event: StripeEvent,
    session: CheckoutSession,
    settings: Settings,
    store: PurchaseStore,
    sender: ResendEmailSender,
) -> None:
    """
    Record the purchase, then send the confirmation email.

    Best effort: neither step can fail the request. A storage failure does not
    stop the email, it only drops the order reference from it.
    """
    record = build_purchase_record(
        event,
        session,
        full_name_key=settings.full_name_field_key,
        domain_key=settings.domain_field_key,
    )
    reference = record.external_reference

    # 1. Persist
    purchase_id: Optional[str] = None
    try:
        stored = store.insert(record)
    except Exception as e:
        logger.error(f"Purchase insert raised for {reference}: {e}")
    else:
        if stored.ok:
            purchase_id = stored.id
            logger.info(f"Purchase {reference} recorded (id={purchase_id})")
        else:
            logger.error(f"Purchase insert failed for {reference}: {stored.error.describe()}")

    # 2. Notify
    if not record.email:
        logger.warning(f"No customer email on session {reference}; skipping confirmation email")
        return

    try:
        notification = build_confirmation(
            record,
            sender=settings.email_from,
            subject=settings.email_subject,
            purchase_id=purchase_id,
            template=settings.email_html_template,
        )
        sent = sender.send(notification)
    except Exception as e:
        logger.error(f"Confirmation email raised for {reference}: {e}")
        return

    if sent.ok:
        logger.info(f"Confirmation email sent for {reference} (id={sent.id})")
    else:
        logger.error(f"Confirmation email failed for {reference}: {sent.error}")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.api_route("/webhook", methods=_ALL_METHODS)
async def stripe_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    store: PurchaseStore = Depends(get_purchase_store),
    sender: ResendEmailSender = Depends(get_email_sender),
):
    """
    Stripe webhook receiver.

    Only checkout.session.completed causes side effects; every other verified
    event is acknowledged and ignored so Stripe does not retry it.
    """
    if request.method != "POST":
        return Response(status_code=405, headers={"Allow": "POST"})

    payload = await request.body()
    try:
        event = verify_event(
            payload,
            request.headers.get("stripe-signature"),
            settings.stripe_webhook_secret,
            settings.signature_tolerance_seconds,
        )
    except WebhookRejected as e:
        logger.warning(f"Rejected webhook: {e}")
        return PlainTextResponse(f"Webhook Error: {e}", status_code=400)

    logger.info(f"Received event {event.id} ({event.type})")

    if event.type != CHECKOUT_SESSION_COMPLETED:
        return {"received": True}

    session = event.checkout_session()
    await run_in_threadpool(_process_checkout_completed, event, session, settings, store, sender)
    return {"received": True}
