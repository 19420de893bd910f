"""
Checkout session parsing.

Turns a verified checkout.session.completed event into a PurchaseRecord.
Missing data is never an error here: an absent email or custom field
resolves to None and the caller decides what to do with it.

Public API:
  resolve_email(session) -> Optional[str]
  find_custom_field(session, key) -> Optional[str]
  build_purchase_record(event, session, full_name_key, domain_key) -> PurchaseRecord
"""

import logging
from typing import Optional

from app.models.checkout_event import CheckoutSession, StripeEvent
from app.models.purchase import PurchaseRecord

logger = logging.getLogger(__name__)


def resolve_email(session: CheckoutSession) -> Optional[str]:
    """
    Return the customer's email address.

    customer_details.email is what Checkout collected on the form;
    customer_email is what the merchant prefilled when creating the session.
    The collected address wins; a blank one falls through to the prefilled one.
    """
    details_email = session.customer_details.email if session.customer_details else None
    return (details_email or "").strip() or (session.customer_email or "").strip() or None


def find_custom_field(session: CheckoutSession, key: str) -> Optional[str]:
    """Value of the first custom field with this key, or None."""
    for field in session.custom_fields or []:
        if field.key == key:
            return field.value
    return None


def build_purchase_record(
    event: StripeEvent,
    session: CheckoutSession,
    full_name_key: str,
    domain_key: str,
) -> PurchaseRecord:
    full_name = find_custom_field(session, full_name_key)
    domain = find_custom_field(session, domain_key)
    if full_name is None or domain is None:
        logger.info(
            f"Session {session.id or event.id}: custom field missing "
            f"(full_name={'set' if full_name else 'absent'}, "
            f"domain={'set' if domain else 'absent'})"
        )

    return PurchaseRecord(
        email=resolve_email(session),
        full_name=full_name,
        domain=domain,
        external_reference=session.id or event.id,
    )
