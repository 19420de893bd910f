"""
Pydantic models for the signed Stripe event envelope.

Only the fields the webhook reads are modelled; Stripe sends many more and
they are ignored (model_config extra="ignore"). The raw event is never
persisted.

The checkout session is parsed leniently: a custom field or customer_details
object that does not have the expected shape is dropped, so the value it
would have supplied resolves to absent.
"""

import logging
from typing import Any, Optional

from pydantic import BaseModel, ValidationError, field_validator

logger = logging.getLogger(__name__)

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"


class CustomFieldValue(BaseModel):
    """Value holder for text / numeric / dropdown custom fields."""
    model_config = {"extra": "ignore", "coerce_numbers_to_str": True}

    value: Optional[str] = None


class CustomField(BaseModel):
    """
    A processor-collected form value attached to a checkout session.

    Stripe nests the value under a key matching the field type, e.g.
    {"key": "fullname", "type": "text", "text": {"value": "Jane"}}.
    A field without a key never matches a lookup.
    """
    model_config = {"extra": "ignore"}

    key: Optional[str] = None
    type: Optional[str] = None
    text: Optional[CustomFieldValue] = None
    numeric: Optional[CustomFieldValue] = None
    dropdown: Optional[CustomFieldValue] = None

    @property
    def value(self) -> Optional[str]:
        """The field's value regardless of its type, or None if unset."""
        for holder in (self.text, self.dropdown, self.numeric):
            if holder is not None and holder.value:
                return holder.value
        return None


class CustomerDetails(BaseModel):
    model_config = {"extra": "ignore"}

    email: Optional[str] = None
    name: Optional[str] = None


class CheckoutSession(BaseModel):
    """The data.object of a checkout.session.completed event."""
    model_config = {"extra": "ignore"}

    id: Optional[str] = None
    customer_details: Optional[CustomerDetails] = None
    customer_email: Optional[str] = None
    custom_fields: Optional[list[CustomField]] = None

    @field_validator("customer_details", mode="before")
    @classmethod
    def _drop_malformed_details(cls, value):
        if value is None:
            return None
        try:
            return CustomerDetails.model_validate(value)
        except ValidationError:
            logger.warning("Ignoring malformed customer_details on checkout session")
            return None

    @field_validator("custom_fields", mode="before")
    @classmethod
    def _drop_malformed_fields(cls, value):
        if value is None:
            return None
        if not isinstance(value, list):
            logger.warning("Ignoring non-list custom_fields on checkout session")
            return None
        fields = []
        for entry in value:
            try:
                fields.append(CustomField.model_validate(entry))
            except ValidationError:
                logger.warning("Ignoring malformed custom field on checkout session")
        return fields


class EventData(BaseModel):
    model_config = {"extra": "ignore"}

    object: dict[str, Any] = {}


class StripeEvent(BaseModel):
    """Verified event envelope."""
    model_config = {"extra": "ignore"}

    id: str
    type: str
    livemode: bool = False
    data: EventData = EventData()

    def checkout_session(self) -> CheckoutSession:
        """
        Parse data.object as a checkout session.

        Never raises: a session whose scalar fields have the wrong types is
        replaced by an empty session, so every value it carries is absent.
        """
        try:
            return CheckoutSession.model_validate(self.data.object)
        except ValidationError as e:
            logger.warning(
                f"Event {self.id}: unreadable checkout session "
                f"({e.error_count()} validation errors); treating fields as absent"
            )
            return CheckoutSession()
