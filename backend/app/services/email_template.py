"""
Confirmation email rendering.

The HTML body is a string.Template so operators can supply their own via
EMAIL_HTML_TEMPLATE without code changes. Available placeholders:

  $full_name    customer name from the checkout form (or "there")
  $domain       domain from the checkout form (or "your domain")
  $email        recipient address
  $purchase_id  stored purchase id; the reference line is dropped when unknown

All substituted values are HTML-escaped. Unknown placeholders are left as-is.
"""

import html
from string import Template
from typing import Optional

from app.models.purchase import NotificationRequest, PurchaseRecord

DEFAULT_HTML_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; max-width: 600px;">
  <h2 style="margin: 0 0 12px 0;">Thanks for your purchase, $full_name!</h2>
  <p>We've received your order for <strong>$domain</strong> and are getting it set up.</p>
  <p>We'll follow up at $email once everything is ready.</p>
  $reference_line
</div>
"""

_REFERENCE_LINE = '<p style="font-size: 12px; color: #777;">Order reference: $purchase_id</p>'


def render_html(
    record: PurchaseRecord,
    purchase_id: Optional[str] = None,
    template: Optional[str] = None,
) -> str:
    values = {
        "full_name": html.escape(record.full_name or "there"),
        "domain": html.escape(record.domain or "your domain"),
        "email": html.escape(record.email or ""),
        "purchase_id": html.escape(purchase_id or ""),
    }
    values["reference_line"] = (
        Template(_REFERENCE_LINE).safe_substitute(values) if purchase_id else ""
    )
    return Template(template or DEFAULT_HTML_TEMPLATE).safe_substitute(values)


def build_confirmation(
    record: PurchaseRecord,
    sender: str,
    subject: str,
    purchase_id: Optional[str] = None,
    template: Optional[str] = None,
) -> NotificationRequest:
    """
    Build the confirmation email for a purchase.

    The caller must check record.email first; a NotificationRequest always
    has a recipient.
    """
    if not record.email:
        raise ValueError("Cannot build a confirmation email without a recipient")

    return NotificationRequest(
        sender=sender,
        to=record.email,
        subject=subject,
        html=render_html(record, purchase_id=purchase_id, template=template),
    )
