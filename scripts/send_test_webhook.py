#!/usr/bin/env python3
"""
Dev helper: send a signed Stripe webhook to the local backend.

Builds a checkout.session.completed event (or any other --type), signs it
with STRIPE_WEBHOOK_SECRET exactly the way Stripe does, and POSTs it to the
/api/webhook endpoint.

Usage
-----
# Basic - checkout completion with sample customer data, targeting localhost:8000
python scripts/send_test_webhook.py

# Custom customer data
python scripts/send_test_webhook.py --email jane@example.com --full-name Jane --domain example.org

# Session without any email (the backend should skip the confirmation email)
python scripts/send_test_webhook.py --no-email

# An event type the backend ignores
python scripts/send_test_webhook.py --type payment_intent.created

# Deliberately broken signature (expect HTTP 400)
python scripts/send_test_webhook.py --bad-signature

Environment / .env
------------------
STRIPE_WEBHOOK_SECRET      Signing secret (required unless --secret is given).
CHECKOUT_FULL_NAME_FIELD   Custom-field key for the name (optional).
CHECKOUT_DOMAIN_FIELD      Custom-field key for the domain (optional).
"""

import argparse
import hashlib
import hmac
import json
import os
import sys
import textwrap
import time
import uuid
from pathlib import Path

import httpx
from dotenv import load_dotenv

_DEFAULT_FULL_NAME_FIELD = "websiteurlsubdomainssoldseparately"
_DEFAULT_DOMAIN_FIELD = "websiteurlsubdomainssoldseparately1"


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------

def _text_field(key: str, value: str) -> dict:
    return {
        "key": key,
        "label": {"custom": key, "type": "custom"},
        "optional": False,
        "type": "text",
        "text": {"value": value},
    }


def build_event(
    event_type: str,
    email: str | None,
    full_name: str,
    domain: str,
    full_name_key: str,
    domain_key: str,
) -> dict:
    """Build a minimal Stripe event envelope around a checkout session."""
    session_id = f"cs_test_{uuid.uuid4().hex[:24]}"
    session = {
        "id": session_id,
        "object": "checkout.session",
        "mode": "payment",
        "payment_status": "paid",
        "customer_details": {"email": email, "name": full_name},
        "customer_email": None,
        "custom_fields": [
            _text_field(full_name_key, full_name),
            _text_field(domain_key, domain),
        ],
    }
    return {
        "id": f"evt_test_{uuid.uuid4().hex[:24]}",
        "object": "event",
        "type": event_type,
        "created": int(time.time()),
        "livemode": False,
        "data": {"object": session},
    }


def sign_payload(payload: str, secret: str, timestamp: int | None = None) -> str:
    """Return a Stripe-Signature header value for payload."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


# ---------------------------------------------------------------------------
# Pretty printer
# ---------------------------------------------------------------------------

def _print_response(response) -> None:
    status = response.status_code
    symbol = "OK" if status == 200 else "FAIL"
    print(f"\n[{symbol}] HTTP {status}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> int:
    # scripts/ lives one level below the project root
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    load_dotenv(project_root / "backend" / ".env")

    parser = argparse.ArgumentParser(
        prog="send_test_webhook.py",
        description=textwrap.dedent("""\
            Send a signed Stripe webhook to the checkout webhook backend.

            Reads STRIPE_WEBHOOK_SECRET from the environment or a .env file
            in the project root.
        """),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--url", default="http://localhost:8000",
                        help="Backend base URL (default: http://localhost:8000)")
    parser.add_argument("--type", dest="event_type", default="checkout.session.completed",
                        help="Event type (default: checkout.session.completed)")
    parser.add_argument("--email", default="customer@example.com",
                        help="customer_details.email (default: customer@example.com)")
    parser.add_argument("--no-email", action="store_true",
                        help="Send a session with no customer email.")
    parser.add_argument("--full-name", default="Jane Example",
                        help='Full-name custom field value (default: "Jane Example")')
    parser.add_argument("--domain", default="example.org",
                        help="Domain custom field value (default: example.org)")
    parser.add_argument("--secret", default=None, metavar="SECRET",
                        help="Override STRIPE_WEBHOOK_SECRET.")
    parser.add_argument("--bad-signature", action="store_true",
                        help="Sign with the wrong secret to exercise the 400 path.")
    parser.add_argument("--dry-run", action="store_true",
                        help="Print the payload and signature without sending.")

    args = parser.parse_args()

    secret = args.secret or os.getenv("STRIPE_WEBHOOK_SECRET", "")
    if not secret and not args.dry_run:
        print(
            "ERROR: No signing secret found.\n"
            "Set STRIPE_WEBHOOK_SECRET in your environment or .env file, "
            "or pass --secret.",
            file=sys.stderr,
        )
        return 1

    event = build_event(
        event_type=args.event_type,
        email=None if args.no_email else args.email,
        full_name=args.full_name,
        domain=args.domain,
        full_name_key=os.getenv("CHECKOUT_FULL_NAME_FIELD") or _DEFAULT_FULL_NAME_FIELD,
        domain_key=os.getenv("CHECKOUT_DOMAIN_FIELD") or _DEFAULT_DOMAIN_FIELD,
    )
    payload = json.dumps(event)
    signing_secret = "whsec_wrong" if args.bad_signature else (secret or "whsec_dry_run")
    signature = sign_payload(payload, signing_secret)

    endpoint = f"{args.url.rstrip('/')}/api/webhook"

    print(f"Endpoint  : {endpoint}")
    print(f"Event     : {event['id']} ({event['type']})")
    print(f"Session   : {event['data']['object']['id']}")

    if args.dry_run:
        print("\n[DRY RUN] Stripe-Signature:", signature)
        print(json.dumps(event, indent=2))
        return 0

    try:
        response = httpx.post(
            endpoint,
            content=payload.encode("utf-8"),
            headers={"Content-Type": "application/json", "Stripe-Signature": signature},
            timeout=30,
        )
    except httpx.ConnectError:
        print(
            f"\nERROR: Could not connect to {endpoint}\n"
            "Is the backend running? Start it with:\n"
            "  cd backend && uvicorn app.main:app --reload",
            file=sys.stderr,
        )
        return 1

    _print_response(response)
    return 0 if response.status_code == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
