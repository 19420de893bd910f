"""
Runtime configuration.

Settings are read from the process environment, with a local .env file loaded
first when present. Required credentials are validated once and a ValueError
listing every missing variable is raised, so a misconfigured deployment fails
at startup instead of on the first webhook delivery.

Environment variables
---------------------
STRIPE_WEBHOOK_SECRET       Signing secret for the webhook endpoint (required).
STRIPE_SIGNATURE_TOLERANCE  Max age in seconds of a signed timestamp (default 300,
                            must be positive).
SUPABASE_URL                Supabase project URL (required).
SUPABASE_SERVICE_ROLE_KEY   Service-role key (required). SUPABASE_SECRET is
                            accepted as an alias.
PURCHASES_TABLE             Table that receives purchase rows (default "purchases").
PURCHASES_UPSERT            "true" to upsert on id and ignore duplicates.
RESEND_API_KEY              Resend API key (required).
RESEND_API_URL              Resend API base URL (default https://api.resend.com).
EMAIL_TIMEOUT_SECONDS       HTTP timeout for the email call (default 10).
EMAIL_FROM                  Sender address for confirmation emails.
EMAIL_SUBJECT               Subject line for confirmation emails.
EMAIL_HTML_TEMPLATE         Optional HTML body template ($full_name, $domain,
                            $email, $purchase_id placeholders).
CHECKOUT_FULL_NAME_FIELD    Custom-field key holding the customer's name.
CHECKOUT_DOMAIN_FIELD       Custom-field key holding the customer's domain.
"""

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

DEFAULT_FULL_NAME_FIELD = "websiteurlsubdomainssoldseparately"
DEFAULT_DOMAIN_FIELD = "websiteurlsubdomainssoldseparately1"

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Validated application settings."""

    stripe_webhook_secret: str
    signature_tolerance_seconds: int = 300

    supabase_url: str
    supabase_service_key: str
    purchases_table: str = "purchases"
    purchases_upsert: bool = False

    resend_api_key: str
    resend_api_url: str = "https://api.resend.com"
    email_timeout_seconds: float = 10.0
    email_from: str = "onboarding@resend.dev"
    email_subject: str = "Thanks for your purchase"
    email_html_template: Optional[str] = None

    full_name_field_key: str = DEFAULT_FULL_NAME_FIELD
    domain_field_key: str = DEFAULT_DOMAIN_FIELD


def _env(name: str) -> Optional[str]:
    """Return the stripped value of an env var, or None when unset/blank."""
    value = os.getenv(name, "").strip()
    return value or None


def load_settings() -> Settings:
    """
    Build Settings from the environment.

    Raises:
        ValueError: if any required variable is missing. The message names
            every missing variable, not just the first.
    """
    required = {
        "STRIPE_WEBHOOK_SECRET": _env("STRIPE_WEBHOOK_SECRET"),
        "SUPABASE_URL": _env("SUPABASE_URL"),
        "SUPABASE_SERVICE_ROLE_KEY": (
            _env("SUPABASE_SERVICE_ROLE_KEY") or _env("SUPABASE_SECRET")
        ),
        "RESEND_API_KEY": _env("RESEND_API_KEY"),
    }
    missing = [name for name, value in required.items() if not value]
    if missing:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    # Optional values: only pass what is set so model defaults apply otherwise.
    optional: dict = {}
    if _env("STRIPE_SIGNATURE_TOLERANCE"):
        tolerance = int(_env("STRIPE_SIGNATURE_TOLERANCE"))
        # stripe skips the timestamp check entirely for a falsy tolerance
        if tolerance <= 0:
            raise ValueError(
                f"STRIPE_SIGNATURE_TOLERANCE must be a positive number of seconds, got {tolerance}"
            )
        optional["signature_tolerance_seconds"] = tolerance
    if _env("PURCHASES_TABLE"):
        optional["purchases_table"] = _env("PURCHASES_TABLE")
    if _env("PURCHASES_UPSERT"):
        optional["purchases_upsert"] = _env("PURCHASES_UPSERT").lower() in _TRUTHY
    if _env("RESEND_API_URL"):
        optional["resend_api_url"] = _env("RESEND_API_URL").rstrip("/")
    if _env("EMAIL_TIMEOUT_SECONDS"):
        optional["email_timeout_seconds"] = float(_env("EMAIL_TIMEOUT_SECONDS"))
    if _env("EMAIL_FROM"):
        optional["email_from"] = _env("EMAIL_FROM")
    if _env("EMAIL_SUBJECT"):
        optional["email_subject"] = _env("EMAIL_SUBJECT")
    if _env("EMAIL_HTML_TEMPLATE"):
        optional["email_html_template"] = _env("EMAIL_HTML_TEMPLATE")
    if _env("CHECKOUT_FULL_NAME_FIELD"):
        optional["full_name_field_key"] = _env("CHECKOUT_FULL_NAME_FIELD")
    if _env("CHECKOUT_DOMAIN_FIELD"):
        optional["domain_field_key"] = _env("CHECKOUT_DOMAIN_FIELD")

    return Settings(
        stripe_webhook_secret=required["STRIPE_WEBHOOK_SECRET"],
        supabase_url=required["SUPABASE_URL"],
        supabase_service_key=required["SUPABASE_SERVICE_ROLE_KEY"],
        resend_api_key=required["RESEND_API_KEY"],
        **optional,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, loaded on first use. FastAPI dependency."""
    return load_settings()
