"""
Collaborator providers for FastAPI dependency injection.

Each collaborator is built once per process from Settings. Routes receive
them through Depends(), so tests swap in substitutes with
app.dependency_overrides instead of patching module globals.
"""

from functools import lru_cache

from app.config import get_settings
from app.db import get_supabase_admin
from app.services.email_sender import ResendEmailSender
from app.services.purchase_store import PurchaseStore


@lru_cache(maxsize=1)
def get_purchase_store() -> PurchaseStore:
    settings = get_settings()
    return PurchaseStore(
        get_supabase_admin(),
        table=settings.purchases_table,
        upsert=settings.purchases_upsert,
    )


@lru_cache(maxsize=1)
def get_email_sender() -> ResendEmailSender:
    settings = get_settings()
    return ResendEmailSender(
        api_key=settings.resend_api_key,
        base_url=settings.resend_api_url,
        timeout=settings.email_timeout_seconds,
    )
