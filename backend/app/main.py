"""
Checkout Webhook API
FastAPI application that records Stripe checkouts and emails a confirmation.
"""

import logging
import os

from fastapi import Depends, FastAPI, HTTPException

from app.config import get_settings
from app.dependencies import get_email_sender, get_purchase_store
from app.routers import webhook
from app.services.purchase_store import PurchaseStore

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Checkout Webhook API",
    description="Records Stripe checkout completions and sends confirmation emails",
    version="0.1.0",
)

app.include_router(webhook.router, prefix="/api", tags=["webhook"])


@app.on_event("startup")
async def validate_configuration() -> None:
    """
    Fail fast on missing credentials.

    Loading settings raises ValueError when a required variable is absent;
    building the collaborators here also surfaces a malformed Supabase URL
    before the first webhook arrives.
    """
    settings = get_settings()
    get_purchase_store()
    get_email_sender()
    logger.info(
        "Checkout webhook ready on port %s (table=%s, upsert=%s)",
        os.getenv("HOST_PORT", "8000"),
        settings.purchases_table,
        settings.purchases_upsert,
    )


@app.on_event("shutdown")
async def close_collaborators() -> None:
    """Close the email sender's HTTP client if one was built."""
    if get_email_sender.cache_info().currsize:
        get_email_sender().close()
        get_email_sender.cache_clear()


@app.get("/")
async def root():
    return {"message": "Checkout Webhook API", "version": "0.1.0"}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/health/db")
def health_db(store: PurchaseStore = Depends(get_purchase_store)):
    """
    Test the Supabase database connection.

    Selects one id from the purchases table. Returns 503 on failure.
    """
    try:
        store.ping()
        return {"status": "ok", "database": "reachable"}
    except Exception as exc:
        logger.error(f"Database health check failed: {exc}")
        raise HTTPException(
            status_code=503,
            detail=f"Database connection failed: {str(exc)}",
        )
