"""
Purchase persistence (Supabase / PostgREST).

PurchaseStore is the storage collaborator for the webhook. It never raises:
every failure is folded into a StorageResult so the caller can log it and
carry on.

Duplicate deliveries
--------------------
Rows are keyed by the checkout session id (column ``id``). In the default
insert mode a redelivered event produces a second insert; whether that
creates a duplicate row or a conflict error depends entirely on the table's
constraints. With ``upsert=True`` the store issues
``upsert(on_conflict="id", ignore_duplicates=True)`` instead, which makes
persistence exactly-once when ``id`` is the primary key.
"""

import logging
from typing import Optional

from postgrest.exceptions import APIError
from supabase import Client

from app.models.purchase import PurchaseRecord, StorageError, StorageResult

logger = logging.getLogger(__name__)


def _error_from_api_error(exc: APIError) -> StorageError:
    """Map a PostgREST APIError, tolerating any missing attribute."""
    return StorageError(
        message=getattr(exc, "message", None) or str(exc),
        details=_as_text(getattr(exc, "details", None)),
        hint=_as_text(getattr(exc, "hint", None)),
        code=_as_text(getattr(exc, "code", None)),
    )


def _as_text(value) -> Optional[str]:
    if value is None:
        return None
    return str(value)


class PurchaseStore:
    """Writes PurchaseRecords to a Supabase table."""

    def __init__(self, client: Client, table: str = "purchases", upsert: bool = False):
        self._client = client
        self._table = table
        self._upsert = upsert

    @property
    def table(self) -> str:
        return self._table

    def insert(self, record: PurchaseRecord) -> StorageResult:
        """
        Persist one purchase.

        Returns:
            StorageResult with ``id`` set to the stored row's id when the
            database returned the row, and ``error`` set on failure.
        """
        row = record.to_row()
        try:
            query = self._client.table(self._table)
            if self._upsert:
                query = query.upsert(row, on_conflict="id", ignore_duplicates=True)
            else:
                query = query.insert(row)
            result = query.execute()
        except APIError as e:
            return StorageResult(error=_error_from_api_error(e))
        except Exception as e:
            return StorageResult(error=StorageError(message=str(e)))

        rows = result.data or []
        if not rows:
            if self._upsert:
                # ignore_duplicates returns no rows when the id already exists
                logger.info(f"Purchase {record.external_reference} already recorded")
                return StorageResult(id=record.external_reference)
            return StorageResult(error=StorageError(message="insert returned no data"))

        stored_id = rows[0].get("id")
        return StorageResult(id=str(stored_id) if stored_id is not None else None)

    def ping(self) -> None:
        """Cheap read used by the health check. Raises on failure."""
        self._client.table(self._table).select("id").limit(1).execute()
