"""
Pydantic models for purchases and the collaborator boundaries.

Models:
  PurchaseRecord       - row written to the purchases table
  StorageError         - structured PostgREST error (every field optional)
  StorageResult        - normalized outcome of a storage insert
  NotificationRequest  - confirmation email to send (never persisted)
  EmailResult          - normalized outcome of an email send
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PurchaseRecord(BaseModel):
    """A completed checkout, as persisted."""

    email: Optional[str] = None
    full_name: Optional[str] = None
    domain: Optional[str] = None
    # Session id from the originating event; natural dedup key.
    external_reference: str
    source: str = "stripe"

    def to_row(self) -> dict:
        """Column mapping for the purchases table."""
        return {
            "id": self.external_reference,
            "email": self.email,
            "full_name": self.full_name,
            "domain": self.domain,
            "source": self.source,
        }


class StorageError(BaseModel):
    message: Optional[str] = None
    details: Optional[str] = None
    hint: Optional[str] = None
    code: Optional[str] = None

    def describe(self) -> str:
        """One-line summary for logs, skipping absent parts."""
        parts = [self.message or "unknown storage error"]
        if self.code:
            parts.append(f"code={self.code}")
        if self.details:
            parts.append(f"details={self.details}")
        if self.hint:
            parts.append(f"hint={self.hint}")
        return " ".join(parts)


class StorageResult(BaseModel):
    id: Optional[str] = None
    error: Optional[StorageError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class NotificationRequest(BaseModel):
    """Email payload in the shape the Resend API accepts."""
    model_config = ConfigDict(populate_by_name=True)

    sender: str = Field(alias="from")
    to: str
    subject: str
    html: str

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class EmailResult(BaseModel):
    id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
