"""
Pydantic models for the paste record and request/response validation.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from pydantic import BaseModel, Field

_OPTIONAL_INT_FIELDS = ("expires_at", "remaining_views", "max_views")

# Latest instant ms_to_iso can render (start of the last day of year 9999, UTC)
MAX_TIMESTAMP_MS = int(datetime(9999, 12, 31, tzinfo=timezone.utc).timestamp()) * 1000


class Paste(BaseModel):
    """A stored paste. Timestamps are milliseconds since the epoch."""
    id: str
    content: str
    created_at: int
    expires_at: Optional[int] = None
    remaining_views: Optional[int] = None
    max_views: Optional[int] = None

    def to_hash(self) -> Dict[str, str]:
        """
        Flatten into the persisted field layout.

        Integers are stored as decimal strings and absent optional
        fields are left out entirely.
        """
        mapping = {
            "id": self.id,
            "content": self.content,
            "created_at": str(self.created_at),
        }
        for field in _OPTIONAL_INT_FIELDS:
            value = getattr(self, field)
            if value is not None:
                mapping[field] = str(value)
        return mapping

    @classmethod
    def from_hash(cls, mapping: Dict[str, str]) -> "Paste":
        """Rebuild a paste from its persisted field layout."""
        return cls(
            id=mapping["id"],
            content=mapping["content"],
            created_at=int(mapping["created_at"]),
            **{
                field: int(mapping[field])
                for field in _OPTIONAL_INT_FIELDS
                if mapping.get(field) not in (None, "")
            },
        )


def ms_to_iso(timestamp_ms: Optional[int]) -> Optional[str]:
    """Render a millisecond timestamp as an ISO 8601 UTC string."""
    if timestamp_ms is None:
        return None
    seconds, millis = divmod(timestamp_ms, 1000)
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(milliseconds=millis)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class PasteCreate(BaseModel):
    """Schema for creating a new paste."""
    content: str = Field(..., description="Text content (required, non-empty)")
    ttl_seconds: Optional[int] = Field(None, ge=1, strict=True, description="Optional TTL in seconds")
    max_views: Optional[int] = Field(None, ge=1, strict=True, description="Optional view limit")


class PasteResponse(BaseModel):
    """Schema for paste creation response."""
    id: str = Field(..., description="Unique paste ID")
    url: str = Field(..., description="Shareable URL to view the paste")


class PasteView(BaseModel):
    """Schema for viewing/fetching a paste."""
    content: str = Field(..., description="Paste text content")
    remaining_views: Optional[int] = Field(None, description="Views left after this read (null if unlimited)")
    expires_at: Optional[str] = Field(None, description="Expiry timestamp (ISO 8601, null if no TTL)")


class HealthCheck(BaseModel):
    """Schema for health check response."""
    ok: bool = Field(..., description="Is the application healthy?")
