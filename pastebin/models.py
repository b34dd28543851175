"""
Pydantic models for the persisted paste record and request/response validation.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire and in storage."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Paste(CamelModel):
    """The stored paste record."""
    id: str = Field(..., description="Public identifier and storage key")
    title: str = Field(..., description="Display title")
    content: str = Field(..., description="Paste text content")
    language: str = Field("text", description="Language tag")
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")
    expires_at: Optional[datetime] = Field(None, description="Expiry timestamp, null if no TTL")
    consumed: bool = Field(False, description="Already consumed; readers treat it as absent")
    size: int = Field(..., description="UTF-8 byte length of content")
    one_time_view: bool = Field(True, description="Delete on first successful read")

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class PasteInput(CamelModel):
    """Everything the store needs to write a new record."""
    title: str
    content: str
    language: str = "text"
    expires_at: Optional[datetime] = None
    size: int
    one_time_view: bool = True


class PasteCreate(CamelModel):
    """Schema for creating a new paste."""
    title: Optional[str] = Field(None, description="Optional title")
    content: str = Field(..., description="Text content (required, non-empty)")
    language: Optional[str] = Field(None, description="Language tag; detected when omitted")
    expires: Optional[str] = Field(None, description="Symbolic expiry key such as 5m, 1h, 1d")
    expires_in: Optional[int] = Field(None, alias="expires_in", description="Expiry in seconds")
    one_time_view: bool = Field(True, description="Consume the paste on its first view")


class PasteDescriptor(CamelModel):
    """Schema for paste creation response."""
    id: str = Field(..., description="Unique paste ID")
    share_url: str = Field(..., description="Shareable URL to view the paste")
    title: str
    language: str
    expires_at: Optional[datetime] = None
    size: int
    created_at: datetime
    one_time_view: bool
    warnings: List[str] = Field(default_factory=list, description="Non-blocking validation warnings")


class PasteView(CamelModel):
    """Schema for a delivered paste."""
    id: str
    title: str
    content: str = Field(..., description="Paste text content")
    language: str
    size: int
    created_at: datetime
    consumed: bool = Field(..., description="True when this read spent a one-time view")


class PastePreview(CamelModel):
    """Truncated, non-consuming view."""
    id: str
    title: str
    content: str
    language: str
    size: int
    created_at: datetime
    expires_at: Optional[datetime] = None
    truncated: bool
    full_size: int = Field(..., description="Length of the full content in characters")


class PasteMetadata(CamelModel):
    """Existence probe result for a live paste."""
    id: str
    language: str
    size: int
    created_at: datetime
    expires_at: Optional[datetime] = None
    time_remaining: Optional[int] = Field(None, description="Seconds until expiry, null if no TTL")
    one_time_view: bool


class DeleteResponse(CamelModel):
    success: bool = True
    deleted: bool = Field(..., description="False when the paste was already gone")


class PurgeResponse(CamelModel):
    purged: int


class ErrorDetail(BaseModel):
    """Structured failure body, returned under ``detail``."""
    code: str
    message: str


class DailyStats(BaseModel):
    shares: int = 0
    views: int = 0
    errors: int = 0


class LanguageCount(BaseModel):
    language: str
    count: int
    percentage: int


class AnalyticsStats(CamelModel):
    total_shares: int = 0
    total_views: int = 0
    total_expired: int = 0
    total_errors: int = 0
    unique_visitors: Optional[int] = None
    languages: Dict[str, int] = Field(default_factory=dict)
    daily_stats: Dict[str, DailyStats] = Field(default_factory=dict)
    top_languages: List[LanguageCount] = Field(default_factory=list)
    avg_paste_size: int = 0


class ExpiryOption(BaseModel):
    value: str
    seconds: int
    label: str


class PublicConfig(CamelModel):
    max_content_size: int
    max_title_length: int
    supported_languages: List[str]
    expiry_options: List[ExpiryOption]
    default_expiry: str


class HealthCheck(BaseModel):
    """Schema for health check response."""
    ok: bool = Field(..., description="Is the application healthy?")
    storage: str = Field(..., description="Active storage backend")
