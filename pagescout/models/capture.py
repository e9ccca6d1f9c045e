"""Pydantic models for page capture session data.

This module defines the data models used by the page lifecycle controller,
including request records, lifecycle stamps and the aggregated page capture
result assembled from session events.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Any, Union
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator


class RecordState(str, Enum):
    """State of a tracked request record."""
    PENDING = "pending"
    COMPLETED = "completed"
    DISCARDED = "discarded"


class SessionState(str, Enum):
    """Steps of the page session timeline."""
    INIT = "init"
    PAGE_CREATED = "page_created"
    BASELINE_CAPTURED = "baseline_captured"
    INTERCEPTION_ARMED = "interception_armed"
    STARTED = "started"
    NAVIGATING = "navigating"
    LOADED = "loaded"
    NO_MAIN_RECORD = "no_main_record"
    REQUESTS_COLLECTED = "requests_collected"
    HTML_CAPTURED = "html_captured"
    WINDOW_DIFF_COMPUTED = "window_diff_computed"
    DONE = "done"
    CLOSED = "closed"


class CaptureStatus(str, Enum):
    """Overall outcome of a page capture."""
    SUCCESS = "success"
    NO_MAIN_REQUEST = "no_main_request"
    PAGE_ERROR = "page_error"
    FAILED = "failed"


class RequestRecord(BaseModel):
    """Request/response pair tracked for one intercepted request."""

    id: str = Field(description="Opaque request identifier")
    url: Optional[str] = Field(default=None, description="Request URL")
    method: Optional[str] = Field(default=None, description="HTTP method")

    response_status: Optional[int] = Field(
        default=None,
        description="HTTP status code"
    )
    response_headers: Optional[Dict[str, str]] = Field(
        default=None,
        description="Response headers"
    )
    response_body: Optional[Union[str, bytes]] = Field(
        default=None,
        description="Response body (if captured)"
    )

    state: RecordState = Field(
        default=RecordState.PENDING,
        description="Lifecycle state of the record"
    )

    @property
    def is_pending(self) -> bool:
        return self.state == RecordState.PENDING

    @property
    def is_discarded(self) -> bool:
        return self.state == RecordState.DISCARDED

    @property
    def has_body(self) -> bool:
        """Check if a non-empty response body was captured."""
        return bool(self.response_body)

    @property
    def host(self) -> str:
        """Extract host from URL."""
        return urlparse(self.url or "").netloc


class ParsedResponse(BaseModel):
    """Classification of a response by the response parser."""

    ignore: bool = Field(
        default=False,
        description="Whether the response should be discarded"
    )
    status: Optional[int] = Field(default=None, description="HTTP status code")
    headers: Optional[Dict[str, str]] = Field(default=None, description="Response headers")
    body: Optional[Union[str, bytes]] = Field(default=None, description="Response body")


class LifecycleStamp(BaseModel):
    """Payload of the started and loaded events."""

    url: str = Field(description="URL of the session")
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the lifecycle step happened"
    )


class PageCapture(BaseModel):
    """Aggregated result of one page session."""

    url: str = Field(description="Page URL that was captured")
    status: CaptureStatus = Field(
        default=CaptureStatus.FAILED,
        description="Overall capture status"
    )

    started_at: Optional[datetime] = Field(default=None, description="When the session started")
    loaded_at: Optional[datetime] = Field(default=None, description="When navigation settled")
    finished_at: Optional[datetime] = Field(default=None, description="When the capture completed")

    main_request: Optional[RequestRecord] = Field(
        default=None,
        description="Record of the primary document request"
    )
    requests: List[RequestRecord] = Field(
        default_factory=list,
        description="Secondary requests with a captured response body"
    )
    html: Optional[str] = Field(default=None, description="Rendered page markup")
    window_properties: Dict[str, Any] = Field(
        default_factory=dict,
        description="Non-native global variables and their serialized values"
    )

    errors: List[str] = Field(
        default_factory=list,
        description="Session and close errors"
    )
    page_errors: List[str] = Field(
        default_factory=list,
        description="Page runtime errors"
    )
    attempts: int = Field(default=1, description="Number of capture attempts made")

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        """Validate URL format."""
        result = urlparse(v)
        if not result.scheme or not result.netloc:
            raise ValueError(f"Invalid URL: {v}")
        return v

    @property
    def is_successful(self) -> bool:
        return self.status == CaptureStatus.SUCCESS

    @property
    def duration_ms(self) -> Optional[float]:
        """Session duration in milliseconds."""
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds() * 1000
        return None

    def export_summary(self) -> Dict[str, Any]:
        """Export a summary of the capture for reporting."""
        return {
            "url": self.url,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "duration_ms": self.duration_ms,
            "main_request_status": self.main_request.response_status if self.main_request else None,
            "requests": len(self.requests),
            "html_length": len(self.html) if self.html else 0,
            "window_properties": len(self.window_properties),
            "errors": len(self.errors),
            "page_errors": len(self.page_errors),
            "attempts": self.attempts,
        }
