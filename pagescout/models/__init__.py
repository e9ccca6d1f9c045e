"""Capture data models package."""

from .capture import (
    RecordState,
    SessionState,
    CaptureStatus,
    RequestRecord,
    ParsedResponse,
    LifecycleStamp,
    PageCapture,
)

__all__ = [
    'RecordState',
    'SessionState',
    'CaptureStatus',
    'RequestRecord',
    'ParsedResponse',
    'LifecycleStamp',
    'PageCapture',
]
