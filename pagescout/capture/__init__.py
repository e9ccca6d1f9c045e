"""Page capture engine for Page Scout.

This module drives a single browser page load with Playwright and produces a
structured capture: request/response pairs, rendered markup, and the global
variables the page introduced beyond the browser's native baseline.

Main Components:
- Event Bus: single-handler-per-topic event dispatch
- Request Registry: interception policy and request/response records
- Window Property Differ: native baseline, post-load delta, safe serialization
- Page Lifecycle Controller: the page session timeline
- Capture Collector: assembles session events into a PageCapture
- Capture Engine: shared browser, concurrency and retries

Usage:
    from pagescout.capture import create_capture_engine

    async with create_capture_engine() as engine:
        capture = await engine.capture_page("https://example.com")
"""

__all__ = [
    # Data models
    "RequestRecord",
    "ParsedResponse",
    "LifecycleStamp",
    "PageCapture",

    # Enums
    "RecordState",
    "SessionState",
    "CaptureStatus",

    # Main components
    "EventBus",
    "Topic",
    "RequestRegistry",
    "ResponseParser",
    "WindowPropertyDiffer",
    "PageLifecycleController",
    "SessionConfig",
    "CaptureCollector",
    "CaptureEngine",
    "EngineConfig",
    "BrowserFactory",
    "BrowserConfig",

    # Errors
    "CaptureError",
    "NavigationError",
    "MissingMainRecord",
    "PageRuntimeError",
    "SerializationError",
    "SessionError",
    "CloseError",

    # Convenience functions
    "create_capture_engine",
    "create_browser_factory",
]

from ..models.capture import (
    RequestRecord,
    ParsedResponse,
    LifecycleStamp,
    PageCapture,
    RecordState,
    SessionState,
    CaptureStatus,
)

from .errors import (
    CaptureError,
    NavigationError,
    MissingMainRecord,
    PageRuntimeError,
    SerializationError,
    SessionError,
    CloseError,
)

from .events import EventBus, Topic
from .request_registry import RequestRegistry
from .response_parser import ResponseParser
from .window_properties import WindowPropertyDiffer
from .page_session import PageLifecycleController, SessionConfig
from .collector import CaptureCollector
from .browser_factory import BrowserFactory, BrowserConfig, create_browser_factory
from .engine import CaptureEngine, EngineConfig, create_capture_engine
