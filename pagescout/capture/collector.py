"""Collector that turns session events into a PageCapture result."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from .events import EventBus, Topic
from ..models.capture import CaptureStatus, LifecycleStamp, PageCapture, RequestRecord

logger = logging.getLogger(__name__)


class CaptureCollector:
    """Registers a handler for every session topic and assembles the result.

    Because the bus holds one handler per topic, attaching a collector takes
    over all topics of that bus.
    """

    def __init__(self, url: str):
        self.url = url
        self.capture = PageCapture(url=url)
        self._done = False

    def attach(self, bus: EventBus) -> "CaptureCollector":
        bus.register(Topic.STARTED, self._on_started)
        bus.register(Topic.LOADED, self._on_loaded)
        bus.register(Topic.INITIAL_RESPONSE, self._on_initial_response)
        bus.register(Topic.RESPONSE, self._on_response)
        bus.register(Topic.REQUESTS, self._on_requests)
        bus.register(Topic.HTML, self._on_html)
        bus.register(Topic.WINDOW_PROPERTIES, self._on_window_properties)
        bus.register(Topic.DONE, self._on_done)
        bus.register(Topic.PAGE_ERROR, self._on_page_error)
        bus.register(Topic.ERROR, self._on_error)
        return self

    def _on_started(self, stamp: LifecycleStamp) -> None:
        self.capture.started_at = stamp.timestamp

    def _on_loaded(self, stamp: LifecycleStamp) -> None:
        self.capture.loaded_at = stamp.timestamp

    def _on_initial_response(self, record: RequestRecord) -> None:
        self.capture.main_request = record

    def _on_response(self, record: RequestRecord) -> None:
        logger.debug(f"Response: {record.response_status} {record.url}")

    def _on_requests(self, records: List[RequestRecord]) -> None:
        self.capture.requests = list(records)

    def _on_html(self, html: str) -> None:
        self.capture.html = html

    def _on_window_properties(self, properties: Dict[str, Any]) -> None:
        self.capture.window_properties = dict(properties)

    def _on_done(self, timestamp: datetime) -> None:
        self.capture.finished_at = timestamp
        self._done = True

    def _on_page_error(self, error: Any) -> None:
        self.capture.page_errors.append(str(error))

    def _on_error(self, error: Any) -> None:
        if isinstance(error, dict):
            message = f"{error.get('message')}: {error.get('error')}"
        else:
            message = str(error)
        self.capture.errors.append(message)

    def result(self, attempts: int = 1) -> PageCapture:
        """Finalize the capture status.

        Args:
            attempts: Number of attempts it took to produce this capture

        Returns:
            The assembled PageCapture
        """
        if self._done:
            status = CaptureStatus.SUCCESS
        elif self.capture.page_errors:
            status = CaptureStatus.PAGE_ERROR
        elif self.capture.errors:
            status = CaptureStatus.FAILED
        elif self.capture.loaded_at is not None:
            status = CaptureStatus.NO_MAIN_REQUEST
        else:
            status = CaptureStatus.FAILED

        self.capture.status = status
        self.capture.attempts = attempts
        return self.capture

    @property
    def main_request(self) -> Optional[RequestRecord]:
        return self.capture.main_request
