"""Request registry for tracking intercepted requests and their responses.

This module provides the RequestRegistry class that receives Playwright route
and response callbacks, applies the ignored-extension interception policy,
decides the main request of a page load and keeps one RequestRecord per
request id with an explicit pending/completed/discarded state.
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional, Sequence, Set
from urllib.parse import urlparse

from playwright.async_api import Request, Response, Route

from .events import EventBus, Topic
from .response_parser import ResponseParser
from ..models.capture import RecordState, RequestRecord

logger = logging.getLogger(__name__)

IGNORED_EXTENSIONS = ('.css', '.png', '.jpg', '.svg')

IDLE_POLL_INTERVAL = 0.05


def request_id_for(request: Request) -> str:
    """Opaque identifier for a Playwright request.

    Requests of one redirect chain share the id of the chain's first request.
    """
    while request.redirected_from is not None:
        request = request.redirected_from
    return str(id(request))


def is_redirect(status: Optional[int]) -> bool:
    return status is not None and 300 <= status < 400


class RequestRegistry:
    """Tracks request/response records for a single page session."""

    def __init__(
        self,
        bus: EventBus,
        response_parser: Optional[ResponseParser] = None,
        ignored_extensions: Sequence[str] = IGNORED_EXTENSIONS,
    ):
        """Initialize request registry.

        Args:
            bus: Event bus receiving request and response events
            response_parser: Collaborator classifying responses
            ignored_extensions: URL path suffixes whose requests are aborted
        """
        self.bus = bus
        self.response_parser = response_parser or ResponseParser()
        self.ignored_extensions = tuple(ignored_extensions)

        self._records: Dict[str, RequestRecord] = {}
        # Holding the request keeps id() unique while the session lives
        self._handles: Dict[str, Request] = {}
        self._in_flight: Set[str] = set()
        self.main_request_id: Optional[str] = None
        self.aborted_count = 0
        self.last_activity = time.monotonic()

    def reset(self) -> None:
        """Forget all records and the main request."""
        self._records = {}
        self._handles = {}
        self._in_flight = set()
        self.main_request_id = None
        self.aborted_count = 0
        self.last_activity = time.monotonic()

    def touch(self) -> None:
        self.last_activity = time.monotonic()

    def is_ignored(self, url: str) -> bool:
        """Check if the URL path ends with an ignored extension."""
        return urlparse(url).path.endswith(self.ignored_extensions)

    def get(self, request_id: str) -> Optional[RequestRecord]:
        return self._records.get(request_id)

    def get_or_create(self, request_id: str) -> RequestRecord:
        record = self._records.get(request_id)
        if record is None:
            record = RequestRecord(id=request_id)
            self._records[request_id] = record
        return record

    def discard(self, request_id: str) -> None:
        """Mark a record as discarded; it takes no further part in the session."""
        record = self._records.get(request_id)
        if record is not None:
            record.state = RecordState.DISCARDED

    def track(self, request: Request) -> RequestRecord:
        """Record a non-ignored request and claim the main id if still free.

        Args:
            request: Playwright request

        Returns:
            The request's record
        """
        request_id = request_id_for(request)

        if self.main_request_id is None:
            self.main_request_id = request_id
            logger.debug(f"Main request: {request.method} {request.url}")

        record = self.get_or_create(request_id)
        record.url = request.url
        record.method = request.method
        self._handles.setdefault(request_id, request)
        self._in_flight.add(request_id)
        return record

    async def on_request(self, route: Route, request: Request) -> None:
        """Handle an intercepted request.

        Bookkeeping is done before the route is continued so that requests
        intercepted concurrently cannot take over the main request id.

        Args:
            route: Playwright route for the request
            request: Playwright request
        """
        self.touch()

        if self.is_ignored(request.url):
            self.aborted_count += 1
            logger.debug(f"Aborting ignored request: {request.url}")
            try:
                await route.abort()
            except Exception as e:
                logger.debug(f"Failed to abort request {request.url}: {e}")
            return

        self.track(request)
        self.bus.emit(Topic.REQUEST, request)

        try:
            await route.continue_()
        except Exception as e:
            logger.debug(f"Failed to continue request {request.url}: {e}")

    async def on_response(self, response: Response) -> None:
        """Handle a response for a possibly tracked request.

        Args:
            response: Playwright response
        """
        self.touch()
        request_id = request_id_for(response.request)

        record = self._records.get(request_id)
        if record is None or not record.is_pending:
            return

        # The chain continues with a new request under the same id
        if is_redirect(response.status):
            logger.debug(f"Redirect {response.status}: {response.url}")
            return

        try:
            parsed = await self.response_parser.parse(response)
        except Exception as e:
            logger.error(f"Error parsing response for {record.url}: {e}")
            return
        finally:
            self._in_flight.discard(request_id)
            self.touch()

        if not record.is_pending:
            return

        if parsed.ignore:
            self.discard(request_id)
            logger.debug(f"Discarded response: {record.url}")
            return

        record.url = response.url
        record.response_status = parsed.status
        record.response_headers = parsed.headers
        record.response_body = parsed.body
        record.state = RecordState.COMPLETED

        if request_id == self.main_request_id:
            self.bus.emit(Topic.INITIAL_RESPONSE, record)
        else:
            self.bus.emit(Topic.RESPONSE, record)

        logger.debug(f"Response recorded: {parsed.status} {record.url}")

    def on_request_failed(self, request: Request) -> None:
        """Stop counting a tracked request that failed as in flight."""
        self.touch()
        request_id = request_id_for(request)
        if request_id in self._in_flight:
            self._in_flight.discard(request_id)
            logger.debug(f"Request failed: {request.url}")

    @property
    def in_flight(self) -> int:
        """Number of tracked requests still waiting for their final response."""
        return len(self._in_flight)

    @property
    def main_record(self) -> Optional[RequestRecord]:
        """Record of the main request, unless absent or discarded."""
        if self.main_request_id is None:
            return None
        record = self._records.get(self.main_request_id)
        if record is None or record.is_discarded:
            return None
        return record

    def collect(self) -> List[RequestRecord]:
        """Snapshot of secondary records that carry a response body.

        Returns:
            Records in interception order, excluding the main record,
            discarded records and records without a body
        """
        return [
            record for request_id, record in self._records.items()
            if request_id != self.main_request_id
            and not record.is_discarded
            and record.has_body
        ]

    def get_all_records(self) -> List[RequestRecord]:
        return list(self._records.values())

    async def wait_for_idle(self, idle_seconds: float, max_in_flight: int = 0) -> None:
        """Wait for network idle.

        The network is idle once at most max_in_flight tracked requests are
        still waiting for a response and no request or response has been seen
        for idle_seconds.
        """
        while True:
            if len(self._in_flight) > max_in_flight:
                await asyncio.sleep(IDLE_POLL_INTERVAL)
                continue
            quiet = time.monotonic() - self.last_activity
            if quiet >= idle_seconds:
                return
            await asyncio.sleep(idle_seconds - quiet)

    def get_stats(self) -> Dict[str, int]:
        records = self.get_all_records()
        return {
            'total_requests': len(records),
            'pending_requests': len([r for r in records if r.state == RecordState.PENDING]),
            'completed_requests': len([r for r in records if r.state == RecordState.COMPLETED]),
            'discarded_requests': len([r for r in records if r.state == RecordState.DISCARDED]),
            'aborted_requests': self.aborted_count,
            'in_flight_requests': len(self._in_flight),
        }

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        stats = self.get_stats()
        return (
            f"RequestRegistry(total={stats['total_requests']}, "
            f"pending={stats['pending_requests']}, "
            f"completed={stats['completed_requests']}, "
            f"discarded={stats['discarded_requests']}, "
            f"aborted={stats['aborted_requests']})"
        )
