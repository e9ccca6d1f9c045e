"""Mock builders shared by Page Scout unit tests."""

from unittest.mock import AsyncMock, MagicMock

from pagescout.capture.events import EventBus


def make_request(url: str, method: str = "GET", redirected_from=None) -> MagicMock:
    """Mock Playwright request, optionally continuing a redirect chain."""
    request = MagicMock()
    request.url = url
    request.method = method
    request.redirected_from = redirected_from
    return request


def make_response(
    request: MagicMock,
    status: int = 200,
    body: str = "ok",
    content_type: str = "text/html",
) -> MagicMock:
    """Mock Playwright response for a request."""
    response = MagicMock()
    response.request = request
    response.url = request.url
    response.status = status
    response.headers = {"content-type": content_type}
    response.text = AsyncMock(return_value=body)
    return response


def make_route() -> AsyncMock:
    """Mock Playwright route."""
    return AsyncMock()


class EventRecorder:
    """Registers a recording handler for topics of an EventBus."""

    def __init__(self, bus: EventBus, topics):
        self.events = []
        for topic in topics:
            bus.register(topic, self._handler(topic))

    def _handler(self, topic):
        def record(payload):
            self.events.append((topic, payload))
        return record

    @property
    def topics(self):
        return [topic for topic, _ in self.events]

    def payloads(self, topic):
        return [payload for t, payload in self.events if t == topic]
