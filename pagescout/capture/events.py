"""Event dispatch for page session lifecycle notifications.

The EventBus is a registration table holding at most one handler per topic.
It is deliberately not multicast pub/sub: registering a handler for a topic
replaces whatever handler was there before.
"""

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class Topic:
    """Topics emitted by a page session."""
    REQUEST = "request"
    INITIAL_RESPONSE = "initial-response"
    RESPONSE = "response"
    STARTED = "started"
    LOADED = "loaded"
    REQUESTS = "requests"
    HTML = "html"
    WINDOW_PROPERTIES = "window-properties"
    DONE = "done"
    PAGE_ERROR = "page-error"
    ERROR = "error"

    ALL = (
        REQUEST,
        INITIAL_RESPONSE,
        RESPONSE,
        STARTED,
        LOADED,
        REQUESTS,
        HTML,
        WINDOW_PROPERTIES,
        DONE,
        PAGE_ERROR,
        ERROR,
    )


Handler = Callable[[Any], None]


class EventBus:
    """Single-handler-per-topic callback registry with synchronous dispatch."""

    def __init__(self):
        self._handlers: Dict[str, Handler] = {}

    def register(self, topic: str, handler: Handler) -> None:
        """Register the handler for a topic, replacing any previous one.

        Args:
            topic: Topic name
            handler: Callable invoked with the event payload
        """
        if topic in self._handlers:
            logger.debug(f"Replacing handler for topic: {topic}")
        self._handlers[topic] = handler

    def unregister(self, topic: str) -> None:
        self._handlers.pop(topic, None)

    def has_handler(self, topic: str) -> bool:
        return topic in self._handlers

    @property
    def topics(self) -> List[str]:
        return list(self._handlers)

    def emit(self, topic: str, payload: Any = None) -> None:
        """Invoke the handler registered for topic, if any.

        Exceptions raised by the handler propagate to the caller.

        Args:
            topic: Topic name
            payload: Event payload passed to the handler
        """
        handler = self._handlers.get(topic)
        if handler is None:
            return
        handler(payload)

    def __repr__(self) -> str:
        return f"EventBus(topics={sorted(self._handlers)})"
