"""Page session orchestration for a single page capture.

This module provides the PageLifecycleController class that drives one page
load from page creation to close: it captures the native window baseline,
arms request interception, navigates within a bounded budget, and emits the
captured requests, markup and window property diff through an EventBus.
"""

import asyncio
import logging
import random
from datetime import datetime
from typing import Any, List, Optional, Sequence, Set

from playwright.async_api import Browser, Page, Request, Route

from .errors import CloseError, MissingMainRecord, NavigationError, PageRuntimeError, SessionError
from .events import EventBus, Handler, Topic
from .request_registry import IGNORED_EXTENSIONS, RequestRegistry
from .response_parser import DEFAULT_MAX_BODY_SIZE, ResponseParser
from .window_properties import PAGE_SNAPSHOT_SCRIPT, WindowPropertyDiffer
from ..models.capture import LifecycleStamp, SessionState

logger = logging.getLogger(__name__)

USER_AGENTS = [
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_13_1) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/62.0.3202.75 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_13_1) AppleWebKit/604.3.5 (KHTML, like Gecko) Version/11.0.1 Safari/604.3.5',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10.13; rv:56.0) Gecko/20100101 Firefox/56.0',
    'Mozilla/5.0 (Windows NT 6.3; Trident/7.0; rv:11.0) like Gecko',
]

NAVIGATION_TIMEOUT_MS = 5000
NETWORK_IDLE_MS = 1000


class SessionConfig:
    """Configuration for page lifecycle sessions."""

    def __init__(
        self,
        navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS,
        network_idle_ms: int = NETWORK_IDLE_MS,
        ignored_extensions: Optional[Sequence[str]] = None,
        user_agents: Optional[Sequence[str]] = None,
        share_visited: bool = False,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
    ):
        """Initialize session configuration.

        Args:
            navigation_timeout_ms: Total budget for navigation and settling
            network_idle_ms: Quiet window that counts as network idle
            ignored_extensions: URL path suffixes whose requests are aborted
            user_agents: Pool a session user agent is picked from
            share_visited: Share the serialization visited list across
                properties instead of resetting it per property
            max_body_size: Largest response body captured by the default parser
        """
        if navigation_timeout_ms <= 0:
            raise ValueError("navigation_timeout_ms must be positive")
        if network_idle_ms < 0:
            raise ValueError("network_idle_ms must not be negative")

        self.navigation_timeout_ms = navigation_timeout_ms
        self.network_idle_ms = network_idle_ms
        self.ignored_extensions = tuple(ignored_extensions) if ignored_extensions is not None else IGNORED_EXTENSIONS
        self.user_agents = list(user_agents) if user_agents else list(USER_AGENTS)
        self.share_visited = share_visited
        self.max_body_size = max_body_size


class PageLifecycleController:
    """Drives a page load and emits its capture through an EventBus."""

    def __init__(
        self,
        browser: Browser,
        config: Optional[SessionConfig] = None,
        response_parser: Optional[ResponseParser] = None,
        bus: Optional[EventBus] = None,
    ):
        """Initialize page lifecycle controller.

        Args:
            browser: Browser used to create the session page
            config: Session configuration (uses defaults if None)
            response_parser: Response classification collaborator
            bus: Event bus for lifecycle events
        """
        self.browser = browser
        self.config = config or SessionConfig()
        self.bus = bus or EventBus()
        self.response_parser = response_parser or ResponseParser(max_body_size=self.config.max_body_size)
        self.registry = RequestRegistry(
            self.bus,
            self.response_parser,
            ignored_extensions=self.config.ignored_extensions,
        )

        self.page: Optional[Page] = None
        self.url: Optional[str] = None
        self.user_agent: Optional[str] = None
        self.native_baseline: Set[str] = set()
        self.state = SessionState.INIT
        self._tracking_armed = False
        self._close_task: Optional[asyncio.Future] = None

    def on(self, topic: str, handler: Handler) -> None:
        """Register the handler for a topic, replacing any previous one."""
        self.bus.register(topic, handler)

    @property
    def main_request_id(self) -> Optional[str]:
        return self.registry.main_request_id

    def _transition(self, state: SessionState) -> None:
        logger.debug(f"Session {self.url}: {self.state.value} -> {state.value}")
        self.state = state

    def choose_user_agent(self) -> str:
        return random.choice(self.config.user_agents)

    async def _intercept(self, route: Route, request: Request) -> None:
        if not self._tracking_armed:
            await route.continue_()
            return
        await self.registry.on_request(route, request)

    async def _on_page_crash(self, _page: Any = None) -> None:
        error = PageRuntimeError(self.url)
        logger.warning(f"Page error: {error}")
        self.bus.emit(Topic.PAGE_ERROR, error)
        await self.close_page()

    async def start(self, url: str) -> None:
        """Run the complete session for url.

        Every outcome is reported through the event bus; nothing is raised
        except from the error handlers themselves.

        Args:
            url: URL to load
        """
        self.url = url
        self.registry.reset()
        self.page = None
        self.native_baseline = set()
        self.state = SessionState.INIT
        self._tracking_armed = False
        self._close_task = None

        try:
            self.user_agent = self.choose_user_agent()
            self.page = await self.browser.new_page(user_agent=self.user_agent)
            page = self.page
            await page.route("**/*", self._intercept)
            self._transition(SessionState.PAGE_CREATED)

            page.on("crash", self._on_page_crash)

            differ = WindowPropertyDiffer(page, share_visited=self.config.share_visited)
            self.native_baseline = await differ.capture_baseline()
            self._transition(SessionState.BASELINE_CAPTURED)

            self._tracking_armed = True
            page.on("response", self.registry.on_response)
            page.on("requestfailed", self.registry.on_request_failed)
            self._transition(SessionState.INTERCEPTION_ARMED)

            self.bus.emit(Topic.STARTED, LifecycleStamp(url=url, timestamp=datetime.utcnow()))
            self._transition(SessionState.STARTED)

            await self._navigate(page, url)

            self._transition(SessionState.LOADED)
            self.bus.emit(Topic.LOADED, LifecycleStamp(url=url, timestamp=datetime.utcnow()))

            if self.registry.main_record is None:
                logger.info(f"{MissingMainRecord(url)}, closing page")
                self._transition(SessionState.NO_MAIN_RECORD)
                await self.close_page()
                return

            self.bus.emit(Topic.REQUESTS, self.registry.collect())
            self._transition(SessionState.REQUESTS_COLLECTED)

            snapshot = await page.evaluate(PAGE_SNAPSHOT_SCRIPT)
            self.bus.emit(Topic.HTML, snapshot['html'])
            self._transition(SessionState.HTML_CAPTURED)

            names = differ.diff(snapshot['allWindowProperties'], self.native_baseline)
            window_properties = await differ.serialize(names)
            self._transition(SessionState.WINDOW_DIFF_COMPUTED)
            self._transition(SessionState.DONE)

            await self.close_page()
            self.bus.emit(Topic.WINDOW_PROPERTIES, window_properties)
            self.bus.emit(Topic.DONE, datetime.utcnow())

            logger.info(f"Page capture completed: {url} ({len(window_properties)} window properties)")

        except Exception as e:
            error = SessionError(url, e)
            logger.error(str(error))
            self.bus.emit(Topic.ERROR, str(error))
            await self.close_page()

    async def _navigate(self, page: Page, url: str) -> None:
        """Navigate and wait for network idle within the navigation budget.

        Failures are logged and absorbed; the session carries on with
        whatever the registry recorded.
        """
        self._transition(SessionState.NAVIGATING)
        budget_s = self.config.navigation_timeout_ms / 1000

        try:
            await asyncio.wait_for(self._load_until_idle(page, url), timeout=budget_s)
            logger.debug(f"Navigation settled: {url}")
        except asyncio.TimeoutError:
            logger.warning(f"Navigation budget of {self.config.navigation_timeout_ms}ms exhausted: {url}")
        except Exception as e:
            logger.warning(str(NavigationError(url, e)))

    async def _load_until_idle(self, page: Page, url: str) -> None:
        await page.goto(url, timeout=self.config.navigation_timeout_ms, wait_until="load")
        await self.registry.wait_for_idle(self.config.network_idle_ms / 1000)

    async def close_page(self) -> None:
        """Close the session page, at most once.

        Concurrent and repeated calls share the same close attempt. A close
        failure is reported on the error topic and never raised.
        """
        page = self.page
        if page is None:
            return
        if self._close_task is None:
            self._close_task = asyncio.ensure_future(self._close(page))
        await self._close_task

    async def _close(self, page: Page) -> None:
        try:
            if not page.is_closed():
                await page.close()
            logger.debug(f"Page closed: {self.url}")
        except Exception as e:
            logger.warning(str(CloseError(e)))
            self.bus.emit(Topic.ERROR, {'message': 'Error closing page', 'error': e})
        finally:
            self._transition(SessionState.CLOSED)

    def get_stats(self) -> dict:
        return {
            'url': self.url,
            'state': self.state.value,
            'user_agent': self.user_agent,
            'native_properties': len(self.native_baseline),
            'network': self.registry.get_stats(),
        }

    def __repr__(self) -> str:
        return (
            f"PageLifecycleController(url={self.url or 'none'}, "
            f"state={self.state.value}, "
            f"requests={len(self.registry)})"
        )
