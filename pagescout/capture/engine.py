"""Capture engine running page sessions on a shared browser.

This module provides the CaptureEngine class, which owns the browser factory,
bounds how many page sessions run at once, and retries failed captures with
exponential backoff. Retry lives here rather than in the session controller,
which makes exactly one attempt per start().
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .browser_factory import BrowserConfig, BrowserFactory
from .collector import CaptureCollector
from .page_session import PageLifecycleController, SessionConfig
from .response_parser import ResponseParser
from ..models.capture import CaptureStatus, PageCapture

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = (CaptureStatus.FAILED, CaptureStatus.PAGE_ERROR)


class EngineConfig:
    """Configuration for the capture engine."""

    def __init__(
        self,
        browser_config: Optional[BrowserConfig] = None,
        session_config: Optional[SessionConfig] = None,
        max_concurrent_pages: int = 5,
        retry_attempts: int = 0,
        retry_delay_ms: int = 1000,
    ):
        """Initialize engine configuration.

        Args:
            browser_config: Browser launch configuration
            session_config: Configuration handed to each page session
            max_concurrent_pages: Maximum sessions running at once
            retry_attempts: Extra attempts for failed captures
            retry_delay_ms: Base delay between attempts (doubles each retry)
        """
        self.browser_config = browser_config or BrowserConfig()
        self.session_config = session_config or SessionConfig()
        self.max_concurrent_pages = max_concurrent_pages
        self.retry_attempts = retry_attempts
        self.retry_delay_ms = retry_delay_ms


class CaptureEngine:
    """Main capture engine coordinating browser and page sessions."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        response_parser: Optional[ResponseParser] = None,
    ):
        """Initialize capture engine.

        Args:
            config: Engine configuration (uses defaults if None)
            response_parser: Response classifier shared by all sessions
        """
        self.config = config or EngineConfig()
        self.response_parser = response_parser
        self.browser_factory: Optional[BrowserFactory] = None
        self._is_running = False
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._callbacks: List[Callable[[PageCapture], None]] = []

        self.stats = {
            'pages_attempted': 0,
            'pages_successful': 0,
            'pages_failed': 0,
            'browser_restarts': 0,
            'start_time': None,
        }

    async def start(self) -> None:
        """Start the capture engine and launch the browser."""
        if self._is_running:
            logger.warning("Capture engine already running")
            return

        logger.info("Starting capture engine")

        try:
            self.browser_factory = BrowserFactory(self.config.browser_config)
            await self.browser_factory.start()

            self._semaphore = asyncio.Semaphore(self.config.max_concurrent_pages)
            self.stats['start_time'] = datetime.utcnow()
            self._is_running = True

            logger.info("Capture engine started successfully")

        except Exception as e:
            logger.error(f"Failed to start capture engine: {e}")
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the capture engine and cleanup resources."""
        logger.info("Stopping capture engine")

        if self.browser_factory:
            await self.browser_factory.stop()
            self.browser_factory = None

        self._is_running = False
        self._semaphore = None

    async def __aenter__(self) -> "CaptureEngine":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def add_callback(self, callback: Callable[[PageCapture], None]) -> None:
        """Add callback to be called for each finished page capture."""
        self._callbacks.append(callback)

    async def capture_page(self, url: str) -> PageCapture:
        """Capture a single page, retrying failed attempts.

        Args:
            url: URL to capture

        Returns:
            PageCapture of the last attempt
        """
        if not self._is_running:
            raise RuntimeError("Capture engine not started. Call start() first.")

        self.stats['pages_attempted'] += 1
        capture = None

        for attempt in range(self.config.retry_attempts + 1):
            async with self._semaphore:
                capture = await self._capture_once(url, attempt + 1)

            if capture.status not in RETRYABLE_STATUSES:
                break

            if attempt < self.config.retry_attempts:
                delay = self.config.retry_delay_ms / 1000.0 * (2 ** attempt)
                logger.warning(
                    f"Capture attempt {attempt + 1} failed for {url} ({capture.status.value}), "
                    f"retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)
                if capture.status == CaptureStatus.PAGE_ERROR:
                    await self._recover_browser()
            else:
                logger.error(f"All capture attempts failed for {url}")

        if capture.is_successful:
            self.stats['pages_successful'] += 1
        else:
            self.stats['pages_failed'] += 1

        for callback in self._callbacks:
            try:
                callback(capture)
            except Exception as e:
                logger.error(f"Error in capture callback: {e}")

        return capture

    async def _recover_browser(self) -> None:
        """Restart the shared browser if a crashed page took it down."""
        if await self.browser_factory.health_check():
            return

        logger.warning("Browser failed health check after page error, restarting")
        try:
            await self.browser_factory.restart_browser()
            self.stats['browser_restarts'] += 1
        except Exception as e:
            logger.error(f"Failed to restart browser: {e}")

    async def _capture_once(self, url: str, attempt: int) -> PageCapture:
        controller = PageLifecycleController(
            self.browser_factory.get_browser(),
            config=self.config.session_config,
            response_parser=self.response_parser,
        )
        collector = CaptureCollector(url).attach(controller.bus)

        await controller.start(url)

        capture = collector.result(attempts=attempt)
        if capture.main_request is None:
            capture.main_request = controller.registry.main_record
        return capture

    async def capture_pages(self, urls: List[str]) -> List[PageCapture]:
        """Capture multiple pages concurrently.

        Args:
            urls: URLs to capture

        Returns:
            PageCapture results in the order of urls
        """
        if not self._is_running:
            raise RuntimeError("Capture engine not started. Call start() first.")

        logger.info(f"Capturing {len(urls)} pages")
        return list(await asyncio.gather(*(self.capture_page(url) for url in urls)))

    def get_stats(self) -> Dict[str, Any]:
        stats = dict(self.stats)
        if stats['pages_attempted']:
            stats['success_rate'] = stats['pages_successful'] / stats['pages_attempted'] * 100
        return stats

    @property
    def is_running(self) -> bool:
        return self._is_running

    def __repr__(self) -> str:
        return (
            f"CaptureEngine(running={self._is_running}, "
            f"attempted={self.stats['pages_attempted']}, "
            f"successful={self.stats['pages_successful']})"
        )


def create_capture_engine(
    headless: bool = True,
    retry_attempts: int = 0,
    **session_options
) -> CaptureEngine:
    """Create a capture engine with simple configuration.

    Args:
        headless: Run browser in headless mode
        retry_attempts: Extra attempts for failed captures
        **session_options: SessionConfig keyword arguments

    Returns:
        Configured CaptureEngine instance
    """
    config = EngineConfig(
        browser_config=BrowserConfig(headless=headless),
        session_config=SessionConfig(**session_options),
        retry_attempts=retry_attempts,
    )
    return CaptureEngine(config)
