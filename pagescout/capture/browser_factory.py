"""Browser factory for launching and managing the Playwright browser.

This module provides the BrowserFactory class that owns the Playwright driver
and the launched browser shared by page sessions. Sessions create their own
pages (each in a fresh context) from the browser it exposes.
"""

import logging
from typing import Any, Dict, Optional

from playwright.async_api import Browser, Playwright, async_playwright

logger = logging.getLogger(__name__)


class BrowserEngineType:
    """Supported browser engine types."""
    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"


class BrowserConfig:
    """Configuration for browser launch."""

    def __init__(
        self,
        engine: str = BrowserEngineType.CHROMIUM,
        headless: bool = True,
        slow_mo: int = 0,
        proxy: Optional[Dict[str, str]] = None,
        **kwargs
    ):
        """Initialize browser configuration.

        Args:
            engine: Browser engine to use (chromium, firefox, webkit)
            headless: Run browser in headless mode
            slow_mo: Slow down operations by specified milliseconds
            proxy: Proxy configuration dict
            **kwargs: Extra Playwright launch options
        """
        self.engine = engine
        self.headless = headless
        self.slow_mo = slow_mo
        self.proxy = proxy
        self.extra_options = kwargs

    def to_browser_options(self) -> Dict[str, Any]:
        """Convert to Playwright browser launch options."""
        options = {
            'headless': self.headless,
            'slow_mo': self.slow_mo,
        }

        if self.proxy:
            options['proxy'] = self.proxy

        options.update(self.extra_options)

        return options


class BrowserFactory:
    """Factory for starting and stopping the shared Playwright browser."""

    def __init__(self, config: Optional[BrowserConfig] = None):
        """Initialize browser factory with configuration.

        Args:
            config: Browser configuration object
        """
        self.config = config or BrowserConfig()
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None

    async def start(self) -> None:
        """Start Playwright and launch browser."""
        if self.playwright is not None:
            logger.warning("Browser factory already started")
            return

        logger.info(f"Starting browser factory with engine: {self.config.engine}")

        try:
            self.playwright = await async_playwright().start()

            if self.config.engine == BrowserEngineType.FIREFOX:
                browser_type = self.playwright.firefox
            elif self.config.engine == BrowserEngineType.WEBKIT:
                browser_type = self.playwright.webkit
            else:
                browser_type = self.playwright.chromium

            self.browser = await browser_type.launch(**self.config.to_browser_options())

            logger.info(f"Browser launched successfully (headless={self.config.headless})")

        except Exception as e:
            logger.error(f"Failed to start browser: {e}")
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop browser and cleanup resources."""
        logger.info("Stopping browser factory")

        try:
            if self.browser:
                await self.browser.close()
                self.browser = None

            if self.playwright:
                await self.playwright.stop()
                self.playwright = None

            logger.info("Browser factory stopped successfully")

        except Exception as e:
            logger.error(f"Error stopping browser factory: {e}")

    def get_browser(self) -> Browser:
        """Get the running browser.

        Raises:
            RuntimeError: If browser factory not started
        """
        if not self.browser:
            raise RuntimeError("Browser factory not started. Call start() first.")
        return self.browser

    async def health_check(self) -> bool:
        """Check that the browser can open and close a blank page."""
        if not self.browser:
            return False

        try:
            page = await self.browser.new_page()
            try:
                await page.goto("about:blank", timeout=5000)
            finally:
                await page.close()
            return True
        except Exception as e:
            logger.error(f"Browser health check failed: {e}")
            return False

    async def restart_browser(self) -> None:
        """Restart browser (useful for recovering from crashes)."""
        logger.info("Restarting browser")
        await self.stop()
        await self.start()
        logger.info("Browser restarted successfully")

    @property
    def is_running(self) -> bool:
        """Check if browser factory is running."""
        if self.browser is None:
            return False
        try:
            return self.browser.is_connected()
        except Exception:
            return True

    def __repr__(self) -> str:
        return (
            f"BrowserFactory(engine={self.config.engine}, "
            f"headless={self.config.headless}, "
            f"running={self.is_running})"
        )


def create_browser_factory(
    engine: str = BrowserEngineType.CHROMIUM,
    headless: bool = True,
    **kwargs
) -> BrowserFactory:
    """Create a browser factory with simple configuration.

    Args:
        engine: Browser engine to use
        headless: Run in headless mode
        **kwargs: Additional configuration options

    Returns:
        Configured BrowserFactory instance
    """
    config = BrowserConfig(engine=engine, headless=headless, **kwargs)
    return BrowserFactory(config)
