"""Unit tests for capture engine."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pagescout.capture.browser_factory import BrowserConfig
from pagescout.capture.engine import (
    CaptureEngine,
    EngineConfig,
    create_capture_engine,
)
from pagescout.capture.page_session import SessionConfig
from pagescout.models.capture import CaptureStatus, PageCapture, RequestRecord

URL = "https://example.com/"


class TestEngineConfig:
    """Tests for EngineConfig class."""

    def test_default_config(self):
        config = EngineConfig()

        assert isinstance(config.browser_config, BrowserConfig)
        assert isinstance(config.session_config, SessionConfig)
        assert config.max_concurrent_pages == 5
        assert config.retry_attempts == 0
        assert config.retry_delay_ms == 1000

    def test_create_capture_engine(self):
        engine = create_capture_engine(headless=False, retry_attempts=2, network_idle_ms=250)

        assert engine.config.browser_config.headless is False
        assert engine.config.retry_attempts == 2
        assert engine.config.session_config.network_idle_ms == 250


class TestCaptureEngine:
    """Tests for CaptureEngine class."""

    @pytest.fixture
    def mock_browser_factory(self):
        """Mock browser factory."""
        with patch('pagescout.capture.engine.BrowserFactory') as mock_factory_class:
            factory = AsyncMock()
            factory.get_browser = MagicMock(return_value=AsyncMock())
            factory.health_check = AsyncMock(return_value=True)
            mock_factory_class.return_value = factory
            yield factory

    @pytest.fixture
    def engine_config(self):
        return EngineConfig(retry_attempts=2, retry_delay_ms=100, max_concurrent_pages=2)

    @pytest.fixture
    def engine(self, engine_config, mock_browser_factory):
        return CaptureEngine(engine_config)

    def statuses(self, engine, *statuses):
        """Make _capture_once return captures with the given statuses in turn."""
        results = iter(statuses)

        async def capture_once(url, attempt):
            return PageCapture(url=url, status=next(results), attempts=attempt)

        engine._capture_once = AsyncMock(side_effect=capture_once)
        return engine._capture_once

    @pytest.mark.asyncio
    async def test_start_and_stop(self, engine, mock_browser_factory):
        await engine.start()

        assert engine.is_running
        mock_browser_factory.start.assert_awaited_once()
        assert engine.get_stats()['start_time'] is not None

        await engine.stop()

        assert not engine.is_running
        mock_browser_factory.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, engine, mock_browser_factory):
        await engine.start()
        await engine.start()

        mock_browser_factory.start.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_failure_cleans_up(self, engine, mock_browser_factory):
        mock_browser_factory.start.side_effect = Exception("no browser")

        with pytest.raises(Exception, match="no browser"):
            await engine.start()

        assert not engine.is_running
        mock_browser_factory.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_context_manager(self, engine, mock_browser_factory):
        async with engine as running:
            assert running is engine
            assert engine.is_running

        assert not engine.is_running

    @pytest.mark.asyncio
    async def test_capture_requires_start(self, engine):
        with pytest.raises(RuntimeError, match="not started"):
            await engine.capture_page(URL)

        with pytest.raises(RuntimeError, match="not started"):
            await engine.capture_pages([URL])

    @pytest.mark.asyncio
    async def test_success_is_not_retried(self, engine):
        await engine.start()
        capture_once = self.statuses(engine, CaptureStatus.SUCCESS)

        capture = await engine.capture_page(URL)

        assert capture.is_successful
        capture_once.assert_awaited_once_with(URL, 1)
        assert engine.get_stats()['pages_successful'] == 1
        assert engine.get_stats()['success_rate'] == 100

    @pytest.mark.asyncio
    async def test_no_main_request_is_not_retried(self, engine):
        await engine.start()
        capture_once = self.statuses(engine, CaptureStatus.NO_MAIN_REQUEST)

        capture = await engine.capture_page(URL)

        assert capture.status == CaptureStatus.NO_MAIN_REQUEST
        assert capture_once.await_count == 1
        assert engine.get_stats()['pages_failed'] == 1

    @pytest.mark.asyncio
    async def test_failure_is_retried_with_backoff(self, engine):
        await engine.start()
        capture_once = self.statuses(
            engine, CaptureStatus.FAILED, CaptureStatus.PAGE_ERROR, CaptureStatus.SUCCESS
        )

        with patch('pagescout.capture.engine.asyncio.sleep', new=AsyncMock()) as sleep:
            capture = await engine.capture_page(URL)

        assert capture.is_successful
        assert capture.attempts == 3
        assert [call.args[1] for call in capture_once.await_args_list] == [1, 2, 3]
        assert [call.args[0] for call in sleep.await_args_list] == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, engine):
        await engine.start()
        capture_once = self.statuses(engine, *[CaptureStatus.FAILED] * 3)

        with patch('pagescout.capture.engine.asyncio.sleep', new=AsyncMock()) as sleep:
            capture = await engine.capture_page(URL)

        assert capture.status == CaptureStatus.FAILED
        assert capture_once.await_count == 3
        assert sleep.await_count == 2
        assert engine.get_stats()['pages_failed'] == 1

    @pytest.mark.asyncio
    async def test_page_error_restarts_unhealthy_browser(self, engine, mock_browser_factory):
        await engine.start()
        self.statuses(engine, CaptureStatus.PAGE_ERROR, CaptureStatus.SUCCESS)
        mock_browser_factory.health_check.return_value = False

        with patch('pagescout.capture.engine.asyncio.sleep', new=AsyncMock()):
            capture = await engine.capture_page(URL)

        assert capture.is_successful
        mock_browser_factory.health_check.assert_awaited_once()
        mock_browser_factory.restart_browser.assert_awaited_once()
        assert engine.get_stats()['browser_restarts'] == 1

    @pytest.mark.asyncio
    async def test_page_error_keeps_healthy_browser(self, engine, mock_browser_factory):
        await engine.start()
        self.statuses(engine, CaptureStatus.PAGE_ERROR, CaptureStatus.SUCCESS)

        with patch('pagescout.capture.engine.asyncio.sleep', new=AsyncMock()):
            await engine.capture_page(URL)

        mock_browser_factory.health_check.assert_awaited_once()
        mock_browser_factory.restart_browser.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_capture_skips_health_check(self, engine, mock_browser_factory):
        await engine.start()
        self.statuses(engine, CaptureStatus.FAILED, CaptureStatus.SUCCESS)

        with patch('pagescout.capture.engine.asyncio.sleep', new=AsyncMock()):
            await engine.capture_page(URL)

        mock_browser_factory.health_check.assert_not_called()

    @pytest.mark.asyncio
    async def test_restart_failure_is_absorbed(self, engine, mock_browser_factory):
        await engine.start()
        self.statuses(engine, CaptureStatus.PAGE_ERROR, CaptureStatus.PAGE_ERROR, CaptureStatus.PAGE_ERROR)
        mock_browser_factory.health_check.return_value = False
        mock_browser_factory.restart_browser.side_effect = Exception("launch failed")

        with patch('pagescout.capture.engine.asyncio.sleep', new=AsyncMock()):
            capture = await engine.capture_page(URL)

        assert capture.status == CaptureStatus.PAGE_ERROR
        assert mock_browser_factory.restart_browser.await_count == 2
        assert engine.get_stats()['browser_restarts'] == 0

    @pytest.mark.asyncio
    async def test_callbacks(self, engine):
        await engine.start()
        self.statuses(engine, CaptureStatus.SUCCESS)
        received = []

        def failing(capture):
            raise RuntimeError("callback failed")

        engine.add_callback(failing)
        engine.add_callback(received.append)

        capture = await engine.capture_page(URL)

        assert received == [capture]

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, engine):
        await engine.start()
        running = 0
        peak = 0

        async def capture_once(url, attempt):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return PageCapture(url=url, status=CaptureStatus.SUCCESS)

        engine._capture_once = capture_once

        urls = [f"https://example.com/{i}" for i in range(5)]
        captures = await engine.capture_pages(urls)

        assert [c.url for c in captures] == urls
        assert peak == 2

    @pytest.mark.asyncio
    async def test_capture_once_runs_controller(self, engine, mock_browser_factory):
        await engine.start()
        main = RequestRecord(id="1", url=URL)

        with patch('pagescout.capture.engine.PageLifecycleController') as controller_class:
            controller = MagicMock()
            controller.start = AsyncMock()
            controller.registry.main_record = main
            controller_class.return_value = controller

            capture = await engine._capture_once(URL, 2)

        controller_class.assert_called_once_with(
            mock_browser_factory.get_browser.return_value,
            config=engine.config.session_config,
            response_parser=None,
        )
        controller.start.assert_awaited_once_with(URL)
        assert capture.status == CaptureStatus.FAILED
        assert capture.attempts == 2
        assert capture.main_request == main

    def test_repr(self, engine):
        assert repr(engine) == "CaptureEngine(running=False, attempted=0, successful=0)"
