#!/usr/bin/env python3
"""
Basic capture example for Page Scout.

This example loads a page in headless Chromium and prints what the session
captured: the main document response, secondary requests with bodies and the
global variables the page defined.
"""

import asyncio
import logging
from pathlib import Path
import sys

# Add the parent directory to Python path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pagescout.capture import (
    PageLifecycleController,
    SessionConfig,
    Topic,
    create_browser_factory,
    create_capture_engine,
)


async def engine_capture_example(url: str):
    """Capture a page through the engine and print a summary."""
    print("=== Engine Capture Example ===")

    async with create_capture_engine(retry_attempts=1) as engine:
        capture = await engine.capture_page(url)

    summary = capture.export_summary()
    print(f"Status: {summary['status']} after {summary['attempts']} attempt(s)")
    if capture.main_request:
        print(f"Main document: {capture.main_request.response_status} {capture.main_request.url}")

    print(f"\nRequests with a body ({len(capture.requests)}):")
    for record in capture.requests[:10]:
        print(f"- {record.response_status} {record.method} {record.url}")

    print(f"\nWindow properties ({len(capture.window_properties)}):")
    for name, value in list(capture.window_properties.items())[:10]:
        print(f"- {name}: {str(value)[:60]}")

    for error in capture.errors + capture.page_errors:
        print(f"Error: {error}")


async def event_stream_example(url: str):
    """Drive a session directly and print every lifecycle event."""
    print("\n=== Event Stream Example ===")

    factory = create_browser_factory()
    await factory.start()

    try:
        controller = PageLifecycleController(
            factory.get_browser(),
            config=SessionConfig(network_idle_ms=500),
        )

        controller.on(Topic.STARTED, lambda stamp: print(f"started  {stamp.url}"))
        controller.on(Topic.REQUEST, lambda request: print(f"request  {request.method} {request.url}"))
        controller.on(Topic.INITIAL_RESPONSE, lambda record: print(f"document {record.response_status}"))
        controller.on(Topic.LOADED, lambda stamp: print(f"loaded   {stamp.timestamp.isoformat()}"))
        controller.on(Topic.HTML, lambda html: print(f"html     {len(html)} chars"))
        controller.on(Topic.WINDOW_PROPERTIES, lambda props: print(f"globals  {sorted(props)}"))
        controller.on(Topic.DONE, lambda timestamp: print("done"))
        controller.on(Topic.ERROR, lambda error: print(f"error    {error}"))

        await controller.start(url)

    finally:
        await factory.stop()


async def main():
    """Run all examples."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    url = sys.argv[1] if len(sys.argv) > 1 else "https://example.com"

    try:
        await engine_capture_example(url)
        await event_stream_example(url)

    except KeyboardInterrupt:
        print("\nExamples interrupted by user")
    except Exception as e:
        print(f"Example failed: {e}")
        import traceback
        traceback.print_exc()


if __name__ == "__main__":
    print("Page Scout Capture Examples")
    print("=" * 40)
    asyncio.run(main())
