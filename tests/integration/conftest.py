"""Shared fixtures for browser-backed integration tests."""

import asyncio
import socket
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest
import pytest_asyncio
from playwright.async_api import async_playwright

PAGES = {
    '/': ('text/html', """
<html>
<head>
    <title>Page Scout Test</title>
    <link rel="stylesheet" href="/style.css">
    <script src="/app.js"></script>
</head>
<body>
    <h1>Hello</h1>
    <img src="/logo.png">
    <script>
        fetch('/api/config.json').then((r) => r.json()).then((data) => { window.remoteConfig = data; });
    </script>
</body>
</html>
""".strip()),
    '/app.js': ('application/javascript', """
window.appConfig = { name: 'scout', features: ['a', 'b'], init: function () {} };
window.track = function () {};
""".strip()),
    '/api/config.json': ('application/json', '{"enabled": true}'),
    '/style.css': ('text/css', 'body { color: black; }'),
    '/logo.png': ('image/png', '\x89PNG'),
    '/favicon.ico': ('image/x-icon', ''),
}


class TestHTTPHandler(BaseHTTPRequestHandler):
    """Serves the fixed test site."""

    def do_GET(self):
        if self.path in PAGES:
            content_type, body = PAGES[self.path]
            payload = body.encode('utf-8')
            self.send_response(200)
            self.send_header('Content-type', content_type)
            self.send_header('Content-Length', str(len(payload)))
            self.end_headers()
            self.wfile.write(payload)
        else:
            self.send_response(404)
            self.end_headers()

    def log_message(self, format, *args):
        pass


@pytest_asyncio.fixture
async def test_http_server():
    """Lightweight HTTP server for the test site."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('', 0))
        port = s.getsockname()[1]

    server = HTTPServer(('localhost', port), TestHTTPHandler)
    server_thread = threading.Thread(target=server.serve_forever, daemon=True)
    server_thread.start()

    await asyncio.sleep(0.1)

    yield f"http://localhost:{port}"

    server.shutdown()
    server.server_close()
    server_thread.join(timeout=5.0)


@pytest_asyncio.fixture
async def browser():
    """Real Chromium instance; tests are skipped when it cannot be launched."""
    playwright = await async_playwright().start()
    try:
        browser = await playwright.chromium.launch(headless=True)
    except Exception as e:
        await playwright.stop()
        pytest.skip(f"Chromium not available: {e}")

    yield browser

    await browser.close()
    await playwright.stop()


@pytest_asyncio.fixture
async def page(browser):
    page = await browser.new_page()
    yield page
    await page.close()
