# File: tests/test_fetcher.py
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import ClientSession, web

from stay_scout.config import ServerConfig
from stay_scout.crawler.fetcher import DocumentFetcher
from stay_scout.errors import FetchTimeoutError, NetworkError

#: seconds the slow handler sleeps; well above the fetch timeout used below
SLOW_SLEEP: float = 2.0


async def _serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}"
    finally:
        await runner.cleanup()


@pytest_asyncio.fixture
async def site(unused_tcp_port: int) -> AsyncIterator[tuple[str, list]]:
    app = web.Application()
    seen: list = []

    async def handle_room(request):
        seen.append(dict(request.headers))
        return web.Response(text="<html><body>room</body></html>", content_type="text/html")

    async def handle_missing(_):
        return web.Response(status=404, text="gone")

    async def handle_slow(_):
        await asyncio.sleep(SLOW_SLEEP)
        return web.Response(text="late", content_type="text/html")

    app.router.add_get("/rooms/1", handle_room)
    app.router.add_get("/rooms/404", handle_missing)
    app.router.add_get("/rooms/slow", handle_slow)

    async for url in _serve_app(app, unused_tcp_port):
        yield url, seen


@pytest.mark.asyncio()
async def test_fetch_returns_document_with_declared_identity(site):
    base, seen = site
    config = ServerConfig(base_url=base)
    async with ClientSession() as session:
        doc = await DocumentFetcher(session, config).fetch(f"{base}/rooms/1")

    assert doc.url == f"{base}/rooms/1"
    assert "room" in doc.content
    headers = seen[0]
    assert headers["User-Agent"] == config.user_agent
    assert headers["Accept-Language"] == "en-US,en;q=0.9"
    assert "text/html" in headers["Accept"]


@pytest.mark.asyncio()
async def test_fetch_browser_identity(site):
    base, seen = site
    config = ServerConfig(base_url=base)
    async with ClientSession() as session:
        await DocumentFetcher(session, config).fetch(f"{base}/rooms/1", identity="browser")

    assert seen[0]["User-Agent"].startswith("Mozilla/5.0")


@pytest.mark.asyncio()
async def test_non_2xx_is_network_error(site):
    base, _ = site
    config = ServerConfig(base_url=base)
    async with ClientSession() as session:
        with pytest.raises(NetworkError) as info:
            await DocumentFetcher(session, config).fetch(f"{base}/rooms/404")

    assert "404" in info.value.message
    assert info.value.context["url"] == f"{base}/rooms/404"


@pytest.mark.asyncio()
async def test_deadline_is_timeout_error(site):
    base, _ = site
    config = ServerConfig(base_url=base, timeout=0.3)
    async with ClientSession() as session:
        with pytest.raises(FetchTimeoutError) as info:
            await DocumentFetcher(session, config).fetch(f"{base}/rooms/slow")

    assert "300ms" in info.value.message


@pytest.mark.asyncio()
async def test_connection_refused_is_network_error(unused_tcp_port: int):
    config = ServerConfig(base_url=f"http://localhost:{unused_tcp_port}")
    async with ClientSession() as session:
        with pytest.raises(NetworkError):
            await DocumentFetcher(session, config).fetch(f"http://localhost:{unused_tcp_port}/rooms/1")


def test_build_request_uses_config_timeout():
    config = ServerConfig(timeout=12.5)
    fetcher = DocumentFetcher(session=None, config=config)  # type: ignore[arg-type]
    request = fetcher.build_request("https://www.airbnb.com/rooms/1")
    assert request.timeout == 12.5
    assert request.headers["Cache-Control"] == "no-cache"
    assert fetcher.build_request("u", timeout=1.0).timeout == 1.0
