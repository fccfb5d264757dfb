# File: tests/test_robots.py
from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import ClientSession, web

from stay_scout.config import ServerConfig
from stay_scout.crawler.fetcher import DocumentFetcher
from stay_scout.crawler.robots import PolicyGate, RobotsTxtRules
from stay_scout.errors import PolicyDenied

UA = "ModelContextProtocol/1.0 (Autonomous; +https://github.com/modelcontextprotocol/servers)"

ROBOTS = """
# comment line
User-agent: *
Disallow: /rooms/
Allow: /rooms/plus
Disallow: /*?cursor=
Disallow: /private$

User-agent: ModelContextProtocol
Disallow: /s/
"""


# --------------------------------------------------------------------------- #
#                               RobotsTxtRules                                #
# --------------------------------------------------------------------------- #


@pytest.mark.parametrize(
    "agent,path,expected",
    [
        ("OtherBot/2.0", "/", True),
        ("OtherBot/2.0", "/rooms/123", False),
        ("OtherBot/2.0", "/rooms/plus/123", True),
        ("OtherBot/2.0", "/s/Paris/homes?cursor=abc", False),
        ("OtherBot/2.0", "/private", False),
        ("OtherBot/2.0", "/private/area", True),
        (UA, "/s/Paris/homes", False),
        # the specific group replaces the * group entirely
        (UA, "/rooms/123", True),
    ],
)
def test_rules_can_fetch(agent, path, expected):
    assert RobotsTxtRules(ROBOTS).can_fetch(agent, path) is expected


def test_empty_disallow_allows_everything():
    rules = RobotsTxtRules("User-agent: *\nDisallow:")
    assert rules.can_fetch("AnyBot", "/rooms/1")


def test_empty_user_agent_group_matches_nobody():
    rules = RobotsTxtRules("User-agent:\nDisallow: /\n\nUser-agent: *\nAllow: /")
    assert rules.can_fetch(UA, "/rooms/1")
    assert rules.can_fetch("OtherBot/2.0", "/")


def test_no_matching_group_allows():
    rules = RobotsTxtRules("User-agent: OnlyThisBot\nDisallow: /")
    assert rules.can_fetch("SomeoneElse/1.0", "/rooms/1")


# --------------------------------------------------------------------------- #
#                                 PolicyGate                                  #
# --------------------------------------------------------------------------- #


def test_gate_from_text_denies_and_allows():
    gate = PolicyGate.from_text(ServerConfig(), "User-agent: *\nDisallow: /rooms/")
    assert gate.loaded
    assert gate.allow("/rooms/1?adults=1") is False
    assert gate.allow("/s/Paris/homes") is True


def test_gate_empty_document_allows_all():
    gate = PolicyGate.from_text(ServerConfig(), "")
    assert gate.allow("/rooms/1")


def test_ensure_allowed_raises_with_url():
    gate = PolicyGate.from_text(ServerConfig(), "User-agent: *\nDisallow: /")
    with pytest.raises(PolicyDenied) as info:
        gate.ensure_allowed("/rooms/1", "https://www.airbnb.com/rooms/1")
    assert info.value.context["url"] == "https://www.airbnb.com/rooms/1"
    assert "robots.txt" in info.value.message


def test_ensure_allowed_bypassed_per_call_and_globally():
    text = "User-agent: *\nDisallow: /"
    PolicyGate.from_text(ServerConfig(), text).ensure_allowed("/rooms/1", "u", ignore=True)
    PolicyGate.from_text(ServerConfig(ignore_robots_txt=True), text).ensure_allowed("/rooms/1", "u")


async def _serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}"
    finally:
        await runner.cleanup()


@pytest_asyncio.fixture
async def robots_server(unused_tcp_port: int) -> AsyncIterator[tuple[str, dict]]:
    app = web.Application()
    hits = {"n": 0, "ua": None}

    async def handle_robots(request):
        hits["n"] += 1
        hits["ua"] = request.headers.get("User-Agent")
        return web.Response(text="User-agent: *\nDisallow: /rooms/", content_type="text/plain")

    app.router.add_get("/robots.txt", handle_robots)
    async for url in _serve_app(app, unused_tcp_port):
        yield url, hits


@pytest_asyncio.fixture
async def broken_robots_server(unused_tcp_port: int) -> AsyncIterator[tuple[str, dict]]:
    app = web.Application()
    hits = {"n": 0}

    async def handle_robots(_):
        hits["n"] += 1
        return web.Response(status=500)

    app.router.add_get("/robots.txt", handle_robots)
    async for url in _serve_app(app, unused_tcp_port):
        yield url, hits


@pytest.mark.asyncio()
async def test_gate_loads_once(robots_server):
    base, hits = robots_server
    config = ServerConfig(base_url=base, identity="browser")
    async with ClientSession() as session:
        fetcher = DocumentFetcher(session, config)
        gate = PolicyGate(config)
        await gate.load(fetcher)
        await gate.load(fetcher)

    assert hits["n"] == 1
    # robots.txt is always requested with the declared identity
    assert hits["ua"] == config.user_agent
    assert gate.allow("/rooms/1") is False
    assert gate.allow("/s/Paris/homes") is True


@pytest.mark.asyncio()
async def test_gate_fails_open_and_does_not_refetch(broken_robots_server):
    base, hits = broken_robots_server
    config = ServerConfig(base_url=base)
    async with ClientSession() as session:
        fetcher = DocumentFetcher(session, config)
        gate = PolicyGate(config)
        await gate.load(fetcher)
        await gate.load(fetcher)

    assert hits["n"] == 1
    assert gate.loaded
    assert gate.document == ""
    assert gate.allow("/rooms/1") is True


@pytest.mark.asyncio()
async def test_gate_disabled_skips_fetch(robots_server):
    base, hits = robots_server
    config = ServerConfig(base_url=base, ignore_robots_txt=True)
    async with ClientSession() as session:
        gate = PolicyGate(config)
        await gate.load(DocumentFetcher(session, config))

    assert hits["n"] == 0
    assert not gate.loaded
