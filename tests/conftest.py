# File: tests/conftest.py
import json
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from stay_scout.config import ServerConfig
from stay_scout.crawler.models import RawDocument
from stay_scout.crawler.robots import PolicyGate
from stay_scout.engine import Engine

BASE_URL = "https://listings.example"

Page = Union[str, Exception]


def island_page(payload: Any, *, element_id: str = "data-deferred-state-0", body: str = "") -> str:
    """HTML page carrying *payload* (dict is serialised, str is inserted verbatim)."""
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return (
        "<html><head>"
        f'<script id="{element_id}" type="application/json">{text}</script>'
        f"</head><body>{body}</body></html>"
    )


def presentation(**nodes: Any) -> Dict[str, Any]:
    """Wrap *nodes* the way the site nests its render-time state."""
    return {"niobeClientData": [["StaysPdpSections", {"data": {"presentation": nodes}}]]}


def sections_page(sections: List[Dict[str, Any]], body: str = "") -> str:
    return island_page(
        presentation(stayProductDetailPage={"sections": {"sections": sections}}), body=body
    )


def price_section(label: str = "$120 per night") -> Dict[str, Any]:
    return {
        "sectionId": "BOOK_IT_SIDEBAR",
        "section": {
            "structuredDisplayPrice": {
                "primaryLine": {"accessibilityLabel": label},
                "secondaryLine": {"accessibilityLabel": "$600 total"},
                "explanationData": {
                    "title": "Price details",
                    "priceDetails": {
                        "items": [
                            {"description": "5 nights x $120", "priceString": "$600", "__typename": "X"},
                            {"description": "Cleaning fee", "priceString": "$40"},
                        ]
                    },
                },
            }
        },
    }


class FakeFetcher:
    """Records every fetched URL; *pages* maps a URL to markup or to an exception to raise."""

    def __init__(self, pages: Union[Page, Callable[[str], Page]]) -> None:
        self.pages = pages
        self.calls: List[str] = []
        self.identities: List[Optional[str]] = []

    async def fetch(self, url: str, timeout: Optional[float] = None, identity: Optional[str] = None) -> RawDocument:
        self.calls.append(url)
        self.identities.append(identity)
        page = self.pages(url) if callable(self.pages) else self.pages
        if isinstance(page, Exception):
            raise page
        return RawDocument(url, page)


@pytest.fixture()
def config() -> ServerConfig:
    """Config pointing at a fake site origin."""
    return ServerConfig(base_url=BASE_URL)


@pytest.fixture()
def make_engine(config: ServerConfig) -> Callable[..., Engine]:
    """
    Factory: ``make_engine(pages, robots="")`` returns an Engine wired to a FakeFetcher
    and an already loaded robots.txt document.
    """

    def _make(pages: Union[Page, Callable[[str], Page]], robots: str = "", cfg: Optional[ServerConfig] = None) -> Engine:
        cfg = cfg or config
        return Engine(cfg, fetcher=FakeFetcher(pages), gate=PolicyGate.from_text(cfg, robots))

    return _make
