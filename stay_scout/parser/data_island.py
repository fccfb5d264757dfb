# File: stay_scout/parser/data_island.py
"""Locating the embedded data island of a page.

A page may carry its render-time state in several places. Each place is
handled by a small locator; :func:`locate_island` probes all of them in
order and keeps every island that yields parseable JSON, so a caller can fall
through to the next one when the first holds nothing it can use.
"""
from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, List, Protocol

from bs4 import BeautifulSoup

from stay_scout.logger import logger

__all__: Sequence[str] = (
    "DataIsland",
    "IslandLookup",
    "IslandLocator",
    "ScriptByIdLocator",
    "JsonLdLocator",
    "default_locators",
    "locate_island",
)

DEFERRED_STATE = "deferred-state"
JSON_LD = "json-ld"


@dataclass(slots=True)
class DataIsland:
    """Parsed island plus the name of the locator that found it."""

    source: str
    data: Any


@dataclass(slots=True)
class IslandLookup:
    """Outcome of probing every locator: parseable islands in probe order and why others failed."""

    islands: List[DataIsland] = field(default_factory=list)
    problems: List[str] = field(default_factory=list)

    @property
    def reason(self) -> str:
        return "; ".join(self.problems) or "No data island found"


class IslandLocator(Protocol):
    name: str

    def locate(self, soup: BeautifulSoup) -> Any:
        """Return parsed data, ``None`` when absent; raise ValueError when malformed."""
        ...


class ScriptByIdLocator:
    """``<script id="...">`` holding a single serialized object."""

    name = DEFERRED_STATE

    def __init__(self, element_id: str) -> None:
        self.element_id = element_id

    def locate(self, soup: BeautifulSoup) -> Any:
        tag = soup.find("script", id=self.element_id)
        if tag is None:
            return None
        text = tag.get_text()
        if not text.strip():
            raise ValueError(f"Data script element #{self.element_id} is empty")
        return json.loads(text)


class JsonLdLocator:
    """``<script type="application/ld+json">`` blocks, collected into a list."""

    name = JSON_LD

    def locate(self, soup: BeautifulSoup) -> Any:
        blocks: List[Any] = []
        errors = 0
        for tag in soup.find_all("script", attrs={"type": "application/ld+json"}):
            text = tag.get_text()
            if not text.strip():
                continue
            try:
                data = json.loads(text)
            except json.JSONDecodeError:
                errors += 1
                continue
            if isinstance(data, list):
                blocks.extend(data)
            elif isinstance(data, dict) and isinstance(data.get("@graph"), list):
                blocks.extend(data["@graph"])
            else:
                blocks.append(data)
        if not blocks and errors:
            raise ValueError(f"{errors} JSON-LD block(s) could not be parsed")
        return blocks or None


def default_locators(element_id: str) -> List[IslandLocator]:
    return [ScriptByIdLocator(element_id), JsonLdLocator()]


def locate_island(soup: BeautifulSoup, locators: Sequence[IslandLocator]) -> IslandLookup:
    """Probe *locators* in order, collecting every parseable island."""
    lookup = IslandLookup()
    for locator in locators:
        try:
            data = locator.locate(soup)
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError too
            logger.warning("Malformed %s data island: %s", locator.name, exc)
            lookup.problems.append(f"{locator.name}: {exc}")
            continue
        if data is None:
            logger.debug("No %s data island in page", locator.name)
            continue
        lookup.islands.append(DataIsland(locator.name, data))
    return lookup
