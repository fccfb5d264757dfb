# File: stay_scout/parser/extractor.py
"""Structured extraction from the page data island.

The island's object graph is third-party, undocumented and changes without
notice. Every navigation step goes through :func:`~stay_scout.parser.schema.dig`,
so a missing key means "no data for this kind" and ends up as an ``EMPTY``
result instead of an exception.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from stay_scout.config import ServerConfig
from stay_scout.logger import logger
from stay_scout.parser.data_island import (
    DEFERRED_STATE,
    JSON_LD,
    DataIsland,
    IslandLocator,
    default_locators,
    locate_island,
)
from stay_scout.parser.html_parser import load_soup
from stay_scout.parser.schema import (
    PRICE_LINE_SCHEMA,
    REVIEW_SCHEMA,
    SEARCH_RESULT_SCHEMA,
    SECTION_SCHEMAS,
    clean,
    dig,
    flatten_arrays,
    pick_by_schema,
)
from stay_scout.utils import decode_listing_id, dedupe_and_cap

__all__: Sequence[str] = ("Kind", "Status", "ExtractionResult", "StructuredExtractor")

PRESENTATION_PATH = ("niobeClientData", 0, 1, "data", "presentation")
SEARCH_RESULTS_PATH = ("staysSearch", "results")
SECTIONS_PATH = ("stayProductDetailPage", "sections", "sections")
REVIEWS_SECTION_ID = "REVIEWS_DEFAULT"

PHOTO_TILE_KEYS = ("previewImages", "mediaItems", "photoTiles")
PHOTO_URL_PATHS = (("baseUrl",), ("picture", "pictureUrls"), ("picture", "baseUrl"))


class Kind(str, Enum):
    SEARCH = "search"
    DETAILS = "listing details"
    REVIEWS = "reviews"
    PRICING = "pricing"
    PHOTOS = "photos"


class Status(str, Enum):
    STRUCTURED = "structured"
    FALLBACK = "fallback"
    EMPTY = "empty"


@dataclass(slots=True)
class ExtractionResult:
    """Tagged result: structured fields, fallback items, or nothing."""

    kind: Kind
    status: Status
    fields: Dict[str, Any] = field(default_factory=dict)
    items: List[Any] = field(default_factory=list)
    reason: str = ""

    @classmethod
    def structured(cls, kind: Kind, fields: Dict[str, Any], items: List[Any]) -> ExtractionResult:
        return cls(kind, Status.STRUCTURED, fields=fields, items=items)

    @classmethod
    def fallback(cls, kind: Kind, items: List[Any]) -> ExtractionResult:
        if not items:
            return cls.empty(kind, "Fallback markup scan found nothing")
        return cls(kind, Status.FALLBACK, items=list(items))

    @classmethod
    def empty(cls, kind: Kind, reason: str) -> ExtractionResult:
        return cls(kind, Status.EMPTY, reason=reason)

    @property
    def is_empty(self) -> bool:
        return self.status is Status.EMPTY


# (fields, items) or None when the island holds nothing for the kind
_Handler = Callable[[DataIsland], Optional[tuple]]


class StructuredExtractor:
    """Locates the data island and pulls out typed, allow-listed records per kind."""

    def __init__(
        self,
        config: ServerConfig,
        locators: Optional[Sequence[IslandLocator]] = None,
    ) -> None:
        self.config = config
        self.locators = list(locators) if locators is not None else default_locators(config.data_island_id)
        self._handlers: Dict[Kind, _Handler] = {
            Kind.SEARCH: self._search,
            Kind.DETAILS: self._details,
            Kind.REVIEWS: self._reviews,
            Kind.PRICING: self._pricing,
            Kind.PHOTOS: self._photos,
        }

    def extract(self, document: Any, kind: Kind) -> ExtractionResult:
        soup = load_soup(document)
        lookup = locate_island(soup, self.locators)
        # islands come in probe order; one without data for this kind passes to the next
        for island in lookup.islands:
            try:
                found = self._handlers[kind](island)
            except (TypeError, KeyError, AttributeError) as exc:
                logger.warning("Unexpected %s data shape for %s: %s", island.source, kind.value, exc)
                lookup.problems.append(f"{island.source}: unexpected data shape: {exc}")
                continue
            if found is None:
                logger.debug("No %s data in %s island", kind.value, island.source)
                lookup.problems.append(f"No {kind.value} data in {island.source} island")
                continue
            fields, items = found
            logger.debug("Extracted %d %s item(s) from %s island", len(items), kind.value, island.source)
            return ExtractionResult.structured(kind, fields, items)
        return ExtractionResult.empty(kind, lookup.reason)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    @staticmethod
    def _presentation(island: DataIsland) -> Optional[Mapping]:
        if island.source != DEFERRED_STATE:
            return None
        node = dig(island.data, *PRESENTATION_PATH)
        return node if isinstance(node, Mapping) else None

    def _sections(self, island: DataIsland) -> Optional[List[Mapping]]:
        sections = dig(self._presentation(island), *SECTIONS_PATH)
        if not isinstance(sections, list):
            return None
        return [s for s in sections if isinstance(s, Mapping)]

    # ------------------------------------------------------------------
    # Kinds
    # ------------------------------------------------------------------

    def _search(self, island: DataIsland) -> Optional[tuple]:
        results = dig(self._presentation(island), *SEARCH_RESULTS_PATH)
        if not isinstance(results, Mapping) or not isinstance(results.get("searchResults"), list):
            return None
        records = [self._search_record(r) for r in results["searchResults"] if isinstance(r, Mapping)]
        fields = {"searchResults": records, "paginationInfo": clean(results.get("paginationInfo"))}
        return fields, records

    def _search_record(self, raw: Mapping) -> Dict[str, Any]:
        picked = flatten_arrays(pick_by_schema(clean(raw), SEARCH_RESULT_SCHEMA))
        listing_id = decode_listing_id(dig(raw, "demandStayListing", "id"))
        url = f"{self.config.origin}/rooms/{listing_id}" if listing_id else None
        return {"id": listing_id, "url": url, **picked}

    def _details(self, island: DataIsland) -> Optional[tuple]:
        sections = self._sections(island)
        if sections is None:
            return None
        records = []
        for section in sections:
            schema = SECTION_SCHEMAS.get(section.get("sectionId"))
            if schema is None:
                continue
            body = clean(section.get("section") or {})
            records.append({"id": section["sectionId"], **flatten_arrays(pick_by_schema(body, schema))})
        return {"details": records}, records

    def _reviews(self, island: DataIsland) -> Optional[tuple]:
        sections = self._sections(island)
        if sections is None:
            return None
        fields: Dict[str, Any] = {}
        reviews: List[Any] = []
        for section in sections:
            body = section.get("section")
            if not isinstance(body, Mapping):
                continue
            if section.get("sectionId") == REVIEWS_SECTION_ID and "reviewsSection" not in fields:
                raw = body.get("reviews")
                reviews = pick_by_schema(clean(raw), REVIEW_SCHEMA) if isinstance(raw, list) else []
                fields["reviewsSection"] = clean({"title": body.get("title"), "reviews": reviews})
            modal = body.get("reviewDetailsModal")
            if isinstance(modal, Mapping) and "overallRating" not in fields:
                fields["overallRating"] = clean(modal)
        return fields, reviews

    def _pricing(self, island: DataIsland) -> Optional[tuple]:
        sections = self._sections(island)
        if sections is None:
            return None
        for section in sections:
            pricing = dig(section, "section", "structuredDisplayPrice")
            if not isinstance(pricing, Mapping):
                continue
            fields: Dict[str, Any] = {
                "displayPrice": dig(pricing, "primaryLine", "accessibilityLabel")
                or dig(pricing, "primaryLine", "price"),
                "priceDetails": dig(pricing, "secondaryLine", "accessibilityLabel"),
            }
            explanation = pricing.get("explanationData")
            if isinstance(explanation, Mapping):
                items = dig(explanation, "priceDetails", "items")
                fields["breakdown"] = clean({
                    "title": explanation.get("title"),
                    "items": pick_by_schema(clean(items), PRICE_LINE_SCHEMA) if isinstance(items, list) else [],
                })
            fields = clean(fields)
            return fields, [fields]
        return {}, []

    def _photos(self, island: DataIsland) -> Optional[tuple]:
        if island.source == JSON_LD:
            urls = self._json_ld_images(island.data)
        else:
            sections = self._sections(island)
            if sections is None:
                return None
            urls = []
            for section in sections:
                for key in PHOTO_TILE_KEYS:
                    tiles = dig(section, "section", key)
                    if isinstance(tiles, list):
                        urls.extend(self._tile_urls(tiles))
        urls = dedupe_and_cap(urls, self.config.max_photos)
        if not urls:
            return None
        return {"photoUrls": urls}, urls

    @staticmethod
    def _tile_urls(tiles: List[Any]) -> List[str]:
        urls: List[str] = []
        for tile in tiles:
            for path in PHOTO_URL_PATHS:
                value = dig(tile, *path)
                if isinstance(value, str):
                    urls.append(value)
                elif isinstance(value, list):
                    urls.extend(v for v in value if isinstance(v, str))
        return urls

    @staticmethod
    def _json_ld_images(blocks: Any) -> List[str]:
        urls: List[str] = []
        for block in blocks if isinstance(blocks, list) else [blocks]:
            image = dig(block, "image")
            for entry in image if isinstance(image, list) else [image]:
                if isinstance(entry, str):
                    urls.append(entry)
                elif isinstance(entry, Mapping):
                    url = entry.get("url") or entry.get("contentUrl")
                    if isinstance(url, str):
                        urls.append(url)
        return urls
