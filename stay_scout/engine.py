# File: stay_scout/engine.py
"""stay_scout.engine: Оркестрация вызовов инструментов: robots.txt → загрузка → извлечение → ответ."""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Type, TypeVar

from aiohttp import ClientSession
from pydantic import BaseModel, ValidationError

from stay_scout.config import Identity, ServerConfig
from stay_scout.crawler.fetcher import DocumentFetcher
from stay_scout.crawler.robots import PolicyGate
from stay_scout.errors import InputError, PolicyDenied, ScoutError
from stay_scout.logger import logger
from stay_scout.normalizer import ResponseNormalizer, ToolOutcome
from stay_scout.parser.extractor import ExtractionResult, Kind, StructuredExtractor
from stay_scout.parser.fallback import FallbackScanner
from stay_scout.parser.html_parser import load_soup
from stay_scout.tools import (
    TOOL_DEFINITIONS,
    CompareInput,
    CostBreakdownInput,
    ListingInput,
    PhotosInput,
    ReviewsInput,
    SearchInput,
    build_listing_url,
    build_search_url,
)
from stay_scout.utils import path_with_query

__all__ = ["Engine", "run_tool"]

_ModelT = TypeVar("_ModelT", bound=BaseModel)
_Handler = Callable[[Mapping[str, Any]], Awaitable[ToolOutcome]]


def _validate(model: Type[_ModelT], arguments: Mapping[str, Any]) -> _ModelT:
    try:
        return model.model_validate(dict(arguments))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}" for err in exc.errors()
        )
        raise InputError(f"Invalid arguments: {problems}") from exc


class Engine:
    """Фасад для сервера, CLI и тестов: один конвейер на вызов инструмента."""

    def __init__(
        self,
        config: ServerConfig,
        *,
        fetcher: Optional[DocumentFetcher] = None,
        gate: Optional[PolicyGate] = None,
        extractor: Optional[StructuredExtractor] = None,
        scanner: Optional[FallbackScanner] = None,
        normalizer: Optional[ResponseNormalizer] = None,
    ) -> None:
        """Все компоненты можно подменить; недостающие создаются по конфигу."""
        self.config = config
        self.fetcher = fetcher
        self.gate = gate or PolicyGate(config)
        self.extractor = extractor or StructuredExtractor(config)
        self.scanner = scanner or FallbackScanner.from_config(config)
        self.normalizer = normalizer or ResponseNormalizer(config.max_photos)
        self._session: Optional[ClientSession] = None
        self._tools: Dict[str, _Handler] = {
            "search": self.search,
            "listingDetails": self.listing_details,
            "comparePrices": self.compare_prices,
            "getReviews": self.get_reviews,
            "costBreakdown": self.cost_breakdown,
            "getListingPhotos": self.get_listing_photos,
            "analyzeListingPhotos": self.analyze_listing_photos,
        }

    async def __aenter__(self) -> Engine:
        if self.fetcher is None:
            self._session = ClientSession(raise_for_status=False)
            self.fetcher = DocumentFetcher(self._session, self.config)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def start(self) -> None:
        """Загружает robots.txt заранее (при старте сервера)."""
        await self.gate.load(self._require_fetcher())

    @staticmethod
    def list_tools() -> List[Dict[str, Any]]:
        return TOOL_DEFINITIONS

    async def call(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> ToolOutcome:
        """Выполняет инструмент по имени; любая ошибка превращается в ответ с isError."""
        handler = self._tools.get(name)
        if handler is None:
            logger.warning("Unknown tool requested: %s", name)
            return ToolOutcome.failure(InputError.kind, f"Unknown tool: {name}")
        if arguments is not None and not isinstance(arguments, Mapping):
            return ToolOutcome.failure(InputError.kind, "Tool arguments must be a JSON object")

        logger.info("Tool call received: %s", name)
        started = time.monotonic()
        try:
            outcome = await handler(arguments or {})
        except ScoutError as exc:
            outcome = ToolOutcome.from_error(exc)
        except Exception as exc:
            logger.exception("Tool call %s failed unexpectedly", name)
            outcome = ToolOutcome.failure("InternalError", str(exc) or type(exc).__name__)
        duration_ms = (time.monotonic() - started) * 1000
        logger.info("Tool call completed: %s in %.0fms (success=%s)", name, duration_ms, not outcome.is_error)
        return outcome

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    def _require_fetcher(self) -> DocumentFetcher:
        if self.fetcher is None:
            raise RuntimeError("Engine is not started: use 'async with Engine(config)'")
        return self.fetcher

    async def _guard(self, url: str, ignore: bool) -> None:
        """robots.txt проверяется до любой загрузки страницы."""
        if ignore or self.gate.disabled:
            return
        await self.gate.load(self._require_fetcher())
        self.gate.ensure_allowed(path_with_query(url), url)

    async def _extract(self, url: str, kind: Kind, identity: Optional[Identity] = None) -> ExtractionResult:
        document = await self._require_fetcher().fetch(url, identity=identity or self.config.identity)
        return self.extractor.extract(document, kind)

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    async def search(self, arguments: Mapping[str, Any]) -> ToolOutcome:
        params = _validate(SearchInput, arguments)
        url = build_search_url(self.config.origin, params)
        ctx = {"searchUrl": url}
        try:
            await self._guard(url, params.ignore_robots)
            logger.info("Performing search for %r (%s - %s)", params.location, params.checkin, params.checkout)
            result = await self._extract(url, Kind.SEARCH)
        except ScoutError as exc:
            logger.error("Search request failed: %s (%s)", exc, url)
            return ToolOutcome.from_error(exc, ctx)
        if result.is_empty:
            logger.error("Failed to parse search results: %s (%s)", result.reason, url)
        else:
            logger.info("Search completed: %d result(s)", len(result.items))
        return self.normalizer.normalize(result, Kind.SEARCH, ctx)

    async def listing_details(self, arguments: Mapping[str, Any]) -> ToolOutcome:
        params = _validate(ListingInput, arguments)
        url = build_listing_url(
            self.config.origin, params.id, params.checkin, params.checkout, params.guest_params()
        )
        ctx = {"listingUrl": url}
        try:
            await self._guard(url, params.ignore_robots)
            logger.info("Fetching listing details for %s", params.id)
            result = await self._extract(url, Kind.DETAILS)
        except ScoutError as exc:
            logger.error("Listing details request failed: %s (%s)", exc, url)
            return ToolOutcome.from_error(exc, ctx)
        if result.is_empty:
            logger.error("Failed to parse listing details: %s (%s)", result.reason, url)
        else:
            logger.info("Listing details fetched: %d section(s)", len(result.items))
        return self.normalizer.normalize(result, Kind.DETAILS, ctx)

    async def compare_prices(self, arguments: Mapping[str, Any]) -> ToolOutcome:
        params = _validate(CompareInput, arguments)
        logger.info("Comparing prices for %s across %d date range(s)", params.id, len(params.date_ranges))
        guests = params.guest_params()
        plan = [
            (r, build_listing_url(self.config.origin, params.id, r.checkin, r.checkout, guests))
            for r in params.date_ranges
        ]
        denied: Dict[int, PolicyDenied] = {}
        for index, (_, url) in enumerate(plan):
            try:
                await self._guard(url, params.ignore_robots)
            except PolicyDenied as exc:
                denied[index] = exc
        if len(denied) == len(plan):
            return ToolOutcome.from_error(denied[0], {"listingId": params.id})

        records: List[Dict[str, Any]] = []
        # sequential, in input order; one failing range does not abort the rest
        for index, (date_range, url) in enumerate(plan):
            ctx = {"checkin": date_range.checkin, "checkout": date_range.checkout, "url": url}
            if index in denied:
                records.append(self.normalizer.error_record(denied[index], ctx))
                continue
            try:
                result = await self._extract(url, Kind.PRICING)
            except ScoutError as exc:
                logger.warning("Price lookup failed for %s..%s: %s", date_range.checkin, date_range.checkout, exc)
                records.append(self.normalizer.error_record(exc, ctx))
                continue
            records.append(self.normalizer.price_record(result, ctx))
        ok = sum(1 for r in records if "error" not in r)
        logger.info("Price comparison completed: %d/%d successful", ok, len(records))
        return self.normalizer.comparison(params.id, records)

    async def get_reviews(self, arguments: Mapping[str, Any]) -> ToolOutcome:
        params = _validate(ReviewsInput, arguments)
        url = build_listing_url(self.config.origin, params.id)
        ctx = {"listingId": params.id, "url": url}
        try:
            await self._guard(url, params.ignore_robots)
            logger.info("Fetching reviews for %s", params.id)
            result = await self._extract(url, Kind.REVIEWS)
        except ScoutError as exc:
            logger.error("Reviews request failed: %s (%s)", exc, url)
            return ToolOutcome.from_error(exc, ctx)
        if result.is_empty:
            logger.error("Failed to parse reviews: %s (%s)", result.reason, url)
        else:
            logger.info("Reviews fetched: %d review(s)", len(result.items))
        return self.normalizer.normalize(result, Kind.REVIEWS, ctx)

    async def cost_breakdown(self, arguments: Mapping[str, Any]) -> ToolOutcome:
        params = _validate(CostBreakdownInput, arguments)
        url = build_listing_url(
            self.config.origin, params.id, params.checkin, params.checkout, params.guest_params()
        )
        ctx = {"listingId": params.id, "checkin": params.checkin, "checkout": params.checkout, "url": url}
        try:
            await self._guard(url, params.ignore_robots)
            logger.info("Fetching cost breakdown for %s (%s - %s)", params.id, params.checkin, params.checkout)
            result = await self._extract(url, Kind.PRICING)
        except ScoutError as exc:
            logger.error("Cost breakdown request failed: %s (%s)", exc, url)
            return ToolOutcome.from_error(exc, ctx)
        if result.is_empty:
            logger.error("Failed to parse cost breakdown: %s (%s)", result.reason, url)
        return self.normalizer.normalize(result, Kind.PRICING, ctx)

    async def get_listing_photos(self, arguments: Mapping[str, Any]) -> ToolOutcome:
        return await self._photos(arguments, analyze=False)

    async def analyze_listing_photos(self, arguments: Mapping[str, Any]) -> ToolOutcome:
        return await self._photos(arguments, analyze=True)

    async def _photos(self, arguments: Mapping[str, Any], *, analyze: bool) -> ToolOutcome:
        params = _validate(PhotosInput, arguments)
        url = build_listing_url(self.config.origin, params.id)
        ctx = {"listingId": params.id, "url": url}
        try:
            await self._guard(url, params.ignore_robots)
            logger.info("Extracting photos for %s", params.id)
            document = await self._require_fetcher().fetch(url, identity=self.config.photo_identity)
        except ScoutError as exc:
            logger.error("Photo request failed: %s (%s)", exc, url)
            failed = {**ctx, "success": False, "extractionSuccess": False, "photoCount": 0, "photoUrls": []}
            return ToolOutcome.from_error(exc, failed)

        soup = load_soup(document)
        result = self.extractor.extract(soup, Kind.PHOTOS)
        if result.is_empty:
            logger.info("No photos in data island (%s), scanning markup", result.reason)
            fallback = ExtractionResult.fallback(Kind.PHOTOS, self.scanner.scan(soup))
            if fallback.is_empty:
                fallback.reason = f"{result.reason}; {fallback.reason}"
            result = fallback
        logger.info("Photo extraction for %s: %d photo(s) via %s", params.id, len(result.items), result.status.value)
        return self.normalizer.normalize(result, Kind.PHOTOS, ctx, analyze=analyze)


async def run_tool(config: ServerConfig, name: str, arguments: Optional[Mapping[str, Any]] = None) -> ToolOutcome:
    """Одноразовый вызов инструмента с собственной HTTP-сессией (для CLI)."""
    async with Engine(config) as engine:
        return await engine.call(name, arguments)
