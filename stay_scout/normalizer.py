# File: stay_scout/normalizer.py
"""stay_scout.normalizer: Приведение результатов извлечения к ответам инструментов."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from stay_scout.errors import ParseError, ScoutError
from stay_scout.parser.extractor import ExtractionResult, Kind
from stay_scout.utils import dedupe_and_cap, utc_timestamp

__all__: Sequence[str] = ("ToolOutcome", "ResponseNormalizer", "ANALYSIS_RUBRIC", "format_analysis_prompt")

_PARSE_TARGETS: Dict[Kind, str] = {
    Kind.SEARCH: "search results",
    Kind.DETAILS: "listing details",
    Kind.REVIEWS: "reviews",
    Kind.PRICING: "cost breakdown",
}

ANALYSIS_RUBRIC: Tuple[Tuple[str, str], ...] = (
    ("Cleanliness", "visible dirt, clutter, stains, tidiness of surfaces and linens"),
    ("Design", "style, decor coherence, furniture quality and layout"),
    ("Lighting", "natural light, fixtures, brightness and ambience"),
    ("Amenities", "appliances, workspace, entertainment and other visible facilities"),
    ("Condition", "wear and tear, maintenance issues, age of fittings"),
    ("Professionalism", "photo quality, composition and consistency of the listing photos"),
    ("Overall score", "a single 1-10 rating summarising the assessment"),
)


@dataclass(slots=True)
class ToolOutcome:
    """Результат вызова инструмента: payload и флаг ошибки."""

    payload: Dict[str, Any] = field(default_factory=dict)
    is_error: bool = False

    @classmethod
    def success(cls, payload: Mapping[str, Any]) -> ToolOutcome:
        data = dict(payload)
        data.setdefault("timestamp", utc_timestamp())
        return cls(data, is_error=False)

    @classmethod
    def failure(cls, kind: str, message: str, context: Optional[Mapping[str, Any]] = None) -> ToolOutcome:
        data: Dict[str, Any] = {"error": message or kind, "kind": kind}
        data.update(context or {})
        data.setdefault("timestamp", utc_timestamp())
        return cls(data, is_error=True)

    @classmethod
    def from_error(cls, exc: ScoutError, context: Optional[Mapping[str, Any]] = None) -> ToolOutcome:
        merged = {**exc.context, **(context or {})}
        return cls.failure(exc.kind, exc.message, merged)

    def text(self, *, pretty: bool = True) -> str:
        """JSON-представление payload."""
        return json.dumps(self.payload, ensure_ascii=False, indent=2 if pretty else None)

    def envelope(self) -> Dict[str, Any]:
        """Конверт для внешнего транспорта: content + isError."""
        return {"content": [{"type": "text", "text": self.text()}], "isError": self.is_error}


def format_analysis_prompt(listing_id: str, photo_urls: Sequence[str]) -> str:
    """Нумерованный список фото и фиксированная шкала оценки."""
    lines = [f"Listing {listing_id}"]
    if photo_urls:
        lines.extend(f"Photo {i}: {url}" for i, url in enumerate(photo_urls, start=1))
    else:
        lines.append("No photos could be extracted for this listing.")
    lines.append("")
    lines.append("Assess the photos above on each of the following dimensions:")
    lines.extend(f"{i}. {name}: {hint}" for i, (name, hint) in enumerate(ANALYSIS_RUBRIC, start=1))
    return "\n".join(lines)


class ResponseNormalizer:
    """Строит payload ответа по результату извлечения."""

    def __init__(self, max_photos: int = 50) -> None:
        self.max_photos = max_photos

    def normalize(
        self,
        result: ExtractionResult,
        kind: Optional[Kind] = None,
        context: Optional[Mapping[str, Any]] = None,
        *,
        analyze: bool = False,
    ) -> ToolOutcome:
        """
        Фото: всегда Success (пустой список допустим).
        Остальные виды: Empty означает сломанную структуру страницы и даёт Failure.
        """
        kind = kind or result.kind
        ctx = dict(context or {})
        if kind is Kind.PHOTOS:
            return ToolOutcome.success(self.photos_payload(result, ctx, analyze=analyze))
        if result.is_empty:
            return ToolOutcome.failure(
                ParseError.kind,
                f"Failed to parse {_PARSE_TARGETS[kind]} from the listing site. "
                "The page structure may have changed.",
                {**ctx, "details": result.reason},
            )
        return ToolOutcome.success({**ctx, **result.fields})

    def photos_payload(
        self, result: ExtractionResult, context: Dict[str, Any], *, analyze: bool = False
    ) -> Dict[str, Any]:
        urls: List[str] = [] if result.is_empty else dedupe_and_cap(result.items, self.max_photos)
        payload: Dict[str, Any] = {
            **context,
            "success": bool(urls),
            "extractionSuccess": bool(urls),
            "photoCount": len(urls),
            "photoUrls": urls,
            "source": result.status.value,
        }
        if analyze:
            payload["analysisPrompt"] = format_analysis_prompt(str(context.get("listingId", "")), urls)
        if result.is_empty:
            payload["details"] = result.reason
        return payload

    # ------------------------------------------------------------------
    # Price comparison
    # ------------------------------------------------------------------

    @staticmethod
    def price_record(result: ExtractionResult, context: Mapping[str, Any]) -> Dict[str, Any]:
        """Одна запись сравнения цен; пустой результат превращается в запись-ошибку."""
        if result.is_empty:
            return {
                **context,
                "error": "Failed to parse pricing from the listing site. The page structure may have changed.",
                "kind": ParseError.kind,
                "details": result.reason,
            }
        return {**context, **result.fields}

    @staticmethod
    def error_record(exc: ScoutError, context: Mapping[str, Any]) -> Dict[str, Any]:
        return {**context, **exc.context, "error": exc.message, "kind": exc.kind}

    @staticmethod
    def comparison(listing_id: str, records: List[Dict[str, Any]]) -> ToolOutcome:
        return ToolOutcome.success({"listingId": listing_id, "comparisons": records})
