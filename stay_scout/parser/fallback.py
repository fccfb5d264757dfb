# File: stay_scout/parser/fallback.py
"""Markup-only photo recovery, used when the data island yields no photos."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, List

from stay_scout.config import ServerConfig
from stay_scout.logger import logger
from stay_scout.parser.html_parser import load_soup
from stay_scout.utils import dedupe_and_cap, strip_query

__all__: Sequence[str] = ("FallbackScanner",)

ALT_KEYWORDS = ("photo", "image")


class FallbackScanner:
    """Scans ``<img>`` tags for listing photos.

    A tag qualifies when its source contains one of *markers*; in strict mode
    its ``alt`` text must also mention a photo. Zero matches is a valid outcome.
    """

    def __init__(self, markers: Sequence[str], strict: bool = True, limit: int = 50) -> None:
        self.markers = tuple(m for m in markers if m)
        self.strict = strict
        self.limit = limit

    @classmethod
    def from_config(cls, config: ServerConfig) -> FallbackScanner:
        return cls(config.photo_markers, strict=config.strict_photo_alt, limit=config.max_photos)

    def scan(self, document: Any) -> List[str]:
        soup = load_soup(document)
        candidates: List[str] = []
        for img in soup.find_all("img"):
            src = img.get("src") or img.get("data-src")
            if not isinstance(src, str) or not self._has_marker(src):
                continue
            if self.strict and not self._alt_mentions_photo(img.get("alt")):
                continue
            candidates.append(strip_query(src.strip()))
        urls = dedupe_and_cap(candidates, self.limit)
        logger.debug("Fallback scan matched %d image(s)", len(urls))
        return urls

    def _has_marker(self, src: str) -> bool:
        return any(marker in src for marker in self.markers)

    @staticmethod
    def _alt_mentions_photo(alt: Any) -> bool:
        text = alt.lower() if isinstance(alt, str) else ""
        return any(word in text for word in ALT_KEYWORDS)
