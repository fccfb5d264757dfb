"""stay_scout.parser: data island extraction and markup fallback."""

from .extractor import ExtractionResult, Kind, Status, StructuredExtractor
from .fallback import FallbackScanner

__all__ = ["ExtractionResult", "Kind", "Status", "StructuredExtractor", "FallbackScanner"]
