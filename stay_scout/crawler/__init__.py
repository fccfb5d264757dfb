"""stay_scout.crawler: robots.txt policy gate and page fetching."""

from .fetcher import DocumentFetcher
from .models import FetchRequest, RawDocument
from .robots import PolicyGate, RobotsTxtRules

__all__ = ["DocumentFetcher", "FetchRequest", "RawDocument", "PolicyGate", "RobotsTxtRules"]
