# stay_scout/crawler/models.py
"""
Data models for the StayScout fetch layer.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass(frozen=True, slots=True)
class FetchRequest:
    """Target URL, headers and timeout (seconds) of a single page fetch."""

    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    timeout: float = 30.0


@dataclass(slots=True)
class RawDocument:
    """Holds the URL and the text body of a fetched page."""

    url: str
    content: str
