# === FILE: stay_scout/errors.py ===
"""Error kinds raised inside tool pipelines.

Every error carries a human-readable message and an optional context mapping
(typically the URL that was consulted). The engine turns them into failure
envelopes; none of them is allowed to escape a tool call.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

__all__ = (
    "ScoutError",
    "PolicyDenied",
    "NetworkError",
    "FetchTimeoutError",
    "ParseError",
    "InputError",
)


class ScoutError(Exception):
    """Base class for all tool pipeline errors."""

    kind: str = "Error"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})


class PolicyDenied(ScoutError):
    """Target path is disallowed by robots.txt and no override was given."""

    kind = "PolicyDenied"


class NetworkError(ScoutError):
    """Non-2xx response or connection failure."""

    kind = "NetworkError"


class FetchTimeoutError(ScoutError):
    """Fetch deadline exceeded."""

    kind = "TimeoutError"


class ParseError(ScoutError):
    """Data island missing, malformed, or shaped differently than expected."""

    kind = "ParseError"


class InputError(ScoutError):
    """Invalid or missing tool arguments."""

    kind = "InputError"
