# File: stay_scout/utils.py
"""stay_scout.utils: Утилитарные функции для URL, идентификаторов объявлений и списков."""

from __future__ import annotations

import base64
import binascii
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

from stay_scout.logger import logger

__all__: Sequence[str] = (
    "strip_query",
    "path_with_query",
    "remove_duplicates",
    "dedupe_and_cap",
    "decode_listing_id",
    "coerce_count",
    "utc_timestamp",
)


def strip_query(url: str) -> str:
    """Убирает query-string и фрагмент, оставляя канонический URL ресурса."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def path_with_query(url: str) -> str:
    """Возвращает путь вместе с query-string (то, что проверяется по robots.txt)."""
    parts = urlsplit(url)
    path = parts.path or "/"
    return f"{path}?{parts.query}" if parts.query else path


def remove_duplicates(urls: Iterable[str]) -> List[str]:
    """Удаляет дубликаты из списка URL, сохраняя порядок."""
    items = list(urls)
    unique = list(dict.fromkeys(items))
    removed = len(items) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique


def dedupe_and_cap(urls: Iterable[str], limit: int) -> List[str]:
    """Дедупликация по точному совпадению строк и обрезка до limit элементов."""
    return remove_duplicates(u for u in urls if isinstance(u, str) and u)[:limit]


def decode_listing_id(encoded: Any) -> Optional[str]:
    """
    Декодирует непрозрачный base64-идентификатор вида ``DemandStayListing:12345``.
    Возвращает числовой id или None, если строка повреждена.
    """
    if not isinstance(encoded, str) or not encoded:
        return None
    padded = encoded + "=" * (-len(encoded) % 4)
    try:
        decoded = base64.b64decode(padded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        logger.debug("Cannot base64-decode listing id %r", encoded)
        return None
    parts = decoded.split(":")
    if len(parts) < 2 or not parts[1].isdigit():
        logger.debug("Unexpected decoded listing id %r", decoded)
        return None
    return parts[1]


def coerce_count(value: Any) -> int:
    """Приводит число гостей к int: ``"2"`` и ``2.7`` дают 2."""
    if isinstance(value, bool):
        raise ValueError("guest count must be a number")
    if isinstance(value, int):
        return value
    return int(float(str(value).strip()))


def utc_timestamp() -> str:
    """Текущее время в ISO-8601 (UTC)."""
    return datetime.now(timezone.utc).isoformat()
