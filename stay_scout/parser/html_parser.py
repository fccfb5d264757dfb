# === FILE: stay_scout/parser/html_parser.py ===
"""HTML loading helper shared by the extractor and the fallback scanner.

Both passes work on the same :class:`~bs4.BeautifulSoup` tree, so a page is
parsed once per tool call. :func:`load_soup` accepts raw markup, a
:class:`~stay_scout.crawler.models.RawDocument` or an already parsed tree.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from bs4 import BeautifulSoup

__all__: Sequence[str] = ("load_soup",)


def load_soup(page: Any) -> BeautifulSoup:
    """Return a parsed tree for *page* (str, ``RawDocument`` or ``BeautifulSoup``)."""
    if isinstance(page, BeautifulSoup):
        return page
    if hasattr(page, "content") and hasattr(page, "url"):
        html = page.content
    else:
        html = page
    if isinstance(html, bytes):
        html = html.decode("utf-8", errors="replace")
    return BeautifulSoup(str(html or ""), "html.parser")
