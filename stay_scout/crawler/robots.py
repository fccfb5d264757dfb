# stay_scout/crawler/robots.py
"""
robots.txt rules (RFC 9309) and the process-scoped policy gate built on top of them.
"""
from __future__ import annotations

import asyncio
import re
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from stay_scout.config import ServerConfig
from stay_scout.errors import FetchTimeoutError, NetworkError, PolicyDenied
from stay_scout.logger import logger

if TYPE_CHECKING:
    from stay_scout.crawler.fetcher import DocumentFetcher

__all__ = ("RobotsTxtRules", "PolicyGate", "ROBOTS_DENIED_MESSAGE")

ROBOTS_DENIED_MESSAGE = (
    "This path is disallowed by the site's robots.txt to this User-agent. "
    "You may or may not want to run the server with '--ignore-robots-txt' args"
)
ROBOTS_SUGGESTION = "Pass ignoreRobotsText=true for this call or set IGNORE_ROBOTS_TXT=true if needed for testing"


class RobotsTxtRules:
    """
    Parses robots.txt (RFC 9309).
    An empty Disallow allows every path; the longest matching rule wins, Allow wins ties.
    """
    _Directive = Tuple[str, str]
    _WILDCARD_RE = re.compile(r"(\*|\$)")

    def __init__(self, text: str) -> None:
        self._groups: List[Dict[str, list]] = []
        self._regex_cache: Dict[str, re.Pattern[str]] = {}
        self._parse(text)

    def can_fetch(self, user_agent: str, path: str) -> bool:
        group = self._match_group(user_agent)
        if group is None:
            return True
        best_len = -1
        allow: Optional[bool] = None
        for directive, pattern in group["directives"]:
            if not self._match_path(path, pattern):
                continue
            length = self._rule_len(pattern)
            if length > best_len or (length == best_len and directive == "allow" and allow is False):
                best_len = length
                allow = directive == "allow"
        return True if allow is None else allow

    def _parse(self, text: str) -> None:
        current: Optional[Dict[str, list]] = None
        for raw in text.splitlines():
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            key, _, val = line.partition(":")
            key = key.lower().strip()
            val = val.strip()
            if key == "user-agent":
                # consecutive user-agent lines share one group
                if current is None or current["directives"]:
                    current = {"agents": [], "directives": []}
                    self._groups.append(current)
                # an empty token still opens the group but matches no agent
                if val:
                    current["agents"].append(val.lower())
            elif key in ("allow", "disallow"):
                if key == "disallow" and val == "":
                    continue
                if current is None:
                    current = {"agents": ["*"], "directives": []}
                    self._groups.append(current)
                current["directives"].append((key, val))

    def _match_group(self, user_agent: str) -> Optional[Dict[str, list]]:
        ua = user_agent.lower()
        token = ua.split("/", 1)[0].strip()
        for group in self._groups:
            if any(a and a != "*" and (a == token or ua.startswith(a)) for a in group["agents"]):
                return group
        for group in self._groups:
            if "*" in group["agents"]:
                return group
        return None

    def _match_path(self, path: str, pattern: str) -> bool:
        if pattern not in self._regex_cache:
            esc = re.escape(pattern).replace(r"\*", ".*")
            if pattern.endswith("$"):
                esc = esc[:-2] + "$"
            self._regex_cache[pattern] = re.compile(f"^{esc}")
        return bool(self._regex_cache[pattern].match(path))

    @classmethod
    def _rule_len(cls, pattern: str) -> int:
        return len(cls._WILDCARD_RE.sub("", pattern))


class PolicyGate:
    """
    Process-scoped robots.txt gate.

    The document is loaded at most once; a failed load leaves it empty, which
    allows every path, and is not retried for the lifetime of the gate.
    """

    def __init__(self, config: ServerConfig) -> None:
        self.config = config
        self.user_agent = config.user_agent
        self.robots_url = f"{config.origin}/robots.txt"
        self._text = ""
        self._rules: Optional[RobotsTxtRules] = None
        self._loaded = False
        self._lock = asyncio.Lock()

    @classmethod
    def from_text(cls, config: ServerConfig, text: str) -> PolicyGate:
        """Gate with an already loaded document (no network involved)."""
        gate = cls(config)
        gate._set_text(text)
        gate._loaded = True
        return gate

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def document(self) -> str:
        return self._text

    @property
    def disabled(self) -> bool:
        return self.config.ignore_robots_txt

    async def load(self, fetcher: DocumentFetcher) -> None:
        """Fetch robots.txt once; concurrent callers wait for the first one."""
        if self._loaded:
            return
        if self.disabled:
            logger.info("Skipping robots.txt fetch (ignored by configuration)")
            return
        async with self._lock:
            if self._loaded:
                return
            logger.info("Fetching robots.txt from %s", self.robots_url)
            try:
                doc = await fetcher.fetch(
                    self.robots_url, timeout=self.config.robots_timeout, identity="declared"
                )
            except (NetworkError, FetchTimeoutError) as exc:
                logger.warning("Error fetching robots.txt, assuming all paths allowed: %s", exc)
                self._set_text("")
            else:
                self._set_text(doc.content)
                logger.info("Successfully fetched robots.txt")
            self._loaded = True

    def allow(self, path: str) -> bool:
        """True if the declared identity may fetch *path* (path plus query)."""
        if self._rules is None:
            return True
        try:
            allowed = self._rules.can_fetch(self.user_agent, path)
        except (re.error, ValueError) as exc:
            logger.warning("Error evaluating robots.txt, allowing path %s: %s", path, exc)
            return True
        if not allowed:
            logger.warning("Path disallowed by robots.txt: %s (User-agent: %s)", path, self.user_agent)
        return allowed

    def ensure_allowed(self, path: str, url: str, ignore: bool = False) -> None:
        """Raise PolicyDenied unless the gate is bypassed or *path* is allowed."""
        if ignore or self.disabled:
            return
        if not self.allow(path):
            raise PolicyDenied(ROBOTS_DENIED_MESSAGE, {"url": url, "suggestion": ROBOTS_SUGGESTION})

    def _set_text(self, text: str) -> None:
        self._text = text or ""
        self._rules = None
        if not self._text.strip():
            return
        try:
            self._rules = RobotsTxtRules(self._text)
        except (re.error, ValueError) as exc:
            logger.warning("Error parsing robots.txt, allowing all paths: %s", exc)
