"""
robots.txt gate.

Fetches, parses and caches one crawl policy per origin, then evaluates
request paths with longest-match precedence (Allow wins ties).

Deviations from the classic format, kept on purpose:
- an empty `Allow:` means allow-all ("/")
- an empty `Disallow:` adds no rule
- a `User-agent:` line opens a new group once the current group has an agent
"""

from __future__ import annotations

import asyncio
import logging
import re
import urllib.parse
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from jobvet.errors import NetworkError
from jobvet.fetchers.http import FetchOptions, ResilientFetcher
from jobvet.models import now_utc

logger = logging.getLogger(__name__)

_DIRECTIVE_RE = re.compile(r"^([A-Za-z-]+)\s*:\s*(.*)$")


def product_token(user_agent: str) -> str:
    """Name before the version: "JobVetBot/1.0 (+https://example.com/bot)" gives "JobVetBot"."""
    s = (user_agent or "").strip()
    return s.split(None, 1)[0].split("/", 1)[0] if s else ""


@dataclass
class RobotsGroup:
    agents: List[str] = field(default_factory=list)
    allows: List[str] = field(default_factory=list)
    disallows: List[str] = field(default_factory=list)
    sitemaps: List[str] = field(default_factory=list)


@dataclass
class CrawlPolicy:
    """All groups parsed from one origin's robots.txt."""
    origin: str = ""
    groups: List[RobotsGroup] = field(default_factory=list)
    fetched_at: Optional[datetime] = None

    @classmethod
    def allow_all(cls, origin: str = "") -> "CrawlPolicy":
        return cls(origin=origin, groups=[], fetched_at=now_utc())

    def group_for(self, user_agent: str) -> Optional[RobotsGroup]:
        """
        Exact (case-insensitive) agent match first, then the wildcard group.

        A full User-Agent header matches groups named after its product token.
        """
        needles = {user_agent.strip().lower(), product_token(user_agent).lower()} - {""}
        for g in self.groups:
            if any(a.strip().lower() in needles for a in g.agents):
                return g
        for g in self.groups:
            if any(a.strip() == "*" for a in g.agents):
                return g
        return None

    def is_allowed(self, path: str, user_agent: str) -> bool:
        group = self.group_for(user_agent)
        if group is None:
            return True
        return evaluate(path, group)


def _norm_prefix(raw: str) -> str:
    s = raw.strip()
    if not s:
        return "/"
    if not s.startswith("/"):
        s = "/" + s
    return s


def parse_robots(text: str, origin: str = "") -> CrawlPolicy:
    """Parse robots.txt text into a CrawlPolicy."""
    groups: List[RobotsGroup] = []
    cur: Optional[RobotsGroup] = None

    for raw in (text or "").splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        m = _DIRECTIVE_RE.match(line)
        if not m:
            continue
        key = m.group(1).lower()
        val = m.group(2).strip()

        if key == "user-agent":
            if cur is None or cur.agents:
                cur = RobotsGroup()
                groups.append(cur)
            if val:
                cur.agents.append(val)
            continue

        if key not in ("allow", "disallow", "sitemap"):
            continue

        if cur is None:
            # Rules before any User-agent line belong to an implicit wildcard group
            cur = RobotsGroup(agents=["*"])
            groups.append(cur)

        if key == "allow":
            cur.allows.append(_norm_prefix(val))
        elif key == "disallow":
            if val:
                cur.disallows.append(_norm_prefix(val))
        elif val:
            cur.sitemaps.append(val)

    return CrawlPolicy(origin=origin, groups=groups, fetched_at=now_utc())


def evaluate(path: str, group: RobotsGroup) -> bool:
    """
    Longest-match evaluation of `path` against one group.

    No match allows; the longer prefix wins; a tie goes to Allow.
    """
    path = path or "/"
    longest_allow = max((len(a) for a in group.allows if path.startswith(a)), default=-1)
    longest_disallow = max((len(d) for d in group.disallows if path.startswith(d)), default=-1)
    if longest_allow < 0 and longest_disallow < 0:
        return True
    return longest_allow >= longest_disallow


def origin_of(url: str) -> str:
    u = urllib.parse.urlsplit(url)
    return f"{u.scheme.lower()}://{u.netloc.lower()}"


class RobotsGate:
    """
    Per-origin robots.txt cache and evaluator.

    The cache is a plain dict keyed by origin; pass one in to share it across
    gates or to seed fixtures. Concurrent first lookups of the same origin may
    both fetch; the later write wins and both policies are equivalent.
    """

    def __init__(
        self,
        fetcher: ResilientFetcher,
        user_agent: str,
        cache: Optional[Dict[str, CrawlPolicy]] = None,
        timeout_s: float = 8.0,
    ):
        self.fetcher = fetcher
        self.user_agent = user_agent
        self.cache: Dict[str, CrawlPolicy] = cache if cache is not None else {}
        self.timeout_s = timeout_s

    async def fetch_policy(self, origin: str, cancel: Optional[asyncio.Event] = None) -> CrawlPolicy:
        cached = self.cache.get(origin)
        if cached is not None:
            return cached

        robots_url = f"{origin}/robots.txt"
        options = FetchOptions(
            retries=0,
            timeout_s=self.timeout_s,
            headers={"Accept": "text/plain, */*;q=0.1"},
        )
        try:
            result = await self.fetcher.fetch(robots_url, options=options, cancel=cancel)
        except NetworkError as e:
            logger.warning("robots.txt unreachable for %s (%s); allowing", origin, e.kind.value)
            policy = CrawlPolicy.allow_all(origin)
        else:
            if result.ok:
                policy = parse_robots(result.text, origin=origin)
            else:
                logger.warning("robots.txt for %s returned HTTP %s; allowing", origin, result.status)
                policy = CrawlPolicy.allow_all(origin)

        self.cache[origin] = policy
        return policy

    async def is_allowed(
        self,
        page_url: str,
        user_agent: Optional[str] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> bool:
        """True when robots.txt permits fetching `page_url`."""
        policy = await self.fetch_policy(origin_of(page_url), cancel=cancel)
        path = urllib.parse.urlsplit(page_url).path or "/"
        return policy.is_allowed(path, user_agent or self.user_agent)
