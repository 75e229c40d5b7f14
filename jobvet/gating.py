"""
Pre-fetch gating: host denylist and robots.txt permission.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from jobvet.errors import PolicyDenied
from jobvet.fetchers.robots import RobotsGate
from jobvet.models import host_of

logger = logging.getLogger(__name__)


class HostDenylist:
    """Set of hosts never fetched directly. Matches the host or any parent domain."""

    def __init__(self, hosts: Iterable[str] = ()):
        self.hosts = frozenset(h.strip().lower().rstrip(".") for h in hosts if h and h.strip())

    def __contains__(self, host: str) -> bool:
        host = (host or "").lower().rstrip(".")
        if not host:
            return False
        return any(host == h or host.endswith("." + h) for h in self.hosts)

    def __len__(self) -> int:
        return len(self.hosts)


async def check_url(
    url: str,
    denylist: HostDenylist,
    robots: RobotsGate,
    cancel: Optional[asyncio.Event] = None,
) -> None:
    """
    Raise PolicyDenied if `url` is an aggregator host or robots.txt forbids it.
    The denylist is consulted first so aggregator hosts are never contacted.
    """
    host = host_of(url)
    if host in denylist:
        logger.info("Refusing denylisted host %s", host)
        raise PolicyDenied.denylisted(host)
    if not await robots.is_allowed(url, cancel=cancel):
        logger.info("robots.txt disallows %s", url)
        raise PolicyDenied.robots(host)
