"""
URL routing: which adapter handles a URL and under which composite key.
"""

from __future__ import annotations

import hashlib
import re
import urllib.parse
from typing import Optional, Tuple

from jobvet.errors import ParseError
from jobvet.models import host_of
from jobvet.providers.base import SourceTarget

GREENHOUSE_BOARD_HOSTS = ("boards.greenhouse.io", "job-boards.greenhouse.io")

_GH_API_PATH_RE = re.compile(r"^/v1/boards/([^/]+)/jobs/(\d+)$", re.I)
_GH_BOARD_PATH_RE = re.compile(r"^/([^/]+)/jobs/(\d+)(?:/.*)?$", re.I)


def validate_url(url: str) -> str:
    """Return the stripped URL, or raise ParseError if it is not an absolute http(s) URL."""
    url = (url or "").strip()
    try:
        u = urllib.parse.urlsplit(url)
    except ValueError as e:
        raise ParseError("That doesn't look like a valid job link.", hint="Paste the full URL, including https://.") from e
    if u.scheme.lower() not in ("http", "https") or not u.hostname:
        raise ParseError("That doesn't look like a valid job link.", hint="Paste the full URL, including https://.")
    return url


def _is_greenhouse_host(host: str) -> bool:
    return host == "greenhouse.io" or host.endswith(".greenhouse.io")


def _is_board_host(host: str) -> bool:
    return any(host == h or host.endswith("." + h) for h in GREENHOUSE_BOARD_HOSTS)


def parse_greenhouse_url(url: str) -> Optional[Tuple[str, str]]:
    """
    (tenant, job_id) for Greenhouse board or API URLs, else None.

    Board form:  https://boards.greenhouse.io/{tenant}/jobs/{id}
    API form:    https://boards-api.greenhouse.io/v1/boards/{tenant}/jobs/{id}
    """
    host = host_of(url)
    if not _is_greenhouse_host(host):
        return None
    path = urllib.parse.urlsplit(url).path.rstrip("/")

    m = _GH_API_PATH_RE.match(path)
    if m:
        return m.group(1), m.group(2)

    if _is_board_host(host):
        m = _GH_BOARD_PATH_RE.match(path)
        if m:
            return m.group(1), m.group(2)
    return None


def web_key(url: str) -> Tuple[str, str, str]:
    """("web", host, first 16 hex chars of sha1(url))."""
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:16]
    return ("web", host_of(url), digest)


def route_url(url: str) -> SourceTarget:
    """Route a URL to the Greenhouse adapter when possible, otherwise to the web adapter."""
    url = validate_url(url)
    gh = parse_greenhouse_url(url)
    if gh:
        tenant, job_id = gh
        return SourceTarget(provider="greenhouse", tenant=tenant, external_id=job_id, url=url)
    provider, tenant, external_id = web_key(url)
    return SourceTarget(provider=provider, tenant=tenant, external_id=external_id, url=url)
