"""
Fetcher layer for JobVet.

Provides:
- Retries with exponential backoff and Retry-After handling
- Per-attempt timeouts and caller cancellation
- robots.txt gating with a per-origin policy cache
"""

from jobvet.fetchers.http import FetchOptions, FetchResult, ResilientFetcher
from jobvet.fetchers.robots import CrawlPolicy, RobotsGate, parse_robots

__all__ = [
    "FetchOptions",
    "FetchResult",
    "ResilientFetcher",
    "CrawlPolicy",
    "RobotsGate",
    "parse_robots",
]
