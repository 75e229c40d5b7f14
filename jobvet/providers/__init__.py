"""
Source adapters for JobVet.

Each adapter turns one posting into a CanonicalJobRecord:
- greenhouse: the Greenhouse job board API
- web: any other page, captured with its JSON-LD blocks
"""

from typing import Dict

from jobvet.fetchers.http import ResilientFetcher
from jobvet.providers.base import SourceAdapter, SourceTarget
from jobvet.providers.greenhouse import GREENHOUSE_API_BASE, GreenhouseAdapter
from jobvet.providers.routing import route_url
from jobvet.providers.web import WebAdapter


def build_registry(
    fetcher: ResilientFetcher,
    greenhouse_api_base: str = GREENHOUSE_API_BASE,
) -> Dict[str, SourceAdapter]:
    """Adapters keyed by provider tag."""
    return {
        "greenhouse": GreenhouseAdapter(fetcher, api_base=greenhouse_api_base),
        "web": WebAdapter(fetcher),
    }


__all__ = [
    "SourceAdapter",
    "SourceTarget",
    "GreenhouseAdapter",
    "WebAdapter",
    "build_registry",
    "route_url",
]
