"""
Generic web page adapter.

Fetches an arbitrary job page and captures its raw markup and JSON-LD blocks.
Title, company and location are resolved later, during extraction.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from jobvet.errors import NetworkError
from jobvet.extract.jsonld import capture_jsonld_blocks, job_postings, requisition_id_from_job_posting
from jobvet.fetchers.http import ResilientFetcher
from jobvet.models import (
    CanonicalJobRecord,
    ContentFingerprint,
    ProvenanceTag,
    canonicalize_url,
)
from jobvet.providers.base import SourceTarget

logger = logging.getLogger(__name__)


class WebAdapter:
    """Fetches any URL; non-2xx pages are kept so later stages can see them."""

    name = "web"

    def __init__(self, fetcher: ResilientFetcher):
        self.fetcher = fetcher

    async def fetch(
        self,
        target: SourceTarget,
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[CanonicalJobRecord]:
        try:
            result = await self.fetcher.fetch(target.url, cancel=cancel)
        except NetworkError as e:
            logger.warning("Web fetch failed for %s: %s", target.url, e.kind.value)
            return None

        if not result.ok:
            logger.info("Web page %s returned HTTP %s; keeping body", target.url, result.status)

        body = result.text or ""
        blocks = capture_jsonld_blocks(body)
        postings = job_postings(blocks)

        return CanonicalJobRecord(
            provider=self.name,
            tenant=target.tenant,
            external_id=target.external_id,
            url=canonicalize_url(target.url),
            requisition_id=requisition_id_from_job_posting(postings[0]) if postings else None,
            content=body,
            jsonld=blocks,
            fetch=result.diagnostics(),
            fingerprint=ContentFingerprint.of(body),
            provenance=ProvenanceTag.JSONLD if blocks else ProvenanceTag.TEXT_ONLY,
        )
