"""
Greenhouse ATS API adapter.

Public API: https://boards-api.greenhouse.io/v1/boards/{tenant}/jobs/{id}
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from jobvet.errors import NetworkError, ParseError
from jobvet.fetchers.http import ResilientFetcher
from jobvet.models import (
    CanonicalJobRecord,
    ContentFingerprint,
    FetchDiagnostics,
    ProvenanceTag,
    canonicalize_url,
    normalize_requisition_id,
    normalize_text,
    parse_date,
)
from jobvet.providers.base import SourceTarget

logger = logging.getLogger(__name__)

GREENHOUSE_API_BASE = "https://boards-api.greenhouse.io"


class GreenhouseLocation(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = ""


class GreenhouseJob(BaseModel):
    """Permissive view of a Greenhouse job payload; unknown fields are kept."""

    model_config = ConfigDict(extra="allow")

    id: Union[int, str, None] = None
    title: Optional[str] = ""
    company_name: Optional[str] = None
    absolute_url: Optional[str] = None
    first_published: Optional[str] = None
    updated_at: Optional[str] = None
    requisition_id: Union[str, int, None] = None
    location: Optional[GreenhouseLocation] = None
    content: Optional[str] = None
    metadata: Optional[List[Any]] = None


class GreenhouseAdapter:
    """Fetches a single Greenhouse posting through the public job board API."""

    name = "greenhouse"

    def __init__(self, fetcher: ResilientFetcher, api_base: str = GREENHOUSE_API_BASE):
        self.fetcher = fetcher
        self.api_base = api_base.rstrip("/")

    def api_url(self, tenant: str, job_id: str) -> str:
        return f"{self.api_base}/v1/boards/{tenant}/jobs/{job_id}"

    async def fetch(
        self,
        target: SourceTarget,
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[CanonicalJobRecord]:
        url = self.api_url(target.tenant, target.external_id)
        try:
            result = await self.fetcher.fetch_json(url, cancel=cancel)
            result.raise_for_status()
        except NetworkError as e:
            logger.warning(
                "Greenhouse fetch failed for %s/%s: %s%s",
                target.tenant,
                target.external_id,
                e.kind.value,
                f" ({e.hint})" if e.hint else "",
            )
            return None

        try:
            payload = result.json()
        except ParseError:
            logger.warning("Greenhouse returned a non-JSON body for %s", url)
            return None
        if not isinstance(payload, dict):
            logger.warning("Greenhouse returned an unexpected payload shape for %s", url)
            return None

        return self.normalize(payload, target, result.diagnostics())

    def normalize(
        self,
        payload: Dict[str, Any],
        target: SourceTarget,
        fetch: Optional[FetchDiagnostics] = None,
    ) -> CanonicalJobRecord:
        """Build a CanonicalJobRecord from a raw job payload."""
        try:
            job = GreenhouseJob.model_validate(payload)
        except ValidationError as e:
            # Keep the raw payload; fall back to defaults for every field
            logger.debug("Greenhouse payload failed validation: %s", e.errors()[:1])
            job = GreenhouseJob()

        tenant = target.tenant
        external_id = str(job.id) if job.id is not None else target.external_id

        content = job.content or ""
        if not content and isinstance(payload.get("description"), str):
            content = payload["description"]

        location = ""
        if job.location is not None and job.location.name:
            location = normalize_text(job.location.name)

        absolute_url = job.absolute_url or f"https://boards.greenhouse.io/{tenant}/jobs/{external_id}"
        updated_at = parse_date(job.updated_at)

        return CanonicalJobRecord(
            provider=self.name,
            tenant=tenant,
            external_id=external_id,
            title=normalize_text(job.title or ""),
            company=normalize_text(job.company_name or "") or tenant,
            location=location,
            url=canonicalize_url(absolute_url),
            first_published=parse_date(job.first_published) or updated_at,
            updated_at=updated_at,
            requisition_id=normalize_requisition_id(job.requisition_id),
            content=content or None,
            raw_payload=payload,
            fingerprint=ContentFingerprint.of(content),
            provenance=ProvenanceTag.API,
            fetch=fetch or FetchDiagnostics(),
        )
