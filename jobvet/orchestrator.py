"""
Main orchestrator for JobVet analyses.

Ties together gating, source adapters, deterministic extraction, oracle
enrichment, persistence and scoring into a single JobAnalyzer.analyze() call.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from jobvet.config import Settings, get_settings
from jobvet.errors import EnrichmentFailure, SourceUnavailable
from jobvet.extract.features import extract_features, record_text
from jobvet.extract.jsonld import resolve_identity
from jobvet.fetchers.http import ResilientFetcher
from jobvet.fetchers.robots import RobotsGate
from jobvet.gating import HostDenylist, check_url
from jobvet.llm.enrichment import (
    AnalysisResult,
    EnrichmentClient,
    EnrichmentResult,
    local_analysis,
    merge_enrichment,
)
from jobvet.llm.provider import LLMConfig, get_llm_client
from jobvet.models import (
    CanonicalJobRecord,
    FeatureSet,
    JobIdentity,
    host_of,
    now_utc,
)
from jobvet.providers import SourceAdapter, build_registry, route_url
from jobvet.providers.base import SourceTarget
from jobvet.scoring import ScoreInput, ScoreResult, score
from jobvet.storage.sqlite import JobStore, StoredJob

logger = logging.getLogger(__name__)


@dataclass
class AnalysisReport:
    """Everything produced for one analyzed URL."""
    url: str
    record: CanonicalJobRecord
    identity: JobIdentity
    features: FeatureSet
    analysis: AnalysisResult
    result: ScoreResult
    enrichment: Optional[EnrichmentResult] = None
    cached: bool = False
    job_id: Optional[int] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self, include_content: bool = False) -> Dict[str, Any]:
        record = self.record.to_dict()
        if not include_content:
            record.pop("content", None)
            record.pop("raw_payload", None)
        return {
            "url": self.url,
            "job_id": self.job_id,
            "cached": self.cached,
            "identity": self.identity.to_dict(),
            "record": record,
            "features": self.features.to_dict(),
            "enrichment": self.enrichment.model_dump() if self.enrichment else None,
            "analysis": self.analysis.model_dump(),
            "risk": self.result.to_dict(),
            "warnings": list(self.warnings),
        }


class JobAnalyzer:
    """
    Runs route -> gate -> fetch -> extract -> enrich -> persist -> score.

    Every collaborator is injectable; anything not supplied is built from
    settings. Use as an async context manager so the HTTP session is closed.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        fetcher: Optional[ResilientFetcher] = None,
        denylist: Optional[HostDenylist] = None,
        robots: Optional[RobotsGate] = None,
        registry: Optional[Dict[str, SourceAdapter]] = None,
        store: Optional[JobStore] = None,
        enrichment: Optional[EnrichmentClient] = None,
        use_llm: bool = True,
    ):
        self.settings = settings or get_settings()
        s = self.settings

        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or ResilientFetcher.from_settings(s)
        self.denylist = denylist if denylist is not None else HostDenylist(s.denylist_hosts or [])
        self.robots = robots or RobotsGate(self.fetcher, s.user_agent, timeout_s=s.robots_timeout_s)
        self.registry = registry if registry is not None else build_registry(self.fetcher)
        self.store = store

        if enrichment is None and use_llm:
            llm = get_llm_client(LLMConfig.from_settings(s))
            if llm is not None:
                enrichment = EnrichmentClient(llm, text_limit=s.enrichment_text_limit)
        self.enrichment = enrichment if use_llm else None

    async def __aenter__(self) -> "JobAnalyzer":
        await self.fetcher.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_fetcher:
            await self.fetcher.close()

    # ----------------------------- Pipeline -----------------------------

    async def analyze(self, url: str, cancel: Optional[asyncio.Event] = None) -> AnalysisReport:
        """
        Analyze one posting URL.

        Raises:
            ParseError: the URL is not a usable http(s) link
            PolicyDenied: denylisted host or robots.txt disallows the path
            SourceUnavailable: the adapter could not produce a record
            EnrichmentFailure: only when settings.require_enrichment is set
            FetchCancelled: `cancel` was set while a request was in flight
        """
        target = route_url(url)
        await check_url(target.url, self.denylist, self.robots, cancel=cancel)

        warnings: List[str] = []
        enrichment: Optional[EnrichmentResult] = None

        stored = self._fresh_entry(target)
        if stored is not None:
            logger.info("Cache hit for %s (last seen %s)", target.key, stored.last_seen_at)
            record = stored.record
            features = stored.features or FeatureSet()
            text = record_text(record, self.settings.enrichment_text_limit)
            job_id: Optional[int] = stored.job_id
        else:
            record = await self._fetch_record(target, cancel)
            text = record_text(record, self.settings.enrichment_text_limit)
            features = extract_features(record, text=text)
            enrichment, features = await self._enrich(text, features, warnings)
            job_id = self._persist(record, features)

        identity = resolve_identity(record)
        if enrichment is not None and not identity.location and enrichment.location:
            identity = replace(identity, location=enrichment.location)

        analysis = await self._analyze_text(text, features, warnings)

        result = score(self._score_input(record, identity, features, analysis))
        logger.info(
            "Scored %s: %.2f (%s risk), red flags: %s",
            target.url,
            result.score,
            result.tier.value,
            ", ".join(result.red_flags) or "none",
        )

        return AnalysisReport(
            url=target.url,
            record=record,
            identity=identity,
            features=features,
            analysis=analysis,
            result=result,
            enrichment=enrichment,
            cached=stored is not None,
            job_id=job_id,
            warnings=warnings,
        )

    def _fresh_entry(self, target: SourceTarget, now: Optional[datetime] = None) -> Optional[StoredJob]:
        """A stored entry seen within fresh_hours that already has features."""
        if self.store is None or target.provider == "web":
            return None
        stored = self.store.get_by_key(target.key)
        if stored is None or stored.features is None or stored.last_seen_at is None:
            return None
        age = (now or now_utc()) - stored.last_seen_at
        if age < timedelta(hours=self.settings.fresh_hours):
            return stored
        return None

    async def _fetch_record(self, target: SourceTarget, cancel: Optional[asyncio.Event]) -> CanonicalJobRecord:
        adapter = self.registry.get(target.provider)
        if adapter is None:
            raise SourceUnavailable(target.url)
        logger.info("Fetching %s via %s adapter", target.url, target.provider)
        record = await adapter.fetch(target, cancel=cancel)
        if record is None:
            raise SourceUnavailable(target.url)
        return record

    async def _enrich(
        self,
        text: str,
        features: FeatureSet,
        warnings: List[str],
    ) -> Tuple[Optional[EnrichmentResult], FeatureSet]:
        if self.enrichment is None or not text:
            return None, features
        hints = {"time_type": features.time_type, "currency": features.currency}
        try:
            enrichment = await self.enrichment.enrich(text, hints)
        except EnrichmentFailure as e:
            if self.settings.require_enrichment:
                raise
            logger.warning("Enrichment failed; continuing with deterministic features: %s", e.hint)
            warnings.append(e.message)
            return None, features
        return enrichment, merge_enrichment(features, enrichment)

    async def _analyze_text(self, text: str, features: FeatureSet, warnings: List[str]) -> AnalysisResult:
        if self.enrichment is None or not text:
            return local_analysis(text, features)
        try:
            return await self.enrichment.analyze(text)
        except EnrichmentFailure as e:
            logger.warning("Analysis call failed; using local signals: %s", e.hint)
            warnings.append(e.message)
            return local_analysis(text, features)

    def _persist(self, record: CanonicalJobRecord, features: FeatureSet) -> Optional[int]:
        # Web records are ephemeral.
        if self.store is None or record.provider == "web":
            return None
        job_id = self.store.upsert_job(record)
        self.store.save_features(job_id, features)
        return job_id

    def _score_input(
        self,
        record: CanonicalJobRecord,
        identity: JobIdentity,
        features: FeatureSet,
        analysis: AnalysisResult,
    ) -> ScoreInput:
        if record.provider == "web":
            published = identity.date_posted
        else:
            published = record.first_published
        return ScoreInput(
            features=features,
            first_published=published,
            updated_at=record.updated_at,
            host=host_of(record.url or record.fetch.final_url),
            link_ok=record.fetch.ok,
            link_loop=record.fetch.redirect_loop,
            analysis=analysis,
        )


async def analyze_url(url: str, settings: Optional[Settings] = None, **kwargs: Any) -> AnalysisReport:
    """One-shot helper: build an analyzer, analyze `url`, close it."""
    async with JobAnalyzer(settings=settings, **kwargs) as analyzer:
        return await analyzer.analyze(url)
