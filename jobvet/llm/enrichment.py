"""
Enrichment through the language-model oracle.

Two calls share one contract: the response must validate against a fixed
schema, a failed call or invalid response is retried exactly once, and a
second failure raises EnrichmentFailure so the caller can decide whether to
continue on deterministic features alone.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from jobvet.errors import EnrichmentFailure
from jobvet.extract.merge import merge_features
from jobvet.llm.prompts import (
    ANALYSIS_SCHEMA,
    ANALYSIS_SYSTEM,
    ENRICH_SCHEMA,
    ENRICH_SYSTEM,
    build_analysis_prompt,
    build_enrich_prompt,
)
from jobvet.llm.provider import LLMClient
from jobvet.models import FeatureSet, SalarySource

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

MAX_ATTEMPTS = 2
MAX_SKILLS = 20
MAX_SKILL_LEN = 64

BUZZWORDS = ("rockstar", "ninja", "dynamic", "fast-paced", "self-starter", "wear many hats")


class EnrichmentResult(BaseModel):
    """Oracle output. Every field must be present; unknown values are null."""

    model_config = ConfigDict(extra="forbid")

    location: Optional[str]
    salary_min: Optional[float]
    salary_max: Optional[float]
    salary_mid: Optional[float]
    remote_policy: Optional[Literal["onsite", "hybrid", "remote"]]
    seniority: Optional[Literal["intern", "junior", "mid", "senior", "lead", "manager"]]
    time_type: Optional[Literal["full-time", "part-time", "contract"]]
    currency: Optional[str]
    department: Optional[str]
    timezone_requirement: Optional[str]

    def feature_partial(self) -> Dict[str, Any]:
        """The subset that can fill FeatureSet gaps."""
        return {
            "salary_min": self.salary_min,
            "salary_max": self.salary_max,
            "salary_mid": self.salary_mid,
            "currency": self.currency.upper() if self.currency else None,
            "time_type": self.time_type,
            "department": self.department,
        }


class BuzzwordHits(BaseModel):
    model_config = ConfigDict(extra="forbid")

    hits: List[str] = Field(default_factory=list)
    count: int = Field(default=0, ge=0)


class AnalysisResult(BaseModel):
    """Signals used by scoring: requested skills, hype words, quoted pay period."""

    model_config = ConfigDict(extra="forbid")

    skills: List[str]
    buzzwords: BuzzwordHits
    comp_period_detected: Optional[Literal["hour", "year"]]

    @field_validator("skills")
    @classmethod
    def clip_skills(cls, v: List[str]) -> List[str]:
        out = []
        for s in v:
            s = s.strip()[:MAX_SKILL_LEN]
            if s and s not in out:
                out.append(s)
        return out[:MAX_SKILLS]


def count_buzzwords(text: str) -> BuzzwordHits:
    lower = (text or "").lower()
    hits: List[str] = []
    count = 0
    for word in BUZZWORDS:
        n = len(re.findall(r"\b" + re.escape(word) + r"\b", lower))
        if n:
            hits.append(word)
            count += n
    return BuzzwordHits(hits=hits, count=count)


def local_analysis(text: str, features: FeatureSet) -> AnalysisResult:
    """Deterministic stand-in used when the oracle is unavailable."""
    return AnalysisResult(
        skills=[],
        buzzwords=count_buzzwords(text),
        comp_period_detected=features.comp_period.value if features.comp_period else None,
    )


def merge_enrichment(features: FeatureSet, enrichment: Optional[EnrichmentResult]) -> FeatureSet:
    """Deterministic values win; the oracle only fills fields left null."""
    if enrichment is None:
        return features
    return merge_features([(SalarySource.ORACLE, enrichment.feature_partial())], base=features)


class EnrichmentClient:
    """Validating wrapper around an LLMClient."""

    def __init__(self, llm: LLMClient, text_limit: int = 20000):
        self.llm = llm
        self.text_limit = text_limit

    async def enrich(self, text: str, hints: Optional[Dict[str, Any]] = None) -> EnrichmentResult:
        """Fuzzy attributes for a posting. `hints` carries known time_type/currency."""
        prompt = build_enrich_prompt(text[: self.text_limit], hints)
        return await self._call(prompt, ENRICH_SYSTEM, ENRICH_SCHEMA, "job_info", EnrichmentResult)

    async def analyze(self, text: str) -> AnalysisResult:
        prompt = build_analysis_prompt(text[: self.text_limit])
        return await self._call(prompt, ANALYSIS_SYSTEM, ANALYSIS_SCHEMA, "job_analysis", AnalysisResult)

    async def _call(
        self,
        prompt: str,
        system_prompt: str,
        schema: Dict[str, Any],
        schema_name: str,
        model_cls: Type[M],
    ) -> M:
        last_error = ""
        for attempt in range(1, MAX_ATTEMPTS + 1):
            resp = await self.llm.complete(prompt, system_prompt=system_prompt, json_schema=schema, schema_name=schema_name)
            if not resp.ok:
                last_error = resp.error or "empty response"
                logger.debug("%s attempt %d failed: %s", schema_name, attempt, last_error)
                continue
            try:
                return model_cls.model_validate_json(resp.content)
            except ValidationError as e:
                last_error = f"{e.error_count()} validation error(s)"
                logger.debug("%s attempt %d returned invalid output: %s", schema_name, attempt, e.errors()[:2])

        raise EnrichmentFailure(
            "We couldn't analyze the posting text automatically.",
            hint=f"Results are based on the posting's structured data only. ({last_error})",
        )
