"""
Deterministic (non-AI) risk scoring.

Each signal is an independent sub-score in [0, 1]; the overall score is a
weighted average over the signals actually present. Higher is more
trustworthy; the risk tier is derived from fixed thresholds.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Mapping, Optional

from jobvet.llm.enrichment import AnalysisResult
from jobvet.models import FeatureSet, SalarySource, now_utc

logger = logging.getLogger(__name__)


DEFAULT_WEIGHTS: Dict[str, float] = {
    "freshness": 0.20,
    "link_integrity": 0.10,
    "salary_disclosure": 0.25,
    "salary_min_present": 0.15,
    "source_credibility": 0.10,
    # Analysis signals
    "skills_present": 0.10,
    "buzzword_penalty": 0.05,
    "comp_period_clarity": 0.05,
}

ATS_HOSTS = frozenset({
    "boards.greenhouse.io",
    "job-boards.greenhouse.io",
    "greenhouse.io",
    "lever.co",
    "myworkdayjobs.com",
    "smartrecruiters.com",
    "ashbyhq.com",
    "icims.com",
})

FRESHNESS_HORIZON_DAYS = 90.0
RED_FLAG_THRESHOLD = 0.5


class RiskTier(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def for_score(cls, score: float) -> "RiskTier":
        if score < 0.4:
            return cls.HIGH
        if score < 0.7:
            return cls.MEDIUM
        return cls.LOW


@dataclass
class ScoreInput:
    """Everything the scorer looks at for one posting."""
    features: FeatureSet = field(default_factory=FeatureSet)
    first_published: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    host: Optional[str] = None
    link_ok: bool = False
    link_loop: bool = False
    analysis: Optional[AnalysisResult] = None
    now: Optional[datetime] = None


@dataclass
class ScoreResult:
    score: float
    breakdown: Dict[str, float]

    @property
    def tier(self) -> RiskTier:
        return RiskTier.for_score(self.score)

    @property
    def red_flags(self) -> List[str]:
        return [k for k, v in self.breakdown.items() if v < RED_FLAG_THRESHOLD]

    def to_dict(self) -> Dict[str, object]:
        return {
            "score": self.score,
            "tier": self.tier.value,
            "breakdown": dict(self.breakdown),
            "red_flags": self.red_flags,
        }


def clamp01(x: float) -> float:
    if x is None or not math.isfinite(x):
        return 0.0
    return min(1.0, max(0.0, float(x)))


# ----------------------------- Sub-scores -----------------------------

def freshness_score(published: Optional[datetime], now: Optional[datetime] = None) -> float:
    """1.0 at age 0, decaying linearly to 0.0 at 90 days; unknown age is 0.5."""
    if published is None:
        return 0.5
    age_days = abs(((now or now_utc()) - published).total_seconds()) / 86400
    return clamp01(1 - min(age_days / FRESHNESS_HORIZON_DAYS, 1))


def link_integrity_score(link_ok: bool, link_loop: bool) -> float:
    return 1.0 if link_ok and not link_loop else 0.0


def salary_disclosure_score(features: FeatureSet) -> float:
    if features.salary_min is not None:
        return 1.0
    if features.salary_max is not None:
        return 0.5
    return 0.0


def salary_min_present_score(features: FeatureSet) -> float:
    return 1.0 if features.salary_min is not None else 0.0


def _host_matches(host: str, hosts) -> bool:
    return any(host == h or host.endswith("." + h) for h in hosts)


def source_credibility_score(host: Optional[str], salary_source: Optional[SalarySource]) -> float:
    """Host classification plus a small nudge from where the salary came from."""
    base = 0.5
    if host:
        host = host.lower().rstrip(".")
        if _host_matches(host, ATS_HOSTS):
            base = 0.9
        elif "careers." in host or host.endswith(".jobs"):
            base = 0.7
        else:
            base = 0.6

    boost = 0.0
    if salary_source in (SalarySource.METADATA, SalarySource.STRUCTURED_DATA):
        boost = 0.1
    elif salary_source == SalarySource.TEXT:
        boost = -0.1
    return clamp01(base + boost)


def skills_present_score(analysis: AnalysisResult) -> float:
    n = len(analysis.skills)
    if n == 0:
        return 0.0
    if n >= 5:
        return 1.0
    return 0.5


def buzzword_penalty_score(analysis: AnalysisResult) -> float:
    return clamp01(1 - 0.2 * analysis.buzzwords.count)


def comp_period_clarity_score(analysis: AnalysisResult) -> float:
    return 1.0 if analysis.comp_period_detected else 0.0


# ----------------------------- Aggregation -----------------------------

def finalize_score(breakdown: Mapping[str, float], weights: Optional[Mapping[str, float]] = None) -> float:
    """
    Weighted average over the keys present in `breakdown`.

    Keys with no positive weight are ignored; if no key has a positive
    weight, the plain mean of the breakdown is returned instead.
    """
    if not breakdown:
        return 0.0
    w = dict(DEFAULT_WEIGHTS)
    if weights:
        w.update(weights)

    sum_w = 0.0
    total = 0.0
    for k, v in breakdown.items():
        weight = w.get(k, 0.0) or 0.0
        if weight > 0:
            sum_w += weight
            total += weight * clamp01(v)

    if sum_w <= 0:
        values = [clamp01(v) for v in breakdown.values()]
        return clamp01(sum(values) / len(values))
    return clamp01(total / sum_w)


def build_breakdown(inp: ScoreInput) -> Dict[str, float]:
    breakdown = {
        "freshness": freshness_score(inp.first_published or inp.updated_at, inp.now),
        "link_integrity": link_integrity_score(inp.link_ok, inp.link_loop),
        "salary_disclosure": salary_disclosure_score(inp.features),
        "salary_min_present": salary_min_present_score(inp.features),
        "source_credibility": source_credibility_score(inp.host, inp.features.salary_source),
    }
    if inp.analysis is not None:
        breakdown["skills_present"] = skills_present_score(inp.analysis)
        breakdown["buzzword_penalty"] = buzzword_penalty_score(inp.analysis)
        breakdown["comp_period_clarity"] = comp_period_clarity_score(inp.analysis)
    return breakdown


def score(inp: ScoreInput, weights: Optional[Mapping[str, float]] = None) -> ScoreResult:
    """Score one posting."""
    breakdown = build_breakdown(inp)
    overall = finalize_score(breakdown, weights)
    logger.debug("Score %.3f from %s", overall, breakdown)
    return ScoreResult(score=overall, breakdown=breakdown)
